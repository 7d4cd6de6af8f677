"""Command-pattern learning from shell history."""

from autoflow.patterns.artifacts import PatternArtifacts
from autoflow.patterns.history import read_history
from autoflow.patterns.miner import MiningReport, TransitionModel, build_model, mine
from autoflow.patterns.rules import Shortcut, Suggestion, derive_shortcuts, derive_suggestions
from autoflow.patterns.task import LearnOptions, LearnResult, MiningCancelled, MiningTask, learn

__all__ = [
    "LearnOptions",
    "LearnResult",
    "MiningCancelled",
    "MiningReport",
    "MiningTask",
    "PatternArtifacts",
    "Shortcut",
    "Suggestion",
    "TransitionModel",
    "build_model",
    "derive_shortcuts",
    "derive_suggestions",
    "learn",
    "mine",
    "read_history",
]
