"""Files written by a learning pass.

Everything here is rewritten on each run; nothing is read back by the
miner, which always recomputes from history.

    patterns/frequent_patterns.txt        "<count> <command>" per line
    patterns/command_sequences.txt        "<count> <a → b>" per line
    patterns/generated_shortcuts.sh       sourceable aliases and functions
    patterns/workflow_suggestions.txt     one block per suggestion
    patterns/command_analysis_<date>.log  human-readable summary
    models/transitions.json               next-command table
"""

from __future__ import annotations

import json
from datetime import datetime
from pathlib import Path

from autoflow.core.locking import write_atomic
from autoflow.core.timestamps import isoformat
from autoflow.patterns.miner import Count, MiningReport, TransitionModel
from autoflow.patterns.rules import Shortcut, Suggestion

FREQUENT_PATTERNS = "frequent_patterns.txt"
COMMAND_SEQUENCES = "command_sequences.txt"
GENERATED_SHORTCUTS = "generated_shortcuts.sh"
WORKFLOW_SUGGESTIONS = "workflow_suggestions.txt"
TRANSITIONS = "transitions.json"


def _table(rows: list[Count]) -> str:
    return "".join(f"{count:7d} {key}\n" for key, count in rows)


class PatternArtifacts:
    """Writes learning output under the patterns and models directories."""

    def __init__(self, patterns_dir: Path, models_dir: Path) -> None:
        self.patterns_dir = Path(patterns_dir)
        self.models_dir = Path(models_dir)

    def analysis_log(self, at: datetime) -> Path:
        return self.patterns_dir / f"command_analysis_{at:%Y%m%d}.log"

    def write_analysis(self, report: MiningReport, at: datetime) -> list[Path]:
        frequent = self.patterns_dir / FREQUENT_PATTERNS
        sequences = self.patterns_dir / COMMAND_SEQUENCES
        write_atomic(frequent, _table(report.commands))
        write_atomic(sequences, _table(report.sequences))

        lines = [
            f"# Command pattern analysis: {isoformat(at)}",
            f"# Lines analysed: {report.line_count}",
            f"# top_n={report.top_n} min_frequency={report.min_frequency}",
            "",
            "Most frequent commands:",
            *(f"  {cmd}: {count} times" for cmd, count in report.surfaced_commands()),
            "",
            "Most frequent command lines:",
            *(f"  {cmd}: {count} times" for cmd, count in report.surfaced_lines()),
            "",
            "Common command sequences:",
            *(f"  {seq} ({count} times)" for seq, count in report.surfaced_sequences()),
        ]
        if report.directories:
            lines += ["", "Directory-specific patterns:"]
            lines += [f"  {cmd}: {count} times" for cmd, count in report.directories]
        log = self.analysis_log(at)
        write_atomic(log, "\n".join(lines) + "\n")
        return [frequent, sequences, log]

    def write_shortcuts(self, shortcuts: list[Shortcut], at: datetime) -> Path:
        path = self.patterns_dir / GENERATED_SHORTCUTS
        aliases = [s.render() for s in shortcuts if s.kind == "alias"]
        functions = [s.render() for s in shortcuts if s.kind == "function"]
        parts = [
            "# Generated shortcuts from command pattern analysis",
            f"# Created: {isoformat(at)}",
            "",
            *aliases,
        ]
        if functions:
            parts += ["", "# Function shortcuts for command sequences", *functions]
        if shortcuts:
            parts += ["", f'echo "🎯 Loaded {len(shortcuts)} intelligent shortcuts"']
        write_atomic(path, "\n".join(parts) + "\n")
        return path

    def write_suggestions(self, suggestions: list[Suggestion], at: datetime) -> Path:
        path = self.patterns_dir / WORKFLOW_SUGGESTIONS
        header = f"# Workflow automation suggestions\n# Generated: {isoformat(at)}\n\n"
        write_atomic(path, header + "\n".join(s.render() for s in suggestions))
        return path

    def write_model(self, model: TransitionModel, at: datetime) -> Path:
        path = self.models_dir / TRANSITIONS
        payload = {"generated": isoformat(at), **model.to_dict()}
        write_atomic(path, json.dumps(payload, indent=2, ensure_ascii=False) + "\n")
        return path
