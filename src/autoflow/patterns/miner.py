"""Frequency and bigram mining over shell history.

Mining is stateless: every call recomputes from the supplied lines, and two
calls over identical input with identical thresholds return equal reports.
Ties are broken by key so ordering never depends on hash or file order.

Tables produced::

    commands       first token of every line        ("git", 4)
    command_lines  whole command lines              ("git status", 3)
    sequences      adjacent pairs, recent window    ("git add → git commit", 3)
    directories    first tokens of navigation lines (verbose only)
"""

from __future__ import annotations

import re
from collections import Counter, defaultdict
from collections.abc import Iterable, Sequence
from dataclasses import dataclass, field
from typing import Any

from autoflow.core.logging import get_logger

logger = get_logger(__name__)

ARROW = " → "
SEQUENCE_WINDOW = 1000
DIRECTORY_WINDOW = 200
DIRECTORY_TOP = 5
_NAVIGATION_RE = re.compile(r"(cd |ls |find |git )")

Count = tuple[str, int]


def _ranked(counter: Counter[str], limit: int | None) -> list[Count]:
    ranked = sorted(counter.items(), key=lambda kv: (-kv[1], kv[0]))
    return ranked if limit is None else ranked[:limit]


def first_token(line: str) -> str:
    parts = line.split(maxsplit=1)
    return parts[0] if parts else ""


@dataclass
class MiningReport:
    """Ranked tables from one mining pass.

    ``min_frequency`` does not truncate the tables; it only decides which
    entries the ``surfaced_*`` views report as actionable.
    """

    commands: list[Count] = field(default_factory=list)
    command_lines: list[Count] = field(default_factory=list)
    sequences: list[Count] = field(default_factory=list)
    directories: list[Count] = field(default_factory=list)
    top_n: int = 10
    min_frequency: int = 3
    line_count: int = 0

    def _surfaced(self, table: list[Count]) -> list[Count]:
        return [(key, count) for key, count in table if count >= self.min_frequency]

    def surfaced_commands(self) -> list[Count]:
        return self._surfaced(self.commands)

    def surfaced_lines(self) -> list[Count]:
        return self._surfaced(self.command_lines)

    def surfaced_sequences(self) -> list[Count]:
        return self._surfaced(self.sequences)

    def to_dict(self) -> dict[str, Any]:
        def rows(table: list[Count]) -> list[dict[str, Any]]:
            return [{"pattern": key, "count": count} for key, count in table]

        data: dict[str, Any] = {
            "line_count": self.line_count,
            "top_n": self.top_n,
            "min_frequency": self.min_frequency,
            "commands": rows(self.commands),
            "command_lines": rows(self.command_lines),
            "sequences": rows(self.sequences),
        }
        if self.directories:
            data["directories"] = rows(self.directories)
        return data


def mine(
    history: Sequence[str],
    top_n: int = 10,
    min_frequency: int = 3,
    verbose: bool = False,
    *,
    sequence_window: int = SEQUENCE_WINDOW,
) -> MiningReport:
    """Count commands and adjacent command pairs in *history*."""
    lines = [line.strip() for line in history if line.strip() and not line.lstrip().startswith("#")]

    commands = Counter(first_token(line) for line in lines)
    whole = Counter(lines)

    recent = lines[-sequence_window:] if sequence_window > 0 else lines
    pairs = Counter(f"{prev}{ARROW}{cur}" for prev, cur in zip(recent, recent[1:]))

    report = MiningReport(
        commands=_ranked(commands, top_n),
        command_lines=_ranked(whole, top_n),
        sequences=_ranked(pairs, top_n),
        top_n=top_n,
        min_frequency=min_frequency,
        line_count=len(lines),
    )

    if verbose:
        navigation = [line for line in lines if _NAVIGATION_RE.search(line)][-DIRECTORY_WINDOW:]
        report.directories = _ranked(Counter(first_token(l) for l in navigation), DIRECTORY_TOP)

    logger.debug(
        "patterns.mined",
        lines=len(lines),
        commands=len(commands),
        sequences=len(pairs),
    )
    return report


def split_sequence(sequence: str) -> tuple[str, str]:
    before, _, after = sequence.partition(ARROW)
    return before, after


@dataclass
class TransitionModel:
    """Next-command table: for each command line, its observed successors."""

    transitions: dict[str, list[dict[str, Any]]] = field(default_factory=dict)
    source_lines: int = 0

    def predict(self, command: str, limit: int = 3) -> list[str]:
        return [entry["command"] for entry in self.transitions.get(command, [])[:limit]]

    def to_dict(self) -> dict[str, Any]:
        return {"source_lines": self.source_lines, "transitions": self.transitions}


def build_model(history: Iterable[str], *, window: int = SEQUENCE_WINDOW) -> TransitionModel:
    """Successor counts and probabilities over the recent window."""
    lines = [line.strip() for line in history if line.strip() and not line.lstrip().startswith("#")]
    recent = lines[-window:] if window > 0 else lines

    successors: dict[str, Counter[str]] = defaultdict(Counter)
    for prev, cur in zip(recent, recent[1:]):
        successors[prev][cur] += 1

    transitions: dict[str, list[dict[str, Any]]] = {}
    for command in sorted(successors):
        counter = successors[command]
        total = sum(counter.values())
        transitions[command] = [
            {"command": nxt, "count": count, "probability": round(count / total, 4)}
            for nxt, count in _ranked(counter, None)
        ]
    return TransitionModel(transitions=transitions, source_lines=len(recent))
