"""Lookup tables that turn mined patterns into shortcuts and suggestions.

Both derivations are pure functions of a :class:`MiningReport` and their
thresholds. New behavior is added by extending a table, not by branching.
"""

from __future__ import annotations

import re
from dataclasses import dataclass

from autoflow.patterns.miner import MiningReport

SHORTCUT_THRESHOLD = 5
SEQUENCE_THRESHOLD = 3
SUGGESTION_THRESHOLD = 3


@dataclass(frozen=True)
class Shortcut:
    """A shell alias or function to add to ``generated_shortcuts.sh``."""

    name: str
    kind: str  # "alias" | "function"
    body: str
    description: str
    source: str
    count: int

    def render(self) -> str:
        if self.kind == "alias":
            return f"alias {self.name}='{self.body}'"
        return f"\n# {self.description}\n{self.name}() {{\n    {self.body}\n}}"


@dataclass(frozen=True)
class Suggestion:
    """A workflow worth creating, backed by an observed sequence."""

    workflow: str
    pattern: str
    count: int
    commands: str

    @property
    def usage(self) -> str:
        return f"autoflow create {self.workflow}"

    def render(self) -> str:
        return (
            f"Suggested workflow: '{self.workflow}'\n"
            f"  Pattern: {self.pattern} ({self.count} occurrences)\n"
            f"  Commands: {self.commands}\n"
            f"  Usage: {self.usage}\n"
        )


# command (exact or glob-ish prefix) -> alias name
ALIAS_TABLE: tuple[tuple[re.Pattern[str], str], ...] = (
    (re.compile(r"^git$"), "g"),
    (re.compile(r"^docker$"), "d"),
    (re.compile(r"^kubectl$"), "k"),
    (re.compile(r"^python\S*$"), "py"),
)

# sequence shape -> (function name, body, description)
SEQUENCE_TABLE: tuple[tuple[re.Pattern[str], str, str, str], ...] = (
    (re.compile(r"git add.* → git commit"), "gac", 'git add "$@" && git commit', "Quick git add and commit"),
    (re.compile(r"^cd\b.* → ls\b"), "cdl", 'cd "$@" && ls -la', "Change directory and list contents"),
)

# sequence shape -> (workflow name, command template)
SUGGESTION_TABLE: tuple[tuple[re.Pattern[str], str, str], ...] = (
    (
        re.compile(r"git add.*git commit|git commit.*git push"),
        "deploy-sequence",
        'git add . && git commit -m "$1" && git push',
    ),
    (
        re.compile(r"make.*test|npm run.*test"),
        "build-and-test",
        "build → run tests → report results",
    ),
    (
        re.compile(r"docker build.*docker run"),
        "docker-deploy",
        "docker build → docker run with parameters",
    ),
)


def derive_shortcuts(
    report: MiningReport,
    threshold: int = SHORTCUT_THRESHOLD,
    sequence_threshold: int = SEQUENCE_THRESHOLD,
) -> list[Shortcut]:
    """Aliases for frequent programs, then functions for frequent pairs."""
    shortcuts: list[Shortcut] = []
    seen: set[str] = set()

    for command, count in report.commands:
        if count < threshold:
            continue
        for pattern, alias in ALIAS_TABLE:
            if alias not in seen and pattern.match(command):
                seen.add(alias)
                shortcuts.append(
                    Shortcut(alias, "alias", command, f"{alias} → {command}", command, count)
                )
                break

    for sequence, count in report.sequences:
        if count < sequence_threshold:
            continue
        for pattern, name, body, description in SEQUENCE_TABLE:
            if name not in seen and pattern.search(sequence):
                seen.add(name)
                shortcuts.append(Shortcut(name, "function", body, description, sequence, count))
                break

    return shortcuts


def derive_suggestions(report: MiningReport, threshold: int = SUGGESTION_THRESHOLD) -> list[Suggestion]:
    """At most one suggestion per rule, attached to its strongest sequence."""
    suggestions: list[Suggestion] = []
    for pattern, workflow, commands in SUGGESTION_TABLE:
        for sequence, count in report.sequences:
            if count >= threshold and pattern.search(sequence):
                suggestions.append(Suggestion(workflow, sequence, count, commands))
                break
    return suggestions
