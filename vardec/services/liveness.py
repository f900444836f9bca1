"""
Blank-line liveness: which variables are used on both sides of a gap.

This module is language-agnostic. It only sees the usage table and a scope
lookup callable supplied by a language adapter.
"""
import bisect
from dataclasses import dataclass, field
from typing import Callable, List, Optional

from vardec.config import DEFAULT_TAB_SIZE
from vardec.services.languages.base import ScopeRange, VariableUsage

ScopeLookup = Callable[[int], Optional[ScopeRange]]


@dataclass
class Document:
    lines: List[str]
    tab_size: int = DEFAULT_TAB_SIZE

    @classmethod
    def from_text(cls, text: str, tab_size: int = DEFAULT_TAB_SIZE) -> "Document":
        return cls(lines=[line.rstrip("\r") for line in text.split("\n")], tab_size=tab_size)

    @property
    def line_count(self) -> int:
        return len(self.lines)

    def is_blank(self, line: int) -> bool:
        return not self.lines[line].strip()

    def indentation(self, line: int) -> int:
        units = 0
        for ch in self.lines[line]:
            if ch == " ":
                units += 1
            elif ch == "\t":
                units += self.tab_size
            else:
                break
        return units


@dataclass
class LiveVariable:
    name: str
    # Uses left between the blank line and the end of its scope
    remaining_uses: int


@dataclass
class DisplayDecision:
    line: int
    variables: List[LiveVariable] = field(default_factory=list)
    indent: int = 0

    @property
    def names(self) -> List[str]:
        return [v.name for v in self.variables]


def straddles(usage: VariableUsage, line: int, scope: ScopeRange) -> bool:
    """True when `usage` is used in [scope.start, line] and in (line, scope.end]."""
    return _uses_before(usage, line, scope) > 0 and _uses_after(usage, line, scope) > 0


def _uses_before(usage: VariableUsage, line: int, scope: ScopeRange) -> int:
    lines = usage.used_at
    return bisect.bisect_right(lines, line) - bisect.bisect_left(lines, scope.start_line)


def _uses_after(usage: VariableUsage, line: int, scope: ScopeRange) -> int:
    lines = usage.used_at
    return bisect.bisect_right(lines, scope.end_line) - bisect.bisect_right(lines, line)


def is_anchor_line(document: Document, line: int) -> bool:
    """A blank line directly above content; one per run of blank lines."""
    return (
        line + 1 < document.line_count
        and document.is_blank(line)
        and not document.is_blank(line + 1)
    )


def compute_decisions(
    document: Document,
    usages: List[VariableUsage],
    scope_lookup: ScopeLookup,
) -> List[DisplayDecision]:
    decisions: List[DisplayDecision] = []

    for line in range(document.line_count - 1):
        if not is_anchor_line(document, line):
            continue

        scope = scope_lookup(line)
        if scope is None:
            continue

        live: List[LiveVariable] = []
        seen = set()
        for usage in usages:
            if usage.name in seen:
                continue
            if _uses_before(usage, line, scope) == 0:
                continue
            remaining = _uses_after(usage, line, scope)
            if remaining == 0:
                continue
            # Shadowed names straddling the same gap are shown once.
            seen.add(usage.name)
            live.append(LiveVariable(name=usage.name, remaining_uses=remaining))

        if live:
            decisions.append(
                DisplayDecision(
                    line=line,
                    variables=live,
                    indent=document.indentation(line + 1),
                )
            )

    return decisions
