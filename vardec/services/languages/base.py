from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import ClassVar, FrozenSet, List, Optional


@dataclass
class VariableUsage:
    name: str
    # 0-based line of the declaration (parameter, binding, short declaration)
    declared_at: int
    # 0-based lines where the symbol is referenced, seeded with `declared_at`
    used_at: List[int] = field(default_factory=list)

    def __post_init__(self):
        if not self.used_at:
            self.used_at = [self.declared_at]

    def add_use(self, line: int) -> None:
        if line not in self.used_at:
            self.used_at.append(line)


@dataclass(frozen=True)
class ScopeRange:
    # Both bounds inclusive and 0-based.
    start_line: int
    end_line: int

    def contains(self, line: int) -> bool:
        return self.start_line <= line <= self.end_line


class AstHandle:
    """
    Marker base for adapter-specific parse results.

    The liveness engine only passes these back to the adapter that produced
    them, so each adapter is free to keep whatever it needs inside.
    """

    line_count: int


class LanguageAdapter(ABC):
    """Capability a language must provide to get blank-line hints."""

    language_ids: ClassVar[FrozenSet[str]] = frozenset()
    extensions: ClassVar[FrozenSet[str]] = frozenset()

    @abstractmethod
    def get_ast(self, text: str, path: str = "", language_id: str = "") -> Optional[AstHandle]:
        """
        Parse a document.

        Returns None when the document cannot be analysed (unreadable text or
        a parse failure). Must not raise for malformed source.
        """

    @abstractmethod
    def collect_variable_usage(self, ast: AstHandle) -> List[VariableUsage]:
        """Return one record per declared symbol, in declaration order."""

    @abstractmethod
    def get_scope_range_for_line(self, ast: AstHandle, target_line: int) -> Optional[ScopeRange]:
        """
        Return the tightest enclosing scope for `target_line`.

        Function-like regions win over block-like ones; with neither, the
        whole document is the scope. None only for out-of-range lines.
        """

    def _document_scope(self, ast: AstHandle, target_line: int) -> Optional[ScopeRange]:
        if target_line < 0 or target_line >= ast.line_count:
            return None
        return ScopeRange(0, ast.line_count - 1)
