import bisect
import logging
import re
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Set, Tuple

from vardec.services.languages.base import AstHandle, LanguageAdapter, ScopeRange, VariableUsage

logger = logging.getLogger(__name__)

GO_KEYWORDS: Set[str] = {
    'break', 'case', 'chan', 'const', 'continue', 'default', 'defer', 'else',
    'fallthrough', 'for', 'func', 'go', 'goto', 'if', 'import', 'interface',
    'map', 'package', 'range', 'return', 'select', 'struct', 'switch', 'type',
    'var',
}

_NAME_LIST = r'[A-Za-z_]\w*(?:\s*,\s*[A-Za-z_]\w*)*'

_IDENT_RE = re.compile(r'[A-Za-z_]\w*')
_FUNC_RE = re.compile(r'\bfunc\b')
_VAR_RE = re.compile(r'\b(?:var|const)\s+(' + _NAME_LIST + r')')
_GROUP_OPEN_RE = re.compile(r'^\s*(?:var|const)\s*\(\s*$')
_GROUP_ENTRY_RE = re.compile(r'^\s*(' + _NAME_LIST + r')')
_SHORT_DECL_RE = re.compile(r'\b(' + _NAME_LIST + r')\s*:=')
_REFERENCE_RE = re.compile(r'(?<![\w.])[A-Za-z_]\w*')
_KEY_SUFFIX_RE = re.compile(r'\s*:(?!=)')
_KEY_PREFIX_RE = re.compile(r'(?:^|[{,])\s*$')
_BLOCK_LEADER_RE = re.compile(r'^\s*(?:\}\s*)?(?:if|else|for|switch|select)\b|^\s*\{')
_METHOD_NAME_RE = re.compile(r'^\s*[A-Za-z_]\w*\s*(?:\[[^\]]*\])?\s*$')
_NAMED_PIECE_RE = re.compile(r'^\s*([A-Za-z_]\w*)\s+\S')
_BARE_PIECE_RE = re.compile(r'^\s*([A-Za-z_]\w*)\s*$')


@dataclass
class _Span:
    start_line: int
    end_line: int
    kind: str  # 'function' | 'block' | 'literal'

    @property
    def size(self) -> int:
        return self.end_line - self.start_line

    def contains(self, line: int) -> bool:
        return self.start_line <= line <= self.end_line


@dataclass
class _Binding:
    name: str
    line: int
    col: int
    scope: Optional[_Span] = None


@dataclass
class GoAst(AstHandle):
    # Source lines with comments and literals blanked out.
    code_lines: List[str]
    line_count: int
    spans: List[_Span] = field(default_factory=list)
    # Parameters, receivers and named results, keyed by line.
    parameters: Dict[int, List[_Binding]] = field(default_factory=dict)
    # Open `(`/`{` count at the start of each line.
    line_depths: List[int] = field(default_factory=list)
    path: str = ""


def _mask_comments_and_strings(text: str) -> str:
    """
    Blank out comments and string/rune literals, keeping every newline.

    Offsets and line numbers of the result match the input exactly.
    """
    result: List[str] = []
    i = 0
    n = len(text)
    in_line_comment = False
    in_block_comment = False
    string_quote = ""

    while i < n:
        ch = text[i]
        nxt = text[i + 1] if i + 1 < n else ""

        if ch == "\n":
            # Interpreted strings and runes cannot span lines; a stray quote ends here.
            in_line_comment = False
            if string_quote in ('"', "'"):
                string_quote = ""
            result.append(ch)
            i += 1
            continue

        if in_line_comment:
            result.append(" ")
            i += 1
            continue

        if in_block_comment:
            if ch == "*" and nxt == "/":
                in_block_comment = False
                result.append("  ")
                i += 2
            else:
                result.append(" ")
                i += 1
            continue

        if string_quote:
            if ch == "\\" and string_quote != "`" and nxt and nxt != "\n":
                result.append("  ")
                i += 2
                continue
            if ch == string_quote:
                string_quote = ""
            result.append(" ")
            i += 1
            continue

        if ch in ('"', "'", "`"):
            string_quote = ch
            result.append(" ")
            i += 1
            continue

        if ch == "/" and nxt == "/":
            in_line_comment = True
            result.append("  ")
            i += 2
            continue

        if ch == "/" and nxt == "*":
            in_block_comment = True
            result.append("  ")
            i += 2
            continue

        result.append(ch)
        i += 1

    return "".join(result)


class _GoSourceIndex:
    """Offset bookkeeping and brace matching over masked source."""

    def __init__(self, code: str):
        self.code = code
        self.line_starts = [0] + [m.end() for m in re.finditer(r'\n', code)]
        # open brace offset -> close brace offset
        self.brace_pairs: Dict[int, int] = {}

    def line_of(self, offset: int) -> int:
        return bisect.bisect_right(self.line_starts, offset) - 1

    def match_braces(self) -> bool:
        stack: List[int] = []
        for i, ch in enumerate(self.code):
            if ch == "{":
                stack.append(i)
            elif ch == "}":
                if not stack:
                    return False
                self.brace_pairs[stack.pop()] = i
        return not stack

    def paren_groups_after(self, start: int) -> Tuple[Optional[int], List[Tuple[int, int]]]:
        """
        Scan a func signature from `start`.

        Returns the offset of the body's opening brace (None for function
        types) and the top-level `( ... )` groups seen before it.
        """
        code = self.code
        depth = 0
        group_start = -1
        groups: List[Tuple[int, int]] = []
        i = start
        while i < len(code):
            ch = code[i]
            if ch in "([":
                if ch == "(" and depth == 0:
                    group_start = i
                depth += 1
            elif ch in ")]":
                depth -= 1
                if depth < 0:
                    return None, groups
                if ch == ")" and depth == 0:
                    groups.append((group_start, i))
            elif ch == "{" and depth == 0:
                before = code[start:i].rstrip()
                if before.endswith("struct") or before.endswith("interface"):
                    # Inline struct/interface type in the signature; jump past it.
                    i = self.brace_pairs.get(i, i) + 1
                    continue
                return i, groups
            elif ch in "\n};" and depth == 0:
                return None, groups
            i += 1
        return None, groups


class GoAdapter(LanguageAdapter):
    """
    Line-oriented Go support.

    There is no grammar here: comments and literals are masked out, brace
    pairs give the block structure, and declarations are matched per line.
    """

    language_ids = frozenset({'go'})
    extensions = frozenset({'.go'})

    def get_ast(self, text: str, path: str = "", language_id: str = "") -> Optional[GoAst]:
        if not isinstance(text, str):
            logger.warning("Cannot read document text for %s", path or "<unsaved>")
            return None

        code = _mask_comments_and_strings(text)
        index = _GoSourceIndex(code)
        if not index.match_braces():
            logger.debug("Unbalanced braces in %s; skipping analysis", path or "<unsaved>")
            return None

        code_lines = code.split("\n")
        spans_by_open: Dict[int, _Span] = {}
        for open_offset, close_offset in index.brace_pairs.items():
            open_line = index.line_of(open_offset)
            kind = 'block' if _BLOCK_LEADER_RE.match(code_lines[open_line]) else 'literal'
            spans_by_open[open_offset] = _Span(
                start_line=open_line,
                end_line=index.line_of(close_offset),
                kind=kind,
            )

        parameters: Dict[int, List[_Binding]] = {}
        for match in _FUNC_RE.finditer(code):
            body_offset, groups = index.paren_groups_after(match.end())
            if body_offset is None:
                continue
            span = spans_by_open[body_offset]
            span.kind = 'function'
            span.start_line = index.line_of(match.start())

            for binding in self._signature_bindings(index, match.end(), groups):
                binding.scope = span
                parameters.setdefault(binding.line, []).append(binding)

        spans = sorted(spans_by_open.values(), key=lambda s: (s.start_line, s.end_line))
        return GoAst(
            code_lines=code_lines,
            line_count=len(code_lines),
            spans=spans,
            parameters=parameters,
            line_depths=self._line_depths(code_lines),
            path=path,
        )

    def _signature_bindings(
        self, index: _GoSourceIndex, func_end: int, groups: List[Tuple[int, int]]
    ) -> List[_Binding]:
        if not groups:
            return []
        code = index.code

        def between(a: int, b: int) -> str:
            return code[a:b]

        param_groups: List[Tuple[int, int]] = []
        prefix = between(func_end, groups[0][0])
        if prefix.strip():
            # func name(params) (results)
            param_groups.append(groups[0])
            rest = groups[1:]
        elif len(groups) > 1 and _METHOD_NAME_RE.match(between(groups[0][1] + 1, groups[1][0])):
            # func (recv) Name(params) (results)
            param_groups.extend(groups[:2])
            rest = groups[2:]
        else:
            # func(params) (results)
            param_groups.append(groups[0])
            rest = groups[1:]

        # Named results directly follow the parameter list.
        if rest and not between(param_groups[-1][1] + 1, rest[0][0]).strip():
            param_groups.append(rest[0])

        bindings: List[_Binding] = []
        for open_offset, close_offset in param_groups:
            bindings.extend(self._group_bindings(index, open_offset + 1, close_offset))
        return bindings

    def _group_bindings(self, index: _GoSourceIndex, start: int, end: int) -> List[_Binding]:
        code = index.code
        pieces: List[Tuple[int, str]] = []
        depth = 0
        piece_start = start
        for i in range(start, end):
            ch = code[i]
            if ch in "([{":
                depth += 1
            elif ch in ")]}":
                depth -= 1
            elif ch == "," and depth == 0:
                pieces.append((piece_start, code[piece_start:i]))
                piece_start = i + 1
        pieces.append((piece_start, code[piece_start:end]))

        named = []
        bare = []
        for offset, piece in pieces:
            m = _NAMED_PIECE_RE.match(piece)
            if m and m.group(1) not in GO_KEYWORDS:
                named.append(offset + m.start(1))
                continue
            m = _BARE_PIECE_RE.match(piece)
            if m and m.group(1) not in GO_KEYWORDS:
                bare.append(offset + m.start(1))

        # `(int, string)` names nothing; `(a, b int)` names both.
        if not named:
            return []

        bindings = []
        for offset in sorted(named + bare):
            m = _IDENT_RE.match(code, offset)
            line = index.line_of(offset)
            bindings.append(_Binding(name=m.group(0), line=line, col=offset - index.line_starts[line]))
        return [b for b in bindings if b.name != '_']

    def collect_variable_usage(self, ast: GoAst) -> List[VariableUsage]:
        usages: List[VariableUsage] = []
        symbols: Dict[str, List[Tuple[VariableUsage, Optional[_Span]]]] = {}
        scoped_spans = [s for s in ast.spans if s.kind != 'literal']
        group_depth: Optional[int] = None

        for line_no, line in enumerate(ast.code_lines):
            bindings = list(ast.parameters.get(line_no, []))

            # var ( ... ) / const ( ... ) groups: one entry per line
            if group_depth is not None:
                depth = ast.line_depths[line_no]
                if depth == group_depth and line.strip().startswith(")"):
                    group_depth = None
                elif depth == group_depth:
                    m = _GROUP_ENTRY_RE.match(line)
                    if m:
                        bindings.extend(self._name_list_bindings(line_no, m.group(1), m.start(1)))
            elif _GROUP_OPEN_RE.match(line):
                group_depth = ast.line_depths[line_no] + 1

            for m in _VAR_RE.finditer(line):
                bindings.extend(self._name_list_bindings(line_no, m.group(1), m.start(1)))
            for m in _SHORT_DECL_RE.finditer(line):
                bindings.extend(self._name_list_bindings(line_no, m.group(1), m.start(1)))

            declaration_sites: Set[int] = set()
            for binding in bindings:
                declaration_sites.add(binding.col)
                scope = binding.scope
                if scope is None:
                    scope = self._declaration_scope(scoped_spans, line_no, line, binding.col)

                existing = self._find_same_scope(symbols.get(binding.name, []), scope)
                if existing is not None:
                    # `x, err := ...` after `err` already exists in this scope
                    if line_no > existing.declared_at:
                        existing.add_use(line_no)
                    continue

                usage = VariableUsage(name=binding.name, declared_at=line_no)
                usages.append(usage)
                symbols.setdefault(binding.name, []).append((usage, scope))

            is_case_line = line.lstrip().startswith("case ")
            for m in _REFERENCE_RE.finditer(line):
                name = m.group(0)
                if m.start() in declaration_sites or name not in symbols:
                    continue
                if not is_case_line and self._is_composite_key(line, m):
                    continue
                usage = self._resolve(symbols[name], line_no)
                if usage is not None and line_no > usage.declared_at:
                    usage.add_use(line_no)

        return usages

    def _name_list_bindings(self, line_no: int, names: str, offset: int) -> List[_Binding]:
        bindings = []
        for m in _IDENT_RE.finditer(names):
            name = m.group(0)
            if name == '_' or name in GO_KEYWORDS:
                continue
            bindings.append(_Binding(name=name, line=line_no, col=offset + m.start()))
        return bindings

    def _line_depths(self, code_lines: List[str]) -> List[int]:
        depths = []
        depth = 0
        for line in code_lines:
            depths.append(depth)
            depth += line.count("(") + line.count("{") - line.count(")") - line.count("}")
        return depths

    def _declaration_scope(self, spans: List[_Span], line_no: int, line: str, col: int) -> Optional[_Span]:
        best: Optional[_Span] = None
        for span in spans:
            if not span.contains(line_no) or span.end_line == line_no:
                continue
            # `f := func() {` binds f outside the literal it names.
            if span.kind == 'function' and span.start_line == line_no:
                func_match = _FUNC_RE.search(line)
                if func_match and col < func_match.start():
                    continue
            if best is None or span.size <= best.size:
                best = span
        return best

    def _find_same_scope(
        self, candidates: List[Tuple[VariableUsage, Optional[_Span]]], scope: Optional[_Span]
    ) -> Optional[VariableUsage]:
        for usage, candidate_scope in candidates:
            if candidate_scope is scope:
                return usage
        return None

    def _resolve(
        self, candidates: List[Tuple[VariableUsage, Optional[_Span]]], line_no: int
    ) -> Optional[VariableUsage]:
        best: Optional[VariableUsage] = None
        best_size: Optional[int] = None
        for usage, scope in candidates:
            if usage.declared_at > line_no:
                continue
            if scope is not None and not scope.contains(line_no):
                continue
            size = scope.size if scope is not None else float('inf')
            if best is None or size <= best_size:
                best = usage
                best_size = size
        return best

    def _is_composite_key(self, line: str, match: re.Match) -> bool:
        # `Name: value` in a composite literal, or a label
        if not _KEY_SUFFIX_RE.match(line, match.end()):
            return False
        return bool(_KEY_PREFIX_RE.search(line[:match.start()]))

    def get_scope_range_for_line(self, ast: GoAst, target_line: int) -> Optional[ScopeRange]:
        document_scope = self._document_scope(ast, target_line)
        if document_scope is None:
            return None

        function_span: Optional[_Span] = None
        block_span: Optional[_Span] = None
        for span in ast.spans:
            if not span.contains(target_line):
                continue
            if span.kind == 'function':
                if function_span is None or span.size <= function_span.size:
                    function_span = span
            elif span.kind == 'block':
                if block_span is None or span.size <= block_span.size:
                    block_span = span

        best = function_span or block_span
        if best is None:
            return document_scope
        return ScopeRange(best.start_line, best.end_line)
