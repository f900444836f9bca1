import logging
from dataclasses import dataclass
from pathlib import PurePath
from typing import Dict, List, Optional, Set

import tree_sitter_typescript as tstypescript
from tree_sitter import Language, Node, Parser, Tree

from vardec.services.languages.base import AstHandle, LanguageAdapter, ScopeRange, VariableUsage

# Load TypeScript and TSX grammars
TYPESCRIPT_LANGUAGE = Language(tstypescript.language_typescript())
TSX_LANGUAGE = Language(tstypescript.language_tsx())

logger = logging.getLogger(__name__)

FUNCTION_NODE_TYPES: Set[str] = {
    'function_declaration',
    'function_expression',
    'function',
    'arrow_function',
    'method_definition',
    'generator_function',
    'generator_function_declaration',
}

# Nodes that own a symbol table during collection.
SCOPE_NODE_TYPES: Set[str] = FUNCTION_NODE_TYPES | {
    'statement_block',
    'for_statement',
    'for_in_statement',
    'catch_clause',
    'class_body',
}

# Regions used for scope lookup when no function contains the line.
BLOCK_NODE_TYPES: Set[str] = {
    'statement_block',
    'if_statement',
    'for_statement',
    'for_in_statement',
    'while_statement',
    'do_statement',
    'switch_statement',
    'try_statement',
    'class_declaration',
    'class',
}

PARAMETER_NODE_TYPES: Set[str] = {'required_parameter', 'optional_parameter', 'rest_parameter'}

REFERENCE_NODE_TYPES: Set[str] = {'identifier', 'shorthand_property_identifier'}

# The TSX grammar also covers plain JavaScript, which may contain JSX under any of these.
TSX_LANGUAGE_IDS: Set[str] = {'typescriptreact', 'javascript', 'javascriptreact'}
TSX_EXTENSIONS: Set[str] = {'.tsx', '.jsx', '.js', '.mjs', '.cjs'}


@dataclass
class TypeScriptAst(AstHandle):
    tree: Tree
    line_count: int
    path: str = ""


class _UsageCollector:
    """
    Single-use walker that builds the usage table for one tree.

    Each scope-introducing node pushes a `{name: VariableUsage}` map; a
    reference resolves against the innermost map that knows the name.
    """

    def __init__(self):
        self.usages: List[VariableUsage] = []
        self.scope_stack: List[Dict[str, VariableUsage]] = []
        self.declaration_sites: Set[int] = set()

    def collect(self, root: Node) -> List[VariableUsage]:
        self.scope_stack.append({})
        self._traverse(root)
        self.scope_stack.pop()
        return self.usages

    def _traverse(self, node: Node):
        scope_created = node.type in SCOPE_NODE_TYPES
        if scope_created:
            self.scope_stack.append({})

        self._handle_definitions(node)
        self._handle_usages(node)

        for child in node.children:
            self._traverse(child)

        if scope_created:
            self.scope_stack.pop()

    def _handle_definitions(self, node: Node):
        # Variable Declarations (var, let, const), including destructuring
        if node.type == 'variable_declarator':
            name_node = node.child_by_field_name('name')
            if name_node is not None:
                for ident in self._binding_identifiers(name_node):
                    self._add_definition(ident)

        # Function Parameters: the pattern only, never the default value
        elif node.type in PARAMETER_NODE_TYPES:
            pattern = node.child_by_field_name('pattern')
            if pattern is not None:
                for ident in self._binding_identifiers(pattern):
                    self._add_definition(ident)

        # `x => ...` keeps its lone parameter directly on the arrow function
        elif node.type == 'arrow_function':
            param = node.child_by_field_name('parameter')
            if param is not None and param.type == 'identifier':
                self._add_definition(param)

        elif node.type == 'catch_clause':
            param = node.child_by_field_name('parameter')
            if param is not None:
                for ident in self._binding_identifiers(param):
                    self._add_definition(ident)

        # for (const x of xs) / for (let k in obj)
        elif node.type == 'for_in_statement':
            if self._is_declaring_loop(node):
                left = node.child_by_field_name('left')
                if left is not None:
                    for ident in self._binding_identifiers(left):
                        self._add_definition(ident)

    def _handle_usages(self, node: Node):
        if node.type not in REFERENCE_NODE_TYPES:
            return
        if node.id in self.declaration_sites:
            return
        if self._is_intrinsic_jsx_tag(node):
            return

        name = node.text.decode('utf-8', errors='ignore')
        line = node.start_point.row

        for scope in reversed(self.scope_stack):
            usage = scope.get(name)
            if usage is None:
                continue
            # Only the nearest declaration owns the reference.
            if line > usage.declared_at:
                usage.add_use(line)
            return

    def _add_definition(self, name_node: Node):
        name = name_node.text.decode('utf-8', errors='ignore')
        if not name:
            return
        self.declaration_sites.add(name_node.id)

        line = name_node.start_point.row
        scope = self.scope_stack[-1]
        existing = scope.get(name)
        if existing is not None:
            # Redeclaration in the same scope (`var x` twice) touches the old symbol.
            if line > existing.declared_at:
                existing.add_use(line)
            return

        usage = VariableUsage(name=name, declared_at=line)
        scope[name] = usage
        self.usages.append(usage)

    def _binding_identifiers(self, node: Node) -> List[Node]:
        idents: List[Node] = []

        def walk(x: Node) -> None:
            if x.type in {'identifier', 'shorthand_property_identifier_pattern'}:
                idents.append(x)
                return

            # For `{ key: value }` patterns, only the value side introduces bindings.
            if x.type == 'pair_pattern':
                value = x.child_by_field_name('value')
                if value is not None:
                    walk(value)
                return

            # `{ a = 1 }` / `[a = 1]`: the default is an expression, not a binding.
            if x.type in {'object_assignment_pattern', 'assignment_pattern'}:
                left = x.child_by_field_name('left')
                if left is not None:
                    walk(left)
                return

            if x.type in {'object_pattern', 'array_pattern', 'rest_pattern'}:
                for c in x.children:
                    walk(c)

        walk(node)
        return idents

    def _is_declaring_loop(self, node: Node) -> bool:
        kind = node.child_by_field_name('kind')
        if kind is not None:
            return True
        return any(c.type in {'const', 'let', 'var'} for c in node.children)

    def _is_intrinsic_jsx_tag(self, node: Node) -> bool:
        parent = node.parent
        if parent is None:
            return False
        if parent.type not in {'jsx_opening_element', 'jsx_closing_element', 'jsx_self_closing_element'}:
            return False
        if parent.child_by_field_name('name') != node:
            return False
        return node.text[:1].islower()


class TypeScriptAdapter(LanguageAdapter):
    language_ids = frozenset({
        'typescript',
        'typescriptreact',
        'javascript',
        'javascriptreact',
    })
    extensions = frozenset({'.ts', '.tsx', '.mts', '.cts', '.js', '.jsx', '.mjs', '.cjs'})

    def get_ast(self, text: str, path: str = "", language_id: str = "") -> Optional[TypeScriptAst]:
        if not isinstance(text, str):
            logger.warning("Cannot read document text for %s", path or "<unsaved>")
            return None

        parser = Parser(TSX_LANGUAGE if self._uses_tsx_grammar(path, language_id) else TYPESCRIPT_LANGUAGE)
        tree = parser.parse(text.encode('utf-8'))

        if tree.root_node.has_error:
            logger.debug("Parse errors in %s; skipping analysis", path or "<unsaved>")
            return None

        return TypeScriptAst(tree=tree, line_count=len(text.split('\n')), path=path)

    def _uses_tsx_grammar(self, path: str, language_id: str) -> bool:
        # The editor's language id wins; the extension decides for bare paths.
        if language_id:
            return language_id in TSX_LANGUAGE_IDS
        return PurePath(path).suffix.lower() in TSX_EXTENSIONS

    def collect_variable_usage(self, ast: TypeScriptAst) -> List[VariableUsage]:
        return _UsageCollector().collect(ast.tree.root_node)

    def get_scope_range_for_line(self, ast: TypeScriptAst, target_line: int) -> Optional[ScopeRange]:
        document_scope = self._document_scope(ast, target_line)
        if document_scope is None:
            return None

        function_node: Optional[Node] = None
        block_node: Optional[Node] = None

        def span(n: Node) -> int:
            return n.end_point.row - n.start_point.row

        def visit(n: Node) -> None:
            nonlocal function_node, block_node
            if n.start_point.row > target_line or n.end_point.row < target_line:
                return

            # Later (deeper) nodes win ties, so nested regions on one line still resolve inward.
            if n.type in FUNCTION_NODE_TYPES:
                if function_node is None or span(n) <= span(function_node):
                    function_node = n
            elif n.type in BLOCK_NODE_TYPES:
                if block_node is None or span(n) <= span(block_node):
                    block_node = n

            for child in n.children:
                visit(child)

        visit(ast.tree.root_node)

        best = function_node or block_node
        if best is None:
            return document_scope
        return ScopeRange(best.start_point.row, best.end_point.row)
