"""Marker (tombstone call) extraction from parsed syntax trees."""
import ast
from dataclasses import dataclass
from typing import Iterable, List, Optional, Tuple

from tree_sitter import Node, Tree

from ..identity import compute_marker_id, stringify_argument

# A scope entry is (name, kind) where kind is 'class' or 'function'
Scope = Tuple[Tuple[str, str], ...]


@dataclass(frozen=True)
class Marker:
    """A tombstone planted in source, as seen at extraction time."""
    id: str
    function_name: str
    file_path: str
    line_number: int
    enclosing_function: str
    metadata: Tuple[str, ...]

    def to_dict(self) -> dict:
        return {
            'id': self.id,
            'function_name': self.function_name,
            'file_path': self.file_path,
            'line_number': self.line_number,
            'enclosing_function': self.enclosing_function,
            'metadata': list(self.metadata),
        }


class MarkerExtractor:
    """Find calls to the marking function(s) and build Marker records."""

    CALL_TYPES = {
        'python': 'call',
        'javascript': 'call_expression',
        'typescript': 'call_expression',
        'tsx': 'call_expression',
    }

    # Node types that open a new named scope, per language
    CLASS_TYPES = {
        'python': {'class_definition'},
        'javascript': {'class_declaration', 'class'},
        'typescript': {'class_declaration', 'abstract_class_declaration', 'class'},
        'tsx': {'class_declaration', 'abstract_class_declaration', 'class'},
    }
    _JS_FUNCTIONS = {
        'function_declaration', 'generator_function_declaration', 'function_expression',
        'function', 'generator_function', 'arrow_function', 'method_definition',
    }
    FUNCTION_TYPES = {
        'python': {'function_definition'},
        'javascript': _JS_FUNCTIONS,
        'typescript': _JS_FUNCTIONS,
        'tsx': _JS_FUNCTIONS,
    }

    def __init__(self, language: str, function_names: Iterable[str] = ('tombstone',)):
        """Initialize extractor for given language.

        Args:
            language: One of 'python', 'javascript', 'typescript', 'tsx'
            function_names: Names of the marking function(s) to look for
        """
        if language not in self.CALL_TYPES:
            raise ValueError(f"Unsupported language: {language}")
        self.language = language
        self.function_names = frozenset(function_names)
        self.call_type = self.CALL_TYPES[language]
        self.class_types = self.CLASS_TYPES[language]
        self.function_types = self.FUNCTION_TYPES[language]

    def extract_markers(self, tree: Tree, source_code: bytes, file_path: str) -> List[Marker]:
        """Extract every marker call in tree, in source order.

        Args:
            tree: Parsed tree-sitter Tree
            source_code: Original source code bytes
            file_path: Root-relative POSIX path, part of the marker identity

        Returns:
            List of Marker objects
        """
        markers = []
        stack: List[Tuple[Node, Scope]] = [(tree.root_node, ())]
        while stack:
            node, scope = stack.pop()

            if node.type == self.call_type:
                marker = self._marker_from_call(node, source_code, file_path, scope)
                if marker:
                    markers.append(marker)

            child_scope = self._child_scope(node, source_code, scope)
            # Add children in reverse order to maintain left-to-right traversal
            stack.extend((child, child_scope) for child in reversed(node.children))

        return markers

    def _child_scope(self, node: Node, source_code: bytes, scope: Scope) -> Scope:
        if node.type in self.class_types:
            name = self._definition_name(node, source_code)
            return scope + ((name, 'class'),) if name else scope
        if node.type in self.function_types:
            name = self._definition_name(node, source_code)
            return scope + ((name, 'function'),) if name else scope
        return scope

    def _definition_name(self, node: Node, source_code: bytes) -> Optional[str]:
        """Name of a class/function node; JS anonymous functions borrow their binding's name."""
        name_node = node.child_by_field_name('name')
        if name_node is not None:
            return _text(name_node, source_code)

        parent = node.parent
        if parent is None:
            return None
        if parent.type == 'variable_declarator':
            binding = parent.child_by_field_name('name')
        elif parent.type == 'pair':
            binding = parent.child_by_field_name('key')
        elif parent.type in ('assignment_expression', 'public_field_definition', 'field_definition'):
            binding = parent.child_by_field_name('left') or parent.child_by_field_name('name') \
                or parent.child_by_field_name('property')
        else:
            binding = None
        if binding is None:
            return None
        return _text(binding, source_code).split('.')[-1]

    def _marker_from_call(self, node: Node, source_code: bytes, file_path: str,
                          scope: Scope) -> Optional[Marker]:
        callee = node.child_by_field_name('function')
        if callee is None:
            return None
        function_name = self._callee_name(callee, source_code)
        if function_name not in self.function_names:
            return None

        arguments_node = node.child_by_field_name('arguments')
        metadata = tuple(self._extract_arguments(arguments_node, source_code)) if arguments_node else ()
        enclosing = self._qualified_name(scope)
        return Marker(
            id=compute_marker_id(function_name, metadata, file_path, enclosing),
            function_name=function_name,
            file_path=file_path,
            line_number=node.start_point[0] + 1,
            enclosing_function=enclosing,
            metadata=metadata,
        )

    def _callee_name(self, callee: Node, source_code: bytes) -> Optional[str]:
        """Final name of a call target: `tombstone` and `markers.tombstone` both give 'tombstone'."""
        if callee.type == 'identifier':
            return _text(callee, source_code)
        if callee.type == 'attribute':
            attribute = callee.child_by_field_name('attribute')
            return _text(attribute, source_code) if attribute else None
        if callee.type == 'member_expression':
            prop = callee.child_by_field_name('property')
            return _text(prop, source_code) if prop else None
        return None

    def _extract_arguments(self, arguments_node: Node, source_code: bytes) -> List[str]:
        values = []
        for argument in arguments_node.named_children:
            if argument.type == 'comment':
                continue
            if self.language == 'python':
                values.append(self._python_argument(argument, source_code))
            else:
                values.append(self._js_argument(argument, source_code))
        return values

    def _python_argument(self, node: Node, source_code: bytes) -> str:
        raw = _text(node, source_code)
        try:
            return stringify_argument(ast.literal_eval(raw))
        except (ValueError, SyntaxError, TypeError, MemoryError, RecursionError):
            # Not a literal (names, f-strings, keyword arguments): keep the source text
            return raw

    def _js_argument(self, node: Node, source_code: bytes) -> str:
        if node.type == 'string':
            return ''.join(
                _text(child, source_code) for child in node.named_children
                if child.type in ('string_fragment', 'escape_sequence')
            )
        if node.type == 'template_string' and not any(
                child.type == 'template_substitution' for child in node.named_children):
            return _text(node, source_code)[1:-1]
        return _text(node, source_code)

    def _qualified_name(self, scope: Scope) -> str:
        """Qualified name of the innermost scope.

        Python follows __qualname__ so the runtime recorder sees the same value:
        names nested in a function get a '<locals>' segment.
        """
        if not scope:
            return ''
        parts = []
        for index, (name, kind) in enumerate(scope):
            if self.language == 'python' and index > 0 and scope[index - 1][1] == 'function':
                parts.append('<locals>')
            parts.append(name)
        return '.'.join(parts)


def _text(node: Node, source_code: bytes) -> str:
    return source_code[node.start_byte:node.end_byte].decode('utf-8', errors='replace')
