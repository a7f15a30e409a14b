"""Tree-sitter parser for multi-language marker extraction."""
from functools import lru_cache
from pathlib import Path
from typing import Optional

from tree_sitter import Language, Node, Parser, Tree
import tree_sitter_python as tspython
import tree_sitter_javascript as tsjavascript
import tree_sitter_typescript as tstypescript


@lru_cache(maxsize=None)
def _load_language(language: str) -> Language:
    """Load (once) the tree-sitter Language for a language name.

    Raises:
        ValueError: If language is not supported
    """
    if language == 'python':
        return Language(tspython.language())
    if language == 'javascript':
        return Language(tsjavascript.language())
    if language == 'typescript':
        return Language(tstypescript.language_typescript())
    if language == 'tsx':
        return Language(tstypescript.language_tsx())
    raise ValueError(f"Unsupported language: {language}")


class LanguageParser:
    """Multi-language parser using the tree-sitter v0.22+ API.

    A Parser instance is not thread-safe, so each LanguageParser owns its own.
    Languages are shared.
    """

    SUPPORTED_LANGUAGES = {
        '.py': 'python',
        '.js': 'javascript',
        '.jsx': 'javascript',
        '.mjs': 'javascript',
        '.cjs': 'javascript',
        '.ts': 'typescript',
        '.tsx': 'tsx',
    }

    def __init__(self, language: str):
        """Initialize parser for given language.

        Args:
            language: One of 'python', 'javascript', 'typescript', 'tsx'

        Raises:
            ValueError: If language is not supported
        """
        self.language = language
        self.parser = Parser(_load_language(language))

    def parse_source(self, source_code: bytes) -> Tree:
        """Parse raw source bytes."""
        return self.parser.parse(source_code)

    def parse_file(self, file_path: str | Path) -> Tree:
        """Parse file and return tree-sitter Tree.

        Raises:
            OSError: If the file cannot be read
        """
        with open(file_path, 'rb') as f:
            return self.parse_source(f.read())

    @classmethod
    def from_file_extension(cls, file_path: str | Path) -> Optional['LanguageParser']:
        """Create parser based on file extension.

        Returns:
            LanguageParser instance, or None if extension not supported
        """
        language = cls.SUPPORTED_LANGUAGES.get(Path(file_path).suffix.lower())
        if language:
            return cls(language)
        return None


def first_error_line(tree: Tree) -> Optional[int]:
    """Return the 1-based line of the first syntax error in tree, or None if it parsed cleanly."""
    root = tree.root_node
    if not root.has_error:
        return None

    stack = [root]
    while stack:
        node: Node = stack.pop()
        if node.type == 'ERROR' or node.is_missing:
            return node.start_point[0] + 1
        # Only descend into subtrees that contain the error
        stack.extend(child for child in reversed(node.children) if child.has_error or child.is_missing)
    return root.start_point[0] + 1
