"""Tree-sitter parsing session for TypeScript and JavaScript component sources."""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Dict, Optional

import tree_sitter_typescript
from tree_sitter import Language, Node, Parser, Tree

_TYPESCRIPT_SUFFIXES = frozenset({".ts", ".mts", ".cts"})
_TSX_SUFFIXES = frozenset({".tsx", ".jsx", ".js", ".mjs", ".cjs"})
SUPPORTED_SUFFIXES = _TYPESCRIPT_SUFFIXES | _TSX_SUFFIXES

_LANGUAGES: Dict[str, Language] = {}


class SourceSyntaxError(ValueError):
    """Raised when tree-sitter cannot produce an error-free syntax tree."""


@dataclass
class ParsedSource:
    """A parsed file together with the bytes the tree was built from."""

    path: Path
    source: bytes
    tree: Tree

    @property
    def root(self) -> Node:
        return self.tree.root_node

    def text(self, node: Node) -> str:
        return self.source[node.start_byte : node.end_byte].decode("utf-8", errors="replace")


def grammar_for(path: Path) -> Optional[str]:
    suffix = path.suffix.lower()
    if suffix in _TYPESCRIPT_SUFFIXES:
        return "typescript"
    if suffix in _TSX_SUFFIXES:
        return "tsx"
    return None


def _language(grammar: str) -> Language:
    language = _LANGUAGES.get(grammar)
    if language is None:
        if grammar == "typescript":
            language = Language(tree_sitter_typescript.language_typescript())
        else:
            language = Language(tree_sitter_typescript.language_tsx())
        _LANGUAGES[grammar] = language
    return language


class ParsingSession:
    """Accumulates parsed files across calls.

    A session is not thread-safe: it mutates its parser and tree cache on every
    call. Concurrent workers must each own a session or serialise access to a
    shared one.
    """

    def __init__(self) -> None:
        self._parsers: Dict[str, Parser] = {}
        self._trees: Dict[Path, ParsedSource] = {}

    def parse(self, path: Path | str) -> ParsedSource:
        """Return the syntax tree for ``path``, reusing it while the bytes are unchanged.

        Raises ``OSError`` if the file cannot be read and ``SourceSyntaxError`` if
        the file type is unsupported or the source does not parse cleanly.
        """
        file_path = Path(path)
        grammar = grammar_for(file_path)
        if grammar is None:
            raise SourceSyntaxError(f"Unsupported source type: {file_path.suffix or file_path.name}")

        source = file_path.read_bytes()
        cached = self._trees.get(file_path)
        if cached is not None and cached.source == source:
            return cached

        tree = self._get_parser(grammar).parse(source)
        if tree.root_node.has_error:
            self._trees.pop(file_path, None)
            raise SourceSyntaxError(f"Syntax errors in {file_path.name}")

        parsed = ParsedSource(path=file_path, source=source, tree=tree)
        self._trees[file_path] = parsed
        return parsed

    def clear(self) -> None:
        self._trees.clear()

    def __len__(self) -> int:
        return len(self._trees)

    def _get_parser(self, grammar: str) -> Parser:
        parser = self._parsers.get(grammar)
        if parser is None:
            parser = Parser(_language(grammar))
            self._parsers[grammar] = parser
        return parser


__all__ = ["ParsedSource", "ParsingSession", "SourceSyntaxError", "SUPPORTED_SUFFIXES", "grammar_for"]
