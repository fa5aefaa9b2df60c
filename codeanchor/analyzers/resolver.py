"""Resolve import specifiers to local source files."""

from __future__ import annotations

from pathlib import Path
from typing import Dict, Mapping, Optional

from .tree_sitter import SUPPORTED_SUFFIXES

_EXTENSIONS: tuple[str, ...] = (".ts", ".tsx", ".d.ts", ".js", ".jsx", ".mjs", ".cjs")
_COMPILED_TO_SOURCE = {
    ".js": (".ts", ".tsx"),
    ".jsx": (".tsx",),
    ".mjs": (".mts",),
    ".cjs": (".cts",),
}


class ModuleResolver:
    """Maps import specifiers onto files inside the project.

    Relative specifiers are resolved against the importing file. Bare specifiers
    are treated as third-party packages unless they start with a configured
    alias prefix (for example ``@/`` mapped to ``src/``).
    """

    def __init__(
        self,
        root: Path | str | None = None,
        aliases: Mapping[str, str] | None = None,
    ) -> None:
        self.root = Path(root).resolve() if root is not None else None
        self._aliases: Dict[str, str] = dict(aliases or {})

    def resolve(self, specifier: str, importer: Path | str) -> Optional[Path]:
        if not specifier:
            return None
        if specifier.startswith(("./", "../")) or specifier in {".", ".."}:
            base = Path(importer).parent / specifier
        else:
            base = self._apply_alias(specifier)
            if base is None:
                return None

        candidate = self._probe(base)
        if candidate is None:
            return None
        resolved = candidate.resolve()
        if "node_modules" in resolved.parts:
            return None
        if self.root is not None and not resolved.is_relative_to(self.root):
            return None
        return resolved

    def _apply_alias(self, specifier: str) -> Optional[Path]:
        if self.root is None:
            return None
        for prefix in sorted(self._aliases, key=len, reverse=True):
            if specifier == prefix.rstrip("/") or specifier.startswith(prefix):
                remainder = specifier[len(prefix) :].lstrip("/")
                target = self.root / self._aliases[prefix]
                return target / remainder if remainder else target
        return None

    @staticmethod
    def _probe(base: Path) -> Optional[Path]:
        suffix = base.suffix.lower()
        if suffix in SUPPORTED_SUFFIXES and base.is_file():
            return base
        for replacement in _COMPILED_TO_SOURCE.get(suffix, ()):
            candidate = base.with_suffix(replacement)
            if candidate.is_file():
                return candidate
        for extension in _EXTENSIONS:
            candidate = base.with_name(base.name + extension)
            if candidate.is_file():
                return candidate
        if base.is_dir():
            for extension in _EXTENSIONS:
                candidate = base / f"index{extension}"
                if candidate.is_file():
                    return candidate
        return None


__all__ = ["ModuleResolver"]
