"""Component discovery for full-scan sync runs."""

from __future__ import annotations

from dataclasses import dataclass
from functools import lru_cache
import os
from pathlib import Path
import re
from typing import Iterable, Iterator, List, Optional, Sequence

_EXCLUDED_DIRS = frozenset(
    {".git", ".hg", ".svn", ".anchor", "node_modules", ".next", ".turbo", "coverage"}
)


@lru_cache(maxsize=256)
def _glob_regex(pattern: str) -> re.Pattern[str]:
    parts: List[str] = []
    index = 0
    while index < len(pattern):
        if pattern.startswith("**/", index):
            parts.append("(?:.*/)?")
            index += 3
        elif pattern.startswith("**", index):
            parts.append(".*")
            index += 2
        elif pattern[index] == "*":
            parts.append("[^/]*")
            index += 1
        elif pattern[index] == "?":
            parts.append("[^/]")
            index += 1
        else:
            parts.append(re.escape(pattern[index]))
            index += 1
    return re.compile("".join(parts) + r"\Z")


def matches_pattern(rel_path: str, pattern: str) -> bool:
    """Match a POSIX relative path against a glob where ``**`` spans directories."""
    if pattern.startswith("./"):
        pattern = pattern[2:]
    return _glob_regex(pattern).match(rel_path.replace("\\", "/")) is not None


def matches_any(rel_path: str, patterns: Sequence[str]) -> bool:
    return any(matches_pattern(rel_path, pattern) for pattern in patterns)


@dataclass(frozen=True)
class IgnoreRule:
    """One gitignore-style line: ``/`` anchors it, a trailing ``/`` limits it to directories."""

    pattern: str
    directory_only: bool = False
    negate: bool = False

    @classmethod
    def parse(cls, line: str) -> Optional["IgnoreRule"]:
        text = line.strip()
        if not text or text.startswith("#"):
            return None
        negate = text.startswith("!")
        text = text[1:] if negate else text
        directory_only = text.endswith("/")
        text = text.rstrip("/")
        if not text:
            return None
        if not text.startswith("/") and "/" not in text:
            # unanchored names match at any depth
            text = f"**/{text}"
        return cls(pattern=text.lstrip("/"), directory_only=directory_only, negate=negate)

    def matches(self, rel_path: str, is_dir: bool) -> bool:
        if self.directory_only and not is_dir:
            return False
        return _glob_regex(self.pattern).match(rel_path) is not None


class IgnoreRules:
    """Ordered rule list where the last matching rule wins, as in ``.gitignore``."""

    def __init__(self, rules: Iterable[IgnoreRule] = ()) -> None:
        self.rules: List[IgnoreRule] = list(rules)

    @classmethod
    def load(cls, root: Path, extra: Sequence[str] = ()) -> "IgnoreRules":
        lines: List[str] = []
        try:
            lines.extend((root / ".gitignore").read_text(encoding="utf-8").splitlines())
        except FileNotFoundError:
            pass
        lines.extend(extra)
        return cls(rule for rule in map(IgnoreRule.parse, lines) if rule is not None)

    def ignored(self, rel_path: str, is_dir: bool) -> bool:
        verdict = False
        for rule in self.rules:
            if rule.matches(rel_path, is_dir):
                verdict = not rule.negate
        return verdict


class ComponentScanner:
    """Finds component files under a project root using the configured watch patterns."""

    def __init__(self, watch_patterns: Sequence[str], ignore: Sequence[str] = ()) -> None:
        self.watch_patterns = list(watch_patterns)
        self.ignore = list(ignore)

    def scan(self, root: Path | str) -> List[Path]:
        """Return absolute component paths in sorted order."""
        root_path = Path(root).expanduser().resolve()
        if not root_path.exists():
            raise FileNotFoundError(f"Project path not found: {root}")
        if not root_path.is_dir():
            raise NotADirectoryError(f"Project path is not a directory: {root}")

        rules = IgnoreRules.load(root_path, self.ignore)
        return sorted(
            path
            for path, rel_path in self._walk(root_path, rules)
            if matches_any(rel_path, self.watch_patterns)
        )

    def select(self, root: Path | str, paths: Sequence[Path | str]) -> List[Path]:
        """Keep the existing files in ``paths`` that sit under ``root`` and match a watch pattern."""
        root_path = Path(root).expanduser().resolve()
        selected: List[Path] = []
        for raw in paths:
            path = (root_path / raw).resolve()
            try:
                rel_path = path.relative_to(root_path).as_posix()
            except ValueError:
                continue
            if path in selected or not matches_any(rel_path, self.watch_patterns):
                continue
            if path.is_file():
                selected.append(path)
        return selected

    @staticmethod
    def _walk(root: Path, rules: IgnoreRules) -> Iterator[tuple[Path, str]]:
        for dirpath, dirnames, filenames in os.walk(root):
            current = Path(dirpath)
            prefix = current.relative_to(root).as_posix()
            prefix = "" if prefix == "." else f"{prefix}/"
            dirnames[:] = [
                name
                for name in dirnames
                if name not in _EXCLUDED_DIRS and not rules.ignored(f"{prefix}{name}", True)
            ]
            for filename in filenames:
                rel_path = f"{prefix}{filename}"
                if not rules.ignored(rel_path, False):
                    yield current / filename, rel_path


__all__ = ["ComponentScanner", "IgnoreRule", "IgnoreRules", "matches_any", "matches_pattern"]
