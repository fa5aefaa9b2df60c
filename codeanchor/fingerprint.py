"""Content fingerprints for change detection."""

from __future__ import annotations

import hashlib
from pathlib import Path

_CHUNK_SIZE = 1024 * 1024


def fingerprint_file(path: Path | str) -> str:
    """Return the SHA-256 hex digest of a file's raw bytes.

    Raises ``OSError`` when the file cannot be read.
    """
    digest = hashlib.sha256()
    with Path(path).open("rb") as handle:
        for chunk in iter(lambda: handle.read(_CHUNK_SIZE), b""):
            digest.update(chunk)
    return digest.hexdigest()


def fingerprint_text(value: str) -> str:
    """Return the SHA-256 hex digest of a string (used for path-keyed storage)."""
    return hashlib.sha256(value.encode("utf-8")).hexdigest()


__all__ = ["fingerprint_file", "fingerprint_text"]
