"""Dependency-aware persistent cache for component metadata."""

from __future__ import annotations

from dataclasses import asdict
from datetime import UTC, datetime
import json
import os
from pathlib import Path
import shutil
from typing import Any, Dict, List, Optional

from ..analyzers.component import ComponentAnalyzer
from ..fingerprint import fingerprint_file, fingerprint_text
from ..logging import get_logger
from ..models import CacheEntry, ComponentMetadata, DependencySnapshot, FieldMetadata

FORMAT_VERSION = "1.0.0"


class ComponentCache:
    """Stores one entry per component file, keyed by a digest of the file's path.

    An entry stays valid while the file's content fingerprint is unchanged and no
    direct import has been modified since the entry was written. Imports of
    imports are deliberately not tracked.
    """

    def __init__(
        self,
        cache_dir: Path | str,
        analyzer: ComponentAnalyzer | None = None,
        *,
        format_version: str = FORMAT_VERSION,
    ) -> None:
        self.cache_dir = Path(cache_dir)
        self.format_version = format_version
        self._analyzer = analyzer or ComponentAnalyzer()
        self.logger = get_logger("stores.component_cache")

    def needs_update(self, path: Path | str) -> bool:
        """Return True when ``path`` must be re-analyzed."""
        file_path = Path(path).resolve()
        entry = self.load(file_path)
        if entry is None:
            return True

        try:
            current = fingerprint_file(file_path)
        except OSError as exc:
            self.logger.debug("Unable to fingerprint %s: %s", file_path, exc)
            return True
        if current != entry.content_fingerprint:
            return True

        try:
            dependencies = self._analyzer.dependencies(file_path)
        except Exception as exc:
            self.logger.warning("Error checking dependencies for %s: %s", file_path, exc)
            return True

        recorded = {snapshot.path: snapshot for snapshot in entry.dependency_snapshots}
        analyzed_at = entry.analyzed_at.timestamp()
        for dependency in dependencies:
            snapshot = recorded.get(dependency)
            try:
                modified_at = os.stat(dependency).st_mtime
                changed = (
                    snapshot is None
                    or modified_at > analyzed_at
                    or fingerprint_file(dependency) != snapshot.fingerprint
                )
            except FileNotFoundError:
                continue
            except OSError as exc:
                self.logger.debug("Unable to read dependency %s: %s", dependency, exc)
                return True
            if changed:
                self.logger.debug("Dependency %s of %s changed", dependency, file_path)
                return True
        return False

    def save(self, path: Path | str, metadata: ComponentMetadata) -> None:
        """Replace the entry for ``path``. Failures are logged, never raised."""
        file_path = Path(path).resolve()
        try:
            self.cache_dir.mkdir(parents=True, exist_ok=True)
            snapshots = self._snapshot_dependencies(self._analyzer.dependencies(file_path))
            entry = CacheEntry(
                content_fingerprint=fingerprint_file(file_path),
                dependency_snapshots=snapshots,
                metadata=metadata,
                analyzed_at=datetime.now(UTC),
                format_version=self.format_version,
            )
            self.entry_path(file_path).write_text(
                json.dumps(_entry_to_dict(entry), indent=2, sort_keys=True), encoding="utf-8"
            )
        except Exception as exc:
            self.logger.error("Error saving cache for %s: %s", file_path, exc)

    def load(self, path: Path | str) -> Optional[CacheEntry]:
        """Return the stored entry for ``path`` if present and of the current format."""
        cache_file = self.entry_path(Path(path).resolve())
        try:
            data = json.loads(cache_file.read_text(encoding="utf-8"))
        except FileNotFoundError:
            return None
        except (OSError, ValueError) as exc:
            self.logger.debug("Ignoring unreadable cache entry %s: %s", cache_file, exc)
            return None
        if not isinstance(data, dict) or data.get("format_version") != self.format_version:
            return None
        return _entry_from_dict(data)

    def clear(self) -> None:
        """Remove every persisted entry (best effort)."""
        try:
            shutil.rmtree(self.cache_dir)
        except FileNotFoundError:
            return
        except OSError as exc:
            self.logger.error("Error clearing cache at %s: %s", self.cache_dir, exc)

    def entry_path(self, path: Path) -> Path:
        return self.cache_dir / f"{fingerprint_text(str(path))}.json"

    # ------------------------------------------------------------------
    # Internal helpers

    def _snapshot_dependencies(self, dependencies: List[str]) -> List[DependencySnapshot]:
        snapshots: List[DependencySnapshot] = []
        for dependency in dependencies:
            try:
                stat_result = os.stat(dependency)
                fingerprint = fingerprint_file(dependency)
            except FileNotFoundError:
                continue
            snapshots.append(
                DependencySnapshot(
                    path=dependency,
                    fingerprint=fingerprint,
                    modified_at=stat_result.st_mtime,
                )
            )
        return snapshots


def _entry_to_dict(entry: CacheEntry) -> Dict[str, Any]:
    return {
        "content_fingerprint": entry.content_fingerprint,
        "dependency_snapshots": [asdict(snapshot) for snapshot in entry.dependency_snapshots],
        "metadata": asdict(entry.metadata),
        "analyzed_at": entry.analyzed_at.isoformat().replace("+00:00", "Z"),
        "format_version": entry.format_version,
    }


def _entry_from_dict(payload: Dict[str, Any]) -> Optional[CacheEntry]:
    fingerprint = payload.get("content_fingerprint")
    analyzed_at_raw = payload.get("analyzed_at")
    metadata_raw = payload.get("metadata")
    snapshots_raw = payload.get("dependency_snapshots")
    if (
        not isinstance(fingerprint, str)
        or not isinstance(analyzed_at_raw, str)
        or not isinstance(metadata_raw, dict)
        or not isinstance(snapshots_raw, list)
    ):
        return None
    try:
        analyzed_at = datetime.fromisoformat(analyzed_at_raw)
    except ValueError:
        return None
    if analyzed_at.tzinfo is None:
        analyzed_at = analyzed_at.replace(tzinfo=UTC)

    metadata = _metadata_from_dict(metadata_raw)
    if metadata is None:
        return None

    snapshots: List[DependencySnapshot] = []
    for raw in snapshots_raw:
        if not isinstance(raw, dict):
            continue
        dep_path = raw.get("path")
        dep_fingerprint = raw.get("fingerprint")
        modified_at = raw.get("modified_at")
        if (
            isinstance(dep_path, str)
            and isinstance(dep_fingerprint, str)
            and isinstance(modified_at, (int, float))
        ):
            snapshots.append(
                DependencySnapshot(path=dep_path, fingerprint=dep_fingerprint, modified_at=float(modified_at))
            )

    return CacheEntry(
        content_fingerprint=fingerprint,
        dependency_snapshots=snapshots,
        metadata=metadata,
        analyzed_at=analyzed_at,
        format_version=str(payload.get("format_version")),
    )


def _metadata_from_dict(payload: Dict[str, Any]) -> Optional[ComponentMetadata]:
    name = payload.get("name")
    file_path = payload.get("file_path")
    if not isinstance(name, str) or not isinstance(file_path, str):
        return None
    fields: List[FieldMetadata] = []
    for raw in payload.get("fields") or []:
        if not isinstance(raw, dict):
            continue
        field_name = raw.get("name")
        type_signature = raw.get("type_signature")
        if not isinstance(field_name, str) or not isinstance(type_signature, str):
            continue
        description = raw.get("description")
        default_value = raw.get("default_value")
        fields.append(
            FieldMetadata(
                name=field_name,
                type_signature=type_signature,
                required=bool(raw.get("required", True)),
                description=description if isinstance(description, str) else None,
                default_value=default_value if isinstance(default_value, str) else None,
            )
        )
    dependencies = [dep for dep in payload.get("dependencies") or [] if isinstance(dep, str)]
    return ComponentMetadata(
        name=name,
        file_path=file_path,
        fields=fields,
        dependencies=dependencies,
        has_documentation=bool(payload.get("has_documentation", False)),
    )


__all__ = ["ComponentCache", "FORMAT_VERSION"]
