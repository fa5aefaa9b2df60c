"""Core data models shared across codeanchor components."""

from dataclasses import dataclass, field
from datetime import datetime
from typing import List, Optional


@dataclass
class FieldMetadata:
    """A single member of a component's props interface."""

    name: str
    type_signature: str
    required: bool
    description: Optional[str] = None
    default_value: Optional[str] = None


@dataclass
class ComponentMetadata:
    """Public interface description extracted from one component source file."""

    name: str
    file_path: str
    fields: List[FieldMetadata] = field(default_factory=list)
    dependencies: List[str] = field(default_factory=list)
    has_documentation: bool = False


@dataclass(frozen=True)
class DependencySnapshot:
    """State of a direct dependency observed when its dependent was cached."""

    path: str
    fingerprint: str
    modified_at: float


@dataclass
class CacheEntry:
    """Persisted analysis result for a single component file."""

    content_fingerprint: str
    dependency_snapshots: List[DependencySnapshot]
    metadata: ComponentMetadata
    analyzed_at: datetime
    format_version: str
