"""Persistent stores used by the sync pipeline."""

from .component_cache import FORMAT_VERSION, ComponentCache

__all__ = ["ComponentCache", "FORMAT_VERSION"]
