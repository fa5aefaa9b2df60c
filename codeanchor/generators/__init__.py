"""Markdown generation for component documentation."""

from .markdown import DocGenerator

__all__ = ["DocGenerator"]
