"""Component analysis built on tree-sitter."""

from .component import AnalysisError, ComponentAnalyzer
from .resolver import ModuleResolver
from .tree_sitter import ParsingSession, SourceSyntaxError

__all__ = [
    "AnalysisError",
    "ComponentAnalyzer",
    "ModuleResolver",
    "ParsingSession",
    "SourceSyntaxError",
]
