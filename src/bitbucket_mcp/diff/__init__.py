"""Unified diff parsing and code snippet location."""

from .matcher import CodeMatcher, ConfidenceWeights, resolve_code_match
from .models import (
    CodeMatch,
    DiffSection,
    FilteredResult,
    FilterMetadata,
    FilterOptions,
    LineType,
    MatchStrategy,
    SearchContext,
)
from .parser import DiffParser

__all__ = [
    "CodeMatch",
    "CodeMatcher",
    "ConfidenceWeights",
    "DiffParser",
    "DiffSection",
    "FilteredResult",
    "FilterMetadata",
    "FilterOptions",
    "LineType",
    "MatchStrategy",
    "SearchContext",
    "resolve_code_match",
]
