"""
Models package for search options and processed search results.
"""

from .search_result import BatchTiming, DIYSearchResult, ProgressiveSearchResult, SearchResponse
from .search_types import (
    ContentType,
    Difficulty,
    ProjectContext,
    ResourceType,
    SearchOptions,
    VisualQuality,
)

__all__ = [
    "BatchTiming",
    "ContentType",
    "DIYSearchResult",
    "Difficulty",
    "ProgressiveSearchResult",
    "ProjectContext",
    "ResourceType",
    "SearchOptions",
    "SearchResponse",
    "VisualQuality",
]
