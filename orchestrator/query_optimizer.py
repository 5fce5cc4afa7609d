"""
QueryOptimizer - Deterministic normalization and enrichment of raw query text.

No I/O. The optimized query drives the upstream search and the dedup key;
the cache is keyed on the raw query.
"""

import re

from models.search_types import ContentType, ProjectContext, ResourceType
from utils.logger import get_logger

logger = get_logger(__name__)

FILLER_WORDS = (
    "diy",
    "project",
    "home",
    "improvement",
    "tutorial",
    "guide",
    "how to",
    "instructions",
    "step by step",
    "easy",
    "simple",
    "quick",
    "best",
    "top",
    "ideas",
    "tips",
)

# Filler is only stripped from queries longer than this
FILLER_STRIP_MIN_LENGTH = 30

MAX_MATERIAL_TERMS = 2
MAX_FOCUS_TERMS = 1
MAX_FOCUS_LENGTH = 15
MIN_QUERY_LENGTH = 3

RESOURCE_CONTEXT_TERMS: dict[ResourceType, tuple[str, ...]] = {
    ResourceType.TUTORIAL: ("tutorial", "how to", "guide", "instructions"),
    ResourceType.INSPIRATION: ("ideas", "inspiration", "examples", "gallery"),
    ResourceType.MATERIALS: ("materials", "supplies", "tools", "equipment"),
}

RESOURCE_CONTEXT_SUFFIX: dict[ResourceType, str] = {
    ResourceType.TUTORIAL: "tutorial",
    ResourceType.INSPIRATION: "ideas",
}

_FILLER_PATTERNS = [re.compile(rf"\b{re.escape(word)}\b", re.IGNORECASE) for word in FILLER_WORDS]


def collapse_whitespace(text: str) -> str:
    return re.sub(r"\s+", " ", text).strip()


class QueryOptimizer:
    """Normalizes and enriches raw query text. Never returns an empty string."""

    def optimize(
        self,
        query: str,
        resource_type: ResourceType,
        content_type: ContentType = ContentType.MIXED,
        project_context: ProjectContext | None = None,
    ) -> str:
        """
        Optimize a raw query for the upstream provider.

        Args:
            query: Raw user query
            resource_type: Requested resource type
            content_type: Requested content type (does not change the text)
            project_context: Optional project whose materials/focus areas enrich the query

        Returns:
            Optimized query, or the raw query if optimization left fewer than 3 characters
        """
        resource_type = ResourceType(resource_type)
        optimized = query.strip().lower()

        if len(optimized) > FILLER_STRIP_MIN_LENGTH:
            for pattern in _FILLER_PATTERNS:
                optimized = collapse_whitespace(pattern.sub("", optimized))

        if project_context:
            enhancement_terms = [
                material
                for material in project_context.materials[:MAX_MATERIAL_TERMS]
                if material.lower() not in optimized
            ]
            enhancement_terms.extend(
                focus
                for focus in project_context.focus_areas[:MAX_FOCUS_TERMS]
                if focus.lower() not in optimized and len(focus) < MAX_FOCUS_LENGTH
            )
            if enhancement_terms:
                optimized = f"{optimized} {' '.join(enhancement_terms)}"

        context_terms = RESOURCE_CONTEXT_TERMS.get(resource_type, ())
        has_resource_context = any(term in optimized for term in context_terms)
        suffix = RESOURCE_CONTEXT_SUFFIX.get(resource_type)
        if not has_resource_context and suffix:
            optimized = f"{optimized} {suffix}"

        optimized = collapse_whitespace(optimized)

        if len(optimized) < MIN_QUERY_LENGTH:
            optimized = query

        if optimized != query:
            logger.debug(f"Optimized query: '{query}' -> '{optimized}'")
        return optimized
