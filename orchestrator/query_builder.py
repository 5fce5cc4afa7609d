"""
Query strategies for the upstream provider.

Each function turns a query (and optional project context) into the text of
one search strategy: contextual, simplified, visual-specific, title-based
or generic. ``get_search_config`` picks provider options per request type.
"""

from models.search_types import ContentType, ProjectContext, ResourceType
from orchestrator.prefilter import DIY_DOMAINS, MATERIAL_DOMAINS
from orchestrator.query_optimizer import collapse_whitespace
from tools.search.contracts import ProviderSearchConfig

MAX_PROVIDER_RESULTS = 20

CONTEXT_CONTENT_TERMS: dict[ContentType, str] = {
    ContentType.VIDEO: "video tutorial how to watch",
    ContentType.VISUAL: "photos images gallery pictures visual examples before after",
    ContentType.ARTICLE: "guide article blog post instructions",
    ContentType.MIXED: "",
}

CONTEXT_RESOURCE_TERMS: dict[ResourceType, str] = {
    ResourceType.TUTORIAL: "how to step by step guide instructions",
    ResourceType.INSPIRATION: "ideas examples inspiration design showcase",
    ResourceType.MATERIALS: "materials tools supplies equipment list",
}

DOMAIN_SUFFIX = "DIY project home improvement"

# Exact phrases removed by simplify_query; the contextual query adds these verbatim
SIMPLIFY_PHRASES = [
    "photos images gallery pictures visual examples before after",
    "video tutorial how to watch",
    "guide article blog post instructions",
    DOMAIN_SUFFIX,
    "ideas examples inspiration design showcase",
    "materials tools supplies equipment list",
]
SIMPLIFIED_MIN_LENGTH = 10

VISUAL_TERMS = ["photos", "images", "gallery", "visual inspiration", "before and after", "design ideas"]

BASIC_TYPE_TERMS: dict[ResourceType, str] = {
    ResourceType.TUTORIAL: "tutorial how to guide",
    ResourceType.INSPIRATION: "ideas inspiration examples",
    ResourceType.MATERIALS: "materials tools supplies",
}

BASIC_CONTENT_TERMS: dict[ContentType, str] = {
    ContentType.VIDEO: "video",
    ContentType.VISUAL: "photos images",
    ContentType.ARTICLE: "guide",
    ContentType.MIXED: "",
}

GENERIC_TYPE_TERMS: dict[ResourceType, str] = {
    ResourceType.TUTORIAL: "DIY home improvement tutorial how to",
    ResourceType.INSPIRATION: "home improvement ideas inspiration examples",
    ResourceType.MATERIALS: "DIY tools materials supplies home improvement",
}

GENERIC_CONTENT_TERMS: dict[ContentType, str] = {
    ContentType.VIDEO: "video",
    ContentType.VISUAL: "photos gallery",
    ContentType.ARTICLE: "guide tips",
    ContentType.MIXED: "",
}


def build_contextual_query(
    query: str,
    resource_type: ResourceType,
    project_context: ProjectContext | None = None,
    content_type: ContentType = ContentType.MIXED,
) -> str:
    """Append content-type terms, resource-type terms, general project context and a DIY suffix."""
    parts = [query]

    content_terms = CONTEXT_CONTENT_TERMS.get(content_type, "")
    if content_terms:
        parts.append(content_terms)

    parts.append(CONTEXT_RESOURCE_TERMS[resource_type])

    if project_context:
        # Only add goal if it's not too specific
        if project_context.goal and len(project_context.goal) < 50:
            parts.append("project")

        general_areas = [
            area
            for area in project_context.focus_areas
            if len(area) < 20 and "specific" not in area and "particular" not in area
        ]
        if general_areas:
            parts.append(" ".join(general_areas[:2]))

    parts.append(DOMAIN_SUFFIX)
    return " ".join(parts).strip()


def simplify_query(
    query: str,
    resource_type: ResourceType,
    project_context: ProjectContext | None = None,
) -> str:
    """Strip the fixed contextual phrases; fall back to title + resource type when too short."""
    simplified = query
    for phrase in SIMPLIFY_PHRASES:
        simplified = simplified.replace(phrase, "", 1)

    simplified = collapse_whitespace(simplified)

    if len(simplified) < SIMPLIFIED_MIN_LENGTH and project_context and project_context.title:
        simplified = f"{project_context.title} {ResourceType(resource_type).value}"

    return simplified or query


def build_visual_query(query: str, project_context: ProjectContext | None = None) -> str:
    visual_query = f"{query} {' '.join(VISUAL_TERMS[:2])}"
    if project_context and project_context.title:
        title_words = project_context.title.split(" ")[:2]
        visual_query += " " + " ".join(title_words)
    return visual_query.strip()


def build_basic_query(
    project_title: str, resource_type: ResourceType, content_type: ContentType
) -> str:
    type_terms = BASIC_TYPE_TERMS.get(resource_type, "")
    content_terms = BASIC_CONTENT_TERMS.get(content_type, "")
    return f"{project_title} {type_terms} {content_terms}".strip()


def build_generic_query(resource_type: ResourceType, content_type: ContentType) -> str:
    type_terms = GENERIC_TYPE_TERMS.get(resource_type, "DIY home improvement")
    content_terms = GENERIC_CONTENT_TERMS.get(content_type, "")
    return f"{type_terms} {content_terms}".strip()


def get_search_config(
    resource_type: ResourceType, content_type: ContentType, num_results: int
) -> ProviderSearchConfig:
    """
    Provider options for the direct search path.

    Requests twice the target (capped at 20) to leave room for filtering.
    Visual content and inspiration cast a wide net with more text for
    analysis; materials restrict to retail and DIY domains; video restricts
    to trusted DIY domains.
    """
    requested = min(num_results * 2, MAX_PROVIDER_RESULTS)

    if content_type == ContentType.VISUAL or resource_type == ResourceType.INSPIRATION:
        return ProviderSearchConfig(
            num_results=requested, use_autoprompt=True, max_characters=2500
        )

    if resource_type == ResourceType.MATERIALS:
        return ProviderSearchConfig(
            num_results=requested,
            use_autoprompt=True,
            max_characters=2000,
            include_domains=list(MATERIAL_DOMAINS),
        )

    return ProviderSearchConfig(
        num_results=requested,
        use_autoprompt=True,
        max_characters=2000,
        include_domains=list(DIY_DOMAINS) if content_type == ContentType.VIDEO else None,
    )


def strategy_search_config(num_results: int) -> ProviderSearchConfig:
    """Options for individual strategy searches: no autoprompt, shorter text."""
    return ProviderSearchConfig(
        num_results=min(num_results * 2, MAX_PROVIDER_RESULTS),
        use_autoprompt=False,
        search_type="neural",
        max_characters=1500,
    )


def generate_search_suggestion(query: str, resource_type: ResourceType) -> str:
    suggestions = {
        ResourceType.TUTORIAL: f'Try searching for "{query} tutorial" or "{query} how to" on YouTube',
        ResourceType.INSPIRATION: (
            f'Try searching for "{query} ideas" or "{query} examples" on Pinterest or DIY websites'
        ),
        ResourceType.MATERIALS: f'Try searching for "{query} supplies" on Home Depot or Amazon',
    }
    return suggestions.get(resource_type, f'Try searching for "{query}" on DIY websites')
