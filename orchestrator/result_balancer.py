"""
ResultBalancer - Orders merged results by project similarity and shapes the
content-type mix the caller asked for.
"""

from collections import deque

from models.search_result import DIYSearchResult
from models.search_types import ContentType, ProjectContext, ResourceType, VisualQuality

TITLE_WEIGHT = 0.3
GOAL_WEIGHT = 0.25
DESCRIPTION_WEIGHT = 0.2
MATERIALS_WEIGHT = 0.15
FOCUS_WEIGHT = 0.1
TYPE_KEYWORD_BONUS = 0.02
RELEVANCE_WEIGHT = 0.01
MAX_SIMILARITY = 1.0

SOURCE_QUALITY_BONUS = {
    "YouTube": 0.05,
    "This Old House": 0.15,
    "Family Handyman": 0.12,
    "Home Depot": 0.10,
    "Lowe's": 0.10,
    "Bob Vila": 0.08,
    "DIY Network": 0.08,
    "Instructables": 0.06,
    "WikiHow": 0.04,
}

TYPE_KEYWORDS: dict[ResourceType, tuple[str, ...]] = {
    ResourceType.TUTORIAL: ("tutorial", "how to", "step by step", "guide", "instructions", "diy"),
    ResourceType.INSPIRATION: ("inspiration", "ideas", "gallery", "examples", "showcase", "design"),
    ResourceType.MATERIALS: ("materials", "tools", "supplies", "buy", "shop", "equipment"),
}

VISUAL_PLATFORM_BONUS = {
    "Pinterest": 25,
    "Houzz": 20,
    "HGTV": 15,
    "Better Homes": 15,
    "Apartment Therapy": 12,
    "House Beautiful": 12,
    "Elle Decor": 10,
}

VISUAL_TAGS = ("gallery", "before-after", "high-quality", "visual")


def _word_overlap(text: str | None, content: str) -> float:
    words = [word for word in (text or "").lower().split() if len(word) > 3]
    if not words:
        return 0.0
    return sum(1 for word in words if word in content) / len(words)


def _phrase_overlap(phrases: list[str], content: str) -> float:
    if not phrases:
        return 0.0
    return sum(1 for phrase in phrases if phrase.lower() in content) / len(phrases)


def source_quality_bonus(source: str) -> float:
    for name, bonus in SOURCE_QUALITY_BONUS.items():
        if name in source:
            return bonus
    return 0.0


def resource_type_bonus(result: DIYSearchResult, resource_type: ResourceType | None) -> float:
    if resource_type is None:
        return 0.0
    content = f"{result.title} {result.snippet}".lower()
    keywords = TYPE_KEYWORDS.get(ResourceType(resource_type), ())
    return sum(1 for keyword in keywords if keyword in content) * TYPE_KEYWORD_BONUS


def project_similarity_score(
    result: DIYSearchResult,
    project_context: ProjectContext | None = None,
    resource_type: ResourceType | None = None,
) -> float:
    """
    Composite ordering score in [0, 1].

    Provider score, plus weighted overlap with the project's title, goal,
    description, materials and focus areas, plus source and resource-type
    bonuses, plus 1% of the relevance score.
    """
    score = result.score or 0.5
    content = f"{result.title} {result.snippet}".lower()

    if project_context:
        score += _word_overlap(project_context.title, content) * TITLE_WEIGHT
        score += _word_overlap(project_context.goal, content) * GOAL_WEIGHT
        score += _word_overlap(project_context.description, content) * DESCRIPTION_WEIGHT
        score += _phrase_overlap(project_context.materials, content) * MATERIALS_WEIGHT
        score += _phrase_overlap(project_context.focus_areas, content) * FOCUS_WEIGHT

    score += source_quality_bonus(result.source)
    score += resource_type_bonus(result, resource_type)

    if result.relevance_score is not None:
        score += result.relevance_score * RELEVANCE_WEIGHT

    return min(score, MAX_SIMILARITY)


def relevance_boost(result: DIYSearchResult, project_context: ProjectContext | None = None) -> float:
    return max(1.0, project_similarity_score(result, project_context) * 2)


def is_visual_content(result: DIYSearchResult) -> bool:
    return (
        result.content_type == ContentType.VISUAL
        or result.is_gallery
        or result.visual_quality == VisualQuality.HIGH
        or (result.has_images and result.image_count > 1)
    )


def visual_quality_score(result: DIYSearchResult) -> int:
    score = 0

    if result.content_type == ContentType.VISUAL:
        score += 50
    elif result.content_type == ContentType.MIXED:
        score += 25

    if result.visual_quality == VisualQuality.HIGH:
        score += 30
    elif result.visual_quality == VisualQuality.MEDIUM:
        score += 15

    if result.is_gallery:
        score += 20
    if result.has_before_after:
        score += 15
    if result.is_pinterest:
        score += 10

    if result.image_count >= 10:
        score += 20
    elif result.image_count >= 5:
        score += 15
    elif result.image_count >= 2:
        score += 10
    elif result.image_count >= 1:
        score += 5

    for platform, bonus in VISUAL_PLATFORM_BONUS.items():
        if platform in result.source:
            score += bonus
            break

    score += sum(5 for tag in result.tags if tag in VISUAL_TAGS)

    if result.visual_quality == VisualQuality.LOW and result.content_type != ContentType.VISUAL:
        score -= 10

    return max(0, score)


class ResultBalancer:
    def balance(
        self,
        results: list[DIYSearchResult],
        content_type: ContentType,
        target_count: int,
        project_context: ProjectContext | None = None,
        resource_type: ResourceType | None = None,
    ) -> list[DIYSearchResult]:
        """Order by similarity, then shape the content-type mix and truncate to ``target_count``."""
        ordered = sorted(
            results,
            key=lambda r: project_similarity_score(r, project_context, resource_type),
            reverse=True,
        )

        content_type = ContentType(content_type)
        if content_type == ContentType.MIXED:
            return self._round_robin(ordered, target_count)

        if content_type == ContentType.VIDEO:
            preferred = [r for r in ordered if r.is_youtube]
            others = [r for r in ordered if not r.is_youtube]
        elif content_type == ContentType.VISUAL:
            preferred = sorted(
                (r for r in ordered if is_visual_content(r)),
                key=visual_quality_score,
                reverse=True,
            )
            others = [r for r in ordered if not is_visual_content(r)]
        else:
            preferred = [r for r in ordered if not r.is_youtube]
            others = [r for r in ordered if r.is_youtube]

        return (preferred + others)[:target_count]

    def _round_robin(self, results: list[DIYSearchResult], target_count: int) -> list[DIYSearchResult]:
        buckets = [
            deque(r for r in results if r.is_youtube),
            deque(r for r in results if not r.is_youtube and is_visual_content(r)),
            deque(r for r in results if not r.is_youtube and not is_visual_content(r)),
        ]

        mixed: list[DIYSearchResult] = []
        seen: set[str] = set()
        index = 0
        while len(mixed) < target_count and any(buckets):
            bucket = buckets[index % len(buckets)]
            if bucket:
                item = bucket.popleft()
                if item.url not in seen:
                    seen.add(item.url)
                    mixed.append(item)
            index += 1
        return mixed
