import re
from dataclasses import dataclass, field

from models.search_result import DIYSearchResult
from models.search_types import ProjectContext, ResourceType

QUERY_MATCH_BONUS = 40
QUERY_MATCH_RATIO = 0.3
TITLE_WORD_WEIGHT = 15
MATERIAL_WEIGHT = 10
FOCUS_AREA_WEIGHT = 8
DIY_TERM_WEIGHT = 3
RESOURCE_TERM_WEIGHT = 5
UNRELATED_TERM_PENALTY = 20

RELEVANT_MIN_SCORE = 25
RELEVANT_MIN_RATIO = 0.1

DIY_TERMS = ("diy", "how to", "tutorial", "guide", "repair", "fix", "install", "build", "project")

RESOURCE_TERMS: dict[ResourceType, tuple[str, ...]] = {
    ResourceType.TUTORIAL: ("tutorial", "how to", "step by step", "guide", "instructions"),
    ResourceType.INSPIRATION: ("inspiration", "ideas", "examples", "design", "gallery", "showcase"),
    ResourceType.MATERIALS: ("materials", "tools", "supplies", "equipment", "buy", "shop"),
}

UNRELATED_TERMS = (
    "recipe", "cooking", "food", "restaurant", "menu",
    "vacation", "travel", "hotel", "flight",
    "clothing", "fashion", "style", "outfit",
    "movie", "film", "tv show", "entertainment",
    "sports", "game", "team", "player",
    "software", "app", "code", "programming",
    "car", "automotive", "vehicle", "engine",
)

# Word boundaries keep "car" out of "carpet" and "app" out of "appliance"
_UNRELATED_PATTERNS = [re.compile(rf"\b{re.escape(term)}(?:e?s)?\b") for term in UNRELATED_TERMS]


@dataclass(frozen=True)
class RelevanceResult:
    is_relevant: bool
    relevance_score: float
    reasons: list[str] = field(default_factory=list)


class RelevanceValidator:
    def __init__(self, thresholds: dict[str, float] | None = None):
        self._thresholds = thresholds or {}

    def validate(
        self,
        result: DIYSearchResult,
        project_context: ProjectContext | None,
        original_query: str,
        resource_type: ResourceType,
    ) -> RelevanceResult:
        content = f"{result.title} {result.snippet}".lower()
        reasons: list[str] = []
        score = 0.0

        query_ratio = self._query_match_ratio(original_query, content)
        if query_ratio > QUERY_MATCH_RATIO:
            score += QUERY_MATCH_BONUS
            reasons.append(f"Matches {round(query_ratio * 100)}% of search terms")

        if project_context:
            title_words = [w for w in project_context.title.lower().split() if len(w) > 3]
            title_matches = sum(1 for word in title_words if word in content)
            if title_matches:
                score += title_matches * TITLE_WORD_WEIGHT
                reasons.append("Matches project title terms")

            material_matches = sum(1 for m in project_context.materials if m.lower() in content)
            if material_matches:
                score += material_matches * MATERIAL_WEIGHT
                reasons.append("Mentions project materials")

            focus_matches = sum(1 for a in project_context.focus_areas if a.lower() in content)
            if focus_matches:
                score += focus_matches * FOCUS_AREA_WEIGHT
                reasons.append("Matches project focus areas")

        diy_matches = sum(1 for term in DIY_TERMS if term in content)
        if diy_matches:
            score += diy_matches * DIY_TERM_WEIGHT
            reasons.append("Contains DIY-related terms")

        resource_type = ResourceType(resource_type)
        type_matches = sum(1 for term in RESOURCE_TERMS.get(resource_type, ()) if term in content)
        if type_matches:
            score += type_matches * RESOURCE_TERM_WEIGHT
            reasons.append(f"Relevant to {resource_type.value} search")

        unrelated_matches = sum(1 for pattern in _UNRELATED_PATTERNS if pattern.search(content))
        if unrelated_matches:
            score -= unrelated_matches * UNRELATED_TERM_PENALTY
            reasons.append("Contains unrelated terms")

        min_score = self._thresholds.get("relevant_min_score", RELEVANT_MIN_SCORE)
        min_ratio = self._thresholds.get("relevant_min_ratio", RELEVANT_MIN_RATIO)
        is_relevant = score >= min_score and query_ratio > min_ratio

        return RelevanceResult(
            is_relevant=is_relevant, relevance_score=max(0.0, score), reasons=reasons
        )

    def apply(
        self,
        result: DIYSearchResult,
        project_context: ProjectContext | None,
        original_query: str,
        resource_type: ResourceType,
    ) -> tuple[DIYSearchResult, bool]:
        """Validate and return the result annotated with its relevance fields."""
        verdict = self.validate(result, project_context, original_query, resource_type)
        annotated = result.with_validation(
            verdict.relevance_score, verdict.reasons, verdict.is_relevant
        )
        return annotated, verdict.is_relevant

    def _query_match_ratio(self, query: str, content: str) -> float:
        words = query.lower().split()
        significant = [word for word in words if len(word) > 3] or words
        if not significant:
            return 0.0
        matches = sum(1 for word in significant if word in content)
        return matches / len(significant)
