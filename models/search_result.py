from dataclasses import asdict, dataclass, field, replace
from typing import Any

from models.search_types import ContentType, Difficulty, VisualQuality


@dataclass(frozen=True)
class DIYSearchResult:
    """
    A processed search hit, keyed by ``url``.

    Created once per upstream candidate. Validation adds relevance fields
    through ``with_validation`` which returns a new instance.
    """

    title: str
    url: str
    snippet: str
    source: str
    tags: list[str]
    is_youtube: bool
    score: float

    difficulty: Difficulty | None = None
    video_id: str | None = None
    published_date: str | None = None

    # content analysis
    content_type: ContentType = ContentType.ARTICLE
    visual_quality: VisualQuality = VisualQuality.LOW
    has_images: bool = False
    image_count: int = 0
    thumbnail_url: str | None = None
    content_length: int = 0
    language: str = "en"
    is_pinterest: bool = False
    is_gallery: bool = False
    has_before_after: bool = False

    # validation
    relevance_score: float | None = None
    validation_reasons: list[str] = field(default_factory=list)
    is_validated: bool | None = None

    def with_validation(
        self, relevance_score: float, reasons: list[str], is_relevant: bool
    ) -> "DIYSearchResult":
        return replace(
            self,
            relevance_score=relevance_score,
            validation_reasons=list(reasons),
            is_validated=is_relevant,
        )

    def to_dict(self) -> dict[str, Any]:
        data = asdict(self)
        data["content_type"] = self.content_type.value
        data["visual_quality"] = self.visual_quality.value
        data["difficulty"] = self.difficulty.value if self.difficulty else None
        return data

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "DIYSearchResult":
        values = dict(data)
        values["content_type"] = ContentType(values.get("content_type", "article"))
        values["visual_quality"] = VisualQuality(values.get("visual_quality", "low"))
        if values.get("difficulty"):
            values["difficulty"] = Difficulty(values["difficulty"])
        return cls(**values)


@dataclass(frozen=True)
class SearchResponse:
    success: bool
    message: str
    links: list[DIYSearchResult] = field(default_factory=list)
    search_suggestion: str | None = None
    from_cache: bool = False

    def to_dict(self) -> dict[str, Any]:
        return {
            "success": self.success,
            "message": self.message,
            "links": [link.to_dict() for link in self.links],
            "search_suggestion": self.search_suggestion,
            "from_cache": self.from_cache,
        }


@dataclass(frozen=True)
class BatchTiming:
    batch_start: int  # epoch ms
    batch_end: int  # epoch ms
    total_elapsed: int  # ms since the stream started


@dataclass(frozen=True)
class ProgressiveSearchResult:
    batch: int
    total_batches: int
    batch_size: int
    is_complete: bool
    results: list[DIYSearchResult]
    timing: BatchTiming
