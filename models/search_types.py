from dataclasses import dataclass, field
from enum import Enum


class ResourceType(str, Enum):
    TUTORIAL = "tutorial"
    INSPIRATION = "inspiration"
    MATERIALS = "materials"


class ContentType(str, Enum):
    VIDEO = "video"
    VISUAL = "visual"
    ARTICLE = "article"
    MIXED = "mixed"


class VisualQuality(str, Enum):
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"


class Difficulty(str, Enum):
    BEGINNER = "Beginner"
    INTERMEDIATE = "Intermediate"
    ADVANCED = "Advanced"


@dataclass(frozen=True)
class ProjectContext:
    title: str
    goal: str | None = None
    description: str | None = None
    materials: list[str] = field(default_factory=list)
    focus_areas: list[str] = field(default_factory=list)


@dataclass(frozen=True)
class SearchOptions:
    """One caller request. Enum fields also accept their string values."""

    query: str
    resource_type: ResourceType
    num_results: int = 5
    content_type: ContentType = ContentType.MIXED
    progressive: bool = False
    project_context: ProjectContext | None = None

    def __post_init__(self):
        object.__setattr__(self, "resource_type", ResourceType(self.resource_type))
        object.__setattr__(self, "content_type", ContentType(self.content_type))
        if self.num_results < 1:
            raise ValueError(f"num_results must be >= 1, got {self.num_results}")
