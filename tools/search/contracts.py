"""Data contracts for the upstream search capability."""

from dataclasses import dataclass
from typing import Protocol


@dataclass(frozen=True)
class RawCandidate:
    """Unprocessed document returned by a search provider."""

    url: str
    title: str | None = None
    text: str | None = None
    snippet: str | None = None
    published_date: str | None = None
    score: float | None = None


@dataclass(frozen=True)
class ProviderSearchConfig:
    """Per-call options passed to a search provider."""

    num_results: int
    use_autoprompt: bool = False
    search_type: str = "neural"
    max_characters: int = 1500
    include_html_tags: bool = False
    include_domains: list[str] | None = None
    exclude_source_domain: bool = False


class UnsupportedOperationError(Exception):
    """Raised when a provider has no equivalent for a requested operation."""

    def __init__(self, provider: str, operation: str):
        super().__init__(f"{provider} does not support {operation}")
        self.provider = provider
        self.operation = operation


class SearchProvider(Protocol):
    """Anything that can answer a query (or a URL) with raw candidates."""

    async def search(self, query: str, config: ProviderSearchConfig) -> list[RawCandidate]: ...

    async def find_similar(self, url: str, config: ProviderSearchConfig) -> list[RawCandidate]: ...


class SearchHistoryWriter(Protocol):
    """Write-after-success hook for recording searches."""

    def record_search(
        self,
        query: str,
        resource_type: str,
        content_type: str,
        result_count: int,
        project_id: str | None = None,
        project_title: str | None = None,
    ) -> None: ...
