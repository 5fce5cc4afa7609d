"""Tavily API client used as an alternative search provider.

Tavily handles JavaScript rendering and content extraction, so its
``content`` field stands in for page text.
"""

import asyncio
import os
from typing import Any

from utils.logger import get_logger

from .contracts import ProviderSearchConfig, RawCandidate, UnsupportedOperationError

logger = get_logger(__name__)

TAVILY_MAX_RESULTS = 20


class TavilySearchClient:
    """Async adapter over the ``tavily`` SDK implementing ``SearchProvider``."""

    def __init__(self, api_key: str | None = None, search_depth: str = "advanced"):
        """
        Initialize Tavily client.

        Args:
            api_key: Tavily API key (defaults to TAVILY_API_KEY env var)
            search_depth: "basic" (faster) or "advanced" (deeper, recommended)
        """
        self.api_key = api_key or os.getenv("TAVILY_API_KEY")
        self.search_depth = search_depth

        if not self.api_key:
            raise ValueError("TAVILY_API_KEY not found in environment")

        # Lazy import so tests don't require tavily unless the provider is selected
        try:
            from tavily import TavilyClient
        except ModuleNotFoundError as e:
            raise ModuleNotFoundError(
                "Optional dependency 'tavily' is not installed. "
                "Install it to enable Tavily search: pip install tavily-python"
            ) from e

        self.client = TavilyClient(api_key=self.api_key)
        logger.info("Tavily client initialized")

    async def search(self, query: str, config: ProviderSearchConfig) -> list[RawCandidate]:
        """
        Search the web using Tavily API.

        Tavily has no autoprompt or neural mode; those options are ignored.
        Errors propagate to the caller.
        """
        max_results = min(config.num_results, TAVILY_MAX_RESULTS)
        kwargs: dict[str, Any] = {
            "query": query,
            "max_results": max_results,
            "search_depth": self.search_depth,
            "include_raw_content": False,
            "include_answer": False,
        }
        if config.include_domains:
            kwargs["include_domains"] = list(config.include_domains)

        logger.info(f"Tavily search: '{query}' (max_results={max_results}, depth={self.search_depth})")

        loop = asyncio.get_running_loop()
        response = await loop.run_in_executor(None, lambda: self.client.search(**kwargs))

        candidates = []
        for result in response.get("results", []):
            url = result.get("url")
            if not url:
                continue
            content = result.get("content") or ""
            candidates.append(
                RawCandidate(
                    url=url,
                    title=result.get("title"),
                    text=content[: config.max_characters],
                    snippet=content[:300] or None,
                    published_date=result.get("published_date"),
                    score=result.get("score"),
                )
            )

        logger.info(f"Tavily returned {len(candidates)} results")
        return candidates

    async def find_similar(self, url: str, config: ProviderSearchConfig) -> list[RawCandidate]:
        logger.warning(f"Similar-page lookup requested for {url}; Tavily has no equivalent")
        raise UnsupportedOperationError("Tavily", "similar-page lookup")
