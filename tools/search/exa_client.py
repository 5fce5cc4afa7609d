"""Exa neural search client.

Exa returns page text alongside each hit, which the content classifier and
relevance validator rely on. The SDK is synchronous, so calls run in the
default executor.
"""

import asyncio
import os
from typing import Any

from utils.logger import get_logger

from .contracts import ProviderSearchConfig, RawCandidate

logger = get_logger(__name__)


class ExaSearchClient:
    """Async adapter over the ``exa_py`` SDK implementing ``SearchProvider``."""

    def __init__(self, api_key: str | None = None):
        """
        Initialize Exa client.

        Args:
            api_key: Exa API key (defaults to EXA_API_KEY env var)
        """
        self.api_key = api_key or os.getenv("EXA_API_KEY")

        if not self.api_key:
            raise ValueError("EXA_API_KEY not found in environment")

        try:
            from exa_py import Exa
        except ModuleNotFoundError as e:
            raise ModuleNotFoundError(
                "Optional dependency 'exa_py' is not installed. "
                "Install it to enable Exa search: pip install exa-py"
            ) from e

        self.client = Exa(api_key=self.api_key)
        logger.info("Exa client initialized")

    @staticmethod
    def _text_options(config: ProviderSearchConfig) -> dict[str, Any]:
        return {
            "max_characters": config.max_characters,
            "include_html_tags": config.include_html_tags,
        }

    @staticmethod
    def _to_candidates(response: Any) -> list[RawCandidate]:
        candidates = []
        for result in getattr(response, "results", None) or []:
            url = getattr(result, "url", None)
            if not url:
                continue
            highlights = getattr(result, "highlights", None) or []
            candidates.append(
                RawCandidate(
                    url=url,
                    title=getattr(result, "title", None),
                    text=getattr(result, "text", None),
                    snippet=highlights[0] if highlights else None,
                    published_date=getattr(result, "published_date", None),
                    score=getattr(result, "score", None),
                )
            )
        return candidates

    async def search(self, query: str, config: ProviderSearchConfig) -> list[RawCandidate]:
        """
        Search Exa and return raw candidates with page text.

        Autoprompt maps onto Exa's ``auto`` search type, which lets Exa
        rewrite the query itself. Errors propagate to the caller.
        """
        kwargs: dict[str, Any] = {
            "num_results": config.num_results,
            "type": "auto" if config.use_autoprompt else config.search_type,
            "text": self._text_options(config),
        }
        if config.include_domains:
            kwargs["include_domains"] = list(config.include_domains)

        logger.info(
            f"Exa search: '{query}'",
            extra={"extra_fields": {"num_results": config.num_results, "type": kwargs["type"]}},
        )

        loop = asyncio.get_running_loop()
        response = await loop.run_in_executor(
            None, lambda: self.client.search_and_contents(query, **kwargs)
        )
        candidates = self._to_candidates(response)
        logger.info(f"Exa returned {len(candidates)} results")
        return candidates

    async def find_similar(self, url: str, config: ProviderSearchConfig) -> list[RawCandidate]:
        """Return pages similar to ``url``. Errors propagate to the caller."""
        kwargs: dict[str, Any] = {
            "num_results": config.num_results,
            "text": self._text_options(config),
            "exclude_source_domain": config.exclude_source_domain,
        }
        if config.include_domains:
            kwargs["include_domains"] = list(config.include_domains)

        logger.info(f"Exa find_similar: '{url}'")

        loop = asyncio.get_running_loop()
        response = await loop.run_in_executor(
            None, lambda: self.client.find_similar_and_contents(url, **kwargs)
        )
        candidates = self._to_candidates(response)
        logger.info(f"Exa find_similar returned {len(candidates)} results")
        return candidates
