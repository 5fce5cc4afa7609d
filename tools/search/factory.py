"""Factory for creating the search provider and shared cache from environment configuration."""

from config.config import Config, ProviderType
from utils.logger import get_logger

from .cache import ResultCache
from .contracts import SearchProvider
from .exa_client import ExaSearchClient
from .tavily_client import TavilySearchClient

logger = get_logger(__name__)

# Singleton instances (process-shared)
_cache_instance: ResultCache | None = None
_provider_instance: SearchProvider | None = None


def get_result_cache(config: Config | None = None) -> ResultCache:
    """Return the process-wide result cache, creating it on first use."""
    global _cache_instance

    if _cache_instance is None:
        config = config or Config()
        _cache_instance = ResultCache(
            ttl_seconds=config.SEARCH_CACHE_TTL_SECONDS,
            max_entries=config.SEARCH_CACHE_MAX_ENTRIES,
            query_history_ttl_seconds=config.QUERY_HISTORY_TTL_SECONDS,
        )
    return _cache_instance


def create_search_provider_from_env(config: Config | None = None) -> SearchProvider:
    """
    Create the configured search provider.

    Environment variables:
        SEARCH_PROVIDER: "exa" (default) or "tavily"
        EXA_API_KEY / TAVILY_API_KEY: credential for the selected provider

    Returns:
        Process-shared SearchProvider instance

    Raises:
        ValueError: If the provider is unknown or its API key is not set
    """
    global _provider_instance

    if _provider_instance is not None:
        return _provider_instance

    config = config or Config()
    provider = config.SEARCH_PROVIDER

    if provider == ProviderType.EXA.value:
        if not config.EXA_API_KEY:
            raise ValueError("EXA_API_KEY not set in environment")
        logger.info("Using Exa for neural search")
        _provider_instance = ExaSearchClient(api_key=config.EXA_API_KEY)
    elif provider == ProviderType.TAVILY.value:
        if not config.TAVILY_API_KEY:
            raise ValueError("TAVILY_API_KEY not set in environment")
        logger.info("Using Tavily for web search")
        _provider_instance = TavilySearchClient(api_key=config.TAVILY_API_KEY)
    else:
        raise ValueError(f"Unsupported SEARCH_PROVIDER: {provider}")

    return _provider_instance
