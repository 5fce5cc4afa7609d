"""Upstream search providers and result caching."""

from .cache import ResultCache
from .contracts import (
    ProviderSearchConfig,
    RawCandidate,
    SearchHistoryWriter,
    SearchProvider,
    UnsupportedOperationError,
)
from .factory import create_search_provider_from_env, get_result_cache

__all__ = [
    "ProviderSearchConfig",
    "RawCandidate",
    "ResultCache",
    "SearchHistoryWriter",
    "SearchProvider",
    "UnsupportedOperationError",
    "create_search_provider_from_env",
    "get_result_cache",
]
