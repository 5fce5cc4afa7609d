import os
from enum import Enum
from pathlib import Path

from dotenv import load_dotenv

from utils.logger import get_logger

logger = get_logger(__name__)


class ProviderType(Enum):
    """Supported upstream search providers."""
    EXA = "exa"
    TAVILY = "tavily"


class Config:
    """Configuration management for the search engine."""

    def __init__(self):
        """Initialize configuration from the environment (and .env if present)."""
        env_path = Path(__file__).parent.parent / '.env'
        if env_path.exists():
            load_dotenv(dotenv_path=env_path)

        # Upstream provider
        self.SEARCH_PROVIDER = os.getenv('SEARCH_PROVIDER', ProviderType.EXA.value).lower()
        self.EXA_API_KEY = os.getenv('EXA_API_KEY')
        self.TAVILY_API_KEY = os.getenv('TAVILY_API_KEY')

        # Result cache and query analytics
        self.SEARCH_CACHE_TTL_SECONDS = int(os.getenv('SEARCH_CACHE_TTL_SECONDS', '1800'))
        self.SEARCH_CACHE_MAX_ENTRIES = int(os.getenv('SEARCH_CACHE_MAX_ENTRIES', '1000'))
        self.QUERY_HISTORY_TTL_SECONDS = int(os.getenv('QUERY_HISTORY_TTL_SECONDS', '3600'))

        # In-flight request deduplication
        self.DEDUP_TTL_SECONDS = float(os.getenv('DEDUP_TTL_SECONDS', '300'))
        self.DEDUP_MAX_ENTRIES = int(os.getenv('DEDUP_MAX_ENTRIES', '100'))

        # Metrics
        self.SLOW_SEARCH_THRESHOLD_MS = int(os.getenv('SLOW_SEARCH_THRESHOLD_MS', '3000'))

        # Search history store
        self.SEARCH_HISTORY_ENABLED = os.getenv('SEARCH_HISTORY_ENABLED', 'true').lower() == 'true'
        self.HISTORY_DATABASE_URL = os.getenv(
            'HISTORY_DATABASE_URL', 'sqlite+pysqlite:///search_history.db'
        )

    @property
    def provider_api_key(self) -> str | None:
        if self.SEARCH_PROVIDER == ProviderType.TAVILY.value:
            return self.TAVILY_API_KEY
        return self.EXA_API_KEY

    def validate(self) -> bool:
        """
        Validate that the selected provider is known and has a credential.

        Returns:
            bool: True if configuration is valid, False otherwise
        """
        valid_providers = [p.value for p in ProviderType]
        if self.SEARCH_PROVIDER not in valid_providers:
            logger.error(
                f"Unknown SEARCH_PROVIDER '{self.SEARCH_PROVIDER}'. "
                f"Must be one of: {', '.join(valid_providers)}"
            )
            return False

        if not self.provider_api_key:
            key_name = f"{self.SEARCH_PROVIDER.upper()}_API_KEY"
            logger.error(f"{key_name} is not set. Please set it in the .env file.")
            return False

        return True

    def get_provider_info(self) -> str:
        if self.SEARCH_PROVIDER == ProviderType.EXA.value:
            return "Exa (neural search)"
        if self.SEARCH_PROVIDER == ProviderType.TAVILY.value:
            return "Tavily (web search)"
        return "Unknown"
