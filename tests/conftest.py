import asyncio
import re
import zlib

import pytest
from dotenv import load_dotenv

from models.search_result import DIYSearchResult
from models.search_types import ContentType, VisualQuality
from orchestrator.core import SearchOrchestrator
from tools.search.cache import ResultCache
from tools.search.contracts import ProviderSearchConfig, RawCandidate
from utils.metrics import MetricsRecorder

# Load environment variables from .env file for tests
load_dotenv()


def _slug(text: str) -> str:
    prefix = re.sub(r"[^a-z0-9]+", "-", text.lower()).strip("-")[:30]
    return f"{prefix}-{zlib.crc32(text.encode('utf-8')):08x}"


class FakeProvider:
    """
    Fake search provider.

    By default every query gets its own set of DIY-looking candidates so
    different strategies return different URLs.
    """

    def __init__(self, candidates_fn=None, delay_s: float = 0.0, error: Exception | None = None):
        self.candidates_fn = candidates_fn or self.default_candidates
        self.delay_s = delay_s
        self.error = error
        self.calls: list[tuple[str, ProviderSearchConfig]] = []
        self.similar_calls: list[tuple[str, ProviderSearchConfig]] = []

    @staticmethod
    def default_candidates(query: str, config: ProviderSearchConfig) -> list[RawCandidate]:
        slug = _slug(query)
        return [
            RawCandidate(
                url=f"https://www.familyhandyman.com/{slug}-{i}",
                title=f"How to Fix a Leaky Faucet Part {i}",
                text="Shut off the water supply, remove the handle and replace the worn washer.",
                score=0.8 - i * 0.01,
            )
            for i in range(config.num_results)
        ]

    async def search(self, query: str, config: ProviderSearchConfig) -> list[RawCandidate]:
        self.calls.append((query, config))
        if self.delay_s:
            await asyncio.sleep(self.delay_s)
        if self.error is not None:
            raise self.error
        return self.candidates_fn(query, config)

    async def find_similar(self, url: str, config: ProviderSearchConfig) -> list[RawCandidate]:
        self.similar_calls.append((url, config))
        if self.error is not None:
            raise self.error
        return self.candidates_fn(url, config)


class FakeClock:
    def __init__(self, start: float = 1_000_000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture
def fake_provider():
    return FakeProvider()


@pytest.fixture
def provider_factory():
    return FakeProvider


@pytest.fixture
def fake_clock():
    return FakeClock()


@pytest.fixture
def orchestrator_factory():
    def _make(provider=None, **kwargs):
        provider = provider or FakeProvider()
        kwargs.setdefault("cache", ResultCache())
        kwargs.setdefault("metrics", MetricsRecorder())
        return SearchOrchestrator(provider=provider, **kwargs)

    return _make


@pytest.fixture
def make_result():
    def _make(url: str, **overrides) -> DIYSearchResult:
        values = dict(
            title="How to Fix a Leaky Faucet",
            url=url,
            snippet="Replace the worn washer to stop the drip.",
            source="Family Handyman",
            tags=["tutorial"],
            is_youtube=False,
            score=0.5,
            content_type=ContentType.ARTICLE,
            visual_quality=VisualQuality.LOW,
        )
        values.update(overrides)
        return DIYSearchResult(**values)

    return _make


@pytest.fixture
def mock_env(monkeypatch):
    """Fixture to mock environment variables for testing."""
    env_vars = {
        "SEARCH_PROVIDER": "exa",
        "EXA_API_KEY": "test-exa-key",
        "SEARCH_HISTORY_ENABLED": "false",
    }
    for key, value in env_vars.items():
        monkeypatch.setenv(key, value)
    return env_vars
