"""
Tests for SearchOrchestrator: cache short-circuit, request deduplication,
failure payloads, history hook and the sync wrapper.
"""

import asyncio
import time
import zlib

import pytest

from models.search_types import ContentType, ProjectContext, ResourceType, SearchOptions
from orchestrator.core import merge_by_url, project_id_for
from orchestrator.deduplicator import RequestDeduplicator
from tools.search.contracts import RawCandidate, UnsupportedOperationError


class RecordingHistory:
    def __init__(self, should_error: bool = False, delay_s: float = 0.0):
        self.should_error = should_error
        self.delay_s = delay_s
        self.calls = []

    def record_search(self, **kwargs):
        if self.delay_s:
            time.sleep(self.delay_s)
        if self.should_error:
            raise RuntimeError("database is locked")
        self.calls.append(kwargs)


def _options(**overrides) -> SearchOptions:
    values = dict(query="fix leaky faucet", resource_type=ResourceType.TUTORIAL, num_results=5)
    values.update(overrides)
    return SearchOptions(**values)


@pytest.mark.unit
def test_search_returns_balanced_results(orchestrator_factory, fake_provider):
    orchestrator = orchestrator_factory(fake_provider)

    response = asyncio.run(orchestrator.search(_options()))

    assert response.success is True
    assert response.from_cache is False
    assert len(response.links) == 5
    assert len({link.url for link in response.links}) == 5
    assert all(link.is_validated for link in response.links)
    assert response.message == 'Found 5 high-quality tutorial resources for "fix leaky faucet"'
    assert response.search_suggestion is None


@pytest.mark.unit
def test_main_strategy_uses_contextual_query(orchestrator_factory, fake_provider):
    orchestrator = orchestrator_factory(fake_provider)

    asyncio.run(orchestrator.search(_options()))

    queries = [query for query, _ in fake_provider.calls]
    assert queries[0] == (
        "fix leaky faucet tutorial how to step by step guide instructions "
        "DIY project home improvement"
    )
    assert "fix leaky faucet tutorial how to step by step guide instructions" in queries
    assert all(config.use_autoprompt is False for _, config in fake_provider.calls)


@pytest.mark.unit
def test_repeat_search_is_served_from_cache(orchestrator_factory, fake_provider):
    orchestrator = orchestrator_factory(fake_provider)

    first = asyncio.run(orchestrator.search(_options()))
    calls_after_first = len(fake_provider.calls)
    second = asyncio.run(orchestrator.search(_options()))

    assert second.success is True
    assert second.from_cache is True
    assert [link.url for link in second.links] == [link.url for link in first.links]
    assert len(fake_provider.calls) == calls_after_first
    assert orchestrator.metrics.cache_hits == 1


@pytest.mark.unit
def test_cached_superset_is_truncated_without_provider_call(
    orchestrator_factory, fake_provider, make_result
):
    orchestrator = orchestrator_factory(fake_provider)
    stored = [make_result(f"https://www.bobvila.com/faucet-{i}") for i in range(6)]
    orchestrator.cache.set("fix leaky faucet", "tutorial", "mixed", stored)

    response = asyncio.run(orchestrator.search(_options(num_results=4)))

    assert response.from_cache is True
    assert response.links == stored[:4]
    assert response.message == 'Found 4 cached tutorial resources for "fix leaky faucet"'
    assert fake_provider.calls == []


@pytest.mark.unit
def test_cache_is_scoped_per_project(orchestrator_factory, fake_provider, make_result):
    orchestrator = orchestrator_factory(fake_provider)
    stored = [make_result(f"https://www.bobvila.com/faucet-{i}") for i in range(5)]
    orchestrator.cache.set("fix leaky faucet", "tutorial", "mixed", stored)

    project = ProjectContext(title="Bathroom Refresh")
    response = asyncio.run(orchestrator.search(_options(project_context=project)))

    assert response.from_cache is False
    assert fake_provider.calls


@pytest.mark.unit
def test_concurrent_identical_searches_share_upstream_calls(orchestrator_factory, provider_factory):
    single_provider = provider_factory(delay_s=0.01)
    asyncio.run(orchestrator_factory(single_provider).search(_options()))
    calls_for_one_search = len(single_provider.calls)

    shared_provider = provider_factory(delay_s=0.01)
    orchestrator = orchestrator_factory(shared_provider)

    async def run_pair():
        return await asyncio.gather(
            orchestrator.search(_options()), orchestrator.search(_options())
        )

    first, second = asyncio.run(run_pair())

    assert len(shared_provider.calls) == calls_for_one_search
    assert [link.url for link in first.links] == [link.url for link in second.links]


@pytest.mark.unit
def test_empty_upstream_returns_no_results_payload(orchestrator_factory, provider_factory):
    provider = provider_factory(error=RuntimeError("upstream 503"))
    orchestrator = orchestrator_factory(provider)

    response = asyncio.run(orchestrator.search(_options()))

    assert response.success is False
    assert response.links == []
    assert '"fix leaky faucet"' in response.message
    assert response.message.startswith("No tutorial resources found")
    assert response.search_suggestion is not None
    assert "fix leaky faucet" in response.search_suggestion


@pytest.mark.unit
def test_direct_path_failure_returns_unavailable_payload(orchestrator_factory, provider_factory):
    provider = provider_factory(error=RuntimeError("connection reset"))
    orchestrator = orchestrator_factory(provider)

    response = asyncio.run(orchestrator.search(_options(num_results=2)))

    assert response.success is False
    assert response.links == []
    assert response.message.startswith("Search temporarily unavailable")
    assert '"fix leaky faucet"' in response.message
    assert orchestrator.metrics.errors == 1


@pytest.mark.unit
def test_direct_path_uses_autoprompt_config(orchestrator_factory, fake_provider):
    orchestrator = orchestrator_factory(fake_provider)

    response = asyncio.run(orchestrator.search(_options(num_results=2)))

    assert response.success is True
    assert len(response.links) <= 2
    assert len(fake_provider.calls) == 1
    _, config = fake_provider.calls[0]
    assert config.use_autoprompt is True
    assert config.num_results == 4


@pytest.mark.unit
def test_history_hook_records_successful_search(orchestrator_factory, fake_provider):
    history = RecordingHistory()
    orchestrator = orchestrator_factory(fake_provider, history=history)
    project = ProjectContext(title="Bathroom Refresh", materials=["washer"])

    response = asyncio.run(orchestrator.search(_options(project_context=project)))

    assert response.success is True
    assert len(history.calls) == 1
    call = history.calls[0]
    assert call["query"] == "fix leaky faucet"
    assert call["resource_type"] == "tutorial"
    assert call["content_type"] == "mixed"
    assert call["result_count"] == len(response.links)
    assert call["project_id"] == project_id_for(project)
    assert call["project_title"] == "Bathroom Refresh"


@pytest.mark.unit
def test_history_failure_does_not_fail_search(orchestrator_factory, fake_provider):
    orchestrator = orchestrator_factory(fake_provider, history=RecordingHistory(should_error=True))

    response = asyncio.run(orchestrator.search(_options()))

    assert response.success is True
    assert len(response.links) == 5


@pytest.mark.unit
def test_slow_history_write_does_not_block_event_loop(orchestrator_factory, fake_provider):
    history = RecordingHistory(delay_s=0.3)
    orchestrator = orchestrator_factory(fake_provider, history=history)

    async def run():
        search_task = asyncio.create_task(orchestrator.search(_options()))
        max_gap = 0.0
        while not search_task.done():
            before = time.perf_counter()
            await asyncio.sleep(0.01)
            max_gap = max(max_gap, time.perf_counter() - before)
        return await search_task, max_gap

    response, max_gap = asyncio.run(run())

    assert response.success is True
    assert len(history.calls) == 1
    assert max_gap < 0.2


@pytest.mark.unit
def test_history_not_recorded_for_failed_search(orchestrator_factory, provider_factory):
    history = RecordingHistory()
    orchestrator = orchestrator_factory(provider_factory(error=RuntimeError("boom")), history=history)

    asyncio.run(orchestrator.search(_options()))

    assert history.calls == []


@pytest.mark.unit
def test_find_similar_content(orchestrator_factory, fake_provider):
    orchestrator = orchestrator_factory(fake_provider)

    response = asyncio.run(
        orchestrator.find_similar_content("https://www.familyhandyman.com/leaky-faucet")
    )

    assert response.success is True
    assert len(response.links) == 5
    assert response.message == "Found 5 similar DIY resources"
    url, config = fake_provider.similar_calls[0]
    assert url == "https://www.familyhandyman.com/leaky-faucet"
    assert config.num_results == 5
    assert "familyhandyman.com" in config.include_domains
    assert all("inspiration" in link.tags for link in response.links)


@pytest.mark.unit
def test_find_similar_content_without_candidates(orchestrator_factory, provider_factory):
    orchestrator = orchestrator_factory(provider_factory(candidates_fn=lambda url, config: []))

    response = asyncio.run(orchestrator.find_similar_content("https://example.com/post"))

    assert response.success is False
    assert response.message == "No similar content found."


@pytest.mark.unit
def test_find_similar_content_failure(orchestrator_factory, provider_factory):
    unsupported = UnsupportedOperationError("Tavily", "similar-page lookup")
    orchestrator = orchestrator_factory(provider_factory(error=unsupported))

    response = asyncio.run(orchestrator.find_similar_content("https://example.com/post"))

    assert response.success is False
    assert response.message == "Unable to find similar content at the moment."


@pytest.mark.unit
def test_search_sync_without_running_loop(orchestrator_factory, fake_provider):
    orchestrator = orchestrator_factory(fake_provider)

    response = orchestrator.search_sync(_options())

    assert response.success is True
    assert len(response.links) == 5


@pytest.mark.unit
def test_search_sync_inside_running_loop(orchestrator_factory, fake_provider):
    orchestrator = orchestrator_factory(fake_provider)

    async def call_from_loop():
        return orchestrator.search_sync(_options())

    response = asyncio.run(call_from_loop())

    assert response.success is True
    assert len(response.links) == 5


@pytest.mark.unit
def test_deduplicator_survives_separate_event_loops(orchestrator_factory, fake_provider):
    deduplicator = RequestDeduplicator()
    orchestrator = orchestrator_factory(fake_provider, deduplicator=deduplicator)

    orchestrator.search_sync(_options())
    orchestrator.cache.clear()
    response = orchestrator.search_sync(_options())

    assert response.success is True
    assert response.from_cache is False


@pytest.mark.unit
def test_performance_report_includes_cache_stats(orchestrator_factory, fake_provider):
    orchestrator = orchestrator_factory(fake_provider)
    asyncio.run(orchestrator.search(_options()))

    report = orchestrator.get_performance_report()

    assert report["metrics"]["search_count"] == 1
    assert report["cache"]["size"] == 1
    assert report["cache"]["query_history_size"] == 1
    assert sum(report["latency_distribution"].values()) == 1


@pytest.mark.unit
def test_video_request_puts_youtube_first(orchestrator_factory, provider_factory):
    def candidates(query, config):
        tag = f"{zlib.crc32(query.encode('utf-8')):08x}"
        interleaved = []
        for i in range(3):
            interleaved.append(
                RawCandidate(
                    url=f"https://www.familyhandyman.com/faucet-{tag}-{i}",
                    title=f"Leaky Faucet Tutorial {i}",
                    text="Replace the washer and reassemble the faucet.",
                    score=0.9,
                )
            )
            interleaved.append(
                RawCandidate(
                    url=f"https://www.youtube.com/watch?v={tag}{i}",
                    title=f"Leaky Faucet Repair Video Tutorial {i}",
                    text="Watch how to replace a cartridge in a single handle faucet.",
                    score=0.6,
                )
            )
        return interleaved

    orchestrator = orchestrator_factory(provider_factory(candidates_fn=candidates))

    response = asyncio.run(
        orchestrator.search(_options(num_results=3, content_type=ContentType.VIDEO))
    )

    assert response.success is True
    assert [link.is_youtube for link in response.links] == [True, True, False]
    assert response.links[0].video_id is not None
    assert response.links[0].thumbnail_url.startswith("https://img.youtube.com/vi/")


@pytest.mark.unit
def test_project_id_is_stable_and_short():
    project = ProjectContext(title="Backyard Deck")

    assert project_id_for(project) == project_id_for(ProjectContext(title="Backyard Deck"))
    assert len(project_id_for(project)) == 8
    assert project_id_for(None) is None


@pytest.mark.unit
def test_merge_by_url_keeps_first_occurrence(make_result):
    a = make_result("https://a.com/1", title="first")
    b = make_result("https://a.com/1", title="second")
    c = make_result("https://a.com/2")

    merged = merge_by_url([a], [b, c])

    assert [r.title for r in merged] == ["first", c.title]
