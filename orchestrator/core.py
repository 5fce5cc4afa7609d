"""
SearchOrchestrator - Core business logic layer for the DIY resource search engine.

Key guarantees:
- CLI layers stay thin (no provider SDK imports there)
- No exceptions bubble up from search() / find_similar_content()
- MetricsRecorder updates happen here (business layer)
"""

import asyncio
import concurrent.futures
import hashlib
import math
import time
from typing import Any

from config.config import Config
from models.search_result import DIYSearchResult, SearchResponse
from models.search_types import ContentType, ProjectContext, ResourceType, SearchOptions
from orchestrator.backup_strategies import BackupStrategyRunner
from orchestrator.content_classifier import ContentClassifier
from orchestrator.deduplicator import RequestDeduplicator
from orchestrator.prefilter import DIY_DOMAINS, PreFilter
from orchestrator.query_builder import (
    build_contextual_query,
    build_visual_query,
    generate_search_suggestion,
    get_search_config,
    simplify_query,
    strategy_search_config,
)
from orchestrator.query_optimizer import QueryOptimizer
from orchestrator.relevance_validator import RelevanceValidator
from orchestrator.result_balancer import ResultBalancer, relevance_boost
from tools.search.cache import ResultCache
from tools.search.contracts import ProviderSearchConfig, SearchHistoryWriter, SearchProvider
from tools.search.factory import create_search_provider_from_env, get_result_cache
from utils.logger import get_logger
from utils.metrics import MetricsRecorder

logger = get_logger(__name__)

PARALLEL_MIN_RESULTS = 3
MAIN_STRATEGY_SHARE = 0.6
SIMPLIFIED_STRATEGY_SHARE = 0.4
VISUAL_STRATEGY_SHARE = 0.3
SIMPLIFY_MIN_QUERY_LENGTH = 20
RELEVANT_SHARE = 0.7
BACKUP_TRIGGER_SHARE = 0.5
SIMILAR_CONTENT_RESULTS = 5


def project_id_for(project_context: ProjectContext | None) -> str | None:
    """Short stable identifier for a project, derived from its title."""
    if not project_context or not project_context.title:
        return None
    return hashlib.sha256(project_context.title.encode("utf-8")).hexdigest()[:8]


def merge_by_url(*result_lists: list[DIYSearchResult]) -> list[DIYSearchResult]:
    """Concatenate result lists keeping the first occurrence of each URL."""
    merged: list[DIYSearchResult] = []
    seen: set[str] = set()
    for results in result_lists:
        for result in results:
            if result.url not in seen:
                seen.add(result.url)
                merged.append(result)
    return merged


class SearchOrchestrator:
    def __init__(
        self,
        provider: SearchProvider,
        cache: ResultCache | None = None,
        deduplicator: RequestDeduplicator | None = None,
        metrics: MetricsRecorder | None = None,
        history: SearchHistoryWriter | None = None,
        optimizer: QueryOptimizer | None = None,
        prefilter: PreFilter | None = None,
        classifier: ContentClassifier | None = None,
        validator: RelevanceValidator | None = None,
        balancer: ResultBalancer | None = None,
        backup: BackupStrategyRunner | None = None,
    ):
        self._provider = provider
        self._cache = cache or ResultCache()
        self._deduplicator = deduplicator or RequestDeduplicator()
        self._metrics = metrics or MetricsRecorder()
        self._history = history
        self._optimizer = optimizer or QueryOptimizer()
        self._prefilter = prefilter or PreFilter(self._metrics)
        self._classifier = classifier or ContentClassifier()
        self._validator = validator or RelevanceValidator()
        self._balancer = balancer or ResultBalancer()
        self._backup = backup or BackupStrategyRunner()

    @property
    def cache(self) -> ResultCache:
        return self._cache

    @property
    def metrics(self) -> MetricsRecorder:
        return self._metrics

    @property
    def optimizer(self) -> QueryOptimizer:
        return self._optimizer

    # ------------------------------------------------------------------
    # Upstream calls
    # ------------------------------------------------------------------

    async def _search_and_process(
        self,
        query: str,
        config: ProviderSearchConfig,
        resource_type: ResourceType,
        content_type: ContentType,
    ) -> list[DIYSearchResult]:
        """Provider call, pre-filter, then processing. Provider errors propagate."""
        candidates = await self._provider.search(query, config)
        if not candidates:
            return []

        kept = self._prefilter.filter(candidates, query, resource_type, content_type)
        processed = (self._classifier.process(candidate, resource_type) for candidate in kept)
        return [result for result in processed if result is not None]

    async def perform_single_search(
        self,
        query: str,
        resource_type: ResourceType,
        content_type: ContentType,
        num_results: int,
    ) -> list[DIYSearchResult]:
        """
        One strategy search returning at most ``num_results`` processed results.

        Asks the provider for twice as many to leave room for filtering.
        Failures are logged and degrade to an empty list.
        """
        try:
            results = await self._search_and_process(
                query, strategy_search_config(num_results), resource_type, content_type
            )
            return results[:num_results]
        except Exception as e:
            logger.error(
                f"Single search failed for \"{query}\": {e}",
                exc_info=True,
                extra={"extra_fields": {"query": query, "error_type": type(e).__name__}},
            )
            return []

    async def _safe_strategy(self, name: str, coro: Any) -> list[DIYSearchResult]:
        try:
            return await coro
        except Exception as e:
            logger.error(
                f"{name} search failed: {e}",
                extra={"extra_fields": {"strategy": name, "error": str(e)}},
            )
            return []

    async def _execute_parallel_searches(
        self,
        options: SearchOptions,
        optimized_query: str,
        contextual_query: str,
    ) -> list[DIYSearchResult]:
        resource_type = options.resource_type
        content_type = options.content_type
        n = options.num_results
        start = time.perf_counter()

        strategies = [
            (
                "Main",
                self.perform_single_search(
                    contextual_query, resource_type, content_type, math.ceil(n * MAIN_STRATEGY_SHARE)
                ),
            )
        ]

        if len(contextual_query) > SIMPLIFY_MIN_QUERY_LENGTH:
            simplified = simplify_query(contextual_query, resource_type, options.project_context)
            if simplified != contextual_query:
                strategies.append(
                    (
                        "Simplified",
                        self.perform_single_search(
                            simplified,
                            resource_type,
                            content_type,
                            math.ceil(n * SIMPLIFIED_STRATEGY_SHARE),
                        ),
                    )
                )

        if content_type == ContentType.VISUAL and resource_type == ResourceType.INSPIRATION:
            visual_query = build_visual_query(optimized_query, options.project_context)
            strategies.append(
                (
                    "Visual",
                    self.perform_single_search(
                        visual_query,
                        resource_type,
                        content_type,
                        math.ceil(n * VISUAL_STRATEGY_SHARE),
                    ),
                )
            )

        # Run all concurrently - no return_exceptions since _safe_strategy handles errors
        results = await asyncio.gather(
            *(self._safe_strategy(name, coro) for name, coro in strategies)
        )
        merged = merge_by_url(*results)

        elapsed_ms = int((time.perf_counter() - start) * 1000)
        logger.info(
            f"Parallel searches completed in {elapsed_ms}ms, found {len(merged)} unique results",
            extra={"extra_fields": {"strategies": len(strategies), "unique_results": len(merged)}},
        )
        return merged

    async def _execute_search(
        self,
        options: SearchOptions,
        optimized_query: str,
        contextual_query: str,
    ) -> list[DIYSearchResult]:
        if options.num_results >= PARALLEL_MIN_RESULTS:
            return await self._execute_parallel_searches(options, optimized_query, contextual_query)

        config = get_search_config(options.resource_type, options.content_type, options.num_results)
        logger.info(f"Direct search query: \"{contextual_query}\"")
        return await self._search_and_process(
            contextual_query, config, options.resource_type, options.content_type
        )

    # ------------------------------------------------------------------
    # Public operations
    # ------------------------------------------------------------------

    async def search(self, options: SearchOptions) -> SearchResponse:
        """
        Run a full search: cache, optimization, deduplicated fan-out,
        validation, backup escalation, balancing.

        Never raises; failures come back as ``SearchResponse(success=False)``.
        """
        query = options.query
        resource_type = options.resource_type
        content_type = options.content_type
        n = options.num_results
        project_context = options.project_context
        start = time.perf_counter()
        optimized_query = query

        try:
            logger.info(
                f"Searching for {resource_type.value} resources ({content_type.value}): \"{query}\"",
                extra={"extra_fields": {"num_results": n}},
            )
            self._cache.track_query(query)
            optimized_query = self._optimizer.optimize(
                query, resource_type, content_type, project_context
            )
            was_optimized = optimized_query != query

            project_id = project_id_for(project_context)
            cached = self._cache.get(query, resource_type.value, content_type.value, project_id)
            if cached is not None and len(cached) >= n:
                links = cached[:n]
                elapsed_ms = (time.perf_counter() - start) * 1000
                self._metrics.record_search(elapsed_ms, was_optimized, from_cache=True)
                return SearchResponse(
                    success=True,
                    message=f"Found {len(links)} cached {resource_type.value} resources for \"{query}\"",
                    links=links,
                    from_cache=True,
                )

            contextual_query = build_contextual_query(
                optimized_query, resource_type, project_context, content_type
            )
            dedup_key = f"{optimized_query}:{resource_type.value}:{content_type.value}:{n}"
            search_results = await self._deduplicator.dedupe(
                dedup_key,
                lambda: self._execute_search(options, optimized_query, contextual_query),
            )

            if not search_results:
                return SearchResponse(
                    success=False,
                    message=(
                        f"No {resource_type.value} resources found for \"{query}\". "
                        "Try a more specific search term."
                    ),
                    links=[],
                    search_suggestion=generate_search_suggestion(query, resource_type),
                )

            validated = [
                self._validator.apply(result, project_context, query, resource_type)
                for result in search_results
            ]
            relevant = [result for result, ok in validated if ok]
            not_relevant = [result for result, ok in validated if not ok]
            logger.info(f"Validation: {len(validated)} total, {len(relevant)} relevant")

            if len(relevant) >= math.ceil(n * RELEVANT_SHARE):
                final_results = relevant
            else:
                final_results = relevant + not_relevant[: max(0, n - len(relevant))]

            if len(final_results) < math.ceil(n * BACKUP_TRIGGER_SHARE):
                logger.info(
                    f"Insufficient results ({len(final_results)}), trying backup strategies"
                )
                backup_results = await self._backup.run(
                    self.perform_single_search,
                    contextual_query,
                    resource_type,
                    content_type,
                    project_context,
                )
                existing = {result.url for result in final_results}
                final_results = final_results + [
                    self._validator.apply(result, project_context, query, resource_type)[0]
                    for result in backup_results
                    if result.url not in existing
                ]

            balanced = self._balancer.balance(
                final_results, content_type, n, project_context, resource_type
            )

            elapsed_ms = (time.perf_counter() - start) * 1000
            if balanced:
                self._cache.set(
                    query,
                    resource_type.value,
                    content_type.value,
                    balanced,
                    metadata={
                        "search_time_ms": int(elapsed_ms),
                        "total_results": len(search_results),
                        "relevant_results": len(relevant),
                    },
                    project_id=project_id,
                )

            self._metrics.record_search(elapsed_ms, was_optimized, from_cache=False)
            logger.info(
                f"Search completed in {elapsed_ms:.0f}ms, returning {len(balanced)} results",
                extra={"extra_fields": {"query": query, "result_count": len(balanced)}},
            )

            if balanced:
                await self._record_history(options, len(balanced), project_id)

            return SearchResponse(
                success=True,
                message=(
                    f"Found {len(balanced)} high-quality {resource_type.value} resources for \"{query}\""
                ),
                links=balanced,
                search_suggestion=(
                    generate_search_suggestion(query, resource_type) if len(balanced) < n else None
                ),
            )

        except Exception as e:
            elapsed_ms = (time.perf_counter() - start) * 1000
            logger.error(
                f"Search error: {e}",
                exc_info=True,
                extra={"extra_fields": {"query": query, "error_type": type(e).__name__}},
            )
            self._metrics.record_search(
                elapsed_ms, optimized_query != query, from_cache=False, error=True
            )
            return SearchResponse(
                success=False,
                message=(
                    "Search temporarily unavailable. Try searching directly on YouTube "
                    f"or DIY websites for \"{query}\"."
                ),
                links=[],
            )

    async def find_similar_content(
        self, url: str, project_context: ProjectContext | None = None
    ) -> SearchResponse:
        """Pages similar to ``url`` on trusted DIY domains, boosted by project similarity."""
        try:
            logger.info(f"Finding similar content to: {url}")
            config = ProviderSearchConfig(
                num_results=SIMILAR_CONTENT_RESULTS,
                include_domains=list(DIY_DOMAINS),
                exclude_source_domain=False,
            )
            candidates = await self._provider.find_similar(url, config)

            if not candidates:
                return SearchResponse(success=False, message="No similar content found.", links=[])

            processed = [
                result
                for result in (
                    self._classifier.process(candidate, ResourceType.INSPIRATION)
                    for candidate in candidates
                )
                if result is not None
            ]
            processed.sort(
                key=lambda r: r.score * relevance_boost(r, project_context), reverse=True
            )

            return SearchResponse(
                success=True,
                message=f"Found {len(processed)} similar DIY resources",
                links=processed,
            )

        except Exception as e:
            logger.error(f"Find similar error: {e}", exc_info=True)
            return SearchResponse(
                success=False, message="Unable to find similar content at the moment.", links=[]
            )

    def get_performance_report(self) -> dict[str, Any]:
        return self._metrics.get_detailed_report(self._cache.get_stats())

    async def _record_history(
        self, options: SearchOptions, result_count: int, project_id: str | None
    ) -> None:
        if self._history is None:
            return
        # Blocking database write; keep it off the event loop
        loop = asyncio.get_running_loop()
        try:
            await loop.run_in_executor(
                None,
                lambda: self._history.record_search(
                    query=options.query,
                    resource_type=options.resource_type.value,
                    content_type=options.content_type.value,
                    result_count=result_count,
                    project_id=project_id,
                    project_title=options.project_context.title if options.project_context else None,
                ),
            )
        except Exception as e:
            logger.warning(
                f"Failed to record search history: {e}",
                extra={"extra_fields": {"query": options.query, "error_type": type(e).__name__}},
            )

    # ------------------------------------------------------------------
    # Sync wrappers
    # ------------------------------------------------------------------

    def search_sync(self, options: SearchOptions) -> SearchResponse:
        """
        Synchronous wrapper for search.

        Handles the case where an event loop is already running by
        executing in a separate thread with its own loop.
        """
        try:
            # Check if loop is already running
            asyncio.get_running_loop()
            # Loop is running - execute in separate thread
            return self._run_in_new_thread(options)
        except RuntimeError:
            # No running loop - use asyncio.run directly
            return asyncio.run(self.search(options))

    def _run_in_new_thread(self, options: SearchOptions) -> SearchResponse:
        with concurrent.futures.ThreadPoolExecutor(max_workers=1) as executor:
            future = executor.submit(asyncio.run, self.search(options))
            return future.result()


def create_orchestrator_from_env(config: Config | None = None) -> SearchOrchestrator:
    """
    Wire a SearchOrchestrator from environment configuration.

    Raises:
        ValueError: If the selected provider has no API key
    """
    config = config or Config()
    metrics = MetricsRecorder(slow_search_threshold_ms=config.SLOW_SEARCH_THRESHOLD_MS)

    history = None
    if config.SEARCH_HISTORY_ENABLED:
        from db.history_store import SearchHistoryStore

        history = SearchHistoryStore()

    return SearchOrchestrator(
        provider=create_search_provider_from_env(config),
        cache=get_result_cache(config),
        deduplicator=RequestDeduplicator(
            ttl_seconds=config.DEDUP_TTL_SECONDS, max_entries=config.DEDUP_MAX_ENTRIES
        ),
        metrics=metrics,
        history=history,
    )
