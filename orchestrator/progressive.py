"""
ProgressiveDeliveryController - Batched delivery of search results.

Same pipeline as SearchOrchestrator.search, exposed as an async generator.
Guarantees for every stream:
- batches are pairwise disjoint by URL
- at most ``num_results`` results are delivered in total
- exactly one batch has ``is_complete=True`` and it is the last one
  (unless the consumer cancels first)
"""

import asyncio
import math
import time
from collections.abc import AsyncIterator

from models.search_result import BatchTiming, DIYSearchResult, ProgressiveSearchResult
from models.search_types import ContentType, SearchOptions
from orchestrator.core import SearchOrchestrator, project_id_for
from orchestrator.query_builder import (
    build_basic_query,
    build_contextual_query,
    build_visual_query,
    simplify_query,
)
from utils.logger import get_logger

logger = get_logger(__name__)

MIN_BATCH_SIZE = 2
TARGET_BATCHES = 3
MAX_FOLLOWUP_STRATEGIES = 3


def _now_ms() -> int:
    return int(time.time() * 1000)


class ProgressiveDeliveryController:
    def __init__(self, orchestrator: SearchOrchestrator):
        self._orchestrator = orchestrator

    @staticmethod
    def plan_batches(num_results: int) -> tuple[int, int]:
        """Return (batch_size, total_batches), aiming for three batches of at least two."""
        batch_size = max(MIN_BATCH_SIZE, math.ceil(num_results / TARGET_BATCHES))
        return batch_size, math.ceil(num_results / batch_size)

    async def stream(
        self, options: SearchOptions, cancel_event: asyncio.Event | None = None
    ) -> AsyncIterator[ProgressiveSearchResult]:
        """
        Yield result batches for ``options``.

        Cancellation is cooperative: set ``cancel_event`` (or stop iterating)
        and no further batches are produced. Upstream calls already issued
        are not interrupted.
        """
        orchestrator = self._orchestrator
        query = options.query
        resource_type = options.resource_type
        content_type = options.content_type
        n = options.num_results
        project_context = options.project_context
        stream_start = _now_ms()

        def batch_result(
            batch: int, total: int, results: list[DIYSearchResult], complete: bool, started: int
        ) -> ProgressiveSearchResult:
            end = _now_ms()
            return ProgressiveSearchResult(
                batch=batch,
                total_batches=total,
                batch_size=len(results),
                is_complete=complete,
                results=results,
                timing=BatchTiming(
                    batch_start=started, batch_end=end, total_elapsed=end - stream_start
                ),
            )

        def cancelled() -> bool:
            return cancel_event is not None and cancel_event.is_set()

        logger.info(f"Starting progressive search for {resource_type.value} resources: \"{query}\"")
        orchestrator.cache.track_query(query)
        orchestrator.metrics.record_progressive_search()

        optimized_query = orchestrator.optimizer.optimize(
            query, resource_type, content_type, project_context
        )
        project_id = project_id_for(project_context)

        cached = orchestrator.cache.get(query, resource_type.value, content_type.value, project_id)
        if cached is not None and len(cached) >= n:
            yield batch_result(1, 1, cached[:n], True, stream_start)
            return

        contextual_query = build_contextual_query(
            optimized_query, resource_type, project_context, content_type
        )
        batch_size, total_batches = self.plan_batches(n)
        logger.info(f"Progressive loading: {total_batches} batches of ~{batch_size} results each")

        collected: list[DIYSearchResult] = []
        seen: set[str] = set()
        batch_number = 0
        completed = False

        def take_new(results: list[DIYSearchResult], limit: int) -> list[DIYSearchResult]:
            fresh = []
            for result in results:
                if len(fresh) >= limit:
                    break
                if result.url not in seen:
                    seen.add(result.url)
                    fresh.append(result)
            return fresh

        try:
            batch_number += 1
            started = _now_ms()
            initial = await orchestrator.perform_single_search(
                contextual_query, resource_type, content_type, batch_size * 2
            )
            first = take_new(initial, min(batch_size, n))
            collected.extend(first)
            completed = total_batches == 1 or len(collected) >= n
            yield batch_result(batch_number, total_batches, first, completed, started)

            if not completed and not cancelled():
                remaining_batches = total_batches - batch_number
                followups = await self._followup_searches(
                    options, optimized_query, n - len(collected), remaining_batches
                )

                for results in followups:
                    if cancelled():
                        break
                    batch_number += 1
                    started = _now_ms()
                    fresh = take_new(results, n - len(collected))
                    collected.extend(fresh)
                    completed = batch_number >= total_batches or len(collected) >= n
                    yield batch_result(batch_number, total_batches, fresh, completed, started)
                    if completed:
                        break

            if collected:
                orchestrator.cache.set(
                    query,
                    resource_type.value,
                    content_type.value,
                    collected,
                    metadata={"progressive": True, "total_time_ms": _now_ms() - stream_start},
                    project_id=project_id,
                )

            logger.info(
                f"Progressive search completed: {len(collected)} results in "
                f"{_now_ms() - stream_start}ms"
            )

        except Exception as e:
            logger.error(f"Progressive search error: {e}", exc_info=True)

        if not completed and not cancelled():
            # Terminal empty batch so every stream ends with exactly one complete batch
            batch_number += 1
            yield batch_result(batch_number, batch_number, [], True, _now_ms())

    async def _followup_searches(
        self,
        options: SearchOptions,
        optimized_query: str,
        remaining_results: int,
        remaining_batches: int,
    ) -> list[list[DIYSearchResult]]:
        orchestrator = self._orchestrator
        resource_type = options.resource_type
        content_type = options.content_type
        project_context = options.project_context
        per_batch = math.ceil(remaining_results / remaining_batches)

        queries: list[str | None] = [
            simplify_query(optimized_query, resource_type, project_context),
            build_visual_query(optimized_query, project_context)
            if content_type == ContentType.VISUAL
            else optimized_query,
            build_basic_query(project_context.title, resource_type, content_type)
            if project_context and project_context.title
            else None,
        ]

        async def run(strategy_query: str | None) -> list[DIYSearchResult]:
            if strategy_query is None:
                return []
            return await orchestrator.perform_single_search(
                strategy_query, resource_type, content_type, per_batch
            )

        count = min(MAX_FOLLOWUP_STRATEGIES, remaining_batches)
        return await asyncio.gather(*(run(q) for q in queries[:count]))
