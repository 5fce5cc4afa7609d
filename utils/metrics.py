from datetime import datetime
from typing import Any, Dict, List, Optional

from utils.logger import get_logger

logger = get_logger(__name__)


class MetricsRecorder:
    """
    Tracks search performance across calls: latency, cache efficiency,
    error rate, query optimization and pre-filter efficiency.

    Observability only; nothing here influences ranking.
    """

    def __init__(self, slow_search_threshold_ms: int = 3000):
        """Initialize a new MetricsRecorder with zeroed counters."""
        self.slow_search_threshold_ms = slow_search_threshold_ms
        self.reset()

    def reset(self) -> None:
        """Reset all counters to zero. The slow-search threshold is kept."""
        self.search_count = 0
        self.total_search_time_ms = 0.0
        self.search_times_ms: List[float] = []
        self.slow_searches = 0
        self.cache_hits = 0
        self.cache_misses = 0
        self.errors = 0
        self.optimized_queries = 0
        self.prefilter_before = 0
        self.prefilter_after = 0
        self.progressive_searches = 0

    def record_search(
        self,
        duration_ms: float,
        was_optimized: bool = False,
        from_cache: bool = False,
        error: bool = False,
    ) -> None:
        """
        Record one completed search.

        Args:
            duration_ms: Wall-clock time of the search
            was_optimized: Whether the optimizer changed the query
            from_cache: Whether the result came from the result cache
            error: Whether the search failed (latency is not recorded)
        """
        self.search_count += 1

        if error:
            self.errors += 1
        else:
            self.total_search_time_ms += duration_ms
            self.search_times_ms.append(duration_ms)
            if duration_ms > self.slow_search_threshold_ms:
                self.slow_searches += 1
                logger.warning(
                    f"Slow search detected: {duration_ms:.0f}ms",
                    extra={"extra_fields": {"duration_ms": duration_ms}},
                )

        if from_cache:
            self.cache_hits += 1
        else:
            self.cache_misses += 1

        if was_optimized:
            self.optimized_queries += 1

    def record_progressive_search(self) -> None:
        self.progressive_searches += 1

    def record_prefilter_efficiency(self, before: int, after: int) -> None:
        self.prefilter_before += before
        self.prefilter_after += after

    def get_metrics(self) -> Dict[str, Any]:
        """
        Get a summary of the recorded metrics.

        Returns:
            A dictionary with raw counters and derived rates.
        """
        successful = len(self.search_times_ms)
        lookups = self.cache_hits + self.cache_misses
        # Progressive streams are not counted by record_search
        total_searches = self.search_count + self.progressive_searches
        return {
            'search_count': self.search_count,
            'average_search_time_ms': self.total_search_time_ms / successful if successful else 0.0,
            'slow_searches': self.slow_searches,
            'cache_hits': self.cache_hits,
            'cache_misses': self.cache_misses,
            'cache_hit_rate': self.cache_hits / lookups if lookups else 0.0,
            'errors': self.errors,
            'error_rate': self.errors / self.search_count if self.search_count else 0.0,
            'optimized_queries': self.optimized_queries,
            'query_optimization_rate': (
                self.optimized_queries / self.search_count if self.search_count else 0.0
            ),
            'prefilter_efficiency': (
                self.prefilter_after / self.prefilter_before if self.prefilter_before else 0.0
            ),
            'progressive_searches': self.progressive_searches,
            'progressive_usage': (
                self.progressive_searches / total_searches if total_searches else 0.0
            ),
            'timestamp': datetime.now().isoformat(),
        }

    def _latency_distribution(self) -> Dict[str, int]:
        distribution = {'fast': 0, 'medium': 0, 'slow': 0}
        for duration in self.search_times_ms:
            if duration < 1000:
                distribution['fast'] += 1
            elif duration < 3000:
                distribution['medium'] += 1
            else:
                distribution['slow'] += 1
        return distribution

    def _recommendations(self, metrics: Dict[str, Any]) -> List[str]:
        recommendations = []
        if metrics['search_count'] == 0:
            return recommendations

        if metrics['cache_hit_rate'] < 0.3:
            recommendations.append(
                'Low cache hit rate. Consider a longer cache TTL or pre-warming popular queries.'
            )
        if metrics['average_search_time_ms'] > 2000:
            recommendations.append(
                'High average search time. Consider reducing results per strategy.'
            )
        if metrics['error_rate'] > 0.05:
            recommendations.append(
                'High error rate. Check upstream provider health and credentials.'
            )
        if metrics['query_optimization_rate'] < 0.5:
            recommendations.append(
                'Few queries are being optimized. Review the optimizer filler list.'
            )
        if metrics['prefilter_efficiency'] > 0.8:
            recommendations.append(
                'Pre-filter keeps most candidates. Consider stricter domain or term filters.'
            )
        if metrics['progressive_usage'] < 0.2 and metrics['average_search_time_ms'] > 1500:
            recommendations.append(
                'Searches are slow. Consider enabling progressive loading for large requests.'
            )
        return recommendations

    def get_detailed_report(self, cache_stats: Optional[Dict[str, int]] = None) -> Dict[str, Any]:
        """
        Build a full performance report.

        Args:
            cache_stats: Optional ResultCache.get_stats() output to include

        Returns:
            Metrics plus latency distribution, cache stats and recommendations.
        """
        metrics = self.get_metrics()
        return {
            'metrics': metrics,
            'latency_distribution': self._latency_distribution(),
            'cache': cache_stats or {},
            'recommendations': self._recommendations(metrics),
        }

    def log_performance_summary(self, cache_stats: Optional[Dict[str, int]] = None) -> None:
        report = self.get_detailed_report(cache_stats)
        metrics = report['metrics']
        logger.info(
            f"Search performance: {metrics['search_count']} searches, "
            f"avg {metrics['average_search_time_ms']:.0f}ms, "
            f"cache hit rate {metrics['cache_hit_rate']:.0%}",
            extra={"extra_fields": report},
        )

    def format_summary(self) -> str:
        """
        Format the metrics as a human-readable string.

        Returns:
            A formatted multi-line string.
        """
        stats = self.get_metrics()
        return (
            f"Searches: {stats['search_count']}\n"
            f"Average time: {stats['average_search_time_ms']:.0f}ms\n"
            f"Cache hit rate: {stats['cache_hit_rate']:.0%}\n"
            f"Error rate: {stats['error_rate']:.0%}\n"
            f"Pre-filter efficiency: {stats['prefilter_efficiency']:.0%}"
        )
