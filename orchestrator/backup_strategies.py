from collections.abc import Awaitable, Callable
from dataclasses import dataclass

from models.search_result import DIYSearchResult
from models.search_types import ContentType, ProjectContext, ResourceType
from orchestrator.query_builder import build_basic_query, build_generic_query, simplify_query
from utils.logger import get_logger

logger = get_logger(__name__)

SingleSearchFn = Callable[[str, ResourceType, ContentType, int], Awaitable[list[DIYSearchResult]]]


@dataclass(frozen=True)
class BackupStrategy:
    name: str
    query: str
    num_results: int


@dataclass(frozen=True)
class BackupPolicy:
    simplified_results: int = 3
    title_results: int = 3
    generic_results: int = 2


class BackupStrategyRunner:
    """
    Escalation ladder for searches that came back with too few results.

    Every applicable rung runs in order (simplified, title-based, generic)
    and the output accumulates; the combined list is deduplicated by URL.
    """

    def __init__(self, policy: BackupPolicy | None = None):
        self._policy = policy or BackupPolicy()

    def plan(
        self,
        contextual_query: str,
        resource_type: ResourceType,
        content_type: ContentType,
        project_context: ProjectContext | None = None,
    ) -> list[BackupStrategy]:
        strategies: list[BackupStrategy] = []

        simplified = simplify_query(contextual_query, resource_type, project_context)
        if simplified != contextual_query:
            strategies.append(
                BackupStrategy("simplified", simplified, self._policy.simplified_results)
            )

        if project_context and project_context.title:
            strategies.append(
                BackupStrategy(
                    "title",
                    build_basic_query(project_context.title, resource_type, content_type),
                    self._policy.title_results,
                )
            )

        strategies.append(
            BackupStrategy(
                "generic",
                build_generic_query(resource_type, content_type),
                self._policy.generic_results,
            )
        )
        return strategies

    async def run(
        self,
        search_fn: SingleSearchFn,
        contextual_query: str,
        resource_type: ResourceType,
        content_type: ContentType,
        project_context: ProjectContext | None = None,
    ) -> list[DIYSearchResult]:
        """
        Run the ladder sequentially with ``search_fn``.

        ``search_fn`` is expected to swallow its own provider errors; anything
        that still escapes ends the ladder with what was collected so far.
        """
        collected: list[DIYSearchResult] = []
        seen: set[str] = set()

        for strategy in self.plan(contextual_query, resource_type, content_type, project_context):
            logger.info(
                f"Backup strategy '{strategy.name}': \"{strategy.query}\"",
                extra={"extra_fields": {"strategy": strategy.name, "num_results": strategy.num_results}},
            )
            try:
                results = await search_fn(
                    strategy.query, resource_type, content_type, strategy.num_results
                )
            except Exception as e:
                logger.error(f"Backup strategy '{strategy.name}' failed: {e}", exc_info=True)
                break

            for result in results:
                if result.url not in seen:
                    seen.add(result.url)
                    collected.append(result)

        logger.info(f"Backup strategies found {len(collected)} additional results")
        return collected
