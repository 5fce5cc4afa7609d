import asyncio
import sys
import threading
import time

from config.config import Config
from models.search_result import DIYSearchResult
from models.search_types import ContentType, ResourceType, SearchOptions
from orchestrator.core import SearchOrchestrator, create_orchestrator_from_env
from orchestrator.progressive import ProgressiveDeliveryController


def show_loading_animation(stop_event: threading.Event) -> None:
    """
    Show a loading animation in the console.

    Args:
        stop_event: A threading.Event that will be set to stop the animation
    """
    while not stop_event.is_set():
        for char in '|/-\\':
            if stop_event.is_set():
                break
            sys.stdout.write(f'\r\033[93mSearching {char}\033[0m')
            sys.stdout.flush()
            time.sleep(0.1)

    # Clear the loading line
    sys.stdout.write('\r' + ' ' * 20 + '\r')
    sys.stdout.flush()


def print_result(index: int, result: DIYSearchResult) -> None:
    difficulty = result.difficulty.value if result.difficulty else 'Unknown'
    print(f"{index}. {result.title}")
    print(f"   {result.url}")
    print(f"   [{result.source} | {result.content_type.value} | {difficulty}] "
          f"{', '.join(result.tags)}")


def print_help() -> None:
    print("\n=== Available Commands ===")
    print("help                 - Show this help message")
    print("stats                - Show search performance report")
    print("history              - Show recent searches")
    print("type <resource>      - tutorial | inspiration | materials")
    print("content <content>    - video | visual | article | mixed")
    print("progressive          - Toggle batched result delivery")
    print("exit/quit            - Exit the program\n")


def print_stats(orchestrator: SearchOrchestrator) -> None:
    report = orchestrator.get_performance_report()
    metrics = report['metrics']
    print("\n=== Search Performance ===")
    print(orchestrator.metrics.format_summary())
    print(f"Cache entries: {report['cache'].get('size', 0)}")
    print(f"Latency: {report['latency_distribution']}")
    for recommendation in report['recommendations']:
        print(f"- {recommendation}")
    print(f"Last updated: {metrics['timestamp']}\n")


def print_history(config: Config) -> None:
    if not config.SEARCH_HISTORY_ENABLED:
        print("\nSearch history is disabled (SEARCH_HISTORY_ENABLED=false)\n")
        return

    from db.engine import get_engine
    from db.repository import get_popular_searches, get_search_history
    from db.session import session_scope
    from db.tables import create_tables

    create_tables(get_engine())
    with session_scope() as session:
        entries = get_search_history(session, limit=10)
        popular = get_popular_searches(session)

    print("\n=== Recent Searches ===")
    if not entries:
        print("(none)")
    for entry in entries:
        print(f"- {entry['query']} [{entry['resource_type']}/{entry['content_type']}] "
              f"{entry['result_count']} results")
    if popular:
        print("Popular: " + ", ".join(f"{p['query']} ({p['count']})" for p in popular))
    print()


async def run_progressive(controller: ProgressiveDeliveryController, options: SearchOptions) -> None:
    index = 0
    async for batch in controller.stream(options):
        print(f"\n--- Batch {batch.batch}/{batch.total_batches} "
              f"({batch.timing.total_elapsed}ms) ---")
        for result in batch.results:
            index += 1
            print_result(index, result)
        if batch.is_complete:
            print(f"\nDone: {index} results\n")


def main():
    config = Config()
    if not config.validate():
        print("Configuration invalid. Check your .env file.")
        return

    resource_type = ResourceType.TUTORIAL
    content_type = ContentType.MIXED
    progressive = False
    orchestrator = None

    try:
        orchestrator = create_orchestrator_from_env(config)
        controller = ProgressiveDeliveryController(orchestrator)

        print(f"\n=== DIY Resource Search ({config.get_provider_info()}) ===")
        print("Type a query to search, 'help' for commands, or 'exit' to quit\n")

        while True:
            try:
                user_input = input(
                    f"[{resource_type.value}/{content_type.value}] Search: "
                ).strip()

                if not user_input:
                    continue

                command, _, argument = user_input.partition(' ')
                command = command.lower()
                argument = argument.strip().lower()

                if command in ('exit', 'quit'):
                    print("\nGoodbye!")
                    break

                if command == 'help':
                    print_help()
                    continue

                if command == 'stats':
                    print_stats(orchestrator)
                    continue

                if command == 'history':
                    print_history(config)
                    continue

                if command == 'type' and argument:
                    try:
                        resource_type = ResourceType(argument)
                    except ValueError:
                        print("Resource type must be tutorial, inspiration or materials")
                    continue

                if command == 'content' and argument:
                    try:
                        content_type = ContentType(argument)
                    except ValueError:
                        print("Content type must be video, visual, article or mixed")
                    continue

                if command == 'progressive':
                    progressive = not progressive
                    print(f"Progressive loading {'on' if progressive else 'off'}")
                    continue

                options = SearchOptions(
                    query=user_input,
                    resource_type=resource_type,
                    content_type=content_type,
                    progressive=progressive,
                )

                if progressive:
                    asyncio.run(run_progressive(controller, options))
                    continue

                # Show loading animation in a separate thread
                stop_animation = threading.Event()
                loading_thread = threading.Thread(target=show_loading_animation, args=(stop_animation,))
                loading_thread.daemon = True
                loading_thread.start()

                try:
                    response = orchestrator.search_sync(options)
                finally:
                    stop_animation.set()
                    loading_thread.join()

                print(f"\n{response.message}")
                for i, result in enumerate(response.links, start=1):
                    print_result(i, result)
                if response.search_suggestion:
                    print(f"\nTip: {response.search_suggestion}")
                print()

            except KeyboardInterrupt:
                print("\nExiting...")
                break
            except Exception as e:
                print(f"\nError: {str(e)}")
                continue

    except Exception as e:
        print(f"Error initializing search: {str(e)}")
        return
    finally:
        if orchestrator is not None and orchestrator.metrics.search_count > 0:
            print("\n=== Final Search Stats ===")
            print(orchestrator.metrics.format_summary())
            orchestrator.metrics.log_performance_summary(orchestrator.cache.get_stats())


if __name__ == "__main__":
    main()
