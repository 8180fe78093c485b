"""Command-line entry points for goalcron.

Commands:
    run                 One automation pass (milestones + dependency labels)
    debug               Same pass with DEBUG logging and HTTP request tracing
    remove-milestones   Delete every milestone marker task
"""

import argparse
import asyncio
import logging
import sys
from typing import List, Optional

import requests
from todoist_api_python.api import TodoistAPI

from goalcron.config import Settings, configure_logging, load_settings
from goalcron.engine.cron import run_automation, run_cron_job
from goalcron.engine.remove_milestones import RemoveMilestoneTasksUseCase
from goalcron.integrations.http_logging import build_logging_session
from goalcron.integrations.todoist import TodoistTaskRepository
from goalcron.repository.cache import SnapshotCache

logger = logging.getLogger(__name__)


def _add_common_options(parser: argparse.ArgumentParser, default) -> None:
    parser.add_argument("--concurrency", type=int, default=default, help="Simultaneous API operations per batch (default: 2)")
    parser.add_argument("--cache-ttl", type=float, default=default, help="Snapshot cache TTL in seconds (default: 300)")
    parser.add_argument("--log-level", default=default, help="Log level (default: INFO)")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="goalcron", description="Todoist goal and milestone automation")
    _add_common_options(parser, default=None)

    # Subcommands accept the same options; SUPPRESS keeps them from overwriting
    # values given before the subcommand
    common = argparse.ArgumentParser(add_help=False)
    _add_common_options(common, default=argparse.SUPPRESS)

    subparsers = parser.add_subparsers(dest="command")
    run_parser = subparsers.add_parser("run", parents=[common], help="Run one automation pass")
    run_parser.add_argument("--strict", action="store_true", help="Exit with status 1 if the pass fails")
    subparsers.add_parser("debug", parents=[common], help="Run one pass with HTTP request logging")
    subparsers.add_parser("remove-milestones", parents=[common], help="Delete all milestone marker tasks")
    parser.set_defaults(command="run", strict=False)
    return parser


def build_repository(settings: Settings, session: Optional[requests.Session] = None) -> TodoistTaskRepository:
    if session is not None:
        api = TodoistAPI(settings.todoist_api_token, session=session)
    else:
        api = TodoistAPI(settings.todoist_api_token)
    return TodoistTaskRepository(api, SnapshotCache(ttl_seconds=settings.cache_ttl_seconds))


async def _remove_milestones(repository: TodoistTaskRepository, concurrency: int) -> bool:
    summary = await RemoveMilestoneTasksUseCase(repository, concurrency).execute()
    return summary.failed == 0


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)

    log_level = "DEBUG" if args.command == "debug" else args.log_level
    try:
        settings = load_settings(
            concurrency=args.concurrency,
            cache_ttl_seconds=args.cache_ttl,
            log_level=log_level,
        )
    except ValueError as e:
        configure_logging(log_level or "INFO")
        logger.error(f"Invalid configuration: {e}")
        return 1

    configure_logging(settings.log_level)

    if args.command == "run":
        repository = build_repository(settings)
        ok = asyncio.run(run_cron_job(repository, settings.concurrency))
        return 1 if (args.strict and not ok) else 0

    if args.command == "debug":
        logger.info("=== Debug run ===")
        repository = build_repository(settings, session=build_logging_session())
        try:
            asyncio.run(run_automation(repository, settings.concurrency))
        except Exception as e:
            logger.exception(f"Error in debug run: {type(e).__name__}: {e}")
            return 1
        logger.info("=== Debug run finished ===")
        return 0

    repository = build_repository(settings)
    try:
        ok = asyncio.run(_remove_milestones(repository, settings.concurrency))
    except Exception as e:
        logger.exception(f"Error in milestone task removal: {type(e).__name__}: {e}")
        return 1
    return 0 if ok else 1


if __name__ == "__main__":
    sys.exit(main())
