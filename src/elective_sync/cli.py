# SPDX-License-Identifier: MIT
"""Command-line interface for inspecting the local cache and the Record Store."""

import asyncio
import functools
import json
import sys
import traceback
from collections.abc import Callable
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, TypeVar

import click

from . import __version__
from .cache import epoch_ms, get_local_cache, get_refresh_flags
from .config import get_config_manager
from .exports import SUPPORTED_LANGUAGES, pending_or_approved, selections_to_csv
from .logging_config import get_status_logger, setup_logging
from .models import ChangeNotification
from .record_store import Filter, SupabaseRecordStore, eq
from .sync.pages import (
    SELECTION_WITH_PROFILE_COLUMNS,
    COURSE_SELECTIONS_TABLE,
    EXCHANGE_SELECTIONS_TABLE,
)


F = TypeVar("F", bound=Callable[..., Any])


def handle_cli_errors(func: F) -> F:
    """Decorator to handle common CLI error patterns.

    Logs the error through the status logger, with a traceback when the
    command was called with ``--verbose``, and exits with status code 1.
    """

    @functools.wraps(func)
    def wrapper(*args: Any, **kwargs: Any) -> Any:
        status_logger = get_status_logger()
        verbose = kwargs.get("verbose", False)

        try:
            return func(*args, **kwargs)
        except Exception as e:
            if verbose:
                status_logger.error(f"Error in {func.__name__}: {e}")
                traceback.print_exc()
            else:
                status_logger.error(f"Error: {e}")
            sys.exit(1)

    return wrapper  # type: ignore


def print_version(ctx: click.Context, param: click.Parameter, value: bool) -> None:
    """Print version and exit if requested."""
    if value:
        # --version is eager, so logging is not set up yet
        setup_logging()
        status_logger = get_status_logger()
        status_logger.info(f"elective-sync version {__version__}")
        ctx.exit(0)


@click.group()
@click.option(
    "--version",
    is_flag=True,
    callback=print_version,
    expose_value=False,
    is_eager=True,
    help="Show version information and exit",
)
def main() -> None:
    """elective-sync - Local cache and realtime sync for the elective portal."""
    detail_logger, status_logger = setup_logging()
    detail_logger.debug("CLI initialized")


@main.group(name="config")
def config_group() -> None:
    """Inspect or create the configuration file."""
    pass


@config_group.command(name="show")
@handle_cli_errors
def config_show() -> None:
    """Show the complete current configuration."""
    print(get_config_manager().show_config())


@config_group.command(name="init")
@click.argument(
    "output_path",
    type=click.Path(dir_okay=False, path_type=Path),
    default=Path(".elective-sync") / "config.yaml",
)
@handle_cli_errors
def config_init(output_path: Path) -> None:
    """Write the default configuration to OUTPUT_PATH."""
    status_logger = get_status_logger()
    if output_path.exists():
        raise click.ClickException(f"{output_path} already exists")
    get_config_manager().create_default_config(output_path)
    status_logger.info(f"Default configuration written to {output_path}")


@main.group()
def cache() -> None:
    """Inspect and maintain the local cache."""
    pass


@cache.command(name="get")
@click.argument("key")
@handle_cli_errors
def cache_get(key: str) -> None:
    """Print the entry stored under KEY, ignoring its TTL.

    KEY: Namespaced cache key, e.g. courseSelectionsData_42
    """
    status_logger = get_status_logger()
    entry = get_local_cache().peek(key)
    if entry is None:
        status_logger.info(f"No cache entry for '{key}'")
        return

    stored = datetime.fromtimestamp(entry.stored_at / 1000, tz=timezone.utc)
    status_logger.info(
        f"'{key}' stored {stored.isoformat()} ({entry.age_ms(epoch_ms()) // 1000}s ago)"
    )
    print(json.dumps(entry.payload, indent=2, ensure_ascii=False))


@cache.command(name="invalidate")
@click.argument("keys", nargs=-1, required=True)
@handle_cli_errors
def cache_invalidate(keys: tuple[str, ...]) -> None:
    """Remove the entries stored under each KEY."""
    status_logger = get_status_logger()
    get_local_cache().invalidate_many(dict.fromkeys(keys))
    status_logger.info(f"Invalidated {len(set(keys))} cache key(s)")


@cache.command(name="purge")
@handle_cli_errors
def cache_purge() -> None:
    """Remove every expired entry."""
    status_logger = get_status_logger()
    removed = get_local_cache().purge_expired()
    status_logger.info(f"Removed {removed} expired cache entries")


@main.group()
def flags() -> None:
    """Set or clear one-shot force-refresh flags."""
    pass


@flags.command(name="set")
@click.argument("name")
@handle_cli_errors
def flags_set(name: str) -> None:
    """Make the next load of NAME's list bypass the cache once."""
    get_refresh_flags().set_flag(name)
    get_status_logger().info(f"Force refresh flag '{name}' set")


@flags.command(name="clear")
@click.argument("name")
@handle_cli_errors
def flags_clear(name: str) -> None:
    """Clear the flag NAME without honoring it."""
    get_refresh_flags().clear(name)
    get_status_logger().info(f"Force refresh flag '{name}' cleared")


@main.command()
@click.argument("table")
@click.option(
    "--filter",
    "filter_text",
    default=None,
    help="Row filter such as elective_courses_id=eq.42",
)
@click.option(
    "--duration",
    type=float,
    default=None,
    help="Stop after this many seconds (default: run until interrupted)",
)
@click.option("--verbose", "-v", is_flag=True, help="Enable verbose output")
@handle_cli_errors
def watch(
    table: str, filter_text: str | None, duration: float | None, verbose: bool
) -> None:
    """Print realtime change notifications for TABLE."""
    row_filter = Filter.parse(filter_text) if filter_text else None
    try:
        asyncio.run(_async_watch(table, row_filter, duration))
    except KeyboardInterrupt:
        get_status_logger().info("Stopped watching")


async def _async_watch(
    table: str, row_filter: Filter | None, duration: float | None
) -> None:
    status_logger = get_status_logger()
    config = get_config_manager().load_config()

    async def print_change(notification: ChangeNotification) -> None:
        print(notification.model_dump_json(by_alias=True))

    async with SupabaseRecordStore.from_config(
        config.record_store, config.realtime
    ) as store:
        await store.subscribe(table, row_filter, print_change)
        suffix = f" where {row_filter}" if row_filter else ""
        status_logger.info(f"Watching {table}{suffix}")
        if duration is None:
            await asyncio.Event().wait()
        else:
            await asyncio.sleep(duration)


@main.command()
@click.argument("pack_id")
@click.option(
    "--kind",
    type=click.Choice(["course", "exchange"]),
    default="course",
    help="Kind of elective pack",
)
@click.option(
    "--language",
    type=click.Choice(list(SUPPORTED_LANGUAGES)),
    default="en",
    help="Language of headers and statuses",
)
@click.option(
    "--all-statuses",
    is_flag=True,
    help="Include rejected selections",
)
@click.option(
    "--output",
    "-o",
    type=click.Path(dir_okay=False, path_type=Path),
    default=None,
    help="Write to a file instead of stdout",
)
@click.option("--verbose", "-v", is_flag=True, help="Enable verbose output")
@handle_cli_errors
def export(
    pack_id: str,
    kind: str,
    language: str,
    all_statuses: bool,
    output: Path | None,
    verbose: bool,
) -> None:
    """Export the student selections of pack PACK_ID as CSV."""
    content = asyncio.run(_async_export(pack_id, kind, language, all_statuses))
    if output is None:
        print(content, end="")
        return

    # utf-8-sig so spreadsheet tools detect the encoding
    output.write_text(content, encoding="utf-8-sig")
    get_status_logger().info(f"Selections exported to {output}")


async def _async_export(
    pack_id: str, kind: str, language: str, all_statuses: bool
) -> str:
    config = get_config_manager().load_config()
    if kind == "course":
        table, column = COURSE_SELECTIONS_TABLE, "elective_courses_id"
    else:
        table, column = EXCHANGE_SELECTIONS_TABLE, "elective_exchange_id"

    async with SupabaseRecordStore.from_config(config.record_store) as store:
        rows = await store.select(
            table, [eq(column, pack_id)], SELECTION_WITH_PROFILE_COLUMNS
        )

    if not all_statuses:
        rows = pending_or_approved(rows)
    return selections_to_csv(rows, language)


if __name__ == "__main__":
    main()
