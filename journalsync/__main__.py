"""CLI entry point for journalsync."""

import argparse
import asyncio
import inspect
import json
import logging
import sys
from datetime import datetime
from pathlib import Path

from .config import Config, load_config
from .models import Entry, Mood
from .store import LocalStore
from .sync import EntryController, SyncResult


class JSONFormatter(logging.Formatter):
    """One JSON object per log line.

    Records carry the thread name so merges running on the storage
    worker can be told apart from event-loop work.
    """

    def format(self, record: logging.LogRecord) -> str:
        log_data = {
            "ts": datetime.fromtimestamp(record.created).isoformat(timespec="milliseconds"),
            "level": record.levelname.lower(),
            "logger": record.name,
            "thread": record.threadName,
            "msg": record.getMessage(),
        }
        if record.exc_info:
            log_data["exc"] = self.formatException(record.exc_info)
        return json.dumps(log_data, default=str)


def setup_logging(verbose: bool = False, log_level: str | None = None, json_output: bool = False) -> None:
    """Configure root logging for the CLI.

    Quiet by default (warnings only); ``-v`` or ``--log-level`` raise the
    verbosity. httpx's per-request INFO lines are only shown at debug.
    """
    if log_level:
        level = getattr(logging, log_level.upper())
    else:
        level = logging.DEBUG if verbose else logging.WARNING

    handler = logging.StreamHandler()
    handler.setFormatter(
        JSONFormatter()
        if json_output
        else logging.Formatter("%(asctime)s %(levelname)-7s [%(threadName)s] %(name)s: %(message)s")
    )
    logging.basicConfig(level=level, handlers=[handler], force=True)

    logging.getLogger("httpx").setLevel(logging.DEBUG if level <= logging.DEBUG else logging.WARNING)


def _open_store(config: Config) -> LocalStore:
    store = LocalStore(config.store.db_path)
    store.connect()
    return store


def _report(operation: str, result: SyncResult) -> int:
    if result.ok:
        print(
            f"{operation}: ok (created {result.created}, updated {result.updated}, "
            f"skipped {result.skipped})"
        )
        return 0

    detail = f": {result.detail}" if result.detail else ""
    print(f"{operation} failed: {result.error.value}{detail}", file=sys.stderr)
    return 1


async def cmd_pull(args: argparse.Namespace) -> int:
    """Pull the remote collection into the local journal."""
    config = load_config(args.config)
    store = _open_store(config)

    try:
        async with EntryController.from_config(config, store) as controller:
            result = await controller.pull_and_merge()
    finally:
        store.close()

    return _report("pull", result)


async def cmd_list(args: argparse.Namespace) -> int:
    """List local entries, refreshing from the remote first unless offline."""
    config = load_config(args.config)
    store = _open_store(config)

    try:
        if not args.offline:
            async with EntryController.from_config(config, store) as controller:
                result = await controller.start()
            if result is not None and not result.ok:
                print(
                    f"Warning: could not refresh from remote ({result.error.value}), "
                    "showing local entries",
                    file=sys.stderr,
                )
        entries = store.list_entries(limit=args.limit)
    finally:
        store.close()

    if args.json:
        print(json.dumps([e.to_dict() for e in entries], indent=2))
        return 0

    if not entries:
        print("No entries.")
        return 0

    for entry in entries:
        when = entry.timestamp.strftime("%Y-%m-%d %H:%M") if entry.timestamp else "-"
        mood = entry.to_dict()["mood"]
        print(f"{when}  [{mood}]  {entry.title}  ({entry.identifier})")

    return 0


async def cmd_add(args: argparse.Namespace) -> int:
    """Create an entry locally and push it."""
    config = load_config(args.config)
    store = _open_store(config)

    try:
        entry = store.save(Entry.new(title=args.title, body_text=args.body, mood=args.mood))
        print(f"Saved {entry.identifier}")

        async with EntryController.from_config(config, store) as controller:
            result = await controller.push(entry)
    finally:
        store.close()

    return _report("push", result)


async def cmd_push(args: argparse.Namespace) -> int:
    """Push an existing local entry."""
    config = load_config(args.config)
    store = _open_store(config)

    try:
        entry = store.get(args.identifier)
        if entry is None:
            print(f"No local entry {args.identifier}", file=sys.stderr)
            return 1

        async with EntryController.from_config(config, store) as controller:
            result = await controller.push(entry)
    finally:
        store.close()

    return _report("push", result)


async def cmd_delete(args: argparse.Namespace) -> int:
    """Delete an entry remotely, then locally."""
    config = load_config(args.config)
    store = _open_store(config)

    try:
        entry = store.get(args.identifier) or Entry(
            identifier=args.identifier, title=None, body_text="", timestamp=None
        )

        async with EntryController.from_config(config, store) as controller:
            result = await controller.delete(entry)

        if result.ok:
            store.remove(args.identifier)
    finally:
        store.close()

    return _report("delete", result)


def cmd_status(args: argparse.Namespace) -> int:
    """Show configuration and local store statistics."""
    config = load_config(args.config)
    store = _open_store(config)

    try:
        stats = store.get_stats()
    finally:
        store.close()

    status_data = {
        "timestamp": datetime.now().isoformat(),
        "remote": {
            "base_url": config.remote.base_url,
            "timeout": config.remote.timeout,
        },
        "sync": {
            "pull_on_start": config.sync.pull_on_start,
            "single_flight": config.sync.single_flight,
        },
        "store": stats,
    }

    if args.json:
        print(json.dumps(status_data, indent=2))
        return 0

    print("journalsync Status")
    print("==================")
    print(f"Remote: {config.remote.base_url} (timeout {config.remote.timeout}s)")
    print(f"Store: {stats['db_path']}")
    print(f"  Entries: {stats['entries_count']}")
    for mood, count in sorted(stats["entries_by_mood"].items()):
        print(f"    - {mood}: {count}")

    return 0


def main() -> int:
    """Main entry point."""
    parser = argparse.ArgumentParser(
        prog="journalsync",
        description="Keep a local journal in sync with a remote document store",
    )
    parser.add_argument(
        "-c", "--config",
        type=Path,
        default=None,
        help="Path to config file",
    )
    parser.add_argument(
        "-v", "--verbose",
        action="store_true",
        help="Enable verbose logging",
    )
    parser.add_argument(
        "--log-level",
        type=str,
        choices=["warning", "info", "debug"],
        default=None,
        help="Set log level explicitly (overrides -v/--verbose)",
    )
    parser.add_argument(
        "--json-logs",
        action="store_true",
        help="Output logs as JSON for machine parsing",
    )

    subparsers = parser.add_subparsers(dest="command", help="Commands")

    pull_parser = subparsers.add_parser("pull", help="Pull remote entries into the local journal")
    pull_parser.set_defaults(func=cmd_pull)

    list_parser = subparsers.add_parser("list", help="List local entries")
    list_parser.add_argument("-n", "--limit", type=int, default=None, help="Maximum entries to show")
    list_parser.add_argument("--json", action="store_true", help="Output entries as JSON")
    list_parser.add_argument(
        "--offline",
        action="store_true",
        help="Skip the refresh from the remote (also skipped when sync.pull_on_start is off)",
    )
    list_parser.set_defaults(func=cmd_list)

    add_parser = subparsers.add_parser("add", help="Write a new entry and push it")
    add_parser.add_argument("--title", required=True, help="Entry title")
    add_parser.add_argument("--body", default="", help="Entry text")
    add_parser.add_argument(
        "--mood",
        choices=[m.value for m in Mood],
        default=Mood.NEUTRAL.value,
        help="Entry mood (default: neutral)",
    )
    add_parser.set_defaults(func=cmd_add)

    push_parser = subparsers.add_parser("push", help="Push a local entry to the remote")
    push_parser.add_argument("identifier", help="Entry identifier")
    push_parser.set_defaults(func=cmd_push)

    delete_parser = subparsers.add_parser("delete", help="Delete an entry remotely and locally")
    delete_parser.add_argument("identifier", help="Entry identifier")
    delete_parser.set_defaults(func=cmd_delete)

    status_parser = subparsers.add_parser("status", help="Show configuration and store stats")
    status_parser.add_argument("--json", action="store_true", help="Output status as JSON")
    status_parser.set_defaults(func=cmd_status)

    args = parser.parse_args()

    setup_logging(args.verbose, args.log_level, args.json_logs)

    if not args.command:
        parser.print_help()
        return 1

    func = args.func
    if inspect.iscoroutinefunction(func):
        return asyncio.run(func(args))
    return func(args)


if __name__ == "__main__":
    sys.exit(main())
