"""CLI entry point for nostryears.

Computes a subject's yearly statistics snapshot, or lists the snapshots
other users published recently. Output is JSON on stdout; logs go to
stderr.

Examples:
    ```bash
    python -m nostryears stats npub1... --percentiles
    python -m nostryears stats 3bf0c63f... --relay wss://yabu.me --force
    python -m nostryears stats npub1... --publish --config config/nostryears.yaml
    python -m nostryears recent --limit 10
    ```
"""

import argparse
import asyncio
import dataclasses
import json
import logging
import sys
from pathlib import Path
from typing import Any

from nostryears.core.exceptions import NostrYearsError, PublishingError
from nostryears.core.logger import Logger, StructuredFormatter
from nostryears.core.metrics import write_textfile
from nostryears.models import DEFAULT_PERIOD_SINCE, DEFAULT_PERIOD_UNTIL
from nostryears.nips.nip78 import PublishedSnapshot
from nostryears.services import (
    LoggingProgressListener,
    SnapshotPublisher,
    StatsConfig,
    StatsEngine,
    StatsReport,
)
from nostryears.utils.keys import parse_public_key
from nostryears.utils.protocol import RelayPool


DEFAULT_CONFIG = Path("config") / "nostryears.yaml"

logger = Logger("cli")


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    """Parse command-line arguments."""
    parser = argparse.ArgumentParser(
        prog="nostryears",
        description="Yearly Nostr activity statistics",
    )
    parser.add_argument(
        "--config",
        type=Path,
        default=DEFAULT_CONFIG,
        help=f"Config path (default: {DEFAULT_CONFIG})",
    )
    parser.add_argument(
        "--log-level",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        default="INFO",
        help="Log level (default: INFO)",
    )

    commands = parser.add_subparsers(dest="command", required=True)

    stats = commands.add_parser("stats", help="Compute a subject's statistics snapshot")
    stats.add_argument("pubkey", help="Subject public key (npub1... or hex)")
    stats.add_argument(
        "--relay",
        dest="relays",
        action="append",
        metavar="URL",
        help="Relay to query; repeatable (default: relays from config)",
    )
    stats.add_argument(
        "--since",
        type=int,
        default=DEFAULT_PERIOD_SINCE,
        help="Window start, unix seconds, inclusive",
    )
    stats.add_argument(
        "--until",
        type=int,
        default=DEFAULT_PERIOD_UNTIL,
        help="Window end, unix seconds, exclusive",
    )
    stats.add_argument(
        "--force",
        action="store_true",
        help="Ignore a previously published snapshot and recompute",
    )
    stats.add_argument(
        "--publish",
        action="store_true",
        help="Publish the snapshot (requires the signing key env var)",
    )
    stats.add_argument(
        "--percentiles",
        action="store_true",
        help="Rank the snapshot against published snapshots",
    )

    recent = commands.add_parser("recent", help="List recently published snapshots")
    recent.add_argument("--limit", type=int, default=20, help="Maximum entries (default: 20)")

    return parser.parse_args(argv)


def setup_logging(level: str) -> None:
    """Configure the root logger with structured formatting.

    Installs a ``StructuredFormatter`` on a stderr handler so that both
    ``Logger`` output and plain ``logging.getLogger()`` calls in nips/utils
    render as ``level name message key=value ...``.
    """
    handler = logging.StreamHandler()
    handler.setFormatter(StructuredFormatter())
    logging.root.addHandler(handler)
    logging.root.setLevel(getattr(logging, level))


def load_config(path: Path) -> StatsConfig:
    """Load the config file, or defaults if it does not exist."""
    if not path.exists():
        logger.debug("config_not_found", path=str(path))
        return StatsConfig()
    return StatsConfig.from_yaml(path)


def report_to_dict(report: StatsReport) -> dict[str, Any]:
    """Render a report as the JSON document printed by ``stats``."""
    snapshot = report.snapshot
    data: dict[str, Any] = {"pubkey": snapshot.subject, "fromCache": report.from_cache}
    data.update(
        PublishedSnapshot.from_snapshot(snapshot).model_dump(
            mode="json", by_alias=True, exclude_none=True
        )
    )
    data["affinityRanking"] = [dataclasses.asdict(e) for e in snapshot.affinity_ranking]
    if report.profile is not None:
        data["profile"] = dataclasses.asdict(report.profile)
    return data


async def run_stats(args: argparse.Namespace, config: StatsConfig) -> int:
    subject = parse_public_key(args.pubkey)
    relays = args.relays or config.relays
    keys = config.load_keys() if args.publish else None

    async with RelayPool(config.pool) as pool:
        engine = StatsEngine(pool, config)
        report = await engine.compute(
            subject,
            relays,
            args.since,
            args.until,
            force=args.force,
            listener=LoggingProgressListener(),
        )
        output = report_to_dict(report)

        if args.percentiles:
            ranks = await engine.percentiles(report.snapshot)
            output["percentiles"] = ranks.to_dict()

        if args.publish:
            if report.from_cache:
                logger.info("publish_skipped", reason="already_published")
            else:
                try:
                    outcome = await SnapshotPublisher(pool, keys).publish(report.snapshot, relays)
                except PublishingError as e:
                    logger.warning("publish_failed", subject=subject, error=str(e))
                    output["published"] = []
                else:
                    output["published"] = list(outcome.accepted)

    print(json.dumps(output, ensure_ascii=False, indent=2))
    return 0


async def run_recent(args: argparse.Namespace, config: StatsConfig) -> int:
    async with RelayPool(config.pool) as pool:
        engine = StatsEngine(pool, config)
        entries = await engine.reconciler.recent(args.limit)

    output = [
        {
            "pubkey": entry.pubkey,
            "createdAt": entry.created_at,
            "current": entry.is_current,
            "snapshot": entry.snapshot.model_dump(mode="json", by_alias=True, exclude_none=True),
        }
        for entry in entries
    ]
    print(json.dumps(output, ensure_ascii=False, indent=2))
    return 0


async def main(argv: list[str] | None = None) -> int:
    """Main entry point: parse args, load config, and run the command."""
    args = parse_args(argv)
    setup_logging(args.log_level)

    try:
        config = load_config(args.config)
        if args.command == "stats":
            code = await run_stats(args, config)
        else:
            code = await run_recent(args, config)
    except (NostrYearsError, ValueError) as e:
        logger.error(f"{args.command}_failed", error=str(e))
        return 1
    except KeyboardInterrupt:
        logger.info("interrupted")
        return 130

    write_textfile(config.metrics)
    return code


def cli() -> None:
    """Synchronous entry point for console_scripts."""
    sys.exit(asyncio.run(main()))


if __name__ == "__main__":
    cli()
