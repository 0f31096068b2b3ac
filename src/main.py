"""
BestChange bundle client - command-line entry point.

Usage:
    python -m main [options] command [command options]

Commands:
    fetch         Download the bundle now, ignoring the cache
    status        Show bundle version, last update and record counts
    currencies    List currencies
    exchangers    List exchangers
    rates         List offers for a currency pair
    lookup        Show one record by id
    export        Write all rates to a CSV file
    clear-cache   Delete the cached bundle

Examples:
    # Show what is in the (possibly cached) bundle
    python -m main status

    # Offers for currency 10 -> 21, downloading with a 5 second limit
    python -m main --timeout 5 rates --from 10 --to 21

    # Export every rate without touching the on-disk cache
    python -m main --no-cache export output/rates.csv
"""

import argparse
import logging
import sys
from pathlib import Path

from api.bestchange import BestChangeError
from config import (
    CACHE_TTL_SECONDS,
    DEFAULT_CACHE_FILE,
    FETCH_TIMEOUT_SECONDS,
    OUTPUT_DIR,
)
from data.archive import ArchiveError
from data.cache import BundleCache, CacheError
from data.client import BestChange
from data.models import RecordKind
from utils.logging import get_logger, setup_logging

# Module logger
logger = get_logger(__name__)


def _load(args: argparse.Namespace, ttl: int | None = None) -> BestChange | None:
    """Build a BestChange instance from global args, logging fatal errors."""
    cache_path = None if args.no_cache else args.cache_path
    try:
        return BestChange(
            cache_path=cache_path,
            cache_ttl=args.ttl if ttl is None else ttl,
            timeout=args.timeout,
            show_progress=not args.quiet,
        )
    except (BestChangeError, CacheError, ArchiveError) as e:
        logger.error("Could not load BestChange data: %s", e)
        return None


def cmd_fetch(args: argparse.Namespace) -> int:
    """Download the bundle regardless of cache freshness."""
    if args.no_cache:
        logger.error("fetch writes the cache; drop --no-cache")
        return 1

    bc = _load(args, ttl=0)
    if bc is None:
        return 1

    logger.info("Bundle version %s saved to %s", bc.version() or "?", args.cache_path)
    return 0


def cmd_status(args: argparse.Namespace) -> int:
    """Show dataset summary."""
    logger.info("=" * 60)
    logger.info("BESTCHANGE - Data Status")
    logger.info("=" * 60)

    bc = _load(args)
    if bc is None:
        return 1

    last_update = bc.last_update()
    stats = bc.stats()

    logger.info("Version:      %s", bc.version() or "unknown")
    logger.info("Last update:  %s", last_update.isoformat(sep=" ") if last_update else "unknown")
    logger.info("Source:       %s", "download" if bc.fetched else "cache")
    logger.info("Currencies:   %d", len(bc.currencies()))
    logger.info("Exchangers:   %d", len(bc.exchangers()))
    logger.info("Rates:        %d", bc.dataset.rate_count)

    if stats.total_skipped:
        logger.info("Skipped rows:")
        logger.info("  - currencies: %d", stats.currencies.skipped)
        logger.info("  - exchangers: %d", stats.exchangers.skipped)
        logger.info("  - rates:      %d", stats.rates.skipped)

    if not args.no_cache:
        age = BundleCache(args.cache_path, ttl_seconds=args.ttl).age_seconds()
        if age is not None:
            logger.info("Cache age:    %.0fs (ttl %ds)", age, args.ttl)

    return 0


def cmd_currencies(args: argparse.Namespace) -> int:
    """List currencies."""
    bc = _load(args)
    if bc is None:
        return 1

    for currency in bc.currencies().values():
        print(f"{currency.id}\t{currency.name}")
    return 0


def cmd_exchangers(args: argparse.Namespace) -> int:
    """List exchangers in id order."""
    bc = _load(args)
    if bc is None:
        return 1

    for exchanger in bc.exchangers().values():
        print(f"{exchanger.id}\t{exchanger.name}")
    return 0


def cmd_rates(args: argparse.Namespace) -> int:
    """List all offers for a currency pair."""
    bc = _load(args)
    if bc is None:
        return 1

    offers = bc.rates_between(args.from_id, args.to_id)
    if not offers:
        logger.info("No offers for %d -> %d", args.from_id, args.to_id)
        return 0

    exchangers = bc.exchangers()
    for exchanger_id, rate in offers.items():
        exchanger = exchangers.get(exchanger_id)
        name = exchanger.name if exchanger else "?"
        print(
            f"{exchanger_id}\t{name}\t{rate.rate_give:g}\t{rate.rate_receive:g}"
            f"\t{rate.rate:.6g}\t{rate.reserve}"
        )
    return 0


def cmd_lookup(args: argparse.Namespace) -> int:
    """Show a single record."""
    bc = _load(args)
    if bc is None:
        return 1

    record = bc.lookup(args.id, args.kind)
    if record is None:
        logger.error("No %s record with id %d", args.kind, args.id)
        return 1

    if args.kind == RecordKind.RATES.value:
        for to_id, by_exchanger in record.items():
            for rate in by_exchanger.values():
                print(f"{args.id} -> {to_id} via {rate.exchanger_id}: {rate.rate:.6g}")
    else:
        print(f"{record.id}\t{record.name}")
    return 0


def cmd_export(args: argparse.Namespace) -> int:
    """Write all rates to CSV."""
    bc = _load(args)
    if bc is None:
        return 1

    df = bc.dataset.rates_frame()
    args.output.parent.mkdir(parents=True, exist_ok=True)
    df.to_csv(args.output, index=False)

    logger.info("Exported %d rates to %s", len(df), args.output)
    return 0


def cmd_clear_cache(args: argparse.Namespace) -> int:
    """Delete the cached bundle."""
    cache = BundleCache(args.cache_path)
    if cache.invalidate():
        logger.info("Removed %s", args.cache_path)
    else:
        logger.info("No cached bundle at %s", args.cache_path)
    return 0


def main() -> int:
    """Main entry point."""
    parser = argparse.ArgumentParser(
        prog="bestchange",
        description="Download and query BestChange exchanger rates",
    )

    # Global arguments
    parser.add_argument(
        "--verbose",
        "-v",
        action="store_true",
        help="Enable verbose logging (DEBUG level)",
    )
    parser.add_argument(
        "--quiet",
        "-q",
        action="store_true",
        help="Suppress progress bars",
    )
    parser.add_argument(
        "--log-file",
        type=Path,
        help="Log to file (in addition to console)",
    )
    parser.add_argument(
        "--cache-path",
        type=Path,
        default=DEFAULT_CACHE_FILE,
        help=f"Cached bundle location (default: {DEFAULT_CACHE_FILE})",
    )
    parser.add_argument(
        "--ttl",
        type=int,
        default=CACHE_TTL_SECONDS,
        help=f"Cache freshness window in seconds (default: {CACHE_TTL_SECONDS})",
    )
    parser.add_argument(
        "--timeout",
        type=float,
        default=FETCH_TIMEOUT_SECONDS,
        help=f"Download timeout in seconds (default: {FETCH_TIMEOUT_SECONDS})",
    )
    parser.add_argument(
        "--no-cache",
        action="store_true",
        help="Download into a temporary file, leave the cache untouched",
    )

    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    subparsers.add_parser("fetch", help="Download the bundle now, ignoring the cache")
    subparsers.add_parser("status", help="Show bundle version, last update and counts")
    subparsers.add_parser("currencies", help="List currencies")
    subparsers.add_parser("exchangers", help="List exchangers")

    # rates command
    rates_parser = subparsers.add_parser("rates", help="List offers for a currency pair")
    rates_parser.add_argument(
        "--from",
        dest="from_id",
        type=int,
        required=True,
        help="Currency id given",
    )
    rates_parser.add_argument(
        "--to",
        dest="to_id",
        type=int,
        required=True,
        help="Currency id received",
    )

    # lookup command
    lookup_parser = subparsers.add_parser("lookup", help="Show one record by id")
    lookup_parser.add_argument(
        "kind",
        choices=[kind.value for kind in RecordKind],
        help="Record collection",
    )
    lookup_parser.add_argument("id", type=int, help="Record id")

    # export command
    export_parser = subparsers.add_parser("export", help="Write all rates to a CSV file")
    export_parser.add_argument(
        "output",
        type=Path,
        nargs="?",
        default=OUTPUT_DIR / "rates.csv",
        help=f"CSV path (default: {OUTPUT_DIR / 'rates.csv'})",
    )

    subparsers.add_parser("clear-cache", help="Delete the cached bundle")

    args = parser.parse_args()

    # Setup logging based on global args
    log_level = logging.DEBUG if args.verbose else logging.INFO
    setup_logging(level=log_level, log_file=args.log_file, verbose=args.verbose)

    if args.command is None:
        parser.print_help()
        return 0

    # Route to command handler
    commands = {
        "fetch": cmd_fetch,
        "status": cmd_status,
        "currencies": cmd_currencies,
        "exchangers": cmd_exchangers,
        "rates": cmd_rates,
        "lookup": cmd_lookup,
        "export": cmd_export,
        "clear-cache": cmd_clear_cache,
    }

    handler = commands.get(args.command)
    if handler:
        try:
            return handler(args)
        except KeyboardInterrupt:
            logger.info("Interrupted by user")
            return 130
        except Exception as e:
            logger.exception("Unexpected error: %s", e)
            return 1

    parser.print_help()
    return 1


if __name__ == "__main__":
    sys.exit(main())
