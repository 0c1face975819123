"""
Command line entry point: search providers and export the articles found.

Example:
    newsscraper 2013-06-01 2013-06-30 Snowden NSA --providers guardian,welt
"""
import argparse
import asyncio
import logging
import sys
from datetime import date
from typing import List, Optional, Sequence

from newsscraper.core.config import Settings, get_settings
from newsscraper.core.database import Database
from newsscraper.core.logging import configure_logging
from newsscraper.crawler.article import RunResult, day_range
from newsscraper.crawler.exceptions import ConfigurationError
from newsscraper.crawler.fetch import DocumentFetcher, FetcherConfig
from newsscraper.crawler.orchestrator import AcquisitionOrchestrator
from newsscraper.crawler.providers import build_providers
from newsscraper.services.exporter import Exporter

logger = logging.getLogger(__name__)

EXIT_CONFIGURATION_ERROR = 2


def _parse_day(value: str) -> date:
    try:
        return date.fromisoformat(value)
    except ValueError:
        raise argparse.ArgumentTypeError(f"invalid date {value!r}, expected YYYY-MM-DD") from None


def _parse_providers(value: str) -> List[str]:
    return [name.strip() for name in value.split(",") if name.strip()]


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="newsscraper",
        description="Search news providers for articles and export them",
    )
    parser.add_argument("from_date", type=_parse_day, help="First publication day (YYYY-MM-DD)")
    parser.add_argument("to_date", type=_parse_day, help="Last publication day (YYYY-MM-DD)")
    parser.add_argument("keywords", nargs="+", help="Search keywords, searched separately")
    parser.add_argument(
        "--providers",
        type=_parse_providers,
        default=None,
        help="Comma separated provider names (default: ENABLED_PROVIDERS setting)",
    )
    parser.add_argument("--no-export", action="store_true", help="Do not write the export database")
    parser.add_argument("--reset", action="store_true", help="Empty the export database first")
    parser.add_argument("--database-url", default=None, help="Overrides DATABASE_URL")
    parser.add_argument("--log-level", default=None, help="Overrides LOG_LEVEL")
    return parser


async def run(
    keywords: Sequence[str],
    first_day: date,
    last_day: date,
    settings: Settings,
    provider_names: Optional[Sequence[str]] = None,
    export: bool = True,
    reset: bool = False,
    database_url: Optional[str] = None,
) -> RunResult:
    """
    Acquire articles and optionally export them.

    Raises:
        ConfigurationError: for unknown providers or missing API keys
    """
    from_date, to_date = day_range(first_day, last_day)

    fetcher = DocumentFetcher(FetcherConfig.from_settings(settings))
    providers = build_providers(fetcher, settings, provider_names)
    logger.info(
        "Searching %d provider(s) for %d keyword(s) from %s to %s",
        len(providers), len(keywords), first_day, last_day,
    )

    async with fetcher:
        orchestrator = AcquisitionOrchestrator(providers, settings=settings)
        result = await orchestrator.run(keywords, from_date, to_date)

    if export:
        database = Database(url=database_url)
        await database.connect()
        try:
            await database.create_all()
            await Exporter(database).export(result, [p.name for p in providers], reset=reset)
        finally:
            await database.disconnect()

    return result


def main(argv: Optional[Sequence[str]] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    if args.to_date < args.from_date:
        parser.error("to_date must not be before from_date")

    settings = get_settings()
    configure_logging(args.log_level or settings.LOG_LEVEL)

    try:
        result = asyncio.run(run(
            args.keywords,
            args.from_date,
            args.to_date,
            settings,
            provider_names=args.providers,
            export=not args.no_export,
            reset=args.reset,
            database_url=args.database_url,
        ))
    except ConfigurationError as e:
        print(f"Configuration error: {e}", file=sys.stderr)
        return EXIT_CONFIGURATION_ERROR

    for name, articles in result.items():
        print(f"{name}: {len(articles)} article(s)")
    print(f"total: {sum(len(a) for a in result.values())} article(s)")
    return 0


if __name__ == "__main__":
    sys.exit(main())
