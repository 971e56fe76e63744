"""Command line entry point for the nexus harvester."""

import argparse
import asyncio
import json
import sys
from pathlib import Path
from typing import List, Optional

import aiofiles
from pydantic import ValidationError

from nexus.core.config import HarvestConfig, Settings
from nexus.core.exceptions import ConfigurationError, NexusException
from nexus.core.logging import configure_logging
from nexus.harvest.pipeline import HarvestPipeline, HarvestReport
from nexus.platform.destinations.typesense import ImportSummary, TypesenseDestination

TOKEN_HELP = """Please set your GitHub token first:
export GITHUB_TOKEN=your_token_here
(or add GITHUB_TOKEN=... to a .env file in the working directory)
"""


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="nexus-harvest",
        description="Harvest activity metadata from application repositories.",
    )
    parser.add_argument(
        "-v", "--verbose", action="store_true", help="Increase log verbosity for troubleshooting."
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    run_parser = subparsers.add_parser(
        "run", help="Fetch topic manifests and write the nexus topic and search-import files."
    )
    run_parser.add_argument("--data-dir", type=Path, help="Output directory of the import file.")
    run_parser.add_argument("--topic-dir", type=Path, help="Output directory of the topic file.")
    run_parser.add_argument(
        "--publish",
        action="store_true",
        help="Import the search records into Typesense after writing the files.",
    )

    publish_parser = subparsers.add_parser(
        "publish", help="Import an existing fetch-results file into Typesense."
    )
    publish_parser.add_argument("file", type=Path, help="Path to a fetch-results-*.json file.")

    return parser


def _load_settings() -> Settings:
    try:
        return Settings()
    except ValidationError as e:
        raise ConfigurationError(f"Invalid settings: {e}") from e


def _typesense_destination(settings: Settings) -> TypesenseDestination:
    if not settings.typesense_url or not settings.typesense_api_key:
        raise ConfigurationError("TYPESENSE_URL and TYPESENSE_API_KEY must be set to publish")
    return TypesenseDestination(
        base_url=settings.typesense_url,
        api_key=settings.typesense_api_key,
        collection=settings.typesense_collection,
    )


def _print_report(report: HarvestReport) -> None:
    batch = report.topic_batch
    print(f"Summary: {report.successful_sources}/{len(report.source_urls)} sources successful")
    for url, failure in batch.failures.items():
        print(f"  failed: {url} ({failure.error})")
    for error in batch.parse_errors:
        print(f"  unparseable: {error.source_url} ({error.error})")
    for url in batch.skipped:
        print(f"  skipped (unsupported encoding): {url}")
    print(
        f"Activities: {len(report.stubs)} unique, {len(report.activities)} resolved, "
        f"{len(report.misses)} missing"
    )
    for miss in report.misses:
        print(f"  missing: {miss.path} (app {miss.app_name})")
    if report.artifacts is not None:
        print(f"Topic manifest saved to: {report.artifacts.topic_path}")
        print(f"Results saved to: {report.artifacts.search_import_path}")


def _print_import_summary(summary: ImportSummary) -> None:
    print(f"Imported: {summary.success_count} ok, {summary.failure_count} failed")


async def _run(args: argparse.Namespace, settings: Settings) -> None:
    if args.data_dir is not None:
        settings.data_output_dir = args.data_dir
    if args.topic_dir is not None:
        settings.topic_output_dir = args.topic_dir
    config = HarvestConfig.from_settings(settings)

    destination = _typesense_destination(settings) if args.publish else None

    report = await HarvestPipeline(config).run()
    _print_report(report)

    if destination is not None:
        _print_import_summary(await destination.import_documents(report.records))


async def _publish(args: argparse.Namespace, settings: Settings) -> None:
    destination = _typesense_destination(settings)
    async with aiofiles.open(args.file, "r", encoding="utf-8") as f:
        records = json.loads(await f.read())
    if not isinstance(records, list):
        raise ConfigurationError(f"{args.file} must contain a JSON array of records")
    _print_import_summary(await destination.import_documents(records))


def main(argv: Optional[List[str]] = None) -> None:
    """CLI entrypoint for nexus-harvest."""
    parser = _build_parser()
    args = parser.parse_args(argv)

    try:
        settings = _load_settings()
    except ConfigurationError as e:
        parser.exit(1, f"Error: {e}\n")
    configure_logging(level="DEBUG" if args.verbose else settings.log_level)

    if args.command == "run" and not settings.github_token:
        parser.exit(1, f"Error: GITHUB_TOKEN environment variable is not set\n{TOKEN_HELP}")

    handler = _run if args.command == "run" else _publish
    try:
        asyncio.run(handler(args, settings))
    except ConfigurationError as e:
        parser.exit(1, f"Error: {e}\n")
    except (NexusException, OSError, ValueError) as e:
        parser.exit(1, f"Error: {e}\nRun with --verbose for more details.\n")


if __name__ == "__main__":
    main(sys.argv[1:])
