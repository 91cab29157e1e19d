"""Command-line interface for ddex-ingest."""

import argparse
import json
import logging
import sys
from pathlib import Path

from ddex_ingest.acknowledgement import Acknowledger
from ddex_ingest.config import Sources, database_path, store_root
from ddex_ingest.exceptions import IngestError
from ddex_ingest.ingest import DeliveryIngestor
from ddex_ingest.parsers import DeliveryParser
from ddex_ingest.poller import DeliveryPoller
from ddex_ingest.storage import FilesystemObjectStore, iter_delivery_files, read_local
from ddex_ingest.store import Catalog, Database
from ddex_ingest.worker import PollWorker

DEFAULT_POLL_INTERVAL = 300


def setup_logging(verbose: bool = False) -> None:
    """Configure logging for the CLI."""
    level = logging.DEBUG if verbose else logging.INFO
    logging.basicConfig(
        level=level,
        format="%(levelname)s: %(message)s",
    )


def build_ingestor(args: argparse.Namespace) -> tuple[Sources, Catalog, DeliveryIngestor]:
    """Wire the source registry, catalog and ingestor from global options."""
    sources = Sources.load(args.sources)
    catalog = Catalog(Database(database_path(args.db)))
    parser = DeliveryParser(users=catalog.users, api_keys=sources)
    ingestor = DeliveryIngestor(catalog, parser=parser, acknowledger=Acknowledger(sources))
    return sources, catalog, ingestor


def build_poller(args: argparse.Namespace, catalog: Catalog, ingestor: DeliveryIngestor) -> DeliveryPoller:
    store = FilesystemObjectStore(store_root(args.store_root))
    return DeliveryPoller(
        store,
        catalog.cursors,
        ingestor,
        batch_size=args.batch_size,
        max_workers=args.workers,
    )


def parse_delivery(args: argparse.Namespace) -> int:
    """Execute the parse command.

    Parses a local XML file, directory or zip, prints each parsed document
    as JSON and, unless --dry-run is given, ingests it into the catalog.

    Args:
        args: Parsed command-line arguments

    Returns:
        Exit code (0 for success, non-zero for errors)
    """
    setup_logging(args.verbose)
    logger = logging.getLogger(__name__)

    if not args.path.exists():
        logger.error(f"Delivery not found: {args.path}")
        return 1

    try:
        _, catalog, ingestor = build_ingestor(args)
    except Exception as e:
        logger.error(f"Failed to open catalog: {e}")
        return 1

    failures = 0
    try:
        for xml_url, xml_bytes in iter_delivery_files(args.path):
            try:
                delivery = ingestor.parser.parse(args.source, xml_url, xml_bytes)
                print(delivery.model_dump_json(indent=2, exclude_none=True))
                if not args.dry_run:
                    ingestor.ingest(args.source, xml_url, xml_bytes)
            except IngestError as e:
                logger.error(f"Failed to parse {xml_url}: {e.message}")
                failures += 1
    except IngestError as e:
        logger.error(f"Failed to read delivery: {e.message}")
        return 1
    finally:
        catalog.db.close()

    return 1 if failures else 0


def poll(args: argparse.Namespace) -> int:
    """Execute the poll command.

    Args:
        args: Parsed command-line arguments

    Returns:
        Exit code (0 for success, non-zero for errors)
    """
    setup_logging(args.verbose)
    logger = logging.getLogger(__name__)

    try:
        sources, catalog, ingestor = build_ingestor(args)
        poller = build_poller(args, catalog, ingestor)

        if args.source:
            source = sources.find_by_name(args.source)
            if source is None:
                logger.error(f"Unknown source: {args.source}")
                return 1
            results = [poller.poll(source, reset=args.reset)]
        else:
            results = poller.poll_all(sources.all(), reset=args.reset)

        for result in results:
            logger.info(
                f"{result.source}: {result.ingested} ingested, {result.failed} failed, "
                f"cursor {result.cursor!r}"
            )
        return 0

    except Exception as e:
        logger.error(f"Poll failed: {e}")
        return 1


def run_worker(args: argparse.Namespace) -> int:
    """Execute the worker command.

    Args:
        args: Parsed command-line arguments

    Returns:
        Exit code (0 for success, non-zero for errors)
    """
    setup_logging(args.verbose)
    logger = logging.getLogger(__name__)

    try:
        sources, catalog, ingestor = build_ingestor(args)
        poller = build_poller(args, catalog, ingestor)
        worker = PollWorker(poller, sources, poll_interval=args.interval)
        logger.info(f"Polling {len(sources.all())} sources every {args.interval}s")
        worker.run_forever()
        return 0

    except Exception as e:
        logger.error(f"Worker failed: {e}")
        return 1


def reparse(args: argparse.Namespace) -> int:
    """Execute the reparse command.

    Re-ingests every recorded document, reading bucket documents from the
    object store and everything else from the local filesystem.

    Args:
        args: Parsed command-line arguments

    Returns:
        Exit code (0 for success, non-zero for errors)
    """
    setup_logging(args.verbose)
    logger = logging.getLogger(__name__)

    try:
        _, catalog, ingestor = build_ingestor(args)
        store = FilesystemObjectStore(store_root(args.store_root))

        def reader(xml_url: str) -> bytes:
            if xml_url.startswith(f"{store.scheme}://"):
                return store.get_object(*store.split_url(xml_url))
            return read_local(xml_url)

        count = ingestor.reparse(reader)
        logger.info(f"Reparsed {count} documents")
        return 0

    except Exception as e:
        logger.error(f"Reparse failed: {e}")
        return 1


def show_releases(args: argparse.Namespace) -> int:
    """Execute the releases command.

    Args:
        args: Parsed command-line arguments

    Returns:
        Exit code (0 for success, non-zero for errors)
    """
    setup_logging(args.verbose)
    logger = logging.getLogger(__name__)

    try:
        catalog = Catalog(Database(database_path(args.db)))
        rows = catalog.releases.all(
            pending_publish=args.pending,
            status=args.status,
            source=args.source,
            search=args.search,
            limit=args.limit,
        )
        for row in rows:
            print(json.dumps({
                "key": row.key,
                "source": row.source,
                "status": row.status.value,
                "title": row.release.title if row.release else "",
                "problems": row.release.problems if row.release else [],
                "message_timestamp": row.message_timestamp,
            }))
        return 0

    except Exception as e:
        logger.error(f"Failed to list releases: {e}")
        return 1


def main(argv: list[str] | None = None) -> int:
    """Main entry point for the CLI.

    Args:
        argv: Command-line arguments (defaults to sys.argv[1:])

    Returns:
        Exit code
    """
    parser = argparse.ArgumentParser(
        prog="ddex-ingest",
        description="Ingest DDEX deliveries into the release catalog",
    )
    parser.add_argument(
        "-v", "--verbose",
        action="store_true",
        help="Enable verbose output",
    )
    parser.add_argument(
        "--sources",
        type=Path,
        default=None,
        help="Path of sources.json (default: $DDEX_SOURCES or $DATA_DIR/sources.json)",
    )
    parser.add_argument(
        "--db",
        type=Path,
        default=None,
        help="Path of the SQLite catalog (default: $DDEX_DB_PATH or $DATA_DIR/ddex.db)",
    )
    parser.add_argument(
        "--store-root",
        type=Path,
        default=None,
        help="Directory holding one subdirectory per bucket (default: $DDEX_STORE_ROOT or $DATA_DIR/buckets)",
    )

    subparsers = parser.add_subparsers(
        title="commands",
        description="Available commands",
        dest="command",
    )

    parse_parser = subparsers.add_parser(
        "parse",
        help="Parse a local delivery and ingest it",
        description="Parse a local XML file, directory or zip package, print the result as JSON and ingest it.",
    )
    parse_parser.add_argument(
        "source",
        help="Name of the delivering source",
    )
    parse_parser.add_argument(
        "path",
        type=Path,
        help="XML file, directory or zip package",
    )
    parse_parser.add_argument(
        "--dry-run",
        action="store_true",
        help="Print the parsed documents without writing to the catalog",
    )
    parse_parser.set_defaults(func=parse_delivery)

    poll_parser = subparsers.add_parser(
        "poll",
        help="Poll source buckets once",
        description="Ingest every new document in the configured source buckets.",
    )
    poll_parser.add_argument(
        "--source",
        default=None,
        help="Only poll this source",
    )
    poll_parser.add_argument(
        "--reset",
        action="store_true",
        help="Ignore the stored cursor and start from the beginning of the bucket",
    )
    poll_parser.set_defaults(func=poll)

    worker_parser = subparsers.add_parser(
        "worker",
        help="Poll source buckets continuously",
        description="Poll every source bucket, sleep, and repeat until SIGTERM/SIGINT.",
    )
    worker_parser.add_argument(
        "--interval",
        type=float,
        default=DEFAULT_POLL_INTERVAL,
        help=f"Seconds between polling rounds (default: {DEFAULT_POLL_INTERVAL})",
    )
    worker_parser.set_defaults(func=run_worker)

    for subparser in (poll_parser, worker_parser):
        subparser.add_argument(
            "--batch-size",
            type=int,
            default=100,
            help="Top-level bucket entries per batch (default: 100)",
        )
        subparser.add_argument(
            "--workers",
            type=int,
            default=16,
            help="Parallel listings and fetches per batch (default: 16)",
        )

    reparse_parser = subparsers.add_parser(
        "reparse",
        help="Re-ingest every recorded document",
        description="Re-read and re-ingest every recorded delivery document, without acknowledging.",
    )
    reparse_parser.set_defaults(func=reparse)

    releases_parser = subparsers.add_parser(
        "releases",
        help="List catalog releases",
        description="Print catalog releases as JSON lines, newest message first.",
    )
    releases_parser.add_argument("--status", default=None, help="Only releases with this status")
    releases_parser.add_argument("--source", default=None, help="Only releases from this source")
    releases_parser.add_argument("--search", default=None, help="Substring to search for")
    releases_parser.add_argument(
        "--pending",
        action="store_true",
        help="Only releases waiting to be published",
    )
    releases_parser.add_argument("--limit", type=int, default=None, help="Maximum releases listed")
    releases_parser.set_defaults(func=show_releases)

    args = parser.parse_args(argv)

    if args.command is None:
        parser.print_help()
        return 0

    return args.func(args)


if __name__ == "__main__":
    sys.exit(main())
