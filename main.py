#!/usr/bin/env python3
"""
Postal Manifest System - Main Entry Point.

Command-line access to the scanning pipeline: extract parcel labels into
a working session, finalize it into a manifest, and browse or re-export
archived manifests.

Usage:
    Command Line:
        python main.py scan --input ./captures/ --operator "R. Iyer" --finalize
        python main.py finalize --operator "R. Iyer" --excel
        python main.py history --limit 10
        python main.py export --manifest B812345 --output ./exports/
        python main.py show --manifest B812345
        python main.py stats
        python main.py purge --yes

    Python:
        from main import run_scan
        outcomes = run_scan("captures/", operator="R. Iyer")

Author: ML Engineering Team
Version: 1.0.0
"""

import argparse
import asyncio
import logging
import sys
from datetime import date
from pathlib import Path
from typing import List, Optional

from config import ConfigurationManager, get_config
from postal_manifest.utils.logger import get_logger, set_level, setup_logger_from_config
from postal_manifest.utils.exceptions import PostalManifestError


def parse_arguments(argv: Optional[List[str]] = None) -> argparse.Namespace:
    """
    Parse command-line arguments.

    Returns:
        Parsed argument namespace.
    """
    parser = argparse.ArgumentParser(
        description="Postal Manifest System - parcel label scanning and dispatch manifests",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
    Scan a folder of captures and close the run:
        python main.py scan --input ./captures/ --operator "R. Iyer" --finalize

    Finalize an interrupted session:
        python main.py finalize --operator "R. Iyer"

    Show recent manifests:
        python main.py history --limit 5

    Start a new day:
        python main.py purge --yes
        """
    )

    parser.add_argument(
        "--config", "-c",
        type=str,
        default=None,
        help="Path to custom configuration file"
    )

    parser.add_argument(
        "--debug",
        action="store_true",
        help="Enable debug logging"
    )

    subparsers = parser.add_subparsers(dest="command", required=True)

    scan = subparsers.add_parser("scan", help="Extract label images into the working session")
    scan.add_argument("--input", "-i", required=True, help="Image file or directory of images")
    scan.add_argument("--operator", "-o", required=True, help="Operator name for the manifest")
    scan.add_argument("--finalize", action="store_true", help="Finalize the session after scanning")
    scan.add_argument("--excel", action="store_true", help="Also write an XLSX manifest")

    finalize = subparsers.add_parser("finalize", help="Finalize the working session")
    finalize.add_argument("--operator", "-o", required=True, help="Operator name for the manifest")
    finalize.add_argument("--excel", action="store_true", help="Also write an XLSX manifest")

    history = subparsers.add_parser("history", help="List archived manifests")
    history.add_argument("--limit", "-n", type=int, default=None, help="Show at most N manifests")

    export = subparsers.add_parser("export", help="Re-export an archived manifest")
    export.add_argument("--manifest", "-m", required=True, help="Manifest id, e.g. B812345")
    export.add_argument("--output", default=None, help="Output directory")
    export.add_argument("--excel", action="store_true", help="Also write an XLSX manifest")

    show = subparsers.add_parser("show", help="List the units of an archived manifest")
    show.add_argument("--manifest", "-m", required=True, help="Manifest id, e.g. B812345")

    stats = subparsers.add_parser("stats", help="Units sorted on a day (default: today, UTC)")
    stats.add_argument("--date", type=date.fromisoformat, default=None, help="Day as YYYY-MM-DD")

    purge = subparsers.add_parser("purge", help="Delete the manifest archive and the working session")
    purge.add_argument("--yes", action="store_true", help="Confirm the purge")

    return parser.parse_args(argv)


def initialize_system(args: argparse.Namespace) -> ConfigurationManager:
    """
    Load configuration and set up logging.

    Args:
        args: Parsed command-line arguments.

    Returns:
        Initialized configuration manager.
    """
    config = ConfigurationManager(args.config)

    logger = setup_logger_from_config()
    if args.debug:
        set_level(logging.DEBUG)

    logger.info("=" * 60)
    logger.info("POSTAL MANIFEST SYSTEM")
    logger.info("=" * 60)
    logger.info(f"Version: {config.get('project.version', '1.0.0')}")

    return config


def collect_images(input_path: str) -> List[Path]:
    """
    List the image files to scan, in name order.

    Raises:
        FileNotFoundError: If the input path doesn't exist.
        ValueError: If a single file has an unsupported extension.
    """
    logger = get_logger(__name__)
    path = Path(input_path)
    supported = {
        ext.lower() for ext in
        get_config("input.supported_extensions", ['.jpg', '.jpeg', '.png', '.webp', '.bmp'])
    }

    if not path.exists():
        raise FileNotFoundError(f"Input path not found: {path}")

    if path.is_file():
        if path.suffix.lower() not in supported:
            raise ValueError(f"Unsupported file type: {path.suffix}")
        return [path]

    files = sorted(p for p in path.iterdir() if p.is_file() and p.suffix.lower() in supported)
    if not files:
        logger.warning(f"No supported images found in: {path}")
    else:
        logger.info(f"Found {len(files)} images to scan")
    return files


def build_aggregator(excel_enabled: Optional[bool] = None):
    """Session aggregator wired to the configured stores and exporters."""
    from postal_manifest.output_handler import ManifestArchive, OutputHandler, WorkingSessionStore
    from postal_manifest.session import SessionAggregator

    return SessionAggregator(
        session_store=WorkingSessionStore(),
        exporter=OutputHandler(excel_enabled=excel_enabled),
        archive=ManifestArchive(),
    )


async def scan_images(files: List[Path], operator: str, finalize: bool, excel: bool):
    """
    Extract every file into the working session, one at a time.

    Returns:
        (outcomes, manifest) where manifest is None unless finalized.
    """
    from postal_manifest.recognition import create_default_adapter
    from postal_manifest.session import CaptureController

    logger = get_logger(__name__)
    adapter = create_default_adapter()
    controller = CaptureController(adapter, lambda: build_aggregator(excel or None))
    restored = controller.aggregator.restore()
    if restored:
        print(f"Resumed working session with {restored} units")

    outcomes = []
    try:
        for file_path in files:
            outcome = await controller.capture(file_path.read_bytes())
            outcomes.append(outcome)

            line = f"{file_path.name}: {outcome.status}"
            if outcome.item is not None:
                line += f" [{outcome.item.id}] {outcome.item.tracking_id}"
            if outcome.warning:
                line += f" ({outcome.warning})"
            print(line)
    finally:
        await adapter.transport.close()

    accepted = sum(1 for outcome in outcomes if outcome.accepted)
    logger.info(f"Scanned {len(files)} images, {accepted} accepted, {len(controller.aggregator)} in session")

    manifest = controller.finalize(operator) if finalize else None
    return outcomes, manifest


def run_scan(
    input_path: str,
    operator: str,
    finalize: bool = False,
    excel: bool = False
):
    """
    Scan images into the working session.

    This is the main programmatic entry point for the scanning pipeline.

    Args:
        input_path: Image file or directory.
        operator: Operator name recorded on a finalized manifest.
        finalize: Whether to finalize after scanning.
        excel: Whether to write an XLSX copy when finalizing.

    Returns:
        (outcomes, manifest) tuple.
    """
    files = collect_images(input_path)
    return asyncio.run(scan_images(files, operator, finalize, excel))


def print_manifest_summary(manifest, export_info=None) -> None:
    print(
        f"Manifest {manifest.id}: {manifest.item_count} units, "
        f"{manifest.warning_count} routing warnings, operator {manifest.operator_name}"
    )
    if export_info:
        for label, key in (("CSV", 'csv_path'), ("Excel", 'excel_path')):
            if export_info.get(key):
                print(f"  {label}: {export_info[key]}")


def command_scan(args: argparse.Namespace) -> int:
    outcomes, manifest = run_scan(args.input, args.operator, args.finalize, args.excel)
    if manifest is not None:
        print_manifest_summary(manifest)
    return 0


def command_finalize(args: argparse.Namespace) -> int:
    aggregator = build_aggregator(args.excel or None)
    aggregator.restore()
    manifest = aggregator.finalize(args.operator)
    print_manifest_summary(manifest, aggregator.last_export)
    return 0


def command_history(args: argparse.Namespace) -> int:
    from postal_manifest.output_handler import ManifestArchive

    manifests = ManifestArchive().list_manifests(limit=args.limit)
    if not manifests:
        print("No archived manifests")
        return 0

    for manifest in manifests:
        print(
            f"{manifest.id}  {manifest.end_timestamp}  {manifest.operator_name:<20}  "
            f"units={manifest.item_count}  warnings={manifest.warning_count}"
        )
    return 0


def command_export(args: argparse.Namespace) -> int:
    from postal_manifest.output_handler import ManifestArchive, OutputHandler

    manifest = ManifestArchive().get(args.manifest)
    if manifest is None:
        print(f"Error: manifest not found: {args.manifest}", file=sys.stderr)
        return 1

    handler = OutputHandler(excel_enabled=args.excel or None, output_dir=args.output)
    print_manifest_summary(manifest, handler.export(manifest))
    return 0


def command_show(args: argparse.Namespace) -> int:
    """Print a manifest's units in manifest order."""
    from postal_manifest.output_handler import ManifestArchive

    manifest = ManifestArchive().get(args.manifest)
    if manifest is None:
        print(f"Error: manifest not found: {args.manifest}", file=sys.stderr)
        return 1

    print_manifest_summary(manifest)
    for item in manifest.items:
        print(f"  {item.id} - {item.recipient_name}  {item.tracking_id}  [{item.status}]")
        print(f"      {item.address}")
    return 0


def command_stats(args: argparse.Namespace) -> int:
    from postal_manifest.output_handler import ManifestArchive
    from postal_manifest.utils.helpers import utc_now

    day = args.date or utc_now().date()
    archive = ManifestArchive()
    print(f"Units sorted on {day.isoformat()}: {archive.units_on(day)}")
    print(f"Archived manifests: {archive.count()}")
    return 0


def command_purge(args: argparse.Namespace) -> int:
    """Clear the archive and the working session, like starting a new day."""
    from postal_manifest.output_handler import ManifestArchive, WorkingSessionStore

    if not args.yes:
        print("Error: purge deletes all archived manifests; pass --yes to confirm", file=sys.stderr)
        return 1

    removed = ManifestArchive().clear()
    WorkingSessionStore().clear()
    get_logger(__name__).warning(f"Purged {removed} archived manifests and the working session")
    print(f"Purged {removed} archived manifests and the working session")
    return 0


COMMANDS = {
    'scan': command_scan,
    'finalize': command_finalize,
    'history': command_history,
    'export': command_export,
    'show': command_show,
    'stats': command_stats,
    'purge': command_purge,
}


def main(argv: Optional[List[str]] = None) -> int:
    """
    Main function - entry point for command-line execution.

    Returns:
        Exit code (0 for success, non-zero for errors).
    """
    try:
        args = parse_arguments(argv)
        initialize_system(args)
        return COMMANDS[args.command](args)

    except (FileNotFoundError, ValueError) as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1

    except PostalManifestError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1

    except KeyboardInterrupt:
        print("\nOperation cancelled by user")
        return 130

    except Exception as e:
        print(f"Unexpected error: {e}", file=sys.stderr)
        if "--debug" in sys.argv:
            import traceback
            traceback.print_exc()
        return 1


if __name__ == "__main__":
    sys.exit(main())
