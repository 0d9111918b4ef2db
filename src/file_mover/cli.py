"""
Command-line interface for the file mover application.

This module is responsible for:
- Parsing command-line arguments using argparse
- Configuring logging based on verbosity level
- Orchestrating scan, selection, move and report
- Displaying progress and results to the user
"""

import argparse
import logging
import sys
import threading
from datetime import datetime
from pathlib import Path
from typing import Dict, List, Optional

from . import __version__, PRODUCT_NAME, PRODUCT_DESCRIPTION
from .filters import VIDEO_EXTENSIONS, build_extension_filter
from .progress import CallbackProgressSink
from .report import generate_report, summarize_errors
from .runner import OperationRunner, RequestStatus
from .types import FileRecord, MoveBatchResult, RelocationOptions, ScanOptions, ScanResult
from .utils import format_size, parse_size

logger = logging.getLogger(__name__)

# Rows printed in the scan result table
LIST_LIMIT = 50


def create_parser() -> argparse.ArgumentParser:
    """Create and configure the argument parser."""
    parser = argparse.ArgumentParser(
        prog="file-mover",
        description=f"""
{PRODUCT_NAME} - {PRODUCT_DESCRIPTION}

Recursively scans SOURCE for files matching the extension and name
filters, lists them largest-first, and moves the selection into DEST.
Symbolic links and junctions are never followed.
        """.strip(),
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # List video files, largest first
  %(prog)s D:\\Videos --ext mp4 --ext mkv --list-only

  # Move the 10 largest .mp4 files
  %(prog)s D:\\Videos E:\\Archive --ext mp4 --top 10

  # Move everything over 1 GB, keeping the folder layout
  %(prog)s D:\\Videos E:\\Archive --min-size 1GB --keep-structure

  # Group each file under its parent folder's name
  %(prog)s D:\\Videos E:\\Archive --custom-ext "mp4, mkv" --with-parent-folder

  # Preview with dry-run and write a report
  %(prog)s D:\\Videos E:\\Archive --name-contains holiday --dry-run --report moves.csv

Notes:
  - No extension options means every file matches
  - Name collisions get " (1)", " (2)" suffixes (use --no-auto-rename to fail instead)
  - With --with-parent-folder, existing destinations are skipped, never renamed
  - Use --dry-run to preview operations without making changes
        """
    )

    parser.add_argument(
        "source_root",
        type=Path,
        help="Root directory to search recursively"
    )
    parser.add_argument(
        "dest_root",
        type=Path,
        nargs="?",
        default=None,
        help="Destination directory (required unless --list-only)"
    )

    # Filters
    parser.add_argument(
        "-e", "--ext",
        action="append",
        default=[],
        dest="extensions",
        metavar="EXT",
        help=f"Extension to include; repeatable (common: {', '.join(VIDEO_EXTENSIONS)})"
    )
    parser.add_argument(
        "--custom-ext",
        type=str,
        default="",
        metavar="LIST",
        help="Extensions separated by commas, semicolons or spaces"
    )
    parser.add_argument(
        "--name-contains",
        type=str,
        default="",
        metavar="TEXT",
        help="Only files whose name contains TEXT (case-insensitive)"
    )

    # Selection
    parser.add_argument(
        "--min-size",
        type=parse_size,
        default=None,
        metavar="SIZE",
        help="Select only files at least SIZE (e.g. 500MB, 2GB)"
    )
    parser.add_argument(
        "--top",
        type=int,
        default=None,
        metavar="N",
        help="Select only the N largest matching files"
    )

    # Relocation
    parser.add_argument(
        "--keep-structure",
        action="store_true",
        help="Recreate each file's folder path relative to SOURCE under DEST"
    )
    parser.add_argument(
        "--with-parent-folder",
        action="store_true",
        help="Place each file under DEST/<name of its parent folder>"
    )
    parser.add_argument(
        "--no-auto-rename",
        action="store_false",
        dest="auto_rename",
        help="Fail items whose destination exists instead of renaming"
    )

    # Modes
    parser.add_argument(
        "-n", "--dry-run", "--whatif",
        action="store_true",
        dest="dry_run",
        help="Preview operations without actually moving files"
    )
    parser.add_argument(
        "-l", "--list-only",
        action="store_true",
        help="Only scan and list matching files"
    )
    parser.add_argument(
        "-r", "--report",
        type=Path,
        default=None,
        metavar="CSV_FILE",
        help="Write a CSV report of every move outcome"
    )
    parser.add_argument(
        "-y", "--yes",
        action="store_true",
        help="Skip confirmation prompt (use with caution)"
    )

    # Verbosity
    parser.add_argument(
        "-v", "--verbose",
        action="count",
        default=0,
        help="Increase output verbosity (-v for INFO, -vv for DEBUG)"
    )
    parser.add_argument(
        "--version",
        action="version",
        version=__version__
    )

    return parser


def setup_logging(verbosity: int) -> None:
    """Configure logging based on verbosity level."""
    if verbosity >= 2:
        level = logging.DEBUG
    elif verbosity >= 1:
        level = logging.INFO
    else:
        level = logging.WARNING

    logging.basicConfig(
        level=level,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S"
    )


def validate_args(args: argparse.Namespace) -> bool:
    """Validate paths and option combinations."""
    errors = []

    if not args.source_root.exists():
        errors.append(f"Source root not found: {args.source_root}")
    elif not args.source_root.is_dir():
        errors.append(f"Source root is not a directory: {args.source_root}")

    if not args.list_only:
        if args.dest_root is None:
            errors.append("Destination root is required unless --list-only is given")
        elif not args.dest_root.exists():
            errors.append(f"Destination root not found: {args.dest_root}")
        elif not args.dest_root.is_dir():
            errors.append(f"Destination root is not a directory: {args.dest_root}")

    if args.top is not None and args.top < 1:
        errors.append("--top must be at least 1")

    for error in errors:
        logger.error(error)
        print(f"Error: {error}", file=sys.stderr)

    return len(errors) == 0


def select_records(
    records: List[FileRecord],
    min_size: Optional[int] = None,
    top: Optional[int] = None,
    with_parent_folder: bool = False
) -> List[FileRecord]:
    """
    Mark the records chosen on the command line as selected.

    Records are ordered largest-first, so --top takes a prefix.

    Returns:
        The selected records, in order
    """
    chosen = [r for r in records if min_size is None or r.size_bytes >= min_size]
    if top is not None:
        chosen = chosen[:top]

    for record in chosen:
        record.selected = True
        record.move_with_parent_folder = with_parent_folder

    return chosen


def get_run_parameters(args: argparse.Namespace, extension_filter) -> Dict[str, str]:
    """
    Get run parameters as a dictionary for traceability.

    Args:
        args: Parsed command-line arguments
        extension_filter: The normalized extension set in effect

    Returns:
        Dictionary of parameter names to values
    """
    return {
        "version": __version__,
        "timestamp": datetime.now().isoformat(),
        "source_root": str(args.source_root.resolve()),
        "dest_root": str(args.dest_root.resolve()) if args.dest_root else "",
        "extensions": ",".join(sorted(extension_filter)) or "(all)",
        "name_contains": args.name_contains,
        "min_size": str(args.min_size) if args.min_size is not None else "",
        "top": str(args.top) if args.top else "",
        "keep_structure": str(args.keep_structure),
        "with_parent_folder": str(args.with_parent_folder),
        "auto_rename": str(args.auto_rename),
        "dry_run": str(args.dry_run),
    }


def confirm_operation(count: int, total_size: int, dest_root: Path) -> bool:
    """
    Prompt user to confirm the move operation.

    Returns:
        True if user confirms, False otherwise
    """
    print(f"\n{'!'*60}")
    print("CONFIRMATION REQUIRED")
    print(f"{'!'*60}")
    print(f"\nYou are about to MOVE {count} file(s) ({format_size(total_size)}) to:")
    print(f"  {dest_root}")
    print("\nThis operation cannot be undone.")
    print("Use --dry-run to preview changes first.")
    print(f"{'!'*60}\n")

    try:
        response = input("Type 'yes' to proceed, or anything else to cancel: ")
        return response.strip().lower() == "yes"
    except EOFError:
        # Non-interactive environment
        return False


def print_banner(args: argparse.Namespace, extension_filter) -> None:
    """Print startup banner with configuration."""
    print(f"\n{'='*60}")
    print(f"{PRODUCT_NAME}")
    print(f"Version {__version__}")
    print(f"{PRODUCT_DESCRIPTION}")
    print(f"{'='*60}")
    print(f"Source root:  {args.source_root}")
    if args.dest_root:
        print(f"Dest root:    {args.dest_root}")
    print(f"Extensions:   {', '.join(sorted(extension_filter)) or '(all files)'}")
    if args.name_contains:
        print(f"Name filter:  {args.name_contains}")

    if args.list_only:
        print("Mode:         LIST ONLY")
    elif args.dry_run:
        print("Mode:         DRY RUN (no changes will be made)")
    else:
        print("Mode:         LIVE (files will be moved)")

    layout = "flat"
    if args.with_parent_folder:
        layout = "grouped by parent folder"
    elif args.keep_structure:
        layout = "relative structure"
    print(f"Layout:       {layout}")
    if not args.auto_rename:
        print("On exists:    fail (no auto-rename)")
    if args.report:
        print(f"Report:       {args.report}")

    print(f"{'='*60}\n")


def print_records(records: List[FileRecord], limit: int = LIST_LIMIT) -> None:
    """Print the largest-first result table."""
    for record in records[:limit]:
        print(f"  {record.size_human:>10}  {record.full_path}")
    if len(records) > limit:
        print(f"  ... (+{len(records) - limit} more)")


def print_summary(
    scan_result: ScanResult,
    selected: List[FileRecord],
    batch: MoveBatchResult,
    dry_run: bool
) -> None:
    """Print final summary of operations."""
    statuses = [r.status.value for r in batch.results]
    renamed = statuses.count("success_renamed") + statuses.count("dry_run_renamed")
    skipped = statuses.count("skipped_exists") + statuses.count("skipped_missing")

    print(f"\n{'='*60}")
    print("SUMMARY")
    print(f"{'='*60}")

    print(f"\nScan:")
    print(f"  Files found:           {len(scan_result.records)}")
    print(f"  Files selected:        {len(selected)}")

    print(f"\nOperations:")
    if dry_run:
        would = statuses.count("dry_run") + statuses.count("dry_run_renamed")
        print(f"  Would move:            {would}")
    else:
        print(f"  Moved:                 {len(batch.moved_paths)}")
    if renamed:
        print(f"    (with rename:        {renamed})")
    if skipped:
        print(f"  Skipped:               {skipped}")
    if batch.error_count:
        print(f"  Errors:                {batch.error_count}")
    if batch.cancelled:
        print(f"  Cancelled after:       {len(batch.results)} of {len(selected)}")

    if batch.errors:
        print(f"\nProblems:")
        for line in summarize_errors(batch.errors).splitlines():
            print(f"  {line}")

    print(f"{'='*60}\n")


def _print_progress(count: int, total: int, status_text: str) -> None:
    if status_text:
        print(f"\r  {status_text}", end="", flush=True)
    if count == total:
        print()


def _run_in_background(runner: OperationRunner, start) -> object:
    """
    Start an operation through the runner and wait for it.

    Ctrl+C cancels the operation; work already done stands.
    """
    outcome: Dict[str, object] = {}
    done = threading.Event()

    def on_complete(result, error):
        outcome["result"] = result
        outcome["error"] = error
        done.set()

    status = start(on_complete)
    if status != RequestStatus.STARTED:
        raise ValueError(runner.last_error or f"Operation not started: {status.value}")

    try:
        while not done.wait(0.2):
            pass
    except KeyboardInterrupt:
        print("\n  Cancelling after the current file...", file=sys.stderr)
        runner.cancel()
        done.wait()

    # on_complete runs before the worker releases the runner
    runner.wait()

    if outcome.get("error") is not None:
        raise outcome["error"]
    return outcome["result"]


def main(argv: list = None) -> int:
    """
    Main entry point for the CLI.

    Args:
        argv: Command-line arguments (defaults to sys.argv[1:])

    Returns:
        Exit code (0 for success, non-zero for errors)
    """
    parser = create_parser()
    args = parser.parse_args(argv)

    setup_logging(args.verbose)

    logger.info(f"{PRODUCT_NAME} v{__version__}")
    logger.debug(f"Arguments: {args}")

    if not validate_args(args):
        return 1

    extension_filter = build_extension_filter(
        custom_text=args.custom_ext,
        extra=args.extensions
    )

    run_params = get_run_parameters(args, extension_filter)
    logger.info("Run parameters:")
    for key, value in run_params.items():
        if value:
            logger.info(f"  {key}: {value}")

    print_banner(args, extension_filter)

    runner = OperationRunner()
    progress = CallbackProgressSink(_print_progress)

    try:
        # Step 1: Scan
        print("Step 1: Scanning source folder...")
        scan_options = ScanOptions(
            source_root=str(args.source_root),
            extension_filter=extension_filter,
            name_contains=args.name_contains
        )
        scan_result: ScanResult = _run_in_background(
            runner,
            lambda done: runner.start_scan(scan_options, progress, done)
        )
        records = scan_result.records
        print(f"  Found {len(records)} matching files")
        print_records(records)

        if args.list_only:
            return 0

        # Step 2: Select
        print("\nStep 2: Selecting files...")
        selected = select_records(
            records,
            min_size=args.min_size,
            top=args.top,
            with_parent_folder=args.with_parent_folder
        )
        total_size = sum(r.size_bytes for r in selected)
        print(f"  Selected {len(selected)} files ({format_size(total_size)})")

        if not selected:
            print("\nNo files selected. Nothing to move.")
            return 0

        if not args.dry_run:
            if not args.yes:
                if not confirm_operation(len(selected), total_size, args.dest_root):
                    print("\nOperation cancelled by user.")
                    logger.info("Operation cancelled by user at confirmation prompt")
                    return 0
            else:
                logger.info("Confirmation skipped (--yes flag)")

        # Step 3: Move
        mode_str = "DRY RUN" if args.dry_run else "Moving"
        print(f"\nStep 3: {mode_str} {len(selected)} files...")
        relocation = RelocationOptions(
            destination_root=str(args.dest_root),
            source_root=str(args.source_root),
            keep_relative_structure=args.keep_structure,
            auto_rename_on_conflict=args.auto_rename,
            dry_run=args.dry_run
        )
        batch: MoveBatchResult = _run_in_background(
            runner,
            lambda done: runner.start_move(selected, relocation, progress, done)
        )

        # Step 4: Report
        if args.report:
            print(f"\nStep 4: Writing report to {args.report}...")
            writer = generate_report(batch.results, args.report, run_params)
            print(f"  Wrote {writer.get_row_count()} entries")

        print_summary(scan_result, selected, batch, args.dry_run)

        if args.report:
            print(f"Report saved to: {args.report}")

        if batch.cancelled:
            return 130
        if batch.error_count > 0:
            return 2
        return 0

    except (FileNotFoundError, NotADirectoryError, ValueError) as e:
        print(f"\nError: {e}", file=sys.stderr)
        logger.error(f"{type(e).__name__}: {e}")
        return 1

    except KeyboardInterrupt:
        print("\n\nOperation cancelled by user.", file=sys.stderr)
        return 130

    except Exception as e:
        print(f"\nUnexpected error: {e}", file=sys.stderr)
        logger.exception("Unexpected error")
        return 1


if __name__ == "__main__":
    sys.exit(main())
