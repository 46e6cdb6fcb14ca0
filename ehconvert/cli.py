"""CLI entrypoint for converting EhViewer download metadata.

Usage:
    python -m ehconvert.cli ~/EhViewer/download
    python -m ehconvert.cli --input ~/EhViewer/download --format 2
    python -m ehconvert.cli --input ~/EhViewer/download --restore
    python -m ehconvert.cli ~/EhViewer/download --detailed-logging
"""

from __future__ import annotations

import argparse
import logging
from logging.handlers import RotatingFileHandler
import sys
import time
from pathlib import Path

log = logging.getLogger(__name__)


_DETAILED_FMT = (
    "%(asctime)s | %(levelname)-8s | %(name)s | "
    "%(threadName)s | %(filename)s:%(lineno)d | %(message)s"
)
_CONSOLE_FMT = "%(asctime)s | %(levelname)-8s | %(name)s | %(message)s"
_DATE_FMT = "%Y-%m-%d %H:%M:%S"


def _setup_logging(*, verbose: bool, detailed_logging: bool) -> None:
    """Configure console logging on the root logger."""
    root_logger = logging.getLogger()
    root_logger.handlers.clear()

    root_level = logging.DEBUG if verbose else logging.INFO
    root_logger.setLevel(root_level)

    console_handler = logging.StreamHandler()
    console_handler.setLevel(root_level)
    console_handler.setFormatter(
        logging.Formatter(_DETAILED_FMT if detailed_logging else _CONSOLE_FMT, _DATE_FMT)
    )
    root_logger.addHandler(console_handler)


def _add_log_file(log_file: Path) -> None:
    """Mirror every record at DEBUG into a rotating *log_file*.

    Only called once the input directory is known to exist, so the default
    location inside it never creates directories of its own.
    """
    log_file.parent.mkdir(parents=True, exist_ok=True)
    file_handler = RotatingFileHandler(
        log_file,
        maxBytes=20 * 1024 * 1024,
        backupCount=5,
        encoding="utf-8",
    )
    file_handler.setLevel(logging.DEBUG)
    file_handler.setFormatter(logging.Formatter(_DETAILED_FMT, _DATE_FMT))
    logging.getLogger().addHandler(file_handler)


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    """Parse command-line arguments."""
    from .utils import DEFAULT_APP_NAME

    parser = argparse.ArgumentParser(
        description="Convert EhViewer download metadata between text and binary formats"
    )
    parser.add_argument(
        "input",
        nargs="?",
        type=Path,
        help="EhViewer download directory (one subdirectory per gallery)",
    )
    parser.add_argument(
        "--input",
        "-i",
        dest="input_option",
        type=Path,
        default=None,
        help="Same as the positional INPUT",
    )
    parser.add_argument(
        "--format",
        "-f",
        type=int,
        choices=[1, 2],
        default=1,
        help="Output format: 1 for the original text format, 2 for the binary format (default: 1)",
    )
    parser.add_argument(
        "--restore",
        action="store_true",
        help="Restore every item from its backup instead of converting",
    )
    parser.add_argument(
        "--app-name",
        default=DEFAULT_APP_NAME,
        help=f"Metadata file is .<app-name> inside each item (default: {DEFAULT_APP_NAME})",
    )
    parser.add_argument(
        "--verbose",
        "-v",
        action="store_true",
        help="Enable verbose logging",
    )
    parser.add_argument(
        "--detailed-logging",
        action="store_true",
        help="Enable detailed logging (thread, file/line, rotating log file)",
    )
    parser.add_argument(
        "--log-file",
        type=Path,
        default=None,
        help=(
            "Optional log file path "
            "(default: <input>/ehviewer-convert.log in detailed mode)"
        ),
    )
    args = parser.parse_args(argv)
    if args.input_option is not None:
        args.input = args.input_option
    if args.input is None:
        parser.error("an input directory is required")

    return args


def main(argv: list[str] | None = None) -> None:
    """Convert or restore every item under the input directory."""
    from tqdm import tqdm

    from spider_info import InfoFormat

    from .conversion import convert_items, restore_items
    from .utils import LOG_FILE_NAME, discover_items

    args = parse_args(argv)
    _setup_logging(verbose=args.verbose, detailed_logging=args.detailed_logging)

    if not args.input.is_dir():
        log.error("Input is not a directory: %s", args.input)
        sys.exit(1)

    log_file = args.log_file
    if log_file is None and args.detailed_logging:
        log_file = args.input / LOG_FILE_NAME
    if log_file is not None:
        _add_log_file(log_file)
    log.debug(
        "Logging setup: verbose=%s detailed=%s log_file=%s",
        args.verbose,
        args.detailed_logging,
        log_file,
    )

    overall_t0 = time.perf_counter()
    items = discover_items(args.input)
    log.info("Found %s items in %s", len(items), args.input)
    if not items:
        log.warning("Nothing to do. Exiting.")
        return

    if args.restore:
        records = restore_items(
            tqdm(items, desc="Restoring"),
            app_name=args.app_name,
        )
    else:
        fmt = InfoFormat(args.format)
        log.info("Output format: %s", fmt.name.lower())
        records = convert_items(
            tqdm(items, desc="Converting"),
            fmt,
            app_name=args.app_name,
        )

    # --- Summary ---
    success = [r for r in records if r.ok]
    missing = [r for r in records if r.status == "missing"]
    failed = [r for r in records if r.status == "error"]
    log.info("=" * 60)
    log.info("RESTORE COMPLETE" if args.restore else "CONVERSION COMPLETE")
    log.info(f"  Items:        {len(records)}")
    log.info(f"  Succeeded:    {len(success)}")
    log.info(f"  Missing:      {len(missing)}")
    log.info(f"  Failed:       {len(failed)}")
    log.info(f"  Runtime:      {time.perf_counter() - overall_t0:.2f}s")
    if missing or failed:
        log.warning("Items not processed:")
        for r in missing + failed:
            log.warning(f"  - {r.name}: {r.error or r.status}")


if __name__ == "__main__":
    main()
