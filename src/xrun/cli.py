"""xrun CLI: run a command template once per data record."""

import argparse
import logging
import sys
from importlib.metadata import version as get_version, PackageNotFoundError
from pathlib import Path

LOG_HANDLER_NAME = "xrun-cli"
LOG_FORMAT = "xrun: %(levelname)s: %(message)s"


def _configure_logging(verbose: bool) -> None:
    """Send package diagnostics to stderr. Safe to call more than once per process."""
    package_logger = logging.getLogger("xrun")
    for handler in list(package_logger.handlers):
        if handler.get_name() == LOG_HANDLER_NAME:
            package_logger.removeHandler(handler)

    handler = logging.StreamHandler(sys.stderr)
    handler.set_name(LOG_HANDLER_NAME)
    handler.setFormatter(logging.Formatter(LOG_FORMAT))
    package_logger.addHandler(handler)
    package_logger.setLevel(logging.INFO if verbose else logging.WARNING)


def build_parser() -> argparse.ArgumentParser:
    try:
        xrun_version = get_version("xrun")
    except PackageNotFoundError:
        xrun_version = "dev"

    parser = argparse.ArgumentParser(
        prog="xrun",
        description="Run a command template once per record of a CSV, JSON or JSON Lines file.",
        epilog=(
            "Data files ending in .json are read as a JSON array of objects, "
            ".jsonl as one JSON object per line, anything else as CSV with a header row. "
            "Use {{.field_name}} in the template to substitute a field value. "
            "Unless --dry-run or --no-log-files is given, output is also saved to "
            "xrun-<data-file-name>-<timestamp>.logs in the current directory."
        ),
    )
    parser.add_argument("--version", action="version", version=f"xrun {xrun_version}")
    parser.add_argument(
        "-d", "--data",
        dest="data_file",
        type=Path,
        required=True,
        help="Path to the data file (CSV/JSON/JSONL)"
    )
    template_group = parser.add_mutually_exclusive_group(required=True)
    template_group.add_argument(
        "-e", "--exec",
        dest="template",
        default=None,
        help="Command template to execute for each record"
    )
    template_group.add_argument(
        "-f", "--template-file",
        type=Path,
        default=None,
        help="Read the command template from a file"
    )
    parser.add_argument(
        "--dry-run",
        action="store_true",
        help="Print commands to stdout instead of executing them"
    )
    parser.add_argument(
        "--no-log-files",
        action="store_true",
        help="Skip logging execution output to files"
    )
    parser.add_argument(
        "--quiet",
        action="store_true",
        help="Suppress the end-of-run summary."
    )
    parser.add_argument(
        "--verbose",
        action="store_true",
        help="Report run progress diagnostics on stderr."
    )
    return parser


def main():
    """Main CLI entry point for xrun."""
    parser = build_parser()
    args = parser.parse_args()
    _configure_logging(args.verbose)

    # Lazy import: keep --help and --version independent of the pipeline
    from .api import RunOptions, read_template_file, run
    from .errors import XrunError

    try:
        if args.template_file is not None:
            template = read_template_file(args.template_file)
        else:
            template = args.template

        options = RunOptions(
            data_file=args.data_file,
            template=template,
            dry_run=args.dry_run,
            log_files=not args.no_log_files,
        )
        summary = run(options)
    except XrunError as e:
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(1)
    except Exception as e:
        print(f"Unexpected error: {e}", file=sys.stderr)
        import traceback
        traceback.print_exc()
        sys.exit(1)

    if summary.dry_run or args.quiet:
        return

    tag = "[OK]" if summary.ok else "[WARN]"
    print(
        f"{tag} Run complete: {summary.succeeded} succeeded, "
        f"{summary.failed} failed, {summary.skipped} skipped "
        f"({summary.total} records)"
    )
    if summary.log_file:
        print(f"  Log: {summary.log_file}")


if __name__ == "__main__":
    main()
