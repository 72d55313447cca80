"""Command-line interface."""
import argparse
import logging
import sys
from typing import List, Optional

from springnet.logging_config import setup_logging

logger = logging.getLogger("springnet.cli")


def parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    """Parse command-line arguments."""
    parser = argparse.ArgumentParser(
        prog="springnet",
        description="Edit 2D mass-spring networks and export them as data files."
    )
    parser.add_argument(
        "file",
        nargs="?",
        default=None,
        help="Project (.h5) or data file to open.",
    )
    parser.add_argument(
        "-e",
        "--export",
        dest="export_path",
        default=None,
        help="Write FILE as a data file to this path and exit without starting the editor.",
    )
    parser.add_argument(
        "--log-level",
        dest="log_level",
        default="INFO",
        choices=("DEBUG", "INFO", "WARNING", "ERROR"),
        help="Logging level (default: INFO).",
    )
    parser.add_argument(
        "--log-file",
        dest="log_file",
        default=None,
        help="Optional path to save logs to a file.",
    )
    parser.add_argument(
        "--no-session",
        dest="use_session",
        action="store_false",
        help="Do not restore or autosave the session graph.",
    )
    return parser.parse_args(argv)


def export(source: str, target: str) -> int:
    """Convert a project or data file into a data file. Returns a process exit code."""
    # Imported here so the headless path never touches the widgets
    from springnet.model.codec import ExportError, parse
    from springnet.model.io import IOManager

    try:
        if source.endswith(".h5"):
            graph = IOManager.load_project(source)
        else:
            graph = parse(IOManager.read_text_file(source))
        IOManager.export_data_file(graph, target)
    except ExportError as e:
        logger.error(f"Export failed: {e}")
        return 2
    except (OSError, ValueError) as e:
        logger.error(f"Could not convert '{source}': {e}")
        return 1
    return 0


def main(argv: Optional[List[str]] = None) -> int:
    args = parse_args(argv)
    level = args.log_level

    if args.export_path:
        setup_logging(level=level, log_file=args.log_file)
        if not args.file:
            logger.error("--export needs an input FILE.")
            return 1
        return export(args.file, args.export_path)

    from springnet.main import main as run_editor
    return run_editor(
        open_path=args.file,
        use_session=args.use_session,
        log_level=level,
        log_file=args.log_file,
    )


if __name__ == "__main__":
    sys.exit(main())
