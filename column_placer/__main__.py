"""
Command-line entry point.

    python -m column_placer INPUT.dxf [-o OUTPUT.dxf] [--settings FILE.json]
                            [--layer NAME ...] [--single] [--yes]
                            [--preview PNG] [-v]

Exit codes: 0 success, 1 failure, 2 cancelled.
"""

import argparse
import logging
import sys
from pathlib import Path
from typing import Optional, Sequence

from .commands import BatchColumnCommand, CommandStatus, SingleColumnCommand, UserPrompt
from .dxf_host import DxfModelHost
from .settings import load_settings

logger = logging.getLogger("ColumnPlacer")

EXIT_SUCCESS = 0
EXIT_FAILURE = 1
EXIT_CANCELLED = 2


class ConsolePrompt(UserPrompt):
    """Prompts on stdin/stdout"""

    def confirm(self, title: str, message: str) -> bool:
        print(f"\n{title}\n{message}")
        answer = input("[y/N] ").strip().lower()
        return answer in ("y", "yes")

    def show(self, title: str, message: str) -> None:
        print(f"\n{title}\n{message}")


class QuietConfirmPrompt(UserPrompt):
    """Confirms without asking, still prints results"""

    def confirm(self, title: str, message: str) -> bool:
        logger.info(f"{title}: confirmed automatically")
        return True

    def show(self, title: str, message: str) -> None:
        print(f"\n{title}\n{message}")


def _configure_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format="%(levelname)s:%(name)s:%(message)s",
    )


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="column_placer",
        description="Place columns inside rectangles drawn with LINE entities in a DXF drawing",
    )
    parser.add_argument("input", type=Path, help="Path to the source DXF file")
    parser.add_argument(
        "-o", "--output",
        type=Path,
        help="Path for the resulting DXF (default: <input>_columns.dxf)",
    )
    parser.add_argument("--settings", type=Path, help="JSON settings file")
    parser.add_argument(
        "--layer",
        action="append",
        dest="layers",
        metavar="NAME",
        help="Only use LINE entities on this layer (repeatable)",
    )
    parser.add_argument(
        "--single",
        action="store_true",
        help="Place a single column from exactly 4 lines",
    )
    parser.add_argument("--yes", action="store_true", help="Do not ask for confirmation")
    parser.add_argument("--preview", type=Path, metavar="PNG", help="Render a preview image of the run")
    parser.add_argument("-v", "--verbose", action="store_true", help="Debug logging")
    return parser


def main(argv: Optional[Sequence[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    _configure_logging(args.verbose)

    try:
        settings = load_settings(str(args.settings) if args.settings else None)
        host = DxfModelHost.from_file(str(args.input), settings)
    except (FileNotFoundError, ValueError, RuntimeError) as e:
        logger.error(str(e))
        return EXIT_FAILURE

    layers = args.layers or settings.segment_layers
    segments = host.read_line_segments(layers)

    prompt = QuietConfirmPrompt() if args.yes else ConsolePrompt()
    if args.single:
        command = SingleColumnCommand(host, settings, prompt)
    else:
        command = BatchColumnCommand(host, settings, prompt)

    outcome = command.run(segments)

    if outcome.status is CommandStatus.CANCELLED:
        print(outcome.message)
        return EXIT_CANCELLED

    if args.preview and outcome.report is not None:
        from .preview_renderer import render_batch_preview

        try:
            render_batch_preview(segments, command.candidates, outcome.report, str(args.preview))
        except RuntimeError as e:
            logger.warning(f"Preview not rendered: {e}")

    if outcome.status is not CommandStatus.SUCCEEDED:
        return EXIT_FAILURE

    output = args.output or args.input.with_name(f"{args.input.stem}_columns.dxf")
    host.save(str(output))
    return EXIT_SUCCESS


if __name__ == "__main__":
    sys.exit(main())
