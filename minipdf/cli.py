import argparse
import json
import logging
import sys
from pathlib import Path

from .config import layout_to_dict, load_layout
from .demo import build_sample_report, build_shapes_demo
from .exceptions import LayoutError
from .version import __version__


log = logging.getLogger(__name__)


def _build_common_parser() -> argparse.ArgumentParser:
    common = argparse.ArgumentParser(add_help=False)
    common.add_argument(
        "--log-level",
        default="INFO",
        choices=["CRITICAL", "ERROR", "WARNING", "INFO", "DEBUG"],
        help="Logging level (default: INFO)",
    )
    return common


def build_parser() -> tuple[argparse.ArgumentParser, dict[str, argparse.ArgumentParser]]:
    parser = argparse.ArgumentParser(
        prog="minipdf",
        description="Render page/element layout descriptions into compact PDF files",
        formatter_class=argparse.RawTextHelpFormatter,
        epilog="""
Examples:
  minipdf render report.json -o out/report.pdf
  minipdf demo shapes -o Shapes_Demo.pdf
  minipdf demo sample --title "Weekly Report" --user "Ada"
  minipdf dump report.json
        """,
    )
    parser.add_argument(
        "-V", "--version", action="version", version=f"minipdf {__version__}"
    )

    common = _build_common_parser()
    subparsers = parser.add_subparsers(dest="command", metavar="COMMAND")

    render_parser = subparsers.add_parser(
        "render",
        parents=[common],
        help="Render a JSON layout description to PDF",
        formatter_class=argparse.RawTextHelpFormatter,
    )
    render_parser.add_argument("layout", help="Path to the JSON layout description")
    render_parser.add_argument(
        "-o", "--output", default=None,
        help="Output PDF path (default: the layout's file_name next to the layout)",
    )

    demo_parser = subparsers.add_parser(
        "demo",
        parents=[common],
        help="Write a built-in showcase document",
        formatter_class=argparse.RawTextHelpFormatter,
    )
    demo_parser.add_argument(
        "name",
        choices=["shapes", "sample"],
        help="shapes: vector graphics showcase; sample: simple text report",
    )
    demo_parser.add_argument("-o", "--output", default=None, help="Output PDF path")
    demo_parser.add_argument(
        "--title", default="Sample Project Report", help="Title of the sample report",
    )
    demo_parser.add_argument(
        "--user", default="John Doe", help="User name printed in the sample report",
    )

    dump_parser = subparsers.add_parser(
        "dump",
        parents=[common],
        help="Validate a layout and print it normalized as JSON",
        formatter_class=argparse.RawTextHelpFormatter,
    )
    dump_parser.add_argument("layout", help="Path to the JSON layout description")

    help_parser = subparsers.add_parser(
        "help",
        help="Show help for commands",
        formatter_class=argparse.RawTextHelpFormatter,
    )
    help_parser.add_argument(
        "topic",
        nargs="?",
        choices=["render", "demo", "dump"],
        help="Command name",
    )

    commands = {
        "render": render_parser,
        "demo": demo_parser,
        "dump": dump_parser,
        "help": help_parser,
    }
    return parser, commands


def _configure_logging(level: str) -> None:
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format="%(message)s",
        stream=sys.stdout,
    )
    # Keep reportlab quiet unless explicitly debugging.
    logging.getLogger("reportlab").setLevel(logging.WARNING)


def _run_render(args: argparse.Namespace) -> int:
    layout_path = Path(args.layout)
    if not layout_path.is_file():
        log.error("Error: '%s' is not a file", args.layout)
        return 1
    try:
        report = load_layout(layout_path)
    except LayoutError as e:
        log.error("Error: %s", e)
        return 1

    out_pdf = Path(args.output) if args.output else layout_path.parent / report.file_name
    try:
        report.save(out_pdf)
    except OSError as e:
        log.error("Error: cannot write %s (%s)", out_pdf, e)
        return 1
    log.info("PDF: %s", out_pdf.resolve())
    return 0


def _run_demo(args: argparse.Namespace) -> int:
    if args.name == "shapes":
        report = build_shapes_demo()
        out_pdf = Path(args.output or report.file_name)
        writer = report.build()
    else:
        out_pdf = Path(args.output or "SampleReport.pdf")
        writer = build_sample_report(title=args.title, user_name=args.user)
    try:
        writer.save(out_pdf)
    except OSError as e:
        log.error("Error: cannot write %s (%s)", out_pdf, e)
        return 1
    log.info("PDF: %s (%d pages)", out_pdf.resolve(), writer.page_count)
    return 0


def _run_dump(args: argparse.Namespace) -> int:
    try:
        report = load_layout(args.layout)
    except LayoutError as e:
        log.error("Error: %s", e)
        return 1
    sys.stdout.write(json.dumps(layout_to_dict(report), indent=2) + "\n")
    return 0


def _run_help(
    args: argparse.Namespace,
    parser: argparse.ArgumentParser,
    commands: dict[str, argparse.ArgumentParser],
) -> int:
    if args.topic:
        commands[args.topic].print_help()
    else:
        parser.print_help()
    return 0


def main(argv: list[str] | None = None) -> int:
    raw_args = sys.argv[1:] if argv is None else argv
    parser, commands = build_parser()
    if not raw_args:
        parser.print_help()
        return 2

    args = parser.parse_args(raw_args)
    _configure_logging(getattr(args, "log_level", "INFO"))

    if args.command == "render":
        return _run_render(args)
    if args.command == "demo":
        return _run_demo(args)
    if args.command == "dump":
        return _run_dump(args)
    return _run_help(args, parser, commands)


if __name__ == "__main__":
    sys.exit(main())
