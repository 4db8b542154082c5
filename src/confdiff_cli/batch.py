"""
batch-compare entry point.

Runs compare-files over every row of a CSV batch file, pulling inputs from
and pushing renderings to Confluence. Thin wrapper around the engine - no
business logic here.
"""

import argparse
import sys

from confdiff import BatchOrchestrator, RunContext, exit_code
from confdiff.batch import BatchError
from confdiff.config import DEFAULT_COLOR_SCHEME, RENDERERS, Settings
from confdiff.prompt import Prompt
from confdiff.renderer import RenderError, create_renderer
from confdiff.storage import REPORT_FORMATS, FileStorage, StorageError
from confdiff.store import ConfluenceContentStore, ContentStore

from .output import configure_logging, print_batch_summary, print_error


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="batch-compare",
        description="Compare pairs of files listed in a CSV batch file and publish the HTML renderings to Confluence.",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Each data file line holds six comma-separated fields:
  <input file 1>,<page ID 1>,<input file 2>,<page ID 2>,<output file>,<page ID 3>

Input files missing locally are pulled from page IDs 1 and 2; the rendering
is pushed to page ID 3. Lines starting with '#' are ignored.

Examples:
  %(prog)s --datafile compare.csv --username jdoe --base-url https://wiki.example.com
  %(prog)s --datafile compare.csv --username jdoe --renderer html --report results.json --report-format json
        """,
    )

    parser.add_argument("--datafile", required=True, help="CSV file describing the comparisons")
    parser.add_argument("--username", required=True, help="Confluence username for authentication")
    parser.add_argument(
        "--base-url",
        default=None,
        help="Confluence base URL (default: $CONFLUENCE_BASE_URL)",
    )
    parser.add_argument(
        "--colorscheme",
        default=None,
        help=f"vim color scheme to use (default: {DEFAULT_COLOR_SCHEME})",
    )
    parser.add_argument(
        "--renderer",
        choices=RENDERERS,
        default="vim",
        help="vim uses vimdiff +TOhtml, html uses a built-in side-by-side table (default: vim)",
    )
    parser.add_argument(
        "--timeout",
        type=float,
        default=None,
        help="Timeout in seconds for each fetch, render and publish (default: none)",
    )
    parser.add_argument(
        "--pause",
        action="store_true",
        help="Wait for <ENTER> after each row",
    )
    parser.add_argument(
        "--strict",
        action="store_true",
        help="Exit with status 1 if any row fails",
    )
    parser.add_argument("--report", default=None, help="Write a report of the run to this file")
    parser.add_argument(
        "--report-format",
        choices=REPORT_FORMATS,
        default="csv",
        help="Report format (default: csv)",
    )
    parser.add_argument("--debug", action="store_true", help="Log every Confluence request")

    return parser


def parse_arguments(argv: list[str] | None = None) -> argparse.Namespace:
    """
    Parse command-line arguments.

    Returns:
        Parsed arguments namespace
    """
    return build_parser().parse_args(argv)


def main(
    argv: list[str] | None = None,
    prompt: Prompt | None = None,
    content_store: ContentStore | None = None,
) -> None:
    """
    Main batch-compare entry point.

    Orchestrates the entire CLI workflow:
    1. Parse arguments and settings
    2. Check the renderer and the Confluence settings
    3. Run the batch
    4. Display results and optionally save a report
    """
    parser = build_parser()
    args = parser.parse_args(argv)
    usage = parser.format_usage().strip()

    configure_logging(args.debug)

    try:
        settings = Settings(
            base_url=args.base_url,
            color_scheme=args.colorscheme,
            timeout=args.timeout,
            renderer=args.renderer,
            debug=args.debug,
        )
        renderer = create_renderer(settings.renderer)
        renderer.check_available()
    except (ValueError, RenderError) as e:
        print_error(str(e), usage)
        sys.exit(1)

    if content_store is None:
        if not settings.base_url:
            print_error("A Confluence base URL is required (--base-url or CONFLUENCE_BASE_URL)", usage)
            sys.exit(1)
        content_store = ConfluenceContentStore(settings.base_url, debug=settings.debug)

    context = RunContext(
        content_store=content_store,
        renderer=renderer,
        prompt=prompt,
        color_scheme=settings.color_scheme,
        timeout=settings.timeout,
        debug=settings.debug,
        strict=args.strict,
        pause_between_rows=args.pause,
    )

    orchestrator = BatchOrchestrator(context)

    try:
        result = orchestrator.run_batch(args.datafile, args.username)
    except BatchError as e:
        print_error(str(e), usage)
        sys.exit(1)

    print_batch_summary(result)

    if args.report:
        storage = FileStorage()
        try:
            report_path = storage.save(result, format=args.report_format, output_path=args.report)
            print(f"✓ Report saved to: {report_path}")
        except StorageError as e:
            print(f"✗ Failed to save report: {e}", file=sys.stderr)

    sys.exit(exit_code(result, strict=context.strict))


if __name__ == "__main__":
    main()
