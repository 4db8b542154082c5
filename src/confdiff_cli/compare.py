"""
compare-files entry point.

Renders the differences between two text files as HTML. Thin wrapper around
the engine's renderers.
"""

import argparse
import asyncio
import sys
from pathlib import Path

from confdiff.config import DEFAULT_COLOR_SCHEME, RENDERERS, Settings
from confdiff.prompt import Prompt, PromptCancelled, TerminalPrompt
from confdiff.renderer import RenderError, create_renderer, normalize_output_path

from .output import STDOUT_OFFSET, configure_logging, print_error


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="compare-files",
        description="Render the differences between two text files as HTML.",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  %(prog)s --infile1 old.conf --infile2 new.conf --outfile conf-diff
  %(prog)s --infile1 a.txt --infile2 b.txt --outfile diff.htm --colorscheme evening
  %(prog)s --infile1 a.txt --infile2 b.txt --outfile diff.html --renderer html --force
        """,
    )

    parser.add_argument("--infile1", required=True, help="Path of the first input file (must be text)")
    parser.add_argument("--infile2", required=True, help="Path of the second input file (must be text)")
    parser.add_argument(
        "--outfile",
        required=True,
        help="Path of the HTML output file; .html is added unless it ends in .html or .htm",
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
        "--force",
        action="store_true",
        help="Overwrite an existing output file without asking",
    )
    parser.add_argument(
        "--timeout",
        type=float,
        default=None,
        help="Timeout in seconds for the rendering step (default: none)",
    )
    parser.add_argument("--debug", action="store_true", help="Verbose diagnostics")

    return parser


def parse_arguments(argv: list[str] | None = None) -> argparse.Namespace:
    """
    Parse command-line arguments.

    Returns:
        Parsed arguments namespace
    """
    return build_parser().parse_args(argv)


def main(argv: list[str] | None = None, prompt: Prompt | None = None) -> None:
    """
    Main compare-files entry point.

    1. Parse arguments and settings
    2. Check the renderer can run
    3. Check both inputs, confirm overwriting an existing output
    4. Render
    """
    parser = build_parser()
    args = parser.parse_args(argv)
    usage = parser.format_usage().strip()
    prompt = prompt or TerminalPrompt()

    configure_logging(args.debug)

    try:
        settings = Settings(
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

    for index, path in ((1, args.infile1), (2, args.infile2)):
        error = renderer.check_input(index, path)
        if error:
            print_error(error, usage)
            sys.exit(1)

    output = normalize_output_path(args.outfile)
    if Path(output).exists() and not args.force:
        try:
            overwrite = prompt.confirm(
                f'\n{STDOUT_OFFSET}WARNING:  Filename "{output}" exists ... overwrite? '
            )
        except PromptCancelled:
            overwrite = False

        if not overwrite:
            print("\nOperation cancelled by user")
            sys.exit(0)

    result, error = asyncio.run(
        renderer.render(
            args.infile1,
            args.infile2,
            output,
            color_scheme=settings.color_scheme,
            timeout=settings.timeout,
        )
    )

    if error or result is None:
        print_error(error or "rendering failed", usage)
        sys.exit(1)

    print("SUCCESS")
    print(f"{STDOUT_OFFSET}Output: {result.output_path} ({result.changed_lines} changed lines)")


if __name__ == "__main__":
    main()
