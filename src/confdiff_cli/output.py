"""
Terminal output for the CLI.

Handles all display logic - no business logic, just presentation.
"""

import logging
import sys

from confdiff.models import BatchResult, RowOutcome

STDOUT_OFFSET = "    "
LOG_FORMAT = STDOUT_OFFSET + "%(levelname)s:  %(message)s"


def configure_logging(debug: bool = False) -> None:
    """Send engine log records to the terminal with the usual indented prefix."""
    level = logging.DEBUG if debug else logging.INFO
    logging.basicConfig(level=level, format=LOG_FORMAT, stream=sys.stderr)
    logging.getLogger().setLevel(level)
    if not debug:
        # httpx logs every request at INFO
        logging.getLogger("httpx").setLevel(logging.WARNING)


def print_error(message: str, usage: str | None = None) -> None:
    """Report a failure that halts the command, followed by the usage text."""
    print(f"\n{STDOUT_OFFSET}ERROR:  {message} ... processing halted\n", file=sys.stderr)
    if usage:
        print(f"{STDOUT_OFFSET}USAGE:  {usage}", file=sys.stderr)


def print_batch_summary(result: BatchResult) -> None:
    """
    Print a human-readable summary of a batch to the terminal.

    Shows the row totals, then the errors of every row that did not fully succeed.

    Args:
        result: BatchResult of the finished batch
    """
    print("\n" + "=" * 80)
    print("BATCH COMPARISON REPORT")
    print("=" * 80)
    print(f"\nRows Processed: {result.total_rows}")
    print(f"Rows Rendered:  {result.succeeded_rows}")
    print(f"Rows Failed:    {result.failed_rows}")
    print(f"Rows Published: {result.published_rows}")
    print(f"Rows Skipped:   {result.skipped_rows}")
    print(f"Success Rate:   {result.success_rate}%")

    if result.finished_at:
        duration = (result.finished_at - result.started_at).total_seconds()
        print(f"Duration:       {duration:.1f} seconds")

    problems = [outcome for outcome in result.outcomes if outcome.errors]

    if not problems and not result.malformed:
        print("\n✓ Every row was rendered and published.\n")
        return

    print(f"\n{'=' * 80}")
    print(f"ROWS WITH ERRORS ({len(problems) + result.malformed_rows})")
    print(f"{'=' * 80}\n")

    for malformed in result.malformed:
        print(f"[line {malformed.line_number}] {malformed.raw}")
        print(f"  Malformed: {malformed.reason}")
        print("-" * 80 + "\n")

    for outcome in problems:
        print(f"[line {outcome.row.line_number}] {outcome.row.source_path_1} vs {outcome.row.source_path_2}")
        _print_errors(outcome)
        print("-" * 80 + "\n")


def _print_errors(outcome: RowOutcome) -> None:
    if outcome.fetch_errors:
        print("  Fetch Errors:")
        for error in outcome.fetch_errors:
            print(f"    • {error}")

    if outcome.render_errors:
        print("  Render Errors:")
        for error in outcome.render_errors:
            print(f"    • {error}")

    if outcome.publish_errors:
        print("  Publish Errors:")
        for error in outcome.publish_errors:
            print(f"    • {error}")
