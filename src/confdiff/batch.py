"""
Batch orchestrator for comparison runs.

Validates the batch file, asks once for the shared password and then runs
every row in file order, one at a time.
"""

import asyncio
import logging
from datetime import datetime
from enum import Enum
from pathlib import Path

from .context import RunContext
from .job_runner import ComparisonJobRunner
from .models import BatchResult, ComparisonRow, Credential, MalformedRow, SkippedRow
from .parser import RowParser
from .prompt import PromptCancelled
from .renderer import is_text_file

logger = logging.getLogger(__name__)

EXIT_SUCCESS = 0
EXIT_ERROR = 1


class BatchError(Exception):
    """Base exception for failures that abort a batch before any row runs."""

    pass


class BatchFileError(BatchError):
    """The batch file is missing or is not a CSV text file."""

    pass


class BatchConfigError(BatchError):
    """A required setting is missing."""

    pass


class CredentialError(BatchError):
    """No usable password was obtained."""

    pass


class BatchState(Enum):
    INIT = "init"
    VALIDATING_INPUT = "validating_input"
    AWAITING_CREDENTIAL = "awaiting_credential"
    PROCESSING_ROWS = "processing_rows"
    DONE = "done"
    ABORTED = "aborted"


def validate_batch_file(batch_file: str | Path) -> Path:
    """
    Check that a batch file exists, holds text and contains at least one comma.

    Raises:
        BatchFileError: If any check fails
    """
    path = Path(batch_file)

    if not path.exists():
        raise BatchFileError(f'Could not locate CSV file "{batch_file}"')

    try:
        if not path.is_file() or not is_text_file(path):
            raise BatchFileError(f'Data input file "{batch_file}" is not a TEXT file')
        content = path.read_text(encoding="utf-8", errors="replace")
    except OSError as e:
        raise BatchFileError(f'Could not read data input file "{batch_file}": {str(e)}')

    if "," not in content:
        raise BatchFileError(f'Data input file "{batch_file}" is not a CSV file')

    return path


def exit_code(result: BatchResult, strict: bool = False) -> int:
    """
    Map a finished batch to a process exit status.

    Row failures only count in strict mode.
    """
    if strict and result.has_failures:
        return EXIT_ERROR
    return EXIT_SUCCESS


class BatchOrchestrator:
    """
    Drives the row parser and the job runner over a whole batch file.

    A row that fails never stops the batch; only a failed precondition
    (bad batch file, no username, no password) aborts, before any row runs.
    """

    PASSWORD_PROMPT = '    Please enter the password for username: "{username}": '
    PAUSE_PROMPT = "Press <ENTER> to continue"

    def __init__(
        self,
        context: RunContext,
        parser: RowParser | None = None,
        job_runner: ComparisonJobRunner | None = None,
    ):
        """
        Initialize the orchestrator.

        Args:
            context: Collaborators and options for the run
            parser: Row parser (optional)
            job_runner: Per-row job runner (optional)
        """
        self.context = context
        self.parser = parser or RowParser()
        self.job_runner = job_runner or ComparisonJobRunner()
        self.state = BatchState.INIT

    async def run_batch_async(self, batch_file: str, username: str) -> BatchResult:
        """
        Run a batch asynchronously.

        Args:
            batch_file: Path to the CSV batch description
            username: Content store username

        Returns:
            BatchResult with one outcome per processed row

        Raises:
            BatchError: If a precondition fails; no row has been touched
        """
        try:
            self.state = BatchState.VALIDATING_INPUT
            if not username:
                raise BatchConfigError("A username is required")
            path = validate_batch_file(batch_file)

            self.state = BatchState.AWAITING_CREDENTIAL
            self.context.credential = self._obtain_credential(username)
        except BatchError:
            self.state = BatchState.ABORTED
            raise

        self.state = BatchState.PROCESSING_ROWS
        result = BatchResult(started_at=datetime.now())

        with open(path, "r", encoding="utf-8", errors="replace") as f:
            for line_number, parsed in self.parser.iter_rows(f):
                if isinstance(parsed, SkippedRow):
                    result.record_skipped()
                    continue

                if isinstance(parsed, MalformedRow):
                    logger.error(
                        f'Skipping malformed row {line_number} in "{batch_file}": {parsed.reason}'
                    )
                    result.record_malformed(parsed)
                else:
                    await self._run_row(parsed, result)

                if self.context.pause_between_rows and not self._pause():
                    break

        result.finished_at = datetime.now()
        self.state = BatchState.DONE

        logger.info(
            f"Batch finished: {result.succeeded_rows} of {result.total_rows} rows rendered, "
            f"{result.published_rows} published"
        )
        return result

    def run_batch(self, batch_file: str, username: str) -> BatchResult:
        """
        Run a batch synchronously.

        Convenience method that wraps run_batch_async.
        """
        return asyncio.run(self.run_batch_async(batch_file, username))

    async def _run_row(self, row: ComparisonRow, result: BatchResult) -> None:
        logger.info(f"Processing {row.describe()}")
        outcome = await self.job_runner.run(row, self.context)
        result.record_outcome(outcome)

        if outcome.success:
            logger.info(f"Row {row.line_number}: rendered \"{outcome.output_path}\"")
        else:
            logger.warning(f"Row {row.line_number}: no rendering produced")

    def _obtain_credential(self, username: str) -> Credential:
        """Ask for the password until a non-blank one is given."""
        existing = self.context.credential
        if existing and existing.username == username and existing.password:
            return existing

        while True:
            try:
                password = self.context.prompt.secret(self.PASSWORD_PROMPT.format(username=username))
            except PromptCancelled as e:
                raise CredentialError(f'No password given for username "{username}"') from e

            if password:
                return Credential(username=username, password=password)

            logger.error("Password cannot be blank")

    def _pause(self) -> bool:
        """Wait for the operator between rows. False means stop the batch."""
        try:
            self.context.prompt.pause(self.PAUSE_PROMPT)
            return True
        except PromptCancelled:
            logger.warning("Batch stopped by operator; remaining rows were not processed")
            return False
