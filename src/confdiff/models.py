"""
Core data models for the batch comparison engine.

All models are plain data structures shared by the engine, the CLI and
the report writers.
"""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Optional

ROW_FIELDS = (
    "source_path_1",
    "fetch_id_1",
    "source_path_2",
    "fetch_id_2",
    "output_path",
    "publish_id",
)


@dataclass(frozen=True)
class ComparisonRow:
    """
    One actionable entry of a batch file.

    Frozen to ensure immutability once parsed.
    """

    source_path_1: str
    fetch_id_1: str
    source_path_2: str
    fetch_id_2: str
    output_path: str
    publish_id: str
    line_number: int = 0

    def __post_init__(self):
        """Validate that every field is present."""
        for name in ROW_FIELDS:
            value = getattr(self, name)
            if not value or not isinstance(value, str):
                raise ValueError(f"Row field '{name}' must be a non-empty string: {value!r}")

    def describe(self) -> str:
        """Short label used in diagnostics."""
        return f"row {self.line_number} ({self.source_path_1} vs {self.source_path_2})"


@dataclass(frozen=True)
class SkippedRow:
    """A comment or blank line."""

    line_number: int
    reason: str = "blank"


@dataclass(frozen=True)
class MalformedRow:
    """A line that does not carry all six fields."""

    line_number: int
    raw: str
    reason: str


@dataclass(frozen=True)
class Credential:
    """
    Username and password shared by every content store call of a run.

    The password never appears in repr() or str().
    """

    username: str
    password: str = field(repr=False)

    def __str__(self) -> str:
        return self.username


@dataclass
class FetchResult:
    """Results from pulling one page into a local file."""

    page_id: str
    destination: str
    bytes_written: int
    fetch_time_ms: int


@dataclass
class PublishResult:
    """Results from pushing a local artifact to a page."""

    page_id: str
    source: str
    version: int  # Page version after the update
    publish_time_ms: int


@dataclass
class RenderResult:
    """
    Results from rendering the differences between two files.

    output_path is the path actually written, after extension normalization.
    """

    output_path: str
    has_differences: bool
    changed_lines: int
    render_time_ms: int


@dataclass
class RowOutcome:
    """
    Outcome of running one comparison row.

    Errors are grouped by the pipeline step that produced them.
    """

    row: ComparisonRow
    rendered: bool = False
    published: bool = False
    output_path: str | None = None
    fetch_errors: list[str] = field(default_factory=list)
    render_errors: list[str] = field(default_factory=list)
    publish_errors: list[str] = field(default_factory=list)

    @property
    def errors(self) -> list[str]:
        """All errors in pipeline order."""
        return self.fetch_errors + self.render_errors + self.publish_errors

    @property
    def success(self) -> bool:
        """A row succeeds when a rendering was produced; publish failures are tolerated."""
        return self.rendered

    def to_dict(self) -> dict:
        """Convert outcome to dictionary for serialization."""
        return {
            "line_number": self.row.line_number,
            "source_path_1": self.row.source_path_1,
            "source_path_2": self.row.source_path_2,
            "output_path": self.output_path or self.row.output_path,
            "publish_id": self.row.publish_id,
            "rendered": self.rendered,
            "published": self.published,
            "fetch_errors": self.fetch_errors,
            "render_errors": self.render_errors,
            "publish_errors": self.publish_errors,
            "success": self.success,
        }


@dataclass
class BatchResult:
    """
    Aggregate results for one batch file.

    Created empty when the batch starts and updated once per row.
    """

    started_at: datetime
    finished_at: Optional[datetime] = None
    total_rows: int = 0
    succeeded_rows: int = 0
    failed_rows: int = 0
    skipped_rows: int = 0
    malformed: list[MalformedRow] = field(default_factory=list)
    outcomes: list[RowOutcome] = field(default_factory=list)

    @property
    def malformed_rows(self) -> int:
        return len(self.malformed)

    @property
    def published_rows(self) -> int:
        return sum(1 for outcome in self.outcomes if outcome.published)

    @property
    def success_rate(self) -> float:
        """Percentage of rows that produced a rendering."""
        if self.total_rows == 0:
            return 0.0
        return round((self.succeeded_rows / self.total_rows) * 100, 2)

    @property
    def has_failures(self) -> bool:
        return self.failed_rows > 0

    def record_outcome(self, outcome: RowOutcome) -> None:
        """Fold one row outcome into the totals."""
        self.outcomes.append(outcome)
        self.total_rows += 1
        if outcome.success:
            self.succeeded_rows += 1
        else:
            self.failed_rows += 1

    def record_malformed(self, row: MalformedRow) -> None:
        self.malformed.append(row)
        self.total_rows += 1
        self.failed_rows += 1

    def record_skipped(self) -> None:
        self.skipped_rows += 1

    def get_failed_outcomes(self) -> list[RowOutcome]:
        """Get all rows that ran but produced no rendering."""
        return [outcome for outcome in self.outcomes if not outcome.success]
