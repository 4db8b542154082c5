"""
Batch file comparison engine.

Renders the differences between pairs of text files as HTML, pulling
missing inputs from and publishing renderings to Confluence. Used by the
compare-files and batch-compare commands.
"""

# Core models
# Orchestration
from .batch import BatchOrchestrator, exit_code
from .context import RunContext
from .job_runner import ComparisonJobRunner
from .models import (
    BatchResult,
    ComparisonRow,
    Credential,
    MalformedRow,
    RowOutcome,
    SkippedRow,
)
from .parser import RowParser

__all__ = [
    # Models
    "ComparisonRow",
    "SkippedRow",
    "MalformedRow",
    "Credential",
    "RowOutcome",
    "BatchResult",
    # Pipeline
    "RowParser",
    "RunContext",
    "ComparisonJobRunner",
    # Main entry point
    "BatchOrchestrator",
    "exit_code",
]
