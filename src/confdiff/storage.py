"""
Report writers for batch results.

Exports a BatchResult as CSV for spreadsheets or JSON for scripts.
"""

import csv
import json
from abc import ABC, abstractmethod
from pathlib import Path

from .models import BatchResult, RowOutcome

REPORT_FORMATS = ("csv", "json")


class StorageError(Exception):
    """Base exception for storage errors."""

    pass


class Storage(ABC):
    """Abstract interface for report backends."""

    @abstractmethod
    def save(self, result: BatchResult, format: str = "csv", output_path: str | None = None) -> str:
        """
        Save batch results.

        Args:
            result: BatchResult to save
            format: Output format ('csv' or 'json')
            output_path: Optional output file path. If not provided, generates one.

        Returns:
            Path to the saved report

        Raises:
            StorageError: If save operation fails
        """
        pass


class FileStorage(Storage):
    """File-based report storage."""

    def __init__(self, output_directory: str = "."):
        """
        Initialize file storage.

        Args:
            output_directory: Directory for reports with a relative path (default: current directory)
        """
        self.output_directory = Path(output_directory)

    def save(self, result: BatchResult, format: str = "csv", output_path: str | None = None) -> str:
        format_lower = format.lower()

        if format_lower not in REPORT_FORMATS:
            raise StorageError(f"Unsupported format: {format}. Use 'csv' or 'json'.")

        if output_path is None:
            timestamp = result.started_at.strftime("%Y%m%d_%H%M%S")
            output_path = f"batch_compare_{timestamp}.{format_lower}"

        output_file_path = self.output_directory / output_path

        try:
            output_file_path.parent.mkdir(parents=True, exist_ok=True)

            if format_lower == "csv":
                self._save_csv(result, output_file_path)
            else:  # json
                self._save_json(result, output_file_path)

            return str(output_file_path)

        except OSError as e:
            raise StorageError(f"Failed to save report: {str(e)}")

    def _save_csv(self, result: BatchResult, output_path: Path):
        """
        Save results to CSV format.

        A commented summary header, then one line per row that ran or was
        malformed.
        """
        with open(output_path, "w", newline="", encoding="utf-8") as csvfile:
            csvfile.write("# Batch Comparison Report\n")
            csvfile.write(f"# Generated: {result.finished_at}\n")
            csvfile.write(f"# Rows Processed: {result.total_rows}\n")
            csvfile.write(f"# Rows Rendered: {result.succeeded_rows}\n")
            csvfile.write(f"# Rows Failed: {result.failed_rows}\n")
            csvfile.write(f"# Rows Published: {result.published_rows}\n")
            csvfile.write(f"# Success Rate: {result.success_rate}%\n")
            csvfile.write("\n")

            fieldnames = [
                "Line",
                "Input File 1",
                "Input File 2",
                "Output File",
                "Publish Page",
                "Rendered",
                "Published",
                "Errors",
            ]

            writer = csv.DictWriter(csvfile, fieldnames=fieldnames)
            writer.writeheader()

            for outcome in result.outcomes:
                writer.writerow(
                    {
                        "Line": outcome.row.line_number,
                        "Input File 1": outcome.row.source_path_1,
                        "Input File 2": outcome.row.source_path_2,
                        "Output File": outcome.output_path or outcome.row.output_path,
                        "Publish Page": outcome.row.publish_id,
                        "Rendered": "Yes" if outcome.rendered else "No",
                        "Published": "Yes" if outcome.published else "No",
                        "Errors": self._format_errors(outcome),
                    }
                )

            for malformed in result.malformed:
                writer.writerow(
                    {
                        "Line": malformed.line_number,
                        "Rendered": "No",
                        "Published": "No",
                        "Errors": f"Malformed: {malformed.reason}",
                    }
                )

    def _save_json(self, result: BatchResult, output_path: Path):
        data = {
            "metadata": {
                "started_at": result.started_at.isoformat(),
                "finished_at": result.finished_at.isoformat() if result.finished_at else None,
                "total_rows": result.total_rows,
                "succeeded_rows": result.succeeded_rows,
                "failed_rows": result.failed_rows,
                "skipped_rows": result.skipped_rows,
                "malformed_rows": result.malformed_rows,
                "published_rows": result.published_rows,
                "success_rate": result.success_rate,
            },
            "results": [outcome.to_dict() for outcome in result.outcomes],
            "malformed": [
                {"line_number": row.line_number, "raw": row.raw, "reason": row.reason}
                for row in result.malformed
            ],
        }

        with open(output_path, "w", encoding="utf-8") as jsonfile:
            json.dump(data, jsonfile, indent=2, ensure_ascii=False)

    def _format_errors(self, outcome: RowOutcome) -> str:
        all_errors = []

        if outcome.fetch_errors:
            all_errors.extend([f"Fetch: {e}" for e in outcome.fetch_errors])
        if outcome.render_errors:
            all_errors.extend([f"Render: {e}" for e in outcome.render_errors])
        if outcome.publish_errors:
            all_errors.extend([f"Publish: {e}" for e in outcome.publish_errors])

        return "; ".join(all_errors)
