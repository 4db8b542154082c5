"""
Parser for batch description files.

Each record is one line of six comma-separated fields:

    source_path_1,fetch_id_1,source_path_2,fetch_id_2,output_path,publish_id

There is no header row and no quoting; a comma inside a field is read as a
separator.
"""

from collections.abc import Iterable, Iterator

from .models import ROW_FIELDS, ComparisonRow, MalformedRow, SkippedRow

ParsedLine = ComparisonRow | SkippedRow | MalformedRow


class RowParser:
    """Turns raw batch file lines into comparison rows."""

    DELIMITER = ","
    COMMENT_PREFIX = "#"

    def parse(self, raw_line: str, line_number: int = 0) -> ParsedLine:
        """
        Parse one line of a batch file.

        Args:
            raw_line: Line as read from the file, newline included or not
            line_number: 1-based line number for diagnostics

        Returns:
            ComparisonRow for an actionable record, SkippedRow for comments and
            blank lines, MalformedRow when a field is missing
        """
        if raw_line.lstrip().startswith(self.COMMENT_PREFIX):
            return SkippedRow(line_number=line_number, reason="comment")

        cleaned = self._clean(raw_line)
        if not cleaned:
            return SkippedRow(line_number=line_number, reason="blank")

        # Extra fields past the sixth are ignored
        fields = cleaned.split(self.DELIMITER)[: len(ROW_FIELDS)]
        fields += [""] * (len(ROW_FIELDS) - len(fields))

        for name, value in zip(ROW_FIELDS, fields):
            if not value:
                return MalformedRow(
                    line_number=line_number,
                    raw=raw_line.rstrip("\r\n"),
                    reason=f"missing {name}",
                )

        return ComparisonRow(*fields, line_number=line_number)

    def iter_rows(self, lines: Iterable[str]) -> Iterator[tuple[int, ParsedLine]]:
        """Parse every line, numbering from 1."""
        for line_number, line in enumerate(lines, 1):
            yield line_number, self.parse(line, line_number)

    def _clean(self, raw_line: str) -> str:
        """Drop whitespace and non-printable characters anywhere in the line."""
        return "".join(ch for ch in raw_line if ch.isprintable() and not ch.isspace())
