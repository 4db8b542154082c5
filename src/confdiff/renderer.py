"""
Renderers that turn the differences between two text files into HTML.

The base class owns input validation, output naming and the identical-input
case; subclasses only produce the rendering when differences exist.
"""

import asyncio
import difflib
import logging
import re
import shutil
import subprocess
from abc import ABC, abstractmethod
from pathlib import Path

from .config import DEFAULT_COLOR_SCHEME
from .models import RenderResult

logger = logging.getLogger(__name__)

NO_DIFFERENCES_HTML = "<html><body>No differences were found</body></html>\n"
HTML_SUFFIXES = (".html", ".htm")
TEXT_SNIFF_BYTES = 8192
TEXT_CONTROL_BYTES = {7, 8, 9, 10, 11, 12, 13, 27}


class RenderError(Exception):
    """Base exception for render errors."""

    pass


class VimDiffUnavailableError(RenderError):
    """Exception raised when a usable vimdiff cannot be found."""

    pass


def normalize_output_path(output_path: str) -> str:
    """Append .html unless the name already ends in .html or .htm."""
    if output_path.lower().endswith(HTML_SUFFIXES):
        return output_path
    return f"{output_path}.html"


def is_text_file(path: str | Path) -> bool:
    """
    Best-effort check that a file holds text.

    Empty files count as text. A NUL byte in the first block marks the file
    as binary; otherwise non-UTF-8 content passes as long as it is mostly
    printable (legacy 8-bit encodings).
    """
    with open(path, "rb") as f:
        block = f.read(TEXT_SNIFF_BYTES)

    if b"\x00" in block:
        return False

    try:
        block.decode("utf-8")
        return True
    except UnicodeDecodeError as e:
        # A multi-byte character cut at the block boundary is still text
        if e.start >= len(block) - 3:
            return True

    control = sum(1 for byte in block if byte < 32 and byte not in TEXT_CONTROL_BYTES)
    return control / len(block) < 0.1


def read_lines(path: str | Path) -> list[str]:
    with open(path, "r", encoding="utf-8", errors="replace", newline="") as f:
        return f.read().splitlines(keepends=True)


def count_changed_lines(file_a: str | Path, file_b: str | Path) -> int:
    """Count lines removed from file_a plus lines added in file_b."""
    matcher = difflib.SequenceMatcher(None, read_lines(file_a), read_lines(file_b), autojunk=False)

    changed = 0
    for tag, i1, i2, j1, j2 in matcher.get_opcodes():
        if tag != "equal":
            changed += (i2 - i1) + (j2 - j1)

    return changed


class DiffRenderer(ABC):
    """
    Abstract base class for diff renderers.

    render() never raises for bad input or tool failure; it returns
    (RenderResult, None) on success or (None, error_message) on failure.
    """

    name = "renderer"

    async def render(
        self,
        file_a: str,
        file_b: str,
        output_path: str,
        color_scheme: str = DEFAULT_COLOR_SCHEME,
        timeout: float | None = None,
    ) -> tuple[RenderResult | None, str | None]:
        """
        Render the differences between two text files.

        Args:
            file_a: First input file
            file_b: Second input file
            output_path: Requested artifact path (.html is appended if needed)
            color_scheme: Color scheme name passed to the renderer
            timeout: Timeout in seconds for the rendering step

        Returns:
            Tuple of (RenderResult, None) on success, or (None, error_message) on failure
        """
        start_time = asyncio.get_running_loop().time()

        for index, path in ((1, file_a), (2, file_b)):
            error = self.check_input(index, path)
            if error:
                return None, error

        output = normalize_output_path(output_path)

        try:
            changed_lines = count_changed_lines(file_a, file_b)

            output_file = Path(output)
            output_file.parent.mkdir(parents=True, exist_ok=True)
            if output_file.exists():
                logger.debug(f'Replacing existing output file "{output}"')
                output_file.unlink()

            if changed_lines == 0:
                logger.info("NO differences were found")
                logger.info(f'Creating HTML output file "{output}"')
                output_file.write_text(NO_DIFFERENCES_HTML, encoding="utf-8")
            else:
                logger.info("Differences were found")
                logger.info(f'Creating HTML output file "{output}" with color coded differences')
                error = await self._render_differences(
                    file_a, file_b, output, color_scheme, timeout
                )
                if error:
                    return None, error

        except OSError as e:
            return None, f"Render error: {str(e)}"

        render_time_ms = int((asyncio.get_running_loop().time() - start_time) * 1000)

        return (
            RenderResult(
                output_path=output,
                has_differences=changed_lines > 0,
                changed_lines=changed_lines,
                render_time_ms=render_time_ms,
            ),
            None,
        )

    def check_available(self) -> None:
        """Raise RenderError if the renderer cannot run on this host."""
        pass

    def check_input(self, index: int, path: str) -> str | None:
        if not Path(path).is_file():
            return f'Could not locate input file {index}: "{path}"'

        try:
            if not is_text_file(path):
                return f'Input file {index} "{path}" is not a text file'
        except OSError as e:
            return f'Could not read input file {index} "{path}": {str(e)}'

        return None

    @abstractmethod
    async def _render_differences(
        self,
        file_a: str,
        file_b: str,
        output: str,
        color_scheme: str,
        timeout: float | None,
    ) -> str | None:
        """
        Write the rendering of two differing files to output.

        Returns:
            None on success, or an error message
        """
        pass


class VimDiffRenderer(DiffRenderer):
    """
    Renders through vimdiff and its TOhtml command.

    Produces the familiar side-by-side, color coded vimdiff view as HTML.
    """

    name = "vim"
    MINIMUM_VERSION = (7, 3)
    VERSION_PATTERN = re.compile(r"^VIM\b.*?(\d+)\.(\d+)", re.MULTILINE)

    def __init__(self, executable: str = "vimdiff"):
        """
        Initialize the vimdiff renderer.

        Args:
            executable: Name or path of the vimdiff binary
        """
        self.executable = executable

    def check_available(self) -> None:
        """
        Verify vimdiff is on PATH and recent enough.

        Raises:
            VimDiffUnavailableError: If vimdiff is missing or too old
        """
        resolved = shutil.which(self.executable)
        if not resolved:
            raise VimDiffUnavailableError(f'Could not find command "{self.executable}"')

        try:
            completed = subprocess.run(
                [resolved, "--version"],
                capture_output=True,
                text=True,
                timeout=30,
                stdin=subprocess.DEVNULL,
            )
        except (OSError, subprocess.TimeoutExpired) as e:
            raise VimDiffUnavailableError(f"Could not run {resolved} --version: {str(e)}")

        version = self.parse_version(completed.stdout + completed.stderr)
        if version is None:
            raise VimDiffUnavailableError(f"Could not determine the version of {resolved}")

        if version < self.MINIMUM_VERSION:
            found = ".".join(str(part) for part in version)
            required = ".".join(str(part) for part in self.MINIMUM_VERSION)
            raise VimDiffUnavailableError(
                f"Found vimdiff version {found}, but version {required} or higher is required"
            )

        self.executable = resolved

    @classmethod
    def parse_version(cls, version_output: str) -> tuple[int, int] | None:
        """Pull (major, minor) out of `vim --version` output."""
        match = cls.VERSION_PATTERN.search(version_output)
        if not match:
            return None
        return int(match.group(1)), int(match.group(2))

    def build_command(self, file_a: str, file_b: str, output: str, color_scheme: str) -> list[str]:
        return [
            self.executable,
            file_a,
            file_b,
            "-c",
            f":colorscheme {color_scheme}",
            "+TOhtml",
            f"+w! {output}",
            "+qall!",
        ]

    async def _render_differences(
        self,
        file_a: str,
        file_b: str,
        output: str,
        color_scheme: str,
        timeout: float | None,
    ) -> str | None:
        command = self.build_command(file_a, file_b, output, color_scheme)
        logger.debug(f"Running: {' '.join(command)}")

        try:
            process = await asyncio.create_subprocess_exec(
                *command,
                stdin=asyncio.subprocess.DEVNULL,
                stdout=asyncio.subprocess.DEVNULL,
                stderr=asyncio.subprocess.DEVNULL,
            )
        except OSError as e:
            return f"vimdiff failed to start: {str(e)}"

        try:
            return_code = await asyncio.wait_for(process.wait(), timeout=timeout)
        except asyncio.TimeoutError:
            return f"vimdiff timed out after {timeout}s"
        finally:
            # Also reached when the caller cancels us mid-wait
            if process.returncode is None:
                self._kill(process)
                await process.wait()

        if return_code != 0:
            return f"vimdiff failed with exit status {return_code}"

        return None

    @staticmethod
    def _kill(process: asyncio.subprocess.Process) -> None:
        logger.debug(f"Killing vimdiff (pid {process.pid})")
        try:
            process.kill()
        except ProcessLookupError:
            # Exited between the returncode check and the kill
            pass


class StableHtmlDiff(difflib.HtmlDiff):
    """
    difflib.HtmlDiff with fixed anchor names.

    HtmlDiff numbers its anchors from a class-wide counter, so the same pair
    rendered twice in one process would not be byte-identical. Each page here
    holds a single table, so one prefix pair is enough.
    """

    ANCHOR_PREFIXES = ("from0_", "to0_")

    def _make_prefix(self):
        self._prefix = list(self.ANCHOR_PREFIXES)


class HtmlDiffRenderer(DiffRenderer):
    """
    Renders a side-by-side table with difflib.HtmlDiff.

    Needs no external tools. The color scheme is not used.
    """

    name = "html"

    def __init__(self, wrap_column: int | None = None, context: bool = False):
        """
        Initialize the HTML table renderer.

        Args:
            wrap_column: Column at which to wrap long lines (optional)
            context: Show only changed regions instead of the full files
        """
        self.wrap_column = wrap_column
        self.context = context

    async def _render_differences(
        self,
        file_a: str,
        file_b: str,
        output: str,
        color_scheme: str,
        timeout: float | None,
    ) -> str | None:
        html_diff = StableHtmlDiff(wrapcolumn=self.wrap_column)
        html = html_diff.make_file(
            read_lines(file_a),
            read_lines(file_b),
            fromdesc=file_a,
            todesc=file_b,
            context=self.context,
        )
        Path(output).write_text(html, encoding="utf-8")
        return None


def create_renderer(name: str) -> DiffRenderer:
    """Build a renderer from its CLI name."""
    if name == VimDiffRenderer.name:
        return VimDiffRenderer()
    if name == HtmlDiffRenderer.name:
        return HtmlDiffRenderer()
    raise RenderError(f"Unknown renderer: {name}")
