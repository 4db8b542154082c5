"""
Shared fakes for the content store, the renderer and operator prompts.
"""

from pathlib import Path

import pytest

from confdiff.context import RunContext
from confdiff.models import Credential, FetchResult, PublishResult, RenderResult
from confdiff.prompt import Prompt, PromptCancelled
from confdiff.renderer import DiffRenderer, normalize_output_path
from confdiff.store import ContentStore


class FakeContentStore(ContentStore):
    """In-memory pages; records every call."""

    def __init__(self, pages: dict[str, str] | None = None, publish_error: str | None = None):
        self.pages = pages or {}
        self.publish_error = publish_error
        self.fetch_calls: list[tuple[str, str, Credential]] = []
        self.publish_calls: list[tuple[str, str, Credential]] = []

    async def fetch(self, page_id, destination, credential, timeout=None):
        self.fetch_calls.append((page_id, destination, credential))
        if page_id not in self.pages:
            return None, f"HTTP 404 fetching page {page_id}"

        Path(destination).write_text(self.pages[page_id], encoding="utf-8")
        return FetchResult(page_id, destination, len(self.pages[page_id]), 0), None

    async def publish(self, page_id, source, credential, timeout=None):
        self.publish_calls.append((page_id, source, credential))
        if self.publish_error:
            return None, self.publish_error
        return PublishResult(page_id=page_id, source=source, version=2, publish_time_ms=0), None


class FakeRenderer(DiffRenderer):
    """Writes a stub artifact, or claims success without writing anything."""

    name = "fake"

    def __init__(self, write_output: bool = True, error: str | None = None):
        self.write_output = write_output
        self.error = error
        self.calls: list[tuple[str, str, str]] = []

    async def render(self, file_a, file_b, output_path, color_scheme="desert", timeout=None):
        self.calls.append((file_a, file_b, output_path))
        if self.error:
            return None, self.error

        output = normalize_output_path(output_path)
        if self.write_output:
            Path(output).write_text("<html><body>diff</body></html>", encoding="utf-8")
        return RenderResult(output, True, 1, 0), None

    async def _render_differences(self, file_a, file_b, output, color_scheme, timeout):
        return None


class ScriptedPrompt(Prompt):
    """Answers prompts from canned responses; running out means cancellation."""

    def __init__(self, secrets=None, confirms=None, pauses: int | None = None):
        self.secrets = list(secrets or [])
        self.confirms = list(confirms or [])
        self.pauses_left = pauses
        self.secret_prompts: list[str] = []
        self.pause_count = 0

    def secret(self, message):
        self.secret_prompts.append(message)
        if not self.secrets:
            raise PromptCancelled("no more secrets")
        return self.secrets.pop(0)

    def confirm(self, message):
        if not self.confirms:
            raise PromptCancelled("no more answers")
        return self.confirms.pop(0)

    def pause(self, message):
        self.pause_count += 1
        if self.pauses_left is not None:
            if self.pauses_left <= 0:
                raise PromptCancelled("stopped")
            self.pauses_left -= 1


@pytest.fixture
def store():
    return FakeContentStore()


@pytest.fixture
def renderer():
    return FakeRenderer()


@pytest.fixture
def prompt():
    return ScriptedPrompt(secrets=["s3cret"])


@pytest.fixture
def credential():
    return Credential(username="jdoe", password="s3cret")


@pytest.fixture
def context(store, renderer, prompt, credential):
    return RunContext(content_store=store, renderer=renderer, prompt=prompt, credential=credential)


@pytest.fixture
def text_files(tmp_path):
    """Two differing local text files."""
    file_a = tmp_path / "a.txt"
    file_b = tmp_path / "b.txt"
    file_a.write_text("alpha\nbeta\ngamma\n", encoding="utf-8")
    file_b.write_text("alpha\nBETA\ngamma\ndelta\n", encoding="utf-8")
    return file_a, file_b


@pytest.fixture
def fakes():
    """The fake classes, for tests that need custom instances."""
    return {
        "store": FakeContentStore,
        "renderer": FakeRenderer,
        "prompt": ScriptedPrompt,
    }


@pytest.fixture
def fake_vimdiff(tmp_path):
    """
    Factory for stand-in vimdiff executables.

    The body runs under /bin/sh with the real vimdiff argument list, so the
    output file is "${6#+w! }". Sleeping scripts record their pid in
    <name>.pid next to the script.
    """

    def make(body: str, name: str = "vimdiff") -> Path:
        script = tmp_path / "bin" / name
        script.parent.mkdir(exist_ok=True)
        script.write_text(f"#!/bin/sh\n{body}\n", encoding="utf-8")
        script.chmod(0o755)
        return script

    return make
