"""
Unit tests for the per-row comparison job runner.
"""

import asyncio
import os
import sys

import pytest

from confdiff.job_runner import ComparisonJobRunner
from confdiff.models import ComparisonRow, FetchResult
from confdiff.renderer import VimDiffRenderer


def make_row(tmp_path, **overrides) -> ComparisonRow:
    fields = {
        "source_path_1": str(tmp_path / "a.txt"),
        "fetch_id_1": "101",
        "source_path_2": str(tmp_path / "b.txt"),
        "fetch_id_2": "102",
        "output_path": str(tmp_path / "out"),
        "publish_id": "103",
        "line_number": 2,
    }
    fields.update(overrides)
    return ComparisonRow(**fields)


@pytest.fixture
def runner():
    return ComparisonJobRunner()


class TestComparisonJobRunner:
    """Tests for ComparisonJobRunner class."""

    @pytest.mark.asyncio
    async def test_local_sources_never_fetched(self, runner, context, store, renderer, text_files, tmp_path):
        """Test that sources already on disk are used as they are."""
        row = make_row(tmp_path)

        outcome = await runner.run(row, context)

        assert store.fetch_calls == []
        assert renderer.calls == [(row.source_path_1, row.source_path_2, row.output_path)]
        assert outcome.rendered is True
        assert outcome.published is True
        assert outcome.output_path == str(tmp_path / "out.html")
        assert outcome.errors == []

    @pytest.mark.asyncio
    async def test_missing_sources_fetched(self, runner, context, store, credential, tmp_path):
        """Test that missing sources are pulled from their pages with the batch credential."""
        store.pages = {"101": "left\n", "102": "right\n"}
        row = make_row(tmp_path)

        outcome = await runner.run(row, context)

        assert [call[0] for call in store.fetch_calls] == ["101", "102"]
        assert all(call[2] is credential for call in store.fetch_calls)
        assert (tmp_path / "a.txt").read_text() == "left\n"
        assert outcome.rendered is True
        assert outcome.published is True

    @pytest.mark.asyncio
    async def test_only_missing_source_fetched(self, runner, context, store, tmp_path):
        """Test that only the absent source is fetched."""
        (tmp_path / "a.txt").write_text("left\n")
        store.pages = {"102": "right\n"}

        outcome = await runner.run(make_row(tmp_path), context)

        assert [call[0] for call in store.fetch_calls] == ["102"]
        assert outcome.rendered is True

    @pytest.mark.asyncio
    async def test_failed_fetch_skips_render(self, runner, context, store, renderer, tmp_path):
        """Both fetches are attempted even when the first fails."""
        store.pages = {"102": "right\n"}

        outcome = await runner.run(make_row(tmp_path), context)

        assert [call[0] for call in store.fetch_calls] == ["101", "102"]
        assert renderer.calls == []
        assert store.publish_calls == []
        assert outcome.rendered is False
        assert len(outcome.fetch_errors) == 1
        assert "failed to fetch source 1" in outcome.fetch_errors[0]
        assert "page 101" in outcome.fetch_errors[0]
        assert "rendering skipped" in outcome.render_errors[0]

    @pytest.mark.asyncio
    async def test_no_publish_when_renderer_writes_nothing(
        self, runner, context, store, fakes, text_files, tmp_path
    ):
        """Test that a claimed success with no artifact on disk is not published."""
        context.renderer = fakes["renderer"](write_output=False)

        outcome = await runner.run(make_row(tmp_path), context)

        assert store.publish_calls == []
        assert outcome.rendered is False
        assert "produced no output" in outcome.render_errors[0]

    @pytest.mark.asyncio
    async def test_render_error_recorded(self, runner, context, store, fakes, text_files, tmp_path):
        """Test that a renderer error ends the row before publishing."""
        context.renderer = fakes["renderer"](error="vimdiff failed with exit status 1")

        outcome = await runner.run(make_row(tmp_path), context)

        assert store.publish_calls == []
        assert outcome.render_errors == ["vimdiff failed with exit status 1"]
        assert outcome.success is False

    @pytest.mark.asyncio
    async def test_publish_failure_is_not_row_failure(self, runner, context, fakes, text_files, tmp_path):
        """Test that a failed publish still leaves the row rendered."""
        context.content_store = fakes["store"](publish_error="HTTP 403 publishing page 103")

        outcome = await runner.run(make_row(tmp_path), context)

        assert outcome.rendered is True
        assert outcome.published is False
        assert outcome.success is True
        assert "HTTP 403" in outcome.publish_errors[0]

    @pytest.mark.asyncio
    async def test_publish_uses_normalized_artifact(self, runner, context, store, text_files, tmp_path):
        """Test that the published path is the one actually written."""
        await runner.run(make_row(tmp_path, output_path=str(tmp_path / "report.htm")), context)

        assert store.publish_calls[0][:2] == ("103", str(tmp_path / "report.htm"))

    @pytest.mark.asyncio
    async def test_timeout_is_row_error(self, runner, context, store, tmp_path):
        """Test that a slow fetch becomes an error on the row."""
        class SlowStore(type(store)):
            async def fetch(self, page_id, destination, credential, timeout=None):
                await asyncio.sleep(5)
                return FetchResult(page_id, destination, 0, 0), None

        context.content_store = SlowStore()
        context.timeout = 0.01

        outcome = await runner.run(make_row(tmp_path), context)

        assert outcome.rendered is False
        assert "timed out" in outcome.fetch_errors[0]
        assert "timed out" in outcome.fetch_errors[1]

    @pytest.mark.asyncio
    async def test_collaborator_exception_captured(self, runner, context, store, text_files, tmp_path):
        """Test that an exception from the store is recorded instead of raised."""
        class BrokenStore(type(store)):
            async def publish(self, page_id, source, credential, timeout=None):
                raise RuntimeError("connection reset")

        context.content_store = BrokenStore()

        outcome = await runner.run(make_row(tmp_path), context)

        assert outcome.rendered is True
        assert "connection reset" in outcome.publish_errors[0]

    @pytest.mark.asyncio
    @pytest.mark.skipif(sys.platform == "win32", reason="stand-in vimdiff is a shell script")
    async def test_render_timeout_leaves_no_vimdiff_behind(
        self, runner, context, store, fake_vimdiff, text_files, tmp_path
    ):
        """Test that a timed out render does not leave vimdiff running."""
        script = fake_vimdiff('echo $$ > "$0.pid"\nexec sleep 30')
        context.renderer = VimDiffRenderer(str(script))
        context.timeout = 0.5

        outcome = await runner.run(make_row(tmp_path), context)

        assert outcome.rendered is False
        assert "timed out after 0.5s" in outcome.render_errors[0]
        assert store.publish_calls == []
        pid = int(script.with_name("vimdiff.pid").read_text())
        with pytest.raises(ProcessLookupError):
            os.kill(pid, 0)
