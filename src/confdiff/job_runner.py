"""
Job runner for a single comparison row.

Makes sure both inputs exist locally, renders their differences and
publishes the rendering. Every failure is recorded on the row outcome;
nothing is raised to the caller and nothing is retried.
"""

import asyncio
import logging
from collections.abc import Awaitable
from pathlib import Path
from typing import TypeVar

from .context import RunContext
from .models import ComparisonRow, RowOutcome
from .renderer import normalize_output_path

logger = logging.getLogger(__name__)

T = TypeVar("T")


class ComparisonJobRunner:
    """Runs the fetch, render and publish pipeline for one row."""

    async def run(self, row: ComparisonRow, context: RunContext) -> RowOutcome:
        """
        Process a single row through the full pipeline.

        Args:
            row: Parsed batch row
            context: Collaborators, credential and options for this run

        Returns:
            RowOutcome describing what was produced and what failed
        """
        outcome = RowOutcome(row=row)

        # Fetch missing inputs, each one independently
        sources = (
            (1, row.source_path_1, row.fetch_id_1),
            (2, row.source_path_2, row.fetch_id_2),
        )
        for index, path, page_id in sources:
            if Path(path).exists():
                continue

            _, error = await self._call(
                f"fetch of source {index}",
                context.content_store.fetch(page_id, path, context.credential, context.timeout),
                context.timeout,
            )
            if error:
                logger.debug(f"Fetch of page {page_id} reported: {error}")

            if not Path(path).exists():
                message = f'failed to fetch source {index} "{path}" (page {page_id})'
                if error:
                    message = f"{message}: {error}"
                logger.error(f"Row {row.line_number}: {message}")
                outcome.fetch_errors.append(message)

        missing = [path for _, path, _ in sources if not Path(path).exists()]
        if missing:
            message = "rendering skipped, missing " + ", ".join(f'"{path}"' for path in missing)
            logger.error(f"Row {row.line_number}: {message}")
            outcome.render_errors.append(message)
            return outcome

        render_result, error = await self._call(
            "render",
            context.renderer.render(
                row.source_path_1,
                row.source_path_2,
                row.output_path,
                color_scheme=context.color_scheme,
                timeout=context.timeout,
            ),
            context.timeout,
        )
        if error:
            logger.error(f"Row {row.line_number}: {error}")
            outcome.render_errors.append(error)

        # Trust the filesystem, not the renderer's report
        artifact = render_result.output_path if render_result else normalize_output_path(row.output_path)
        if error or not Path(artifact).exists():
            if not error:
                message = f'renderer produced no output at "{artifact}"'
                logger.error(f"Row {row.line_number}: {message}")
                outcome.render_errors.append(message)
            return outcome

        outcome.rendered = True
        outcome.output_path = artifact

        publish_result, error = await self._call(
            "publish",
            context.content_store.publish(row.publish_id, artifact, context.credential, context.timeout),
            context.timeout,
        )
        if error or publish_result is None:
            message = f'failed to publish "{artifact}" to page {row.publish_id}'
            if error:
                message = f"{message}: {error}"
            logger.error(f"Row {row.line_number}: {message}")
            outcome.publish_errors.append(message)
        else:
            logger.info(
                f'Published "{artifact}" to page {row.publish_id} (version {publish_result.version})'
            )
            outcome.published = True

        return outcome

    async def _call(
        self,
        step: str,
        call: Awaitable[tuple[T | None, str | None]],
        timeout: float | None,
    ) -> tuple[T | None, str | None]:
        """Await a collaborator call, turning timeouts and crashes into error strings."""
        try:
            return await asyncio.wait_for(call, timeout=timeout)
        except asyncio.TimeoutError:
            return None, f"{step} timed out after {timeout}s"
        except Exception as e:
            logger.debug(f"{step} raised", exc_info=True)
            return None, f"Unexpected error during {step}: {str(e)}"
