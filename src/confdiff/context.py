"""Explicit run context handed to the job runner and the orchestrator."""

from dataclasses import dataclass

from .config import DEFAULT_COLOR_SCHEME
from .models import Credential
from .prompt import Prompt, TerminalPrompt
from .renderer import DiffRenderer
from .store import ContentStore


@dataclass
class RunContext:
    """
    Collaborators and options for one run.

    The credential starts empty and is filled in once by the orchestrator;
    nothing else changes during a run.
    """

    content_store: ContentStore
    renderer: DiffRenderer
    prompt: Prompt | None = None
    credential: Credential | None = None
    color_scheme: str = DEFAULT_COLOR_SCHEME
    timeout: float | None = None  # Seconds per external call
    debug: bool = False
    strict: bool = False
    pause_between_rows: bool = False

    def __post_init__(self):
        if self.prompt is None:
            self.prompt = TerminalPrompt()
