"""Centralized configuration management."""

import os
from dataclasses import dataclass
from typing import Optional

DEFAULT_COLOR_SCHEME = "desert"
RENDERERS = ("vim", "html")


@dataclass
class Settings:
    """
    Run settings shared by both commands.

    Unset values are filled from the environment; command-line flags are
    applied on top by the CLI. The password is never read from here.
    """

    base_url: Optional[str] = None
    color_scheme: Optional[str] = None
    timeout: Optional[float] = None  # Seconds per external call, None = wait forever
    renderer: str = "vim"
    debug: bool = False

    def __post_init__(self):
        if self.base_url is None:
            self.base_url = os.environ.get("CONFLUENCE_BASE_URL")
        if self.base_url:
            self.base_url = self.base_url.rstrip("/")

        if self.color_scheme is None:
            self.color_scheme = os.environ.get("CONFDIFF_COLORSCHEME", DEFAULT_COLOR_SCHEME)

        if self.timeout is None:
            env_timeout = os.environ.get("CONFDIFF_TIMEOUT")
            if env_timeout:
                try:
                    self.timeout = float(env_timeout)
                except ValueError:
                    raise ValueError(f"CONFDIFF_TIMEOUT must be a number of seconds: {env_timeout}")

        if self.timeout is not None and self.timeout <= 0:
            raise ValueError(f"Timeout must be positive: {self.timeout}")

        if self.renderer not in RENDERERS:
            raise ValueError(f"Unknown renderer: {self.renderer}. Use 'vim' or 'html'.")
