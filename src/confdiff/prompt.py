"""
Operator prompts.

The engine never reads the terminal directly; it asks a Prompt, so tests can
answer with canned responses.
"""

import getpass
from abc import ABC, abstractmethod


class PromptCancelled(Exception):
    """Raised when the operator declines or aborts a prompt."""

    pass


class Prompt(ABC):
    """Interface for interactive questions."""

    @abstractmethod
    def secret(self, message: str) -> str:
        """Ask for a value without echoing it."""
        pass

    @abstractmethod
    def confirm(self, message: str) -> bool:
        """Ask a yes/no question."""
        pass

    @abstractmethod
    def pause(self, message: str) -> None:
        """Wait for the operator to acknowledge."""
        pass


class TerminalPrompt(Prompt):
    """
    Prompts on the controlling terminal.

    EOF and Ctrl-C are reported as PromptCancelled.
    """

    YES = ("y", "yes")
    NO = ("n", "no")

    def secret(self, message: str) -> str:
        try:
            return getpass.getpass(message)
        except (EOFError, KeyboardInterrupt) as e:
            raise PromptCancelled("Password entry cancelled") from e

    def confirm(self, message: str) -> bool:
        # Keep asking until the answer is recognizable
        while True:
            try:
                answer = input(message).strip().lower()
            except (EOFError, KeyboardInterrupt) as e:
                raise PromptCancelled("Confirmation cancelled") from e

            if answer in self.YES:
                return True
            if answer in self.NO:
                return False

    def pause(self, message: str) -> None:
        try:
            input(message)
        except (EOFError, KeyboardInterrupt) as e:
            raise PromptCancelled("Stopped by operator") from e
