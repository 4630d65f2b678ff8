"""
Confirmation Capabilities

A Confirmer answers the single question asked before a proposed file change
is committed. SectionBlockEditor receives one explicitly, so the same edit
flow runs interactively, unattended (confirm-all) or under test.
"""

import logging
import sys
from abc import ABC, abstractmethod
from typing import Callable, Iterable, List, Optional, TextIO

from labconf.ui.colors import CONFIRMED_FG, DECLINED_FG, colorize

logger = logging.getLogger("LabConf.Confirm")


class Confirmer(ABC):
    """
    Base class for all confirmation policies.

    ``automatic`` confirmers never ask anybody; the editor skips the prompt
    text entirely and logs the change as applied automatically.
    """

    automatic = False

    @abstractmethod
    def confirm(self, prompt: str) -> bool:
        """Return True to apply the change described by ``prompt``."""


class AlwaysAcceptConfirmer(Confirmer):
    """Auto-confirm policy used for unattended runs (``--yes``)."""

    automatic = True

    def confirm(self, prompt: str) -> bool:
        logger.debug("Auto-confirming due to confirm_all=true")
        return True


class DenyAllConfirmer(Confirmer):
    """Declines every change."""

    def confirm(self, prompt: str) -> bool:
        return False


class ScriptedConfirmer(Confirmer):
    """Replays a fixed sequence of answers and records every prompt asked."""

    def __init__(self, answers: Iterable[bool]):
        self._answers: List[bool] = list(answers)
        self.prompts: List[str] = []

    def confirm(self, prompt: str) -> bool:
        self.prompts.append(prompt)
        if not self._answers:
            raise IndexError(f"No scripted answer left for prompt: {prompt}")
        return self._answers.pop(0)

    @property
    def remaining(self) -> int:
        return len(self._answers)


def _sanitize_user_input(raw: Optional[str]) -> str:
    """Drop CR/LF and control characters other than tab from an answer."""
    if raw is None:
        return ""
    cleaned = raw.replace("\r", "").replace("\n", "")
    return "".join(ch for ch in cleaned if ch == "\t" or ord(ch) >= 32)


class TerminalConfirmer(Confirmer):
    """
    Interactive yes/no prompt.

    Args:
        default: answer used for an empty reply (None forces an explicit Y/N)
        input_func: reads one line of user input
        output: stream the prompt and feedback are written to (stdout if None)
    """

    def __init__(
        self,
        default: Optional[bool] = None,
        input_func: Callable[[str], str] = input,
        output: Optional[TextIO] = None,
    ):
        self.default = default
        self.input_func = input_func
        self.output = output

    def _write(self, text: str) -> None:
        stream = self.output or sys.stdout
        stream.write(text)
        stream.flush()

    def _suffix(self) -> str:
        if self.default is True:
            return "(Y/n)"
        if self.default is False:
            return "(y/N)"
        return "(Y/N)"

    def confirm(self, prompt: str) -> bool:
        suffix = self._suffix()
        while True:
            self._write(f"{prompt} {suffix}: ")
            try:
                answer = _sanitize_user_input(self.input_func("")).strip()
            except EOFError:
                self._write("\n")
                logger.warning("No answer available on input, treating as declined")
                return False

            if not answer and self.default is not None:
                answer = "y" if self.default else "n"

            if answer[:1] in ("y", "Y"):
                logger.debug(f"User confirmed: {prompt}")
                self._write(colorize("Changes confirmed.", CONFIRMED_FG) + "\n")
                return True
            if answer[:1] in ("n", "N"):
                logger.debug(f"User declined: {prompt}")
                self._write(colorize("Changes not applied.", DECLINED_FG) + "\n")
                return False

            self._write(colorize("Invalid input. Please enter Y or N.", DECLINED_FG) + "\n")
