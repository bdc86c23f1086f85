"""Exceptions raised inside the enumeration pipeline.

None of these cross the public operations in ``openkiller.service``; they are
converted to empty or default results there.
"""

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from openkiller.runner import CommandResult


class OpenKillerError(Exception):
    """Base class for Open Killer errors."""


class CommandFailedError(OpenKillerError):
    """An external command exited non-zero or could not be started."""

    def __init__(self, command: str, result: "CommandResult") -> None:
        self.command = command
        self.result = result
        detail = result.error_text or f"exit code {result.exit_code}"
        super().__init__(f"Command '{command}' failed: {detail}")
