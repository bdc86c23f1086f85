"""External command execution."""

import asyncio
import logging
import time
from dataclasses import dataclass
from typing import Protocol

from openkiller.commands import ShellCommand

logger = logging.getLogger(__name__)

# Exit code reported when a program cannot be started (as a POSIX shell does)
EXIT_NOT_FOUND = 127
EXIT_TIMED_OUT = -1


@dataclass
class CommandResult:
    """Captured output of an external command."""

    stdout: str
    stderr: str = ""
    exit_code: int = 0

    @property
    def ok(self) -> bool:
        return self.exit_code == 0

    @property
    def error_text(self) -> str:
        """Best available description of a failure."""
        return (self.stderr.strip() or self.stdout.strip())


class CommandRunner(Protocol):
    """Anything that can run a ``ShellCommand``."""

    async def run(self, command: ShellCommand) -> CommandResult:
        ...


class SubprocessRunner:
    """Runs commands as asyncio child processes.

    If a command fails and carries a fallback, the fallback is run instead and
    its result returned. Without a timeout the runner waits for the child
    indefinitely.
    """

    def __init__(self, timeout: float | None = None) -> None:
        self.timeout = timeout

    async def run(self, command: ShellCommand) -> CommandResult:
        result = await self._run_once(command)
        if not result.ok and command.fallback is not None:
            logger.debug(
                f"Primary command failed, trying fallback: {result.error_text}",
                extra={"command": str(command), "exit_code": result.exit_code},
            )
            return await self.run(command.fallback)
        return result

    async def _run_once(self, command: ShellCommand) -> CommandResult:
        started = time.monotonic()
        try:
            if command.shell:
                process = await asyncio.create_subprocess_shell(
                    command.argv[0],
                    stdout=asyncio.subprocess.PIPE,
                    stderr=asyncio.subprocess.PIPE,
                )
            else:
                process = await asyncio.create_subprocess_exec(
                    *command.argv,
                    stdout=asyncio.subprocess.PIPE,
                    stderr=asyncio.subprocess.PIPE,
                )
        except OSError as e:
            return CommandResult(stdout="", stderr=str(e), exit_code=EXIT_NOT_FOUND)

        try:
            stdout, stderr = await asyncio.wait_for(
                process.communicate(), timeout=self.timeout
            )
        except asyncio.TimeoutError:
            process.kill()
            await process.wait()
            return CommandResult(
                stdout="",
                stderr=f"Command timed out after {self.timeout}s",
                exit_code=EXIT_TIMED_OUT,
            )

        result = CommandResult(
            stdout=stdout.decode("utf-8", errors="replace"),
            stderr=stderr.decode("utf-8", errors="replace"),
            exit_code=process.returncode,
        )
        logger.debug(
            "Command finished",
            extra={
                "command": str(command),
                "exit_code": result.exit_code,
                "duration_ms": (time.monotonic() - started) * 1000,
            },
        )
        return result
