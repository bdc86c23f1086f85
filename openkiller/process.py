"""Process termination and name lookup by PID."""

import logging

from openkiller.commands import select_kill_command, select_name_query_command
from openkiller.models import UNKNOWN_PROCESS, KillResult, Platform
from openkiller.runner import CommandRunner

logger = logging.getLogger(__name__)

# tasklist prints this (with exit code 0) when the filter matches nothing
TASKLIST_NO_MATCH = "INFO:"


async def terminate(pid: str | int, platform: Platform | str, runner: CommandRunner) -> KillResult:
    """Forcibly terminate ``pid``.

    Failures (no such process, permission denied, missing tool) come back as
    ``KillResult(success=False)`` carrying the tool's error text.
    """
    command = select_kill_command(platform, pid)
    result = await runner.run(command)

    if result.ok:
        logger.info(f"Terminated process {pid}", extra={"pid": str(pid)})
        return KillResult(success=True, message=f"PID {pid} terminated successfully")

    detail = result.error_text or f"exit code {result.exit_code}"
    logger.warning(
        f"Failed to terminate process {pid}: {detail}",
        extra={"pid": str(pid), "exit_code": result.exit_code},
    )
    return KillResult(success=False, message=f"Failed to terminate PID {pid}: {detail}")


def clean_process_name(output: str) -> str:
    """Reduce query output to a bare name: unquoted, first CSV field."""
    name = output.strip().replace('"', "").replace("'", "").split(",")[0].strip()
    if not name or name.startswith(TASKLIST_NO_MATCH):
        return UNKNOWN_PROCESS
    return name


async def resolve_name(pid: str | int, platform: Platform | str, runner: CommandRunner) -> str:
    """Best-effort name lookup for ``pid``; ``"Unknown"`` when unavailable."""
    command = select_name_query_command(platform, pid)
    result = await runner.run(command)
    if not result.ok:
        logger.debug(
            f"Name lookup failed for process {pid}",
            extra={"pid": str(pid), "exit_code": result.exit_code},
        )
        return UNKNOWN_PROCESS
    return clean_process_name(result.stdout)
