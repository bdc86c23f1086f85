"""Public port listing and process control operations.

``list_ports``, ``kill_process`` and ``get_process_name`` never raise: every
failure is converted to an empty list, a failed ``KillResult`` or
``"Unknown"``.
"""

import asyncio
import logging

from openkiller.commands import select_enumeration_command
from openkiller.config import settings
from openkiller.exceptions import CommandFailedError
from openkiller.models import (
    UNKNOWN_PROCESS,
    KillResult,
    Platform,
    PortRecord,
    detect_platform,
    parse_port,
)
from openkiller.parser import parse
from openkiller.process import resolve_name, terminate
from openkiller.registry import register
from openkiller.runner import CommandRunner, SubprocessRunner

logger = logging.getLogger(__name__)

# Upper bound on name lookup processes running at once
NAME_LOOKUP_CONCURRENCY = 8


async def enumerate_ports(platform: Platform, runner: CommandRunner) -> list[PortRecord]:
    """Run the listing command and build a snapshot.

    Raises:
        CommandFailedError: the command (and its fallback) failed
    """
    command = select_enumeration_command(platform)
    result = await runner.run(command)
    if not result.ok:
        raise CommandFailedError(str(command), result)
    return register(parse(result.stdout, platform))


class PortService:
    """Listing and process control bound to one platform and runner."""

    def __init__(
        self,
        platform: Platform | str | None = None,
        runner: CommandRunner | None = None,
    ) -> None:
        tag = platform or settings.platform
        self.platform = Platform.from_tag(tag) if tag else detect_platform()
        self.runner = runner or SubprocessRunner(timeout=settings.command_timeout)

    async def list_ports(self, resolve_names: bool = False) -> list[PortRecord]:
        """Snapshot of listening sockets, sorted by port. Empty on failure."""
        try:
            records = await enumerate_ports(self.platform, self.runner)
        except CommandFailedError as e:
            logger.warning(
                f"Could not list ports: {e}",
                extra={"platform": self.platform.value, "exit_code": e.result.exit_code},
            )
            return []
        except Exception:
            logger.exception(
                "Unexpected error while listing ports",
                extra={"platform": self.platform.value},
            )
            return []

        if resolve_names:
            records = await self._resolve_names(records)
        return records

    async def _resolve_names(self, records: list[PortRecord]) -> list[PortRecord]:
        """Fill in names the listing tool could not supply."""
        pending = [r for r in records if r.has_pid and not r.has_name]
        if not pending:
            return records
        semaphore = asyncio.Semaphore(NAME_LOOKUP_CONCURRENCY)

        async def lookup(pid: str) -> str:
            async with semaphore:
                return await self.get_process_name(pid)

        names = await asyncio.gather(*(lookup(r.pid) for r in pending))
        resolved = {
            id(record): record.model_copy(update={"process_name": name})
            for record, name in zip(pending, names)
            if name != UNKNOWN_PROCESS
        }
        return [resolved.get(id(r), r) for r in records]

    async def kill_process(self, pid: str | int) -> KillResult:
        """Forcibly terminate ``pid``. Never raises."""
        try:
            return await terminate(pid, self.platform, self.runner)
        except Exception as e:
            logger.exception(f"Unexpected error while terminating process {pid}")
            return KillResult(success=False, message=f"Failed to terminate PID {pid}: {e}")

    async def get_process_name(self, pid: str | int) -> str:
        """Name of ``pid``, or ``"Unknown"``. Never raises."""
        try:
            return await resolve_name(pid, self.platform, self.runner)
        except Exception:
            logger.exception(f"Unexpected error while resolving process {pid}")
            return UNKNOWN_PROCESS

    async def find_by_port(self, port: int | str) -> PortRecord | None:
        """Listener on ``port`` in a fresh snapshot, if any."""
        wanted = parse_port(str(port))
        for record in await self.list_ports():
            if record.port == wanted:
                return record
        return None


_default_service: PortService | None = None


def get_service() -> PortService:
    """Get the default service for this host."""
    global _default_service
    if _default_service is None:
        _default_service = PortService()
    return _default_service


async def list_ports(resolve_names: bool = False) -> list[PortRecord]:
    return await get_service().list_ports(resolve_names=resolve_names)


async def kill_process(pid: str | int) -> KillResult:
    return await get_service().kill_process(pid)


async def get_process_name(pid: str | int) -> str:
    return await get_service().get_process_name(pid)
