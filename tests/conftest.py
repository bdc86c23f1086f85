"""Pytest fixtures for Open Killer tests."""

import pytest

from openkiller.commands import ShellCommand
from openkiller.runner import CommandResult


class FakeRunner:
    """Runner that replays canned results and records what it was asked to run.

    ``results`` maps a program name (``argv[0]`` of an argv command, or the
    whole line of a shell command) to a ``CommandResult`` or an exception to
    raise. Fallbacks are followed the way ``SubprocessRunner`` does.
    """

    def __init__(self, results: dict | None = None) -> None:
        self.results = results or {}
        self.commands: list[ShellCommand] = []

    async def run(self, command: ShellCommand) -> CommandResult:
        self.commands.append(command)
        outcome = self.results.get(
            command.argv[0],
            CommandResult(stdout="", stderr=f"{command.argv[0]}: not found", exit_code=127),
        )
        if isinstance(outcome, Exception):
            raise outcome
        if not outcome.ok and command.fallback is not None:
            return await self.run(command.fallback)
        return outcome

    @property
    def programs(self) -> list[str]:
        return [c.argv[0] for c in self.commands]


@pytest.fixture
def fake_runner():
    """Empty fake runner; tests fill in ``results``."""
    return FakeRunner()


def pytest_configure(config):
    """Register the asyncio marker."""
    config.addinivalue_line(
        "markers", "asyncio: mark test as async"
    )
