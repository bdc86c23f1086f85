"""Tests for the public port service operations."""

import asyncio
from unittest.mock import patch

import pytest

from openkiller import service as service_module
from openkiller.exceptions import CommandFailedError
from openkiller.models import Platform
from openkiller.runner import CommandResult
from openkiller.service import NAME_LOOKUP_CONCURRENCY, PortService, enumerate_ports

SS_OUTPUT = """State  Recv-Q Send-Q Local Address:Port  Peer Address:Port Process
LISTEN 0      511          0.0.0.0:8080      0.0.0.0:*     users:(("nginx",pid=1500,fd=6))
LISTEN 0      128          0.0.0.0:3000      0.0.0.0:*     users:(("node",pid=4821,fd=20))
LISTEN 0      511             [::]:8080         [::]:*     users:(("nginx",pid=1500,fd=7))
LISTEN 0      4096   127.0.0.53%lo:53        0.0.0.0:*
"""

WINDOWS_OUTPUT = """  TCP    0.0.0.0:5040    0.0.0.0:0    LISTENING    7712
  TCP    0.0.0.0:135     0.0.0.0:0    LISTENING    1020
"""


class TestEnumeratePorts:
    """Tests for enumerate_ports()."""

    @pytest.mark.asyncio
    async def test_snapshot(self, fake_runner):
        """Output is parsed, deduplicated and sorted."""
        fake_runner.results["ss"] = CommandResult(stdout=SS_OUTPUT)
        records = await enumerate_ports(Platform.LINUX, fake_runner)
        assert [r.port for r in records] == [53, 3000, 8080]
        assert records[2].address == "0.0.0.0:8080"

    @pytest.mark.asyncio
    async def test_command_failure_raises(self, fake_runner):
        """Inside the pipeline a failed command is an error."""
        with pytest.raises(CommandFailedError) as exc_info:
            await enumerate_ports(Platform.MACOS, fake_runner)
        assert exc_info.value.result.exit_code == 127


class TestListPorts:
    """Tests for PortService.list_ports()."""

    @pytest.mark.asyncio
    async def test_linux_fallback(self, fake_runner):
        """netstat output is used when ss is missing."""
        fake_runner.results["netstat"] = CommandResult(
            stdout="tcp 0 0 0.0.0.0:22 0.0.0.0:* LISTEN 812/sshd\n"
        )
        records = await PortService("linux", fake_runner).list_ports()
        assert fake_runner.programs == ["ss", "netstat"]
        assert [(r.port, r.pid, r.process_name) for r in records] == [(22, "812", "sshd")]

    @pytest.mark.asyncio
    async def test_both_linux_commands_fail(self, fake_runner):
        """If the fallback fails too, the result is empty."""
        assert await PortService("linux", fake_runner).list_ports() == []

    @pytest.mark.asyncio
    async def test_unexpected_error(self, fake_runner):
        """Unexpected exceptions never escape."""
        fake_runner.results["lsof"] = RuntimeError("boom")
        assert await PortService("macos", fake_runner).list_ports() == []

    @pytest.mark.asyncio
    async def test_resolve_names(self, fake_runner):
        """Unnamed records with a pid are enriched by name lookup."""
        fake_runner.results["netstat -ano | findstr LISTENING"] = CommandResult(stdout=WINDOWS_OUTPUT)
        fake_runner.results["tasklist"] = CommandResult(stdout='"svchost.exe","1020","Services","0","9,000 K"')
        records = await PortService("windows", fake_runner).list_ports(resolve_names=True)
        assert [r.port for r in records] == [135, 5040]
        assert all(r.process_name == "svchost.exe" for r in records)
        assert fake_runner.programs.count("tasklist") == 2

    @pytest.mark.asyncio
    async def test_resolve_names_keeps_sentinel_on_failure(self, fake_runner):
        """Records keep their default name when lookup fails."""
        fake_runner.results["netstat -ano | findstr LISTENING"] = CommandResult(stdout=WINDOWS_OUTPUT)
        records = await PortService("windows", fake_runner).list_ports(resolve_names=True)
        assert all(r.process_name == "System process" for r in records)

    @pytest.mark.asyncio
    async def test_resolve_names_skips_named_records(self, fake_runner):
        """Records that already carry a name are not looked up."""
        fake_runner.results["ss"] = CommandResult(stdout=SS_OUTPUT)
        await PortService("linux", fake_runner).list_ports(resolve_names=True)
        assert "ps" not in fake_runner.programs


class TestKillAndName:
    """Tests for kill_process() and get_process_name()."""

    @pytest.mark.asyncio
    async def test_kill_success(self, fake_runner):
        fake_runner.results["kill"] = CommandResult(stdout="")
        result = await PortService("linux", fake_runner).kill_process(4821)
        assert result.success is True

    @pytest.mark.asyncio
    async def test_kill_unexpected_error(self, fake_runner):
        """Runner exceptions become failed results."""
        fake_runner.results["kill"] = RuntimeError("boom")
        result = await PortService("linux", fake_runner).kill_process("4821")
        assert result.success is False
        assert "PID 4821" in result.message

    @pytest.mark.asyncio
    async def test_name_unexpected_error(self, fake_runner):
        fake_runner.results["ps"] = RuntimeError("boom")
        assert await PortService("macos", fake_runner).get_process_name(1) == "Unknown"

    @pytest.mark.asyncio
    async def test_find_by_port(self, fake_runner):
        fake_runner.results["ss"] = CommandResult(stdout=SS_OUTPUT)
        svc = PortService("linux", fake_runner)
        record = await svc.find_by_port(3000)
        assert record.pid == "4821"
        assert await svc.find_by_port(9999) is None


class TestServiceDefaults:
    """Tests for platform and runner defaults."""

    def test_platform_override_from_settings(self):
        with patch.object(service_module.settings, "platform", "windows"):
            assert PortService().platform is Platform.WINDOWS

    def test_platform_detected(self):
        with patch.object(service_module.settings, "platform", None), \
                patch("openkiller.service.detect_platform", return_value=Platform.MACOS):
            assert PortService().platform is Platform.MACOS

    def test_runner_timeout_from_settings(self):
        with patch.object(service_module.settings, "command_timeout", 5.0):
            assert PortService("linux").runner.timeout == 5.0

    @pytest.mark.asyncio
    async def test_module_functions_use_default_service(self, fake_runner):
        fake_runner.results["ps"] = CommandResult(stdout="bash\n")
        with patch.object(service_module, "_default_service", PortService("linux", fake_runner)):
            assert await service_module.get_process_name(1) == "bash"
            assert (await service_module.kill_process(1)).success is False
            assert await service_module.list_ports() == []

    def test_unknown_platform_from_settings(self):
        """An unrecognized override takes the linux branch."""
        with patch.object(service_module.settings, "platform", "freebsd"):
            assert PortService().platform is Platform.LINUX


class SlowNameRunner:
    """Answers every name lookup after a short pause, tracking overlap."""

    def __init__(self, listing: str) -> None:
        self.listing = listing
        self.running = 0
        self.peak = 0

    async def run(self, command):
        if command.shell:
            return CommandResult(stdout=self.listing)
        self.running += 1
        self.peak = max(self.peak, self.running)
        await asyncio.sleep(0.01)
        self.running -= 1
        return CommandResult(stdout='"svchost.exe","1","Services","0","1 K"')


class TestNameLookupConcurrency:
    """Tests for bounded name enrichment."""

    @pytest.mark.asyncio
    async def test_lookups_are_capped(self):
        """Many unnamed listeners never run more than the cap at once."""
        listing = "\n".join(
            f"TCP 0.0.0.0:{port} 0.0.0.0:0 LISTENING {port}"
            for port in range(1000, 1000 + NAME_LOOKUP_CONCURRENCY * 4)
        )
        runner = SlowNameRunner(listing)
        records = await PortService("windows", runner).list_ports(resolve_names=True)

        assert len(records) == NAME_LOOKUP_CONCURRENCY * 4
        assert all(r.process_name == "svchost.exe" for r in records)
        assert 1 < runner.peak <= NAME_LOOKUP_CONCURRENCY
