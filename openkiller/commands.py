"""Per-platform command selection.

Builds the commands used to list listeners, kill a process and look up a
process name. Nothing is executed here.
"""

from dataclasses import dataclass

from openkiller.models import Platform


@dataclass(frozen=True)
class ShellCommand:
    """An external command.

    With ``shell`` set, ``argv`` holds a single pipeline string for the
    system shell. Otherwise ``argv`` is passed to the program directly, so
    arguments such as a PID are never interpreted by a shell.
    """

    argv: tuple[str, ...]
    shell: bool = False
    fallback: "ShellCommand | None" = None

    @classmethod
    def pipeline(cls, line: str, fallback: "ShellCommand | None" = None) -> "ShellCommand":
        return cls(argv=(line,), shell=True, fallback=fallback)

    @classmethod
    def program(cls, *argv: str, fallback: "ShellCommand | None" = None) -> "ShellCommand":
        return cls(argv=tuple(argv), fallback=fallback)

    def __str__(self) -> str:
        text = self.argv[0] if self.shell else " ".join(self.argv)
        if self.fallback is not None:
            text += f" || {self.fallback}"
        return text


ENUMERATION_COMMANDS: dict[Platform, ShellCommand] = {
    Platform.WINDOWS: ShellCommand.pipeline("netstat -ano | findstr LISTENING"),
    Platform.MACOS: ShellCommand.program("lsof", "-iTCP", "-sTCP:LISTEN", "-n", "-P"),
    Platform.LINUX: ShellCommand.program(
        "ss", "-tlnp", fallback=ShellCommand.program("netstat", "-tlnp")
    ),
}


def select_enumeration_command(platform: Platform | str) -> ShellCommand:
    """Command that dumps listening sockets on ``platform``."""
    return ENUMERATION_COMMANDS[Platform.from_tag(platform)]


def select_kill_command(platform: Platform | str, pid: str | int) -> ShellCommand:
    """Command that forcibly terminates ``pid``."""
    if Platform.from_tag(platform) is Platform.WINDOWS:
        return ShellCommand.program("taskkill", "/F", "/PID", str(pid))
    return ShellCommand.program("kill", "-9", str(pid))


def select_name_query_command(platform: Platform | str, pid: str | int) -> ShellCommand:
    """Command that prints the executable name of ``pid``."""
    if Platform.from_tag(platform) is Platform.WINDOWS:
        return ShellCommand.program(
            "tasklist", "/FI", f"PID eq {pid}", "/FO", "CSV", "/NH"
        )
    return ShellCommand.program("ps", "-p", str(pid), "-o", "comm=")
