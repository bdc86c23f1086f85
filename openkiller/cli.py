#!/usr/bin/env python3
"""Command-line interface for Open Killer.

Commands:
    list [--json] [--resolve-names]     Show listening ports
    kill PID [--refresh] [--json]       Forcibly terminate a process
    kill-port PORT [--json]             Terminate whatever listens on PORT
    name PID                            Show the name of a process

Usage:
    openkiller list
    openkiller --platform macos list --json
    openkiller kill 4821 --refresh
    python -m openkiller kill-port 3000
"""

import argparse
import asyncio
import json
import sys

from openkiller.config import KNOWN_PLATFORMS, settings
from openkiller.logging_config import setup_logging
from openkiller.models import KillResult, PortRecord
from openkiller.service import PortService


def print_ports(records: list[PortRecord], json_output: bool = False) -> None:
    """Print a snapshot as a table or as JSON."""
    if json_output:
        data = [r.model_dump(by_alias=True, mode="json") for r in records]
        print(json.dumps(data, indent=2))
        return

    if not records:
        print("No listening ports found.")
        return

    print(f"{'PORT':>6}  {'PROTO':<6} {'PID':>8}  {'PROCESS':<24} ADDRESS")
    print("-" * 70)
    for r in records:
        print(f"{r.port!s:>6}  {r.protocol:<6} {r.pid:>8}  {r.process_name:<24} {r.address}")
    print(f"\n{len(records)} listening port(s)")


def print_kill_result(result: KillResult, json_output: bool = False) -> None:
    if json_output:
        print(json.dumps(result.model_dump()))
    else:
        print(result.message)


async def cmd_list(args: argparse.Namespace, service: PortService) -> int:
    """List listening ports."""
    records = await service.list_ports(resolve_names=args.resolve_names)
    print_ports(records, args.json)
    return 0


async def cmd_kill(args: argparse.Namespace, service: PortService) -> int:
    """Terminate a process by PID."""
    result = await service.kill_process(args.pid)
    print_kill_result(result, args.json)

    if result.success and args.refresh:
        await asyncio.sleep(settings.refresh_delay)
        print_ports(await service.list_ports(), args.json)

    return 0 if result.success else 1


async def cmd_kill_port(args: argparse.Namespace, service: PortService) -> int:
    """Terminate the process listening on a port."""
    record = await service.find_by_port(args.port)
    if record is None:
        print(f"No process is listening on port {args.port}")
        return 1
    if not record.has_pid:
        print(f"Port {args.port} is held by a process whose PID is not visible (try with elevated privileges)")
        return 1

    result = await service.kill_process(record.pid)
    print_kill_result(result, args.json)
    return 0 if result.success else 1


async def cmd_name(args: argparse.Namespace, service: PortService) -> int:
    """Print a process name."""
    print(await service.get_process_name(args.pid))
    return 0


COMMANDS = {
    "list": cmd_list,
    "kill": cmd_kill,
    "kill-port": cmd_kill_port,
    "name": cmd_name,
}


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="openkiller",
        description="List listening ports and kill the processes behind them",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument(
        "--platform",
        choices=KNOWN_PLATFORMS,
        help="Override host platform detection",
    )
    parser.add_argument("--debug", action="store_true", help="Enable debug logging")
    parser.add_argument("--json-logs", action="store_true", help="Log as JSON lines")

    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    list_parser = subparsers.add_parser("list", help="Show listening ports")
    list_parser.add_argument("--json", action="store_true", help="JSON output")
    list_parser.add_argument(
        "--resolve-names",
        action="store_true",
        help="Look up names the listing tool could not supply",
    )

    kill_parser = subparsers.add_parser("kill", help="Forcibly terminate a process")
    kill_parser.add_argument("pid", help="Process ID")
    kill_parser.add_argument(
        "--refresh",
        action="store_true",
        help="Show the listening ports again after the kill",
    )
    kill_parser.add_argument("--json", action="store_true", help="JSON output")

    kill_port_parser = subparsers.add_parser(
        "kill-port",
        help="Terminate the process listening on a port",
    )
    kill_port_parser.add_argument("port", type=int, help="Port number")
    kill_port_parser.add_argument("--json", action="store_true", help="JSON output")

    name_parser = subparsers.add_parser("name", help="Show the name of a process")
    name_parser.add_argument("pid", help="Process ID")

    return parser


def build_service(args: argparse.Namespace) -> PortService:
    return PortService(platform=args.platform)


def main(argv: list[str] | None = None) -> int:
    """Main CLI entry point."""
    parser = build_parser()
    args = parser.parse_args(argv)

    if not args.command:
        parser.print_help()
        return 1

    # Logs go to stderr so --json output stays parseable
    setup_logging(
        debug=args.debug or settings.debug,
        json_logs=args.json_logs or settings.json_logs,
        stream=sys.stderr,
    )

    service = build_service(args)
    return asyncio.run(COMMANDS[args.command](args, service))


if __name__ == "__main__":
    sys.exit(main())
