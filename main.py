"""
Main command-line interface for pyhd401mr.

This script provides a CLI to send commands to an OREI HD-401MR multi-viewer.
"""

import argparse
import asyncio
import logging
import sys

from pyhd401mr.commands import COMMANDS, SHORTCUTS, build_command
from pyhd401mr.config import DEFAULT_PORT, SwitcherConfig
from pyhd401mr.exceptions import SwitcherError
from pyhd401mr.listener import LoggingListener
from pyhd401mr.switcher import HD401MRSwitcher


def show_commands():
    """Print the command table."""
    print(f"{'Command':10s} {'Category':10s} {'Reply':6s} Label")
    print("-" * 70)
    for mnemonic, spec in COMMANDS.items():
        reply = "yes" if spec.produces_reply else "no"
        print(f"{mnemonic:10s} {spec.category:10s} {reply:6s} {spec.label}")
        for choice in spec.choices:
            print(f"  {mnemonic + choice.argument:8s} {'':10s} {'':6s} {spec.description} {choice.label}")
    for command, (label, _, category) in SHORTCUTS.items():
        print(f"{command:10s} {category:10s} {'':6s} {label}")
    print("-" * 70)


async def send_commands(config: SwitcherConfig, commands: list[str], timeout: float):
    """Connect, queue the commands and wait for the queue to drain."""
    print(f"Connecting to HD-401MR at {config.host}:{config.port}...")

    switcher = HD401MRSwitcher.from_config(config)
    switcher.register_listener(LoggingListener(logging.getLogger("pyhd401mr.cli")))
    await switcher.async_connect()

    # connection_made runs on the loop before create_connection returns
    for command in commands:
        print(f"Queueing {command}")
        switcher.enqueue(command)

    start = asyncio.get_running_loop().time()
    while switcher.queue_size > 0:
        if asyncio.get_running_loop().time() - start > timeout:
            print(f"Timed out with {switcher.queue_size} commands still queued")
            break
        await asyncio.sleep(0.1)

    switcher.close()
    print("Done")


def main():
    parser = argparse.ArgumentParser(description="Control OREI HD-401MR Quad Multi-viewer")
    parser.add_argument("--host", default="", help="HD-401MR IP address")
    parser.add_argument("--port", type=int, default=DEFAULT_PORT, help=f"HD-401MR port (default: {DEFAULT_PORT})")
    parser.add_argument("--timeout", type=float, default=10.0, help="Seconds to wait for queued commands (default: 10)")
    parser.add_argument("-v", "--verbose", action="store_true", help="Enable debug logging")

    subparsers = parser.add_subparsers(dest="command", help="Command to execute")

    # Commands table
    subparsers.add_parser("commands", help="List the known commands")

    # Raw send
    send_parser = subparsers.add_parser("send", help="Send composed commands such as PWR1")
    send_parser.add_argument("commands", nargs="+", help="Commands to send in order")

    # Action with choice
    action_parser = subparsers.add_parser("action", help="Send a command with one of its choices")
    action_parser.add_argument("action", help="Command mnemonic, e.g. SWV")
    action_parser.add_argument("choice", nargs="?", help="Choice argument, e.g. 3")

    args = parser.parse_args()

    logging.basicConfig(level=logging.DEBUG if args.verbose else logging.INFO)

    if args.command == "commands":
        show_commands()
        return

    if args.command not in ("send", "action"):
        parser.print_help()
        return

    try:
        config = SwitcherConfig(host=args.host, port=args.port).validate()
        if args.command == "action":
            commands = [build_command(args.action.upper(), args.choice)]
        else:
            commands = [command.strip() for command in args.commands]
        asyncio.run(send_commands(config, commands, args.timeout))
    except SwitcherError as e:
        print(f"Error: {e}")
        sys.exit(1)


if __name__ == "__main__":
    main()
