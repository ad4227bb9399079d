"""
Example usage of pyhd401mr library.

Powers the multi-viewer on, switches to quad split mode and selects the
audio of input 2, printing every reply the switcher sends back.
"""

import asyncio
import logging

from pyhd401mr import HD401MRSwitcher
from pyhd401mr.commands import build_command
from pyhd401mr.listener import SwitcherStatusListener


class PrintingListener(SwitcherStatusListener):

    def connected(self):
        print("Connected")

    def disconnected(self):
        print("Disconnected")

    def error(self, error_message: str):
        print(f"Error: {error_message}")

    def response_received(self, token: str):
        print(f"Switcher replied {token}")


async def main():
    logging.basicConfig(level=logging.WARNING)
    switcher = HD401MRSwitcher("192.168.1.50", 60000)
    switcher.register_listener(PrintingListener())
    await switcher.async_connect()

    switcher.enqueue(build_command("PWR", "1"))
    switcher.enqueue(build_command("QMD0"))
    switcher.enqueue(build_command("SWA", "2"))

    while switcher.queue_size > 0:
        await asyncio.sleep(0.1)
    switcher.close()


if __name__ == "__main__":
    asyncio.run(main())
