import asyncio
import logging
from typing import Iterator, Optional

from pyhd401mr.commands import MNEMONIC_LENGTH, POWER_ALIAS
from pyhd401mr.exceptions import TransportWriteError
from pyhd401mr.listener import ResponseListener

# HD-401MR takes commands terminated with CR LF and answers with lines
# terminated by LF, e.g. PWR1\r\n -> PWR1\n
# Power replies are 'Power On' / 'Power Off', which classify through POWER_ALIAS
COMMAND_TERMINATOR = "\r\n"
LINE_DELIMITER = b"\n"

# Only these trailing characters are arguments, anything else is the last
# letter of an argument-less reply such as HMD
ARGUMENT_CHARACTERS = ("0", "1", "2", "3", "4")


class LineFramer:
    """Split a byte stream into newline terminated lines.

    Bytes after the last newline are kept until a later chunk completes the
    line. Carriage returns are left in place.
    """

    def __init__(self):
        self._buffer = b""

    @property
    def buffered(self) -> bytes:
        return self._buffer

    def feed(self, data: bytes) -> Iterator[str]:
        self._buffer += data
        return self._lines()

    def _lines(self) -> Iterator[str]:
        while True:
            index = self._buffer.find(LINE_DELIMITER)
            if index == -1:
                return
            line = self._buffer[:index]
            self._buffer = self._buffer[index + 1:]
            if line:
                yield line.decode("ascii", errors="ignore")

    def reset(self):
        self._buffer = b""


def parse_token(line: str) -> tuple[str, Optional[str]]:
    """Split a reply line into its mnemonic and argument.

    >>> parse_token("Pown")
    ('PWR', '1')
    >>> parse_token("HMD")
    ('HMD', None)
    """
    line = line.strip()
    mnemonic = line[:MNEMONIC_LENGTH]
    argument = line[-1:]
    alias = POWER_ALIAS.get(mnemonic + argument)
    if alias:
        mnemonic = alias[:MNEMONIC_LENGTH]
        argument = alias[-1:]
    if argument not in ARGUMENT_CHARACTERS:
        return mnemonic, None
    return mnemonic, argument


def classify(line: str) -> tuple[str, str]:
    """Return the response token for a reply line plus its mnemonic."""
    mnemonic, argument = parse_token(line)
    return mnemonic + (argument or ""), mnemonic


def format_command(command: str) -> bytes:
    return (command + COMMAND_TERMINATOR).encode("ascii")


class SwitcherProtocol(asyncio.Protocol):
    """asyncio protocol for the switcher's TCP control port.

    Frames incoming data into lines, classifies each reply and forwards it,
    along with connection events, to a ResponseListener.
    """

    _transport: Optional[asyncio.Transport]

    def __init__(self, callback: ResponseListener):
        self._logger = logging.getLogger(__name__)
        self._callback = callback
        self._transport = None
        self._framer = LineFramer()
        self.peer_name = None

    @property
    def connected(self) -> bool:
        return self._transport is not None and not self._transport.is_closing()

    def connection_made(self, transport):
        """Method from asyncio.Protocol"""
        self._transport = transport
        self._framer.reset()
        self.peer_name = transport.get_extra_info("peername")
        self._logger.info(f"Connection Made: {self.peer_name}")
        self._callback.connected()

    def connection_lost(self, exc):
        """Method from asyncio.Protocol"""
        self._logger.info(f"Connection Lost: {self.peer_name} ({exc})")
        self._transport = None
        self._framer.reset()
        self._callback.disconnected(exc)

    def data_received(self, data):
        """Method from asyncio.Protocol"""
        self._logger.debug(f"data_received client: {data}")
        for line in self._framer.feed(data):
            if not line.strip():
                continue
            token, mnemonic = classify(line)
            self._logger.debug(f"RECV: {line!r} -> {token}")
            self._callback.response_received(token, mnemonic)

    def write(self, command: str):
        """Write one command to the transport without waiting for it to drain."""
        if not self.connected:
            raise TransportWriteError("Transport is not connected")
        try:
            payload = format_command(command)
        except UnicodeEncodeError as e:
            raise TransportWriteError(f"Cannot send {command!r}: not ASCII") from e
        try:
            self._transport.write(payload)
        except (OSError, RuntimeError) as e:
            raise TransportWriteError(f"Error writing {command}: {e}") from e
        self._logger.debug(f"SEND: {payload}")

    def close(self):
        if self._transport is not None:
            self._transport.close()

    def reset(self):
        self._framer.reset()
