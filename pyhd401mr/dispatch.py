"""Serialized command queue for the HD-401MR.

The switcher gets confused and ignores commands sent too fast, so only one
command is ever in flight. The head of the queue is transmitted as soon as it
becomes the head and stays in flight until its reply arrives. Commands the
switcher never acknowledges are completed right after they are sent.
Otherwise the periodic tick retransmits the head every ``interval`` seconds
and gives up after ``max_tries`` attempts, so a lost command stalls the queue
for at most ``max_tries * interval`` seconds.
"""

import logging
import time
from collections import deque
from dataclasses import dataclass
from typing import Callable, Optional

from pyhd401mr.commands import produces_reply

COMMAND_INTERVAL = 0.2
MAX_TRIES = 5


@dataclass
class PendingEntry:
    command: str
    tries: int = 1
    sent_at: float = 0.0


class DispatchQueue:

    def __init__(
        self,
        transmit: Callable[[str], None],
        clock: Callable[[], float] = time.monotonic,
        interval: float = COMMAND_INTERVAL,
        max_tries: int = MAX_TRIES,
        on_dropped: Optional[Callable[[str], None]] = None,
    ):
        self._logger = logging.getLogger(__name__)
        self._transmit = transmit
        self._clock = clock
        self._interval = interval
        self._max_tries = max_tries
        self._on_dropped = on_dropped
        self._commands: deque[str] = deque()
        self._in_flight: Optional[PendingEntry] = None

    def __len__(self) -> int:
        return len(self._commands)

    @property
    def in_flight(self) -> Optional[PendingEntry]:
        return self._in_flight

    @property
    def pending(self) -> tuple[str, ...]:
        return tuple(self._commands)

    def enqueue(self, command: str):
        """Add a command; an empty queue sends it at once instead of waiting for a tick."""
        self._commands.append(command)
        self._logger.debug(f"QUEUE: Added {command}, queue size = {len(self._commands)}")
        if len(self._commands) == 1:
            self._start_head()

    def on_response_token(self, token: str, mnemonic: str) -> bool:
        """Complete the head if ``token`` is its reply. Returns True when the head was completed."""
        if not self._commands:
            self._logger.debug(f"Unsolicited response {token} with empty queue")
            return False
        head = self._commands[0]
        if not produces_reply(head) or head == token:
            self._logger.debug(f"Response {token} completes {head}")
            self._complete_head()
            return True
        self._logger.debug(f"Response {token} ({mnemonic}) does not match {head}")
        return False

    def on_tick(self, now: Optional[float] = None):
        """Retry or abandon the in-flight command once its interval has passed."""
        entry = self._in_flight
        if entry is None or not self._commands:
            return
        if now is None:
            now = self._clock()
        # early retry?
        if now < entry.sent_at + self._interval:
            return
        if entry.tries < self._max_tries:
            entry.tries += 1
            entry.sent_at = now
            self._logger.info(f"Retrying {entry.command} (attempt {entry.tries}/{self._max_tries})")
            self._transmit(entry.command)
            return
        self._logger.warning(f"No response to {entry.command} after {entry.tries} tries, giving up")
        self._complete_head()
        if self._on_dropped is not None:
            self._on_dropped(entry.command)

    def clear(self):
        """Drop every queued command and forget the in-flight one."""
        if self._commands:
            self._logger.info(f"Discarding {len(self._commands)} queued commands")
        self._commands.clear()
        self._in_flight = None

    def _start_head(self):
        # Send heads until one has to wait for a reply
        while self._commands:
            command = self._commands[0]
            self._in_flight = PendingEntry(command, tries=1, sent_at=self._clock())
            self._transmit(command)
            if produces_reply(command):
                return
            self._logger.debug(f"{command} is never acknowledged, not waiting")
            self._commands.popleft()
        self._in_flight = None

    def _complete_head(self):
        self._commands.popleft()
        self._in_flight = None
        self._start_head()
