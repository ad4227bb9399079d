"""HD-401MR switcher session.

This module binds the TCP connection lifecycle to the command queue:
- Opening the transport and tracking the connection state
- Creating a fresh DispatchQueue for every connection
- Driving queue retries from a periodic tick task
- Discarding queued commands and stopping the tick when the connection drops
- Coalescing repeated transport errors before they reach listeners

Reconnection is left to the caller: a failed or lost connection stays
disconnected until async_connect() or async_update_config() is called again.
"""

import asyncio
import logging
from enum import Enum
from typing import Any, Optional

from pyhd401mr.config import DEFAULT_PORT, SwitcherConfig
from pyhd401mr.dispatch import COMMAND_INTERVAL, MAX_TRIES, DispatchQueue, PendingEntry
from pyhd401mr.exceptions import TransportConnectError, TransportWriteError
from pyhd401mr.listener import MultiplexingListener, ResponseListener, SwitcherStatusListener
from pyhd401mr.protocol import SwitcherProtocol


class ConnectionState(Enum):
    DISCONNECTED = "disconnected"
    CONNECTING = "connecting"
    CONNECTED = "connected"


def _error_code(exc: BaseException) -> Any:
    """Key used to coalesce repeated transport errors."""
    cause = exc.__cause__
    for candidate in (exc, cause):
        errno = getattr(candidate, "errno", None)
        if errno is not None:
            return errno
    # Messages may name the command, the underlying failure does not
    if cause is not None:
        return f"{type(exc).__name__}: {type(cause).__name__}: {cause}"
    return f"{type(exc).__name__}: {exc}"


class SwitcherListener(ResponseListener):
    """Forwards protocol events for one connection attempt to the switcher.

    Events from a protocol that has since been replaced are ignored.
    """

    def __init__(self, switcher: "HD401MRSwitcher", generation: int):
        self._switcher = switcher
        self._generation = generation

    def _current(self) -> bool:
        return self._generation == self._switcher._generation

    def connected(self):
        if self._current():
            self._switcher._on_connected()

    def disconnected(self, exc: Optional[Exception]):
        if self._current():
            self._switcher._on_disconnected(exc)

    def response_received(self, token: str, mnemonic: str):
        if self._current():
            self._switcher._on_response(token, mnemonic)


class HD401MRSwitcher:

    def __init__(self, hostname, port=DEFAULT_PORT, command_interval=COMMAND_INTERVAL,
                 max_tries=MAX_TRIES):
        """Initialize switcher.

        Args:
            hostname: HD-401MR IP address
            port: TCP control port (usually 60000)
            command_interval: Seconds to wait for a reply before retrying a command
            max_tries: Attempts per command before it is dropped
        """
        self._config = SwitcherConfig(host=hostname or "", port=port)
        self._command_interval: float = command_interval
        self._max_tries: int = max_tries

        self._logger = logging.getLogger(__name__)

        # Connection state
        self._state = ConnectionState.DISCONNECTED
        self._ready = False
        self._closed = False
        # Bumped for every connection attempt so late events from an old transport are ignored
        self._generation: int = 0
        # Last reported transport error, repeats of the same code are not reported again
        self._last_error_code: Any = None

        # Per-connection state, rebuilt on every connect
        self._queue: Optional[DispatchQueue] = None
        self._tick_task: Optional[asyncio.Task[Any]] = None

        self._multiplex_callback = MultiplexingListener()
        self._protocol = self._create_protocol()

    @classmethod
    def from_config(cls, config: SwitcherConfig, **kwargs) -> "HD401MRSwitcher":
        return cls(config.host, config.port, **kwargs)

    # ========== Public API ==========

    @property
    def config(self) -> SwitcherConfig:
        return self._config

    @property
    def state(self) -> ConnectionState:
        return self._state

    @property
    def ready(self) -> bool:
        """Whether commands are currently accepted."""
        return self._ready

    @property
    def queue_size(self) -> int:
        return len(self._queue) if self._queue is not None else 0

    @property
    def in_flight(self) -> Optional[PendingEntry]:
        return self._queue.in_flight if self._queue is not None else None

    @property
    def peer_name(self):
        return self._protocol.peer_name

    def register_listener(self, listener: SwitcherStatusListener):
        """Register external listener for status events."""
        self._multiplex_callback.register_listener(listener)

    def unregister_listener(self, listener: SwitcherStatusListener):
        """Unregister external listener."""
        self._multiplex_callback.unregister_listener(listener)

    async def async_connect(self):
        """Connect to the switcher.

        Does nothing until both host and port are configured. Raises
        TransportConnectError if the connection cannot be opened.
        """
        if not self._config.is_configured:
            self._logger.info("Host or port not configured, not connecting")
            return
        if self._state != ConnectionState.DISCONNECTED:
            self._logger.warning(f"Already {self._state.value}, ignoring connect request")
            return

        self._closed = False
        self._protocol = self._create_protocol()
        self._state = ConnectionState.CONNECTING
        self._logger.info(f"Connecting to {self._config.host}:{self._config.port}")
        self._multiplex_callback.connecting()

        loop = asyncio.get_running_loop()
        protocol = self._protocol
        try:
            await loop.create_connection(
                lambda: protocol, host=self._config.host, port=self._config.port
            )
        except OSError as e:
            if self._protocol is protocol:
                if self._state == ConnectionState.CONNECTING:
                    self._state = ConnectionState.DISCONNECTED
                self._report_error(e)
            raise TransportConnectError(
                f"Unable to connect to {self._config.host}:{self._config.port}: {e}"
            ) from e
        if self._protocol is not protocol:
            # Settings changed while this attempt was pending
            protocol.close()

    async def async_update_config(self, hostname, port=DEFAULT_PORT):
        """Apply new connection settings, dropping the current connection and queue."""
        self.close()
        self._config = SwitcherConfig(host=hostname or "", port=port)
        # New settings start a new error history
        self._last_error_code = None
        await self.async_connect()

    def close(self):
        """Close the connection. Queued commands are discarded."""
        self._closed = True
        self._protocol.close()
        self._handle_connection_broken()

    def enqueue(self, command: str) -> bool:
        """Queue a composed command such as PWR1.

        Returns False, without queueing, when the switcher is not connected.
        """
        # abort if not configured or connected
        if not self._ready or self._queue is None:
            self._logger.warning(f"Not connected, ignoring command {command}")
            return False
        if not command:
            return False
        self._logger.info(f"QUEUE: Adding command {command}")
        self._queue.enqueue(command)
        return True

    # ========== Connection lifecycle handlers ==========

    def _create_protocol(self) -> SwitcherProtocol:
        self._generation += 1
        return SwitcherProtocol(SwitcherListener(self, self._generation))

    def _on_connected(self):
        """Called by SwitcherListener when the transport is connected."""
        if self._closed:
            self._logger.info("Connection made after close, dropping it")
            self._protocol.close()
            return
        loop = asyncio.get_running_loop()
        self._logger.info(f"Switcher connected: {self._protocol.peer_name}")

        # The previous ticker must be gone before a new one starts
        self._stop_tick()
        if self._queue is not None:
            self._queue.clear()
        self._queue = DispatchQueue(
            self._transmit,
            clock=loop.time,
            interval=self._command_interval,
            max_tries=self._max_tries,
            on_dropped=self._multiplex_callback.command_dropped,
        )
        self._state = ConnectionState.CONNECTED
        self._ready = True
        self._tick_task = loop.create_task(self._tick())
        self._multiplex_callback.connected()

    def _on_disconnected(self, exc: Optional[Exception]):
        """Called by SwitcherListener when the transport is lost."""
        if exc is not None:
            self._report_error(exc)
        self._handle_connection_broken()

    def _on_response(self, token: str, mnemonic: str):
        if self._state != ConnectionState.CONNECTED:
            return
        self._multiplex_callback.response_received(token)
        if self._queue is not None:
            self._queue.on_response_token(token, mnemonic)

    def _handle_connection_broken(self):
        """Reset the session once per disconnect and tell listeners."""
        if self._state == ConnectionState.DISCONNECTED:
            return
        self._reset()
        if self._closed:
            self._logger.info(f"Disconnected from {self._config.host}")
        else:
            self._logger.error(f"Disconnected from {self._config.host}")
        self._multiplex_callback.disconnected()

    def _reset(self):
        self._ready = False
        self._state = ConnectionState.DISCONNECTED
        self._stop_tick()
        if self._queue is not None:
            self._queue.clear()
            self._queue = None
        self._protocol.reset()

    def _stop_tick(self):
        if self._tick_task is not None and not self._tick_task.done():
            self._tick_task.cancel()
        self._tick_task = None

    async def _tick(self):
        """Periodically let the queue retry or abandon the in-flight command."""
        while True:
            try:
                await asyncio.sleep(self._command_interval)
                if self._queue is not None:
                    self._queue.on_tick()
            except asyncio.CancelledError:
                self._logger.debug("Queue tick cancelled")
                raise
            except Exception as e:
                self._logger.error(f"Unexpected error in queue tick: {e}", exc_info=True)

    # ========== Transport helpers ==========

    def _transmit(self, command: str):
        try:
            self._protocol.write(command)
        except TransportWriteError as e:
            # The command stays in flight, the tick retries it
            self._report_error(e)

    def _report_error(self, exc: BaseException):
        code = _error_code(exc)
        if code == self._last_error_code:
            self._logger.debug(f"Repeated network error: {exc}")
            return
        self._last_error_code = code
        message = str(exc) or type(exc).__name__
        self._logger.error(f"Network error: {message}")
        self._multiplex_callback.error(message)
