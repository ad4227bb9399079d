from abc import ABC, abstractmethod
import logging
from typing import List, Optional


class ResponseListener(ABC):
    """Receives transport events from SwitcherProtocol."""

    @abstractmethod
    def connected(self):
        pass

    @abstractmethod
    def disconnected(self, exc: Optional[Exception]):
        pass

    @abstractmethod
    def response_received(self, token: str, mnemonic: str):
        pass


class SwitcherStatusListener(ABC):

    def connecting(self):
        pass

    @abstractmethod
    def connected(self):
        pass

    @abstractmethod
    def disconnected(self):
        pass

    def error(self, error_message: str):
        # By default, do nothing but can be overwritten to be notified of these messages.
        pass

    def response_received(self, token: str):
        """Called for every classified reply, e.g. PWR1 after the switcher powers on."""
        pass

    def command_dropped(self, command: str):
        """Called when a command was abandoned after its last retry."""
        pass


class MultiplexingListener(SwitcherStatusListener):

    _listeners: List[SwitcherStatusListener]

    def __init__(self):
        self._logger = logging.getLogger(__name__)
        self._listeners = []

    def connecting(self):
        for listener in list(self._listeners):
            self._call(listener.connecting)

    def connected(self):
        for listener in list(self._listeners):
            self._call(listener.connected)

    def disconnected(self):
        for listener in list(self._listeners):
            self._call(listener.disconnected)

    def error(self, error_message: str):
        for listener in list(self._listeners):
            self._call(listener.error, error_message)

    def response_received(self, token: str):
        for listener in list(self._listeners):
            self._call(listener.response_received, token)

    def command_dropped(self, command: str):
        for listener in list(self._listeners):
            self._call(listener.command_dropped, command)

    def _call(self, method, *args):
        # A failing listener must not stop the others or the connection lifecycle
        try:
            method(*args)
        except Exception as e:
            self._logger.error(f"Exception in {method.__qualname__} listener callback: {e}", exc_info=True)

    def register_listener(self, listener: SwitcherStatusListener):
        self._listeners.append(listener)

    def unregister_listener(self, listener: SwitcherStatusListener):
        if listener in self._listeners:
            self._listeners.remove(listener)
        else:
            self._logger.info("Listener isn't registered")


class LoggingListener(SwitcherStatusListener):

    def __init__(self, logger=logging):
        self.logger = logger

    def connecting(self):
        self.logger.info("Connecting")

    def connected(self):
        self.logger.info("Connected")

    def disconnected(self):
        self.logger.info("Disconnected")

    def error(self, error_message: str):
        self.logger.error(f"Error: {error_message}")

    def response_received(self, token: str):
        self.logger.info(f"Response: {token}")

    def command_dropped(self, command: str):
        self.logger.warning(f"Dropped command: {command}")
