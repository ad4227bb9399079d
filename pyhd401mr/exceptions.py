class SwitcherError(Exception):
    """Base class for errors raised by pyhd401mr."""


class ConfigurationError(SwitcherError, ValueError):
    """Host or port settings are missing or malformed."""


class TransportConnectError(SwitcherError, ConnectionError):
    """The TCP connection to the switcher could not be opened."""


class TransportWriteError(SwitcherError):
    """A command could not be written to the open transport."""


class UnknownCommandError(SwitcherError, ValueError):
    """The action id does not name a known command."""


class InvalidChoiceError(SwitcherError, ValueError):
    """The argument is not one of the choices the command offers."""
