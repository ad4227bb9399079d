import pytest

from pyhd401mr.listener import SwitcherStatusListener


class FakeTransport:
    """Minimal stand-in for an asyncio transport that records writes."""

    def __init__(self, peername=("192.168.1.50", 60000)):
        self.written: list[bytes] = []
        self.closed = False
        self.fail_writes = False
        self._peername = peername

    def write(self, data: bytes):
        if self.fail_writes:
            raise RuntimeError("write failed")
        self.written.append(data)

    def close(self):
        self.closed = True

    def is_closing(self) -> bool:
        return self.closed

    def get_extra_info(self, name, default=None):
        if name == "peername":
            return self._peername
        return default

    @property
    def commands(self) -> list[str]:
        return [data.decode("ascii").rstrip("\r\n") for data in self.written]


class RecordingListener(SwitcherStatusListener):

    def __init__(self):
        self.events: list[str] = []
        self.errors: list[str] = []
        self.responses: list[str] = []
        self.dropped: list[str] = []

    def connecting(self):
        self.events.append("connecting")

    def connected(self):
        self.events.append("connected")

    def disconnected(self):
        self.events.append("disconnected")

    def error(self, error_message: str):
        self.events.append("error")
        self.errors.append(error_message)

    def response_received(self, token: str):
        self.responses.append(token)

    def command_dropped(self, command: str):
        self.dropped.append(command)


class FakeClock:

    def __init__(self, now: float = 0.0):
        self.now = now

    def __call__(self) -> float:
        return self.now


@pytest.fixture
def transport():
    return FakeTransport()


@pytest.fixture
def listener():
    return RecordingListener()


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def make_transport():
    return FakeTransport
