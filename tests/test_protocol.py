"""Tests for reply classification and the asyncio protocol."""

import pytest

from pyhd401mr.exceptions import TransportWriteError
from pyhd401mr.listener import ResponseListener
from pyhd401mr.protocol import SwitcherProtocol, classify, format_command, parse_token


class RecordingResponseListener(ResponseListener):

    def __init__(self):
        self.connected_count = 0
        self.disconnects = []
        self.responses = []

    def connected(self):
        self.connected_count += 1

    def disconnected(self, exc):
        self.disconnects.append(exc)

    def response_received(self, token, mnemonic):
        self.responses.append((token, mnemonic))


@pytest.mark.parametrize(
    "line, expected",
    [
        ("PWR1", ("PWR", "1")),
        ("SWV2", ("SWV", "2")),
        ("OSD0", ("OSD", "0")),
        ("HMD", ("HMD", None)),
        ("RES9", ("RES", None)),
        ("PWR1\r", ("PWR", "1")),
        ("  SMD4 \r", ("SMD", "4")),
        ("DMD12", ("DMD", "2")),
        ("", ("", None)),
    ],
)
def test_parse_token(line, expected):
    assert parse_token(line) == expected


def test_power_replies_are_aliased():
    assert parse_token("Pown") == ("PWR", "1")
    assert parse_token("Powf") == ("PWR", "0")
    assert parse_token("Power On") == ("PWR", "1")
    assert parse_token("Power Off\r") == ("PWR", "0")


def test_classify_returns_token_and_mnemonic():
    assert classify("Pown") == ("PWR1", "PWR")
    assert classify("SWV2") == ("SWV2", "SWV")
    assert classify("HMD") == ("HMD", "HMD")


def test_classify_drops_non_argument_suffix():
    """A trailing character outside 0-4 is not an argument."""
    assert classify("OSD5") == ("OSD", "OSD")
    assert classify("VBXx") == ("VBX", "VBX")


def test_format_command():
    assert format_command("PWR1") == b"PWR1\r\n"


def test_connection_made_notifies_listener(transport):
    callback = RecordingResponseListener()
    protocol = SwitcherProtocol(callback)
    protocol.connection_made(transport)
    assert callback.connected_count == 1
    assert protocol.connected
    assert protocol.peer_name == ("192.168.1.50", 60000)


def test_data_received_classifies_lines(transport):
    callback = RecordingResponseListener()
    protocol = SwitcherProtocol(callback)
    protocol.connection_made(transport)

    protocol.data_received(b"Power On\r\nSW")
    assert callback.responses == [("PWR1", "PWR")]

    protocol.data_received(b"V2\n\r\nHMD\n")
    assert callback.responses == [("PWR1", "PWR"), ("SWV2", "SWV"), ("HMD", "HMD")]


def test_write_appends_terminator(transport):
    protocol = SwitcherProtocol(RecordingResponseListener())
    protocol.connection_made(transport)
    protocol.write("PWR1")
    assert transport.written == [b"PWR1\r\n"]


def test_write_without_transport_raises():
    protocol = SwitcherProtocol(RecordingResponseListener())
    with pytest.raises(TransportWriteError):
        protocol.write("PWR1")


def test_write_to_closing_transport_raises(transport):
    protocol = SwitcherProtocol(RecordingResponseListener())
    protocol.connection_made(transport)
    protocol.close()
    assert transport.closed
    with pytest.raises(TransportWriteError):
        protocol.write("PWR1")


def test_transport_write_failure_is_wrapped(transport):
    protocol = SwitcherProtocol(RecordingResponseListener())
    protocol.connection_made(transport)
    transport.fail_writes = True
    with pytest.raises(TransportWriteError) as excinfo:
        protocol.write("PWR1")
    assert isinstance(excinfo.value.__cause__, RuntimeError)


def test_connection_lost_drops_partial_line(transport, make_transport):
    callback = RecordingResponseListener()
    protocol = SwitcherProtocol(callback)
    protocol.connection_made(transport)
    protocol.data_received(b"PWR")

    error = ConnectionResetError(104, "Connection reset by peer")
    protocol.connection_lost(error)
    assert callback.disconnects == [error]
    assert not protocol.connected

    protocol.connection_made(make_transport())
    protocol.data_received(b"OSD1\n")
    assert callback.responses == [("OSD1", "OSD")]
