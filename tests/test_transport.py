import time

import pytest
import serial

from hcible.transport import (
    DEFAULT_BAUDRATE,
    LOW_SPEED_BAUDRATE,
    HCITransport,
    UartTransport,
)


class RecordingPort:
    """Minimal serial-port stand-in that records what happens to it."""

    def __init__(self, incoming=b""):
        self.is_open = False
        self.baudrate = None
        self.incoming = bytearray(incoming)
        self.written = bytearray()
        self.flushes = 0
        self.calls = []

    def open(self):
        self.calls.append("open")
        self.is_open = True

    def close(self):
        self.calls.append("close")
        self.is_open = False

    @property
    def in_waiting(self):
        return len(self.incoming)

    def read(self, size):
        chunk = bytes(self.incoming[:size])
        del self.incoming[:size]
        return chunk

    def write(self, data):
        self.written += data
        return len(data)

    def flush(self):
        self.flushes += 1


def test_base_class_is_abstract():
    with pytest.raises(TypeError):
        HCITransport()


def test_baudrates_applied_to_port():
    default_port = RecordingPort()
    UartTransport(default_port).begin()
    assert default_port.baudrate == 912600

    low_port = RecordingPort()
    UartTransport(low_port, LOW_SPEED_BAUDRATE).begin()
    assert low_port.baudrate == 119600


def test_begin_opens_port_with_default_baudrate():
    port = RecordingPort()
    transport = UartTransport(port)
    transport.begin()
    assert port.is_open
    assert port.baudrate == DEFAULT_BAUDRATE
    assert port.calls == ["open"]


def test_begin_uses_given_baudrate():
    port = RecordingPort()
    UartTransport(port, LOW_SPEED_BAUDRATE).begin()
    assert port.baudrate == LOW_SPEED_BAUDRATE


def test_end_closes_port():
    port = RecordingPort()
    transport = UartTransport(port)
    transport.begin()
    transport.end()
    assert port.calls == ["open", "close"]
    assert not port.is_open


def test_write_sends_all_bytes_and_flushes():
    port = RecordingPort()
    transport = UartTransport(port)
    transport.begin()
    packet = bytes([0x01, 0x03, 0x0C, 0x00])
    assert transport.write(packet) == len(packet)
    assert bytes(port.written) == packet
    assert port.flushes == 1


def test_write_accepts_bytearray():
    port = RecordingPort()
    transport = UartTransport(port)
    transport.begin()
    assert transport.write(bytearray(b"\x01\x02")) == 2
    assert bytes(port.written) == b"\x01\x02"


def test_read_in_order_then_none():
    port = RecordingPort(b"\x04\x0e\x04")
    transport = UartTransport(port)
    transport.begin()
    assert transport.available() == 3
    assert [transport.read() for _ in range(3)] == [0x04, 0x0E, 0x04]
    assert transport.read() is None
    assert transport.available() == 0


def test_peek_does_not_consume():
    port = RecordingPort(b"\x04\x05")
    transport = UartTransport(port)
    transport.begin()
    assert transport.peek() == 0x04
    assert transport.peek() == 0x04
    assert transport.available() == 2
    assert transport.read() == 0x04
    assert transport.read() == 0x05
    assert transport.peek() is None


def test_wait_returns_true_when_data_present():
    port = RecordingPort(b"\x01")
    transport = UartTransport(port)
    transport.begin()
    start = time.monotonic()
    assert transport.wait(5.0) is True
    assert time.monotonic() - start < 1.0


def test_wait_times_out_without_data():
    transport = UartTransport(RecordingPort())
    transport.begin()
    start = time.monotonic()
    assert transport.wait(0.05) is False
    assert time.monotonic() - start >= 0.05


def test_loopback_round_trip():
    transport = UartTransport("loop://")
    transport.begin()
    try:
        packet = bytes([0x01, 0x03, 0x0C, 0x00])
        assert transport.write(packet) == len(packet)
        assert transport.wait(1.0) is True
        received = bytes(transport.read() for _ in range(len(packet)))
        assert received == packet
        assert transport.read() is None
    finally:
        transport.end()


def test_loopback_sets_baudrate():
    transport = UartTransport("loop://", LOW_SPEED_BAUDRATE)
    transport.begin()
    try:
        assert transport.uart.baudrate == LOW_SPEED_BAUDRATE
        assert transport.uart.is_open
    finally:
        transport.end()


def test_available_after_end_raises():
    transport = UartTransport("loop://")
    transport.begin()
    transport.end()
    with pytest.raises(serial.SerialException):
        transport.available()


def test_context_manager_opens_and_closes():
    port = RecordingPort()
    with UartTransport(port) as transport:
        assert port.is_open
        assert transport.write(b"\x01") == 1
    assert not port.is_open
    assert port.calls == ["open", "close"]


def test_end_discards_peeked_byte():
    port = RecordingPort(b"\x07")
    transport = UartTransport(port)
    transport.begin()
    assert transport.peek() == 0x07
    transport.end()
    transport.begin()
    assert transport.available() == 0
    assert transport.read() is None