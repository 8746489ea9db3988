"""Byte transports that carry HCI packets between host and controller."""

from __future__ import annotations

import time
from abc import ABC, abstractmethod
from types import TracebackType
from typing import Any

import serial

DEFAULT_BAUDRATE = 912600
LOW_SPEED_BAUDRATE = 119600

_POLL_INTERVAL = 0.001


class HCITransport(ABC):
    """A byte stream to an HCI controller."""

    @abstractmethod
    def begin(self) -> None:
        """Open the transport."""

    @abstractmethod
    def end(self) -> None:
        """Close the transport."""

    @abstractmethod
    def wait(self, timeout: float) -> bool:
        """Wait up to ``timeout`` seconds for data; return whether any is available."""

    @abstractmethod
    def available(self) -> int:
        """Return the number of bytes that can be read without blocking."""

    @abstractmethod
    def peek(self) -> int | None:
        """Return the next byte without consuming it, or None if there is none."""

    @abstractmethod
    def read(self) -> int | None:
        """Consume and return the next byte, or None if there is none."""

    @abstractmethod
    def write(self, data: bytes) -> int:
        """Send a complete packet; return the number of bytes written."""

    def __enter__(self) -> HCITransport:
        self.begin()
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        self.end()


class UartTransport(HCITransport):
    """HCI transport over a serial line.

    ``uart`` is either a pyserial-style port object or a port name / URL,
    which is opened lazily by :meth:`begin`.
    """

    def __init__(self, uart: Any, baudrate: int = DEFAULT_BAUDRATE) -> None:
        if isinstance(uart, str):
            uart = serial.serial_for_url(uart, do_not_open=True)
        self._uart = uart
        self.baudrate = baudrate
        self._pending: int | None = None

    @property
    def uart(self) -> Any:
        return self._uart

    def begin(self) -> None:
        self._pending = None
        self._uart.baudrate = self.baudrate
        if not self._uart.is_open:
            self._uart.open()

    def end(self) -> None:
        self._pending = None
        self._uart.close()

    def wait(self, timeout: float) -> bool:
        deadline = time.monotonic() + timeout
        while True:
            if self.available():
                return True
            if time.monotonic() >= deadline:
                return False
            time.sleep(_POLL_INTERVAL)

    def available(self) -> int:
        buffered = 0 if self._pending is None else 1
        return buffered + self._uart.in_waiting

    def peek(self) -> int | None:
        if self._pending is None:
            self._pending = self._read_one()
        return self._pending

    def read(self) -> int | None:
        if self._pending is not None:
            value, self._pending = self._pending, None
            return value
        return self._read_one()

    def write(self, data: bytes) -> int:
        written = self._uart.write(bytes(data))
        self._uart.flush()
        return len(data) if written is None else written

    def _read_one(self) -> int | None:
        if not self._uart.in_waiting:
            return None
        chunk = self._uart.read(1)
        return chunk[0] if chunk else None