"""Authentication requirement flags and IO capabilities used in LE pairing."""

from __future__ import annotations

from enum import IntEnum

BONDING_BIT = 0b00000001
MITM_BIT = 0b00000100
SC_BIT = 0b00001000
KEYPRESS_BIT = 0b00010000
CT2_BIT = 0b00100000


def _check_octet(octet: int) -> int:
    if not 0 <= octet <= 0xFF:
        raise ValueError(f"octet out of range: {octet}")
    return octet


class _Flag:
    """Descriptor exposing one bit of the owner's octet as a bool."""

    def __init__(self, mask: int) -> None:
        self.mask = mask

    def __set_name__(self, owner: type, name: str) -> None:
        self.name = name

    def __get__(self, instance: AuthReq | None, owner: type) -> bool | _Flag:
        if instance is None:
            return self
        return bool(instance.octet & self.mask)

    def __set__(self, instance: AuthReq, state: bool) -> None:
        if state:
            instance.octet |= self.mask
        else:
            instance.octet &= ~self.mask & 0xFF


class AuthReq:
    """The AuthReq field of a pairing request or response."""

    bonding = _Flag(BONDING_BIT)
    mitm = _Flag(MITM_BIT)
    sc = _Flag(SC_BIT)
    keypress = _Flag(KEYPRESS_BIT)
    ct2 = _Flag(CT2_BIT)

    def __init__(self, octet: int = 0) -> None:
        self.octet = octet

    @property
    def octet(self) -> int:
        return self._octet

    @octet.setter
    def octet(self, value: int) -> None:
        self._octet = _check_octet(value)

    def __int__(self) -> int:
        return self._octet

    def __eq__(self, other: object) -> bool:
        if isinstance(other, AuthReq):
            return self._octet == other._octet
        return NotImplemented

    def __hash__(self) -> int:
        return hash(("AuthReq", self._octet))

    def __repr__(self) -> str:
        return f"AuthReq(octet=0x{self._octet:02x})"


class IOCap(IntEnum):
    """Input/output capabilities of a device."""

    DISPLAY_ONLY = 0
    DISPLAY_YES_NO = 1
    KEYBOARD_ONLY = 2
    NO_INPUT_NO_OUTPUT = 3
    KEYBOARD_DISPLAY = 4