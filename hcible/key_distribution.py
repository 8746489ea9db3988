"""Key distribution flags exchanged during LE pairing."""

from __future__ import annotations

ENC_KEY = 0b00000001
ID_KEY = 0b00000010
SIGN_KEY = 0b00000100
LINK_KEY = 0b00001000


class _Flag:
    """Descriptor exposing one bit of the owner's octet as a bool."""

    def __init__(self, mask: int) -> None:
        self.mask = mask

    def __get__(self, instance: KeyDistribution | None, owner: type) -> bool | _Flag:
        if instance is None:
            return self
        return bool(instance.octet & self.mask)

    def __set__(self, instance: KeyDistribution, state: bool) -> None:
        if state:
            instance.octet |= self.mask
        else:
            instance.octet &= ~self.mask & 0xFF


class KeyDistribution:
    """The initiator/responder key distribution field of a pairing PDU."""

    # Ignored when SMP runs over the LE transport.
    enc_key = _Flag(ENC_KEY)
    # Distribute the IRK, followed by the identity address.
    id_key = _Flag(ID_KEY)
    # Distribute the CSRK.
    sign_key = _Flag(SIGN_KEY)
    # Derive a BR/EDR link key from the LTK.
    link_key = _Flag(LINK_KEY)

    def __init__(self, octet: int = 0) -> None:
        self.octet = octet

    @property
    def octet(self) -> int:
        return self._octet

    @octet.setter
    def octet(self, value: int) -> None:
        if not 0 <= value <= 0xFF:
            raise ValueError(f"octet out of range: {value}")
        self._octet = value

    def __int__(self) -> int:
        return self._octet

    def __eq__(self, other: object) -> bool:
        if isinstance(other, KeyDistribution):
            return self._octet == other._octet
        return NotImplemented

    def __hash__(self) -> int:
        return hash(("KeyDistribution", self._octet))

    def __repr__(self) -> str:
        return f"KeyDistribution(octet=0x{self._octet:02x})"