"""Bluetooth Low Energy host-side building blocks: a serial HCI transport, L2CAP signaling and pairing crypto."""

__version__ = "0.1.0"

__all__ = ["auth_req", "key_distribution", "crypto", "transport", "l2cap"]