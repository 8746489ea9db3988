"""Cryptographic toolbox functions of the LE Secure Connections specification."""

from __future__ import annotations

from cryptography.hazmat.primitives.ciphers import Cipher, algorithms, modes

BLOCK_SIZE = 16
_RB = 0x87
_MASK_128 = (1 << 128) - 1

F5_SALT = bytes.fromhex("6c888391aaf5a53860370bdb5a6083be")
F5_KEY_ID = b"btle"
F5_LENGTH = bytes([0x01, 0x00])


def _require(name: str, value: bytes, length: int) -> bytes:
    value = bytes(value)
    if len(value) != length:
        raise ValueError(f"{name} must be {length} bytes, got {len(value)}")
    return value


def format_bytes(data: bytes) -> str:
    """Render bytes as comma-separated unpadded upper-case hex literals."""
    return ", ".join(f"0x{b:X}" for b in data)


def aes_128(key: bytes, data: bytes) -> bytes:
    """Encrypt one 16-byte block with AES-128."""
    key = _require("key", key, BLOCK_SIZE)
    data = _require("data", data, BLOCK_SIZE)
    encryptor = Cipher(algorithms.AES(key), modes.ECB()).encryptor()
    return encryptor.update(data) + encryptor.finalize()


def _shift_subkey(block: bytes) -> bytes:
    value = int.from_bytes(block, "big")
    shifted = (value << 1) & _MASK_128
    if value >> 127:
        shifted ^= _RB
    return shifted.to_bytes(BLOCK_SIZE, "big")


def _xor(a: bytes, b: bytes) -> bytes:
    return bytes(x ^ y for x, y in zip(a, b))


def generate_subkeys(key: bytes) -> tuple[bytes, bytes]:
    """Derive the CMAC subkeys K1 and K2 from a key."""
    l_block = aes_128(key, bytes(BLOCK_SIZE))
    k1 = _shift_subkey(l_block)
    return k1, _shift_subkey(k1)


def aes_cmac(key: bytes, message: bytes) -> bytes:
    """Compute the AES-CMAC of a message."""
    message = bytes(message)
    k1, k2 = generate_subkeys(key)
    blocks = [message[i:i + BLOCK_SIZE] for i in range(0, len(message), BLOCK_SIZE)]
    if blocks and len(blocks[-1]) == BLOCK_SIZE:
        last = _xor(blocks[-1], k1)
    else:
        tail = blocks[-1] if blocks else b""
        padded = tail + b"\x80" + bytes(BLOCK_SIZE - len(tail) - 1)
        last = _xor(padded, k2)
    x = bytes(BLOCK_SIZE)
    for block in blocks[:-1]:
        x = aes_128(key, _xor(x, block))
    return aes_128(key, _xor(x, last))


def f5(dh_key: bytes, n_master: bytes, n_slave: bytes,
       addr_master: bytes, addr_slave: bytes) -> tuple[bytes, bytes]:
    """Derive (MacKey, LTK) from the DH key, nonces and 7-byte typed addresses."""
    dh_key = _require("dh_key", dh_key, 32)
    body = (
        F5_KEY_ID
        + _require("n_master", n_master, 16)
        + _require("n_slave", n_slave, 16)
        + _require("addr_master", addr_master, 7)
        + _require("addr_slave", addr_slave, 7)
        + F5_LENGTH
    )
    t = aes_cmac(F5_SALT, dh_key)
    mac_key = aes_cmac(t, b"\x00" + body)
    ltk = aes_cmac(t, b"\x01" + body)
    return mac_key, ltk


def f6(w: bytes, n1: bytes, n2: bytes, r: bytes, io_cap: bytes,
       a1: bytes, a2: bytes) -> bytes:
    """Compute a DHKey check value."""
    message = (
        _require("n1", n1, 16)
        + _require("n2", n2, 16)
        + _require("r", r, 16)
        + _require("io_cap", io_cap, 3)
        + _require("a1", a1, 7)
        + _require("a2", a2, 7)
    )
    return aes_cmac(_require("w", w, 16), message)


def g2(u: bytes, v: bytes, x: bytes, y: bytes) -> bytes:
    """Compute the 4-byte numeric comparison value source."""
    message = _require("u", u, 32) + _require("v", v, 32) + _require("y", y, 16)
    return aes_cmac(_require("x", x, 16), message)[12:]


def ah(k: bytes, r: bytes) -> bytes:
    """Compute the 3-byte random address hash."""
    r = _require("r", r, 3)
    return aes_128(k, bytes(13) + r)[13:]