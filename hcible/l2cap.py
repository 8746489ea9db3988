"""L2CAP signalling and Security Manager handling for LE connections.

Byte arrays that carry keys, nonces and check values are kept
most-significant byte first; they are reversed on the way to and from the
wire, which is little-endian.  Peer addresses are held as seven bytes:
the address type followed by the address, most significant byte first.
"""

from __future__ import annotations

import os
import struct
from dataclasses import dataclass, field
from enum import IntFlag
from typing import Callable, Optional

from hcible.auth_req import AuthReq, IOCap
from hcible.crypto import f5, f6, g2
from hcible.key_distribution import KeyDistribution

SIGNALING_CID = 0x0005
SECURITY_CID = 0x0006

CONNECTION_PARAMETER_UPDATE_REQUEST = 0x12
CONNECTION_PARAMETER_UPDATE_RESPONSE = 0x13

CONNECTION_PAIRING_REQUEST = 0x01
CONNECTION_PAIRING_RESPONSE = 0x02
CONNECTION_PAIRING_CONFIRM = 0x03
CONNECTION_PAIRING_RANDOM = 0x04
CONNECTION_PAIRING_FAILED = 0x05
CONNECTION_ENCRYPTION_INFORMATION = 0x06
CONNECTION_MASTER_IDENTIFICATION = 0x07
CONNECTION_IDENTITY_INFORMATION = 0x08
CONNECTION_IDENTITY_ADDRESS = 0x09
CONNECTION_SIGNING_INFORMATION = 0x0A
CONNECTION_SECURITY_REQUEST = 0x0B
CONNECTION_PAIRING_PUBLIC_KEY = 0x0C
CONNECTION_PAIRING_DHKEY_CHECK = 0x0D
CONNECTION_PAIRING_KEYPRESS = 0x0E

PAIRING_NOT_SUPPORTED = 0x05
DHKEY_CHECK_FAILED = 0x0B
NUMERIC_COMPARISON_FAILED = 0x0C

LOCAL_AUTHREQ = 0b00101101
MAX_ENCRYPTION_KEY_SIZE = 0x10

OGF_LE_CTL = 0x08
LE_READ_LOCAL_P256 = 0x25
LE_READ_LOCAL_P256_OPCODE = (OGF_LE_CTL << 10) | LE_READ_LOCAL_P256

_HEADER = struct.Struct("<BBH")
_CONN_PARAMS = struct.Struct("<HHHH")


class PeerEncryption(IntFlag):
    """Progress of pairing and encryption with one peer."""

    NO_ENCRYPTION = 0
    PAIRING_REQUEST = 1 << 0
    REQUESTED_ENCRYPTION = 1 << 1
    SENT_PUBKEY = 1 << 2
    DH_KEY_CALCULATED = 1 << 3
    RECEIVED_DH_CHECK = 1 << 4
    SENT_DH_CHECK = 1 << 5
    ENCRYPTED = 1 << 7


@dataclass
class _Peer:
    address: bytes = bytes(7)
    encryption: PeerEncryption = PeerEncryption.NO_ENCRYPTION
    io_cap: bytes = bytes(3)


def _need(body: bytes, length: int, what: str) -> bytes:
    if len(body) < length:
        raise ValueError(f"{what} needs {length} bytes, got {len(body)}")
    return body[:length]


@dataclass
class L2CAPSignaling:
    """Handles the LE signalling channel and the Security Manager channel.

    ``send_acl(handle, cid, payload)`` sends an L2CAP payload;
    ``send_command(opcode, params)`` sends an HCI command;
    ``le_conn_update(handle, min_interval, max_interval, latency, timeout)``
    asks the controller to update connection parameters.
    """

    send_acl: Callable[[int, int, bytes], object]
    send_command: Optional[Callable[[int, bytes], object]] = None
    le_conn_update: Optional[Callable[[int, int, int, int, int], object]] = None
    local_io_cap: int = IOCap.DISPLAY_YES_NO
    local_auth_req: AuthReq = field(default_factory=lambda: AuthReq(LOCAL_AUTHREQ))
    local_address: bytes = bytes(6)
    display_code: Optional[Callable[[int], object]] = None
    binary_confirm_pairing: Optional[Callable[[], bool]] = None
    store_ltk: Optional[Callable[[bytes, bytes], object]] = None
    save_new_address: Optional[Callable[[int, bytes, bytes, bytes], object]] = None

    na: bytes = bytes(16)
    nb: bytes = field(default_factory=lambda: os.urandom(16))
    remote_public_key: bytes = bytes(64)
    local_public_key: bytes = bytes(64)
    dh_key: bytes = bytes(32)
    ltk: bytes = bytes(16)
    remote_dh_key_check: bytes = bytes(16)
    peer_irk: bytes = bytes(16)
    local_irk: bytes = bytes(16)
    local_key_distribution: KeyDistribution = field(default_factory=KeyDistribution)
    remote_key_distribution: KeyDistribution = field(default_factory=KeyDistribution)
    peers: dict = field(default_factory=dict)

    def __post_init__(self) -> None:
        self._min_interval = 0
        self._max_interval = 0
        self._supervision_timeout = 0
        self._pairing_enabled = 1

    # -- helpers -----------------------------------------------------------

    def _send(self, handle: int, cid: int, payload: bytes) -> None:
        self.send_acl(handle, cid, bytes(payload))

    def _peer(self, handle: int) -> _Peer:
        return self.peers.setdefault(handle, _Peer())

    def _add_encryption(self, handle: int, flag: PeerEncryption) -> PeerEncryption:
        peer = self._peer(handle)
        peer.encryption = PeerEncryption(peer.encryption | flag)
        return peer.encryption

    def _reject_security(self, handle: int, reason: int) -> None:
        self._send(handle, SECURITY_CID, bytes([CONNECTION_PAIRING_FAILED, reason]))
        self._peer(handle).encryption = PeerEncryption.NO_ENCRYPTION

    # -- connection management ---------------------------------------------

    def add_connection(self, handle, role, peer_bdaddr_type, peer_bdaddr, interval,
                       latency, supervision_timeout, master_clock_accuracy) -> None:
        """Register a connection and request preferred parameters as peripheral."""
        address = bytes(peer_bdaddr)
        self.peers[handle] = _Peer(address=bytes([peer_bdaddr_type]) + address[::-1])

        if role != 1:
            return

        update = False
        min_interval = max_interval = interval
        timeout = supervision_timeout

        if self._min_interval and self._max_interval:
            if interval < self._min_interval or interval > self._max_interval:
                min_interval, max_interval = self._min_interval, self._max_interval
                update = True

        if self._supervision_timeout and supervision_timeout != self._supervision_timeout:
            timeout = self._supervision_timeout
            update = True

        if update:
            request = _HEADER.pack(CONNECTION_PARAMETER_UPDATE_REQUEST, 0x01, 8)
            request += _CONN_PARAMS.pack(min_interval, max_interval, 0x0000, timeout)
            self._send(handle, SIGNALING_CID, request)

    def remove_connection(self, handle, reason) -> None:
        """Forget the state kept for a connection."""
        self.peers.pop(handle, None)

    def set_connection_interval(self, min_interval, max_interval) -> None:
        self._min_interval = min_interval
        self._max_interval = max_interval

    def set_supervision_timeout(self, supervision_timeout) -> None:
        self._supervision_timeout = supervision_timeout

    def set_pairing_enabled(self, enabled) -> None:
        """0 disables pairing, 1 enables it, 2 allows a single pairing."""
        self._pairing_enabled = int(enabled)

    def is_pairing_enabled(self) -> bool:
        return self._pairing_enabled > 0

    # -- signalling channel -----------------------------------------------

    def handle_data(self, connection_handle, data) -> None:
        """Process one PDU received on the LE signalling channel."""
        data = bytes(data)
        if len(data) < _HEADER.size:
            return
        code, identifier, length = _HEADER.unpack_from(data)
        if len(data) != _HEADER.size + length:
            return
        payload = data[_HEADER.size:]

        if code == CONNECTION_PARAMETER_UPDATE_REQUEST:
            self._connection_parameter_update_request(connection_handle, identifier, payload)

    def _connection_parameter_update_request(self, handle: int, identifier: int,
                                             payload: bytes) -> None:
        if len(payload) < _CONN_PARAMS.size:
            return
        min_interval, max_interval, latency, timeout = _CONN_PARAMS.unpack_from(payload)

        value = 0x0000
        if self._min_interval and self._max_interval:
            if min_interval < self._min_interval or max_interval > self._max_interval:
                value = 0x0001
        if self._supervision_timeout and timeout != self._supervision_timeout:
            value = 0x0001

        response = _HEADER.pack(CONNECTION_PARAMETER_UPDATE_RESPONSE, identifier, 2)
        response += struct.pack("<H", value)
        self._send(handle, SIGNALING_CID, response)

        if value == 0x0000 and self.le_conn_update is not None:
            self.le_conn_update(handle, min_interval, max_interval, latency, timeout)

    # -- security manager channel -----------------------------------------

    def handle_security_data(self, connection_handle, data) -> None:
        """Process one Security Manager PDU."""
        data = bytes(data)
        if not data:
            raise ValueError("empty security manager PDU")
        code, body = data[0], data[1:]
        handler = {
            CONNECTION_PAIRING_REQUEST: self._pairing_request,
            CONNECTION_PAIRING_RANDOM: self._pairing_random,
            CONNECTION_PAIRING_FAILED: self._pairing_failed,
            CONNECTION_IDENTITY_INFORMATION: self._identity_information,
            CONNECTION_IDENTITY_ADDRESS: self._identity_address,
            CONNECTION_PAIRING_PUBLIC_KEY: self._pairing_public_key,
            CONNECTION_PAIRING_DHKEY_CHECK: self._dhkey_check,
        }.get(code)
        if handler is not None:
            handler(connection_handle, body)

    def _pairing_request(self, handle: int, body: bytes) -> None:
        if not self.is_pairing_enabled():
            self._reject_security(handle, PAIRING_NOT_SUPPORTED)
            return
        if self._pairing_enabled >= 2:
            self._pairing_enabled = 0

        io_capability, oob_flag, auth_req = _need(body, 6, "pairing request")[:3]

        key_dist = KeyDistribution()
        key_dist.id_key = True
        self.remote_key_distribution = KeyDistribution(key_dist.octet)
        self.local_key_distribution = KeyDistribution(key_dist.octet)

        self._peer(handle).io_cap = bytes([auth_req, oob_flag, io_capability])
        self._add_encryption(handle, PeerEncryption.PAIRING_REQUEST)

        response = bytes([
            CONNECTION_PAIRING_RESPONSE,
            int(self.local_io_cap),
            0,
            self.local_auth_req.octet,
            MAX_ENCRYPTION_KEY_SIZE,
            key_dist.octet,
            key_dist.octet,
        ])
        self._send(handle, SECURITY_CID, response)

    def _pairing_random(self, handle: int, body: bytes) -> None:
        self.na = _need(body, 16, "pairing random")[::-1]
        self._send(handle, SECURITY_CID, bytes([CONNECTION_PAIRING_RANDOM]) + self.nb[::-1])

        u = self.remote_public_key[:32][::-1]
        v = self.local_public_key[:32][::-1]
        result = int.from_bytes(g2(u, v, self.na, self.nb), "big")

        if self.display_code is not None:
            self.display_code(result % 1_000_000)
        if self.binary_confirm_pairing is not None and not self.binary_confirm_pairing():
            self._reject_security(handle, NUMERIC_COMPARISON_FAILED)

    def _pairing_failed(self, handle: int, body: bytes) -> None:
        self._peer(handle).encryption = PeerEncryption.NO_ENCRYPTION

    def _identity_information(self, handle: int, body: bytes) -> None:
        self.peer_irk = _need(body, 16, "identity information")[::-1]

    def _identity_address(self, handle: int, body: bytes) -> None:
        body = _need(body, 7, "identity address")
        address_type, peer_address = body[0], body[1:7][::-1]
        if self.save_new_address is not None:
            self.save_new_address(address_type, peer_address, self.peer_irk, self.local_irk)
        if self.store_ltk is not None:
            self.store_ltk(peer_address, self.ltk)

    def _pairing_public_key(self, handle: int, body: bytes) -> None:
        self.remote_public_key = _need(body, 64, "pairing public key")
        self._add_encryption(handle, PeerEncryption.REQUESTED_ENCRYPTION)
        if self.send_command is not None:
            self.send_command(LE_READ_LOCAL_P256_OPCODE, b"")

    def _dhkey_check(self, handle: int, body: bytes) -> None:
        remote_check = _need(body, 16, "DHKey check")[::-1]
        state = self._add_encryption(handle, PeerEncryption.RECEIVED_DH_CHECK)
        if not state & PeerEncryption.DH_KEY_CALCULATED:
            self.remote_dh_key_check = remote_check
        else:
            self.sm_calculate_ltk_and_confirm(handle, remote_check)

    def sm_calculate_ltk_and_confirm(self, handle, expected_ea) -> None:
        """Derive the LTK, verify the peer's check value and answer with ours."""
        peer = self._peer(handle)
        remote_address = peer.address
        local_address = bytes([0]) + bytes(self.local_address)

        mac_key, self.ltk = f5(self.dh_key, self.na, self.nb, remote_address, local_address)

        r = bytes(16)
        local_io_cap = bytes([self.local_auth_req.octet, 0x00, int(self.local_io_cap)])
        ea = f6(mac_key, self.na, self.nb, r, peer.io_cap, remote_address, local_address)
        eb = f6(mac_key, self.nb, self.na, r, local_io_cap, local_address, remote_address)

        if ea == bytes(expected_ea):
            self._send(handle, SECURITY_CID, bytes([CONNECTION_PAIRING_DHKEY_CHECK]) + eb[::-1])
            self._add_encryption(handle, PeerEncryption.SENT_DH_CHECK)
        else:
            self._reject_security(handle, DHKEY_CHECK_FAILED)