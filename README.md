# hcible

Host-side pieces of a Bluetooth Low Energy stack, in plain Python.

- `hcible.auth_req`: `AuthReq`, the Security Manager authentication-requirements
  octet. Its `bonding`, `mitm`, `sc`, `keypress` and `ct2` attributes read and
  set single bits of `octet`, which must stay within 0–255 (`ValueError`
  otherwise). `IOCap` enumerates the input/output capabilities
  (`DISPLAY_ONLY` … `KEYBOARD_DISPLAY`).
- `hcible.key_distribution`: `KeyDistribution`, the key-distribution octet,
  with `enc_key`, `id_key`, `sign_key` and `link_key` flags.
- `hcible.crypto`: the LE Secure Connections toolbox: `aes_128`,
  `generate_subkeys`, `aes_cmac`, `f5` (returns `(mac_key, ltk)`), `f6`, `g2`
  (4 bytes) and `ah` (3 bytes). Arguments of the wrong length raise
  `ValueError`. `format_bytes` renders bytes as `0xA, 0x1F, ...`.
- `hcible.transport`: `HCITransport`, the abstract byte-stream interface
  (`begin`, `end`, `wait`, `available`, `peek`, `read`, `write`, and use as a
  context manager), and `UartTransport`, which implements it over a pyserial
  port object or a port name/URL.
- `hcible.l2cap`: `L2CAPSignaling`, which answers connection parameter update
  requests on the signaling channel and handles pairing PDUs on the security
  channel, and `PeerEncryption`, the flags that track each peer's pairing
  progress.

## Installation

```
pip install .
```

To run the tests:

```
pip install .[test]
pytest
```

## Examples

AES-CMAC and the pairing functions work on `bytes`:

```python
from hcible.crypto import aes_cmac, format_bytes

mac = aes_cmac(bytes(16), b"hello")
print(format_bytes(mac))
```

Authentication requirements:

```python
from hcible.auth_req import AuthReq

req = AuthReq()
req.bonding = True
req.mitm = True
req.sc = True
print(hex(req.octet))  # 0xd
```

A controller on a serial line. `wait` takes seconds and returns whether data
arrived; `read` and `peek` return `None` when nothing is waiting:

```python
from hcible.transport import UartTransport

with UartTransport("/dev/ttyUSB0", 115200) as transport:
    transport.write(bytes([0x01, 0x03, 0x0C, 0x00]))  # HCI Reset
    if transport.wait(1.0):
        while transport.available():
            print(transport.read())
```

`UartTransport` defaults to 912600 baud when no rate is given.

Signaling: `L2CAPSignaling` sends through callbacks you supply.

```python
from hcible.l2cap import L2CAPSignaling

sent = []
signaling = L2CAPSignaling(send_acl=lambda handle, cid, payload: sent.append((handle, cid, payload)))
signaling.set_connection_interval(6, 12)

# Connection parameter update request: min 6, max 12, latency 0, timeout 200
signaling.handle_data(0x40, bytes([0x12, 0x01, 0x08, 0x00, 0x06, 0x00, 0x0C, 0x00, 0x00, 0x00, 0xC8, 0x00]))
print(sent)  # [(64, 5, b'\x13\x01\x02\x00\x00\x00')]  -> accepted
```

Other callbacks are optional: `send_command(opcode, params)`,
`le_conn_update(handle, min_interval, max_interval, latency, timeout)`,
`display_code(code)`, `binary_confirm_pairing()`, `store_ltk(address, ltk)` and
`save_new_address(address_type, address, peer_irk, local_irk)`.
`set_pairing_enabled(0 | 1 | 2)` turns pairing off, on, or on for one pairing
only; when off, a pairing request is answered with Pairing Failed.

## What this package does not do

It is not a complete BLE stack. There is no HCI command/event layer, no ATT,
GATT or GAP, and no command-line program. `L2CAPSignaling` does not generate
key pairs or compute the Diffie-Hellman key: the caller fills in
`local_public_key` and `dh_key` and marks the peer's state with
`PeerEncryption.DH_KEY_CALCULATED` (in `signaling.peers[handle]`) before
`sm_calculate_ltk_and_confirm` can succeed. The only transport provided is the
serial one.