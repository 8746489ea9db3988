import pytest

from hcible.auth_req import AuthReq, IOCap


def test_default_is_empty():
    req = AuthReq()
    assert req.octet == 0
    assert not any([req.bonding, req.mitm, req.sc, req.keypress, req.ct2])


def test_local_authreq_bits():
    req = AuthReq(0b00101101)
    assert req.bonding
    assert req.mitm
    assert req.sc
    assert not req.keypress
    assert req.ct2


def test_set_and_clear_each_flag_round_trip():
    for name in ("bonding", "mitm", "sc", "keypress", "ct2"):
        req = AuthReq()
        setattr(req, name, True)
        assert getattr(req, name) is True
        assert req.octet != 0
        setattr(req, name, False)
        assert getattr(req, name) is False
        assert req.octet == 0


def test_setting_flag_leaves_others():
    req = AuthReq(0b00101101)
    req.keypress = True
    assert req.octet == 0b00111101
    req.bonding = False
    assert req.octet == 0b00111100


def test_octet_setter_and_int():
    req = AuthReq()
    req.octet = 0x08
    assert int(req) == 0x08
    assert req.sc
    assert req == AuthReq(0x08)


def test_out_of_range_octet():
    with pytest.raises(ValueError):
        AuthReq(256)
    with pytest.raises(ValueError):
        AuthReq().octet = -1


def test_iocap_values():
    assert IOCap.DISPLAY_ONLY == 0
    assert IOCap.KEYBOARD_DISPLAY == 4
    assert IOCap(3) is IOCap.NO_INPUT_NO_OUTPUT