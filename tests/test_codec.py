"""Wire codec — XOR form "key|ciphertext" and AES form "hex(iv || ct)"."""

import pytest

from relaychat import codec, crypto, messages as m
from relaychat.errors import CryptoError, DecodeError, FormatError


def test_decode_direct_known_payload():
    assert codec.decode_direct("0102|0304") == b"\x02\x06"


def test_decode_direct_splits_on_first_separator():
    # the ciphertext half then contains '|' and fails as hex
    with pytest.raises(DecodeError) as info:
        codec.decode_direct("01|02|03")
    assert info.value.field == "ciphertext"


def test_decode_direct_missing_separator():
    with pytest.raises(FormatError):
        codec.decode_direct("0102")


def test_decode_direct_length_mismatch():
    with pytest.raises(FormatError, match="lengths do not match"):
        codec.decode_direct("01|0203")


def test_decode_direct_bad_key_hex():
    with pytest.raises(DecodeError) as info:
        codec.decode_direct("zz|01")
    assert info.value.field == "key"


def test_decode_direct_empty_halves():
    assert codec.decode_direct("|") == b""


def test_encode_direct_shape():
    wire = codec.encode_direct(b"hi there")
    key_hex, ct_hex = wire.split("|")
    assert len(key_hex) == len(ct_hex) == 16
    assert codec.decode_direct(wire) == b"hi there"


def test_encode_direct_uses_fresh_pad():
    assert codec.encode_direct(b"same") != codec.encode_direct(b"same")


def test_encode_broadcast_is_plain_hex(secret):
    wire = codec.encode_broadcast(secret, b"hello all")
    assert "|" not in wire
    raw = crypto.hex_decode(wire)
    assert len(raw) == 32
    assert crypto.aes_decrypt(secret, raw) == b"hello all"


def test_decode_broadcast_aes_form(secret):
    wire = codec.encode_broadcast(secret, "grüße".encode("utf-8"))
    assert codec.decode_broadcast(secret, wire) == "grüße".encode("utf-8")


def test_decode_broadcast_xor_form_ignores_secret():
    assert codec.decode_broadcast(b"not even a key", "0102|0304") == b"\x02\x06"


def test_decode_broadcast_bad_hex(secret):
    with pytest.raises(DecodeError) as info:
        codec.decode_broadcast(secret, "nothex")
    assert info.value.field == "broadcast"


def test_decode_broadcast_truncated(secret):
    with pytest.raises(FormatError):
        codec.decode_broadcast(secret, "00" * 8)


def test_decode_broadcast_wrong_key_size():
    with pytest.raises(CryptoError):
        codec.decode_broadcast(b"\x00" * 5, "00" * 32)


def test_command_lines():
    assert m.send_all_line("abcd") == "SEND ALL abcd\n"
    assert m.send_direct_line("bob", "01|02") == "SEND bob 01|02\n"
    assert m.exit_line() == "EXIT\n"
    assert m.raw_line("LIST") == "LIST\n"
