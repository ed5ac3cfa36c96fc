"""
codec.py — turn message payloads into wire strings and back.

Two payload shapes travel after "MESSAGE from <id>: " / "BROADCAST from <id>: ":
- XOR form:    <key_hex>|<ciphertext_hex>   (direct messages, some broadcasts)
- AES form:    <hex(iv || ciphertext)>      (broadcasts only)

A broadcast payload is XOR form if and only if it contains "|"; we look at the
raw string before decoding anything.
"""

from .crypto import aes_decrypt, aes_encrypt, hex_decode, hex_encode, random_key, xor_bytes
from .errors import DecodeError, FormatError

SEPARATOR = "|"


def _unhex(field: str, text: str) -> bytes:
    """hex_decode() that remembers which field failed (key, ciphertext, ...)."""
    try:
        return hex_decode(text)
    except DecodeError as exc:
        raise DecodeError(str(exc), field=field) from exc


# -----------------------
# Outgoing
# -----------------------

def encode_broadcast(secret: bytes, plaintext: bytes) -> str:
    """AES-encrypt under the shared secret and hex the result (iv included)."""
    return hex_encode(aes_encrypt(secret, plaintext))


def encode_direct(plaintext: bytes) -> str:
    """Fresh pad as long as the message, XOR, then "key_hex|ciphertext_hex"."""
    key = random_key(len(plaintext))
    ciphertext = xor_bytes(plaintext, key)
    return hex_encode(key) + SEPARATOR + hex_encode(ciphertext)


# -----------------------
# Incoming
# -----------------------

def decode_direct(payload: str) -> bytes:
    """
    Recover plaintext from "key_hex|ciphertext_hex".

    Raises:
        FormatError: no separator, or key/ciphertext lengths differ.
        DecodeError: either half isn't valid hex.
    """
    parts = payload.split(SEPARATOR, 1)
    if len(parts) != 2:
        raise FormatError(f"missing '{SEPARATOR}' separator")
    key_hex, ciphertext_hex = parts

    key = _unhex("key", key_hex)
    ciphertext = _unhex("ciphertext", ciphertext_hex)
    if len(key) != len(ciphertext):
        raise FormatError(
            f"key and ciphertext lengths do not match ({len(key)} != {len(ciphertext)})"
        )
    return xor_bytes(ciphertext, key)


def decode_broadcast(secret: bytes, payload: str) -> bytes:
    """
    XOR form if the payload has a separator, otherwise AES under `secret`.

    Raises:
        DecodeError: bad hex.
        FormatError: truncated ciphertext, XOR length mismatch.
        CryptoError: wrong key size or a body the cipher rejects.
    """
    if SEPARATOR in payload:
        return decode_direct(payload)
    return aes_decrypt(secret, _unhex("broadcast", payload))
