"""
crypto.py — tiny AES-CBC and XOR-pad helpers.

Why this exists:
- Keep all cipher bits in one place so the codec can call
  `aes_encrypt/aes_decrypt/xor_bytes` without worrying about IVs or padding.
- Use plain lowercase hex on the wire; decoding is strict (no whitespace, no
  odd lengths) so malformed lines fail early with a DecodeError.

Notes:
- Broadcasts use AES in CBC mode with a fresh random IV, sent as iv || blocks.
- Padding is "every pad byte equals the pad length" (1..16), i.e. PKCS#7.
- Unpadding trusts the last byte and does not check the other pad bytes; a
  corrupted final byte truncates the plaintext wrongly instead of failing.
- Direct messages use an XOR pad whose key travels next to the ciphertext, so
  anyone relaying the line can read it. It's obfuscation, not confidentiality.
"""

import binascii
import hashlib
import os

from cryptography.hazmat.primitives import padding
from cryptography.hazmat.primitives.ciphers import Cipher, algorithms, modes

from .errors import CryptoError, DecodeError, FormatError

BLOCK_SIZE = 16  # AES block size in bytes (also the IV length)
KEY_SIZES = (16, 24, 32)  # AES-128/192/256

# -----------------------------
# Hex helpers (strict)
# -----------------------------

def hex_encode(data: bytes) -> str:
    """Lowercase hex, no separators."""
    return binascii.hexlify(data).decode("ascii")


def hex_decode(data: str) -> bytes:
    """Inverse of hex_encode(). Raises DecodeError on anything that isn't hex."""
    try:
        return binascii.unhexlify(data)
    except (binascii.Error, ValueError) as exc:
        # ValueError covers non-ASCII text that unhexlify can't even look at.
        raise DecodeError(f"invalid hex: {exc}") from exc


# -------------
# Key utils
# -------------

def check_key(key: bytes) -> None:
    """Only accept the three AES key lengths."""
    if len(key) not in KEY_SIZES:
        raise CryptoError(f"invalid AES key size {len(key)}; expected one of {KEY_SIZES}")


def derive_secret(passphrase: str) -> bytes:
    """
    SHA-256 a passphrase into a 32-byte AES-256 key.

    The real client gets its secret from the registration handshake; this is
    only for setups where both ends were handed the same passphrase.
    """
    return hashlib.sha256(passphrase.encode("utf-8")).digest()


def random_key(length: int) -> bytes:
    """Fresh random pad of the given length (used as the XOR key)."""
    return os.urandom(length)


# ---------------------------
# AES-CBC
# ---------------------------

def aes_encrypt(key: bytes, plaintext: bytes) -> bytes:
    """
    Pad, pick a random IV, encrypt in CBC mode and return iv || ciphertext.

    Empty plaintext still yields one full block of padding.
    """
    check_key(key)
    padder = padding.PKCS7(BLOCK_SIZE * 8).padder()
    padded = padder.update(plaintext) + padder.finalize()

    iv = os.urandom(BLOCK_SIZE)
    encryptor = Cipher(algorithms.AES(key), modes.CBC(iv)).encryptor()
    return iv + encryptor.update(padded) + encryptor.finalize()


def aes_decrypt(key: bytes, ciphertext: bytes) -> bytes:
    """
    Reverse of aes_encrypt(). The leading block is the IV.

    Only the final byte of the output is consulted to strip padding.
    """
    if len(ciphertext) < BLOCK_SIZE:
        raise FormatError("ciphertext too short")
    check_key(key)
    iv, body = ciphertext[:BLOCK_SIZE], ciphertext[BLOCK_SIZE:]
    if not body:
        raise FormatError("ciphertext has no blocks after the IV")

    try:
        decryptor = Cipher(algorithms.AES(key), modes.CBC(iv)).decryptor()
        data = decryptor.update(body) + decryptor.finalize()
    except ValueError as exc:
        # cryptography rejects bodies that aren't a whole number of blocks.
        raise CryptoError(f"AES decryption failed: {exc}") from exc

    pad_len = data[-1]
    if pad_len > len(data):
        raise FormatError(f"padding length {pad_len} exceeds plaintext length {len(data)}")
    return data[:len(data) - pad_len]


# ---------------------------
# XOR pad
# ---------------------------

def xor_bytes(a: bytes, b: bytes) -> bytes:
    """
    XOR two equal-length buffers. Same call encrypts (message, pad) and
    decrypts (ciphertext, pad).
    """
    if len(a) != len(b):
        raise FormatError(f"length mismatch: {len(a)} != {len(b)}")
    return bytes(x ^ y for x, y in zip(a, b))
