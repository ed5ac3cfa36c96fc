"""
errors.py — the small error taxonomy shared by the cipher, codec and reader.

- DecodeError:   a hex field wasn't valid hex.
- FormatError:   wrong number of parts, length mismatch, truncated ciphertext.
- CryptoError:   unsupported key size or the block cipher refused the input.
- ConnectionLost: the socket went away (EOF, reset, overlong line).

The first three share ProtocolError so callers classifying a single line can
catch them in one place and keep the connection open.
"""


class ProtocolError(ValueError):
    """Something about one wire line couldn't be turned into a message."""


class DecodeError(ProtocolError):
    """Bad hex. `field` says which part of the payload it was (key, ciphertext...)."""

    def __init__(self, message: str, field: str = "payload") -> None:
        super().__init__(message)
        self.field = field


class FormatError(ProtocolError):
    pass


class CryptoError(ProtocolError):
    pass


class ConnectionLost(ConnectionError):
    """Raised by the line reader when the receive side can't produce a line."""
