"""
relaychat — client endpoint for a line-oriented relay chat server.

- Broadcasts are AES-CBC under a secret shared with the server; direct
  messages use an XOR pad that travels next to the ciphertext.
- One reader task classifies server lines into events; one consumer pulls them.
- Malformed message lines come back as notices; only a dead socket, a kick or
  a ban ends the session.

Set RELAYCHAT_SECRET before running `relaychat <id> <server>`.
"""
from .errors import ConnectionLost, CryptoError, DecodeError, FormatError, ProtocolError
from .framing import FrameClassifier
from .node import ChatClient, Rendezvous, reader_loop

__all__ = [
    "codec",
    "crypto",
    "errors",
    "framing",
    "messages",
    "node",
    "run_node",
    "ChatClient",
    "ConnectionLost",
    "CryptoError",
    "DecodeError",
    "FormatError",
    "FrameClassifier",
    "ProtocolError",
    "Rendezvous",
    "reader_loop",
]
