"""
messages.py — wire constants, the events the reader hands out, and the
outgoing command lines.

What this module does:
- Names every fixed line the server can send (sentinels, prefixes).
- Defines the event types the classifier produces. Exactly one of these comes
  out per server line that isn't a capture sentinel or a captured fragment.
- Builds the newline-terminated command lines we write back (SEND, EXIT).

Events are small frozen dataclasses so the consumer can `isinstance`-switch
over them, and so tests can compare them with ==.
"""

from dataclasses import dataclass
from typing import ClassVar, Union

# -----------------------
# Incoming fixed lines
# -----------------------
REGISTERED_OPERATOR = "REGISTERED as operator"
KICKED = "KICKED You have been kicked by the operator"
BANNED = "BANNED You have been banned by the operator"
BEGIN_RESPONSE = "BEGIN_RESPONSE"
END_RESPONSE = "END_RESPONSE"

# Message prefixes. A line "starts like" a message if it has one of these;
# the sender id is what's left after the prefix plus one space.
MESSAGE_PREFIX = "MESSAGE from"
BROADCAST_PREFIX = "BROADCAST from"
SENDER_SEPARATOR = ": "

# Outgoing command words
SEND = "SEND"
ALL = "ALL"
EXIT = "EXIT"
HELP = "HELP"

OPERATOR_NOTICE = "You are registered as the server operator."
INVALID_MESSAGE_NOTICE = "Invalid message format. Ignoring."


# -----------------------
# Events
# -----------------------

@dataclass(frozen=True)
class ServerNotice:
    """Any server text: single lines, captured responses, decode failures."""
    text: str
    terminal: ClassVar[bool] = False


@dataclass(frozen=True)
class OperatorGranted:
    text: str = OPERATOR_NOTICE
    terminal: ClassVar[bool] = False


@dataclass(frozen=True)
class Kicked:
    terminal: ClassVar[bool] = True


@dataclass(frozen=True)
class Banned:
    terminal: ClassVar[bool] = True


@dataclass(frozen=True)
class Disconnected:
    terminal: ClassVar[bool] = True


@dataclass(frozen=True)
class DirectMessage:
    sender_id: str
    plaintext: bytes
    terminal: ClassVar[bool] = False

    @property
    def text(self) -> str:
        return self.plaintext.decode("utf-8", errors="replace")


@dataclass(frozen=True)
class BroadcastMessage:
    sender_id: str
    plaintext: bytes
    terminal: ClassVar[bool] = False

    @property
    def text(self) -> str:
        return self.plaintext.decode("utf-8", errors="replace")


ClassifiedEvent = Union[
    ServerNotice,
    OperatorGranted,
    Kicked,
    Banned,
    Disconnected,
    DirectMessage,
    BroadcastMessage,
]


# -----------------------
# Outgoing command lines
# -----------------------

def send_all_line(wire: str) -> str:
    """SEND ALL <hex(iv || ciphertext)>"""
    return f"{SEND} {ALL} {wire}\n"


def send_direct_line(recipient_id: str, wire: str) -> str:
    """SEND <recipient> <key_hex>|<ciphertext_hex>"""
    return f"{SEND} {recipient_id} {wire}\n"


def exit_line() -> str:
    return f"{EXIT}\n"


def raw_line(text: str) -> str:
    """Pass-through command (LIST, KICK ..., whatever the server knows)."""
    return f"{text}\n"
