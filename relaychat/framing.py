"""
framing.py — newline-delimited lines over asyncio streams, and the classifier
that turns each line into (at most) one event.

Protocol (simple on purpose):
- Each server record is one UTF-8 line ending in "\n"; a trailing "\r" is
  tolerated and stripped. Blank lines are ignored.
- Lines longer than MAX_LINE_SIZE are treated as a broken connection so a
  buggy peer can't make us buffer forever.
- "BEGIN_RESPONSE" ... "END_RESPONSE" brackets a multi-line reply (HELP, LIST,
  ...) that is handed out as a single notice.
"""

import asyncio
import logging
from typing import List, Optional

from .codec import decode_broadcast, decode_direct
from .errors import ConnectionLost, CryptoError, DecodeError, FormatError
from . import messages as m

logger = logging.getLogger(__name__)

MAX_LINE_SIZE = 1024 * 1024  # 1 MiB per line, also used as the stream limit


# -------------------------
# Line I/O
# -------------------------

async def read_line(reader: asyncio.StreamReader) -> str:
    """
    Read one line and strip the trailing CR/LF.

    Raises:
        ConnectionLost: EOF (including a partial last line with no newline),
        an overlong line, or any socket error.
    """
    try:
        raw = await reader.readline()
    except ValueError as exc:
        # readline() turns a LimitOverrunError into ValueError.
        raise ConnectionLost(f"line exceeds {MAX_LINE_SIZE} bytes") from exc
    except OSError as exc:
        raise ConnectionLost(f"read failed: {exc}") from exc

    if not raw.endswith(b"\n"):
        raise ConnectionLost("connection closed by server")
    return raw.decode("utf-8", errors="replace").rstrip("\r\n")


async def write_line(writer: asyncio.StreamWriter, line: str) -> None:
    """Write one already-terminated command line and let the transport flush."""
    writer.write(line.encode("utf-8"))
    await writer.drain()


# -------------------------
# Classifier
# -------------------------

class FrameClassifier:
    """
    Stateful line classifier. Two modes: normal, or collecting the lines of a
    BEGIN_RESPONSE/END_RESPONSE block.

    feed() returns the event for a line, or None when the line produces no
    event (blank line, sentinel, captured fragment). It never raises for bad
    message payloads; those come back as ServerNotice.
    """

    def __init__(self, secret: bytes) -> None:
        self.secret = secret
        self.collecting = False
        self._captured: List[str] = []

    def feed(self, line: str) -> Optional[m.ClassifiedEvent]:
        if not line:
            return None

        # === 1) Fixed notices (kicked/banned end the session).
        if line == m.REGISTERED_OPERATOR:
            return m.OperatorGranted()
        if line == m.KICKED:
            return m.Kicked()
        if line == m.BANNED:
            return m.Banned()

        # === 2) and 3) Capture sentinels.
        if line == m.BEGIN_RESPONSE:
            logger.debug("capture started")
            self.collecting = True
            self._captured = []
            return None
        if line == m.END_RESPONSE:
            text = "\n".join(self._captured)
            logger.debug("capture finished with %d line(s)", len(self._captured))
            self.collecting = False
            self._captured = []
            return m.ServerNotice(text)

        # === 4) Inside a capture everything else is payload, verbatim.
        if self.collecting:
            self._captured.append(line)
            return None

        # === 5) Messages from other clients.
        if line.startswith(m.MESSAGE_PREFIX) or line.startswith(m.BROADCAST_PREFIX):
            return self._classify_message(line)

        # === 6) Anything else is plain server text.
        return m.ServerNotice(line)

    def _classify_message(self, line: str) -> m.ClassifiedEvent:
        parts = line.split(m.SENDER_SEPARATOR, 1)
        if len(parts) != 2:
            return m.ServerNotice(m.INVALID_MESSAGE_NOTICE)
        sender_info, payload = parts

        is_broadcast = sender_info.startswith(m.BROADCAST_PREFIX)
        prefix = m.BROADCAST_PREFIX if is_broadcast else m.MESSAGE_PREFIX
        sender_id = sender_info.removeprefix(prefix + " ")

        try:
            if is_broadcast:
                return m.BroadcastMessage(sender_id, decode_broadcast(self.secret, payload))
            return m.DirectMessage(sender_id, decode_direct(payload))
        except DecodeError as exc:
            logger.warning("undecodable %s from %s", exc.field, sender_id)
            return m.ServerNotice(f"Error decoding {exc.field} from {sender_id}: {exc}")
        except FormatError as exc:
            logger.warning("malformed payload from %s: %s", sender_id, exc)
            return m.ServerNotice(f"Invalid message format from {sender_id}: {exc}. Ignoring.")
        except CryptoError as exc:
            logger.warning("decryption failed for message from %s: %s", sender_id, exc)
            return m.ServerNotice(f"Error decrypting message from {sender_id}: {exc}")
