"""
node.py — the reader task, the one-slot handoff, and the client that consumes
what the reader produces.

Two logical threads of control per connection:
- reader_loop() owns the receive side. It reads a line, classifies it, and
  hands the resulting event over. It won't read again until that event has
  been taken, so a slow consumer simply stops the reader (backpressure).
- ChatClient owns the send side and all state (operator flag, secret). It pulls
  one event at a time with next_event() and folds it in with apply().

Notes:
- Kicked/Banned end the reader right after the handoff; a failed read hands
  over Disconnected and ends it too. Nothing here reconnects or retries.
- close() closes the socket; the reader's next read then fails and shows up
  as Disconnected. shutdown() also stops the reader, for when the session is
  over (EXIT, kick, ban, disconnect) and nobody will pull again.
"""

import asyncio
import logging
from typing import Awaitable, Callable, List, Optional, Tuple

from .codec import encode_broadcast, encode_direct
from .errors import ConnectionLost, CryptoError
from .framing import MAX_LINE_SIZE, FrameClassifier, read_line, write_line
from . import messages as m

logger = logging.getLogger(__name__)

DEFAULT_PORT = 12345

# handshake(reader, writer, client_id) -> (secret, is_operator)
Handshake = Callable[[asyncio.StreamReader, asyncio.StreamWriter, str], Awaitable[Tuple[bytes, bool]]]

SEND_USAGE = "Invalid SEND command. Use: SEND <RecipientID|ALL> <Message>"
HELP_LINES = [
    "Available commands:",
    "SEND <RecipientID|ALL> <Message> - Send a message",
    "HELP - Print this help text",
    "EXIT - Exit the program",
]


class Rendezvous:
    """
    Single-slot handoff between exactly one producer and one consumer.

    put() returns only after get() has taken the event, so at most one event
    is ever in flight.
    """

    def __init__(self) -> None:
        self._slot: asyncio.Queue = asyncio.Queue(maxsize=1)

    async def put(self, event: m.ClassifiedEvent) -> None:
        await self._slot.put(event)
        await self._slot.join()

    async def get(self) -> m.ClassifiedEvent:
        event = await self._slot.get()
        self._slot.task_done()
        return event


async def reader_loop(
    reader: asyncio.StreamReader,
    classifier: FrameClassifier,
    conduit: Rendezvous,
) -> None:
    """Read, classify, hand off; stop for good on a terminal event or a dead socket."""
    while True:
        try:
            line = await read_line(reader)
        except ConnectionLost as exc:
            logger.info("reader stopping: %s", exc)
            await conduit.put(m.Disconnected())
            return

        event = classifier.feed(line)
        if event is None:
            continue
        await conduit.put(event)
        if event.terminal:
            logger.info("reader stopping after %s", type(event).__name__)
            return


async def _close_writer(writer: asyncio.StreamWriter) -> None:
    writer.close()
    try:
        await writer.wait_closed()
    except OSError as exc:
        # Peer may already have reset the connection; nothing left to flush.
        logger.debug("error while closing connection: %s", exc)


class ChatClient:
    """
    Long-running client endpoint: connects, runs the handshake collaborator,
    starts the reader, then lets the caller pull events and send commands.
    """

    def __init__(
        self,
        client_id: str,
        host: str = "127.0.0.1",
        port: int = DEFAULT_PORT,
        handshake: Optional[Handshake] = None,
    ) -> None:
        self.client_id = client_id
        self.host = host
        self.port = port
        self.handshake = handshake
        self.is_operator = False
        self.secret = b""
        self.reader: Optional[asyncio.StreamReader] = None
        self.writer: Optional[asyncio.StreamWriter] = None
        self.conduit = Rendezvous()
        self.reader_task: Optional[asyncio.Task] = None

    @property
    def prompt(self) -> str:
        if self.is_operator:
            return f"{self.client_id} (op) > "
        return f"{self.client_id} > "

    # -------------------------
    # Connection lifecycle
    # -------------------------

    async def connect(self) -> None:
        """Open the TCP connection, run the handshake once, start the reader."""
        if self.handshake is None:
            raise RuntimeError("No handshake configured")
        reader, writer = await asyncio.open_connection(self.host, self.port, limit=MAX_LINE_SIZE)
        logger.info("connected to %s:%s as %s", self.host, self.port, self.client_id)
        try:
            secret, is_operator = await self.handshake(reader, writer, self.client_id)
        except BaseException:
            await _close_writer(writer)
            raise
        self.start(reader, writer, secret, is_operator)

    def start(
        self,
        reader: asyncio.StreamReader,
        writer: asyncio.StreamWriter,
        secret: bytes,
        is_operator: bool,
    ) -> None:
        """Adopt an already-established stream pair and spawn the reader task."""
        self.reader = reader
        self.writer = writer
        self.secret = secret
        self.is_operator = is_operator
        classifier = FrameClassifier(secret)
        self.reader_task = asyncio.create_task(reader_loop(reader, classifier, self.conduit))

    async def close(self) -> None:
        """
        Close the socket only. A reader still running sees the failed read and
        hands over Disconnected, so keep pulling events after this.
        """
        if self.writer is None:
            return
        writer, self.writer = self.writer, None
        await _close_writer(writer)

    async def shutdown(self) -> None:
        """Close the socket and stop the reader; use once no more events will be pulled."""
        await self.close()
        task, self.reader_task = self.reader_task, None
        if task is None or task.done():
            return
        task.cancel()
        try:
            await task
        except asyncio.CancelledError:
            pass

    # -------------------------
    # Receive side (consumer)
    # -------------------------

    async def next_event(self) -> m.ClassifiedEvent:
        """Wait for the next classified event. Call again only when done with this one."""
        return await self.conduit.get()

    async def apply(self, event: m.ClassifiedEvent) -> Tuple[List[str], bool]:
        """
        Fold one event into client state.

        Returns the lines to show the user and whether the session is over.
        """
        if isinstance(event, m.ServerNotice):
            return [event.text], False
        if isinstance(event, m.OperatorGranted):
            self.is_operator = True
            return [event.text], False
        if isinstance(event, m.DirectMessage):
            return [f"Message from {event.sender_id}: {event.text}"], False
        if isinstance(event, m.BroadcastMessage):
            return [f"Broadcast from {event.sender_id}: {event.text}"], False

        if isinstance(event, m.Kicked):
            line = "You have been kicked from the server by the operator."
        elif isinstance(event, m.Banned):
            line = "You have been banned from the server by the operator."
        elif isinstance(event, m.Disconnected):
            line = "Disconnected from server."
        else:
            raise TypeError(f"Unknown event: {event!r}")
        await self.shutdown()
        return [line], True

    # -------------------------
    # Send side
    # -------------------------

    async def send_raw(self, line: str) -> None:
        if self.writer is None:
            raise RuntimeError("Not connected")
        await write_line(self.writer, line)

    async def send_broadcast(self, text: str) -> None:
        """AES-encrypt under the shared secret and send SEND ALL <hex>."""
        wire = encode_broadcast(self.secret, text.encode("utf-8"))
        await self.send_raw(m.send_all_line(wire))

    async def send_direct(self, recipient_id: str, text: str) -> None:
        """XOR with a fresh pad and send SEND <recipient> <key_hex>|<ct_hex>."""
        wire = encode_direct(text.encode("utf-8"))
        await self.send_raw(m.send_direct_line(recipient_id, wire))

    async def handle_input(self, text: str) -> Tuple[List[str], bool]:
        """
        Run one line the user typed. Returns lines to show and whether to quit.

        SEND and EXIT are handled here, HELP is answered locally, anything else
        goes to the server unchanged.
        """
        text = text.strip()
        parts = text.split()
        if not parts:
            return [], False

        command = parts[0]
        if command == m.SEND:
            if len(parts) < 3:
                return [SEND_USAGE], False
            recipient_id = parts[1]
            message = " ".join(parts[2:])
            if recipient_id == m.ALL:
                try:
                    await self.send_broadcast(message)
                except CryptoError as exc:
                    return [f"Error encrypting message: {exc}"], False
            else:
                await self.send_direct(recipient_id, message)
            return [], False

        if command == m.HELP:
            return list(HELP_LINES), False

        if command == m.EXIT:
            await self.send_raw(m.exit_line())
            await self.shutdown()
            return [], True

        await self.send_raw(m.raw_line(text))
        return [], False
