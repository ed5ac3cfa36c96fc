import argparse
import asyncio
import logging
import os
import sys
from typing import Tuple

from .crypto import derive_secret
from .node import DEFAULT_PORT, ChatClient, Handshake

"""
run_node.py — line-mode entry point for the relay chat client.

What you can do here:
- Connect to a server as <client_id>, print every event the reader hands out,
  and send whatever you type (SEND, HELP, EXIT, or raw server commands).

The registration exchange that normally produces the shared secret is not part
of this package. The runner stands in for it with a pre-shared passphrase
(RELAYCHAT_SECRET), hashed into the AES key, and an operator flag.
"""

logger = logging.getLogger(__name__)


# -------------------------
# Handshake stand-in
# -------------------------

def static_handshake(secret: bytes, is_operator: bool) -> Handshake:
    """Handshake collaborator that hands back a secret both ends already share."""
    async def _handshake(reader: asyncio.StreamReader, writer: asyncio.StreamWriter,
                         client_id: str) -> Tuple[bytes, bool]:
        return secret, is_operator
    return _handshake


# -------------------------
# Process runner
# -------------------------

class StdinLines:
    """
    Line source for typed commands. Pipes and terminals are watched by the
    event loop; a regular file (`relaychat ... < cmds.txt`) can't be, so those
    lines are read on the default executor instead.
    """

    def __init__(self) -> None:
        self.reader: asyncio.StreamReader | None = None
        self.transport: asyncio.ReadTransport | None = None

    async def open(self) -> None:
        loop = asyncio.get_running_loop()
        reader = asyncio.StreamReader()
        try:
            self.transport, _ = await loop.connect_read_pipe(
                lambda: asyncio.StreamReaderProtocol(reader), sys.stdin
            )
        except ValueError as exc:
            logger.debug("stdin is not a pipe (%s); reading it in a thread", exc)
            return
        self.reader = reader

    async def readline(self) -> bytes:
        if self.reader is not None:
            return await self.reader.readline()
        line = await asyncio.get_running_loop().run_in_executor(None, sys.stdin.readline)
        return line.encode("utf-8") if isinstance(line, str) else line

    def close(self) -> None:
        if self.transport is not None:
            self.transport.close()
            self.transport = None


async def pump_events(client: ChatClient) -> None:
    """Pull one event, show it, repeat; stop once the session is over."""
    while True:
        event = await client.next_event()
        lines, done = await client.apply(event)
        for line in lines:
            print(line)
        if done:
            return


async def pump_input(client: ChatClient) -> None:
    """Read typed commands until EXIT (or end of input, which counts as EXIT)."""
    stdin = StdinLines()
    await stdin.open()
    try:
        while True:
            print(client.prompt, end="", flush=True)
            raw = await stdin.readline()
            text = raw.decode("utf-8", errors="replace") if raw else "EXIT"
            try:
                lines, done = await client.handle_input(text)
            except (OSError, RuntimeError) as exc:
                print(f"Error: {exc}")
                return
            for line in lines:
                print(line)
            if done:
                return
    finally:
        stdin.close()


async def run_client(client_id: str, host: str, port: int, secret: bytes, is_operator: bool) -> None:
    """
    Connect, then run the event pump and the input pump until either ends.

    An exception escaping either pump is re-raised here once both are stopped.
    """
    client = ChatClient(client_id, host, port, handshake=static_handshake(secret, is_operator))
    try:
        await client.connect()
    except OSError as exc:
        raise SystemExit(f"Error: {exc}")

    print("Connected to the server. Type your commands below:")
    if client.is_operator:
        print("You are the server operator. Type HELP to see available commands.")
    else:
        print("Type HELP to see available commands.")

    tasks = [asyncio.create_task(pump_events(client)), asyncio.create_task(pump_input(client))]
    try:
        done, _ = await asyncio.wait(tasks, return_when=asyncio.FIRST_COMPLETED)
    finally:
        for task in tasks:
            task.cancel()
        await asyncio.gather(*tasks, return_exceptions=True)
        await client.shutdown()

    for task in done:
        if not task.cancelled() and task.exception() is not None:
            raise task.exception()


# -------------------------
# Argument parsing
# -------------------------

def parse_args() -> argparse.Namespace:
    """
    Quick examples:
      RELAYCHAT_SECRET=hunter2 python -m relaychat.run_node alice 100.64.0.1
      RELAYCHAT_SECRET=hunter2 python -m relaychat.run_node bob chat.lan --port 9000 --operator
    """
    p = argparse.ArgumentParser(prog="relaychat")
    p.add_argument("client_id")
    p.add_argument("server")
    p.add_argument("--port", type=int, default=int(os.environ.get("RELAYCHAT_PORT", DEFAULT_PORT)))
    p.add_argument("--operator", action="store_true",
                   default=os.environ.get("RELAYCHAT_OPERATOR") == "1")
    p.add_argument("--log-level", default="WARNING",
                   choices=["DEBUG", "INFO", "WARNING", "ERROR"])
    return p.parse_args()


# -------------------------
# Main entrypoint
# -------------------------

def main() -> None:
    args = parse_args()
    logging.basicConfig(
        level=getattr(logging, args.log_level),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    passphrase = os.environ.get("RELAYCHAT_SECRET")
    if not passphrase:
        raise SystemExit("RELAYCHAT_SECRET must be set to the shared passphrase")

    asyncio.run(run_client(args.client_id, args.server, args.port,
                           derive_secret(passphrase), args.operator))


if __name__ == "__main__":
    main()
