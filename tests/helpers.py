"""Test helpers: in-memory stream pairs so the reader can run without sockets."""

import asyncio
from typing import List

from relaychat import crypto

SECRET = bytes(range(32))


def stream(*lines: str, eof: bool = False) -> asyncio.StreamReader:
    """StreamReader pre-loaded with newline-terminated lines. Must run inside a loop."""
    reader = asyncio.StreamReader()
    for line in lines:
        reader.feed_data(line.encode("utf-8") + b"\n")
    if eof:
        reader.feed_eof()
    return reader


def broadcast_line(sender: str, text: str, secret: bytes = SECRET) -> str:
    wire = crypto.hex_encode(crypto.aes_encrypt(secret, text.encode("utf-8")))
    return f"BROADCAST from {sender}: {wire}"


class FakeWriter:
    """
    Stands in for asyncio.StreamWriter. Closing it ends the paired reader the
    way closing a real socket would.
    """

    def __init__(self, reader: asyncio.StreamReader | None = None) -> None:
        self.reader = reader
        self.data = bytearray()
        self.closed = False

    def write(self, data: bytes) -> None:
        self.data.extend(data)

    async def drain(self) -> None:
        pass

    def close(self) -> None:
        self.closed = True
        if self.reader is not None and not self.reader.at_eof():
            self.reader.feed_eof()

    async def wait_closed(self) -> None:
        pass

    @property
    def lines(self) -> List[str]:
        return self.data.decode("utf-8").splitlines()
