from __future__ import annotations

import threading
from collections import deque
from typing import Callable, Union

import pytest

from lora_e5 import LoRaE5

Reply = Union[bytes, list, None]


class FakePort:
    """Scripted stand-in for a pyserial port.

    Each complete command line written to the port is looked up in `replies`
    (a dict or a callable taking the command text) and the reply is queued for
    reading. A reply given as a list is delivered one chunk per read call.
    """

    def __init__(self, replies: dict[str, Reply] | Callable[[str], Reply] | None = None, port: str = "/dev/fake") -> None:
        self.replies = replies if replies is not None else {}
        self.port = port
        self.writes: list[bytes] = []
        self.commands: list[str] = []
        self.threads: list[str] = []
        self.chunks: deque[bytes] = deque()
        self.short_write: bytes | None = None
        self.closed = False
        self._line = bytearray()

    def _lookup(self, cmd: str) -> Reply:
        if callable(self.replies):
            return self.replies(cmd)
        return self.replies.get(cmd)

    def write(self, data: bytes) -> int:
        self.writes.append(bytes(data))
        if self.short_write is not None and bytes(data) == self.short_write:
            return len(data) - 1

        self._line += data
        if self._line.endswith(b"\n"):
            cmd = self._line[:-1].decode("utf-8")
            self._line.clear()
            self.commands.append(cmd)
            self.threads.append(threading.current_thread().name)
            reply = self._lookup(cmd)
            if isinstance(reply, list):
                self.chunks.extend(reply)
            elif reply is not None:
                self.chunks.append(reply)
        return len(data)

    def read(self, size: int) -> bytes:
        if not self.chunks:
            return b""
        chunk = self.chunks.popleft()
        if len(chunk) > size:
            self.chunks.appendleft(chunk[size:])
            chunk = chunk[:size]
        return chunk

    def close(self) -> None:
        self.closed = True


@pytest.fixture
def make_modem():
    def factory(replies=None, capacity: int = 256) -> tuple[LoRaE5, FakePort]:
        port = FakePort(replies)
        return LoRaE5(port, capacity), port

    return factory
