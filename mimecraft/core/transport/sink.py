"""Byte sinks: where serialized messages are appended."""

from typing import Any, List, Protocol


class ByteSink(Protocol):
    """Anything the serialized bytes can be appended to verbatim.

    Binary files, ``io.BytesIO`` and sockets' file wrappers all qualify.
    """

    def write(self, data: bytes) -> Any:
        ...


class BufferSink:
    """In-memory sink that keeps every chunk written to it."""

    def __init__(self):
        self.chunks: List[bytes] = []

    def write(self, data: bytes) -> int:
        self.chunks.append(bytes(data))
        return len(data)

    def getvalue(self) -> bytes:
        return b"".join(self.chunks)
