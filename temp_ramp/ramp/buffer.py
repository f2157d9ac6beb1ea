# ramp/buffer.py
from __future__ import annotations
from typing import BinaryIO

from .gcode import EOL

class BlockWriter:
    """
    Collects output lines into blocks of ``capacity`` bytes and hands each full
    block to ``sink.write``. Peak memory is one block plus the longest line.
    """
    def __init__(self, sink: BinaryIO, capacity: int = 65536, eol: bytes = EOL):
        if capacity <= 0:
            raise ValueError(f"capacity must be positive, got {capacity}")
        self.sink = sink
        self.capacity = capacity
        self.eol = eol
        self._block = bytearray()
        self.blocks_written = 0
        self.bytes_written = 0

    def __len__(self) -> int:
        return len(self._block)

    def write(self, data: bytes) -> None:
        if self._block and len(self._block) + len(data) > self.capacity:
            self.flush()
        self._block += data
        if len(self._block) >= self.capacity:
            self.flush()

    def write_line(self, line: bytes) -> None:
        self.write(line + self.eol)

    def flush(self) -> None:
        if not self._block:
            return
        self.sink.write(bytes(self._block))
        self.blocks_written += 1
        self.bytes_written += len(self._block)
        self._block = bytearray()
