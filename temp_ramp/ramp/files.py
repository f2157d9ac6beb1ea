# ramp/files.py
"""
File plumbing around the planner: a lazy line source, an all-or-nothing
rewrite of the input path, and ``rewrite_file`` which wires
source -> planner -> block writer -> temporary file -> rename.
"""
from __future__ import annotations
import os
from contextlib import contextmanager
from dataclasses import dataclass
from pathlib import Path
from typing import BinaryIO, Iterable, Iterator, List, Optional, Union

from .buffer import BlockWriter
from .planner import RampPlanner, RampSummary
from .policy import RampPolicy

PathLike = Union[str, Path]

@dataclass
class RewriteResult:
    path: Path
    summary: RampSummary
    blocks_written: int
    bytes_written: int
    changes: List[str]

def iter_lines(stream: BinaryIO) -> Iterator[bytes]:
    """Yield each line of a binary stream without its LF or CRLF terminator."""
    for line in stream:
        if line.endswith(b"\n"):
            line = line[:-1]
        if line.endswith(b"\r"):
            line = line[:-1]
        yield line

def read_lines(path: PathLike) -> Iterator[bytes]:
    with open(path, "rb") as f:
        yield from iter_lines(f)

def temp_path_for(path: PathLike, suffix: str = ".tempmod") -> Path:
    path = Path(path)
    return path.with_name(path.name + suffix)

@contextmanager
def atomic_rewrite(path: PathLike, suffix: str = ".tempmod"):
    """
    Yield a binary handle on ``<path><suffix>``. On a clean exit the data is
    synced and the temporary file replaces ``path``; on any exception
    (KeyboardInterrupt included) it is removed and ``path`` is left alone.
    """
    target = Path(path)
    tmp = temp_path_for(target, suffix)
    f = open(tmp, "wb")
    try:
        yield f
        f.flush()
        os.fsync(f.fileno())
    except BaseException:
        f.close()
        tmp.unlink(missing_ok=True)
        raise
    f.close()
    os.replace(tmp, target)

def write_lines(lines: Iterable[bytes], writer: BlockWriter) -> None:
    for line in lines:
        writer.write_line(line)
    writer.flush()

def rewrite_file(path: PathLike, policy: Optional[RampPolicy] = None,
                 run_logger=None) -> RewriteResult:
    """Apply the ramp to ``path`` in place. Raises OSError on any I/O failure."""
    policy = policy or RampPolicy()
    path = Path(path)
    planner = RampPlanner(policy, run_logger=run_logger)

    with atomic_rewrite(path, policy.suffix) as out, open(path, "rb") as src:
        writer = BlockWriter(out, capacity=policy.block_size)
        write_lines(planner.process(iter_lines(src)), writer)

    return RewriteResult(
        path=path,
        summary=planner.summary(),
        blocks_written=writer.blocks_written,
        bytes_written=writer.bytes_written,
        changes=planner.changes,
    )

def rewrite_lines(lines: Iterable[bytes], policy: Optional[RampPolicy] = None) -> List[bytes]:
    """In-memory variant: rewritten lines without terminators."""
    return list(RampPlanner(policy).process(lines))
