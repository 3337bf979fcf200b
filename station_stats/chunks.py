import logging
from typing import BinaryIO, Iterator, NamedTuple

from .config import DEFAULT_BLOCK_SIZE
from .errors import ChunkReadError

logger = logging.getLogger(__name__)

NEWLINE = b"\n"


class Chunk(NamedTuple):
    """A run of whole lines, ``data == input[start:end]``."""

    start: int
    end: int
    data: bytes


def iter_chunks(stream: BinaryIO, block_size: int = DEFAULT_BLOCK_SIZE) -> Iterator[Chunk]:
    """
    Read ``stream`` sequentially and yield chunks that never split a line.

    Each chunk is one block of ``block_size`` bytes, extended with the rest of
    the line it stopped in, so it ends right after a newline or at the end of
    the stream. The extension is consumed here and is not seen again by the
    next chunk. A last line without a trailing newline stays in the final
    chunk. An empty stream yields nothing.

    ``block_size`` only tunes per-chunk overhead; any positive value gives
    the same lines.
    """
    if block_size <= 0:
        raise ValueError(f"block_size must be positive, got {block_size}")

    offset = 0
    while True:
        try:
            block = stream.read(block_size)
            if not block:
                return
            if not block.endswith(NEWLINE):
                # move to end of this line; b"" at end of stream
                block += stream.readline()
        except OSError as exc:
            raise ChunkReadError(offset, exc) from exc

        end = offset + len(block)
        logger.debug("chunk %d-%d (%d bytes)", offset, end, len(block))
        yield Chunk(offset, end, block)
        offset = end
