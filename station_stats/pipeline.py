"""
Streams a measurements file through the chunk reader and worker pool.

The reader runs on the calling thread and hands every chunk to the pool as
soon as it is cut, so reading and aggregating overlap. Once the stream is
exhausted the pool barrier is awaited and only then is the table read.
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from typing import BinaryIO, Dict, Optional, Union

from .aggregate import Aggregate
from .chunks import iter_chunks
from .config import Settings
from .errors import ChunkReadError, InputOpenError
from .report import build_report
from .table import AggregateTable
from .workers import ChunkWorkerPool, PoolStats

logger = logging.getLogger(__name__)

PathLike = Union[str, "os.PathLike[str]"]


@dataclass
class RunResult:
    aggregates: Dict[str, Aggregate]
    stats: PoolStats

    def report(self) -> str:
        return build_report(self.aggregates)


def process_stream(stream: BinaryIO, settings: Optional[Settings] = None) -> RunResult:
    """Aggregate every record of an open binary stream."""
    settings = settings or Settings()
    table = AggregateTable(settings.shards)

    with ChunkWorkerPool(table, settings) as pool:
        try:
            for chunk in iter_chunks(stream, settings.block_size):
                pool.submit(chunk)
        except ChunkReadError:
            logger.error("input read failed, waiting for dispatched chunks to finish")
            pool.wait()
            raise
        stats = pool.join()

    if stats.malformed:
        logger.warning("skipped %d malformed of %d lines", stats.malformed, stats.lines)
    logger.info(
        "aggregated %d records into %d keys from %d chunks (%d bytes)",
        stats.records,
        len(table),
        stats.chunks,
        stats.bytes,
    )
    return RunResult(table.snapshot(), stats)


def process_file(path: PathLike, settings: Optional[Settings] = None) -> RunResult:
    """Aggregate the measurements file at ``path``."""
    try:
        f = open(path, mode="rb")
    except OSError as exc:
        raise InputOpenError(path, exc) from exc
    with f:
        return process_stream(f, settings)
