"""
Chunk workers and the bounded pool that runs them.

A worker decodes one chunk, splits it into lines, parses every line and folds
the records into aggregates. Two backends are supported:

- ``process``: a ``multiprocessing.Pool``. Each worker builds a private
  ``dict[str, Aggregate]`` for its chunk and the parent merges that partial
  map into the shared table when the result comes back, so the hot loop never
  takes a lock.
- ``thread``: a ``ThreadPoolExecutor``. Workers call ``AggregateTable.apply``
  for every record and rely on the table's per-shard locks.

The pool counts dispatched-but-unfinished chunks. ``submit`` blocks while
``Settings.in_flight_limit`` chunks are outstanding, which bounds the bytes
held in memory, and ``join`` is the barrier that waits for the count to drop
to zero before the table may be read.
"""

from __future__ import annotations

import logging
import multiprocessing as mp
import threading
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from functools import partial
from typing import Dict, Iterator, Optional

from .aggregate import Aggregate
from .chunks import Chunk
from .config import Settings
from .errors import MalformedRecord, WorkerError
from .logs import configure_logging
from .records import Record, decode_line, parse_record
from .table import AggregateTable

logger = logging.getLogger(__name__)


@dataclass
class ChunkResult:
    """Counters for one chunk, plus its partial map in the process backend."""

    lines: int = 0
    records: int = 0
    malformed: int = 0
    partial: Optional[Dict[str, Aggregate]] = None


@dataclass
class PoolStats:
    chunks: int = 0
    bytes: int = 0
    lines: int = 0
    records: int = 0
    malformed: int = 0

    def add(self, result: ChunkResult, size: int) -> None:
        self.chunks += 1
        self.bytes += size
        self.lines += result.lines
        self.records += result.records
        self.malformed += result.malformed


def _split_lines(data: bytes, encoding: str) -> list:
    try:
        return data.decode(encoding).split("\n")
    except UnicodeDecodeError:
        # decode line by line so only the undecodable lines are skipped
        return data.split(b"\n")


def _iter_records(data: bytes, delimiter: str, encoding: str, result: ChunkResult) -> Iterator[Record]:
    for line in _split_lines(data, encoding):
        try:
            if isinstance(line, bytes):
                line = decode_line(line, encoding)
            record = parse_record(line, delimiter)
        except MalformedRecord as exc:
            result.lines += 1
            result.malformed += 1
            logger.warning("skipping malformed record: %s", exc)
            continue
        if record is None:
            continue
        result.lines += 1
        result.records += 1
        yield record


def process_chunk(data: bytes, delimiter: str = ";", encoding: str = "utf-8") -> ChunkResult:
    """Aggregate one chunk into a private map. Runs in a worker process."""
    result = ChunkResult(partial={})
    aggregates = result.partial
    for key, value in _iter_records(data, delimiter, encoding, result):
        agg = aggregates.get(key)
        if agg is None:
            agg = aggregates[key] = Aggregate()
        agg.update(value)
    return result


def apply_chunk(
    data: bytes, table: AggregateTable, delimiter: str = ";", encoding: str = "utf-8"
) -> ChunkResult:
    """Aggregate one chunk straight into the shared table."""
    result = ChunkResult()
    apply = table.apply
    for key, value in _iter_records(data, delimiter, encoding, result):
        apply(key, value)
    return result


def _init_worker(level: int) -> None:
    configure_logging(level)


class ChunkWorkerPool:
    """Runs chunk workers against one AggregateTable, at most N chunks in flight."""

    def __init__(self, table: AggregateTable, settings: Optional[Settings] = None) -> None:
        self.table = table
        self.settings = settings or Settings()
        self.stats = PoolStats()
        self._slots = threading.BoundedSemaphore(self.settings.in_flight_limit)
        self._done = threading.Condition()
        self._pending = 0
        self._error: Optional[BaseException] = None
        self._backend = None

    def __enter__(self) -> "ChunkWorkerPool":
        self.start()
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

    def start(self) -> None:
        if self._backend is not None:
            return
        workers = self.settings.workers
        if self.settings.executor == "process":
            level = logging.getLogger().getEffectiveLevel()
            self._backend = mp.Pool(workers, initializer=_init_worker, initargs=(level,))
        else:
            self._backend = ThreadPoolExecutor(max_workers=workers, thread_name_prefix="chunk-worker")
        logger.debug("started %s pool with %d workers", self.settings.executor, workers)

    def submit(self, chunk: Chunk) -> None:
        """Dispatch one chunk, blocking while the in-flight limit is reached."""
        if self._backend is None:
            raise RuntimeError("pool is not started")
        self._raise_if_failed()

        self._slots.acquire()
        with self._done:
            self._pending += 1

        size = len(chunk.data)
        delimiter, encoding = self.settings.delimiter, self.settings.encoding
        try:
            if self.settings.executor == "process":
                self._backend.apply_async(
                    process_chunk,
                    (chunk.data, delimiter, encoding),
                    callback=partial(self._on_result, size),
                    error_callback=self._on_error,
                )
            else:
                future = self._backend.submit(apply_chunk, chunk.data, self.table, delimiter, encoding)
                future.add_done_callback(partial(self._on_future, size))
        except BaseException:
            self._finish()
            raise

    def wait(self) -> None:
        """Block until every dispatched chunk has finished, successfully or not."""
        with self._done:
            self._done.wait_for(lambda: self._pending == 0)

    def join(self) -> PoolStats:
        """Completion barrier: wait for all chunks, then surface any worker crash."""
        self.wait()
        self._raise_if_failed()
        return self.stats

    def close(self) -> None:
        if self._backend is None:
            return
        self.wait()
        backend, self._backend = self._backend, None
        if isinstance(backend, ThreadPoolExecutor):
            backend.shutdown(wait=True)
        else:
            backend.close()
            backend.join()

    def _raise_if_failed(self) -> None:
        if self._error is not None:
            raise WorkerError(f"chunk worker failed: {self._error!r}") from self._error

    def _on_future(self, size: int, future) -> None:
        exc = future.exception()
        if exc is not None:
            self._on_error(exc)
        else:
            self._on_result(size, future.result())

    def _on_result(self, size: int, result: ChunkResult) -> None:
        try:
            if result.partial is not None:
                self.table.merge_partial(result.partial)
            with self._done:
                self.stats.add(result, size)
        except Exception as exc:
            self._record_error(exc)
        finally:
            self._finish()

    def _on_error(self, exc: BaseException) -> None:
        self._record_error(exc)
        self._finish()

    def _record_error(self, exc: BaseException) -> None:
        logger.error("chunk worker failed: %r", exc)
        with self._done:
            if self._error is None:
                self._error = exc

    def _finish(self) -> None:
        with self._done:
            self._pending -= 1
            self._done.notify_all()
        self._slots.release()
