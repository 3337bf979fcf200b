import logging
import threading
import time

import pytest

from station_stats.aggregate import Aggregate
from station_stats.chunks import Chunk
from station_stats.config import Settings
from station_stats.errors import WorkerError
from station_stats.table import AggregateTable
from station_stats.workers import ChunkWorkerPool, apply_chunk, process_chunk


def _chunk(data: bytes, start: int = 0) -> Chunk:
    return Chunk(start, start + len(data), data)


def test_process_chunk_builds_private_map():
    result = process_chunk(b"Hamburg;12.0\nHamburg;14.0\n\nBulawayo;-5.5\n")
    assert result.lines == 3
    assert result.records == 3
    assert result.malformed == 0
    assert result.partial == {
        "Hamburg": Aggregate.from_values(12.0, 14.0, 26.0, 2),
        "Bulawayo": Aggregate.from_values(-5.5, -5.5, -5.5, 1),
    }


def test_process_chunk_skips_and_logs_malformed_lines(caplog):
    with caplog.at_level(logging.WARNING, logger="station_stats.workers"):
        result = process_chunk(b"a;1.0\nBadLine\nCity;notanumber\na;3.0\n")
    assert result.malformed == 2
    assert result.records == 2
    assert result.partial["a"].count == 2
    assert "City" not in result.partial
    messages = [r.getMessage() for r in caplog.records]
    assert any("BadLine" in m for m in messages)
    assert any("notanumber" in m for m in messages)


def test_process_chunk_handles_crlf_and_multibyte_keys():
    result = process_chunk("Zürich;1.5\r\nZürich;2.5\r\n".encode("utf-8"))
    assert result.partial["Zürich"] == Aggregate.from_values(1.5, 2.5, 4.0, 2)


def test_apply_chunk_writes_through_table():
    table = AggregateTable()
    result = apply_chunk(b"x|1\nx|3\ny|2", table, delimiter="|")
    assert result.partial is None
    assert result.records == 3
    snapshot = table.snapshot()
    assert snapshot["x"].mean == 2.0
    assert snapshot["y"].count == 1


def test_pool_aggregates_every_chunk(backend_settings):
    table = AggregateTable()
    data = [b"a;1.0\nb;2.0\n", b"a;3.0\n", b"c;-1.0\nBad\n"]
    with ChunkWorkerPool(table, backend_settings) as pool:
        offset = 0
        for block in data:
            pool.submit(_chunk(block, offset))
            offset += len(block)
        stats = pool.join()

    assert stats.chunks == 3
    assert stats.bytes == sum(len(b) for b in data)
    assert stats.records == 4
    assert stats.malformed == 1
    snapshot = table.snapshot()
    assert snapshot["a"] == Aggregate.from_values(1.0, 3.0, 4.0, 2)
    assert snapshot["c"].min == -1.0


def test_pool_reports_worker_crash_at_barrier(backend_settings):
    settings = Settings(workers=2, executor=backend_settings.executor, encoding="no-such-codec")
    with ChunkWorkerPool(AggregateTable(), settings) as pool:
        pool.submit(_chunk(b"a;1\n"))
        with pytest.raises(WorkerError):
            pool.join()
        # no new work once a worker failed
        with pytest.raises(WorkerError):
            pool.submit(_chunk(b"b;1\n"))


def test_submit_requires_started_pool():
    pool = ChunkWorkerPool(AggregateTable(), Settings(workers=1, executor="thread"))
    with pytest.raises(RuntimeError):
        pool.submit(_chunk(b"a;1\n"))


class GatedTable(AggregateTable):
    def __init__(self, gate):
        super().__init__()
        self.gate = gate

    def apply(self, key, value):
        self.gate.wait()
        super().apply(key, value)


def test_submit_blocks_at_in_flight_limit():
    gate = threading.Event()
    table = GatedTable(gate)
    settings = Settings(workers=4, executor="thread", max_in_flight=2)
    submitted = []

    with ChunkWorkerPool(table, settings) as pool:

        def producer():
            for i in range(3):
                pool.submit(_chunk(f"k{i};1\n".encode()))
                submitted.append(i)

        t = threading.Thread(target=producer)
        t.start()
        time.sleep(0.3)
        assert submitted == [0, 1]

        gate.set()
        t.join(timeout=5)
        stats = pool.join()

    assert submitted == [0, 1, 2]
    assert stats.chunks == 3
    assert len(table) == 3


def test_invalid_utf8_lines_are_skipped_not_merged(caplog):
    with caplog.at_level(logging.WARNING, logger="station_stats.workers"):
        result = process_chunk(b"\xff;1.0\n\xfe;9.0\nok;2.0\n")
    assert result.malformed == 2
    assert result.records == 1
    assert result.partial == {"ok": Aggregate.from_values(2.0, 2.0, 2.0, 1)}
    assert sum("not valid utf-8" in r.getMessage() for r in caplog.records) == 2
