"""Streaming, parallel per-key min/mean/max over large delimited files."""

from .aggregate import Aggregate
from .chunks import Chunk, iter_chunks
from .config import Settings
from .errors import (
    ChunkReadError,
    ConfigError,
    InputOpenError,
    MalformedRecord,
    StationStatsError,
    WorkerError,
)
from .pipeline import RunResult, process_file, process_stream
from .records import Record, parse_record
from .report import build_report, format_entry, round_half_away
from .table import AggregateTable
from .workers import ChunkWorkerPool

__all__ = [
    "Aggregate",
    "AggregateTable",
    "Chunk",
    "ChunkReadError",
    "ChunkWorkerPool",
    "ConfigError",
    "InputOpenError",
    "MalformedRecord",
    "Record",
    "RunResult",
    "Settings",
    "StationStatsError",
    "WorkerError",
    "build_report",
    "format_entry",
    "iter_chunks",
    "parse_record",
    "process_file",
    "process_stream",
    "round_half_away",
]
