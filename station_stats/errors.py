"""Exception hierarchy for station-stats runs.

Infrastructure failures (opening the input, reading it, a crashed worker)
abort the whole run. Data failures (a malformed line) are only ever raised
inside a worker, logged there, and skipped.
"""

from __future__ import annotations

__all__ = [
    "StationStatsError",
    "ConfigError",
    "InputOpenError",
    "ChunkReadError",
    "WorkerError",
    "MalformedRecord",
]


class StationStatsError(RuntimeError):
    """Base exception for failures that abort a run."""


class ConfigError(StationStatsError):
    """Raised when settings are out of range or inconsistent."""


class InputOpenError(StationStatsError):
    """Raised when the measurements file cannot be opened."""

    def __init__(self, path, cause: OSError) -> None:
        super().__init__(f"cannot open {path}: {cause.strerror or cause}")
        self.path = path
        self.cause = cause


class ChunkReadError(StationStatsError):
    """Raised when reading the input fails somewhere other than end-of-stream."""

    def __init__(self, offset: int, cause: OSError) -> None:
        super().__init__(f"read failed at byte {offset}: {cause}")
        self.offset = offset
        self.cause = cause


class WorkerError(StationStatsError):
    """Raised at the barrier when a chunk worker died on a non-data error."""


class MalformedRecord(ValueError):
    """A line that is not ``<key><delimiter><number>``."""

    def __init__(self, line: str, reason: str) -> None:
        super().__init__(f"{reason}: {line!r}")
        self.line = line
        self.reason = reason
