"""Run settings: chunk size, parallelism and input format."""

from __future__ import annotations

import dataclasses
import multiprocessing as mp
import os
from dataclasses import dataclass, field
from typing import Mapping, Optional

from .errors import ConfigError

ENV_PREFIX = "STATION_STATS_"
EXECUTORS = ("process", "thread")
DEFAULT_BLOCK_SIZE = 512 * 1024
DEFAULT_SHARDS = 64


def default_workers() -> int:
    return mp.cpu_count()


@dataclass(frozen=True)
class Settings:
    """Tuning knobs for one run.

    None of these change the result: block size, worker count, backend and
    shard count only trade memory against throughput.
    """

    block_size: int = DEFAULT_BLOCK_SIZE
    workers: int = field(default_factory=default_workers)
    executor: str = "process"
    delimiter: str = ";"
    encoding: str = "utf-8"
    max_in_flight: Optional[int] = None
    shards: int = DEFAULT_SHARDS

    def __post_init__(self) -> None:
        if self.block_size <= 0:
            raise ConfigError(f"block_size must be positive, got {self.block_size}")
        if self.workers <= 0:
            raise ConfigError(f"workers must be positive, got {self.workers}")
        if self.executor not in EXECUTORS:
            raise ConfigError(
                f"executor must be one of {', '.join(EXECUTORS)}, got {self.executor!r}"
            )
        if len(self.delimiter) != 1 or self.delimiter in "\r\n":
            raise ConfigError(f"delimiter must be a single character, got {self.delimiter!r}")
        if self.max_in_flight is not None and self.max_in_flight <= 0:
            raise ConfigError(f"max_in_flight must be positive, got {self.max_in_flight}")
        if self.shards <= 0:
            raise ConfigError(f"shards must be positive, got {self.shards}")

    @property
    def in_flight_limit(self) -> int:
        """Chunks allowed to be dispatched but not yet finished."""
        if self.max_in_flight is not None:
            return self.max_in_flight
        return 2 * self.workers

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> "Settings":
        """Build settings from ``STATION_STATS_<FIELD>`` variables."""
        environ = os.environ if environ is None else environ
        values = {}
        for f in dataclasses.fields(cls):
            raw = environ.get(ENV_PREFIX + f.name.upper())
            if raw is None or raw == "":
                continue
            if f.name in ("executor", "delimiter", "encoding"):
                values[f.name] = raw
                continue
            try:
                values[f.name] = int(raw)
            except ValueError:
                raise ConfigError(
                    f"{ENV_PREFIX}{f.name.upper()} must be an integer, got {raw!r}"
                ) from None
        return cls(**values)

    def with_overrides(self, **overrides) -> "Settings":
        """Return a copy with every override that is not ``None`` applied."""
        changes = {name: value for name, value in overrides.items() if value is not None}
        if not changes:
            return self
        return dataclasses.replace(self, **changes)
