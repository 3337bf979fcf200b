"""Shared fixtures: measurement files and settings per worker backend."""

from __future__ import annotations

import random

import pytest

from station_stats.config import Settings
from station_stats.generate import STATIONS


@pytest.fixture
def write_measurements(tmp_path):
    """Write ``content`` (str or bytes) to a fresh file and return its path."""
    counter = iter(range(1000))

    def _write(content, name=None):
        path = tmp_path / (name or f"measurements_{next(counter)}.txt")
        if isinstance(content, str):
            content = content.encode("utf-8")
        path.write_bytes(content)
        return path

    return _write


@pytest.fixture(params=["thread", "process"])
def backend_settings(request):
    return Settings(workers=2, executor=request.param, block_size=64)


@pytest.fixture
def write_quarter_values():
    """Write random station lines whose values are multiples of 0.25.

    Quarters are exact in binary, so any summation order gives the same sum.
    """

    def _write(path, rows, seed):
        rng = random.Random(seed)
        with open(path, "w", encoding="utf-8") as f:
            for _ in range(rows):
                f.write(f"{rng.choice(STATIONS)};{rng.randint(-400, 400) / 4}\n")

    return _write
