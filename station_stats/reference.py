"""
Ground truth for a measurements file, computed with polars.

Used to check the streaming pipeline end to end: both sides are rendered
with the same entry formatting and compared key by key. The input must be
clean, since polars rejects lines the pipeline would skip.

polars sums floats in its own order while the pipeline sums exactly, so on
data that is not exact in binary a mean sitting on a .x5 boundary can round
differently and show up as a difference. Such a line is a rounding artefact
of the check, not a pipeline error.
"""

from __future__ import annotations

import os
from typing import Dict, Iterator, List, Mapping, Optional

import polars as pl

from .aggregate import Aggregate
from .config import Settings
from .pipeline import PathLike, process_file
from .report import format_entry


def reference_aggregates(path: PathLike, delimiter: str = ";") -> Dict[str, Aggregate]:
    if os.path.getsize(path) == 0:
        # polars refuses to scan an empty file
        return {}
    df = pl.scan_csv(
        path,
        separator=delimiter,
        has_header=False,
        schema={"station": pl.String, "measurement": pl.Float64},
        quote_char=None,
    )
    grouped = (
        df.group_by("station")
        .agg(
            pl.col("measurement").min().alias("min"),
            pl.col("measurement").max().alias("max"),
            pl.col("measurement").sum().alias("sum"),
            pl.col("measurement").count().alias("count"),
        )
        .sort("station")
        .collect()
    )
    result = {}
    for station, min_val, max_val, total, count in grouped.iter_rows():
        result[station] = Aggregate.from_values(min_val, max_val, total, count)
    return result


def compare(expected: Mapping[str, Aggregate], actual: Mapping[str, Aggregate]) -> Iterator[str]:
    """Yield ``"<expected>  !=  <actual>"`` for every key whose entry differs."""
    for key in sorted(set(expected) | set(actual)):
        l = format_entry(key, expected[key]) if key in expected else None
        r = format_entry(key, actual[key]) if key in actual else None
        if l != r:
            yield f"{l}  !=  {r}"


def verify(path: PathLike, settings: Optional[Settings] = None) -> List[str]:
    """Run the pipeline and polars on ``path``; return the differing entries."""
    settings = settings or Settings()
    expected = reference_aggregates(path, settings.delimiter)
    actual = process_file(path, settings).aggregates
    return list(compare(expected, actual))
