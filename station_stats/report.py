"""Render the final ``<key>: <min>/<mean>/<max>`` report."""

from __future__ import annotations

import math
from decimal import ROUND_HALF_UP, Context, Decimal
from typing import Mapping

from .aggregate import Aggregate

ONE_DECIMAL = Decimal("0.1")
# wide enough for every finite double written out in full
CONTEXT = Context(prec=400, rounding=ROUND_HALF_UP)


def round_half_away(value: float) -> str:
    """Format ``value`` with one decimal, halves rounded away from zero.

    Rounds the shortest decimal form of the float, so 2.15 gives 2.2 even
    though the nearest double is slightly below 2.15.
    """
    if not math.isfinite(value):
        # a sum past the float range
        return repr(value)
    rounded = Decimal(repr(value)).quantize(ONE_DECIMAL, context=CONTEXT)
    if rounded.is_zero():
        return "0.0"
    return str(rounded)


def format_entry(key: str, aggregate: Aggregate) -> str:
    return (
        f"{key}: {round_half_away(aggregate.min)}"
        f"/{round_half_away(aggregate.mean)}"
        f"/{round_half_away(aggregate.max)}"
    )


def build_report(snapshot: Mapping[str, Aggregate]) -> str:
    """Join the entries of every key in ascending order, each followed by a space."""
    parts = []
    for key in sorted(snapshot):
        aggregate = snapshot[key]
        if aggregate.count == 0:
            continue
        parts.append(format_entry(key, aggregate) + " ")
    return "".join(parts)
