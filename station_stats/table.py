"""Sharded key -> Aggregate mapping shared by chunk workers.

Every key hashes to one shard; each shard is a plain dict behind its own
lock. Two updates contend only when their keys land in the same shard, and a
get-or-create followed by the update happens under that one lock, so racing
creators of a key always end up updating the same entry.
"""

from __future__ import annotations

import threading
from typing import Dict, List, Mapping

from .aggregate import Aggregate
from .config import DEFAULT_SHARDS


class AggregateTable:
    def __init__(self, shards: int = DEFAULT_SHARDS) -> None:
        if shards <= 0:
            raise ValueError(f"shards must be positive, got {shards}")
        self._shards: List[Dict[str, Aggregate]] = [{} for _ in range(shards)]
        self._locks = [threading.Lock() for _ in range(shards)]

    def _index(self, key: str) -> int:
        return hash(key) % len(self._shards)

    def apply(self, key: str, value: float) -> None:
        """Create the key's aggregate if absent, then fold ``value`` into it."""
        idx = self._index(key)
        shard = self._shards[idx]
        with self._locks[idx]:
            agg = shard.get(key)
            if agg is None:
                agg = shard[key] = Aggregate()
            agg.update(value)

    def merge(self, key: str, aggregate: Aggregate) -> None:
        """Combine a partial aggregate for ``key`` into the table."""
        if aggregate.count == 0:
            return
        idx = self._index(key)
        shard = self._shards[idx]
        with self._locks[idx]:
            agg = shard.get(key)
            if agg is None:
                shard[key] = aggregate.copy()
            else:
                agg.merge(aggregate)

    def merge_partial(self, partial: Mapping[str, Aggregate]) -> None:
        for key, aggregate in partial.items():
            self.merge(key, aggregate)

    def snapshot(self) -> Dict[str, Aggregate]:
        """Copy every entry out of the table.

        Only meaningful once all writers are done; a snapshot taken while
        workers still run may miss updates.
        """
        result: Dict[str, Aggregate] = {}
        for lock, shard in zip(self._locks, self._shards):
            with lock:
                for key, agg in shard.items():
                    result[key] = agg.copy()
        return result

    def __len__(self) -> int:
        return sum(len(shard) for shard in self._shards)

    def __contains__(self, key: object) -> bool:
        if not isinstance(key, str):
            return False
        return key in self._shards[self._index(key)]
