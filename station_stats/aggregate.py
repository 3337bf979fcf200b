import math


def _add_exact(partials: list, x: float):
    """Add ``x`` to a list of non-overlapping partial sums without rounding.

    ``math.fsum(partials)`` is then the correctly rounded total, whatever
    order the values arrived in. A sum that overflows stays at +-inf.
    """
    i = 0
    for y in partials:
        if abs(x) < abs(y):
            x, y = y, x
        hi = x + y
        if not math.isfinite(hi):
            partials[:] = [hi]
            return
        lo = y - (hi - x)
        if lo:
            partials[i] = lo
            i += 1
        x = hi
    partials[i:] = [x]


class Aggregate:
    """Running min/max/sum/count for one key.

    Seeded with +inf/-inf so the first value always wins both comparisons,
    whatever its sign. The sum is kept exact, so aggregates merged in any
    order end with the same mean.
    """

    __slots__ = ("min", "max", "count", "_partials")

    def __init__(self):
        self.min = math.inf
        self.max = -math.inf
        self.count = 0
        self._partials = []

    @classmethod
    def from_values(cls, min_val: float, max_val: float, total: float, count: int):
        agg = cls()
        agg.min = min_val
        agg.max = max_val
        agg.count = count
        if total:
            agg._partials.append(total)
        return agg

    @property
    def sum(self) -> float:
        return math.fsum(self._partials)

    @property
    def mean(self) -> float:
        return self.sum / self.count

    def update(self, value: float):
        if value < self.min:
            self.min = value
        if value > self.max:
            self.max = value
        _add_exact(self._partials, value)
        self.count += 1

    def merge(self, other: "Aggregate"):
        """Fold another aggregate for the same key into this one."""
        if other.min < self.min:
            self.min = other.min
        if other.max > self.max:
            self.max = other.max
        for partial in other._partials:
            _add_exact(self._partials, partial)
        self.count += other.count

    def copy(self) -> "Aggregate":
        agg = Aggregate()
        agg.min = self.min
        agg.max = self.max
        agg.count = self.count
        agg._partials = list(self._partials)
        return agg

    def __getstate__(self):
        return (self.min, self.max, self.count, tuple(self._partials))

    def __setstate__(self, state):
        self.min, self.max, self.count, partials = state
        self._partials = list(partials)

    def __eq__(self, other):
        if not isinstance(other, Aggregate):
            return NotImplemented
        return (self.min, self.max, self.sum, self.count) == (other.min, other.max, other.sum, other.count)

    __hash__ = None

    def __repr__(self):
        return f"Aggregate(min={self.min}, max={self.max}, sum={self.sum}, count={self.count})"
