import random
from typing import Optional, Sequence

STATIONS = (
    "Abha", "Accra", "Bulawayo", "Cape Town", "Dakar", "Hamburg", "Istanbul",
    "Kraków", "Lima", "Oslo", "Palermo", "Reykjavík", "São Paulo", "Tokyo", "Zürich",
)

BATCH = 10_000


def generate_measurements(
    path,
    rows: int,
    stations: Optional[Sequence[str]] = None,
    seed: Optional[int] = None,
    delimiter: str = ";",
) -> None:
    """Write ``rows`` random ``<station>;<value>`` lines to ``path``.

    Values have one decimal and lie in -99.9..99.9. The same seed always
    produces the same file.
    """
    if rows < 0:
        raise ValueError(f"rows must not be negative, got {rows}")
    stations = list(stations or STATIONS)
    rng = random.Random(seed)
    choice = rng.choice
    ri = rng.randint

    with open(path, "w", encoding="utf-8", newline="\n") as f:
        remaining = rows
        while remaining:
            n = min(BATCH, remaining)
            f.write("".join(f"{choice(stations)}{delimiter}{ri(-999, 999) / 10}\n" for _ in range(n)))
            remaining -= n
