import math
from typing import NamedTuple, Optional

from .errors import MalformedRecord


class Record(NamedTuple):
    key: str
    value: float


def decode_line(raw: bytes, encoding: str = "utf-8") -> str:
    """Decode one raw line strictly; undecodable bytes make it malformed."""
    try:
        return raw.decode(encoding)
    except UnicodeDecodeError:
        raise MalformedRecord(raw.decode(encoding, errors="backslashreplace"), f"not valid {encoding}") from None


def parse_record(line: str, delimiter: str = ";") -> Optional[Record]:
    """Parse one line, terminator already removed, into a Record.

    Returns None for an empty line. Raises MalformedRecord unless the line
    holds a non-empty key, exactly one delimiter and a finite number.
    """
    if line.endswith("\r"):
        line = line[:-1]
    if not line:
        return None

    key, sep, measurement = line.partition(delimiter)
    if not sep:
        raise MalformedRecord(line, "missing delimiter")
    if delimiter in measurement:
        raise MalformedRecord(line, "more than one delimiter")
    if not key:
        raise MalformedRecord(line, "empty key")

    # float() also takes "1_000" and padded numbers; only plain literals count
    if "_" in measurement or measurement != measurement.strip():
        raise MalformedRecord(line, "value is not a number")
    try:
        value = float(measurement)
    except ValueError:
        raise MalformedRecord(line, "value is not a number") from None
    # float() accepts "inf", "nan" and overflows to inf
    if not math.isfinite(value):
        raise MalformedRecord(line, "value is not finite")
    return Record(key, value)
