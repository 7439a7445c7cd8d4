from __future__ import annotations

from dataclasses import dataclass
import re


class MalformedTimestampError(ValueError):
    pass


@dataclass(frozen=True)
class Timestamp:
    hours: int
    minutes: int
    seconds: int
    milliseconds: int

    def to_millis(self) -> int:
        return timestamp_to_millis(self)


def parse_timestamp(token: str, separator: str = ",") -> Timestamp:
    """Parse an ``HH:MM:SS<sep>fff`` token.

    The fractional part is read as thousandths: it is padded with zeros or
    truncated to three digits, so ``"5"`` is 500 ms and ``"5009"`` is 500 ms.
    """
    if len(separator) != 1:
        raise MalformedTimestampError(f"Invalid separator: {separator!r}")
    if not token or not token.strip():
        raise MalformedTimestampError("Empty timestamp")
    value = token.strip()
    pattern = rf"(\d+):(\d+):(\d+){re.escape(separator)}(\d+)"
    # re's \d also matches non-ASCII digits
    match = re.fullmatch(pattern, value, flags=re.ASCII)
    if match is None:
        raise MalformedTimestampError(f"Invalid timestamp: {value}")
    hours, minutes, secs, fraction = match.groups()
    ms = int(fraction.ljust(3, "0")[:3])
    return Timestamp(int(hours), int(minutes), int(secs), ms)


def timestamp_to_millis(timestamp: Timestamp) -> int:
    total_seconds = (timestamp.hours * 60 + timestamp.minutes) * 60 + timestamp.seconds
    return total_seconds * 1000 + timestamp.milliseconds


def format_timestamp(ms: int, separator: str = ",") -> str:
    ms = max(0, int(ms))
    hours = ms // 3_600_000
    minutes = (ms % 3_600_000) // 60_000
    secs = (ms % 60_000) // 1000
    return f"{hours:02d}:{minutes:02d}:{secs:02d}{separator}{ms % 1000:03d}"
