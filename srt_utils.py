from __future__ import annotations

from dataclasses import dataclass
from itertools import groupby
from operator import itemgetter
import logging
from pathlib import Path
import re
from typing import Iterator, List, Optional, Sequence, Tuple

from time_utils import MalformedTimestampError, parse_timestamp, timestamp_to_millis

logger = logging.getLogger("subrip_ingester")

DURATION_RE = re.compile(
    r"\d+:\d+:\d+,\d+\s*-->\s*\d+:\d+:\d+,\d+", flags=re.ASCII
)
INDEX_RE = re.compile(r"\d+", flags=re.ASCII)
ARROW = "-->"
LINE_BREAK_RE = re.compile(r"\r\n|\r|\n")


class SubRipError(ValueError):
    pass


class EmptyInputError(SubRipError):
    pass


class IncompleteCueError(SubRipError):
    pass


@dataclass(frozen=True)
class Cue:
    index: Optional[int]
    start_ms: int
    end_ms: int
    lines: Tuple[str, ...] = ()

    @property
    def text(self) -> str:
        return "\n".join(self.lines)

    @property
    def duration_ms(self) -> int:
        return self.end_ms - self.start_ms

    def to_dict(self) -> dict:
        return {
            "index": self.index,
            "start_ms": self.start_ms,
            "end_ms": self.end_ms,
            "lines": list(self.lines),
        }


@dataclass(frozen=True)
class Interval:
    """Closed range of line numbers; ``high=None`` runs to end of file."""

    low: int
    high: Optional[int] = None

    def contains(self, line_no: int) -> bool:
        if line_no < self.low:
            return False
        return self.high is None or line_no <= self.high


def is_duration_line(line: str) -> bool:
    return DURATION_RE.fullmatch(line.strip()) is not None


def cue_start_indexes(lines: Sequence[str]) -> List[int]:
    """Return the line numbers on which new cues begin.

    A cue starts on the line right before a duration marker, so the index
    line itself is never inspected and may hold anything.
    """
    return [
        idx
        for idx, (_, following) in enumerate(zip(lines, lines[1:]))
        if is_duration_line(following)
    ]


def cue_intervals(starts: Sequence[int]) -> List[Interval]:
    if not starts:
        return []
    intervals = [Interval(low, high - 1) for low, high in zip(starts, starts[1:])]
    intervals.append(Interval(starts[-1]))
    return intervals


def interval_for_line(intervals: Sequence[Interval], line_no: int) -> Optional[Interval]:
    for interval in intervals:
        if interval.contains(line_no):
            return interval
    return None


def _intervals_by_line(intervals: Sequence[Interval], line_count: int) -> Iterator[Optional[Interval]]:
    """Yield the containing interval of each line number, in order.

    Intervals are sorted and contiguous, so the cursor only moves forward
    and the result matches ``interval_for_line`` for every line.
    """
    cursor = 0
    for line_no in range(line_count):
        while (
            cursor < len(intervals)
            and intervals[cursor].high is not None
            and intervals[cursor].high < line_no
        ):
            cursor += 1
        if cursor < len(intervals) and intervals[cursor].contains(line_no):
            yield intervals[cursor]
        else:
            yield None


def split_cue_blocks(lines: Sequence[str]) -> List[List[str]]:
    intervals = cue_intervals(cue_start_indexes(lines))
    tagged = zip(_intervals_by_line(intervals, len(lines)), lines)
    blocks: List[List[str]] = []
    for interval, group in groupby(tagged, key=itemgetter(0)):
        members = [line for _, line in group]
        if interval is None:
            logger.debug(f"[SRT] Dropping {len(members)} line(s) outside any cue")
            continue
        blocks.append(members)
    return blocks


def split_lines(text: str) -> List[str]:
    """Split on ``\\n``, ``\\r\\n`` and ``\\r`` only; a final terminator adds no line."""
    lines = LINE_BREAK_RE.split(text)
    if lines and lines[-1] == "":
        lines.pop()
    return lines


def extract_index(block: Sequence[str]) -> Optional[int]:
    if not block:
        raise IncompleteCueError("Cue block is empty")
    raw = block[0].strip()
    if INDEX_RE.fullmatch(raw):
        return int(raw)
    return None


def extract_duration(block: Sequence[str]) -> Tuple[int, int]:
    if len(block) < 2:
        raise IncompleteCueError(f"Cue block has no duration line: {list(block)!r}")
    raw = block[1].strip()
    parts = raw.split(ARROW)
    if len(parts) != 2:
        raise MalformedTimestampError(f"Invalid duration: {raw}")
    start_str, end_str = [part.strip() for part in parts]
    start = timestamp_to_millis(parse_timestamp(start_str, ","))
    end = timestamp_to_millis(parse_timestamp(end_str, ","))
    return start, end


def extract_text(block: Sequence[str]) -> Tuple[str, ...]:
    stripped = (line.strip() for line in block[2:])
    return tuple(line for line in stripped if line)


def block_to_cue(block: Sequence[str]) -> Cue:
    if len(block) < 2:
        raise IncompleteCueError(
            f"Cue needs an index and a duration line, got {len(block)} line(s)"
        )
    start_ms, end_ms = extract_duration(block)
    return Cue(extract_index(block), start_ms, end_ms, extract_text(block))


def ingest_subrip(text: str, strict: bool = True) -> List[Cue]:
    """Convert the contents of a SubRip file into cues.

    With ``strict`` a cue that cannot be parsed aborts the whole ingestion;
    otherwise that cue is skipped and a warning is logged.
    """
    if not text or not text.strip():
        raise EmptyInputError("SubRip input is empty")

    blocks = split_cue_blocks(split_lines(text))
    cleaned = [[line for line in block if line.strip()] for block in blocks]
    cleaned = [block for block in cleaned if block]

    cues: List[Cue] = []
    for ordinal, block in enumerate(cleaned, start=1):
        try:
            cues.append(block_to_cue(block))
        except (MalformedTimestampError, IncompleteCueError) as exc:
            if strict:
                raise
            logger.warning(f"[SRT] Skipping cue #{ordinal}: {exc}")
    logger.debug(f"[SRT] Parsed {len(cues)} cue(s) from {len(cleaned)} block(s)")
    return cues


def read_srt(path: str | Path, strict: bool = True) -> List[Cue]:
    with open(path, "r", encoding="utf-8-sig", errors="ignore") as handle:
        content = handle.read()
    return ingest_subrip(content, strict=strict)
