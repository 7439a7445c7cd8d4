from __future__ import annotations

import argparse
import json
import logging
import os
from pathlib import Path
import sys
from typing import List, Optional, Sequence

from logger import setup_logging
from srt_utils import Cue, SubRipError, read_srt
from time_utils import MalformedTimestampError, format_timestamp

logger = logging.getLogger("subrip_ingester")


def _lenient_default() -> bool:
    return os.environ.get("SRT_INGEST_LENIENT", "0") == "1"


def format_cue_listing(cues: Sequence[Cue]) -> str:
    rows = []
    for cue in cues:
        index = str(cue.index) if cue.index is not None else "-"
        span = f"{format_timestamp(cue.start_ms)} --> {format_timestamp(cue.end_ms)}"
        rows.append(f"{index}  {span}  {' | '.join(cue.lines)}")
    return "\n".join(rows)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Parse a SubRip (.srt) file into cues")
    parser.add_argument("path", type=Path)
    parser.add_argument("--format", choices=("json", "text"), default="json")
    parser.add_argument(
        "--lenient",
        action="store_true",
        default=_lenient_default(),
        help="skip malformed cues instead of failing (env: SRT_INGEST_LENIENT=1)",
    )
    parser.add_argument("--log-file", type=Path, default=None)
    parser.add_argument("--verbose", action="store_true")
    return parser


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    setup_logging(args.log_file, logging.DEBUG if args.verbose else logging.WARNING)

    if not args.path.is_file():
        logger.error(f"[CLI] File not found: {args.path}")
        return 1

    try:
        cues = read_srt(args.path, strict=not args.lenient)
    except OSError as exc:
        logger.error(f"[CLI] Cannot read {args.path}: {exc}")
        return 1
    except (SubRipError, MalformedTimestampError) as exc:
        logger.error(f"[CLI] Failed to parse {args.path.name}: {exc}")
        return 2

    logger.info(f"[CLI] {args.path.name}: {len(cues)} cue(s)")
    if args.format == "json":
        output = json.dumps([cue.to_dict() for cue in cues], indent=2, ensure_ascii=False)
    else:
        output = format_cue_listing(cues)
    print(output, file=sys.stdout)
    return 0


if __name__ == "__main__":
    sys.exit(main())
