"""
Timeline Layout CLI

Renders a JSON snapshot file and prints the resulting view as JSON.

Usage:
    timeline-layout snapshot.json --hover-draft d1 --mode calendar
    cat snapshot.json | timeline-layout - --width 800 --zoom 2

Exit codes: 0 on success, 2 on unreadable or malformed input.
"""

from __future__ import annotations
from dataclasses import replace
from typing import List, Optional
import argparse
import json
import logging
import sys

from .config import BUCKET_MODES, EngineConfig
from .contracts import parse_instant
from .engine import TimelineEngine
from .interaction import HoverState
from .mapper import SnapshotMapper, SnapshotMappingError

logger = logging.getLogger(__name__)

EXIT_OK = 0
EXIT_BAD_INPUT = 2


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="timeline-layout",
        description="Lay out an activity/draft-story snapshot and print the view as JSON",
    )
    parser.add_argument("snapshot", help="Path to a JSON snapshot, or '-' for stdin")

    hover = parser.add_mutually_exclusive_group()
    hover.add_argument("--hover-activity", metavar="ID", help="Activity id under the pointer")
    hover.add_argument("--hover-draft", metavar="ID", help="Draft story id under the pointer")

    parser.add_argument("--mode", choices=BUCKET_MODES, help="Bucketing mode (default from TIMELINE_BUCKET_MODE or relative)")
    parser.add_argument("--width", type=float, help="Viewport width in rendering units")
    parser.add_argument("--zoom", type=float, help="Zoom factor applied to the output range")
    parser.add_argument("--now", help="Reference instant (ISO-8601); overrides the snapshot's 'now'")
    parser.add_argument("--indent", type=int, default=2, help="JSON indent (0 for compact)")
    parser.add_argument("-v", "--verbose", action="store_true", help="Log layout decisions to stderr")
    return parser


def _read_payload(path: str):
    if path == "-":
        return json.load(sys.stdin)
    with open(path, 'r', encoding='utf-8') as f:
        return json.load(f)


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
        stream=sys.stderr,
    )

    try:
        config = EngineConfig.from_env()
        if args.mode:
            config.buckets = replace(config.buckets, mode=args.mode)

        reference_time = None
        if args.now:
            reference_time = parse_instant(args.now)
            if reference_time is None:
                raise ValueError(f"--now is not an ISO-8601 instant: {args.now!r}")

        payload = _read_payload(args.snapshot)
        mapper = SnapshotMapper()
        snapshot = mapper.map_snapshot(payload, reference_time=reference_time)

        hover = HoverState.none()
        if args.hover_activity:
            hover = HoverState.on_activity(args.hover_activity)
        elif args.hover_draft:
            hover = HoverState.on_draft(args.hover_draft)

        view = TimelineEngine(config).render(snapshot, hover, viewport_width=args.width, zoom=args.zoom)
    except OSError as e:
        logger.error("Cannot read snapshot %s: %s", args.snapshot, e)
        return EXIT_BAD_INPUT
    except json.JSONDecodeError as e:
        logger.error("Snapshot %s is not valid JSON: %s", args.snapshot, e)
        return EXIT_BAD_INPUT
    except (SnapshotMappingError, ValueError) as e:
        logger.error("Cannot lay out snapshot %s: %s", args.snapshot, e)
        return EXIT_BAD_INPUT

    if not mapper.report.is_clean:
        logger.warning(
            "Mapped with %d record issues and %d skipped records",
            len(mapper.report.errors), len(mapper.report.skipped),
        )

    output = view.to_dict()
    output['mapping'] = mapper.report.to_dict()
    json.dump(output, sys.stdout, indent=args.indent or None)
    sys.stdout.write("\n")
    return EXIT_OK


if __name__ == "__main__":
    sys.exit(main())
