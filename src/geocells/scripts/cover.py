"""Compute a covering for a radius or bounding-box query and report it."""

from __future__ import annotations

import argparse
import csv
import json
import logging
from pathlib import Path
from typing import Sequence

from geocells.covering.rings import ABSOLUTE_MAX_CELLS, DEFAULT_MAX_CELLS, Covering
from geocells.model import Point, Rectangle, ValidationError
from geocells.provider import ADAPTIVE, GeospatialProvider, RangeCovering, Scheme
from geocells.utils.logging_utils import setup_logging
from geocells.utils.metadata import collect_metadata

logger = logging.getLogger("geocells.scripts.cover")


def _precision(value: str) -> int | str:
    if value.lower() == ADAPTIVE:
        return ADAPTIVE
    try:
        return int(value)
    except ValueError as exc:
        raise argparse.ArgumentTypeError(
            f"precision must be an integer or {ADAPTIVE!r}, got {value!r}"
        ) from exc


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description=__doc__)
    parser.add_argument(
        "--scheme",
        choices=[scheme.value for scheme in Scheme],
        required=True,
        help="indexing scheme to cover with",
    )
    query = parser.add_mutually_exclusive_group(required=True)
    query.add_argument(
        "--radius-km",
        type=float,
        help="radius of a circular query around --lat/--lon",
    )
    query.add_argument(
        "--bbox",
        type=float,
        nargs=4,
        metavar=("MIN_LAT", "MIN_LON", "MAX_LAT", "MAX_LON"),
        help="bounding box query; MIN_LON > MAX_LON crosses the antimeridian",
    )
    parser.add_argument("--lat", type=float, help="query centre latitude")
    parser.add_argument("--lon", type=float, help="query centre longitude")
    parser.add_argument(
        "--precision",
        type=_precision,
        default=ADAPTIVE,
        help="precision/level/resolution, or 'adaptive' (default)",
    )
    parser.add_argument(
        "--max-cells",
        type=int,
        default=DEFAULT_MAX_CELLS,
        help=f"cap on returned grid cells (1-{ABSOLUTE_MAX_CELLS})",
    )
    parser.add_argument("--output", type=Path, help="write the covering to this CSV file")
    parser.add_argument("--log-file", type=Path, help="also write log records to this file")
    parser.add_argument("--metadata", type=Path, help="write run metadata JSON to this file")
    parser.add_argument("--verbose", action="store_true", help="log at DEBUG level")
    return parser


def _write_csv(path: Path, result: RangeCovering | Covering) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    with path.open("w", newline="") as handle:
        writer = csv.writer(handle)
        if isinstance(result, RangeCovering):
            writer.writerow(["low", "high"])
            for key_range in result.ranges:
                writer.writerow([key_range.low, key_range.high])
        else:
            writer.writerow(["key", "distance_km"])
            for cell in result:
                writer.writerow([cell.key, f"{cell.distance_km:.6f}"])


def _summary(result: RangeCovering | Covering) -> dict[str, object]:
    if isinstance(result, RangeCovering):
        return {
            "precision": result.precision,
            "ranges": [[r.low, r.high] for r in result.ranges],
        }
    return {
        "level": result.level,
        "cells": len(result),
        "complete": result.complete,
        "cells_visited": result.cells_visited,
    }


def main(argv: Sequence[str] | None = None) -> int:
    parser = _build_parser()
    args = parser.parse_args(argv)
    setup_logging(args.log_file, logging.DEBUG if args.verbose else logging.INFO)

    provider = GeospatialProvider()
    try:
        if args.radius_km is not None:
            if args.lat is None or args.lon is None:
                parser.error("--radius-km requires --lat and --lon")
            center = Point(args.lat, args.lon)
            result = provider.cover_radius(
                args.scheme, center, args.radius_km, args.precision, args.max_cells
            )
        else:
            rect = Rectangle.from_bounds(*args.bbox)
            result = provider.cover_bounding_box(
                args.scheme, rect, args.precision, args.max_cells
            )
    except ValidationError as exc:
        parser.error(str(exc))

    summary = _summary(result)
    if isinstance(result, RangeCovering):
        for key_range in result.ranges:
            print(f"{key_range.low} {key_range.high}")
        logger.info(
            "%s covering uses %d key range(s) at precision %d",
            args.scheme,
            len(result),
            result.precision,
        )
    else:
        for cell in result:
            print(f"{cell.key} {cell.distance_km:.3f}")
        logger.info(
            "%s covering at level %d: %d cells, complete=%s, visited=%d",
            args.scheme,
            result.level,
            len(result),
            result.complete,
            result.cells_visited,
        )
        if not result.complete:
            logger.warning("Covering was truncated at %d cells", args.max_cells)

    if args.output is not None:
        _write_csv(args.output, result)
        logger.info("Wrote covering to %s", args.output)

    if args.metadata is not None:
        extra = {
            "scheme": args.scheme,
            "precision": args.precision,
            "max_cells": args.max_cells,
            "result": summary,
        }
        args.metadata.parent.mkdir(parents=True, exist_ok=True)
        args.metadata.write_text(json.dumps(collect_metadata(extra), indent=2))
        logger.info("Wrote metadata to %s", args.metadata)
    return 0


if __name__ == "__main__":  # pragma: no cover - CLI entry
    raise SystemExit(main())
