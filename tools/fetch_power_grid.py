#!/usr/bin/env python3
# ============================================================================
# CLI NASA POWER GRID FETCH TOOL
# ============================================================================
# EPOCH: 1 - IRRADIANCE RESOLUTION
# STATUS: Tool - Build a dataset version from NASA POWER climatology
# PURPOSE: Sample a lat/lon grid, then init → batches → finalize over HTTP
# CREATED: 18 SEP 2026
# ============================================================================
"""
Build a local-grid dataset version by sampling NASA POWER climatology on a
regular grid (default: Brazil at 0.5°, about 55 km).

1. grid      → points from the south-west corner, both edges inclusive
2. sample    → one climatology request per point, `--concurrency` at a
               time with a pause between groups; failed points are counted
               and skipped
3. import    → the sampled points go through the import endpoint exactly
               like a CSV grid (init, chunked batches, finalize with a
               SHA-256 checksum; abort on failure)

Sampling happens before init, so no version sits in 'processing' while
thousands of upstream requests run.

Usage:
    # Whole default box into NASA_POWER_GLOBAL
    python tools/fetch_power_grid.py

    # Coarse sub-region, sample only
    python tools/fetch_power_grid.py --bbox -24,-19,-54,-44 --step 1.0 --dry-run

Requires:
    IRRADIANCE_API_URL   (default http://localhost:8000)
    IRRADIANCE_API_TOKEN bearer token accepted by the service
"""

import argparse
import asyncio
import math
import os
import sys
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Awaitable, Callable, Dict, List, Optional, Sequence, Tuple

import httpx

# Add project root to path
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from core.config import BoundingBox, TierDefaults
from core.errors import IrradianceError
from core.logging import ComponentType, configure_logging, get_logger
from services.resolvers import NasaPowerResolver, TierResolver
from tools.csv_grid import checksum, explode_rows
from tools.import_grid import (
    DEFAULT_CHUNK_SIZE,
    DEFAULT_RETRIES,
    ImportClient,
    ImportFailed,
    parse_bbox,
    run_import,
)

logger = get_logger(__name__, ComponentType.IMPORTER)

DEFAULT_DATASET = "NASA_POWER_GLOBAL"
DEFAULT_BBOX = BoundingBox(-33.5, 5.0, -74.0, -35.0)
DEFAULT_STEP_DEG = 0.5
DEFAULT_CONCURRENCY = 10
# NASA POWER allows roughly 30 requests/s
DEFAULT_PAUSE_SECONDS = 0.4
DEFAULT_MAX_ERROR_RATIO = 0.5
PROGRESS_EVERY = 100

GridPoint = Tuple[float, float]


def default_version_tag(now: Optional[datetime] = None) -> str:
    now = now or datetime.now(timezone.utc)
    return now.strftime("power-grid-%Y%m%d-%H%M")


def grid_points(bbox: BoundingBox, step: float) -> List[GridPoint]:
    """
    Row-major grid over the box, rounded to 3 decimals.

    Points are computed as min + i * step, so float drift never drops the
    last row or column.
    """
    if step <= 0:
        raise ValueError(f"step must be positive, got {step}")
    if bbox.lat_min > bbox.lat_max or bbox.lon_min > bbox.lon_max:
        raise ValueError(f"empty bounding box: {bbox.as_tuple()}")

    lat_steps = int(math.floor((bbox.lat_max - bbox.lat_min) / step + 1e-9))
    lon_steps = int(math.floor((bbox.lon_max - bbox.lon_min) / step + 1e-9))
    return [
        (round(bbox.lat_min + i * step, 3), round(bbox.lon_min + j * step, 3))
        for i in range(lat_steps + 1)
        for j in range(lon_steps + 1)
    ]


@dataclass
class GridSample:
    """Wide points ({lat, lon, ghi: [12], dhi: [12]}) plus the failure count."""
    points: List[Dict[str, Any]] = field(default_factory=list)
    attempted: int = 0
    errors: int = 0

    @property
    def error_ratio(self) -> float:
        return self.errors / self.attempted if self.attempted else 0.0

    @property
    def has_dhi(self) -> bool:
        return any(v > 0 for point in self.points for v in point["dhi"])


async def sample_grid(
    resolver: TierResolver,
    points: Sequence[GridPoint],
    concurrency: int = DEFAULT_CONCURRENCY,
    pause_seconds: float = DEFAULT_PAUSE_SECONDS,
    sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
) -> GridSample:
    """
    Resolve every point, at most `concurrency` requests in flight.

    A point whose tier call fails with an IrradianceError is logged and
    counted; anything else propagates.
    """
    if concurrency <= 0:
        raise ValueError(f"concurrency must be positive, got {concurrency}")
    sample = GridSample(attempted=len(points))

    async def one(lat: float, lon: float) -> Optional[Dict[str, Any]]:
        try:
            result = await resolver.resolve(lat, lon)
        except IrradianceError as e:
            logger.warning(f"[POWER_GRID] ({lat}, {lon}) skipped: {e.message}")
            return None
        return {
            "lat": lat,
            "lon": lon,
            "ghi": list(result.series.ghi),
            "dhi": list(result.series.dhi),
        }

    for start in range(0, len(points), concurrency):
        group = points[start:start + concurrency]
        for point in await asyncio.gather(*(one(lat, lon) for lat, lon in group)):
            if point is None:
                sample.errors += 1
            else:
                sample.points.append(point)

        done = start + len(group)
        if done == len(points) or done // PROGRESS_EVERY > start // PROGRESS_EVERY:
            print(f"  sampled {done}/{len(points)} ({len(sample.points)} ok, {sample.errors} failed)")
        if done < len(points) and pause_seconds > 0:
            await sleep(pause_seconds)

    return sample


async def fetch_power_grid(
    points: Sequence[GridPoint],
    config: Optional[TierDefaults] = None,
    concurrency: int = DEFAULT_CONCURRENCY,
    pause_seconds: float = DEFAULT_PAUSE_SECONDS,
) -> GridSample:
    """Sample NASA POWER over one shared connection pool."""
    async with httpx.AsyncClient() as client:
        resolver = NasaPowerResolver(config, client=client)
        return await sample_grid(resolver, points, concurrency, pause_seconds)


def import_sample(
    api: ImportClient,
    sample: GridSample,
    dataset_code: str,
    version_tag: str,
    source_note: Optional[str] = None,
    chunk_size: int = DEFAULT_CHUNK_SIZE,
) -> Dict[str, Any]:
    """
    Upload sampled points as a new version through the import endpoint.

    Raises:
        ImportFailed: nothing to import, or a protocol step failed
    """
    if not sample.points:
        raise ImportFailed("no grid point could be sampled")

    rows = explode_rows(sample.points)
    return run_import(
        api,
        dataset_code=dataset_code,
        version_tag=version_tag,
        rows=rows,
        row_checksum=checksum(rows),
        has_dhi=sample.has_dhi,
        source_note=source_note,
        chunk_size=chunk_size,
    )


def main():
    parser = argparse.ArgumentParser(
        description="Build a dataset version from NASA POWER climatology on a grid",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  %(prog)s
  %(prog)s --bbox -24,-19,-54,-44 --step 1.0 --dry-run
  %(prog)s --dataset NASA_POWER_GLOBAL --tag power-2026 --concurrency 5
        """,
    )
    parser.add_argument(
        "--dataset", "-d",
        default=DEFAULT_DATASET,
        help=f"Dataset code (default: {DEFAULT_DATASET})",
    )
    parser.add_argument("--tag", help="Version tag (default: power-grid-YYYYMMDD-HHMM)")
    parser.add_argument("--note", help="Source note (default describes step, box and failures)")
    parser.add_argument(
        "--bbox",
        type=parse_bbox,
        default=DEFAULT_BBOX,
        help="lat_min,lat_max,lon_min,lon_max (default: Brazil)",
    )
    parser.add_argument(
        "--step",
        type=float,
        default=DEFAULT_STEP_DEG,
        help=f"Grid step in degrees (default: {DEFAULT_STEP_DEG})",
    )
    parser.add_argument(
        "--concurrency",
        type=int,
        default=DEFAULT_CONCURRENCY,
        help=f"Upstream requests in flight (default: {DEFAULT_CONCURRENCY})",
    )
    parser.add_argument(
        "--pause",
        type=float,
        default=DEFAULT_PAUSE_SECONDS,
        help=f"Seconds between request groups (default: {DEFAULT_PAUSE_SECONDS})",
    )
    parser.add_argument(
        "--max-error-ratio",
        type=float,
        default=DEFAULT_MAX_ERROR_RATIO,
        help=f"Refuse to import above this share of failed points (default: {DEFAULT_MAX_ERROR_RATIO})",
    )
    parser.add_argument(
        "--chunk-size",
        type=int,
        default=DEFAULT_CHUNK_SIZE,
        help=f"Rows per batch (default: {DEFAULT_CHUNK_SIZE})",
    )
    parser.add_argument(
        "--retries",
        type=int,
        default=DEFAULT_RETRIES,
        help=f"Retries per request on connect failures / 5xx (default: {DEFAULT_RETRIES})",
    )
    parser.add_argument(
        "--url", "-u",
        default=os.environ.get("IRRADIANCE_API_URL", "http://localhost:8000"),
        help="Service base URL",
    )
    parser.add_argument(
        "--timeout", "-t",
        type=float,
        default=60.0,
        help="Per-request timeout for the import calls in seconds (default: 60)",
    )
    parser.add_argument("--dry-run", action="store_true", help="Sample and checksum only")
    parser.add_argument("--verbose", "-v", action="store_true", help="Log every upstream call")

    args = parser.parse_args()
    configure_logging("INFO" if args.verbose else "WARNING")

    if args.chunk_size <= 0 or args.concurrency <= 0:
        print("ERROR: --chunk-size and --concurrency must be positive", file=sys.stderr)
        sys.exit(1)

    try:
        points = grid_points(args.bbox, args.step)
    except ValueError as e:
        print(f"ERROR: {e}", file=sys.stderr)
        sys.exit(1)

    bounds = ",".join(f"{v:g}" for v in args.bbox.as_tuple())
    print(f"Grid: {len(points)} points (bbox {bounds}, step {args.step}°)")

    sample = asyncio.run(fetch_power_grid(
        points,
        TierDefaults.from_env(),
        concurrency=args.concurrency,
        pause_seconds=args.pause,
    ))

    if sample.error_ratio > args.max_error_ratio:
        print(
            f"ERROR: {sample.errors}/{sample.attempted} points failed "
            f"({sample.error_ratio:.1%} > {args.max_error_ratio:.1%}); nothing imported",
            file=sys.stderr,
        )
        sys.exit(1)

    rows = explode_rows(sample.points)
    version_tag = args.tag or default_version_tag()
    note = args.note or (
        f"NASA POWER climatology grid (step={args.step}°, bbox={bounds}, "
        f"{sample.errors}/{sample.attempted} points failed)"
    )

    print(f"Prepared import:")
    print(f"  dataset:  {args.dataset}")
    print(f"  tag:      {version_tag}")
    print(f"  points:   {len(sample.points)}")
    print(f"  rows:     {len(rows)}")
    print(f"  checksum: {checksum(rows)}")
    print()

    if args.dry_run:
        return

    token = os.environ.get("IRRADIANCE_API_TOKEN")
    if not token:
        print("ERROR: Set IRRADIANCE_API_TOKEN", file=sys.stderr)
        sys.exit(1)

    headers = {"Authorization": f"Bearer {token}"}
    with httpx.Client(base_url=args.url, headers=headers, timeout=args.timeout) as client:
        try:
            result = import_sample(
                ImportClient(client, retries=args.retries),
                sample,
                dataset_code=args.dataset,
                version_tag=version_tag,
                source_note=note,
                chunk_size=args.chunk_size,
            )
        except ImportFailed as e:
            print(f"ERROR: {e}", file=sys.stderr)
            sys.exit(1)

    print(f"Import complete!")
    print(f"  version_id: {result['version_id']}")
    print(f"  row_count:  {result['row_count']}")


if __name__ == "__main__":
    main()
