#!/usr/bin/env python3
# ============================================================================
# CLI REFERENCE GRID IMPORT TOOL
# ============================================================================
# EPOCH: 1 - IRRADIANCE RESOLUTION
# STATUS: Tool - Upload a reference grid through the import endpoint
# PURPOSE: init → chunked batches → finalize, abort on failure
# CREATED: 16 SEP 2026
# ============================================================================
"""
Upload a GHI (and optional DHI) grid CSV as a new dataset version.

Drives the same protocol an admin client uses:
1. init      → version_id, dataset_id (version is 'processing')
2. batch × N → rows in chunks, retried when the server never saw the
                request or answered 5xx; never resent when the outcome
                is unknown (read timeout, dropped connection)
3. finalize  → row count + checksum; the version becomes active
On any failure after init the version is aborted so its tag can be reused.

Usage:
    # GHI only (dhi defaults to 0)
    python tools/import_grid.py ghi.csv --dataset INPE_2017_SUNDATA

    # GHI + DHI, explicit tag
    python tools/import_grid.py ghi.csv --dhi dhi.csv --tag atlas-2017-rev2

    # Parse and checksum only
    python tools/import_grid.py ghi.csv --dry-run

Requires:
    IRRADIANCE_API_URL   (default http://localhost:8000)
    IRRADIANCE_API_TOKEN bearer token accepted by the service
"""

import argparse
import os
import sys
import time
from datetime import datetime, timezone
from typing import Any, Callable, Dict, List, Optional, Sequence

import httpx

# Add project root to path
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from core.config import BoundingBox
from tools.csv_grid import (
    CsvGridError,
    checksum,
    explode_rows,
    key_overlap,
    merge_grids,
    parse_grid_csv,
)

IMPORT_PATH = "/api/v1/irradiance/import"
DEFAULT_CHUNK_SIZE = 500
DEFAULT_RETRIES = 3

# Raised before the request body left this process
UNSENT_ERRORS = (httpx.ConnectError, httpx.ConnectTimeout, httpx.PoolTimeout)
# A proxy gave up waiting; the service may still have committed
UNCONFIRMED_STATUSES = frozenset({504})


class ImportFailed(Exception):
    """A step of the import protocol was rejected or could not be delivered."""

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.status_code = status_code


def default_version_tag(now: Optional[datetime] = None) -> str:
    now = now or datetime.now(timezone.utc)
    return now.strftime("atlas-import-%Y%m%d-%H%M")


def parse_bbox(text: str) -> BoundingBox:
    """'lat_min,lat_max,lon_min,lon_max' → BoundingBox."""
    parts = [p.strip() for p in text.split(",")]
    if len(parts) != 4:
        raise argparse.ArgumentTypeError("bbox needs lat_min,lat_max,lon_min,lon_max")
    try:
        lat_min, lat_max, lon_min, lon_max = (float(p) for p in parts)
    except ValueError:
        raise argparse.ArgumentTypeError(f"bbox values must be numbers: {text}")
    return BoundingBox(lat_min, lat_max, lon_min, lon_max)


def chunked(rows: Sequence[Dict[str, Any]], size: int) -> List[Sequence[Dict[str, Any]]]:
    return [rows[i:i + size] for i in range(0, len(rows), size)]


class ImportClient:
    """Posts import actions; retries only what is safe to retry."""

    def __init__(
        self,
        client: httpx.Client,
        retries: int = DEFAULT_RETRIES,
        backoff_seconds: float = 1.0,
        sleep: Callable[[float], None] = time.sleep,
    ):
        self.client = client
        self.retries = retries
        self.backoff_seconds = backoff_seconds
        self.sleep = sleep

    def post(self, payload: Dict[str, Any], retry: bool = True,
             resend_unconfirmed: bool = False) -> Dict[str, Any]:
        """
        POST one action.

        A request that never reached the server (connect failure) or that
        the server answered with a 5xx (its transaction rolled back) is
        retried with linear backoff ((attempt + 1) * backoff_seconds).
        A failure after the request went out (read timeout, dropped
        connection, 504 from a proxy) leaves the outcome unknown; it is
        only resent when resend_unconfirmed is set, since a committed batch
        sent twice would break the finalize row count. 4xx fails
        immediately.

        Raises:
            ImportFailed: rejected, undeliverable, or of unknown outcome
        """
        attempts = self.retries + 1 if retry else 1
        last_error = "no attempt made"
        last_status: Optional[int] = None

        for attempt in range(attempts):
            try:
                response = self.client.post(IMPORT_PATH, json=payload)
            except httpx.TransportError as e:
                last_error, last_status = f"transport error: {e}", None
                if not isinstance(e, UNSENT_ERRORS) and not resend_unconfirmed:
                    last_error = f"outcome unknown after {type(e).__name__}: {e}"
                    break
            else:
                if response.is_success:
                    return response.json()
                last_error, last_status = _error_message(response), response.status_code
                if response.status_code < 500:
                    break
                if response.status_code in UNCONFIRMED_STATUSES and not resend_unconfirmed:
                    last_error = f"outcome unknown ({last_error})"
                    break

            if attempt + 1 < attempts:
                wait = (attempt + 1) * self.backoff_seconds
                print(
                    f"  {payload['action']} attempt {attempt + 1} failed ({last_error}); "
                    f"retrying in {wait:.0f}s",
                    file=sys.stderr,
                )
                self.sleep(wait)

        raise ImportFailed(f"{payload['action']}: {last_error}", last_status)


def _error_message(response: httpx.Response) -> str:
    try:
        body = response.json()
    except ValueError:
        return f"HTTP {response.status_code}"
    if isinstance(body, dict) and "error" in body:
        return f"HTTP {response.status_code}: {body['error']}"
    return f"HTTP {response.status_code}: {body}"


def run_import(
    api: ImportClient,
    dataset_code: str,
    version_tag: str,
    rows: Sequence[Dict[str, Any]],
    row_checksum: str,
    has_dhi: bool,
    source_note: Optional[str] = None,
    file_names: Optional[List[str]] = None,
    chunk_size: int = DEFAULT_CHUNK_SIZE,
) -> Dict[str, Any]:
    """
    Run init → batch → finalize.

    Init is not retried: a lost response would leave a processing version
    holding the tag, and the retry would then conflict with it.

    Returns:
        {"version_id", "dataset_id", "row_count"}

    Raises:
        ImportFailed: the failing step; the version has been aborted
    """
    init = api.post(
        {
            "action": "init",
            "dataset_code": dataset_code,
            "version_tag": version_tag,
            "source_note": source_note,
            "file_names": file_names,
        },
        retry=False,
    )
    version_id, dataset_id = init["version_id"], init["dataset_id"]
    print(f"Initialized version {version_id} ({dataset_code}/{version_tag})")

    try:
        sent = 0
        batches = chunked(rows, chunk_size)
        for index, batch in enumerate(batches, start=1):
            result = api.post({"action": "batch", "version_id": version_id, "rows": list(batch)})
            sent += result["inserted"]
            print(f"  batch {index}/{len(batches)}: {sent}/{len(rows)} rows")

        final = api.post({
            "action": "finalize",
            "version_id": version_id,
            "dataset_id": dataset_id,
            "row_count": len(rows),
            "checksum": row_checksum,
            "has_dhi": has_dhi,
            "has_dni": False,
        })
    except ImportFailed as e:
        _abort(api, version_id, str(e))
        raise

    return {"version_id": version_id, "dataset_id": dataset_id, "row_count": final["row_count"]}


def _abort(api: ImportClient, version_id: str, reason: str) -> None:
    print(f"Aborting version {version_id}: {reason}", file=sys.stderr)
    try:
        api.post(
            {"action": "abort", "version_id": version_id, "error": reason[:2000]},
            resend_unconfirmed=True,
        )
    except ImportFailed as e:
        print(
            f"WARNING: abort failed ({e}); the version stays 'processing' until "
            f"POST /api/v1/irradiance/versions/reclaim",
            file=sys.stderr,
        )


def _read(path: str) -> str:
    # utf-8-sig drops the BOM spreadsheet exports tend to add
    with open(path, encoding="utf-8-sig") as handle:
        return handle.read()


def main():
    parser = argparse.ArgumentParser(
        description="Import a monthly GHI/DHI grid as a new dataset version",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  %(prog)s ghi.csv --dataset INPE_2017_SUNDATA
  %(prog)s ghi.csv --dhi dhi.csv --tag atlas-2017-rev2 --note "INPE 2ª ed."
  %(prog)s ghi.csv --bbox -40,12,-80,-30 --dry-run
        """,
    )
    parser.add_argument("ghi_csv", help="Wide GHI grid (LAT, LON, 12 month columns)")
    parser.add_argument("--dhi", help="Wide DHI grid with the same coordinates")
    parser.add_argument(
        "--dataset", "-d",
        default="INPE_2017_SUNDATA",
        help="Dataset code (default: INPE_2017_SUNDATA)",
    )
    parser.add_argument("--tag", help="Version tag (default: atlas-import-YYYYMMDD-HHMM)")
    parser.add_argument("--note", help="Free-text source note stored on the version")
    parser.add_argument(
        "--bbox",
        type=parse_bbox,
        help="Keep only points inside lat_min,lat_max,lon_min,lon_max",
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
        help=(
            f"Retries per request on connect failures / 5xx (default: {DEFAULT_RETRIES}); "
            f"a batch whose outcome is unknown is not resent, the version is aborted"
        ),
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
        help="Per-request timeout in seconds (default: 60)",
    )
    parser.add_argument("--dry-run", action="store_true", help="Parse and checksum only")

    args = parser.parse_args()

    if args.chunk_size <= 0:
        print("ERROR: --chunk-size must be positive", file=sys.stderr)
        sys.exit(1)

    try:
        ghi = parse_grid_csv(_read(args.ghi_csv), os.path.basename(args.ghi_csv), args.bbox)
        dhi = (
            parse_grid_csv(_read(args.dhi), os.path.basename(args.dhi), args.bbox)
            if args.dhi else None
        )
    except (OSError, CsvGridError) as e:
        print(f"ERROR: {e}", file=sys.stderr)
        sys.exit(1)

    for grid in (ghi, dhi):
        if grid is not None:
            print(f"{grid.name}: {len(grid.rows)} points, {grid.skipped} skipped, {grid.unit}")
    if not ghi.rows:
        print("ERROR: no valid points in the GHI file", file=sys.stderr)
        sys.exit(1)
    if dhi is not None:
        overlap = key_overlap(ghi, dhi)
        if overlap < 1.0:
            print(f"WARNING: GHI/DHI coordinate overlap is {overlap:.1%}; "
                  f"unmatched points get dhi=0", file=sys.stderr)

    rows = explode_rows(merge_grids(ghi, dhi))
    row_checksum = checksum(rows)
    version_tag = args.tag or default_version_tag()

    print(f"Prepared import:")
    print(f"  dataset:  {args.dataset}")
    print(f"  tag:      {version_tag}")
    print(f"  rows:     {len(rows)}")
    print(f"  checksum: {row_checksum}")
    print()

    if args.dry_run:
        return

    token = os.environ.get("IRRADIANCE_API_TOKEN")
    if not token:
        print("ERROR: Set IRRADIANCE_API_TOKEN", file=sys.stderr)
        sys.exit(1)

    file_names = [os.path.basename(p) for p in (args.ghi_csv, args.dhi) if p]
    headers = {"Authorization": f"Bearer {token}"}

    with httpx.Client(base_url=args.url, headers=headers, timeout=args.timeout) as client:
        try:
            result = run_import(
                ImportClient(client, retries=args.retries),
                dataset_code=args.dataset,
                version_tag=version_tag,
                rows=rows,
                row_checksum=row_checksum,
                has_dhi=dhi is not None,
                source_note=args.note,
                file_names=file_names,
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
