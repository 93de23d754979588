# ============================================================================
# NSRDB CSV AGGREGATION
# ============================================================================
# EPOCH: 1 - IRRADIANCE RESOLUTION
# STATUS: Service - Pure parsing, no I/O
# PURPOSE: Reduce an NSRDB time series CSV to 12 monthly daily means
# CREATED: 15 SEP 2026
# ============================================================================
"""
NSRDB CSV Aggregation

The NSRDB download endpoint returns a CSV with one or two metadata lines
followed by a header row starting with "Year,Month,Day,Hour,Minute,..." and
one row per interval with irradiance in W/m².

Aggregation:
    energy per row   = max(0, W/m²) × interval_minutes / 60   (Wh/m²)
    daily total      = sum of row energies for (month, day)
    monthly value    = mean of daily totals over the days present / 1000
                       (kWh/m²/day), rounded to 4 decimals

A month with no rows is reported as 0.0 with coverage False.
"""

import csv
import io
import math
from collections import defaultdict
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Tuple

from core.models.series import MonthlySeries

HEADER_SCAN_LINES = 5


class CsvFormatError(ValueError):
    """CSV body does not have the NSRDB layout."""


@dataclass
class _DayTotals:
    ghi_wh: float = 0.0
    dhi_wh: float = 0.0


@dataclass
class AggregationStats:
    """Bookkeeping returned alongside the series (logged by the resolver)."""
    rows_read: int = 0
    rows_skipped: int = 0
    days_by_month: Dict[int, int] = field(default_factory=dict)


def _find_header(lines: List[str]) -> int:
    for idx, line in enumerate(lines[:HEADER_SCAN_LINES]):
        if line.startswith("Year,") or "Year,Month,Day" in line:
            return idx
    raise CsvFormatError("Could not find NSRDB CSV header")


def _parse_float(value: str) -> Optional[float]:
    try:
        parsed = float(value)
    except (TypeError, ValueError):
        return None
    return parsed if math.isfinite(parsed) else None


def _parse_int(value: str) -> Optional[int]:
    parsed = _parse_float(value)
    return int(parsed) if parsed is not None else None


def aggregate_nsrdb_csv(
    body: str,
    interval_minutes: int = 60,
) -> Tuple[MonthlySeries, AggregationStats]:
    """
    Parse an NSRDB CSV body into a MonthlySeries.

    Raises:
        CsvFormatError: header row or required columns missing
    """
    lines = body.splitlines()
    header_idx = _find_header(lines)

    reader = csv.reader(io.StringIO("\n".join(lines[header_idx:])))
    headers = [h.strip().lower() for h in next(reader)]

    try:
        month_idx = headers.index("month")
        day_idx = headers.index("day")
        ghi_idx = headers.index("ghi")
    except ValueError:
        raise CsvFormatError(
            f"NSRDB CSV missing required columns. Found: {', '.join(headers)}"
        )
    dhi_idx = headers.index("dhi") if "dhi" in headers else None

    hours_per_row = interval_minutes / 60.0
    totals: Dict[int, Dict[int, _DayTotals]] = defaultdict(dict)
    stats = AggregationStats()

    for cols in reader:
        if not cols or not any(c.strip() for c in cols):
            continue
        stats.rows_read += 1
        try:
            month = _parse_int(cols[month_idx])
            day = _parse_int(cols[day_idx])
            ghi = _parse_float(cols[ghi_idx])
            dhi = _parse_float(cols[dhi_idx]) if dhi_idx is not None else 0.0
        except IndexError:
            stats.rows_skipped += 1
            continue

        if month is None or day is None or ghi is None or not 1 <= month <= 12:
            stats.rows_skipped += 1
            continue

        day_totals = totals[month].setdefault(day, _DayTotals())
        day_totals.ghi_wh += max(0.0, ghi) * hours_per_row
        day_totals.dhi_wh += max(0.0, dhi or 0.0) * hours_per_row

    ghi_by_month: Dict[int, Optional[float]] = {}
    dhi_by_month: Dict[int, Optional[float]] = {}
    for month, days in totals.items():
        count = len(days)
        stats.days_by_month[month] = count
        ghi_by_month[month] = sum(d.ghi_wh for d in days.values()) / count / 1000.0
        dhi_by_month[month] = sum(d.dhi_wh for d in days.values()) / count / 1000.0

    return MonthlySeries.from_monthly(ghi_by_month, dhi_by_month), stats


__all__ = ["CsvFormatError", "AggregationStats", "aggregate_nsrdb_csv"]
