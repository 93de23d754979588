# ============================================================================
# REFERENCE GRID CSV PARSER
# ============================================================================
# EPOCH: 1 - IRRADIANCE RESOLUTION
# STATUS: Tool - Parse atlas grid exports into import rows
# PURPOSE: Wide GHI/DHI CSVs → long (lat, lon, month, ghi, dhi) rows + checksum
# CREATED: 16 SEP 2026
# ============================================================================
"""
Reference Grid CSV Parser

Atlas exports are wide: one line per coordinate, twelve month columns.

    LAT;LON;JAN;FEV;MAR;...;DEZ
    -15,05;-47,02;5812;...;6020

Accepted:
- `;` or `,` delimiter (whichever appears more in the header)
- decimal commas when the delimiter is `;`
- month headers as m01..m12, English or Portuguese names/abbreviations
- Wh/m²/day values, auto-converted to kWh when the file mean exceeds 50

GHI and DHI files are merged on the 4-decimal coordinate key; coordinates
missing from the DHI file get dhi=0.
"""

import csv
import hashlib
import io
from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Mapping, Optional, Sequence, Tuple

from core.config import BoundingBox
from core.geo import round_key

MONTH_ALIASES: Dict[str, int] = {
    **{f"m{m:02d}": m for m in range(1, 13)},
    **{str(m): m for m in range(1, 13)},
    "jan": 1, "feb": 2, "mar": 3, "apr": 4, "may": 5, "jun": 6,
    "jul": 7, "aug": 8, "sep": 9, "oct": 10, "nov": 11, "dec": 12,
    "fev": 2, "abr": 4, "mai": 5, "ago": 8, "set": 9, "out": 10, "dez": 12,
    "january": 1, "february": 2, "march": 3, "april": 4, "june": 6,
    "july": 7, "august": 8, "september": 9, "october": 10, "november": 11, "december": 12,
    "janeiro": 1, "fevereiro": 2, "marco": 3, "março": 3, "abril": 4, "maio": 5,
    "junho": 6, "julho": 7, "agosto": 8, "setembro": 9, "outubro": 10,
    "novembro": 11, "dezembro": 12,
}

LAT_HEADERS = ("lat", "latitude")
LON_HEADERS = ("lon", "lng", "long", "longitude")

# Mean above this means the file is in Wh/m²/day
WH_THRESHOLD = 50.0


class CsvGridError(ValueError):
    """The file cannot be read as a monthly grid."""


@dataclass(frozen=True)
class GridRow:
    lat: float
    lon: float
    months: Tuple[float, ...]

    @property
    def key(self) -> Tuple[int, int]:
        return round_key(self.lat), round_key(self.lon)


@dataclass
class ParsedGrid:
    name: str
    rows: List[GridRow] = field(default_factory=list)
    skipped: int = 0
    converted_from_wh: bool = False

    @property
    def unit(self) -> str:
        return "Wh/m²/day → kWh/m²/day" if self.converted_from_wh else "kWh/m²/day"


def detect_delimiter(header_line: str) -> str:
    return ";" if header_line.count(";") > header_line.count(",") else ","


def parse_number(text: str) -> float:
    """Float from a cell, accepting a decimal comma."""
    cleaned = text.strip().strip("'\"").replace(",", ".")
    try:
        return float(cleaned)
    except ValueError:
        raise CsvGridError(f"Not a number: {text!r}")


def _normalize_header(header: str) -> str:
    return header.strip().strip("'\"").strip().lower()


def _locate_columns(headers: Sequence[str], name: str) -> Tuple[int, int, List[int]]:
    normalized = [_normalize_header(h) for h in headers]

    lat_idx = next((i for i, h in enumerate(normalized) if h in LAT_HEADERS), None)
    lon_idx = next((i for i, h in enumerate(normalized) if h in LON_HEADERS), None)
    if lat_idx is None or lon_idx is None:
        raise CsvGridError(f"{name}: LAT/LON columns not found in {normalized}")

    by_month: Dict[int, int] = {}
    for i, h in enumerate(normalized):
        if i in (lat_idx, lon_idx):
            continue
        month = MONTH_ALIASES.get(h)
        if month is not None and month not in by_month:
            by_month[month] = i
    if len(by_month) != 12:
        raise CsvGridError(
            f"{name}: expected 12 month columns, found {len(by_month)} in {normalized}"
        )
    return lat_idx, lon_idx, [by_month[m] for m in range(1, 13)]


def parse_grid_csv(text: str, name: str = "grid.csv",
                   bbox: Optional[BoundingBox] = None) -> ParsedGrid:
    """
    Parse one wide grid file.

    Lines with unparseable numbers or out-of-range coordinates are
    counted in `skipped`; a missing header is an error.

    Raises:
        CsvGridError: empty file, or LAT/LON/month columns not found
    """
    lines = [line for line in text.splitlines() if line.strip()]
    if len(lines) < 2:
        raise CsvGridError(f"{name}: empty file or header only")

    delimiter = detect_delimiter(lines[0])
    reader = csv.reader(io.StringIO("\n".join(lines)), delimiter=delimiter)
    headers = next(reader)
    lat_idx, lon_idx, month_idx = _locate_columns(headers, name)
    width = max(lat_idx, lon_idx, *month_idx) + 1

    parsed = ParsedGrid(name=name)
    for cells in reader:
        if len(cells) < width:
            parsed.skipped += 1
            continue
        try:
            lat = parse_number(cells[lat_idx])
            lon = parse_number(cells[lon_idx])
            months = tuple(parse_number(cells[i]) for i in month_idx)
        except CsvGridError:
            parsed.skipped += 1
            continue
        if not (-90.0 <= lat <= 90.0 and -180.0 <= lon <= 180.0):
            parsed.skipped += 1
            continue
        if bbox is not None and not bbox.contains(lat, lon):
            parsed.skipped += 1
            continue
        parsed.rows.append(GridRow(lat, lon, months))

    values = [v for row in parsed.rows for v in row.months]
    if values and sum(values) / len(values) > WH_THRESHOLD:
        parsed.converted_from_wh = True
        parsed.rows = [
            GridRow(r.lat, r.lon, tuple(v / 1000.0 for v in r.months)) for r in parsed.rows
        ]
    return parsed


def merge_grids(ghi: ParsedGrid, dhi: Optional[ParsedGrid] = None) -> List[Dict[str, object]]:
    """
    Wide points keyed by coordinate: {lat, lon, ghi: [12], dhi: [12] | None}.

    Later duplicates of a coordinate in the GHI file replace earlier ones.
    """
    dhi_by_key = {row.key: row for row in dhi.rows} if dhi is not None else {}

    merged: Dict[Tuple[int, int], Dict[str, object]] = {}
    for row in ghi.rows:
        match = dhi_by_key.get(row.key)
        merged[row.key] = {
            "lat": round(row.lat, 4),
            "lon": round(row.lon, 4),
            "ghi": list(row.months),
            "dhi": list(match.months) if match is not None else None,
        }
    return list(merged.values())


def key_overlap(ghi: ParsedGrid, dhi: ParsedGrid) -> float:
    """Fraction of coordinates present in both files (1.0 = identical sets)."""
    ghi_keys = {r.key for r in ghi.rows}
    dhi_keys = {r.key for r in dhi.rows}
    largest = max(len(ghi_keys), len(dhi_keys))
    if largest == 0:
        return 1.0
    return len(ghi_keys & dhi_keys) / largest


def explode_rows(points: Iterable[Mapping[str, object]]) -> List[Dict[str, float]]:
    """Wide points → one import row per (coordinate, month)."""
    rows: List[Dict[str, float]] = []
    for point in points:
        ghi = point["ghi"]
        dhi = point.get("dhi")
        for m in range(12):
            rows.append({
                "lat": point["lat"],
                "lon": point["lon"],
                "month": m + 1,
                "ghi": round(max(0.0, ghi[m]), 4),
                "dhi": round(max(0.0, dhi[m]), 4) if dhi is not None else 0.0,
            })
    return rows


def checksum(rows: Iterable[Mapping[str, object]]) -> str:
    """SHA-256 over the sorted canonical form of the rows."""
    canonical = sorted(
        f"{float(r['lat']):.4f}|{float(r['lon']):.4f}|{int(r['month'])}|"
        f"{float(r['ghi']):.4f}|{float(r.get('dhi') or 0.0):.4f}"
        for r in rows
    )
    digest = hashlib.sha256()
    for line in canonical:
        digest.update(line.encode("utf-8"))
        digest.update(b"\n")
    return digest.hexdigest()


__all__ = [
    "CsvGridError",
    "GridRow",
    "ParsedGrid",
    "MONTH_ALIASES",
    "detect_delimiter",
    "parse_number",
    "parse_grid_csv",
    "merge_grids",
    "key_overlap",
    "explode_rows",
    "checksum",
]
