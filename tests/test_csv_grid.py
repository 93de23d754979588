# ============================================================================
# GRID CSV + IMPORT TOOL TESTS
# ============================================================================
# EPOCH: 1 - IRRADIANCE RESOLUTION
# STATUS: Tests - Operator tooling
# PURPOSE: Verify tools/csv_grid.py parsing and tools/import_grid.py protocol
# CREATED: 16 SEP 2026
# ============================================================================
"""
Grid CSV + Import Tool Tests

CSV parsing is pure. The import client runs against httpx.MockTransport,
so the init → batch → finalize / abort sequence is checked without a
server.

Run with:
    pytest tests/test_csv_grid.py -v
"""

import json

import httpx
import pytest

from core.config import BoundingBox
from tools.csv_grid import (
    CsvGridError,
    checksum,
    detect_delimiter,
    explode_rows,
    key_overlap,
    merge_grids,
    parse_grid_csv,
    parse_number,
)
from tools.import_grid import (
    ImportClient,
    ImportFailed,
    chunked,
    default_version_tag,
    parse_bbox,
    run_import,
)


PT_HEADER = "LAT;LON;JAN;FEV;MAR;ABR;MAI;JUN;JUL;AGO;SET;OUT;NOV;DEZ"
EN_HEADER = "latitude,longitude,m01,m02,m03,m04,m05,m06,m07,m08,m09,m10,m11,m12"


def _pt_line(lat, lon, value):
    return ";".join([lat, lon] + [value] * 12)


# ============================================================================
# PARSING
# ============================================================================

class TestParsing:

    def test_detect_delimiter(self):
        assert detect_delimiter(PT_HEADER) == ";"
        assert detect_delimiter(EN_HEADER) == ","

    def test_parse_number_decimal_comma(self):
        assert parse_number("-15,05") == -15.05
        assert parse_number(' "5.8" ') == 5.8
        with pytest.raises(CsvGridError):
            parse_number("n/a")

    def test_portuguese_semicolon_file(self):
        text = "\n".join([PT_HEADER, _pt_line("-15,05", "-47,02", "5,8")])
        grid = parse_grid_csv(text, "ghi.csv")

        assert len(grid.rows) == 1
        row = grid.rows[0]
        assert (row.lat, row.lon) == (-15.05, -47.02)
        assert row.months == (5.8,) * 12
        assert not grid.converted_from_wh

    def test_english_comma_file(self):
        text = EN_HEADER + "\n" + ",".join(["-15.0", "-47.0"] + ["6.1"] * 12)
        grid = parse_grid_csv(text)
        assert grid.rows[0].months[11] == 6.1

    def test_full_month_names_any_order(self):
        names = ["december", "january", "february", "march", "april", "may", "june",
                 "july", "august", "september", "october", "november"]
        header = "lon,lat," + ",".join(names)
        values = ["12"] + [str(m) for m in range(1, 12)]
        text = header + "\n" + ",".join(["-47", "-15"] + values)

        row = parse_grid_csv(text).rows[0]

        assert (row.lat, row.lon) == (-15.0, -47.0)
        assert row.months == tuple(float(m) for m in range(1, 13))

    def test_wh_values_converted(self):
        text = "\n".join([PT_HEADER, _pt_line("-15", "-47", "5800")])
        grid = parse_grid_csv(text)
        assert grid.converted_from_wh
        assert grid.rows[0].months[0] == pytest.approx(5.8)

    def test_invalid_lines_skipped(self):
        text = "\n".join([
            PT_HEADER,
            _pt_line("-15", "-47", "5,5"),
            _pt_line("x", "-47", "5,5"),
            "-15;-47;1;2",
            _pt_line("-95", "-47", "5,5"),
            "",
        ])
        grid = parse_grid_csv(text)
        assert len(grid.rows) == 1
        assert grid.skipped == 3

    def test_bbox_filter(self):
        text = "\n".join([
            PT_HEADER,
            _pt_line("-15", "-47", "5,5"),
            _pt_line("40", "-3", "5,5"),
        ])
        grid = parse_grid_csv(text, bbox=BoundingBox(-40.0, 12.0, -80.0, -30.0))
        assert [(r.lat, r.lon) for r in grid.rows] == [(-15.0, -47.0)]
        assert grid.skipped == 1

    def test_missing_coordinate_columns(self):
        with pytest.raises(CsvGridError, match="LAT/LON"):
            parse_grid_csv("x;y;jan\n1;2;3")

    def test_missing_month_columns(self):
        with pytest.raises(CsvGridError, match="12 month columns"):
            parse_grid_csv("lat;lon;jan;feb\n1;2;3;4")

    def test_header_only(self):
        with pytest.raises(CsvGridError, match="empty"):
            parse_grid_csv(PT_HEADER)


# ============================================================================
# MERGE / EXPLODE / CHECKSUM
# ============================================================================

def _grid(lines):
    return parse_grid_csv("\n".join([PT_HEADER] + lines))


class TestMergeAndExplode:

    def test_merge_matches_on_rounded_key(self):
        ghi = _grid([_pt_line("-15,00001", "-47", "5,5"), _pt_line("-16", "-48", "6")])
        dhi = _grid([_pt_line("-15", "-47,00002", "2")])

        points = merge_grids(ghi, dhi)

        assert len(points) == 2
        assert points[0]["dhi"] == [2.0] * 12
        assert points[1]["dhi"] is None
        assert key_overlap(ghi, dhi) == 0.5

    def test_explode_long_rows(self):
        rows = explode_rows(merge_grids(_grid([_pt_line("-15", "-47", "5,5")])))
        assert len(rows) == 12
        assert rows[0] == {"lat": -15.0, "lon": -47.0, "month": 1, "ghi": 5.5, "dhi": 0.0}
        assert rows[11]["month"] == 12

    def test_checksum_ignores_row_order(self):
        rows = explode_rows(merge_grids(_grid([
            _pt_line("-15", "-47", "5,5"), _pt_line("-16", "-48", "6"),
        ])))
        assert checksum(rows) == checksum(list(reversed(rows)))
        assert len(checksum(rows)) == 64

    def test_checksum_sensitive_to_values(self):
        a = explode_rows(merge_grids(_grid([_pt_line("-15", "-47", "5,5")])))
        b = explode_rows(merge_grids(_grid([_pt_line("-15", "-47", "5,6")])))
        assert checksum(a) != checksum(b)


# ============================================================================
# IMPORT CLIENT
# ============================================================================

class _FakeServer:
    """Records requests; answers each action with a scripted response."""

    def __init__(self, fail=None):
        self.calls = []
        self.fail = fail or {}

    def __call__(self, request):
        payload = json.loads(request.content)
        action = payload["action"]
        self.calls.append(payload)

        scripted = self.fail.get(action)
        if scripted:
            status = scripted.pop(0)
            if isinstance(status, Exception):
                raise status
            return httpx.Response(status, json={"error": f"{action} failed"})

        if action == "init":
            return httpx.Response(200, json={"version_id": "v-1", "dataset_id": "ds-1"})
        if action == "batch":
            return httpx.Response(200, json={"inserted": len(payload["rows"])})
        if action == "finalize":
            return httpx.Response(200, json={"version_id": "v-1", "row_count": payload["row_count"]})
        return httpx.Response(200, json={"success": True})

    def actions(self):
        return [c["action"] for c in self.calls]


def _api(server, retries=2):
    client = httpx.Client(transport=httpx.MockTransport(server), base_url="http://irradiance.test")
    return ImportClient(client, retries=retries, sleep=lambda seconds: None)


def _rows(n):
    return [{"lat": -15.0, "lon": -47.0 - i, "month": 1, "ghi": 5.5, "dhi": 0.0} for i in range(n)]


class TestImportClient:

    def test_full_sequence(self):
        server = _FakeServer()
        rows = _rows(5)

        result = run_import(_api(server), "INPE_2017_SUNDATA", "2017", rows, "abc", False, chunk_size=2)

        assert result == {"version_id": "v-1", "dataset_id": "ds-1", "row_count": 5}
        assert server.actions() == ["init", "batch", "batch", "batch", "finalize"]
        finalize = server.calls[-1]
        assert finalize["row_count"] == 5
        assert finalize["checksum"] == "abc"
        assert finalize["dataset_id"] == "ds-1"

    def test_batch_retried_on_5xx(self):
        server = _FakeServer(fail={"batch": [503]})
        run_import(_api(server), "D", "t", _rows(2), "abc", False, chunk_size=2)
        assert server.actions() == ["init", "batch", "batch", "finalize"]

    def test_batch_retried_on_transport_error(self):
        request = httpx.Request("POST", "http://irradiance.test/")
        server = _FakeServer(fail={"batch": [httpx.ConnectError("reset", request=request)]})
        run_import(_api(server), "D", "t", _rows(1), "abc", False)
        assert server.actions() == ["init", "batch", "batch", "finalize"]

    def test_batch_not_resent_when_outcome_unknown(self):
        # The server may have committed the chunk before the read timed out
        request = httpx.Request("POST", "http://irradiance.test/")
        server = _FakeServer(fail={"batch": [httpx.ReadTimeout("slow", request=request)]})

        with pytest.raises(ImportFailed, match="outcome unknown"):
            run_import(_api(server), "D", "t", _rows(1), "abc", False)

        assert server.actions() == ["init", "batch", "abort"]

    def test_batch_not_resent_after_gateway_timeout(self):
        server = _FakeServer(fail={"batch": [504]})

        with pytest.raises(ImportFailed) as exc_info:
            run_import(_api(server), "D", "t", _rows(1), "abc", False)

        assert exc_info.value.status_code == 504
        assert server.actions() == ["init", "batch", "abort"]

    def test_abort_resent_when_outcome_unknown(self):
        request = httpx.Request("POST", "http://irradiance.test/")
        server = _FakeServer(fail={
            "batch": [400],
            "abort": [httpx.ReadError("dropped", request=request)],
        })

        with pytest.raises(ImportFailed):
            run_import(_api(server), "D", "t", _rows(1), "abc", False)

        assert server.actions() == ["init", "batch", "abort", "abort"]

    def test_4xx_not_retried_and_aborts(self):
        server = _FakeServer(fail={"batch": [400]})
        with pytest.raises(ImportFailed) as exc_info:
            run_import(_api(server), "D", "t", _rows(3), "abc", False)

        assert exc_info.value.status_code == 400
        assert server.actions() == ["init", "batch", "abort"]
        assert server.calls[-1]["version_id"] == "v-1"

    def test_retries_exhausted_aborts(self):
        server = _FakeServer(fail={"finalize": [502, 502, 502]})
        with pytest.raises(ImportFailed):
            run_import(_api(server, retries=2), "D", "t", _rows(1), "abc", False)
        assert server.actions() == ["init", "batch", "finalize", "finalize", "finalize", "abort"]

    def test_init_not_retried(self):
        server = _FakeServer(fail={"init": [503]})
        with pytest.raises(ImportFailed, match="init"):
            run_import(_api(server), "D", "t", _rows(1), "abc", False)
        assert server.actions() == ["init"]

    def test_linear_backoff(self):
        waits = []
        server = _FakeServer(fail={"batch": [500, 500]})
        client = httpx.Client(transport=httpx.MockTransport(server), base_url="http://irradiance.test")
        api = ImportClient(client, retries=3, backoff_seconds=1.0, sleep=waits.append)

        api.post({"action": "batch", "version_id": "v-1", "rows": _rows(1)})

        assert waits == [1.0, 2.0]


class TestCliHelpers:

    def test_chunked(self):
        assert [len(c) for c in chunked(_rows(5), 2)] == [2, 2, 1]

    def test_default_version_tag_format(self):
        from datetime import datetime, timezone
        tag = default_version_tag(datetime(2026, 9, 16, 8, 5, tzinfo=timezone.utc))
        assert tag == "atlas-import-20260916-0805"

    def test_parse_bbox(self):
        assert parse_bbox("-40,12,-80,-30") == BoundingBox(-40.0, 12.0, -80.0, -30.0)
