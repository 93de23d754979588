# ============================================================================
# NASA POWER GRID FETCH TESTS
# ============================================================================
# EPOCH: 1 - IRRADIANCE RESOLUTION
# STATUS: Tests - Grid generation, bounded sampling, upload
# PURPOSE: Verify tools/fetch_power_grid.py against mocked HTTP transports
# CREATED: 18 SEP 2026
# ============================================================================
"""
NASA POWER Grid Fetch Tests

Upstream climatology calls go through httpx.MockTransport on an
AsyncClient; the import endpoint is a recording MockTransport on a sync
Client. No network.

Run with:
    pytest tests/test_fetch_power_grid.py -v
"""

import asyncio
import json

import httpx
import pytest

from core.config import BoundingBox, TierDefaults
from core.contracts import TierName
from core.errors import UpstreamError
from core.models.resolution import TierResult
from core.models.series import MonthlySeries
from services.resolvers import NasaPowerResolver, TierResolver
from tools.csv_grid import checksum, explode_rows
from tools.fetch_power_grid import (
    GridSample,
    default_version_tag,
    grid_points,
    import_sample,
    sample_grid,
)
from tools.import_grid import ImportClient, ImportFailed

MONTHS = ("JAN", "FEB", "MAR", "APR", "MAY", "JUN",
          "JUL", "AUG", "SEP", "OCT", "NOV", "DEC")


def _power_handler(fail_lats=()):
    """Climatology double: GHI = 5 + |lat| / 10, DHI = 2; 500 for fail_lats."""
    seen = []

    def handler(request):
        lat = float(request.url.params["latitude"])
        lon = float(request.url.params["longitude"])
        seen.append((lat, lon))
        if lat in fail_lats:
            return httpx.Response(500, text="upstream exploded")
        ghi = round(5.0 + abs(lat) / 10, 4)
        return httpx.Response(200, json={"properties": {"parameter": {
            "ALLSKY_SFC_SW_DWN": {**{m: ghi for m in MONTHS}, "ANN": ghi},
            "ALLSKY_SFC_SW_DIFF": {m: 2.0 for m in MONTHS},
        }}})

    handler.seen = seen
    return handler


def _sample(points, handler, concurrency=2, sleep=None):
    async def run():
        transport = httpx.MockTransport(handler)
        async with httpx.AsyncClient(transport=transport) as client:
            resolver = NasaPowerResolver(TierDefaults(), client=client)
            return await sample_grid(
                resolver, points, concurrency=concurrency, pause_seconds=0.4,
                sleep=sleep or _no_sleep,
            )

    return asyncio.run(run())


async def _no_sleep(seconds):
    return None


# ============================================================================
# GRID
# ============================================================================

class TestGridPoints:

    def test_edges_inclusive_row_major(self):
        points = grid_points(BoundingBox(-1.0, 0.0, -1.0, 0.0), 0.5)
        assert len(points) == 9
        assert points[0] == (-1.0, -1.0)
        assert points[1] == (-1.0, -0.5)
        assert points[-1] == (0.0, 0.0)

    def test_no_float_drift_at_the_far_edge(self):
        points = grid_points(BoundingBox(-15.0, -14.0, -48.0, -47.0), 0.1)
        assert len(points) == 11 * 11
        assert points[-1] == (-14.0, -47.0)

    def test_partial_step_stops_inside_box(self):
        points = grid_points(BoundingBox(0.0, 1.2, 0.0, 0.0), 0.5)
        assert [lat for lat, _ in points] == [0.0, 0.5, 1.0]

    def test_invalid_arguments(self):
        with pytest.raises(ValueError, match="step"):
            grid_points(BoundingBox(0.0, 1.0, 0.0, 1.0), 0)
        with pytest.raises(ValueError, match="empty"):
            grid_points(BoundingBox(1.0, 0.0, 0.0, 1.0), 0.5)

    def test_default_version_tag(self):
        from datetime import datetime, timezone
        tag = default_version_tag(datetime(2026, 9, 18, 7, 30, tzinfo=timezone.utc))
        assert tag == "power-grid-20260918-0730"


# ============================================================================
# SAMPLING
# ============================================================================

class TestSampleGrid:

    def test_every_point_sampled_through_nasa_power(self):
        points = grid_points(BoundingBox(-1.0, 0.0, -1.0, 0.0), 0.5)
        handler = _power_handler()

        sample = _sample(points, handler)

        assert sample.attempted == 9
        assert sample.errors == 0
        assert sorted(handler.seen) == sorted(points)
        first = sample.points[0]
        assert first["ghi"] == [5.1] * 12
        assert first["dhi"] == [2.0] * 12
        assert sample.has_dhi is True

    def test_failed_points_counted_and_skipped(self):
        points = [(-1.0, -47.0), (-2.0, -47.0), (-3.0, -47.0)]

        sample = _sample(points, _power_handler(fail_lats={-2.0}))

        assert sample.errors == 1
        assert [p["lat"] for p in sample.points] == [-1.0, -3.0]
        assert sample.error_ratio == pytest.approx(1 / 3)

    def test_pause_between_groups_only(self):
        waits = []

        async def record(seconds):
            waits.append(seconds)

        points = [(float(-i), -47.0) for i in range(5)]
        _sample(points, _power_handler(), concurrency=2, sleep=record)

        assert waits == [0.4, 0.4]

    def test_in_flight_requests_bounded(self):

        class _Tracking(TierResolver):
            tier = TierName.NASA_POWER

            def __init__(self):
                self.in_flight = 0
                self.peak = 0

            async def resolve(self, lat, lon, dataset_code=None, version_id=None):
                self.in_flight += 1
                self.peak = max(self.peak, self.in_flight)
                await asyncio.sleep(0)
                self.in_flight -= 1
                return TierResult(
                    tier=self.tier,
                    series=MonthlySeries(ghi=[5.0] * 12, dhi=[0.0] * 12),
                    point_lat=lat,
                    point_lon=lon,
                )

        resolver = _Tracking()
        points = [(float(-i), -47.0) for i in range(10)]
        sample = asyncio.run(sample_grid(resolver, points, concurrency=3, sleep=_no_sleep))

        assert resolver.peak == 3
        assert len(sample.points) == 10
        assert sample.has_dhi is False

    def test_unexpected_errors_propagate(self):

        class _Broken(TierResolver):
            tier = TierName.NASA_POWER

            async def resolve(self, lat, lon, dataset_code=None, version_id=None):
                raise RuntimeError("bug")

        with pytest.raises(RuntimeError):
            asyncio.run(sample_grid(_Broken(), [(0.0, 0.0)], sleep=_no_sleep))

    def test_shared_client_errors_become_upstream_errors(self):
        async def run():
            transport = httpx.MockTransport(_power_handler(fail_lats={0.0}))
            async with httpx.AsyncClient(transport=transport) as client:
                return await NasaPowerResolver(TierDefaults(), client=client).resolve(0.0, 0.0)

        with pytest.raises(UpstreamError) as exc_info:
            asyncio.run(run())
        assert exc_info.value.status_code == 500


# ============================================================================
# UPLOAD
# ============================================================================

class _ImportEndpoint:
    """Accepts every import action and records the payloads."""

    def __init__(self):
        self.calls = []

    def __call__(self, request):
        payload = json.loads(request.content)
        self.calls.append(payload)
        action = payload["action"]
        if action == "init":
            return httpx.Response(200, json={"version_id": "v-9", "dataset_id": "ds-3"})
        if action == "batch":
            return httpx.Response(200, json={"inserted": len(payload["rows"])})
        if action == "finalize":
            return httpx.Response(200, json={"version_id": "v-9", "row_count": payload["row_count"]})
        return httpx.Response(200, json={"success": True})


def _import_api(endpoint):
    client = httpx.Client(transport=httpx.MockTransport(endpoint), base_url="http://irradiance.test")
    return ImportClient(client, retries=0, sleep=lambda seconds: None)


class TestImportSample:

    def test_uploads_as_new_version(self):
        sample = _sample([(-1.0, -47.0), (-2.0, -47.0)], _power_handler())
        endpoint = _ImportEndpoint()

        result = import_sample(
            _import_api(endpoint), sample, "NASA_POWER_GLOBAL", "power-2026",
            source_note="grid", chunk_size=10,
        )

        assert result == {"version_id": "v-9", "dataset_id": "ds-3", "row_count": 24}
        actions = [c["action"] for c in endpoint.calls]
        assert actions == ["init", "batch", "batch", "batch", "finalize"]
        assert endpoint.calls[0]["dataset_code"] == "NASA_POWER_GLOBAL"
        assert endpoint.calls[0]["source_note"] == "grid"

        finalize = endpoint.calls[-1]
        assert finalize["checksum"] == checksum(explode_rows(sample.points))
        assert finalize["has_dhi"] is True

    def test_empty_sample_never_inits(self):
        endpoint = _ImportEndpoint()
        with pytest.raises(ImportFailed, match="no grid point"):
            import_sample(_import_api(endpoint), GridSample(attempted=4, errors=4), "D", "t")
        assert endpoint.calls == []
