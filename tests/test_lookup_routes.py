# ============================================================================
# LOOKUP ROUTES TESTS
# ============================================================================
# EPOCH: 1 - IRRADIANCE RESOLUTION
# STATUS: Tests - Lookup endpoints, auth and error mapping
# PURPOSE: Verify api/lookup_routes.py with a mocked ResolutionService
# CREATED: 16 SEP 2026
# ============================================================================
"""
Lookup Routes Tests

FastAPI TestClient against the lookup router with the application's
exception handlers; the resolution service is an AsyncMock.

Run with:
    pytest tests/test_lookup_routes.py -v
"""

import pytest
from unittest.mock import AsyncMock

from fastapi import FastAPI
from fastapi.testclient import TestClient

from api.lookup_routes import router, set_lookup_services
from core.contracts import FailureReason, TierName
from core.errors import (
    CoverageError,
    NotFoundError,
    ResolutionExhaustedError,
    TierAttempt,
    UpstreamError,
    ValidationError,
)
from core.models.resolution import ResolutionResult, TierResult
from core.models.series import MonthlySeries
from main import register_exception_handlers


AUTH = {"Authorization": "Bearer test-token"}


# ============================================================================
# FIXTURES
# ============================================================================

@pytest.fixture(autouse=True)
def _tokens(monkeypatch):
    monkeypatch.setenv("API_TOKENS", "test-token,other-token")


def _make_test_app(resolution_service_mock):
    """Create a test FastAPI app with lookup routes and mocked service."""
    app = FastAPI()
    register_exception_handlers(app)
    app.include_router(router, prefix="/api/v1")
    set_lookup_services(resolution_service_mock)
    return app


def _make_result(tier=TierName.NSRDB, cache_hit=False):
    return ResolutionResult.from_tier(
        TierResult(
            tier=tier,
            series=MonthlySeries(ghi=[5.5] * 12, dhi=[2.0] * 12),
            point_lat=-15.05,
            point_lon=-47.02,
        ),
        cache_hit=cache_hit,
    )


# ============================================================================
# FALLBACK LOOKUP
# ============================================================================

class TestLookup:

    def test_happy_path(self):
        svc = AsyncMock()
        svc.resolve = AsyncMock(return_value=_make_result())
        client = TestClient(_make_test_app(svc))

        resp = client.post(
            "/api/v1/irradiance/lookup",
            json={"lat": -15.05, "lon": -47.02},
            headers={**AUTH, "X-Correlation-Id": "req-123"},
        )

        assert resp.status_code == 200
        data = resp.json()
        assert data["source"] == "nsrdb"
        assert data["source_tier"] == 1
        assert data["series"]["m01"] == 5.5
        assert data["annual_average"] == 5.5
        assert data["cache_hit"] is False
        svc.resolve.assert_called_once_with(
            -15.05, -47.02, dataset_code=None, version_id=None, correlation_id="req-123",
        )

    def test_audit_block_in_response(self):
        svc = AsyncMock()
        svc.resolve = AsyncMock(return_value=_make_result(cache_hit=True))
        client = TestClient(_make_test_app(svc))

        resp = client.post("/api/v1/irradiance/lookup", json={"lat": -15.05, "lon": -47.02}, headers=AUTH)

        audit = resp.json()["audit"]
        assert audit["irradiance_source"] == "nsrdb"
        assert audit["irradiance_source_tier"] == 1
        assert audit["irradiance_series"]["m12"] == 5.5
        assert audit["irradiance_cache_hit"] is True
        assert audit["irradiance_version_id"] is None

    def test_pinned_version_passed_through(self):
        svc = AsyncMock()
        svc.resolve = AsyncMock(return_value=_make_result(TierName.LOCAL_GRID))
        client = TestClient(_make_test_app(svc))

        client.post(
            "/api/v1/irradiance/lookup",
            json={"lat": -15.05, "lon": -47.02, "version_id": "v-1", "dataset_code": "INPE_2017_SUNDATA"},
            headers=AUTH,
        )
        kwargs = svc.resolve.call_args.kwargs
        assert kwargs["version_id"] == "v-1"
        assert kwargs["dataset_code"] == "INPE_2017_SUNDATA"

    def test_exhausted_is_502_with_attempts(self):
        svc = AsyncMock()
        svc.resolve = AsyncMock(side_effect=ResolutionExhaustedError([
            TierAttempt("nsrdb", FailureReason.OUT_OF_COVERAGE, "outside"),
            TierAttempt("nasa_power_api", FailureReason.UPSTREAM_ERROR, "timeout"),
            TierAttempt("local_grid", FailureReason.NOT_FOUND, "no active version"),
        ]))
        client = TestClient(_make_test_app(svc))

        resp = client.post("/api/v1/irradiance/lookup", json={"lat": 40.0, "lon": -3.7}, headers=AUTH)

        assert resp.status_code == 502
        body = resp.json()
        assert len(body["attempts"]) == 3
        assert body["attempts"][2]["reason"] == "not_found"

    def test_invalid_coordinates_400(self):
        svc = AsyncMock()
        svc.resolve = AsyncMock(side_effect=ValidationError("lat must be in [-90, 90], got 91.0"))
        client = TestClient(_make_test_app(svc))

        resp = client.post("/api/v1/irradiance/lookup", json={"lat": 91, "lon": 0}, headers=AUTH)

        assert resp.status_code == 400
        assert "lat" in resp.json()["error"]

    def test_missing_field_400(self):
        client = TestClient(_make_test_app(AsyncMock()))
        resp = client.post("/api/v1/irradiance/lookup", json={"lat": -15.0}, headers=AUTH)
        assert resp.status_code == 400
        assert resp.json()["error"].startswith("lon")

    def test_service_not_initialized_503(self):
        app = _make_test_app(AsyncMock())
        set_lookup_services(None)
        resp = TestClient(app).post("/api/v1/irradiance/lookup", json={"lat": 0, "lon": 0}, headers=AUTH)
        assert resp.status_code == 503


# ============================================================================
# SINGLE-TIER LOOKUPS
# ============================================================================

class TestSingleTier:

    @pytest.mark.parametrize("path,tier", [
        ("nsrdb-lookup", TierName.NSRDB),
        ("nasa-power-lookup", TierName.NASA_POWER),
        ("local-lookup", TierName.LOCAL_GRID),
    ])
    def test_routes_to_tier(self, path, tier):
        svc = AsyncMock()
        svc.resolve_tier = AsyncMock(return_value=_make_result(tier))
        client = TestClient(_make_test_app(svc))

        resp = client.post(f"/api/v1/irradiance/{path}", json={"lat": -15.0, "lon": -47.0}, headers=AUTH)

        assert resp.status_code == 200
        assert resp.json()["source"] == tier.value
        assert svc.resolve_tier.call_args.args[0] == tier

    def test_out_of_coverage_400(self):
        svc = AsyncMock()
        svc.resolve_tier = AsyncMock(side_effect=CoverageError("Coordinates outside nsrdb coverage area"))
        client = TestClient(_make_test_app(svc))

        resp = client.post("/api/v1/irradiance/nsrdb-lookup", json={"lat": 40.0, "lon": -3.7}, headers=AUTH)

        assert resp.status_code == 400
        assert "coverage" in resp.json()["error"]

    def test_upstream_error_502(self):
        svc = AsyncMock()
        svc.resolve_tier = AsyncMock(side_effect=UpstreamError("nasa_power_api API error: 500", 500))
        client = TestClient(_make_test_app(svc))
        resp = client.post("/api/v1/irradiance/nasa-power-lookup", json={"lat": 0, "lon": 0}, headers=AUTH)
        assert resp.status_code == 502

    def test_no_active_version_404(self):
        svc = AsyncMock()
        svc.resolve_tier = AsyncMock(side_effect=NotFoundError("Dataset 'X' has no active version"))
        client = TestClient(_make_test_app(svc))
        resp = client.post("/api/v1/irradiance/local-lookup", json={"lat": 0, "lon": 0}, headers=AUTH)
        assert resp.status_code == 404


# ============================================================================
# AUTH
# ============================================================================

class TestAuth:

    def test_missing_header_401(self):
        svc = AsyncMock()
        client = TestClient(_make_test_app(svc))
        resp = client.post("/api/v1/irradiance/lookup", json={"lat": 0, "lon": 0})
        assert resp.status_code == 401
        svc.resolve.assert_not_called()

    def test_wrong_scheme_401(self):
        client = TestClient(_make_test_app(AsyncMock()))
        resp = client.post(
            "/api/v1/irradiance/lookup", json={"lat": 0, "lon": 0},
            headers={"Authorization": "Basic dXNlcjpwYXNz"},
        )
        assert resp.status_code == 401

    def test_unknown_token_401(self):
        client = TestClient(_make_test_app(AsyncMock()))
        resp = client.post(
            "/api/v1/irradiance/lookup", json={"lat": 0, "lon": 0},
            headers={"Authorization": "Bearer nope"},
        )
        assert resp.status_code == 401
        assert resp.json()["error"] == "Invalid bearer token"

    def test_open_mode_accepts_any_bearer(self, monkeypatch):
        monkeypatch.delenv("API_TOKENS", raising=False)
        svc = AsyncMock()
        svc.resolve = AsyncMock(return_value=_make_result())
        client = TestClient(_make_test_app(svc))

        resp = client.post(
            "/api/v1/irradiance/lookup", json={"lat": 0, "lon": 0},
            headers={"Authorization": "Bearer anything"},
        )
        assert resp.status_code == 200
