# ============================================================================
# SCHEMA GENERATION TESTS
# ============================================================================
# EPOCH: 1 - IRRADIANCE RESOLUTION
# STATUS: Tests - DDL generated from the Pydantic models
# PURPOSE: Verify tables, constraints and indexes without a database
# CREATED: 16 SEP 2026
# ============================================================================
"""
Schema Generation Tests

Renders the DDL produced by PydanticToSQL to strings and checks the
constraints the import pipeline and the cache rely on.

Run with:
    pytest tests/test_schema_generation.py -v
"""

import pytest

from core.models import CacheEntry, Dataset, DatasetVersion, IrradiancePoint
from core.schema.sql_generator import PydanticToSQL
from repositories.database import get_connection_string, mask_conninfo
from scripts.deploy_schema import SEED_DATASETS


def _render(statement) -> str:
    return statement.as_string(None)


@pytest.fixture
def generator():
    return PydanticToSQL(schema_name="irradiance")


@pytest.fixture
def all_ddl(generator):
    return [_render(s) for s in generator.generate_all()]


class TestTables:

    def test_every_table_created(self, all_ddl):
        joined = "\n".join(all_ddl)
        for table in ("datasets", "dataset_versions", "irradiance_points", "coordinate_cache"):
            assert f'"irradiance"."{table}"' in joined

    def test_schema_created_first(self, all_ddl):
        assert "CREATE SCHEMA" in all_ddl[0]

    def test_version_status_enum(self, generator, all_ddl):
        assert "version_status" in generator.enums
        enum_ddl = next(s for s in all_ddl if "version_status" in s and "ENUM" in s)
        for value in ("processing", "active", "deprecated", "failed"):
            assert f"'{value}'" in enum_ddl

    def test_dataset_version_foreign_key_restricts(self, generator):
        ddl = _render(generator.generate_table(DatasetVersion))
        assert 'REFERENCES "irradiance"."datasets" ("dataset_id") ON DELETE RESTRICT' in ddl

    def test_points_cascade_with_version(self, generator):
        ddl = _render(generator.generate_table(IrradiancePoint))
        assert 'REFERENCES "irradiance"."dataset_versions" ("version_id") ON DELETE CASCADE' in ddl
        assert '"point_id" SERIAL' in ddl

    def test_cache_series_stored_as_jsonb(self, generator):
        ddl = _render(generator.generate_table(CacheEntry))
        assert '"series" JSONB NOT NULL' in ddl
        assert '"version_id" VARCHAR(36)' in ddl
        assert '"version_id" VARCHAR(36) NOT NULL' not in ddl

    def test_dataset_code_not_null(self, generator):
        ddl = _render(generator.generate_table(Dataset))
        assert '"code" VARCHAR(64) NOT NULL' in ddl

    def test_field_bounds_become_checks(self, generator):
        ddl = _render(generator.generate_table(IrradiancePoint))
        assert 'CONSTRAINT "ck_irradiance_points_month" CHECK ("month" >= 1 AND "month" <= 12)' in ddl
        assert '"ck_irradiance_points_ghi"' in ddl
        assert "ck_irradiance_points_version_id" not in ddl

    def test_updated_at_trigger_only_on_stamped_tables(self, all_ddl):
        triggers = [s for s in all_ddl if "CREATE TRIGGER" in s]
        assert len(triggers) == 2
        assert not any("irradiance_points" in s for s in triggers)

    def test_custom_schema_name(self):
        ddl = _render(PydanticToSQL(schema_name="solar").generate_table(DatasetVersion))
        assert '"solar"."dataset_versions"' in ddl
        assert '"solar"."datasets"' in ddl


class TestIndexes:

    def test_one_active_version_per_dataset(self, generator):
        indexes = [_render(s) for s in generator.generate_indexes(DatasetVersion)]
        one_active = next(s for s in indexes if "uq_dataset_versions_one_active" in s)
        assert "CREATE UNIQUE INDEX" in one_active
        assert "WHERE status = 'active'" in one_active

    def test_tag_unique_per_dataset(self, generator):
        indexes = [_render(s) for s in generator.generate_indexes(DatasetVersion)]
        tag = next(s for s in indexes if "uq_dataset_versions_tag" in s)
        assert '("dataset_id", "version_tag")' in tag

    def test_cache_key_treats_null_version_as_one_key(self, generator):
        indexes = [_render(s) for s in generator.generate_indexes(CacheEntry)]
        key = next(s for s in indexes if "uq_coordinate_cache_key" in s)
        assert "CREATE UNIQUE INDEX" in key
        assert "(COALESCE(version_id, ''))" in key

    def test_point_lookup_index(self, generator):
        indexes = [_render(s) for s in generator.generate_indexes(IrradiancePoint)]
        assert any('("version_id", "lat", "lon")' in s for s in indexes)


class TestSeedDatasets:

    def test_default_dataset_is_seeded(self):
        codes = [code for code, _label, _description in SEED_DATASETS]
        assert "INPE_2017_SUNDATA" in codes
        assert len(codes) == len(set(codes))


class TestConnectionString:

    def test_database_url_wins(self, monkeypatch):
        monkeypatch.setenv("DATABASE_URL", "postgresql://u:p@db:5432/irr")
        assert get_connection_string() == "postgresql://u:p@db:5432/irr"

    def test_built_from_components(self, monkeypatch):
        monkeypatch.delenv("DATABASE_URL", raising=False)
        monkeypatch.setenv("POSTGRES_HOST", "db")
        monkeypatch.setenv("POSTGRES_DB", "irr")
        monkeypatch.setenv("POSTGRES_USER", "svc")
        monkeypatch.setenv("POSTGRES_PASSWORD", "s3cret")
        monkeypatch.delenv("POSTGRES_PORT", raising=False)
        monkeypatch.delenv("POSTGRES_SSLMODE", raising=False)
        assert get_connection_string() == "postgresql://svc:s3cret@db:5432/irr?sslmode=prefer"

    def test_mask_hides_credentials(self):
        assert mask_conninfo("postgresql://svc:s3cret@db:5432/irr") == "db:5432/irr"
        assert mask_conninfo("host=db password=s3cret dbname=irr") == "host=db password=*** dbname=irr"
