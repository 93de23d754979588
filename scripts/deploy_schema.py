#!/usr/bin/env python
# ============================================================================
# SCHEMA DEPLOYMENT SCRIPT
# ============================================================================
# EPOCH: 1 - IRRADIANCE RESOLUTION
# PURPOSE: Deploy the irradiance schema to PostgreSQL using PydanticToSQL
# USAGE:
#   python scripts/deploy_schema.py --dry-run    # Preview SQL
#   python scripts/deploy_schema.py              # Execute deployment + seed
#   python scripts/deploy_schema.py --status     # Check current status
# ============================================================================

import argparse
import logging
import os
import sys
from typing import Dict, Optional

import psycopg
from psycopg import sql

# Add project root to path
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from core.config import get_defaults
from core.schema import PydanticToSQL
from repositories.database import get_connection_string, mask_conninfo

logger = logging.getLogger(__name__)

# Reference datasets the import pipeline expects to exist
SEED_DATASETS = (
    ("INPE_2017_SUNDATA", "Atlas Brasileiro 2ª Ed. (INPE 2017)",
     "CRESESB SunData monthly means, Brazilian Solar Energy Atlas 2nd edition"),
    ("INPE_2009_10KM", "Atlas Solar Brasil 10km (INPE 2009)",
     "INPE 10 km grid, first edition of the Brazilian Solar Energy Atlas"),
    ("NASA_POWER_GLOBAL", "NASA POWER Global",
     "NASA POWER climatology exported as a static grid"),
)

TABLES = ("datasets", "dataset_versions", "irradiance_points", "coordinate_cache")


def seed_datasets(conn, schema: str) -> int:
    """Insert the reference datasets that are missing. Returns rows inserted."""
    inserted = 0
    with conn.cursor() as cur:
        for code, label, description in SEED_DATASETS:
            cur.execute(
                sql.SQL("""
                    INSERT INTO {} (dataset_id, code, label, description)
                    VALUES (gen_random_uuid()::text, %s, %s, %s)
                    ON CONFLICT (code) DO NOTHING
                """).format(sql.Identifier(schema, "datasets")),
                (code, label, description),
            )
            inserted += cur.rowcount
    return inserted


def deploy_schema(
    dry_run: bool = False,
    seed: bool = True,
    connection_string: Optional[str] = None,
) -> int:
    """
    Create the schema objects (idempotent) and seed reference datasets.

    Returns:
        Number of DDL statements generated
    """
    schema = get_defaults().database.schema
    generator = PydanticToSQL(schema_name=schema)

    if dry_run:
        statements = generator.generate_all()
        for stmt in statements:
            print(stmt.as_string(None) + ";\n")
        return len(statements)

    conninfo = connection_string or get_connection_string()
    logger.info(f"Deploying schema '{schema}' to {mask_conninfo(conninfo)}")

    with psycopg.connect(conninfo) as conn:
        count = generator.execute(conn)
        if seed:
            added = seed_datasets(conn, schema)
            logger.info(f"Seeded {added} datasets")
        conn.commit()
    return count


def schema_status(connection_string: Optional[str] = None) -> Dict[str, int]:
    """Row count per table; -1 when the table is missing."""
    schema = get_defaults().database.schema
    counts: Dict[str, int] = {}
    with psycopg.connect(connection_string or get_connection_string(), autocommit=True) as conn:
        for table in TABLES:
            try:
                row = conn.execute(
                    sql.SQL("SELECT COUNT(*) FROM {}").format(sql.Identifier(schema, table))
                ).fetchone()
                counts[table] = row[0]
            except psycopg.errors.UndefinedTable:
                counts[table] = -1
    return counts


def main():
    parser = argparse.ArgumentParser(
        description="Deploy the irradiance schema to PostgreSQL",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  python scripts/deploy_schema.py --dry-run     # Preview DDL without executing
  python scripts/deploy_schema.py               # Deploy schema and seed datasets
  python scripts/deploy_schema.py --status      # Row counts per table

Environment Variables:
  DATABASE_URL          Full PostgreSQL connection string
  POSTGRES_HOST         Database host (default: localhost)
  POSTGRES_DB           Database name (default: postgres)
  POSTGRES_USER         Database user (default: postgres)
  POSTGRES_PASSWORD     Database password
  POSTGRES_PORT         Database port (default: 5432)
  POSTGRES_SSLMODE      SSL mode (default: prefer)
  DB_SCHEMA             Target schema (default: irradiance)
        """
    )
    parser.add_argument("--dry-run", action="store_true", help="Print DDL without executing")
    parser.add_argument("--status", action="store_true", help="Show row counts per table")
    parser.add_argument("--no-seed", action="store_true", help="Skip reference dataset seeding")
    parser.add_argument("--connection", type=str, help="PostgreSQL connection string (overrides environment)")
    parser.add_argument("--verbose", "-v", action="store_true", help="Enable verbose logging")
    args = parser.parse_args()

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s"
    )

    print("=" * 70)
    print("IRRADIANCE SERVICE - Schema Deployment")
    print("=" * 70)
    print(f"Schema: {get_defaults().database.schema}")
    print("=" * 70)

    if args.status:
        print("\n[STATUS CHECK]\n")
        for table, count in schema_status(args.connection).items():
            print(f"  - {table}: {'missing' if count < 0 else count}")
        return

    print(f"\nMode: {'DRY RUN' if args.dry_run else 'EXECUTE'}\n")
    try:
        count = deploy_schema(
            dry_run=args.dry_run,
            seed=not args.no_seed,
            connection_string=args.connection,
        )
    except psycopg.Error as e:
        print(f"Deployment failed: {e}")
        sys.exit(1)

    print("=" * 70)
    print(f"{count} statements {'generated' if args.dry_run else 'executed'}")
    print("=" * 70)


if __name__ == "__main__":
    main()
