# ============================================================================
# DDL UTILITIES
# ============================================================================
# EPOCH: 1 - IRRADIANCE RESOLUTION
# STATUS: Core - DRY utilities for SQL DDL generation
# PURPOSE: Index, trigger and schema builders using psycopg.sql
# LAST_REVIEWED: 16 SEP 2026
# EXPORTS: IndexBuilder, TriggerBuilder, SchemaUtils
# DEPENDENCIES: psycopg
# ============================================================================
"""
DDL Utilities - Shared SQL Generation Patterns.

Every builder returns psycopg.sql.Composed. Column names are composed as
identifiers; the only raw SQL accepted is an index expression (a column
entry containing parentheses, e.g. "COALESCE(version_id, '')") and a
partial-index WHERE clause. Both come from model ClassVars, never from
request input.

Usage:
    from core.schema.ddl_utils import IndexBuilder, TriggerBuilder

    cursor.execute(IndexBuilder.btree('irradiance', 'irradiance_points',
                                      ['version_id', 'lat', 'lon']))

    cursor.execute(TriggerBuilder.updated_at_function('irradiance'))
    for stmt in TriggerBuilder.updated_at_trigger('irradiance', 'dataset_versions'):
        cursor.execute(stmt)
"""

from typing import List, Optional, Sequence, Union

from psycopg import sql

Columns = Union[str, Sequence[str]]


# ============================================================================
# INDEX BUILDER
# ============================================================================

class IndexBuilder:
    """CREATE [UNIQUE] INDEX IF NOT EXISTS statements."""

    @staticmethod
    def _column(column: str, descending: bool = False) -> sql.Composable:
        part: sql.Composable
        if "(" in column:
            part = sql.SQL("({})").format(sql.SQL(column))
        else:
            part = sql.Identifier(column)
        return sql.SQL("{} DESC").format(part) if descending else part

    @staticmethod
    def default_name(table: str, columns: List[str], prefix: str = "idx", descending: bool = False) -> str:
        """idx_<table>_<col>_<col>[_desc]; expression columns are left out of the name."""
        name = "_".join([prefix, table] + [c for c in columns if c.isidentifier()])
        return f"{name}_desc" if descending else name

    @staticmethod
    def _create(
        schema: str,
        table: str,
        columns: Columns,
        name: Optional[str],
        unique: bool,
        descending: bool,
        partial_where: Optional[str],
    ) -> sql.Composed:
        cols = [columns] if isinstance(columns, str) else list(columns)
        index_name = name or IndexBuilder.default_name(
            table, cols, prefix="uq" if unique else "idx", descending=descending
        )

        stmt = sql.SQL("CREATE {unique}INDEX IF NOT EXISTS {name} ON {schema}.{table} ({columns})").format(
            unique=sql.SQL("UNIQUE " if unique else ""),
            name=sql.Identifier(index_name),
            schema=sql.Identifier(schema),
            table=sql.Identifier(table),
            columns=sql.SQL(", ").join(IndexBuilder._column(c, descending) for c in cols),
        )
        if partial_where:
            stmt = sql.SQL("{} WHERE {}").format(stmt, sql.SQL(partial_where))
        return stmt

    @staticmethod
    def btree(
        schema: str,
        table: str,
        columns: Columns,
        name: Optional[str] = None,
        descending: bool = False,
        partial_where: Optional[str] = None,
    ) -> sql.Composed:
        """Plain B-tree index, optionally DESC and/or partial."""
        return IndexBuilder._create(schema, table, columns, name, False, descending, partial_where)

    @staticmethod
    def unique(
        schema: str,
        table: str,
        columns: Columns,
        name: Optional[str] = None,
        partial_where: Optional[str] = None,
    ) -> sql.Composed:
        """
        Unique index.

        With partial_where this is how "one active version per dataset" is
        enforced; with an expression column it is how the cache key treats
        a NULL version_id as a single value.
        """
        return IndexBuilder._create(schema, table, columns, name, True, False, partial_where)


# ============================================================================
# TRIGGER BUILDER
# ============================================================================

class TriggerBuilder:
    """Keeps updated_at current on UPDATE."""

    FUNCTION_NAME = "touch_updated_at"

    @staticmethod
    def updated_at_function(schema: str) -> sql.Composed:
        return sql.SQL(
            "CREATE OR REPLACE FUNCTION {schema}.{function}() RETURNS TRIGGER "
            "LANGUAGE plpgsql AS $$ BEGIN NEW.updated_at = NOW(); RETURN NEW; END; $$"
        ).format(
            schema=sql.Identifier(schema),
            function=sql.Identifier(TriggerBuilder.FUNCTION_NAME),
        )

    @staticmethod
    def updated_at_trigger(schema: str, table: str) -> List[sql.Composed]:
        """DROP + CREATE so redeploying the schema is idempotent."""
        params = {
            "name": sql.Identifier(f"trg_{table}_updated_at"),
            "schema": sql.Identifier(schema),
            "table": sql.Identifier(table),
            "function": sql.Identifier(TriggerBuilder.FUNCTION_NAME),
        }
        return [
            sql.SQL("DROP TRIGGER IF EXISTS {name} ON {schema}.{table}").format(**params),
            sql.SQL(
                "CREATE TRIGGER {name} BEFORE UPDATE ON {schema}.{table} "
                "FOR EACH ROW EXECUTE FUNCTION {schema}.{function}()"
            ).format(**params),
        ]


# ============================================================================
# SCHEMA UTILITIES
# ============================================================================

class SchemaUtils:

    @staticmethod
    def create_schema(schema: str) -> sql.Composed:
        return sql.SQL("CREATE SCHEMA IF NOT EXISTS {}").format(sql.Identifier(schema))

    @staticmethod
    def set_search_path(schema: str) -> sql.Composed:
        """Schema first, public after it (for extensions)."""
        return sql.SQL("SET search_path TO {}, public").format(sql.Identifier(schema))


__all__ = [
    "IndexBuilder",
    "TriggerBuilder",
    "SchemaUtils",
]
