# ============================================================================
# PYDANTIC TO SQL GENERATOR
# ============================================================================
# EPOCH: 1 - IRRADIANCE RESOLUTION
# STATUS: Core - DDL generation from Pydantic models
# PURPOSE: Generate the irradiance schema (enums, tables, checks, indexes)
# LAST_REVIEWED: 16 SEP 2026
# EXPORTS: PydanticToSQL
# DEPENDENCIES: pydantic, psycopg, annotated_types
# ============================================================================
"""
Pydantic to PostgreSQL Schema Generator.

The four irradiance models are the single source of truth for the schema.
Each carries its table layout in ClassVars:

    __sql_table__          table name
    __sql_schema__         default schema (the generator's schema_name wins)
    __sql_primary_key__    column list
    __sql_serial_columns__ columns generated by the database
    __sql_foreign_keys__   {column: "schema.table(column) [CASCADE|RESTRICT|SET NULL]"}
    __sql_indexes__        (name, columns[, where]) tuples or dicts with
                           "unique" / "partial_where" / "descending"

Field bounds become CHECK constraints, so `month: int = Field(ge=1, le=12)`
is enforced by PostgreSQL as well as by Pydantic, including for rows
written by hand or by other tools.

Usage:
    generator = PydanticToSQL(schema_name="irradiance")
    for stmt in generator.generate_all():
        cursor.execute(stmt)
"""

import logging
import re
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Dict, List, Optional, Sequence, Tuple, Type, Union, get_args, get_origin

from annotated_types import Ge, Gt, Le, Lt, MaxLen
from psycopg import sql
from pydantic import BaseModel
from pydantic.fields import FieldInfo
from pydantic_core import PydanticUndefined

from core.schema.ddl_utils import IndexBuilder, SchemaUtils, TriggerBuilder

logger = logging.getLogger(__name__)

_FK_PATTERN = re.compile(
    r"(\w+)\.(\w+)\((\w+)\)(?:\s+(CASCADE|RESTRICT|SET NULL))?$", re.IGNORECASE
)

_SCALAR_TYPES = {
    str: "VARCHAR",
    int: "INTEGER",
    float: "DOUBLE PRECISION",
    bool: "BOOLEAN",
    datetime: "TIMESTAMPTZ",
}

_BOUND_OPERATORS = ((Ge, "ge", ">="), (Gt, "gt", ">"), (Le, "le", "<="), (Lt, "lt", "<"))

# Columns PostgreSQL stamps itself
_TIMESTAMP_COLUMNS = ("created_at", "updated_at")


@dataclass
class TableLayout:
    """The __sql_* ClassVars of one model."""
    model: Type[BaseModel]
    table: str
    schema: str
    primary_key: List[str] = field(default_factory=list)
    serial_columns: List[str] = field(default_factory=list)
    foreign_keys: Dict[str, str] = field(default_factory=dict)
    indexes: List[Any] = field(default_factory=list)

    @classmethod
    def of(cls, model: Type[BaseModel]) -> "TableLayout":
        table = getattr(model, "__sql_table__", None)
        if not table:
            raise ValueError(f"Model {model.__name__} missing __sql_table__ attribute")
        primary_key = getattr(model, "__sql_primary_key__", [])
        if isinstance(primary_key, str):
            primary_key = [primary_key]
        return cls(
            model=model,
            table=table,
            schema=getattr(model, "__sql_schema__", "irradiance"),
            primary_key=list(primary_key),
            serial_columns=list(getattr(model, "__sql_serial_columns__", [])),
            foreign_keys=dict(getattr(model, "__sql_foreign_keys__", {})),
            indexes=list(getattr(model, "__sql_indexes__", [])),
        )


def _unwrap_optional(annotation: Any) -> Tuple[Any, bool]:
    """(inner type, is Optional)"""
    if get_origin(annotation) is Union:
        args = [a for a in get_args(annotation) if a is not type(None)]
        if len(args) < len(get_args(annotation)):
            return args[0], True
    return annotation, False


def _enum_type_name(enum_class: Type[Enum]) -> str:
    """VersionStatus → version_status"""
    return re.sub(r"(?<!^)(?=[A-Z])", "_", enum_class.__name__).lower()


class PydanticToSQL:
    """
    Build CREATE statements for the irradiance schema from the models.

    Enum types are collected while tables are generated, so generate the
    tables before asking for `enums`.
    """

    def __init__(self, schema_name: str = "irradiance"):
        self.schema_name = schema_name
        self.enums: Dict[str, Type[Enum]] = {}

    def _schema_for(self, declared: str) -> str:
        return self.schema_name or declared

    # =========================================================================
    # COLUMNS
    # =========================================================================

    def column_type(self, annotation: Any, field_info: FieldInfo) -> sql.Composable:
        """
        PostgreSQL type for a field.

        Enums become schema-qualified ENUM types; containers and nested
        models (the monthly series) are stored as JSONB.
        """
        inner, _ = _unwrap_optional(annotation)

        if isinstance(inner, type) and issubclass(inner, Enum):
            type_name = _enum_type_name(inner)
            self.enums[type_name] = inner
            return sql.SQL("{}.{}").format(
                sql.Identifier(self.schema_name), sql.Identifier(type_name)
            )

        if inner is str:
            max_length = next(
                (m.max_length for m in field_info.metadata if isinstance(m, MaxLen)), None
            )
            return sql.SQL(f"VARCHAR({max_length})" if max_length else "VARCHAR")

        return sql.SQL(_SCALAR_TYPES.get(inner, "JSONB"))

    @staticmethod
    def _default(name: str, field_info: FieldInfo) -> Optional[sql.Composable]:
        if name in _TIMESTAMP_COLUMNS:
            return sql.SQL("NOW()")

        default = field_info.default
        if field_info.default_factory is not None:
            # dict / list factories; anything else is filled in by the model
            produced = field_info.default_factory()
            return sql.Literal("{}") if isinstance(produced, dict) else None
        if default is None or default is PydanticUndefined:
            return None
        if isinstance(default, Enum):
            return sql.Literal(default.value)
        if isinstance(default, bool):
            return sql.SQL("true" if default else "false")
        if isinstance(default, (str, int, float)):
            return sql.Literal(default)
        return None

    def _column(self, layout: TableLayout, name: str, field_info: FieldInfo) -> sql.Composed:
        _, optional = _unwrap_optional(field_info.annotation)

        if name in layout.serial_columns:
            return sql.SQL("{} SERIAL").format(sql.Identifier(name))

        parts: List[sql.Composable] = [
            sql.Identifier(name),
            sql.SQL(" "),
            self.column_type(field_info.annotation, field_info),
        ]
        if not optional and name not in layout.primary_key:
            parts.append(sql.SQL(" NOT NULL"))

        default = self._default(name, field_info)
        if default is not None:
            parts.extend([sql.SQL(" DEFAULT "), default])
        return sql.Composed(parts)

    @staticmethod
    def _range_check(layout: TableLayout, name: str, field_info: FieldInfo) -> Optional[sql.Composed]:
        """CHECK built from ge/gt/le/lt on a numeric field."""
        terms = []
        for constraint in field_info.metadata:
            for bound_type, attr, operator in _BOUND_OPERATORS:
                if isinstance(constraint, bound_type):
                    terms.append(sql.SQL("{} {} {}").format(
                        sql.Identifier(name),
                        sql.SQL(operator),
                        sql.Literal(getattr(constraint, attr)),
                    ))
        if not terms:
            return None
        return sql.SQL("CONSTRAINT {} CHECK ({})").format(
            sql.Identifier(f"ck_{layout.table}_{name}"),
            sql.SQL(" AND ").join(terms),
        )

    def _foreign_key(self, layout: TableLayout, column: str, reference: str) -> sql.Composed:
        match = _FK_PATTERN.match(reference.strip())
        if not match:
            raise ValueError(
                f"Model {layout.model.__name__}: bad foreign key reference '{reference}'"
            )
        ref_schema, ref_table, ref_column, action = match.groups()
        return sql.SQL("FOREIGN KEY ({}) REFERENCES {}.{} ({}) ON DELETE {}").format(
            sql.Identifier(column),
            sql.Identifier(self._schema_for(ref_schema)),
            sql.Identifier(ref_table),
            sql.Identifier(ref_column),
            sql.SQL((action or "CASCADE").upper()),
        )

    # =========================================================================
    # STATEMENTS
    # =========================================================================

    def generate_enum(self, type_name: str, enum_class: Type[Enum]) -> sql.Composed:
        """CREATE TYPE ... AS ENUM, skipped when the type already exists."""
        values = sql.SQL(", ").join(sql.Literal(member.value) for member in enum_class)
        return sql.SQL(
            "DO $$ BEGIN "
            "CREATE TYPE {schema}.{name} AS ENUM ({values}); "
            "EXCEPTION WHEN duplicate_object THEN NULL; "
            "END $$"
        ).format(
            schema=sql.Identifier(self.schema_name),
            name=sql.Identifier(type_name),
            values=values,
        )

    def generate_table(self, model: Type[BaseModel]) -> sql.Composed:
        """CREATE TABLE IF NOT EXISTS with columns, range checks and keys."""
        layout = TableLayout.of(model)
        schema = self._schema_for(layout.schema)
        logger.debug(f"Generating table {schema}.{layout.table} from {model.__name__}")

        definitions: List[sql.Composable] = []
        checks: List[sql.Composable] = []
        for name, field_info in model.model_fields.items():
            if field_info.exclude:
                continue
            definitions.append(self._column(layout, name, field_info))
            check = self._range_check(layout, name, field_info)
            if check is not None:
                checks.append(check)

        if layout.primary_key:
            definitions.append(sql.SQL("PRIMARY KEY ({})").format(
                sql.SQL(", ").join(sql.Identifier(c) for c in layout.primary_key)
            ))
        definitions.extend(checks)
        definitions.extend(
            self._foreign_key(layout, column, reference)
            for column, reference in layout.foreign_keys.items()
        )

        return sql.SQL("CREATE TABLE IF NOT EXISTS {}.{} ({})").format(
            sql.Identifier(schema),
            sql.Identifier(layout.table),
            sql.SQL(", ").join(definitions),
        )

    def generate_indexes(self, model: Type[BaseModel]) -> List[sql.Composed]:
        """CREATE [UNIQUE] INDEX statements for __sql_indexes__."""
        layout = TableLayout.of(model)
        schema = self._schema_for(layout.schema)

        statements = []
        for definition in layout.indexes:
            if isinstance(definition, tuple):
                name, columns = definition[0], definition[1]
                options: Dict[str, Any] = {"partial_where": definition[2] if len(definition) > 2 else None}
            else:
                name, columns = definition["name"], definition["columns"]
                options = {
                    "partial_where": definition.get("partial_where"),
                    "unique": definition.get("unique", False),
                    "descending": definition.get("descending", False),
                }

            if options.pop("unique", False):
                statements.append(IndexBuilder.unique(
                    schema, layout.table, columns, name=name,
                    partial_where=options["partial_where"],
                ))
            else:
                statements.append(IndexBuilder.btree(
                    schema, layout.table, columns, name=name, **options,
                ))
        return statements

    def generate_all(self, models: Optional[Sequence[Type[BaseModel]]] = None) -> List[sql.Composed]:
        """
        Full schema DDL, in execution order: schema, enums, tables (parents
        first), indexes, updated_at triggers.
        """
        if models is None:
            from core.models import CacheEntry, Dataset, DatasetVersion, IrradiancePoint
            models = [Dataset, DatasetVersion, IrradiancePoint, CacheEntry]

        # Tables are rendered first so their enum columns are registered
        tables = [self.generate_table(model) for model in models]

        statements: List[sql.Composed] = [
            SchemaUtils.create_schema(self.schema_name),
            SchemaUtils.set_search_path(self.schema_name),
        ]
        statements.extend(self.generate_enum(name, cls) for name, cls in self.enums.items())
        statements.extend(tables)
        for model in models:
            statements.extend(self.generate_indexes(model))

        stamped = [m for m in models if "updated_at" in m.model_fields]
        if stamped:
            statements.append(TriggerBuilder.updated_at_function(self.schema_name))
            for model in stamped:
                statements.extend(
                    TriggerBuilder.updated_at_trigger(self.schema_name, model.__sql_table__)
                )

        logger.info(f"Generated {len(statements)} DDL statements for schema {self.schema_name}")
        return statements

    def execute(self, conn, dry_run: bool = False) -> int:
        """
        Run generate_all() on a sync psycopg connection.

        Returns:
            Number of statements executed (or that would be, on dry run)
        """
        statements = self.generate_all()

        if dry_run:
            for stmt in statements:
                logger.info(f"[DRY RUN] {stmt.as_string(conn)[:100]}...")
            return len(statements)

        with conn.cursor() as cur:
            for stmt in statements:
                cur.execute(stmt)

        logger.info(f"Executed {len(statements)} DDL statements")
        return len(statements)


__all__ = ["PydanticToSQL", "TableLayout"]
