"""SQL pass-through execution and catalog browsing."""

import logging
import time
from datetime import date, datetime, time as dt_time, timedelta
from decimal import Decimal
from typing import Any
from uuid import UUID

from sqlalchemy import Engine, text
from sqlalchemy.exc import DBAPIError, SQLAlchemyError

from irondb.errors import UpstreamError
from irondb.schemas.query import FieldDescription, FunctionInfo, QueryResult, TableInfo

logger = logging.getLogger(__name__)

SYSTEM_SCHEMAS = ("pg_catalog", "information_schema")

# Values pydantic already serializes to JSON
JSON_NATIVE_TYPES = (bool, int, float, str, Decimal, datetime, date, dt_time, timedelta, UUID)

LIST_TABLES_SQL = """
    SELECT
        t.table_name,
        t.table_schema,
        c.reltuples::bigint AS approx_rows
    FROM information_schema.tables t
    LEFT JOIN pg_namespace n ON n.nspname = t.table_schema
    LEFT JOIN pg_class c ON c.relname = t.table_name AND c.relnamespace = n.oid
    WHERE t.table_schema NOT IN ('pg_catalog', 'information_schema')
    ORDER BY t.table_schema, t.table_name
"""

LIST_FUNCTIONS_SQL = """
    SELECT
        p.oid::bigint AS oid,
        n.nspname AS schema,
        p.proname AS name,
        pg_get_function_arguments(p.oid) AS args,
        t.typname AS return_type,
        l.lanname AS language
    FROM pg_proc p
    JOIN pg_namespace n ON p.pronamespace = n.oid
    LEFT JOIN pg_type t ON p.prorettype = t.oid
    LEFT JOIN pg_language l ON p.prolang = l.oid
    WHERE n.nspname NOT IN ('pg_catalog', 'information_schema')
    ORDER BY n.nspname, p.proname
"""


def upstream_message(exc: SQLAlchemyError) -> str:
    """The driver's own error text, without SQLAlchemy's wrapping."""
    if isinstance(exc, DBAPIError) and exc.orig is not None:
        return str(exc.orig).strip()
    return str(exc)


def to_json_value(value: Any) -> Any:
    """Coerce a driver value into something the JSON response can carry.

    bytea comes back as memoryview/bytes and is rendered in Postgres hex
    format; types pydantic cannot serialize (ranges, inet, ...) fall back to str.
    """
    if value is None or isinstance(value, JSON_NATIVE_TYPES):
        return value
    if isinstance(value, memoryview | bytes | bytearray):
        return "\\x" + bytes(value).hex()
    if isinstance(value, dict):
        return {str(key): to_json_value(item) for key, item in value.items()}
    if isinstance(value, list | tuple):
        return [to_json_value(item) for item in value]
    return str(value)


class SqlGateway:
    """Runs caller-supplied SQL against an injected connection pool."""

    def __init__(self, engine: Engine):
        self.engine = engine

    def execute(self, sql: str, params: list[Any] | dict[str, Any] | None = None) -> QueryResult:
        """Execute one statement exactly as given and describe its result.

        Bind values use the driver's native paramstyle. The statement runs in
        its own transaction, so DDL and DML are committed on success.
        """
        start = time.perf_counter()
        try:
            with self.engine.begin() as conn:
                if not params:
                    # Keeps the driver from applying paramstyle formatting to literal %
                    result = conn.execution_options(no_parameters=True).exec_driver_sql(sql)
                elif isinstance(params, dict):
                    result = conn.exec_driver_sql(sql, params)
                else:
                    # A list here would be read as executemany
                    result = conn.exec_driver_sql(sql, tuple(params))

                if result.returns_rows:
                    fields = [
                        FieldDescription(name=column[0], data_type_id=column[1])
                        for column in result.cursor.description
                    ]
                    rows = [
                        {key: to_json_value(value) for key, value in row.items()}
                        for row in result.mappings()
                    ]
                    row_count = len(rows)
                else:
                    fields = []
                    rows = []
                    row_count = max(result.rowcount, 0)
        except SQLAlchemyError as e:
            message = upstream_message(e)
            logger.warning(f"Query failed: {message}")
            raise UpstreamError(message) from e

        duration = (time.perf_counter() - start) * 1000
        logger.info(f"Query returned {row_count} rows in {duration:.1f}ms")
        return QueryResult(rows=rows, fields=fields, row_count=row_count, duration=duration)

    def list_tables(self) -> list[TableInfo]:
        """User tables with the planner's row estimate."""
        return [TableInfo.model_validate(row) for row in self._catalog_rows(LIST_TABLES_SQL)]

    def list_functions(self) -> list[FunctionInfo]:
        """Stored functions outside the system schemas."""
        return [FunctionInfo.model_validate(row) for row in self._catalog_rows(LIST_FUNCTIONS_SQL)]

    def _catalog_rows(self, sql: str) -> list[dict[str, Any]]:
        try:
            with self.engine.connect() as conn:
                return [dict(row) for row in conn.execute(text(sql)).mappings()]
        except SQLAlchemyError as e:
            raise UpstreamError(upstream_message(e)) from e
