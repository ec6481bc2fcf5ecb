"""Handlers for each background job type.

Every handler takes the worker's engine, the job payload and the settings,
and returns a JSON-serializable summary. Payload problems raise
InvalidJobError, which the worker treats as a permanent failure.
"""

import json
import logging
import re
from collections.abc import Callable
from typing import Any

from sqlalchemy import Connection, Engine, MetaData, Table, bindparam, insert, text
from sqlalchemy.exc import NoSuchTableError

from irondb.config import Settings
from irondb.models.enums import TaskType
from irondb.services.sql_gateway import SYSTEM_SCHEMAS

logger = logging.getLogger(__name__)

IDENTIFIER_RE = re.compile(r"^[A-Za-z_][A-Za-z0-9_$]*$")


class InvalidJobError(ValueError):
    """The payload can never succeed, so retrying is pointless."""


def _require_payload(payload: Any) -> dict:
    if not isinstance(payload, dict):
        raise InvalidJobError("Payload must be an object")
    return payload


def bulk_insert(engine: Engine, payload: Any, settings: Settings) -> dict:
    """Write a list of row mappings into an existing table.

    The table is resolved by reflection, so unknown tables and columns are
    rejected before anything is written. Rows go out as multi-row INSERTs of
    at most ``bulk_insert_chunk_size`` rows, all inside one transaction.
    """
    payload = _require_payload(payload)
    rows = payload.get("rows") or []
    table_name = payload.get("table")
    schema = payload.get("schema")

    if not isinstance(rows, list) or not all(isinstance(row, dict) for row in rows):
        raise InvalidJobError("rows must be a list of objects")
    if not rows:
        logger.info(f"Bulk insert into {table_name} has no rows, nothing to do")
        return {"status": "success", "rows_written": 0}
    if not isinstance(table_name, str) or not table_name:
        raise InvalidJobError("table is required")

    columns = set(rows[0])
    if any(set(row) != columns for row in rows):
        raise InvalidJobError("All rows must have the same columns")

    chunk_size = max(settings.bulk_insert_chunk_size, 1)
    with engine.begin() as conn:
        try:
            table = Table(table_name, MetaData(), schema=schema, autoload_with=conn)
        except NoSuchTableError as e:
            raise InvalidJobError(f"Unknown table: {table_name}") from e

        unknown = columns - set(table.c.keys())
        if unknown:
            raise InvalidJobError(f"Unknown columns for {table_name}: {', '.join(sorted(unknown))}")

        for start in range(0, len(rows), chunk_size):
            conn.execute(insert(table).values(rows[start : start + chunk_size]))

    logger.info(f"Bulk inserted {len(rows)} rows into {table.fullname}")
    return {"status": "success", "rows_written": len(rows)}


def resolve_function(conn: Connection, name: str, schema: str | None) -> tuple[str, str] | None:
    """Look a function up in pg_proc, returning its (schema, name) if it exists."""
    sql = """
        SELECT n.nspname, p.proname
        FROM pg_proc p
        JOIN pg_namespace n ON p.pronamespace = n.oid
        WHERE p.proname = :name
          AND n.nspname NOT IN :system_schemas
    """
    params: dict[str, Any] = {"name": name, "system_schemas": SYSTEM_SCHEMAS}
    if schema:
        sql += " AND n.nspname = :schema"
        params["schema"] = schema
    sql += " ORDER BY (n.nspname = current_schema()) DESC, n.nspname LIMIT 1"

    stmt = text(sql).bindparams(bindparam("system_schemas", expanding=True))
    row = conn.execute(stmt, params).first()
    return (row[0], row[1]) if row else None


def _bind_value(value: Any) -> Any:
    if isinstance(value, dict | list):
        return json.dumps(value)
    return value


def rpc_trigger(engine: Engine, payload: Any, settings: Settings) -> dict:
    """Call a stored function by name with a single bound argument.

    The name is checked against the allowlist (when configured) and resolved
    through the catalog; only the quoted catalog name reaches the SQL text.
    """
    payload = _require_payload(payload)
    function_name = payload.get("functionName")
    if not isinstance(function_name, str):
        raise InvalidJobError("functionName is required")

    schema, _, name = function_name.rpartition(".")
    if not IDENTIFIER_RE.match(name) or (schema and not IDENTIFIER_RE.match(schema)):
        raise InvalidJobError(f"Invalid function name: {function_name}")
    if settings.rpc_allowed_functions and function_name not in settings.rpc_allowed_functions:
        raise InvalidJobError(f"Function not allowed: {function_name}")

    with engine.begin() as conn:
        resolved = resolve_function(conn, name, schema or None)
        if resolved is None:
            raise InvalidJobError(f"Unknown function: {function_name}")

        preparer = conn.dialect.identifier_preparer
        qualified = ".".join(preparer.quote_identifier(part) for part in resolved)
        # Omitted params are bound as NULL
        conn.execute(text(f"SELECT {qualified}(:params)"), {"params": _bind_value(payload.get("params"))})

    logger.info(f"Invoked function {qualified}")
    return {"status": "success", "function": ".".join(resolved)}


HANDLERS: dict[TaskType, Callable[[Engine, Any, Settings], dict]] = {
    TaskType.BULK_INSERT: bulk_insert,
    TaskType.RPC_TRIGGER: rpc_trigger,
}
