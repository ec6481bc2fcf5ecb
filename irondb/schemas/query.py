"""SQL gateway schemas."""

from typing import Any

from pydantic import BaseModel, ConfigDict, Field


class QueryRequest(BaseModel):
    """Arbitrary SQL plus optional bind values."""

    sql: str | None = None
    params: list[Any] | dict[str, Any] | None = None


class FieldDescription(BaseModel):
    """Name and driver type id of a returned column."""

    model_config = ConfigDict(populate_by_name=True)

    name: str
    data_type_id: int | None = Field(default=None, alias="dataTypeID")


class QueryResult(BaseModel):
    """Rows, column metadata and timing for one statement."""

    model_config = ConfigDict(populate_by_name=True)

    rows: list[dict[str, Any]]
    fields: list[FieldDescription]
    row_count: int = Field(alias="rowCount")
    duration: float


class TableInfo(BaseModel):
    table_name: str
    table_schema: str
    approx_rows: int | None = None


class FunctionInfo(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    oid: int
    schema_name: str = Field(alias="schema")
    name: str
    args: str | None = None
    return_type: str | None = None
    language: str | None = None


class TableListResponse(BaseModel):
    rows: list[TableInfo]


class FunctionListResponse(BaseModel):
    rows: list[FunctionInfo]
