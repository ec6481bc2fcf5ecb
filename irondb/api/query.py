"""SQL gateway endpoints used by the studio views."""

from typing import Annotated

from fastapi import APIRouter, Depends

from irondb.api.dependencies import CurrentPrincipal, get_sql_gateway
from irondb.errors import BadRequestError
from irondb.schemas.query import FunctionListResponse, QueryRequest, QueryResult, TableListResponse
from irondb.services.sql_gateway import SqlGateway

router = APIRouter(prefix="/api", tags=["query"])


@router.post("/query", response_model=QueryResult)
def run_query(
    query: QueryRequest,
    principal: CurrentPrincipal,
    gateway: Annotated[SqlGateway, Depends(get_sql_gateway)],
):
    """Execute arbitrary SQL with optional bind values."""
    if not query.sql or not query.sql.strip():
        raise BadRequestError("SQL required")
    return gateway.execute(query.sql, query.params)


@router.get("/tables", response_model=TableListResponse)
def list_tables(
    principal: CurrentPrincipal,
    gateway: Annotated[SqlGateway, Depends(get_sql_gateway)],
):
    """List user tables with approximate row counts."""
    return TableListResponse(rows=gateway.list_tables())


@router.get("/functions", response_model=FunctionListResponse)
def list_functions(
    principal: CurrentPrincipal,
    gateway: Annotated[SqlGateway, Depends(get_sql_gateway)],
):
    """List stored functions for the functions editor."""
    return FunctionListResponse(rows=gateway.list_functions())
