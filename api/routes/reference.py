"""
Reference data endpoints.

GET /api/v1/reference/sets            → configured reference set names
GET /api/v1/reference/{set_name}/ids  → valid ids of one set (client allow-list)
"""

import sqlite3

from fastapi import APIRouter, Depends, HTTPException, Request
from fastapi.responses import JSONResponse

from api.database import get_db
from api.models import ReferenceIdsOut
from utils.reference import SqliteReferenceLookup

router = APIRouter(prefix="/reference", tags=["reference"])

_CACHE_HEADER = {"Cache-Control": "max-age=300"}


@router.get(
    "/sets",
    response_model=list[str],
    summary="List reference sets",
)
def list_sets(request: Request) -> list[str]:
    """Return the reference set names zzz / yyy values are checked against."""
    return sorted(request.app.state.reference_tables)


@router.get(
    "/{set_name}/ids",
    response_model=ReferenceIdsOut,
    summary="List valid ids of a reference set",
    responses={404: {"description": "Unknown reference set"}},
)
def list_ids(
    set_name: str,
    request: Request,
    conn: sqlite3.Connection = Depends(get_db),
) -> JSONResponse:
    """Return every valid id of ``set_name`` so clients can check offline."""
    lookup = SqliteReferenceLookup(conn, request.app.state.reference_tables)
    if not lookup.covers(set_name):
        raise HTTPException(status_code=404,
                            detail=f"Unknown reference set '{set_name}'")
    data = {"set_name": set_name, "ids": lookup.fetch_ids(set_name)}
    return JSONResponse(content=data, headers=_CACHE_HEADER)
