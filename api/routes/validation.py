"""
Payload validation endpoints.

POST /api/v1/validate          → validate a form payload against the rule table
GET  /api/v1/validation/rules  → the rule table itself, for form clients
"""

import logging
from collections.abc import Generator
from typing import Any

from fastapi import APIRouter, Body, Depends, Query, Request

from api.database import get_db
from api.models import RulesResponse, ValidationResponse
from utils.reference import SqliteReferenceLookup
from utils.validation import describe_rules, validate

logger = logging.getLogger(__name__)

router = APIRouter(tags=["validation"])


def get_reference_lookup(
    request: Request,
    check_references: bool = Query(
        True, description="Check zzz / yyy against the catalog's reference tables",
    ),
) -> Generator[SqliteReferenceLookup | None, None, None]:
    """FastAPI dependency: a live reference lookup, or None when disabled."""
    if not check_references:
        yield None
        return
    db = get_db()
    conn = next(db)
    try:
        yield SqliteReferenceLookup(conn, request.app.state.reference_tables)
    finally:
        db.close()


@router.post(
    "/validate",
    response_model=ValidationResponse,
    response_model_by_alias=True,
    summary="Validate a form payload",
    responses={
        503: {"description": "Catalog database missing or reference lookup failed"},
    },
)
def validate_payload(
    payload: Any = Body(..., description="Form payload (any JSON object)"),
    lookup: SqliteReferenceLookup | None = Depends(get_reference_lookup),
) -> dict:
    """Run the base and conditional rules against ``payload``.

    Always answers 200 with ``{"isValid": ..., "errors": [...]}``; invalid
    data is a result, not an HTTP error.
    """
    result = validate(payload, lookup)
    if not result.is_valid():
        logger.info("payload rejected errors=%d first=%s",
                    len(result.errors), result.errors[0].property)
    return result.to_dict()


@router.get(
    "/validation/rules",
    response_model=RulesResponse,
    summary="Describe the validation rule table",
)
def get_rules() -> dict:
    """Return the field rules the server enforces, with message templates."""
    return describe_rules()
