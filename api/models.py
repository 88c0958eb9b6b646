"""
Pydantic response models for the API.

Request payloads are plain JSON objects; their rules live in
utils.validation rather than in a pydantic schema.
"""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict, Field


# ── Validation models ─────────────────────────────────────────────────────────

class ValidationErrorOut(BaseModel):
    """One violated rule."""
    property: str = Field(..., description="Dotted/bracketed path of the offending field", examples=["ddd[0].zzz"])
    message: str = Field(..., description="Human-readable error message", examples=["ddd[0].zzz must be an integer"])


class ValidationResponse(BaseModel):
    """Response body for POST /api/v1/validate."""
    model_config = ConfigDict(populate_by_name=True)

    is_valid: bool = Field(..., alias="isValid", description="True iff errors is empty")
    errors: list[ValidationErrorOut] = Field(..., description="Errors in item-index, then field-declaration order")


class RuleOut(BaseModel):
    """Description of the rules applied to one field."""
    field: str = Field(..., examples=["xxx"])
    required: bool = Field(..., examples=[True])
    type: str | None = Field(None, description="Expected type", examples=["integer"])
    rule: str | None = Field(None, description="Extra rule beyond the type check", examples=["positive"])
    reference_set: str | None = Field(None, description="Reference set whose ids are valid values", examples=["Zzz"])
    messages: dict[str, str] = Field(..., description="Error message templates keyed by check")


class ConditionalRulesOut(BaseModel):
    field: str = Field(..., examples=["ccc"])
    equals: Any = Field(..., examples=[11])
    rules: list[RuleOut]


class ItemRulesOut(BaseModel):
    field: str = Field(..., examples=["ddd"])
    allow_extra_fields: bool = Field(..., examples=[False])
    rules: list[RuleOut]


class RulesResponse(BaseModel):
    """Response body for GET /api/v1/validation/rules."""
    base: list[RuleOut]
    conditional: ConditionalRulesOut
    item: ItemRulesOut


# ── Reference data models ─────────────────────────────────────────────────────

class ReferenceIdsOut(BaseModel):
    """Valid ids of one reference set, for client-side allow-lists."""
    set_name: str = Field(..., examples=["Zzz"])
    ids: list[int] = Field(..., examples=[[1, 2, 42]])


# ── Error model ───────────────────────────────────────────────────────────────

class ErrorResponse(BaseModel):
    """Standard error response body."""
    error: str = Field(..., description="Short error category", examples=["Bad request"])
    detail: str | None = Field(None, description="Extended error detail")
    status_code: int = Field(..., ge=400, le=599, description="HTTP status code", examples=[400])
