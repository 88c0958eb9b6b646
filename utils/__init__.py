"""Shared utilities for the book catalog validation service."""

# Reference lookups
from utils.reference import (
    ReferenceLookup,
    AllowListLookup,
    SqliteReferenceLookup,
    ReferenceTypeError,
    ReferenceLookupError,
    UnknownReferenceSetError,
    ZZZ_SET,
    YYY_SET,
)

# Payload validation
from utils.validation import (
    ValidationError,
    ValidationResult,
    FieldRule,
    validate,
    describe_rules,
)

# Configuration
from utils.config import (
    Config,
    AppConfig,
)

__all__ = [
    # Reference
    "ReferenceLookup",
    "AllowListLookup",
    "SqliteReferenceLookup",
    "ReferenceTypeError",
    "ReferenceLookupError",
    "UnknownReferenceSetError",
    "ZZZ_SET",
    "YYY_SET",
    # Validation
    "ValidationError",
    "ValidationResult",
    "FieldRule",
    "validate",
    "describe_rules",
    # Config
    "Config",
    "AppConfig",
]
