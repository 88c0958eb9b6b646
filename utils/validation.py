"""Conditional payload validation for book catalog form submissions.

A payload is checked in two passes:

- Base fields (aaa, bbb, ccc) are always checked, all errors collected
- When ccc == 11, the ``ddd`` list is required and every item in it is
  checked against a strict item schema (zzz, yyy, xxx, www)

The rules are declared once, as FieldRule objects in BASE_RULES,
CONDITIONAL_RULES and ITEM_RULES.  The same table drives server-side
validation, allow-list validation and the rule description served to form
clients (describe_rules()).

Entity existence for zzz / yyy is delegated to a ReferenceLookup
(utils.reference).  validate() never raises for bad data; it only lets
ReferenceTypeError / ReferenceLookupError from the lookup propagate.
"""

import logging
from dataclasses import dataclass
from datetime import date, datetime
from typing import Any, Callable, Dict, List, Mapping, Optional

from utils.reference import YYY_SET, ZZZ_SET, ReferenceLookup, is_integer

logger = logging.getLogger(__name__)

CCC_CHOICES = (10, 11)
DISCRIMINATOR_VALUE = 11


# ── Result types ──────────────────────────────────────────────────────────────

@dataclass(frozen=True)
class ValidationError:
    """One violated rule, located by a dotted/bracketed property path."""

    property: str
    message: str

    def to_dict(self) -> Dict[str, str]:
        return {"property": self.property, "message": self.message}


class ValidationResult:
    """Ordered collection of validation errors for one payload."""

    def __init__(self):
        self.errors: List[ValidationError] = []

    def add_error(self, prop: str, message: str) -> None:
        self.errors.append(ValidationError(prop, message))

    def is_valid(self) -> bool:
        """True iff no errors were recorded."""
        return not self.errors

    def errors_for(self, prop: str) -> List[ValidationError]:
        """Errors attached to one property path, e.g. "ddd[0].zzz"."""
        return [e for e in self.errors if e.property == prop]

    def has_error(self, prop: str) -> bool:
        return any(e.property == prop for e in self.errors)

    def to_dict(self) -> Dict[str, Any]:
        """Serialize as ``{"isValid": bool, "errors": [...]}`` for form clients."""
        return {
            "isValid": self.is_valid(),
            "errors": [e.to_dict() for e in self.errors],
        }

    def __repr__(self) -> str:
        return f"ValidationResult(valid={self.is_valid()}, errors={len(self.errors)})"


# ── Primitive checks ──────────────────────────────────────────────────────────

def is_blank(value: Any) -> bool:
    """Return True for values the required rule rejects.

    None, False, "" and empty collections are blank.  Whitespace is not
    trimmed, and 0 is not blank.
    """
    if value is None or value is False:
        return True
    if isinstance(value, (str, list, tuple, dict, set, frozenset)):
        return len(value) == 0
    return False


def is_valid_datetime(value: Any) -> bool:
    """Check that value is a date/time or an ISO 8601 string that parses as one."""
    if isinstance(value, (datetime, date)):
        return True
    if not isinstance(value, str):
        return False
    try:
        datetime.fromisoformat(value)
    except ValueError:
        return False
    return True


def is_sequence(value: Any) -> bool:
    """Lists and tuples count as arrays; strings and mappings do not."""
    return isinstance(value, (list, tuple))


def _covers(ref_lookup: Any, set_name: str) -> bool:
    """Ask the lookup whether it checks ``set_name``.

    Any object with ``exists(set_name, id)`` works as a lookup; one without
    ``covers`` is taken to check every set.
    """
    covers = getattr(ref_lookup, "covers", None)
    return True if covers is None else covers(set_name)


# ── Rule table ────────────────────────────────────────────────────────────────

class FieldRule:
    """Declarative rule set for one field.

    Checks run in order: required, type, extra predicate, reference
    existence.  The first failing check yields the field's single error.
    Messages may contain ``{path}``, replaced by the field's property path.
    """

    def __init__(self, name: str, required_message: str,
                 type_name: Optional[str] = None,
                 type_check: Optional[Callable[[Any], bool]] = None,
                 type_message: Optional[str] = None,
                 rule_name: Optional[str] = None,
                 predicate: Optional[Callable[[Any], bool]] = None,
                 rule_message: Optional[str] = None,
                 reference_set: Optional[str] = None,
                 reference_message: Optional[str] = None):
        self.name = name
        self.required_message = required_message
        self.type_name = type_name
        self.type_check = type_check
        self.type_message = type_message
        self.rule_name = rule_name
        self.predicate = predicate
        self.rule_message = rule_message
        self.reference_set = reference_set
        self.reference_message = reference_message

    def check(self, value: Any, path: str,
              ref_lookup: Optional[ReferenceLookup] = None) -> Optional[str]:
        """Return the error message for ``value``, or None if it passes."""
        if is_blank(value):
            return self.required_message.format(path=path)
        if self.type_check is not None and not self.type_check(value):
            return self.type_message.format(path=path)
        if self.predicate is not None and not self.predicate(value):
            return self.rule_message.format(path=path)
        if (self.reference_set is not None and ref_lookup is not None
                and _covers(ref_lookup, self.reference_set)
                and not ref_lookup.exists(self.reference_set, value)):
            return self.reference_message.format(path=path)
        return None

    def describe(self) -> Dict[str, Any]:
        """JSON-serializable description of this rule."""
        messages = {"required": self.required_message}
        if self.type_message:
            messages["type"] = self.type_message
        if self.rule_message:
            messages["rule"] = self.rule_message
        if self.reference_message:
            messages["reference"] = self.reference_message
        return {
            "field": self.name,
            "required": True,
            "type": self.type_name,
            "rule": self.rule_name,
            "reference_set": self.reference_set,
            "messages": messages,
        }

    def __repr__(self) -> str:
        return f"FieldRule({self.name!r})"


def _integer_rule(name: str, **kwargs) -> FieldRule:
    return FieldRule(
        name,
        required_message="{path} is required",
        type_name="integer",
        type_check=is_integer,
        type_message="{path} must be an integer",
        **kwargs,
    )


BASE_RULES = (
    FieldRule(
        "aaa",
        required_message="This field is required",
        type_name="datetime",
        type_check=is_valid_datetime,
        type_message="This value is not a valid datetime",
    ),
    FieldRule(
        "bbb",
        required_message="This field is required",
        type_name="string",
        type_check=lambda v: isinstance(v, str),
        type_message="This value must be a string",
    ),
    # Absent ccc reports "required" only, never a second membership error.
    FieldRule(
        "ccc",
        required_message="This field is required",
        type_name="integer",
        rule_name="choice:10,11",
        predicate=lambda v: is_integer(v) and v in CCC_CHOICES,
        rule_message="This value must be either 10 or 11",
    ),
)

CONDITIONAL_RULES = (
    FieldRule(
        "ddd",
        required_message='The field "ddd" is required when ccc = 11',
        type_name="array",
        type_check=is_sequence,
        type_message='The field "ddd" must be an array',
    ),
)

ITEM_RULES = (
    _integer_rule(
        "zzz",
        reference_set=ZZZ_SET,
        reference_message="{path} references an invalid entity",
    ),
    _integer_rule(
        "yyy",
        reference_set=YYY_SET,
        reference_message="{path} references an invalid entity",
    ),
    _integer_rule(
        "xxx",
        rule_name="positive",
        predicate=lambda v: v > 0,
        rule_message="{path} must be positive",
    ),
    FieldRule(
        "www",
        required_message="{path} is required and cannot be empty",
        type_name="string",
        type_check=lambda v: isinstance(v, str),
        type_message="{path} must be a string",
    ),
)

ITEM_FIELDS = frozenset(rule.name for rule in ITEM_RULES)


def describe_rules() -> Dict[str, Any]:
    """Describe the full rule table for form clients."""
    return {
        "base": [rule.describe() for rule in BASE_RULES],
        "conditional": {
            "field": "ccc",
            "equals": DISCRIMINATOR_VALUE,
            "rules": [rule.describe() for rule in CONDITIONAL_RULES],
        },
        "item": {
            "field": "ddd",
            "allow_extra_fields": False,
            "rules": [rule.describe() for rule in ITEM_RULES],
        },
    }


# ── Validation passes ─────────────────────────────────────────────────────────

def _apply_rules(rules, data: Mapping, prefix: str, result: ValidationResult,
                 ref_lookup: Optional[ReferenceLookup]) -> int:
    """Apply each rule to ``data``; return the number of errors added."""
    added = 0
    for rule in rules:
        path = f"{prefix}.{rule.name}" if prefix else rule.name
        message = rule.check(data.get(rule.name), path, ref_lookup)
        if message is not None:
            result.add_error(path, message)
            added += 1
    return added


def _validate_item(item: Any, index: int, result: ValidationResult,
                   ref_lookup: Optional[ReferenceLookup]) -> None:
    prefix = f"ddd[{index}]"
    if not isinstance(item, Mapping):
        result.add_error(prefix, f"{prefix} must be an object")
        return
    _apply_rules(ITEM_RULES, item, prefix, result, ref_lookup)
    for key in item:
        if key not in ITEM_FIELDS:
            result.add_error(f"{prefix}.{key}", f"{prefix}.{key} is not allowed")


def _validate_conditional(data: Mapping, result: ValidationResult,
                          ref_lookup: Optional[ReferenceLookup]) -> None:
    # Missing or non-array ddd is reported alone.
    if _apply_rules(CONDITIONAL_RULES, data, "", result, ref_lookup):
        return
    for index, item in enumerate(data["ddd"]):
        _validate_item(item, index, result, ref_lookup)


def validate(record: Any,
             ref_lookup: Optional[ReferenceLookup] = None) -> ValidationResult:
    """Validate a payload against the base and conditional rule tables.

    Args:
        record: Untyped mapping (decoded JSON object); extra top-level keys
            are ignored
        ref_lookup: Optional reference lookup for zzz / yyy existence checks,
            any object with ``exists(set_name, ref_id)``; when None, existence
            checks are skipped

    Returns:
        A fresh ValidationResult; the record is not modified

    Raises:
        ReferenceTypeError: If the lookup is handed a non-integer id
        ReferenceLookupError: If the lookup's backing store fails
    """
    result = ValidationResult()
    if not isinstance(record, Mapping):
        result.add_error("", "This value must be an object")
        return result

    if _apply_rules(BASE_RULES, record, "", result, ref_lookup):
        logger.debug("base validation failed errors=%d", len(result.errors))
        return result

    if record["ccc"] == DISCRIMINATOR_VALUE:
        _validate_conditional(record, result, ref_lookup)

    logger.debug("validated payload ccc=%s errors=%d",
                 record["ccc"], len(result.errors))
    return result
