"""Reference lookups for entity-existence checks.

The validator never knows where entities live.  It asks a ReferenceLookup
whether an id exists in a named reference set ("Zzz", "Yyy").  Two
strategies are provided:

- AllowListLookup: pre-fetched id sets, no round trip (form-side variant)
- SqliteReferenceLookup: live query against the catalog database

Both treat None / "" as valid (required-ness is the required rule's job) and
raise ReferenceTypeError when handed a non-integer id.
"""

import logging
import re
import sqlite3
from abc import ABC, abstractmethod
from typing import Any, Dict, Iterable, List, Mapping, Optional

logger = logging.getLogger(__name__)

ZZZ_SET = "Zzz"
YYY_SET = "Yyy"

DEFAULT_REFERENCE_TABLES: Dict[str, str] = {ZZZ_SET: "zzz", YYY_SET: "yyy"}

_IDENTIFIER = re.compile(r"^[A-Za-z_][A-Za-z0-9_]*$")

# SQLite INTEGER is a signed 64-bit value.
_SQLITE_INT_MIN = -2**63
_SQLITE_INT_MAX = 2**63 - 1


def is_valid_table_name(name: str) -> bool:
    """Return True if ``name`` is a plain SQL identifier."""
    return bool(_IDENTIFIER.match(name))


class ReferenceTypeError(TypeError):
    """A non-integer id was passed to a reference check (caller bug)."""

    def __init__(self, set_name: str, value: Any):
        self.set_name = set_name
        self.value = value
        super().__init__(
            f"Reference id for {set_name!r} must be an integer, "
            f"got {type(value).__name__}: {value!r}"
        )


class ReferenceLookupError(RuntimeError):
    """The backing store could not answer a reference query."""


class UnknownReferenceSetError(KeyError):
    """The lookup has no table configured for the requested set."""


def is_integer(value: Any) -> bool:
    """Return True for int values, excluding bool (bool is a subclass of int)."""
    return isinstance(value, int) and not isinstance(value, bool)


def check_reference_id(set_name: str, ref_id: Any) -> bool:
    """Return False for a blank id, True for an integer id, raise otherwise."""
    if ref_id is None or ref_id == "":
        return False
    if not is_integer(ref_id):
        raise ReferenceTypeError(set_name, ref_id)
    return True


class ReferenceLookup(ABC):
    """Capability answering "does this id exist in that reference set"."""

    def covers(self, set_name: str) -> bool:
        """Whether this lookup can answer for ``set_name`` at all.

        The validator skips the existence check for uncovered sets.
        """
        return True

    def exists(self, set_name: str, ref_id: Any) -> bool:
        """Check that ``ref_id`` names an existing entity in ``set_name``.

        Args:
            set_name: Reference set name, e.g. "Zzz"
            ref_id: Integer id; None or "" are accepted as valid

        Returns:
            True if the id exists (or is blank), False otherwise

        Raises:
            ReferenceTypeError: If ref_id is not an integer
        """
        if not check_reference_id(set_name, ref_id):
            return True
        return self._exists(set_name, ref_id)

    @abstractmethod
    def _exists(self, set_name: str, ref_id: int) -> bool:
        """Strategy-specific existence check for a validated integer id."""


class AllowListLookup(ReferenceLookup):
    """Membership checks against pre-fetched id allow-lists."""

    def __init__(self, allow_lists: Optional[Mapping[str, Iterable[int]]] = None):
        self.allow_lists: Dict[str, frozenset] = {
            name: frozenset(ids) for name, ids in (allow_lists or {}).items()
        }

    @classmethod
    def from_ids(cls, valid_zzz_ids: Optional[Iterable[int]] = None,
                 valid_yyy_ids: Optional[Iterable[int]] = None) -> "AllowListLookup":
        """Build a lookup from the two item-level allow-lists."""
        return cls({
            ZZZ_SET: valid_zzz_ids or (),
            YYY_SET: valid_yyy_ids or (),
        })

    def covers(self, set_name: str) -> bool:
        # An empty or missing allow-list means "not checked", not "nothing valid".
        return bool(self.allow_lists.get(set_name))

    def _exists(self, set_name: str, ref_id: int) -> bool:
        return ref_id in self.allow_lists.get(set_name, frozenset())

    def __repr__(self) -> str:
        sizes = ", ".join(f"{k}={len(v)}" for k, v in sorted(self.allow_lists.items()))
        return f"AllowListLookup({sizes})"


class SqliteReferenceLookup(ReferenceLookup):
    """Live existence checks against reference tables in the catalog database.

    Each reference set maps to a table with an integer ``id`` primary key.
    The connection is borrowed, never closed here.
    """

    def __init__(self, conn: sqlite3.Connection,
                 tables: Optional[Mapping[str, str]] = None):
        self.conn = conn
        self.tables: Dict[str, str] = dict(
            DEFAULT_REFERENCE_TABLES if tables is None else tables
        )
        for set_name, table in self.tables.items():
            if not is_valid_table_name(table):
                raise ValueError(
                    f"Invalid table name {table!r} for reference set {set_name!r}"
                )

    def covers(self, set_name: str) -> bool:
        return set_name in self.tables

    def _table_for(self, set_name: str) -> str:
        try:
            return self.tables[set_name]
        except KeyError:
            raise UnknownReferenceSetError(set_name) from None

    def _exists(self, set_name: str, ref_id: int) -> bool:
        table = self._table_for(set_name)
        if not _SQLITE_INT_MIN <= ref_id <= _SQLITE_INT_MAX:
            return False
        try:
            row = self.conn.execute(
                f"SELECT 1 FROM {table} WHERE id = ? LIMIT 1", (ref_id,)
            ).fetchone()
        except sqlite3.Error as e:
            logger.error("reference lookup failed set=%s table=%s id=%s: %s",
                         set_name, table, ref_id, e)
            raise ReferenceLookupError(
                f"Could not look up {set_name} id {ref_id}: {e}"
            ) from e
        return row is not None

    def fetch_ids(self, set_name: str) -> List[int]:
        """Return every id of a reference set, sorted, for allow-list publication."""
        table = self._table_for(set_name)
        try:
            rows = self.conn.execute(f"SELECT id FROM {table} ORDER BY id").fetchall()
        except sqlite3.Error as e:
            logger.error("reference listing failed set=%s table=%s: %s",
                         set_name, table, e)
            raise ReferenceLookupError(f"Could not list {set_name} ids: {e}") from e
        return [r[0] for r in rows]

    def to_allow_list(self) -> AllowListLookup:
        """Snapshot every covered set into an AllowListLookup."""
        return AllowListLookup({name: self.fetch_ids(name) for name in self.tables})
