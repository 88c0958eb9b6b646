"""
Book catalog payload validator: command-line front end.

Validates JSON payloads with the same rules the API enforces.  Each file may
hold a single JSON object or a JSON list of objects.

Usage:
    python validate_payload.py payload.json                  # No reference checks
    python validate_payload.py payload.json --db catalog.sqlite
    python validate_payload.py payload.json --zzz-ids 1,2,3 --yyy-ids 7,8
    python validate_payload.py a.json b.json --json          # JSON report

Exit codes:
    0  every payload is valid
    1  at least one payload is invalid
    2  unreadable input, or the reference lookup failed
"""

import argparse
import json
import logging
import sqlite3
import sys
from pathlib import Path

from utils.config import AppConfig
from utils.reference import (
    AllowListLookup,
    ReferenceLookupError,
    SqliteReferenceLookup,
)
from utils.validation import validate

logger = logging.getLogger("validate_payload")


def parse_id_list(raw: str) -> list[int]:
    """Parse a comma-separated id list such as "1, 2,3"."""
    try:
        return [int(part) for part in raw.split(",") if part.strip()]
    except ValueError:
        raise argparse.ArgumentTypeError(f"not a comma-separated id list: {raw!r}")


def load_payloads(path: Path) -> list:
    """Read one file; a top-level list is treated as several payloads."""
    with open(path, encoding="utf-8") as f:
        data = json.load(f)
    return data if isinstance(data, list) else [data]


def validate_files(paths: list[Path], lookup=None) -> list[dict]:
    """Validate every payload in ``paths``.

    Returns:
        One report entry per payload: file, index, isValid, errors
    """
    reports = []
    for path in paths:
        for index, payload in enumerate(load_payloads(path)):
            result = validate(payload, lookup)
            entry = {"file": str(path), "index": index}
            entry.update(result.to_dict())
            reports.append(entry)
    return reports


def print_report(reports: list[dict]) -> None:
    """Print a human-readable report to stdout."""
    for entry in reports:
        label = f"{entry['file']}[{entry['index']}]"
        if entry["isValid"]:
            print(f"  OK    {label}")
            continue
        print(f"  FAIL  {label}")
        for err in entry["errors"]:
            prop = err["property"] or "<root>"
            print(f"          {prop}: {err['message']}")
    invalid = sum(1 for e in reports if not e["isValid"])
    print(f"\n{len(reports)} payload(s), {invalid} invalid")


def main(argv: list[str] | None = None) -> int:
    """Parse CLI arguments, validate the payloads, and return the exit code."""
    parser = argparse.ArgumentParser(
        description="Validate book catalog payloads against the form rules")
    parser.add_argument("files", nargs="+", type=Path,
                        help="JSON files holding a payload or a list of payloads")
    parser.add_argument("--db", type=Path,
                        help="Catalog database for live zzz / yyy reference checks")
    parser.add_argument("--zzz-ids", type=parse_id_list, default=None,
                        help="Comma-separated allow-list of valid zzz ids")
    parser.add_argument("--yyy-ids", type=parse_id_list, default=None,
                        help="Comma-separated allow-list of valid yyy ids")
    parser.add_argument("--json", action="store_true",
                        help="Output results as JSON")
    parser.add_argument("--verbose", "-v", action="store_true",
                        help="Enable debug logging")
    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(levelname)s %(name)s %(message)s",
    )

    if args.db is not None and (args.zzz_ids is not None or args.yyy_ids is not None):
        parser.error("--db cannot be combined with --zzz-ids / --yyy-ids")

    conn = None
    lookup = None
    if args.db is not None:
        if not args.db.exists():
            print(f"ERROR: Database not found: {args.db}", file=sys.stderr)
            return 2
        conn = sqlite3.connect(str(args.db))
        lookup = SqliteReferenceLookup(conn, AppConfig.from_env().reference_tables)
    elif args.zzz_ids is not None or args.yyy_ids is not None:
        lookup = AllowListLookup.from_ids(args.zzz_ids, args.yyy_ids)

    try:
        reports = validate_files(args.files, lookup)
    except (OSError, ValueError) as e:
        print(f"ERROR: Could not read payload: {e}", file=sys.stderr)
        return 2
    except ReferenceLookupError as e:
        print(f"ERROR: {e}", file=sys.stderr)
        return 2
    finally:
        if conn is not None:
            conn.close()

    if args.json:
        print(json.dumps(reports, indent=2))
    else:
        print_report(reports)
    return 1 if any(not e["isValid"] for e in reports) else 0


if __name__ == "__main__":
    sys.exit(main())
