"""
Pytest fixtures for the book catalog validation tests.

Provides a temporary SQLite catalog with the two reference tables, an open
connection to it, and the golden validation corpus shared by the lookup
strategy tests.

Reference data used throughout:
    zzz ids: 1, 2, 3
    yyy ids: 2, 4, 6
"""

import json
import sqlite3
import sys
from pathlib import Path

import pytest

sys.path.insert(0, str(Path(__file__).resolve().parent.parent))

FIXTURES_DIR = Path(__file__).parent / "fixtures"

ZZZ_IDS = [1, 2, 3]
YYY_IDS = [2, 4, 6]


def _create_reference_db(path: Path) -> Path:
    """Create a minimal catalog database holding the zzz / yyy reference tables."""
    conn = sqlite3.connect(str(path))
    conn.executescript("""
        CREATE TABLE zzz (id INTEGER PRIMARY KEY, label TEXT NOT NULL);
        CREATE TABLE yyy (id INTEGER PRIMARY KEY, label TEXT NOT NULL);
    """)
    conn.executemany("INSERT INTO zzz (id, label) VALUES (?, ?)",
                     [(i, f"zzz-{i}") for i in ZZZ_IDS])
    conn.executemany("INSERT INTO yyy (id, label) VALUES (?, ?)",
                     [(i, f"yyy-{i}") for i in YYY_IDS])
    conn.commit()
    conn.close()
    return path


@pytest.fixture()
def reference_db(tmp_path) -> Path:
    """Return a Path to a fresh catalog database with reference rows."""
    return _create_reference_db(tmp_path / "catalog.sqlite")


@pytest.fixture()
def reference_conn(reference_db):
    """Open connection to the reference database, closed after the test."""
    conn = sqlite3.connect(str(reference_db))
    yield conn
    conn.close()


@pytest.fixture(scope="session")
def validation_corpus() -> list[dict]:
    """Golden cases: record plus expected [property, message] pairs."""
    with open(FIXTURES_DIR / "validation_corpus.json", encoding="utf-8") as f:
        return json.load(f)["cases"]
