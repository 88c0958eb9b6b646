"""
Tests for validate_payload.py: the command-line validator.
"""
import argparse
import json
import sys
from pathlib import Path

import pytest

sys.path.insert(0, str(Path(__file__).resolve().parent.parent))

from validate_payload import main, parse_id_list

VALID = {
    "aaa": "2024-03-15",
    "bbb": "Dune",
    "ccc": 11,
    "ddd": [{"zzz": 1, "yyy": 2, "xxx": 5, "www": "Hardcover"}],
}
UNKNOWN_REF = {
    "aaa": "2024-03-15",
    "bbb": "Dune",
    "ccc": 11,
    "ddd": [{"zzz": 42, "yyy": 2, "xxx": 5, "www": "Hardcover"}],
}


def _write(path: Path, data) -> Path:
    path.write_text(json.dumps(data), encoding="utf-8")
    return path


class TestParseIdList:
    def test_parse(self):
        assert parse_id_list("1, 2,3") == [1, 2, 3]

    def test_trailing_comma(self):
        assert parse_id_list("4,") == [4]

    def test_invalid(self):
        with pytest.raises(argparse.ArgumentTypeError):
            parse_id_list("1,x")


class TestMain:
    def test_valid_file(self, tmp_path, capsys):
        path = _write(tmp_path / "ok.json", VALID)
        assert main([str(path)]) == 0
        out = capsys.readouterr().out
        assert "OK" in out
        assert "1 payload(s), 0 invalid" in out

    def test_invalid_file(self, tmp_path, capsys):
        path = _write(tmp_path / "bad.json", {"bbb": "Dune", "ccc": 10})
        assert main([str(path)]) == 1
        out = capsys.readouterr().out
        assert "FAIL" in out
        assert "aaa: This field is required" in out

    def test_list_of_payloads_json_output(self, tmp_path, capsys):
        path = _write(tmp_path / "many.json", [VALID, {"ccc": 10}])
        assert main([str(path), "--json"]) == 1
        reports = json.loads(capsys.readouterr().out)
        assert [r["index"] for r in reports] == [0, 1]
        assert reports[0]["isValid"] is True
        assert reports[1]["isValid"] is False

    def test_allow_list_flags(self, tmp_path, capsys):
        path = _write(tmp_path / "ref.json", UNKNOWN_REF)
        assert main([str(path)]) == 0
        assert main([str(path), "--zzz-ids", "1,2,3"]) == 1
        assert "references an invalid entity" in capsys.readouterr().out

    def test_database_lookup(self, tmp_path, reference_db, capsys):
        ok = _write(tmp_path / "ok.json", VALID)
        bad = _write(tmp_path / "ref.json", UNKNOWN_REF)
        assert main([str(ok), "--db", str(reference_db)]) == 0
        assert main([str(bad), "--db", str(reference_db)]) == 1

    def test_missing_database(self, tmp_path, capsys):
        path = _write(tmp_path / "ok.json", VALID)
        assert main([str(path), "--db", str(tmp_path / "missing.sqlite")]) == 2
        assert "Database not found" in capsys.readouterr().err

    def test_db_and_allow_list_conflict(self, tmp_path, reference_db):
        path = _write(tmp_path / "ok.json", VALID)
        with pytest.raises(SystemExit) as exc_info:
            main([str(path), "--db", str(reference_db), "--yyy-ids", "2"])
        assert exc_info.value.code == 2

    def test_unreadable_json(self, tmp_path, capsys):
        path = tmp_path / "broken.json"
        path.write_text("{not json", encoding="utf-8")
        assert main([str(path)]) == 2
        assert "Could not read payload" in capsys.readouterr().err

    def test_invalid_utf8(self, tmp_path, capsys):
        path = tmp_path / "latin1.json"
        path.write_bytes(b'{"aaa": "\xff"}')
        assert main([str(path)]) == 2
        assert "Could not read payload" in capsys.readouterr().err

    def test_missing_file(self, tmp_path):
        assert main([str(tmp_path / "nope.json")]) == 2

    def test_lookup_failure(self, tmp_path, reference_db, monkeypatch, capsys):
        monkeypatch.setenv("APP_REFERENCE_TABLES", "Zzz=no_such_table,Yyy=yyy")
        path = _write(tmp_path / "ok.json", VALID)
        assert main([str(path), "--db", str(reference_db)]) == 2
        assert "Could not look up" in capsys.readouterr().err
