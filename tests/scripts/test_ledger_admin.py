"""Tests for the ledger admin CLI."""

import csv
import json

import pytest

from scripts.ledger_admin import main
from supply_config import DATABASE_URL_ENV
from supply_kernel.db.engine import reset_engine


@pytest.fixture
def run(tmp_path, monkeypatch):
    """Run the CLI against a fresh SQLite file; returns (exit code, stdout, stderr)."""
    monkeypatch.delenv(DATABASE_URL_ENV, raising=False)
    db_url = f"sqlite:///{tmp_path / 'admin.db'}"

    def _run(capsys, *argv):
        code = main(["--db-url", db_url, *argv])
        out, err = capsys.readouterr()
        return code, out, err

    yield _run
    reset_engine()


def test_totals_on_first_run_shows_the_seeded_labels(run, capsys):
    code, out, _ = run(capsys, "totals")

    assert code == 0
    assert "luvas" in out
    assert "20" in out


def test_migrate_then_totals(run, capsys, tmp_path):
    legacy = tmp_path / "legacy.json"
    legacy.write_text(json.dumps({"luvas": 12, "seringa": 0}))

    code, out, _ = run(capsys, "migrate", "--legacy-json", str(legacy))

    assert code == 0
    assert "Migration: migrated" in out
    assert "luvas: 12" in out
    assert "skipped: seringa" in out

    code, out, _ = run(capsys, "migrate", "--legacy-json", str(legacy))
    assert "Migration: skipped_existing" in out


def test_migrate_rejects_a_non_object(run, capsys, tmp_path):
    legacy = tmp_path / "legacy.json"
    legacy.write_text("[1, 2]")

    code, _, err = run(capsys, "migrate", "--legacy-json", str(legacy))

    assert code == 1
    assert "label -> quantity" in err


def test_missing_legacy_file_is_an_error(run, capsys, tmp_path):
    code, _, err = run(capsys, "migrate", "--legacy-json", str(tmp_path / "absent.json"))

    assert code == 1
    assert "ERROR" in err


def test_export_csv(run, capsys, tmp_path):
    out_path = tmp_path / "export.csv"

    code, out, _ = run(capsys, "export-csv", "--out", str(out_path), "--days", "30")

    assert code == 0
    rows = list(csv.reader(out_path.open(encoding="utf-8")))
    assert rows[0] == ["Item", "Consumed", "StockOnHand", "ExportDate"]
    assert len(rows) == 16
    assert f"Wrote {len(rows) - 1} row(s)" in out


def test_export_history(run, capsys, tmp_path):
    out_path = tmp_path / "history.json"

    code, _, _ = run(capsys, "export-history", "--out", str(out_path))

    assert code == 0
    assert json.loads(out_path.read_text(encoding="utf-8")) == []


def test_alerts_on_a_fresh_ledger(run, capsys):
    code, out, _ = run(capsys, "alerts")

    assert code == 0
    assert "No stock alerts." in out
