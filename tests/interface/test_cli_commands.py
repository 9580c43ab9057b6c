"""Tests for CLI commands: help, import, export, inspection, mutation and config."""

import io
import json
import sqlite3
import zipfile
from unittest.mock import AsyncMock, patch

import pytest
from typer.testing import CliRunner

from ankivocab.domain.errors import StorageError
from ankivocab.infrastructure.storage.json_storage import JsonFileStorage
from ankivocab.interface.cli import app

runner = CliRunner()


@pytest.fixture
def data_dir(tmp_path, mock_home):
    return tmp_path / "store"


def invoke(data_dir, *args, **kwargs):
    return runner.invoke(app, ["--data-dir", str(data_dir), *args], **kwargs)


# --- Help ---


def test_cli_help():
    result = runner.invoke(app, ["--help"])
    assert result.exit_code == 0
    assert "import" in result.stdout
    assert "export" in result.stdout
    assert "config" in result.stdout


# --- Import ---


def test_import_csv_then_stats(data_dir, tmp_path):
    cards = tmp_path / "Basics.csv"
    cards.write_text("Hola,Hello\nAdiós,Goodbye\n", encoding="utf-8")

    result = invoke(data_dir, "import", str(cards), "--tier", "familiar")
    assert result.exit_code == 0
    assert "Imported 'Basics': 2 cards" in result.stdout

    result = invoke(data_dir, "stats")
    assert result.exit_code == 0
    stats = json.loads(result.stdout)
    assert stats["decks"] == 1
    assert stats["total_cards"] == 2
    assert stats["familiar"] == 2
    assert stats["mastered"] == 0


def test_import_apkg_and_guidance(data_dir, tmp_path, apkg_factory):
    deck = tmp_path / "Spanish.apkg"
    deck.write_bytes(
        apkg_factory(
            [
                {"flds": "el gato\x1fthe cat", "ivl": 120, "type": 2},
                {"flds": "perro\x1fdog", "ivl": 3, "type": 1},
            ]
        )
    )

    result = invoke(data_dir, "import", str(deck))
    assert result.exit_code == 0

    guidance = json.loads(invoke(data_dir, "guidance").stdout)
    assert guidance["mastered"] == ["gato"]
    assert guidance["new"] == ["perro"]


def test_import_bad_archive_fails(data_dir, tmp_path):
    deck = tmp_path / "broken.apkg"
    deck.write_bytes(b"not a zip")

    result = invoke(data_dir, "import", str(deck))
    assert result.exit_code == 1
    assert "CorruptArchive" in result.output


def test_import_missing_file(data_dir, tmp_path):
    result = invoke(data_dir, "import", str(tmp_path / "nope.apkg"))
    assert result.exit_code == 2


def test_import_unsupported_suffix(data_dir, tmp_path):
    doc = tmp_path / "notes.pdf"
    doc.write_bytes(b"%PDF")
    result = invoke(data_dir, "import", str(doc))
    assert result.exit_code == 2
    assert "Unsupported file type" in result.output


# --- Export ---


def test_export_writes_apkg(data_dir, tmp_path):
    terms = tmp_path / "terms.yaml"
    terms.write_text("- [hola, hello]\n- term: gato\n  counterpart: cat\n", encoding="utf-8")
    out = tmp_path / "out.apkg"

    result = invoke(data_dir, "export", str(terms), "--out", str(out), "--deck", "Mine")
    assert result.exit_code == 0
    assert "Wrote 2 terms" in result.stdout

    with zipfile.ZipFile(io.BytesIO(out.read_bytes())) as zf:
        conn = sqlite3.connect(":memory:")
        conn.deserialize(zf.read("collection.anki2"))
    decks = json.loads(conn.execute("SELECT decks FROM col").fetchone()[0])
    assert [d["name"] for d in decks.values()] == ["Mine"]
    assert conn.execute("SELECT count(*) FROM notes").fetchone()[0] == 2


def test_export_bad_terms_file(data_dir, tmp_path):
    terms = tmp_path / "terms.yaml"
    terms.write_text("just: a mapping\n", encoding="utf-8")

    result = invoke(data_dir, "export", str(terms), "-o", str(tmp_path / "x.apkg"))
    assert result.exit_code == 2
    assert not (tmp_path / "x.apkg").exists()


# --- Decks / remove / clear ---


def test_decks_remove_and_clear(data_dir, tmp_path):
    assert "No decks imported." in invoke(data_dir, "decks").stdout

    for name in ("Food", "Travel"):
        f = tmp_path / f"{name}.txt"
        f.write_text("la comida\tfood\n", encoding="utf-8")
        assert invoke(data_dir, "import", str(f)).exit_code == 0

    listing = invoke(data_dir, "decks").stdout
    assert "Food: 1 cards" in listing
    assert "[manual: new]" in listing

    result = invoke(data_dir, "remove", "Food")
    assert result.exit_code == 0
    assert "1 decks" in result.stdout

    assert invoke(data_dir, "remove", "Food").exit_code == 1

    result = invoke(data_dir, "clear", input="n\n")
    assert result.exit_code == 1
    assert json.loads(invoke(data_dir, "stats").stdout)["decks"] == 1

    assert invoke(data_dir, "clear", "--force").exit_code == 0
    assert json.loads(invoke(data_dir, "stats").stdout)["decks"] == 0


def test_remove_and_clear_report_storage_failure(data_dir, tmp_path):
    f = tmp_path / "Food.txt"
    f.write_text("la comida\tfood\n", encoding="utf-8")
    assert invoke(data_dir, "import", str(f)).exit_code == 0

    failing_save = AsyncMock(side_effect=StorageError("disk full"))
    with patch.object(JsonFileStorage, "save", failing_save):
        result = invoke(data_dir, "remove", "Food")
        assert result.exit_code == 1
        assert "Remove failed: disk full" in result.output
        assert result.exception is None or isinstance(result.exception, SystemExit)

        result = invoke(data_dir, "clear", "--force")
        assert result.exit_code == 1
        assert "Clear failed: disk full" in result.output

    assert json.loads(invoke(data_dir, "stats").stdout)["decks"] == 1


# --- Logs ---


def test_import_writes_log_file(data_dir, tmp_path, mock_home):
    cards = tmp_path / "Logged.csv"
    cards.write_text("uno,one\n", encoding="utf-8")
    assert invoke(data_dir, "import", str(cards)).exit_code == 0

    log_file = mock_home / ".config/ankivocab/logs/ankivocab.log"
    assert "Imported deck 'Logged'" in log_file.read_text(encoding="utf-8")

    result = invoke(data_dir, "logs")
    assert result.exit_code == 0
    assert result.stdout.strip() == str(log_file.resolve())


# --- Config ---


def test_config_show(mock_home, monkeypatch):
    monkeypatch.setenv("ANKIVOCAB_EXPORT_DECK_NAME", "Spanish")
    result = runner.invoke(app, ["config", "show"])
    assert result.exit_code == 0
    data = json.loads(result.stdout)
    assert data["export_deck_name"] == "Spanish"
    assert data["storage_backend"] == "file"
