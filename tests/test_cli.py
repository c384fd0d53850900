import json
from datetime import datetime, timezone

import pytest

from chijimi import __version__
from chijimi.build import compile_dictionary
from chijimi.cli import build_parser, main
from chijimi.dictionary import save_snapshot
from chijimi.service import DictionaryService
from chijimi.store import SqliteStore, get_metadata, publish

from conftest import SAMPLE_SOURCE, TOKEN_TABLE, VOCABULARY, FakeCounter, FakeSegmenter


class FakeBackendService(DictionaryService):
    """Service that never loads tiktoken or Sudachi."""

    def __init__(self, settings=None):
        super().__init__(counter=FakeCounter(TOKEN_TABLE), segmenter=FakeSegmenter(VOCABULARY), settings=settings)


@pytest.fixture
def db(tmp_path, counter):
    path = tmp_path / "chijimi.db"
    with SqliteStore(path) as store:
        publish(store, compile_dictionary(SAMPLE_SOURCE, counter),
                now=datetime(2025, 3, 1, tzinfo=timezone.utc))
    return path


def test_stats(db, capsys):
    assert main(["stats", "--db", str(db)]) == 0
    stats = json.loads(capsys.readouterr().out)
    assert stats["synonymCount"] == 3
    assert stats["dictionaryWordCount"] == 10


def test_clear_requires_force(db, capsys):
    assert main(["clear", "--db", str(db)]) == 1
    assert "--force" in capsys.readouterr().err
    with SqliteStore(db) as store:
        assert get_metadata(store) is not None


def test_clear(db, capsys):
    assert main(["clear", "--db", str(db), "--force"]) == 0
    assert "Deleted 13 entries" in capsys.readouterr().out
    with SqliteStore(db) as store:
        assert get_metadata(store) is None


def test_command_is_required():
    with pytest.raises(SystemExit):
        build_parser().parse_args([])


def test_version(capsys):
    with pytest.raises(SystemExit):
        main(["--version"])
    assert __version__ in capsys.readouterr().out


def test_snapshot_and_db_are_exclusive():
    with pytest.raises(SystemExit):
        build_parser().parse_args(["optimize", "--snapshot", "a.json", "--db", "b.db", "x"])


def test_optimize_from_snapshot(tmp_path, counter, capsys, monkeypatch):
    monkeypatch.setattr("chijimi.cli.DictionaryService", FakeBackendService)
    path = save_snapshot(compile_dictionary(SAMPLE_SOURCE, counter), tmp_path / "synonym-dict.json")

    code = main(["optimize", "--snapshot", str(path), "--json", "コンピュータとアルゴリズムを活用した"])

    assert code == 0
    result = json.loads(capsys.readouterr().out)
    assert result["optimized"] == "電算機とアルゴリズムを活用した"
    assert result["tokenCount"] == {"original": 18, "optimized": 15}


def test_errors_become_exit_code(tmp_path, capsys, monkeypatch):
    monkeypatch.setattr("chijimi.cli.DictionaryService", FakeBackendService)
    assert main(["optimize", "--snapshot", str(tmp_path / "missing.json"), "コンピュータ"]) == 1
    assert "Error:" in capsys.readouterr().err
