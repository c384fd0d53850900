import pytest
import requests

from chijimi.errors import SourceFetchError
from chijimi.raw_types import ExpansionFlag, WordEntry
from chijimi.source import fetch_source, group_entries, parse_source, read_source

from conftest import SAMPLE_SOURCE, record, source


def test_parse_skips_comments_blank_and_short_lines():
    text = source(
        "# comment,1,0,1,0,0,0,(),無視,,",
        "",
        "   ",
        "000001,1,0,1,0,0,0,()",
        record("000001", "曖昧"),
    )
    assert parse_source(text) == [("000001", WordEntry("曖昧", ExpansionFlag.ALWAYS))]


def test_parse_trims_word_and_drops_empty_words():
    text = source(
        "000001,1,0,1,0,0,0,(),  あやふや  ,,",
        "000001,1,0,1,0,0,0,(),   ,,",
    )
    assert parse_source(text) == [("000001", WordEntry("あやふや"))]


def test_parse_flags():
    text = source(
        record("1", "a", flag=""),
        record("1", "b", flag="1"),
        record("1", "c", flag="2"),
        record("1", "d", flag="x"),
    )
    flags = [entry.expansion_flag for _, entry in parse_source(text)]
    assert flags == [
        ExpansionFlag.ALWAYS,
        ExpansionFlag.NOT_TRIGGER,
        ExpansionFlag.NEVER,
        ExpansionFlag.NOT_TRIGGER,
    ]


def test_parse_exactly_nine_fields():
    assert parse_source("000007,1,0,1,0,0,0,(),語") == [("000007", WordEntry("語"))]


def test_parse_windows_line_endings():
    text = record("000001", "曖昧") + "\r\n" + record("000001", "あやふや") + "\r\n"
    assert [e.word for _, e in parse_source(text)] == ["曖昧", "あやふや"]


def test_group_entries_keeps_order_and_drops_singletons():
    records = parse_source(SAMPLE_SOURCE)
    groups = group_entries(records)

    assert [g.group_id for g in groups] == ["000001", "000002", "000003", "000004"]
    assert groups[0].words == ["コンピュータ", "コンピューター", "電算機"]


def test_group_entries_merges_interleaved_ids():
    records = parse_source(source(
        record("2", "乙"),
        record("1", "甲"),
        record("2", "丙"),
        record("1", "丁"),
    ))
    groups = group_entries(records)
    assert [(g.group_id, g.words) for g in groups] == [("2", ["乙", "丙"]), ("1", ["甲", "丁"])]


def test_read_source_missing_file(tmp_path):
    with pytest.raises(SourceFetchError):
        read_source(tmp_path / "missing.txt")


def test_read_source(tmp_path):
    path = tmp_path / "synonyms.txt"
    path.write_text(SAMPLE_SOURCE, encoding="utf-8")
    assert read_source(path) == SAMPLE_SOURCE


class _Response:
    def __init__(self, text, status=200):
        self.text = text
        self.status_code = status
        self.encoding = None

    def raise_for_status(self):
        if self.status_code >= 400:
            raise requests.HTTPError(f"{self.status_code} Error")


def test_fetch_source_ok(monkeypatch):
    calls = []

    def fake_get(url, timeout):
        calls.append((url, timeout))
        return _Response(SAMPLE_SOURCE)

    monkeypatch.setattr("chijimi.source.requests.get", fake_get)
    assert fetch_source("https://example.invalid/synonyms.txt", timeout=5) == SAMPLE_SOURCE
    assert calls == [("https://example.invalid/synonyms.txt", 5)]


def test_fetch_source_http_error(monkeypatch):
    monkeypatch.setattr("chijimi.source.requests.get", lambda url, timeout: _Response("", 404))
    with pytest.raises(SourceFetchError):
        fetch_source("https://example.invalid/synonyms.txt")


def test_fetch_source_connection_error(monkeypatch):
    def fail(url, timeout):
        raise requests.ConnectionError("unreachable")

    monkeypatch.setattr("chijimi.source.requests.get", fail)
    with pytest.raises(SourceFetchError):
        fetch_source("https://example.invalid/synonyms.txt")
