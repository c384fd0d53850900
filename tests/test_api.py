import pytest

from chijimi.api import create_app


@pytest.fixture
def client(loaded_service):
    with create_app(loaded_service).test_client() as client:
        yield client


@pytest.fixture
def empty_client(service):
    with create_app(service).test_client() as client:
        yield client


def test_optimize_endpoint(client):
    resp = client.post("/api/optimize", json={"text": "コンピュータとアルゴリズムを活用した"})
    assert resp.status_code == 200
    assert resp.get_json() == {
        "original": "コンピュータとアルゴリズムを活用した",
        "optimized": "電算機とアルゴリズムを活用した",
        "tokenCount": {"original": 18, "optimized": 15},
    }
    # Japanese is returned unescaped
    assert "電算機".encode("utf-8") in resp.data


@pytest.mark.parametrize("payload", [{}, {"text": ""}, {"text": "  "}, {"text": 3}, ["text"]])
def test_optimize_requires_text(client, payload):
    resp = client.post("/api/optimize", json=payload)
    assert resp.status_code == 400
    assert resp.get_json() == {"error": "Text is required"}


def test_optimize_without_json_body(client):
    resp = client.post("/api/optimize", data="text=コンピュータ", content_type="text/plain")
    assert resp.status_code == 400


def test_optimize_uninitialized(empty_client):
    resp = empty_client.post("/api/optimize", json={"text": "コンピュータ"})
    assert resp.status_code == 503
    assert resp.get_json()["code"] == "dictionary_uninitialized"


def test_optimize_internal_error(client, loaded_service, monkeypatch):
    def boom(text):
        raise RuntimeError("segmenter crashed")

    monkeypatch.setattr(loaded_service, "optimize", boom)
    resp = client.post("/api/optimize", json={"text": "コンピュータ"})
    assert resp.status_code == 500
    assert resp.get_json() == {"error": "Internal server error"}


def test_optimize_rejects_get(client):
    assert client.get("/api/optimize").status_code == 405


def test_stats_endpoint(client):
    resp = client.get("/api/dictionary/stats")
    assert resp.status_code == 200
    assert resp.get_json() == {"synonymCount": 3, "dictionaryWordCount": 10}


def test_stats_uninitialized(empty_client):
    resp = empty_client.get("/api/dictionary/stats")
    assert resp.status_code == 503
