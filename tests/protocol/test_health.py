from __future__ import annotations

from fastapi.testclient import TestClient

from posindex.config import ServiceConfig
from posindex.protocol.http.app import create_app
from posindex.unrank.decoder import Decoder
from posindex.unrank.tree import DecisionTree


def test_healthz_ok(identity_tables) -> None:
    decoder = Decoder(DecisionTree.from_nested([100]), identity_tables)
    client = TestClient(create_app(decoder=decoder, config=ServiceConfig()))
    r = client.get("/healthz")
    assert r.status_code == 200
    assert r.json() == {"status": "ok"}
    assert "x-request-id" in r.headers


def test_healthz_degraded_without_decoder() -> None:
    client = TestClient(create_app(config=ServiceConfig()))
    r = client.get("/healthz")
    assert r.status_code == 200
    assert r.json() == {"status": "degraded"}


def test_request_id_is_echoed() -> None:
    client = TestClient(create_app(config=ServiceConfig()))
    r = client.get("/healthz", headers={"x-request-id": "abc-123"})
    assert r.headers["x-request-id"] == "abc-123"
