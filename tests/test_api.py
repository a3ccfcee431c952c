"""Tests for the Orange Tools API endpoints."""

import json

import pytest
from fastapi.testclient import TestClient

import api
from api import app
from docs import DocStore
from ratelimit import RateLimiter


class FakeStreamer:
    def __init__(self, deltas=("Sure", ", here it is.")):
        self.deltas = deltas
        self.calls = []

    async def stream(self, system, messages):
        self.calls.append((system, messages))
        for d in self.deltas:
            yield d


@pytest.fixture
def client(tmp_path):
    saved = (app.state.doc_store, app.state.chat_limiter, app.state.chat_streamer)
    app.state.doc_store = DocStore(str(tmp_path / "docs.json"), seed_titles=["Max It", "خطوط الزوار"])
    app.state.chat_limiter = RateLimiter(1000, 60)
    app.state.chat_streamer = FakeStreamer()
    yield TestClient(app)
    app.state.doc_store, app.state.chat_limiter, app.state.chat_streamer = saved


def chat_body(*contents, locale=None):
    body = {
        "messages": [
            {"id": str(i), "role": "user", "content": c, "timestamp": 1_700_000_000_000 + i}
            for i, c in enumerate(contents)
        ]
    }
    if locale:
        body["locale"] = locale
    return body


def sse_payloads(text):
    return [line[len("data: "):] for line in text.split("\n\n") if line.startswith("data: ")]


# ── Health ────────────────────────────────────────────────────────────


def test_healthz(client):
    r = client.get("/healthz")
    assert r.status_code == 200
    assert r.json() == {"ok": True, "status": "healthy", "env": "test"}


# ── Pricing ───────────────────────────────────────────────────────────


class TestPricing:

    def test_pricing(self, client):
        r = client.post("/api/pricing", json={"base_price": 10})
        assert r.status_code == 200
        data = r.json()
        assert data["result"] == {
            "base": 10.0,
            "nos_b_nos": 13.11,
            "voice_calls_only": 14.62,
            "data_only": 11.6,
        }
        assert data["formulas"]["data_only"] == "A × 1.16"

    def test_negative_price(self, client):
        r = client.post("/api/pricing", json={"base_price": -1})
        assert r.status_code == 400
        assert r.json()["error"]["code"] == "validation_error"

    def test_missing_field(self, client):
        r = client.post("/api/pricing", json={})
        assert r.status_code == 422
        body = r.json()
        assert body["ok"] is False
        assert body["error"]["code"] == "validation_error"
        assert body["error"]["details"]


# ── Cycle / pro-rata ──────────────────────────────────────────────────


class TestCycle:

    def test_cycle(self, client):
        r = client.get("/api/cycle", params={"pivot": "2024-02-28", "anchor_day": 29})
        assert r.status_code == 200
        assert r.json()["cycle"] == {"start": "2024-01-29", "end": "2024-02-29", "lengthDays": 31}

    def test_default_anchor(self, client):
        r = client.get("/api/cycle", params={"pivot": "2025-10-14"})
        assert r.json()["cycle"]["start"] == "2025-09-15"

    def test_bad_anchor(self, client):
        r = client.get("/api/cycle", params={"pivot": "2025-10-14", "anchor_day": 32})
        assert r.status_code == 400

    def test_bad_date(self, client):
        r = client.get("/api/cycle", params={"pivot": "14/10/2025"})
        assert r.status_code == 400
        assert r.json()["ok"] is False


class TestProrata:

    def test_elapsed(self, client):
        r = client.post("/api/prorata", json={
            "monthly": 100, "pivot": "2024-02-20", "anchor_day": 10, "mode": "elapsed",
        })
        assert r.status_code == 200
        result = r.json()["result"]
        assert result["start"] == "2024-02-10"
        assert result["end"] == "2024-03-10"
        assert result["totalDays"] == 29
        assert result["usedDays"] == 10
        assert round(result["value"], 3) == 34.483
        assert "formatted" not in r.json()

    def test_formatted_view(self, client):
        r = client.post("/api/prorata", json={
            "monthly": 30, "pivot": "2025-10-14", "anchor_day": 15, "view": "totals", "lang": "en",
        })
        assert r.json()["formatted"] == "Monthly: JD 30.000\nPro-rata: JD 1.000"

    def test_unknown_mode(self, client):
        r = client.post("/api/prorata", json={"monthly": 30, "pivot": "2025-10-14", "mode": "weekly"})
        assert r.status_code == 422


class TestActivation:

    def test_monthly(self, client):
        r = client.post("/api/prorata/activation", json={
            "activation": "2025-10-14", "monthly": 30, "view": "script", "lang": "en",
        })
        assert r.status_code == 200
        body = r.json()
        assert body["result"]["usedDays"] == 1
        assert body["formatted"].startswith("Period: 2025-09-15 → 2025-10-15")

    def test_gross(self, client):
        r = client.post("/api/prorata/activation", json={"activation": "2025-10-14", "gross": 116})
        result = r.json()["result"]
        assert result["grossEcho"] == 116
        assert round(result["monthlyNet"], 3) == 100.0
        assert round(result["value"], 3) == 3.333

    def test_vat_view_uses_request_rate(self, client):
        r = client.post("/api/prorata/activation", json={
            "activation": "2025-10-14", "monthly": 30, "vat_rate": 0.1, "view": "vat", "lang": "en",
        })
        assert "VAT (10%): JD 3.100" in r.json()["formatted"]

    @pytest.mark.parametrize("extra", [{}, {"monthly": 30, "gross": 34.8}])
    def test_exactly_one_amount(self, client, extra):
        r = client.post("/api/prorata/activation", json={"activation": "2025-10-14", **extra})
        assert r.status_code == 400
        assert r.json()["error"]["code"] == "http_error"


# ── VAT ───────────────────────────────────────────────────────────────


class TestVat:

    def test_from_gross(self, client):
        r = client.post("/api/vat", json={"gross": 116})
        vat = r.json()["vat"]
        assert round(vat["net"], 3) == 100.0
        assert round(vat["vat"], 3) == 16.0
        assert vat["gross"] == 116

    def test_from_net(self, client):
        r = client.post("/api/vat", json={"net": 31})
        assert round(r.json()["vat"]["gross"], 3) == 35.96

    def test_neither(self, client):
        assert client.post("/api/vat", json={}).status_code == 400


# ── Docs ──────────────────────────────────────────────────────────────


def test_docs_seeded(client):
    r = client.get("/api/docs")
    assert r.status_code == 200
    ids = {d["id"] for d in r.json()["docs"]}
    assert ids == {"max-it", "khtwt-alzwar"}


# ── Chat ──────────────────────────────────────────────────────────────


class TestChat:

    def test_prorata_json_reply(self, client):
        r = client.post("/api/chat", json=chat_body("2025-10-14 monthly 30", locale="en"))
        assert r.status_code == 200
        assert r.headers["content-type"].startswith("application/json")
        message = r.json()["message"]
        assert message["role"] == "assistant"
        assert message["payload"]["kind"] == "prorata"
        assert message["payload"]["data"]["prorataNet"] == "JD 1.000"

    def test_navigation_reply(self, client):
        r = client.post("/api/chat", json=chat_body("افتح خطوط الزوار"))
        payload = r.json()["message"]["payload"]
        assert payload["kind"] == "navigate-doc"
        assert payload["locale"] == "ar"
        assert payload["doc"]["id"] == "khtwt-alzwar"

    def test_model_stream(self, client):
        r = client.post("/api/chat", json=chat_body("What does Nos_b_Nos mean?"))
        assert r.status_code == 200
        assert r.headers["content-type"].startswith("text/event-stream")
        payloads = sse_payloads(r.text)
        assert payloads[-1] == "[DONE]"
        text = "".join(json.loads(p)["content"] for p in payloads[:-1])
        assert text == "Sure, here it is."

        system, turns = app.state.chat_streamer.calls[0]
        assert "Docs available:" in system
        assert turns == [{"role": "user", "content": "What does Nos_b_Nos mean?"}]

    def test_empty_messages_rejected(self, client):
        r = client.post("/api/chat", json={"messages": []})
        assert r.status_code == 422

    def test_only_assistant_turns(self, client):
        body = {"messages": [{"id": "1", "role": "assistant", "content": "hi", "timestamp": 1}]}
        r = client.post("/api/chat", json=body)
        assert r.status_code == 400

    def test_rate_limited(self, client):
        app.state.chat_limiter = RateLimiter(2, 60)
        body = chat_body("2025-10-14 monthly 30")
        assert client.post("/api/chat", json=body).status_code == 200
        assert client.post("/api/chat", json=body).status_code == 200
        r = client.post("/api/chat", json=body)
        assert r.status_code == 429
        assert r.json()["error"]["code"] == "rate_limited"
        assert int(r.headers["Retry-After"]) >= 1

    def test_forwarded_header_does_not_change_the_limit_key(self, client):
        app.state.chat_limiter = RateLimiter(1, 60)
        body = chat_body("2025-10-14 monthly 30")
        assert client.post("/api/chat", json=body, headers={"x-forwarded-for": "10.0.0.1"}).status_code == 200
        for i in range(2, 6):
            r = client.post("/api/chat", json=body, headers={"x-forwarded-for": f"10.0.0.{i}"})
            assert r.status_code == 429
        assert app.state.chat_limiter.tracked_keys() == 1

    def test_chat_handled_off_the_event_loop(self, client, monkeypatch):
        calls = []

        async def spy(func, *args):
            calls.append(func)
            return func(*args)

        monkeypatch.setattr(api, "run_in_threadpool", spy)
        r = client.post("/api/chat", json=chat_body("2025-10-14 monthly 30"))
        assert r.status_code == 200
        assert calls == [api.handle_chat]

    def test_calculators_not_rate_limited(self, client):
        app.state.chat_limiter = RateLimiter(1, 60)
        for _ in range(3):
            assert client.post("/api/pricing", json={"base_price": 1}).status_code == 200
