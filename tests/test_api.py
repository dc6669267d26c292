import asyncio

import pytest
from fastapi.testclient import TestClient

from gengate.daemon.app import app
from gengate.daemon.app.lifecycle import get_generator
from gengate.daemon.errors import GenerationError
from gengate.daemon.ledger import get_balance, list_entries
from gengate.daemon.utils.config_loader import GatewayConfig, MeteringConfig, config_loader


class FakeGenerator:
    def __init__(self):
        self.calls = []
        self.delay = 0.0
        self.error = None

    async def __call__(self, prompt):
        self.calls.append(prompt)
        if self.delay:
            await asyncio.sleep(self.delay)
        if self.error:
            raise self.error
        return {"candidates": [{"content": {"parts": [{"text": f"made: {prompt}"}]}}]}


@pytest.fixture
def generator(monkeypatch):
    fake = FakeGenerator()
    app.dependency_overrides[get_generator] = lambda: fake
    monkeypatch.setattr(config_loader, "config", GatewayConfig(metering=MeteringConfig(timeout_seconds=0.2)))
    yield fake
    app.dependency_overrides.pop(get_generator, None)


@pytest.fixture
def client(db, generator):
    return TestClient(app)


def _auth(token):
    return {"Authorization": f"Bearer {token}"}


class TestGenerate:
    def test_success_then_duplicate(self, client, generator, make_account):
        token = make_account("alice", balance=1)

        r = client.post("/generate", json={"prompt": "a cat", "requestId": "r1"}, headers=_auth(token))
        assert r.status_code == 200
        body = r.json()
        assert body["ok"] is True
        assert body["data"]["candidates"][0]["content"]["parts"][0]["text"] == "made: a cat"

        r = client.post("/generate", json={"prompt": "a cat", "requestId": "r1"}, headers=_auth(token))
        assert r.status_code == 200
        assert r.json()["skipped"] is True

        assert generator.calls == ["a cat"]
        assert get_balance("alice") == 0

    def test_generate_image_route_alias(self, client, make_account):
        token = make_account("alice", balance=1)
        r = client.post("/api/generate-image", json={"prompt": "a dog"}, headers=_auth(token))
        assert r.status_code == 200
        assert r.json()["ok"] is True

    def test_no_funds(self, client, generator, make_account):
        token = make_account("bob", balance=0)

        r = client.post("/generate", json={"prompt": "a cat", "requestId": "r2"}, headers=_auth(token))
        assert r.status_code == 403
        assert r.json()["error"] == "no tokens"
        assert r.json()["reason"] == "no_funds"

        r = client.post("/generate", json={"prompt": "a cat", "requestId": "r2"}, headers=_auth(token))
        assert r.status_code == 200
        assert r.json()["skipped"] is True
        assert generator.calls == []

    @pytest.mark.parametrize("payload", [{}, {"prompt": ""}, {"prompt": 7}])
    def test_bad_prompt_is_400(self, client, make_account, payload):
        token = make_account("alice", balance=1)
        r = client.post("/generate", json=payload, headers=_auth(token))
        assert r.status_code == 400
        assert r.json()["reason"] == "invalid_request"
        assert get_balance("alice") == 1

    def test_whitespace_prompt_is_billed_and_generated(self, client, generator, make_account):
        token = make_account("alice", balance=1)

        r = client.post("/generate", json={"prompt": "   ", "requestId": "w1"}, headers=_auth(token))

        assert r.status_code == 200
        assert generator.calls == ["   "]
        assert get_balance("alice") == 0

    def test_bad_prompt_is_400_when_generator_unconfigured(self, db, make_account, monkeypatch):
        monkeypatch.delenv("GEMINI_API_KEY", raising=False)
        monkeypatch.setattr(config_loader, "config", GatewayConfig())
        client = TestClient(app)
        token = make_account("alice", balance=1)

        r = client.post("/generate", json={}, headers=_auth(token))
        assert r.status_code == 400
        assert r.json()["reason"] == "invalid_request"

        r = client.post("/generate", json={"prompt": "a cat"}, headers=_auth(token))
        assert r.status_code == 503
        assert get_balance("alice") == 1

    def test_timeout_is_504_and_debit_stands(self, client, generator, make_account):
        token = make_account("alice", balance=1)
        generator.delay = 2.0

        r = client.post("/generate", json={"prompt": "a cat", "requestId": "t1"}, headers=_auth(token))

        assert r.status_code == 504
        assert r.json()["error"] == "timeout"
        assert get_balance("alice") == 0

    def test_generator_failure_is_500(self, client, generator, make_account):
        token = make_account("alice", balance=1)
        generator.error = GenerationError(message="upstream said no", upstream_status=429)

        r = client.post("/generate", json={"prompt": "a cat"}, headers=_auth(token))

        assert r.status_code == 500
        assert r.json()["reason"] == "generation_failed"
        assert get_balance("alice") == 0

    def test_missing_and_invalid_tokens(self, client, make_account):
        make_account("alice", balance=1)
        assert client.post("/generate", json={"prompt": "a cat"}).status_code == 401
        r = client.post("/generate", json={"prompt": "a cat"}, headers=_auth("0" * 32))
        assert r.status_code == 401
        assert r.json()["error"] == "invalid token"


class TestBalanceAndLedger:
    def test_balance_and_audit_trail(self, client, make_account):
        token = make_account("alice", balance=2)
        client.post("/generate", json={"prompt": "a cat", "requestId": "r1"}, headers=_auth(token))

        r = client.get("/balance", headers=_auth(token))
        assert r.json()["balance"] == 1

        entries = client.get("/ledger", headers=_auth(token)).json()["entries"]
        assert [(e["delta"], e["reason"]) for e in entries] == [(2, "top-up"), (-1, "generation-debit")]
        assert entries[-1]["request_id"] == "r1"


class TestTopUps:
    def test_webhook_credits_paid_events(self, client, make_account, monkeypatch):
        monkeypatch.setenv("BILLING_WEBHOOK_SECRET", "s3cret")
        make_account("alice", balance=0)

        r = client.post(
            "/api/billing/webhook",
            json={"status": "paid", "userId": "alice", "tokens": 5},
            headers={"x-webhook-secret": "s3cret"},
        )
        assert r.status_code == 200
        assert r.json()["user"]["tokens"] == 5
        assert list_entries("alice")[-1].delta == 5

    def test_webhook_ignores_unpaid_and_checks_secret(self, client, make_account, monkeypatch):
        monkeypatch.setenv("BILLING_WEBHOOK_SECRET", "s3cret")
        make_account("alice", balance=0)

        r = client.post(
            "/api/billing/webhook",
            json={"status": "pending", "userId": "alice", "tokens": 5},
            headers={"x-webhook-secret": "s3cret"},
        )
        assert r.json() == {"ok": True, "ignored": True}

        r = client.post(
            "/api/billing/webhook",
            json={"userId": "alice", "tokens": 5},
            headers={"x-webhook-secret": "s3cret"},
        )
        assert r.status_code == 200
        assert r.json() == {"ok": True, "ignored": True}
        assert list_entries("alice") == []

        r = client.post(
            "/api/billing/webhook",
            json={"status": "paid", "userId": "alice", "tokens": 5},
            headers={"x-webhook-secret": "wrong"},
        )
        assert r.status_code == 401
        assert get_balance("alice") == 0

    def test_webhook_errors(self, client, make_account, monkeypatch):
        monkeypatch.setenv("BILLING_WEBHOOK_SECRET", "s3cret")
        make_account("alice", balance=0)
        headers = {"x-webhook-secret": "s3cret"}

        r = client.post("/api/billing/webhook", json={"status": "paid", "userId": "ghost", "tokens": 5}, headers=headers)
        assert r.status_code == 404

        r = client.post("/api/billing/webhook", json={"status": "paid", "userId": "alice", "tokens": 0}, headers=headers)
        assert r.status_code == 400
        assert r.json()["reason"] == "invalid_amount"

    def test_admin_add_tokens_requires_privilege(self, client, make_account):
        admin = make_account("root", role="privileged")
        user = make_account("alice", balance=0)

        r = client.post("/api/admin/add-tokens", json={"userId": "alice", "amount": 3}, headers=_auth(user))
        assert r.status_code == 403
        assert r.json()["reason"] == "forbidden"

        r = client.post("/api/admin/add-tokens", json={"userId": "alice", "amount": 3}, headers=_auth(admin))
        assert r.status_code == 200
        assert get_balance("alice") == 3

    def test_admin_provisions_accounts(self, client, make_account):
        admin = make_account("root", role="privileged")

        r = client.post(
            "/api/admin/accounts",
            json={"identity": "newbie", "balance": 2},
            headers=_auth(admin),
        )
        assert r.status_code == 200
        token = r.json()["token"]

        assert client.get("/balance", headers=_auth(token)).json()["balance"] == 2

        r = client.post("/api/admin/accounts", json={"identity": "newbie"}, headers=_auth(admin))
        assert r.status_code == 400


class TestHealth:
    def test_health_and_root(self, client):
        assert client.get("/").json()["status"] == "ok"
        assert client.get("/health").json()["status"] == "ok"

    def test_ready_requires_api_key(self, client, make_account, monkeypatch):
        monkeypatch.delenv("GEMINI_API_KEY", raising=False)
        r = client.get("/ready")
        assert r.status_code == 503
        assert r.json()["checks"]["database"]["ok"] is True

        monkeypatch.setenv("GEMINI_API_KEY", "test-key")
        assert client.get("/ready").status_code == 200
