"""
HTTP tests for the API routes via httpx.ASGITransport.
"""

from datetime import datetime, timedelta, timezone
from unittest.mock import AsyncMock, MagicMock

import httpx
import jwt
import pytest

from tradecup.api import deps
from tradecup.core.config import settings
from tradecup.main import create_app
from tradecup.models.cup import Cup, CupStatus
from tradecup.models.participant import CupParticipant
from tradecup.schemas.ranking import CupRecord, ParticipantRecord
from tradecup.services.lbank.errors import LBankResponseError
from tradecup.services.lbank.models import UserInfo

CRON_SECRET = "cron-secret-for-tests"
ADMIN_TOKEN = "admin-token-for-tests"
JWT_SECRET = "jwt-secret-for-tests-0123456789abcdef"
NOW = datetime.now(timezone.utc)


class RecordingRepository:
    """Ranking repository that counts every call"""

    def __init__(self, cups=None, participants=None):
        self.cups = cups or []
        self.participants = participants or {}
        self.calls = []
        self.ranks = {}

    async def find_active_cups(self):
        self.calls.append("find_active_cups")
        return list(self.cups)

    async def find_cup_participants(self, cup_id, exclude_disqualified=True):
        self.calls.append("find_cup_participants")
        return list(self.participants.get(cup_id, []))

    async def update_cup_status(self, cup_id, status):
        self.calls.append("update_cup_status")

    async def insert_snapshot(self, snapshot):
        self.calls.append("insert_snapshot")

    async def update_participant_stats(self, participant_id, stats):
        self.calls.append("update_participant_stats")

    async def update_participant_rank(self, cup_id, user_id, rank):
        self.calls.append("update_participant_rank")
        self.ranks[user_id] = rank


class BrokenRepository(RecordingRepository):
    async def find_active_cups(self):
        raise RuntimeError("connection refused")


@pytest.fixture(autouse=True)
def configured(monkeypatch):
    monkeypatch.setattr(settings, "CRON_SECRET", CRON_SECRET)
    monkeypatch.setattr(settings, "ADMIN_API_TOKEN", ADMIN_TOKEN)
    monkeypatch.setattr(settings, "SESSION_JWT_SECRET", JWT_SECRET)
    monkeypatch.setattr(settings, "ENVIRONMENT", "production")


@pytest.fixture
def exchange():
    client = MagicMock()
    client.get_user_info = AsyncMock(return_value=UserInfo(uid="42"))
    client.get_usdt_balance = AsyncMock(return_value=1150.0)
    client.get_volume_for_pair = AsyncMock(return_value=500.0)
    return client


@pytest.fixture
def repository():
    return RecordingRepository()


@pytest.fixture
def app(session_factory, vault, exchange, repository):
    application = create_app()

    async def override_db():
        async with session_factory() as session:
            yield session

    application.dependency_overrides[deps.get_db] = override_db
    application.dependency_overrides[deps.get_vault] = lambda: vault
    application.dependency_overrides[deps.get_lbank] = lambda: exchange
    application.dependency_overrides[deps.get_ranking_repository] = lambda: repository
    return application


@pytest.fixture
async def client(app):
    transport = httpx.ASGITransport(app=app)
    async with httpx.AsyncClient(transport=transport, base_url="http://test") as http_client:
        yield http_client


def bearer(token):
    return {"Authorization": f"Bearer {token}"}


def session_cookie(profile_id="alice"):
    return {deps.SESSION_COOKIE: jwt.encode({"profile_id": profile_id}, JWT_SECRET, algorithm="HS256")}


class TestCronTrigger:

    @pytest.mark.parametrize("headers", [
        {},
        bearer("wrong-secret"),
        {"Authorization": CRON_SECRET},
    ])
    async def test_rejects_without_side_effects(self, client, repository, exchange, headers):
        response = await client.post("/api/v1/cron/ranking", headers=headers)

        assert response.status_code == 401
        assert response.json() == {"detail": "Unauthorized"}
        assert repository.calls == []
        exchange.get_usdt_balance.assert_not_called()

    async def test_unset_secret_rejects_everything(self, client, repository, monkeypatch):
        monkeypatch.setattr(settings, "CRON_SECRET", None)

        response = await client.post("/api/v1/cron/ranking", headers=bearer("None"))

        assert response.status_code == 401
        assert repository.calls == []

    async def test_no_active_cups(self, client):
        response = await client.post("/api/v1/cron/ranking", headers=bearer(CRON_SECRET))

        assert response.status_code == 200
        assert response.json() == {"message": "No active cups"}

    async def test_runs_cycle(self, client, repository, vault):
        cup = CupRecord(
            id="cup-1",
            name="IZKY Cup",
            status=CupStatus.ACTIVE,
            start_at=NOW - timedelta(days=1),
            end_at=NOW + timedelta(days=1),
            min_volume_usdt=100.0,
        )
        repository.cups = [cup]
        repository.participants = {
            "cup-1": [
                ParticipantRecord(
                    id="p-1",
                    cup_id="cup-1",
                    user_id="alice",
                    registered_at=NOW - timedelta(hours=2),
                    start_balance_usdt=1000.0,
                    encrypted_api_key=vault.encrypt("key"),
                    encrypted_api_secret=vault.encrypt("secret"),
                )
            ]
        }

        response = await client.post("/api/v1/cron/ranking", headers=bearer(CRON_SECRET))

        assert response.status_code == 200
        assert response.json() == {"success": True, "results": [{"cup_id": "cup-1", "updated": 1}]}
        assert repository.ranks == {"alice": 1}

    async def test_listing_failure_is_500(self, app, client):
        app.dependency_overrides[deps.get_ranking_repository] = lambda: BrokenRepository()

        response = await client.post("/api/v1/cron/ranking", headers=bearer(CRON_SECRET))

        assert response.status_code == 500
        assert response.json() == {"error": "Batch processing failed"}

    async def test_get_not_allowed_outside_development(self, client, repository):
        response = await client.get("/api/v1/cron/ranking", headers=bearer(CRON_SECRET))

        assert response.status_code == 405
        assert repository.calls == []

    async def test_get_allowed_in_development(self, client, monkeypatch):
        monkeypatch.setattr(settings, "ENVIRONMENT", "development")

        response = await client.get("/api/v1/cron/ranking", headers=bearer(CRON_SECRET))

        assert response.status_code == 200
        assert response.json() == {"message": "No active cups"}

    async def test_get_still_requires_secret_in_development(self, client, monkeypatch):
        monkeypatch.setattr(settings, "ENVIRONMENT", "development")

        response = await client.get("/api/v1/cron/ranking")

        assert response.status_code == 401


class TestCupRoutes:

    async def test_cup_and_ranking(self, client, session_factory):
        async with session_factory() as db:
            db.add(Cup(id="cup-1", name="IZKY Cup", status=CupStatus.ACTIVE.value))
            db.add_all([
                CupParticipant(id="p-1", cup_id="cup-1", user_id="alice", rank=2, pnl_pct=1.0),
                CupParticipant(id="p-2", cup_id="cup-1", user_id="bob", rank=1, pnl_pct=5.0),
                CupParticipant(id="p-3", cup_id="cup-1", user_id="carol", is_disqualified=True),
            ])
            await db.commit()

        cup = await client.get("/api/v1/cups/cup-1")
        ranking = await client.get("/api/v1/cups/cup-1/ranking")

        assert cup.status_code == 200
        assert cup.json()["data"]["participant_count"] == 3
        assert [row["user_id"] for row in ranking.json()["data"]] == ["bob", "alice"]

    async def test_unknown_cup(self, client):
        response = await client.get("/api/v1/cups/missing")

        assert response.status_code == 404

    async def test_register_requires_session(self, client):
        response = await client.post("/api/v1/cups/cup-1/register")

        assert response.status_code == 401

    async def test_register_flow(self, client, session_factory):
        async with session_factory() as db:
            db.add(Cup(id="cup-1", name="IZKY Cup", status=CupStatus.SCHEDULED.value))
            await db.commit()

        client.cookies.update(session_cookie("alice"))

        no_key = await client.post("/api/v1/cups/cup-1/register")
        assert no_key.status_code == 400
        assert no_key.json()["detail"] == "Verified LBank API key required"

        saved = await client.post("/api/v1/lbank/save-key", json={"api_key": "k", "api_secret": "s"})
        assert saved.status_code == 200
        assert saved.json()["data"]["is_verified"] is True

        registered = await client.post("/api/v1/cups/cup-1/register")
        assert registered.status_code == 201
        assert registered.json()["data"]["start_balance_usdt"] == 1150.0

        again = await client.post("/api/v1/cups/cup-1/register")
        assert again.status_code == 400
        assert again.json()["detail"] == "Already registered"


class TestLBankRoutes:

    async def test_invalid_session_token(self, client):
        client.cookies.set(deps.SESSION_COOKIE, "not-a-jwt")

        response = await client.get("/api/v1/lbank/status")

        assert response.status_code == 401

    async def test_bearer_session_is_accepted(self, client):
        token = session_cookie("bob")[deps.SESSION_COOKIE]

        response = await client.get("/api/v1/lbank/status", headers=bearer(token))

        assert response.status_code == 200
        assert response.json() == {"connected": False, "saved_at": None}

    async def test_probe(self, client):
        client.cookies.update(session_cookie())

        response = await client.post("/api/v1/lbank/test", json={"api_key": "k", "api_secret": "s"})

        assert response.status_code == 200
        assert response.json()["data"] == {"uid": "42", "usdt_balance": 1150.0, "connected": True}

    async def test_probe_requires_both_values(self, client):
        client.cookies.update(session_cookie())

        response = await client.post("/api/v1/lbank/test", json={"api_key": "k"})

        assert response.status_code == 400
        assert response.json()["detail"] == "API key and secret required"

    async def test_save_rejected(self, client, exchange):
        client.cookies.update(session_cookie())
        exchange.get_user_info.side_effect = LBankResponseError(10003, "Invalid api_key")

        response = await client.post("/api/v1/lbank/save-key", json={"api_key": "k", "api_secret": "s"})

        assert response.status_code == 400
        assert response.json()["detail"] == "Invalid API credentials"


class TestAdminRoutes:

    async def test_requires_admin_token(self, client):
        response = await client.patch("/api/v1/admin/cups/cup-1/status", json={"status": "active"})

        assert response.status_code == 401

    async def test_status_and_disqualify(self, client, session_factory):
        async with session_factory() as db:
            db.add(Cup(id="cup-1", name="IZKY Cup", status=CupStatus.DRAFT.value))
            db.add(CupParticipant(id="p-1", cup_id="cup-1", user_id="alice"))
            await db.commit()
        headers = bearer(ADMIN_TOKEN)

        activated = await client.patch(
            "/api/v1/admin/cups/cup-1/status", json={"status": "active"}, headers=headers
        )
        assert activated.status_code == 200
        assert activated.json()["data"]["status"] == "active"

        backwards = await client.patch(
            "/api/v1/admin/cups/cup-1/status", json={"status": "draft"}, headers=headers
        )
        assert backwards.status_code == 400

        disqualified = await client.post(
            "/api/v1/admin/cups/cup-1/disqualify",
            json={"participant_id": "p-1", "reason": "withdrawal_detected"},
            headers=headers,
        )
        assert disqualified.status_code == 200
        assert disqualified.json() == {"success": True}

        missing = await client.post(
            "/api/v1/admin/cups/cup-1/disqualify",
            json={"participant_id": "nope"},
            headers=headers,
        )
        assert missing.status_code == 404


async def test_health(client):
    response = await client.get("/api/v1/health")

    assert response.status_code == 200
    assert response.json()["status"] == "healthy"
