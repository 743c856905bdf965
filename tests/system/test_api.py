"""
System test: the full HTTP surface in-process against the app's SQLite file.

Runs the real lifespan (tables, skill dimensions, scoring workers, runner),
so scoring and teaser checks happen exactly as they would in production.
"""

import uuid

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy import func, select

from sharpstack.database import async_session_maker
from sharpstack.engines.training.usage import usage_day
from sharpstack.kernel.identity import create_access_token
from sharpstack.kernel.models import DailyUsage, Drill, DrillInputType, DrillScore, PracticeMode, User
from sharpstack.main import app

pytestmark = pytest.mark.system

API = "/api/v1"


@pytest_asyncio.fixture
async def client():
    async with app.router.lifespan_context(app):
        async with AsyncClient(
            transport=ASGITransport(app=app),
            base_url="http://test",
        ) as ac:
            yield ac


@pytest_asyncio.fixture
async def account(client):
    """A fresh free-tier user and a two-drill mode, unique per test."""
    async with async_session_maker() as session:
        user = User(email=f"{uuid.uuid4().hex[:12]}@example.com", full_name="Dana Reyes", plan="free")
        mode = PracticeMode(slug=f"exec-{uuid.uuid4().hex[:8]}", name="Executive Presence")
        session.add_all([user, mode])
        await session.flush()
        session.add_all([
            Drill(
                mode_id=mode.id,
                position=0,
                name="Compression",
                instruction="Say the core point of this update in 15 words or fewer.",
                insight="The shorter version is usually the truer one.",
                dimension_keys=["clarity", "brevity"],
            ),
            Drill(
                mode_id=mode.id,
                position=1,
                name="Closing Strong",
                instruction="Which closing question lands best?",
                input_type=DrillInputType.MULTIPLE_CHOICE.value,
                options=[
                    {"id": "a", "label": "What would make this hire a success in ninety days?", "correct": True},
                    {"id": "b", "label": "How much vacation do I get?", "correct": False},
                ],
            ),
        ])
        await session.commit()
        user_id, slug = user.id, mode.slug

    headers = {"Authorization": f"Bearer {create_access_token(user_id)}"}
    return {"user_id": user_id, "slug": slug, "headers": headers}


async def _start(client, account):
    response = await client.post(
        f"{API}/training/sessions",
        json={"modeSlug": account["slug"]},
        headers=account["headers"],
    )
    assert response.status_code == 201, response.text
    return response.json()


class TestHealth:
    @pytest.mark.asyncio
    async def test_health(self, client):
        response = await client.get("/health")
        assert response.status_code == 200
        data = response.json()
        assert data["status"] == "ok"
        assert data["ai_configured"] is False
        assert data["scoring_workers"] > 0
        assert response.headers.get("X-Request-ID")


class TestAuth:
    @pytest.mark.asyncio
    async def test_missing_token(self, client):
        response = await client.get(f"{API}/training/modes")
        assert response.status_code == 401

    @pytest.mark.asyncio
    async def test_garbage_token(self, client):
        response = await client.get(f"{API}/training/modes", headers={"Authorization": "Bearer nope"})
        assert response.status_code == 401

    @pytest.mark.asyncio
    async def test_unknown_user(self, client):
        token = create_access_token(uuid.uuid4())
        response = await client.get(f"{API}/training/modes", headers={"Authorization": f"Bearer {token}"})
        assert response.status_code == 401


class TestTrainingApi:
    @pytest.mark.asyncio
    async def test_modes_use_camel_case(self, client, account):
        response = await client.get(f"{API}/training/modes", headers=account["headers"])
        assert response.status_code == 200
        [mode] = [m for m in response.json() if m["slug"] == account["slug"]]
        assert mode["totalDrills"] == 2
        assert mode["progress"]["currentLevel"] == 1
        assert mode["progress"]["maxLevel"] == 2

    @pytest.mark.asyncio
    async def test_start_opens_with_insight(self, client, account):
        data = await _start(client, account)
        assert data["session"]["phase"] == "insight"
        assert data["session"]["status"] == "active"
        assert data["card"]["type"] == "insight"
        assert data["card"]["title"] == "Compression"
        assert data["completed"] is False

    @pytest.mark.asyncio
    async def test_unknown_mode(self, client, account):
        response = await client.post(
            f"{API}/training/sessions", json={"modeSlug": "no-such-mode"}, headers=account["headers"],
        )
        assert response.status_code == 404

    @pytest.mark.asyncio
    async def test_respond_requires_an_answer(self, client, account):
        data = await _start(client, account)
        response = await client.post(
            f"{API}/training/sessions/{data['session']['id']}/respond", json={}, headers=account["headers"],
        )
        assert response.status_code == 422
        body = response.json()
        assert body["detail"] == "Validation error"
        assert body["errors"]

    @pytest.mark.asyncio
    async def test_continue_on_scenario_conflicts(self, client, account):
        data = await _start(client, account)
        url = f"{API}/training/sessions/{data['session']['id']}/continue"
        first = await client.post(url, headers=account["headers"])
        assert first.json()["card"]["type"] == "scenario"

        second = await client.post(url, headers=account["headers"])
        assert second.status_code == 409

    @pytest.mark.asyncio
    async def test_unknown_session(self, client, account):
        response = await client.get(f"{API}/training/sessions/{uuid.uuid4()}", headers=account["headers"])
        assert response.status_code == 404

    @pytest.mark.asyncio
    async def test_daily_limit(self, client, account):
        async with async_session_maker() as session:
            session.add(DailyUsage(user_id=account["user_id"], usage_date=usage_day(), exchange_count=15))
            await session.commit()

        response = await client.post(
            f"{API}/training/sessions", json={"modeSlug": account["slug"]}, headers=account["headers"],
        )
        assert response.status_code == 429
        body = response.json()
        assert body["error"] == "limit_reached"
        assert body["plan"] == "free"
        assert body["daily_limit"] == 15
        assert body["used"] == 15
        assert body["message"]

    @pytest.mark.asyncio
    async def test_full_session(self, client, account):
        headers = account["headers"]
        data = await _start(client, account)
        session_id = data["session"]["id"]
        base = f"{API}/training/sessions/{session_id}"

        step = (await client.post(f"{base}/continue", headers=headers)).json()
        assert step["card"]["type"] == "scenario"

        step = (await client.post(f"{base}/respond", json={"text": "Launch slips two weeks."}, headers=headers)).json()
        assert step["card"]["type"] == "feedback"
        assert step["session"]["exchangeCount"] == 1

        step = (await client.post(f"{base}/continue", headers=headers)).json()
        assert step["card"]["type"] == "multiple_choice"
        assert [o["id"] for o in step["card"]["options"]] == ["a", "b"]

        step = (await client.post(f"{base}/respond", json={"choice": "a"}, headers=headers)).json()
        assert step["session"]["phase"] == "feedback"

        response = await client.post(f"{base}/continue", headers=headers)
        assert response.status_code == 200
        step = response.json()
        assert step["completed"] is True
        assert step["card"] is None
        assert step["summary"]["responses"] == 2
        assert step["summary"]["multipleChoiceCorrect"] == 1

        # Let the teaser check and the scoring workers finish
        await app.state.runner.drain()
        await app.state.scoring_pool.join()

        async with async_session_maker() as session:
            scored = await session.scalar(
                select(func.count(DrillScore.id)).where(DrillScore.session_id == uuid.UUID(session_id))
            )
        assert scored == 1

        view = (await client.get(base, headers=headers)).json()
        assert view["session"]["status"] == "completed"
        assert view["card"] is None
        assert len(view["messages"]) > 0

        usage = (await client.get(f"{API}/training/usage", headers=headers)).json()
        assert usage["used"] == 2
        assert usage["remaining"] == 13


class TestInsightsApi:
    @pytest.mark.asyncio
    async def test_blind_spots_need_data(self, client, account):
        response = await client.get(f"{API}/blind-spots", headers=account["headers"])
        assert response.status_code == 200
        data = response.json()
        assert data["gateReason"] == "insufficient_data"
        assert data["sessionsUntilInsights"] == 5
        assert data["blindSpots"] is None

    @pytest.mark.asyncio
    async def test_status_banner(self, client, account):
        data = (await client.get(f"{API}/blind-spots/status", headers=account["headers"])).json()
        assert data["hasEnoughData"] is False
        assert data["hasProAccess"] is False
        assert data["minimumSessions"] == 5

    @pytest.mark.asyncio
    async def test_trends_gated(self, client, account):
        data = (await client.get(f"{API}/blind-spots/trends", headers=account["headers"])).json()
        assert data == {"gateReason": "insufficient_data", "weeks": None}

    @pytest.mark.asyncio
    async def test_trend_weeks_bounds(self, client, account):
        response = await client.get(f"{API}/blind-spots/trends?weeks=0", headers=account["headers"])
        assert response.status_code == 422

    @pytest.mark.asyncio
    async def test_skills_catalog(self, client, account):
        response = await client.get(f"{API}/skills", headers=account["headers"])
        assert response.status_code == 200
        keys = {row["key"] for row in response.json()}
        assert "authority" in keys


class TestEmailPreferences:
    @pytest.mark.asyncio
    async def test_read_and_update(self, client, account):
        url = f"{API}/email-preferences"
        assert (await client.get(url, headers=account["headers"])).json() == {
            "teaserEmails": True,
            "weeklyReport": True,
        }

        response = await client.put(url, json={"weeklyReport": False}, headers=account["headers"])
        assert response.status_code == 200
        assert response.json() == {"teaserEmails": True, "weeklyReport": False}

        assert (await client.get(url, headers=account["headers"])).json()["weeklyReport"] is False
