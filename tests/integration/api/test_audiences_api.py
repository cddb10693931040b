"""Integration tests for Audiences API."""

from datetime import datetime, timedelta
from decimal import Decimal
from uuid import uuid4

import pytest
from httpx import AsyncClient
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from core.clock import utcnow
from infrastructure.database.models import AudienceMemberModel, ProfileModel


async def _purchase(client: AsyncClient, amount: float, occurred_at: datetime, **ids: str) -> str:
    response = await client.post(
        "/api/v1/track",
        json={
            **ids,
            "event_type": "purchase",
            "properties": {"amount": amount},
            "occurred_at": occurred_at.isoformat(),
        },
    )
    assert response.status_code == 201
    return str(response.json()["profile"]["id"])


async def _create_audience(client: AsyncClient, definition: dict[str, object]) -> str:
    response = await client.post(
        "/api/v1/audiences", json={"name": "Segment", "definition": definition}
    )
    assert response.status_code == 201
    return str(response.json()["data"]["id"])


class TestAudiencesAPI:
    """Integration tests for /api/v1/audiences."""

    @pytest.mark.asyncio
    async def test_create_audience_stores_explicit_rule(self, client: AsyncClient) -> None:
        response = await client.post(
            "/api/v1/audiences",
            json={"name": "Big spenders", "definition": {"min_total_spend": 100}},
        )

        assert response.status_code == 201
        data = response.json()["data"]
        assert data["name"] == "Big spenders"
        assert data["definition"] == {
            "min_total_spend": "100.00",
            "days_since_last_event": 36500,
        }
        assert data["last_built_at"] is None

    @pytest.mark.parametrize(
        "definition",
        [
            {"min_total_spend": "lots"},
            {"days_since_last_event": -1},
            {"min_total_spend": 1e30},
            {"lifetime_value": 10},
            "spend>100",
        ],
    )
    @pytest.mark.asyncio
    async def test_create_audience_malformed_definition(
        self, client: AsyncClient, definition: object
    ) -> None:
        response = await client.post(
            "/api/v1/audiences", json={"name": "Bad", "definition": definition}
        )

        assert response.status_code == 400
        assert response.json()["error_code"] == "VALIDATION_ERROR"

    @pytest.mark.asyncio
    async def test_list_and_get_audiences(self, client: AsyncClient) -> None:
        audience_id = await _create_audience(client, {})

        listed = await client.get("/api/v1/audiences")
        fetched = await client.get(f"/api/v1/audiences/{audience_id}")

        assert [a["id"] for a in listed.json()["data"]] == [audience_id]
        assert fetched.json()["data"]["id"] == audience_id

    @pytest.mark.asyncio
    async def test_get_unknown_audience(self, client: AsyncClient) -> None:
        response = await client.get(f"/api/v1/audiences/{uuid4()}")

        assert response.status_code == 404
        assert response.json()["error_code"] == "AUDIENCE_NOT_FOUND"

    @pytest.mark.asyncio
    async def test_rebuild_selects_by_spend_and_recency(self, client: AsyncClient) -> None:
        now = utcnow()
        big_recent = await _purchase(client, 150, now - timedelta(days=2), user_id="big")
        await _purchase(client, 20, now - timedelta(days=1), user_id="small")
        await _purchase(client, 300, now - timedelta(days=90), user_id="lapsed")
        audience_id = await _create_audience(
            client, {"min_total_spend": 100, "days_since_last_event": 30}
        )

        rebuilt = await client.post(f"/api/v1/audiences/{audience_id}/rebuild")

        assert rebuilt.status_code == 200
        assert rebuilt.json() == {"audience_id": audience_id, "member_count": 1}
        members = await client.get(f"/api/v1/audiences/{audience_id}/members")
        assert [m["profile_id"] for m in members.json()["data"]] == [big_recent]
        audience = await client.get(f"/api/v1/audiences/{audience_id}")
        assert audience.json()["data"]["last_built_at"] is not None

    @pytest.mark.asyncio
    async def test_profile_without_events_is_excluded(
        self, client: AsyncClient, db_session: AsyncSession
    ) -> None:
        now = utcnow()
        db_session.add(
            ProfileModel(
                primary_identifier="imported@x.io",
                email="imported@x.io",
                traits={},
                total_orders=5,
                total_spend=Decimal("500.00"),
                first_seen_at=now,
                last_seen_at=now,
            )
        )
        await db_session.commit()
        audience_id = await _create_audience(client, {"min_total_spend": 100})

        rebuilt = await client.post(f"/api/v1/audiences/{audience_id}/rebuild")

        assert rebuilt.json()["member_count"] == 0

    @pytest.mark.asyncio
    async def test_rebuild_is_idempotent(
        self, client: AsyncClient, db_session: AsyncSession
    ) -> None:
        now = utcnow()
        for user_id in ("a", "b"):
            await _purchase(client, 50, now, user_id=user_id)
        audience_id = await _create_audience(client, {})

        first = await client.post(f"/api/v1/audiences/{audience_id}/rebuild")
        second = await client.post(f"/api/v1/audiences/{audience_id}/rebuild")

        assert first.json()["member_count"] == second.json()["member_count"] == 2
        rows = await db_session.execute(
            select(func.count()).select_from(AudienceMemberModel)
        )
        assert rows.scalar_one() == 2

    @pytest.mark.asyncio
    async def test_rebuild_drops_members_that_no_longer_qualify(
        self, client: AsyncClient
    ) -> None:
        now = utcnow()
        await _purchase(client, 60, now, user_id="a")
        audience_id = await _create_audience(client, {"min_total_spend": 50})
        assert (await client.post(f"/api/v1/audiences/{audience_id}/rebuild")).json()[
            "member_count"
        ] == 1

        other_id = await _create_audience(client, {"min_total_spend": 1000})
        rebuilt = await client.post(f"/api/v1/audiences/{other_id}/rebuild")
        members = await client.get(f"/api/v1/audiences/{other_id}/members")

        assert rebuilt.json()["member_count"] == 0
        assert members.json()["data"] == []

    @pytest.mark.asyncio
    async def test_rebuild_unknown_audience(self, client: AsyncClient) -> None:
        response = await client.post(f"/api/v1/audiences/{uuid4()}/rebuild")

        assert response.status_code == 404

    @pytest.mark.asyncio
    async def test_members_before_first_rebuild_is_empty(self, client: AsyncClient) -> None:
        await _purchase(client, 60, utcnow(), user_id="a")
        audience_id = await _create_audience(client, {})

        response = await client.get(f"/api/v1/audiences/{audience_id}/members")

        assert response.status_code == 200
        assert response.json()["data"] == []

    @pytest.mark.asyncio
    async def test_members_of_unknown_audience(self, client: AsyncClient) -> None:
        response = await client.get(f"/api/v1/audiences/{uuid4()}/members")

        assert response.status_code == 404

    @pytest.mark.asyncio
    async def test_export_csv(self, client: AsyncClient) -> None:
        now = utcnow().replace(microsecond=0)
        await client.post("/api/v1/identify", json={"user_id": "u1", "email": "u1@x.io"})
        await _purchase(client, 120.5, now, user_id="u1")
        audience_id = await _create_audience(client, {"min_total_spend": 100})
        await client.post(f"/api/v1/audiences/{audience_id}/rebuild")

        response = await client.get(f"/api/v1/audiences/{audience_id}/export")

        assert response.status_code == 200
        assert response.headers["content-type"].startswith("text/csv")
        assert "attachment" in response.headers["content-disposition"]
        lines = response.text.splitlines()
        assert lines[0] == "email,user_id,total_spend,total_orders,last_seen_at"
        assert lines[1].startswith("u1@x.io,u1,120.50,1,")
        assert len(lines) == 2
