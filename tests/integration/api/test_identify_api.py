"""Integration tests for the identify endpoint."""

import asyncio

import pytest
from httpx import AsyncClient
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from infrastructure.database.models import ProfileModel


async def _profile_count(db_session: AsyncSession) -> int:
    result = await db_session.execute(select(func.count()).select_from(ProfileModel))
    return int(result.scalar_one())


class TestIdentifyAPI:
    """Integration tests for POST /api/v1/identify."""

    @pytest.mark.asyncio
    async def test_creates_profile(self, client: AsyncClient) -> None:
        response = await client.post(
            "/api/v1/identify",
            json={"email": "ada@example.com", "traits": {"plan": "free"}},
        )

        assert response.status_code == 200
        data = response.json()["data"]
        assert data["email"] == "ada@example.com"
        assert data["primary_identifier"] == "ada@example.com"
        assert data["traits"] == {"plan": "free"}
        assert data["total_orders"] == 0
        assert data["total_spend"] == "0.00"

    @pytest.mark.asyncio
    async def test_repeat_identify_merges_traits(
        self, client: AsyncClient, db_session: AsyncSession
    ) -> None:
        first = await client.post(
            "/api/v1/identify", json={"email": "a@x.io", "traits": {"a": 1}}
        )
        second = await client.post(
            "/api/v1/identify", json={"email": "a@x.io", "traits": {"b": 2}}
        )

        assert first.json()["data"]["id"] == second.json()["data"]["id"]
        assert second.json()["data"]["traits"] == {"a": 1, "b": 2}
        assert await _profile_count(db_session) == 1

    @pytest.mark.asyncio
    async def test_user_id_takes_precedence_and_backfills_email(
        self, client: AsyncClient
    ) -> None:
        created = await client.post("/api/v1/identify", json={"user_id": "u1"})

        response = await client.post(
            "/api/v1/identify", json={"user_id": "u1", "email": "u1@x.io"}
        )

        data = response.json()["data"]
        assert data["id"] == created.json()["data"]["id"]
        assert data["email"] == "u1@x.io"
        assert data["primary_identifier"] == "u1"

    @pytest.mark.asyncio
    async def test_existing_identifier_is_never_overwritten(self, client: AsyncClient) -> None:
        await client.post("/api/v1/identify", json={"user_id": "u1", "email": "old@x.io"})

        response = await client.post(
            "/api/v1/identify", json={"user_id": "u1", "email": "new@x.io"}
        )

        assert response.json()["data"]["email"] == "old@x.io"

    @pytest.mark.asyncio
    async def test_identifier_owned_elsewhere_is_not_moved(
        self, client: AsyncClient, db_session: AsyncSession
    ) -> None:
        by_email = await client.post("/api/v1/identify", json={"email": "shared@x.io"})
        by_user = await client.post("/api/v1/identify", json={"user_id": "u7"})

        response = await client.post(
            "/api/v1/identify", json={"user_id": "u7", "email": "shared@x.io"}
        )

        assert response.status_code == 200
        data = response.json()["data"]
        assert data["id"] == by_user.json()["data"]["id"]
        assert data["email"] is None
        assert by_email.json()["data"]["id"] != data["id"]
        assert await _profile_count(db_session) == 2

    @pytest.mark.asyncio
    async def test_anonymous_then_known(self, client: AsyncClient) -> None:
        anon = await client.post("/api/v1/identify", json={"anonymous_id": "dev-1"})

        known = await client.post(
            "/api/v1/identify", json={"anonymous_id": "dev-1", "user_id": "u1"}
        )

        data = known.json()["data"]
        assert data["id"] == anon.json()["data"]["id"]
        assert data["user_id"] == "u1"
        assert data["primary_identifier"] == "dev-1"

    @pytest.mark.asyncio
    async def test_missing_identifier(self, client: AsyncClient) -> None:
        response = await client.post(
            "/api/v1/identify", json={"email": "   ", "traits": {"a": 1}}
        )

        assert response.status_code == 400
        assert response.json()["error_code"] == "MISSING_IDENTIFIER"

    @pytest.mark.asyncio
    async def test_malformed_traits(self, client: AsyncClient) -> None:
        response = await client.post(
            "/api/v1/identify", json={"user_id": "u1", "traits": ["a", "b"]}
        )

        assert response.status_code == 400
        body = response.json()
        assert body["error_code"] == "VALIDATION_ERROR"
        assert body["details"] == {"field": "traits"}

    @pytest.mark.asyncio
    async def test_integer_trait_beyond_64_bits_is_rejected(
        self, client: AsyncClient, db_session: AsyncSession
    ) -> None:
        response = await client.post(
            "/api/v1/identify", json={"user_id": "u1", "traits": {"score": -(2**64)}}
        )

        assert response.status_code == 400
        assert response.json()["details"] == {"field": "traits.score"}
        assert await _profile_count(db_session) == 0

    @pytest.mark.asyncio
    async def test_concurrent_identify_yields_one_profile(
        self, client: AsyncClient, db_session: AsyncSession
    ) -> None:
        responses = await asyncio.gather(
            *[
                client.post(
                    "/api/v1/identify",
                    json={"email": "race@x.io", "traits": {f"k{i}": i}},
                )
                for i in range(4)
            ]
        )

        assert [r.status_code for r in responses] == [200] * 4
        assert len({r.json()["data"]["id"] for r in responses}) == 1
        assert await _profile_count(db_session) == 1
