"""SQLAlchemy implementation of Audience repository."""

from datetime import datetime
from uuid import UUID

from sqlalchemy import delete, insert, select
from sqlalchemy.ext.asyncio import AsyncSession

from domain.entities.audience import Audience, AudienceDefinition, AudienceMember
from domain.entities.profile import Profile
from infrastructure.database.models import AudienceMemberModel, AudienceModel, ProfileModel
from infrastructure.database.repositories.sqlalchemy_profile_repo import profile_from_model


class SQLAlchemyAudienceRepository:
    """SQLAlchemy implementation of IAudienceRepository."""

    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def get(self, id: UUID, for_update: bool = False) -> Audience | None:
        """Get an audience by ID."""
        stmt = select(AudienceModel).where(AudienceModel.id == id)
        if for_update:
            stmt = stmt.with_for_update()
        result = await self._session.execute(stmt)
        model = result.scalar_one_or_none()
        return self._to_entity(model) if model else None

    async def create(self, audience: Audience) -> Audience:
        """Create a new audience."""
        model = self._to_model(audience)
        self._session.add(model)
        await self._session.flush()
        await self._session.refresh(model)
        return self._to_entity(model)

    async def get_all(self) -> list[Audience]:
        """List audiences, newest first."""
        stmt = select(AudienceModel).order_by(AudienceModel.created_at.desc(), AudienceModel.id)
        result = await self._session.execute(stmt)
        return [self._to_entity(model) for model in result.scalars()]

    async def replace_members(
        self, audience_id: UUID, members: list[AudienceMember], built_at: datetime
    ) -> int:
        """Delete-then-insert the membership set and stamp last_built_at.

        Runs inside the caller's transaction, so readers see either the old
        set or the new one.
        """
        await self._session.execute(
            delete(AudienceMemberModel).where(AudienceMemberModel.audience_id == audience_id)
        )
        if members:
            await self._session.execute(
                insert(AudienceMemberModel),
                [
                    {
                        "audience_id": member.audience_id,
                        "profile_id": member.profile_id,
                        "added_at": member.added_at,
                    }
                    for member in members
                ],
            )

        model = await self._session.get(AudienceModel, audience_id)
        if model:
            model.last_built_at = built_at
        await self._session.flush()
        return len(members)

    async def get_member_profiles(self, audience_id: UUID) -> list[Profile]:
        """Member profiles, most recently seen first."""
        stmt = (
            select(ProfileModel)
            .join(AudienceMemberModel, AudienceMemberModel.profile_id == ProfileModel.id)
            .where(AudienceMemberModel.audience_id == audience_id)
            .order_by(ProfileModel.last_seen_at.desc(), ProfileModel.id)
        )
        result = await self._session.execute(stmt)
        return [profile_from_model(model) for model in result.scalars()]

    def _to_entity(self, model: AudienceModel) -> Audience:
        """Convert ORM model to domain entity."""
        return Audience(
            id=model.id,
            name=model.name,
            definition=AudienceDefinition.parse(model.definition),
            created_at=model.created_at,
            last_built_at=model.last_built_at,
        )

    def _to_model(self, entity: Audience) -> AudienceModel:
        """Convert domain entity to ORM model."""
        return AudienceModel(
            id=entity.id,
            name=entity.name,
            definition=entity.definition.to_dict(),
            created_at=entity.created_at,
            last_built_at=entity.last_built_at,
        )
