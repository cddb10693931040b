"""Profile domain entity and identifier types."""

from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal
from enum import StrEnum
from typing import Any
from uuid import UUID, uuid4

from core.clock import utcnow
from core.exceptions import MissingIdentifierError, PayloadValidationError
from domain.entities.bag import Bag, merge_bags
from domain.entities.money import ZERO, quantize


class IdentifierKind(StrEnum):
    """External identifier kinds a profile can be reached by."""

    USER_ID = "user_id"
    EMAIL = "email"
    ANONYMOUS_ID = "anonymous_id"


# Lookup precedence, also used to pick the primary identifier.
RESOLUTION_ORDER: tuple[IdentifierKind, ...] = (
    IdentifierKind.USER_ID,
    IdentifierKind.EMAIL,
    IdentifierKind.ANONYMOUS_ID,
)

# At most one profile may own a given value of these kinds.
UNIQUE_KINDS: frozenset[IdentifierKind] = frozenset(
    {IdentifierKind.USER_ID, IdentifierKind.EMAIL}
)


def _normalize(value: Any, kind: IdentifierKind) -> str | None:
    if value is None:
        return None
    if not isinstance(value, str):
        raise PayloadValidationError(f"{kind.value} must be a string", field=kind.value)
    value = value.strip()
    return value or None


@dataclass(frozen=True)
class Identifiers:
    """Candidate identifiers supplied with an identify or track call.

    Blank values are normalized to None.
    """

    email: str | None = None
    user_id: str | None = None
    anonymous_id: str | None = None

    @classmethod
    def from_values(
        cls,
        email: Any = None,
        user_id: Any = None,
        anonymous_id: Any = None,
    ) -> "Identifiers":
        return cls(
            email=_normalize(email, IdentifierKind.EMAIL),
            user_id=_normalize(user_id, IdentifierKind.USER_ID),
            anonymous_id=_normalize(anonymous_id, IdentifierKind.ANONYMOUS_ID),
        )

    def get(self, kind: IdentifierKind) -> str | None:
        value: str | None = getattr(self, kind.value)
        return value

    def present(self) -> list[tuple[IdentifierKind, str]]:
        """Supplied identifiers in resolution order."""
        return [(kind, value) for kind in RESOLUTION_ORDER if (value := self.get(kind))]

    @property
    def is_empty(self) -> bool:
        return not self.present()

    @property
    def primary(self) -> str | None:
        """First supplied value in the order user_id > email > anonymous_id."""
        present = self.present()
        return present[0][1] if present else None

    def without(self, kinds: set[IdentifierKind]) -> "Identifiers":
        """Copy with the given kinds cleared."""
        values = {kind.value: self.get(kind) for kind in IdentifierKind if kind not in kinds}
        return Identifiers(**values)


@dataclass
class ProfilePatch:
    """Changes applied to an existing profile by identify or track."""

    identifiers: Identifiers = field(default_factory=Identifiers)
    traits: Bag = field(default_factory=dict)
    seen_at: datetime | None = None


@dataclass
class Profile:
    """Domain entity for a unified customer profile."""

    primary_identifier: str
    id: UUID = field(default_factory=uuid4)
    email: str | None = None
    user_id: str | None = None
    anonymous_id: str | None = None
    traits: Bag = field(default_factory=dict)
    total_orders: int = 0
    total_spend: Decimal = ZERO
    first_seen_at: datetime = field(default_factory=utcnow)
    last_seen_at: datetime = field(default_factory=utcnow)
    created_at: datetime = field(default_factory=utcnow)
    updated_at: datetime = field(default_factory=utcnow)

    @classmethod
    def from_identifiers(
        cls,
        identifiers: Identifiers,
        traits: Bag | None = None,
        seen_at: datetime | None = None,
    ) -> "Profile":
        """Build a new profile; the primary identifier is fixed here for good."""
        primary = identifiers.primary
        if primary is None:
            raise MissingIdentifierError()
        seen_at = seen_at or utcnow()
        return cls(
            primary_identifier=primary,
            email=identifiers.email,
            user_id=identifiers.user_id,
            anonymous_id=identifiers.anonymous_id,
            traits=dict(traits or {}),
            first_seen_at=seen_at,
            last_seen_at=seen_at,
        )

    def identifier(self, kind: IdentifierKind) -> str | None:
        value: str | None = getattr(self, kind.value)
        return value

    def unfilled(self, identifiers: Identifiers) -> list[tuple[IdentifierKind, str]]:
        """Supplied identifiers whose slot on this profile is still empty."""
        return [
            (kind, value)
            for kind, value in identifiers.present()
            if self.identifier(kind) is None
        ]

    def observe(self, seen_at: datetime) -> None:
        """Advance last_seen_at; never moves it backwards."""
        if seen_at > self.last_seen_at:
            self.last_seen_at = seen_at

    def apply_patch(self, patch: ProfilePatch) -> None:
        """Backfill empty identifiers, merge traits and advance last_seen_at.

        Existing non-null identifiers are never overwritten.
        """
        for kind, value in self.unfilled(patch.identifiers):
            setattr(self, kind.value, value)
        if patch.traits:
            self.traits = merge_bags(self.traits, patch.traits)
        if patch.seen_at is not None:
            self.observe(patch.seen_at)
        self.updated_at = utcnow()

    def record_purchase(self, amount: Decimal) -> None:
        """Credit one order of ``amount`` to the aggregates."""
        self.total_orders += 1
        self.total_spend = quantize(self.total_spend + amount)
        self.updated_at = utcnow()

    def __post_init__(self) -> None:
        """Ensure last_seen_at is never earlier than first_seen_at."""
        if self.last_seen_at < self.first_seen_at:
            self.last_seen_at = self.first_seen_at


@dataclass(frozen=True)
class ProfileSummary:
    """Flat view of a profile for listings and exports."""

    profile_id: UUID
    email: str | None
    user_id: str | None
    total_spend: Decimal
    total_orders: int
    last_seen_at: datetime

    @classmethod
    def from_profile(cls, profile: Profile) -> "ProfileSummary":
        return cls(
            profile_id=profile.id,
            email=profile.email,
            user_id=profile.user_id,
            total_spend=profile.total_spend,
            total_orders=profile.total_orders,
            last_seen_at=profile.last_seen_at,
        )
