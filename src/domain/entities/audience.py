"""Audience domain entities and declarative membership rules.

A definition is stored as plain data and turned into a tree of rule values,
each with a fixed ``matches`` function. New predicate kinds are added as new
rule classes plus a parser entry in ``AudienceDefinition``.
"""

from dataclasses import dataclass, field
from datetime import datetime, timedelta
from decimal import Decimal
from typing import Any, Protocol
from uuid import UUID, uuid4

from core.clock import utcnow
from core.exceptions import PayloadValidationError
from domain.entities.money import MAX_AMOUNT, ZERO, parse_amount

# Recency window used when a definition has none (~100 years).
DEFAULT_RECENCY_WINDOW_DAYS = 36500


@dataclass(frozen=True)
class MemberCandidate:
    """What a rule sees of a profile: its aggregates plus last event time."""

    profile_id: UUID
    total_spend: Decimal
    last_event_at: datetime | None


class AudienceRule(Protocol):
    """A membership predicate."""

    def matches(self, candidate: MemberCandidate, now: datetime) -> bool: ...


@dataclass(frozen=True)
class MinTotalSpend:
    """total_spend >= amount."""

    amount: Decimal

    def matches(self, candidate: MemberCandidate, now: datetime) -> bool:
        return candidate.total_spend >= self.amount


@dataclass(frozen=True)
class ActiveWithinDays:
    """At least one event with occurred_at >= now - days.

    A profile with no events never matches.
    """

    days: int

    def cutoff(self, now: datetime) -> datetime:
        try:
            return now - timedelta(days=self.days)
        except OverflowError:
            return datetime.min

    def matches(self, candidate: MemberCandidate, now: datetime) -> bool:
        if candidate.last_event_at is None:
            return False
        return candidate.last_event_at >= self.cutoff(now)


@dataclass(frozen=True)
class AllOf:
    """Conjunction of rules."""

    rules: tuple[AudienceRule, ...]

    def matches(self, candidate: MemberCandidate, now: datetime) -> bool:
        return all(rule.matches(candidate, now) for rule in self.rules)


def _parse_min_total_spend(value: Any) -> Decimal:
    if isinstance(value, bool):
        raise PayloadValidationError(
            "min_total_spend must be a number", field="definition.min_total_spend"
        )
    amount = parse_amount(value)
    if amount is None or amount < 0:
        raise PayloadValidationError(
            f"min_total_spend must be a number from 0 to {MAX_AMOUNT}",
            field="definition.min_total_spend",
        )
    return amount


def _parse_days(value: Any) -> int:
    if isinstance(value, float) and value.is_integer():
        value = int(value)
    if isinstance(value, bool) or not isinstance(value, int) or value < 0:
        raise PayloadValidationError(
            "days_since_last_event must be an integer >= 0",
            field="definition.days_since_last_event",
        )
    return value


@dataclass(frozen=True)
class AudienceDefinition:
    """Validated audience definition with every field made explicit."""

    min_total_spend: Decimal = ZERO
    days_since_last_event: int = DEFAULT_RECENCY_WINDOW_DAYS

    FIELDS = ("min_total_spend", "days_since_last_event")

    @classmethod
    def parse(
        cls,
        raw: Any,
        default_recency_days: int = DEFAULT_RECENCY_WINDOW_DAYS,
    ) -> "AudienceDefinition":
        """Validate a raw definition mapping.

        Unknown fields are rejected. Missing fields default to a spend floor of
        zero and a recency window of ``default_recency_days``.
        """
        if not isinstance(raw, dict):
            raise PayloadValidationError("definition must be an object", field="definition")

        unknown = sorted(set(raw) - set(cls.FIELDS))
        if unknown:
            raise PayloadValidationError(
                f"Unknown definition fields: {', '.join(unknown)}",
                field="definition",
            )

        min_total_spend = ZERO
        if raw.get("min_total_spend") is not None:
            min_total_spend = _parse_min_total_spend(raw["min_total_spend"])

        days = default_recency_days
        if raw.get("days_since_last_event") is not None:
            days = _parse_days(raw["days_since_last_event"])

        return cls(min_total_spend=min_total_spend, days_since_last_event=days)

    def to_rule(self) -> AudienceRule:
        return AllOf(
            rules=(
                MinTotalSpend(self.min_total_spend),
                ActiveWithinDays(self.days_since_last_event),
            )
        )

    def to_dict(self) -> dict[str, Any]:
        """JSON-safe form for storage; money travels as a string."""
        return {
            "min_total_spend": str(self.min_total_spend),
            "days_since_last_event": self.days_since_last_event,
        }


@dataclass
class Audience:
    """Domain entity for a named, rule-defined segment."""

    name: str
    definition: AudienceDefinition = field(default_factory=AudienceDefinition)
    id: UUID = field(default_factory=uuid4)
    created_at: datetime = field(default_factory=utcnow)
    last_built_at: datetime | None = None


@dataclass(frozen=True)
class AudienceMember:
    """One (audience, profile) membership row."""

    audience_id: UUID
    profile_id: UUID
    added_at: datetime = field(default_factory=utcnow)
