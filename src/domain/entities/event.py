"""Event domain entity."""

from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal
from uuid import UUID, uuid4

from core.clock import utcnow
from domain.entities.bag import Bag
from domain.entities.money import parse_amount, to_decimal

PURCHASE_EVENT_TYPE = "purchase"


@dataclass(frozen=True)
class Event:
    """Immutable record of one tracked interaction.

    ``occurred_at`` is caller-supplied (or defaults to ingestion time);
    ``created_at`` is always ingestion time.
    """

    event_type: str
    id: UUID = field(default_factory=uuid4)
    profile_id: UUID | None = None
    user_id: str | None = None
    anonymous_id: str | None = None
    properties: Bag = field(default_factory=dict)
    occurred_at: datetime = field(default_factory=utcnow)
    created_at: datetime = field(default_factory=utcnow)

    @property
    def is_purchase(self) -> bool:
        return self.event_type.casefold() == PURCHASE_EVENT_TYPE

    def purchase_amount(self) -> Decimal | None:
        """Purchase amount rounded to cents, or None when this event earns no order credit.

        Positivity is judged before rounding, so a sub-cent amount still
        counts as an order that adds 0.00 to spend. Amounts beyond the
        storable range count as malformed.
        """
        if not self.is_purchase:
            return None
        raw = self.properties.get("amount")
        unrounded = to_decimal(raw)
        if unrounded is None or unrounded <= 0:
            return None
        return parse_amount(raw)
