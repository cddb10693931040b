"""Incremental profile aggregates."""

from domain.entities.event import Event
from domain.entities.money import ZERO
from domain.entities.profile import Profile
from domain.repositories.unit_of_work import IUnitOfWork


class AggregateMaintainer:
    """Keeps total_orders, total_spend and last_seen_at current per event.

    Works from the event alone; the event log is never rescanned.
    """

    def apply(self, profile: Profile, event: Event) -> bool:
        """Fold one event into the profile in memory.

        Returns True if the event counted as a purchase.
        """
        profile.observe(event.occurred_at)
        amount = event.purchase_amount()
        if amount is None:
            return False
        profile.record_purchase(amount)
        return True

    async def record(self, uow: IUnitOfWork, profile: Profile, event: Event) -> Profile:
        """Apply ``event`` and persist it as a delta, within the UoW that appended it.

        The store adds the delta to whatever it holds, so a purchase committed
        by a concurrent request since ``profile`` was read is kept.
        """
        amount = event.purchase_amount()
        self.apply(profile, event)
        return await uow.profiles.increment_aggregates(
            profile,
            orders=0 if amount is None else 1,
            spend=ZERO if amount is None else amount,
        )
