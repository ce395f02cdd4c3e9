"""Character usage metering against subscription quotas.

Responsibilities:
- Split a character count into included and overage portions.
- Reserve quota atomically at job start and settle it at job end.
- Summarize a user's current billing period from the quota and the ledger.
"""

from __future__ import annotations

from dataclasses import dataclass, replace
from datetime import datetime
from typing import Callable

from ..errors import QuotaApportionError
from ..models.datatypes import Apportionment, SubscriptionQuota, SubscriptionTier
from .ledger import UsageLedger
from .quota import QuotaStore, provision_quota, roll_period, utc_now


@dataclass(frozen=True, slots=True)
class UsageSummary:
    """Current-period usage view for one user."""

    user_id: str
    tier: SubscriptionTier
    billing_period: str
    monthly_limit: int
    consumed: int
    remaining: int
    overage_cost_cents: int
    job_count: int


class UsageMeter:
    """Apportion, reserve, and settle audiobook characters against quotas.

    Users without a stored quota are treated as free-tier subscribers, so every
    character they synthesize is overage.
    """

    def __init__(
        self,
        store: QuotaStore,
        ledger: UsageLedger | None = None,
        clock: Callable[[], datetime] = utc_now,
    ) -> None:
        self.store = store
        self.ledger = ledger
        self.clock = clock

    @staticmethod
    def apportion(quota: SubscriptionQuota, requested: int) -> Apportionment:
        """Split `requested` characters against the quota's remaining allowance.

        Raises:
            QuotaApportionError: On a negative request or an inconsistent quota.
        """

        if requested < 0:
            raise QuotaApportionError("Requested character count must not be negative.")
        if quota.monthly_limit < 0 or quota.consumed < 0:
            raise QuotaApportionError(
                f"Quota for `{quota.user_id}` has negative limit or consumption."
            )
        included = max(0, min(requested, quota.monthly_limit - quota.consumed))
        return Apportionment(
            requested=requested,
            included=included,
            overage=requested - included,
            billing_period=quota.billing_period,
        )

    def current_quota(self, user_id: str) -> SubscriptionQuota:
        """Return the user's quota as of now without persisting anything."""

        return self._current(self.store.get(user_id), user_id, self.clock())

    def preview(self, user_id: str, requested: int) -> Apportionment:
        """Apportion `requested` characters without mutating the quota."""

        return self.apportion(self.current_quota(user_id), requested)

    def reserve(self, user_id: str, requested: int) -> Apportionment:
        """Atomically apportion `requested` and add it to the consumed counter."""

        now = self.clock()
        taken: list[Apportionment] = []

        def mutate(stored: SubscriptionQuota | None) -> SubscriptionQuota:
            quota = self._current(stored, user_id, now)
            apportionment = self.apportion(quota, requested)
            taken.append(apportionment)
            return replace(quota, consumed=quota.consumed + requested)

        self.store.update(user_id, mutate)
        return taken[0]

    def settle(self, user_id: str, reservation: Apportionment, used: int) -> Apportionment:
        """Finalize a reservation for the characters actually synthesized.

        Included characters are drawn first from the reservation's included
        share. Unused characters are released back to the period counter when
        the period has not rolled over since the reservation.

        Returns:
            The settled apportionment of `used` characters.

        Raises:
            QuotaApportionError: If `used` is outside `[0, requested]` or the
                release would drive consumption negative.
        """

        if used < 0 or used > reservation.requested:
            raise QuotaApportionError(
                f"Used characters {used} outside reserved range 0..{reservation.requested}."
            )
        release = reservation.requested - used
        if release:
            self._release(user_id, reservation.billing_period, release)
        included = min(used, reservation.included)
        return Apportionment(
            requested=used,
            included=included,
            overage=used - included,
            billing_period=reservation.billing_period,
        )

    def set_subscription(
        self,
        user_id: str,
        tier: SubscriptionTier,
        consumed: int | None = None,
    ) -> SubscriptionQuota:
        """Provision or change a user's tier, optionally overriding consumption."""

        if consumed is not None and consumed < 0:
            raise QuotaApportionError("Consumed character count must not be negative.")
        now = self.clock()

        def mutate(stored: SubscriptionQuota | None) -> SubscriptionQuota:
            quota = self._current(stored, user_id, now)
            return replace(
                quota,
                tier=tier,
                monthly_limit=tier.monthly_audio_characters,
                consumed=quota.consumed if consumed is None else consumed,
            )

        return self.store.update(user_id, mutate)

    def summary(self, user_id: str) -> UsageSummary:
        """Summarize the current period, with overage rebuilt from the ledger."""

        quota = self.current_quota(user_id)
        records = (
            self.ledger.records(billing_period=quota.billing_period, user_id=user_id)
            if self.ledger is not None
            else []
        )
        return UsageSummary(
            user_id=user_id,
            tier=quota.tier,
            billing_period=quota.billing_period,
            monthly_limit=quota.monthly_limit,
            consumed=quota.consumed,
            remaining=quota.remaining,
            overage_cost_cents=sum(record.cost_cents for record in records),
            job_count=len(records),
        )

    def _release(self, user_id: str, billing_period: str, release: int) -> None:
        now = self.clock()

        def mutate(stored: SubscriptionQuota | None) -> SubscriptionQuota:
            if stored is None:
                raise QuotaApportionError(f"No quota stored for `{user_id}` to release into.")
            quota = roll_period(stored, now)
            if quota.billing_period != billing_period:
                return quota
            remaining_consumed = quota.consumed - release
            if remaining_consumed < 0:
                raise QuotaApportionError(
                    f"Releasing {release} characters would make consumption negative "
                    f"for `{user_id}`."
                )
            return replace(quota, consumed=remaining_consumed)

        self.store.update(user_id, mutate)

    @staticmethod
    def _current(
        stored: SubscriptionQuota | None,
        user_id: str,
        now: datetime,
    ) -> SubscriptionQuota:
        if stored is None:
            return provision_quota(user_id, SubscriptionTier.FREE, now)
        return roll_period(stored, now)
