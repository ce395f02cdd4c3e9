"""Subscription quota persistence with atomic read-modify-write.

Responsibilities:
- Compute billing-period keys and reset instants.
- Provision quotas from subscription tiers and roll them into new periods.
- Serialize every quota mutation through one lock per store, and through a
  sidecar file lock for stores shared between processes.
"""

from __future__ import annotations

import threading
from dataclasses import replace
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Callable, Protocol

from filelock import FileLock, Timeout

from ..errors import PersistenceError, QuotaApportionError
from ..io.storage import ArtifactStore
from ..models.datatypes import SubscriptionQuota, SubscriptionTier
from ..parsing import parse_enum

QuotaMutation = Callable[[SubscriptionQuota | None], SubscriptionQuota]


def utc_now() -> datetime:
    """Return the current timezone-aware UTC instant."""

    return datetime.now(timezone.utc)


def billing_period_for(moment: datetime) -> str:
    """Return the `YYYY-MM` billing period containing `moment`."""

    return f"{moment.year:04d}-{moment.month:02d}"


def next_period_start(moment: datetime) -> datetime:
    """Return midnight UTC on the first day of the month after `moment`."""

    if moment.month == 12:
        return datetime(moment.year + 1, 1, 1, tzinfo=timezone.utc)
    return datetime(moment.year, moment.month + 1, 1, tzinfo=timezone.utc)


def provision_quota(
    user_id: str,
    tier: SubscriptionTier,
    now: datetime,
    consumed: int = 0,
) -> SubscriptionQuota:
    """Create a fresh quota for `tier` in the period containing `now`."""

    return SubscriptionQuota(
        user_id=user_id,
        tier=tier,
        monthly_limit=tier.monthly_audio_characters,
        consumed=consumed,
        billing_period=billing_period_for(now),
        period_resets_at=next_period_start(now),
    )


def roll_period(quota: SubscriptionQuota, now: datetime) -> SubscriptionQuota:
    """Reset consumption when `now` has reached the quota's reset instant."""

    if now < quota.period_resets_at:
        return quota
    return replace(
        quota,
        consumed=0,
        billing_period=billing_period_for(now),
        period_resets_at=next_period_start(now),
    )


def quota_to_payload(quota: SubscriptionQuota) -> dict[str, Any]:
    """Serialize a quota into a JSON-compatible mapping."""

    return {
        "user_id": quota.user_id,
        "tier": quota.tier.value,
        "monthly_limit": quota.monthly_limit,
        "consumed": quota.consumed,
        "billing_period": quota.billing_period,
        "period_resets_at": quota.period_resets_at.isoformat(),
    }


def quota_from_payload(payload: dict[str, Any]) -> SubscriptionQuota:
    """Parse a persisted quota mapping, rejecting inconsistent rows."""

    try:
        quota = SubscriptionQuota(
            user_id=str(payload["user_id"]),
            tier=parse_enum(SubscriptionTier, payload["tier"], "tier"),
            monthly_limit=int(payload["monthly_limit"]),
            consumed=int(payload["consumed"]),
            billing_period=str(payload["billing_period"]),
            period_resets_at=datetime.fromisoformat(str(payload["period_resets_at"])),
        )
    except (KeyError, TypeError, ValueError) as exc:
        raise QuotaApportionError(f"Stored quota row is malformed: {exc}") from exc
    if quota.monthly_limit < 0 or quota.consumed < 0:
        raise QuotaApportionError(
            f"Stored quota for `{quota.user_id}` has negative limit or consumption."
        )
    return quota


class QuotaStore(Protocol):
    """Persistence contract for per-user subscription quotas."""

    def get(self, user_id: str) -> SubscriptionQuota | None:
        """Return the stored quota, or `None` for an unprovisioned user."""

    def update(self, user_id: str, mutate: QuotaMutation) -> SubscriptionQuota:
        """Atomically apply `mutate` to the stored quota and persist its result."""


class InMemoryQuotaStore:
    """Process-local quota store guarded by a single lock."""

    def __init__(self, quotas: list[SubscriptionQuota] | None = None) -> None:
        self._lock = threading.RLock()
        self._quotas: dict[str, SubscriptionQuota] = {
            quota.user_id: quota for quota in quotas or []
        }

    def get(self, user_id: str) -> SubscriptionQuota | None:
        with self._lock:
            return self._read(user_id)

    def update(self, user_id: str, mutate: QuotaMutation) -> SubscriptionQuota:
        with self._lock:
            updated = mutate(self._read(user_id))
            if updated.user_id != user_id:
                raise QuotaApportionError("Quota mutation changed the owning user.")
            self._write(updated)
            return updated

    def _read(self, user_id: str) -> SubscriptionQuota | None:
        return self._quotas.get(user_id)

    def _write(self, quota: SubscriptionQuota) -> None:
        self._quotas[quota.user_id] = quota


class JsonQuotaStore(InMemoryQuotaStore):
    """Quota store persisted as one JSON document in an artifact store.

    Updates hold an exclusive `<name>.lock` file lock for the whole
    read-modify-write, so CLI processes sharing one artifact root never apply
    the same headroom twice.
    """

    def __init__(
        self,
        store: ArtifactStore,
        relative_path: Path | str = "quotas.json",
        lock_timeout_seconds: float = 30.0,
    ) -> None:
        super().__init__()
        self._store = store
        self._relative_path = Path(relative_path)
        lock_path = store.path_for(self._relative_path.with_name(f"{self._relative_path.name}.lock"))
        self._lock_path = lock_path
        self._file_lock = FileLock(str(lock_path), timeout=lock_timeout_seconds)

    def update(self, user_id: str, mutate: QuotaMutation) -> SubscriptionQuota:
        with self._lock:
            try:
                self._lock_path.parent.mkdir(parents=True, exist_ok=True)
                with self._file_lock:
                    return super().update(user_id, mutate)
            except Timeout as exc:
                raise PersistenceError(
                    f"Timed out waiting for quota lock `{self._lock_path}`."
                ) from exc
            except OSError as exc:
                raise PersistenceError(
                    f"Failed to lock `{self._lock_path}`: {exc.strerror or exc}."
                ) from exc

    def _read(self, user_id: str) -> SubscriptionQuota | None:
        payload = self._load_all().get(user_id)
        if payload is None:
            return None
        if not isinstance(payload, dict):
            raise QuotaApportionError(f"Stored quota for `{user_id}` must be a JSON object.")
        return quota_from_payload(payload)

    def _write(self, quota: SubscriptionQuota) -> None:
        rows = self._load_all()
        rows[quota.user_id] = quota_to_payload(quota)
        self._store.save_json(self._relative_path, {"quotas": rows})

    def _load_all(self) -> dict[str, Any]:
        if not self._store.exists(self._relative_path):
            return {}
        rows = self._store.load_json(self._relative_path).get("quotas", {})
        if not isinstance(rows, dict):
            raise PersistenceError(f"`{self._relative_path}` must map user ids to quotas.")
        return rows
