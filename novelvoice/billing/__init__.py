"""Pricing, quota metering, and usage ledger for audiobook synthesis."""

from .costs import RATE_PER_MILLION_USD, cost_cents, format_usd
from .ledger import UsageLedger
from .quota import (
    InMemoryQuotaStore,
    JsonQuotaStore,
    QuotaStore,
    billing_period_for,
    next_period_start,
    provision_quota,
    roll_period,
    utc_now,
)
from .usage import UsageMeter, UsageSummary

__all__ = [
    "InMemoryQuotaStore",
    "JsonQuotaStore",
    "QuotaStore",
    "RATE_PER_MILLION_USD",
    "UsageLedger",
    "UsageMeter",
    "UsageSummary",
    "billing_period_for",
    "cost_cents",
    "format_usd",
    "next_period_start",
    "provision_quota",
    "roll_period",
    "utc_now",
]
