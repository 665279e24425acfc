"""Contribution limits and defaults for registered account types."""

from __future__ import annotations

from typing import Dict, FrozenSet

from investment_tracker.schemas.investment import (
    AccountType,
    CompoundingFrequency,
    ContributionTiming,
)

DEFAULT_COMPOUNDING_FREQUENCY = CompoundingFrequency.MONTHLY
DEFAULT_CONTRIBUTION_TIMING = ContributionTiming.END_OF_MONTH
DEFAULT_ACCOUNT_TYPE = AccountType.NON_REGISTERED

ACCOUNT_TYPE_LABELS: Dict[AccountType, str] = {
    AccountType.TFSA: "TFSA",
    AccountType.RRSP: "RRSP",
    AccountType.FHSA: "FHSA",
    AccountType.LIRA: "LIRA",
    AccountType.NON_REGISTERED: "Non-registered",
}

# TFSA: 7,000 (2024-2026). RRSP: 18% of income up to 31,560 (2024).
# FHSA: 8,000 per year, 40,000 lifetime.
ANNUAL_CONTRIBUTION_LIMITS: Dict[AccountType, float] = {
    AccountType.TFSA: 7000.0,
    AccountType.RRSP: 31560.0,
    AccountType.FHSA: 8000.0,
}

FHSA_LIFETIME_LIMIT = 40000.0
FHSA_MAX_ANNUAL_WITH_CARRYFORWARD = 16000.0
RRSP_INCOME_PERCENTAGE = 0.18
RRSP_OVERCONTRIBUTION_BUFFER = 2000.0

# CRA charges 1% per month on the excess amount.
OVER_CONTRIBUTION_PENALTY_RATE = 0.01

TAX_ADVANTAGED_ACCOUNT_TYPES: FrozenSet[AccountType] = frozenset(
    {AccountType.TFSA, AccountType.RRSP, AccountType.FHSA}
)

# No new contributions are allowed into these.
LOCKED_ACCOUNT_TYPES: FrozenSet[AccountType] = frozenset({AccountType.LIRA})

MIN_INFLATION_RATE = 0.0
MAX_INFLATION_RATE = 15.0


def is_tax_advantaged(account_type: AccountType) -> bool:
    return account_type in TAX_ADVANTAGED_ACCOUNT_TYPES


def is_locked_account_type(account_type: AccountType) -> bool:
    return account_type in LOCKED_ACCOUNT_TYPES
