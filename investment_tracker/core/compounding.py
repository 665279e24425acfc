"""Rate conversion between annual rates, compounding conventions and months."""

from __future__ import annotations

import math
from typing import Dict

from investment_tracker.schemas.investment import (
    CompoundingFrequency,
    ContributionFrequency,
)

COMPOUNDING_PERIODS_PER_YEAR: Dict[CompoundingFrequency, float] = {
    CompoundingFrequency.ANNUALLY: 1,
    CompoundingFrequency.SEMIANNUALLY: 2,
    CompoundingFrequency.QUARTERLY: 4,
    CompoundingFrequency.MONTHLY: 12,
    CompoundingFrequency.SEMIMONTHLY: 24,
    CompoundingFrequency.BIWEEKLY: 26,
    CompoundingFrequency.WEEKLY: 52,
    CompoundingFrequency.DAILY: 365,
    CompoundingFrequency.CONTINUOUSLY: math.inf,
}

CONTRIBUTION_PERIODS_PER_YEAR: Dict[ContributionFrequency, int] = {
    ContributionFrequency.BI_WEEKLY: 26,
    ContributionFrequency.MONTHLY: 12,
    ContributionFrequency.QUARTERLY: 4,
    ContributionFrequency.ANNUALLY: 1,
}


def _monthly_from_effective_annual(annual_rate_percent: float) -> float:
    return (1 + annual_rate_percent / 100) ** (1 / 12) - 1


def _monthly_from_nominal(annual_rate_percent: float, periods_per_year: float) -> float:
    return (1 + annual_rate_percent / 100 / periods_per_year) ** (periods_per_year / 12) - 1


def _monthly_from_continuous(annual_rate_percent: float) -> float:
    return math.exp(annual_rate_percent / 100 / 12) - 1


def effective_monthly_rate(
    annual_rate_percent: float, compounding_frequency: CompoundingFrequency
) -> float:
    """
    Monthly growth rate implied by an annual rate and a compounding convention.

    Conventions:
      - monthly:       the annual rate is an *effective* annual rate,
                       so twelve monthly steps reproduce it exactly.
      - continuously:  e^(r/12) - 1.
      - anything else: the annual rate is *nominal*, compounded n times a year,
                       then re-expressed per month: (1 + r/n)^(n/12) - 1.
    """
    if compounding_frequency == CompoundingFrequency.MONTHLY:
        return _monthly_from_effective_annual(annual_rate_percent)

    if compounding_frequency == CompoundingFrequency.CONTINUOUSLY:
        return _monthly_from_continuous(annual_rate_percent)

    periods_per_year = COMPOUNDING_PERIODS_PER_YEAR[compounding_frequency]
    return _monthly_from_nominal(annual_rate_percent, periods_per_year)


def monthly_contribution_multiplier(frequency: ContributionFrequency) -> float:
    """How many per-period amounts fit in one average month."""
    return CONTRIBUTION_PERIODS_PER_YEAR[frequency] / 12


def convert_contribution_amount(
    amount: float,
    from_frequency: ContributionFrequency,
    to_frequency: ContributionFrequency,
) -> float:
    """Re-express a per-period amount in another frequency (same annual total)."""
    if from_frequency == to_frequency:
        return amount
    annual = amount * CONTRIBUTION_PERIODS_PER_YEAR[from_frequency]
    return annual / CONTRIBUTION_PERIODS_PER_YEAR[to_frequency]
