"""Month-by-month balance projection for a single account."""

from __future__ import annotations

import math
from typing import List, Optional

from investment_tracker.core.compounding import effective_monthly_rate
from investment_tracker.core.contribution_timing import (
    contribution_for_month,
    is_contribution_before_compounding,
    is_timing_valid_for_frequency,
    normalize_schedule,
)
from investment_tracker.schemas.investment import (
    AccountInput,
    AccountProjection,
    ContributionFrequency,
    ContributionTiming,
    ProjectionPoint,
    ProjectionTotals,
)
from investment_tracker.utils.logging import get_logger

logger = get_logger(__name__)


class ContributionTimingError(ValueError):
    """The account's timing does not belong to its contribution frequency."""

    def __init__(self, timing: ContributionTiming, frequency: ContributionFrequency):
        super().__init__(
            f'Invalid contribution timing "{timing.value}" for frequency "{frequency.value}".'
        )
        self.timing = timing
        self.frequency = frequency


def check_contribution_timing(account: AccountInput) -> None:
    """Raise ContributionTimingError when the timing does not fit the schedule's frequency."""
    if account.contribution is None:
        return
    frequency = account.contribution.frequency
    if not is_timing_valid_for_frequency(account.contribution_timing, frequency):
        raise ContributionTimingError(account.contribution_timing, frequency)


def round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def total_months_for_term(term_years: float) -> int:
    return max(round_half_up(term_years * 12), 1)


def final_value_label(current_age: Optional[int], term_years: float) -> str:
    """Summary label for the last point, naming the age reached when it is known."""
    if current_age is None or not 0 <= current_age <= 120:
        return "Final value"
    return f"Final value at {round_half_up(current_age + term_years)} years old"


def _build_totals(points: List[ProjectionPoint]) -> ProjectionTotals:
    last = points[-1]
    return ProjectionTotals(
        total_contributions=last.total_contributions,
        total_returns=last.balance - last.total_contributions,
        final_balance=last.balance,
    )


def build_projection(account: AccountInput) -> AccountProjection:
    """
    Simulate the account month by month over its term.

    Order of operations (per month):
      1) Work out this month's deposit (0 when the schedule skips the month).
      2) "beginning-of-*" timings: deposit, then compound.
         "end-of-*" timings:       compound, then deposit.
      3) Record the point; totalContributions never includes interest.

    Month 0 is the seed: balance and contributions both equal the principal.
    Raises ContributionTimingError when the timing does not match the
    schedule's frequency.
    """
    total_months = total_months_for_term(account.term_years)
    timing = account.contribution_timing

    check_contribution_timing(account)

    monthly_rate = effective_monthly_rate(
        account.annual_rate_percent, account.compounding_frequency
    )
    schedule = normalize_schedule(account.contribution, total_months)
    deposit_first = is_contribution_before_compounding(timing)

    balance = float(account.principal)
    contributions = float(account.principal)
    points: List[ProjectionPoint] = [
        ProjectionPoint(month=0, year=0.0, balance=balance, total_contributions=contributions)
    ]

    for month_index in range(1, total_months + 1):
        deposit = contribution_for_month(month_index, schedule, timing)

        if deposit_first:
            balance = (balance + deposit) * (1 + monthly_rate)
        else:
            balance = balance * (1 + monthly_rate) + deposit
        contributions += deposit

        points.append(
            ProjectionPoint(
                month=month_index,
                year=month_index / 12,
                balance=balance,
                total_contributions=contributions,
            )
        )

    logger.debug(
        "projected account=%s months=%d monthly_rate=%.8f final_balance=%.2f",
        account.id,
        total_months,
        monthly_rate,
        balance,
    )
    return AccountProjection(points=points, totals=_build_totals(points))


__all__ = [
    "ContributionTimingError",
    "build_projection",
    "check_contribution_timing",
    "final_value_label",
    "round_half_up",
    "total_months_for_term",
]
