"""Deflate nominal projection values into today's dollars."""

from __future__ import annotations

import math

from investment_tracker.core.constants import MAX_INFLATION_RATE, MIN_INFLATION_RATE
from investment_tracker.schemas.investment import (
    AccountProjection,
    ProjectionPoint,
    ProjectionTotals,
)


def real_value(nominal: float, inflation_rate_percent: float, years: float) -> float:
    """nominal / (1 + rate)^years; identity for non-positive years or rate."""
    if years <= 0 or inflation_rate_percent <= 0:
        return nominal
    return nominal / (1 + inflation_rate_percent / 100) ** years


def apply_inflation_to_point(point: ProjectionPoint, inflation_rate_percent: float) -> ProjectionPoint:
    return point.model_copy(
        update={
            "real_balance": real_value(point.balance, inflation_rate_percent, point.year),
            "real_total_contributions": real_value(
                point.total_contributions, inflation_rate_percent, point.year
            ),
        }
    )


def apply_inflation_to_totals(
    totals: ProjectionTotals, inflation_rate_percent: float, term_years: float
) -> ProjectionTotals:
    real_final_balance = real_value(totals.final_balance, inflation_rate_percent, term_years)
    real_total_contributions = real_value(
        totals.total_contributions, inflation_rate_percent, term_years
    )
    # Derived, not deflated on its own, so balance = contributions + returns still holds.
    real_total_returns = real_final_balance - real_total_contributions

    return totals.model_copy(
        update={
            "real_final_balance": real_final_balance,
            "real_total_contributions": real_total_contributions,
            "real_total_returns": real_total_returns,
        }
    )


def apply_inflation_to_projection(
    projection: AccountProjection, inflation_rate_percent: float, term_years: float
) -> AccountProjection:
    return AccountProjection(
        points=[apply_inflation_to_point(p, inflation_rate_percent) for p in projection.points],
        totals=apply_inflation_to_totals(projection.totals, inflation_rate_percent, term_years),
    )


def is_valid_inflation_rate(rate: float) -> bool:
    return math.isfinite(rate) and MIN_INFLATION_RATE <= rate <= MAX_INFLATION_RATE
