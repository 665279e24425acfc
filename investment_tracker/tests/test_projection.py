from __future__ import annotations

import math

import pytest

from investment_tracker.core.compounding import effective_monthly_rate
from investment_tracker.core.projection import (
    ContributionTimingError,
    build_projection,
    check_contribution_timing,
    final_value_label,
    total_months_for_term,
)
from investment_tracker.schemas.investment import CompoundingFrequency


def monthly_schedule(amount=100, start=1, end=12, frequency="monthly"):
    return {"amount": amount, "frequency": frequency, "startMonth": start, "endMonth": end}


def test_one_year_at_six_percent_monthly_reaches_10600(make_account):
    account = make_account(principal=10000, annualRatePercent=6, termYears=1)
    totals = build_projection(account).totals

    assert math.isclose(totals.final_balance, 10600, rel_tol=1e-12)
    assert totals.total_contributions == 10000


@pytest.mark.parametrize("frequency", ["annually", "quarterly", "daily", "continuously"])
def test_no_contribution_grows_principal_only(make_account, frequency):
    account = make_account(principal=2500, annualRatePercent=7.5, compoundingFrequency=frequency, termYears=3)
    projection = build_projection(account)
    rate = effective_monthly_rate(7.5, CompoundingFrequency(frequency))

    assert len(projection.points) == 37
    assert projection.totals.total_contributions == 2500
    assert math.isclose(projection.totals.final_balance, 2500 * (1 + rate) ** 36, rel_tol=1e-12)


def test_seed_point_is_principal(make_account):
    first = build_projection(make_account(principal=1234)).points[0]
    assert (first.month, first.year) == (0, 0)
    assert first.balance == first.total_contributions == 1234


def test_total_returns_identity_is_exact(make_account):
    account = make_account(
        principal=5000,
        annualRatePercent=4.2,
        compoundingFrequency="semiannually",
        contribution=monthly_schedule(amount=250, end=120),
    )
    totals = build_projection(account).totals
    assert totals.total_returns == totals.final_balance - totals.total_contributions


@pytest.mark.parametrize("low, high", [(0, 1), (3, 3.5), (6, 12)])
def test_higher_rate_never_lowers_final_balance(make_account, low, high):
    contribution = monthly_schedule(amount=100, end=60)
    slow = build_projection(make_account(annualRatePercent=low, contribution=contribution))
    fast = build_projection(make_account(annualRatePercent=high, contribution=contribution))
    assert fast.totals.final_balance >= slow.totals.final_balance


def test_projection_is_deterministic(make_account):
    account = make_account(contribution=monthly_schedule(amount=321.5, end=40))
    assert build_projection(account) == build_projection(account)


def test_beginning_of_month_deposit_earns_interest_first_month(make_account):
    common = dict(principal=0, annualRatePercent=12, termYears=1, contribution=monthly_schedule())
    begin = build_projection(make_account(contributionTiming="beginning-of-month", **common))
    end = build_projection(make_account(contributionTiming="end-of-month", **common))
    rate = effective_monthly_rate(12, CompoundingFrequency.MONTHLY)

    assert math.isclose(begin.points[1].balance, 100 * (1 + rate))
    assert end.points[1].balance == 100
    assert begin.totals.final_balance > end.totals.final_balance
    assert begin.totals.total_contributions == end.totals.total_contributions == 1200


def test_contributions_never_include_interest(make_account):
    account = make_account(principal=1000, annualRatePercent=10, contribution=monthly_schedule(amount=50, end=24))
    points = build_projection(account).points
    assert points[24].total_contributions == 1000 + 50 * 24
    assert points[-1].total_contributions == 1000 + 50 * 24


def test_biweekly_deposits_twice_per_month(make_account):
    account = make_account(
        principal=0,
        annualRatePercent=0,
        termYears=1,
        contributionTiming="end-of-biweekly",
        contribution=monthly_schedule(amount=50, frequency="bi-weekly"),
    )
    assert build_projection(account).totals.total_contributions == 1200


def test_quarterly_deposits_every_third_month(make_account):
    account = make_account(
        principal=0,
        annualRatePercent=0,
        termYears=1,
        contributionTiming="end-of-quarter",
        contribution=monthly_schedule(amount=300, frequency="quarterly"),
    )
    points = build_projection(account).points
    deposits = [m for m in range(1, 13) if points[m].total_contributions > points[m - 1].total_contributions]
    assert deposits == [1, 4, 7, 10]


def test_schedule_is_clamped_to_term(make_account):
    account = make_account(
        principal=0,
        annualRatePercent=0,
        termYears=1,
        contribution=monthly_schedule(amount=10, start=-5, end=999),
    )
    assert build_projection(account).totals.total_contributions == 120


def test_schedule_ending_before_start_is_ignored(make_account):
    account = make_account(
        principal=100,
        annualRatePercent=0,
        termYears=1,
        contribution=monthly_schedule(amount=10, start=10, end=5),
    )
    assert build_projection(account).totals.total_contributions == 100


def test_non_positive_amount_is_treated_as_absent(make_account):
    account = make_account(principal=100, annualRatePercent=0, contribution=monthly_schedule(amount=0))
    assert build_projection(account).totals.total_contributions == 100


def test_invalid_timing_for_frequency_fails_fast(make_account):
    account = make_account(
        contributionTiming="end-of-month",
        contribution=monthly_schedule(frequency="quarterly"),
    )
    with pytest.raises(ContributionTimingError) as excinfo:
        build_projection(account)

    assert excinfo.value.timing.value == "end-of-month"
    assert excinfo.value.frequency.value == "quarterly"
    assert "end-of-month" in str(excinfo.value)


def test_timing_is_not_checked_without_a_schedule(make_account):
    account = make_account(contributionTiming="end-of-year")
    assert build_projection(account).totals.total_contributions == 10000


@pytest.mark.parametrize(
    "term_years, expected",
    [(1, 12), (2.5, 30), (0.01, 1), (1 / 12, 1), (10.04, 120), (10.05, 121)],
)
def test_total_months_for_term(term_years, expected):
    assert total_months_for_term(term_years) == expected


def test_projection_does_not_mutate_account(make_account):
    account = make_account(contribution=monthly_schedule(start=0, end=900))
    before = account.model_dump()
    build_projection(account)
    assert account.model_dump() == before


def test_timing_check_matches_engine(make_account):
    check_contribution_timing(make_account(contribution=monthly_schedule()))
    with pytest.raises(ContributionTimingError):
        check_contribution_timing(
            make_account(contributionTiming="end-of-month", contribution=monthly_schedule(frequency="annually"))
        )


@pytest.mark.parametrize(
    "current_age, term_years, expected",
    [
        (None, 30, "Final value"),
        (30, 30, "Final value at 60 years old"),
        (30, 29.6, "Final value at 60 years old"),
        (0, 0.4, "Final value at 0 years old"),
    ],
)
def test_final_value_label(current_age, term_years, expected):
    assert final_value_label(current_age, term_years) == expected
