from __future__ import annotations

import logging

import pytest
from pydantic import ValidationError

from investment_tracker.core.normalization import (
    adjust_all_accounts_for_term_change,
    adjust_contribution_range_for_term_change,
    load_accounts,
    normalize_account,
    normalize_timing_change,
)
from investment_tracker.core.projection import build_projection
from investment_tracker.schemas.investment import (
    AccountType,
    CompoundingFrequency,
    ContributionFrequency,
    ContributionSchedule,
    ContributionTiming,
)


def raw_account(**overrides):
    account = {
        "id": "stored-1",
        "name": "Old TFSA",
        "principal": 1000,
        "annualRatePercent": 5,
        "compoundingFrequency": "monthly",
        "termYears": 5,
        "contributionTiming": "end-of-month",
        "accountType": "tfsa",
    }
    account.update(overrides)
    return account


def test_valid_account_is_left_alone():
    raw = raw_account()
    assert normalize_account(raw) == raw


def test_invalid_compounding_and_timing_fall_back_to_defaults(caplog):
    raw = raw_account(compoundingFrequency="hourly", contributionTiming="mid-month")
    with caplog.at_level(logging.WARNING):
        normalized = normalize_account(raw)

    assert normalized["compoundingFrequency"] == "monthly"
    assert normalized["contributionTiming"] == "end-of-month"
    assert raw["compoundingFrequency"] == "hourly"
    assert "stored-1" in caplog.text


def test_inconsistent_timing_uses_default_for_frequency():
    raw = raw_account(
        contributionTiming="beginning-of-month",
        contribution={"amount": 500, "frequency": "quarterly", "startMonth": 1, "endMonth": 60},
    )
    assert normalize_account(raw)["contributionTiming"] == "end-of-quarter"


def test_missing_account_type_defaults_to_non_registered():
    raw = raw_account()
    del raw["accountType"]
    assert normalize_account(raw)["accountType"] == "non-registered"
    assert normalize_account(raw_account(accountType="roth"))["accountType"] == "non-registered"


def test_lira_is_always_locked_in():
    assert normalize_account(raw_account(accountType="lira", isLockedIn=False))["isLockedIn"] is True


def test_normalized_accounts_can_be_projected():
    accounts = load_accounts(
        [
            raw_account(
                compoundingFrequency="fortnightly",
                contributionTiming="end-of-month",
                contribution={"amount": 50, "frequency": "annually", "startMonth": 1, "endMonth": 60},
            )
        ]
    )
    account = accounts[0]

    assert account.compounding_frequency == CompoundingFrequency.MONTHLY
    assert account.contribution_timing == ContributionTiming.END_OF_YEAR
    assert account.account_type == AccountType.TFSA
    assert build_projection(account).totals.total_contributions == 1250


def test_unrepairable_accounts_still_fail_validation():
    with pytest.raises(ValidationError):
        load_accounts([raw_account(principal=-5)])


def test_timing_follows_frequency_edits(make_account):
    account = make_account(
        contributionTiming="beginning-of-month",
        contribution={"amount": 100, "frequency": "monthly", "startMonth": 1, "endMonth": 12},
    )
    quarterly = ContributionSchedule(
        amount=100, frequency=ContributionFrequency.QUARTERLY, start_month=1, end_month=12
    )
    changes = normalize_timing_change(account, {"contribution": quarterly})
    assert changes["contribution_timing"] == ContributionTiming.END_OF_QUARTER

    unchanged = normalize_timing_change(account, {"principal": 5})
    assert "contribution_timing" not in unchanged


def test_longer_term_extends_schedule_that_ran_to_the_end(make_account):
    account = make_account(
        termYears=5,
        contribution={"amount": 100, "frequency": "monthly", "startMonth": 1, "endMonth": 60},
    )
    adjusted = adjust_contribution_range_for_term_change(account, 5, 10)
    assert adjusted.contribution.end_month == 120
    assert account.contribution.end_month == 60


def test_longer_term_keeps_schedule_that_ended_early(make_account):
    account = make_account(
        contribution={"amount": 100, "frequency": "monthly", "startMonth": 1, "endMonth": 24},
    )
    adjusted = adjust_contribution_range_for_term_change(account, 5, 10)
    assert adjusted.contribution.end_month == 24


def test_shorter_term_clamps_schedule(make_account):
    account = make_account(
        contribution={"amount": 100, "frequency": "monthly", "startMonth": 50, "endMonth": 120},
    )
    adjusted = adjust_contribution_range_for_term_change(account, 10, 3)
    assert (adjusted.contribution.start_month, adjusted.contribution.end_month) == (36, 36)


def test_adjust_all_accounts(make_account):
    accounts = [
        make_account(id="a", contribution={"amount": 1, "frequency": "monthly", "startMonth": 1, "endMonth": 120}),
        make_account(id="b"),
    ]
    adjusted = adjust_all_accounts_for_term_change(accounts, 10, 2)
    assert adjusted[0].contribution.end_month == 24
    assert adjusted[1] is accounts[1]
