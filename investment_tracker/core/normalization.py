"""Ingestion-boundary repairs for stored or submitted accounts.

This is the only place invalid compounding/timing values are auto-corrected.
It runs on raw camelCase payloads before pydantic validation, so values the
enums would reject can still be repaired. The projection engine itself never
repairs anything.
"""

from __future__ import annotations

from typing import Any, Dict, Iterable, List, Mapping

from investment_tracker.core.constants import (
    DEFAULT_ACCOUNT_TYPE,
    DEFAULT_COMPOUNDING_FREQUENCY,
    DEFAULT_CONTRIBUTION_TIMING,
    is_locked_account_type,
)
from investment_tracker.core.contribution_timing import normalize_timing_for_frequency
from investment_tracker.core.projection import total_months_for_term
from investment_tracker.schemas.investment import (
    AccountInput,
    AccountType,
    CompoundingFrequency,
    ContributionFrequency,
    ContributionTiming,
)
from investment_tracker.utils.logging import get_logger

logger = get_logger(__name__)


def _enum_or_default(enum_cls, value: Any, default):
    try:
        return enum_cls(value)
    except ValueError:
        return default


def normalize_account(raw: Mapping[str, Any]) -> Dict[str, Any]:
    """Return a copy of a raw account payload with repairable fields fixed."""
    account = dict(raw)

    frequency = _enum_or_default(
        CompoundingFrequency, account.get("compoundingFrequency"), DEFAULT_COMPOUNDING_FREQUENCY
    )

    contribution = account.get("contribution")
    contribution_frequency = ContributionFrequency.MONTHLY
    if isinstance(contribution, Mapping):
        contribution_frequency = _enum_or_default(
            ContributionFrequency, contribution.get("frequency"), ContributionFrequency.MONTHLY
        )

    raw_timing = _enum_or_default(
        ContributionTiming, account.get("contributionTiming"), DEFAULT_CONTRIBUTION_TIMING
    )
    timing = normalize_timing_for_frequency(raw_timing, contribution_frequency)

    if frequency.value != account.get("compoundingFrequency") or timing.value != account.get(
        "contributionTiming"
    ):
        logger.warning(
            "account=%s invalid compounding or timing settings, using defaults",
            account.get("id", "?"),
        )

    account_type = _enum_or_default(AccountType, account.get("accountType"), DEFAULT_ACCOUNT_TYPE)
    if account_type.value != account.get("accountType"):
        logger.warning(
            "account=%s missing or invalid account type, defaulting to %s",
            account.get("id", "?"),
            account_type.value,
        )

    account["compoundingFrequency"] = frequency.value
    account["contributionTiming"] = timing.value
    account["accountType"] = account_type.value
    if is_locked_account_type(account_type):
        account["isLockedIn"] = True

    return account


def load_accounts(raw_accounts: Iterable[Mapping[str, Any]]) -> List[AccountInput]:
    """Normalize then validate; raises pydantic.ValidationError on anything unrepairable."""
    return [AccountInput.model_validate(normalize_account(raw)) for raw in raw_accounts]


def normalize_timing_change(account: AccountInput, changes: Mapping[str, Any]) -> Dict[str, Any]:
    """Keep an edit's timing valid when the edit changes the contribution frequency.

    `changes` uses attribute names (snake_case) and model values.
    """
    updated = dict(changes)
    contribution = updated.get("contribution", account.contribution)
    if contribution is None:
        return updated

    timing = updated.get("contribution_timing", account.contribution_timing)
    normalized = normalize_timing_for_frequency(timing, contribution.frequency)
    if normalized != timing:
        updated["contribution_timing"] = normalized
    return updated


def adjust_contribution_range_for_term_change(
    account: AccountInput, previous_term_years: float, new_term_years: float
) -> AccountInput:
    """
    Clamp the schedule into the new term. A schedule that ran to the end of the
    old term keeps running to the end of a longer one.
    """
    schedule = account.contribution
    if schedule is None:
        return account

    previous_total = total_months_for_term(previous_term_years)
    total = total_months_for_term(new_term_years)
    start_month = min(max(schedule.start_month, 1), total)

    extend_end = total > previous_total and schedule.end_month == previous_total
    end_base = total if extend_end else schedule.end_month
    end_month = min(max(end_base, start_month, 1), total)

    return account.model_copy(
        update={
            "contribution": schedule.model_copy(
                update={"start_month": start_month, "end_month": end_month}
            )
        }
    )


def adjust_all_accounts_for_term_change(
    accounts: Iterable[AccountInput], previous_term_years: float, new_term_years: float
) -> List[AccountInput]:
    return [
        adjust_contribution_range_for_term_change(account, previous_term_years, new_term_years)
        for account in accounts
    ]
