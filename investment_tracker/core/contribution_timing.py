"""Contribution scheduling: which months receive a deposit, and when in the month."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, List, Optional

from investment_tracker.schemas.investment import (
    ContributionFrequency,
    ContributionSchedule,
    ContributionTiming,
)


@dataclass(frozen=True)
class FrequencyMeta:
    interval: int  # months between contribution months
    occurrences: int  # deposits applied per contribution month
    label: str


# Bi-weekly is approximated as two pay periods in every month.
FREQUENCY_META: Dict[ContributionFrequency, FrequencyMeta] = {
    ContributionFrequency.BI_WEEKLY: FrequencyMeta(interval=1, occurrences=2, label="Bi-weekly"),
    ContributionFrequency.MONTHLY: FrequencyMeta(interval=1, occurrences=1, label="Monthly"),
    ContributionFrequency.QUARTERLY: FrequencyMeta(interval=3, occurrences=1, label="Quarterly"),
    ContributionFrequency.ANNUALLY: FrequencyMeta(interval=12, occurrences=1, label="Annually"),
}

FREQUENCY_TIMING_MAP: Dict[ContributionFrequency, List[ContributionTiming]] = {
    ContributionFrequency.BI_WEEKLY: [
        ContributionTiming.BEGINNING_OF_BIWEEKLY,
        ContributionTiming.END_OF_BIWEEKLY,
    ],
    ContributionFrequency.MONTHLY: [
        ContributionTiming.BEGINNING_OF_MONTH,
        ContributionTiming.END_OF_MONTH,
    ],
    ContributionFrequency.QUARTERLY: [
        ContributionTiming.BEGINNING_OF_QUARTER,
        ContributionTiming.END_OF_QUARTER,
    ],
    ContributionFrequency.ANNUALLY: [
        ContributionTiming.BEGINNING_OF_YEAR,
        ContributionTiming.END_OF_YEAR,
    ],
}

DEFAULT_TIMING_MAP: Dict[ContributionFrequency, ContributionTiming] = {
    ContributionFrequency.BI_WEEKLY: ContributionTiming.END_OF_BIWEEKLY,
    ContributionFrequency.MONTHLY: ContributionTiming.END_OF_MONTH,
    ContributionFrequency.QUARTERLY: ContributionTiming.END_OF_QUARTER,
    ContributionFrequency.ANNUALLY: ContributionTiming.END_OF_YEAR,
}

_BEFORE_COMPOUNDING = frozenset(
    {
        ContributionTiming.BEGINNING_OF_MONTH,
        ContributionTiming.BEGINNING_OF_QUARTER,
        ContributionTiming.BEGINNING_OF_BIWEEKLY,
        ContributionTiming.BEGINNING_OF_YEAR,
    }
)

_YEARLY_TIMINGS = frozenset(
    {ContributionTiming.BEGINNING_OF_YEAR, ContributionTiming.END_OF_YEAR}
)


def valid_timings_for_frequency(frequency: ContributionFrequency) -> List[ContributionTiming]:
    return list(FREQUENCY_TIMING_MAP[frequency])


def default_timing_for_frequency(frequency: ContributionFrequency) -> ContributionTiming:
    return DEFAULT_TIMING_MAP[frequency]


def is_timing_valid_for_frequency(
    timing: ContributionTiming, frequency: ContributionFrequency
) -> bool:
    return timing in FREQUENCY_TIMING_MAP[frequency]


def normalize_timing_for_frequency(
    timing: ContributionTiming, frequency: ContributionFrequency
) -> ContributionTiming:
    if is_timing_valid_for_frequency(timing, frequency):
        return timing
    return default_timing_for_frequency(frequency)


def frequency_label(frequency: ContributionFrequency) -> str:
    return FREQUENCY_META[frequency].label


def contribution_interval(frequency: ContributionFrequency) -> int:
    return FREQUENCY_META[frequency].interval


def contribution_occurrences(frequency: ContributionFrequency) -> int:
    return FREQUENCY_META[frequency].occurrences


def is_contribution_before_compounding(timing: ContributionTiming) -> bool:
    return timing in _BEFORE_COMPOUNDING


def is_timing_month(timing: ContributionTiming, month_index: int) -> bool:
    """Year timings only fire on month 1 (beginning) or month 12 (end) of a year."""
    if timing == ContributionTiming.BEGINNING_OF_YEAR:
        return month_index % 12 == 1
    if timing == ContributionTiming.END_OF_YEAR:
        return month_index % 12 == 0
    return True


def is_contribution_month(month_index: int, schedule: ContributionSchedule) -> bool:
    if month_index < schedule.start_month or month_index > schedule.end_month:
        return False
    interval = contribution_interval(schedule.frequency)
    return (month_index - schedule.start_month) % interval == 0


def normalize_schedule(
    schedule: Optional[ContributionSchedule], total_months: int
) -> Optional[ContributionSchedule]:
    """Clamp the schedule into [1, total_months]; inactive schedules become None."""
    if schedule is None:
        return None

    start_month = min(max(schedule.start_month, 1), total_months)
    end_month = min(max(schedule.end_month, 1), total_months)

    if schedule.amount <= 0 or end_month < start_month:
        return None

    return schedule.model_copy(update={"start_month": start_month, "end_month": end_month})


def should_apply_contribution(
    month_index: int, schedule: ContributionSchedule, timing: ContributionTiming
) -> bool:
    if timing in _YEARLY_TIMINGS:
        within_range = schedule.start_month <= month_index <= schedule.end_month
        return within_range and is_timing_month(timing, month_index)
    return is_contribution_month(month_index, schedule)


def contribution_for_month(
    month_index: int,
    schedule: Optional[ContributionSchedule],
    timing: ContributionTiming,
) -> float:
    """Deposit made in `month_index`, or 0.0 when the schedule skips it."""
    if schedule is None or not should_apply_contribution(month_index, schedule, timing):
        return 0.0
    return schedule.amount * contribution_occurrences(schedule.frequency)
