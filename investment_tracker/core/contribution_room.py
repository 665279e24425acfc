"""Contribution room and over-contribution analysis for registered accounts.

Room accrues once per full year of the term and is independent of how the
invested money grows. Accounts without a ceiling report `UnlimitedRoom`
instead of an infinite float, so no sentinel leaks into arithmetic.
"""

from __future__ import annotations

import math
from typing import List, Optional, Tuple, Union

from investment_tracker.core.compounding import CONTRIBUTION_PERIODS_PER_YEAR
from investment_tracker.core.constants import (
    ANNUAL_CONTRIBUTION_LIMITS,
    FHSA_LIFETIME_LIMIT,
    FHSA_MAX_ANNUAL_WITH_CARRYFORWARD,
    OVER_CONTRIBUTION_PENALTY_RATE,
    RRSP_INCOME_PERCENTAGE,
    RRSP_OVERCONTRIBUTION_BUFFER,
    is_tax_advantaged,
)
from investment_tracker.core.contribution_timing import contribution_interval
from investment_tracker.core.projection import total_months_for_term
from investment_tracker.schemas.contribution_room import (
    BoundedRoom,
    ContributionRoomResult,
    OverContributionDetails,
    UnlimitedRoom,
)
from investment_tracker.schemas.investment import AccountInput, AccountType

RoomValue = Union[UnlimitedRoom, BoundedRoom]


def _whole_years(term_years: float) -> int:
    return max(0, math.floor(term_years))


def _term(account: AccountInput, term_years: Optional[float]) -> float:
    return account.term_years if term_years is None else term_years


def total_projected_contributions(account: AccountInput) -> float:
    """Sum of scheduled deposits: amount x periods/year x (months in schedule / 12)."""
    schedule = account.contribution
    if schedule is None or schedule.amount <= 0:
        return 0.0

    periods_per_year = CONTRIBUTION_PERIODS_PER_YEAR[schedule.frequency]
    contribution_months = max(0, schedule.end_month - schedule.start_month + 1)
    return round(schedule.amount * periods_per_year * contribution_months / 12, 2)


def annual_projected_contributions(account: AccountInput, term_years: float) -> List[float]:
    """Scheduled deposits falling in each whole year of the term."""
    total_years = _whole_years(term_years)
    annual = [0.0] * total_years

    schedule = account.contribution
    if schedule is None or schedule.amount <= 0 or total_years == 0:
        return annual

    periods_per_year = CONTRIBUTION_PERIODS_PER_YEAR[schedule.frequency]
    start = max(1, schedule.start_month)
    end = min(schedule.end_month, total_years * 12)
    if end < start:
        return annual

    for year_index in range(total_years):
        overlap_start = max(start, year_index * 12 + 1)
        overlap_end = min(end, (year_index + 1) * 12)
        overlap_months = max(0, overlap_end - overlap_start + 1)
        if overlap_months > 0:
            annual[year_index] = round(
                schedule.amount * periods_per_year * overlap_months / 12, 2
            )

    return annual


def annual_room_increase(account: AccountInput) -> float:
    """New room granted each year for the account's type."""
    account_type = account.account_type
    if not is_tax_advantaged(account_type):
        return 0.0

    if account.custom_annual_room_increase is not None:
        return account.custom_annual_room_increase

    if account_type == AccountType.RRSP:
        income = account.annual_income_for_rrsp
        max_limit = ANNUAL_CONTRIBUTION_LIMITS[AccountType.RRSP]
        if income is not None and income > 0:
            return min(income * RRSP_INCOME_PERCENTAGE, max_limit)
        return max_limit

    return ANNUAL_CONTRIBUTION_LIMITS[account_type]


def over_contribution_buffer(account: AccountInput) -> float:
    if account.account_type == AccountType.RRSP:
        return RRSP_OVERCONTRIBUTION_BUFFER
    return 0.0


def _fhsa_remaining_lifetime(account: AccountInput) -> float:
    return max(0.0, FHSA_LIFETIME_LIMIT - (account.fhsa_lifetime_contributions or 0.0))


def available_room(account: AccountInput, term_years: Optional[float] = None) -> RoomValue:
    """
    Room available over the term.

    tfsa/rrsp: initial room + annual increase x whole years.
    fhsa:      yearly increases capped at the carry-forward maximum, and the
               total capped at the unused lifetime limit.
    others:    unlimited.
    """
    if not is_tax_advantaged(account.account_type):
        return UnlimitedRoom()

    years = _whole_years(_term(account, term_years))
    initial_room = max(0.0, account.contribution_room or 0.0)
    increase = annual_room_increase(account)

    if account.account_type == AccountType.FHSA:
        remaining_lifetime = _fhsa_remaining_lifetime(account)
        total = initial_room
        for _ in range(years):
            yearly = min(increase, FHSA_MAX_ANNUAL_WITH_CARRYFORWARD, remaining_lifetime - total)
            total += max(0.0, yearly)
        return BoundedRoom(amount=min(total, remaining_lifetime))

    return BoundedRoom(amount=initial_room + increase * years)


def remaining_room(account: AccountInput, term_years: Optional[float] = None) -> RoomValue:
    """Available room minus projected contributions; negative means over-contributed."""
    return available_room(account, term_years).minus(total_projected_contributions(account))


def remaining_contribution_room_for_goal(
    account: AccountInput, term_years: Optional[float] = None
) -> RoomValue:
    room = remaining_room(account, term_years)
    if room.is_unlimited:
        return room
    return BoundedRoom(amount=max(0.0, room.amount))


def annual_contribution_room_limits(account: AccountInput, term_years: float) -> List[float]:
    """Room granted in each whole year; year one carries the initial room and buffer."""
    if not is_tax_advantaged(account.account_type):
        return []

    total_years = _whole_years(term_years)
    initial_room = max(0.0, account.contribution_room or 0.0)
    increase = annual_room_increase(account)
    buffer = over_contribution_buffer(account)
    remaining_lifetime = _fhsa_remaining_lifetime(account)

    rooms: List[float] = []
    for year_index in range(total_years):
        room = initial_room if year_index == 0 else increase

        if account.account_type == AccountType.FHSA:
            capped = min(increase, FHSA_MAX_ANNUAL_WITH_CARRYFORWARD)
            room = min(initial_room if year_index == 0 else capped, remaining_lifetime)
            remaining_lifetime = max(0.0, remaining_lifetime - room)

        if year_index == 0:
            room += buffer

        rooms.append(max(0.0, room))

    return rooms


def _position(month_index: int) -> Tuple[int, int]:
    return math.ceil(month_index / 12), (month_index - 1) % 12 + 1


def find_over_contribution_timing(account: AccountInput, effective_room: float) -> Tuple[int, int]:
    """
    (year, month-in-year) of the first scheduled deposit that pushes cumulative
    deposits above `effective_room`; the last deposit when none does.

    Walks deposit periods, not months, and ignores room growth during the walk.
    """
    schedule = account.contribution
    if schedule is None or schedule.amount <= 0:
        return 1, 1

    interval = contribution_interval(schedule.frequency)
    periods_per_year = CONTRIBUTION_PERIODS_PER_YEAR[schedule.frequency]
    # Keeps the walk consistent with total_projected_contributions (bi-weekly = 26/yr).
    per_period = schedule.amount * periods_per_year * interval / 12
    start = max(1, schedule.start_month)
    if schedule.end_month < start:
        return _position(start)

    cumulative = 0.0
    last_month = start
    for month_index in range(start, schedule.end_month + 1, interval):
        cumulative += per_period
        last_month = month_index
        if cumulative > effective_room:
            return _position(month_index)

    return _position(last_month)


def months_of_excess(total_months: int, year: int, month: int) -> int:
    """Months left in the term from the over-contribution month, inclusive."""
    over_month_index = (year - 1) * 12 + month
    return max(0, total_months - over_month_index + 1)


def estimate_penalty(excess_amount: float, months: int) -> float:
    return round(excess_amount * OVER_CONTRIBUTION_PENALTY_RATE * months, 2)


def over_contribution_details(
    account: AccountInput, term_years: Optional[float] = None
) -> OverContributionDetails:
    room = available_room(account, term_years)
    if room.is_unlimited:
        return OverContributionDetails(exceeds_room=False, excess_amount=0.0)

    term = _term(account, term_years)
    effective_room = room.amount + over_contribution_buffer(account)
    projected = total_projected_contributions(account)
    if projected <= effective_room:
        return OverContributionDetails(exceeds_room=False, excess_amount=0.0)

    excess = round(projected - effective_room, 2)
    year, month = find_over_contribution_timing(account, effective_room)
    months = months_of_excess(total_months_for_term(term), year, month)

    return OverContributionDetails(
        exceeds_room=True,
        excess_amount=excess,
        year_of_over_contribution=year,
        month_of_over_contribution=month,
        estimated_penalty=estimate_penalty(excess, months),
    )


def contribution_room_result(
    account: AccountInput, term_years: Optional[float] = None
) -> ContributionRoomResult:
    room = available_room(account, term_years)
    projected = total_projected_contributions(account)
    return ContributionRoomResult(
        available_room=room,
        projected_contributions=projected,
        remaining_room=room.minus(projected),
        over_contribution_details=over_contribution_details(account, term_years),
    )
