"""Goal seeking: required contribution, required term, and allocation across accounts."""

from __future__ import annotations

import math
from typing import Dict, List, Optional, Sequence, Tuple

from investment_tracker.core.compounding import (
    CONTRIBUTION_PERIODS_PER_YEAR,
    convert_contribution_amount,
    effective_monthly_rate,
)
from investment_tracker.core.constants import is_locked_account_type, is_tax_advantaged
from investment_tracker.core.contribution_room import available_room
from investment_tracker.core.projection import build_projection
from investment_tracker.schemas.goal import (
    AccountAllocation,
    AllocationStrategy,
    CalculationType,
    GoalCalculationResult,
    GoalState,
)
from investment_tracker.schemas.investment import AccountInput, ContributionFrequency
from investment_tracker.utils.logging import get_logger

logger = get_logger(__name__)

MAX_ITERATIONS = 100
CONVERGENCE_THRESHOLD = 0.01
MAX_TERM_MONTHS = 100 * 12

# Room-cap redistribution runs a fixed number of passes, not to a fixed point.
REDISTRIBUTION_PASSES = 2

NO_ACCOUNTS_MESSAGE = "Add at least one account to use Goal Mode"
INVALID_TARGET_MESSAGE = "Target balance must be positive"


def _ceil_cents(value: float) -> float:
    return math.ceil(value * 100) / 100


def future_value_without_contributions(accounts: Sequence[AccountInput], term_months: float) -> float:
    """Principal of every account grown at its own effective monthly rate.

    Growth too large for a float is reported as infinity.
    """
    total = 0.0
    for account in accounts:
        if account.principal == 0:
            continue
        monthly_rate = effective_monthly_rate(
            account.annual_rate_percent, account.compounding_frequency
        )
        try:
            total += account.principal * (1 + monthly_rate) ** term_months
        except OverflowError:
            return math.inf
    return total


def future_value_of_contributions(
    contribution_per_period: float,
    periods_per_year: int,
    annual_rate_percent: float,
    term_months: float,
) -> float:
    """Ordinary annuity: C x ((1 + i)^n - 1) / i, with i = r / periods."""
    total_periods = term_months / 12 * periods_per_year
    if annual_rate_percent == 0 or contribution_per_period == 0:
        return contribution_per_period * total_periods

    periodic_rate = annual_rate_percent / 100 / periods_per_year
    try:
        growth = (1 + periodic_rate) ** total_periods
    except OverflowError:
        return math.inf
    return contribution_per_period * ((growth - 1) / periodic_rate)


def weighted_average_rate(accounts: Sequence[AccountInput]) -> float:
    """Principal-weighted annual rate; plain mean when nothing is invested yet."""
    if not accounts:
        return 0.0

    total_principal = sum(account.principal for account in accounts)
    if total_principal == 0:
        return sum(account.annual_rate_percent for account in accounts) / len(accounts)

    return sum(
        account.annual_rate_percent * account.principal / total_principal for account in accounts
    )


def projected_balance_with_schedules(accounts: Sequence[AccountInput], term_years: float) -> float:
    """Final balance of every account over `term_years`, existing schedules included."""
    return sum(
        build_projection(account.model_copy(update={"term_years": term_years})).totals.final_balance
        for account in accounts
    )


def calculate_required_contribution(
    accounts: Sequence[AccountInput],
    target_balance: float,
    term_years: float,
    contribution_frequency: ContributionFrequency,
) -> GoalCalculationResult:
    """
    Per-period contribution needed to reach `target_balance` in `term_years`.

    The shortfall over principal growth is solved with the closed-form annuity
    formula at the principal-weighted average rate, then rounded up to the cent.
    """
    if not accounts:
        return GoalCalculationResult(is_reachable=False, message=NO_ACCOUNTS_MESSAGE)
    if target_balance <= 0:
        return GoalCalculationResult(is_reachable=False, message=INVALID_TARGET_MESSAGE)
    if term_years <= 0:
        return GoalCalculationResult(is_reachable=False, message="Term must be at least 1 year")

    if projected_balance_with_schedules(accounts, term_years) >= target_balance:
        return GoalCalculationResult(
            is_reachable=True,
            required_contribution=0.0,
            message="Congratulations! Your projected balance already exceeds your goal",
        )

    term_months = term_years * 12
    amount_needed = target_balance - future_value_without_contributions(accounts, term_months)
    periods_per_year = CONTRIBUTION_PERIODS_PER_YEAR[contribution_frequency]
    total_periods = term_years * periods_per_year
    weighted_rate = weighted_average_rate(accounts)

    if weighted_rate == 0:
        return GoalCalculationResult(
            is_reachable=True,
            required_contribution=_ceil_cents(amount_needed / total_periods),
        )

    periodic_rate = weighted_rate / 100 / periods_per_year
    try:
        annuity_factor = ((1 + periodic_rate) ** total_periods - 1) / periodic_rate
        required = amount_needed / annuity_factor
    except (OverflowError, ZeroDivisionError):
        required = math.inf

    if not math.isfinite(required) or required < 0:
        return GoalCalculationResult(
            is_reachable=False, message="Unable to calculate required contribution"
        )

    return GoalCalculationResult(is_reachable=True, required_contribution=_ceil_cents(required))


def goal_balance_at_month(
    accounts: Sequence[AccountInput],
    months: float,
    contribution_amount: float,
    contribution_frequency: ContributionFrequency,
) -> float:
    """Principal growth plus a level contribution stream at the weighted rate."""
    return future_value_without_contributions(accounts, months) + future_value_of_contributions(
        contribution_amount,
        CONTRIBUTION_PERIODS_PER_YEAR[contribution_frequency],
        weighted_average_rate(accounts),
        months,
    )


def calculate_required_term(
    accounts: Sequence[AccountInput],
    target_balance: float,
    contribution_amount: float,
    contribution_frequency: ContributionFrequency,
) -> GoalCalculationResult:
    """Months needed to reach `target_balance`, found by bisection over [1, 1200]."""
    if not accounts:
        return GoalCalculationResult(is_reachable=False, message=NO_ACCOUNTS_MESSAGE)
    if target_balance <= 0:
        return GoalCalculationResult(is_reachable=False, message=INVALID_TARGET_MESSAGE)
    if contribution_amount <= 0:
        return GoalCalculationResult(
            is_reachable=False, message="Contribution amount must be positive"
        )

    if sum(account.principal for account in accounts) >= target_balance:
        return GoalCalculationResult(
            is_reachable=True,
            required_term_months=0,
            message="Congratulations! Your current balance already exceeds your goal",
        )

    def balance_at(months: int) -> float:
        return goal_balance_at_month(accounts, months, contribution_amount, contribution_frequency)

    low, high = 1, MAX_TERM_MONTHS
    if balance_at(high) < target_balance:
        return GoalCalculationResult(
            is_reachable=False,
            message=(
                "This goal cannot be reached with the current contribution. "
                "Try increasing the amount or adjusting account rates."
            ),
        )

    for iteration in range(MAX_ITERATIONS):
        mid = (low + high) // 2
        balance = balance_at(mid)

        if abs(balance - target_balance) < CONVERGENCE_THRESHOLD:
            logger.debug("required term converged months=%d iterations=%d", mid, iteration + 1)
            return GoalCalculationResult(is_reachable=True, required_term_months=mid)

        if balance < target_balance:
            low = mid + 1
        else:
            high = mid

        if low >= high:
            logger.debug("required term bracket closed months=%d iterations=%d", high, iteration + 1)
            return GoalCalculationResult(is_reachable=True, required_term_months=high)

    return GoalCalculationResult(is_reachable=True, required_term_months=high)


def _is_locked(account: AccountInput) -> bool:
    return bool(account.is_locked_in) or is_locked_account_type(account.account_type)


def current_contribution_in(account: AccountInput, frequency: ContributionFrequency) -> float:
    """Today's scheduled contribution expressed per `frequency` period."""
    schedule = account.contribution
    if schedule is None or schedule.amount <= 0:
        return 0.0
    return round(convert_contribution_amount(schedule.amount, schedule.frequency, frequency), 2)


def _room_cap(
    account: AccountInput, frequency: ContributionFrequency, term_years: Optional[float]
) -> Optional[float]:
    """Available room spread over every period of the term; None when uncapped."""
    if not is_tax_advantaged(account.account_type):
        return None

    term = account.term_years if term_years is None else term_years
    room = available_room(account, term)
    total_periods = term * CONTRIBUTION_PERIODS_PER_YEAR[frequency]
    if room.is_unlimited:
        return None
    if total_periods <= 0:
        return 0.0
    return round(max(0.0, room.amount) / total_periods, 2)


def _split_by_weight(
    weights: Sequence[float], pool: float, remainder_index: Optional[int] = None
) -> List[float]:
    """Cent-rounded shares of `pool`; the rounding remainder lands on one share.

    Without an explicit `remainder_index` the largest share takes it.
    """
    total_weight = sum(weights)
    shares = [round(pool * weight / total_weight, 2) for weight in weights]
    if remainder_index is None:
        remainder_index = max(range(len(shares)), key=lambda i: shares[i])
    shares[remainder_index] = round(shares[remainder_index] + pool - sum(shares), 2)
    return shares


def _split_pool(
    accounts: Sequence[AccountInput], pool: float, strategy: AllocationStrategy
) -> List[float]:
    if not accounts:
        return []

    if strategy == AllocationStrategy.HIGHEST_RETURN:
        best = max(range(len(accounts)), key=lambda i: accounts[i].annual_rate_percent)
        return [pool if i == best else 0.0 for i in range(len(accounts))]

    total_principal = sum(account.principal for account in accounts)
    if strategy == AllocationStrategy.EQUAL or total_principal == 0:
        return _split_by_weight([1.0] * len(accounts), pool, remainder_index=0)

    return _split_by_weight([account.principal for account in accounts], pool)


def _apply_room_caps(
    shares: List[float], caps: List[Optional[float]]
) -> Tuple[List[float], List[bool]]:
    """Cap each share at its room and hand the excess to accounts with headroom."""
    exceeded = [False] * len(shares)

    for _ in range(REDISTRIBUTION_PASSES):
        excess = 0.0
        for i, cap in enumerate(caps):
            if cap is not None and shares[i] > cap:
                excess += shares[i] - cap
                shares[i] = cap
                exceeded[i] = True

        if excess <= 0:
            break

        recipients = [
            i
            for i, cap in enumerate(caps)
            if not exceeded[i] and (cap is None or shares[i] < cap)
        ]
        if not recipients:
            logger.debug("allocation excess=%.2f left unallocated, no headroom", excess)
            break

        per_recipient = excess / len(recipients)
        for i in recipients:
            shares[i] += per_recipient

    # Whatever the last pass pushed over a cap stays unallocated.
    for i, cap in enumerate(caps):
        if cap is not None and shares[i] > cap:
            logger.debug("allocation residual=%.2f dropped at cap", shares[i] - cap)
            shares[i] = cap
            exceeded[i] = True

    return [round(share, 2) for share in shares], exceeded


def calculate_allocation(
    accounts: Sequence[AccountInput],
    total_contribution: float,
    strategy: AllocationStrategy,
    target_frequency: ContributionFrequency = ContributionFrequency.MONTHLY,
    term_years: Optional[float] = None,
) -> List[AccountAllocation]:
    """
    Split `total_contribution` (per `target_frequency` period) across accounts.

    Locked-in accounts keep their current contribution, which is taken out of
    the pool first; the rest is split between the open accounts by `strategy`
    and then capped by each registered account's room.
    """
    if not accounts or total_contribution <= 0:
        return []

    current = [current_contribution_in(account, target_frequency) for account in accounts]
    locked = [_is_locked(account) for account in accounts]
    caps = [_room_cap(account, target_frequency, term_years) for account in accounts]

    open_indexes = [i for i, is_locked in enumerate(locked) if not is_locked]
    locked_total = sum(current[i] for i, is_locked in enumerate(locked) if is_locked)
    pool = max(0.0, total_contribution - locked_total)

    open_shares = _split_pool([accounts[i] for i in open_indexes], pool, strategy)
    open_shares, open_exceeded = _apply_room_caps(open_shares, [caps[i] for i in open_indexes])

    suggested: Dict[int, float] = {i: current[i] for i, is_locked in enumerate(locked) if is_locked}
    exceeded: Dict[int, bool] = {}
    for position, i in enumerate(open_indexes):
        suggested[i] = open_shares[position]
        exceeded[i] = open_exceeded[position]

    allocations: List[AccountAllocation] = []
    for i, account in enumerate(accounts):
        allocations.append(
            AccountAllocation(
                account_id=account.id,
                account_name=account.name,
                suggested_contribution=suggested[i],
                current_contribution=current[i],
                additional_contribution=max(0.0, round(suggested[i] - current[i], 2)),
                current_balance=account.principal,
                annual_rate_percent=account.annual_rate_percent,
                available_contribution_room=caps[i],
                contribution_room_exceeded=exceeded.get(i, False),
                is_locked_in=locked[i],
            )
        )
    return allocations


def evaluate_goal(
    accounts: Sequence[AccountInput], goal: GoalState
) -> Tuple[GoalCalculationResult, List[AccountAllocation]]:
    """Solve the goal and, when a per-period amount is known, allocate it."""
    term_years = goal.term_years
    if term_years is None:
        term_years = max((account.term_years for account in accounts), default=0.0)

    if goal.calculation_type == CalculationType.CONTRIBUTION:
        result = calculate_required_contribution(
            accounts, goal.target_balance, term_years, goal.contribution_frequency
        )
        total = result.required_contribution or 0.0
    else:
        amount = goal.contribution_amount or 0.0
        result = calculate_required_term(
            accounts, goal.target_balance, amount, goal.contribution_frequency
        )
        total = amount
        if result.required_term_months:
            term_years = result.required_term_months / 12

    if not result.is_reachable:
        return result, []

    allocations = calculate_allocation(
        accounts,
        total,
        goal.allocation_strategy,
        target_frequency=goal.contribution_frequency,
        term_years=term_years,
    )
    return result, allocations


def format_term_from_months(months: int) -> str:
    years, remaining = divmod(months, 12)

    def plural(count: int, unit: str) -> str:
        return f"{count} {unit}{'' if count == 1 else 's'}"

    if years == 0:
        return plural(remaining, "month")
    if remaining == 0:
        return plural(years, "year")
    return f"{plural(years, 'year')}, {plural(remaining, 'month')}"
