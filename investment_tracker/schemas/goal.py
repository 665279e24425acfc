"""Data contracts for goal mode and inflation settings."""

from __future__ import annotations

from enum import Enum
from typing import Optional

from pydantic import Field

from investment_tracker.schemas.investment import CamelModel, ContributionFrequency


class CalculationType(str, Enum):
    CONTRIBUTION = "contribution"
    TERM = "term"


class AllocationStrategy(str, Enum):
    PROPORTIONAL = "proportional"
    HIGHEST_RETURN = "highest-return"
    EQUAL = "equal"


class GoalState(CamelModel):
    is_goal_mode: bool = False
    target_balance: float = Field(default=1_000_000, gt=0)
    calculation_type: CalculationType = CalculationType.CONTRIBUTION
    contribution_frequency: ContributionFrequency = ContributionFrequency.MONTHLY
    contribution_amount: Optional[float] = None
    term_years: Optional[float] = 30
    allocation_strategy: AllocationStrategy = AllocationStrategy.PROPORTIONAL


class GoalCalculationResult(CamelModel):
    """Outcome of a goal solve. An unreachable goal is a value, not an error."""

    is_reachable: bool
    required_contribution: Optional[float] = None
    required_term_months: Optional[int] = None
    message: Optional[str] = None


class AccountAllocation(CamelModel):
    """Suggested per-period contribution for one account, in the goal frequency."""

    account_id: str
    account_name: str
    suggested_contribution: float
    current_contribution: float
    additional_contribution: float = Field(ge=0)
    current_balance: float
    annual_rate_percent: float
    available_contribution_room: Optional[float] = None
    contribution_room_exceeded: bool = False
    is_locked_in: bool = False


class InflationState(CamelModel):
    is_enabled: bool = False
    annual_rate_percent: float = Field(default=2.5, ge=0, le=15)
