"""Request and response envelopes for the HTTP API."""

from __future__ import annotations

from typing import List, Optional

from pydantic import Field

from investment_tracker.schemas.contribution_room import (
    AccountTypeContributionSummary,
    ContributionRoomResult,
)
from investment_tracker.schemas.goal import (
    AccountAllocation,
    GoalCalculationResult,
    GoalState,
)
from investment_tracker.schemas.investment import (
    AccountInput,
    AccountProjection,
    CamelModel,
)


class InflationSettings(CamelModel):
    """Inflation toggle on a request; a missing rate falls back to the app default."""

    is_enabled: bool = False
    annual_rate_percent: Optional[float] = Field(default=None, ge=0, le=15)


class ProjectionsRequest(CamelModel):
    accounts: List[AccountInput]
    inflation: Optional[InflationSettings] = None


class AccountProjectionEntry(CamelModel):
    """Exactly one of `projection` or `error` is set; the label comes with a projection."""

    account_id: str
    projection: Optional[AccountProjection] = None
    final_value_label: Optional[str] = None
    error: Optional[str] = None


class ProjectionsResponse(CamelModel):
    inflation_rate_percent: Optional[float] = None
    results: List[AccountProjectionEntry]


class ContributionRoomRequest(CamelModel):
    accounts: List[AccountInput]


class AccountRoomEntry(CamelModel):
    account_id: str
    result: ContributionRoomResult


class ContributionRoomResponse(CamelModel):
    accounts: List[AccountRoomEntry]
    summaries: List[AccountTypeContributionSummary]


class GoalRequest(CamelModel):
    accounts: List[AccountInput]
    goal: GoalState


class GoalResponse(CamelModel):
    result: GoalCalculationResult
    required_term_label: Optional[str] = None
    allocations: List[AccountAllocation]
