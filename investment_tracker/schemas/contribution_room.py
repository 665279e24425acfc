"""Data contracts for tax-advantaged contribution room analysis."""

from __future__ import annotations

from typing import Annotated, List, Literal, Optional, Union

from pydantic import ConfigDict, Field

from investment_tracker.schemas.investment import AccountType, CamelModel


class UnlimitedRoom(CamelModel):
    """Room for accounts without a contribution ceiling."""

    kind: Literal["unlimited"] = "unlimited"

    @property
    def is_unlimited(self) -> bool:
        return True

    def minus(self, amount: float) -> "UnlimitedRoom":
        return self

    def as_sentinel(self) -> float:
        """Legacy representation used by older clients (-1 means unlimited)."""
        return -1.0


class BoundedRoom(CamelModel):
    """A finite amount of room. May be negative once contributions exceed it."""

    kind: Literal["bounded"] = "bounded"
    amount: float

    @property
    def is_unlimited(self) -> bool:
        return False

    def minus(self, amount: float) -> "BoundedRoom":
        return BoundedRoom(amount=self.amount - amount)

    def as_sentinel(self) -> float:
        return self.amount


Room = Annotated[Union[UnlimitedRoom, BoundedRoom], Field(discriminator="kind")]


class OverContributionDetails(CamelModel):
    exceeds_room: bool
    excess_amount: float = Field(default=0.0, ge=0)
    year_of_over_contribution: Optional[int] = None
    month_of_over_contribution: Optional[int] = None
    estimated_penalty: Optional[float] = None


class ContributionRoomResult(CamelModel):
    available_room: Room
    projected_contributions: float
    remaining_room: Room
    over_contribution_details: OverContributionDetails


class SharedAccountGroup(CamelModel):
    """Canonical room fields shared by every account of one type.

    Member accounts are linked to their group through `account_type`; the
    group holds each shared value once instead of copying it onto siblings.
    """

    model_config = ConfigDict(frozen=True)

    account_type: AccountType
    contribution_room: Optional[float] = None
    custom_annual_room_increase: Optional[float] = None
    annual_income_for_rrsp: Optional[float] = None
    fhsa_lifetime_contributions: Optional[float] = None


class AccountTypeContributionSummary(CamelModel):
    """Derived view over all accounts sharing one account type."""

    account_type: AccountType
    shared_contribution_room: float
    available_room: Room
    total_projected_contributions: float
    remaining_room: Room
    account_ids: List[str]
    account_count: int
    is_over_contributing: bool
    over_contribution_details: OverContributionDetails
