"""Data contracts for accounts, contribution schedules and projections."""

from __future__ import annotations

from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
    """Base model: snake_case attributes, camelCase on the wire."""

    model_config = ConfigDict(
        extra="forbid",
        alias_generator=to_camel,
        populate_by_name=True,
    )


class CompoundingFrequency(str, Enum):
    ANNUALLY = "annually"
    SEMIANNUALLY = "semiannually"
    QUARTERLY = "quarterly"
    MONTHLY = "monthly"
    SEMIMONTHLY = "semimonthly"
    BIWEEKLY = "biweekly"
    WEEKLY = "weekly"
    DAILY = "daily"
    CONTINUOUSLY = "continuously"


class ContributionFrequency(str, Enum):
    BI_WEEKLY = "bi-weekly"
    MONTHLY = "monthly"
    QUARTERLY = "quarterly"
    ANNUALLY = "annually"


class ContributionTiming(str, Enum):
    BEGINNING_OF_MONTH = "beginning-of-month"
    END_OF_MONTH = "end-of-month"
    BEGINNING_OF_QUARTER = "beginning-of-quarter"
    END_OF_QUARTER = "end-of-quarter"
    BEGINNING_OF_BIWEEKLY = "beginning-of-biweekly"
    END_OF_BIWEEKLY = "end-of-biweekly"
    BEGINNING_OF_YEAR = "beginning-of-year"
    END_OF_YEAR = "end-of-year"


class AccountType(str, Enum):
    TFSA = "tfsa"
    RRSP = "rrsp"
    FHSA = "fhsa"
    LIRA = "lira"
    NON_REGISTERED = "non-registered"


class ContributionSchedule(CamelModel):
    """Recurring deposit: `amount` per period, months are 1-based and inclusive.

    A schedule with a non-positive amount is kept as-is here and treated as
    absent by the projection engine.
    """

    amount: float
    frequency: ContributionFrequency
    start_month: int
    end_month: int


class AccountInput(CamelModel):
    """One investment account as configured by the user.

    The timing/frequency pair is deliberately not cross-validated here:
    the projection engine rejects inconsistent pairs, and only the
    normalization boundary is allowed to repair them.
    """

    id: str
    name: str
    principal: float = Field(ge=0)
    annual_rate_percent: float = Field(ge=0)
    compounding_frequency: CompoundingFrequency
    term_years: float = Field(gt=0)
    current_age: Optional[int] = Field(default=None, ge=0, le=120)
    contribution_timing: ContributionTiming
    contribution: Optional[ContributionSchedule] = None
    account_type: AccountType = AccountType.NON_REGISTERED

    # Tax-advantaged room inputs; only meaningful for some account types.
    contribution_room: Optional[float] = None
    custom_annual_room_increase: Optional[float] = None
    annual_income_for_rrsp: Optional[float] = None
    fhsa_lifetime_contributions: Optional[float] = None
    is_locked_in: Optional[bool] = None


class ProjectionPoint(CamelModel):
    """Balance snapshot at the end of `month` (month 0 is the seed)."""

    month: int = Field(ge=0)
    year: float = Field(ge=0)
    balance: float
    total_contributions: float
    real_balance: Optional[float] = None
    real_total_contributions: Optional[float] = None


class ProjectionTotals(CamelModel):
    total_contributions: float
    total_returns: float
    final_balance: float
    real_final_balance: Optional[float] = None
    real_total_contributions: Optional[float] = None
    real_total_returns: Optional[float] = None


class AccountProjection(CamelModel):
    points: List[ProjectionPoint]
    totals: ProjectionTotals
