"""Contribution room shared by every account of the same registered type.

Room belongs to the person, not to an individual account, so all TFSAs (for
example) draw on one pool. The pool's inputs live on a `SharedAccountGroup`
keyed by account type; member accounts are resolved against their group
rather than kept in sync field by field.
"""

from __future__ import annotations

from typing import Dict, List, Mapping, Optional, Sequence, Tuple

from investment_tracker.core.constants import ACCOUNT_TYPE_LABELS, is_tax_advantaged
from investment_tracker.core.contribution_room import (
    annual_contribution_room_limits,
    annual_projected_contributions,
    available_room,
    estimate_penalty,
    months_of_excess,
    total_projected_contributions,
)
from investment_tracker.core.projection import total_months_for_term
from investment_tracker.schemas.contribution_room import (
    AccountTypeContributionSummary,
    BoundedRoom,
    OverContributionDetails,
    SharedAccountGroup,
    UnlimitedRoom,
)
from investment_tracker.schemas.investment import AccountInput, AccountType
from investment_tracker.utils.logging import get_logger

logger = get_logger(__name__)

SHARED_FIELDS_BY_TYPE: Dict[AccountType, Tuple[str, ...]] = {
    AccountType.TFSA: ("contribution_room", "custom_annual_room_increase"),
    AccountType.RRSP: (
        "contribution_room",
        "annual_income_for_rrsp",
        "custom_annual_room_increase",
    ),
    AccountType.FHSA: (
        "contribution_room",
        "fhsa_lifetime_contributions",
        "custom_annual_room_increase",
    ),
    AccountType.LIRA: (),
    AccountType.NON_REGISTERED: (),
}


def shared_fields_for_type(account_type: AccountType) -> Tuple[str, ...]:
    return SHARED_FIELDS_BY_TYPE.get(account_type, ())


def accounts_by_type(accounts: Sequence[AccountInput], account_type: AccountType) -> List[AccountInput]:
    return [account for account in accounts if account.account_type == account_type]


def most_recent_account_by_type(
    accounts: Sequence[AccountInput], account_type: AccountType
) -> Optional[AccountInput]:
    """Last account of the type in list order (list order stands in for edit recency)."""
    members = accounts_by_type(accounts, account_type)
    return members[-1] if members else None


def seed_shared_group(
    accounts: Sequence[AccountInput],
    account_type: AccountType,
    exclude_account_id: Optional[str] = None,
) -> SharedAccountGroup:
    """Group values taken from the most recent member that defines any shared field."""
    fields = shared_fields_for_type(account_type)
    members = [
        account
        for account in accounts_by_type(accounts, account_type)
        if account.id != exclude_account_id
    ]

    seed = next(
        (
            account
            for account in reversed(members)
            if any(getattr(account, field) is not None for field in fields)
        ),
        None,
    )
    if seed is None:
        return SharedAccountGroup(account_type=account_type)

    values = {
        field: getattr(seed, field) for field in fields if getattr(seed, field) is not None
    }
    return SharedAccountGroup(account_type=account_type, **values)


def build_shared_groups(accounts: Sequence[AccountInput]) -> Dict[AccountType, SharedAccountGroup]:
    groups: Dict[AccountType, SharedAccountGroup] = {}
    for account in accounts:
        if account.account_type not in groups:
            groups[account.account_type] = seed_shared_group(accounts, account.account_type)
    return groups


def update_shared_group(
    group: SharedAccountGroup, changes: Mapping[str, Optional[float]]
) -> SharedAccountGroup:
    """Apply an edit to the group's shared fields; negatives clamp to 0.

    Keys that are not shared for the group's type are ignored, they belong to
    the individual account.
    """
    fields = shared_fields_for_type(group.account_type)
    updates = {}
    for field, value in changes.items():
        if field not in fields:
            continue
        updates[field] = max(0.0, value) if value is not None else None

    if not updates:
        return group
    return group.model_copy(update=updates)


def apply_shared_group(account: AccountInput, group: SharedAccountGroup) -> AccountInput:
    """The account as seen through its group's canonical shared values."""
    if account.account_type != group.account_type:
        return account

    updates = {
        field: getattr(group, field)
        for field in shared_fields_for_type(group.account_type)
        if getattr(group, field) is not None
    }
    if not updates:
        return account
    return account.model_copy(update=updates)


def combined_projected_contributions(
    accounts: Sequence[AccountInput], account_type: AccountType
) -> float:
    return sum(
        total_projected_contributions(account) for account in accounts_by_type(accounts, account_type)
    )


def _group_for(
    accounts: Sequence[AccountInput],
    account_type: AccountType,
    groups: Optional[Mapping[AccountType, SharedAccountGroup]],
) -> SharedAccountGroup:
    if groups is not None and account_type in groups:
        return groups[account_type]
    return seed_shared_group(accounts, account_type)


def _base_account(
    members: Sequence[AccountInput], group: SharedAccountGroup
) -> AccountInput:
    # Longest-term member, first one wins on ties.
    longest = members[0]
    for account in members[1:]:
        if account.term_years > longest.term_years:
            longest = account
    return apply_shared_group(longest, group)


def _shared_over_contribution_details(
    members: Sequence[AccountInput], base: AccountInput
) -> OverContributionDetails:
    """First year where cumulative combined deposits exceed cumulative room."""
    rooms = annual_contribution_room_limits(base, base.term_years)
    combined = [0.0] * len(rooms)
    for account in members:
        for index, amount in enumerate(annual_projected_contributions(account, base.term_years)):
            combined[index] += amount

    cumulative_room = 0.0
    cumulative_contributions = 0.0
    for index, room in enumerate(rooms):
        cumulative_room += room
        cumulative_contributions += combined[index]
        if cumulative_contributions > cumulative_room:
            excess = round(cumulative_contributions - cumulative_room, 2)
            year = index + 1
            months = months_of_excess(total_months_for_term(base.term_years), year, 1)
            return OverContributionDetails(
                exceeds_room=True,
                excess_amount=excess,
                year_of_over_contribution=year,
                month_of_over_contribution=1,
                estimated_penalty=estimate_penalty(excess, months),
            )

    return OverContributionDetails(exceeds_room=False, excess_amount=0.0)


def summarize_account_type(
    accounts: Sequence[AccountInput],
    account_type: AccountType,
    groups: Optional[Mapping[AccountType, SharedAccountGroup]] = None,
) -> AccountTypeContributionSummary:
    """Aggregate room view over every account of `account_type`."""
    members = accounts_by_type(accounts, account_type)
    group = _group_for(accounts, account_type, groups)
    total_projected = combined_projected_contributions(accounts, account_type)

    if not members:
        room = UnlimitedRoom() if not is_tax_advantaged(account_type) else BoundedRoom(amount=0.0)
        return AccountTypeContributionSummary(
            account_type=account_type,
            shared_contribution_room=0.0,
            available_room=room,
            total_projected_contributions=0.0,
            remaining_room=room,
            account_ids=[],
            account_count=0,
            is_over_contributing=False,
            over_contribution_details=OverContributionDetails(exceeds_room=False),
        )

    base = _base_account(members, group)
    room = available_room(base)
    if room.is_unlimited:
        details = OverContributionDetails(exceeds_room=False, excess_amount=0.0)
    else:
        details = _shared_over_contribution_details(members, base)

    if details.exceeds_room:
        logger.info(
            "over-contribution account_type=%s year=%s excess=%.2f",
            ACCOUNT_TYPE_LABELS[account_type],
            details.year_of_over_contribution,
            details.excess_amount,
        )

    return AccountTypeContributionSummary(
        account_type=account_type,
        shared_contribution_room=max(0.0, group.contribution_room or 0.0),
        available_room=room,
        total_projected_contributions=total_projected,
        remaining_room=room.minus(total_projected),
        account_ids=[account.id for account in members],
        account_count=len(members),
        is_over_contributing=details.exceeds_room,
        over_contribution_details=details,
    )


def summarize_all_account_types(
    accounts: Sequence[AccountInput],
    groups: Optional[Mapping[AccountType, SharedAccountGroup]] = None,
) -> List[AccountTypeContributionSummary]:
    """One summary per account type present, in account-type declaration order."""
    present = {account.account_type for account in accounts}
    return [
        summarize_account_type(accounts, account_type, groups)
        for account_type in AccountType
        if account_type in present
    ]
