"""HTTP routes for the Flask API."""

from __future__ import annotations

from http import HTTPStatus
from typing import Any, Dict, List

from flask import Blueprint, current_app, jsonify, request
from pydantic import ValidationError
from werkzeug.exceptions import RequestEntityTooLarge

from investment_tracker.core.constants import is_tax_advantaged
from investment_tracker.core.contribution_room import contribution_room_result
from investment_tracker.core.goal import evaluate_goal, format_term_from_months
from investment_tracker.core.inflation import apply_inflation_to_projection
from investment_tracker.core.normalization import load_accounts
from investment_tracker.core.projection import (
    ContributionTimingError,
    build_projection,
    check_contribution_timing,
    final_value_label,
)
from investment_tracker.core.shared_contribution_room import (
    apply_shared_group,
    build_shared_groups,
    summarize_all_account_types,
)
from investment_tracker.schemas.api import (
    AccountProjectionEntry,
    AccountRoomEntry,
    ContributionRoomRequest,
    ContributionRoomResponse,
    GoalRequest,
    GoalResponse,
    ProjectionsRequest,
    ProjectionsResponse,
)
from investment_tracker.schemas.goal import GoalState, InflationState
from investment_tracker.utils.logging import get_logger
from investment_tracker.utils.storage import JsonFileStore, StorageError

api_bp = Blueprint("api", __name__)

logger = get_logger(__name__)


def _json(model, status: HTTPStatus = HTTPStatus.OK):
    return jsonify(model.model_dump(mode="json", by_alias=True, exclude_none=True)), status


def _payload() -> Dict[str, Any]:
    return request.get_json(force=True, silent=False)


def _store() -> JsonFileStore:
    return JsonFileStore(
        current_app.config["STORAGE_PATH"], current_app.config["MAX_CONTENT_LENGTH"]
    )


@api_bp.errorhandler(ValidationError)
def _handle_validation_error(exc: ValidationError):
    """Convert Pydantic validation errors into JSON responses."""
    errors = exc.errors(include_url=False, include_context=False)
    return jsonify({"detail": errors}), HTTPStatus.UNPROCESSABLE_ENTITY


@api_bp.errorhandler(RequestEntityTooLarge)
def _handle_too_large(exc: RequestEntityTooLarge):
    return jsonify({"detail": "Payload too large."}), HTTPStatus.REQUEST_ENTITY_TOO_LARGE


@api_bp.errorhandler(StorageError)
def _handle_storage_error(exc: StorageError):
    logger.error("storage failure: %s", exc)
    return jsonify({"detail": str(exc)}), HTTPStatus.INTERNAL_SERVER_ERROR


@api_bp.post("/projections")
def projections() -> Any:
    """Month-by-month projection for each account; one bad account does not fail the rest."""
    payload = ProjectionsRequest.model_validate(_payload())

    inflation_rate = None
    if payload.inflation is not None and payload.inflation.is_enabled:
        inflation_rate = payload.inflation.annual_rate_percent
        if inflation_rate is None:
            inflation_rate = current_app.config["DEFAULT_INFLATION_PERCENT"]

    results: List[AccountProjectionEntry] = []
    for account in payload.accounts:
        try:
            projection = build_projection(account)
        except ContributionTimingError as exc:
            logger.warning("account=%s projection rejected: %s", account.id, exc)
            results.append(AccountProjectionEntry(account_id=account.id, error=str(exc)))
            continue

        if inflation_rate is not None:
            projection = apply_inflation_to_projection(projection, inflation_rate, account.term_years)
        results.append(
            AccountProjectionEntry(
                account_id=account.id,
                projection=projection,
                final_value_label=final_value_label(account.current_age, account.term_years),
            )
        )

    return _json(ProjectionsResponse(inflation_rate_percent=inflation_rate, results=results))


@api_bp.post("/contribution-room")
def contribution_room() -> Any:
    """Room per registered account plus one shared-room summary per account type."""
    payload = ContributionRoomRequest.model_validate(_payload())
    groups = build_shared_groups(payload.accounts)

    entries = [
        AccountRoomEntry(
            account_id=account.id,
            result=contribution_room_result(
                apply_shared_group(account, groups[account.account_type])
            ),
        )
        for account in payload.accounts
        if is_tax_advantaged(account.account_type)
    ]
    summaries = summarize_all_account_types(payload.accounts, groups)
    return _json(ContributionRoomResponse(accounts=entries, summaries=summaries))


@api_bp.post("/goal")
def goal() -> Any:
    """Solve the goal across all accounts; any misconfigured account rejects the request."""
    payload = GoalRequest.model_validate(_payload())

    errors = []
    for index, account in enumerate(payload.accounts):
        try:
            check_contribution_timing(account)
        except ContributionTimingError as exc:
            logger.warning("account=%s goal rejected: %s", account.id, exc)
            errors.append(
                {
                    "loc": ["accounts", index, "contributionTiming"],
                    "accountId": account.id,
                    "msg": str(exc),
                }
            )
    if errors:
        return jsonify({"detail": errors}), HTTPStatus.UNPROCESSABLE_ENTITY

    result, allocations = evaluate_goal(payload.accounts, payload.goal)

    label = None
    if result.required_term_months:
        label = format_term_from_months(result.required_term_months)

    return _json(GoalResponse(result=result, required_term_label=label, allocations=allocations))


@api_bp.get("/accounts")
def list_accounts() -> Any:
    accounts = _store().load_accounts()
    return jsonify([a.model_dump(mode="json", by_alias=True, exclude_none=True) for a in accounts])


@api_bp.put("/accounts")
def save_accounts() -> Any:
    """Replace the stored accounts; repairable fields are normalized first."""
    raw_payload = _payload()
    raw_accounts = raw_payload.get("accounts") if isinstance(raw_payload, dict) else None
    if not isinstance(raw_accounts, list) or not all(isinstance(item, dict) for item in raw_accounts):
        detail = "Expected an object with an 'accounts' list of objects."
        return jsonify({"detail": detail}), HTTPStatus.UNPROCESSABLE_ENTITY

    accounts = load_accounts(raw_accounts)
    saved = _store().save_accounts(accounts)
    return jsonify([a.model_dump(mode="json", by_alias=True, exclude_none=True) for a in saved])


@api_bp.get("/goal-state")
def get_goal_state() -> Any:
    return _json(_store().load_goal_state())


@api_bp.put("/goal-state")
def put_goal_state() -> Any:
    state = GoalState.model_validate(_payload())
    _store().save_goal_state(state)
    return _json(state)


@api_bp.get("/inflation-state")
def get_inflation_state() -> Any:
    """Stored inflation toggle; the configured default rate applies until one is saved."""
    state = _store().load_inflation_state(
        default_rate_percent=current_app.config["DEFAULT_INFLATION_PERCENT"]
    )
    return _json(state)


@api_bp.put("/inflation-state")
def put_inflation_state() -> Any:
    state = InflationState.model_validate(_payload())
    _store().save_inflation_state(state)
    return _json(state)
