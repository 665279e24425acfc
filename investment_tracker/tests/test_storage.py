from __future__ import annotations

import json

import pytest

from investment_tracker.schemas.goal import AllocationStrategy, GoalState, InflationState
from investment_tracker.utils.storage import (
    MAX_PAYLOAD_BYTES,
    JsonFileStore,
    StorageError,
    is_payload_within_limit,
    sanitize_name,
)


@pytest.fixture()
def store(tmp_path) -> JsonFileStore:
    return JsonFileStore(tmp_path / "nested" / "store.json")


def test_sanitize_name():
    assert sanitize_name("My Account") == "My Account"
    assert sanitize_name("Test\u0000Name\u001f") == "TestName"
    assert sanitize_name("Hello\u007fWorld") == "HelloWorld"
    assert sanitize_name("  Trimmed  ") == "Trimmed"
    assert sanitize_name("x" * 150) == "x" * 100
    assert sanitize_name(42) == ""
    assert sanitize_name(None) == ""


def test_payload_limit_is_in_bytes():
    assert is_payload_within_limit("x" * MAX_PAYLOAD_BYTES)
    assert not is_payload_within_limit("x" * (MAX_PAYLOAD_BYTES + 1))
    assert not is_payload_within_limit("é" * (MAX_PAYLOAD_BYTES // 2 + 1))


def test_missing_file_loads_defaults(store):
    assert store.load_accounts() == []
    assert store.load_goal_state() == GoalState()
    assert not store.load_inflation_state().is_enabled
    assert store.load_inflation_state(default_rate_percent=3).annual_rate_percent == 3


def test_accounts_round_trip_normalized_and_sanitized(store, make_account):
    account = make_account(
        name="  Rainy\u0007 day  ",
        accountType="lira",
        contributionTiming="end-of-month",
        contribution={"amount": 100, "frequency": "quarterly", "startMonth": 1, "endMonth": 12},
    )
    saved = store.save_accounts([account])
    loaded = store.load_accounts()

    assert loaded == saved
    assert loaded[0].name == "Rainy day"
    assert loaded[0].is_locked_in is True
    assert loaded[0].contribution_timing.value == "end-of-quarter"


def test_sections_are_stored_independently(store, make_account):
    store.save_accounts([make_account()])
    store.save_goal_state(GoalState(target_balance=250000, allocation_strategy=AllocationStrategy.EQUAL))
    store.save_inflation_state(InflationState(is_enabled=True, annual_rate_percent=3.1))

    document = json.loads(store.path.read_text(encoding="utf-8"))
    assert set(document) == {"accounts", "goalState", "inflationState"}
    assert document["goalState"]["targetBalance"] == 250000
    assert document["goalState"]["allocationStrategy"] == "equal"

    assert len(store.load_accounts()) == 1
    assert store.load_goal_state().target_balance == 250000
    assert store.load_inflation_state().annual_rate_percent == 3.1


def test_legacy_accounts_are_repaired_on_load(store):
    store.path.parent.mkdir(parents=True)
    store.path.write_text(
        json.dumps(
            {
                "accounts": [
                    {
                        "id": "legacy",
                        "name": "Legacy",
                        "principal": 100,
                        "annualRatePercent": 3,
                        "compoundingFrequency": "sometimes",
                        "termYears": 2,
                        "contributionTiming": "whenever",
                    }
                ]
            }
        ),
        encoding="utf-8",
    )
    account = store.load_accounts()[0]
    assert account.compounding_frequency.value == "monthly"
    assert account.contribution_timing.value == "end-of-month"
    assert account.account_type.value == "non-registered"


def test_oversized_file_is_rejected(tmp_path):
    path = tmp_path / "big.json"
    path.write_text(json.dumps({"accounts": [], "pad": "x" * 200}), encoding="utf-8")
    with pytest.raises(StorageError):
        JsonFileStore(path, max_bytes=100).load_accounts()


def test_oversized_write_is_rejected(tmp_path, make_account):
    small = JsonFileStore(tmp_path / "small.json", max_bytes=50)
    with pytest.raises(StorageError):
        small.save_accounts([make_account()])
    assert not small.path.exists()


@pytest.mark.parametrize(
    "content",
    ["not json", "[1, 2]", json.dumps({"accounts": {"id": "x"}}), json.dumps({"accounts": [{"id": "x"}]})],
)
def test_invalid_documents_raise_storage_error(store, content):
    store.path.parent.mkdir(parents=True)
    store.path.write_text(content, encoding="utf-8")
    with pytest.raises(StorageError):
        store.load_accounts()


def test_invalid_goal_state_raises_storage_error(store):
    store.path.parent.mkdir(parents=True)
    store.path.write_text(json.dumps({"goalState": {"targetBalance": -1}}), encoding="utf-8")
    with pytest.raises(StorageError):
        store.load_goal_state()
