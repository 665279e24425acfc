from __future__ import annotations

from typing import Any, Callable, Dict

import pytest
from flask.testing import FlaskClient

from investment_tracker.app import create_app
from investment_tracker.app.config import Settings
from investment_tracker.schemas.investment import AccountInput


def account_payload(**overrides: Any) -> Dict[str, Any]:
    """A camelCase account as a client would post it."""
    payload: Dict[str, Any] = {
        "id": "acct-1",
        "name": "Brokerage",
        "principal": 10000,
        "annualRatePercent": 6,
        "compoundingFrequency": "monthly",
        "termYears": 10,
        "contributionTiming": "end-of-month",
        "accountType": "non-registered",
    }
    payload.update(overrides)
    return payload


@pytest.fixture()
def make_account() -> Callable[..., AccountInput]:
    def _make(**overrides: Any) -> AccountInput:
        return AccountInput.model_validate(account_payload(**overrides))

    return _make


@pytest.fixture()
def settings(tmp_path) -> Settings:
    return Settings(
        env="test",
        log_level="WARNING",
        storage_path=str(tmp_path / "store.json"),
        max_payload_bytes=64 * 1024,
    )


@pytest.fixture()
def client(settings) -> FlaskClient:
    flask_app = create_app(settings)
    flask_app.config.update(TESTING=True)
    with flask_app.test_client() as test_client:
        yield test_client
