"""JSON file persistence for accounts, goal settings and inflation settings.

Everything lives in one document:

    {"accounts": [...], "goalState": {...}, "inflationState": {...}}

Accounts are normalized on the way in and on the way out, so a file written
by an older client with stale timings or missing account types still loads.
"""

from __future__ import annotations

import json
import os
import re
import tempfile
from pathlib import Path
from typing import Any, Dict, List, Optional, Sequence, Union

from pydantic import ValidationError

from investment_tracker.core.normalization import normalize_account
from investment_tracker.schemas.goal import GoalState, InflationState
from investment_tracker.schemas.investment import AccountInput
from investment_tracker.utils.logging import get_logger

logger = get_logger(__name__)

MAX_PAYLOAD_BYTES = 1_048_576
MAX_ACCOUNT_NAME_LENGTH = 100

_CONTROL_CHARS = re.compile(r"[\x00-\x1f\x7f]")

ACCOUNTS_KEY = "accounts"
GOAL_STATE_KEY = "goalState"
INFLATION_STATE_KEY = "inflationState"


class StorageError(RuntimeError):
    """The stored document is oversized, unreadable or not valid."""


def sanitize_name(name: Any) -> str:
    if not isinstance(name, str):
        return ""
    return _CONTROL_CHARS.sub("", name).strip()[:MAX_ACCOUNT_NAME_LENGTH]


def is_payload_within_limit(raw: Union[str, bytes], max_bytes: int = MAX_PAYLOAD_BYTES) -> bool:
    data = raw.encode("utf-8") if isinstance(raw, str) else raw
    return len(data) <= max_bytes


def _prepare_account(raw: Dict[str, Any]) -> AccountInput:
    account = normalize_account(raw)
    account["name"] = sanitize_name(account.get("name"))
    return AccountInput.model_validate(account)


def _dump(model) -> Dict[str, Any]:
    return model.model_dump(mode="json", by_alias=True, exclude_none=True)


class JsonFileStore:
    def __init__(self, path: Union[str, Path], max_bytes: int = MAX_PAYLOAD_BYTES) -> None:
        self.path = Path(path)
        self.max_bytes = max_bytes

    def _read(self) -> Dict[str, Any]:
        if not self.path.exists():
            return {}

        try:
            raw = self.path.read_bytes()
        except OSError as exc:
            raise StorageError(f"Could not read {self.path}: {exc}") from exc

        if not is_payload_within_limit(raw, self.max_bytes):
            raise StorageError(
                f"Stored payload is {len(raw)} bytes, limit is {self.max_bytes} bytes."
            )

        try:
            document = json.loads(raw.decode("utf-8"))
        except (UnicodeDecodeError, json.JSONDecodeError) as exc:
            raise StorageError(f"Stored payload in {self.path} is not valid JSON.") from exc

        if not isinstance(document, dict):
            raise StorageError(f"Stored payload in {self.path} is not a JSON object.")
        return document

    def _write(self, document: Dict[str, Any]) -> None:
        text = json.dumps(document, indent=2)
        if not is_payload_within_limit(text, self.max_bytes):
            raise StorageError(f"Refusing to write more than {self.max_bytes} bytes.")

        self.path.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp_path = tempfile.mkstemp(dir=self.path.parent, suffix=".tmp")
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                f.write(text)
            os.replace(tmp_path, self.path)
        except OSError as exc:
            if os.path.exists(tmp_path):
                os.remove(tmp_path)
            raise StorageError(f"Could not write {self.path}: {exc}") from exc

    def _update(self, key: str, value: Any) -> None:
        document = self._read()
        document[key] = value
        self._write(document)

    def load_accounts(self) -> List[AccountInput]:
        raw_accounts = self._read().get(ACCOUNTS_KEY, [])
        if not isinstance(raw_accounts, list) or not all(
            isinstance(item, dict) for item in raw_accounts
        ):
            raise StorageError("Stored accounts must be a list of objects.")

        try:
            accounts = [_prepare_account(raw) for raw in raw_accounts]
        except ValidationError as exc:
            raise StorageError(f"Stored accounts are invalid: {exc.error_count()} error(s).") from exc

        logger.debug("loaded accounts count=%d path=%s", len(accounts), self.path)
        return accounts

    def save_accounts(self, accounts: Sequence[AccountInput]) -> List[AccountInput]:
        """Normalize and persist; returns the accounts as stored."""
        prepared = [_prepare_account(_dump(account)) for account in accounts]
        self._update(ACCOUNTS_KEY, [_dump(account) for account in prepared])
        logger.info("saved accounts count=%d path=%s", len(prepared), self.path)
        return prepared

    def _load_model(self, key: str, model_cls, default):
        raw = self._read().get(key)
        if raw is None:
            return default
        try:
            return model_cls.model_validate(raw)
        except ValidationError as exc:
            raise StorageError(f"Stored {key} is invalid: {exc.error_count()} error(s).") from exc

    def load_goal_state(self) -> GoalState:
        return self._load_model(GOAL_STATE_KEY, GoalState, GoalState())

    def save_goal_state(self, state: GoalState) -> None:
        self._update(GOAL_STATE_KEY, _dump(state))

    def load_inflation_state(self, default_rate_percent: Optional[float] = None) -> InflationState:
        default = InflationState()
        if default_rate_percent is not None:
            default = InflationState(annual_rate_percent=default_rate_percent)
        return self._load_model(INFLATION_STATE_KEY, InflationState, default)

    def save_inflation_state(self, state: InflationState) -> None:
        self._update(INFLATION_STATE_KEY, _dump(state))
