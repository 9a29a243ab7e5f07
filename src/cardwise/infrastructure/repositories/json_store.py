"""
JSON Attempt Repository: Infrastructure adapter for a local data directory.

Layout:
    <data_dir>/attempts/<set_id>.json             {"next_id": int, "attempts": [...]}
    <data_dir>/preferences/<user_id>__<set_id>.json
"""

import json
import logging
import re
from datetime import datetime, timezone
from pathlib import Path
from typing import Any

from cardwise.application.preferences import settings_from_mapping, settings_to_mapping
from cardwise.domain.models import Attempt, AttemptResult, PracticeSettings
from cardwise.domain.ports import AttemptRepository

logger = logging.getLogger(__name__)

_UNSAFE_CHARS = re.compile(r"[^A-Za-z0-9_.-]")


def _safe_name(value: str) -> str:
    return _UNSAFE_CHARS.sub("_", value)


def attempt_to_dict(attempt: Attempt, user_id: str) -> dict[str, Any]:
    return {
        "id": attempt.id,
        "user_id": user_id,
        "card_uid": attempt.card_uid,
        "result": AttemptResult(attempt.result).value,
        "attempted_at": attempt.attempted_at.isoformat(),
        "response_ms": attempt.response_ms,
    }


def attempt_from_dict(data: dict[str, Any]) -> Attempt:
    """Build an Attempt from a stored row. A missing response time stays None (read as 0)."""
    attempted_at = datetime.fromisoformat(data["attempted_at"])
    if attempted_at.tzinfo is None:
        attempted_at = attempted_at.replace(tzinfo=timezone.utc)
    response_ms = data.get("response_ms")
    return Attempt(
        id=int(data["id"]),
        card_uid=str(data["card_uid"]),
        result=AttemptResult(data["result"]),
        attempted_at=attempted_at,
        response_ms=int(response_ms) if response_ms is not None else None,
    )


class JsonAttemptRepository(AttemptRepository):
    """
    Stores attempts and preferences as JSON files.

    Attempt ids are allocated per set file. Unreadable files are logged
    and treated as empty rather than aborting a study session.
    """

    def __init__(self, data_dir: Path):
        self.data_dir = Path(data_dir)

    # ------------------------------------------------------------------
    # Attempts
    # ------------------------------------------------------------------

    def _attempts_path(self, set_id: str) -> Path:
        return self.data_dir / "attempts" / f"{_safe_name(set_id)}.json"

    def _read_attempt_file(self, path: Path) -> dict[str, Any]:
        if not path.exists():
            return {"next_id": 1, "attempts": []}
        try:
            data = json.loads(path.read_text(encoding="utf-8"))
        except (OSError, json.JSONDecodeError) as e:
            logger.warning(f"Could not read {path}: {e}")
            return {"next_id": 1, "attempts": []}
        if not isinstance(data, dict) or not isinstance(data.get("attempts"), list):
            logger.warning(f"Ignoring malformed attempt file {path}")
            return {"next_id": 1, "attempts": []}
        data.setdefault("next_id", len(data["attempts"]) + 1)
        return data

    def _write_json(self, path: Path, data: Any) -> None:
        path.parent.mkdir(parents=True, exist_ok=True)
        tmp = path.with_suffix(".tmp")
        tmp.write_text(json.dumps(data, indent=2), encoding="utf-8")
        tmp.replace(path)

    async def save_attempt(self, set_id: str, user_id: str, attempt: Attempt) -> Attempt:
        path = self._attempts_path(set_id)
        data = self._read_attempt_file(path)

        saved = attempt.with_id(int(data["next_id"]))
        data["next_id"] = saved.id + 1
        data["attempts"].append(attempt_to_dict(saved, user_id))

        self._write_json(path, data)
        logger.debug(f"Saved attempt {saved.id} for card {saved.card_uid} in {path.name}")
        return saved

    async def update_attempt_result(
        self, set_id: str, attempt_id: int, result: AttemptResult
    ) -> None:
        # Ids are allocated per set file, so only this set's file is searched
        path = self._attempts_path(set_id)
        data = self._read_attempt_file(path)
        for row in data["attempts"]:
            if row.get("id") == attempt_id:
                row["result"] = AttemptResult(result).value
                self._write_json(path, data)
                return

        logger.warning(f"Attempt {attempt_id} not found in {path.name}; result not updated")

    async def load_attempts(self, set_id: str, user_id: str) -> list[Attempt]:
        path = self._attempts_path(set_id)
        attempts: list[Attempt] = []
        for row in self._read_attempt_file(path)["attempts"]:
            if row.get("user_id") != user_id:
                continue
            try:
                attempts.append(attempt_from_dict(row))
            except (KeyError, ValueError, TypeError) as e:
                logger.warning(f"Skipping malformed attempt in {path.name}: {e}")
        return attempts

    # ------------------------------------------------------------------
    # Preferences
    # ------------------------------------------------------------------

    def _preferences_path(self, user_id: str, set_id: str) -> Path:
        return self.data_dir / "preferences" / f"{_safe_name(user_id)}__{_safe_name(set_id)}.json"

    async def load_preferences(self, user_id: str, set_id: str) -> PracticeSettings | None:
        path = self._preferences_path(user_id, set_id)
        if not path.exists():
            return None
        try:
            data = json.loads(path.read_text(encoding="utf-8"))
        except (OSError, json.JSONDecodeError) as e:
            logger.warning(f"Could not read preferences {path}: {e}")
            return None
        if not isinstance(data, dict):
            return None
        return settings_from_mapping(data)

    async def save_preferences(
        self, user_id: str, set_id: str, settings: PracticeSettings
    ) -> None:
        self._write_json(self._preferences_path(user_id, set_id), settings_to_mapping(settings))
