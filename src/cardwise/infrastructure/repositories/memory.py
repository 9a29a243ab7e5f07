"""
In-memory Attempt Repository: process-local implementation of AttemptRepository.

Used by the HTTP server's default storage and by tests.
"""

from itertools import count

from cardwise.domain.models import Attempt, AttemptResult, PracticeSettings
from cardwise.domain.ports import AttemptRepository


class InMemoryAttemptRepository(AttemptRepository):
    def __init__(self):
        self._attempts: dict[tuple[str, str], list[Attempt]] = {}
        self._preferences: dict[tuple[str, str], PracticeSettings] = {}
        self._ids = count(1)

    async def save_attempt(self, set_id: str, user_id: str, attempt: Attempt) -> Attempt:
        saved = attempt.with_id(next(self._ids))
        self._attempts.setdefault((set_id, user_id), []).append(saved)
        return saved

    async def update_attempt_result(
        self, set_id: str, attempt_id: int, result: AttemptResult
    ) -> None:
        for (stored_set_id, _), attempts in self._attempts.items():
            if stored_set_id != set_id:
                continue
            for i, attempt in enumerate(attempts):
                if attempt.id == attempt_id:
                    attempts[i] = attempt.with_result(result)
                    return

    async def load_attempts(self, set_id: str, user_id: str) -> list[Attempt]:
        return list(self._attempts.get((set_id, user_id), []))

    async def load_preferences(self, user_id: str, set_id: str) -> PracticeSettings | None:
        return self._preferences.get((user_id, set_id))

    async def save_preferences(
        self, user_id: str, set_id: str, settings: PracticeSettings
    ) -> None:
        self._preferences[(user_id, set_id)] = settings
