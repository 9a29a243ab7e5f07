"""
Ports (interfaces) for attempt and preference storage.

These define the contract that infrastructure adapters must implement.
Application services depend on these abstractions, not concrete implementations.
"""

from abc import ABC, abstractmethod
from collections.abc import Callable

from .models import Attempt, AttemptResult, PracticeSettings

# (guess, correct_answer) -> is the guess acceptable
AnswerChecker = Callable[[str, str], bool]


class AttemptRepository(ABC):
    """
    Port for persisting study attempts and per-set preferences.

    Implementations:
        - InMemoryAttemptRepository: Process-local dicts.
        - JsonAttemptRepository: JSON files under a data directory.
    """

    @abstractmethod
    async def save_attempt(self, set_id: str, user_id: str, attempt: Attempt) -> Attempt:
        """
        Persist an attempt and assign it a permanent id.

        Args:
            set_id: The card set being studied.
            user_id: The studying user.
            attempt: The attempt to store. Its id may be provisional.

        Returns:
            The stored attempt, carrying a positive id.
        """
        pass

    @abstractmethod
    async def update_attempt_result(
        self, set_id: str, attempt_id: int, result: AttemptResult
    ) -> None:
        """
        Overwrite the result of an already stored attempt.

        Attempt ids are only unique within a set, so the set is required.
        """
        pass

    @abstractmethod
    async def load_attempts(self, set_id: str, user_id: str) -> list[Attempt]:
        """
        Fetch every attempt the user made on a set.

        Returns:
            List of Attempt objects in chronological order.
        """
        pass

    @abstractmethod
    async def load_preferences(self, user_id: str, set_id: str) -> PracticeSettings | None:
        pass

    @abstractmethod
    async def save_preferences(
        self, user_id: str, set_id: str, settings: PracticeSettings
    ) -> None:
        pass
