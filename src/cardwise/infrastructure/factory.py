"""
Repository Factory
Centralizes the logic for selecting the attempt storage adapter.
"""

from cardwise.application.config import AppConfig
from cardwise.domain.ports import AttemptRepository
from cardwise.infrastructure.repositories import InMemoryAttemptRepository, JsonAttemptRepository


def get_attempt_repository(config: AppConfig) -> AttemptRepository:
    """
    Returns the AttemptRepository implementation selected by config.storage.
    """
    if config.storage == "memory":
        return InMemoryAttemptRepository()
    return JsonAttemptRepository(data_dir=config.data_dir)
