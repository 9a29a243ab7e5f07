# Infrastructure Repositories Package
from .json_store import JsonAttemptRepository
from .memory import InMemoryAttemptRepository

__all__ = ["InMemoryAttemptRepository", "JsonAttemptRepository"]
