# Application Package
from .difficulty import DifficultyClassifier, label, score
from .scheduler import ChunkedScheduler
from .session import Question, StudySession

__all__ = ["DifficultyClassifier", "ChunkedScheduler", "StudySession", "Question", "score", "label"]
