from datetime import datetime, timedelta, timezone

import pytest

from cardwise.domain.models import Attempt, AttemptResult, Card

BASE_TIME = datetime(2024, 1, 1, tzinfo=timezone.utc)


class ZeroRandom:
    """Stand-in for random.Random whose draws are always 0.0."""

    def random(self) -> float:
        return 0.0

    def sample(self, population, k):
        return list(population)[:k]

    def shuffle(self, seq) -> None:
        pass


class HistoryBuilder:
    """Appends attempts with increasing ids and timestamps."""

    def __init__(self):
        self.attempts: list[Attempt] = []

    def add(
        self,
        card_uid: str,
        result: AttemptResult | str = AttemptResult.CORRECT,
        response_ms: int | None = 0,
        times: int = 1,
    ) -> "HistoryBuilder":
        for _ in range(times):
            n = len(self.attempts) + 1
            self.attempts.append(
                Attempt(
                    id=n,
                    card_uid=card_uid,
                    result=AttemptResult(result),
                    attempted_at=BASE_TIME + timedelta(seconds=n),
                    response_ms=response_ms,
                )
            )
        return self


@pytest.fixture
def cards():
    return [
        Card(uid="a", term="perro", definition="dog"),
        Card(uid="b", term="gato", definition="cat"),
        Card(uid="c", term="pájaro", definition="bird"),
    ]


@pytest.fixture
def history():
    return HistoryBuilder()


@pytest.fixture
def history_builder():
    return HistoryBuilder


@pytest.fixture
def zero_rng():
    return ZeroRandom()


@pytest.fixture
def deck_file(tmp_path):
    """A small deck file without uids."""
    path = tmp_path / "spanish.yaml"
    path.write_text(
        "title: Spanish Basics\n"
        "cards:\n"
        "  - term: perro\n"
        "    definition: dog\n"
        "  - term: gato\n"
        "    definition: cat\n"
        "    starred: true\n",
        encoding="utf-8",
    )
    return path


@pytest.fixture
def mock_home(tmp_path, monkeypatch):
    """Mocks Path.home() to point to a temp dir."""
    home = tmp_path / "home"
    home.mkdir()

    # Mocking HOME to a temp directory to isolate config/data
    monkeypatch.setenv("HOME", str(home))
    for var in (
        "CARDWISE_RIGOR",
        "CARDWISE_CHUNK_SIZE",
        "CARDWISE_STORAGE",
        "CARDWISE_DATA_DIR",
        "CARDWISE_DECKS_DIR",
        "CARDWISE_VERBOSE",
    ):
        monkeypatch.delenv(var, raising=False)
    return home
