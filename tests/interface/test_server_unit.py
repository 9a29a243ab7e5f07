import pytest
from fastapi.testclient import TestClient

from cardwise import server
from cardwise.application.config import AppConfig
from cardwise.consts import VERSION
from cardwise.infrastructure.decks import assign_card_uids
from cardwise.infrastructure.repositories import InMemoryAttemptRepository
from cardwise.server import app

client = TestClient(app)

TYPED = {"quiz_mode": "term-to-definition", "answer_type": "short-answer"}
CARDS = [
    {"uid": "a", "term": "perro", "definition": "dog"},
    {"uid": "b", "term": "gato", "definition": "cat", "starred": True},
]


@pytest.fixture(autouse=True)
def fresh_state(monkeypatch, tmp_path):
    monkeypatch.setattr(server, "_config", AppConfig(storage="memory", decks_dir=tmp_path))
    monkeypatch.setattr(server, "_repository", InMemoryAttemptRepository())
    server.sessions.clear()
    server.starred_by_session.clear()
    yield
    server.sessions.clear()
    server.starred_by_session.clear()


def _open(cards=CARDS, **extra) -> str:
    response = client.post("/sessions", json={"cards": cards, "settings": TYPED, **extra})
    assert response.status_code == 201, response.text
    return response.json()["session_id"]


def test_health_check():
    response = client.get("/health")
    assert response.status_code == 200
    data = response.json()
    assert data["status"] == "ok"
    assert data["version"] == VERSION
    assert data["open_sessions"] == 0


def test_get_version():
    response = client.get("/version")
    assert response.status_code == 200
    assert response.json() == {"version": VERSION}


def test_create_session():
    response = client.post(
        "/sessions", json={"cards": CARDS, "set_id": "spanish", "settings": TYPED, "seed": 1}
    )

    assert response.status_code == 201
    data = response.json()
    assert data["set_id"] == "spanish"
    assert data["card_count"] == 2
    assert data["prior_attempts"] == 0
    assert data["settings"]["quiz_mode"] == "term-to-definition"
    assert data["session_id"] in server.sessions


def test_create_session_requires_cards():
    assert client.post("/sessions", json={}).status_code == 400
    assert client.post("/sessions", json={"cards": []}).status_code == 400


def test_create_session_from_deck_without_uids(deck_file):
    response = client.post("/sessions", json={"deck_path": deck_file.name})
    assert response.status_code == 400
    assert "has no uid" in response.json()["detail"]


def test_create_session_from_deck(deck_file):
    assign_card_uids(deck_file)
    response = client.post("/sessions", json={"deck_path": deck_file.name, "settings": TYPED})

    assert response.status_code == 201
    data = response.json()
    assert data["set_id"] == "spanish"
    assert data["card_count"] == 2

    starred = client.get(
        f"/sessions/{data['session_id']}/cards", params={"filter": "Starred"}
    ).json()
    assert [c["term"] for c in starred] == ["gato"]


@pytest.mark.parametrize("deck_path", ["../outside.yaml", "/etc/passwd"])
def test_deck_path_outside_decks_dir_is_refused(deck_path):
    response = client.post("/sessions", json={"deck_path": deck_path})

    assert response.status_code == 403
    assert server.sessions == {}


def test_deck_path_disabled_without_decks_dir(monkeypatch, deck_file):
    monkeypatch.setattr(server, "_config", AppConfig(storage="memory", decks_dir=None))
    assign_card_uids(deck_file)

    response = client.post("/sessions", json={"deck_path": str(deck_file)})

    assert response.status_code == 403
    assert "disabled" in response.json()["detail"]


def test_question_answer_and_mark():
    session_id = _open(cards=CARDS[:1])

    question = client.post(f"/sessions/{session_id}/next").json()
    assert question["uid"] == "a"
    assert question["prompt"] == "perro"
    assert question["label"] == "New"
    assert question["options"] == []

    answer = client.post(
        f"/sessions/{session_id}/answer", json={"answer": "dog", "response_ms": 500}
    ).json()
    assert answer["result"] == "correct"
    assert answer["attempt_id"] == 1
    assert answer["expected_answer"] == "dog"
    assert answer["score"] == 1

    marked = client.post(f"/sessions/{session_id}/mark", json={"result": "unsure"}).json()
    assert marked["result"] == "unsure"
    assert marked["score"] == 1

    wrong = client.post(f"/sessions/{session_id}/mark", json={"result": "incorrect"}).json()
    assert wrong["score"] == 0
    assert marked["total_attempts"] == 1


def test_answer_before_question_conflicts():
    session_id = _open()
    response = client.post(f"/sessions/{session_id}/answer", json={"answer": "dog"})
    assert response.status_code == 409


def test_mark_without_attempt_conflicts():
    session_id = _open()
    client.post(f"/sessions/{session_id}/next")
    response = client.post(f"/sessions/{session_id}/mark", json={"result": "correct"})
    assert response.status_code == 409


def test_negative_response_time_rejected():
    session_id = _open()
    client.post(f"/sessions/{session_id}/next")
    response = client.post(
        f"/sessions/{session_id}/answer", json={"answer": "dog", "response_ms": -5}
    )
    assert response.status_code == 422


def test_update_settings():
    session_id = _open()
    response = client.patch(
        f"/sessions/{session_id}/settings", json={"rigor": "intense", "chunk_size": 3}
    )

    assert response.status_code == 200
    assert response.json()["rigor"] == "intense"
    assert response.json()["chunk_size"] == 3
    assert server.sessions[session_id].scheduler.config.mastery_target == 3


def test_list_cards_with_filter():
    session_id = _open()

    all_cards = client.get(f"/sessions/{session_id}/cards").json()
    assert [c["uid"] for c in all_cards] == ["a", "b"]
    assert all(c["label"] == "New" for c in all_cards)

    starred = client.get(f"/sessions/{session_id}/cards", params={"filter": "Starred"}).json()
    assert [c["uid"] for c in starred] == ["b"]
    assert starred[0]["starred"] is True


def test_history_shared_across_sessions():
    first = _open(cards=CARDS[:1], set_id="s1")
    client.post(f"/sessions/{first}/next")
    client.post(f"/sessions/{first}/answer", json={"answer": "wrong"})

    second = client.post(
        "/sessions", json={"cards": CARDS[:1], "set_id": "s1", "settings": TYPED}
    ).json()
    assert second["prior_attempts"] == 1

    cards = client.get(f"/sessions/{second['session_id']}/cards").json()
    assert cards[0]["label"] == "Challenging"


def test_unknown_session():
    assert client.post("/sessions/nope/next").status_code == 404
    assert client.delete("/sessions/nope").status_code == 404


def test_close_session():
    session_id = _open()
    assert client.delete(f"/sessions/{session_id}").status_code == 204
    assert session_id not in server.sessions
    assert client.post(f"/sessions/{session_id}/next").status_code == 404
