import logging
import random
import time
from contextlib import asynccontextmanager
from pathlib import Path

from fastapi import FastAPI, HTTPException
from pydantic import BaseModel, Field
from ulid import ULID

from cardwise.application.config import AppConfig, resolve_config
from cardwise.application.session import EmptyDeckError, NoActiveQuestionError, StudySession
from cardwise.consts import VERSION
from cardwise.domain.models import (
    AnswerType,
    AttemptResult,
    Card,
    CardFilter,
    PracticeSettings,
    QuizMode,
    RigorLevel,
)
from cardwise.domain.ports import AttemptRepository

# Setup logging
logging.basicConfig(level=logging.INFO)
logger = logging.getLogger("cardwise.server")


@asynccontextmanager
async def lifespan(app: FastAPI):
    # Startup
    logger.info(f"cardwise server v{VERSION} starting up...")
    yield
    # Shutdown
    logger.info(f"cardwise server shutting down ({len(sessions)} open sessions dropped)")


app = FastAPI(
    title="cardwise Server",
    description="Adaptive flashcard study sessions over HTTP.",
    version=VERSION,
    lifespan=lifespan,
)

# Sessions are process-local; each owns its own scheduler state.
sessions: dict[str, StudySession] = {}
starred_by_session: dict[str, frozenset[str]] = {}
_config: AppConfig | None = None
_repository: AttemptRepository | None = None


def get_config() -> AppConfig:
    global _config
    if _config is None:
        _config = resolve_config()
    return _config


def get_repository() -> AttemptRepository:
    global _repository
    if _repository is None:
        from cardwise.infrastructure.factory import get_attempt_repository

        _repository = get_attempt_repository(get_config())
    return _repository


def _resolve_deck_path(deck_path: str) -> Path:
    """
    Map a client-supplied deck path into the configured decks directory.

    Paths that escape the directory are refused, and so is every path when no
    decks directory is configured.
    """
    decks_dir = get_config().decks_dir
    if decks_dir is None:
        raise HTTPException(
            status_code=403, detail="Loading decks by path is disabled; set CARDWISE_DECKS_DIR"
        )
    path = (decks_dir / deck_path).resolve()
    if not path.is_relative_to(decks_dir):
        raise HTTPException(status_code=403, detail=f"Deck path {deck_path} is outside decks_dir")
    return path


def _get_session(session_id: str) -> StudySession:
    try:
        return sessions[session_id]
    except KeyError:
        raise HTTPException(status_code=404, detail=f"Unknown session {session_id}") from None


class HealthResponse(BaseModel):
    status: str
    version: str
    uptime_seconds: float
    open_sessions: int


start_time = time.time()


@app.get("/health", response_model=HealthResponse)
async def health_check():
    """
    Simple health check to verify server is reachable.
    """
    return HealthResponse(
        status="ok",
        version=VERSION,
        uptime_seconds=time.time() - start_time,
        open_sessions=len(sessions),
    )


@app.get("/version")
async def get_version():
    return {"version": VERSION}


# ---------------------------------------------------------------------------
# Sessions
# ---------------------------------------------------------------------------


class CardPayload(BaseModel):
    uid: str
    term: str
    definition: str
    starred: bool = False


class SettingsPayload(BaseModel):
    quiz_mode: QuizMode | None = None
    answer_type: AnswerType | None = None
    rigor: RigorLevel | None = None
    chunk_size: int | None = Field(default=None, ge=1, le=50)


class SettingsResponse(BaseModel):
    quiz_mode: QuizMode
    answer_type: AnswerType
    rigor: RigorLevel
    chunk_size: int


def _settings_response(settings: PracticeSettings) -> SettingsResponse:
    return SettingsResponse(
        quiz_mode=settings.quiz_mode,
        answer_type=settings.answer_type,
        rigor=settings.rigor,
        chunk_size=settings.chunk_size,
    )


class CreateSessionRequest(BaseModel):
    # Either a deck file under the server's decks_dir or inline cards
    deck_path: str | None = None
    cards: list[CardPayload] | None = None
    set_id: str | None = None
    user_id: str = "local"
    settings: SettingsPayload | None = None
    seed: int | None = None


class CreateSessionResponse(BaseModel):
    session_id: str
    set_id: str
    card_count: int
    prior_attempts: int
    settings: SettingsResponse


@app.post("/sessions", response_model=CreateSessionResponse, status_code=201)
async def create_session(req: CreateSessionRequest):
    """
    Start a study session for a deck file or an inline list of cards.
    """
    if req.deck_path:
        from cardwise.infrastructure.decks import DeckError, load_deck

        try:
            deck = load_deck(_resolve_deck_path(req.deck_path))
        except DeckError as e:
            raise HTTPException(status_code=400, detail=str(e)) from e
        cards, starred = deck.cards, deck.starred
        set_id = req.set_id or deck.set_id
    elif req.cards:
        cards = [Card(uid=c.uid, term=c.term, definition=c.definition) for c in req.cards]
        starred = frozenset(c.uid for c in req.cards if c.starred)
        set_id = req.set_id or "inline"
    else:
        raise HTTPException(status_code=400, detail="Provide deck_path or a non-empty cards list")

    session = StudySession(
        cards,
        get_repository(),
        set_id=set_id,
        user_id=req.user_id,
        rng=random.Random(req.seed),
    )
    await session.start()
    if req.settings:
        await session.update_settings(**req.settings.model_dump(exclude_none=True))

    session_id = str(ULID())
    sessions[session_id] = session
    starred_by_session[session_id] = starred
    logger.info(f"Opened session {session_id} for set {set_id} ({len(cards)} cards)")

    return CreateSessionResponse(
        session_id=session_id,
        set_id=set_id,
        card_count=len(cards),
        prior_attempts=len(session.history),
        settings=_settings_response(session.settings),
    )


@app.delete("/sessions/{session_id}", status_code=204)
async def close_session(session_id: str):
    _get_session(session_id)
    del sessions[session_id]
    starred_by_session.pop(session_id, None)


class QuestionResponse(BaseModel):
    card_index: int
    uid: str
    prompt: str
    shows_term: bool
    is_short_answer: bool
    options: list[str]
    label: str


@app.post("/sessions/{session_id}/next", response_model=QuestionResponse)
async def next_question(session_id: str):
    session = _get_session(session_id)
    try:
        question = session.next_question()
    except EmptyDeckError as e:
        raise HTTPException(status_code=400, detail=str(e)) from e

    return QuestionResponse(
        card_index=question.card_index,
        uid=question.card.uid,
        prompt=question.prompt,
        shows_term=question.shows_term,
        is_short_answer=question.is_short_answer,
        options=list(question.options),
        label=session.labels()[question.card.uid].value,
    )


class AnswerRequest(BaseModel):
    answer: str
    response_ms: int | None = Field(default=None, ge=0)


class AttemptResponse(BaseModel):
    attempt_id: int
    uid: str
    result: AttemptResult
    expected_answer: str
    score: int
    total_attempts: int


@app.post("/sessions/{session_id}/answer", response_model=AttemptResponse)
async def submit_answer(session_id: str, req: AnswerRequest):
    session = _get_session(session_id)
    try:
        attempt = await session.submit_answer(req.answer, req.response_ms)
    except NoActiveQuestionError as e:
        raise HTTPException(status_code=409, detail=str(e)) from e

    return AttemptResponse(
        attempt_id=attempt.id,
        uid=attempt.card_uid,
        result=attempt.result,
        expected_answer=session.current.expected_answer,
        score=session.score,
        total_attempts=session.total_attempts,
    )


class MarkRequest(BaseModel):
    result: AttemptResult


@app.post("/sessions/{session_id}/mark", response_model=AttemptResponse)
async def mark_last_attempt(session_id: str, req: MarkRequest):
    """Override the result of the current card's latest attempt."""
    session = _get_session(session_id)
    attempt = await session.mark_last(req.result)
    if attempt is None:
        raise HTTPException(status_code=409, detail="The current card has no attempt to mark")

    return AttemptResponse(
        attempt_id=attempt.id,
        uid=attempt.card_uid,
        result=attempt.result,
        expected_answer=session.current.expected_answer,
        score=session.score,
        total_attempts=session.total_attempts,
    )


@app.patch("/sessions/{session_id}/settings", response_model=SettingsResponse)
async def update_settings(session_id: str, req: SettingsPayload):
    session = _get_session(session_id)
    settings = await session.update_settings(**req.model_dump(exclude_none=True))
    return _settings_response(settings)


class CardStatusResponse(BaseModel):
    uid: str
    term: str
    definition: str
    label: str
    starred: bool


@app.get("/sessions/{session_id}/cards", response_model=list[CardStatusResponse])
async def list_cards(session_id: str, filter: CardFilter | None = None):
    session = _get_session(session_id)
    starred = starred_by_session.get(session_id, frozenset())
    labels = session.labels()
    return [
        CardStatusResponse(
            uid=card.uid,
            term=card.term,
            definition=card.definition,
            label=labels[card.uid].value,
            starred=card.uid in starred,
        )
        for card in session.filter_cards(filter, starred)
    ]
