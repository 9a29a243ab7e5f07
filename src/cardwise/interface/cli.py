"""cardwise CLI: study loop, card list, deck maintenance, config, and server."""

import asyncio
import json
import logging
import os
import random
import sys
import time
from pathlib import Path
from typing import Annotated, Any

import typer

from cardwise.application.config import AppConfig, resolve_config
from cardwise.domain.models import (
    AnswerType,
    AttemptResult,
    CardFilter,
    PracticeSettings,
    QuizMode,
    RigorLevel,
)

# ---------------------------------------------------------------------------
# Root app
# ---------------------------------------------------------------------------

app = typer.Typer(
    help="cardwise: adaptive flashcard study in the terminal.",
    no_args_is_help=True,
    rich_markup_mode="rich",
)

# ---------------------------------------------------------------------------
# Logging
# ---------------------------------------------------------------------------

logging.basicConfig(
    level=logging.INFO,
    format="%(levelname)s:%(name)s:%(message)s",
    stream=sys.stderr,
)
logger = logging.getLogger(__name__)

_VERBOSITY_LEVELS = {0: logging.WARNING, 1: logging.INFO}

# ---------------------------------------------------------------------------
# Register subgroups
# ---------------------------------------------------------------------------

deck_app = typer.Typer(help="Maintain deck files.", no_args_is_help=True)
app.add_typer(deck_app, name="deck")

config_app = typer.Typer(help="Manage cardwise configuration.")
app.add_typer(config_app, name="config")

QUIT_COMMANDS = {"q", "quit", "exit"}


def _resolve_with_overrides(**overrides: Any) -> AppConfig:
    return resolve_config({k: v for k, v in overrides.items() if v is not None})


def _load_deck_or_exit(path: Path):
    from cardwise.infrastructure.decks import DeckError, load_deck

    try:
        return load_deck(path)
    except DeckError as e:
        typer.secho(str(e), fg="red", err=True)
        raise typer.Exit(1) from e


# ---------------------------------------------------------------------------
# Global callback
# ---------------------------------------------------------------------------


@app.callback()
def main_callback(
    ctx: typer.Context,
    verbose: Annotated[
        int,
        typer.Option(
            "--verbose", "-v", count=True, help="Increase verbosity. Repeat for more detail."
        ),
    ] = 0,
):
    """Global settings for cardwise."""
    ctx.ensure_object(dict)
    if not verbose:
        verbose = resolve_config().verbose
    ctx.obj["verbose"] = verbose
    # Default: warnings only, so log lines do not interleave with questions
    logging.getLogger().setLevel(_VERBOSITY_LEVELS.get(verbose, logging.DEBUG))


# ---------------------------------------------------------------------------
# Root commands
# ---------------------------------------------------------------------------


@app.command()
def study(
    deck_path: Annotated[Path, typer.Argument(help="Path to a YAML deck file.")],
    rigor: Annotated[
        RigorLevel | None, typer.Option(help="How strictly cards must be learned.")
    ] = None,
    chunk_size: Annotated[
        int | None, typer.Option(min=1, max=50, help="Cards studied together per chunk.")
    ] = None,
    quiz_mode: Annotated[
        QuizMode | None, typer.Option(help="Which side of the card is shown.")
    ] = None,
    answer_type: Annotated[
        AnswerType | None, typer.Option(help="Typed answers, multiple choice, or both.")
    ] = None,
    seed: Annotated[int | None, typer.Option(help="Seed for reproducible order.")] = None,
    user: Annotated[str | None, typer.Option(help="User id attempts are stored under.")] = None,
    data_dir: Annotated[Path | None, typer.Option(help="Where attempts are stored.")] = None,
):
    """[bold green]Study[/bold green] a deck with adaptive question ordering.

    Options given here are saved as this deck's preferences.
    Type 'q' at any prompt to stop.
    """
    from cardwise.application.session import StudySession
    from cardwise.infrastructure.decks import DeckError, assign_card_uids
    from cardwise.infrastructure.factory import get_attempt_repository

    config = _resolve_with_overrides(seed=seed, user_id=user, data_dir=data_dir)

    try:
        assigned = assign_card_uids(deck_path)
    except DeckError as e:
        typer.secho(str(e), fg="red", err=True)
        raise typer.Exit(1) from e
    if assigned:
        typer.secho(f"Assigned ids to {assigned} new cards.", fg="cyan")

    deck = _load_deck_or_exit(deck_path)
    if not deck.cards:
        typer.secho(f"Deck '{deck.title}' has no cards.", fg="yellow")
        raise typer.Exit(1)

    async def run():
        session = StudySession(
            deck.cards,
            get_attempt_repository(config),
            set_id=deck.set_id,
            user_id=config.user_id,
            settings=PracticeSettings(
                quiz_mode=config.quiz_mode,
                answer_type=config.answer_type,
                rigor=config.rigor,
                chunk_size=config.chunk_size,
            ),
            rng=random.Random(config.seed),
        )
        await session.start()
        await session.update_settings(
            rigor=rigor, chunk_size=chunk_size, quiz_mode=quiz_mode, answer_type=answer_type
        )

        typer.secho(
            f"Studying {deck.title} ({len(deck.cards)} cards, {session.settings.rigor.value})",
            bold=True,
        )
        labels = session.labels()

        while True:
            question = session.next_question()
            typer.echo("")
            typer.secho(f"[{labels[question.card.uid].value}] {question.prompt}", bold=True)
            for number, option in enumerate(question.options, start=1):
                typer.echo(f"  {number}. {option}")

            started = time.monotonic()
            answer = typer.prompt("Answer", default="", show_default=False)
            if answer.strip().lower() in QUIT_COMMANDS:
                break
            elapsed_ms = int((time.monotonic() - started) * 1000)

            if question.options and answer.strip().isdigit():
                choice = int(answer.strip())
                if 1 <= choice <= len(question.options):
                    answer = question.options[choice - 1]

            attempt = await session.submit_answer(answer, response_ms=elapsed_ms)
            if attempt.result == AttemptResult.CORRECT:
                typer.secho("Correct!", fg="green")
            else:
                typer.secho(f"Incorrect. Answer: {question.expected_answer}", fg="red")

            follow_up = typer.prompt(
                "[enter] next, u = unsure, c = I was right, x = I was wrong, q = quit",
                default="",
                show_default=False,
            ).strip().lower()
            if follow_up == "u":
                await session.mark_last(AttemptResult.UNSURE)
            elif follow_up == "c":
                await session.mark_last(AttemptResult.CORRECT)
            elif follow_up == "x":
                await session.mark_last(AttemptResult.INCORRECT)
            elif follow_up in QUIT_COMMANDS:
                break

            labels = session.labels()

        typer.echo(f"\nScore: {session.score}/{session.total_attempts}")

    asyncio.run(run())


@app.command("cards")
def cards_cmd(
    deck_path: Annotated[Path, typer.Argument(help="Path to a YAML deck file.")],
    card_filter: Annotated[
        CardFilter | None,
        typer.Option("--filter", case_sensitive=False, help="Only show cards in this group."),
    ] = None,
    user: Annotated[str | None, typer.Option(help="User whose attempts are used.")] = None,
    data_dir: Annotated[Path | None, typer.Option(help="Where attempts are stored.")] = None,
    json_output: Annotated[bool, typer.Option("--json", help="Output as JSON.")] = False,
):
    """List cards with their current difficulty label."""
    from cardwise.application.difficulty import DifficultyClassifier
    from cardwise.infrastructure.factory import get_attempt_repository

    config = _resolve_with_overrides(user_id=user, data_dir=data_dir)
    deck = _load_deck_or_exit(deck_path)

    repo = get_attempt_repository(config)
    history = asyncio.run(repo.load_attempts(deck.set_id, config.user_id))

    classifier = DifficultyClassifier()
    shown = classifier.filter_cards(deck.cards, history, card_filter, deck.starred)

    rows = []
    for card in shown:
        card_score = classifier.score(card, history)
        rows.append(
            {
                "uid": card.uid,
                "term": card.term,
                "definition": card.definition,
                "label": classifier.label_for(card_score).value,
                "difficulty": round(card_score.difficulty, 4),
                "attempts": card_score.total_attempts,
                "starred": card.uid in deck.starred,
            }
        )

    if json_output:
        typer.echo(json.dumps(rows, indent=2))
        return

    if not rows:
        typer.secho("No cards match.", fg="yellow")
        return
    for row in rows:
        star = "*" if row["starred"] else " "
        typer.echo(f"{star} {row['label']:<12} {row['term']} = {row['definition']}")


@app.command()
def presets():
    """Show the scheduler parameters behind each rigor level."""
    from cardwise.application.preferences import preset_for

    for level in RigorLevel:
        preset = preset_for(level)
        typer.echo(
            f"{level.value:<9} mastery_target={preset['mastery_target']} "
            f"difficulty_threshold={preset['difficulty_threshold']} "
            f"difficulty_weight={preset['difficulty_weight']} "
            f"attempt_weight={preset['attempt_weight']}"
        )


@app.command()
def serve(
    port: Annotated[int, typer.Option(help="Port to bind the server to.")] = 8787,
    host: Annotated[str, typer.Option(help="Host to bind the server to.")] = "127.0.0.1",
    reload: Annotated[bool, typer.Option(help="Enable auto-reload.")] = False,
    decks_dir: Annotated[
        Path | None, typer.Option(help="Directory clients may load deck files from.")
    ] = None,
):
    """Run the study HTTP server.

    Clients can only open deck files from --decks-dir (or CARDWISE_DECKS_DIR).
    """
    import uvicorn

    if decks_dir is not None:
        # The app is imported by uvicorn, so settings travel through the environment
        os.environ["CARDWISE_DECKS_DIR"] = str(decks_dir.expanduser().resolve())
    uvicorn.run("cardwise.server:app", host=host, port=port, reload=reload)


# ---------------------------------------------------------------------------
# Deck subgroup
# ---------------------------------------------------------------------------


@deck_app.command("ids")
def deck_ids(
    deck_path: Annotated[Path, typer.Argument(help="Path to a YAML deck file.")],
    dry_run: Annotated[
        bool, typer.Option("--dry-run", help="Report without writing the file.")
    ] = False,
):
    """Assign stable uids to cards that lack one."""
    from cardwise.infrastructure.decks import DeckError, assign_card_uids

    try:
        assigned = assign_card_uids(deck_path, dry_run=dry_run)
    except DeckError as e:
        typer.secho(str(e), fg="red", err=True)
        raise typer.Exit(1) from e

    prefix = "[DRY RUN] Would assign" if dry_run else "Assigned"
    typer.secho(f"{prefix} {assigned} card uids.", fg="green")


# ---------------------------------------------------------------------------
# Config subgroup
# ---------------------------------------------------------------------------


@config_app.command("show")
def config_show():
    """Display final resolved configuration."""
    config = resolve_config()
    d = config.model_dump(mode="json")
    typer.echo(json.dumps(d, indent=2))
