"""
Card set files.

A deck is a YAML document:

    id: spanish-basics        # optional, defaults to the file stem
    title: Spanish Basics
    cards:
      - uid: card_01J...      # assigned by assign_card_uids when missing
        term: perro
        definition: dog
        starred: true         # optional
"""

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import yaml
from ulid import ULID

from cardwise.domain.models import Card

logger = logging.getLogger(__name__)


class DeckError(Exception):
    """Raised when a deck file cannot be used for study."""


@dataclass(frozen=True)
class Deck:
    set_id: str
    title: str
    cards: list[Card]
    starred: frozenset[str] = field(default_factory=frozenset)


def generate_card_uid() -> str:
    """Generate a stable card uid using ULID."""
    return f"card_{ULID()}"


def _read_yaml(path: Path) -> dict[str, Any]:
    try:
        data = yaml.safe_load(path.read_text(encoding="utf-8"))
    except OSError as e:
        raise DeckError(f"Cannot read deck {path}: {e}") from e
    except yaml.YAMLError as e:
        raise DeckError(f"Invalid YAML in {path}: {e}") from e

    if not isinstance(data, dict):
        raise DeckError(f"Deck {path} must be a mapping with a 'cards' list")
    if not isinstance(data.get("cards"), list):
        raise DeckError(f"Deck {path} has no 'cards' list")
    return data


def load_deck(path: Path) -> Deck:
    """
    Parse a deck file into cards.

    Raises:
        DeckError: Unreadable file, missing fields, or missing/duplicate uids.
    """
    path = Path(path)
    data = _read_yaml(path)

    cards: list[Card] = []
    starred: set[str] = set()
    seen: set[str] = set()

    for position, entry in enumerate(data["cards"], start=1):
        if not isinstance(entry, dict):
            raise DeckError(f"Card #{position} in {path.name} is not a mapping")

        uid = entry.get("uid")
        if not uid:
            raise DeckError(
                f"Card #{position} in {path.name} has no uid. "
                f"Run 'cardwise deck ids {path}' to assign them."
            )
        uid = str(uid)
        if uid in seen:
            raise DeckError(f"Duplicate uid {uid} in {path.name}")
        seen.add(uid)

        term = entry.get("term")
        definition = entry.get("definition")
        if term is None or definition is None:
            raise DeckError(f"Card {uid} in {path.name} needs both 'term' and 'definition'")

        cards.append(Card(uid=uid, term=str(term), definition=str(definition)))
        if entry.get("starred"):
            starred.add(uid)

    return Deck(
        set_id=str(data.get("id") or path.stem),
        title=str(data.get("title") or path.stem),
        cards=cards,
        starred=frozenset(starred),
    )


def assign_card_uids(path: Path, dry_run: bool = False) -> int:
    """
    Ensure every card in the deck has a stable uid.
    Returns the number of uids assigned.
    """
    path = Path(path)
    data = _read_yaml(path)

    assigned = 0
    for entry in data["cards"]:
        if isinstance(entry, dict) and not entry.get("uid"):
            entry["uid"] = generate_card_uid()
            assigned += 1

    if assigned:
        if not dry_run:
            path.write_text(
                yaml.safe_dump(data, sort_keys=False, allow_unicode=True), encoding="utf-8"
            )
            logger.info(f"Assigned {assigned} card uids in {path}")
        else:
            logger.info(f"[DRY RUN] Would assign {assigned} card uids in {path}")

    return assigned
