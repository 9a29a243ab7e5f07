import pytest
import yaml

from cardwise.infrastructure.decks import DeckError, assign_card_uids, load_deck


def test_missing_uids_are_reported(deck_file):
    with pytest.raises(DeckError, match="cardwise deck ids"):
        load_deck(deck_file)


def test_assign_then_load(deck_file):
    assert assign_card_uids(deck_file) == 2

    deck = load_deck(deck_file)

    assert deck.set_id == "spanish"
    assert deck.title == "Spanish Basics"
    assert [c.term for c in deck.cards] == ["perro", "gato"]
    assert all(c.uid.startswith("card_") for c in deck.cards)
    assert deck.starred == frozenset({deck.cards[1].uid})


def test_assign_is_idempotent(deck_file):
    assign_card_uids(deck_file)
    uids = [c.uid for c in load_deck(deck_file).cards]

    assert assign_card_uids(deck_file) == 0
    assert [c.uid for c in load_deck(deck_file).cards] == uids


def test_assign_preserves_key_order(deck_file):
    assign_card_uids(deck_file)
    data = yaml.safe_load(deck_file.read_text(encoding="utf-8"))
    assert list(data) == ["title", "cards"]
    assert list(data["cards"][0]) == ["term", "definition", "uid"]


def test_dry_run_does_not_write(deck_file):
    before = deck_file.read_text(encoding="utf-8")
    assert assign_card_uids(deck_file, dry_run=True) == 2
    assert deck_file.read_text(encoding="utf-8") == before


def test_explicit_set_id(tmp_path):
    path = tmp_path / "deck.yaml"
    path.write_text(
        "id: biology-101\ncards:\n  - uid: x1\n    term: cell\n    definition: unit of life\n"
    )
    deck = load_deck(path)
    assert deck.set_id == "biology-101"
    assert deck.title == "deck"


def test_duplicate_uid(tmp_path):
    path = tmp_path / "dupes.yaml"
    path.write_text(
        "cards:\n"
        "  - {uid: x1, term: a, definition: b}\n"
        "  - {uid: x1, term: c, definition: d}\n"
    )
    with pytest.raises(DeckError, match="Duplicate uid x1"):
        load_deck(path)


def test_missing_definition(tmp_path):
    path = tmp_path / "partial.yaml"
    path.write_text("cards:\n  - {uid: x1, term: a}\n")
    with pytest.raises(DeckError, match="definition"):
        load_deck(path)


@pytest.mark.parametrize(
    "content",
    ["cards: [unclosed\n", "- just\n- a list\n", "title: no cards\n"],
)
def test_unusable_files(tmp_path, content):
    path = tmp_path / "bad.yaml"
    path.write_text(content)
    with pytest.raises(DeckError):
        load_deck(path)


def test_missing_file(tmp_path):
    with pytest.raises(DeckError, match="Cannot read deck"):
        load_deck(tmp_path / "nope.yaml")
