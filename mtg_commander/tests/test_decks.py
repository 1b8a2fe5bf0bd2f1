"""
Test suite for the card database and deck building.

Tests cover:
- Name lookups, exact and case-insensitive
- JSON import and export
- Decklist validation
- Instantiating decklists with unique ids and a flagged commander
"""
import json

import pytest

from ..cards.database import CardDatabase, DeckEntry, Decklist, build_deck
from ..engine.objects import CardDefinition
from ..engine.types import CardType, Color, PlayerId


@pytest.fixture
def database():
    """A database with a land, a creature and a commander."""
    return CardDatabase([
        CardDefinition(name="Forest", card_type=CardType.LAND, subtype="Basic Forest"),
        CardDefinition(name="Llanowar Elves", mana_cost="{G}", cmc=1, power=1, toughness=1,
                       subtype="Elf Druid", text="{T}: Add {G}.", colors=(Color.GREEN,)),
        CardDefinition(name="Omnath, Locus of Mana", mana_cost="{2}{G}", cmc=3, power=1,
                       toughness=1, colors=(Color.GREEN,), is_legendary=True),
    ])


# =============================================================================
# DATABASE TESTS
# =============================================================================

class TestCardDatabase:
    """Tests for CardDatabase."""

    def test_exact_and_case_insensitive_lookup(self, database):
        """Test both spellings find the card."""
        assert database.get("Llanowar Elves").cmc == 1
        assert database.get("  llanowar ELVES ").name == "Llanowar Elves"
        assert database.get("Elvish Mystic") is None

    def test_container_protocol(self, database):
        """Test len, in and iteration."""
        assert len(database) == 3
        assert "forest" in database
        assert {card.name for card in database} == {
            "Forest", "Llanowar Elves", "Omnath, Locus of Mana",
        }

    def test_remove(self, database):
        """Test removing a card by any spelling."""
        assert database.remove("FOREST")
        assert "Forest" not in database
        assert not database.remove("Forest")

    def test_search(self, database):
        """Test search looks at names and text."""
        assert [c.name for c in database.search("add {g}")] == ["Llanowar Elves"]

    def test_json_round_trip(self, database, tmp_path):
        """Test saving and loading keeps every field."""
        path = tmp_path / "cards.json"
        database.save_to_json(path)

        loaded = CardDatabase()
        loaded.load_from_json(path)

        assert loaded.get("Omnath, Locus of Mana") == database.get("Omnath, Locus of Mana")
        assert len(loaded) == 3

    def test_load_list_layout(self, tmp_path):
        """Test a JSON list of card objects is accepted."""
        path = tmp_path / "cards.json"
        path.write_text(json.dumps([
            {"name": "Island", "type": "land", "subtype": "Basic Island"},
            {"name": "Opt", "type": "instant", "mana_cost": "{U}", "colors": ["U"]},
        ]), encoding="utf-8")

        database = CardDatabase()
        database.load_from_json(path)

        assert database.get("Opt").card_type is CardType.INSTANT
        assert database.get("Opt").colors == (Color.BLUE,)

    def test_missing_file(self, tmp_path):
        """Test a missing file raises FileNotFoundError."""
        with pytest.raises(FileNotFoundError):
            CardDatabase().load_from_json(tmp_path / "nope.json")


# =============================================================================
# DECKLIST TESTS
# =============================================================================

class TestDecklist:
    """Tests for DeckEntry and Decklist."""

    def test_entry_validation(self):
        """Test bad quantities and names are rejected."""
        with pytest.raises(ValueError):
            DeckEntry(0, "Forest")
        with pytest.raises(ValueError):
            DeckEntry(1, "   ")
        assert DeckEntry(2, " Forest ").card_name == "Forest"

    def test_card_count(self):
        """Test the count sums quantities."""
        deck = Decklist("Elves")
        deck.add_entry(30, "Forest")
        deck.add_entry(4, "Llanowar Elves")
        assert deck.card_count == 34


# =============================================================================
# BUILD TESTS
# =============================================================================

class TestBuildDeck:
    """Tests for build_deck."""

    def test_unique_ids_and_commander(self, database):
        """Test every copy gets its own id and one copy is the commander."""
        deck = Decklist("Omnath", commander="omnath, locus of mana")
        deck.add_entry(1, "Omnath, Locus of Mana")
        deck.add_entry(3, "Forest")
        deck.add_entry(2, "Llanowar Elves")

        report = build_deck(deck, database)

        assert len(report.cards) == 6
        assert len({c.instance_id for c in report.cards}) == 6
        assert report.commander.name == "Omnath, Locus of Mana"
        assert sum(c.is_commander for c in report.cards) == 1
        assert report.cards[0].instance_id == "self-001-omnath-locus-of-mana"
        assert report.not_found == ()

    def test_unknown_names_are_reported(self, database):
        """Test unknown cards are skipped and listed."""
        deck = Decklist("Typos")
        deck.add_entry(2, "Forrest")
        deck.add_entry(1, "Forest")

        report = build_deck(deck, database)

        assert report.not_found == ("Forrest",)
        assert [c.name for c in report.cards] == ["Forest"]
        assert report.commander is None

    def test_owner_prefix(self, database):
        """Test opponent decks get opponent ids, so two decks never collide."""
        deck = Decklist("Lands")
        deck.add_entry(2, "Forest")

        mine = build_deck(deck, database)
        theirs = build_deck(deck, database, owner=PlayerId.OPPONENT)

        assert not {c.instance_id for c in mine.cards} & {c.instance_id for c in theirs.cards}

    def test_any_lookup_callable(self):
        """Test a plain function can stand in for the database."""
        forest = CardDefinition(name="Forest", card_type=CardType.LAND)
        deck = Decklist("Lands")
        deck.add_entry(1, "Forest")

        report = build_deck(deck, lambda name: forest if name == "Forest" else None)

        assert report.cards[0].definition is forest
