"""Commander Engine - Card Database and Deck Building

This module provides:
- CardDatabase, an in-memory name index of CardDefinitions with JSON
  import/export. Any callable ``name -> Optional[CardDefinition]`` can stand
  in for it when building decks.
- DeckEntry / Decklist, the quantity + name deck shape
- build_deck, which instantiates a decklist into uniquely identified
  CardInstances and reports names the lookup could not find
"""
import json
import re
from dataclasses import dataclass, field
from pathlib import Path
from typing import Callable, Dict, Iterator, List, Optional, Tuple, Union

from ..engine.objects import CardDefinition, CardInstance
from ..engine.types import PlayerId


CardLookup = Callable[[str], Optional[CardDefinition]]


# =============================================================================
# Card Database
# =============================================================================

class CardDatabase:
    """
    Card definitions indexed by name.

    Lookups try the exact name first, then a case-insensitive match.
    Databases are plain instances; create one per card pool.
    """

    def __init__(self, cards: Optional[List[CardDefinition]] = None):
        self.cards: Dict[str, CardDefinition] = {}
        self._name_index: Dict[str, str] = {}  # lowercase -> actual name
        for card in cards or ():
            self.add(card)

    def get(self, name: str) -> Optional[CardDefinition]:
        """
        Get a card definition by name.

        Args:
            name: Card name to look up

        Returns:
            CardDefinition if found, None otherwise
        """
        if name in self.cards:
            return self.cards[name]
        actual_name = self._name_index.get(name.strip().lower())
        if actual_name is not None:
            return self.cards.get(actual_name)
        return None

    def __call__(self, name: str) -> Optional[CardDefinition]:
        return self.get(name)

    def add(self, card: CardDefinition):
        self.cards[card.name] = card
        self._name_index[card.name.lower()] = card.name

    def remove(self, name: str) -> bool:
        """
        Remove a card from the database.

        Returns:
            True if removed, False if not found
        """
        card = self.get(name)
        if card is None:
            return False
        del self.cards[card.name]
        self._name_index.pop(card.name.lower(), None)
        return True

    def load_from_json(self, path: Union[str, Path]):
        """
        Load cards from a JSON file.

        Accepts either a list of card objects or an object keyed by card
        name.

        Raises:
            FileNotFoundError: If the file does not exist
        """
        path_obj = Path(path)
        if not path_obj.exists():
            raise FileNotFoundError(f"JSON file not found: {path}")

        with open(path_obj, 'r', encoding='utf-8') as f:
            data = json.load(f)

        if isinstance(data, list):
            for card_dict in data:
                self.add(CardDefinition.from_dict(card_dict))
        elif isinstance(data, dict):
            for name, card_dict in data.items():
                if "name" not in card_dict:
                    card_dict["name"] = name
                self.add(CardDefinition.from_dict(card_dict))
        else:
            raise ValueError(f"Unsupported card file layout in {path}")

    def save_to_json(self, path: Union[str, Path], indent: int = 2):
        data = {name: card.to_dict() for name, card in self.cards.items()}
        with open(path, 'w', encoding='utf-8') as f:
            json.dump(data, f, indent=indent, ensure_ascii=False)

    def search(self, query: str) -> List[CardDefinition]:
        """Cards whose name or text contains ``query`` (case-insensitive)."""
        query_lower = query.lower()
        return [card for card in self.cards.values()
                if query_lower in card.name.lower() or query_lower in card.text.lower()]

    def __len__(self) -> int:
        return len(self.cards)

    def __contains__(self, name: str) -> bool:
        return self.get(name) is not None

    def __iter__(self) -> Iterator[CardDefinition]:
        return iter(self.cards.values())


# =============================================================================
# Decklists
# =============================================================================

@dataclass
class DeckEntry:
    """
    A card name and how many copies of it.

    Attributes:
        quantity: Number of copies, at least 1
        card_name: The name of the card
    """
    quantity: int
    card_name: str

    def __post_init__(self):
        """Validate entry data."""
        if self.quantity < 1:
            raise ValueError(f"Card quantity must be at least 1, got {self.quantity}")
        if not self.card_name or not self.card_name.strip():
            raise ValueError("Card name cannot be empty")
        self.card_name = self.card_name.strip()

    def __repr__(self) -> str:
        return f"DeckEntry({self.quantity}x {self.card_name})"


@dataclass
class Decklist:
    """
    A deck to instantiate.

    Attributes:
        name: Deck name
        entries: Card entries, the commander's included
        commander: Name of the designated commander, if any
    """
    name: str
    entries: List[DeckEntry] = field(default_factory=list)
    commander: Optional[str] = None

    @property
    def card_count(self) -> int:
        return sum(e.quantity for e in self.entries)

    def add_entry(self, quantity: int, card_name: str):
        self.entries.append(DeckEntry(quantity, card_name))

    def __repr__(self) -> str:
        commander = f", commander={self.commander}" if self.commander else ""
        return f"Decklist({self.name}: {self.card_count} cards{commander})"


@dataclass(frozen=True)
class DeckBuildReport:
    """
    Result of build_deck.

    Attributes:
        cards: Instantiated cards, in decklist order
        not_found: Names the lookup did not know, in decklist order
    """
    cards: Tuple[CardInstance, ...]
    not_found: Tuple[str, ...] = ()

    @property
    def commander(self) -> Optional[CardInstance]:
        return next((c for c in self.cards if c.is_commander), None)


def _slug(name: str) -> str:
    return re.sub(r'[^a-z0-9]+', '-', name.lower()).strip('-')


def build_deck(decklist: Decklist, lookup: CardLookup,
               owner: PlayerId = PlayerId.SELF) -> DeckBuildReport:
    """
    Instantiate a decklist.

    Every copy gets its own instance id. If the decklist names a commander,
    the first copy of the matching entry is flagged as commander. Names the
    lookup cannot resolve are collected rather than raised.

    Args:
        decklist: Deck to build
        lookup: Card data source, e.g. a CardDatabase
        owner: Player the ids are prefixed with

    Returns:
        DeckBuildReport with the cards and the missing names
    """
    cards: List[CardInstance] = []
    not_found: List[str] = []
    commander_name = (decklist.commander or "").strip().lower()
    commander_marked = False
    serial = 0

    for entry in decklist.entries:
        definition = lookup(entry.card_name)
        if definition is None:
            not_found.append(entry.card_name)
            continue
        for _ in range(entry.quantity):
            serial += 1
            is_commander = (not commander_marked and bool(commander_name)
                            and entry.card_name.lower() == commander_name)
            commander_marked = commander_marked or is_commander
            cards.append(CardInstance(
                instance_id=f"{owner.value}-{serial:03d}-{_slug(definition.name)}",
                definition=definition,
                is_commander=is_commander,
            ))

    return DeckBuildReport(cards=tuple(cards), not_found=tuple(not_found))
