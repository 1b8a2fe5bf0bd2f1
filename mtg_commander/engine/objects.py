"""Commander Engine - Card Objects

This module implements the two card layers the engine works with:
- CardDefinition: the immutable printed template (name, cost, type, text)
- CardInstance: one physical copy in a game, with its own id, tapped
  state, counters and until-end-of-turn modifiers

Both are frozen dataclasses. Every change produces a new value through
``dataclasses.replace`` so snapshots held by callers never move under them.
"""
from dataclasses import dataclass, field, replace
from typing import Any, Dict, Optional, Tuple

from .types import CardType, Color, CounterKind


# =============================================================================
# Card Definition
# =============================================================================

@dataclass(frozen=True)
class CardDefinition:
    """
    Printed characteristics of a card.

    Attributes:
        name: Card name, used for lookups and named-card hooks
        mana_cost: Cost string such as "{2}{G}{G}" (empty for lands)
        cmc: Converted mana cost
        card_type: The card's single type
        subtype: Subtype line, e.g. "Goblin Warrior" or "Forest"
        text: Oracle text
        power: Base power for creatures
        toughness: Base toughness for creatures
        colors: Colors of the card
        is_legendary: Legendary supertype
    """
    name: str
    mana_cost: str = ""
    cmc: int = 0
    card_type: CardType = CardType.CREATURE
    subtype: Optional[str] = None
    text: str = ""
    power: Optional[int] = None
    toughness: Optional[int] = None
    colors: Tuple[Color, ...] = ()
    is_legendary: bool = False

    @property
    def is_creature(self) -> bool:
        return self.card_type is CardType.CREATURE

    @property
    def is_land(self) -> bool:
        return self.card_type is CardType.LAND

    @property
    def is_permanent(self) -> bool:
        return self.card_type.is_permanent

    @property
    def is_instant_or_sorcery(self) -> bool:
        return self.card_type in (CardType.INSTANT, CardType.SORCERY)

    def has_subtype(self, word: str) -> bool:
        """Case-insensitive subtype test ("Goblin" matches "Goblin Warrior")."""
        if not self.subtype:
            return False
        wanted = word.lower().rstrip("s")
        return any(part.lower() == wanted or part.lower() == word.lower()
                   for part in self.subtype.replace("-", " ").split())

    def to_dict(self) -> Dict[str, Any]:
        """Serialize to a JSON-friendly dict."""
        return {
            "name": self.name,
            "mana_cost": self.mana_cost,
            "cmc": self.cmc,
            "type": self.card_type.value,
            "subtype": self.subtype,
            "text": self.text,
            "power": self.power,
            "toughness": self.toughness,
            "colors": [c.value for c in self.colors],
            "is_legendary": self.is_legendary,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'CardDefinition':
        """Build a definition from a dict as produced by to_dict()."""
        colors = tuple(
            c for c in (Color.from_symbol(sym) for sym in data.get("colors", []))
            if c is not None
        )
        return cls(
            name=data["name"],
            mana_cost=data.get("mana_cost", ""),
            cmc=int(data.get("cmc", 0)),
            card_type=CardType(data.get("type", "creature")),
            subtype=data.get("subtype"),
            text=data.get("text", ""),
            power=data.get("power"),
            toughness=data.get("toughness"),
            colors=colors,
            is_legendary=bool(data.get("is_legendary", False)),
        )


# =============================================================================
# Card Instance
# =============================================================================

@dataclass(frozen=True)
class CardInstance:
    """
    A single copy of a card inside a game.

    The instance id is stable for the lifetime of the copy and differs
    from every other copy, including other copies of the same definition.

    Attributes:
        instance_id: Unique id within the game
        definition: The printed card
        tapped: Tapped flag (only meaningful on the battlefield)
        positive_counters: Number of +1/+1 counters
        negative_counters: Number of -1/-1 counters
        is_commander: This copy is its owner's commander
        is_token: Tokens cease to exist when they leave the battlefield
        temp_power: Until-end-of-turn power modifier
        temp_toughness: Until-end-of-turn toughness modifier
        regeneration_shield: The next destruction this turn is replaced
    """
    instance_id: str
    definition: CardDefinition
    tapped: bool = False
    positive_counters: int = 0
    negative_counters: int = 0
    is_commander: bool = False
    is_token: bool = False
    temp_power: int = 0
    temp_toughness: int = 0
    regeneration_shield: bool = False

    def __post_init__(self):
        """Counters are never negative."""
        if self.positive_counters < 0 or self.negative_counters < 0:
            raise ValueError(
                f"Counters cannot be negative on {self.instance_id}: "
                f"+{self.positive_counters} / -{self.negative_counters}"
            )

    # -------------------------------------------------------------------------
    # Shortcuts to the definition
    # -------------------------------------------------------------------------

    @property
    def name(self) -> str:
        return self.definition.name

    @property
    def text(self) -> str:
        return self.definition.text

    @property
    def card_type(self) -> CardType:
        return self.definition.card_type

    @property
    def is_creature(self) -> bool:
        return self.definition.is_creature

    @property
    def is_land(self) -> bool:
        return self.definition.is_land

    # -------------------------------------------------------------------------
    # Derived stats
    # -------------------------------------------------------------------------

    @property
    def effective_power(self) -> int:
        """Base power plus counters and temporary modifiers, floored at 0."""
        base = self.definition.power or 0
        return max(0, base + self.positive_counters - self.negative_counters
                   + self.temp_power)

    @property
    def effective_toughness(self) -> int:
        """Base toughness plus counters and temporary modifiers, floored at 0."""
        base = self.definition.toughness or 0
        return max(0, base + self.positive_counters - self.negative_counters
                   + self.temp_toughness)

    @property
    def has_temporary_modifiers(self) -> bool:
        return bool(self.temp_power or self.temp_toughness or self.regeneration_shield)

    # -------------------------------------------------------------------------
    # Transformations
    # -------------------------------------------------------------------------

    def with_tapped(self, tapped: bool) -> 'CardInstance':
        return replace(self, tapped=tapped)

    def with_counters(self, kind: CounterKind, amount: int = 1) -> 'CardInstance':
        """Return a copy with ``amount`` more counters of ``kind``."""
        if amount < 0:
            raise ValueError(f"Cannot add a negative number of counters: {amount}")
        if kind is CounterKind.PLUS_ONE:
            return replace(self, positive_counters=self.positive_counters + amount)
        return replace(self, negative_counters=self.negative_counters + amount)

    def pumped(self, power: int, toughness: int) -> 'CardInstance':
        """Apply an until-end-of-turn power/toughness change."""
        return replace(self, temp_power=self.temp_power + power,
                       temp_toughness=self.temp_toughness + toughness)

    def cleared_temporary(self) -> 'CardInstance':
        """Drop until-end-of-turn modifiers and regeneration shields."""
        if not self.has_temporary_modifiers:
            return self
        return replace(self, temp_power=0, temp_toughness=0,
                       regeneration_shield=False)

    def reset_for_command_zone(self) -> 'CardInstance':
        """State a commander keeps when it returns to the command zone."""
        return replace(self, tapped=False, negative_counters=0, temp_power=0,
                       temp_toughness=0, regeneration_shield=False)

    def __repr__(self) -> str:
        tags = []
        if self.tapped:
            tags.append("T")
        if self.positive_counters:
            tags.append(f"+{self.positive_counters}")
        if self.negative_counters:
            tags.append(f"-{self.negative_counters}")
        suffix = f" [{' '.join(tags)}]" if tags else ""
        return f"CardInstance({self.instance_id}: {self.name}{suffix})"
