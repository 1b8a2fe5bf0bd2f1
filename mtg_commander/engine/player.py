"""Commander Engine - Player Aggregate

This module implements the per-player state: the mana pool, the six zones,
life, poison and commander damage, the per-turn flags and the combat
records. All classes are frozen; helpers return updated copies.
"""
from dataclasses import dataclass, field, replace
from typing import Dict, Iterator, List, Optional, Tuple

from .objects import CardInstance
from .types import COLOR_ORDER, Color, PlayerId, Zone


# =============================================================================
# MANA POOL
# =============================================================================

@dataclass(frozen=True)
class ManaPool:
    """Six independent mana counters, one per color plus colorless.

    The pool never holds a negative amount: ``spend`` refuses to go below
    zero instead of clamping, since callers validate payment first.
    """

    white: int = 0
    blue: int = 0
    black: int = 0
    red: int = 0
    green: int = 0
    colorless: int = 0

    _FIELDS = {
        Color.WHITE: "white",
        Color.BLUE: "blue",
        Color.BLACK: "black",
        Color.RED: "red",
        Color.GREEN: "green",
        Color.COLORLESS: "colorless",
    }

    def __post_init__(self):
        for color, name in self._FIELDS.items():
            if getattr(self, name) < 0:
                raise ValueError(f"Mana pool cannot hold negative {color.name} mana")

    def get(self, color: Color) -> int:
        """Amount of ``color`` mana in the pool."""
        return getattr(self, self._FIELDS[color])

    def add(self, color: Color, amount: int = 1) -> 'ManaPool':
        """Return a pool with ``amount`` more ``color`` mana."""
        if amount < 0:
            raise ValueError(f"Cannot add negative mana: {amount}")
        return replace(self, **{self._FIELDS[color]: self.get(color) + amount})

    def spend(self, color: Color, amount: int = 1) -> 'ManaPool':
        """Return a pool with ``amount`` ``color`` mana removed.

        Raises:
            ValueError: If the pool does not hold that much.
        """
        have = self.get(color)
        if amount > have:
            raise ValueError(f"Cannot spend {amount} {color.name} mana, pool has {have}")
        return replace(self, **{self._FIELDS[color]: have - amount})

    @property
    def total(self) -> int:
        return sum(self.get(c) for c in COLOR_ORDER)

    def largest(self) -> Optional[Color]:
        """Color holding the most mana (WUBRGC order breaks ties), None if empty."""
        best = None
        for color in COLOR_ORDER:
            if self.get(color) > 0 and (best is None or self.get(color) > self.get(best)):
                best = color
        return best

    def colors_present(self) -> Tuple[Color, ...]:
        return tuple(c for c in COLOR_ORDER if self.get(c) > 0)

    def as_dict(self) -> Dict[str, int]:
        return {c.value: self.get(c) for c in COLOR_ORDER}

    def __str__(self) -> str:
        parts = [f"{c.value}={self.get(c)}" for c in COLOR_ORDER if self.get(c)]
        return "{" + ", ".join(parts) + "}" if parts else "{}"


EMPTY_POOL = ManaPool()


# =============================================================================
# ZONES
# =============================================================================

@dataclass(frozen=True)
class Zones:
    """The six zones of one player.

    Every zone is an ordered tuple. The library is drawn from the front;
    the graveyard is appended to, so its last card is the visible one.
    """

    library: Tuple[CardInstance, ...] = ()
    hand: Tuple[CardInstance, ...] = ()
    battlefield: Tuple[CardInstance, ...] = ()
    graveyard: Tuple[CardInstance, ...] = ()
    exile: Tuple[CardInstance, ...] = ()
    command: Tuple[CardInstance, ...] = ()

    def get(self, zone: Zone) -> Tuple[CardInstance, ...]:
        return getattr(self, zone.value)

    def with_zone(self, zone: Zone, cards) -> 'Zones':
        return replace(self, **{zone.value: tuple(cards)})

    def iter_cards(self) -> Iterator[Tuple[Zone, CardInstance]]:
        """Yield (zone, card) for every card in every zone."""
        for zone in Zone:
            for card in self.get(zone):
                yield zone, card


# =============================================================================
# COMBAT RECORDS
# =============================================================================

@dataclass(frozen=True, slots=True)
class AttackingCreature:
    """An attacker and the player it attacks."""
    card_id: str
    target: PlayerId


@dataclass(frozen=True, slots=True)
class BlockingCreature:
    """A blocker and the attacker it blocks."""
    blocker_id: str
    attacker_id: str


# =============================================================================
# PLAYER
# =============================================================================

@dataclass(frozen=True)
class Player:
    """
    One participant of the game.

    Attributes:
        player_id: SELF or OPPONENT
        name: Display name
        life: Life total, may drop to zero or below
        mana: Current mana pool
        zones: The player's six zones
        poison: Poison counters
        commander_damage_received: Combat damage taken from commanders
        commander_damage_dealt: Combat damage dealt by this player's commander
        commander_casts: Times the commander has been cast (for the tax)
        has_drawn: Drew for the turn
        has_played_land: Played a land this turn
        attacking: Attack declarations of this player
        blocking: Block declarations of this player
    """
    player_id: PlayerId
    name: str
    life: int = 40
    mana: ManaPool = field(default_factory=ManaPool)
    zones: Zones = field(default_factory=Zones)
    poison: int = 0
    commander_damage_received: int = 0
    commander_damage_dealt: int = 0
    commander_casts: int = 0
    has_drawn: bool = False
    has_played_land: bool = False
    attacking: Tuple[AttackingCreature, ...] = ()
    blocking: Tuple[BlockingCreature, ...] = ()

    # -------------------------------------------------------------------------
    # Zone views
    # -------------------------------------------------------------------------

    @property
    def library(self) -> Tuple[CardInstance, ...]:
        return self.zones.library

    @property
    def hand(self) -> Tuple[CardInstance, ...]:
        return self.zones.hand

    @property
    def battlefield(self) -> Tuple[CardInstance, ...]:
        return self.zones.battlefield

    @property
    def graveyard(self) -> Tuple[CardInstance, ...]:
        return self.zones.graveyard

    @property
    def command_zone(self) -> Tuple[CardInstance, ...]:
        return self.zones.command

    def creatures(self) -> List[CardInstance]:
        return [c for c in self.battlefield if c.is_creature]

    def lands(self) -> List[CardInstance]:
        return [c for c in self.battlefield if c.is_land]

    def untapped_lands(self) -> List[CardInstance]:
        return [c for c in self.battlefield if c.is_land and not c.tapped]

    def count_subtype(self, word: str) -> int:
        """Permanents on the battlefield with the given subtype."""
        return sum(1 for c in self.battlefield if c.definition.has_subtype(word))

    def permanent(self, card_id: str) -> Optional[CardInstance]:
        for card in self.battlefield:
            if card.instance_id == card_id:
                return card
        return None

    @property
    def attacking_ids(self) -> List[str]:
        return [a.card_id for a in self.attacking]

    # -------------------------------------------------------------------------
    # Updates
    # -------------------------------------------------------------------------

    def with_zones(self, zones: Zones) -> 'Player':
        return replace(self, zones=zones)

    def with_zone(self, zone: Zone, cards) -> 'Player':
        return replace(self, zones=self.zones.with_zone(zone, cards))

    def with_mana(self, mana: ManaPool) -> 'Player':
        return replace(self, mana=mana)

    def lose_life(self, amount: int) -> 'Player':
        return replace(self, life=self.life - amount)

    def gain_life(self, amount: int) -> 'Player':
        return replace(self, life=self.life + amount)

    def add_poison(self, amount: int) -> 'Player':
        return replace(self, poison=self.poison + amount)

    def clear_combat(self) -> 'Player':
        if not self.attacking and not self.blocking:
            return self
        return replace(self, attacking=(), blocking=())

    def __repr__(self) -> str:
        return (f"Player({self.player_id.value}: {self.name}, life={self.life}, "
                f"poison={self.poison}, hand={len(self.hand)}, "
                f"battlefield={len(self.battlefield)})")
