"""Commander Engine - Game Events

Events are the records that trigger scanning works from. Effects and
actions return the events they caused; the trigger processor turns each
event into the triggered abilities waiting for it.

Also defined here:
- PendingSearch: the "library search pending" semi-state handed back to the
  caller when an effect needs a choice
- EffectResult: what applying one effect returns
"""
from dataclasses import dataclass, field
from typing import Optional, Tuple

from .objects import CardInstance
from .player import ManaPool, Player
from .types import CounterKind, PlayerId, SearchMode


# =============================================================================
# Events
# =============================================================================

@dataclass(frozen=True)
class GameEvent:
    """Base class. ``controller`` is the player the event happened to."""
    controller: PlayerId


@dataclass(frozen=True)
class EnteredBattlefield(GameEvent):
    card: CardInstance


@dataclass(frozen=True)
class CounterPlaced(GameEvent):
    """Counters were put on ``card``; ``controller`` is who placed them."""
    card: CardInstance
    kind: CounterKind
    amount: int = 1


@dataclass(frozen=True)
class CombatDamageToPlayer(GameEvent):
    """``source`` (controlled by ``controller``) hit the defending player."""
    source: CardInstance
    amount: int
    poison: bool = False


@dataclass(frozen=True)
class SpellCast(GameEvent):
    card: CardInstance
    mana_spent: ManaPool = field(default_factory=ManaPool)


@dataclass(frozen=True)
class CreatureDied(GameEvent):
    """``card`` is the last battlefield snapshot of the creature."""
    card: CardInstance


@dataclass(frozen=True)
class Attacked(GameEvent):
    card: CardInstance


@dataclass(frozen=True)
class UpkeepBegan(GameEvent):
    pass


# =============================================================================
# Pending Choices
# =============================================================================

@dataclass(frozen=True)
class PendingSearch:
    """
    A library search waiting for the caller to pick cards.

    Attributes:
        player_id: Whose library is searched
        source_name: Card that caused the search (for the log)
        mode: Shape of the search
        candidate_ids: Library cards that satisfy the search
        max_choices: How many may be picked
        put_tapped: Lands put onto the battlefield enter tapped
        to_hand: Single searches that go to hand instead of battlefield
    """
    player_id: PlayerId
    source_name: str
    mode: SearchMode
    candidate_ids: Tuple[str, ...]
    max_choices: int = 1
    put_tapped: bool = False
    to_hand: bool = False


# =============================================================================
# Effect Result
# =============================================================================

@dataclass(frozen=True)
class EffectResult:
    """
    Both players after an effect, returned together.

    Attributes:
        player: Controller of the effect's source
        opponent: The other player
        logs: Log lines produced
        events: Events the effect caused, for further trigger scanning
        pending: A search the caller must resolve, if any
    """
    player: Player
    opponent: Player
    logs: Tuple[str, ...] = ()
    events: Tuple[GameEvent, ...] = ()
    pending: Optional[PendingSearch] = None

    def merged(self, player: Player, opponent: Player, logs=(), events=(),
               pending: Optional[PendingSearch] = None) -> 'EffectResult':
        """Chain another step onto this result."""
        return EffectResult(
            player=player,
            opponent=opponent,
            logs=self.logs + tuple(logs),
            events=self.events + tuple(events),
            pending=pending or self.pending,
        )
