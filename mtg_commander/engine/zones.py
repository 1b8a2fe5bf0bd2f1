"""Commander Engine - Zone and Permanent Management

This module owns every movement of cards between a player's zones and the
per-permanent state changes (tap, counters, temporary modifiers).

Zone transitions are always remove-then-insert, so a card instance is in
exactly one zone of exactly one player. Tokens that leave the battlefield
cease to exist instead of arriving anywhere. Commanders that would go to the
graveyard return to the command zone with their tapped state and -1/-1
counters reset.
"""
import random
import uuid
from dataclasses import replace
from typing import Callable, Iterable, List, Optional, Sequence, Tuple

from .effects import TokenSpec
from .errors import CardNotFoundError, IllegalStateError
from .objects import CardInstance
from .player import EMPTY_POOL, Player, Zones
from .types import CounterKind, PlayerId, Zone


# =============================================================================
# Lookup
# =============================================================================

def find_card(player: Player, card_id: str,
              zones: Optional[Iterable[Zone]] = None) -> Optional[Tuple[Zone, CardInstance]]:
    """Locate a card among the player's zones.

    Args:
        player: Owner to search
        card_id: Instance id
        zones: Restrict the search to these zones (all zones by default)

    Returns:
        (zone, card) or None
    """
    for zone in (zones or Zone):
        for card in player.zones.get(zone):
            if card.instance_id == card_id:
                return zone, card
    return None


def all_instances(players: Iterable[Player]) -> List[Tuple[PlayerId, Zone, CardInstance]]:
    """Every card instance of every player with its location."""
    return [(p.player_id, zone, card) for p in players for zone, card in p.zones.iter_cards()]


def get_card(player: Player, card_id: str, zone: Zone) -> CardInstance:
    """Return the card with ``card_id`` in ``zone``.

    Raises:
        CardNotFoundError: If the card is not in that zone.
    """
    for card in player.zones.get(zone):
        if card.instance_id == card_id:
            return card
    raise CardNotFoundError(card_id, zone, player.player_id)


# =============================================================================
# Movement
# =============================================================================

def remove_card(player: Player, card_id: str, zone: Zone) -> Tuple[Player, CardInstance]:
    """Take a card out of a zone, returning the updated player and the card."""
    cards = player.zones.get(zone)
    for index, card in enumerate(cards):
        if card.instance_id == card_id:
            remaining = cards[:index] + cards[index + 1:]
            return player.with_zone(zone, remaining), card
    raise CardNotFoundError(card_id, zone, player.player_id)


def add_card(player: Player, card: CardInstance, zone: Zone, top: bool = False) -> Player:
    """Insert a card that is currently in no zone.

    Raises:
        IllegalStateError: If the id is already present in one of the
            player's zones.
    """
    if find_card(player, card.instance_id) is not None:
        raise IllegalStateError(f"{card.instance_id} is already in a zone")
    cards = player.zones.get(zone)
    cards = (card,) + cards if top else cards + (card,)
    return player.with_zone(zone, cards)


def move_card(player: Player, card_id: str, from_zone: Zone, to_zone: Zone,
              top: bool = False) -> Player:
    """Move a card between two of the same player's zones.

    A token leaving the battlefield ceases to exist.
    """
    player, card = remove_card(player, card_id, from_zone)
    if card.is_token and from_zone is Zone.BATTLEFIELD and to_zone is not Zone.BATTLEFIELD:
        return player
    if to_zone is Zone.BATTLEFIELD:
        card = replace(card, tapped=False)
    return add_card(player, card, to_zone, top=top)


def put_onto_battlefield(player: Player, card: CardInstance, tapped: bool = False) -> Player:
    """Put a card that is in no zone onto the battlefield."""
    return add_card(player, replace(card, tapped=tapped), Zone.BATTLEFIELD)


# =============================================================================
# Library
# =============================================================================

def draw_card(player: Player) -> Tuple[Player, Optional[CardInstance]]:
    """Move the top card of the library to the hand.

    Drawing from an empty library does nothing and returns None.
    """
    if not player.library:
        return player, None
    drawn, rest = player.library[0], player.library[1:]
    zones = replace(player.zones, library=rest, hand=player.hand + (drawn,))
    return player.with_zones(zones), drawn


def draw_cards(player: Player, count: int) -> Tuple[Player, List[CardInstance]]:
    drawn: List[CardInstance] = []
    for _ in range(count):
        player, card = draw_card(player)
        if card is None:
            break
        drawn.append(card)
    return player, drawn


def shuffle_library(player: Player, rng: Optional[random.Random] = None) -> Player:
    cards = list(player.library)
    (rng or random).shuffle(cards)
    return player.with_zone(Zone.LIBRARY, cards)


def search_library(player: Player, predicate: Callable[[CardInstance], bool]) -> List[CardInstance]:
    """Library cards matching ``predicate``, in library order."""
    return [c for c in player.library if predicate(c)]


# =============================================================================
# Permanents
# =============================================================================

def update_permanent(player: Player, card_id: str,
                     change: Callable[[CardInstance], CardInstance]) -> Player:
    """Apply ``change`` to one permanent.

    Raises:
        CardNotFoundError: If the permanent is not on the battlefield.
    """
    battlefield = list(player.battlefield)
    for index, card in enumerate(battlefield):
        if card.instance_id == card_id:
            battlefield[index] = change(card)
            return player.with_zone(Zone.BATTLEFIELD, battlefield)
    raise CardNotFoundError(card_id, Zone.BATTLEFIELD, player.player_id)


def tap_permanent(player: Player, card_id: str) -> Player:
    return update_permanent(player, card_id, lambda c: c.with_tapped(True))


def untap_permanent(player: Player, card_id: str) -> Player:
    return update_permanent(player, card_id, lambda c: c.with_tapped(False))


def add_counters(player: Player, card_id: str, kind: CounterKind, amount: int = 1) -> Player:
    return update_permanent(player, card_id, lambda c: c.with_counters(kind, amount))


def create_tokens(player: Player, token: TokenSpec, count: int = 1,
                  tapped: bool = False) -> Tuple[Player, List[CardInstance]]:
    """Create ``count`` tokens on the player's battlefield."""
    definition = token.to_definition()
    created = []
    for _ in range(max(0, count)):
        card = CardInstance(
            instance_id=f"{player.player_id.value}-token-{uuid.uuid4().hex[:8]}",
            definition=definition,
            tapped=tapped,
            is_token=True,
        )
        player = add_card(player, card, Zone.BATTLEFIELD)
        created.append(card)
    return player, created


def _leave_battlefield(player: Player, card: CardInstance) -> Player:
    """Put a card that was just removed from the battlefield where it belongs."""
    if card.is_token:
        return player
    if card.is_commander:
        return add_card(player, card.reset_for_command_zone(), Zone.COMMAND)
    return add_card(player, card, Zone.GRAVEYARD)


def destroy_permanent(player: Player, card_id: str,
                      allow_regeneration: bool = True) -> Tuple[Player, Optional[CardInstance]]:
    """Destroy a permanent.

    A regeneration shield is consumed instead: the permanent stays and
    becomes tapped. Otherwise a commander goes to the command zone, a token
    ceases to exist and any other card goes to the graveyard.

    Returns:
        (player, card that left the battlefield) or (player, None) if it
        regenerated.
    """
    card = get_card(player, card_id, Zone.BATTLEFIELD)
    if allow_regeneration and card.regeneration_shield:
        player = update_permanent(
            player, card_id,
            lambda c: replace(c, tapped=True, regeneration_shield=False),
        )
        return player, None
    player, card = remove_card(player, card_id, Zone.BATTLEFIELD)
    return _leave_battlefield(player, card), card


def sacrifice_permanent(player: Player, card_id: str) -> Tuple[Player, CardInstance]:
    """Sacrifice ignores regeneration."""
    player, card = destroy_permanent(player, card_id, allow_regeneration=False)
    return player, card


def return_to_hand(player: Player, card_id: str) -> Player:
    """Bounce a permanent to its owner's hand (tokens cease to exist)."""
    player, card = remove_card(player, card_id, Zone.BATTLEFIELD)
    if card.is_token:
        return player
    clean = replace(card, tapped=False, positive_counters=0, negative_counters=0,
                    temp_power=0, temp_toughness=0, regeneration_shield=False)
    return add_card(player, clean, Zone.HAND)


def check_creature_deaths(player: Player) -> Tuple[Player, List[CardInstance]]:
    """Remove creatures whose effective toughness is 0.

    Regeneration does not save a creature from zero toughness.
    """
    dead = [c for c in player.creatures() if c.effective_toughness <= 0]
    for card in dead:
        player, _ = destroy_permanent(player, card.instance_id, allow_regeneration=False)
    return player, dead


def untap_all(player: Player) -> Player:
    """The untap step for one player.

    Untaps every permanent, clears until-end-of-turn modifiers, empties the
    mana pool and resets the per-turn flags.
    """
    battlefield = tuple(
        replace(c.cleared_temporary(), tapped=False) for c in player.battlefield
    )
    return replace(
        player,
        zones=replace(player.zones, battlefield=battlefield),
        mana=EMPTY_POOL,
        has_drawn=False,
        has_played_land=False,
    )


# =============================================================================
# Setup
# =============================================================================

def initialize_player(player_id: PlayerId, name: str, deck: Sequence[CardInstance],
                      starting_life: int = 40, rng: Optional[random.Random] = None,
                      shuffle: bool = True) -> Player:
    """Create a player from an instantiated deck.

    Cards flagged as commander start in the command zone; the rest form the
    library, shuffled unless ``shuffle`` is False.

    Raises:
        IllegalStateError: If two cards in the deck share an instance id.
    """
    seen = set()
    for card in deck:
        if card.instance_id in seen:
            raise IllegalStateError(f"duplicate instance id {card.instance_id!r} in deck")
        seen.add(card.instance_id)

    command = tuple(c for c in deck if c.is_commander)
    library = [c for c in deck if not c.is_commander]
    if shuffle:
        (rng or random).shuffle(library)
    return Player(
        player_id=player_id,
        name=name,
        life=starting_life,
        zones=Zones(library=tuple(library), command=command),
    )


def mulligan(player: Player, mulligan_count: int, hand_size: int = 7,
             rng: Optional[random.Random] = None) -> Player:
    """Shuffle the hand back and draw a smaller one (never fewer than 1)."""
    library = list(player.library) + list(player.hand)
    (rng or random).shuffle(library)
    player = replace(player, zones=replace(player.zones, library=tuple(library), hand=()))
    player, _ = draw_cards(player, max(1, hand_size - mulligan_count))
    return player
