"""
Shared pytest fixtures for Commander Engine tests.

This module provides reusable fixtures for common test scenarios including:
- Card factories (creatures, lands, spells) with unique instance ids
- Player and GameState builders
- Small reference decks

Everything the engine works with is a frozen value, so fixtures build
states directly instead of driving a game to them.
"""

import itertools
import random

import pytest

from ..engine.objects import CardDefinition, CardInstance
from ..engine.player import ManaPool, Player, Zones
from ..engine.state import GameState
from ..engine.types import CardType, Phase, PlayerId


# =============================================================================
# Card Fixtures
# =============================================================================

@pytest.fixture
def make_card():
    """
    Factory for card instances with unique ids.

    Returns:
        Callable: make_card(name, card_type=CardType.CREATURE, **definition_fields)

    Usage:
        def test_something(make_card):
            bear = make_card("Grizzly Bears", mana_cost="{1}{G}", power=2, toughness=2)
    """
    serial = itertools.count(1)

    def _make(name, card_type=CardType.CREATURE, instance_id=None, is_commander=False,
              tapped=False, **fields):
        definition = CardDefinition(name=name, card_type=card_type, **fields)
        return CardInstance(
            instance_id=instance_id or f"c{next(serial)}",
            definition=definition,
            is_commander=is_commander,
            tapped=tapped,
        )

    return _make


@pytest.fixture
def make_land(make_card):
    """
    Factory for lands. Basic land names get the matching subtype.

    Usage:
        forest = make_land("Forest")
    """
    basics = {"Plains", "Island", "Swamp", "Mountain", "Forest"}

    def _make(name="Forest", text="", **kwargs):
        subtype = f"Basic {name}" if name in basics else kwargs.pop("subtype", None)
        return make_card(name, card_type=CardType.LAND, subtype=subtype, text=text, **kwargs)

    return _make


@pytest.fixture
def make_creature(make_card):
    """
    Factory for vanilla or keyworded creatures.

    Usage:
        wolf = make_creature("Wolf", 3, 3)
        bat = make_creature("Bat", 1, 1, text="Flying")
    """
    def _make(name, power, toughness, text="", mana_cost="", **kwargs):
        return make_card(name, power=power, toughness=toughness, text=text,
                         mana_cost=mana_cost, **kwargs)

    return _make


# =============================================================================
# Player and State Fixtures
# =============================================================================

@pytest.fixture
def make_player():
    """
    Factory for players with chosen zone contents.

    Usage:
        player = make_player(battlefield=[forest], hand=[bear])
    """
    def _make(player_id=PlayerId.SELF, name=None, life=40, library=(), hand=(),
              battlefield=(), graveyard=(), command=(), mana=None, **fields):
        zones = Zones(
            library=tuple(library),
            hand=tuple(hand),
            battlefield=tuple(battlefield),
            graveyard=tuple(graveyard),
            command=tuple(command),
        )
        return Player(
            player_id=player_id,
            name=name or ("You" if player_id is PlayerId.SELF else "Opponent"),
            life=life,
            mana=mana or ManaPool(),
            zones=zones,
            **fields,
        )

    return _make


@pytest.fixture
def make_state(make_player):
    """
    Factory for game states. Missing players are created empty.

    Usage:
        state = make_state(player, opponent, phase=Phase.COMBAT_ATTACKERS)
    """
    def _make(player=None, opponent=None, phase=Phase.MAIN1, active=PlayerId.SELF, turn=1,
              starting_player=PlayerId.SELF):
        return GameState(
            player=player or make_player(PlayerId.SELF),
            opponent=opponent or make_player(PlayerId.OPPONENT),
            turn=turn,
            phase=phase,
            active_player=active,
            starting_player=starting_player,
        )

    return _make


@pytest.fixture
def empty_state(make_state):
    """A state with two empty players, SELF active in the first main phase."""
    return make_state()


# =============================================================================
# Deck Fixtures
# =============================================================================

@pytest.fixture
def rng():
    """Seeded random source so shuffles are reproducible."""
    return random.Random(1234)


@pytest.fixture
def simple_deck(make_card, make_land):
    """
    Build a small forest-and-bears deck for one player.

    Returns:
        Callable: simple_deck(prefix, size=20) -> list of CardInstance
    """
    def _make(prefix, size=20):
        cards = []
        for index in range(size):
            if index % 2 == 0:
                cards.append(make_land("Forest", instance_id=f"{prefix}-land-{index}"))
            else:
                cards.append(make_card("Grizzly Bears", mana_cost="{1}{G}", cmc=2, power=2,
                                       toughness=2, subtype="Bear",
                                       instance_id=f"{prefix}-bear-{index}"))
        return cards

    return _make
