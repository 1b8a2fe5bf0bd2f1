"""
Test suite for zone movement and permanent state.

Tests cover:
- A card instance is in exactly one zone
- Tokens ceasing to exist
- Commanders returning to the command zone
- Drawing, including from an empty library
- Destruction, regeneration and zero-toughness deaths
- Player setup and mulligans
"""
from dataclasses import replace

import pytest

from ..engine.effects import TokenSpec
from ..engine.errors import CardNotFoundError, IllegalStateError
from ..engine.types import Color, CounterKind, PlayerId, Zone
from ..engine.zones import (
    add_card, add_counters, all_instances, check_creature_deaths, create_tokens,
    destroy_permanent, draw_card, draw_cards, find_card, initialize_player, move_card,
    mulligan, return_to_hand, sacrifice_permanent, tap_permanent, untap_all, untap_permanent,
)


# =============================================================================
# MOVEMENT TESTS
# =============================================================================

class TestMovement:
    """Tests for moving cards between zones."""

    def test_move_keeps_card_in_one_zone(self, make_creature, make_player):
        """Test a moved card leaves its old zone."""
        bear = make_creature("Grizzly Bears", 2, 2)
        player = move_card(make_player(hand=[bear]), bear.instance_id, Zone.HAND, Zone.BATTLEFIELD)

        locations = [(zone, card.instance_id) for _, zone, card in all_instances([player])]
        assert locations == [(Zone.BATTLEFIELD, bear.instance_id)]

    def test_enters_untapped(self, make_creature, make_player):
        """Test a card moved to the battlefield arrives untapped."""
        bear = make_creature("Grizzly Bears", 2, 2, tapped=True)
        player = move_card(make_player(graveyard=[bear]), bear.instance_id,
                           Zone.GRAVEYARD, Zone.BATTLEFIELD)
        assert not player.permanent(bear.instance_id).tapped

    def test_tap_and_untap_permanent(self, make_creature, make_player):
        """Test tapping and untapping one permanent leaves the others alone."""
        bear = make_creature("Grizzly Bears", 2, 2)
        elf = make_creature("Llanowar Elves", 1, 1)
        player = tap_permanent(make_player(battlefield=[bear, elf]), bear.instance_id)

        assert player.permanent(bear.instance_id).tapped
        assert not player.permanent(elf.instance_id).tapped
        assert not untap_permanent(player, bear.instance_id).permanent(bear.instance_id).tapped

        with pytest.raises(CardNotFoundError):
            tap_permanent(make_player(hand=[bear]), bear.instance_id)

    def test_missing_card_raises(self, make_player):
        """Test naming a card that is not there is a programming error."""
        with pytest.raises(CardNotFoundError):
            move_card(make_player(), "nope", Zone.HAND, Zone.GRAVEYARD)

    def test_duplicate_insert_raises(self, make_creature, make_player):
        """Test the same instance cannot be in two zones."""
        bear = make_creature("Grizzly Bears", 2, 2)
        with pytest.raises(IllegalStateError):
            add_card(make_player(hand=[bear]), bear, Zone.GRAVEYARD)

    def test_find_card(self, make_creature, make_player):
        """Test find_card reports the zone."""
        bear = make_creature("Grizzly Bears", 2, 2)
        player = make_player(graveyard=[bear])
        assert find_card(player, bear.instance_id) == (Zone.GRAVEYARD, bear)
        assert find_card(player, bear.instance_id, [Zone.HAND]) is None


# =============================================================================
# TOKEN AND COMMANDER TESTS
# =============================================================================

class TestTokensAndCommanders:
    """Tests for cards that do not go to the graveyard."""

    def test_created_tokens_have_unique_ids(self, make_player):
        """Test each token gets its own id."""
        spec = TokenSpec("Goblin", 1, 1, Color.RED)
        player, created = create_tokens(make_player(), spec, count=3)
        assert len({c.instance_id for c in created}) == 3
        assert all(c.is_token for c in player.battlefield)

    def test_destroyed_token_ceases_to_exist(self, make_player):
        """Test a dying token goes nowhere."""
        player, (token,) = create_tokens(make_player(), TokenSpec("Zombie", 2, 2, Color.BLACK))
        player, gone = destroy_permanent(player, token.instance_id)
        assert gone.instance_id == token.instance_id
        assert all_instances([player]) == []

    def test_bounced_token_ceases_to_exist(self, make_player):
        """Test a token returned to hand goes nowhere."""
        player, (token,) = create_tokens(make_player(), TokenSpec("Drake", 2, 2, Color.BLUE))
        player = return_to_hand(player, token.instance_id)
        assert player.hand == ()

    def test_commander_returns_to_command_zone(self, make_creature, make_player):
        """Test a destroyed commander goes home with counters and tapped state reset."""
        commander = replace(make_creature("Meren of Clan Nel Toth", 3, 4, is_commander=True),
                            tapped=True, negative_counters=1)
        player, _ = destroy_permanent(make_player(battlefield=[commander]), commander.instance_id)

        assert player.graveyard == ()
        returned = player.command_zone[0]
        assert returned.instance_id == commander.instance_id
        assert not returned.tapped
        assert returned.negative_counters == 0


# =============================================================================
# DESTRUCTION TESTS
# =============================================================================

class TestDestruction:
    """Tests for destroy, sacrifice and state-based deaths."""

    def test_destroy_to_graveyard(self, make_creature, make_player):
        """Test a destroyed card ends up on top of the graveyard."""
        bear = make_creature("Grizzly Bears", 2, 2)
        player, gone = destroy_permanent(make_player(battlefield=[bear]), bear.instance_id)
        assert gone == bear
        assert player.graveyard[-1] == bear

    def test_regeneration_shield(self, make_creature, make_player):
        """Test a shield is used up and the creature stays, tapped."""
        troll = replace(make_creature("River Troll", 2, 2), regeneration_shield=True)
        player, gone = destroy_permanent(make_player(battlefield=[troll]), troll.instance_id)

        assert gone is None
        survivor = player.permanent(troll.instance_id)
        assert survivor.tapped
        assert not survivor.regeneration_shield

    def test_sacrifice_ignores_regeneration(self, make_creature, make_player):
        """Test sacrifice cannot be regenerated."""
        troll = replace(make_creature("River Troll", 2, 2), regeneration_shield=True)
        player, gone = sacrifice_permanent(make_player(battlefield=[troll]), troll.instance_id)
        assert gone.instance_id == troll.instance_id
        assert player.battlefield == ()

    def test_zero_toughness_dies(self, make_creature, make_player):
        """Test -1/-1 counters that reach toughness kill the creature."""
        elf = make_creature("Llanowar Elves", 1, 1)
        player = add_counters(make_player(battlefield=[elf]), elf.instance_id, CounterKind.MINUS_ONE)

        player, dead = check_creature_deaths(player)

        assert [c.instance_id for c in dead] == [elf.instance_id]
        assert player.graveyard[-1].instance_id == elf.instance_id

    def test_counters_cancel(self, make_creature, make_player):
        """Test +1/+1 counters keep a creature with -1/-1 counters alive."""
        elf = make_creature("Llanowar Elves", 1, 1)
        player = make_player(battlefield=[elf])
        player = add_counters(player, elf.instance_id, CounterKind.PLUS_ONE)
        player = add_counters(player, elf.instance_id, CounterKind.MINUS_ONE)

        player, dead = check_creature_deaths(player)

        assert dead == []
        assert player.permanent(elf.instance_id).effective_toughness == 1


# =============================================================================
# LIBRARY TESTS
# =============================================================================

class TestLibrary:
    """Tests for drawing."""

    def test_draw_takes_top_card(self, make_creature, make_player):
        """Test the front of the library is drawn first."""
        first, second = make_creature("A", 1, 1), make_creature("B", 1, 1)
        player, drawn = draw_card(make_player(library=[first, second]))
        assert drawn == first
        assert player.hand == (first,)
        assert player.library == (second,)

    def test_draw_from_empty_library(self, make_player):
        """Test drawing from an empty library does nothing."""
        player = make_player()
        after, drawn = draw_card(player)
        assert drawn is None
        assert after == player

    def test_draw_cards_stops_when_empty(self, simple_deck, make_player):
        """Test drawing more than the library holds draws what is there."""
        player, drawn = draw_cards(make_player(library=simple_deck("me", size=3)), 5)
        assert len(drawn) == 3
        assert player.library == ()


# =============================================================================
# SETUP TESTS
# =============================================================================

class TestSetup:
    """Tests for player creation, untap and mulligans."""

    def test_initialize_player(self, simple_deck, make_creature, rng):
        """Test the commander starts in the command zone and the rest is the library."""
        commander = make_creature("Omnath", 4, 4, is_commander=True)
        deck = simple_deck("me") + [commander]

        player = initialize_player(PlayerId.SELF, "You", deck, rng=rng)

        assert player.life == 40
        assert player.command_zone == (commander,)
        assert len(player.library) == 20
        assert player.hand == ()

    def test_initialize_without_shuffle_keeps_order(self, simple_deck):
        """Test an unshuffled library keeps deck order."""
        deck = simple_deck("me", size=4)
        player = initialize_player(PlayerId.SELF, "You", deck, shuffle=False)
        assert list(player.library) == deck

    def test_duplicate_ids_rejected(self, make_creature):
        """Test two cards with one id are refused."""
        bear = make_creature("Grizzly Bears", 2, 2, instance_id="dup")
        with pytest.raises(IllegalStateError):
            initialize_player(PlayerId.SELF, "You", [bear, bear])

    def test_mulligan_draws_one_fewer(self, simple_deck, make_player, rng):
        """Test a first mulligan draws six cards and loses none."""
        deck = simple_deck("me")
        player = make_player(library=deck[7:], hand=deck[:7])

        player = mulligan(player, 1, rng=rng)

        assert len(player.hand) == 6
        assert len(player.hand) + len(player.library) == 20

    def test_mulligan_never_below_one(self, simple_deck, make_player, rng):
        """Test a huge mulligan count still draws a card."""
        player = mulligan(make_player(library=simple_deck("me")), 10, rng=rng)
        assert len(player.hand) == 1

    def test_untap_all_resets_turn(self, make_land, make_creature, make_player):
        """Test untap clears tapped state, temporary boosts and per-turn flags."""
        forest = make_land("Forest", tapped=True)
        bear = make_creature("Grizzly Bears", 2, 2).pumped(3, 3)
        player = make_player(battlefield=[forest, bear], has_played_land=True, has_drawn=True)

        player = untap_all(player)

        assert not player.permanent(forest.instance_id).tapped
        assert player.permanent(bear.instance_id).effective_power == 2
        assert not player.has_played_land
        assert not player.has_drawn
