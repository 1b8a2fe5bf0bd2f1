"""
Test suite for the public game actions and the Game controller.

Tests cover:
- Game setup from two decks
- Playing lands, permanents, instants and sorceries
- Converge spells
- Rule refusals leaving the state unchanged
- Commander casting and tax
- Life changes ending the game
- Verbose logging of the Game controller
"""
import pytest

from ..engine.errors import CardNotFoundError, IllegalStateError
from ..engine.game import (
    Game, GameConfig, all_card_locations, cast_commander, change_life, new_game, play_card,
    take_mulligan, tap_land_for_mana,
)
from ..engine.triggers import EffectContext
from ..engine.types import CardType, Color, Phase, PlayerId, Zone
from ..engine.zones import destroy_permanent


UNSHUFFLED = GameConfig(shuffle=False)


# =============================================================================
# SETUP TESTS
# =============================================================================

class TestNewGame:
    """Tests for new_game."""

    def test_opening_hands(self, simple_deck):
        """Test both players draw seven and start at 40 life."""
        state = new_game(simple_deck("me"), simple_deck("them"), UNSHUFFLED)

        for player in (state.player, state.opponent):
            assert len(player.hand) == 7
            assert len(player.library) == 13
            assert player.life == 40
        assert state.turn == 1
        assert state.phase is Phase.MAIN1
        assert state.active_player is PlayerId.SELF
        assert state.log[0] == "Turn 1: Game started: You vs Opponent, You goes first"

    def test_unshuffled_hand_is_deck_top(self, simple_deck):
        """Test shuffle=False keeps the deck order."""
        state = new_game(simple_deck("me"), simple_deck("them"), UNSHUFFLED)
        assert state.player.hand[0].instance_id == "me-land-0"
        assert state.player.hand[1].instance_id == "me-bear-1"

    def test_commander_starts_in_command_zone(self, simple_deck, make_creature):
        """Test the flagged commander is not drawn."""
        commander = make_creature("Omnath", 4, 4, is_commander=True)
        state = new_game(simple_deck("me") + [commander], simple_deck("them"), UNSHUFFLED)
        assert state.player.command_zone == (commander,)

    def test_starting_player(self, simple_deck):
        """Test the opponent can take the first turn."""
        state = new_game(simple_deck("me"), simple_deck("them"), UNSHUFFLED,
                         starting_player=PlayerId.OPPONENT)
        assert state.active_player is PlayerId.OPPONENT
        assert state.starting_player is PlayerId.OPPONENT

    def test_empty_deck_rejected(self, simple_deck):
        """Test both decks are required."""
        with pytest.raises(IllegalStateError):
            new_game(simple_deck("me"), [])

    def test_shared_ids_rejected(self, simple_deck):
        """Test instance ids must be unique across both decks."""
        with pytest.raises(IllegalStateError):
            new_game(simple_deck("same"), simple_deck("same"))

    def test_every_card_has_one_location(self, simple_deck):
        """Test all forty cards are somewhere, once."""
        state = new_game(simple_deck("me"), simple_deck("them"), UNSHUFFLED)
        locations = all_card_locations(state)
        assert len(locations) == 40
        assert len({card.instance_id for _, _, card in locations}) == 40

    def test_mulligan(self, simple_deck, rng):
        """Test a mulligan on turn 1 keeps one card fewer."""
        state = new_game(simple_deck("me"), simple_deck("them"), UNSHUFFLED)
        result = take_mulligan(state, PlayerId.SELF, rng=rng)
        assert result.accepted
        assert len(result.state.player.hand) == 6
        assert len(result.state.opponent.hand) == 7


# =============================================================================
# PLAYING CARDS
# =============================================================================

class TestPlayCard:
    """Tests for play_card."""

    def test_one_land_per_turn(self, make_land, make_player, make_state):
        """Test a second land in the same turn is refused."""
        first, second = make_land("Forest"), make_land("Forest")
        state = make_state(make_player(hand=[first, second]))

        state = play_card(state, PlayerId.SELF, first.instance_id).state
        result = play_card(state, PlayerId.SELF, second.instance_id)

        assert not result.accepted
        assert result.message == "already played a land this turn"
        assert result.state.player == state.player
        assert result.state.log[-1] == "Turn 1: Refused: already played a land this turn"

    def test_land_needs_main_phase(self, make_land, make_player, make_state):
        """Test lands are not played during combat."""
        forest = make_land("Forest")
        state = make_state(make_player(hand=[forest]), phase=Phase.COMBAT_BEGIN)
        assert not play_card(state, PlayerId.SELF, forest.instance_id).accepted

    def test_creature_is_paid_and_enters(self, make_land, make_creature, make_player, make_state):
        """Test casting a creature taps lands and puts it onto the battlefield."""
        forests = [make_land("Forest") for _ in range(2)]
        bear = make_creature("Grizzly Bears", 2, 2, mana_cost="{1}{G}")
        state = make_state(make_player(battlefield=forests, hand=[bear]))

        result = play_card(state, PlayerId.SELF, bear.instance_id)

        assert result.accepted
        me = result.state.player
        assert me.permanent(bear.instance_id) is not None
        assert all(land.tapped for land in me.lands())

    def test_not_enough_mana(self, make_land, make_creature, make_player, make_state):
        """Test an unaffordable card is refused and nothing is tapped."""
        forest = make_land("Forest")
        bear = make_creature("Grizzly Bears", 2, 2, mana_cost="{1}{G}")
        state = make_state(make_player(battlefield=[forest], hand=[bear]))

        result = play_card(state, PlayerId.SELF, bear.instance_id)

        assert not result.accepted
        assert "not enough mana" in result.message
        assert result.state.player == state.player

    def test_creature_needs_own_turn(self, make_creature, make_player, make_state):
        """Test a creature cannot be cast on the opponent's turn."""
        bear = make_creature("Memnite", 1, 1)
        state = make_state(make_player(hand=[bear]), active=PlayerId.OPPONENT)
        assert not play_card(state, PlayerId.SELF, bear.instance_id).accepted

    def test_card_not_in_hand_raises(self, empty_state):
        """Test naming a card that is not in hand is a caller error."""
        with pytest.raises(CardNotFoundError):
            play_card(empty_state, PlayerId.SELF, "missing")

    def test_enters_trigger_on_cast(self, make_creature, make_player, make_state, simple_deck):
        """Test casting a creature with an ETB draw draws a card."""
        visionary = make_creature("Elvish Visionary", 1, 1,
                                  text="When Elvish Visionary enters the battlefield, draw a card.")
        state = make_state(make_player(hand=[visionary], library=simple_deck("me", size=3)))

        result = play_card(state, PlayerId.SELF, visionary.instance_id)

        assert [c.instance_id for c in result.state.player.hand] == ["me-land-0"]

    def test_instant_in_combat(self, make_card, make_land, make_player, make_state):
        """Test instants can be cast outside the main phase."""
        leak = make_card("Mana Leak", card_type=CardType.INSTANT, mana_cost="{1}{U}",
                         text="Counter target spell unless its controller pays {3}.")
        islands = [make_land("Island"), make_land("Island")]
        state = make_state(make_player(battlefield=islands, hand=[leak]), phase=Phase.COMBAT_BEGIN)

        result = play_card(state, PlayerId.SELF, leak.instance_id)

        assert result.accepted
        assert result.state.player.graveyard[-1].instance_id == leak.instance_id
        assert "Turn 1: Mana Leak: no spell to counter" in result.state.log

    def test_cast_triggers_pick_their_own_targets(self, make_card, make_land, make_creature,
                                                  make_player, make_state):
        """Test a target chosen for the spell is not reused by the triggers it sets off."""
        growth = make_card("Brute Force", card_type=CardType.INSTANT, mana_cost="{G}",
                           text="Target creature gets +1/+0 until end of turn.")
        elf = make_creature("Elf", 1, 1)
        pinger = make_creature("Pinger", 1, 1,
                               text="Whenever you cast an instant spell, Pinger deals 1 damage "
                                    "to any target.")
        state = make_state(make_player(battlefield=[make_land("Forest"), elf, pinger],
                                       hand=[growth]))

        result = play_card(state, PlayerId.SELF, growth.instance_id,
                           context=EffectContext(target_id=elf.instance_id))

        assert result.state.player.permanent(elf.instance_id).effective_power == 2
        assert result.state.opponent.life == 39
        assert "Turn 1: Pinger deals 1 damage to Opponent" in result.state.log

    def test_sorcery_needs_main_phase(self, make_card, make_land, make_player, make_state):
        """Test sorceries are refused during combat."""
        divination = make_card("Divination", card_type=CardType.SORCERY, mana_cost="{2}{U}",
                               text="Draw two cards.")
        islands = [make_land("Island") for _ in range(3)]
        state = make_state(make_player(battlefield=islands, hand=[divination]),
                           phase=Phase.COMBAT_BEGIN)
        assert not play_card(state, PlayerId.SELF, divination.instance_id).accepted

    def test_converge_counts_colors_spent(self, make_card, make_land, make_player, make_state,
                                          simple_deck):
        """Test paying with white, blue and black draws three and loses three life."""
        truths = make_card(
            "Painful Truths", card_type=CardType.SORCERY, mana_cost="{2}{B}",
            text="Converge — You draw X cards and you lose X life, where X is the number "
                 "of colors of mana spent to cast this spell.",
        )
        lands = [make_land("Plains"), make_land("Island"), make_land("Swamp")]
        state = make_state(make_player(battlefield=lands, hand=[truths],
                                       library=simple_deck("me", size=5)))

        result = play_card(state, PlayerId.SELF, truths.instance_id)

        me = result.state.player
        assert len(me.hand) == 3
        assert me.life == 37

    def test_converge_with_one_color(self, make_card, make_land, make_player, make_state,
                                     simple_deck):
        """Test three Swamps give a converge value of one."""
        truths = make_card(
            "Painful Truths", card_type=CardType.SORCERY, mana_cost="{2}{B}",
            text="Converge — You draw X cards and you lose X life, where X is the number "
                 "of colors of mana spent to cast this spell.",
        )
        swamps = [make_land("Swamp") for _ in range(3)]
        state = make_state(make_player(battlefield=swamps, hand=[truths],
                                       library=simple_deck("me", size=5)))

        me = play_card(state, PlayerId.SELF, truths.instance_id).state.player

        assert len(me.hand) == 1
        assert me.life == 39


# =============================================================================
# COMMANDER TESTS
# =============================================================================

class TestCommander:
    """Tests for casting the commander."""

    def test_commander_tax(self, make_land, make_creature, make_player, make_state):
        """Test the second cast costs two more."""
        commander = make_creature("Omnath", 4, 4, mana_cost="{1}{G}", is_commander=True)
        forests = [make_land("Forest") for _ in range(6)]
        state = make_state(make_player(battlefield=forests, command=[commander]))

        state = cast_commander(state, PlayerId.SELF).state
        assert state.player.permanent(commander.instance_id) is not None
        assert len(state.player.untapped_lands()) == 4

        player, _ = destroy_permanent(state.player, commander.instance_id)
        state = state.with_player(player)
        assert state.player.command_zone[0].instance_id == commander.instance_id

        result = cast_commander(state, PlayerId.SELF)
        assert result.accepted
        assert result.state.player.untapped_lands() == []
        assert result.state.player.commander_casts == 2
        assert "for {3}{G}" in result.state.log[-1]

    def test_tax_can_make_commander_unaffordable(self, make_land, make_creature, make_player,
                                                 make_state):
        """Test a taxed commander is refused when the lands run short."""
        commander = make_creature("Omnath", 4, 4, mana_cost="{1}{G}", is_commander=True)
        forests = [make_land("Forest") for _ in range(3)]
        state = make_state(make_player(battlefield=forests, command=[commander],
                                       commander_casts=1))

        result = cast_commander(state, PlayerId.SELF)

        assert not result.accepted
        assert "{3}{G}" in result.message

    def test_no_commander(self, empty_state):
        """Test casting with an empty command zone is refused."""
        assert not cast_commander(empty_state, PlayerId.SELF).accepted


# =============================================================================
# MANA AND LIFE ACTIONS
# =============================================================================

class TestManaAndLife:
    """Tests for tapping lands and changing life."""

    def test_tap_land_with_color_choice(self, make_land, make_player, make_state):
        """Test a dual land makes the requested color."""
        dual = make_land("Azorius Guildgate", text="{T}: Add {W} or {U}.")
        state = make_state(make_player(battlefield=[dual]))

        result = tap_land_for_mana(state, PlayerId.SELF, dual.instance_id, Color.BLUE)

        assert result.state.player.mana.blue == 1
        assert not tap_land_for_mana(result.state, PlayerId.SELF, dual.instance_id).accepted

    def test_creature_is_not_a_land(self, make_creature, make_player, make_state):
        """Test tapping a creature for mana is refused."""
        bear = make_creature("Grizzly Bears", 2, 2)
        state = make_state(make_player(battlefield=[bear]))
        assert not tap_land_for_mana(state, PlayerId.SELF, bear.instance_id).accepted

    def test_life_loss_ends_game(self, make_card, make_player, make_state):
        """Test dropping to 0 life ends the game and blocks further actions."""
        bear = make_card("Memnite", power=1, toughness=1)
        state = make_state(make_player(hand=[bear]))

        state = change_life(state, PlayerId.OPPONENT, -40).state

        assert state.game_over
        assert state.winner is PlayerId.SELF
        result = play_card(state, PlayerId.SELF, bear.instance_id)
        assert not result.accepted
        assert result.message == "the game is over"

    def test_life_change_refused_after_game_over(self, empty_state):
        """Test life totals are frozen once the game has ended."""
        state = change_life(empty_state, PlayerId.OPPONENT, -40).state

        result = change_life(state, PlayerId.SELF, -40)

        assert not result.accepted
        assert result.state.player.life == 40
        assert result.state.winner is PlayerId.SELF


# =============================================================================
# GAME CONTROLLER TESTS
# =============================================================================

class TestGameController:
    """Tests for the Game class."""

    def test_quiet_by_default(self, simple_deck, capsys):
        """Test nothing is printed unless verbose."""
        game = Game(simple_deck("me"), simple_deck("them"), UNSHUFFLED)
        game.play_card(PlayerId.SELF, "me-land-0")
        assert capsys.readouterr().out == ""

    def test_verbose_prints_log(self, simple_deck, capsys):
        """Test verbose games print accepted lines as INFO and refusals as WARN."""
        game = Game(simple_deck("me"), simple_deck("them"), GameConfig(verbose=True, shuffle=False))
        game.play_card(PlayerId.SELF, "me-land-0")
        game.play_card(PlayerId.SELF, "me-land-2")

        out = capsys.readouterr().out
        assert "[INFO] Turn 1: Game started: You vs Opponent, You goes first" in out
        assert "[INFO] Turn 1: You plays Forest" in out
        assert "[WARN] Turn 1: Refused: already played a land this turn" in out

    def test_refusal_warns_only_its_own_line(self, simple_deck, capsys):
        """Test lines logged before a refusal are still printed as INFO."""
        game = Game(simple_deck("me"), simple_deck("them"), GameConfig(verbose=True, shuffle=False))
        capsys.readouterr()
        game.state = game.state.with_log("Opponent reveals Forest")

        game.cast_commander(PlayerId.SELF)

        out = capsys.readouterr().out.splitlines()
        assert out == [
            "[INFO] Turn 1: Opponent reveals Forest",
            "[WARN] Turn 1: Refused: You has no commander in the command zone",
        ]

    def test_unrecognized_text_is_reported(self, make_creature, simple_deck, capsys):
        """Test card text the engine cannot read is reported at setup."""
        odd = make_creature("Odd Duck", 1, 1, text="Quacks at dawn.", instance_id="odd")
        Game(simple_deck("me") + [odd], simple_deck("them"),
             GameConfig(verbose=True, shuffle=False))

        out = capsys.readouterr().out
        assert "[DEBUG] Turn 1: Odd Duck: unrecognized text 'Quacks at dawn'" in out

    def test_state_properties(self, simple_deck):
        """Test the shortcuts follow the current state."""
        game = Game(simple_deck("me"), simple_deck("them"), UNSHUFFLED)
        game.advance_phase()
        assert game.phase is Phase.COMBAT_BEGIN
        assert game.turn_number == 1
        assert game.active_player_id is PlayerId.SELF
        assert not game.game_over
        assert game.winner_id is None

    def test_mulligan_and_locations(self, simple_deck):
        """Test Game.mulligan and the card locations of a fresh game."""
        game = Game(simple_deck("me"), simple_deck("them"), UNSHUFFLED)
        game.mulligan(PlayerId.OPPONENT, 2)
        assert len(game.get_player(PlayerId.OPPONENT).hand) == 5
        hand = [card for owner, zone, card in all_card_locations(game.state)
                if owner is PlayerId.OPPONENT and zone is Zone.HAND]
        assert len(hand) == 5

    def test_game_over_through_controller(self, simple_deck):
        """Test the controller reports the winner."""
        game = Game(simple_deck("me"), simple_deck("them"), UNSHUFFLED)
        game.change_life(PlayerId.SELF, -40)
        assert game.game_over
        assert game.winner_id is PlayerId.OPPONENT
