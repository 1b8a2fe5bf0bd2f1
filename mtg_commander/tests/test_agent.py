"""
Test suite for the scripted opponent.

Tests cover:
- Main phase priorities (land, commander, creature, artifact, pass)
- Attack choices
- Block choices (kill, trade, chump)
- Playing a whole turn
"""
import pytest

from ..ai.agent import ScriptedOpponent
from ..engine.player import AttackingCreature
from ..engine.types import CardType, Phase, PlayerId


@pytest.fixture
def agent():
    return ScriptedOpponent(PlayerId.OPPONENT)


def opponent_turn(make_player, make_state, phase=Phase.MAIN1, me=None, **fields):
    """State where the scripted opponent is active."""
    return make_state(
        me or make_player(PlayerId.SELF),
        make_player(PlayerId.OPPONENT, **fields),
        phase=phase,
        active=PlayerId.OPPONENT,
    )


def attacked_by(make_player, make_state, attackers, blockers):
    """State where SELF attacks the scripted opponent with ``attackers``."""
    me = make_player(PlayerId.SELF, battlefield=attackers,
                     attacking=tuple(AttackingCreature(a.instance_id, PlayerId.OPPONENT)
                                     for a in attackers))
    return make_state(me, make_player(PlayerId.OPPONENT, battlefield=blockers),
                      phase=Phase.COMBAT_BLOCKERS)


# =============================================================================
# MAIN PHASE TESTS
# =============================================================================

class TestMainPhaseDecision:
    """Tests for the main phase priority list."""

    def test_land_comes_first(self, agent, make_land, make_creature, make_player, make_state):
        """Test a land drop beats everything else."""
        forest = make_land("Forest")
        bear = make_creature("Grizzly Bears", 2, 2, mana_cost="{1}{G}")
        state = opponent_turn(make_player, make_state, hand=[bear, forest],
                              battlefield=[make_land("Forest"), make_land("Forest")])

        decision = agent.main_phase_decision(state)

        assert decision.decision_type == "play_land"
        assert decision.card_id == forest.instance_id

    def test_commander_before_creatures(self, agent, make_land, make_creature, make_player,
                                        make_state):
        """Test an affordable commander is cast before creatures."""
        omnath = make_creature("Omnath", 1, 1, mana_cost="{G}", is_commander=True)
        bear = make_creature("Grizzly Bears", 2, 2, mana_cost="{1}{G}")
        state = opponent_turn(make_player, make_state, hand=[bear], command=[omnath],
                              battlefield=[make_land("Forest"), make_land("Forest")],
                              has_played_land=True)

        assert agent.main_phase_decision(state).decision_type == "cast_commander"

    def test_commander_tax_counts(self, agent, make_land, make_creature, make_player, make_state):
        """Test a taxed commander the lands cannot pay for is skipped."""
        omnath = make_creature("Omnath", 1, 1, mana_cost="{G}", is_commander=True)
        state = opponent_turn(make_player, make_state, command=[omnath], commander_casts=1,
                              battlefield=[make_land("Forest")], has_played_land=True)

        assert agent.main_phase_decision(state).decision_type == "pass"

    def test_creature_before_artifact(self, agent, make_card, make_land, make_creature,
                                      make_player, make_state):
        """Test an affordable creature wins over an artifact."""
        ring = make_card("Mind Stone", card_type=CardType.ARTIFACT, mana_cost="{2}")
        bear = make_creature("Grizzly Bears", 2, 2, mana_cost="{1}{G}")
        state = opponent_turn(make_player, make_state, hand=[ring, bear],
                              battlefield=[make_land("Forest"), make_land("Forest")],
                              has_played_land=True)

        decision = agent.main_phase_decision(state)

        assert decision.decision_type == "play_creature"
        assert decision.card_id == bear.instance_id

    def test_artifact_when_no_creature(self, agent, make_card, make_land, make_player,
                                       make_state):
        """Test the cheapest artifact is cast when no creature fits."""
        cheap = make_card("Mind Stone", card_type=CardType.ARTIFACT, mana_cost="{2}")
        dear = make_card("Thran Dynamo", card_type=CardType.ARTIFACT, mana_cost="{4}")
        state = opponent_turn(make_player, make_state, hand=[dear, cheap],
                              battlefield=[make_land("Forest") for _ in range(4)],
                              has_played_land=True)

        decision = agent.main_phase_decision(state)

        assert decision.decision_type == "play_spell"
        assert decision.card_id == cheap.instance_id

    def test_pass_with_nothing_to_do(self, agent, empty_state):
        """Test an empty hand passes."""
        assert agent.main_phase_decision(empty_state).decision_type == "pass"


# =============================================================================
# ATTACK TESTS
# =============================================================================

class TestAttackDecision:
    """Tests for choosing attackers."""

    def test_zero_power_stays_home(self, agent, make_creature, make_player, make_state):
        """Test walls never attack but others do into an empty board."""
        wall = make_creature("Wall of Wood", 0, 3)
        bear = make_creature("Grizzly Bears", 2, 2)
        state = opponent_turn(make_player, make_state, phase=Phase.COMBAT_ATTACKERS,
                              battlefield=[wall, bear])

        assert agent.attack_decision(state) == [bear.instance_id]

    def test_flyers_attack_into_blockers(self, agent, make_creature, make_player, make_state):
        """Test a flyer attacks while an outclassed ground creature waits."""
        bird = make_creature("Bird", 1, 1, text="Flying")
        squire = make_creature("Squire", 1, 1)
        me = make_player(PlayerId.SELF, battlefield=[make_creature("Giant", 4, 4),
                                                     make_creature("Giant", 4, 4)])
        state = opponent_turn(make_player, make_state, phase=Phase.COMBAT_ATTACKERS, me=me,
                              battlefield=[bird, squire])

        assert agent.attack_decision(state) == [bird.instance_id]

    def test_tapped_creatures_do_not_attack(self, agent, make_creature, make_player,
                                            make_state):
        """Test tapped creatures are not considered."""
        bear = make_creature("Grizzly Bears", 2, 2, tapped=True)
        state = opponent_turn(make_player, make_state, phase=Phase.COMBAT_ATTACKERS,
                              battlefield=[bear])

        assert agent.attack_decision(state) == []


# =============================================================================
# BLOCK TESTS
# =============================================================================

class TestBlockDecision:
    """Tests for choosing blockers."""

    def test_prefers_blocker_that_survives(self, agent, make_creature, make_player, make_state):
        """Test a blocker that kills and survives is chosen over a trade."""
        attacker = make_creature("Centaur", 3, 3)
        trader = make_creature("Bear", 3, 2)
        wall = make_creature("Giant", 4, 4)
        state = attacked_by(make_player, make_state, [attacker], [trader, wall])

        assert agent.block_decision(state) == [(wall.instance_id, attacker.instance_id)]

    def test_trades_when_it_cannot_survive(self, agent, make_creature, make_player, make_state):
        """Test an even trade is taken."""
        attacker = make_creature("Bear", 2, 2)
        blocker = make_creature("Other Bear", 2, 2)
        state = attacked_by(make_player, make_state, [attacker], [blocker])

        assert agent.block_decision(state) == [(blocker.instance_id, attacker.instance_id)]

    def test_chumps_big_threats_only(self, agent, make_creature, make_player, make_state):
        """Test chump blocks are saved for threatening attackers."""
        giant = make_creature("Giant", 5, 5)
        squire = make_creature("Squire", 1, 1)
        blocker = make_creature("Soldier", 1, 1)

        big = attacked_by(make_player, make_state, [giant], [blocker])
        small = attacked_by(make_player, make_state, [squire], [make_creature("Wall", 0, 4)])

        assert agent.block_decision(big) == [(blocker.instance_id, giant.instance_id)]
        assert agent.block_decision(small) == []

    def test_ground_creatures_cannot_block_flyers(self, agent, make_creature, make_player,
                                                  make_state):
        """Test flying attackers are left alone without flyers or reach."""
        dragon = make_creature("Dragon", 5, 5, text="Flying")
        state = attacked_by(make_player, make_state, [dragon], [make_creature("Giant", 6, 6)])

        assert agent.block_decision(state) == []

    def test_each_blocker_used_once(self, agent, make_creature, make_player, make_state):
        """Test one blocker is not assigned to two attackers."""
        first = make_creature("Giant", 5, 5)
        second = make_creature("Other Giant", 5, 5)
        blocker = make_creature("Soldier", 1, 1)
        state = attacked_by(make_player, make_state, [first, second], [blocker])

        assert len(agent.block_decision(state)) == 1


# =============================================================================
# TURN TESTS
# =============================================================================

class TestTakeTurn:
    """Tests for playing a whole turn."""

    def test_plays_turn_through_to_next_untap(self, agent, make_land, make_creature,
                                              simple_deck, make_player, make_state):
        """Test a full turn plays a land, attacks and hands over."""
        centaur = make_creature("Centaur", 3, 3)
        state = opponent_turn(make_player, make_state, phase=Phase.UNTAP,
                              hand=[make_land("Forest")], battlefield=[centaur],
                              library=simple_deck("op", size=4))

        state = agent.take_turn(state)

        assert state.phase is Phase.UNTAP
        assert state.active_player is PlayerId.SELF
        assert len(state.opponent.lands()) == 1
        assert state.player.life == 37

    def test_blocks_callback(self, agent, make_creature, simple_deck, make_player, make_state):
        """Test the other player's blocks come from the callback."""
        giant = make_creature("Giant", 5, 5)
        bear = make_creature("Grizzly Bears", 2, 2)
        me = make_player(PlayerId.SELF, battlefield=[bear])
        state = opponent_turn(make_player, make_state, phase=Phase.UNTAP, me=me,
                              battlefield=[giant], library=simple_deck("op", size=4))

        state = agent.take_turn(state, blocks=lambda s: [(bear.instance_id, giant.instance_id)])

        assert state.player.life == 40
        assert state.player.permanent(bear.instance_id) is None
        assert state.opponent.permanent(giant.instance_id) is not None

    def test_not_our_turn(self, agent, empty_state):
        """Test nothing happens on the other player's turn."""
        assert agent.take_turn(empty_state) is empty_state
