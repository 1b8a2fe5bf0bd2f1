"""
Commander Engine - Scripted Opponent.

A ScriptedOpponent plays one side of the game through the public actions
in engine.game. Its choices follow a fixed priority list:

1. play a land
2. cast the commander
3. cast the most threatening affordable creature
4. cast the cheapest affordable artifact, then enchantment
5. pass

Attacks and blocks use a simple threat score.
"""

from dataclasses import dataclass
from typing import Callable, Dict, List, Optional, Sequence, Tuple

from ..cards.abilities import has_keyword
from ..engine.combat import can_block
from ..engine.game import (
    DEFAULT_CONFIG, ActionResult, GameConfig, advance_phase, cast_commander,
    declare_attackers, declare_blockers, play_card, resolve_search, run_upkeep_triggers,
)
from ..engine.mana import ManaCost, available_mana, can_pay_cost
from ..engine.objects import CardInstance
from ..engine.player import Player
from ..engine.state import GameState
from ..engine.types import CardType, Phase, PlayerId


BlockChooser = Callable[[GameState], Sequence[Tuple[str, str]]]


@dataclass
class AIDecision:
    """Represents a main phase choice."""
    decision_type: str  # "play_land", "play_creature", "play_spell",
                        # "cast_commander", "pass"
    card_id: Optional[str] = None
    target_id: Optional[str] = None
    message: str = ""

    def __repr__(self) -> str:
        card = f", card={self.card_id}" if self.card_id else ""
        return f"AIDecision({self.decision_type}{card})"


class ScriptedOpponent:
    """Heuristic player for one side of the game."""

    # Threat added on top of power + toughness
    KEYWORD_THREAT: Dict[str, int] = {
        "flying": 2,
        "deathtouch": 3,
        "lifelink": 2,
        "haste": 1,
        "infect": 4,
    }
    COMMANDER_THREAT = 3
    CHUMP_BLOCK_THREAT = 5
    MAX_MAIN_PHASE_ACTIONS = 20

    def __init__(self, player_id: PlayerId = PlayerId.OPPONENT,
                 config: GameConfig = DEFAULT_CONFIG):
        self.player_id = player_id
        self.config = config

    # =========================================================================
    # EVALUATION
    # =========================================================================

    def assess_threat(self, card: CardInstance) -> int:
        threat = card.effective_power + card.effective_toughness
        for keyword, value in self.KEYWORD_THREAT.items():
            if has_keyword(card, keyword):
                threat += value
        if card.is_commander:
            threat += self.COMMANDER_THREAT
        return threat

    @staticmethod
    def _cmc(card: CardInstance) -> int:
        return ManaCost.parse(card.definition.mana_cost).cmc

    @staticmethod
    def _ready_creatures(player: Player) -> List[CardInstance]:
        return [c for c in player.creatures() if not c.tapped]

    # =========================================================================
    # DECISIONS
    # =========================================================================

    def main_phase_decision(self, state: GameState) -> AIDecision:
        """Pick the next main phase play, or pass."""
        me = state.get_player(self.player_id)

        if not me.has_played_land:
            land = next((c for c in me.hand if c.is_land), None)
            if land is not None:
                return AIDecision("play_land", land.instance_id, message=f"{me.name} plays {land.name}")

        if me.command_zone:
            commander = me.command_zone[0]
            cost = ManaCost.parse(commander.definition.mana_cost).plus_generic(2 * me.commander_casts)
            if can_pay_cost(me, cost):
                return AIDecision("cast_commander", commander.instance_id,
                                  message=f"{me.name} casts {commander.name}")

        mana = max(1, available_mana(me))
        creatures = [c for c in me.hand if c.is_creature and can_pay_cost(me, c)]
        if creatures:
            # Spending more of the available mana is worth up to 2 threat
            best = max(creatures, key=lambda c: self.assess_threat(c) + self._cmc(c) / mana * 2)
            return AIDecision("play_creature", best.instance_id, message=f"{me.name} casts {best.name}")

        for card_type in (CardType.ARTIFACT, CardType.ENCHANTMENT):
            playable = [c for c in me.hand if c.card_type is card_type and can_pay_cost(me, c)]
            if playable:
                cheapest = min(playable, key=self._cmc)
                return AIDecision("play_spell", cheapest.instance_id,
                                  message=f"{me.name} casts {cheapest.name}")

        return AIDecision("pass", message=f"{me.name} passes")

    def attack_decision(self, state: GameState) -> List[str]:
        """
        Choose attackers.

        Creatures with 0 power stay home. Flying and infect creatures always
        attack. Others attack when there are no untapped blockers, when
        they survive every possible blocker, when they beat every possible
        blocker, or when attackers outnumber blockers.
        """
        me = state.get_player(self.player_id)
        them = state.get_player(self.player_id.other)
        available = self._ready_creatures(me)
        blockers = self._ready_creatures(them)

        attackers: List[str] = []
        for card in available:
            power, toughness = card.effective_power, card.effective_toughness
            if power == 0:
                continue
            if has_keyword(card, "flying") or has_keyword(card, "infect") or not blockers:
                attackers.append(card.instance_id)
                continue
            survives = all(toughness > b.effective_power for b in blockers)
            bigger = all(power >= b.effective_toughness and toughness >= b.effective_power
                         for b in blockers)
            if survives or bigger or len(available) > len(blockers):
                attackers.append(card.instance_id)
        return attackers

    def block_decision(self, state: GameState) -> List[Tuple[str, str]]:
        """
        Choose (blocker_id, attacker_id) pairs against the current attack.

        Attackers are handled most threatening first. Each gets a blocker
        that kills it and survives, else one that trades, else a chump
        blocker if its threat is high enough.
        """
        me = state.get_player(self.player_id)
        them = state.get_player(self.player_id.other)
        attackers = [c for c in (them.permanent(cid) for cid in them.attacking_ids) if c is not None]
        attackers.sort(key=self.assess_threat, reverse=True)
        available = self._ready_creatures(me)
        used = set()
        blocks: List[Tuple[str, str]] = []

        for attacker in attackers:
            eligible = [b for b in available
                        if b.instance_id not in used and can_block(b, attacker)]
            if not eligible:
                continue
            blocker = next((b for b in eligible
                            if b.effective_power >= attacker.effective_toughness
                            and b.effective_toughness > attacker.effective_power), None)
            if blocker is None:
                blocker = next((b for b in eligible
                                if b.effective_power >= attacker.effective_toughness), None)
            if blocker is None and self.assess_threat(attacker) >= self.CHUMP_BLOCK_THREAT:
                blocker = eligible[0]
            if blocker is not None:
                blocks.append((blocker.instance_id, attacker.instance_id))
                used.add(blocker.instance_id)
        return blocks

    # =========================================================================
    # TURN DRIVER
    # =========================================================================

    def take_turn(self, state: GameState, blocks: Optional[BlockChooser] = None) -> GameState:
        """
        Play a whole turn, from wherever it is to the next player's untap.

        Args:
            state: A state where this player is active
            blocks: Chooses the other player's blocks; no blocks if omitted

        Returns:
            The state after the turn. The turn stops early if the game ends
            or a library search belonging to the other player is pending.
        """
        if state.active_player is not self.player_id or state.game_over:
            return state

        while state.phase in (Phase.UNTAP, Phase.UPKEEP, Phase.DRAW):
            if state.phase is Phase.UPKEEP:
                state = self._take(run_upkeep_triggers(state, self.config))
            result = advance_phase(state, self.config)
            if not result.accepted:
                return result.state
            state = result.state

        state = self._main_phase(state)
        state = self._advance_to(state, Phase.COMBAT_ATTACKERS)
        if state.phase is not Phase.COMBAT_ATTACKERS:
            return state

        attackers = self.attack_decision(state)
        if attackers:
            state = self._take(declare_attackers(state, attackers, self.config))
        state = self._advance_to(state, Phase.COMBAT_BLOCKERS)
        if attackers and blocks is not None and state.phase is Phase.COMBAT_BLOCKERS:
            state = self._take(declare_blockers(state, blocks(state), self.config))

        state = self._advance_to(state, Phase.MAIN2)
        if state.phase is Phase.MAIN2:
            state = self._main_phase(state)
        state = self._advance_to(state, Phase.CLEANUP)
        if state.phase is Phase.CLEANUP:
            state = self._take(advance_phase(state, self.config))
        return state

    def _take(self, result: ActionResult) -> GameState:
        """Take an action's state and settle our own pending searches."""
        return self._resolve_own_searches(result.state)

    def _resolve_own_searches(self, state: GameState) -> GameState:
        while state.pending and state.pending[0].player_id is self.player_id:
            search = state.pending[0]
            chosen = list(search.candidate_ids[:search.max_choices])
            state = resolve_search(state, chosen, self.config).state
        return state

    def _main_phase(self, state: GameState) -> GameState:
        for _ in range(self.MAX_MAIN_PHASE_ACTIONS):
            if state.game_over or state.pending:
                break
            decision = self.main_phase_decision(state)
            if decision.decision_type == "pass":
                break
            if decision.decision_type == "cast_commander":
                result = cast_commander(state, self.player_id, decision.card_id, self.config)
            else:
                result = play_card(state, self.player_id, decision.card_id, self.config)
            state = self._take(result)
            if not result.accepted:
                break
        return state

    def _advance_to(self, state: GameState, phase: Phase) -> GameState:
        while state.phase is not phase and not state.game_over:
            result = advance_phase(state, self.config)
            if not result.accepted:
                return result.state
            state = self._resolve_own_searches(result.state)
        return state
