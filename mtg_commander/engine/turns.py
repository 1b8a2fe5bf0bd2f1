"""Commander Engine - Turn Structure

A fixed cycle of twelve steps. Only four transitions do anything beyond
changing the phase:

- cleanup -> untap: the other player becomes active (the turn number goes
  up when the starting player is active again), their permanents untap,
  their pool empties and per-turn flags reset; until-end-of-turn effects
  end for everyone
- upkeep -> draw: the active player draws a card
- combat_blockers -> combat_damage: combat damage and its triggers
- combat_damage -> combat_end: attack and block records are cleared
"""
from dataclasses import replace
from typing import Dict, Tuple

from .combat import resolve_combat_damage
from .player import Player
from .state import GameState
from .triggers import resolve_events
from .types import Phase, PlayerId
from .zones import draw_card, untap_all


PHASE_ORDER: Tuple[Phase, ...] = (
    Phase.UNTAP,
    Phase.UPKEEP,
    Phase.DRAW,
    Phase.MAIN1,
    Phase.COMBAT_BEGIN,
    Phase.COMBAT_ATTACKERS,
    Phase.COMBAT_BLOCKERS,
    Phase.COMBAT_DAMAGE,
    Phase.COMBAT_END,
    Phase.MAIN2,
    Phase.END,
    Phase.CLEANUP,
)

_NEXT: Dict[Phase, Phase] = {
    phase: PHASE_ORDER[(index + 1) % len(PHASE_ORDER)]
    for index, phase in enumerate(PHASE_ORDER)
}


def next_phase(phase: Phase) -> Phase:
    """The step after ``phase``; cleanup wraps around to untap."""
    return _NEXT[phase]


def can_play_sorcery(state: GameState, player_id: PlayerId) -> bool:
    """Sorcery timing: the player's own main phase with nothing pending."""
    return (state.active_player is player_id and state.phase.is_main
            and not state.pending and not state.game_over)


# =============================================================================
# Transitions
# =============================================================================

def _clear_temporary(player: Player) -> Player:
    battlefield = tuple(c.cleared_temporary() for c in player.battlefield)
    return replace(player, zones=replace(player.zones, battlefield=battlefield))


def _start_turn(state: GameState) -> GameState:
    new_active = state.active_player.other
    turn = state.turn + 1 if new_active is state.starting_player else state.turn
    state = replace(state, active_player=new_active, turn=turn)
    for pid in (PlayerId.SELF, PlayerId.OPPONENT):
        player = state.get_player(pid).clear_combat()
        if pid is new_active:
            player = untap_all(player)
        else:
            player = _clear_temporary(player)
        state = state.with_player(player)
    return state.with_log(f"{state.active.name}'s turn begins")


def _draw_step(state: GameState) -> GameState:
    player, card = draw_card(state.active)
    player = replace(player, has_drawn=True)
    state = state.with_player(player)
    if card is None:
        return state.with_log(f"{player.name} cannot draw: library is empty")
    return state.with_log(f"{player.name} draws a card")


def _combat_damage(state: GameState, max_trigger_depth: int) -> GameState:
    result = resolve_combat_damage(state.active, state.defending)
    state = state.with_player(result.attacking).with_player(result.defending)
    state = state.extend_log(result.logs)
    if not result.events:
        return state
    resolution = resolve_events(result.events, state.players, max_depth=max_trigger_depth)
    state = state.with_players(resolution.players).extend_log(resolution.logs)
    return replace(state, pending=state.pending + resolution.pending)


def _end_combat(state: GameState) -> GameState:
    return state.with_player(state.player.clear_combat()).with_player(state.opponent.clear_combat())


def advance_phase(state: GameState, max_trigger_depth: int = 10) -> GameState:
    """Move to the next step and apply the transition's effects."""
    current = state.phase
    target = next_phase(current)
    state = replace(state, phase=target)

    if current is Phase.CLEANUP:
        state = _start_turn(state)
    elif current is Phase.UPKEEP:
        state = _draw_step(state)
    elif current is Phase.COMBAT_BLOCKERS:
        state = _combat_damage(state, max_trigger_depth)
    elif current is Phase.COMBAT_DAMAGE:
        state = _end_combat(state)
    return state


def pass_turn(state: GameState) -> GameState:
    """Skip the rest of the turn and go to the next turn's untap step.

    Steps in between are skipped, so no combat damage or draws happen on
    the way; attack and block records are dropped.
    """
    state = _end_combat(state)
    return advance_phase(replace(state, phase=Phase.CLEANUP))
