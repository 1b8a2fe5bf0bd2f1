"""Commander Engine - Game Actions

Public entry points of the engine. Each action takes a GameState and
returns an ActionResult:

- accepted actions carry the new state
- rule refusals (not enough mana, wrong phase, land already played...)
  carry the old state plus one log line and ``accepted=False``
- referencing a card that is not where the caller says it is raises
  CardNotFoundError; that is a caller bug, not a game situation

After every accepted action, triggered abilities are resolved and the
game-over conditions are checked.

The Game class wraps a running game, holds its GameConfig and prints the
log when verbose.
"""
import random
from dataclasses import dataclass, replace
from typing import List, Optional, Sequence, Tuple

from ..cards.abilities import parse_card_abilities, unrecognized_segments
from . import turns
from .combat import attack_refusal, block_refusal, declare_attack, declare_blocks
from .errors import IllegalStateError
from .events import (
    Attacked, CounterPlaced, CreatureDied, EnteredBattlefield, GameEvent, SpellCast,
    UpkeepBegan,
)
from .mana import (
    ManaCost, can_pay_ability_cost, can_pay_cost, pay_ability_cost, pay_cost,
)
from .mana import tap_land_for_mana as tap_land
from .objects import CardInstance
from .player import Player
from .state import GameState
from .triggers import EffectContext, process_ability, resolve_events
from .triggers import resolve_search as complete_search
from .types import AbilityKind, CardType, Color, CounterKind, Phase, PlayerId, Zone
from .zones import (
    all_instances, draw_cards, get_card, initialize_player, move_card, mulligan,
)


# =============================================================================
# CONFIGURATION AND RESULT DATACLASSES
# =============================================================================

@dataclass
class GameConfig:
    """
    Configuration settings for a game.

    Attributes:
        starting_life: Initial life total for each player (default 40)
        starting_hand_size: Number of cards drawn at game start (default 7)
        verbose: Print log lines as they happen (default False)
        shuffle: Shuffle libraries at setup (default True)
        max_trigger_depth: Trigger cascade batches before giving up (default 10)
        poison_limit: Poison counters that lose the game (default 10)
        commander_damage_limit: Commander combat damage that loses the game (default 21)
        seed: Seed for the game's random source (default None)
    """
    starting_life: int = 40
    starting_hand_size: int = 7
    verbose: bool = False
    shuffle: bool = True
    max_trigger_depth: int = 10
    poison_limit: int = 10
    commander_damage_limit: int = 21
    seed: Optional[int] = None


DEFAULT_CONFIG = GameConfig()


@dataclass(frozen=True)
class ActionResult:
    """
    Outcome of a public action.

    Attributes:
        state: State after the action (the old state, plus a log line, if refused)
        accepted: False for a rule refusal
        message: Why the action was refused, empty otherwise
    """
    state: GameState
    accepted: bool = True
    message: str = ""


def _refuse(state: GameState, message: str) -> ActionResult:
    return ActionResult(state=state.with_log(f"Refused: {message}"), accepted=False, message=message)


def _blocked(state: GameState) -> Optional[str]:
    """Reason every action is refused right now, if any."""
    if state.game_over:
        return "the game is over"
    if state.pending:
        return f"a library search for {state.pending[0].source_name} is pending"
    return None


# =============================================================================
# SETUP
# =============================================================================

def new_game(self_deck: Sequence[CardInstance], opponent_deck: Sequence[CardInstance],
             config: GameConfig = DEFAULT_CONFIG, self_name: str = "You",
             opponent_name: str = "Opponent", rng: Optional[random.Random] = None,
             starting_player: PlayerId = PlayerId.SELF) -> GameState:
    """
    Start a game from two instantiated decks.

    Both decks are required. Commanders go to the command zone, each player
    draws an opening hand, and the game starts in the first main phase of
    turn 1.

    Raises:
        IllegalStateError: If a deck is empty or instance ids collide.
    """
    if not self_deck or not opponent_deck:
        raise IllegalStateError("both players need a deck")
    ids = [c.instance_id for c in self_deck] + [c.instance_id for c in opponent_deck]
    if len(set(ids)) != len(ids):
        raise IllegalStateError("instance ids must be unique across both decks")

    rng = rng or random.Random(config.seed)
    players = []
    for player_id, name, deck in ((PlayerId.SELF, self_name, self_deck),
                                  (PlayerId.OPPONENT, opponent_name, opponent_deck)):
        player = initialize_player(player_id, name, deck, starting_life=config.starting_life,
                                   rng=rng, shuffle=config.shuffle)
        player, _ = draw_cards(player, config.starting_hand_size)
        players.append(player)

    state = GameState(
        player=players[0],
        opponent=players[1],
        active_player=starting_player,
        starting_player=starting_player,
    )
    return state.with_log(f"Game started: {self_name} vs {opponent_name}, "
                          f"{state.get_player(starting_player).name} goes first")


def take_mulligan(state: GameState, player_id: PlayerId, mulligan_count: int = 1,
                  config: GameConfig = DEFAULT_CONFIG,
                  rng: Optional[random.Random] = None) -> ActionResult:
    """Shuffle the hand away and draw ``hand size - mulligan_count`` (at least 1)."""
    if state.turn != 1 or state.get_player(player_id).has_played_land:
        return _refuse(state, "mulligans are only taken before the game starts")
    player = mulligan(state.get_player(player_id), mulligan_count,
                      hand_size=config.starting_hand_size, rng=rng)
    state = state.with_player(player)
    return ActionResult(state.with_log(f"{player.name} mulligans to {len(player.hand)}"))


# =============================================================================
# RESOLUTION HELPERS
# =============================================================================

def check_game_over(state: GameState, config: GameConfig = DEFAULT_CONFIG) -> GameState:
    """
    End the game if a player has lost.

    A player loses at 0 or less life, at ``poison_limit`` poison counters,
    or after ``commander_damage_limit`` combat damage from commanders. If
    both lose at once the game is a draw.
    """
    if state.game_over:
        return state
    losers: List[Tuple[Player, str]] = []
    for player in (state.player, state.opponent):
        if player.life <= 0:
            losers.append((player, "life"))
        elif player.poison >= config.poison_limit:
            losers.append((player, "poison"))
        elif player.commander_damage_received >= config.commander_damage_limit:
            losers.append((player, "commander damage"))
    if not losers:
        return state
    lines = [f"{player.name} loses ({reason})" for player, reason in losers]
    if len(losers) == 2:
        return replace(state.extend_log(lines + ["The game is a draw"]), game_over=True)
    winner = losers[0][0].player_id.other
    lines.append(f"{state.get_player(winner).name} wins")
    return replace(state.extend_log(lines), game_over=True, winner=winner)


def _settle(state: GameState, events: Sequence[GameEvent], config: GameConfig,
            rng: Optional[random.Random] = None) -> GameState:
    """Resolve the triggers ``events`` set off, then check for a winner.

    Triggers never inherit the targets chosen for the action that set them
    off; each one picks its own.
    """
    if events:
        resolution = resolve_events(events, state.players, EffectContext(rng=rng),
                                    config.max_trigger_depth)
        state = state.with_players(resolution.players).extend_log(resolution.logs)
        state = replace(state, pending=state.pending + resolution.pending)
    return check_game_over(state, config)


# =============================================================================
# PLAYING CARDS
# =============================================================================

def _play_land(state: GameState, player: Player, card: CardInstance,
               config: GameConfig) -> ActionResult:
    if not turns.can_play_sorcery(state, player.player_id):
        return _refuse(state, "lands can only be played in your main phase")
    if player.has_played_land:
        return _refuse(state, "already played a land this turn")
    player = move_card(player, card.instance_id, Zone.HAND, Zone.BATTLEFIELD)
    player = replace(player, has_played_land=True)
    state = state.with_player(player).with_log(f"{player.name} plays {card.name}")
    entered = player.permanent(card.instance_id)
    return ActionResult(_settle(state, [EnteredBattlefield(player.player_id, entered)], config))


def play_card(state: GameState, player_id: PlayerId, card_id: str,
              config: GameConfig = DEFAULT_CONFIG,
              context: Optional[EffectContext] = None) -> ActionResult:
    """
    Play a card from hand: a land, a permanent spell or an instant/sorcery.

    Instants may be cast in any phase. Everything else needs the player's
    own main phase. Costs are paid by auto-tapping lands. Instants and
    sorceries resolve at once and go to the graveyard; cast triggers fire
    after the spell has resolved.

    Raises:
        CardNotFoundError: If the card is not in the player's hand.
    """
    reason = _blocked(state)
    if reason:
        return _refuse(state, reason)
    player = state.get_player(player_id)
    card = get_card(player, card_id, Zone.HAND)
    if card.is_land:
        return _play_land(state, player, card, config)

    is_instant = card.card_type is CardType.INSTANT
    if not is_instant and not turns.can_play_sorcery(state, player_id):
        return _refuse(state, f"{card.name} can only be cast in your main phase")
    cost = ManaCost.parse(card.definition.mana_cost)
    if not can_pay_cost(player, cost):
        return _refuse(state, f"not enough mana to cast {card.name} ({cost})")

    payment = pay_cost(player, cost)
    player = payment.player
    context = replace(context or EffectContext(), mana_spent=payment.spent)
    events: List[GameEvent] = []

    if card.definition.is_instant_or_sorcery:
        player = move_card(player, card_id, Zone.HAND, Zone.GRAVEYARD)
        state = state.with_player(player).with_log(f"{player.name} casts {card.name}")
        spell = next(iter(parse_card_abilities(card)), None)
        if spell is not None and spell.effects:
            result = process_ability(spell, card, player, state.get_player(player_id.other), context)
            state = state.with_player(result.player).with_player(result.opponent)
            state = state.extend_log(result.logs)
            if result.pending is not None:
                state = replace(state, pending=state.pending + (result.pending,))
            events.extend(result.events)
        else:
            state = state.with_log(f"{card.name} has no recognized effect")
    else:
        player = move_card(player, card_id, Zone.HAND, Zone.BATTLEFIELD)
        state = state.with_player(player).with_log(f"{player.name} casts {card.name}")
        events.append(EnteredBattlefield(player_id, player.permanent(card_id)))

    events.append(SpellCast(player_id, card, payment.spent))
    return ActionResult(_settle(state, events, config, context.rng))


def cast_commander(state: GameState, player_id: PlayerId, card_id: Optional[str] = None,
                   config: GameConfig = DEFAULT_CONFIG) -> ActionResult:
    """
    Cast the commander from the command zone.

    The cost goes up by {2} for every previous cast from the command zone.

    Raises:
        CardNotFoundError: If ``card_id`` is given and not in the command zone.
    """
    reason = _blocked(state)
    if reason:
        return _refuse(state, reason)
    player = state.get_player(player_id)
    if card_id is None:
        if not player.command_zone:
            return _refuse(state, f"{player.name} has no commander in the command zone")
        card = player.command_zone[0]
    else:
        card = get_card(player, card_id, Zone.COMMAND)
    if not turns.can_play_sorcery(state, player_id):
        return _refuse(state, f"{card.name} can only be cast in your main phase")

    cost = ManaCost.parse(card.definition.mana_cost).plus_generic(2 * player.commander_casts)
    if not can_pay_cost(player, cost):
        return _refuse(state, f"not enough mana to cast {card.name} ({cost})")
    payment = pay_cost(player, cost)
    player = move_card(payment.player, card.instance_id, Zone.COMMAND, Zone.BATTLEFIELD)
    player = replace(player, commander_casts=player.commander_casts + 1)
    state = state.with_player(player).with_log(f"{player.name} casts commander {card.name} for {cost}")
    events = [EnteredBattlefield(player_id, player.permanent(card.instance_id)),
              SpellCast(player_id, card, payment.spent)]
    return ActionResult(_settle(state, events, config))


# =============================================================================
# COMBAT
# =============================================================================

def declare_attackers(state: GameState, card_ids: Sequence[str],
                      config: GameConfig = DEFAULT_CONFIG) -> ActionResult:
    """
    Declare the active player's attackers, all attacking the other player.

    Only in the declare-attackers step, once per combat. Attack triggers
    resolve immediately.
    """
    reason = _blocked(state)
    if reason:
        return _refuse(state, reason)
    if state.phase is not Phase.COMBAT_ATTACKERS:
        return _refuse(state, "attackers are declared in the declare attackers step")
    attacker = state.active
    if attacker.attacking:
        return _refuse(state, "attackers were already declared this combat")
    card_ids = list(card_ids)
    refusal = attack_refusal(attacker, card_ids)
    if refusal:
        return _refuse(state, refusal)

    attacker = declare_attack(attacker, card_ids, state.active_player.other)
    names = ", ".join(attacker.permanent(cid).name for cid in card_ids) or "nothing"
    state = state.with_player(attacker).with_log(f"{attacker.name} attacks with {names}")
    events = [Attacked(attacker.player_id, attacker.permanent(cid)) for cid in card_ids]
    return ActionResult(_settle(state, events, config))


def declare_blockers(state: GameState, pairs: Sequence[Tuple[str, str]],
                     config: GameConfig = DEFAULT_CONFIG) -> ActionResult:
    """
    Declare the defending player's blocks as (blocker_id, attacker_id) pairs.

    An empty sequence means no blocks.
    """
    reason = _blocked(state)
    if reason:
        return _refuse(state, reason)
    if state.phase is not Phase.COMBAT_BLOCKERS:
        return _refuse(state, "blockers are declared in the declare blockers step")
    defender = state.defending
    if defender.blocking:
        return _refuse(state, "blockers were already declared this combat")
    pairs = [tuple(pair) for pair in pairs]
    refusal = block_refusal(defender, state.active, pairs)
    if refusal:
        return _refuse(state, refusal)

    defender = declare_blocks(defender, pairs)
    state = state.with_player(defender)
    if pairs:
        lines = [f"{defender.permanent(b).name} blocks {state.active.permanent(a).name}"
                 for b, a in pairs]
    else:
        lines = [f"{defender.name} does not block"]
    return ActionResult(state.extend_log(lines))


# =============================================================================
# ABILITIES AND MANA
# =============================================================================

def activate_ability(state: GameState, player_id: PlayerId, card_id: str, ability_index: int,
                     config: GameConfig = DEFAULT_CONFIG,
                     context: Optional[EffectContext] = None) -> ActionResult:
    """
    Activate the ``ability_index``-th ability of a permanent.

    Indexes refer to parse_card_abilities(card). Abilities can be activated
    in any phase.

    Raises:
        CardNotFoundError: If the card is not on the player's battlefield.
        IllegalStateError: If the index is out of range.
    """
    reason = _blocked(state)
    if reason:
        return _refuse(state, reason)
    player = state.get_player(player_id)
    card = get_card(player, card_id, Zone.BATTLEFIELD)
    abilities = parse_card_abilities(card)
    if not 0 <= ability_index < len(abilities):
        raise IllegalStateError(f"{card.name} has no ability #{ability_index}")
    ability = abilities[ability_index]
    if ability.kind is not AbilityKind.ACTIVATED:
        return _refuse(state, f"ability #{ability_index} of {card.name} is not an activated ability")
    if ability.is_inert:
        return _refuse(state, f"{card.name}: ability has no recognized effect")
    if not can_pay_ability_cost(player, card, ability.cost):
        return _refuse(state, f"cannot pay the cost of {card.name}'s ability")

    payment = pay_ability_cost(player, card, ability.cost)
    player = payment.player
    events: List[GameEvent] = []
    for gone in payment.sacrificed:
        if gone.is_creature:
            events.append(CreatureDied(player_id, gone))
    if ability.cost.minus_counters and player.permanent(card_id) is not None:
        events.append(CounterPlaced(player_id, player.permanent(card_id), CounterKind.MINUS_ONE,
                                    ability.cost.minus_counters))
    state = state.with_player(player).with_log(f"{player.name} activates {card.name}: {ability.raw_text}")

    context = context or EffectContext()
    if payment.spent.total:
        context = replace(context, mana_spent=payment.spent)
    source = player.permanent(card_id) or card
    result = process_ability(ability, source, player, state.get_player(player_id.other), context)
    state = state.with_player(result.player).with_player(result.opponent).extend_log(result.logs)
    if result.pending is not None:
        state = replace(state, pending=state.pending + (result.pending,))
    events.extend(result.events)
    return ActionResult(_settle(state, events, config, context.rng))


def tap_land_for_mana(state: GameState, player_id: PlayerId, card_id: str,
                      color: Optional[Color] = None) -> ActionResult:
    """
    Tap a land for mana. ``color`` picks the color of a land with a choice.

    Raises:
        CardNotFoundError: If the land is not on the player's battlefield.
    """
    if state.game_over:
        return _refuse(state, "the game is over")
    player = state.get_player(player_id)
    card = get_card(player, card_id, Zone.BATTLEFIELD)
    if not card.is_land:
        return _refuse(state, f"{card.name} is not a land")
    if card.tapped:
        return _refuse(state, f"{card.name} is already tapped")
    player = tap_land(player, card_id, color)
    return ActionResult(state.with_player(player).with_log(
        f"{player.name} taps {card.name} (pool: {player.mana})"))


def resolve_search(state: GameState, chosen_ids: Sequence[str],
                   config: GameConfig = DEFAULT_CONFIG,
                   rng: Optional[random.Random] = None) -> ActionResult:
    """
    Finish the oldest pending library search with the chosen card ids.

    Raises:
        IllegalStateError: If a choice is not allowed by the search.
    """
    if not state.pending:
        return _refuse(state, "no library search is pending")
    search, rest = state.pending[0], state.pending[1:]
    player, logs, events = complete_search(state.get_player(search.player_id), search,
                                           list(chosen_ids), rng)
    state = replace(state.with_player(player), pending=rest).extend_log(logs)
    return ActionResult(_settle(state, events, config, rng))


def run_upkeep_triggers(state: GameState, config: GameConfig = DEFAULT_CONFIG) -> ActionResult:
    """Fire the active player's "at the beginning of your upkeep" triggers."""
    reason = _blocked(state)
    if reason:
        return _refuse(state, reason)
    if state.phase is not Phase.UPKEEP:
        return _refuse(state, "upkeep triggers run during the upkeep step")
    return ActionResult(_settle(state, [UpkeepBegan(state.active_player)], config))


# =============================================================================
# TURN STRUCTURE AND LIFE
# =============================================================================

def advance_phase(state: GameState, config: GameConfig = DEFAULT_CONFIG) -> ActionResult:
    """Move to the next step, applying its transition effects."""
    reason = _blocked(state)
    if reason:
        return _refuse(state, reason)
    state = turns.advance_phase(state, config.max_trigger_depth)
    return ActionResult(check_game_over(state, config))


def pass_turn(state: GameState, config: GameConfig = DEFAULT_CONFIG) -> ActionResult:
    """End the turn and go straight to the next turn's untap step."""
    reason = _blocked(state)
    if reason:
        return _refuse(state, reason)
    return ActionResult(check_game_over(turns.pass_turn(state), config))


def change_life(state: GameState, player_id: PlayerId, delta: int,
                config: GameConfig = DEFAULT_CONFIG) -> ActionResult:
    reason = _blocked(state)
    if reason:
        return _refuse(state, reason)
    player = state.get_player(player_id)
    player = replace(player, life=player.life + delta)
    state = state.with_player(player).with_log(
        f"{player.name} {'gains' if delta >= 0 else 'loses'} {abs(delta)} life ({player.life})")
    return ActionResult(check_game_over(state, config))


def all_card_locations(state: GameState):
    """(owner, zone, card) for every card in the game."""
    return all_instances((state.player, state.opponent))


# =============================================================================
# GAME CONTROLLER
# =============================================================================

class Game:
    """
    A running game.

    Holds the current GameState and the GameConfig, applies actions to the
    state and prints new log lines when ``config.verbose`` is set.

    Attributes:
        config: Game configuration
        state: Current snapshot
        rng: Random source for shuffles
    """

    def __init__(self, self_deck: Sequence[CardInstance], opponent_deck: Sequence[CardInstance],
                 config: GameConfig = None, self_name: str = "You",
                 opponent_name: str = "Opponent", rng: Optional[random.Random] = None,
                 starting_player: PlayerId = PlayerId.SELF):
        self.config = config or GameConfig()
        self.rng = rng or random.Random(self.config.seed)
        self.state = new_game(self_deck, opponent_deck, self.config, self_name,
                              opponent_name, self.rng, starting_player)
        self._printed = 0
        self._flush_log()
        definitions = {c.definition.name: c for c in list(self_deck) + list(opponent_deck)}
        for card in definitions.values():
            for segment in unrecognized_segments(card):
                self.log(f"{card.name}: unrecognized text {segment!r}", level="debug")

    # =========================================================================
    # STATE ACCESS
    # =========================================================================

    @property
    def turn_number(self) -> int:
        return self.state.turn

    @property
    def phase(self) -> Phase:
        return self.state.phase

    @property
    def active_player_id(self) -> PlayerId:
        return self.state.active_player

    @property
    def game_over(self) -> bool:
        return self.state.game_over

    @property
    def winner_id(self) -> Optional[PlayerId]:
        return self.state.winner

    def get_player(self, player_id: PlayerId) -> Player:
        return self.state.get_player(player_id)

    # =========================================================================
    # ACTIONS
    # =========================================================================

    def _apply(self, result: ActionResult) -> ActionResult:
        self.state = result.state
        self._flush_log(level="info" if result.accepted else "warning")
        return result

    def play_card(self, player_id: PlayerId, card_id: str,
                  context: Optional[EffectContext] = None) -> ActionResult:
        return self._apply(play_card(self.state, player_id, card_id, self.config, context))

    def cast_commander(self, player_id: PlayerId, card_id: Optional[str] = None) -> ActionResult:
        return self._apply(cast_commander(self.state, player_id, card_id, self.config))

    def declare_attackers(self, card_ids: Sequence[str]) -> ActionResult:
        return self._apply(declare_attackers(self.state, card_ids, self.config))

    def declare_blockers(self, pairs: Sequence[Tuple[str, str]]) -> ActionResult:
        return self._apply(declare_blockers(self.state, pairs, self.config))

    def activate_ability(self, player_id: PlayerId, card_id: str, ability_index: int,
                         context: Optional[EffectContext] = None) -> ActionResult:
        return self._apply(activate_ability(self.state, player_id, card_id, ability_index,
                                            self.config, context))

    def tap_land_for_mana(self, player_id: PlayerId, card_id: str,
                          color: Optional[Color] = None) -> ActionResult:
        return self._apply(tap_land_for_mana(self.state, player_id, card_id, color))

    def resolve_search(self, chosen_ids: Sequence[str]) -> ActionResult:
        return self._apply(resolve_search(self.state, chosen_ids, self.config, self.rng))

    def run_upkeep_triggers(self) -> ActionResult:
        return self._apply(run_upkeep_triggers(self.state, self.config))

    def advance_phase(self) -> ActionResult:
        return self._apply(advance_phase(self.state, self.config))

    def pass_turn(self) -> ActionResult:
        return self._apply(pass_turn(self.state, self.config))

    def change_life(self, player_id: PlayerId, delta: int) -> ActionResult:
        return self._apply(change_life(self.state, player_id, delta, self.config))

    def mulligan(self, player_id: PlayerId, mulligan_count: int = 1) -> ActionResult:
        return self._apply(take_mulligan(self.state, player_id, mulligan_count, self.config, self.rng))

    # =========================================================================
    # LOGGING METHODS
    # =========================================================================

    def log(self, message: str, level: str = "info"):
        """
        Log a message if verbose mode is enabled.

        Args:
            message: The message to log
            level: Log level ("info", "debug", "warning", "error")
        """
        if self.config.verbose:
            prefix = {
                "info": "[INFO]",
                "debug": "[DEBUG]",
                "warning": "[WARN]",
                "error": "[ERROR]"
            }.get(level, "[INFO]")
            print(f"{prefix} Turn {self.state.turn}: {message}")

    def _flush_log(self, level: str = "info"):
        """Print game log lines added since the last flush."""
        new_lines = self.state.log[self._printed:]
        self._printed = len(self.state.log)
        if not self.config.verbose:
            return
        for index, line in enumerate(new_lines, start=1):
            # a refusal adds exactly one line, the last one
            prefix = "[WARN]" if level == "warning" and index == len(new_lines) else "[INFO]"
            print(f"{prefix} {line}")
