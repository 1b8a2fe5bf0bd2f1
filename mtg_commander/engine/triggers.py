"""Commander Engine - Triggered Effect Processing

Two layers:

1. process_triggered_effect applies one AbilityEffect. Every EffectType
   has a handler in EFFECT_HANDLERS; a missing handler fails at import.
2. collect_triggers / resolve_events find the triggered abilities an event
   sets off and resolve them breadth-first. Each batch is collected from a
   snapshot taken before any of its triggers resolve, so a token created by
   a trigger cannot trigger the batch that created it.

Named-card hooks (cards.special_cards) replace the parsed text of those
cards for the events they cover.
"""
import random
from dataclasses import dataclass, field, replace
from functools import lru_cache
from typing import Callable, Dict, List, Optional, Sequence, Tuple

from ..cards.abilities import SELF_REF, count_mana_colors, has_keyword, parse_card_abilities
from ..cards.special_cards import COMMAND_ZONE_HOOKS, SpecialHook, special_hook
from .effects import AbilityEffect, ParsedAbility
from .errors import IllegalStateError
from .events import (
    Attacked, CombatDamageToPlayer, CounterPlaced, CreatureDied, EffectResult,
    EnteredBattlefield, GameEvent, PendingSearch, SpellCast, UpkeepBegan,
)
from .objects import CardDefinition, CardInstance
from .player import ManaPool, Player
from .types import (
    AbilityKind, Color, CounterKind, EffectType, PlayerId, SearchMode, TargetKind,
    TriggerEvent, VariableAmount, Zone,
)
from .zones import (
    add_card, add_counters, check_creature_deaths, create_tokens, destroy_permanent,
    draw_cards, remove_card, return_to_hand, sacrifice_permanent, search_library,
    shuffle_library, untap_permanent, update_permanent,
)


BASIC_LAND_NAMES = ("Plains", "Island", "Swamp", "Mountain", "Forest")

Players = Dict[PlayerId, Player]


@dataclass(frozen=True)
class EffectContext:
    """
    Choices and facts an effect may need when it resolves.

    Attributes:
        mana_spent: Mana spent on the spell (Converge)
        target_id: Chosen target permanent, if the caller picked one
        target_player: Chosen target player, if the caller picked one
        chosen_color: Color for "mana of any color"
        scry_bottom: Card ids to put on the bottom when scrying
        rng: Random source for shuffles
    """
    mana_spent: ManaPool = field(default_factory=ManaPool)
    target_id: Optional[str] = None
    target_player: Optional[PlayerId] = None
    chosen_color: Optional[Color] = None
    scry_bottom: Tuple[str, ...] = ()
    rng: Optional[random.Random] = None


DEFAULT_CONTEXT = EffectContext()


# =============================================================================
# Helpers
# =============================================================================

def resolve_amount(effect: AbilityEffect, player: Player, context: EffectContext) -> int:
    """The effect's amount, computing variable amounts now."""
    if effect.variable is VariableAmount.CONVERGE:
        return count_mana_colors(context.mana_spent)
    if effect.variable is VariableAmount.GOBLINS_YOU_CONTROL:
        return player.count_subtype("Goblin")
    if effect.variable is VariableAmount.LANDS_YOU_CONTROL:
        return len(player.lands())
    return effect.amount


def _largest(creatures: List[CardInstance]) -> Optional[CardInstance]:
    if not creatures:
        return None
    return max(creatures, key=lambda c: (c.effective_power, c.effective_toughness))


def _pick_creature(source: CardInstance, player: Player, opponent: Player,
                   context: EffectContext, harmful: bool) -> Optional[Tuple[PlayerId, CardInstance]]:
    """Choose the creature an effect targets.

    An explicit target in the context wins. Otherwise harmful effects hit
    the opponent's largest creature and helpful ones go to the source, or
    to the controller's largest creature.
    """
    if context.target_id:
        for side in (player, opponent):
            card = side.permanent(context.target_id)
            if card is not None and card.is_creature:
                return side.player_id, card
    if harmful:
        card = _largest(opponent.creatures())
        return (opponent.player_id, card) if card else None
    own = player.permanent(source.instance_id)
    if own is not None and own.is_creature:
        return player.player_id, own
    card = _largest(player.creatures())
    return (player.player_id, card) if card else None


def _apply_to(player: Player, opponent: Player, side: PlayerId,
              change: Callable[[Player], Player]) -> Tuple[Player, Player]:
    if side is player.player_id:
        return change(player), opponent
    return player, change(opponent)


def _destroy(player: Player, opponent: Player, side: PlayerId, card_id: str,
             logs: List[str], events: List[GameEvent]) -> Tuple[Player, Player]:
    owner = player if side is player.player_id else opponent
    before = owner.permanent(card_id)
    owner, gone = destroy_permanent(owner, card_id)
    if gone is None:
        logs.append(f"{before.name} regenerates")
    else:
        logs.append(f"{gone.name} is destroyed")
        if before.is_creature:
            events.append(CreatureDied(controller=side, card=before))
    if side is player.player_id:
        return owner, opponent
    return player, owner


def _is_basic_land(card: CardInstance) -> bool:
    if not card.is_land:
        return False
    return card.name in BASIC_LAND_NAMES or "basic" in (card.definition.subtype or "").lower()


def _land_of_types(card: CardInstance, land_types: Sequence[str]) -> bool:
    words = f"{card.definition.subtype or ''} {card.name}".lower()
    return _is_basic_land(card) and any(t.lower() in words for t in land_types)


def search_candidates(player: Player, mode: SearchMode,
                      land_types: Sequence[str] = ()) -> List[CardInstance]:
    """Library cards a search of this shape may find."""
    if mode is SearchMode.TWO_LANDS_TO_BATTLEFIELD:
        return search_library(player, lambda c: c.is_land)
    if mode is SearchMode.BASIC_LAND_OF_TYPES:
        return search_library(player, lambda c: _land_of_types(c, land_types))
    return search_library(player, _is_basic_land)


# =============================================================================
# Effect Handlers
# =============================================================================

def _start_search(effect: AbilityEffect, source: CardInstance, player: Player,
                  opponent: Player, context: EffectContext, logs: List[str],
                  events: List[GameEvent]) -> EffectResult:
    mode = effect.search or SearchMode.SINGLE_BASIC_LAND
    candidates = search_candidates(player, mode, effect.land_types)
    if not candidates:
        player = shuffle_library(player, context.rng)
        logs.append(f"{source.name}: search found nothing, library shuffled")
        return EffectResult(player, opponent, tuple(logs), tuple(events))
    two = mode in (SearchMode.TWO_BASIC_LANDS_ONE_TO_HAND, SearchMode.TWO_LANDS_TO_BATTLEFIELD)
    pending = PendingSearch(
        player_id=player.player_id,
        source_name=source.name,
        mode=mode,
        candidate_ids=tuple(c.instance_id for c in candidates),
        max_choices=2 if two else 1,
        put_tapped=effect.put_tapped,
        to_hand=effect.to_hand,
    )
    logs.append(f"{source.name}: searching library ({len(candidates)} candidates)")
    return EffectResult(player, opponent, tuple(logs), tuple(events), pending)


def _sacrifice_search(effect, source, player, opponent, context) -> EffectResult:
    logs: List[str] = []
    events: List[GameEvent] = []
    if player.permanent(source.instance_id) is not None:
        player, gone = sacrifice_permanent(player, source.instance_id)
        logs.append(f"{source.name} is sacrificed")
        if gone.is_creature:
            events.append(CreatureDied(controller=player.player_id, card=gone))
    return _start_search(effect, source, player, opponent, context, logs, events)


def _search(effect, source, player, opponent, context) -> EffectResult:
    return _start_search(effect, source, player, opponent, context, [], [])


def _add_mana(effect, source, player, opponent, context) -> EffectResult:
    pool = player.mana
    if effect.any_color:
        colors = [c for c in source.definition.colors if c.is_colored]
        color = context.chosen_color or (colors[0] if colors else Color.WHITE)
        pool = pool.add(color, effect.amount)
    else:
        for color in effect.mana:
            pool = pool.add(color)
    return EffectResult(player.with_mana(pool), opponent,
                        logs=(f"{source.name} adds mana ({pool})",))


def _regenerate(effect, source, player, opponent, context) -> EffectResult:
    picked = _pick_creature(source, player, opponent, context, harmful=False)
    if picked is None:
        return EffectResult(player, opponent, logs=(f"{source.name}: nothing to regenerate",))
    side, card = picked
    player, opponent = _apply_to(player, opponent, side, lambda p: update_permanent(
        p, card.instance_id, lambda c: replace(c, regeneration_shield=True)))
    return EffectResult(player, opponent, logs=(f"{card.name} gains a regeneration shield",))


def _untap(effect, source, player, opponent, context) -> EffectResult:
    if effect.target is TargetKind.SELF:
        if player.permanent(source.instance_id) is None:
            return EffectResult(player, opponent)
        player = untap_permanent(player, source.instance_id)
        return EffectResult(player, opponent, logs=(f"{source.name} untaps",))
    picked = _pick_creature(source, player, opponent, context, harmful=False)
    if picked is None:
        return EffectResult(player, opponent)
    side, card = picked
    player, opponent = _apply_to(player, opponent, side, lambda p: untap_permanent(p, card.instance_id))
    return EffectResult(player, opponent, logs=(f"{card.name} untaps",))


def _draw(effect, source, player, opponent, context) -> EffectResult:
    amount = resolve_amount(effect, player, context)
    player, drawn = draw_cards(player, amount)
    if len(drawn) < amount:
        message = f"{player.name} tried to draw {amount} but the library ran out ({len(drawn)} drawn)"
    else:
        message = f"{player.name} draws {amount} card(s)"
    return EffectResult(player, opponent, logs=(message,))


def _gain_life(effect, source, player, opponent, context) -> EffectResult:
    amount = resolve_amount(effect, player, context)
    return EffectResult(player.gain_life(amount), opponent,
                        logs=(f"{player.name} gains {amount} life",))


def _lose_life(effect, source, player, opponent, context) -> EffectResult:
    amount = resolve_amount(effect, player, context)
    if effect.target is TargetKind.CONTROLLER or context.target_player is player.player_id:
        return EffectResult(player.lose_life(amount), opponent,
                            logs=(f"{player.name} loses {amount} life",))
    return EffectResult(player, opponent.lose_life(amount),
                        logs=(f"{opponent.name} loses {amount} life",))


def _deal_damage(effect, source, player, opponent, context) -> EffectResult:
    amount = resolve_amount(effect, player, context)
    creature_target = effect.target is TargetKind.ANY_CREATURE or (
        effect.target is TargetKind.ANY_TARGET and context.target_id is not None)
    if not creature_target:
        if context.target_player is player.player_id:
            return EffectResult(player.lose_life(amount), opponent,
                                logs=(f"{source.name} deals {amount} damage to {player.name}",))
        return EffectResult(player, opponent.lose_life(amount),
                            logs=(f"{source.name} deals {amount} damage to {opponent.name}",))

    picked = _pick_creature(source, player, opponent, context, harmful=True)
    if picked is None:
        return EffectResult(player, opponent, logs=(f"{source.name}: no creature to damage",))
    side, card = picked
    logs = [f"{source.name} deals {amount} damage to {card.name}"]
    events: List[GameEvent] = []
    lethal = amount >= card.effective_toughness or (amount > 0 and has_keyword(source, "deathtouch"))
    if lethal:
        player, opponent = _destroy(player, opponent, side, card.instance_id, logs, events)
    return EffectResult(player, opponent, tuple(logs), tuple(events))


def _destroy_effect(effect, source, player, opponent, context) -> EffectResult:
    logs: List[str] = []
    events: List[GameEvent] = []
    if effect.target is TargetKind.ALL_CREATURES:
        for side in (player.player_id, opponent.player_id):
            owner = player if side is player.player_id else opponent
            for card in owner.creatures():
                player, opponent = _destroy(player, opponent, side, card.instance_id, logs, events)
        return EffectResult(player, opponent, tuple(logs), tuple(events))
    picked = _pick_creature(source, player, opponent, context, harmful=True)
    if picked is None:
        return EffectResult(player, opponent, logs=(f"{source.name}: nothing to destroy",))
    side, card = picked
    player, opponent = _destroy(player, opponent, side, card.instance_id, logs, events)
    return EffectResult(player, opponent, tuple(logs), tuple(events))


def _counter_spell(effect, source, player, opponent, context) -> EffectResult:
    # No stack: a counterspell always resolves with nothing to counter
    return EffectResult(player, opponent, logs=(f"{source.name}: no spell to counter",))


def _return_to_hand(effect, source, player, opponent, context) -> EffectResult:
    logs: List[str] = []
    if effect.target is TargetKind.ALL_ATTACKING:
        for side in (player.player_id, opponent.player_id):
            owner = player if side is player.player_id else opponent
            for card_id in owner.attacking_ids:
                card = owner.permanent(card_id)
                if card is None:
                    continue
                player, opponent = _apply_to(player, opponent, side,
                                             lambda p, cid=card_id: return_to_hand(p, cid))
                logs.append(f"{card.name} returns to its owner's hand")
        return EffectResult(player, opponent, tuple(logs))
    picked = _pick_creature(source, player, opponent, context, harmful=True)
    if picked is None:
        return EffectResult(player, opponent, logs=(f"{source.name}: nothing to return",))
    side, card = picked
    player, opponent = _apply_to(player, opponent, side,
                                 lambda p: return_to_hand(p, card.instance_id))
    return EffectResult(player, opponent, logs=(f"{card.name} returns to its owner's hand",))


def _scry(effect, source, player, opponent, context) -> EffectResult:
    amount = resolve_amount(effect, player, context)
    top, rest = player.library[:amount], player.library[amount:]
    bottom = tuple(c for c in top if c.instance_id in context.scry_bottom)
    keep = tuple(c for c in top if c.instance_id not in context.scry_bottom)
    player = player.with_zone(Zone.LIBRARY, keep + rest + bottom)
    return EffectResult(player, opponent,
                        logs=(f"{player.name} scries {amount} ({len(bottom)} to the bottom)",))


def _proliferate(effect, source, player, opponent, context) -> EffectResult:
    """Add one of each kind of counter already there, in the controller's favor.

    The controller's permanents get +1/+1 counters, the opponent's get
    -1/-1 counters, and an opponent who already has poison gets one more.
    """
    events: List[GameEvent] = []
    for card in player.battlefield:
        if card.positive_counters > 0:
            player = add_counters(player, card.instance_id, CounterKind.PLUS_ONE, 1)
            events.append(CounterPlaced(controller=player.player_id,
                                        card=player.permanent(card.instance_id),
                                        kind=CounterKind.PLUS_ONE))
    for card in opponent.battlefield:
        if card.negative_counters > 0:
            opponent = add_counters(opponent, card.instance_id, CounterKind.MINUS_ONE, 1)
            events.append(CounterPlaced(controller=player.player_id,
                                        card=opponent.permanent(card.instance_id),
                                        kind=CounterKind.MINUS_ONE))
    if opponent.poison > 0:
        opponent = opponent.add_poison(1)
    return EffectResult(player, opponent,
                        logs=(f"{source.name}: proliferate ({len(events)} permanent(s))",),
                        events=tuple(events))


def _give_poison(effect, source, player, opponent, context) -> EffectResult:
    amount = resolve_amount(effect, player, context)
    return EffectResult(player, opponent.add_poison(amount),
                        logs=(f"{opponent.name} gets {amount} poison counter(s)",))


def _put_counter(effect, source, player, opponent, context) -> EffectResult:
    kind = effect.counter or CounterKind.PLUS_ONE
    amount = resolve_amount(effect, player, context)
    if effect.target is TargetKind.SELF:
        own = player.permanent(source.instance_id)
        targets = [(player.player_id, own)] if own is not None else []
    elif effect.target is TargetKind.OPPONENT_CREATURES:
        targets = [(opponent.player_id, c) for c in opponent.creatures()]
    elif effect.target is TargetKind.ALL_CREATURES:
        targets = [(player.player_id, c) for c in player.creatures()]
        targets += [(opponent.player_id, c) for c in opponent.creatures()]
    else:
        picked = _pick_creature(source, player, opponent, context,
                                harmful=kind is CounterKind.MINUS_ONE)
        targets = [picked] if picked else []

    if not targets:
        return EffectResult(player, opponent, logs=(f"{source.name}: no permanent to put counters on",))
    logs: List[str] = []
    events: List[GameEvent] = []
    for side, card in targets:
        player, opponent = _apply_to(player, opponent, side,
                                     lambda p, cid=card.instance_id: add_counters(p, cid, kind, amount))
        owner = player if side is player.player_id else opponent
        events.append(CounterPlaced(controller=player.player_id,
                                    card=owner.permanent(card.instance_id),
                                    kind=kind, amount=amount))
        logs.append(f"{source.name} puts {amount} {kind.value} counter(s) on {card.name}")
    return EffectResult(player, opponent, tuple(logs), tuple(events))


def _create_token(effect, source, player, opponent, context) -> EffectResult:
    count = resolve_amount(effect, player, context)
    if effect.token is None or count <= 0:
        return EffectResult(player, opponent, logs=(f"{source.name} creates no tokens",))
    player, tokens = create_tokens(player, effect.token, count)
    events = tuple(EnteredBattlefield(controller=player.player_id, card=t) for t in tokens)
    token = effect.token
    return EffectResult(player, opponent,
                        logs=(f"{source.name} creates {count} {token.power}/{token.toughness} "
                              f"{token.name} token(s)",),
                        events=events)


def _pump(effect, source, player, opponent, context) -> EffectResult:
    power, toughness = effect.pump
    if effect.target is TargetKind.CONTROLLER:
        for card in player.creatures():
            player = update_permanent(player, card.instance_id, lambda c: c.pumped(power, toughness))
        return EffectResult(player, opponent,
                            logs=(f"{player.name}'s creatures get {power:+d}/{toughness:+d}",))
    if effect.target is TargetKind.SELF and player.permanent(source.instance_id) is not None:
        picked = (player.player_id, player.permanent(source.instance_id))
    else:
        picked = _pick_creature(source, player, opponent, context, harmful=False)
    if picked is None:
        return EffectResult(player, opponent)
    side, card = picked
    player, opponent = _apply_to(player, opponent, side, lambda p: update_permanent(
        p, card.instance_id, lambda c: c.pumped(power, toughness)))
    return EffectResult(player, opponent,
                        logs=(f"{card.name} gets {power:+d}/{toughness:+d} until end of turn",))


EffectHandler = Callable[[AbilityEffect, CardInstance, Player, Player, EffectContext], EffectResult]

EFFECT_HANDLERS: Dict[EffectType, EffectHandler] = {
    EffectType.SACRIFICE_SEARCH: _sacrifice_search,
    EffectType.SEARCH_LIBRARY: _search,
    EffectType.ADD_MANA: _add_mana,
    EffectType.REGENERATE: _regenerate,
    EffectType.UNTAP: _untap,
    EffectType.DRAW_CARD: _draw,
    EffectType.GAIN_LIFE: _gain_life,
    EffectType.LOSE_LIFE: _lose_life,
    EffectType.DEAL_DAMAGE: _deal_damage,
    EffectType.DESTROY: _destroy_effect,
    EffectType.COUNTER_SPELL: _counter_spell,
    EffectType.RETURN_TO_HAND: _return_to_hand,
    EffectType.SCRY: _scry,
    EffectType.PROLIFERATE: _proliferate,
    EffectType.GIVE_POISON: _give_poison,
    EffectType.PUT_COUNTER: _put_counter,
    EffectType.CREATE_TOKEN: _create_token,
    EffectType.PUMP: _pump,
}

_unhandled = set(EffectType) - set(EFFECT_HANDLERS)
if _unhandled:
    raise RuntimeError(f"no handler for effect types: {sorted(t.value for t in _unhandled)}")


def process_triggered_effect(effect: AbilityEffect, source: CardInstance, player: Player,
                             opponent: Player,
                             context: Optional[EffectContext] = None) -> EffectResult:
    """Apply one effect.

    Args:
        effect: The effect to apply
        source: Card the effect comes from
        player: Controller of ``source``
        opponent: The other player
        context: Choices and spent mana (defaults to none)

    Returns:
        EffectResult with both players, log lines, caused events and a
        pending search if the effect needs a choice.
    """
    return EFFECT_HANDLERS[effect.effect_type](effect, source, player, opponent,
                                               context or DEFAULT_CONTEXT)


def process_ability(ability: ParsedAbility, source: CardInstance, player: Player,
                    opponent: Player, context: Optional[EffectContext] = None) -> EffectResult:
    """Apply every effect of an ability in order."""
    result = EffectResult(player, opponent)
    for effect in ability.effects:
        step = process_triggered_effect(effect, source, result.player, result.opponent, context)
        result = result.merged(step.player, step.opponent, step.logs, step.events, step.pending)
    return result


# =============================================================================
# Trigger Collection
# =============================================================================

@dataclass(frozen=True)
class PendingTrigger:
    """A triggered ability (or named-card hook) waiting to resolve."""
    controller: PlayerId
    source: CardInstance
    trigger: TriggerEvent
    event: GameEvent
    ability: Optional[ParsedAbility] = None
    hook: Optional[SpecialHook] = None


@lru_cache(maxsize=1024)
def _triggered(definition: CardDefinition) -> Tuple[ParsedAbility, ...]:
    return tuple(a for a in parse_card_abilities(definition) if a.kind is AbilityKind.TRIGGERED)


def _names_self(ability: ParsedAbility) -> bool:
    return SELF_REF.lower() in ability.condition.lower()


def _event_triggers(event: GameEvent) -> Tuple[TriggerEvent, ...]:
    if isinstance(event, EnteredBattlefield):
        return (TriggerEvent.ENTERS_BATTLEFIELD, TriggerEvent.LANDFALL)
    if isinstance(event, CounterPlaced):
        return (TriggerEvent.PUT_COUNTER,)
    if isinstance(event, CombatDamageToPlayer):
        return (TriggerEvent.DEALS_COMBAT_DAMAGE_TO_PLAYER, TriggerEvent.DEALS_DAMAGE)
    if isinstance(event, SpellCast):
        return (TriggerEvent.CAST_SPELL,)
    if isinstance(event, CreatureDied):
        return (TriggerEvent.DIES, TriggerEvent.DIES_OTHER_CREATURE)
    if isinstance(event, Attacked):
        return (TriggerEvent.ATTACKS,)
    if isinstance(event, UpkeepBegan):
        return (TriggerEvent.UPKEEP,)
    return ()


def _sources(event: GameEvent, players: Players) -> List[Tuple[PlayerId, CardInstance, Zone]]:
    """Cards whose abilities may answer ``event``, from the current snapshot."""
    controller = players[event.controller]
    sources = [(event.controller, c, Zone.BATTLEFIELD) for c in controller.battlefield]
    if isinstance(event, CreatureDied):
        other = players[event.controller.other]
        sources += [(other.player_id, c, Zone.BATTLEFIELD) for c in other.battlefield]
        sources.append((event.controller, event.card, Zone.GRAVEYARD))
    elif isinstance(event, SpellCast):
        sources += [(event.controller, c, Zone.COMMAND) for c in controller.command_zone]
    return sources


def _ability_matches(ability: ParsedAbility, trigger: TriggerEvent, event: GameEvent,
                     controller: PlayerId, source: CardInstance, zone: Zone) -> bool:
    condition = ability.condition.lower()
    if zone is Zone.COMMAND and not ability.from_command_zone:
        return False

    if trigger is TriggerEvent.ENTERS_BATTLEFIELD:
        if _names_self(ability):
            return event.card.instance_id == source.instance_id
        if "another" in condition and event.card.instance_id == source.instance_id:
            return False
        return "creature" not in condition or event.card.is_creature
    if trigger is TriggerEvent.LANDFALL:
        return event.card.is_land
    if trigger is TriggerEvent.PUT_COUNTER:
        if "-1/-1" in condition and event.kind is not CounterKind.MINUS_ONE:
            return False
        if "+1/+1" in condition and event.kind is not CounterKind.PLUS_ONE:
            return False
        return True
    if trigger in (TriggerEvent.DEALS_COMBAT_DAMAGE_TO_PLAYER, TriggerEvent.DEALS_DAMAGE):
        return not _names_self(ability) or event.source.instance_id == source.instance_id
    if trigger is TriggerEvent.ATTACKS:
        return not _names_self(ability) or event.card.instance_id == source.instance_id
    if trigger is TriggerEvent.CAST_SPELL:
        spell = event.card
        if spell.instance_id == source.instance_id:
            return False
        if ability.spell_types and spell.card_type not in ability.spell_types:
            return False
        if ability.spell_subtype == SELF_REF:
            own = (source.definition.subtype or "").replace("—", " ").split()
            return any(spell.definition.has_subtype(word) for word in own)
        if ability.spell_subtype:
            return spell.definition.has_subtype(ability.spell_subtype)
        return True
    if trigger is TriggerEvent.DIES:
        return event.card.instance_id == source.instance_id
    if trigger is TriggerEvent.DIES_OTHER_CREATURE:
        dead_is_source = event.card.instance_id == source.instance_id
        if dead_is_source and not _names_self(ability):
            return False
        if "nontoken" in condition and event.card.is_token:
            return False
        if "you control" in condition and event.controller is not controller:
            return False
        if "opponent controls" in condition and event.controller is controller:
            return False
        return True
    if trigger is TriggerEvent.UPKEEP:
        return "opponent's upkeep" not in condition
    return False


def collect_triggers(event: GameEvent, players: Players) -> List[PendingTrigger]:
    """Triggered abilities and hooks set off by ``event``."""
    found: List[PendingTrigger] = []
    for controller, source, zone in _sources(event, players):
        for trigger in _event_triggers(event):
            hook = special_hook(source.name, trigger)
            if hook is not None:
                if zone is not Zone.COMMAND or source.name in COMMAND_ZONE_HOOKS:
                    found.append(PendingTrigger(controller, source, trigger, event, hook=hook))
                continue
            for ability in _triggered(source.definition):
                if ability.trigger is trigger and _ability_matches(
                        ability, trigger, event, controller, source, zone):
                    found.append(PendingTrigger(controller, source, trigger, event, ability=ability))
    return found


# =============================================================================
# Resolution
# =============================================================================

@dataclass(frozen=True)
class TriggerResolution:
    """Players after a cascade, with its log lines and any searches left to resolve."""
    players: Players
    logs: Tuple[str, ...] = ()
    pending: Tuple[PendingSearch, ...] = ()


def resolve_trigger(pending_trigger: PendingTrigger, players: Players,
                    context: Optional[EffectContext] = None) -> EffectResult:
    controller = players[pending_trigger.controller]
    opponent = players[pending_trigger.controller.other]
    source = pending_trigger.source
    if pending_trigger.hook is not None:
        result = pending_trigger.hook(source, pending_trigger.event, controller, opponent, context)
        return result if result is not None else EffectResult(controller, opponent)
    result = process_ability(pending_trigger.ability, source, controller, opponent, context)
    if pending_trigger.ability.is_inert:
        return result.merged(result.player, result.opponent,
                             logs=(f"{source.name}: trigger has no recognized effect",))
    return result


def _state_based_deaths(players: Players) -> Tuple[Players, List[GameEvent], List[str]]:
    events: List[GameEvent] = []
    logs: List[str] = []
    updated = dict(players)
    for pid, player in players.items():
        player, dead = check_creature_deaths(player)
        updated[pid] = player
        for card in dead:
            events.append(CreatureDied(controller=pid, card=card))
            logs.append(f"{card.name} dies with 0 toughness")
    return updated, events, logs


def resolve_events(events: Sequence[GameEvent], players: Players,
                   context: Optional[EffectContext] = None,
                   max_depth: int = 10) -> TriggerResolution:
    """Resolve everything ``events`` sets off, breadth-first.

    Each batch of events is scanned against one snapshot, its triggers
    resolve in order, then zero-toughness creatures die. Events caused by
    a batch form the next batch. Processing stops after ``max_depth``
    batches.
    """
    players = dict(players)
    logs: List[str] = []
    pending: List[PendingSearch] = []
    batch = list(events)
    depth = 0
    while batch:
        if depth >= max_depth:
            logs.append(f"trigger depth limit ({max_depth}) reached, {len(batch)} event(s) dropped")
            break
        snapshot = dict(players)
        queued = [t for event in batch for t in collect_triggers(event, snapshot)]
        next_batch: List[GameEvent] = []
        for pending_trigger in queued:
            result = resolve_trigger(pending_trigger, players, context)
            players[pending_trigger.controller] = result.player
            players[pending_trigger.controller.other] = result.opponent
            logs.extend(result.logs)
            next_batch.extend(result.events)
            if result.pending is not None:
                pending.append(result.pending)
        players, died, death_logs = _state_based_deaths(players)
        logs.extend(death_logs)
        next_batch.extend(died)
        batch = next_batch
        depth += 1
    return TriggerResolution(players=players, logs=tuple(logs), pending=tuple(pending))


def resolve_search(player: Player, search: PendingSearch, chosen_ids: Sequence[str],
                   rng: Optional[random.Random] = None) -> Tuple[Player, Tuple[str, ...], Tuple[GameEvent, ...]]:
    """Complete a pending library search with the caller's picks.

    Lands go to the battlefield (tapped if the search says so) or to hand.
    For the "two basics, one to hand" shape the first pick goes to the
    battlefield and the second to hand. The library is shuffled afterwards.

    Raises:
        IllegalStateError: If a pick is not a candidate, is repeated, or
            there are too many picks.
    """
    if len(chosen_ids) > search.max_choices:
        raise IllegalStateError(f"{search.source_name}: at most {search.max_choices} card(s) may be chosen")
    if len(set(chosen_ids)) != len(chosen_ids):
        raise IllegalStateError(f"{search.source_name}: duplicate choice")
    for card_id in chosen_ids:
        if card_id not in search.candidate_ids:
            raise IllegalStateError(f"{card_id!r} is not a legal choice for {search.source_name}")

    logs: List[str] = []
    events: List[GameEvent] = []
    for index, card_id in enumerate(chosen_ids):
        player, card = remove_card(player, card_id, Zone.LIBRARY)
        if search.mode is SearchMode.TWO_BASIC_LANDS_ONE_TO_HAND:
            to_hand = index == 1
        elif search.mode is SearchMode.TWO_LANDS_TO_BATTLEFIELD:
            to_hand = False
        else:
            to_hand = search.to_hand
        if to_hand:
            player = add_card(player, card, Zone.HAND)
            logs.append(f"{search.source_name}: {card.name} put into hand")
        else:
            card = replace(card, tapped=search.put_tapped)
            player = add_card(player, card, Zone.BATTLEFIELD)
            events.append(EnteredBattlefield(controller=player.player_id, card=card))
            logs.append(f"{search.source_name}: {card.name} put onto the battlefield"
                        + (" tapped" if search.put_tapped else ""))
    if not chosen_ids:
        logs.append(f"{search.source_name}: nothing chosen")
    player = shuffle_library(player, rng)
    return player, tuple(logs), tuple(events)
