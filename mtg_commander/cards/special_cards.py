"""Commander Engine - Named Card Hooks

A small table of cards whose behavior is implemented by hand instead of
by the ability interpreter. Lookup is by exact card name. When a card has a
hook for a trigger event, the hook replaces the parsed text for that event.

A hook is called as ``hook(source, event, player, opponent, context)`` where
``player`` controls ``source``. It returns an EffectResult, or None when the
event does not concern it (wrong controller, wrong spell type...).
"""
from typing import Callable, Dict, List, Optional

from ..engine.effects import TokenSpec
from ..engine.events import (
    Attacked, CombatDamageToPlayer, CounterPlaced, CreatureDied, EffectResult,
    EnteredBattlefield, GameEvent, SpellCast,
)
from ..engine.objects import CardInstance
from ..engine.player import Player
from ..engine.types import Color, CounterKind, TriggerEvent, Zone
from ..engine.zones import add_counters, create_tokens, put_onto_battlefield, remove_card


SpecialHook = Callable[..., Optional[EffectResult]]

SNAKE = TokenSpec("Snake", 1, 1, Color.GREEN, ("deathtouch",))
GOBLIN = TokenSpec("Goblin", 1, 1, Color.RED)
DRAKE = TokenSpec("Drake", 2, 2, Color.BLUE, ("flying",))
VAMPIRE = TokenSpec("Vampire", 1, 1, Color.BLACK)


def _largest_creature(creatures: List[CardInstance]) -> Optional[CardInstance]:
    if not creatures:
        return None
    return max(creatures, key=lambda c: (c.effective_power, c.effective_toughness))


def _token_events(player: Player, tokens: List[CardInstance]) -> List[GameEvent]:
    return [EnteredBattlefield(controller=player.player_id, card=t) for t in tokens]


# =============================================================================
# Hapatra, Vizier of Poisons
# =============================================================================

def hapatra_combat_damage(source, event, player, opponent, context) -> Optional[EffectResult]:
    """Put a -1/-1 counter on target creature after hitting a player."""
    if not isinstance(event, CombatDamageToPlayer) or event.source.instance_id != source.instance_id:
        return None
    target = None
    if context is not None and context.target_id:
        target = opponent.permanent(context.target_id)
    if target is None:
        target = _largest_creature(opponent.creatures())
    if target is None:
        return EffectResult(player, opponent, logs=(f"{source.name}: no creature to put a -1/-1 counter on",))
    opponent = add_counters(opponent, target.instance_id, CounterKind.MINUS_ONE, 1)
    placed = CounterPlaced(controller=player.player_id, card=opponent.permanent(target.instance_id),
                           kind=CounterKind.MINUS_ONE, amount=1)
    return EffectResult(player, opponent,
                        logs=(f"{source.name} puts a -1/-1 counter on {target.name}",),
                        events=(placed,))


def hapatra_counter_placed(source, event, player, opponent, context) -> Optional[EffectResult]:
    """Create a 1/1 deathtouch Snake whenever you put -1/-1 counters on a creature."""
    if not isinstance(event, CounterPlaced) or event.kind is not CounterKind.MINUS_ONE:
        return None
    if event.controller is not player.player_id or not event.card.is_creature:
        return None
    player, tokens = create_tokens(player, SNAKE, 1)
    return EffectResult(player, opponent,
                        logs=(f"{source.name} creates a 1/1 Snake with deathtouch",),
                        events=tuple(_token_events(player, tokens)))


# =============================================================================
# Krenko, Tin Street Kingpin
# =============================================================================

def krenko_attacks(source, event, player, opponent, context) -> Optional[EffectResult]:
    """+1/+1 counter on itself, then Goblins equal to its power."""
    if not isinstance(event, Attacked) or event.card.instance_id != source.instance_id:
        return None
    if player.permanent(source.instance_id) is None:
        return None
    player = add_counters(player, source.instance_id, CounterKind.PLUS_ONE, 1)
    krenko = player.permanent(source.instance_id)
    player, tokens = create_tokens(player, GOBLIN, krenko.effective_power)
    events = [CounterPlaced(controller=player.player_id, card=krenko, kind=CounterKind.PLUS_ONE)]
    events.extend(_token_events(player, tokens))
    return EffectResult(player, opponent,
                        logs=(f"{source.name} grows to {krenko.effective_power} power "
                              f"and creates {len(tokens)} Goblin token(s)",),
                        events=tuple(events))


# =============================================================================
# Death Drain: Blood Artist, Zulaport Cutthroat, Cruel Celebrant
# =============================================================================

def _drain(source, player, opponent) -> EffectResult:
    return EffectResult(player.gain_life(1), opponent.lose_life(1),
                        logs=(f"{source.name}: {opponent.name} loses 1 life, "
                              f"{player.name} gains 1 life",))


def blood_artist_dies(source, event, player, opponent, context) -> Optional[EffectResult]:
    """Any creature dying drains the opponent for 1."""
    if not isinstance(event, CreatureDied):
        return None
    return _drain(source, player, opponent)


def own_creature_dies(source, event, player, opponent, context) -> Optional[EffectResult]:
    """Only creatures the source's controller controlled."""
    if not isinstance(event, CreatureDied) or event.controller is not player.player_id:
        return None
    return _drain(source, player, opponent)


# =============================================================================
# Goblin Lackey
# =============================================================================

def goblin_lackey_combat_damage(source, event, player, opponent, context) -> Optional[EffectResult]:
    """Put a Goblin from hand onto the battlefield after hitting a player."""
    if not isinstance(event, CombatDamageToPlayer) or event.source.instance_id != source.instance_id:
        return None
    goblin = next((c for c in player.hand if c.definition.has_subtype("Goblin") and c.is_creature), None)
    if goblin is None:
        return EffectResult(player, opponent, logs=(f"{source.name}: no Goblin in hand",))
    player, card = remove_card(player, goblin.instance_id, Zone.HAND)
    player = put_onto_battlefield(player, card)
    return EffectResult(player, opponent,
                        logs=(f"{source.name} puts {card.name} onto the battlefield",),
                        events=(EnteredBattlefield(controller=player.player_id,
                                                   card=player.permanent(card.instance_id)),))


# =============================================================================
# Talrand, Sky Summoner
# =============================================================================

def talrand_cast(source, event, player, opponent, context) -> Optional[EffectResult]:
    if not isinstance(event, SpellCast) or event.controller is not player.player_id:
        return None
    if not event.card.definition.is_instant_or_sorcery:
        return None
    player, tokens = create_tokens(player, DRAKE, 1)
    return EffectResult(player, opponent,
                        logs=(f"{source.name} creates a 2/2 Drake with flying",),
                        events=tuple(_token_events(player, tokens)))


# =============================================================================
# Edgar Markov
# =============================================================================

def edgar_markov_cast(source, event, player, opponent, context) -> Optional[EffectResult]:
    """Eminence: works from the command zone as well as the battlefield."""
    if not isinstance(event, SpellCast) or event.controller is not player.player_id:
        return None
    if event.card.instance_id == source.instance_id or not event.card.definition.has_subtype("Vampire"):
        return None
    player, tokens = create_tokens(player, VAMPIRE, 1)
    return EffectResult(player, opponent,
                        logs=(f"{source.name} creates a 1/1 Vampire",),
                        events=tuple(_token_events(player, tokens)))


# =============================================================================
# Table
# =============================================================================

SPECIAL_CARDS: Dict[str, Dict[TriggerEvent, SpecialHook]] = {
    "Hapatra, Vizier of Poisons": {
        TriggerEvent.DEALS_COMBAT_DAMAGE_TO_PLAYER: hapatra_combat_damage,
        TriggerEvent.PUT_COUNTER: hapatra_counter_placed,
    },
    "Krenko, Tin Street Kingpin": {
        TriggerEvent.ATTACKS: krenko_attacks,
    },
    "Blood Artist": {
        TriggerEvent.DIES_OTHER_CREATURE: blood_artist_dies,
    },
    "Zulaport Cutthroat": {
        TriggerEvent.DIES_OTHER_CREATURE: own_creature_dies,
    },
    "Cruel Celebrant": {
        TriggerEvent.DIES_OTHER_CREATURE: own_creature_dies,
    },
    "Goblin Lackey": {
        TriggerEvent.DEALS_COMBAT_DAMAGE_TO_PLAYER: goblin_lackey_combat_damage,
    },
    "Talrand, Sky Summoner": {
        TriggerEvent.CAST_SPELL: talrand_cast,
    },
    "Edgar Markov": {
        TriggerEvent.CAST_SPELL: edgar_markov_cast,
    },
}

# Cards whose hooks also fire from the command zone
COMMAND_ZONE_HOOKS = frozenset({"Edgar Markov"})


def special_hook(card_name: str, trigger: TriggerEvent) -> Optional[SpecialHook]:
    return SPECIAL_CARDS.get(card_name, {}).get(trigger)
