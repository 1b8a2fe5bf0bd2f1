"""Commander Engine - Combat

Declaration checks and combat damage.

Damage is simultaneous. Every outcome is computed from the battlefield as it
was before damage, and removals are applied afterwards, so one pair's
deaths never change another pair's result.

Each (blocker, attacker) pair exchanges full damage on its own. An attacker
blocked twice fights both blockers at full power. This is a known
simplification of the multi-block damage assignment rules.
"""
from dataclasses import dataclass, replace
from typing import List, Optional, Sequence, Tuple

from ..cards.abilities import has_keyword
from .events import CombatDamageToPlayer, CreatureDied, GameEvent
from .objects import CardInstance
from .player import AttackingCreature, BlockingCreature, Player
from .zones import destroy_permanent, tap_permanent


@dataclass(slots=True)
class CombatResult:
    """
    Everything combat damage changed.

    Attributes:
        attacking: Attacking player after combat
        defending: Defending player after combat
        damage_to_defender: Life lost by the defending player
        poison_to_defender: Poison counters given by infect attackers
        commander_damage: Part of damage_to_defender dealt by a commander
        dead_attackers: Attackers that left the battlefield
        dead_blockers: Blockers that left the battlefield
        events: Combat damage and death events for trigger processing
        logs: Log lines
    """
    attacking: Player
    defending: Player
    damage_to_defender: int = 0
    poison_to_defender: int = 0
    commander_damage: int = 0
    dead_attackers: Tuple[CardInstance, ...] = ()
    dead_blockers: Tuple[CardInstance, ...] = ()
    events: Tuple[GameEvent, ...] = ()
    logs: Tuple[str, ...] = ()


# =============================================================================
# Declarations
# =============================================================================

def attack_refusal(attacker: Player, card_ids: Sequence[str]) -> Optional[str]:
    """Why these creatures cannot attack, or None if they can."""
    if len(set(card_ids)) != len(card_ids):
        return "a creature can only attack once"
    for card_id in card_ids:
        card = attacker.permanent(card_id)
        if card is None:
            return f"{card_id} is not on {attacker.name}'s battlefield"
        if not card.is_creature:
            return f"{card.name} is not a creature"
        if card.tapped:
            return f"{card.name} is tapped"
    return None


def declare_attack(attacker: Player, card_ids: Sequence[str], target) -> Player:
    """Record attackers. Attacking taps a creature unless it has vigilance."""
    for card_id in card_ids:
        card = attacker.permanent(card_id)
        if not has_keyword(card, "vigilance"):
            attacker = tap_permanent(attacker, card_id)
    records = tuple(AttackingCreature(card_id=cid, target=target) for cid in card_ids)
    return replace(attacker, attacking=records)


def can_block(blocker: CardInstance, attacker: CardInstance) -> bool:
    """Flying attackers can only be blocked by flying or reach."""
    if blocker.tapped or not blocker.is_creature:
        return False
    if has_keyword(attacker, "flying"):
        return has_keyword(blocker, "flying") or has_keyword(blocker, "reach")
    return True


def block_refusal(defender: Player, attacker: Player,
                  pairs: Sequence[Tuple[str, str]]) -> Optional[str]:
    """Why these (blocker_id, attacker_id) pairs are illegal, or None."""
    blockers = [b for b, _ in pairs]
    if len(set(blockers)) != len(blockers):
        return "a creature can only block one attacker"
    attacking = set(attacker.attacking_ids)
    for blocker_id, attacker_id in pairs:
        blocker = defender.permanent(blocker_id)
        if blocker is None:
            return f"{blocker_id} is not on {defender.name}'s battlefield"
        if attacker_id not in attacking:
            return f"{attacker_id} is not attacking"
        attacking_card = attacker.permanent(attacker_id)
        if attacking_card is None:
            return f"{attacker_id} is not on the battlefield"
        if not can_block(blocker, attacking_card):
            return f"{blocker.name} cannot block {attacking_card.name}"
    return None


def declare_blocks(defender: Player, pairs: Sequence[Tuple[str, str]]) -> Player:
    records = tuple(BlockingCreature(blocker_id=b, attacker_id=a) for b, a in pairs)
    return replace(defender, blocking=records)


# =============================================================================
# Damage
# =============================================================================

def _lethal(damage: int, toughness: int, deathtouch: bool) -> bool:
    return damage >= toughness or (deathtouch and damage > 0)


def resolve_combat_damage(attacking: Player, defending: Player) -> CombatResult:
    """Deal combat damage for the current declarations.

    Blocked pairs trade full damage independently. Unblocked attackers hit
    the defending player: infect as poison counters, otherwise as life loss.
    Unblocked attackers with 0 power still produce a damage event (amount
    0). Declarations that no longer point at a creature on the battlefield
    are ignored.

    Returns:
        CombatResult; attack and block records are left in place.
    """
    attackers = [c for c in (attacking.permanent(cid) for cid in attacking.attacking_ids)
                 if c is not None and c.is_creature]
    by_id = {c.instance_id: c for c in attackers}
    pairs: List[Tuple[CardInstance, CardInstance]] = []
    for block in defending.blocking:
        blocker = defending.permanent(block.blocker_id)
        attacker = by_id.get(block.attacker_id)
        if blocker is not None and attacker is not None and blocker.is_creature:
            pairs.append((blocker, attacker))

    logs: List[str] = []
    events: List[GameEvent] = []
    dying_attackers: List[str] = []
    dying_blockers: List[str] = []
    lifelink_gain = 0
    defender_lifelink = 0

    for blocker, attacker in pairs:
        attacker_power = attacker.effective_power
        blocker_power = blocker.effective_power
        logs.append(f"{attacker.name} ({attacker_power}/{attacker.effective_toughness}) and "
                    f"{blocker.name} ({blocker_power}/{blocker.effective_toughness}) fight")
        if _lethal(attacker_power, blocker.effective_toughness, has_keyword(attacker, "deathtouch")):
            if blocker.instance_id not in dying_blockers:
                dying_blockers.append(blocker.instance_id)
        if _lethal(blocker_power, attacker.effective_toughness, has_keyword(blocker, "deathtouch")):
            if attacker.instance_id not in dying_attackers:
                dying_attackers.append(attacker.instance_id)
        if has_keyword(attacker, "lifelink"):
            lifelink_gain += attacker_power
        if has_keyword(blocker, "lifelink"):
            defender_lifelink += blocker_power

    blocked = {attacker.instance_id for _, attacker in pairs}
    damage = poison = commander_damage = 0
    for attacker in attackers:
        if attacker.instance_id in blocked:
            continue
        power = attacker.effective_power
        infect = has_keyword(attacker, "infect")
        if infect:
            poison += power
            logs.append(f"{attacker.name} gives {power} poison counter(s) to {defending.name}")
        else:
            damage += power
            if attacker.is_commander:
                commander_damage += power
            logs.append(f"{attacker.name} deals {power} damage to {defending.name}")
        if has_keyword(attacker, "lifelink"):
            lifelink_gain += power
        events.append(CombatDamageToPlayer(controller=attacking.player_id, source=attacker,
                                           amount=power, poison=infect))

    dead_attackers = []
    for card_id in dying_attackers:
        before = attacking.permanent(card_id)
        attacking, gone = destroy_permanent(attacking, card_id)
        if gone is None:
            logs.append(f"{before.name} regenerates")
            continue
        dead_attackers.append(before)
        events.append(CreatureDied(controller=attacking.player_id, card=before))
    dead_blockers = []
    for card_id in dying_blockers:
        before = defending.permanent(card_id)
        defending, gone = destroy_permanent(defending, card_id)
        if gone is None:
            logs.append(f"{before.name} regenerates")
            continue
        dead_blockers.append(before)
        events.append(CreatureDied(controller=defending.player_id, card=before))

    defending = replace(
        defending,
        life=defending.life - damage + defender_lifelink,
        poison=defending.poison + poison,
        commander_damage_received=defending.commander_damage_received + commander_damage,
    )
    attacking = replace(
        attacking,
        life=attacking.life + lifelink_gain,
        commander_damage_dealt=attacking.commander_damage_dealt + commander_damage,
    )
    return CombatResult(
        attacking=attacking,
        defending=defending,
        damage_to_defender=damage,
        poison_to_defender=poison,
        commander_damage=commander_damage,
        dead_attackers=tuple(dead_attackers),
        dead_blockers=tuple(dead_blockers),
        events=tuple(events),
        logs=tuple(logs),
    )
