"""Commander Engine - Ability Descriptors

Structured output of the ability interpreter. A ParsedAbility is a tagged
union over AbilityKind carrying an optional AbilityCost and zero or more
AbilityEffect values. These objects are derived data: they are rebuilt
from card text whenever needed and never stored in the game state.
"""
from dataclasses import dataclass
from typing import Optional, Tuple

from .objects import CardDefinition
from .types import (
    AbilityKind, CardType, Color, CounterKind, EffectType, SearchMode,
    TargetKind, TriggerEvent, VariableAmount,
)


# =============================================================================
# Tokens
# =============================================================================

@dataclass(frozen=True)
class TokenSpec:
    """Template for a token creature created by an effect."""
    name: str
    power: int
    toughness: int
    color: Color = Color.COLORLESS
    keywords: Tuple[str, ...] = ()

    def to_definition(self) -> CardDefinition:
        text = ", ".join(kw.capitalize() for kw in self.keywords)
        return CardDefinition(
            name=self.name,
            card_type=CardType.CREATURE,
            subtype=self.name,
            text=text,
            power=self.power,
            toughness=self.toughness,
            colors=(self.color,) if self.color.is_colored else (),
        )


# =============================================================================
# Costs and Effects
# =============================================================================

@dataclass(frozen=True)
class AbilityCost:
    """
    Cost of an activated ability.

    Attributes:
        tap: {T}, tap this permanent
        untap: {Q}, untap this permanent
        mana: Mana part of the cost, e.g. "{1}{G}"
        sacrifice_self: Sacrifice this permanent
        sacrifice_qualifier: Sacrifice another permanent of this subtype/type
        minus_counters: Put this many -1/-1 counters on this permanent
        life: Pay this much life
        discard: Discard this many cards
    """
    tap: bool = False
    untap: bool = False
    mana: str = ""
    sacrifice_self: bool = False
    sacrifice_qualifier: Optional[str] = None
    minus_counters: int = 0
    life: int = 0
    discard: int = 0

    @property
    def is_empty(self) -> bool:
        return self == AbilityCost()


@dataclass(frozen=True)
class AbilityEffect:
    """
    One effect from the closed vocabulary.

    Only the fields relevant to ``effect_type`` are meaningful; the rest
    keep their defaults.
    """
    effect_type: EffectType
    amount: int = 1
    variable: Optional[VariableAmount] = None
    target: TargetKind = TargetKind.SELF
    mana: Tuple[Color, ...] = ()
    any_color: bool = False
    counter: Optional[CounterKind] = None
    token: Optional[TokenSpec] = None
    search: Optional[SearchMode] = None
    land_types: Tuple[str, ...] = ()
    put_tapped: bool = False
    to_hand: bool = False
    unless_pays: int = 0
    pump: Tuple[int, int] = (0, 0)


@dataclass(frozen=True)
class ParsedAbility:
    """
    One ability read from card text.

    Attributes:
        kind: Which variant of the union this is
        raw_text: The segment of text it came from
        cost: Activated abilities only
        effects: What happens on resolution (empty for inert abilities)
        trigger: Triggered abilities only; None if the condition is unknown
        condition: Trigger condition clause, normalized
        keyword: Keyword abilities only
        spell_keyword: "converge" for Converge spells
        spell_types: Cast triggers only, card types that satisfy the trigger
        spell_subtype: Cast triggers only, required creature type of the spell
        from_command_zone: Eminence, works from the command zone too
    """
    kind: AbilityKind
    raw_text: str
    cost: Optional[AbilityCost] = None
    effects: Tuple[AbilityEffect, ...] = ()
    trigger: Optional[TriggerEvent] = None
    condition: str = ""
    keyword: Optional[str] = None
    spell_keyword: Optional[str] = None
    spell_types: Tuple[CardType, ...] = ()
    spell_subtype: Optional[str] = None
    from_command_zone: bool = False

    @property
    def effect(self) -> Optional[AbilityEffect]:
        """First effect, or None."""
        return self.effects[0] if self.effects else None

    @property
    def is_inert(self) -> bool:
        return not self.effects
