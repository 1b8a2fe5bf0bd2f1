"""Commander Engine - Core Types and Enumerations

This module defines the enumerations shared by every part of the engine:
colors, card types, the twelve-step phase cycle, zones, and the closed
vocabularies used by the ability interpreter (ability kinds, trigger events,
effect types, targets). Every tagged union in the engine is keyed by one of
these enums.
"""
from enum import Enum
from typing import Dict, Optional, Tuple


# =============================================================================
# Players
# =============================================================================

class PlayerId(Enum):
    """The two seats of a one-versus-one game."""
    SELF = "self"
    OPPONENT = "opponent"

    @property
    def other(self) -> 'PlayerId':
        """The player sitting across the table."""
        return PlayerId.OPPONENT if self is PlayerId.SELF else PlayerId.SELF


# =============================================================================
# Color and Mana Types
# =============================================================================

class Color(Enum):
    """
    The five colors of Magic plus colorless.

    Values are the mana symbols used in cost strings, so
    ``Color("G")`` is green.
    """
    WHITE = "W"
    BLUE = "U"
    BLACK = "B"
    RED = "R"
    GREEN = "G"
    COLORLESS = "C"

    @classmethod
    def from_symbol(cls, symbol: str) -> Optional['Color']:
        """Return the color for a single mana letter, or None."""
        try:
            return cls(symbol.strip("{}").upper())
        except ValueError:
            return None

    @property
    def is_colored(self) -> bool:
        return self is not Color.COLORLESS


# WUBRG then colorless; the order mana pools are scanned and printed in
COLOR_ORDER: Tuple[Color, ...] = (
    Color.WHITE, Color.BLUE, Color.BLACK, Color.RED, Color.GREEN, Color.COLORLESS
)

COLOR_WORDS: Dict[str, Color] = {
    "white": Color.WHITE,
    "blue": Color.BLUE,
    "black": Color.BLACK,
    "red": Color.RED,
    "green": Color.GREEN,
}

BASIC_LAND_TYPES: Dict[str, Color] = {
    "plains": Color.WHITE,
    "island": Color.BLUE,
    "swamp": Color.BLACK,
    "mountain": Color.RED,
    "forest": Color.GREEN,
}


# =============================================================================
# Card Types
# =============================================================================

class CardType(Enum):
    """Card types understood by the engine. A card has exactly one."""
    CREATURE = "creature"
    INSTANT = "instant"
    SORCERY = "sorcery"
    ENCHANTMENT = "enchantment"
    ARTIFACT = "artifact"
    LAND = "land"
    PLANESWALKER = "planeswalker"

    @property
    def is_permanent(self) -> bool:
        return self not in (CardType.INSTANT, CardType.SORCERY)


class CounterKind(Enum):
    """Power/toughness counters."""
    PLUS_ONE = "+1/+1"
    MINUS_ONE = "-1/-1"


# =============================================================================
# Turn Structure
# =============================================================================

class Phase(Enum):
    """The twelve steps of a turn, in order."""
    UNTAP = "untap"
    UPKEEP = "upkeep"
    DRAW = "draw"
    MAIN1 = "main1"
    COMBAT_BEGIN = "combat_begin"
    COMBAT_ATTACKERS = "combat_attackers"
    COMBAT_BLOCKERS = "combat_blockers"
    COMBAT_DAMAGE = "combat_damage"
    COMBAT_END = "combat_end"
    MAIN2 = "main2"
    END = "end"
    CLEANUP = "cleanup"

    @property
    def is_main(self) -> bool:
        return self in (Phase.MAIN1, Phase.MAIN2)


class Zone(Enum):
    """The six zones a player owns."""
    LIBRARY = "library"
    HAND = "hand"
    BATTLEFIELD = "battlefield"
    GRAVEYARD = "graveyard"
    EXILE = "exile"
    COMMAND = "command"


# =============================================================================
# Ability Vocabulary
# =============================================================================

class AbilityKind(Enum):
    """Tag of a ParsedAbility."""
    ACTIVATED = "activated"
    TRIGGERED = "triggered"
    STATIC = "static"
    KEYWORD = "keyword"
    SPELL = "spell"


class TriggerEvent(Enum):
    """What a triggered ability waits for."""
    ENTERS_BATTLEFIELD = "enters_battlefield"
    DIES = "dies"
    DIES_OTHER_CREATURE = "dies_other_creature"
    DEALS_COMBAT_DAMAGE_TO_PLAYER = "deals_combat_damage_to_player"
    DEALS_DAMAGE = "deals_damage"
    ATTACKS = "attacks"
    LANDFALL = "landfall"
    CAST_SPELL = "cast_spell"
    PUT_COUNTER = "put_counter"
    UPKEEP = "upkeep"


class EffectType(Enum):
    """The closed effect vocabulary. Every member has a handler in triggers.py."""
    SACRIFICE_SEARCH = "sacrifice_search"
    SEARCH_LIBRARY = "search_library"
    ADD_MANA = "add_mana"
    REGENERATE = "regenerate"
    UNTAP = "untap"
    DRAW_CARD = "draw_card"
    GAIN_LIFE = "gain_life"
    LOSE_LIFE = "lose_life"
    DEAL_DAMAGE = "deal_damage"
    DESTROY = "destroy"
    COUNTER_SPELL = "counter_spell"
    RETURN_TO_HAND = "return_to_hand"
    SCRY = "scry"
    PROLIFERATE = "proliferate"
    GIVE_POISON = "give_poison"
    PUT_COUNTER = "put_counter"
    CREATE_TOKEN = "create_token"
    PUMP = "pump"


class TargetKind(Enum):
    """Who or what an effect is aimed at."""
    SELF = "self"
    CONTROLLER = "controller"
    ANY_TARGET = "any_target"
    ANY_PLAYER = "any_player"
    OPPONENT = "opponent"
    ANY_CREATURE = "any_creature"
    OPPONENT_CREATURES = "opponent_creatures"
    ALL_CREATURES = "all_creatures"
    ALL_ATTACKING = "all_attacking"


class SearchMode(Enum):
    """Library search shapes."""
    SINGLE_BASIC_LAND = "single_basic_land"
    TWO_BASIC_LANDS_ONE_TO_HAND = "two_basic_lands_one_to_hand"
    TWO_LANDS_TO_BATTLEFIELD = "two_lands_to_battlefield"
    BASIC_LAND_OF_TYPES = "basic_land_of_types"


class VariableAmount(Enum):
    """Amounts that are only known when the effect resolves."""
    CONVERGE = "converge"
    GOBLINS_YOU_CONTROL = "goblins_you_control"
    LANDS_YOU_CONTROL = "lands_you_control"


KEYWORDS: Tuple[str, ...] = (
    "flying", "trample", "deathtouch", "lifelink", "haste", "vigilance",
    "first strike", "double strike", "reach", "menace", "infect", "wither",
    "shadow",
)
