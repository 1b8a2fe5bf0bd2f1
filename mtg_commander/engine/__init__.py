"""Core engine components - lazy imports to avoid circular dependencies"""

# Core types can be imported directly
from .types import (
    AbilityKind, CardType, Color, CounterKind, EffectType, Phase, PlayerId,
    TriggerEvent, Zone,
)
from .errors import CardNotFoundError, EngineError, IllegalStateError


# Other imports are lazy; several engine modules depend on the cards package
def __getattr__(name):
    """Lazy import for engine components."""
    if name in ('Game', 'GameConfig', 'ActionResult'):
        from . import game
        return getattr(game, name)
    elif name == 'GameState':
        from .state import GameState
        return GameState
    elif name == 'Player':
        from .player import Player
        return Player
    elif name == 'ManaPool':
        from .player import ManaPool
        return ManaPool
    elif name == 'CardDefinition':
        from .objects import CardDefinition
        return CardDefinition
    elif name == 'CardInstance':
        from .objects import CardInstance
        return CardInstance
    elif name == 'ManaCost':
        from .mana import ManaCost
        return ManaCost
    elif name == 'CombatResult':
        from .combat import CombatResult
        return CombatResult
    elif name == 'EffectContext':
        from .triggers import EffectContext
        return EffectContext
    raise AttributeError(f"module 'engine' has no attribute {name!r}")
