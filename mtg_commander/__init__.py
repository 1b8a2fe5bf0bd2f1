"""Commander Engine - Rules and state engine for single-player Commander games"""
from .engine.game import ActionResult, Game, GameConfig, new_game
from .engine.state import GameState
from .cards.database import CardDatabase, Decklist, build_deck
from .ai.agent import AIDecision, ScriptedOpponent

__version__ = "1.0.0"
__all__ = ["ActionResult", "Game", "GameConfig", "GameState", "new_game",
           "CardDatabase", "Decklist", "build_deck", "AIDecision", "ScriptedOpponent"]
