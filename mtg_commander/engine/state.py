"""Commander Engine - Game State

GameState is the immutable snapshot of a whole game: both players, the
turn structure, the text log and the searches waiting for a choice. Every
public action takes a GameState and returns a new one.
"""
from dataclasses import dataclass, replace
from typing import Dict, Iterable, Optional, Tuple

from .events import PendingSearch
from .player import Player
from .types import Phase, PlayerId


@dataclass(frozen=True)
class GameState:
    """
    Snapshot of a game.

    Attributes:
        player: The SELF player
        opponent: The OPPONENT player
        turn: Turn number, starting at 1
        phase: Current step
        active_player: Whose turn it is
        starting_player: Who took turn 1; the turn number goes up when this
            player becomes active again
        log: Append-only log, each line prefixed with its turn number
        pending: Library searches waiting for resolve_search, oldest first
        winner: Set once the game is over; None for a draw or a running game
        game_over: The game has ended
    """
    player: Player
    opponent: Player
    turn: int = 1
    phase: Phase = Phase.MAIN1
    active_player: PlayerId = PlayerId.SELF
    starting_player: PlayerId = PlayerId.SELF
    log: Tuple[str, ...] = ()
    pending: Tuple[PendingSearch, ...] = ()
    winner: Optional[PlayerId] = None
    game_over: bool = False

    def get_player(self, player_id: PlayerId) -> Player:
        return self.player if player_id is PlayerId.SELF else self.opponent

    @property
    def active(self) -> Player:
        return self.get_player(self.active_player)

    @property
    def defending(self) -> Player:
        return self.get_player(self.active_player.other)

    @property
    def players(self) -> Dict[PlayerId, Player]:
        return {PlayerId.SELF: self.player, PlayerId.OPPONENT: self.opponent}

    def with_player(self, player: Player) -> 'GameState':
        """Replace the player with the same id."""
        if player.player_id is PlayerId.SELF:
            return replace(self, player=player)
        return replace(self, opponent=player)

    def with_players(self, players: Dict[PlayerId, Player]) -> 'GameState':
        return replace(self, player=players[PlayerId.SELF], opponent=players[PlayerId.OPPONENT])

    def with_log(self, *lines: str) -> 'GameState':
        if not lines:
            return self
        return replace(self, log=self.log + tuple(f"Turn {self.turn}: {line}" for line in lines))

    def extend_log(self, lines: Iterable[str]) -> 'GameState':
        return self.with_log(*lines)

    def __repr__(self) -> str:
        return (f"GameState(turn={self.turn}, phase={self.phase.value}, "
                f"active={self.active_player.value}, {self.player!r}, {self.opponent!r})")
