import logging
from typing import Any, Optional

from ..errors import GameNotFoundError
from ..schema.game import BetResult
from .base import Game

logger = logging.getLogger(__name__)


class GameRegistry:
    def __init__(self):
        self._games: dict[str, Game] = {}

    def register(self, game: Game) -> None:
        game_id = game.config.id
        if game_id in self._games:
            raise ValueError(f"Game '{game_id}' is already registered")
        game.initialize()
        self._games[game_id] = game
        logger.info("Game registered: %s", game.config.name)

    def get(self, game_id: str) -> Optional[Game]:
        return self._games.get(game_id)

    def require(self, game_id: str) -> Game:
        game = self._games.get(game_id)
        if game is None:
            raise GameNotFoundError(f"Game '{game_id}' not found")
        return game

    def get_all(self) -> list[Game]:
        return list(self._games.values())

    def get_by_type(self, game_type: str) -> list[Game]:
        return [game for game in self._games.values() if game.config.type == game_type]

    async def place_bet(
        self, game_id: str, user_id: str, amount: int, bet_data: Any
    ) -> BetResult:
        game = self._games.get(game_id)
        if game is None:
            logger.warning("Bet on unknown game %s by %s", game_id, user_id)
            return BetResult.failure("Game not found", "not_found")
        return await game.place_bet(user_id, amount, bet_data)
