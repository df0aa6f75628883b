from typing import Any, Protocol

from ..schema.game import BetResult, GameConfig, Verdict


class RoundEvaluation(Protocol):
    @property
    def total_win(self) -> int: ...


class OutcomeGenerator(Protocol):
    def generate(self) -> Any: ...


class Game(Protocol):
    """
    What the registry and the settlement flow need from a game type.

    Each game type implements this directly; there is no shared base class.
    """

    config: GameConfig
    is_active: bool

    def initialize(self) -> None: ...

    def validate_bet(self, amount: int, bet_data: Any) -> Verdict: ...

    def normalize_bet(self, bet_data: Any) -> Any: ...

    def generate_outcome(self) -> Any: ...

    def evaluate(self, outcome: Any, bet_data: Any) -> RoundEvaluation: ...

    def describe_round(self, outcome: Any, evaluation: Any) -> dict[str, Any]: ...

    def get_game_state(self) -> dict[str, Any]: ...

    async def place_bet(self, user_id: str, amount: int, bet_data: Any) -> BetResult: ...


def game_state(config: GameConfig, is_active: bool) -> dict[str, Any]:
    return {
        "id": config.id,
        "name": config.name,
        "type": config.type,
        "description": config.description,
        "min_bet": config.min_bet,
        "max_bet": config.max_bet,
        "is_active": is_active,
        "image_url": config.image_url,
    }
