import logging
from dataclasses import dataclass, field
from typing import Annotated, Any

from fastapi import APIRouter, Depends, FastAPI, HTTPException

from ..errors import PlatformInsolvencyError
from ..games.registry import GameRegistry
from ..helper.state_helper import get_registry
from ..schema.game import BetResult, SlotsBet

logger = logging.getLogger(__name__)

game_app = FastAPI()

router = APIRouter()


@dataclass
class PlayReq:
    user_id: str
    amount: int
    bet_data: dict[str, Any] = field(default_factory=dict)


@dataclass
class SlotsPlayReq:
    user_id: str
    amount: int
    lines: int
    bet_per_line: int


async def _play(
    registry: GameRegistry, game_id: str, user_id: str, amount: int, bet_data: Any
) -> BetResult:
    try:
        result = await registry.place_bet(game_id, user_id, amount, bet_data)
    except PlatformInsolvencyError:
        logger.critical("Platform could not settle a round on %s", game_id, exc_info=True)
        raise HTTPException(503, "The platform cannot settle this round right now")
    if result.error == "not_found":
        raise HTTPException(404, "The referenced game cannot be found")
    if not result.success:
        raise HTTPException(422, result.outcome)
    return result


@router.get("/list")
async def list_games(
    registry: Annotated[GameRegistry, Depends(get_registry)],
) -> list[dict[str, Any]]:
    return [game.get_game_state() for game in registry.get_all()]


@router.get("/list/{game_type}")
async def list_games_by_type(
    registry: Annotated[GameRegistry, Depends(get_registry)], game_type: str
) -> list[dict[str, Any]]:
    return [game.get_game_state() for game in registry.get_by_type(game_type)]


@router.get("/get/{game_id}")
async def get_game(
    registry: Annotated[GameRegistry, Depends(get_registry)], game_id: str
) -> dict[str, Any]:
    game = registry.get(game_id)
    if game is None:
        raise HTTPException(404, "The referenced game cannot be found")
    return game.get_game_state()


@router.post("/play/{game_id}")
async def play_game(
    registry: Annotated[GameRegistry, Depends(get_registry)],
    game_id: str,
    play_req: PlayReq,
) -> BetResult:
    return await _play(registry, game_id, play_req.user_id, play_req.amount, play_req.bet_data)


@router.post("/play_slots/{game_id}")
async def play_slots(
    registry: Annotated[GameRegistry, Depends(get_registry)],
    game_id: str,
    play_req: SlotsPlayReq,
) -> BetResult:
    bet = SlotsBet(lines=play_req.lines, bet_per_line=play_req.bet_per_line)
    return await _play(registry, game_id, play_req.user_id, play_req.amount, bet)


game_app.include_router(router)
