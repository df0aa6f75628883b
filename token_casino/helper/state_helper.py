import logging

from fastapi import HTTPException, Request
from fastapi.applications import FastAPI

from ..config import Settings
from ..games.fairness import FairnessHasher
from ..games.registry import GameRegistry
from ..games.slots import SlotsGame
from ..ledger.ledger import TokenLedger
from ..schema.game import GameConfig, PayoutPolicy
from ..schema.ledger import LedgerReceipt, Transaction

logger = logging.getLogger(__name__)

DEFAULT_SLOTS_ID = "slots-classic"

_FAILURE_STATUS = {
    "invalid_amount": 422,
    "invalid_metadata": 422,
    "insufficient_funds": 422,
    "already_funded": 409,
    "platform_insolvency": 503,
}


def init_state(app: FastAPI, settings: Settings) -> None:
    ledger = TokenLedger.from_settings(settings)
    hasher = FairnessHasher(settings.server_seed)
    registry = GameRegistry()
    policy = PayoutPolicy(
        run_scale_cap=settings.run_scale_cap,
        scatter_count_cap=settings.scatter_count_cap,
        round_payout_cap=settings.round_payout_cap,
    )
    registry.register(
        SlotsGame(
            GameConfig(
                id=DEFAULT_SLOTS_ID,
                name="Advanced Slots",
                type="slots",
                description="5x3 slots with wilds, scatters and bonus symbols",
                min_bet=settings.slots_min_bet,
                max_bet=settings.slots_max_bet,
                image_url="/images/slots.png",
            ),
            SlotsGame.create_default_config(policy),
            ledger=ledger,
            hasher=hasher,
        )
    )
    app.state.settings = settings
    app.state.ledger = ledger
    app.state.registry = registry


async def close_state(app: FastAPI) -> None:
    ledger: TokenLedger | None = getattr(app.state, "ledger", None)
    if ledger is None:
        return
    if not await ledger.verify_chain() or not await ledger.check_conservation():
        logger.critical("Ledger failed its shutdown audit")


def attach_services(request: Request, app: FastAPI) -> None:
    request.state.settings = app.state.settings
    request.state.ledger = app.state.ledger
    request.state.registry = app.state.registry


def get_settings(request: Request) -> Settings:
    return request.state.settings  # pyright: ignore[reportAny]


def get_ledger(request: Request) -> TokenLedger:
    return request.state.ledger  # pyright: ignore[reportAny]


def get_registry(request: Request) -> GameRegistry:
    return request.state.registry  # pyright: ignore[reportAny]


def receipt_or_raise(receipt: LedgerReceipt) -> Transaction:
    if receipt.ok and receipt.transaction is not None:
        return receipt.transaction
    raise HTTPException(_FAILURE_STATUS.get(receipt.failure or "", 400), receipt.reason)
