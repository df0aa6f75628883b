from contextlib import asynccontextmanager
from collections.abc import Callable, Awaitable

from fastapi import FastAPI, Request, Response

from .api.game import game_app
from .api.token import token_app
from .api.transaction import tr_app
from .api.wallet import wallet_app
from .config import Settings
from .helper.state_helper import attach_services, close_state, init_state
from .logging_config import setup_logging

SUB_APPS: dict[str, FastAPI] = {
    "/wallet": wallet_app,
    "/token": token_app,
    "/transaction": tr_app,
    "/game": game_app,
}


@asynccontextmanager
async def lifespan(app: FastAPI):
    settings = Settings.from_env()
    setup_logging(settings.log_level)
    init_state(app, settings)
    yield
    await close_state(app)


app = FastAPI(lifespan=lifespan)
for prefix, sub_app in SUB_APPS.items():
    app.mount(prefix, sub_app)


@app.middleware("http")
async def share_services(request: Request, call_next: Callable[[Request], Awaitable[Response]]):
    # Mounted sub-apps keep their own app.state; the services live on this one.
    attach_services(request, app)
    return await call_next(request)


@app.get("/health")
async def health(request: Request):
    info = await request.state.ledger.get_token_info()  # pyright: ignore[reportAny]
    return {
        "status": "ok",
        "token": info.symbol,
        "games": len(request.state.registry.get_all()),  # pyright: ignore[reportAny]
    }
