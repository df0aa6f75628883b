import os
from dataclasses import dataclass
from typing import Optional

from dotenv import load_dotenv

load_dotenv()  # pyright: ignore[reportUnusedCallResult]


def _optional_int(name: str) -> Optional[int]:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return None
    return int(raw)


@dataclass(frozen=True)
class Settings:
    token_name: str = "2xBDamageToken"
    token_symbol: str = "2XBD"
    token_decimals: int = 2
    initial_supply: int = 1_000_000
    reserve_share: float = 0.9
    initial_grant: int = 100
    slots_min_bet: int = 1
    slots_max_bet: int = 1000
    server_seed: str = "2xBDamageToken-server-seed"
    log_level: str = "INFO"
    run_scale_cap: Optional[int] = None
    scatter_count_cap: Optional[int] = None
    round_payout_cap: Optional[int] = None

    @classmethod
    def from_env(cls) -> "Settings":
        return cls(
            token_name=os.getenv("TOKEN_NAME", cls.token_name),
            token_symbol=os.getenv("TOKEN_SYMBOL", cls.token_symbol),
            token_decimals=int(os.getenv("TOKEN_DECIMALS", str(cls.token_decimals))),
            initial_supply=int(os.getenv("INITIAL_SUPPLY", str(cls.initial_supply))),
            reserve_share=float(os.getenv("RESERVE_SHARE", str(cls.reserve_share))),
            initial_grant=int(os.getenv("INITIAL_GRANT", str(cls.initial_grant))),
            slots_min_bet=int(os.getenv("SLOTS_MIN_BET", str(cls.slots_min_bet))),
            slots_max_bet=int(os.getenv("SLOTS_MAX_BET", str(cls.slots_max_bet))),
            server_seed=os.getenv("SERVER_SEED", cls.server_seed),
            log_level=os.getenv("LOG_LEVEL", cls.log_level).upper(),
            run_scale_cap=_optional_int("RUN_SCALE_CAP"),
            scatter_count_cap=_optional_int("SCATTER_COUNT_CAP"),
            round_payout_cap=_optional_int("ROUND_PAYOUT_CAP"),
        )
