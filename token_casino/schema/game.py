from dataclasses import dataclass, field
from typing import Any, Literal, Optional, TypeAlias

SymbolRole: TypeAlias = Literal["standard", "wild", "scatter", "bonus"]
SpecialFeature: TypeAlias = Literal["wild", "scatter", "freeSpins", "multiplier", "bonusGame"]
BetError: TypeAlias = Literal["validation", "insufficient_funds", "not_found"]
Position: TypeAlias = tuple[int, int]
Grid: TypeAlias = tuple[tuple[str, ...], ...]

ALL_FEATURES: tuple[SpecialFeature, ...] = (
    "wild",
    "scatter",
    "freeSpins",
    "multiplier",
    "bonusGame",
)


@dataclass(frozen=True)
class GameConfig:
    id: str
    name: str
    type: str
    min_bet: int
    max_bet: int
    description: str = ""
    is_active: bool = True
    image_url: Optional[str] = None


@dataclass(frozen=True)
class Symbol:
    id: str
    name: str
    payout_multiplier: int
    role: SymbolRole = "standard"
    image: str = ""

    @property
    def is_special(self) -> bool:
        return self.role != "standard"


@dataclass(frozen=True)
class Payline:
    id: int
    positions: tuple[Position, ...]
    name: str


@dataclass(frozen=True)
class PayoutPolicy:
    """Optional caps; None leaves that term unbounded."""

    run_scale_cap: Optional[int] = None
    scatter_count_cap: Optional[int] = None
    round_payout_cap: Optional[int] = None


@dataclass(frozen=True)
class SlotsConfig:
    reels: int
    rows: int
    symbols: tuple[Symbol, ...]
    paylines: tuple[Payline, ...]
    special_features: tuple[SpecialFeature, ...] = ALL_FEATURES
    payout_policy: PayoutPolicy = PayoutPolicy()


@dataclass(frozen=True)
class SlotsBet:
    lines: int
    bet_per_line: int


@dataclass(frozen=True)
class WinningLine:
    line: int
    win: int
    symbol: str
    run_length: int
    symbols: tuple[str, ...]


@dataclass(frozen=True)
class SlotsEvaluation:
    total_win: int
    winning_lines: tuple[WinningLine, ...]
    special_features: tuple[SpecialFeature, ...]
    scatter_count: int = 0
    scatter_win: int = 0


@dataclass(frozen=True)
class Verdict:
    ok: bool
    reason: str = ""

    def __bool__(self) -> bool:
        return self.ok


@dataclass(frozen=True)
class BetResult:
    success: bool
    payout: int
    outcome: str
    game_data: dict[str, Any] = field(default_factory=dict)
    verification_hash: str = ""
    timestamp: Optional[int] = None
    error: Optional[BetError] = None
    transactions: list[str] = field(default_factory=list)

    @classmethod
    def failure(cls, reason: str, error: BetError) -> "BetResult":
        return cls(success=False, payout=0, outcome=reason, error=error)
