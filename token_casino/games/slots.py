import logging
import random
from collections.abc import Sequence
from dataclasses import asdict
from typing import Any, Optional

from ..errors import ConfigurationError
from ..ledger.ledger import TokenLedger
from ..schema.game import (
    BetResult,
    GameConfig,
    Grid,
    Payline,
    PayoutPolicy,
    SlotsBet,
    SlotsConfig,
    SlotsEvaluation,
    SpecialFeature,
    Symbol,
    SymbolRole,
    Verdict,
    WinningLine,
)
from .base import OutcomeGenerator, game_state
from .engine import play_round
from .fairness import FairnessHasher
from .validator import BetValidator, SlotsBetValidator, coerce_slots_bet

logger = logging.getLogger(__name__)

MIN_RUN = 3
MULTIPLIER_WILD_RUN = 5
MIN_SCATTERS = 3


def validate_payout_policy(policy: PayoutPolicy) -> None:
    for name, floor in (("run_scale_cap", 1), ("scatter_count_cap", 1), ("round_payout_cap", 0)):
        cap = getattr(policy, name)
        if cap is not None and cap < floor:
            raise ConfigurationError(f"{name} must be at least {floor}, got {cap}")


def validate_slots_config(config: SlotsConfig) -> None:
    if config.reels <= 0 or config.rows <= 0:
        raise ConfigurationError(
            f"Grid must be at least 1x1, got {config.reels}x{config.rows}"
        )
    if not config.symbols:
        raise ConfigurationError("Slots config has no symbols")

    seen: set[str] = set()
    roles: dict[SymbolRole, str] = {}
    for symbol in config.symbols:
        if symbol.id in seen:
            raise ConfigurationError(f"Duplicate symbol id '{symbol.id}'")
        seen.add(symbol.id)
        if symbol.payout_multiplier < 0:
            raise ConfigurationError(f"Symbol '{symbol.id}' has a negative multiplier")
        if symbol.is_special:
            if symbol.role in roles:
                raise ConfigurationError(
                    f"Symbols '{roles[symbol.role]}' and '{symbol.id}' both have role {symbol.role}"
                )
            roles[symbol.role] = symbol.id

    line_ids = [line.id for line in config.paylines]
    if len(set(line_ids)) != len(line_ids):
        raise ConfigurationError("Duplicate payline ids")
    validate_payout_policy(config.payout_policy)


class ReelGenerator:
    """Uniform independent draw per cell; repeat an id in the list to weight it."""

    def __init__(
        self,
        symbol_ids: Sequence[str],
        reels: int,
        rows: int,
        rng: Optional[random.Random] = None,
    ):
        if not symbol_ids:
            raise ConfigurationError("ReelGenerator needs at least one symbol")
        self._ids = tuple(symbol_ids)
        self._reels = reels
        self._rows = rows
        self._rng = rng if rng is not None else random.SystemRandom()

    def generate(self) -> Grid:
        return tuple(
            tuple(self._rng.choice(self._ids) for _ in range(self._rows))
            for _ in range(self._reels)
        )


class PaylineEvaluator:
    def __init__(self, config: SlotsConfig):
        validate_payout_policy(config.payout_policy)
        self._config = config
        self._policy: PayoutPolicy = config.payout_policy
        self._symbols = {symbol.id: symbol for symbol in config.symbols}
        self._paylines = sorted(config.paylines, key=lambda line: line.id)
        self._scatter = next(
            (symbol for symbol in config.symbols if symbol.role == "scatter"), None
        )

    def _symbol(self, symbol_id: str) -> Symbol:
        try:
            return self._symbols[symbol_id]
        except KeyError:
            raise ConfigurationError(f"Unknown symbol id '{symbol_id}' in outcome") from None

    def _enabled(self, feature: SpecialFeature) -> bool:
        return feature in self._config.special_features

    @staticmethod
    def project(grid: Grid, payline: Payline) -> tuple[str, ...]:
        cells: list[str] = []
        for reel, row in payline.positions:
            if 0 <= reel < len(grid) and 0 <= row < len(grid[reel]):
                cells.append(grid[reel][row])
        return tuple(cells)

    @staticmethod
    def longest_run(symbols: Sequence[Symbol]) -> tuple[Optional[Symbol], int]:
        """
        Longest left-to-right run where each next symbol repeats the run's
        symbol or is wild. The first of equally long runs wins.
        """
        if not symbols:
            return None, 0
        best, best_len = symbols[0], 1
        current, current_len = symbols[0], 1
        for symbol in symbols[1:]:
            if symbol.id == current.id or symbol.role == "wild":
                current_len += 1
            else:
                current, current_len = symbol, 1
            if current_len > best_len:
                best, best_len = current, current_len
        return best, best_len

    def line_win(
        self, line_symbols: Sequence[str], bet_per_line: int
    ) -> tuple[int, Optional[Symbol], int, Optional[SpecialFeature]]:
        symbol, run = self.longest_run([self._symbol(i) for i in line_symbols])
        if symbol is None or run < MIN_RUN:
            return 0, symbol, run, None

        scale = run - (MIN_RUN - 1)
        if self._policy.run_scale_cap is not None:
            scale = min(scale, self._policy.run_scale_cap)
        win = symbol.payout_multiplier * bet_per_line * scale

        feature: Optional[SpecialFeature] = None
        if symbol.role == "wild" and run >= MULTIPLIER_WILD_RUN and self._enabled("multiplier"):
            feature = "multiplier"
        elif symbol.role == "bonus" and self._enabled("bonusGame"):
            feature = "bonusGame"
        return win, symbol, run, feature

    def scatter_win(self, grid: Grid, bet_per_line: int) -> tuple[int, int]:
        if self._scatter is None:
            return 0, 0
        count = sum(1 for reel in grid for cell in reel if cell == self._scatter.id)
        if count < MIN_SCATTERS:
            return 0, count
        paid = count
        if self._policy.scatter_count_cap is not None:
            paid = min(paid, self._policy.scatter_count_cap)
        return self._scatter.payout_multiplier * bet_per_line * paid, count

    def evaluate(self, grid: Grid, bet: SlotsBet) -> SlotsEvaluation:
        total = 0
        winning: list[WinningLine] = []
        features: list[SpecialFeature] = []

        for payline in self._paylines[: max(bet.lines, 0)]:
            line_symbols = self.project(grid, payline)
            win, symbol, run, feature = self.line_win(line_symbols, bet.bet_per_line)
            if win > 0 and symbol is not None:
                total += win
                winning.append(WinningLine(payline.id, win, symbol.id, run, line_symbols))
            if feature:
                features.append(feature)

        scatter_win, scatter_count = self.scatter_win(grid, bet.bet_per_line)
        if scatter_win > 0:
            total += scatter_win
            if self._enabled("freeSpins"):
                features.append("freeSpins")

        if self._policy.round_payout_cap is not None:
            total = min(total, self._policy.round_payout_cap)

        return SlotsEvaluation(
            total_win=total,
            winning_lines=tuple(winning),
            special_features=tuple(features),
            scatter_count=scatter_count,
            scatter_win=scatter_win,
        )


class SlotsGame:
    def __init__(
        self,
        config: GameConfig,
        slots_config: SlotsConfig,
        *,
        ledger: TokenLedger,
        hasher: FairnessHasher,
        generator: Optional[OutcomeGenerator] = None,
        rng: Optional[random.Random] = None,
        validator: Optional[BetValidator] = None,
    ):
        validate_slots_config(slots_config)
        self.config = config
        self.is_active = config.is_active
        self.slots_config = slots_config
        self._ledger = ledger
        self._hasher = hasher
        self._generator: OutcomeGenerator = generator or ReelGenerator(
            [symbol.id for symbol in slots_config.symbols],
            slots_config.reels,
            slots_config.rows,
            rng,
        )
        self._evaluator = PaylineEvaluator(slots_config)
        self._validator = validator or SlotsBetValidator()

    @property
    def id(self) -> str:
        return self.config.id

    def initialize(self) -> None:
        logger.info(
            "Initialized Slots game %s with %d reels and %d symbols",
            self.config.name,
            self.slots_config.reels,
            len(self.slots_config.symbols),
        )

    def validate_bet(self, amount: int, bet_data: Any) -> Verdict:
        return self._validator.validate(amount, bet_data, self)

    def normalize_bet(self, bet_data: Any) -> SlotsBet:
        bet = coerce_slots_bet(bet_data)
        if bet is None:
            raise ValueError("Bet data must carry lines and bet_per_line")
        return bet

    def generate_outcome(self) -> Grid:
        return self._generator.generate()

    def evaluate(self, outcome: Grid, bet_data: Any) -> SlotsEvaluation:
        return self._evaluator.evaluate(outcome, self.normalize_bet(bet_data))

    def describe_round(self, outcome: Grid, evaluation: SlotsEvaluation) -> dict[str, Any]:
        return {
            "reels": [list(reel) for reel in outcome],
            "winning_lines": [asdict(line) for line in evaluation.winning_lines],
            "special_features": list(evaluation.special_features),
            "scatter_count": evaluation.scatter_count,
            "scatter_win": evaluation.scatter_win,
        }

    def get_game_state(self) -> dict[str, Any]:
        state = game_state(self.config, self.is_active)
        state["reels"] = self.slots_config.reels
        state["rows"] = self.slots_config.rows
        state["paylines"] = len(self.slots_config.paylines)
        state["symbols"] = [
            {**asdict(symbol), "is_special": symbol.is_special}
            for symbol in self.slots_config.symbols
        ]
        return state

    async def place_bet(self, user_id: str, amount: int, bet_data: Any) -> BetResult:
        return await play_round(
            self, self._ledger, self._hasher, user_id, amount, bet_data
        )

    @staticmethod
    def create_default_config(policy: PayoutPolicy = PayoutPolicy()) -> SlotsConfig:
        return SlotsConfig(
            reels=5,
            rows=3,
            symbols=(
                Symbol("A", "Ace", 5, image="ace.png"),
                Symbol("K", "King", 4, image="king.png"),
                Symbol("Q", "Queen", 3, image="queen.png"),
                Symbol("J", "Jack", 2, image="jack.png"),
                Symbol("10", "Ten", 1, image="ten.png"),
                Symbol("W", "Wild", 10, role="wild", image="wild.png"),
                Symbol("S", "Scatter", 15, role="scatter", image="scatter.png"),
                Symbol("B", "Bonus", 20, role="bonus", image="bonus.png"),
            ),
            paylines=(
                Payline(1, ((0, 0), (1, 0), (2, 0), (3, 0), (4, 0)), "Top"),
                Payline(2, ((0, 1), (1, 1), (2, 1), (3, 1), (4, 1)), "Middle"),
                Payline(3, ((0, 2), (1, 2), (2, 2), (3, 2), (4, 2)), "Bottom"),
                Payline(4, ((0, 0), (1, 1), (2, 2), (3, 1), (4, 0)), "V-Shape"),
                Payline(5, ((0, 2), (1, 1), (2, 0), (3, 1), (4, 2)), "Inverted V"),
                Payline(6, ((0, 0), (1, 1), (2, 0), (3, 1), (4, 0)), "Zigzag Top"),
                Payline(7, ((0, 2), (1, 1), (2, 2), (3, 1), (4, 2)), "Zigzag Bottom"),
                Payline(8, ((0, 0), (1, 0), (2, 1), (3, 2), (4, 2)), "Diagonal TL-BR"),
                Payline(9, ((0, 2), (1, 2), (2, 1), (3, 0), (4, 0)), "Diagonal BL-TR"),
                Payline(10, ((0, 1), (1, 0), (2, 1), (3, 0), (4, 1)), "Steps Up"),
            ),
            payout_policy=policy,
        )
