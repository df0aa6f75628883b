import logging
from collections.abc import Mapping
from typing import Any, Optional, Protocol

from ..schema.game import GameConfig, SlotsBet, Verdict

logger = logging.getLogger(__name__)


class ValidatedGame(Protocol):
    @property
    def config(self) -> GameConfig: ...

    @property
    def is_active(self) -> bool: ...


def _positive_int(value: Any) -> bool:
    return isinstance(value, int) and not isinstance(value, bool) and value > 0


def coerce_slots_bet(bet_data: Any) -> Optional[SlotsBet]:
    """Accept a SlotsBet or a mapping using either snake_case or camelCase keys."""
    if isinstance(bet_data, SlotsBet):
        return bet_data
    if not isinstance(bet_data, Mapping):
        return None
    lines = bet_data.get("lines")
    bet_per_line = bet_data.get("bet_per_line", bet_data.get("betPerLine"))
    if lines is None or bet_per_line is None:
        return None
    return SlotsBet(lines=lines, bet_per_line=bet_per_line)


class BetValidator:
    """Bounds and activity checks shared by every game type."""

    def validate(self, amount: int, bet_data: Any, game: ValidatedGame) -> Verdict:
        config = game.config
        if not isinstance(amount, int) or isinstance(amount, bool):
            return self._reject(f"Bet amount {amount!r} is not an integer")
        if amount < config.min_bet:
            return self._reject(
                f"Bet amount {amount} is less than minimum bet {config.min_bet}"
            )
        if amount > config.max_bet:
            return self._reject(
                f"Bet amount {amount} is more than maximum bet {config.max_bet}"
            )
        if not game.is_active:
            return self._reject(f"Game {config.name} is not active")
        return self.validate_shape(amount, bet_data)

    def validate_shape(self, amount: int, bet_data: Any) -> Verdict:
        return Verdict(True)

    @staticmethod
    def _reject(reason: str) -> Verdict:
        logger.warning(reason)
        return Verdict(False, reason)


class SlotsBetValidator(BetValidator):
    def validate_shape(self, amount: int, bet_data: Any) -> Verdict:
        bet = coerce_slots_bet(bet_data)
        if bet is None:
            return self._reject("Missing lines or bet per line")
        if not _positive_int(bet.lines):
            return self._reject("Invalid number of lines")
        if not _positive_int(bet.bet_per_line):
            return self._reject("Invalid bet per line")
        if bet.lines * bet.bet_per_line != amount:
            return self._reject("Total bet amount doesn't match lines * bet_per_line")
        return Verdict(True)
