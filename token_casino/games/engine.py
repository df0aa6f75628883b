import logging
import time
from typing import Any

from ..errors import PlatformInsolvencyError
from ..ledger.ledger import TokenLedger
from ..schema.game import BetResult
from .base import Game
from .fairness import FairnessHasher

logger = logging.getLogger(__name__)


async def play_round(
    game: Game,
    ledger: TokenLedger,
    hasher: FairnessHasher,
    user_id: str,
    amount: int,
    bet_data: Any,
) -> BetResult:
    """
    Settle one round: validate, take the wager, draw and evaluate the outcome,
    hash it, then pay any win.

    The wager is debited before the draw, so a player who cannot cover it
    never gets an outcome. Failing to pay a win means the collection account
    is short, which is an accounting bug; it raises PlatformInsolvencyError.
    """
    game_id = game.config.id
    verdict = game.validate_bet(amount, bet_data)
    if not verdict:
        return BetResult.failure(verdict.reason, "validation")
    bet = game.normalize_bet(bet_data)

    debit = await ledger.process_bet(user_id, amount, game_id)
    if not debit:
        error = "insufficient_funds" if debit.failure == "insufficient_funds" else "validation"
        return BetResult.failure(debit.reason, error)
    transactions = [debit.raise_for_failure().id]

    outcome = game.generate_outcome()
    evaluation = game.evaluate(outcome, bet)
    timestamp = int(time.time() * 1000)
    verification_hash = hasher.hash(user_id, bet, outcome, timestamp)

    payout = evaluation.total_win
    if payout > 0:
        credit = await ledger.process_win(user_id, payout, game_id)
        if not credit:
            logger.critical(
                "Unpaid round on %s for %s: bet tx %s, payout %d, timestamp %d, "
                "verification hash %s, outcome %s",
                game_id,
                user_id,
                transactions[0],
                payout,
                timestamp,
                verification_hash,
                game.describe_round(outcome, evaluation),
            )
            raise PlatformInsolvencyError(
                f"Cannot pay {payout} to {user_id} on game {game_id}: {credit.reason}"
            )
        transactions.append(credit.raise_for_failure().id)

    logger.info(
        "Round on %s for %s: bet %d, payout %d", game_id, user_id, amount, payout
    )
    return BetResult(
        success=True,
        payout=payout,
        outcome="win" if payout > 0 else "loss",
        game_data=game.describe_round(outcome, evaluation),
        verification_hash=verification_hash,
        timestamp=timestamp,
        transactions=transactions,
    )
