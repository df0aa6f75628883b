import asyncio
import copy
import logging
import secrets
import time
from collections.abc import Callable, Mapping
from dataclasses import replace
from typing import Any, Optional

from ..config import Settings
from ..errors import AmbiguousTransactionError
from ..helper.hashing import GENESIS_TX, chain_link
from ..schema.ledger import (
    Holder,
    LedgerFailure,
    LedgerReceipt,
    TokenInfo,
    Transaction,
    TransactionKind,
    WalletSummary,
)

RESERVE_ADDRESS = "platform-reserve"
COLLECTION_ADDRESS = "platform-account"
BURN_ADDRESS = "burn-address"
MINT_ADDRESS = "mint-address"

MIN_TX_PREFIX = 6

logger = logging.getLogger(__name__)


def _now_ms() -> int:
    return int(time.time() * 1000)


def _valid_amount(amount: int) -> bool:
    return isinstance(amount, int) and not isinstance(amount, bool) and amount > 0


def _tx_body(tx: Transaction) -> dict[str, Any]:
    return {
        "id": tx.id,
        "seq": tx.seq,
        "src": tx.src,
        "dst": tx.dst,
        "amount": tx.amount,
        "timestamp": tx.timestamp,
        "kind": tx.kind,
        "status": tx.status,
        "metadata": tx.metadata,
    }


class TokenLedger:
    """
    In-process token ledger: balances keyed by address plus an append-only,
    hash-chained transaction log.

    Every operation that reads and then writes balances runs under one lock,
    and the balance change and the log append happen with no await in
    between, so a transaction is visible exactly when its balances are.
    """

    def __init__(
        self,
        *,
        name: str = "2xBDamageToken",
        symbol: str = "2XBD",
        initial_supply: int = 1_000_000,
        decimals: int = 2,
        reserve_share: float = 0.9,
        clock: Callable[[], int] = _now_ms,
    ):
        if initial_supply < 0:
            raise ValueError("initial_supply must be >= 0")
        if not 0 <= reserve_share <= 1:
            raise ValueError("reserve_share must be between 0 and 1")

        self._lock = asyncio.Lock()
        self._clock = clock
        self._info = TokenInfo(name, symbol, initial_supply, decimals)
        self._issued = initial_supply
        self._burned = 0
        self._balances: dict[str, int] = {}
        self._log: list[Transaction] = []
        self._by_id: dict[str, Transaction] = {}
        self._by_tx: dict[str, Transaction] = {}
        self._last_ts = 0

        # The remainder of the supply is the collection account's payout float.
        reserve = int(initial_supply * reserve_share)
        if reserve:
            self._balances[RESERVE_ADDRESS] = reserve
        if initial_supply - reserve:
            self._balances[COLLECTION_ADDRESS] = initial_supply - reserve

    @classmethod
    def from_settings(cls, settings: Settings) -> "TokenLedger":
        return cls(
            name=settings.token_name,
            symbol=settings.token_symbol,
            initial_supply=settings.initial_supply,
            decimals=settings.token_decimals,
            reserve_share=settings.reserve_share,
        )

    @property
    def issued_supply(self) -> int:
        return self._issued

    @property
    def burned_total(self) -> int:
        return self._burned

    # Reads

    async def get_token_info(self) -> TokenInfo:
        return replace(self._info)

    async def balance_of(self, address: str) -> int:
        return self._balances.get(address, 0)

    async def get_transaction_history(
        self, address: str, limit: Optional[int] = None
    ) -> list[Transaction]:
        history: list[Transaction] = []
        for tx in reversed(self._log):
            if limit is not None and len(history) >= limit:
                break
            if tx.src == address or tx.dst == address:
                history.append(self._snapshot(tx))
        return history

    async def get_top_holders(self, limit: int = 10) -> list[Holder]:
        if limit <= 0:
            return []
        ranked = sorted(self._balances.items(), key=lambda item: (-item[1], item[0]))
        return [Holder(address, balance) for address, balance in ranked[:limit]]

    async def get_wallet_summary(self, address: str) -> WalletSummary:
        total_won = 0
        total_bet = 0
        for tx in self._log:
            if tx.kind == "win" and tx.dst == address:
                total_won += tx.amount
            elif tx.kind == "bet" and tx.src == address:
                total_bet += tx.amount
        return WalletSummary(
            address=address,
            balance=self._balances.get(address, 0),
            total_won=total_won,
            total_bet=total_bet,
            net_profit=total_won - total_bet,
        )

    async def get_transaction(self, ref: str) -> Optional[Transaction]:
        """
        Look a transaction up by id, by full chain hash, or by a chain hash
        prefix of at least MIN_TX_PREFIX characters.
        Raises AmbiguousTransactionError if the prefix matches more than one.
        """
        found = self._by_id.get(ref) or self._by_tx.get(ref)
        if found:
            return self._snapshot(found)
        if len(ref) < MIN_TX_PREFIX:
            return None
        matches = [tx for key, tx in self._by_tx.items() if key.startswith(ref)]
        if len(matches) > 1:
            raise AmbiguousTransactionError(
                f"Transaction prefix '{ref}' matches {len(matches)} transactions"
            )
        return self._snapshot(matches[0]) if matches else None

    # Audits

    async def verify_chain(self) -> bool:
        prev = GENESIS_TX
        for seq, tx in enumerate(self._log):
            if tx.seq != seq or chain_link(prev, _tx_body(tx)) != tx.tx:
                logger.error("Transaction chain broken at seq %d (%s)", seq, tx.id)
                return False
            prev = tx.tx
        return True

    async def check_conservation(self) -> bool:
        circulating = sum(self._balances.values())
        ok = (
            circulating == self._info.total_supply
            and circulating + self._burned == self._issued
        )
        if not ok:
            logger.critical(
                "Conservation violated: balances=%d total_supply=%d burned=%d issued=%d",
                circulating,
                self._info.total_supply,
                self._burned,
                self._issued,
            )
        return ok

    # Mutations

    async def transfer(
        self,
        src: str,
        dst: str,
        amount: int,
        metadata: Optional[Mapping[str, Any]] = None,
    ) -> LedgerReceipt:
        async with self._lock:
            if not _valid_amount(amount):
                return self._fail("invalid_amount", f"Invalid amount for transfer: {amount!r}")
            if self._balances.get(src, 0) < amount:
                return self._fail(
                    "insufficient_funds", f"Insufficient balance for transfer from {src}"
                )
            return self._commit(src, dst, amount, "transfer", metadata)

    async def grant_initial_tokens(self, address: str, amount: int = 100) -> LedgerReceipt:
        async with self._lock:
            if not _valid_amount(amount):
                return self._fail("invalid_amount", f"Invalid grant amount: {amount!r}")
            if self._balances.get(address, 0) > 0:
                return self._fail("already_funded", f"Address {address} already has tokens")
            if self._balances.get(RESERVE_ADDRESS, 0) < amount:
                return self._fail(
                    "platform_insolvency", "Insufficient tokens in platform reserve"
                )
            return self._commit(
                RESERVE_ADDRESS,
                address,
                amount,
                "initial_grant",
                {"reason": "new_user_grant"},
            )

    async def process_bet(self, user_id: str, amount: int, game_id: str) -> LedgerReceipt:
        async with self._lock:
            if not _valid_amount(amount):
                return self._fail("invalid_amount", f"Invalid bet amount: {amount!r}")
            if self._balances.get(user_id, 0) < amount:
                return self._fail(
                    "insufficient_funds", f"Insufficient balance for bet by {user_id}"
                )
            return self._commit(
                user_id, COLLECTION_ADDRESS, amount, "bet", {"game_id": game_id}
            )

    async def process_win(self, user_id: str, amount: int, game_id: str) -> LedgerReceipt:
        async with self._lock:
            if not _valid_amount(amount):
                return self._fail("invalid_amount", f"Invalid win amount: {amount!r}")
            if self._balances.get(COLLECTION_ADDRESS, 0) < amount:
                return self._fail(
                    "platform_insolvency",
                    f"Insufficient platform balance for payout of {amount} to {user_id}",
                )
            return self._commit(
                COLLECTION_ADDRESS, user_id, amount, "win", {"game_id": game_id}
            )

    async def deposit(
        self, address: str, amount: int, metadata: Optional[Mapping[str, Any]] = None
    ) -> LedgerReceipt:
        async with self._lock:
            if not _valid_amount(amount):
                return self._fail("invalid_amount", f"Invalid deposit amount: {amount!r}")
            if self._balances.get(RESERVE_ADDRESS, 0) < amount:
                return self._fail(
                    "platform_insolvency", "Insufficient tokens in platform reserve"
                )
            return self._commit(RESERVE_ADDRESS, address, amount, "deposit", metadata)

    async def withdraw(
        self, address: str, amount: int, metadata: Optional[Mapping[str, Any]] = None
    ) -> LedgerReceipt:
        async with self._lock:
            if not _valid_amount(amount):
                return self._fail("invalid_amount", f"Invalid withdrawal amount: {amount!r}")
            if self._balances.get(address, 0) < amount:
                return self._fail(
                    "insufficient_funds", f"Insufficient balance for withdrawal by {address}"
                )
            return self._commit(address, RESERVE_ADDRESS, amount, "withdrawal", metadata)

    async def mint(self, amount: int) -> LedgerReceipt:
        if not _valid_amount(amount):
            raise ValueError(f"mint amount must be a positive integer, got {amount!r}")
        async with self._lock:
            receipt = self._commit(
                MINT_ADDRESS,
                RESERVE_ADDRESS,
                amount,
                "deposit",
                {"reason": "token_mint"},
                debit=False,
            )
            if not receipt:
                return receipt
            self._issued += amount
            self._info = replace(self._info, total_supply=self._info.total_supply + amount)
            logger.info("Minted %d tokens, total supply now %d", amount, self._info.total_supply)
            return receipt

    async def burn(self, address: str, amount: int) -> LedgerReceipt:
        async with self._lock:
            if not _valid_amount(amount):
                return self._fail("invalid_amount", f"Invalid burn amount: {amount!r}")
            if self._balances.get(address, 0) < amount:
                return self._fail(
                    "insufficient_funds", f"Insufficient balance to burn from {address}"
                )
            receipt = self._commit(
                address, BURN_ADDRESS, amount, "fee", {"reason": "token_burn"}, credit=False
            )
            if not receipt:
                return receipt
            self._burned += amount
            self._info = replace(self._info, total_supply=self._info.total_supply - amount)
            return receipt

    # Internals; callers hold self._lock

    def _fail(self, failure: LedgerFailure, reason: str) -> LedgerReceipt:
        if failure == "platform_insolvency":
            logger.critical(reason)
        else:
            logger.warning(reason)
        return LedgerReceipt(ok=False, failure=failure, reason=reason)

    def _commit(
        self,
        src: str,
        dst: str,
        amount: int,
        kind: TransactionKind,
        metadata: Optional[Mapping[str, Any]],
        *,
        debit: bool = True,
        credit: bool = True,
    ) -> LedgerReceipt:
        # Runs before any balance moves.
        try:
            tx = self._build(src, dst, amount, kind, metadata)
        except (TypeError, ValueError) as e:
            return self._fail("invalid_metadata", f"Cannot record {kind} metadata: {e}")
        if debit:
            self._balances[src] = self._balances.get(src, 0) - amount
        if credit:
            self._balances[dst] = self._balances.get(dst, 0) + amount
        self._log.append(tx)
        self._by_id[tx.id] = tx
        self._by_tx[tx.tx] = tx
        self._last_ts = tx.timestamp
        logger.debug("%s %s: %s -> %s (%d)", kind, tx.id, src, dst, amount)
        return LedgerReceipt(ok=True, transaction=self._snapshot(tx))

    def _build(
        self,
        src: str,
        dst: str,
        amount: int,
        kind: TransactionKind,
        metadata: Optional[Mapping[str, Any]],
    ) -> Transaction:
        timestamp = max(self._clock(), self._last_ts)
        tx_id = f"tx_{timestamp}_{secrets.token_hex(6)}"
        while tx_id in self._by_id:
            tx_id = f"tx_{timestamp}_{secrets.token_hex(6)}"
        tx = Transaction(
            id=tx_id,
            seq=len(self._log),
            src=src,
            dst=dst,
            amount=amount,
            timestamp=timestamp,
            kind=kind,
            status="completed",
            metadata=copy.deepcopy(dict(metadata or {})),
        )
        prev = self._log[-1].tx if self._log else GENESIS_TX
        return replace(tx, tx=chain_link(prev, _tx_body(tx)))

    @staticmethod
    def _snapshot(tx: Transaction) -> Transaction:
        return replace(tx, metadata=copy.deepcopy(tx.metadata))
