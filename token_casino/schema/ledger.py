from dataclasses import dataclass, field
from typing import Any, Literal, Optional, TypeAlias

from ..errors import InsufficientBalanceError, PlatformInsolvencyError

TransactionKind: TypeAlias = Literal[
    "transfer", "deposit", "withdrawal", "bet", "win", "initial_grant", "fee"
]
TransactionStatus: TypeAlias = Literal["pending", "completed", "failed"]
LedgerFailure: TypeAlias = Literal[
    "invalid_amount",
    "invalid_metadata",
    "insufficient_funds",
    "platform_insolvency",
    "already_funded",
]


@dataclass(frozen=True)
class TokenInfo:
    name: str
    symbol: str
    total_supply: int
    decimals: int


@dataclass(frozen=True)
class Transaction:
    id: str
    seq: int
    src: str
    dst: str
    amount: int
    timestamp: int
    kind: TransactionKind
    status: TransactionStatus
    metadata: dict[str, Any] = field(default_factory=dict)
    tx: str = ""


@dataclass(frozen=True)
class Holder:
    address: str
    balance: int


@dataclass(frozen=True)
class WalletSummary:
    address: str
    balance: int
    total_won: int
    total_bet: int
    net_profit: int


@dataclass(frozen=True)
class LedgerReceipt:
    ok: bool
    transaction: Optional[Transaction] = None
    failure: Optional[LedgerFailure] = None
    reason: str = ""

    def __bool__(self) -> bool:
        return self.ok

    def raise_for_failure(self) -> Transaction:
        if self.ok and self.transaction is not None:
            return self.transaction
        if self.failure == "platform_insolvency":
            raise PlatformInsolvencyError(self.reason)
        if self.failure == "insufficient_funds":
            raise InsufficientBalanceError(self.reason)
        raise ValueError(self.reason)
