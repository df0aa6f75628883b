from dataclasses import dataclass
from typing import Annotated, Any, Optional

from fastapi import APIRouter, Depends, FastAPI, Query, status

from ..config import Settings
from ..helper.state_helper import get_ledger, get_settings, receipt_or_raise
from ..ledger.ledger import TokenLedger
from ..schema.ledger import Transaction, WalletSummary

wallet_app = FastAPI()

router = APIRouter()


@dataclass
class BalanceResp:
    address: str
    balance: int
    symbol: str
    decimals: int


@dataclass
class AmountReq:
    amount: int


@dataclass
class GrantReq:
    amount: Optional[int] = None


@dataclass
class TransferReq:
    src: str
    dst: str
    amount: int
    metadata: Optional[dict[str, Any]] = None


@router.get("/{address}/balance")
async def get_balance(
    ledger: Annotated[TokenLedger, Depends(get_ledger)], address: str
) -> BalanceResp:
    info = await ledger.get_token_info()
    return BalanceResp(address, await ledger.balance_of(address), info.symbol, info.decimals)


@router.get("/{address}/history")
async def get_history(
    ledger: Annotated[TokenLedger, Depends(get_ledger)],
    address: str,
    limit: Annotated[Optional[int], Query(ge=1, le=1000)] = None,
) -> list[Transaction]:
    return await ledger.get_transaction_history(address, limit)


@router.get("/{address}/summary")
async def get_summary(
    ledger: Annotated[TokenLedger, Depends(get_ledger)], address: str
) -> WalletSummary:
    return await ledger.get_wallet_summary(address)


@router.post("/{address}/grant", status_code=status.HTTP_201_CREATED)
async def grant_tokens(
    ledger: Annotated[TokenLedger, Depends(get_ledger)],
    settings: Annotated[Settings, Depends(get_settings)],
    address: str,
    req: Optional[GrantReq] = None,
) -> Transaction:
    amount = req.amount if req and req.amount is not None else settings.initial_grant
    return receipt_or_raise(await ledger.grant_initial_tokens(address, amount))


@router.post("/{address}/deposit", status_code=status.HTTP_201_CREATED)
async def deposit(
    ledger: Annotated[TokenLedger, Depends(get_ledger)], address: str, req: AmountReq
) -> Transaction:
    return receipt_or_raise(await ledger.deposit(address, req.amount))


@router.post("/{address}/withdraw", status_code=status.HTTP_201_CREATED)
async def withdraw(
    ledger: Annotated[TokenLedger, Depends(get_ledger)], address: str, req: AmountReq
) -> Transaction:
    return receipt_or_raise(await ledger.withdraw(address, req.amount))


@router.post("/transfer", status_code=status.HTTP_201_CREATED)
async def transfer(
    ledger: Annotated[TokenLedger, Depends(get_ledger)], req: TransferReq
) -> Transaction:
    return receipt_or_raise(
        await ledger.transfer(req.src, req.dst, req.amount, req.metadata)
    )


wallet_app.include_router(router)
