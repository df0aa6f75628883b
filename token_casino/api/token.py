from dataclasses import dataclass
from typing import Annotated

from fastapi import APIRouter, Depends, FastAPI, Query

from ..helper.state_helper import get_ledger
from ..ledger.ledger import TokenLedger
from ..schema.ledger import Holder, TokenInfo

token_app = FastAPI()

router = APIRouter()


@dataclass
class AuditResp:
    chain_valid: bool
    conserved: bool
    total_supply: int
    issued_supply: int
    burned_total: int


@router.get("/info")
async def get_token_info(ledger: Annotated[TokenLedger, Depends(get_ledger)]) -> TokenInfo:
    return await ledger.get_token_info()


@router.get("/holders")
async def get_top_holders(
    ledger: Annotated[TokenLedger, Depends(get_ledger)],
    limit: Annotated[int, Query(ge=1, le=100)] = 10,
) -> list[Holder]:
    return await ledger.get_top_holders(limit)


@router.get("/audit")
async def audit(ledger: Annotated[TokenLedger, Depends(get_ledger)]) -> AuditResp:
    info = await ledger.get_token_info()
    return AuditResp(
        chain_valid=await ledger.verify_chain(),
        conserved=await ledger.check_conservation(),
        total_supply=info.total_supply,
        issued_supply=ledger.issued_supply,
        burned_total=ledger.burned_total,
    )


token_app.include_router(router)
