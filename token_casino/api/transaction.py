from typing import Annotated

from fastapi import APIRouter, Depends, FastAPI, HTTPException

from ..errors import AmbiguousTransactionError
from ..helper.state_helper import get_ledger
from ..ledger.ledger import TokenLedger
from ..schema.ledger import Transaction

tr_app = FastAPI()

public_router = APIRouter()


@public_router.get("/get/{ref}")
async def get_transaction(
    ledger: Annotated[TokenLedger, Depends(get_ledger)], ref: str
) -> Transaction:
    try:
        result = await ledger.get_transaction(ref)
    except AmbiguousTransactionError:
        raise HTTPException(409, "Transaction ID is ambiguous and matches multiple transactions.")
    if result is None:
        raise HTTPException(404, "The requested transaction cannot be found")
    return result


tr_app.include_router(public_router)
