from .ledger import (
    BURN_ADDRESS,
    COLLECTION_ADDRESS,
    MINT_ADDRESS,
    RESERVE_ADDRESS,
    TokenLedger,
)

__all__ = [
    "BURN_ADDRESS",
    "COLLECTION_ADDRESS",
    "MINT_ADDRESS",
    "RESERVE_ADDRESS",
    "TokenLedger",
]
