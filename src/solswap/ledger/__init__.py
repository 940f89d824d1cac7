"""Ledger module: Solana RPC access for balances, submission and status."""

from solswap.ledger.connection import (
    TOKEN_PROGRAM_ID,
    LedgerConnection,
    SendOutcome,
    SendStatus,
    SignatureStatus,
    TokenAccount,
)

__all__ = [
    "LedgerConnection",
    "SendOutcome",
    "SendStatus",
    "SignatureStatus",
    "TokenAccount",
    "TOKEN_PROGRAM_ID",
]
