"""Solana JSON-RPC connection.

Thin async wrapper over solana-py's AsyncClient that speaks in plain
strings and solswap types, and turns RPC failures into structured results:
a rejected transaction raises SubmissionError, while a transaction that was
sent but not confirmed in time comes back as SendStatus.TIMED_OUT with its
signature.
"""

import logging
from dataclasses import dataclass
from decimal import Decimal
from enum import Enum
from typing import Optional

from solana.rpc.async_api import AsyncClient
from solana.rpc.commitment import Commitment, Confirmed
from solana.rpc.core import (
    RPCException,
    TransactionExpiredBlockheightExceededError,
    UnconfirmedTxError,
)
from solana.rpc.types import TokenAccountOpts, TxOpts
from solders.pubkey import Pubkey
from solders.signature import Signature
from solders.transaction import Transaction
from solders.transaction_status import TransactionConfirmationStatus

from solswap.errors import SubmissionError
from solswap.tokens import LAMPORTS_PER_SOL, TokenInfo

logger = logging.getLogger(__name__)

TOKEN_PROGRAM_ID = Pubkey.from_string("TokenkegQfeZyiNwAJbNbGKPFXCWuBvf9Ss623VQ5DA")


def _confirmation_name(status) -> str:
    # Old rooted transactions report no confirmation status
    if status is None or status == TransactionConfirmationStatus.Finalized:
        return "finalized"
    if status == TransactionConfirmationStatus.Confirmed:
        return "confirmed"
    return "processed"


class SendStatus(str, Enum):
    """What is known about a transaction the network accepted."""
    SUBMITTED = "submitted"  # Accepted, confirmation not awaited
    CONFIRMED = "confirmed"
    FAILED = "failed"  # Landed with a transaction error
    TIMED_OUT = "timed_out"  # Submitted, but confirmation was not observed


@dataclass(frozen=True)
class SendOutcome:
    """A transaction the network accepted."""
    signature: str
    status: SendStatus
    err: Optional[str] = None

    @property
    def confirmed(self) -> bool:
        return self.status == SendStatus.CONFIRMED


@dataclass(frozen=True)
class SignatureStatus:
    """Status of a signature as reported by the cluster.

    Attributes:
        signature: The queried signature
        confirmation_status: processed / confirmed / finalized, None if not found
        err: Transaction error description, None if the transaction succeeded
    """
    signature: str
    confirmation_status: Optional[str] = None
    err: Optional[str] = None

    @property
    def found(self) -> bool:
        return self.confirmation_status is not None or self.err is not None

    @property
    def is_confirmed(self) -> bool:
        return self.err is None and self.confirmation_status in ("confirmed", "finalized")


@dataclass(frozen=True)
class TokenAccount:
    """An SPL token account balance."""
    mint: str
    amount: Decimal
    decimals: int


def _rpc_error_detail(exc: RPCException) -> tuple[str, list[str]]:
    """Pull the message and simulation logs out of an RPC exception."""
    message = str(exc)
    for arg in exc.args:
        arg_message = getattr(arg, "message", None)
        if arg_message:
            message = arg_message
        logs = getattr(getattr(arg, "data", None), "logs", None)
        if logs:
            return message, list(logs)
    return message, []


class LedgerConnection:
    """Async Solana RPC connection.

    Use as an async context manager so the underlying HTTP client is closed:

        async with LedgerConnection(network.rpc_url) as connection:
            lamports = await connection.get_balance(address)
    """

    def __init__(
        self,
        rpc_url: str,
        commitment: Commitment = Confirmed,
        client: Optional[AsyncClient] = None,
    ):
        self.rpc_url = rpc_url
        self.commitment = commitment
        self.client = client or AsyncClient(rpc_url, commitment=commitment)

    async def __aenter__(self) -> "LedgerConnection":
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.close()

    async def close(self) -> None:
        await self.client.close()

    # ----------------------
    # Balances
    # ----------------------

    async def get_balance(self, owner: str) -> int:
        """Get native balance in lamports."""
        resp = await self.client.get_balance(Pubkey.from_string(owner), commitment=self.commitment)
        return resp.value

    async def get_token_accounts(self, owner: str) -> list[TokenAccount]:
        """Get the owner's SPL token accounts (token program only)."""
        resp = await self.client.get_token_accounts_by_owner_json_parsed(
            Pubkey.from_string(owner),
            TokenAccountOpts(program_id=TOKEN_PROGRAM_ID),
            commitment=self.commitment,
        )

        accounts = []
        for keyed in resp.value:
            info = keyed.account.data.parsed["info"]
            token_amount = info["tokenAmount"]
            accounts.append(
                TokenAccount(
                    mint=info["mint"],
                    amount=Decimal(token_amount.get("uiAmountString") or "0"),
                    decimals=int(token_amount.get("decimals", 0)),
                )
            )
        return accounts

    async def get_token_balance(self, owner: str, token: TokenInfo) -> Decimal:
        """Get the owner's balance of a token in human units."""
        if token.is_native:
            lamports = await self.get_balance(owner)
            return Decimal(lamports) / Decimal(LAMPORTS_PER_SOL)

        for account in await self.get_token_accounts(owner):
            if account.mint == token.address:
                return account.amount
        return Decimal("0")

    async def account_exists(self, address: str) -> bool:
        """Check whether an account exists at the address."""
        resp = await self.client.get_account_info(Pubkey.from_string(address), commitment=self.commitment)
        return resp.value is not None

    # ----------------------
    # Submission
    # ----------------------

    async def send_raw_transaction(self, raw: bytes) -> str:
        """Submit a signed, serialized transaction without waiting for confirmation.

        Raises:
            SubmissionError: If preflight simulation or the node rejects it
        """
        try:
            resp = await self.client.send_raw_transaction(
                raw,
                opts=TxOpts(skip_preflight=False, preflight_commitment=self.commitment),
            )
        except RPCException as e:
            message, logs = _rpc_error_detail(e)
            raise SubmissionError(f"Transaction rejected: {message}", logs=logs) from e
        return str(resp.value)

    async def send_and_confirm(self, transaction: Transaction) -> SendOutcome:
        """Submit a signed legacy transaction and wait for confirmation.

        The signature is taken from the signed transaction, so a confirmation
        timeout still reports exactly what was submitted. A transaction that
        lands with an error comes back FAILED with the error, not CONFIRMED.

        Raises:
            SubmissionError: If preflight simulation or the node rejects it
        """
        signature = str(transaction.signatures[0])
        try:
            await self.client.send_transaction(
                transaction,
                opts=TxOpts(
                    skip_confirmation=True,
                    skip_preflight=False,
                    preflight_commitment=self.commitment,
                ),
            )
        except RPCException as e:
            message, logs = _rpc_error_detail(e)
            raise SubmissionError(f"Transaction rejected: {message}", logs=logs) from e

        # confirm_transaction stops at the commitment level without checking err
        try:
            status = await self.confirm(signature)
        except (UnconfirmedTxError, TransactionExpiredBlockheightExceededError) as e:
            logger.info(f"Transaction {signature} submitted but not confirmed: {e}")
            return SendOutcome(signature=signature, status=SendStatus.TIMED_OUT)

        if status.err is not None:
            logger.warning(f"Transaction {signature} failed on chain: {status.err}")
            return SendOutcome(signature=signature, status=SendStatus.FAILED, err=status.err)
        if status.is_confirmed:
            return SendOutcome(signature=signature, status=SendStatus.CONFIRMED)
        return SendOutcome(signature=signature, status=SendStatus.TIMED_OUT)

    # ----------------------
    # Confirmation
    # ----------------------

    async def confirm(self, signature: str, sleep_seconds: float = 0.5) -> SignatureStatus:
        """Wait for confirmation, bounded by a fresh blockhash's validity window.

        Raises:
            UnconfirmedTxError / TransactionExpiredBlockheightExceededError on timeout
        """
        latest = await self.client.get_latest_blockhash(self.commitment)
        resp = await self.client.confirm_transaction(
            Signature.from_string(signature),
            self.commitment,
            sleep_seconds=sleep_seconds,
            last_valid_block_height=latest.value.last_valid_block_height,
        )
        return self._to_status(signature, resp.value[0] if resp.value else None)

    async def get_signature_status(
        self,
        signature: str,
        search_history: bool = True,
    ) -> SignatureStatus:
        """Query the status of a single signature."""
        resp = await self.client.get_signature_statuses(
            [Signature.from_string(signature)],
            search_transaction_history=search_history,
        )
        return self._to_status(signature, resp.value[0] if resp.value else None)

    async def get_transaction(self, signature: str) -> bool:
        """Check whether the full transaction record exists on the ledger."""
        resp = await self.client.get_transaction(
            Signature.from_string(signature),
            encoding="jsonParsed",
            commitment=self.commitment,
            max_supported_transaction_version=0,
        )
        return resp.value is not None

    @staticmethod
    def _to_status(signature: str, status) -> SignatureStatus:
        if status is None:
            return SignatureStatus(signature=signature)
        return SignatureStatus(
            signature=signature,
            confirmation_status=_confirmation_name(status.confirmation_status),
            err=str(status.err) if status.err is not None else None,
        )

    # ----------------------
    # Devnet helpers
    # ----------------------

    async def request_airdrop(self, owner: str, lamports: int = LAMPORTS_PER_SOL) -> str:
        """Request an airdrop (test networks only) and wait for it to confirm."""
        resp = await self.client.request_airdrop(Pubkey.from_string(owner), lamports)
        signature = resp.value
        await self.client.confirm_transaction(signature, self.commitment)
        return str(signature)

    async def get_latest_blockhash(self):
        """Get the latest blockhash (solders Hash)."""
        resp = await self.client.get_latest_blockhash(self.commitment)
        return resp.value.blockhash
