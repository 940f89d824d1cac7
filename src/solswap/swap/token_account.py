"""Associated token accounts.

Derives a wallet's associated token account for a mint and creates it with a
legacy transaction when it does not exist yet. Creation goes through the
same submission and confirmation path as swaps.
"""

import logging
from dataclasses import dataclass
from typing import Optional

from solders.instruction import AccountMeta, Instruction
from solders.message import Message
from solders.pubkey import Pubkey
from solders.system_program import ID as SYSTEM_PROGRAM_ID
from solders.transaction import Transaction

from solswap.ledger.connection import TOKEN_PROGRAM_ID, LedgerConnection
from solswap.swap.confirmation import ConfirmationPhase
from solswap.swap.executor import describe_error, log_error_context, settle_outcome, submit_payload
from solswap.swap.payload import TransactionFormat, TransactionPayload
from solswap.swap.result import SubmissionResult
from solswap.swap.signer import SolanaSigner

logger = logging.getLogger(__name__)

ASSOCIATED_TOKEN_PROGRAM_ID = Pubkey.from_string("ATokenGPvbdGVxr1b2hvZbsiqW5xWH25efTNsLJA8knL")


@dataclass(frozen=True)
class TokenAccountResult:
    """Outcome of ensuring a token account.

    Attributes:
        address: The associated token account address
        result: Creation result, None if the account already existed
    """
    address: str
    result: Optional[SubmissionResult] = None

    @property
    def created(self) -> bool:
        return self.result is not None and self.result.is_confirmed

    @property
    def is_failed(self) -> bool:
        return self.result is not None and self.result.is_failed


def find_associated_token_address(owner: str, mint: str) -> Pubkey:
    """Derive the associated token account of owner for mint.

    Raises:
        ValueError: If owner or mint is not a valid address
    """
    address, _ = Pubkey.find_program_address(
        [bytes(Pubkey.from_string(owner)), bytes(TOKEN_PROGRAM_ID), bytes(Pubkey.from_string(mint))],
        ASSOCIATED_TOKEN_PROGRAM_ID,
    )
    return address


def build_create_token_account(
    signer: SolanaSigner,
    owner: str,
    mint: str,
    recent_blockhash,
) -> Transaction:
    """Build an unsigned transaction creating owner's token account, paid by the signer."""
    payer = signer.keypair.pubkey()
    instruction = Instruction(
        ASSOCIATED_TOKEN_PROGRAM_ID,
        b"",
        [
            AccountMeta(payer, is_signer=True, is_writable=True),
            AccountMeta(find_associated_token_address(owner, mint), is_signer=False, is_writable=True),
            AccountMeta(Pubkey.from_string(owner), is_signer=False, is_writable=False),
            AccountMeta(Pubkey.from_string(mint), is_signer=False, is_writable=False),
            AccountMeta(SYSTEM_PROGRAM_ID, is_signer=False, is_writable=False),
            AccountMeta(TOKEN_PROGRAM_ID, is_signer=False, is_writable=False),
        ],
    )
    message = Message.new_with_blockhash([instruction], payer, recent_blockhash)
    return Transaction.new_unsigned(message)


async def ensure_token_account(
    connection: LedgerConnection,
    signer: SolanaSigner,
    mint: str,
    confirmation: ConfirmationPhase,
) -> TokenAccountResult:
    """Create the signer's token account for a mint if it is missing.

    Raises:
        ValueError: If mint is not a valid address
    """
    owner = signer.public_key
    address = str(find_associated_token_address(owner, mint))

    if await connection.account_exists(address):
        logger.info(f"Token account {address} already exists")
        return TokenAccountResult(address=address)

    logger.info(f"Creating token account {address}")
    signature = None
    try:
        blockhash = await connection.get_latest_blockhash()
        transaction = build_create_token_account(signer, owner, mint, blockhash)
        payload = TransactionPayload(format=TransactionFormat.LEGACY, transaction=transaction)

        outcome = await submit_payload(connection, signer, payload)
        signature = outcome.signature
        result = await settle_outcome(connection, outcome, confirmation)
    except Exception as e:
        logger.error(f"Failed to create token account: {type(e).__name__}: {e}")
        log_error_context(e)
        result = SubmissionResult.failed(describe_error(e), signature=signature)

    return TokenAccountResult(address=address, result=result)
