"""Native SOL transfers.

Builds a legacy system-program transfer and runs it through the same
submission and confirmation path as swaps.
"""

import logging

from solders.message import Message
from solders.pubkey import Pubkey
from solders.system_program import TransferParams, transfer
from solders.transaction import Transaction

from solswap.ledger.connection import LedgerConnection
from solswap.swap.confirmation import ConfirmationPhase
from solswap.swap.executor import describe_error, log_error_context, settle_outcome, submit_payload
from solswap.swap.payload import TransactionFormat, TransactionPayload
from solswap.swap.result import SubmissionResult
from solswap.swap.signer import SolanaSigner

logger = logging.getLogger(__name__)


def build_transfer(
    signer: SolanaSigner,
    recipient: str,
    lamports: int,
    recent_blockhash,
) -> Transaction:
    """Build an unsigned legacy transfer from the signer's wallet.

    Raises:
        ValueError: If the recipient is not a valid address or lamports <= 0
    """
    if lamports <= 0:
        raise ValueError(f"Transfer amount must be positive, got {lamports}")

    payer = signer.keypair.pubkey()
    instruction = transfer(
        TransferParams(
            from_pubkey=payer,
            to_pubkey=Pubkey.from_string(recipient),
            lamports=lamports,
        )
    )
    message = Message.new_with_blockhash([instruction], payer, recent_blockhash)
    return Transaction.new_unsigned(message)


async def transfer_sol(
    connection: LedgerConnection,
    signer: SolanaSigner,
    recipient: str,
    lamports: int,
    confirmation: ConfirmationPhase,
) -> SubmissionResult:
    """Send SOL and track the transfer to a final status. Never raises."""
    signature = None
    try:
        blockhash = await connection.get_latest_blockhash()
        transaction = build_transfer(signer, recipient, lamports, blockhash)
        payload = TransactionPayload(format=TransactionFormat.LEGACY, transaction=transaction)

        outcome = await submit_payload(connection, signer, payload)
        signature = outcome.signature
        logger.info(f"Transfer submitted with ID: {signature}")

        return await settle_outcome(connection, outcome, confirmation)

    except Exception as e:
        logger.error(f"Failed to transfer SOL: {type(e).__name__}: {e}")
        log_error_context(e)
        return SubmissionResult.failed(describe_error(e), signature=signature)
