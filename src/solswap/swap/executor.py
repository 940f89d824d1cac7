"""Swap execution engine.

Turns a selected quote into a submitted transaction and a final
confirmation status:

1. Request the swap transaction for the quote from the quote service
2. Decode it (versioned or legacy), sign it, submit it
3. Run the confirmation phase unless submission already confirmed it

``execute`` never raises. Every outcome is a SubmissionResult, and once the
network has accepted a transaction its signature is always part of the
result.
"""

import asyncio
import json
import logging
from typing import Optional

import httpx

from solswap.config import ConfirmationPolicy
from solswap.errors import QuoteServiceError, SubmissionError
from solswap.ledger.connection import LedgerConnection, SendOutcome, SendStatus
from solswap.routing.base import Quote, QuoteService
from solswap.swap.confirmation import ConfirmationPhase, Sleep
from solswap.swap.payload import TransactionPayload, decode_payload
from solswap.swap.result import SubmissionResult
from solswap.swap.signer import SolanaSigner

logger = logging.getLogger(__name__)


def _detail_text(detail) -> Optional[str]:
    if not detail:
        return None
    if isinstance(detail, dict):
        message = detail.get("error") or detail.get("message")
        if message:
            return str(message)
        return json.dumps(detail)
    return str(detail)


def describe_error(exc: BaseException) -> str:
    """Best available description of an error.

    Walks the cause chain and prefers structured detail (API error bodies),
    falling back to the innermost non-empty message.
    """
    message = str(exc) or type(exc).__name__
    current: Optional[BaseException] = exc
    while current is not None:
        if isinstance(current, QuoteServiceError):
            text = _detail_text(current.detail)
            if text:
                return text
        elif isinstance(current, httpx.HTTPStatusError):
            try:
                text = _detail_text(current.response.json())
            except ValueError:
                text = _detail_text(current.response.text)
            if text:
                return text
        if str(current):
            message = str(current)
        current = current.__cause__
    return message


async def submit_payload(
    connection: LedgerConnection,
    signer: SolanaSigner,
    payload: TransactionPayload,
) -> SendOutcome:
    """Sign and send a decoded payload.

    Versioned transactions are sent raw and come back SUBMITTED. Legacy
    transactions go through the combined send-and-confirm call and come back
    CONFIRMED, FAILED or TIMED_OUT.
    """
    if payload.is_versioned:
        signed = signer.sign_versioned(payload.transaction)
        signature = await connection.send_raw_transaction(bytes(signed))
        return SendOutcome(signature=signature, status=SendStatus.SUBMITTED)

    signed = signer.sign_legacy(payload.transaction)
    outcome = await connection.send_and_confirm(signed)
    if outcome.status == SendStatus.TIMED_OUT:
        logger.info(
            f"Transaction submitted but confirmation timed out. Signature: {outcome.signature}"
        )
    return outcome


async def settle_outcome(
    connection: LedgerConnection,
    outcome: SendOutcome,
    confirmation: ConfirmationPhase,
) -> SubmissionResult:
    """Final result for a sent transaction, running the confirmation phase if needed."""
    if outcome.status == SendStatus.FAILED:
        return SubmissionResult.failed(outcome.err, signature=outcome.signature)
    if outcome.confirmed:
        return SubmissionResult.confirmed(outcome.signature)
    return await confirmation.run(connection, outcome.signature)


def log_error_context(exc: BaseException) -> None:
    """Log API bodies and simulation logs attached to an error."""
    if isinstance(exc, SubmissionError) and exc.logs:
        logger.error("Transaction logs:\n" + "\n".join(exc.logs))
    if isinstance(exc, QuoteServiceError) and exc.detail is not None:
        try:
            body = json.dumps(exc.detail, indent=2)
        except (TypeError, ValueError):
            body = str(exc.detail)
        logger.error(f"API error details (status {exc.status_code}): {body}")


class SwapExecutor:
    """Executes Jupiter swaps and tracks them to a final status."""

    def __init__(
        self,
        quote_service: QuoteService,
        policy: Optional[ConfirmationPolicy] = None,
        sleep: Sleep = asyncio.sleep,
    ):
        """Initialize the executor.

        Args:
            quote_service: Service that builds swap transactions for quotes
            policy: Confirmation timing (defaults to ConfirmationPolicy())
            sleep: Async sleep used between confirmation attempts
        """
        self.quote_service = quote_service
        self.confirmation = ConfirmationPhase(policy, sleep=sleep)

    async def execute(
        self,
        connection: LedgerConnection,
        signer: SolanaSigner,
        quote: Quote,
    ) -> SubmissionResult:
        """Execute a swap based on a quote.

        Args:
            connection: Open ledger connection
            signer: Wallet signer; its public key receives the output
            quote: The quote to execute (consumed once)

        Returns:
            SubmissionResult: confirmed, failed or unknown
        """
        signature: Optional[str] = None
        try:
            raw = await self.quote_service.get_swap_transaction(
                quote, signer.public_key, wrap_and_unwrap_sol=True
            )
            payload = decode_payload(raw)
            logger.info(f"Using {payload.format.value} transaction format")

            outcome = await submit_payload(connection, signer, payload)
            signature = outcome.signature
            logger.info(f"Transaction submitted with ID: {signature}")

            return await settle_outcome(connection, outcome, self.confirmation)

        except Exception as e:
            reason = describe_error(e)
            logger.error(f"Failed to execute swap: {type(e).__name__}: {e}")
            log_error_context(e)
            return SubmissionResult.failed(reason, signature=signature)
