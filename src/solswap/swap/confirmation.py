"""Post-submission confirmation phase.

    Submitted --direct confirm ok--> Confirmed
    Submitted --direct confirm timeout/error--> Polling
    Polling --confirmed/finalized--> Confirmed
    Polling --status error--> Failed
    Polling --retries exhausted, history hit--> Confirmed
    Polling --retries exhausted, history miss/error--> Unknown

Only confirmation is retried here; a transaction is never re-submitted.
"""

import asyncio
import logging
from dataclasses import dataclass
from typing import Awaitable, Callable, Optional

from solswap.config import ConfirmationPolicy
from solswap.ledger.connection import LedgerConnection
from solswap.swap.result import SubmissionResult

logger = logging.getLogger(__name__)

Sleep = Callable[[float], Awaitable[None]]


def backoff_delays(initial_delay: float, backoff: float, count: int) -> list[float]:
    """Delays slept between status queries: d0, d0*m, d0*m^2, ..."""
    return [initial_delay * backoff ** i for i in range(count)]


@dataclass
class RetryState:
    """Polling loop state. Lives only while one signature is being polled."""

    max_retries: int
    initial_delay: float
    backoff: float
    retries: int = 0
    delay: float = 0.0

    @classmethod
    def start(cls, policy: ConfirmationPolicy) -> "RetryState":
        return cls(
            max_retries=policy.max_retries,
            initial_delay=policy.initial_delay,
            backoff=policy.backoff,
            delay=policy.initial_delay,
        )

    @property
    def exhausted(self) -> bool:
        return self.retries >= self.max_retries

    def advance(self) -> None:
        self.retries += 1
        self.delay *= self.backoff


class ConfirmationPhase:
    """Determines the fate of a submitted signature."""

    def __init__(
        self,
        policy: Optional[ConfirmationPolicy] = None,
        sleep: Sleep = asyncio.sleep,
    ):
        self.policy = policy or ConfirmationPolicy()
        self._sleep = sleep

    async def run(self, connection: LedgerConnection, signature: str) -> SubmissionResult:
        """Settle, try one direct confirmation, then fall back to polling."""
        await self._sleep(self.policy.settle_delay)

        try:
            status = await connection.confirm(signature)
        except Exception as e:
            logger.info(f"Standard confirmation of {signature} timed out ({e}), polling status")
        else:
            if status.err is not None:
                logger.warning(f"Transaction {signature} failed: {status.err}")
                return SubmissionResult.failed(status.err, signature=signature)
            if status.is_confirmed:
                logger.info(f"Transaction {signature} confirmed")
                return SubmissionResult.confirmed(signature)
            logger.info(f"Transaction {signature} not yet confirmed, polling status")

        return await self.poll(connection, signature)

    async def poll(self, connection: LedgerConnection, signature: str) -> SubmissionResult:
        """Poll the signature status with exponential backoff."""
        state = RetryState.start(self.policy)

        while not state.exhausted:
            try:
                status = await connection.get_signature_status(signature, search_history=True)
            except Exception as e:
                logger.warning(
                    f"Error checking transaction status (attempt {state.retries + 1}): {e}"
                )
            else:
                if status.err is not None:
                    logger.warning(f"Transaction {signature} failed: {status.err}")
                    return SubmissionResult.failed(status.err, signature=signature)
                if status.is_confirmed:
                    logger.info(f"Transaction {signature} {status.confirmation_status}")
                    return SubmissionResult.confirmed(signature)

            await self._sleep(state.delay)
            state.advance()

        return await self._lookup_history(connection, signature)

    async def _lookup_history(
        self,
        connection: LedgerConnection,
        signature: str,
    ) -> SubmissionResult:
        """Last resort: a transaction record on the ledger proves it landed."""
        try:
            if await connection.get_transaction(signature):
                logger.info(f"Transaction {signature} found in history")
                return SubmissionResult.confirmed(signature)
            reason = "transaction not found after polling"
        except Exception as e:
            logger.warning(f"Final transaction check failed: {e}")
            reason = f"final transaction check failed: {e}"

        logger.warning(f"Transaction {signature} status unknown after {self.policy.max_retries} checks")
        return SubmissionResult.unknown(signature, reason=reason)
