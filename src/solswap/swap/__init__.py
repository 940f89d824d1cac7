"""Swap module: signing, submission and confirmation of swap transactions."""

from solswap.swap.confirmation import ConfirmationPhase, RetryState, backoff_delays
from solswap.swap.executor import SwapExecutor, describe_error, settle_outcome, submit_payload
from solswap.swap.payload import (
    TransactionFormat,
    TransactionPayload,
    decode_payload,
    detect_format,
)
from solswap.swap.result import ConfirmationStatus, SubmissionResult
from solswap.swap.signer import SolanaSigner, load_signer
from solswap.swap.token_account import (
    TokenAccountResult,
    ensure_token_account,
    find_associated_token_address,
)
from solswap.swap.transfer import build_transfer, transfer_sol

__all__ = [
    # Execution
    "SwapExecutor",
    "submit_payload",
    "settle_outcome",
    "describe_error",
    "transfer_sol",
    "build_transfer",
    "ensure_token_account",
    "find_associated_token_address",
    "TokenAccountResult",
    # Results
    "SubmissionResult",
    "ConfirmationStatus",
    # Confirmation
    "ConfirmationPhase",
    "RetryState",
    "backoff_delays",
    # Payloads
    "TransactionFormat",
    "TransactionPayload",
    "decode_payload",
    "detect_format",
    # Signing
    "SolanaSigner",
    "load_signer",
]
