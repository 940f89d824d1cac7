"""Swap transaction payload decoding.

The swap API returns either a versioned (v0) or a legacy transaction. The
two wire formats differ in the first byte of the message: versioned messages
set the high bit as a version prefix, legacy messages start with the
required-signature count, which is always below 128.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Union

from solders.transaction import Transaction, VersionedTransaction

from solswap.errors import QuoteServiceError

SIGNATURE_LENGTH = 64
VERSION_PREFIX_MASK = 0x80


class TransactionFormat(str, Enum):
    """Wire format of a transaction payload."""
    VERSIONED = "versioned"
    LEGACY = "legacy"


@dataclass
class TransactionPayload:
    """A decoded swap transaction tagged with its format."""
    format: TransactionFormat
    transaction: Union[VersionedTransaction, Transaction]

    @property
    def is_versioned(self) -> bool:
        return self.format == TransactionFormat.VERSIONED


def _read_compact_u16(data: bytes, offset: int = 0) -> tuple[int, int]:
    """Read a compact-u16 (shortvec) length. Returns (value, bytes consumed)."""
    value = 0
    for i in range(3):
        if offset + i >= len(data):
            raise ValueError("Truncated length prefix")
        byte = data[offset + i]
        value |= (byte & 0x7F) << (7 * i)
        if not byte & 0x80:
            return value, i + 1
    raise ValueError("Length prefix too long")


def detect_format(raw: bytes) -> TransactionFormat:
    """Inspect the message prefix of a serialized transaction.

    Raises:
        ValueError: If the bytes are too short to hold a message
    """
    num_signatures, consumed = _read_compact_u16(raw)
    message_start = consumed + num_signatures * SIGNATURE_LENGTH
    if message_start >= len(raw):
        raise ValueError("Transaction has no message")
    if raw[message_start] & VERSION_PREFIX_MASK:
        return TransactionFormat.VERSIONED
    return TransactionFormat.LEGACY


def decode_payload(raw: bytes) -> TransactionPayload:
    """Decode a serialized swap transaction into its tagged variant.

    Raises:
        QuoteServiceError: If the payload is neither format
    """
    try:
        tx_format = detect_format(raw)
        if tx_format == TransactionFormat.VERSIONED:
            transaction = VersionedTransaction.from_bytes(raw)
        else:
            transaction = Transaction.from_bytes(raw)
    except Exception as e:  # solders raises its own bincode error types
        raise QuoteServiceError(f"Malformed swap transaction: {e}") from e

    return TransactionPayload(format=tx_format, transaction=transaction)
