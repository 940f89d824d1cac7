"""Pytest configuration and fixtures."""

import os
from decimal import Decimal
from unittest.mock import AsyncMock

import pytest

# Set test environment
for _name in ("SOLANA_PRIVATE_KEY", "WALLET_SEED_PHRASE", "WALLET_KEY_PATH", "SOLANA_RPC_URL"):
    os.environ.pop(_name, None)
os.environ["SOLANA_NETWORK"] = "mainnet-beta"
os.environ["DEBUG"] = "false"

from solders.hash import Hash
from solders.keypair import Keypair
from solders.message import Message, MessageV0
from solders.pubkey import Pubkey
from solders.signature import Signature
from solders.system_program import TransferParams, transfer
from solders.transaction import Transaction, VersionedTransaction

from solswap.config import ConfirmationPolicy
from solswap.ledger.connection import LedgerConnection, SignatureStatus
from solswap.routing.base import Quote
from solswap.swap.signer import SolanaSigner
from solswap.tokens import TokenInfo

USDC_MINT = "EPjFWdd5AufqSSqeM2qN1xzybapC8G4wEGGkZwyTDt1v"
BONK_MINT = "DezXAZ8z7PnrnRJjz3wXBoRgixCa6xjnB7YaB1pPB263"
WSOL_MINT = "So11111111111111111111111111111111111111112"

TOKEN_LIST = [
    {
        "address": WSOL_MINT,
        "symbol": "SOL",
        "name": "Wrapped SOL",
        "decimals": 9,
        "tags": ["verified"],
    },
    {
        "address": USDC_MINT,
        "symbol": "USDC",
        "name": "USD Coin",
        "decimals": 6,
        "tags": ["verified"],
    },
    {
        "address": "A9mUU4qviSctJVPJdBJWkb28deg915LYJKrzQ19ji3FM",
        "symbol": "USDCet",
        "name": "USD Coin (Wormhole from Ethereum)",
        "decimals": 6,
        "tags": [],
    },
    {
        "address": BONK_MINT,
        "symbol": "Bonk",
        "name": "Bonk",
        "decimals": 5,
        "tags": ["verified"],
    },
    {
        "address": "Gh9ZwEmdLJ8DscKNTkTqPbNwLNNBjuSzaG9Vp2KGtKJr",
        "symbol": "USDC-Dev",
        "name": "USD Coin Dev",
        "decimals": 6,
        "tags": ["devnet"],
    },
]


class RecordedSleep:
    """Async sleep replacement that records requested delays."""

    def __init__(self):
        self.delays = []

    async def __call__(self, seconds: float) -> None:
        self.delays.append(seconds)


def status(signature: str, confirmation_status=None, err=None) -> SignatureStatus:
    return SignatureStatus(signature=signature, confirmation_status=confirmation_status, err=err)


def make_quote(output_mint: str = USDC_MINT, out_amount: int = 1_000_000) -> Quote:
    route_payload = {
        "inputMint": WSOL_MINT,
        "inAmount": "10000000",
        "outputMint": output_mint,
        "outAmount": str(out_amount),
        "priceImpactPct": "0.0012",
        "slippageBps": 50,
        "routePlan": [{"swapInfo": {"label": "Orca"}}],
    }
    return Quote(
        input_mint=WSOL_MINT,
        output_mint=output_mint,
        in_amount=10_000_000,
        out_amount=out_amount,
        price_impact_pct=Decimal("0.0012"),
        slippage_bps=50,
        route_payload=route_payload,
    )


@pytest.fixture
def keypair() -> Keypair:
    return Keypair.from_seed(bytes(range(32)))


@pytest.fixture
def signer(keypair) -> SolanaSigner:
    return SolanaSigner(keypair)


@pytest.fixture
def recipient() -> Pubkey:
    return Keypair.from_seed(bytes([7] * 32)).pubkey()


@pytest.fixture
def versioned_bytes(keypair, recipient) -> bytes:
    """Unsigned v0 transfer, as a swap API would return it."""
    ix = transfer(TransferParams(from_pubkey=keypair.pubkey(), to_pubkey=recipient, lamports=1000))
    message = MessageV0.try_compile(keypair.pubkey(), [ix], [], Hash.default())
    return bytes(VersionedTransaction.populate(message, [Signature.default()]))


@pytest.fixture
def legacy_bytes(keypair, recipient) -> bytes:
    """Unsigned legacy transfer, as a swap API would return it."""
    ix = transfer(TransferParams(from_pubkey=keypair.pubkey(), to_pubkey=recipient, lamports=1000))
    message = Message.new_with_blockhash([ix], keypair.pubkey(), Hash.default())
    return bytes(Transaction.new_unsigned(message))


@pytest.fixture
def recorded_sleep() -> RecordedSleep:
    return RecordedSleep()


@pytest.fixture
def policy() -> ConfirmationPolicy:
    return ConfirmationPolicy()


@pytest.fixture
def connection() -> AsyncMock:
    """Ledger connection double; tests set return values and side effects."""
    conn = AsyncMock(spec=LedgerConnection)
    conn.send_raw_transaction.return_value = "VersionedSig111"
    conn.get_transaction.return_value = False
    return conn


@pytest.fixture
def quote() -> Quote:
    return make_quote()


@pytest.fixture
def token_list() -> list[dict]:
    return [dict(entry) for entry in TOKEN_LIST]


@pytest.fixture
def usdc() -> TokenInfo:
    return TokenInfo.model_validate(TOKEN_LIST[1])
