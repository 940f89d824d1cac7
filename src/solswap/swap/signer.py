"""Transaction signer for Solana.

Loads the wallet keypair from one of the supported sources and signs
versioned and legacy transactions with it.

Key sources, in order of precedence:
- SOLANA_PRIVATE_KEY: JSON array, comma-separated bytes, or base58 string
- WALLET_SEED_PHRASE: BIP39 mnemonic, derived at m/44'/501'/0'/0'
- WALLET_KEY_PATH: JSON array keypair file (solana-keygen format)
"""

import json
import logging
from pathlib import Path
from typing import Optional

import base58
from solders.keypair import Keypair
from solders.transaction import Transaction, VersionedTransaction

from solswap.config import Settings
from solswap.errors import ConfigError

logger = logging.getLogger(__name__)


class SolanaSigner:
    """Signs Solana transactions with a single keypair.

    Signing is not reentrant; one transaction is signed at a time.
    """

    def __init__(self, keypair: Keypair):
        self.keypair = keypair

    @property
    def public_key(self) -> str:
        """Base58 public key (wallet address)."""
        return str(self.keypair.pubkey())

    def sign_versioned(self, transaction: VersionedTransaction) -> VersionedTransaction:
        """Return a copy of a versioned transaction signed by this wallet."""
        return VersionedTransaction(transaction.message, [self.keypair])

    def sign_legacy(self, transaction: Transaction) -> Transaction:
        """Sign a legacy transaction in place against its own recent blockhash."""
        transaction.sign([self.keypair], transaction.message.recent_blockhash)
        return transaction

    def __repr__(self) -> str:
        return f"SolanaSigner(public_key={self.public_key})"


def keypair_from_bytes(secret: bytes) -> Keypair:
    """Build a keypair from a 64-byte secret key or a 32-byte seed."""
    if len(secret) == 64:
        return Keypair.from_bytes(secret)
    if len(secret) == 32:
        return Keypair.from_seed(secret)
    raise ConfigError(f"Secret key must be 32 or 64 bytes, got {len(secret)}")


def parse_private_key(value: str) -> Keypair:
    """Parse a secret key given as JSON array, comma-separated bytes, or base58.

    Raises:
        ConfigError: If the value cannot be decoded into a keypair
    """
    value = value.strip()
    try:
        if value.startswith("["):
            return keypair_from_bytes(bytes(json.loads(value)))
        if "," in value:
            return keypair_from_bytes(bytes(int(part.strip()) for part in value.split(",")))
        return keypair_from_bytes(base58.b58decode(value))
    except ConfigError:
        raise
    except (ValueError, TypeError) as e:
        raise ConfigError(f"Invalid private key: {e}") from e


def keypair_from_seed_phrase(seed_phrase: str, account: int = 0) -> Keypair:
    """Derive a Solana keypair from a BIP39 seed phrase.

    Uses standard BIP44 path: m/44'/501'/account'/0'
    (the path used by Phantom, Solflare and Trust Wallet).
    """
    from bip_utils import (
        Bip39SeedGenerator,
        Bip44,
        Bip44Changes,
        Bip44Coins,
        MnemonicChecksumError,
    )

    try:
        seed = Bip39SeedGenerator(seed_phrase.strip()).Generate()
    except (ValueError, MnemonicChecksumError) as e:
        raise ConfigError(f"Invalid seed phrase: {e}") from e

    bip44 = Bip44.FromSeed(seed, Bip44Coins.SOLANA)
    derived = bip44.Purpose().Coin().Account(account).Change(Bip44Changes.CHAIN_EXT)
    private_key = derived.PrivateKey().Raw().ToBytes()

    return Keypair.from_seed(private_key[:32])


def load_key_file(path: str) -> Keypair:
    """Load a solana-keygen style JSON keypair file."""
    key_path = Path(path).expanduser()
    try:
        data = json.loads(key_path.read_text(encoding="utf-8"))
    except FileNotFoundError as e:
        raise ConfigError(f"Key file not found: {key_path}") from e
    except (OSError, json.JSONDecodeError) as e:
        raise ConfigError(f"Cannot read key file {key_path}: {e}") from e

    if not isinstance(data, list):
        raise ConfigError(f"Key file {key_path} must contain a JSON array")
    try:
        return keypair_from_bytes(bytes(data))
    except (ValueError, TypeError) as e:
        raise ConfigError(f"Invalid key file {key_path}: {e}") from e


def load_signer(settings: Settings, key_path: Optional[str] = None) -> SolanaSigner:
    """Load the wallet signer from the configured key source.

    Args:
        settings: Application settings
        key_path: Key file path overriding WALLET_KEY_PATH

    Raises:
        ConfigError: If no key source is configured or the key is invalid
    """
    if settings.solana_private_key:
        logger.info("Using private key from environment variable")
        keypair = parse_private_key(settings.solana_private_key)
    elif settings.wallet_seed_phrase:
        logger.info("Deriving key from seed phrase")
        keypair = keypair_from_seed_phrase(settings.wallet_seed_phrase)
    elif key_path or settings.wallet_key_path:
        logger.info("Loading private key from file")
        keypair = load_key_file(key_path or settings.wallet_key_path)
    else:
        raise ConfigError(
            "No wallet configured. Set SOLANA_PRIVATE_KEY, WALLET_SEED_PHRASE or WALLET_KEY_PATH"
        )

    return SolanaSigner(keypair)
