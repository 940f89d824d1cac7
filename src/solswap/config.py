"""Application configuration using pydantic-settings.

Everything the swap tool needs at runtime is read from the environment
(or a local .env file) and handed to the components explicitly.
"""

from dataclasses import dataclass
from functools import lru_cache
from pathlib import Path
from typing import Optional

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from solswap.errors import ConfigError

EXPLORER_TX_URL = "https://explorer.solana.com/tx"


@dataclass(frozen=True)
class NetworkConfig:
    """RPC endpoint and explorer details for one Solana cluster."""

    name: str
    rpc_url: str
    explorer_url: str = EXPLORER_TX_URL
    explorer_params: str = ""

    @property
    def is_devnet(self) -> bool:
        return self.name == "devnet"

    def explorer_link(self, signature: str) -> str:
        """Build the explorer URL for a transaction signature."""
        return f"{self.explorer_url}/{signature}{self.explorer_params}"


NETWORKS = {
    "mainnet-beta": NetworkConfig(
        name="mainnet-beta",
        rpc_url="https://api.mainnet-beta.solana.com",
    ),
    "devnet": NetworkConfig(
        name="devnet",
        rpc_url="https://api.devnet.solana.com",
        explorer_params="?cluster=devnet",
    ),
}


@dataclass(frozen=True)
class ConfirmationPolicy:
    """Timing of the post-submission confirmation phase.

    Attributes:
        settle_delay: Seconds to wait before the first confirmation attempt
        max_retries: Maximum number of signature status queries
        initial_delay: Delay after the first inconclusive status query
        backoff: Multiplier applied to the delay after every attempt
    """

    settle_delay: float = 1.0
    max_retries: int = 10
    initial_delay: float = 0.5
    backoff: float = 1.5


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # ======================
    # Network
    # ======================
    solana_network: str = Field(
        default="mainnet-beta", description="Solana cluster (mainnet-beta or devnet)"
    )
    solana_rpc_url: Optional[str] = Field(
        default=None, description="Override the cluster's public RPC endpoint"
    )

    # ======================
    # Wallet
    # ======================
    solana_private_key: Optional[str] = Field(
        default=None,
        description="Secret key as JSON array, comma-separated bytes or base58 string",
    )
    wallet_seed_phrase: Optional[str] = Field(
        default=None, description="12/24 word seed phrase for BIP44 derivation"
    )
    wallet_key_path: Optional[str] = Field(
        default=None, description="Path to a JSON keypair file"
    )

    # ======================
    # Jupiter
    # ======================
    jupiter_api_url: str = Field(
        default="https://quote-api.jup.ag/v6", description="Jupiter quote/swap API base URL"
    )
    token_list_url: str = Field(
        default="https://token.jup.ag/all", description="Jupiter token list URL"
    )
    token_cache_dir: str = Field(
        default=".", description="Directory holding the cached token list"
    )
    slippage_bps: int = Field(default=50, description="Slippage tolerance in bps (0.5%)")
    popular_tokens: str = Field(
        default="USDC,SOL,WSOL", description="Comma-separated destination symbols to quote"
    )
    http_timeout: float = Field(default=30.0, description="HTTP timeout in seconds")

    # ======================
    # Confirmation
    # ======================
    confirm_settle_delay: float = Field(default=1.0, description="Seconds before confirming")
    confirm_max_retries: int = Field(default=10, description="Signature status queries")
    confirm_initial_delay: float = Field(default=0.5, description="First polling delay")
    confirm_backoff: float = Field(default=1.5, description="Polling delay multiplier")

    # ======================
    # Runtime
    # ======================
    debug: bool = Field(default=False, description="Enable debug logging")

    @property
    def network(self) -> NetworkConfig:
        """Resolve the configured cluster."""
        config = NETWORKS.get(self.solana_network.strip().lower())
        if config is None:
            raise ConfigError(
                f"Unknown network '{self.solana_network}'. "
                f"Expected one of: {', '.join(NETWORKS)}"
            )
        if self.solana_rpc_url:
            return NetworkConfig(
                name=config.name,
                rpc_url=self.solana_rpc_url,
                explorer_url=config.explorer_url,
                explorer_params=config.explorer_params,
            )
        return config

    @property
    def confirmation_policy(self) -> ConfirmationPolicy:
        return ConfirmationPolicy(
            settle_delay=self.confirm_settle_delay,
            max_retries=self.confirm_max_retries,
            initial_delay=self.confirm_initial_delay,
            backoff=self.confirm_backoff,
        )

    @property
    def popular_symbols(self) -> list[str]:
        """Parse popular token symbols into a list."""
        return [s.strip().upper() for s in self.popular_tokens.split(",") if s.strip()]

    @property
    def token_cache_file(self) -> Path:
        """Token list cache file, one per network."""
        name = "jupiter_tokens_devnet.json" if self.network.is_devnet else "jupiter_tokens.json"
        return Path(self.token_cache_dir) / name

    @property
    def has_wallet(self) -> bool:
        """Check if any key source is configured."""
        return bool(self.solana_private_key or self.wallet_seed_phrase or self.wallet_key_path)

    def get_safe_dict(self) -> dict:
        """Return settings dict with secrets redacted."""
        network = self.network
        return {
            "network": network.name,
            "rpc_url": network.rpc_url,
            "jupiter_api_url": self.jupiter_api_url,
            "token_cache_file": str(self.token_cache_file),
            "slippage_bps": self.slippage_bps,
            "popular_tokens": self.popular_symbols,
            "wallet": {
                "SOLANA_PRIVATE_KEY": self._redact(self.solana_private_key),
                "WALLET_SEED_PHRASE": "***" if self.wallet_seed_phrase else "(not set)",
                "WALLET_KEY_PATH": self.wallet_key_path or "(not set)",
            },
            "confirmation": {
                "settle_delay": self.confirm_settle_delay,
                "max_retries": self.confirm_max_retries,
                "initial_delay": self.confirm_initial_delay,
                "backoff": self.confirm_backoff,
            },
        }

    @staticmethod
    def _redact(secret: Optional[str]) -> str:
        """Show only the edges of a secret value."""
        if not secret:
            return "(not set)"
        if len(secret) > 10:
            return f"{secret[:5]}...{secret[-5:]}"
        return "***"


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
