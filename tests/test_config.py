"""Tests for settings and network configuration."""

from pathlib import Path

import pytest

from solswap.config import ConfirmationPolicy, NETWORKS, Settings
from solswap.errors import ConfigError


def make_settings(**kwargs) -> Settings:
    return Settings(_env_file=None, **kwargs)


class TestNetwork:
    """Tests for network resolution."""

    def test_default_mainnet(self):
        network = make_settings().network

        assert network.name == "mainnet-beta"
        assert network.rpc_url == "https://api.mainnet-beta.solana.com"
        assert not network.is_devnet

    def test_devnet_explorer_link(self):
        network = make_settings(solana_network="Devnet").network

        assert network.is_devnet
        assert network.explorer_link("abc") == "https://explorer.solana.com/tx/abc?cluster=devnet"

    def test_mainnet_explorer_link(self):
        assert NETWORKS["mainnet-beta"].explorer_link("abc") == "https://explorer.solana.com/tx/abc"

    def test_rpc_override(self):
        network = make_settings(solana_network="devnet", solana_rpc_url="http://localhost:8899").network

        assert network.rpc_url == "http://localhost:8899"
        assert network.explorer_params == "?cluster=devnet"

    def test_unknown_network(self):
        with pytest.raises(ConfigError, match="Unknown network"):
            make_settings(solana_network="testnet-x").network

    def test_from_environment(self, monkeypatch):
        monkeypatch.setenv("SOLANA_NETWORK", "devnet")
        monkeypatch.setenv("SLIPPAGE_BPS", "120")

        settings = make_settings()

        assert settings.network.is_devnet
        assert settings.slippage_bps == 120


class TestSettings:
    """Tests for derived settings."""

    def test_default_confirmation_policy(self):
        assert make_settings().confirmation_policy == ConfirmationPolicy(
            settle_delay=1.0, max_retries=10, initial_delay=0.5, backoff=1.5
        )

    def test_custom_confirmation_policy(self):
        policy = make_settings(confirm_max_retries=3, confirm_backoff=2.0).confirmation_policy

        assert policy.max_retries == 3
        assert policy.backoff == 2.0

    def test_popular_symbols(self):
        settings = make_settings(popular_tokens=" usdc, bonk,,JUP ")

        assert settings.popular_symbols == ["USDC", "BONK", "JUP"]

    def test_token_cache_file_per_network(self):
        assert make_settings(token_cache_dir="/tmp/c").token_cache_file == Path("/tmp/c/jupiter_tokens.json")
        assert make_settings(solana_network="devnet").token_cache_file == Path("jupiter_tokens_devnet.json")

    def test_has_wallet(self):
        assert not make_settings().has_wallet
        assert make_settings(wallet_key_path="~/.config/solana/id.json").has_wallet

    def test_safe_dict_redacts_secrets(self):
        secret = "4NMwxzmYj2uvHuq8xoqhY8RXg63KSVJM1DXkpbmkUY7YQWuoyQgFnnzn6yo3CMnqZasnNPNuAT2TLwQsCaKkUddp"
        safe = make_settings(
            solana_private_key=secret,
            wallet_seed_phrase="abandon about",
        ).get_safe_dict()

        assert safe["wallet"]["SOLANA_PRIVATE_KEY"] == "4NMwx...kUddp"
        assert safe["wallet"]["WALLET_SEED_PHRASE"] == "***"
        assert safe["wallet"]["WALLET_KEY_PATH"] == "(not set)"
        assert secret not in str(safe)
        assert "abandon" not in str(safe)
