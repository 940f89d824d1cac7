"""Tests for the token directory and amount helpers."""

import json

import httpx
import pytest

from solswap.errors import TokenListError
from solswap.tokens import (
    WRAPPED_SOL_MINT,
    TokenDirectory,
    format_token_amount,
    native_sol,
    to_smallest_unit,
)

from conftest import BONK_MINT, USDC_MINT

TOKEN_LIST_URL = "https://token.jup.ag/all"


def failing_transport() -> httpx.MockTransport:
    def handler(request: httpx.Request) -> httpx.Response:
        raise AssertionError(f"unexpected request to {request.url}")

    return httpx.MockTransport(handler)


def serving_transport(payload, calls=None) -> httpx.MockTransport:
    def handler(request: httpx.Request) -> httpx.Response:
        if calls is not None:
            calls.append(str(request.url))
        return httpx.Response(200, json=payload)

    return httpx.MockTransport(handler)


def loaded_directory(tmp_path, token_list) -> TokenDirectory:
    directory = TokenDirectory(tmp_path / "tokens.json", TOKEN_LIST_URL)
    directory._set_tokens(token_list)
    return directory


class TestFormatTokenAmount:
    """Tests for display formatting."""

    def test_whole_amount_keeps_two_decimals(self):
        assert format_token_amount(1000000, 6) == "1.00"

    def test_full_precision(self):
        assert format_token_amount(123456789, 6) == "123.456789"

    def test_thousands_separator(self):
        assert format_token_amount(1234567890000, 6) == "1,234,567.89"

    def test_zero_decimals(self):
        assert format_token_amount(42, 0) == "42.00"

    def test_accepts_string_amount(self):
        assert format_token_amount("250000000", 9) == "0.25"


class TestToSmallestUnit:
    """Tests for parsing user amounts."""

    def test_fractional_amount(self):
        assert to_smallest_unit("1.5", 9) == 1_500_000_000

    def test_truncates_excess_precision(self):
        assert to_smallest_unit("0.1234567", 6) == 123456

    @pytest.mark.parametrize("text", ["", "abc", "-1", "0", "nan", "inf"])
    def test_rejects_invalid(self, text):
        with pytest.raises(ValueError):
            to_smallest_unit(text, 6)

    def test_rejects_dust(self):
        with pytest.raises(ValueError):
            to_smallest_unit("0.0000001", 6)


class TestFind:
    """Tests for symbol lookup."""

    def test_sol_is_native(self, tmp_path, token_list):
        """Test that SOL resolves to the synthetic native record."""
        directory = loaded_directory(tmp_path, token_list)

        token = directory.find("sol")

        assert token.is_native
        assert token.symbol == "SOL"
        assert token.address == WRAPPED_SOL_MINT
        assert token.decimals == 9

    def test_sol_without_list(self, tmp_path):
        directory = loaded_directory(tmp_path, [])

        assert directory.find("SOL") == native_sol()

    def test_exact_match_case_insensitive(self, tmp_path, token_list):
        directory = loaded_directory(tmp_path, token_list)

        assert directory.find("usdc").address == USDC_MINT
        assert directory.find("BONK").address == BONK_MINT

    def test_substring_prefers_verified(self, tmp_path, token_list):
        """Test that among several partial matches a verified token wins."""
        unverified_first = [token_list[2], token_list[4], token_list[1]]
        directory = loaded_directory(tmp_path, unverified_first)

        assert directory.find("USDC").address == USDC_MINT
        assert directory.find("SDC").address == USDC_MINT

    def test_substring_falls_back_to_first(self, tmp_path, token_list):
        directory = loaded_directory(tmp_path, [token_list[2], token_list[4]])

        assert directory.find("USDC").symbol == "USDCet"

    def test_not_found(self, tmp_path, token_list):
        directory = loaded_directory(tmp_path, token_list)

        assert directory.find("NOPE") is None
        assert directory.find("  ") is None

    def test_by_address(self, tmp_path, token_list):
        directory = loaded_directory(tmp_path, token_list)

        assert directory.by_address(BONK_MINT).symbol == "Bonk"
        assert directory.by_address("unknown") is None

    def test_resolve_all_drops_missing(self, tmp_path, token_list):
        directory = loaded_directory(tmp_path, token_list)

        tokens = directory.resolve_all(["USDC", "NOPE", "SOL"])

        assert [t.symbol for t in tokens] == ["USDC", "SOL"]

    def test_skips_malformed_entries(self, tmp_path, token_list):
        directory = loaded_directory(tmp_path, token_list + [{"symbol": "BAD"}])

        assert len(directory) == len(token_list)


class TestLoad:
    """Tests for loading and caching the token list."""

    @pytest.mark.asyncio
    async def test_uses_cache_without_network(self, tmp_path, token_list):
        cache = tmp_path / "jupiter_tokens.json"
        cache.write_text(json.dumps(token_list), encoding="utf-8")
        directory = TokenDirectory(cache, TOKEN_LIST_URL, transport=failing_transport())

        tokens = await directory.load()

        assert len(tokens) == len(token_list)

    @pytest.mark.asyncio
    async def test_downloads_and_writes_cache(self, tmp_path, token_list):
        cache = tmp_path / "cache" / "jupiter_tokens.json"
        calls = []
        directory = TokenDirectory(cache, TOKEN_LIST_URL, transport=serving_transport(token_list, calls))

        await directory.load()

        assert calls == [TOKEN_LIST_URL]
        assert json.loads(cache.read_text(encoding="utf-8")) == token_list

    @pytest.mark.asyncio
    async def test_corrupt_cache_is_refetched(self, tmp_path, token_list):
        cache = tmp_path / "jupiter_tokens.json"
        cache.write_text("{not json", encoding="utf-8")
        directory = TokenDirectory(cache, TOKEN_LIST_URL, transport=serving_transport(token_list))

        await directory.load()

        assert len(directory) == len(token_list)

    @pytest.mark.asyncio
    async def test_devnet_filter(self, tmp_path, token_list):
        """Test that devnet keeps only popular or devnet-tagged tokens."""
        directory = TokenDirectory(
            tmp_path / "jupiter_tokens_devnet.json",
            TOKEN_LIST_URL,
            devnet=True,
            popular_symbols=["usdc", "sol"],
            transport=serving_transport(token_list),
        )

        await directory.load()

        assert sorted(t.symbol for t in directory.tokens) == ["SOL", "USDC", "USDC-Dev"]

    @pytest.mark.asyncio
    async def test_download_error(self, tmp_path):
        def handler(request):
            return httpx.Response(503, text="unavailable")

        directory = TokenDirectory(
            tmp_path / "jupiter_tokens.json",
            TOKEN_LIST_URL,
            transport=httpx.MockTransport(handler),
        )

        with pytest.raises(TokenListError):
            await directory.load()

    @pytest.mark.asyncio
    async def test_non_list_response(self, tmp_path):
        directory = TokenDirectory(
            tmp_path / "jupiter_tokens.json",
            TOKEN_LIST_URL,
            transport=serving_transport({"tokens": []}),
        )

        with pytest.raises(TokenListError):
            await directory.load()
