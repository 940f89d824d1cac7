"""Tests for the Jupiter quote service client."""

import base64
import json
from decimal import Decimal

import httpx
import pytest

from solswap.errors import QuoteServiceError
from solswap.routing.jupiter import JupiterClient, create_jupiter_client
from solswap.config import Settings
from solswap.tokens import TokenInfo, native_sol

from conftest import BONK_MINT, TOKEN_LIST, USDC_MINT, WSOL_MINT, make_quote

BASE_URL = "https://quote-api.jup.ag/v6"


def quote_response(output_mint: str, out_amount: int) -> dict:
    return {
        "inputMint": WSOL_MINT,
        "inAmount": "10000000",
        "outputMint": output_mint,
        "outAmount": str(out_amount),
        "otherAmountThreshold": str(out_amount),
        "swapMode": "ExactIn",
        "slippageBps": 50,
        "priceImpactPct": "0.0007",
        "routePlan": [
            {"swapInfo": {"label": "Raydium"}, "percent": 100},
            {"swapInfo": {"label": "Whirlpool"}, "percent": 100},
        ],
    }


def client_with(handler, network: str = "mainnet-beta") -> JupiterClient:
    return JupiterClient(BASE_URL, network=network, transport=httpx.MockTransport(handler))


class TestGetQuote:
    """Tests for JupiterClient.get_quote."""

    @pytest.mark.asyncio
    async def test_parses_quote(self):
        requests = []

        def handler(request: httpx.Request) -> httpx.Response:
            requests.append(request)
            return httpx.Response(200, json=quote_response(USDC_MINT, 1_000_000))

        client = client_with(handler)
        quote = await client.get_quote(WSOL_MINT, USDC_MINT, 10_000_000)

        assert quote.input_mint == WSOL_MINT
        assert quote.output_mint == USDC_MINT
        assert quote.in_amount == 10_000_000
        assert quote.out_amount == 1_000_000
        assert quote.price_impact_pct == Decimal("0.0007")
        assert quote.route_labels == ["Raydium", "Whirlpool"]

        params = requests[0].url.params
        assert requests[0].url.path == "/v6/quote"
        assert params["inputMint"] == WSOL_MINT
        assert params["amount"] == "10000000"
        assert params["slippageBps"] == "50"
        assert "asLegacyTransaction" not in params

    @pytest.mark.asyncio
    async def test_devnet_requests_legacy(self):
        requests = []

        def handler(request):
            requests.append(request)
            return httpx.Response(200, json=quote_response(USDC_MINT, 1))

        await client_with(handler, network="devnet").get_quote(WSOL_MINT, USDC_MINT, 1, slippage_bps=100)

        assert requests[0].url.params["asLegacyTransaction"] == "true"
        assert requests[0].url.params["slippageBps"] == "100"

    @pytest.mark.asyncio
    async def test_no_route(self):
        def handler(request):
            return httpx.Response(400, json={"error": "Could not find any route"})

        with pytest.raises(QuoteServiceError) as exc_info:
            await client_with(handler).get_quote(WSOL_MINT, BONK_MINT, 1)

        assert exc_info.value.status_code == 400
        assert exc_info.value.detail == {"error": "Could not find any route"}

    @pytest.mark.asyncio
    async def test_missing_out_amount(self):
        def handler(request):
            return httpx.Response(200, json={"inputMint": WSOL_MINT})

        with pytest.raises(QuoteServiceError):
            await client_with(handler).get_quote(WSOL_MINT, USDC_MINT, 1)

    @pytest.mark.asyncio
    async def test_non_json_body(self):
        def handler(request):
            return httpx.Response(200, text="<html>rate limited</html>")

        with pytest.raises(QuoteServiceError):
            await client_with(handler).get_quote(WSOL_MINT, USDC_MINT, 1)


class TestGetSwapTransaction:
    """Tests for JupiterClient.get_swap_transaction."""

    @pytest.mark.asyncio
    async def test_returns_decoded_bytes(self, legacy_bytes):
        bodies = []

        def handler(request):
            bodies.append(json.loads(request.content))
            return httpx.Response(
                200,
                json={"swapTransaction": base64.b64encode(legacy_bytes).decode(), "lastValidBlockHeight": 1},
            )

        quote = make_quote()
        raw = await client_with(handler).get_swap_transaction(quote, "Wallet1111")

        assert raw == legacy_bytes
        assert bodies[0]["quoteResponse"] == quote.route_payload
        assert bodies[0]["userPublicKey"] == "Wallet1111"
        assert bodies[0]["wrapAndUnwrapSol"] is True

    @pytest.mark.asyncio
    async def test_missing_transaction(self):
        def handler(request):
            return httpx.Response(200, json={"swapTransaction": None})

        with pytest.raises(QuoteServiceError, match="Failed to get swap transaction"):
            await client_with(handler).get_swap_transaction(make_quote(), "Wallet1111")

    @pytest.mark.asyncio
    async def test_api_error_carries_body(self):
        def handler(request):
            return httpx.Response(422, json={"error": "Invalid quoteResponse"})

        with pytest.raises(QuoteServiceError) as exc_info:
            await client_with(handler).get_swap_transaction(make_quote(), "Wallet1111")

        assert exc_info.value.status_code == 422
        assert exc_info.value.detail["error"] == "Invalid quoteResponse"


class TestCollectQuotes:
    """Tests for quoting several destinations at once."""

    @pytest.mark.asyncio
    async def test_one_failed_route_does_not_fail_the_set(self):
        """Test that one live route plus one no-route yields exactly one option."""
        def handler(request):
            output_mint = request.url.params["outputMint"]
            if output_mint == USDC_MINT:
                return httpx.Response(200, json=quote_response(USDC_MINT, 1_000_000))
            return httpx.Response(400, json={"error": "Could not find any route"})

        usdc = TokenInfo.model_validate(TOKEN_LIST[1])
        bonk = TokenInfo.model_validate(TOKEN_LIST[3])

        options = await client_with(handler).collect_quotes(native_sol(), [usdc, bonk], 10_000_000)

        assert len(options) == 1
        assert options[0].token == usdc
        assert options[0].display_amount == "1.00"

    @pytest.mark.asyncio
    async def test_transport_error_is_dropped(self):
        def handler(request):
            if request.url.params["outputMint"] == BONK_MINT:
                raise httpx.ConnectError("connection reset")
            return httpx.Response(200, json=quote_response(USDC_MINT, 5))

        usdc = TokenInfo.model_validate(TOKEN_LIST[1])
        bonk = TokenInfo.model_validate(TOKEN_LIST[3])

        options = await client_with(handler).collect_quotes(native_sol(), [bonk, usdc], 1)

        assert [o.token.symbol for o in options] == ["USDC"]

    @pytest.mark.asyncio
    async def test_skips_source_token(self):
        requests = []

        def handler(request):
            requests.append(request)
            return httpx.Response(200, json=quote_response(USDC_MINT, 5))

        wsol = TokenInfo.model_validate(TOKEN_LIST[0])
        usdc = TokenInfo.model_validate(TOKEN_LIST[1])

        options = await client_with(handler).collect_quotes(native_sol(), [wsol, usdc], 1)

        assert len(options) == 1
        assert len(requests) == 1


def test_create_from_settings():
    settings = Settings(_env_file=None, solana_network="devnet", slippage_bps=75)

    client = create_jupiter_client(settings)

    assert client.network == "devnet"
    assert client.slippage_bps == 75
    assert client.base_url == BASE_URL
