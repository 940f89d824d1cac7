"""Jupiter DEX aggregator client for Solana.

Uses the Jupiter v6 quote and swap endpoints.
API docs: https://station.jup.ag/docs/apis/swap-api
"""

import base64
import binascii
import logging
from decimal import Decimal, InvalidOperation
from typing import Any, Optional

import httpx

from solswap.errors import QuoteServiceError
from solswap.routing.base import Quote, QuoteService

logger = logging.getLogger(__name__)

JUPITER_API_V6 = "https://quote-api.jup.ag/v6"
DEFAULT_SLIPPAGE_BPS = 50


def _response_detail(response: httpx.Response) -> Any:
    """Decode an error response body, falling back to raw text."""
    try:
        return response.json()
    except ValueError:
        return response.text


class JupiterClient(QuoteService):
    """Jupiter aggregator client.

    Jupiter aggregates liquidity from Raydium, Orca, Meteora and other
    Solana DEXes and returns ready-to-sign swap transactions.
    """

    def __init__(
        self,
        base_url: str = JUPITER_API_V6,
        slippage_bps: int = DEFAULT_SLIPPAGE_BPS,
        network: str = "mainnet-beta",
        api_key: Optional[str] = None,
        timeout: float = 30.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        """Initialize Jupiter client.

        Args:
            base_url: API base URL
            slippage_bps: Default slippage tolerance in basis points
            network: Cluster name; devnet requests legacy transactions
            api_key: Optional API key for higher rate limits
            timeout: HTTP timeout in seconds
            transport: Optional httpx transport (used by tests)
        """
        self.base_url = base_url.rstrip("/")
        self.slippage_bps = slippage_bps
        self.network = network
        self.api_key = api_key
        self.timeout = timeout
        self.transport = transport

    @property
    def name(self) -> str:
        return "Jupiter"

    def _get_headers(self) -> dict:
        """Get API headers."""
        headers = {"Accept": "application/json"}
        if self.api_key:
            headers["Authorization"] = f"Bearer {self.api_key}"
        return headers

    def _client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(
            timeout=self.timeout,
            headers=self._get_headers(),
            transport=self.transport,
        )

    async def get_quote(
        self,
        input_mint: str,
        output_mint: str,
        amount: int,
        slippage_bps: Optional[int] = None,
    ) -> Quote:
        """Get swap quote from Jupiter."""
        slippage = self.slippage_bps if slippage_bps is None else slippage_bps
        params = {
            "inputMint": input_mint,
            "outputMint": output_mint,
            "amount": str(amount),
            "slippageBps": str(slippage),
            "onlyDirectRoutes": "false",
        }
        if self.network == "devnet":
            params["asLegacyTransaction"] = "true"

        async with self._client() as client:
            response = await client.get(f"{self.base_url}/quote", params=params)

        if response.status_code != 200:
            detail = _response_detail(response)
            logger.warning(f"Jupiter quote error: {response.status_code} - {detail}")
            raise QuoteServiceError(
                f"No route for {input_mint} -> {output_mint}",
                status_code=response.status_code,
                detail=detail,
            )

        try:
            data = response.json()
        except ValueError as e:
            raise QuoteServiceError("Malformed quote response", detail=response.text) from e

        return self._parse_quote(data, slippage)

    @staticmethod
    def _parse_quote(data: Any, slippage_bps: int) -> Quote:
        if not isinstance(data, dict) or "outAmount" not in data:
            raise QuoteServiceError("Quote response has no outAmount", detail=data)

        try:
            price_impact = Decimal(str(data.get("priceImpactPct") or "0"))
            return Quote(
                input_mint=data["inputMint"],
                output_mint=data["outputMint"],
                in_amount=int(data["inAmount"]),
                out_amount=int(data["outAmount"]),
                price_impact_pct=price_impact,
                slippage_bps=int(data.get("slippageBps", slippage_bps)),
                route_payload=data,
            )
        except (KeyError, TypeError, ValueError, InvalidOperation) as e:
            raise QuoteServiceError(f"Malformed quote response: {e}", detail=data) from e

    async def get_swap_transaction(
        self,
        quote: Quote,
        user_public_key: str,
        wrap_and_unwrap_sol: bool = True,
    ) -> bytes:
        """Get the swap transaction for a quote from Jupiter."""
        async with self._client() as client:
            response = await client.post(
                f"{self.base_url}/swap",
                json={
                    "quoteResponse": quote.route_payload,
                    "userPublicKey": user_public_key,
                    "wrapAndUnwrapSol": wrap_and_unwrap_sol,
                },
            )

        if response.status_code != 200:
            detail = _response_detail(response)
            logger.warning(f"Jupiter swap error: {response.status_code} - {detail}")
            raise QuoteServiceError(
                f"Jupiter swap API error: {response.status_code}",
                status_code=response.status_code,
                detail=detail,
            )

        try:
            data = response.json()
        except ValueError as e:
            raise QuoteServiceError("Malformed swap response", detail=response.text) from e

        swap_transaction = data.get("swapTransaction") if isinstance(data, dict) else None
        if not swap_transaction:
            error = data.get("error") if isinstance(data, dict) else None
            raise QuoteServiceError("Failed to get swap transaction", detail=error)

        try:
            return base64.b64decode(swap_transaction, validate=True)
        except (binascii.Error, ValueError) as e:
            raise QuoteServiceError("Swap transaction is not valid base64", detail=data) from e


def create_jupiter_client(settings) -> JupiterClient:
    """Create a Jupiter client from settings."""
    return JupiterClient(
        base_url=settings.jupiter_api_url,
        slippage_bps=settings.slippage_bps,
        network=settings.network.name,
        timeout=settings.http_timeout,
    )
