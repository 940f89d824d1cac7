"""Quote records and the quote service interface."""

import asyncio
import logging
import time
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from decimal import Decimal
from typing import Optional, Sequence

from solswap.tokens import TokenInfo, format_token_amount

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Quote:
    """One priced conversion returned by the quote service.

    Amounts are integers in the smallest unit of each token. ``route_payload``
    is the service's full quote response, which must be sent back verbatim
    to build the swap transaction.
    """

    input_mint: str
    output_mint: str
    in_amount: int
    out_amount: int
    price_impact_pct: Decimal
    slippage_bps: int
    route_payload: dict = field(default_factory=dict, compare=False, repr=False)
    timestamp: float = field(default_factory=time.time, compare=False)

    @property
    def route_labels(self) -> list[str]:
        """DEX labels along the route, in order."""
        labels = []
        for step in self.route_payload.get("routePlan", []):
            swap_info = step.get("swapInfo", {})
            labels.append(swap_info.get("label", "Unknown"))
        return labels

    @property
    def age_seconds(self) -> float:
        return time.time() - self.timestamp


@dataclass(frozen=True)
class QuoteOption:
    """A destination token with its quote, as offered to the user."""

    token: TokenInfo
    quote: Quote

    @property
    def display_amount(self) -> str:
        return format_token_amount(self.quote.out_amount, self.token.decimals)


class QuoteService(ABC):
    """Abstract quote/swap-transaction service."""

    @property
    @abstractmethod
    def name(self) -> str:
        """Service name identifier."""
        pass

    @abstractmethod
    async def get_quote(
        self,
        input_mint: str,
        output_mint: str,
        amount: int,
        slippage_bps: Optional[int] = None,
    ) -> Quote:
        """
        Get a swap quote.

        Args:
            input_mint: Mint of the token being sold
            output_mint: Mint of the token being bought
            amount: Input amount in the smallest unit
            slippage_bps: Slippage tolerance in basis points

        Returns:
            Quote for the best route

        Raises:
            QuoteServiceError: If no route exists or the response is malformed
        """
        pass

    @abstractmethod
    async def get_swap_transaction(
        self,
        quote: Quote,
        user_public_key: str,
        wrap_and_unwrap_sol: bool = True,
    ) -> bytes:
        """
        Build a signable transaction for a quote.

        Args:
            quote: The quote to execute
            user_public_key: Base58 public key of the signer
            wrap_and_unwrap_sol: Let the service wrap/unwrap native SOL

        Returns:
            Serialized (unsigned) transaction bytes

        Raises:
            QuoteServiceError: If the service returns no transaction
        """
        pass

    async def collect_quotes(
        self,
        source: TokenInfo,
        destinations: Sequence[TokenInfo],
        amount: int,
        slippage_bps: Optional[int] = None,
    ) -> list[QuoteOption]:
        """Get quotes from ``source`` into each destination.

        Destinations equal to the source are skipped. A destination whose quote
        fails is logged and left out; it never fails the whole set.
        """
        targets = [
            token for token in destinations
            if token.address != source.address and token.symbol.upper() != source.symbol.upper()
        ]

        logger.debug(
            f"Getting quotes for {amount} {source.symbol} -> "
            f"{', '.join(t.symbol for t in targets) or '(none)'}"
        )

        results = await asyncio.gather(
            *(self.get_quote(source.address, t.address, amount, slippage_bps) for t in targets),
            return_exceptions=True,
        )

        options = []
        for token, result in zip(targets, results):
            if isinstance(result, BaseException):
                logger.info(f"No quote for {source.symbol}->{token.symbol}: {result}")
                continue
            options.append(QuoteOption(token=token, quote=result))

        logger.info(f"Got {len(options)} of {len(targets)} quote(s) for {source.symbol}")
        return options
