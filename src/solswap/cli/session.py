"""Interactive swap session.

One SwapSession walks the user from a source token and amount to an
executed swap. Prompts go through an injected InputProvider and output
through an injected writer, so the whole flow can be driven from tests.
"""

import asyncio
import logging
from abc import ABC, abstractmethod
from decimal import Decimal
from typing import Callable, Optional

import httpx

from solswap.config import NetworkConfig
from solswap.errors import QuoteServiceError
from solswap.ledger.connection import LedgerConnection
from solswap.routing.base import QuoteOption, QuoteService
from solswap.swap.confirmation import Sleep
from solswap.swap.executor import SwapExecutor
from solswap.swap.result import SubmissionResult
from solswap.swap.signer import SolanaSigner
from solswap.tokens import LAMPORTS_PER_SOL, TokenDirectory, TokenInfo, to_smallest_unit

logger = logging.getLogger(__name__)

EXIT_OK = 0
EXIT_ERROR = 1

VERIFY_DELAY_SECONDS = 5.0


class InputProvider(ABC):
    """Source of answers to interactive prompts."""

    @abstractmethod
    def ask(self, prompt: str) -> str:
        """Show a prompt and return the user's answer."""
        pass


class ConsoleInput(InputProvider):
    """Reads answers from stdin."""

    def ask(self, prompt: str) -> str:
        return input(prompt)


def _yes(answer: str) -> bool:
    return answer.strip().lower() in ("y", "yes")


def short_address(address: str) -> str:
    return f"{address[:8]}...{address[-8:]}"


class SwapSession:
    """Interactive swap flow for a single wallet on one network."""

    def __init__(
        self,
        network: NetworkConfig,
        connection: LedgerConnection,
        signer: SolanaSigner,
        directory: TokenDirectory,
        quote_service: QuoteService,
        executor: SwapExecutor,
        popular_symbols: list[str],
        input_provider: Optional[InputProvider] = None,
        write: Callable[[str], None] = print,
        sleep: Sleep = asyncio.sleep,
        verify_delay: float = VERIFY_DELAY_SECONDS,
    ):
        self.network = network
        self.connection = connection
        self.signer = signer
        self.directory = directory
        self.quote_service = quote_service
        self.executor = executor
        self.popular_symbols = popular_symbols
        self.input = input_provider or ConsoleInput()
        self.write = write
        self._sleep = sleep
        self.verify_delay = verify_delay

    def ask(self, prompt: str) -> str:
        return self.input.ask(prompt).strip()

    async def run(self) -> int:
        """Run the session. Returns the process exit code."""
        self.write(f"\nInteractive Solana Token Swap ({self.network.name})")
        self.write("==========================================")
        self.write(f"Wallet: {short_address(self.signer.public_key)}")
        self.write(f"Loaded {len(self.directory)} tokens from Jupiter")

        if self.network.is_devnet:
            await self.offer_airdrop()

        self.write(f"\nPopular tokens: {', '.join(self.popular_symbols)}")
        from_symbol = self.ask("Enter token symbol you want to swap FROM: ")
        source = self.directory.find(from_symbol)
        if source is None:
            self.write(f"Token with symbol '{from_symbol}' not found")
            return EXIT_ERROR

        balance = await self.fetch_balance(source)
        self.write(f"\nSelected: {source.name} ({source.symbol})")
        if balance is not None:
            self.write(f"Your balance: {balance} {source.symbol}")

        amount_text = self.ask(f"Enter amount of {source.symbol} to swap: ")
        try:
            units = to_smallest_unit(amount_text, source.decimals)
        except ValueError as e:
            self.write(f"Invalid amount: {e}")
            return EXIT_ERROR

        if balance is not None and Decimal(amount_text) > balance:
            self.write(f"Warning: Amount ({amount_text}) exceeds your balance ({balance})")
            if not _yes(self.ask("Do you want to proceed anyway? (y/n): ")):
                self.write("Swap cancelled")
                return EXIT_OK

        self.write("\nFetching swap quotes...")
        destinations = self.directory.resolve_all(self.popular_symbols)
        options = await self.quote_service.collect_quotes(source, destinations, units)
        for option in options:
            self.write(f"Quote for {option.token.symbol}: get {option.display_amount}")

        custom = await self.custom_quote(source, units)
        if custom is not None:
            options.append(custom)

        if not options:
            self.write("\nNo swap routes found for the selected token and amount")
            return EXIT_ERROR

        option = self.choose(options, amount_text, source)
        if option is None:
            self.write("Swap cancelled or invalid selection")
            return EXIT_OK

        self.write(
            f"\nYou selected: {amount_text} {source.symbol} -> "
            f"{option.display_amount} {option.token.symbol}"
        )
        if not _yes(self.ask("Execute this swap? (y/n): ")):
            self.write("Swap cancelled")
            return EXIT_OK

        self.write("Sending swap transaction...")
        result = await self.executor.execute(self.connection, self.signer, option.quote)
        self.report(result, amount_text, source, option)

        if result.signature and not result.is_failed:
            await self.verify(source, balance)
        return EXIT_OK if not result.is_failed else EXIT_ERROR

    async def offer_airdrop(self) -> None:
        """Offer 1 devnet SOL. A failed airdrop is reported, not fatal."""
        if not _yes(self.ask("\nDo you need devnet SOL? (y/n): ")):
            return
        self.write("Requesting airdrop of 1 SOL...")
        try:
            await self.connection.request_airdrop(self.signer.public_key, LAMPORTS_PER_SOL)
        except Exception as e:
            logger.warning(f"Airdrop failed: {e}")
            self.write(f"Airdrop failed: {e}")
            return
        self.write("Airdrop successful!")

    async def fetch_balance(self, token: TokenInfo) -> Optional[Decimal]:
        try:
            return await self.connection.get_token_balance(self.signer.public_key, token)
        except Exception as e:
            logger.warning(f"Couldn't fetch balance for {token.address}: {e}")
            return None

    async def custom_quote(self, source: TokenInfo, units: int) -> Optional[QuoteOption]:
        """Let the user quote one extra destination token."""
        self.write("\nYou can also enter a custom token symbol to check its rate.")
        symbol = self.ask("Enter token symbol to check (or press Enter to skip): ")
        if not symbol:
            return None

        token = self.directory.find(symbol)
        if token is None:
            self.write(f"Token with symbol '{symbol}' not found")
            return None
        if token.address == source.address:
            self.write("Cannot swap to the same token")
            return None

        try:
            quote = await self.quote_service.get_quote(source.address, token.address, units)
        except (QuoteServiceError, httpx.HTTPError) as e:
            logger.info(f"No custom route for {token.symbol}: {e}")
            self.write(f"No route available for {token.symbol}")
            return None

        option = QuoteOption(token=token, quote=quote)
        self.write(f"Quote for {token.symbol}: get {option.display_amount}")
        return option

    def choose(
        self,
        options: list[QuoteOption],
        amount_text: str,
        source: TokenInfo,
    ) -> Optional[QuoteOption]:
        """List the options and return the selected one, None to cancel."""
        self.write("\nAvailable swaps:")
        self.write("-------------------------------------")
        for i, option in enumerate(options, start=1):
            self.write(
                f"{i}. {amount_text} {source.symbol} -> "
                f"{option.display_amount} {option.token.symbol}"
            )
            self.write(f"   Price impact: {option.quote.price_impact_pct:.2f}%")
            labels = option.quote.route_labels
            if labels:
                self.write(f"   Route: {' -> '.join(labels)}")

        answer = self.ask("\nSelect a swap to execute (enter number, or 0 to cancel): ")
        try:
            index = int(answer)
        except ValueError:
            return None
        if index < 1 or index > len(options):
            return None
        return options[index - 1]

    def report(
        self,
        result: SubmissionResult,
        amount_text: str,
        source: TokenInfo,
        option: QuoteOption,
    ) -> None:
        if result.is_confirmed:
            self.write("\nSwap confirmed!")
        elif result.is_unknown:
            self.write(
                "\nTransaction was submitted, but its outcome could not be confirmed. "
                "Please check the explorer link below."
            )
            if result.reason:
                self.write(f"Last error: {result.reason}")
        else:
            self.write(f"\nSwap failed: {result.reason}")

        if result.signature:
            self.write(f"Transaction ID: {result.signature}")
            self.write(f"View transaction: {self.network.explorer_link(result.signature)}")

        if not result.is_failed:
            self.write(f"Input: {amount_text} {source.symbol}")
            self.write(f"Expected output: ~{option.display_amount} {option.token.symbol}")

    async def verify(self, source: TokenInfo, balance_before: Optional[Decimal]) -> None:
        """Compare the source balance after a short wait."""
        self.write("\nVerifying swap by checking token balance...")
        await self._sleep(self.verify_delay)

        balance_after = await self.fetch_balance(source)
        if balance_before is None or balance_after is None:
            self.write("Unable to verify the outcome by balance.")
        elif balance_after < balance_before:
            self.write("Swap verified by balance change.")
        else:
            self.write("Balance hasn't changed yet. Please check the explorer link above.")

