"""Token directory backed by the Jupiter token list.

The list is downloaded once per network and cached as JSON next to the
working directory. Symbol lookups are case-insensitive.
"""

import json
import logging
from decimal import Decimal, InvalidOperation
from pathlib import Path
from typing import Optional, Sequence

import httpx
from pydantic import BaseModel, Field, ValidationError

from solswap.errors import TokenListError

logger = logging.getLogger(__name__)

# Wrapped SOL mint; native SOL swaps are routed through it
WRAPPED_SOL_MINT = "So11111111111111111111111111111111111111112"
SOL_DECIMALS = 9
LAMPORTS_PER_SOL = 10 ** SOL_DECIMALS


class TokenInfo(BaseModel):
    """One entry of the token list."""

    address: str = Field(..., description="Mint address")
    symbol: str = Field(..., description="Ticker symbol")
    name: str = Field(default="", description="Display name")
    decimals: int = Field(..., ge=0, description="Decimal precision")
    tags: list[str] = Field(default_factory=list, description="List tags (verified, devnet, ...)")
    is_native: bool = Field(default=False, description="Native SOL rather than an SPL mint")

    @property
    def is_verified(self) -> bool:
        return "verified" in self.tags


def native_sol(wrapped: Optional[TokenInfo] = None) -> TokenInfo:
    """Synthetic native SOL record, using the wrapped-SOL mint for routing."""
    return TokenInfo(
        address=WRAPPED_SOL_MINT,
        symbol="SOL",
        name="Native SOL",
        decimals=wrapped.decimals if wrapped else SOL_DECIMALS,
        tags=list(wrapped.tags) if wrapped else [],
        is_native=True,
    )


def format_token_amount(amount, decimals: int) -> str:
    """Format a smallest-unit amount for display.

    Uses thousands separators and keeps between 2 and ``decimals`` fraction
    digits, e.g. ``format_token_amount(1000000, 6) == "1.00"``.
    """
    value = Decimal(int(amount)) / (Decimal(10) ** decimals)
    text = f"{value:,.{max(decimals, 2)}f}"
    whole, _, fraction = text.partition(".")
    fraction = fraction.rstrip("0").ljust(2, "0")
    return f"{whole}.{fraction}"


def to_smallest_unit(text: str, decimals: int) -> int:
    """Parse a user-entered amount into the token's smallest unit.

    Raises:
        ValueError: If the amount is not a positive number, or rounds to zero
    """
    try:
        value = Decimal(str(text).strip())
    except InvalidOperation:
        raise ValueError(f"Invalid amount: {text!r}")

    if not value.is_finite() or value <= 0:
        raise ValueError(f"Amount must be positive: {text!r}")

    units = int(value * (Decimal(10) ** decimals))
    if units <= 0:
        raise ValueError(f"Amount {text!r} is below the token's precision")
    return units


class TokenDirectory:
    """Resolves symbols and mints against the cached token list."""

    def __init__(
        self,
        cache_file: Path,
        token_list_url: str,
        devnet: bool = False,
        popular_symbols: Sequence[str] = (),
        timeout: float = 30.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        """Initialize the directory.

        Args:
            cache_file: Where the token list is cached
            token_list_url: Where to download the token list on cache miss
            devnet: Keep only popular or devnet-tagged tokens when downloading
            popular_symbols: Symbols always kept by the devnet filter
            timeout: HTTP timeout in seconds
            transport: Optional httpx transport (used by tests)
        """
        self.cache_file = Path(cache_file)
        self.token_list_url = token_list_url
        self.devnet = devnet
        self.popular_symbols = [s.upper() for s in popular_symbols]
        self.timeout = timeout
        self.transport = transport
        self._tokens: list[TokenInfo] = []
        self._by_address: dict[str, TokenInfo] = {}

    @property
    def tokens(self) -> list[TokenInfo]:
        return self._tokens

    def __len__(self) -> int:
        return len(self._tokens)

    async def load(self) -> list[TokenInfo]:
        """Load the token list from cache, downloading it on a miss."""
        raw = self._read_cache()
        if raw is None:
            raw = await self._download()
            self._write_cache(raw)

        self._set_tokens(raw)
        logger.info(f"Loaded {len(self._tokens)} tokens")
        return self._tokens

    def _read_cache(self) -> Optional[list[dict]]:
        if not self.cache_file.exists():
            return None
        try:
            with self.cache_file.open("r", encoding="utf-8") as f:
                data = json.load(f)
        except (OSError, json.JSONDecodeError) as e:
            logger.warning(f"Ignoring unreadable token cache {self.cache_file}: {e}")
            return None
        if not isinstance(data, list):
            logger.warning(f"Ignoring malformed token cache {self.cache_file}")
            return None
        logger.debug(f"Using cached token list {self.cache_file}")
        return data

    async def _download(self) -> list[dict]:
        logger.info(f"Downloading token list from {self.token_list_url}")
        try:
            async with httpx.AsyncClient(timeout=self.timeout, transport=self.transport) as client:
                response = await client.get(self.token_list_url)
                response.raise_for_status()
                data = response.json()
        except (httpx.HTTPError, ValueError) as e:
            raise TokenListError(f"Error fetching token list: {e}") from e

        if not isinstance(data, list):
            raise TokenListError("Token list response is not a list")

        if self.devnet:
            data = [
                t for t in data
                if str(t.get("symbol", "")).upper() in self.popular_symbols
                or "devnet" in (t.get("tags") or [])
            ]
        return data

    def _write_cache(self, raw: list[dict]) -> None:
        try:
            self.cache_file.parent.mkdir(parents=True, exist_ok=True)
            with self.cache_file.open("w", encoding="utf-8") as f:
                json.dump(raw, f)
        except OSError as e:
            logger.warning(f"Could not write token cache {self.cache_file}: {e}")

    def _set_tokens(self, raw: list[dict]) -> None:
        tokens = []
        for entry in raw:
            try:
                tokens.append(TokenInfo.model_validate(entry))
            except ValidationError:
                logger.debug(f"Skipping malformed token entry: {entry!r:.120}")
        self._tokens = tokens
        self._by_address = {}
        for token in tokens:
            self._by_address.setdefault(token.address, token)

    def by_address(self, mint: str) -> Optional[TokenInfo]:
        """Get a token by mint address."""
        return self._by_address.get(mint)

    def find(self, symbol: str) -> Optional[TokenInfo]:
        """Find a token by symbol.

        ``SOL`` always resolves to native SOL. Otherwise an exact symbol match
        wins; failing that, a substring match, preferring verified tokens when
        several match.
        """
        symbol = symbol.strip().upper()
        if not symbol:
            return None

        if symbol == "SOL":
            return native_sol(self.by_address(WRAPPED_SOL_MINT))

        for token in self._tokens:
            if token.symbol.upper() == symbol:
                return token

        matches = [t for t in self._tokens if symbol in t.symbol.upper()]
        if len(matches) > 1:
            for token in matches:
                if token.is_verified:
                    return token
        return matches[0] if matches else None

    def resolve_all(self, symbols: Sequence[str]) -> list[TokenInfo]:
        """Resolve several symbols, dropping the ones not found."""
        found = []
        for symbol in symbols:
            token = self.find(symbol)
            if token is None:
                logger.debug(f"Token {symbol} not in list")
                continue
            found.append(token)
        return found
