"""Routing module for swap quotes.

Providers:
- Jupiter: Solana DEX aggregator (SOL, SPL tokens)
"""

from solswap.routing.base import Quote, QuoteOption, QuoteService
from solswap.routing.jupiter import JupiterClient, create_jupiter_client

__all__ = [
    # Base classes
    "Quote",
    "QuoteOption",
    "QuoteService",
    # Providers
    "JupiterClient",
    "create_jupiter_client",
]
