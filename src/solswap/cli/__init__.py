"""Command line interface: interactive swap session and helper commands."""

from solswap.cli.session import ConsoleInput, InputProvider, SwapSession

__all__ = [
    "SwapSession",
    "InputProvider",
    "ConsoleInput",
]
