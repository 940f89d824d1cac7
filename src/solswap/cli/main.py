"""solswap command line.

Subcommands:
    swap                 Interactive token swap (default)
    holdings ADDRESS     List SPL token balances of an address
    env                  Check wallet and network configuration
    transfer TO AMOUNT   Send SOL
    token-account TOKEN  Create the wallet's token account for a token
"""

import argparse
import asyncio
import logging
import sys
from typing import Optional

import httpx
from dotenv import find_dotenv, load_dotenv
from solana.exceptions import SolanaRpcException

from solswap.config import Settings, get_settings
from solswap.errors import ConfigError, SolswapError
from solswap.ledger.connection import LedgerConnection
from solswap.routing.jupiter import create_jupiter_client
from solswap.swap.confirmation import ConfirmationPhase
from solswap.swap.executor import SwapExecutor
from solswap.swap.signer import load_signer
from solswap.swap.token_account import ensure_token_account
from solswap.swap.transfer import transfer_sol
from solswap.tokens import SOL_DECIMALS, TokenDirectory, to_smallest_unit
from solswap.cli.session import EXIT_ERROR, EXIT_OK, ConsoleInput, SwapSession

logger = logging.getLogger(__name__)

SOLSCAN_TOKEN_URL = "https://solscan.io/token"


def create_token_directory(settings: Settings) -> TokenDirectory:
    """Create the token directory for the configured network."""
    return TokenDirectory(
        cache_file=settings.token_cache_file,
        token_list_url=settings.token_list_url,
        devnet=settings.network.is_devnet,
        popular_symbols=settings.popular_symbols,
        timeout=settings.http_timeout,
    )


async def run_swap(settings: Settings, args: argparse.Namespace) -> int:
    network = settings.network
    signer = load_signer(settings, key_path=args.key_path)

    directory = create_token_directory(settings)
    await directory.load()

    quote_service = create_jupiter_client(settings)
    executor = SwapExecutor(quote_service, policy=settings.confirmation_policy)

    async with LedgerConnection(network.rpc_url) as connection:
        session = SwapSession(
            network=network,
            connection=connection,
            signer=signer,
            directory=directory,
            quote_service=quote_service,
            executor=executor,
            popular_symbols=settings.popular_symbols,
        )
        return await session.run()


async def run_holdings(settings: Settings, args: argparse.Namespace) -> int:
    """List non-zero token balances of an address with token list metadata."""
    network = settings.network
    print("Fetching token accounts...")
    async with LedgerConnection(network.rpc_url) as connection:
        try:
            accounts = await connection.get_token_accounts(args.address)
        except ValueError:
            print(f"Invalid address: {args.address}")
            return EXIT_ERROR

    holdings = [a for a in accounts if a.amount > 0]
    if not holdings:
        print("No tokens found.")
        return EXIT_OK

    print(f"Found {len(holdings)} tokens. Fetching metadata...")
    directory = create_token_directory(settings)
    await directory.load()

    print(f"\nTokens held by {args.address}:\n")
    unknown = []
    for account in holdings:
        token = directory.by_address(account.mint)
        if token is None:
            unknown.append(account.mint)
        name = token.name if token else "Unknown"
        symbol = token.symbol if token else "???"
        print(f"Name: {name} ({symbol}) | Mint: {account.mint} | Amount: {account.amount}")

    known = len(holdings) - len(unknown)
    print(
        f"\nIdentified {known} out of {len(holdings)} tokens "
        f"({round(known / len(holdings) * 100)}%)"
    )
    if unknown:
        print("\nFor unknown tokens, you can look them up on Solscan:")
        for mint in unknown:
            print(f"{SOLSCAN_TOKEN_URL}/{mint}")
    return EXIT_OK


def run_env(settings: Settings) -> int:
    """Print the effective configuration with secrets redacted."""
    safe = settings.get_safe_dict()

    print("Environment Check")
    print("=================")
    for name, value in safe["wallet"].items():
        print(f"{name}: {value}")
    if not settings.has_wallet:
        print("\nNo wallet configured. Set one of the variables above.")

    print(f"\nNetwork: {safe['network']}")
    print(f"RPC URL: {safe['rpc_url']}")
    print(f"Jupiter API: {safe['jupiter_api_url']}")
    print(f"Token cache: {safe['token_cache_file']}")
    print(f"Slippage: {safe['slippage_bps']} bps")
    print(f"Popular tokens: {', '.join(safe['popular_tokens'])}")
    confirmation = safe["confirmation"]
    print(
        "Confirmation: "
        + ", ".join(f"{key}={value}" for key, value in confirmation.items())
    )
    print(f"\nPython: {sys.version.split()[0]} ({sys.platform})")
    return EXIT_OK if settings.has_wallet else EXIT_ERROR


async def run_transfer(settings: Settings, args: argparse.Namespace) -> int:
    network = settings.network
    signer = load_signer(settings, key_path=args.key_path)

    try:
        lamports = to_smallest_unit(args.amount, SOL_DECIMALS)
    except ValueError as e:
        print(f"Invalid amount: {e}")
        return EXIT_ERROR

    print(f"Send {args.amount} SOL from {signer.public_key} to {args.recipient}")
    if not args.yes:
        answer = ConsoleInput().ask("Proceed? (y/n): ")
        if answer.strip().lower() not in ("y", "yes"):
            print("Transfer cancelled")
            return EXIT_OK

    confirmation = ConfirmationPhase(settings.confirmation_policy)
    async with LedgerConnection(network.rpc_url) as connection:
        result = await transfer_sol(connection, signer, args.recipient, lamports, confirmation)

    print(f"Transfer {result.status.value}")
    if result.reason:
        print(f"Reason: {result.reason}")
    if result.signature:
        print(f"View transaction: {network.explorer_link(result.signature)}")
    return EXIT_ERROR if result.is_failed else EXIT_OK


async def run_token_account(settings: Settings, args: argparse.Namespace) -> int:
    """Create the wallet's token account for a token if it does not exist."""
    network = settings.network
    signer = load_signer(settings, key_path=args.key_path)

    directory = create_token_directory(settings)
    await directory.load()
    token = directory.by_address(args.token) or directory.find(args.token)
    if token is None:
        print(f"Token '{args.token}' not found")
        return EXIT_ERROR
    if token.is_native:
        print("Native SOL is held by the wallet itself and needs no token account")
        return EXIT_ERROR

    confirmation = ConfirmationPhase(settings.confirmation_policy)
    async with LedgerConnection(network.rpc_url) as connection:
        account = await ensure_token_account(connection, signer, token.address, confirmation)
        if account.result is None:
            print(f"{token.symbol} token account already exists: {account.address}")
        else:
            result = account.result
            print(f"Create {token.symbol} token account {account.address}: {result.status.value}")
            if result.reason:
                print(f"Reason: {result.reason}")
            if result.signature:
                print(f"View transaction: {network.explorer_link(result.signature)}")
            if account.is_failed:
                return EXIT_ERROR

        try:
            balance = await connection.get_token_balance(signer.public_key, token)
        except Exception as e:
            logger.warning(f"Failed to get {token.symbol} balance: {e}")
            return EXIT_OK
    print(f"{token.symbol} balance: {balance}")
    return EXIT_OK


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="solswap",
        description="Swap Solana tokens through the Jupiter aggregator",
    )
    parser.add_argument(
        "--network",
        choices=["mainnet-beta", "devnet"],
        help="Override SOLANA_NETWORK",
    )
    parser.add_argument("--debug", action="store_true", help="Enable debug logging")

    subparsers = parser.add_subparsers(dest="command")

    swap = subparsers.add_parser("swap", help="Interactive token swap (default)")
    swap.add_argument("--key-path", help="Wallet keypair file (overrides WALLET_KEY_PATH)")

    holdings = subparsers.add_parser("holdings", help="List SPL token balances of an address")
    holdings.add_argument("address", help="Solana address")

    subparsers.add_parser("env", help="Check wallet and network configuration")

    transfer = subparsers.add_parser("transfer", help="Send SOL")
    transfer.add_argument("recipient", help="Recipient address")
    transfer.add_argument("amount", help="Amount of SOL")
    transfer.add_argument("--key-path", help="Wallet keypair file (overrides WALLET_KEY_PATH)")
    transfer.add_argument("-y", "--yes", action="store_true", help="Skip the confirmation prompt")

    token_account = subparsers.add_parser(
        "token-account", help="Create the wallet's token account for a token if missing"
    )
    token_account.add_argument("token", help="Token symbol or mint address")
    token_account.add_argument("--key-path", help="Wallet keypair file (overrides WALLET_KEY_PATH)")

    return parser


async def dispatch(settings: Settings, args: argparse.Namespace) -> int:
    if args.command == "holdings":
        return await run_holdings(settings, args)
    if args.command == "env":
        return run_env(settings)
    if args.command == "transfer":
        return await run_transfer(settings, args)
    if args.command == "token-account":
        return await run_token_account(settings, args)
    return await run_swap(settings, args)


def main(argv: Optional[list[str]] = None) -> int:
    """Entry point for the solswap console script."""
    load_dotenv(find_dotenv(usecwd=True))
    args = build_parser().parse_args(argv)
    if not getattr(args, "command", None):
        args.command = "swap"
        args.key_path = None

    settings = get_settings()
    if args.network:
        settings = settings.model_copy(update={"solana_network": args.network})

    log_level = logging.DEBUG if (args.debug or settings.debug) else logging.WARNING
    logging.basicConfig(
        level=log_level,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )

    try:
        return asyncio.run(dispatch(settings, args))
    except ConfigError as e:
        print(f"Configuration error: {e}")
        return EXIT_ERROR
    except SolswapError as e:
        print(f"Error: {e}")
        return EXIT_ERROR
    except (httpx.HTTPError, SolanaRpcException) as e:
        print(f"Network error: {e}")
        return EXIT_ERROR
    except (KeyboardInterrupt, EOFError):
        print("\nCancelled")
        return EXIT_OK
