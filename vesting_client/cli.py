#!/usr/bin/env python3
# -*- coding: utf-8 -*-

"""
Command line front-end for the vesting client.

Supplies the account/chain context (signer key, explicit --account, or the
node's first unlocked account) and prints what the client reports.
"""

import argparse
import asyncio
import logging
import sys

from vesting_client.core.errors import ConfigError, Severity
from vesting_client.core.models import AccountContext
from vesting_client.core.validation import validate_address
from vesting_client.config import load_config
from vesting_client.system import VestingClient

logger = logging.getLogger(__name__)


async def resolve_account_context(client: VestingClient, account=None) -> AccountContext:
    """
    Work out which account and chain to act with.

    Args:
        client: The vesting client
        account: Explicit account address, if given on the command line

    Returns:
        AccountContext for the session

    Raises:
        ValueError: if an explicit account is not a valid address
    """
    if account is not None and not validate_address(account):
        raise ValueError(f"Invalid account address: {account}")
    chain_id = await client.ledger.get_chain_id()
    address = account or client.ledger.signer_address
    if address is None:
        accounts = await client.ledger.get_accounts()
        address = accounts[0] if accounts else None
    return AccountContext(address=address, chain_id=chain_id)


def print_status(client: VestingClient) -> None:
    snapshot = client.status()
    if snapshot.advisory:
        print(f"! {snapshot.advisory}")
    if snapshot.message and snapshot.message != snapshot.advisory:
        marker = "x" if snapshot.severity is Severity.ERROR else "-"
        print(f"{marker} {snapshot.message}")


def print_account(client: VestingClient) -> None:
    print(f"Connected Account: {client.account.address or 'Not Connected'}")
    owner_line = f"Contract Owner: {client.owner or 'Loading...'}"
    if client.is_owner:
        owner_line += "  [YOU ARE THE OWNER]"
    print(owner_line)
    if client.owner_notice:
        print(f"! {client.owner_notice}")


async def run_command(client: VestingClient, args) -> bool:
    if args.command in ("status", "owner"):
        await client.refresh_owner()
        print_account(client)
        print_status(client)
        return client.owner is not None

    if args.command == "check":
        query = await client.check_vested_amount(args.address)
        print_status(client)
        if client.vested_amount_display is not None:
            print(f"Vested Amount: {client.vested_amount_display} ETH")
        return query is not None and query.error is None

    if args.command == "create":
        await client.refresh_owner()
        handle = await client.create_vesting_schedule(args.recipient, args.amount, args.duration, args.cliff)
        print_status(client)
        if handle is not None and handle.submitted_hash:
            print(f"Transaction: {handle.submitted_hash}")
        return handle is not None and handle.failure is None

    if args.command == "claim":
        handle = await client.claim_balance()
        print_status(client)
        if handle is not None and handle.submitted_hash:
            print(f"Transaction: {handle.submitted_hash}")
        if client.vested_amount_display is not None:
            print(f"Vested Amount: {client.vested_amount_display} ETH")
        return handle is not None and handle.failure is None

    if args.command == "watch":
        last_owner = None
        try:
            while True:
                await asyncio.sleep(client.read_model.refetch_seconds)
                if client.owner != last_owner:
                    last_owner = client.owner
                    print_account(client)
                print_status(client)
        except asyncio.CancelledError:
            return True

    return False


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Create, inspect and claim vesting schedules.")
    parser.add_argument("--config", default=None, help="Path to a JSON config file")
    parser.add_argument("--account", default=None, help="Account address to act as")
    parser.add_argument("--verbose", "-v", action="store_true", help="Enable debug logging")

    subparsers = parser.add_subparsers(dest="command", help="Command to execute")

    subparsers.add_parser("status", help="Show account, owner and network status")
    subparsers.add_parser("owner", help="Show the contract owner")

    check_parser = subparsers.add_parser("check", help="Check the vested amount of an address")
    check_parser.add_argument("address", help="Address to check")

    create_parser = subparsers.add_parser("create", help="Create a vesting schedule (owner only)")
    create_parser.add_argument("recipient", help="Recipient address")
    create_parser.add_argument("amount", help="Amount in ETH, e.g. 0.1")
    create_parser.add_argument("duration", help="Duration in seconds, e.g. 31536000")
    create_parser.add_argument("cliff", help="Cliff duration in seconds, e.g. 2592000")

    subparsers.add_parser("claim", help="Claim the connected account's vested balance")
    subparsers.add_parser("watch", help="Poll and print the owner until interrupted")

    return parser


async def main(argv=None) -> int:
    """Main entry point for the CLI."""
    parser = build_parser()
    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )

    if args.command is None:
        parser.print_help()
        return 1

    try:
        config = load_config(config_path=args.config)
    except ConfigError as e:
        logger.error(f"Configuration error: {e.message}")
        return 1

    client = VestingClient.from_config(config)
    if not await client.ledger.connect():
        return 1

    try:
        try:
            context = await resolve_account_context(client, args.account)
        except Exception as e:
            logger.error(f"Could not determine account context: {e}")
            return 1
        client.set_account_context(context)
        success = await run_command(client, args)
    finally:
        await client.close()

    return 0 if success else 1


def run():
    try:
        exitcode = asyncio.run(main())
    except KeyboardInterrupt:
        logger.info("Interrupted")
        exitcode = 130
    sys.exit(exitcode)


if __name__ == "__main__":
    run()
