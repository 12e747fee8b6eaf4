"""
EVM ledger client for the vesting contract.

This module wraps ``web3.AsyncWeb3`` behind the four contract operations the
vesting client needs, plus chain id and receipt lookups. Transport and
contract errors are translated into the client's error taxonomy here so
that nothing above this layer has to know about web3 exception types.
"""

import logging
from typing import Any, Dict, Optional

import async_timeout
from eth_account import Account
from web3 import AsyncWeb3, AsyncHTTPProvider, Web3
from web3.exceptions import ContractLogicError

from vesting_client.abi import VESTING_CONTRACT_ABI
from vesting_client.core.errors import (
    ConfirmationError,
    LookupFailure,
    OwnerFetchFailure,
    SubmissionError,
)
from vesting_client.core.models import VestingScheduleRequest

logger = logging.getLogger(__name__)


def _error_text(error: BaseException) -> str:
    text = str(error).strip()
    return text or error.__class__.__name__


class LedgerClient:
    """
    Async client for the vesting contract.

    Writes go through one of two paths:
    1. Node-managed accounts (``transact``), e.g. Anvil's unlocked accounts
    2. A locally held private key, signed with ``eth_account`` and sent raw

    Reads are bounded by ``request_timeout``. Receipt waits are unbounded
    unless ``receipt_timeout`` is set.
    """

    def __init__(
        self,
        rpc_url: str,
        contract_address: str,
        private_key: Optional[str] = None,
        request_timeout: float = 30.0,
        receipt_timeout: Optional[float] = None,
        receipt_poll_latency: float = 0.5,
        w3: Optional[AsyncWeb3] = None,
    ):
        """
        Initialize the ledger client.

        Args:
            rpc_url: JSON-RPC endpoint of the node
            contract_address: Address of the deployed vesting contract
            private_key: Optional key for local signing
            request_timeout: Timeout in seconds for read calls
            receipt_timeout: Optional timeout in seconds for receipt waits
            receipt_poll_latency: Interval between receipt polls in seconds
            w3: Pre-built AsyncWeb3 instance (mainly for tests)
        """
        self.rpc_url = rpc_url
        self.request_timeout = request_timeout
        self.receipt_timeout = receipt_timeout
        self.receipt_poll_latency = receipt_poll_latency

        self.w3 = w3 if w3 is not None else AsyncWeb3(AsyncHTTPProvider(rpc_url))
        self.contract_address = Web3.to_checksum_address(contract_address)
        self.contract = self.w3.eth.contract(address=self.contract_address, abi=VESTING_CONTRACT_ABI)

        self.account = Account.from_key(private_key) if private_key else None

    @property
    def signer_address(self) -> Optional[str]:
        return self.account.address if self.account is not None else None

    async def connect(self) -> bool:
        """
        Check that the node is reachable.

        Returns:
            True if the node answered, False otherwise
        """
        try:
            async with async_timeout.timeout(self.request_timeout):
                connected = await self.w3.is_connected()
            if not connected:
                logger.error(f"Node at {self.rpc_url} is not reachable")
                return False
            chain_id = await self.get_chain_id()
            logger.info(f"Connected to {self.rpc_url} (chain {chain_id})")
            logger.info(f"Vesting contract: {self.contract_address}")
            return True
        except Exception as e:
            logger.error(f"Failed to connect to {self.rpc_url}: {e}")
            return False

    async def get_chain_id(self) -> int:
        async with async_timeout.timeout(self.request_timeout):
            return await self.w3.eth.chain_id

    async def get_accounts(self) -> list:
        """Accounts managed by the node (unlocked accounts on Anvil)."""
        async with async_timeout.timeout(self.request_timeout):
            return list(await self.w3.eth.accounts)

    async def owner(self) -> str:
        """
        Read the contract owner.

        Raises:
            OwnerFetchFailure: on any transport or contract error
        """
        try:
            async with async_timeout.timeout(self.request_timeout):
                return await self.contract.functions.owner().call()
        except Exception as e:
            logger.error(f"Error fetching contract owner: {e}")
            raise OwnerFetchFailure(cause=e) from e

    async def check_vested_amount(self, subject: str) -> int:
        """
        Read the vested amount (in wei) for ``subject``.

        Raises:
            LookupFailure: ``reason`` is NO_SCHEDULE when the contract
                reverted, TRANSPORT for anything else
        """
        try:
            async with async_timeout.timeout(self.request_timeout):
                amount = await self.contract.functions.checkVestedAmount(
                    Web3.to_checksum_address(subject)
                ).call()
            return int(amount)
        except ContractLogicError as e:
            logger.debug(f"checkVestedAmount reverted for {subject}: {e}")
            raise LookupFailure(LookupFailure.NO_SCHEDULE, cause=e) from e
        except Exception as e:
            logger.warning(f"checkVestedAmount failed for {subject}: {e}")
            raise LookupFailure(LookupFailure.TRANSPORT, cause=e) from e

    async def create_vesting_schedule(self, sender: str, request: VestingScheduleRequest) -> str:
        """
        Submit ``createVestingSchedule`` with the principal as the call value.

        Returns:
            Transaction hash as 0x-prefixed hex

        Raises:
            SubmissionError: if the node or signer rejects the call
        """
        function = self.contract.functions.createVestingSchedule(
            Web3.to_checksum_address(request.recipient),
            request.duration_seconds,
            request.cliff_seconds,
        )
        return await self._send(function, sender, value=request.amount_wei)

    async def claim_balance(self, sender: str, subject: str) -> str:
        """
        Submit ``claimBalance`` for ``subject``.

        Returns:
            Transaction hash as 0x-prefixed hex

        Raises:
            SubmissionError: if the node or signer rejects the call
        """
        function = self.contract.functions.claimBalance(Web3.to_checksum_address(subject))
        return await self._send(function, sender)

    async def _send(self, function, sender: str, value: int = 0) -> str:
        tx_params: Dict[str, Any] = {"from": Web3.to_checksum_address(sender)}
        if value:
            tx_params["value"] = value

        if self.account is not None and self.account.address.lower() != sender.lower():
            raise SubmissionError(
                f"Signer {self.account.address} does not match connected account {sender}."
            )

        try:
            if self.account is None:
                tx_hash = await function.transact(tx_params)
            else:
                tx_params["nonce"] = await self.w3.eth.get_transaction_count(self.account.address, "pending")
                tx_params["chainId"] = await self.w3.eth.chain_id
                tx = await function.build_transaction(tx_params)
                signed = self.account.sign_transaction(tx)
                tx_hash = await self.w3.eth.send_raw_transaction(signed.raw_transaction)
        except Exception as e:
            logger.error(f"Transaction submission failed: {e}")
            raise SubmissionError(_error_text(e), cause=e) from e

        tx_hash_hex = Web3.to_hex(tx_hash)
        logger.info(f"Transaction sent: {tx_hash_hex}")
        return tx_hash_hex

    async def wait_for_receipt(self, tx_hash: str) -> Dict[str, Any]:
        """
        Wait until ``tx_hash`` is included and check its status.

        Returns:
            The transaction receipt

        Raises:
            ConfirmationError: if the transaction reverted or the wait failed
        """
        try:
            receipt = await self.w3.eth.wait_for_transaction_receipt(
                tx_hash,
                timeout=self.receipt_timeout,
                poll_latency=self.receipt_poll_latency,
            )
        except Exception as e:
            logger.error(f"Error waiting for receipt of {tx_hash}: {e}")
            raise ConfirmationError(_error_text(e), cause=e) from e

        if receipt["status"] != 1:
            raise ConfirmationError(f"Transaction {tx_hash} reverted in block {receipt['blockNumber']}.")

        logger.info(f"Transaction {tx_hash} confirmed in block {receipt['blockNumber']}")
        return receipt
