"""
Network guard for state-changing calls.
"""

import logging
from typing import Optional

from vesting_client.core.errors import NetworkMismatchError

logger = logging.getLogger(__name__)

KNOWN_CHAINS = {
    1: "Ethereum",
    10: "OP Mainnet",
    56: "BNB Smart Chain",
    137: "Polygon",
    8453: "Base",
    17000: "Holesky",
    31337: "Anvil",
    42161: "Arbitrum One",
    84532: "Base Sepolia",
    11155111: "Sepolia",
}


def chain_name(chain_id: Optional[int]) -> str:
    if chain_id is None:
        return "Unknown"
    return KNOWN_CHAINS.get(chain_id, f"Chain {chain_id}")


class NetworkStatus:
    """Result of comparing the active chain with the required one."""

    def __init__(self, expected: int, actual: Optional[int] = None, actual_name: Optional[str] = None):
        self.expected = expected
        self.actual = actual
        self.actual_name = actual_name

    @property
    def ok(self) -> bool:
        return self.actual == self.expected

    def __eq__(self, other):
        if not isinstance(other, NetworkStatus):
            return NotImplemented
        return (self.expected, self.actual, self.actual_name) == (other.expected, other.actual, other.actual_name)

    def __repr__(self):
        if self.ok:
            return f"NetworkStatus(ok, chain={self.expected})"
        return f"NetworkStatus(mismatch, expected={self.expected}, actual={self.actual})"


class NetworkGuard:
    """
    Gates state-changing operations on the active chain id.

    The guard never talks to the network; it is re-evaluated by its owner
    whenever the account context reports a new chain id.
    """

    def __init__(self, required_chain_id: int, required_chain_name: Optional[str] = None):
        self.required_chain_id = required_chain_id
        self.required_chain_name = required_chain_name or chain_name(required_chain_id)
        self.status = NetworkStatus(expected=required_chain_id, actual_name=chain_name(None))

    def evaluate(self, current_chain_id: Optional[int]) -> NetworkStatus:
        """
        Compare ``current_chain_id`` with the required chain and store the result.

        Args:
            current_chain_id: Chain id reported by the wallet, or None if unknown

        Returns:
            NetworkStatus for the given chain id
        """
        if current_chain_id == self.required_chain_id:
            status = NetworkStatus(expected=self.required_chain_id, actual=current_chain_id)
        else:
            status = NetworkStatus(
                expected=self.required_chain_id,
                actual=current_chain_id,
                actual_name=chain_name(current_chain_id),
            )
            logger.warning(
                f"Chain mismatch: required {self.required_chain_id}, connected to {current_chain_id}"
            )
        self.status = status
        return status

    def message(self, status: Optional[NetworkStatus] = None) -> Optional[str]:
        """User-facing advisory for a mismatch, or None when the chain is correct."""
        status = status or self.status
        if status.ok:
            return None
        return (
            f"Please switch to {self.required_chain_name}'s network (Chain ID: {status.expected}). "
            f"Current: {status.actual_name} (ID: {status.actual})"
        )

    def error(self, status: Optional[NetworkStatus] = None) -> Optional[NetworkMismatchError]:
        status = status or self.status
        if status.ok:
            return None
        return NetworkMismatchError(status.expected, status.actual, self.message(status))
