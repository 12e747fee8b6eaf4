"""
Validation of user-supplied addresses and vesting parameters.

All functions here are pure: they never touch the network and never mutate
their inputs.
"""

import re
from decimal import ROUND_HALF_UP, Decimal, localcontext
from typing import Any

from web3 import Web3

from vesting_client.core.errors import ValidationError, ValidationKind
from vesting_client.core.models import VestingScheduleRequest

HEX_ADDRESS_RE = re.compile(r"^0x[a-fA-F0-9]{40}$")
INTEGER_RE = re.compile(r"^[+-]?\d+$")
DECIMAL_RE = re.compile(r"^-?\d*\.?\d+$")
MAX_UINT256 = (1 << 256) - 1

WEI_QUANTUM = Decimal("1e-18")
# Working precision for rounding to wei; longer inputs overflow
AMOUNT_PRECISION = 999


def validate_address(value: Any) -> bool:
    """
    Return True iff ``value`` is ``0x`` followed by exactly 40 hex digits.

    All-lowercase hex is accepted as is. Any other casing must be a valid
    EIP-55 checksum. Never raises.
    """
    if not isinstance(value, str) or HEX_ADDRESS_RE.match(value) is None:
        return False
    if value == value.lower():
        return True
    return Web3.is_checksum_address(value)


def _parse_decimal(text: str) -> Decimal:
    # Plain decimal notation only: no exponents, separators or padding
    text = str(text)
    if DECIMAL_RE.match(text) is None:
        raise ValueError(f"Not a decimal amount: {text!r}")
    return Decimal(text)


def _amount_to_wei(amount: Decimal) -> int:
    with localcontext() as ctx:
        ctx.prec = AMOUNT_PRECISION
        amount = amount.quantize(WEI_QUANTUM, rounding=ROUND_HALF_UP)
    return Web3.to_wei(amount, "ether")


def to_wei(amount_text: str) -> int:
    """
    Convert a human decimal ether amount (e.g. ``"0.1"``) to wei.

    Digits beyond 18 decimal places are rounded half up.

    Raises:
        ValueError: if the text is not a plain decimal number, or the
            resulting value is negative or does not fit in 256 bits.
    """
    amount = _parse_decimal(amount_text)
    try:
        return _amount_to_wei(amount)
    except ArithmeticError as e:
        raise ValueError(f"Amount out of range: {amount_text!r}") from e


def format_wei(amount_wei: int) -> str:
    """Format a wei amount as a plain decimal ether string without trailing zeros."""
    value = Decimal(Web3.from_wei(amount_wei, "ether"))
    return format(value.normalize(), "f")


def _parse_seconds(text: str) -> int:
    text = str(text).strip()
    if not INTEGER_RE.match(text):
        raise ValueError(f"Not a whole number of seconds: {text!r}")
    return int(text)


def validate_vesting_request(
    recipient: str,
    amount_text: str,
    duration_text: str,
    cliff_text: str,
) -> VestingScheduleRequest:
    """
    Validate raw form input and build a ``VestingScheduleRequest``.

    Rules are checked in a fixed order (recipient, amount, duration, cliff)
    and only the first violation is reported.

    Returns:
        VestingScheduleRequest with the amount converted to wei

    Raises:
        ValidationError: describing the first violated rule
    """
    if not validate_address(recipient):
        raise ValidationError(ValidationKind.INVALID_ADDRESS)

    try:
        amount = _parse_decimal(amount_text)
    except ValueError:
        raise ValidationError(ValidationKind.NON_POSITIVE_AMOUNT, "Invalid amount.")
    if amount <= 0:
        raise ValidationError(ValidationKind.NON_POSITIVE_AMOUNT)
    try:
        amount_wei = _amount_to_wei(amount)
    except (ValueError, ArithmeticError):
        raise ValidationError(ValidationKind.NON_POSITIVE_AMOUNT, "Amount is too large.")
    # Below half a wei
    if amount_wei <= 0:
        raise ValidationError(ValidationKind.NON_POSITIVE_AMOUNT)

    try:
        duration_seconds = _parse_seconds(duration_text)
    except ValueError:
        raise ValidationError(
            ValidationKind.NON_POSITIVE_DURATION,
            "Duration must be a whole number of seconds.",
        )
    if duration_seconds <= 0:
        raise ValidationError(ValidationKind.NON_POSITIVE_DURATION)
    if duration_seconds > MAX_UINT256:
        raise ValidationError(ValidationKind.NON_POSITIVE_DURATION, "Duration is out of range.")

    try:
        cliff_seconds = _parse_seconds(cliff_text)
    except ValueError:
        raise ValidationError(
            ValidationKind.NEGATIVE_CLIFF,
            "Cliff duration must be a whole number of seconds.",
        )
    if cliff_seconds < 0:
        raise ValidationError(ValidationKind.NEGATIVE_CLIFF)
    if cliff_seconds > MAX_UINT256:
        raise ValidationError(ValidationKind.NEGATIVE_CLIFF, "Cliff duration is out of range.")

    # cliff > duration is accepted; the contract decides.
    return VestingScheduleRequest(
        recipient=recipient,
        amount_wei=amount_wei,
        duration_seconds=duration_seconds,
        cliff_seconds=cliff_seconds,
    )
