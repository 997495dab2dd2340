"""
Pending liability totals and amount parsing.
"""

from decimal import Decimal, InvalidOperation, ROUND_HALF_UP
from typing import Any, Dict, Iterable, Mapping, Optional, Tuple

from ..config import get_settings
from ..errors import InvalidAmountError, LiabilityTotalsError
from ..models import LiabilityType


PENDING_LIABILITY_COLUMNS: Tuple[str, ...] = ("principal", "interest", "penalty", "total")
LIABILITY_TYPES: Tuple[LiabilityType, ...] = (
    LiabilityType.PRINCIPAL,
    LiabilityType.INTEREST,
    LiabilityType.PENALTY,
)


def generate_totals(columns: Iterable[str], value: Any) -> Dict[str, Any]:
    """Build a totals map with every column set to the same value."""
    return {column: value for column in columns}


def parse_amount_string(amount: Optional[str], scale: Optional[int] = None) -> Optional[int]:
    """
    Parse a ledger amount such as '1,234.50' into minor units.

    Returns None for an empty cell. Raises InvalidAmountError when the
    value is not a number.
    """
    if amount is None:
        return None
    cleaned = str(amount).replace(",", "").strip()
    if cleaned == "":
        return None

    if scale is None:
        scale = get_settings().amount_scale

    try:
        value = Decimal(cleaned)
    except InvalidOperation:
        raise InvalidAmountError(f"Invalid amount: {amount!r}", details={"amount": amount})
    if not value.is_finite():
        raise InvalidAmountError(f"Invalid amount: {amount!r}", details={"amount": amount})

    return int((value * scale).quantize(Decimal(1), rounding=ROUND_HALF_UP))


def parse_liability_total(
    totals: Mapping[str, Any],
    liability_type: LiabilityType,
    scale: Optional[int] = None,
) -> int:
    """
    Parse one liability column of a pending liability totals map.

    Raises LiabilityTotalsError when the value is missing, empty or not numeric.
    """
    column = liability_type.value
    raw = totals.get(column) if totals else None
    try:
        value = parse_amount_string(raw, scale=scale)
    except InvalidAmountError as e:
        raise LiabilityTotalsError(
            f"Total {column} liability is not numeric: {raw!r}",
            liability_type=column,
            details=e.details,
        ) from e
    if value is None:
        raise LiabilityTotalsError(
            f"Total {column} liability is missing",
            liability_type=column,
        )
    return value


def parse_liability_totals(
    totals: Mapping[str, Any],
    liability_types: Iterable[LiabilityType] = LIABILITY_TYPES,
    scale: Optional[int] = None,
) -> Dict[LiabilityType, int]:
    """Parse every liability column of a totals map into minor units."""
    return {
        liability_type: parse_liability_total(totals, liability_type, scale=scale)
        for liability_type in liability_types
    }
