"""
Token amount conversion.

On-chain amounts are fixed-point integers; the ledger stores them as
Decimal in human-readable token units.
"""

from decimal import ROUND_DOWN, Decimal, localcontext


def from_base_units(
    raw_amount: int,
    decimals: int,
    max_places: int | None = None,
) -> Decimal:
    """
    Convert a fixed-point on-chain integer to human-readable units.

    The conversion is exact up to ``decimals`` places. When ``max_places``
    is smaller than ``decimals`` the result is truncated toward zero.

    Args:
        raw_amount: Integer amount as emitted by the contract
        decimals: Token decimals
        max_places: Optional storage scale to truncate to

    Returns:
        Amount in token units

    Raises:
        ValueError: If raw_amount or decimals is negative

    Examples:
        >>> from_base_units(1000000, 6)
        Decimal('1.000000')
        >>> from_base_units(1, 6)
        Decimal('0.000001')
    """
    if raw_amount < 0:
        raise ValueError(f"Amount cannot be negative: {raw_amount}")
    if decimals < 0:
        raise ValueError(f"Decimals cannot be negative: {decimals}")

    places = decimals if max_places is None else min(decimals, max_places)

    # uint256 needs up to 78 significant digits
    with localcontext() as ctx:
        ctx.prec = len(str(raw_amount)) + decimals + 2
        ctx.rounding = ROUND_DOWN
        value = Decimal(raw_amount).scaleb(-decimals)
        return value.quantize(Decimal(1).scaleb(-places), rounding=ROUND_DOWN)


def to_base_units(amount: Decimal, decimals: int) -> int:
    """
    Convert a human-readable amount back to on-chain integer units.

    Digits beyond ``decimals`` are truncated toward zero.

    Args:
        amount: Amount in token units
        decimals: Token decimals

    Returns:
        Integer amount
    """
    with localcontext() as ctx:
        ctx.prec = len(str(amount)) + decimals + 2
        ctx.rounding = ROUND_DOWN
        return int(amount.scaleb(decimals).to_integral_value(rounding=ROUND_DOWN))
