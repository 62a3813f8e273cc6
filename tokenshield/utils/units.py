"""Fixed-point helpers for on-chain integer amounts.

Balances arrive as 256-bit integers. Percentages are computed by integer
division at a 1e6 scale first and only then converted to float, so the
result is monotonic in the numerator and never leaves [0, 100]. Values
above 2**53 lose precision in the final float, which is accepted.
"""

PERCENT_SCALE = 10**6


def ratio_to_percentage(numerator: int, denominator: int) -> float | None:
    """Return ``numerator / denominator * 100`` clamped to [0, 100].

    None when the denominator is zero or negative (nothing to divide by).
    """
    if denominator <= 0:
        return None
    numerator = max(0, min(numerator, denominator))
    scaled = numerator * 100 * PERCENT_SCALE // denominator
    return scaled / PERCENT_SCALE


def decimal_to_base_units(value: str | float, decimals: int = 18) -> int:
    """Convert a decimal string like ``"12.5"`` to integer base units.

    Subgraphs report LP balances as decimals; exponent notation is accepted.
    """
    from decimal import Decimal, InvalidOperation

    try:
        amount = Decimal(str(value))
    except InvalidOperation:
        return 0
    if amount <= 0:
        return 0
    return int(amount.scaleb(decimals))


def apply_slippage(amount: int, slippage_pct: float) -> int:
    """Minimum acceptable output for a quote under a slippage tolerance."""
    bps = int(round(slippage_pct * 100))
    bps = max(0, min(bps, 10_000))
    return amount * (10_000 - bps) // 10_000


def truncate_text(text: str, max_chars: int) -> str:
    """Trim to ``max_chars`` code points.

    Python strings index by code point, so a multi-byte character is never split.
    """
    if max_chars <= 0:
        return ""
    if len(text) <= max_chars:
        return text
    return text[:max_chars]


def ether_to_wei(amount: float) -> int:
    from decimal import Decimal

    return int(Decimal(str(amount)) * 10**18)
