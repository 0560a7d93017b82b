from __future__ import annotations

from decimal import Decimal, ROUND_DOWN

UNITS_PER_COIN = 1_000_000_000
SCALE = Decimal("0.000000001")

ACCOUNT_STORAGE_OVERHEAD = 128
DEFAULT_LAMPORTS_PER_BYTE_YEAR = 3480
DEFAULT_EXEMPTION_THRESHOLD = 2

# discriminator + buyer + seller + arbiter option + amount + created_at
# + timeout_period + state + bump
ESCROW_ACCOUNT_SPACE = 8 + 32 + 32 + 33 + 8 + 8 + 8 + 1 + 1


def to_decimal(value: str | float | int | Decimal) -> Decimal:
    if isinstance(value, Decimal):
        return value
    return Decimal(str(value))


def to_base_units(value: str | float | int | Decimal) -> int:
    quantized = to_decimal(value).quantize(SCALE, rounding=ROUND_DOWN)
    return int((quantized * UNITS_PER_COIN).to_integral_value(rounding=ROUND_DOWN))


def format_amount(units: int) -> str:
    return f"{(Decimal(units) / UNITS_PER_COIN).quantize(SCALE):.9f}"


def minimum_reserve(
    data_len: int,
    lamports_per_byte_year: int = DEFAULT_LAMPORTS_PER_BYTE_YEAR,
    exemption_threshold: int = DEFAULT_EXEMPTION_THRESHOLD,
) -> int:
    """Smallest balance an account storing ``data_len`` bytes must keep to stay valid."""
    return (ACCOUNT_STORAGE_OVERHEAD + data_len) * lamports_per_byte_year * exemption_threshold


def movable_balance(custody_balance: int, reserve: int) -> int:
    """Value that can leave a custody account without touching its reserve.

    Saturates at zero: a balance at or below the reserve moves nothing.
    """
    if custody_balance <= reserve:
        return 0
    return custody_balance - reserve
