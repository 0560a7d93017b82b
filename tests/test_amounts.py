from decimal import Decimal

from guardescrow.amounts import (
    ESCROW_ACCOUNT_SPACE,
    format_amount,
    minimum_reserve,
    movable_balance,
    to_base_units,
)


def test_escrow_reserve_matches_rent_exempt_minimum():
    assert ESCROW_ACCOUNT_SPACE == 131
    assert minimum_reserve(ESCROW_ACCOUNT_SPACE) == 1_802_640
    assert minimum_reserve(0) == 128 * 3480 * 2


def test_movable_balance_excludes_reserve():
    assert movable_balance(1000 + 1_802_640, 1_802_640) == 1000


def test_movable_balance_saturates_at_zero():
    assert movable_balance(10, 50) == 0
    assert movable_balance(50, 50) == 0
    assert movable_balance(0, 0) == 0


def test_movable_balance_is_stable_for_same_inputs():
    assert movable_balance(5000, 1200) == movable_balance(5000, 1200) == 3800


def test_unit_conversion():
    assert to_base_units("1.5") == 1_500_000_000
    assert to_base_units(Decimal("0.0000000019")) == 1
    assert format_amount(1_000) == "0.000001000"
