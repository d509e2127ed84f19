"""
Test suite for checked arithmetic

CRITICAL: Every primitive must raise rather than wrap or truncate; the ledger
has no other bounds checks.
"""

import pytest

from token_ledger.errors import (
    ArithmeticOverflow, ArithmeticUnderflow, DivisionByZero, InvalidAmount, TokenLedgerError
)
from token_ledger.safe_math import UINT256_MAX, add, sub, mul, div, ceil, is_uint, require_uint


class TestAdd:
    """Test checked addition"""

    def test_add(self):
        assert add(2, 3) == 5
        assert add(0, 0) == 0

    def test_add_up_to_max(self):
        """Test that the top of the domain is reachable"""
        assert add(UINT256_MAX - 1, 1) == UINT256_MAX
        assert add(UINT256_MAX, 0) == UINT256_MAX

    def test_add_overflow(self):
        with pytest.raises(ArithmeticOverflow):
            add(UINT256_MAX, 1)


class TestSub:
    """Test checked subtraction"""

    def test_sub(self):
        assert sub(10, 4) == 6
        assert sub(7, 7) == 0

    def test_sub_underflow(self):
        """Test that going below zero raises instead of clamping"""
        with pytest.raises(ArithmeticUnderflow):
            sub(4, 5)


class TestMul:
    """Test checked multiplication"""

    def test_mul(self):
        assert mul(6, 7) == 42
        assert mul(UINT256_MAX, 1) == UINT256_MAX
        assert mul(2 ** 128, 2 ** 127) == 2 ** 255

    def test_mul_zero_short_circuit(self):
        assert mul(0, UINT256_MAX) == 0
        assert mul(UINT256_MAX, 0) == 0

    def test_mul_overflow(self):
        """Test that a product past 256 bits fails the round-trip check"""
        with pytest.raises(ArithmeticOverflow):
            mul(2 ** 128, 2 ** 128)
        with pytest.raises(ArithmeticOverflow):
            mul(UINT256_MAX, 2)


class TestDiv:
    """Test checked division"""

    def test_div_truncates(self):
        assert div(7, 2) == 3
        assert div(100000, 10450) == 9
        assert div(0, 5) == 0

    def test_div_by_zero(self):
        with pytest.raises(DivisionByZero):
            div(1, 0)


class TestCeil:
    """Test rounding up to a multiple"""

    @pytest.mark.parametrize("value,unit,expected", [
        (0, 100, 0),
        (1, 100, 100),
        (50, 100, 100),
        (100, 100, 100),
        (101, 100, 200),
        (1000, 100, 1000),
        (7, 1, 7),
    ])
    def test_ceil(self, value, unit, expected):
        assert ceil(value, unit) == expected

    def test_ceil_overflow_propagates(self):
        with pytest.raises(ArithmeticOverflow):
            ceil(UINT256_MAX, 100)

    def test_ceil_zero_unit(self):
        """Test that a zero unit fails inside the composed primitives"""
        with pytest.raises(DivisionByZero):
            ceil(5, 0)
        with pytest.raises(ArithmeticUnderflow):
            ceil(0, 0)


class TestDomain:
    """Test uint256 operand validation"""

    @pytest.mark.parametrize("value", [-1, 2 ** 256, True, 1.5, "10", None])
    def test_rejects_out_of_domain(self, value):
        assert not is_uint(value)
        with pytest.raises(InvalidAmount):
            require_uint(value)

    def test_primitives_reject_negative_operands(self):
        with pytest.raises(InvalidAmount):
            add(-1, 1)
        with pytest.raises(InvalidAmount):
            mul(2, -3)

    def test_accepts_domain_bounds(self):
        assert require_uint(0) == 0
        assert require_uint(UINT256_MAX) == UINT256_MAX

    def test_error_hierarchy(self):
        """Test that ledger errors still match the builtin exception types"""
        assert issubclass(ArithmeticOverflow, ArithmeticError)
        assert issubclass(ArithmeticUnderflow, ArithmeticError)
        assert issubclass(DivisionByZero, ZeroDivisionError)
        assert issubclass(InvalidAmount, ValueError)
        for error in (ArithmeticOverflow, ArithmeticUnderflow, DivisionByZero, InvalidAmount):
            assert issubclass(error, TokenLedgerError)
