"""
Checked Unsigned Arithmetic

Overflow-safe primitives over unsigned 256-bit integers. Every operation
raises instead of wrapping or truncating; the ledger relies on these as its
only bounds checks.
"""

from typing import Final

from .errors import ArithmeticOverflow, ArithmeticUnderflow, DivisionByZero, InvalidAmount

UINT256_BITS: Final[int] = 256
UINT256_MAX: Final[int] = 2 ** UINT256_BITS - 1


def is_uint(value) -> bool:
    """Check that value is an int inside [0, UINT256_MAX]"""
    if isinstance(value, bool) or not isinstance(value, int):
        return False
    return 0 <= value <= UINT256_MAX


def require_uint(value, name: str = "value") -> int:
    """
    Validate that value belongs to the unsigned 256-bit domain

    Args:
        value: Value to validate
        name: Parameter name used in the error message

    Returns:
        The value unchanged

    Raises:
        InvalidAmount: If value is not an int, is negative, or is too large
    """
    if not is_uint(value):
        raise InvalidAmount(f"{name} must be an unsigned 256-bit integer, got {value!r}")
    return value


def add(a: int, b: int) -> int:
    """Checked addition"""
    require_uint(a, "a")
    require_uint(b, "b")
    c = a + b
    if c > UINT256_MAX:
        raise ArithmeticOverflow(f"{a} + {b} overflows uint256")
    return c


def sub(a: int, b: int) -> int:
    """Checked subtraction"""
    require_uint(a, "a")
    require_uint(b, "b")
    if b > a:
        raise ArithmeticUnderflow(f"{a} - {b} underflows uint256")
    return a - b


def mul(a: int, b: int) -> int:
    """
    Checked multiplication

    The product is reduced to 256 bits and verified by dividing it back by a;
    a mismatch means the true product did not fit.
    """
    require_uint(a, "a")
    require_uint(b, "b")
    if a == 0 or b == 0:
        return 0
    c = (a * b) & UINT256_MAX
    if c // a != b:
        raise ArithmeticOverflow(f"{a} * {b} overflows uint256")
    return c


def div(a: int, b: int) -> int:
    """Truncating integer division"""
    require_uint(a, "a")
    require_uint(b, "b")
    if b == 0:
        raise DivisionByZero(f"{a} / 0")
    return a // b


def ceil(a: int, m: int) -> int:
    """
    Round a up to the nearest multiple of m

    Composed from the checked primitives, so every failure they raise
    propagates unchanged (m == 0 raises DivisionByZero for any a > 0).

    Examples:
        >>> ceil(1, 100)
        100
        >>> ceil(1000, 100)
        1000
        >>> ceil(0, 100)
        0
    """
    c = add(a, m)
    d = sub(c, 1)
    return mul(div(d, m), m)
