"""
Ledger Error Taxonomy

Every failure raised by the ledger derives from TokenLedgerError. Arithmetic
failures also subclass the matching builtin so generic handlers still work.
"""


class TokenLedgerError(Exception):
    """Base class for all ledger failures"""


class ArithmeticOverflow(TokenLedgerError, ArithmeticError):
    """Result does not fit in the unsigned 256-bit domain"""


class ArithmeticUnderflow(TokenLedgerError, ArithmeticError):
    """Subtraction would produce a negative result"""


class DivisionByZero(TokenLedgerError, ZeroDivisionError):
    """Division or ceiling by zero"""


class InsufficientBalance(TokenLedgerError, ValueError):
    """Amount exceeds the account balance"""


class InsufficientAllowance(TokenLedgerError, ValueError):
    """Amount exceeds the spender's allowance"""


class InvalidRecipient(TokenLedgerError, ValueError):
    """Null account used as recipient, spender or issuer"""


class InvalidAmount(TokenLedgerError, ValueError):
    """Zero amount where one is forbidden, or a value outside the uint256 domain"""


class IndexMismatch(TokenLedgerError, ValueError):
    """Paired batch sequences have different lengths"""
