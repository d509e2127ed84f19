"""
Deflationary Token Ledger

A fungible-token ledger with an automatic transfer tax: every transfer burns
a fraction of the transferred amount, permanently reducing total supply.
All arithmetic is checked unsigned 256-bit integer math.
"""

__version__ = "1.0.0"
