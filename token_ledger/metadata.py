"""
Token Metadata

Display-only name, symbol and decimals. The ledger never depends on these
values beyond exposing them.
"""

from dataclasses import dataclass


MAX_DECIMALS = 255  # stored as uint8


@dataclass(frozen=True)
class TokenMetadata:
    """Immutable token display metadata"""
    name: str = "Deflationary Token"
    symbol: str = "DFT"
    decimals: int = 0

    def __post_init__(self):
        if not self.name:
            raise ValueError("Token name must not be empty")
        if not self.symbol:
            raise ValueError("Token symbol must not be empty")
        if isinstance(self.decimals, bool) or not isinstance(self.decimals, int):
            raise ValueError(f"Decimals must be an integer, got {self.decimals!r}")
        if not 0 <= self.decimals <= MAX_DECIMALS:
            raise ValueError(f"Decimals must be between 0 and {MAX_DECIMALS}")

    def to_dict(self) -> dict:
        return {"name": self.name, "symbol": self.symbol, "decimals": self.decimals}

    @classmethod
    def from_dict(cls, data: dict) -> 'TokenMetadata':
        return cls(name=data["name"], symbol=data["symbol"], decimals=int(data["decimals"]))
