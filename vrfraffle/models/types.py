from typing import Optional

from sqlalchemy import BigInteger, Integer, String
from sqlalchemy.types import TypeDecorator

# Use BigInteger by default, with a SQLite-safe Integer variant for autoincrement PKs.
ID_TYPE = BigInteger().with_variant(Integer, "sqlite")


class WeiAmount(TypeDecorator):
    """Non-negative integer amount in the smallest currency unit.

    Values routinely exceed 64 bits (``10**18`` per ether), so they are
    persisted as decimal strings and converted back to ``int`` on load.
    """

    impl = String(78)
    cache_ok = True

    def process_bind_param(self, value: Optional[int], dialect) -> Optional[str]:
        if value is None:
            return None
        amount = int(value)
        if amount < 0:
            raise ValueError("amounts must not be negative")
        return str(amount)

    def process_result_value(self, value: Optional[str], dialect) -> Optional[int]:
        if value is None:
            return None
        return int(value)
