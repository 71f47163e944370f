from .base import Base

# import models so Alembic/autoloaders can discover mappers
from .account import Account  # noqa: F401
from .raffle import (  # noqa: F401
    RaffleEntry,
    RaffleEventLog,
    RaffleRound,
    RaffleState,
)

__all__ = [
    "Base",
    "Account",
    "RaffleEntry",
    "RaffleEventLog",
    "RaffleRound",
    "RaffleState",
]
