"""Raffle state machine, its notifications and the upkeep keeper."""

from .engine import NUM_WORDS, REQUEST_CONFIRMATIONS, RaffleEngine, UpkeepStatus
from .errors import (
    IndexOutOfRange,
    NotEnoughPayment,
    NotOpen,
    RaffleError,
    RaffleInvariantError,
    TransferFailed,
    UnauthorizedCaller,
    UnexpectedFulfillment,
    UpkeepNotNeeded,
)
from .events import ClosureRequested, EnteredRound, WinnerSelected
from .keeper import UpkeepKeeper
from .payout import LedgerPayout

__all__ = [
    "ClosureRequested",
    "EnteredRound",
    "IndexOutOfRange",
    "LedgerPayout",
    "NUM_WORDS",
    "NotEnoughPayment",
    "NotOpen",
    "REQUEST_CONFIRMATIONS",
    "RaffleEngine",
    "RaffleError",
    "RaffleInvariantError",
    "TransferFailed",
    "UnauthorizedCaller",
    "UnexpectedFulfillment",
    "UpkeepKeeper",
    "UpkeepNotNeeded",
    "UpkeepStatus",
    "WinnerSelected",
]
