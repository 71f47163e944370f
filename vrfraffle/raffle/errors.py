"""Failures raised by the raffle state machine.

Every :class:`RaffleError` aborts the operation that raised it without any
observable change to the raffle.
"""

from __future__ import annotations

from typing import Optional


class RaffleError(RuntimeError):
    """Base class for rejected raffle operations."""


class NotEnoughPayment(RaffleError):
    """Entry payment is below the entrance fee."""

    def __init__(self, amount: int, entrance_fee: int) -> None:
        super().__init__(
            f"Payment of {amount} is below the entrance fee of {entrance_fee}"
        )
        self.amount = amount
        self.entrance_fee = entrance_fee


class NotOpen(RaffleError):
    """Entry attempted while the raffle is calculating a winner."""

    def __init__(self, state: str) -> None:
        super().__init__(f"Raffle is not open (state={state})")
        self.state = state


class UpkeepNotNeeded(RaffleError):
    """Closure triggered while the eligibility predicate is false.

    Attributes
    ----------
    balance : int
        Value held by the raffle when the closure was refused.
    player_count : int
        Number of players in the current round.
    state : str
        Raffle state at the time of the refusal.
    """

    def __init__(self, balance: int, player_count: int, state: str) -> None:
        super().__init__(
            f"Upkeep not needed (balance={balance}, players={player_count}, state={state})"
        )
        self.balance = balance
        self.player_count = player_count
        self.state = state


class TransferFailed(RaffleError):
    """The payout to the winner did not succeed."""

    def __init__(self, recipient: str, amount: int) -> None:
        super().__init__(f"Transfer of {amount} to {recipient} failed")
        self.recipient = recipient
        self.amount = amount


class IndexOutOfRange(RaffleError, IndexError):
    """Player lookup with an index outside the current round."""

    def __init__(self, index: int, player_count: int) -> None:
        super().__init__(
            f"Player index {index} out of range for {player_count} players"
        )
        self.index = index
        self.player_count = player_count


class UnauthorizedCaller(RaffleError):
    """Random words delivered by anyone other than the registered provider."""

    def __init__(self, caller: str, expected: str) -> None:
        super().__init__(
            f"Only the randomness provider {expected} may fulfill, got {caller}"
        )
        self.caller = caller
        self.expected = expected


class UnexpectedFulfillment(RaffleError):
    """Random words delivered for a request the raffle is not waiting on.

    Raised for redelivered or stale callbacks: the raffle is open, or the
    request id differs from the pending one.
    """

    def __init__(
        self, request_id: int, pending_request_id: Optional[int], state: str
    ) -> None:
        super().__init__(
            f"Unexpected fulfillment of request {request_id} "
            f"(pending={pending_request_id}, state={state})"
        )
        self.request_id = request_id
        self.pending_request_id = pending_request_id
        self.state = state


class RaffleInvariantError(AssertionError):
    """Internal invariant breach; the raffle data is inconsistent."""


__all__ = [
    "RaffleError",
    "NotEnoughPayment",
    "NotOpen",
    "UpkeepNotNeeded",
    "TransferFailed",
    "IndexOutOfRange",
    "UnauthorizedCaller",
    "UnexpectedFulfillment",
    "RaffleInvariantError",
]
