"""Notifications emitted by the raffle state machine."""

from __future__ import annotations

from dataclasses import asdict, dataclass
from typing import Any, Callable, Dict, Union


@dataclass(frozen=True)
class EnteredRound:
    """A player entered the current round."""

    entrant: str

    name = "EnteredRound"


@dataclass(frozen=True)
class ClosureRequested:
    """The round closed and randomness was requested."""

    request_id: int

    name = "ClosureRequested"


@dataclass(frozen=True)
class WinnerSelected:
    """Random words arrived and the winner was paid."""

    winner: str

    name = "WinnerSelected"


RaffleNotification = Union[EnteredRound, ClosureRequested, WinnerSelected]
NotificationListener = Callable[[RaffleNotification], None]


def notification_payload(notification: RaffleNotification) -> Dict[str, Any]:
    """Return the JSON-serializable payload of ``notification``."""
    return asdict(notification)


__all__ = [
    "ClosureRequested",
    "EnteredRound",
    "NotificationListener",
    "RaffleNotification",
    "WinnerSelected",
    "notification_payload",
]
