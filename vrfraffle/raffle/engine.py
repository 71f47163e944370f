"""State machine driving a single raffle deployment."""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from typing import TYPE_CHECKING, Callable, Iterable, Optional, Sequence, Tuple

from sqlalchemy.orm import Session

from ..models import RaffleEntry, RaffleEventLog, RaffleRound, RaffleState
from .errors import (
    IndexOutOfRange,
    NotEnoughPayment,
    NotOpen,
    RaffleInvariantError,
    TransferFailed,
    UnauthorizedCaller,
    UnexpectedFulfillment,
    UpkeepNotNeeded,
)
from .events import (
    ClosureRequested,
    EnteredRound,
    NotificationListener,
    RaffleNotification,
    WinnerSelected,
    notification_payload,
)
from .payout import LedgerPayout, Payout

if TYPE_CHECKING:
    from ..blockchain.randomness import RandomnessProvider

logger = logging.getLogger(__name__)

REQUEST_CONFIRMATIONS = 3
NUM_WORDS = 1


def _unix_now() -> int:
    return int(time.time())


@dataclass(frozen=True)
class UpkeepStatus:
    """Breakdown of the closure eligibility predicate.

    Attributes
    ----------
    is_open : bool
        The raffle accepts entries.
    time_passed : bool
        Strictly more than ``interval`` seconds elapsed since ``last_timestamp``.
    has_players : bool
        The current round has at least one player.
    has_balance : bool
        The raffle holds a positive balance.
    """

    is_open: bool
    time_passed: bool
    has_players: bool
    has_balance: bool

    @property
    def upkeep_needed(self) -> bool:
        return self.is_open and self.time_passed and self.has_players and self.has_balance


class RaffleEngine:
    """Enter, close and settle rounds of a persisted :class:`RaffleRound`.

    Every mutating method either completes or raises before touching the
    raffle, so a failed call leaves nothing behind for the surrounding
    transaction to commit.
    """

    def __init__(
        self,
        session: Session,
        raffle: RaffleRound,
        *,
        randomness_provider: Optional["RandomnessProvider"] = None,
        payout: Optional[Payout] = None,
        clock: Optional[Callable[[], int]] = None,
        listeners: Optional[Iterable[NotificationListener]] = None,
    ) -> None:
        """Bind the engine to a raffle.

        Parameters
        ----------
        session : Session
            Active SQLAlchemy session that owns ``raffle``.
        raffle : RaffleRound
            Persisted raffle deployment to operate on.
        randomness_provider : Optional[RandomnessProvider], default: None
            Provider used by :meth:`perform_upkeep`. Only required for closing
            rounds.
        payout : Optional[Payout], default: None
            Callable used to pay the winner. Defaults to :class:`LedgerPayout`
            bound to ``session``.
        clock : Optional[Callable[[], int]], default: None
            Returns the current Unix time in seconds.
        listeners : Optional[Iterable[NotificationListener]], default: None
            Callables invoked with every emitted notification.
        """

        if raffle.id is None:
            raise ValueError("Raffle must be persisted before it can be operated")

        self._session = session
        self._raffle = raffle
        self._randomness_provider = randomness_provider
        self._payout: Payout = payout or LedgerPayout(session)
        self._clock = clock or _unix_now
        self._listeners = list(listeners or [])

    @property
    def raffle(self) -> RaffleRound:
        return self._raffle

    # -------- read-only accessors --------
    @property
    def entrance_fee(self) -> int:
        return self._raffle.entrance_fee

    @property
    def state(self) -> RaffleState:
        return self._raffle.raffle_state

    @property
    def recent_winner(self) -> Optional[str]:
        return self._raffle.recent_winner

    @property
    def last_timestamp(self) -> int:
        return self._raffle.last_timestamp

    @property
    def interval(self) -> int:
        return self._raffle.interval

    @property
    def balance(self) -> int:
        return self._raffle.balance

    @property
    def num_words(self) -> int:
        return NUM_WORDS

    @property
    def request_confirmations(self) -> int:
        return REQUEST_CONFIRMATIONS

    @property
    def number_of_players(self) -> int:
        return self._raffle.player_count(self._session)

    @property
    def players(self) -> list[str]:
        return [entry.player_address for entry in self._raffle.current_entries(self._session)]

    def get_player(self, index: int) -> str:
        """Return the address of the player at ``index`` in the current round."""
        if index < 0:
            raise IndexOutOfRange(index, self.number_of_players)
        entry = self._raffle.entry_at(self._session, index)
        if entry is None:
            raise IndexOutOfRange(index, self.number_of_players)
        return entry.player_address

    # -------- state transitions --------
    def enter_raffle(self, player: str, amount: int) -> EnteredRound:
        """Append ``player`` to the current round, keeping ``amount`` in the pot.

        Raises
        ------
        NotEnoughPayment
            If ``amount`` is below the entrance fee. Checked first.
        NotOpen
            If the raffle is calculating a winner.
        """

        if not player:
            raise ValueError("player address must not be empty")
        if amount < 0:
            raise ValueError("amount must not be negative")

        raffle = self._raffle
        if amount < raffle.entrance_fee:
            logger.debug(f"Rejected entry from {player}: {amount} < {raffle.entrance_fee}")
            raise NotEnoughPayment(amount, raffle.entrance_fee)
        if raffle.state != RaffleState.OPEN.value:
            logger.debug(f"Rejected entry from {player}: raffle is {raffle.state}")
            raise NotOpen(raffle.state)

        now = self._clock()
        entry = RaffleEntry(
            raffle_id=raffle.id,
            round_number=raffle.round_number,
            position=raffle.player_count(self._session),
            player_address=player,
            amount=amount,
            entered_at=now,
        )
        self._session.add(entry)
        raffle.balance = raffle.balance + amount

        notification = EnteredRound(entrant=player)
        self._emit(notification, now)
        self._session.flush()
        return notification

    def upkeep_status(self) -> UpkeepStatus:
        """Evaluate each closure condition separately."""
        raffle = self._raffle
        return UpkeepStatus(
            is_open=raffle.state == RaffleState.OPEN.value,
            time_passed=(self._clock() - raffle.last_timestamp) > raffle.interval,
            has_players=self.number_of_players > 0,
            has_balance=raffle.balance > 0,
        )

    def check_upkeep(self, check_data: bytes = b"") -> Tuple[bool, bytes]:
        """Return whether the round may close, plus the (empty) perform data.

        ``check_data`` is accepted for interface compatibility and ignored.
        """
        return self.upkeep_status().upkeep_needed, b""

    def perform_upkeep(self, perform_data: bytes = b"") -> int:
        """Close the round and request randomness for it.

        Returns
        -------
        int
            Request identifier returned by the randomness provider.

        Raises
        ------
        UpkeepNotNeeded
            If :meth:`check_upkeep` is false, including when a request is
            already outstanding.
        """

        raffle = self._raffle
        upkeep_needed, _ = self.check_upkeep(b"")
        if not upkeep_needed:
            raise UpkeepNotNeeded(
                raffle.balance, self.number_of_players, raffle.state
            )

        provider = self._randomness_provider
        if provider is None:
            raise RuntimeError("A randomness provider is required to close a round")

        # Close the gate before talking to the provider.
        raffle.state = RaffleState.CALCULATING.value
        try:
            request_id = provider.request_random_words(
                raffle.gas_lane,
                raffle.subscription_id,
                REQUEST_CONFIRMATIONS,
                raffle.callback_gas_limit,
                NUM_WORDS,
                consumer=raffle.address,
            )
        except Exception:
            raffle.state = RaffleState.OPEN.value
            raise
        raffle.pending_request_id = request_id

        notification = ClosureRequested(request_id=request_id)
        self._emit(notification, self._clock())
        self._session.flush()
        return request_id

    def fulfill_random_words(
        self,
        request_id: int,
        random_words: Sequence[int],
        *,
        caller: str,
    ) -> WinnerSelected:
        """Pick the winner from ``random_words`` and pay out the whole balance.

        The payout happens before the round is reset; if it fails the raffle
        stays exactly as it was (calculating, same players and balance).

        Raises
        ------
        UnauthorizedCaller
            If ``caller`` is not the registered randomness provider.
        UnexpectedFulfillment
            If the raffle is not calculating or ``request_id`` is not the
            pending request.
        TransferFailed
            If the winner could not be paid, including when the payout raises.
        RaffleInvariantError
            If the current round has no players.
        """

        raffle = self._raffle
        if caller != raffle.randomness_provider_address:
            logger.warning(f"Rejected fulfillment from unauthorized caller {caller}")
            raise UnauthorizedCaller(caller, raffle.randomness_provider_address)

        if (
            raffle.state != RaffleState.CALCULATING.value
            or request_id != raffle.pending_request_id
        ):
            logger.warning(
                f"Rejected fulfillment of request {request_id} "
                f"(pending={raffle.pending_request_id}, state={raffle.state})"
            )
            raise UnexpectedFulfillment(request_id, raffle.pending_request_id, raffle.state)

        words = list(random_words)
        if not words:
            raise ValueError("random_words must contain at least one value")
        if any(word < 0 for word in words):
            raise ValueError("random words must be non-negative integers")

        entries = raffle.current_entries(self._session)
        if not entries:
            raise RaffleInvariantError(
                f"Raffle {raffle.address} received random words with no players"
            )

        winner = entries[words[0] % len(entries)].player_address
        prize = raffle.balance
        try:
            paid = self._payout(winner, prize)
        except Exception as exc:
            logger.error(f"Payout of {prize} to {winner} raised: {exc}")
            raise TransferFailed(winner, prize) from exc
        if not paid:
            logger.error(f"Payout of {prize} to {winner} failed; round left calculating")
            raise TransferFailed(winner, prize)

        now = self._clock()
        completed_round = raffle.round_number
        raffle.recent_winner = winner
        raffle.state = RaffleState.OPEN.value
        raffle.round_number = raffle.round_number + 1
        raffle.last_timestamp = now
        raffle.balance = 0
        raffle.pending_request_id = None

        notification = WinnerSelected(winner=winner)
        self._emit(notification, now, round_number=completed_round)
        self._session.flush()
        logger.info(f"Raffle {raffle.address} paid {prize} to {winner}")
        return notification

    def _emit(
        self,
        notification: RaffleNotification,
        emitted_at: int,
        *,
        round_number: Optional[int] = None,
    ) -> None:
        """Record ``notification`` in the event log and notify listeners."""
        self._session.add(
            RaffleEventLog(
                raffle_id=self._raffle.id,
                name=notification.name,
                payload=notification_payload(notification),
                round_number=(
                    self._raffle.round_number if round_number is None else round_number
                ),
                emitted_at=emitted_at,
            )
        )
        logger.info(f"{notification.name} {notification_payload(notification)}")
        for listener in self._listeners:
            listener(notification)


__all__ = [
    "NUM_WORDS",
    "REQUEST_CONFIRMATIONS",
    "RaffleEngine",
    "UpkeepStatus",
]
