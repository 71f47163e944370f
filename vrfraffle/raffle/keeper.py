"""Automation loop that closes raffle rounds when they become eligible."""

from __future__ import annotations

import logging
import time
from typing import Callable, Optional

from sqlalchemy.orm import Session, sessionmaker

from ..models import RaffleRound
from .engine import RaffleEngine
from .errors import UpkeepNotNeeded

logger = logging.getLogger(__name__)


class UpkeepKeeper:
    """Poll a raffle's eligibility predicate and trigger closure when true.

    Each cycle runs in its own transaction with the raffle row locked, so two
    keepers racing on the same raffle close it at most once.
    """

    def __init__(
        self,
        session_factory: sessionmaker[Session],
        raffle_id: int,
        *,
        randomness_provider,
        clock: Optional[Callable[[], int]] = None,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        self._session_factory = session_factory
        self._raffle_id = raffle_id
        self._randomness_provider = randomness_provider
        self._clock = clock
        self._sleep = sleep

    def run_once(self) -> Optional[int]:
        """Run one check/perform cycle.

        Returns
        -------
        Optional[int]
            Request id when the round was closed, otherwise ``None``.
        """

        with self._session_factory.begin() as session:
            raffle = RaffleRound.get_for_update(session, self._raffle_id)
            if raffle is None:
                raise ValueError(f"Raffle {self._raffle_id} does not exist")

            engine = RaffleEngine(
                session,
                raffle,
                randomness_provider=self._randomness_provider,
                clock=self._clock,
            )
            upkeep_needed, perform_data = engine.check_upkeep(b"")
            if not upkeep_needed:
                logger.debug(f"Upkeep not needed for raffle {raffle.address}: {engine.upkeep_status()}")
                return None

            try:
                request_id = engine.perform_upkeep(perform_data)
            except UpkeepNotNeeded as exc:
                # Lost the race to another trigger between check and perform.
                logger.info(f"Closure of raffle {raffle.address} refused: {exc}")
                return None

            logger.info(f"Closed raffle {raffle.address}, randomness request {request_id}")
            return request_id

    def run_forever(
        self,
        poll_seconds: float,
        max_cycles: Optional[int] = None,
        on_closed: Optional[Callable[[int], None]] = None,
    ) -> int:
        """Poll every ``poll_seconds`` until ``max_cycles`` cycles have run.

        ``on_closed`` is called with the request id after each closure, once
        the closing transaction has committed. Returns the number of rounds
        closed.
        """

        if poll_seconds <= 0:
            raise ValueError("poll_seconds must be positive")

        closed = 0
        cycles = 0
        while max_cycles is None or cycles < max_cycles:
            request_id = self.run_once()
            if request_id is not None:
                closed += 1
                if on_closed is not None:
                    on_closed(request_id)
            cycles += 1
            if max_cycles is None or cycles < max_cycles:
                self._sleep(poll_seconds)
        return closed


__all__ = ["UpkeepKeeper"]
