"""Database models for raffle deployments, their entries and notifications."""

from __future__ import annotations

import enum
from datetime import datetime, timezone
from typing import Optional

from sqlalchemy import (
    BigInteger,
    CheckConstraint,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    JSON,
    String,
    UniqueConstraint,
    func,
    select,
)
from sqlalchemy.orm import Mapped, Session, mapped_column, relationship

from .base import Base
from .types import ID_TYPE, WeiAmount


class RaffleState(str, enum.Enum):
    """Lifecycle state of a raffle round."""

    OPEN = "open"
    CALCULATING = "calculating"


class RaffleRound(Base):
    """A raffle deployment and the state of its current round.

    The row is created once per deployment and reset in place after every
    payout; it is never deleted by the state machine.
    """

    __tablename__ = "raffle_rounds"

    id: Mapped[int] = mapped_column(ID_TYPE, primary_key=True, autoincrement=True)
    """Primary key."""

    address: Mapped[str] = mapped_column(String(255), nullable=False, unique=True)
    """Identifier of the deployment, analogous to a contract address."""

    network: Mapped[str] = mapped_column(String(50), nullable=False)
    """Network name the deployment was configured for."""

    randomness_provider_address: Mapped[str] = mapped_column(
        String(255), nullable=False
    )
    """The only caller allowed to deliver random words."""

    entrance_fee: Mapped[int] = mapped_column(WeiAmount, nullable=False)
    """Minimum payment to enter, in the smallest currency unit."""

    gas_lane: Mapped[str] = mapped_column(String(66), nullable=False)
    """Key hash selecting the randomness provider's fee tier."""

    subscription_id: Mapped[int] = mapped_column(BigInteger, nullable=False)
    """Randomness subscription funding the requests."""

    callback_gas_limit: Mapped[int] = mapped_column(Integer, nullable=False)
    """Gas budget granted to the fulfillment callback."""

    interval: Mapped[int] = mapped_column("interval_seconds", Integer, nullable=False)
    """Seconds that must elapse after ``last_timestamp`` before closing."""

    state: Mapped[str] = mapped_column(
        String(20), nullable=False, default=RaffleState.OPEN.value
    )
    """Either ``"open"`` or ``"calculating"``."""

    last_timestamp: Mapped[int] = mapped_column(BigInteger, nullable=False)
    """Unix seconds of the last round start or reset."""

    recent_winner: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    """Address of the most recent winner."""

    pending_request_id: Mapped[Optional[int]] = mapped_column(
        BigInteger, nullable=True
    )
    """Randomness request awaiting fulfillment, if any."""

    balance: Mapped[int] = mapped_column(WeiAmount, nullable=False, default=0)
    """Value currently held by the deployment."""

    round_number: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    """Number of completed rounds; entries of the current round carry this value."""

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
    )

    entries: Mapped[list["RaffleEntry"]] = relationship(
        back_populates="raffle",
        cascade="all, delete-orphan",
        order_by=lambda: [RaffleEntry.round_number, RaffleEntry.position],
    )
    """Entries of every round, including completed ones."""

    event_logs: Mapped[list["RaffleEventLog"]] = relationship(
        back_populates="raffle",
        cascade="all, delete-orphan",
        order_by="RaffleEventLog.id",
    )

    __table_args__ = (
        CheckConstraint("state IN ('open','calculating')", name="state_enum"),
        CheckConstraint("interval_seconds >= 0", name="interval_non_negative"),
    )

    def __init__(
        self,
        *,
        address: str,
        network: str,
        randomness_provider_address: str,
        entrance_fee: int,
        gas_lane: str,
        subscription_id: int,
        callback_gas_limit: int,
        interval: int,
        last_timestamp: int,
        created_at: Optional[datetime] = None,
    ) -> None:
        self.address = address
        self.network = network
        self.randomness_provider_address = randomness_provider_address
        self.entrance_fee = entrance_fee
        self.gas_lane = gas_lane
        self.subscription_id = subscription_id
        self.callback_gas_limit = callback_gas_limit
        self.interval = interval
        self.last_timestamp = last_timestamp
        self.state = RaffleState.OPEN.value
        self.recent_winner = None
        self.pending_request_id = None
        self.balance = 0
        self.round_number = 0
        if created_at is not None:
            self.created_at = created_at

    def __repr__(self) -> str:  # pragma: no cover - repr is trivial
        return (
            f"<RaffleRound(id={self.id}, address={self.address}, state={self.state}, "
            f"round_number={self.round_number}, balance={self.balance})>"
        )

    @property
    def raffle_state(self) -> RaffleState:
        return RaffleState(self.state)

    def current_entries(self, session: Session) -> list["RaffleEntry"]:
        """Return the entries of the current round ordered by position."""

        stmt = (
            select(RaffleEntry)
            .where(
                RaffleEntry.raffle_id == self.id,
                RaffleEntry.round_number == self.round_number,
            )
            .order_by(RaffleEntry.position.asc())
        )
        return list(session.scalars(stmt).all())

    def player_count(self, session: Session) -> int:
        """Return the number of players in the current round."""

        stmt = select(func.count(RaffleEntry.id)).where(
            RaffleEntry.raffle_id == self.id,
            RaffleEntry.round_number == self.round_number,
        )
        return int(session.scalar(stmt) or 0)

    def entry_at(self, session: Session, position: int) -> Optional["RaffleEntry"]:
        """Return the current-round entry stored at ``position``, if any."""

        return session.scalar(
            select(RaffleEntry).where(
                RaffleEntry.raffle_id == self.id,
                RaffleEntry.round_number == self.round_number,
                RaffleEntry.position == position,
            )
        )

    @classmethod
    def get_by_address(cls, session: Session, address: str) -> Optional["RaffleRound"]:
        """Return the deployment identified by ``address`` if it exists."""

        return session.scalar(select(cls).where(cls.address == address))

    @classmethod
    def get_for_update(cls, session: Session, raffle_id: int) -> Optional["RaffleRound"]:
        """Load a deployment and lock its row until the transaction ends.

        Databases without row locks (SQLite) ignore ``FOR UPDATE`` and rely on
        their own write serialization instead.
        """

        return session.scalar(
            select(cls)
            .where(cls.id == raffle_id)
            .with_for_update()
            .execution_options(populate_existing=True)
        )


class RaffleEntry(Base):
    """One paid entry of a player into a round."""

    __tablename__ = "raffle_entries"

    id: Mapped[int] = mapped_column(ID_TYPE, primary_key=True, autoincrement=True)
    raffle_id: Mapped[int] = mapped_column(
        ID_TYPE,
        ForeignKey("raffle_rounds.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    round_number: Mapped[int] = mapped_column(Integer, nullable=False)
    position: Mapped[int] = mapped_column(Integer, nullable=False)
    """Zero-based index of the player within its round."""

    player_address: Mapped[str] = mapped_column(String(255), nullable=False)
    amount: Mapped[int] = mapped_column(WeiAmount, nullable=False)
    entered_at: Mapped[int] = mapped_column(BigInteger, nullable=False)
    """Unix seconds at which the entry was accepted."""

    raffle: Mapped["RaffleRound"] = relationship(back_populates="entries")

    __table_args__ = (
        UniqueConstraint(
            "raffle_id",
            "round_number",
            "position",
            name="uq_raffle_entry_position",
        ),
        Index("ix_raffle_entries_player", "player_address"),
    )

    def __init__(
        self,
        *,
        raffle_id: int,
        round_number: int,
        position: int,
        player_address: str,
        amount: int,
        entered_at: int,
    ) -> None:
        self.raffle_id = raffle_id
        self.round_number = round_number
        self.position = position
        self.player_address = player_address
        self.amount = amount
        self.entered_at = entered_at

    def __repr__(self) -> str:  # pragma: no cover - repr is trivial
        return (
            f"<RaffleEntry(raffle_id={self.raffle_id}, round={self.round_number}, "
            f"position={self.position}, player={self.player_address})>"
        )


class RaffleEventLog(Base):
    """Append-only log of notifications emitted by a raffle."""

    __tablename__ = "raffle_event_logs"

    id: Mapped[int] = mapped_column(ID_TYPE, primary_key=True, autoincrement=True)
    raffle_id: Mapped[int] = mapped_column(
        ID_TYPE,
        ForeignKey("raffle_rounds.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    name: Mapped[str] = mapped_column(String(64), nullable=False)
    payload: Mapped[dict] = mapped_column(JSON, nullable=False)
    round_number: Mapped[int] = mapped_column(Integer, nullable=False)
    emitted_at: Mapped[int] = mapped_column(BigInteger, nullable=False)

    raffle: Mapped["RaffleRound"] = relationship(back_populates="event_logs")

    __table_args__ = (
        CheckConstraint(
            "name IN ('EnteredRound','ClosureRequested','WinnerSelected')",
            name="name_enum",
        ),
        Index("ix_raffle_event_logs_raffle_name", "raffle_id", "name"),
    )


__all__ = [
    "RaffleState",
    "RaffleRound",
    "RaffleEntry",
    "RaffleEventLog",
]
