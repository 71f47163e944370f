"""Randomness providers consumed by the raffle engine."""

from __future__ import annotations

import hashlib
import logging
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Dict, List, Optional, Protocol, Sequence, Set

if TYPE_CHECKING:
    from ..raffle.engine import RaffleEngine
    from ..raffle.events import WinnerSelected

logger = logging.getLogger(__name__)

MOCK_COORDINATOR_ADDRESS = "0x0000000000000000000000000000000000000c0d"

# 0.25 LINK base fee plus 1 gwei per callback gas unit, as VRFCoordinatorV2Mock charges.
DEFAULT_BASE_FEE = 25 * 10**16
DEFAULT_GAS_PRICE_LINK = 10**9


class RandomnessProvider(Protocol):
    """Service that accepts randomness requests and later delivers words."""

    address: str

    def request_random_words(
        self,
        key_hash: str,
        subscription_id: int,
        request_confirmations: int,
        callback_gas_limit: int,
        num_words: int,
        *,
        consumer: str,
    ) -> int:
        ...


@dataclass
class Subscription:
    """Funding account that pays for randomness requests."""

    id: int
    owner: str
    balance: int = 0
    consumers: Set[str] = field(default_factory=set)


@dataclass(frozen=True)
class RandomnessRequest:
    """A request waiting for the coordinator to deliver words."""

    request_id: int
    key_hash: str
    subscription_id: int
    request_confirmations: int
    callback_gas_limit: int
    num_words: int
    consumer: str


class MockRandomnessCoordinator:
    """In-memory coordinator for development networks and tests.

    Subscriptions must exist and list the requesting raffle as a consumer,
    request ids increase from 1, and nothing is delivered until
    :meth:`fulfill_random_words` is called explicitly. A delivered request is
    consumed even when the consumer rejects it.
    """

    MAX_REQUEST_CONFIRMATIONS = 200
    MAX_NUM_WORDS = 500

    def __init__(
        self,
        address: str = MOCK_COORDINATOR_ADDRESS,
        *,
        base_fee: int = DEFAULT_BASE_FEE,
        gas_price_link: int = DEFAULT_GAS_PRICE_LINK,
    ) -> None:
        self.address = address
        self.base_fee = base_fee
        self.gas_price_link = gas_price_link
        self._subscriptions: Dict[int, Subscription] = {}
        self._requests: Dict[int, RandomnessRequest] = {}
        self._next_subscription_id = 1
        self._next_request_id = 1
        self.fulfilled: List[int] = []

    # -------- subscriptions --------
    def create_subscription(self, owner: str = "") -> int:
        subscription_id = self._next_subscription_id
        self._next_subscription_id += 1
        self._subscriptions[subscription_id] = Subscription(id=subscription_id, owner=owner)
        logger.debug(f"Created subscription {subscription_id}")
        return subscription_id

    def ensure_subscription(self, subscription_id: int, owner: str = "") -> Subscription:
        """Return subscription ``subscription_id``, creating it if missing.

        Used to rebuild coordinator state for raffles deployed by an earlier
        process, since the mock keeps nothing on disk.
        """
        subscription = self._subscriptions.get(subscription_id)
        if subscription is None:
            subscription = Subscription(id=subscription_id, owner=owner)
            self._subscriptions[subscription_id] = subscription
            self._next_subscription_id = max(self._next_subscription_id, subscription_id + 1)
        return subscription

    def fund_subscription(self, subscription_id: int, amount: int) -> None:
        if amount <= 0:
            raise ValueError("funding amount must be positive")
        self.get_subscription(subscription_id).balance += amount

    def add_consumer(self, subscription_id: int, consumer: str) -> None:
        self.get_subscription(subscription_id).consumers.add(consumer)

    def remove_consumer(self, subscription_id: int, consumer: str) -> None:
        subscription = self.get_subscription(subscription_id)
        if consumer not in subscription.consumers:
            raise ValueError(f"{consumer} is not a consumer of subscription {subscription_id}")
        subscription.consumers.remove(consumer)

    def get_subscription(self, subscription_id: int) -> Subscription:
        try:
            return self._subscriptions[subscription_id]
        except KeyError as exc:
            raise ValueError(f"Invalid subscription {subscription_id}") from exc

    # -------- requests --------
    @property
    def last_request_id(self) -> Optional[int]:
        if self._next_request_id == 1:
            return None
        return self._next_request_id - 1

    def pending_request(self, request_id: int) -> Optional[RandomnessRequest]:
        return self._requests.get(request_id)

    def request_random_words(
        self,
        key_hash: str,
        subscription_id: int,
        request_confirmations: int,
        callback_gas_limit: int,
        num_words: int,
        *,
        consumer: str,
    ) -> int:
        subscription = self.get_subscription(subscription_id)
        if consumer not in subscription.consumers:
            raise ValueError(f"{consumer} is not a consumer of subscription {subscription_id}")
        if not 0 < request_confirmations <= self.MAX_REQUEST_CONFIRMATIONS:
            raise ValueError(f"Invalid request confirmations {request_confirmations}")
        if not 0 < num_words <= self.MAX_NUM_WORDS:
            raise ValueError(f"Invalid number of words {num_words}")

        request_id = self._next_request_id
        self._next_request_id += 1
        self._requests[request_id] = RandomnessRequest(
            request_id=request_id,
            key_hash=key_hash,
            subscription_id=subscription_id,
            request_confirmations=request_confirmations,
            callback_gas_limit=callback_gas_limit,
            num_words=num_words,
            consumer=consumer,
        )
        logger.info(f"Randomness requested: id={request_id} consumer={consumer}")
        return request_id

    def derive_random_words(self, request_id: int, num_words: int) -> List[int]:
        """Return deterministic pseudo-random words for ``request_id``."""
        return [
            int(hashlib.sha256(f"{request_id}:{i}".encode("ascii")).hexdigest(), 16)
            for i in range(num_words)
        ]

    def fulfill_random_words(
        self,
        request_id: int,
        engine: "RaffleEngine",
        random_words: Optional[Sequence[int]] = None,
    ) -> "WinnerSelected":
        """Deliver words for ``request_id`` to the raffle behind ``engine``.

        ``random_words`` overrides the derived words when given. The request
        and the subscription fee are consumed before delivery, so a consumer
        failure cannot be retried with the same request.
        """

        request = self._requests.pop(request_id, None)
        if request is None:
            raise ValueError(f"Nonexistent request {request_id}")
        if request.consumer != engine.raffle.address:
            self._requests[request_id] = request
            raise ValueError(
                f"Request {request_id} belongs to {request.consumer}, not {engine.raffle.address}"
            )

        subscription = self.get_subscription(request.subscription_id)
        payment = self.base_fee + self.gas_price_link * request.callback_gas_limit
        if subscription.balance < payment:
            self._requests[request_id] = request
            raise ValueError(
                f"Insufficient balance on subscription {subscription.id}: {subscription.balance} < {payment}"
            )
        subscription.balance -= payment

        words = (
            list(random_words)
            if random_words is not None
            else self.derive_random_words(request_id, request.num_words)
        )
        self.fulfilled.append(request_id)
        logger.info(f"Delivering {len(words)} random words for request {request_id}")
        return engine.fulfill_random_words(request_id, words, caller=self.address)


__all__ = [
    "MOCK_COORDINATOR_ADDRESS",
    "MockRandomnessCoordinator",
    "RandomnessProvider",
    "RandomnessRequest",
    "Subscription",
]
