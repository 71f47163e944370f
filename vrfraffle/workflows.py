from __future__ import annotations

import logging
import time
from typing import TYPE_CHECKING, Callable, Iterable, Optional, Sequence, Tuple

from sqlalchemy.orm import Session, sessionmaker

from .config import (
    NetworkConfig,
    VRF_SUBSCRIPTION_FUND_AMOUNT,
    get_network_config,
    is_development_chain,
)
from .models import RaffleRound
from .blockchain.randomness import MockRandomnessCoordinator
from .raffle.engine import RaffleEngine
from .raffle.errors import RaffleError, RaffleInvariantError
from .raffle.events import EnteredRound, NotificationListener, WinnerSelected
from .raffle.payout import Payout

if TYPE_CHECKING:
    from .blockchain.randomness import RandomnessProvider

logger = logging.getLogger(__name__)


def deploy_raffle(
    session: Session,
    *,
    address: str,
    network_config: NetworkConfig,
    randomness_provider_address: Optional[str] = None,
    subscription_id: Optional[int] = None,
    clock: Optional[Callable[[], int]] = None,
) -> RaffleRound:
    """Persist a new raffle deployment configured from ``network_config``.

    Parameters
    ----------
    session : Session
        Active SQLAlchemy session.
    address : str
        Unique identifier of the new deployment.
    network_config : NetworkConfig
        Preset supplying the entrance fee, gas lane, callback gas limit and
        interval.
    randomness_provider_address : Optional[str]
        Coordinator allowed to fulfill. Defaults to the preset's coordinator.
    subscription_id : Optional[int]
        Randomness subscription. Defaults to the preset's subscription.
    clock : Optional[Callable[[], int]]
        Source of the initial ``last_timestamp`` in Unix seconds.

    Returns
    -------
    RaffleRound
        The persisted deployment, open and empty.

    Raises
    ------
    ValueError
        If the address is taken or the coordinator/subscription cannot be
        resolved.
    """

    if RaffleRound.get_by_address(session, address) is not None:
        raise ValueError(f"A raffle is already deployed at {address}")

    coordinator = randomness_provider_address or network_config.vrf_coordinator
    if not coordinator:
        raise ValueError(
            f"Network '{network_config.name}' has no randomness coordinator; pass one explicitly"
        )
    resolved_subscription = (
        subscription_id if subscription_id is not None else network_config.subscription_id
    )
    if resolved_subscription is None:
        raise ValueError(
            f"Network '{network_config.name}' has no subscription id; pass one explicitly"
        )

    now = (clock or (lambda: int(time.time())))()
    raffle = RaffleRound(
        address=address,
        network=network_config.name,
        randomness_provider_address=coordinator,
        entrance_fee=network_config.entrance_fee,
        gas_lane=network_config.gas_lane,
        subscription_id=resolved_subscription,
        callback_gas_limit=network_config.callback_gas_limit,
        interval=network_config.interval,
        last_timestamp=now,
    )
    session.add(raffle)
    session.flush()

    logger.info(
        f"Deployed raffle {address} on {network_config.name} "
        f"(fee={network_config.entrance_fee}, interval={network_config.interval}s)"
    )
    return raffle


def deploy_raffle_for_network(
    session: Session,
    network: str,
    *,
    address: str,
    coordinator: Optional[MockRandomnessCoordinator] = None,
    clock: Optional[Callable[[], int]] = None,
) -> Tuple[RaffleRound, Optional[MockRandomnessCoordinator]]:
    """Deploy a raffle on ``network``, bringing up mocks on development chains.

    On a development chain a :class:`MockRandomnessCoordinator` is created
    (unless supplied), a subscription is created and funded, and the raffle
    is registered as its consumer. Live networks use their preset coordinator
    and subscription, and ``None`` is returned in place of the mock.
    """

    network_config = get_network_config(network)

    if not is_development_chain(network.strip().lower()):
        raffle = deploy_raffle(
            session, address=address, network_config=network_config, clock=clock
        )
        return raffle, None

    logger.info("Local network detected, deploying mocks")
    mock = coordinator or MockRandomnessCoordinator()
    subscription_id = mock.create_subscription(owner=address)
    mock.fund_subscription(subscription_id, VRF_SUBSCRIPTION_FUND_AMOUNT)

    raffle = deploy_raffle(
        session,
        address=address,
        network_config=network_config,
        randomness_provider_address=mock.address,
        subscription_id=subscription_id,
        clock=clock,
    )
    mock.add_consumer(subscription_id, raffle.address)
    return raffle, mock


def _load_raffle(session: Session, raffle_id: int) -> RaffleRound:
    raffle = RaffleRound.get_for_update(session, raffle_id)
    if raffle is None:
        raise ValueError(f"Raffle {raffle_id} does not exist")
    return raffle


def enter_raffle(
    session: Session,
    raffle_id: int,
    player: str,
    amount: int,
    *,
    clock: Optional[Callable[[], int]] = None,
    listeners: Optional[Iterable[NotificationListener]] = None,
) -> EnteredRound:
    """Lock the raffle and enter ``player`` with ``amount``.

    This function essentially wraps :meth:`RaffleEngine.enter_raffle`.
    """

    raffle = _load_raffle(session, raffle_id)
    engine = RaffleEngine(session, raffle, clock=clock, listeners=listeners)
    return engine.enter_raffle(player, amount)


def perform_upkeep(
    session: Session,
    raffle_id: int,
    randomness_provider: "RandomnessProvider",
    *,
    clock: Optional[Callable[[], int]] = None,
    listeners: Optional[Iterable[NotificationListener]] = None,
) -> int:
    """Lock the raffle and close its round, returning the request id."""

    raffle = _load_raffle(session, raffle_id)
    engine = RaffleEngine(
        session,
        raffle,
        randomness_provider=randomness_provider,
        clock=clock,
        listeners=listeners,
    )
    return engine.perform_upkeep(b"")


def fulfill_randomness(
    session: Session,
    raffle_id: int,
    request_id: int,
    random_words: Sequence[int],
    *,
    caller: str,
    payout: Optional[Payout] = None,
    clock: Optional[Callable[[], int]] = None,
    listeners: Optional[Iterable[NotificationListener]] = None,
) -> WinnerSelected:
    """Lock the raffle and deliver ``random_words`` on behalf of ``caller``.

    Used by the endpoint that receives callbacks from a remote randomness
    service. The caller's transaction must be rolled back when this raises.
    """

    raffle = _load_raffle(session, raffle_id)
    engine = RaffleEngine(
        session, raffle, payout=payout, clock=clock, listeners=listeners
    )
    return engine.fulfill_random_words(request_id, random_words, caller=caller)


def deliver_mock_randomness(
    session_factory: sessionmaker[Session],
    raffle_id: int,
    coordinator: MockRandomnessCoordinator,
    request_id: int,
    *,
    clock: Optional[Callable[[], int]] = None,
    listeners: Optional[Iterable[NotificationListener]] = None,
) -> Optional[WinnerSelected]:
    """Have ``coordinator`` fulfill ``request_id`` in its own transaction.

    Development chains have no oracle, so the keeper delivers the words
    itself. A rejected fulfillment is logged and ``None`` returned; the
    transaction is rolled back and the round stays calculating.
    """

    try:
        with session_factory.begin() as session:
            raffle = _load_raffle(session, raffle_id)
            engine = RaffleEngine(session, raffle, clock=clock, listeners=listeners)
            return coordinator.fulfill_random_words(request_id, engine)
    except RaffleError as exc:
        logger.error(f"Fulfillment of request {request_id} for raffle {raffle_id} failed: {exc}")
        return None
    except RaffleInvariantError as exc:
        logger.critical(f"Raffle {raffle_id} is inconsistent: {exc}")
        return None
