from __future__ import annotations

import argparse
import logging

from vrfraffle.blockchain.api import RandomnessClient
from vrfraffle.blockchain.randomness import MockRandomnessCoordinator
from vrfraffle.config import VRF_SUBSCRIPTION_FUND_AMOUNT, Settings, is_development_chain
from vrfraffle.db.engine import get_sessionmaker, make_engine
from vrfraffle.models import RaffleRound
from vrfraffle.raffle import UpkeepKeeper
from vrfraffle.workflows import deliver_mock_randomness

log = logging.getLogger("keeper")


def setup_logging(verbose: bool) -> None:
    level = logging.DEBUG if verbose else logging.INFO
    logging.basicConfig(level=level, format="%(levelname)s: %(message)s")


def _local_coordinator(raffle: RaffleRound) -> MockRandomnessCoordinator:
    """Rebuild mock coordinator state for a raffle deployed on a dev chain."""
    mock = MockRandomnessCoordinator(address=raffle.randomness_provider_address)
    mock.ensure_subscription(raffle.subscription_id, owner=raffle.address)
    mock.fund_subscription(raffle.subscription_id, VRF_SUBSCRIPTION_FUND_AMOUNT)
    mock.add_consumer(raffle.subscription_id, raffle.address)
    return mock


def build_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(
        prog="raffle-keeper",
        description="Poll a raffle and close its round once it is eligible.",
    )
    p.add_argument("--verbose", action="store_true", help="Enable debug logging.")
    p.add_argument("--address", required=True, help="Address of the raffle deployment.")
    p.add_argument("--db-url", default=None, help="Override DB_URL.")
    p.add_argument(
        "--poll-seconds",
        type=float,
        default=None,
        help="Seconds between checks (else KEEPER_POLL_SECONDS).",
    )
    p.add_argument(
        "--cycles", type=int, default=None, help="Stop after this many checks."
    )
    return p


def main() -> int:
    args = build_parser().parse_args()
    setup_logging(args.verbose)
    settings = Settings.from_env()
    poll_seconds = args.poll_seconds or settings.keeper_poll_seconds

    engine = make_engine(args.db_url)
    Session = get_sessionmaker(engine)
    with Session() as session:
        raffle = RaffleRound.get_by_address(session, args.address)
        if raffle is None:
            raise SystemExit(f"No raffle deployed at {args.address}")
        raffle_id = raffle.id
        local = is_development_chain(raffle.network)
        provider = (
            _local_coordinator(raffle)
            if local
            else RandomnessClient(
                address=raffle.randomness_provider_address,
                base_fqdn=settings.randomness_service_fqdn,
            )
        )

    keeper = UpkeepKeeper(Session, raffle_id, randomness_provider=provider)
    closed = []

    def on_closed(request_id: int) -> None:
        closed.append(request_id)
        if local:
            result = deliver_mock_randomness(Session, raffle_id, provider, request_id)
            if result is not None:
                log.info(f"Winner: {result.winner}")

    try:
        keeper.run_forever(poll_seconds, max_cycles=args.cycles, on_closed=on_closed)
    except KeyboardInterrupt:
        log.info("Keeper stopped")
    finally:
        if isinstance(provider, RandomnessClient):
            provider.close()
        engine.dispose()

    print(f"Rounds closed: {len(closed)}")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
