from __future__ import annotations

import argparse
import logging
import secrets

from vrfraffle.config import Settings
from vrfraffle.db.engine import get_sessionmaker, make_engine
from vrfraffle.workflows import deploy_raffle_for_network


def setup_logging(verbose: bool) -> None:
    level = logging.DEBUG if verbose else logging.INFO
    logging.basicConfig(level=level, format="%(levelname)s: %(message)s")


def build_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(
        prog="deploy-raffle",
        description="Deploy a raffle using the preset of the selected network.",
    )
    p.add_argument("--verbose", action="store_true", help="Enable debug logging.")
    p.add_argument(
        "--network", default=None, help="Network name (else RAFFLE_NETWORK or hardhat)."
    )
    p.add_argument(
        "--address",
        default=None,
        help="Deployment address. A random one is generated when omitted.",
    )
    p.add_argument("--db-url", default=None, help="Override DB_URL.")
    return p


def main() -> int:
    args = build_parser().parse_args()
    setup_logging(args.verbose)
    settings = Settings.from_env(network_override=args.network)
    address = args.address or "0x" + secrets.token_hex(20)

    engine = make_engine(args.db_url)
    Session = get_sessionmaker(engine)
    with Session.begin() as session:
        raffle, mock = deploy_raffle_for_network(
            session, settings.network, address=address
        )
        print(f"Raffle deployed at: {raffle.address}")
        print(f"Network           : {raffle.network}")
        print(f"Coordinator       : {raffle.randomness_provider_address}")
        print(f"Subscription      : {raffle.subscription_id}")
        print(f"Entrance fee (wei): {raffle.entrance_fee}")
        print(f"Interval (s)      : {raffle.interval}")
        if mock is not None:
            print("Mock coordinator  : yes (state is kept in memory only)")
    engine.dispose()
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
