from __future__ import annotations

import unittest

from sqlalchemy import create_engine, func, select
from sqlalchemy.orm import sessionmaker

from vrfraffle.config import VRF_SUBSCRIPTION_FUND_AMOUNT, get_network_config, parse_ether
from vrfraffle.models import Base, RaffleEntry, RaffleRound, RaffleState
from vrfraffle.raffle import (
    NotEnoughPayment,
    UnauthorizedCaller,
    UnexpectedFulfillment,
    WinnerSelected,
)
from vrfraffle.workflows import (
    deploy_raffle,
    deploy_raffle_for_network,
    enter_raffle,
    fulfill_randomness,
    perform_upkeep,
)


class WorkflowTests(unittest.TestCase):
    def setUp(self) -> None:
        self.engine = create_engine("sqlite+pysqlite:///:memory:", future=True)
        Base.metadata.create_all(self.engine)
        self.Session = sessionmaker(
            bind=self.engine, future=True, expire_on_commit=False
        )
        self.now = 1_700_000_000
        self.clock = lambda: self.now  # noqa: E731

    def tearDown(self) -> None:
        self.engine.dispose()

    def test_deploy_on_development_chain_brings_up_mock(self):
        with self.Session.begin() as session:
            raffle, coordinator = deploy_raffle_for_network(
                session, "localhost", address="raffle-1", clock=self.clock
            )

        self.assertIsNotNone(coordinator)
        self.assertEqual(raffle.network, "hardhat")
        self.assertEqual(raffle.randomness_provider_address, coordinator.address)
        self.assertEqual(raffle.entrance_fee, parse_ether("0.01"))
        self.assertEqual(raffle.interval, 60)
        self.assertEqual(raffle.last_timestamp, self.now)
        self.assertEqual(raffle.state, RaffleState.OPEN.value)

        subscription = coordinator.get_subscription(raffle.subscription_id)
        self.assertEqual(subscription.balance, VRF_SUBSCRIPTION_FUND_AMOUNT)
        self.assertIn("raffle-1", subscription.consumers)

    def test_deploy_on_live_network_uses_preset(self):
        goerli = get_network_config("goerli")
        with self.Session.begin() as session:
            raffle, coordinator = deploy_raffle_for_network(
                session, "goerli", address="raffle-live", clock=self.clock
            )

        self.assertIsNone(coordinator)
        self.assertEqual(raffle.randomness_provider_address, goerli.vrf_coordinator)
        self.assertEqual(raffle.subscription_id, 9252)
        self.assertEqual(raffle.gas_lane, goerli.gas_lane)
        self.assertEqual(raffle.callback_gas_limit, 500000)

    def test_deploy_rejects_duplicate_address(self):
        with self.Session.begin() as session:
            deploy_raffle_for_network(session, "goerli", address="raffle-1")
            with self.assertRaises(ValueError):
                deploy_raffle_for_network(session, "goerli", address="raffle-1")

    def test_deploy_requires_coordinator_and_subscription(self):
        hardhat = get_network_config("hardhat")
        with self.Session() as session:
            with self.assertRaises(ValueError):
                deploy_raffle(session, address="raffle-1", network_config=hardhat)
            with self.assertRaises(ValueError):
                deploy_raffle(
                    session,
                    address="raffle-1",
                    network_config=hardhat,
                    randomness_provider_address="0xcoordinator",
                )

    def test_unknown_network(self):
        with self.Session() as session:
            with self.assertRaises(KeyError):
                deploy_raffle_for_network(session, "mainnet", address="raffle-1")

    def test_failed_entry_rolls_back_transaction(self):
        with self.Session.begin() as session:
            raffle, _ = deploy_raffle_for_network(
                session, "hardhat", address="raffle-1", clock=self.clock
            )
        raffle_id = raffle.id

        with self.assertRaises(NotEnoughPayment):
            with self.Session.begin() as session:
                enter_raffle(session, raffle_id, "0xalice", parse_ether("0.01"), clock=self.clock)
                enter_raffle(session, raffle_id, "0xbob", 1, clock=self.clock)

        with self.Session() as session:
            count = session.scalar(select(func.count(RaffleEntry.id)))
            self.assertEqual(count, 0)
            self.assertEqual(session.get(RaffleRound, raffle_id).balance, 0)

    def test_enter_unknown_raffle(self):
        with self.Session() as session:
            with self.assertRaises(ValueError):
                enter_raffle(session, 42, "0xalice", parse_ether("0.01"))

    def test_remote_fulfillment_flow(self):
        with self.Session.begin() as session:
            raffle, coordinator = deploy_raffle_for_network(
                session, "hardhat", address="raffle-1", clock=self.clock
            )
        raffle_id = raffle.id

        with self.Session.begin() as session:
            enter_raffle(session, raffle_id, "0xalice", parse_ether("0.01"), clock=self.clock)
            enter_raffle(session, raffle_id, "0xbob", parse_ether("0.01"), clock=self.clock)

        self.now += 61
        with self.Session.begin() as session:
            request_id = perform_upkeep(session, raffle_id, coordinator, clock=self.clock)

        with self.assertRaises(UnauthorizedCaller):
            with self.Session.begin() as session:
                fulfill_randomness(
                    session, raffle_id, request_id, [0], caller="0xattacker"
                )

        received = []
        with self.Session.begin() as session:
            notification = fulfill_randomness(
                session,
                raffle_id,
                request_id,
                [2],
                caller=coordinator.address,
                clock=self.clock,
                listeners=[received.append],
            )

        self.assertEqual(notification, WinnerSelected(winner="0xalice"))
        self.assertEqual(received, [notification])
        with self.Session() as session:
            raffle = session.get(RaffleRound, raffle_id)
            self.assertEqual(raffle.recent_winner, "0xalice")
            self.assertEqual(raffle.round_number, 1)

        # A repeated callback for the settled request must not pay out the next round.
        with self.Session.begin() as session:
            enter_raffle(session, raffle_id, "0xcarol", parse_ether("0.01"), clock=self.clock)
        with self.assertRaises(UnexpectedFulfillment):
            with self.Session.begin() as session:
                fulfill_randomness(
                    session, raffle_id, request_id, [0], caller=coordinator.address
                )
        with self.Session() as session:
            raffle = session.get(RaffleRound, raffle_id)
            self.assertEqual(raffle.state, RaffleState.OPEN.value)
            self.assertEqual(raffle.balance, parse_ether("0.01"))
            self.assertEqual(raffle.recent_winner, "0xalice")


if __name__ == "__main__":
    unittest.main()
