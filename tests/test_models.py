import unittest

from sqlalchemy import create_engine, select
from sqlalchemy.exc import IntegrityError, StatementError
from sqlalchemy.orm import sessionmaker

from vrfraffle.config import GAS_LANE_150_GWEI
from vrfraffle.models import (
    Account,
    Base,
    RaffleEntry,
    RaffleEventLog,
    RaffleRound,
    RaffleState,
)
from vrfraffle.raffle import LedgerPayout


def make_raffle(address: str = "raffle-1", **overrides) -> RaffleRound:
    kwargs = dict(
        address=address,
        network="hardhat",
        randomness_provider_address="0xcoordinator",
        entrance_fee=10**16,
        gas_lane=GAS_LANE_150_GWEI,
        subscription_id=1,
        callback_gas_limit=500000,
        interval=60,
        last_timestamp=1_700_000_000,
    )
    kwargs.update(overrides)
    return RaffleRound(**kwargs)


class DBTestCase(unittest.TestCase):
    def setUp(self):
        # In-memory SQLite for isolation
        self.engine = create_engine("sqlite+pysqlite:///:memory:", future=True)
        Base.metadata.create_all(self.engine)
        self.Session = sessionmaker(
            bind=self.engine, future=True, expire_on_commit=False
        )

    def tearDown(self):
        self.engine.dispose()

    def test_raffle_defaults(self):
        with self.Session() as session:
            raffle = make_raffle()
            session.add(raffle)
            session.commit()

            found = RaffleRound.get_by_address(session, "raffle-1")
            assert found is not None
            self.assertEqual(found.raffle_state, RaffleState.OPEN)
            self.assertEqual(found.balance, 0)
            self.assertEqual(found.round_number, 0)
            self.assertIsNone(found.recent_winner)
            self.assertIsNotNone(found.created_at)
            self.assertEqual(found.player_count(session), 0)

    def test_raffle_address_unique(self):
        with self.Session() as session:
            session.add(make_raffle())
            session.commit()
            session.add(make_raffle())
            with self.assertRaises(IntegrityError):
                session.commit()

    def test_raffle_state_check_constraint(self):
        with self.Session() as session:
            raffle = make_raffle()
            raffle.state = "finished"
            session.add(raffle)
            with self.assertRaises(IntegrityError):
                session.commit()

    def test_large_amounts_survive_storage(self):
        huge = 10**30 + 7
        with self.Session() as session:
            raffle = make_raffle(entrance_fee=huge)
            session.add(raffle)
            session.commit()
            raffle_id = raffle.id

        with self.Session() as session:
            loaded = session.get(RaffleRound, raffle_id)
            self.assertEqual(loaded.entrance_fee, huge)
            self.assertIsInstance(loaded.entrance_fee, int)

    def test_negative_amount_rejected(self):
        with self.Session() as session:
            session.add(make_raffle(entrance_fee=-1))
            with self.assertRaises((ValueError, StatementError)):
                session.commit()

    def test_current_entries_filter_by_round(self):
        with self.Session() as session:
            raffle = make_raffle()
            session.add(raffle)
            session.flush()
            for round_number, position, player in [
                (0, 0, "0xold"),
                (1, 1, "0xbob"),
                (1, 0, "0xalice"),
            ]:
                session.add(
                    RaffleEntry(
                        raffle_id=raffle.id,
                        round_number=round_number,
                        position=position,
                        player_address=player,
                        amount=10**16,
                        entered_at=1_700_000_000,
                    )
                )
            raffle.round_number = 1
            session.commit()

            players = [e.player_address for e in raffle.current_entries(session)]
            self.assertEqual(players, ["0xalice", "0xbob"])
            self.assertEqual(raffle.player_count(session), 2)
            self.assertEqual(raffle.entry_at(session, 1).player_address, "0xbob")
            self.assertIsNone(raffle.entry_at(session, 2))
            self.assertEqual(len(raffle.entries), 3)

    def test_entry_position_unique_per_round(self):
        with self.Session() as session:
            raffle = make_raffle()
            session.add(raffle)
            session.flush()
            for player in ("0xalice", "0xbob"):
                session.add(
                    RaffleEntry(
                        raffle_id=raffle.id,
                        round_number=0,
                        position=0,
                        player_address=player,
                        amount=10**16,
                        entered_at=1_700_000_000,
                    )
                )
            with self.assertRaises(IntegrityError):
                session.commit()

    def test_event_log_name_constraint(self):
        with self.Session() as session:
            raffle = make_raffle()
            session.add(raffle)
            session.flush()
            session.add(
                RaffleEventLog(
                    raffle_id=raffle.id,
                    name="Bogus",
                    payload={},
                    round_number=0,
                    emitted_at=1_700_000_000,
                )
            )
            with self.assertRaises(IntegrityError):
                session.commit()

    def test_get_for_update_loads_row(self):
        with self.Session() as session:
            raffle = make_raffle()
            session.add(raffle)
            session.commit()

            locked = RaffleRound.get_for_update(session, raffle.id)
            self.assertIs(locked, raffle)
            self.assertIsNone(RaffleRound.get_for_update(session, 999))


class AccountTests(unittest.TestCase):
    def setUp(self):
        self.engine = create_engine("sqlite+pysqlite:///:memory:", future=True)
        Base.metadata.create_all(self.engine)
        self.Session = sessionmaker(
            bind=self.engine, future=True, expire_on_commit=False
        )

    def tearDown(self):
        self.engine.dispose()

    def test_address_is_normalized(self):
        account = Account(address="  0xalice ")
        self.assertEqual(account.address, "0xalice")
        with self.assertRaises(ValueError):
            Account(address="   ")

    def test_get_or_create(self):
        with self.Session() as session:
            created = Account.get_or_create(session, "0xalice")
            again = Account.get_or_create(session, "0xalice")
            self.assertIs(created, again)
            self.assertEqual(created.balance, 0)
            self.assertTrue(created.accepts_payments)
            count = len(session.scalars(select(Account)).all())
            self.assertEqual(count, 1)

    def test_ledger_payout_credits_account(self):
        with self.Session() as session:
            payout = LedgerPayout(session)
            self.assertTrue(payout("0xalice", 5))
            self.assertTrue(payout("0xalice", 10**20))
            self.assertEqual(
                Account.get_by_address(session, "0xalice").balance, 10**20 + 5
            )

    def test_ledger_payout_respects_rejecting_accounts(self):
        with self.Session() as session:
            session.add(Account(address="0xcontract", accepts_payments=False))
            session.flush()
            payout = LedgerPayout(session)
            self.assertFalse(payout("0xcontract", 5))
            self.assertEqual(Account.get_by_address(session, "0xcontract").balance, 0)
            with self.assertRaises(ValueError):
                payout("0xalice", -1)


if __name__ == "__main__":
    unittest.main()
