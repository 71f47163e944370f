import os
import unittest
from decimal import Decimal
from unittest.mock import patch

from vrfraffle.config import (
    DEVELOPMENT_CHAINS,
    NETWORK_CONFIG,
    Settings,
    get_network_config,
    is_development_chain,
    parse_ether,
)


class ParseEtherTests(unittest.TestCase):
    def test_converts_to_wei(self):
        self.assertEqual(parse_ether("0.01"), 10**16)
        self.assertEqual(parse_ether(2), 2 * 10**18)
        self.assertEqual(parse_ether(Decimal("0.25")), 25 * 10**16)

    def test_rejects_fractional_wei(self):
        with self.assertRaises(ValueError):
            parse_ether("0.0000000000000000001")


class NetworkConfigTests(unittest.TestCase):
    def test_lookup_by_chain_id_and_name(self):
        self.assertIs(get_network_config(5), NETWORK_CONFIG[5])
        self.assertEqual(get_network_config("Goerli").chain_id, 5)
        self.assertEqual(get_network_config("hardhat").chain_id, 31337)
        self.assertIs(get_network_config("localhost"), NETWORK_CONFIG[31337])

    def test_unknown_network(self):
        with self.assertRaises(KeyError):
            get_network_config(1)
        with self.assertRaises(KeyError):
            get_network_config("mainnet")

    def test_presets(self):
        goerli = NETWORK_CONFIG[5]
        self.assertEqual(goerli.entrance_fee, 10**16)
        self.assertEqual(goerli.subscription_id, 9252)
        self.assertEqual(goerli.callback_gas_limit, 500000)
        self.assertEqual(goerli.interval, 60)

        hardhat = NETWORK_CONFIG[31337]
        self.assertIsNone(hardhat.vrf_coordinator)
        self.assertIsNone(hardhat.subscription_id)
        self.assertEqual(hardhat.gas_lane, goerli.gas_lane)

    def test_development_chains(self):
        self.assertEqual(DEVELOPMENT_CHAINS, ("hardhat", "localhost"))
        self.assertTrue(is_development_chain("localhost"))
        self.assertFalse(is_development_chain("goerli"))


@patch("vrfraffle.config.load_dotenv")
class SettingsTests(unittest.TestCase):
    def test_defaults(self, mock_load_dotenv):
        with patch.dict(os.environ, {}, clear=True):
            settings = Settings.from_env()
        self.assertEqual(settings.network, "hardhat")
        self.assertEqual(settings.keeper_poll_seconds, 30.0)
        self.assertIsNone(settings.randomness_service_fqdn)
        mock_load_dotenv.assert_called_once()

    def test_reads_environment(self, mock_load_dotenv):
        env = {
            "RAFFLE_NETWORK": "goerli",
            "KEEPER_POLL_SECONDS": "2.5",
            "RANDOMNESS_SERVICE_FQDN": "vrf.example.com",
        }
        with patch.dict(os.environ, env, clear=True):
            settings = Settings.from_env()
        self.assertEqual(settings.network, "goerli")
        self.assertEqual(settings.keeper_poll_seconds, 2.5)
        self.assertEqual(settings.randomness_service_fqdn, "vrf.example.com")

    def test_network_override(self, mock_load_dotenv):
        with patch.dict(os.environ, {"RAFFLE_NETWORK": "goerli"}, clear=True):
            settings = Settings.from_env(network_override="localhost")
        self.assertEqual(settings.network, "localhost")

    def test_invalid_poll_interval(self, mock_load_dotenv):
        for value in ("soon", "0", "-1"):
            with patch.dict(os.environ, {"KEEPER_POLL_SECONDS": value}, clear=True):
                with self.assertRaises(RuntimeError):
                    Settings.from_env()


if __name__ == "__main__":
    unittest.main()
