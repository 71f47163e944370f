"""Network presets and runtime settings."""

from __future__ import annotations

import os
from dataclasses import dataclass
from decimal import Decimal
from typing import Dict, Optional, Union

from dotenv import load_dotenv

WEI_PER_ETHER = 10**18


def parse_ether(value: Union[str, int, Decimal]) -> int:
    """Convert an ether amount such as ``"0.01"`` into wei."""
    amount = Decimal(str(value)) * WEI_PER_ETHER
    if amount != amount.to_integral_value():
        raise ValueError(f"{value} ether is not a whole number of wei")
    return int(amount)


@dataclass(frozen=True)
class NetworkConfig:
    """Constructor parameters of a raffle deployment on one network.

    ``vrf_coordinator`` and ``subscription_id`` are ``None`` on development
    chains, where a mock coordinator and a fresh subscription are created at
    deploy time.
    """

    chain_id: int
    name: str
    entrance_fee: int
    gas_lane: str
    callback_gas_limit: int
    interval: int
    vrf_coordinator: Optional[str] = None
    subscription_id: Optional[int] = None


# 150 gwei key hash gas lane
GAS_LANE_150_GWEI = "0x79d3d8832d904592c0bf9818b621522c988bb8b0c05cdc3b15aea1b6e8db0c15"

NETWORK_CONFIG: Dict[int, NetworkConfig] = {
    5: NetworkConfig(
        chain_id=5,
        name="goerli",
        vrf_coordinator="0x2Ca8E0C643bDe4C2E08ab1fA0da3401AdAD7734D",
        entrance_fee=parse_ether("0.01"),
        gas_lane=GAS_LANE_150_GWEI,
        subscription_id=9252,
        callback_gas_limit=500000,
        interval=60,
    ),
    31337: NetworkConfig(
        chain_id=31337,
        name="hardhat",
        entrance_fee=parse_ether("0.01"),
        gas_lane=GAS_LANE_150_GWEI,
        callback_gas_limit=500000,
        interval=60,
    ),
}

DEVELOPMENT_CHAINS = ("hardhat", "localhost")

# Funding given to the subscription created for development deployments.
VRF_SUBSCRIPTION_FUND_AMOUNT = parse_ether("2")


def is_development_chain(name: str) -> bool:
    return name in DEVELOPMENT_CHAINS


def get_network_config(network: Union[str, int]) -> NetworkConfig:
    """Return the preset for a chain id or network name.

    ``"localhost"`` shares the hardhat preset.

    Raises
    ------
    KeyError
        If no preset matches ``network``.
    """
    if isinstance(network, int):
        try:
            return NETWORK_CONFIG[network]
        except KeyError as exc:
            raise KeyError(f"No network config for chain id {network}") from exc

    name = network.strip().lower()
    if name == "localhost":
        name = "hardhat"
    for config in NETWORK_CONFIG.values():
        if config.name == name:
            return config
    raise KeyError(f"No network config for network '{network}'")


@dataclass(frozen=True)
class Settings:
    network: str
    keeper_poll_seconds: float
    randomness_service_fqdn: Optional[str] = None

    @staticmethod
    def from_env(network_override: Optional[str] = None) -> "Settings":
        load_dotenv()

        network = network_override or os.getenv("RAFFLE_NETWORK", "").strip() or "hardhat"

        poll_raw = os.getenv("KEEPER_POLL_SECONDS", "").strip() or "30"
        try:
            poll_seconds = float(poll_raw)
        except ValueError as exc:
            raise RuntimeError(
                f"KEEPER_POLL_SECONDS must be a number, got {poll_raw!r}"
            ) from exc
        if poll_seconds <= 0:
            raise RuntimeError("KEEPER_POLL_SECONDS must be positive")

        fqdn = os.getenv("RANDOMNESS_SERVICE_FQDN", "").strip() or None
        return Settings(
            network=network,
            keeper_poll_seconds=poll_seconds,
            randomness_service_fqdn=fqdn,
        )
