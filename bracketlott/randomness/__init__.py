"""Randomness sources for the final-number draw."""

from .beacon import BeaconClient, BeaconSeedSource, randomness_from_round
from .seeds import FixedSeedSource, SeedSource, SystemSeedSource

__all__ = [
    "BeaconClient",
    "BeaconSeedSource",
    "FixedSeedSource",
    "SeedSource",
    "SystemSeedSource",
    "randomness_from_round",
]
