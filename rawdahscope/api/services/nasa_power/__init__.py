"""NASA POWER daily point client."""

from .nasa_power_client import NASAPowerClient, NASAPowerConfig, NASAPowerData

__all__ = ["NASAPowerClient", "NASAPowerConfig", "NASAPowerData"]
