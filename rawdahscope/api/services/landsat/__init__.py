"""USGS Landsat inventory client."""

from .landsat_client import LandsatClient, LandsatConfig

__all__ = ["LandsatClient", "LandsatConfig"]
