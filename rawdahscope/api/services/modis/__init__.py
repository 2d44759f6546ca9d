"""ORNL MODIS subset client."""

from .modis_client import MODISClient, MODISConfig

__all__ = ["MODISClient", "MODISConfig"]
