"""MET Norway Locationforecast client."""

from .met_norway_client import METNorwayClient, METNorwayConfig

__all__ = ["METNorwayClient", "METNorwayConfig"]
