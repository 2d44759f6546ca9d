"""World Air Quality Index client."""

from .waqi_client import WAQIClient, WAQIConfig

__all__ = ["WAQIClient", "WAQIConfig"]
