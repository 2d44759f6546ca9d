"""
Coordinate validation and cache-key helpers.

Single source of truth for:
- Valid coordinate ranges (checked before any upstream call)
- Rounding used in cache keys, so 24.71360001 and 24.7136 share a key
- Riyadh study-area reference points
"""

from loguru import logger

from rawdahscope.api.services.source_chain import InvalidCoordinatesError

CACHE_KEY_PRECISION = 4

RIYADH_CENTER = (24.7136, 46.6753)


class GeographicUtils:
    """Centralised coordinate checks."""

    GLOBAL_BBOX = (-180.0, -90.0, 180.0, 90.0)
    """Bounding box (lon_min, lat_min, lon_max, lat_max)."""

    @staticmethod
    def is_valid_coordinate(lat: float, lon: float) -> bool:
        """
        Check that coordinates fall inside the global bounding box.

        Args:
            lat: Latitude (-90 to 90)
            lon: Longitude (-180 to 180)

        Returns:
            bool: True if both values are in range
        """
        lon_min, lat_min, lon_max, lat_max = GeographicUtils.GLOBAL_BBOX
        try:
            return (lat_min <= lat <= lat_max) and (lon_min <= lon <= lon_max)
        except TypeError:
            return False

    @staticmethod
    def round_coordinates(
        lat: float, lon: float, precision: int = CACHE_KEY_PRECISION
    ) -> tuple[float, float]:
        return round(lat, precision), round(lon, precision)


def validate_coordinates(lat: float, lon: float) -> None:
    """Raise InvalidCoordinatesError for out-of-range coordinates."""
    if not GeographicUtils.is_valid_coordinate(lat, lon):
        logger.error(f"Invalid coordinates rejected: ({lat}, {lon})")
        raise InvalidCoordinatesError(f"Invalid coordinates: ({lat}, {lon})")


def build_cache_key(chain: str, lat: float, lon: float, *params) -> str:
    """
    Deterministic key from chain, rounded coordinates and parameters.

    Example:
        build_cache_key("climate_year", 24.7136, 46.6753, 2023)
        -> "climate_year:24.7136:46.6753:2023"
    """
    lat_r, lon_r = GeographicUtils.round_coordinates(lat, lon)
    parts = [chain, str(lat_r), str(lon_r)]
    for param in params:
        if isinstance(param, (list, tuple)):
            parts.append(",".join(str(p) for p in param))
        else:
            parts.append(str(param))
    return ":".join(parts)
