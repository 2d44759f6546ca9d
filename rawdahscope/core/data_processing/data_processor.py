"""
Normalisation of upstream payloads into the dashboard display schema.

Processors take source-chain payloads (or the service that produces them)
and return plain dicts/lists ready for the view layer:

- Heat map: current temperature for 20 Riyadh districts
- Air quality: per-pollutant before/after comparison
- Surface temperature: afforested vs non-planted district, current week
- Vegetation: yearly NDVI series with classification and trend
- Forest coverage and carbon estimate, derived from the NDVI series

No processor invents values. Missing days, districts or years are left
out of the output.
"""

import asyncio
import time
from dataclasses import dataclass
from datetime import date, timedelta
from typing import Any, Sequence

import numpy as np
from loguru import logger

from rawdahscope.api.services.environmental_data_service import (
    DEFAULT_POLLUTANTS,
    EnvironmentalDataService,
)
from rawdahscope.api.services.source_chain import (
    NoRealDataAvailable,
    SourceChainError,
)
from rawdahscope.infrastructure.retry.retry_executor import Sleep


@dataclass(frozen=True)
class District:
    name: str
    lat: float
    lng: float


# ============================================================================
# RIYADH REFERENCE LOCATIONS
# ============================================================================

DISTRICTS: list[District] = [
    # Central
    District("King Fahd District", 24.7136, 46.6753),
    District("Al-Malaz", 24.6877, 46.7219),
    District("Al-Olaya", 24.6951, 46.6693),
    District("Al-Batha", 24.6300, 46.7100),
    District("Al-Dirah", 24.6280, 46.7150),
    # Northern
    District("Al-Naseem", 24.7730, 46.6977),
    District("Northern District", 24.7500, 46.7200),
    District("Qurtubah", 24.8000, 46.7700),
    District("Al-Aziziyah", 24.7850, 46.6800),
    District("Al-Khalij", 24.7650, 46.7050),
    # Southern
    District("Industrial Area", 24.6200, 46.7500),
    District("Al-Ghadeer", 24.6100, 46.6400),
    District("Al-Shifa", 24.5600, 46.7200),
    District("Al-Faysaliah", 24.6050, 46.6850),
    # Western
    District("Diriyah", 24.7370, 46.5750),
    District("Al-Irqah", 24.7200, 46.6200),
    District("Al-Suwaidi", 24.6800, 46.6350),
    # Eastern
    District("Al-Rawdah", 24.7300, 46.7850),
    District("Al-Rabi", 24.7150, 46.7650),
    District("Al-Amal", 24.6950, 46.7400),
]

AFFORESTED_SITE = District("Al-Malaz (Afforested)", 24.6877, 46.7219)
NON_PLANTED_SITE = District("Industrial Area", 24.6200, 46.7500)

DAY_NAMES = ["Sun", "Mon", "Tue", "Wed", "Thu", "Fri", "Sat"]

AQ_TREND_THRESHOLD = 5.0  # percent
NDVI_TREND_THRESHOLD = 0.02

# Fractional vegetation cover end-members (bare soil, full canopy)
NDVI_SOIL = 0.1
NDVI_CANOPY = 0.8

# Riyadh municipal area and an urban-forest carbon stock
STUDY_AREA_HECTARES = 191_300.0
CARBON_DENSITY_T_PER_HA = 25.0
CO2_PER_CARBON = 44.0 / 12.0


# ============================================================================
# HEAT MAP
# ============================================================================


def heat_intensity(temperature: float) -> float:
    """Map 30-50 °C onto 0-1."""
    return min(max((temperature - 30) / 20, 0.0), 1.0)


async def process_weather_for_heat_map(
    service: EnvironmentalDataService,
    districts: Sequence[District] = DISTRICTS,
    batch_size: int = 5,
    batch_pause: float = 0.5,
    sleep: Sleep = asyncio.sleep,
) -> dict[str, Any]:
    """
    Fetch current temperature per district in small concurrent batches.

    Batches run one after another with ``batch_pause`` seconds between
    them so upstream rate limits are respected. A district whose chain
    is exhausted is skipped; the others are still returned.

    Args:
        service: Data service providing ``fetch_current_temp_at``
        districts: Locations to sample
        batch_size: Concurrent requests per batch
        batch_pause: Seconds to wait between batches
        sleep: Awaitable sleep (injectable for tests)

    Returns:
        dict: ``{"data": [...], "timestamp": epoch_seconds}``

    Raises:
        NoRealDataAvailable: Every district failed
    """
    rows: list[dict[str, Any]] = []
    failures = 0
    last_error: Exception | None = None
    for start in range(0, len(districts), batch_size):
        batch = districts[start : start + batch_size]
        results = await asyncio.gather(
            *(service.fetch_current_temp_at(d.lat, d.lng) for d in batch),
            return_exceptions=True,
        )

        for district, result in zip(batch, results):
            if isinstance(result, BaseException):
                if not isinstance(result, Exception):
                    raise result
                logger.warning(f"Heat map: {district.name} skipped: {result}")
                failures += 1
                last_error = result
                continue
            current = result.get("current") or {}
            temperature = current.get("temperature_2m")
            if temperature is None:
                continue
            rows.append(
                {
                    "area": district.name,
                    "lat": district.lat,
                    "lng": district.lng,
                    "temperature": temperature,
                    "apparent_temperature": current.get(
                        "apparent_temperature"
                    ),
                    "intensity": heat_intensity(temperature),
                    "source": result.get("source"),
                }
            )

        if start + batch_size < len(districts):
            await sleep(batch_pause)

    if districts and failures == len(districts):
        raise NoRealDataAvailable("point_temperature", failures, last_error)
    logger.info(f"Heat map: {len(rows)}/{len(districts)} districts")
    return {"data": rows, "timestamp": time.time()}


# ============================================================================
# AIR QUALITY
# ============================================================================


def _aggregate_pollutants(payload: dict | None) -> dict[str, dict[str, Any]]:
    """Mean of positive values per pollutant (upper-case key)."""
    buckets: dict[str, dict[str, Any]] = {}
    for m in (payload or {}).get("results") or []:
        parameter = (m.get("parameter") or "").upper()
        if not parameter:
            continue
        bucket = buckets.setdefault(
            parameter, {"values": [], "unit": m.get("unit") or "µg/m³"}
        )
        try:
            value = float(m.get("value") or 0)
        except (TypeError, ValueError):
            continue
        if value > 0:
            bucket["values"].append(value)

    return {
        p: {
            "mean": float(np.mean(b["values"])) if b["values"] else None,
            "unit": b["unit"],
            "count": len(b["values"]),
        }
        for p, b in buckets.items()
    }


def air_quality_trend(change: float | None) -> str:
    if change is None:
        return "unknown"
    if change < -AQ_TREND_THRESHOLD:
        return "improving"
    if change > AQ_TREND_THRESHOLD:
        return "worsening"
    return "stable"


def process_air_quality_before_after(
    aq_now: dict | None, aq_prev: dict | None
) -> list[dict[str, Any]]:
    """
    Compare the previous and current measurement windows per pollutant.

    Args:
        aq_now: Air-quality payload for the current window
        aq_prev: Air-quality payload for the previous window

    Returns:
        One row per pollutant seen in either window with a mean value:
        ``pollutant``, ``before``, ``after``, ``unit``, per-window
        ``units``, ``change`` (%), ``trend`` and per-window sample counts.
        ``change`` is None when the windows report different units
        (AQI sub-index vs concentration)
    """
    before_agg = _aggregate_pollutants(aq_prev)
    after_agg = _aggregate_pollutants(aq_now)

    rows = []
    for pollutant in sorted(set(before_agg) | set(after_agg)):
        before = before_agg.get(pollutant, {}).get("mean")
        after = after_agg.get(pollutant, {}).get("mean")
        if before is None and after is None:
            continue

        before_unit = before_agg.get(pollutant, {}).get("unit")
        after_unit = after_agg.get(pollutant, {}).get("unit")
        unit = after_unit or before_unit or "µg/m³"
        # an AQI sub-index cannot be compared with a concentration
        comparable = before_unit == after_unit
        change = None
        if (
            comparable
            and before is not None
            and after is not None
            and before > 0
        ):
            change = (after - before) / before * 100

        rows.append(
            {
                "pollutant": pollutant,
                "before": round(before, 1) if before is not None else None,
                "after": round(after, 1) if after is not None else None,
                "unit": unit,
                "units": {"before": before_unit, "after": after_unit},
                "change": round(change, 1) if change is not None else None,
                "trend": air_quality_trend(change),
                "sources": {
                    "before": (aq_prev or {}).get("source"),
                    "after": (aq_now or {}).get("source"),
                },
                "data_quality": {
                    "before_count": before_agg.get(pollutant, {}).get(
                        "count", 0
                    ),
                    "after_count": after_agg.get(pollutant, {}).get(
                        "count", 0
                    ),
                },
            }
        )
    return rows


def compute_current_aqi(
    aq_now: dict | None, parameters: Sequence[str] = DEFAULT_POLLUTANTS
) -> int | None:
    """Rounded mean of the current readings, None without readings."""
    wanted = {p.lower() for p in parameters}
    values = []
    for r in (aq_now or {}).get("results") or []:
        if (r.get("parameter") or "").lower() not in wanted:
            continue
        try:
            values.append(float(r.get("value")))
        except (TypeError, ValueError):
            continue
    if not values:
        return None
    return round(sum(values) / len(values))


# ============================================================================
# SURFACE TEMPERATURE
# ============================================================================


def week_start_sunday(today: date) -> date:
    """Sunday on or before ``today``."""
    return today - timedelta(days=(today.weekday() + 1) % 7)


def _daily_mean_by_date(weather: dict | None) -> dict[str, float]:
    daily = (weather or {}).get("daily") or {}
    times = daily.get("time") or []
    maxima = daily.get("temperature_2m_max") or []
    minima = daily.get("temperature_2m_min") or []
    means = daily.get("temperature_2m_mean") or []

    out = {}
    for i, day in enumerate(times):
        mean = means[i] if i < len(means) else None
        if mean is None:
            hi = maxima[i] if i < len(maxima) else None
            lo = minima[i] if i < len(minima) else None
            if hi is None or lo is None:
                continue
            mean = (hi + lo) / 2
        out[day] = mean
    return out


def process_surface_temperature_pair(
    weather_afforested: dict | None,
    weather_non_planted: dict | None,
    today: date | None = None,
) -> list[dict[str, Any]]:
    """
    Pair daily mean temperatures for the current Sunday-based week.

    Only days present in both weather bundles are emitted. The daily
    mean falls back to (max + min) / 2 when the mean is missing.
    """
    today = today or date.today()
    planted_by_date = _daily_mean_by_date(weather_afforested)
    non_planted_by_date = _daily_mean_by_date(weather_non_planted)
    start = week_start_sunday(today)
    today_index = (today - start).days

    rows = []
    for i in range(7):
        day = (start + timedelta(days=i)).isoformat()
        planted = planted_by_date.get(day)
        non_planted = non_planted_by_date.get(day)
        if planted is None or non_planted is None:
            continue
        rows.append(
            {
                "day": DAY_NAMES[i],
                "date": day,
                "planted": round(planted, 1),
                "non_planted": round(non_planted, 1),
                "difference": round(non_planted - planted, 1),
                "planted_area": AFFORESTED_SITE.name,
                "non_planted_area": NON_PLANTED_SITE.name,
                "data_source": "real-api-data",
                "is_future": i > today_index,
                "day_index": i,
            }
        )
    return rows


# ============================================================================
# VEGETATION
# ============================================================================


def classify_vegetation_type(ndvi: float) -> str:
    if ndvi < 0.2:
        return "Sparse Desert"
    if ndvi < 0.3:
        return "Desert Shrubland"
    if ndvi < 0.4:
        return "Urban Green Space"
    if ndvi < 0.5:
        return "Mixed Vegetation"
    return "Dense Vegetation"


def add_ndvi_trends(series: list[dict[str, Any]]) -> list[dict[str, Any]]:
    """Annotate year-over-year change; the first year has no trend."""
    for i, item in enumerate(series):
        if i == 0:
            item["trend"] = None
            continue
        change = item["ndvi"] - series[i - 1]["ndvi"]
        if change > NDVI_TREND_THRESHOLD:
            item["trend"] = "up"
        elif change < -NDVI_TREND_THRESHOLD:
            item["trend"] = "down"
        else:
            item["trend"] = "stable"
        item["ndvi_change"] = round(change, 3)
        item["improvement"] = change > 0
    return series


async def process_ndvi_series(
    service: EnvironmentalDataService,
    lat: float,
    lng: float,
    years: int = 6,
    current_year: int | None = None,
) -> list[dict[str, Any]]:
    """
    Yearly NDVI for the last ``years`` years, oldest first.

    Years whose vegetation chain is exhausted are skipped. If every year
    is exhausted, NoRealDataAvailable is raised with the last failure.
    """
    current_year = current_year or date.today().year
    series = []
    last_error: SourceChainError | None = None
    for year in range(current_year - years + 1, current_year + 1):
        try:
            ndvi_data = await service.fetch_satellite_ndvi(lat, lng, year)
        except SourceChainError as e:
            logger.warning(f"NDVI {year} unavailable: {e}")
            last_error = e
            continue

        ndvi = ndvi_data["ndvi"]
        series.append(
            {
                "year": str(year),
                "ndvi": round(ndvi, 3),
                "precipitation": ndvi_data.get("precipitation"),
                "avg_temp": ndvi_data.get("temperature"),
                "vegetation_type": classify_vegetation_type(ndvi),
                "location": "Riyadh, Saudi Arabia",
                "data_source": ndvi_data.get("data_source"),
                "acquisition_date": ndvi_data.get("acquisition_date"),
            }
        )
    if not series and last_error is not None:
        raise NoRealDataAvailable("vegetation_index", years, last_error)
    return add_ndvi_trends(series)


def fractional_vegetation_cover(ndvi: float) -> float:
    """Scaled-NDVI squared, clamped to 0-1."""
    scaled = (ndvi - NDVI_SOIL) / (NDVI_CANOPY - NDVI_SOIL)
    return min(max(scaled, 0.0), 1.0) ** 2


def process_forest_coverage(
    ndvi_series: list[dict[str, Any]],
) -> list[dict[str, Any]]:
    """Percentage of the study area under vegetation, per year."""
    return [
        {
            "year": item["year"],
            "ndvi": item["ndvi"],
            "coverage_percent": round(
                fractional_vegetation_cover(item["ndvi"]) * 100, 1
            ),
            "data_source": item.get("data_source"),
        }
        for item in ndvi_series
    ]


def process_carbon_estimate(
    coverage_series: list[dict[str, Any]],
    study_area_ha: float = STUDY_AREA_HECTARES,
    carbon_density: float = CARBON_DENSITY_T_PER_HA,
) -> list[dict[str, Any]]:
    """
    Carbon stored in vegetated canopy, per year.

    ``canopy_ha = coverage × study_area``; ``carbon_t = canopy_ha ×
    density``; ``co2e_t = carbon_t × 44/12``.
    """
    rows = []
    for item in coverage_series:
        canopy_ha = item["coverage_percent"] / 100 * study_area_ha
        carbon_t = canopy_ha * carbon_density
        rows.append(
            {
                "year": item["year"],
                "canopy_area_ha": round(canopy_ha, 1),
                "carbon_tonnes": round(carbon_t, 1),
                "co2e_tonnes": round(carbon_t * CO2_PER_CARBON, 1),
                "data_source": item.get("data_source"),
            }
        )
    return rows
