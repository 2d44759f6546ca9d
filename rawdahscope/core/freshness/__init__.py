from rawdahscope.core.freshness.freshness_classifier import (
    AgeBucket,
    FreshnessVerdict,
    classify,
)

__all__ = ["AgeBucket", "FreshnessVerdict", "classify"]
