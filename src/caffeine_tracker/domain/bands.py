"""Low/moderate/high classification of caffeine levels and daily intake."""

from dataclasses import dataclass
from enum import StrEnum


class Band(StrEnum):
    """Traffic-light style intake band."""

    LOW = "low"
    MODERATE = "moderate"
    HIGH = "high"


@dataclass(frozen=True)
class BandThresholds:
    """Lower bounds of the moderate and high bands."""

    moderate: float
    high: float

    def classify(self, value: float) -> Band:
        """Return the band a value falls into."""
        if value < self.moderate:
            return Band.LOW
        if value < self.high:
            return Band.MODERATE
        return Band.HIGH


LEVEL_THRESHOLDS = BandThresholds(moderate=200.0, high=400.0)
CUPS_THRESHOLDS = BandThresholds(moderate=3.0, high=5.0)
