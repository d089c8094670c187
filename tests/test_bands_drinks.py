"""Tests for intake bands and the drink catalogue."""

import pytest

from caffeine_tracker.domain.bands import (
    CUPS_THRESHOLDS,
    LEVEL_THRESHOLDS,
    Band,
    BandThresholds,
)
from caffeine_tracker.domain.drinks import REFERENCE_SERVING_MG, DrinkType


@pytest.mark.parametrize(
    ("level_mg", "band"),
    [(0.0, Band.LOW), (199.9, Band.LOW), (200.0, Band.MODERATE), (400.0, Band.HIGH)],
)
def test_level_bands(level_mg: float, band: Band) -> None:
    assert LEVEL_THRESHOLDS.classify(level_mg) is band


@pytest.mark.parametrize(
    ("cups", "band"),
    [(2.9, Band.LOW), (3.0, Band.MODERATE), (4.99, Band.MODERATE), (5.0, Band.HIGH)],
)
def test_cup_bands(cups: float, band: Band) -> None:
    assert CUPS_THRESHOLDS.classify(cups) is band


def test_custom_thresholds() -> None:
    assert BandThresholds(moderate=1.0, high=2.0).classify(1.5) is Band.MODERATE


def test_reference_serving_is_small_coffee() -> None:
    assert REFERENCE_SERVING_MG == 95.0


def test_drink_lookup_normalizes_key() -> None:
    assert DrinkType.from_key("Energy Drink") is DrinkType.ENERGY_DRINK
    assert DrinkType.from_key("green-tea").mg_per_serving == 28.0


def test_unknown_drink_raises() -> None:
    with pytest.raises(ValueError, match="Unknown drink type"):
        DrinkType.from_key("mystery brew")
