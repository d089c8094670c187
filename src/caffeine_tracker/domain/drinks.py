"""Catalogue of common caffeinated drinks."""

from enum import Enum


class DrinkType(Enum):
    """Drink with its typical caffeine content per serving in milligrams."""

    SMALL_COFFEE = ("small_coffee", 95.0)
    MEDIUM_COFFEE = ("medium_coffee", 142.5)
    LARGE_COFFEE = ("large_coffee", 190.0)
    SINGLE_ESPRESSO = ("single_espresso", 63.0)
    DOUBLE_ESPRESSO = ("double_espresso", 126.0)
    QUAD_ESPRESSO = ("quad_espresso", 252.0)
    BLACK_TEA = ("black_tea", 47.0)
    GREEN_TEA = ("green_tea", 28.0)
    SOFT_DRINK = ("soft_drink", 34.0)
    ENERGY_DRINK = ("energy_drink", 80.0)
    CHOCOLATE = ("chocolate", 9.0)

    def __init__(self, key: str, mg_per_serving: float) -> None:
        self.key = key
        self.mg_per_serving = mg_per_serving

    @classmethod
    def from_key(cls, key: str) -> "DrinkType":
        """Return the drink matching a key such as ``"small_coffee"``."""
        normalized = key.strip().lower().replace("-", "_").replace(" ", "_")
        for drink in cls:
            if drink.key == normalized:
                return drink
        raise ValueError(f"Unknown drink type: {key}")


# One 8 oz cup of brewed coffee; daily intake is reported in these units.
REFERENCE_SERVING_MG = DrinkType.SMALL_COFFEE.mg_per_serving
