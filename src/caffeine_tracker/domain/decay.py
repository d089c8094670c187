"""Exponential decay of caffeine in the body."""

from collections.abc import Iterable
from dataclasses import dataclass
from datetime import datetime

from caffeine_tracker.domain.doses import Dose

DEFAULT_HALF_LIFE_HOURS = 5.0
_SECONDS_PER_HOUR = 3600.0


@dataclass(frozen=True)
class DecayModel:
    """Single-compartment elimination model with a fixed half-life."""

    half_life_hours: float = DEFAULT_HALF_LIFE_HOURS

    def remaining(self, dose: Dose, at: datetime) -> float:
        """Return the milligrams of a dose still active at the given time.

        A dose has no effect before it is consumed, so earlier times yield 0.
        """
        if at < dose.consumed_at:
            return 0.0
        elapsed_hours = (at - dose.consumed_at).total_seconds() / _SECONDS_PER_HOUR
        return dose.amount_mg * 0.5 ** (elapsed_hours / self.half_life_hours)

    def total(self, doses: Iterable[Dose], at: datetime) -> float:
        """Return the summed remaining caffeine of all doses at a time."""
        return sum((self.remaining(dose, at) for dose in doses), 0.0)
