"""Ordered, self-pruning collection of caffeine doses."""

from collections.abc import Collection, Iterable
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from uuid import UUID

from caffeine_tracker.domain.decay import DecayModel
from caffeine_tracker.domain.doses import Dose

DEFAULT_RETENTION = timedelta(hours=24)


@dataclass(frozen=True)
class DoseLedger:
    """Immutable list of doses consumed within the retention window.

    Every operation returns a new ledger, sorted by consumption time, so a
    reader never observes a half-applied change.
    """

    doses: tuple[Dose, ...] = ()
    retention: timedelta = field(default=DEFAULT_RETENTION, compare=False)

    def __len__(self) -> int:
        return len(self.doses)

    def append(self, dose: Dose, now: datetime) -> "DoseLedger":
        """Add a dose and drop everything outside the retention window."""
        return self._replace([*self.doses, dose]).prune(now)

    def merge(
        self,
        additions: Iterable[Dose],
        removals: Collection[UUID],
        now: datetime,
    ) -> "DoseLedger":
        """Apply a batch of added and removed doses.

        An empty batch returns this very ledger so callers can skip
        persisting it.
        """
        added = list(additions)
        if not added and not removals:
            return self
        kept = [dose for dose in self.doses if dose.id not in removals]
        return self._replace(kept + added).prune(now)

    def prune(self, now: datetime) -> "DoseLedger":
        """Keep only doses consumed within ``[now - retention, now]``."""
        start = now - self.retention
        return self._replace(
            [dose for dose in self.doses if start <= dose.consumed_at <= now]
        )

    def aggregate_at(self, at: datetime, model: DecayModel) -> float:
        """Return the caffeine in milligrams remaining at a moment."""
        return model.total(self.doses, at)

    def daily_equivalent_servings(
        self, reference_serving_mg: float, now: datetime
    ) -> float:
        """Return today's intake expressed in reference servings.

        Amounts are summed undecayed for doses consumed since local midnight
        of ``now``.
        """
        midnight = now.replace(hour=0, minute=0, second=0, microsecond=0)
        total_mg = sum(
            (dose.amount_mg for dose in self.doses if dose.consumed_at >= midnight),
            0.0,
        )
        return total_mg / reference_serving_mg

    def _replace(self, doses: Iterable[Dose]) -> "DoseLedger":
        ordered = tuple(sorted(doses, key=lambda dose: dose.consumed_at))
        return DoseLedger(doses=ordered, retention=self.retention)
