"""Caffeine tracker: owns the dose ledger and keeps it persisted."""

import asyncio
import logging
from collections.abc import Callable, Collection, Coroutine, Iterable, Sequence
from datetime import datetime, timedelta
from enum import StrEnum
from typing import Any, Protocol
from uuid import UUID

from caffeine_tracker.domain.bands import (
    CUPS_THRESHOLDS,
    LEVEL_THRESHOLDS,
    Band,
    BandThresholds,
)
from caffeine_tracker.domain.decay import DecayModel
from caffeine_tracker.domain.doses import Dose
from caffeine_tracker.domain.drinks import REFERENCE_SERVING_MG
from caffeine_tracker.domain.ledger import DEFAULT_RETENTION, DoseLedger
from caffeine_tracker.errors import StoreWriteError, TrackerNotReadyError
from caffeine_tracker.services.health_records import HealthRecordClient

_logger = logging.getLogger(__name__)

LedgerObserver = Callable[[DoseLedger], None]


class DoseStore(Protocol):
    """Durable storage for the dose ledger."""

    async def save(self, doses: Sequence[Dose]) -> bool:
        """Persist doses; return False when nothing changed since last save."""

    async def load(self) -> tuple[Dose, ...]:
        """Return stored doses, or an empty tuple when nothing is stored."""


class TrackerState(StrEnum):
    """Lifecycle of a tracker."""

    UNINITIALIZED = "uninitialized"
    LOADING = "loading"
    READY = "ready"
    FAILED = "failed"


def _local_now() -> datetime:
    return datetime.now().astimezone()


class CaffeineTracker:
    """Observable owner of the dose ledger.

    Mutations run synchronously on the caller's event loop and are published
    to observers immediately. Reporting to the health-record service and
    saving to disk happen in background tasks. Saves are coalesced into a
    single pending slot and always run in publish order.
    """

    def __init__(  # noqa: PLR0913
        self,
        store: DoseStore,
        health_client: HealthRecordClient,
        *,
        decay_model: DecayModel | None = None,
        reference_serving_mg: float = REFERENCE_SERVING_MG,
        level_thresholds: BandThresholds = LEVEL_THRESHOLDS,
        cups_thresholds: BandThresholds = CUPS_THRESHOLDS,
        retention: timedelta = DEFAULT_RETENTION,
        clock: Callable[[], datetime] = _local_now,
    ) -> None:
        self.store = store
        self.health_client = health_client
        self.decay_model = decay_model or DecayModel()
        self.reference_serving_mg = reference_serving_mg
        self.level_thresholds = level_thresholds
        self.cups_thresholds = cups_thresholds
        self.retention = retention
        self.clock = clock
        self._state = TrackerState.UNINITIALIZED
        self._ledger = DoseLedger(retention=retention)
        self._observers: list[LedgerObserver] = []
        self._background: set[asyncio.Task[None]] = set()
        self._pending_save: tuple[Dose, ...] | None = None
        self._flush_task: asyncio.Task[None] | None = None

    @property
    def state(self) -> TrackerState:
        """Return the current lifecycle state."""
        return self._state

    @property
    def ledger(self) -> DoseLedger:
        """Return the most recently published ledger."""
        return self._ledger

    @property
    def doses(self) -> tuple[Dose, ...]:
        """Return the doses in the current ledger."""
        return self._ledger.doses

    async def start(self) -> None:
        """Load stored doses and become ready.

        A stored file that cannot be read moves the tracker to FAILED and the
        error propagates; the caller must not continue without the data.
        """
        if self._state is not TrackerState.UNINITIALIZED:
            return
        self._state = TrackerState.LOADING
        try:
            stored = await self.store.load()
        except Exception:
            self._state = TrackerState.FAILED
            _logger.critical("Stored doses could not be loaded; halting tracker")
            raise
        ledger = DoseLedger(doses=tuple(stored), retention=self.retention)
        self._ledger = ledger.prune(self.clock())
        self._state = TrackerState.READY
        _logger.info("Tracker ready with %s doses", len(self._ledger))
        self._notify()
        self._schedule_save()

    def subscribe(self, observer: LedgerObserver) -> Callable[[], None]:
        """Register an observer; return a callable that unregisters it."""
        self._observers.append(observer)

        def unsubscribe() -> None:
            if observer in self._observers:
                self._observers.remove(observer)

        return unsubscribe

    def add_dose(self, amount_mg: float, consumed_at: datetime | None = None) -> Dose:
        """Record a dose, publish it, then report and save in the background.

        A dose consumed after now or before the retention window is pruned
        from the ledger at once. It is still reported to the health-record
        service and returned.
        """
        self._require_ready()
        now = self.clock()
        dose = Dose(
            amount_mg=amount_mg,
            consumed_at=consumed_at if consumed_at is not None else now,
        )
        _logger.debug("Adding a %s mg dose", amount_mg)
        self._publish(self._ledger.append(dose, now))
        self._spawn(self._report(dose))
        self._schedule_save()
        return dose

    def apply_sync(
        self, new_doses: Iterable[Dose], deleted_ids: Collection[UUID]
    ) -> bool:
        """Merge doses added and removed elsewhere.

        Returns False without publishing or saving when there is nothing to
        apply.
        """
        self._require_ready()
        additions = list(new_doses)
        if not additions and not deleted_ids:
            _logger.debug("No doses to add or delete")
            return False
        self._publish(self._ledger.merge(additions, deleted_ids, self.clock()))
        self._schedule_save()
        return True

    def current_level(self) -> float:
        """Return the caffeine in milligrams active right now."""
        return self.level_at(self.clock())

    def level_at(self, at: datetime) -> float:
        """Return the caffeine in milligrams active at a moment."""
        return self._ledger.aggregate_at(at, self.decay_model)

    def cups_today(self) -> float:
        """Return today's intake in reference servings."""
        return self._ledger.daily_equivalent_servings(
            self.reference_serving_mg, self.clock()
        )

    def level_band(self) -> Band:
        """Classify the current caffeine level."""
        return self.level_thresholds.classify(self.current_level())

    def cups_band(self) -> Band:
        """Classify today's intake."""
        return self.cups_thresholds.classify(self.cups_today())

    async def drain(self) -> None:
        """Wait for all background reports and saves to finish."""
        while self._background:
            await asyncio.gather(*self._background)

    def _require_ready(self) -> None:
        if self._state is not TrackerState.READY:
            raise TrackerNotReadyError(f"Tracker is {self._state.value}")

    def _publish(self, ledger: DoseLedger) -> None:
        self._ledger = ledger
        self._notify()

    def _notify(self) -> None:
        for observer in list(self._observers):
            try:
                observer(self._ledger)
            except Exception:
                _logger.exception("Ledger observer failed")

    def _schedule_save(self) -> None:
        self._pending_save = self._ledger.doses
        if self._flush_task is None or self._flush_task.done():
            self._flush_task = self._spawn(self._flush())

    async def _flush(self) -> None:
        while self._pending_save is not None:
            snapshot = self._pending_save
            self._pending_save = None
            try:
                await self.store.save(snapshot)
            except StoreWriteError as exc:
                _logger.warning("Saving doses failed, retrying on next change: %s", exc)

    async def _report(self, dose: Dose) -> None:
        try:
            await self.health_client.record_dose(dose)
        except Exception as exc:
            _logger.warning("Failed to record dose %s: %s", dose.id, exc)

    def _spawn(self, coro: Coroutine[Any, Any, None]) -> asyncio.Task[None]:
        task = asyncio.get_running_loop().create_task(coro)
        self._background.add(task)
        task.add_done_callback(self._background.discard)
        return task
