"""Shared test fixtures."""

from collections.abc import Sequence
from dataclasses import dataclass, field
from datetime import UTC, datetime, timedelta
from pathlib import Path
from uuid import UUID

import pytest

from caffeine_tracker.config import Settings
from caffeine_tracker.containers import AppContainer
from caffeine_tracker.domain.doses import Dose
from caffeine_tracker.errors import StoreWriteError
from caffeine_tracker.services.health_records import (
    HealthRecordClient,
    HealthSyncService,
)
from caffeine_tracker.services.tracker import CaffeineTracker, DoseStore

T0 = datetime(2026, 3, 10, 12, 0, tzinfo=UTC)


@dataclass
class FakeClock:
    """Clock that only moves when told to."""

    now: datetime = T0

    def __call__(self) -> datetime:
        return self.now

    def advance(self, delta: timedelta) -> None:
        self.now = self.now + delta


@dataclass
class InMemoryDoseStore(DoseStore):
    """In-memory dose store that skips unchanged saves like the real one."""

    stored: tuple[Dose, ...] = ()
    last_saved: tuple[Dose, ...] = ()
    save_calls: list[tuple[Dose, ...]] = field(default_factory=list)
    writes: int = 0
    load_error: Exception | None = None
    fail_saves: bool = False

    async def save(self, doses: Sequence[Dose]) -> bool:
        snapshot = tuple(doses)
        self.save_calls.append(snapshot)
        if snapshot == self.last_saved:
            return False
        if self.fail_saves:
            raise StoreWriteError("disk full")
        self.stored = snapshot
        self.last_saved = snapshot
        self.writes += 1
        return True

    async def load(self) -> tuple[Dose, ...]:
        if self.load_error is not None:
            raise self.load_error
        self.last_saved = self.stored
        return self.stored


@dataclass
class FakeHealthRecordClient(HealthRecordClient):
    """Health-record client with canned responses."""

    authorized: bool = True
    new_doses: list[Dose] = field(default_factory=list)
    deleted_ids: set[UUID] = field(default_factory=set)
    recorded: list[Dose] = field(default_factory=list)
    fetch_since: list[datetime] = field(default_factory=list)
    deleted_since: list[datetime] = field(default_factory=list)
    record_error: Exception | None = None
    fetch_error: Exception | None = None

    async def authorize(self) -> bool:
        return self.authorized

    async def fetch_new_doses(self, since: datetime) -> list[Dose]:
        self.fetch_since.append(since)
        if self.fetch_error is not None:
            raise self.fetch_error
        return [dose for dose in self.new_doses if dose.consumed_at >= since]

    async def fetch_deleted_ids(self, since: datetime) -> set[UUID]:
        self.deleted_since.append(since)
        return set(self.deleted_ids)

    async def record_dose(self, dose: Dose) -> None:
        if self.record_error is not None:
            raise self.record_error
        self.recorded.append(dose)


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def dose_store() -> InMemoryDoseStore:
    return InMemoryDoseStore()


@pytest.fixture
def health_client() -> FakeHealthRecordClient:
    return FakeHealthRecordClient()


@pytest.fixture
def tracker(
    dose_store: InMemoryDoseStore,
    health_client: FakeHealthRecordClient,
    clock: FakeClock,
) -> CaffeineTracker:
    return CaffeineTracker(dose_store, health_client, clock=clock)


@pytest.fixture
def settings(tmp_path: Path) -> Settings:
    return Settings(data_path=tmp_path / "doses.plist")


@pytest.fixture
def container(
    settings: Settings,
    tracker: CaffeineTracker,
    health_client: FakeHealthRecordClient,
) -> AppContainer:
    async def close_resources() -> None:
        await tracker.drain()

    return AppContainer(
        settings=settings,
        health_client=health_client,
        tracker=tracker,
        health_sync_service=HealthSyncService(client=health_client, tracker=tracker),
        close_resources=close_resources,
    )
