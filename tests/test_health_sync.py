"""Tests for health-record synchronization."""

import asyncio
from datetime import timedelta

from caffeine_tracker.domain.doses import Dose
from caffeine_tracker.services.health_records import (
    HealthSyncService,
    LocalOnlyHealthRecordClient,
)
from caffeine_tracker.services.tracker import CaffeineTracker
from tests.conftest import T0, FakeClock, FakeHealthRecordClient, InMemoryDoseStore


def test_sync_applies_new_and_deleted_doses(
    tracker: CaffeineTracker,
    dose_store: InMemoryDoseStore,
    health_client: FakeHealthRecordClient,
) -> None:
    removed = Dose(amount_mg=63.0, consumed_at=T0 - timedelta(hours=3))
    kept = Dose(amount_mg=95.0, consumed_at=T0 - timedelta(hours=1))
    incoming = Dose(amount_mg=47.0, consumed_at=T0 - timedelta(hours=2))
    dose_store.stored = (removed, kept)
    health_client.new_doses = [incoming]
    health_client.deleted_ids = {removed.id}
    service = HealthSyncService(client=health_client, tracker=tracker)

    async def scenario() -> bool:
        await tracker.start()
        synced = await service.sync()
        await tracker.drain()
        return synced

    assert asyncio.run(scenario()) is True
    assert tracker.doses == (incoming, kept)
    assert health_client.fetch_since == [T0 - timedelta(hours=24)]
    assert health_client.deleted_since == [T0 - timedelta(hours=24)]
    assert service.anchor == T0


def test_sync_skips_doses_already_in_ledger(
    tracker: CaffeineTracker,
    dose_store: InMemoryDoseStore,
    health_client: FakeHealthRecordClient,
) -> None:
    known = Dose(amount_mg=95.0, consumed_at=T0 - timedelta(hours=1))
    dose_store.stored = (known,)
    health_client.new_doses = [known]
    service = HealthSyncService(client=health_client, tracker=tracker)

    async def scenario() -> None:
        await tracker.start()
        await tracker.drain()
        await service.sync()
        await tracker.drain()

    asyncio.run(scenario())

    assert tracker.doses == (known,)
    assert dose_store.writes == 0


def test_sync_fetches_deletions_since_previous_anchor(
    tracker: CaffeineTracker,
    health_client: FakeHealthRecordClient,
    clock: FakeClock,
) -> None:
    service = HealthSyncService(client=health_client, tracker=tracker)

    async def scenario() -> None:
        await tracker.start()
        await service.sync()
        clock.advance(timedelta(minutes=30))
        await service.sync()

    asyncio.run(scenario())

    assert health_client.fetch_since == [
        T0 - timedelta(hours=24),
        T0 + timedelta(minutes=30) - timedelta(hours=24),
    ]
    assert health_client.deleted_since == [T0 - timedelta(hours=24), T0]
    assert service.anchor == T0 + timedelta(minutes=30)


def test_sync_pulls_backdated_dose_recorded_after_previous_sync(
    tracker: CaffeineTracker,
    health_client: FakeHealthRecordClient,
    clock: FakeClock,
) -> None:
    service = HealthSyncService(client=health_client, tracker=tracker)
    backdated = Dose(amount_mg=95.0, consumed_at=T0 - timedelta(hours=2))

    async def scenario() -> None:
        await tracker.start()
        await service.sync()
        assert tracker.doses == ()
        clock.advance(timedelta(minutes=30))
        health_client.new_doses = [backdated]
        await service.sync()
        await tracker.drain()

    asyncio.run(scenario())

    assert tracker.doses == (backdated,)


def test_repeated_sync_does_not_duplicate_doses(
    tracker: CaffeineTracker,
    dose_store: InMemoryDoseStore,
    health_client: FakeHealthRecordClient,
    clock: FakeClock,
) -> None:
    remote = Dose(amount_mg=63.0, consumed_at=T0 - timedelta(hours=1))
    health_client.new_doses = [remote]
    service = HealthSyncService(client=health_client, tracker=tracker)

    async def scenario() -> None:
        await tracker.start()
        await service.sync()
        await tracker.drain()
        clock.advance(timedelta(minutes=30))
        await service.sync()
        await tracker.drain()

    asyncio.run(scenario())

    assert tracker.doses == (remote,)
    assert dose_store.writes == 1


def test_sync_when_unauthorized_stays_local(
    tracker: CaffeineTracker, health_client: FakeHealthRecordClient
) -> None:
    health_client.authorized = False
    health_client.new_doses = [Dose(amount_mg=95.0, consumed_at=T0)]
    service = HealthSyncService(client=health_client, tracker=tracker)

    async def scenario() -> bool:
        await tracker.start()
        return await service.sync()

    assert asyncio.run(scenario()) is False
    assert tracker.doses == ()
    assert health_client.fetch_since == []
    assert service.anchor is None


def test_sync_fetch_failure_leaves_tracker_untouched(
    tracker: CaffeineTracker, health_client: FakeHealthRecordClient
) -> None:
    health_client.fetch_error = TimeoutError("slow network")
    service = HealthSyncService(client=health_client, tracker=tracker)

    async def scenario() -> bool:
        await tracker.start()
        return await service.sync()

    assert asyncio.run(scenario()) is False
    assert tracker.doses == ()
    assert service.anchor is None


def test_local_only_client_denies_authorization() -> None:
    client = LocalOnlyHealthRecordClient()
    dose = Dose(amount_mg=95.0, consumed_at=T0)

    async def scenario() -> tuple[bool, list[Dose]]:
        await client.record_dose(dose)
        return await client.authorize(), await client.fetch_new_doses(T0)

    assert asyncio.run(scenario()) == (False, [])
