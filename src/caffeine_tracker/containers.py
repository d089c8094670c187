"""Dependency container wiring for the application."""

from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from datetime import timedelta

from supabase import create_client

from caffeine_tracker.adapters.plist_dose_store import PlistDoseStore
from caffeine_tracker.adapters.supabase_health_records import (
    SupabaseHealthRecordClient,
)
from caffeine_tracker.config import Settings
from caffeine_tracker.domain.bands import BandThresholds
from caffeine_tracker.domain.decay import DecayModel
from caffeine_tracker.services.health_records import (
    HealthRecordClient,
    HealthSyncService,
    LocalOnlyHealthRecordClient,
)
from caffeine_tracker.services.tracker import CaffeineTracker


@dataclass
class AppContainer:
    """Holds application-wide dependencies."""

    settings: Settings
    health_client: HealthRecordClient
    tracker: CaffeineTracker
    health_sync_service: HealthSyncService
    close_resources: Callable[[], Awaitable[None]]


def build_health_client(settings: Settings) -> HealthRecordClient:
    """Return the configured health-record client."""
    if not settings.health_records_enabled:
        return LocalOnlyHealthRecordClient()
    supabase_client = create_client(
        str(settings.supabase_url), str(settings.supabase_service_key)
    )
    return SupabaseHealthRecordClient(supabase_client)


def build_container(settings: Settings | None = None) -> AppContainer:
    """Create the default dependency container."""
    resolved_settings = settings or Settings()
    health_client = build_health_client(resolved_settings)
    tracker = CaffeineTracker(
        store=PlistDoseStore(resolved_settings.data_path),
        health_client=health_client,
        decay_model=DecayModel(half_life_hours=resolved_settings.half_life_hours),
        reference_serving_mg=resolved_settings.reference_serving_mg,
        level_thresholds=BandThresholds(
            moderate=resolved_settings.level_moderate_mg,
            high=resolved_settings.level_high_mg,
        ),
        cups_thresholds=BandThresholds(
            moderate=resolved_settings.cups_moderate,
            high=resolved_settings.cups_high,
        ),
        retention=timedelta(hours=resolved_settings.retention_hours),
    )
    health_sync_service = HealthSyncService(client=health_client, tracker=tracker)

    async def close_resources() -> None:
        await tracker.drain()

    return AppContainer(
        settings=resolved_settings,
        health_client=health_client,
        tracker=tracker,
        health_sync_service=health_sync_service,
        close_resources=close_resources,
    )
