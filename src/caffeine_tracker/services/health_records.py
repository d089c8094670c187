"""Synchronization with an external health-record service."""

import logging
from dataclasses import dataclass
from datetime import datetime
from typing import TYPE_CHECKING, Protocol
from uuid import UUID

from caffeine_tracker.domain.doses import Dose

if TYPE_CHECKING:
    from caffeine_tracker.services.tracker import CaffeineTracker

_logger = logging.getLogger(__name__)


class HealthRecordClient(Protocol):
    """Interface for a service that stores caffeine doses."""

    async def authorize(self) -> bool:
        """Return True when the service may be read and written."""

    async def fetch_new_doses(self, since: datetime) -> list[Dose]:
        """Return live doses consumed at or after ``since``."""

    async def fetch_deleted_ids(self, since: datetime) -> set[UUID]:
        """Return ids of doses deleted at or after ``since``."""

    async def record_dose(self, dose: Dose) -> None:
        """Store a dose; raise on failure."""


@dataclass
class LocalOnlyHealthRecordClient(HealthRecordClient):
    """Client used when no health-record service is configured."""

    async def authorize(self) -> bool:
        """Always deny, keeping the tracker local-only."""
        return False

    async def fetch_new_doses(self, since: datetime) -> list[Dose]:
        return []

    async def fetch_deleted_ids(self, since: datetime) -> set[UUID]:
        return set()

    async def record_dose(self, dose: Dose) -> None:
        _logger.debug("No health-record service; dose %s kept locally", dose.id)


@dataclass
class HealthSyncService:
    """Pulls dose changes from the health-record service into a tracker."""

    client: HealthRecordClient
    tracker: "CaffeineTracker"
    anchor: datetime | None = None

    async def sync(self) -> bool:
        """Fetch and apply remote changes.

        Additions are fetched over the whole retention window on every sync,
        since a dose can be recorded elsewhere with a consumption time before
        the previous sync. Deletions are fetched since the previous successful
        sync. Failures are logged and leave the tracker untouched; the next
        sync tries again.
        """
        try:
            authorized = await self.client.authorize()
        except Exception as exc:
            _logger.warning("Health-record authorization failed: %s", exc)
            return False
        if not authorized:
            _logger.info("Health records not authorized; staying local-only")
            return False

        started = self.tracker.clock()
        window_start = started - self.tracker.retention
        try:
            fetched = await self.client.fetch_new_doses(window_start)
            deleted_ids = await self.client.fetch_deleted_ids(
                self.anchor or window_start
            )
        except Exception as exc:
            _logger.warning("Fetching health records failed: %s", exc)
            return False

        known_ids = {dose.id for dose in self.tracker.doses}
        additions = [dose for dose in fetched if dose.id not in known_ids]
        self.tracker.apply_sync(additions, deleted_ids)
        self.anchor = started
        _logger.info(
            "Health sync applied: added=%s deleted=%s", len(additions), len(deleted_ids)
        )
        return True
