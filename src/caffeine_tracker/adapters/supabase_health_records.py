"""Supabase-backed health-record service."""

import asyncio
import logging
from dataclasses import dataclass
from datetime import UTC, datetime
from uuid import UUID

from supabase import Client

from caffeine_tracker.domain.doses import Dose
from caffeine_tracker.services.health_records import HealthRecordClient

_TABLE = "caffeine_doses"

_logger = logging.getLogger(__name__)


@dataclass
class SupabaseHealthRecordClient(HealthRecordClient):
    """Stores doses in the ``caffeine_doses`` table.

    Deleted doses keep their row with ``deleted_at`` set so other devices can
    learn about the deletion.
    """

    client: Client

    async def authorize(self) -> bool:
        """Return True when the doses table can be queried."""
        try:
            await asyncio.to_thread(self._probe)
        except Exception as exc:
            _logger.warning("Supabase health records unavailable: %s", exc)
            return False
        return True

    async def fetch_new_doses(self, since: datetime) -> list[Dose]:
        """Return live doses consumed at or after ``since``."""
        return await asyncio.to_thread(self._select_doses, since)

    async def fetch_deleted_ids(self, since: datetime) -> set[UUID]:
        """Return ids of doses deleted at or after ``since``."""
        return await asyncio.to_thread(self._select_deleted_ids, since)

    async def record_dose(self, dose: Dose) -> None:
        """Insert or update a dose row."""
        await asyncio.to_thread(self._upsert, dose)

    def _probe(self) -> None:
        self.client.table(_TABLE).select("id").limit(1).execute()

    def _select_doses(self, since: datetime) -> list[Dose]:
        response = (
            self.client.table(_TABLE)
            .select("id, amount_mg, consumed_at")
            .gte("consumed_at", since.astimezone(UTC).isoformat())
            .is_("deleted_at", "null")
            .order("consumed_at", desc=False)
            .execute()
        )
        return [_parse_row(row) for row in response.data or []]

    def _select_deleted_ids(self, since: datetime) -> set[UUID]:
        response = (
            self.client.table(_TABLE)
            .select("id")
            .gte("deleted_at", since.astimezone(UTC).isoformat())
            .execute()
        )
        return {UUID(str(row["id"])) for row in response.data or []}

    def _upsert(self, dose: Dose) -> None:
        self.client.table(_TABLE).upsert(
            {
                "id": str(dose.id),
                "amount_mg": dose.amount_mg,
                "consumed_at": dose.consumed_at.astimezone(UTC).isoformat(),
            }
        ).execute()


def _parse_row(row: dict[str, object]) -> Dose:
    consumed_at = datetime.fromisoformat(str(row["consumed_at"]))
    if consumed_at.tzinfo is None:
        consumed_at = consumed_at.replace(tzinfo=UTC)
    return Dose(
        id=UUID(str(row["id"])),
        amount_mg=float(row.get("amount_mg") or 0.0),
        consumed_at=consumed_at,
    )
