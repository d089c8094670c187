"""Request and response models for the HTTP API."""

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, Field

from caffeine_tracker.domain.bands import Band
from caffeine_tracker.domain.doses import Dose


class DoseRequest(BaseModel):
    """A dose to record, given in milligrams or as servings of a drink."""

    amount_mg: float | None = None
    drink_type: str | None = None
    servings: float = Field(default=1.0, gt=0)
    consumed_at: datetime | None = None


class DoseResponse(BaseModel):
    """A recorded dose."""

    id: UUID
    amount_mg: float
    consumed_at: datetime

    @classmethod
    def from_dose(cls, dose: Dose) -> "DoseResponse":
        """Build a response from a domain dose."""
        return cls(id=dose.id, amount_mg=dose.amount_mg, consumed_at=dose.consumed_at)


class DoseListResponse(BaseModel):
    """Doses in the ledger, oldest first."""

    doses: list[DoseResponse]


class CaffeineSummary(BaseModel):
    """Current caffeine level and today's intake."""

    state: str
    level_mg: float
    level_band: Band
    cups_today: float
    cups_band: Band
    dose_count: int


class LevelResponse(BaseModel):
    """Caffeine active at a moment."""

    at: datetime
    level_mg: float


class DrinkResponse(BaseModel):
    """A catalogue drink and its caffeine per serving."""

    key: str
    mg_per_serving: float


class SyncResponse(BaseModel):
    """Whether a health-record sync was applied."""

    synced: bool
