"""Domain models for caffeine doses."""

from dataclasses import dataclass, field
from datetime import datetime
from uuid import UUID, uuid4


@dataclass(frozen=True)
class Dose:
    """A single caffeine intake event."""

    amount_mg: float
    consumed_at: datetime
    id: UUID = field(default_factory=uuid4)
