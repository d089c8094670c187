"""Binary property-list storage for the dose ledger."""

import asyncio
import logging
import os
import plistlib
import tempfile
from collections.abc import Sequence
from datetime import UTC, datetime
from pathlib import Path
from uuid import UUID

from pydantic import BaseModel, ConfigDict, TypeAdapter

from caffeine_tracker.domain.doses import Dose
from caffeine_tracker.errors import StoreCorruptedError, StoreError, StoreWriteError
from caffeine_tracker.services.tracker import DoseStore

_logger = logging.getLogger(__name__)


class StoredDose(BaseModel):
    """On-disk shape of one dose."""

    model_config = ConfigDict(extra="forbid")

    id: UUID
    amount_mg: float
    consumed_at: datetime


_STORED_DOSES = TypeAdapter(list[StoredDose])


class PlistDoseStore(DoseStore):
    """Serialized, change-aware dose storage.

    Loads and saves are queued behind a single lock so at most one of them
    touches the file at a time. File I/O runs in a worker thread.
    """

    def __init__(self, path: Path) -> None:
        self.path = path
        self._lock = asyncio.Lock()
        self._last_saved: tuple[Dose, ...] = ()

    @property
    def last_saved(self) -> tuple[Dose, ...]:
        """Return the doses most recently written to or read from disk."""
        return self._last_saved

    async def save(self, doses: Sequence[Dose]) -> bool:
        """Persist doses unless they match the last saved snapshot.

        Returns True when the file was written.
        """
        snapshot = tuple(doses)
        async with self._lock:
            if snapshot == self._last_saved:
                _logger.debug("Dose list unchanged; skipping save")
                return False
            try:
                payload = encode_doses(snapshot)
            except (TypeError, ValueError, OverflowError) as exc:
                _logger.error("Failed to encode doses: %s", exc)
                raise StoreWriteError(f"Could not encode doses: {exc}") from exc
            try:
                await asyncio.to_thread(_write_atomic, self.path, payload)
            except OSError as exc:
                _logger.error("Failed to write %s: %s", self.path, exc)
                raise StoreWriteError(f"Could not write {self.path}: {exc}") from exc
            self._last_saved = snapshot
            _logger.debug("Saved %s doses to %s", len(snapshot), self.path)
            return True

    async def load(self) -> tuple[Dose, ...]:
        """Read doses from disk.

        A missing file means no prior data. A file that cannot be decoded
        raises ``StoreCorruptedError``.
        """
        async with self._lock:
            _logger.debug("Loading doses from %s", self.path)
            try:
                payload = await asyncio.to_thread(self.path.read_bytes)
            except FileNotFoundError:
                _logger.info("No dose file at %s; starting empty", self.path)
                doses: tuple[Dose, ...] = ()
            except OSError as exc:
                raise StoreError(f"Could not read {self.path}: {exc}") from exc
            else:
                doses = decode_doses(payload)
                _logger.debug("Loaded %s doses from %s", len(doses), self.path)
            self._last_saved = doses
            return doses


def encode_doses(doses: Sequence[Dose]) -> bytes:
    """Encode doses as a binary property list."""
    records = [
        {
            "id": str(dose.id),
            "amount_mg": float(dose.amount_mg),
            # plistlib dates are naive UTC
            "consumed_at": dose.consumed_at.astimezone(UTC).replace(tzinfo=None),
        }
        for dose in doses
    ]
    return plistlib.dumps(records, fmt=plistlib.FMT_BINARY)


def decode_doses(payload: bytes) -> tuple[Dose, ...]:
    """Decode a binary property list produced by ``encode_doses``."""
    try:
        raw = plistlib.loads(payload)
        stored = _STORED_DOSES.validate_python(raw)
    except Exception as exc:
        raise StoreCorruptedError(f"Dose file is unreadable: {exc}") from exc
    return tuple(
        Dose(
            id=record.id,
            amount_mg=record.amount_mg,
            consumed_at=_as_utc(record.consumed_at),
        )
        for record in stored
    )


def _as_utc(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value.replace(tzinfo=UTC)
    return value.astimezone(UTC)


def _write_atomic(path: Path, payload: bytes) -> None:
    """Write to a sibling temp file, then rename it over the target."""
    path.parent.mkdir(parents=True, exist_ok=True)
    fd, tmp_name = tempfile.mkstemp(
        dir=path.parent, prefix=f".{path.name}-", suffix=".tmp"
    )
    try:
        with os.fdopen(fd, "wb") as handle:
            handle.write(payload)
            handle.flush()
            os.fsync(handle.fileno())
        os.replace(tmp_name, path)
    except BaseException:
        Path(tmp_name).unlink(missing_ok=True)
        raise
