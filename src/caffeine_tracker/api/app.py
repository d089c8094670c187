"""FastAPI application factory."""

import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from datetime import UTC, datetime

from fastapi import FastAPI, HTTPException, Request, status
from fastapi.responses import JSONResponse

from caffeine_tracker.api.models import (
    CaffeineSummary,
    DoseListResponse,
    DoseRequest,
    DoseResponse,
    DrinkResponse,
    LevelResponse,
    SyncResponse,
)
from caffeine_tracker.app_logging import configure_logging
from caffeine_tracker.containers import AppContainer
from caffeine_tracker.domain.drinks import DrinkType
from caffeine_tracker.errors import TrackerNotReadyError


def create_app(container: AppContainer) -> FastAPI:
    """Create a FastAPI app configured with dependencies."""
    configure_logging(container.settings.log_level)
    logger = logging.getLogger(__name__)

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        state_container: AppContainer = app.state.container
        # A corrupted dose file aborts startup here.
        await state_container.tracker.start()
        await state_container.health_sync_service.sync()
        yield
        await state_container.close_resources()
        logger.info("Caffeine tracker stopped")

    app = FastAPI(lifespan=lifespan)
    app.state.container = container

    @app.exception_handler(TrackerNotReadyError)
    async def tracker_not_ready(
        request: Request, exc: TrackerNotReadyError
    ) -> JSONResponse:
        return JSONResponse(
            status_code=status.HTTP_409_CONFLICT, content={"detail": str(exc)}
        )

    @app.get("/health")
    async def health() -> dict[str, str]:
        """Simple health check endpoint."""
        return {"status": "ok"}

    @app.get("/caffeine")
    async def caffeine_summary(request: Request) -> CaffeineSummary:
        """Return the current caffeine level and today's intake."""
        tracker = _container(request).tracker
        return CaffeineSummary(
            state=tracker.state.value,
            level_mg=tracker.current_level(),
            level_band=tracker.level_band(),
            cups_today=tracker.cups_today(),
            cups_band=tracker.cups_band(),
            dose_count=len(tracker.doses),
        )

    @app.get("/caffeine/level")
    async def caffeine_level(
        request: Request, at: datetime | None = None
    ) -> LevelResponse:
        """Return the caffeine level at a moment, defaulting to now."""
        tracker = _container(request).tracker
        moment = _as_aware(at) if at is not None else tracker.clock()
        return LevelResponse(at=moment, level_mg=tracker.level_at(moment))

    @app.get("/doses")
    async def list_doses(request: Request) -> DoseListResponse:
        """Return doses from the last day, oldest first."""
        tracker = _container(request).tracker
        return DoseListResponse(
            doses=[DoseResponse.from_dose(dose) for dose in tracker.doses]
        )

    @app.post("/doses", status_code=status.HTTP_201_CREATED)
    async def add_dose(payload: DoseRequest, request: Request) -> DoseResponse:
        """Record a dose given in milligrams or drink servings.

        A dose timed in the future or more than a day ago is answered with
        201 and reported to the health-record service, but it is not kept in
        the dose list.
        """
        tracker = _container(request).tracker
        amount_mg = _resolve_amount(payload)
        consumed_at = (
            _as_aware(payload.consumed_at) if payload.consumed_at is not None else None
        )
        dose = tracker.add_dose(amount_mg, consumed_at)
        return DoseResponse.from_dose(dose)

    @app.get("/drinks")
    async def list_drinks() -> list[DrinkResponse]:
        """Return the drink catalogue."""
        return [
            DrinkResponse(key=drink.key, mg_per_serving=drink.mg_per_serving)
            for drink in DrinkType
        ]

    @app.post("/sync")
    async def sync(request: Request) -> SyncResponse:
        """Pull dose changes from the health-record service."""
        synced = await _container(request).health_sync_service.sync()
        return SyncResponse(synced=synced)

    return app


def _container(request: Request) -> AppContainer:
    return request.app.state.container


def _resolve_amount(payload: DoseRequest) -> float:
    if payload.amount_mg is not None:
        return payload.amount_mg
    if payload.drink_type is None:
        raise HTTPException(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            detail="Provide amount_mg or drink_type.",
        )
    try:
        drink = DrinkType.from_key(payload.drink_type)
    except ValueError as exc:
        raise HTTPException(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY, detail=str(exc)
        ) from exc
    return drink.mg_per_serving * payload.servings


def _as_aware(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value.replace(tzinfo=UTC)
    return value
