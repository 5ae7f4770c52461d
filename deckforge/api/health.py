"""
Health check endpoints.

Provides liveness and readiness probes. Readiness tracks the card database,
which loads in the background after startup.
"""

from typing import Annotated

from fastapi import APIRouter, Depends, Response, status
from pydantic import BaseModel

from deckforge.api.dependencies import get_card_database
from deckforge.services.card_database import CardDatabase

router = APIRouter(tags=["health"])


class HealthResponse(BaseModel):
    """Health check response."""

    status: str
    card_database: str | None = None
    cards: int | None = None


@router.get("/health", response_model=HealthResponse)
async def health() -> HealthResponse:
    """
    Liveness probe.

    Returns healthy if the service is running.
    Does not check dependencies.
    """
    return HealthResponse(status="healthy")


@router.get(
    "/ready",
    response_model=HealthResponse,
    responses={503: {"model": HealthResponse}},
)
async def ready(
    response: Response,
    card_db: Annotated[CardDatabase, Depends(get_card_database)],
) -> HealthResponse:
    """
    Readiness probe.

    Returns ready once the card database has loaded. Returns 503 while it
    is still loading or if loading failed.
    """
    if card_db.is_loaded:
        return HealthResponse(status="ready", card_database="loaded", cards=len(card_db))

    response.status_code = status.HTTP_503_SERVICE_UNAVAILABLE
    state = "failed" if card_db.load_error else "loading"
    return HealthResponse(status="not ready", card_database=state)
