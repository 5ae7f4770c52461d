"""
Shared API dependencies.

The card database and artwork store live on app.state (set up by the
lifespan handler). Tests swap them with app.dependency_overrides.
"""

from fastapi import HTTPException, Request

from deckforge.models.failure import KnownError
from deckforge.services.asset_store import AssetStore
from deckforge.services.card_database import CardDatabase


def get_card_database(request: Request) -> CardDatabase:
    return request.app.state.card_db


def get_asset_store(request: Request) -> AssetStore:
    return request.app.state.assets


def http_error(error: KnownError, **extra: object) -> HTTPException:
    """HTTPException carrying the error's status code and FailureDetail body."""
    detail = error.to_detail().model_dump(mode="json")
    detail.update(extra)
    return HTTPException(status_code=error.status_code, detail=detail)
