import asyncio
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager, suppress
from importlib.metadata import version as pkg_version

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from deckforge.api import cards_router, decks_router, health_router
from deckforge.config import settings
from deckforge.services.asset_store import TileArtStore
from deckforge.services.card_database import CardDatabase, load_card_database


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Application lifespan handler for startup/shutdown."""
    card_db = CardDatabase()
    assets = TileArtStore()
    app.state.card_db = card_db
    app.state.assets = assets

    # Serve /health right away; requests needing cards wait for the load
    loader = asyncio.create_task(load_card_database(card_db))
    try:
        yield
    finally:
        loader.cancel()
        with suppress(asyncio.CancelledError):
            await loader
        card_db.mark_failed("application shut down")
        assets.close()


app = FastAPI(
    title=settings.app_name,
    version=pkg_version("deckforge"),
    lifespan=lifespan,
)

app.include_router(cards_router)
app.include_router(decks_router)
app.include_router(health_router)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=False,
    allow_methods=["*"],
    allow_headers=["*"],
)
