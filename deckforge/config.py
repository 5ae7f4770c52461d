from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment."""

    model_config = SettingsConfigDict(env_file=".env", env_prefix="DECKFORGE_")

    app_name: str = "deckforge"
    debug: bool = False

    # HearthstoneJSON card data (dbfId keyed)
    card_data_url: str = "https://api.hearthstonejson.com/v1/latest/enUS/cards.json"
    card_data_path: str = "data/cards.json"
    database_load_timeout: float = 30.0

    # Artwork tiles, formatted with the card's string code
    tile_art_url: str = "https://art.hearthstonejson.com/v1/tiles/{card_code}.png"
    asset_cache_dir: str = "data/tiles"
    asset_fetch_timeout: float = 10.0
    asset_fetch_concurrency: int = 4

    render_workers: int = 4
    batch_workers: int = 4

    # Minimum rapidfuzz partial ratio (0-100) for the fuzzy name tier
    fuzzy_match_threshold: int = 80

    # Lower bounds of the Groups layout mana columns; the last one is open-ended
    group_cost_buckets: list[int] = [0, 1, 2, 3, 4, 5, 6, 7]
    wide_target_width: int = 1680

    # Optional TrueType font for deck images, Pillow's bundled font otherwise
    font_path: str | None = None


settings = Settings()
