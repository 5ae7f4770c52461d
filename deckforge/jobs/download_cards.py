"""
Download HearthstoneJSON card data.

Run this job to refresh the card data the API and batch renderer load at
startup. The downloaded file is loaded once before the job reports
success, so a truncated or empty download is caught here rather than at
the next startup.

    python -m deckforge.jobs.download_cards --output data/cards.json
"""

import argparse
import asyncio
import logging
import sys
from pathlib import Path

from deckforge.config import settings
from deckforge.services.card_database import CardDatabase, download_card_database

logger = logging.getLogger(__name__)


async def run_download(output_path: Path | None = None, url: str | None = None) -> int:
    """
    Download the card list and check that it loads.

    Returns:
        Number of cards with a numeric id in the downloaded file

    Raises:
        ValueError: If the file is not card data or holds no usable cards
    """
    url = url or settings.card_data_url
    logger.info("Downloading card data from %s...", url)

    try:
        path = await download_card_database(output_path, url)
    except Exception as e:
        logger.error("Failed to download card data: %s", e)
        raise

    card_db = CardDatabase()
    card_db.load_file(path)
    if not len(card_db):
        raise ValueError(f"Card data at {path} has no cards with a dbfId")

    logger.info("Downloaded %d cards to %s", len(card_db), path)
    return len(card_db)


def main(argv: list[str] | None = None) -> int:
    """CLI entry point."""
    parser = argparse.ArgumentParser(description=__doc__.split("\n\n")[0].strip())
    parser.add_argument(
        "--output",
        type=Path,
        default=None,
        help=f"where to save the card list (default: {settings.card_data_path})",
    )
    parser.add_argument("--url", default=None, help="card data URL (default: settings.card_data_url)")
    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )
    asyncio.run(run_download(args.output, args.url))
    return 0


if __name__ == "__main__":
    sys.exit(main())
