"""
Batch-render a file of deck codes.

Each non-blank line is "[title:]code"; lines starting with "#" are
skipped. Writes one PNG (or .txt for the text layout) per deck into the
output directory and logs a summary.

    python -m deckforge.jobs.render_decks decks.txt --layout wide --output out/
    python -m deckforge.jobs.render_decks decks.txt --layout text --format twist
"""

import argparse
import asyncio
import logging
import re
import sys
from pathlib import Path

from deckforge.config import settings
from deckforge.models.deck import GameFormat, Layout
from deckforge.services.asset_store import TileArtStore
from deckforge.services.batch import BatchEntry, BatchReport, process_batch
from deckforge.services.card_database import CardDatabase, load_card_database

logger = logging.getLogger(__name__)


def read_entries(path: Path) -> list[BatchEntry]:
    entries = []
    with open(path, encoding="utf-8") as f:
        for line in f:
            line = line.strip()
            if line and not line.startswith("#"):
                entries.append(BatchEntry.parse_line(line))
    return entries


def artifact_name(index: int, entry: BatchEntry, layout: Layout) -> str:
    """File name for one rendered deck, e.g. "003-big-priest.png"."""
    stem = re.sub(r"[^a-z0-9]+", "-", (entry.title or "deck").lower()).strip("-") or "deck"
    suffix = "txt" if layout is Layout.TEXT else "png"
    return f"{index + 1:03d}-{stem}.{suffix}"


def write_artifacts(report: BatchReport, layout: Layout, output_dir: Path) -> list[Path]:
    output_dir.mkdir(parents=True, exist_ok=True)
    written = []
    for result in report.results:
        if result.rendered is None:
            logger.warning(
                "Skipped deck %d (%s): %s",
                result.index + 1,
                result.entry.title or result.entry.code[:16],
                result.failure.message if result.failure else "not rendered",
            )
            continue
        path = output_dir / artifact_name(result.index, result.entry, layout)
        path.write_bytes(result.rendered.data)
        written.append(path)
    return written


def run_render(
    input_path: Path,
    layout: Layout,
    output_dir: Path,
    format_tag: int | None = None,
) -> BatchReport:
    """Load card data, render every deck in the file and write the results."""
    entries = read_entries(input_path)
    logger.info("Rendering %d decks from %s as %s", len(entries), input_path, layout.value)

    card_db = CardDatabase()
    asyncio.run(load_card_database(card_db))

    if layout is Layout.TEXT:
        report = process_batch(entries, card_db, None, layout, format_tag=format_tag)
    else:
        with TileArtStore() as assets:
            report = process_batch(entries, card_db, assets, layout, format_tag=format_tag)

    written = write_artifacts(report, layout, output_dir)
    logger.info("Wrote %d files to %s. %s", len(written), output_dir, report.summary())
    return report


def main(argv: list[str] | None = None) -> int:
    """CLI entry point. Exits non-zero if any deck failed."""
    parser = argparse.ArgumentParser(description=__doc__.split("\n\n")[0].strip())
    parser.add_argument("input", type=Path, help="file with one [title:]code per line")
    parser.add_argument(
        "--layout",
        choices=[layout.value for layout in Layout],
        default=Layout.GROUPS.value,
        help="image layout (default: groups)",
    )
    parser.add_argument("--output", type=Path, default=Path("decks"), help="output directory")
    parser.add_argument(
        "--format",
        dest="format_tag",
        type=GameFormat.parse,
        default=None,
        help="show every deck as this format (name or number) instead of its own",
    )
    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if settings.debug else logging.INFO,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )
    report = run_render(args.input, Layout(args.layout), args.output, args.format_tag)
    return 1 if report.failed else 0


if __name__ == "__main__":
    sys.exit(main())
