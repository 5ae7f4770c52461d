"""
Card tile renderer.

A tile is one fixed-size strip per deck entry:

    | cost | band | name ............ artwork fading in | count |

Tiles are independent of each other, so they can be drawn on worker
threads. Fonts are cached per thread.
"""

import io
import logging
import threading

from PIL import Image, ImageDraw, ImageFont, UnidentifiedImageError

from deckforge.config import settings
from deckforge.models.card import Card, Rarity

logger = logging.getLogger(__name__)

# Tile geometry, sized around the artwork crops served by the tile host
CROP_WIDTH = 243
TILE_HEIGHT = 64

INFO_WIDTH = TILE_HEIGHT
COLOR_BAND_WIDTH = TILE_HEIGHT // 8
MANA_WIDTH = INFO_WIDTH - COLOR_BAND_WIDTH

MARGIN = 5

TILE_WIDTH = CROP_WIDTH * 2 + INFO_WIDTH
ROW_HEIGHT = TILE_HEIGHT + MARGIN
COLUMN_WIDTH = TILE_WIDTH + MARGIN

CROP_OFFSET = TILE_WIDTH - CROP_WIDTH - INFO_WIDTH

NAME_OFFSET = INFO_WIDTH + 10
NAME_WIDTH = TILE_WIDTH - INFO_WIDTH - NAME_OFFSET - 6

NAME_SIZES = (30, 24, 19, 15)
COST_SIZE = 36
HEADING_SIZE = 36

COLORS = {
    "background": (255, 255, 255),
    "ink": (10, 10, 10),
    "white": (255, 255, 255),
    "mana": (54, 98, 156),
}

_fonts = threading.local()


def _load_font(size: int) -> ImageFont.FreeTypeFont | ImageFont.ImageFont:
    """Configured TrueType font, else a common system font, else Pillow's own."""
    candidates = [settings.font_path, "DejaVuSans-Bold.ttf", "Arial Bold.ttf"]
    for name in candidates:
        if not name:
            continue
        try:
            return ImageFont.truetype(name, size)
        except OSError:
            continue

    logger.debug("No TrueType font found, using Pillow's default font at size %d", size)
    return ImageFont.load_default(size=size)


def get_font(size: int) -> ImageFont.FreeTypeFont | ImageFont.ImageFont:
    """Font of the given size, cached for the calling thread."""
    cache: dict[int, ImageFont.FreeTypeFont | ImageFont.ImageFont] | None = getattr(
        _fonts, "cache", None
    )
    if cache is None:
        cache = {}
        _fonts.cache = cache
    font = cache.get(size)
    if font is None:
        font = _load_font(size)
        cache[size] = font
    return font


def text_width(text: str, font: ImageFont.FreeTypeFont | ImageFont.ImageFont) -> float:
    return font.getlength(text)


def line_height(font: ImageFont.FreeTypeFont | ImageFont.ImageFont) -> int:
    bbox = font.getbbox("Ag")
    return int(bbox[3]) + 2


def wrap_text(
    text: str,
    font: ImageFont.FreeTypeFont | ImageFont.ImageFont,
    max_width: float,
) -> list[str]:
    """
    Word-wrap text to a pixel width.

    Breaks at spaces. A single word wider than max_width is split between
    characters. No returned line is wider than max_width, except a single
    character that is wider on its own.
    """
    lines: list[str] = []
    current = ""

    for word in text.split():
        candidate = f"{current} {word}" if current else word
        if text_width(candidate, font) <= max_width:
            current = candidate
            continue

        if current:
            lines.append(current)
            current = ""

        if text_width(word, font) <= max_width:
            current = word
            continue

        # Word alone is too wide: split between characters
        for char in word:
            if current and text_width(current + char, font) > max_width:
                lines.append(current)
                current = ""
            current += char

    if current:
        lines.append(current)
    return lines


def fit_name(name: str, max_width: float, max_height: int) -> tuple[ImageFont.FreeTypeFont | ImageFont.ImageFont, list[str]]:
    """
    Largest name size whose wrapped lines fit the label box.

    Falls back to the smallest size, keeping as many lines as fit.
    """
    for size in NAME_SIZES:
        font = get_font(size)
        lines = wrap_text(name, font, max_width)
        if len(lines) * line_height(font) <= max_height:
            return font, lines

    font = get_font(NAME_SIZES[-1])
    lines = wrap_text(name, font, max_width)
    keep = max(1, max_height // line_height(font))
    return font, lines[:keep]


def _draw_centered(
    draw: ImageDraw.ImageDraw,
    text: str,
    box: tuple[int, int, int, int],
    font: ImageFont.FreeTypeFont | ImageFont.ImageFont,
    fill: tuple[int, int, int],
) -> None:
    """Draw text centered in an (x0, y0, x1, y1) box."""
    left, top, right, bottom = draw.textbbox((0, 0), text, font=font)
    x = box[0] + (box[2] - box[0] - (right - left)) // 2 - left
    y = box[1] + (box[3] - box[1] - (bottom - top)) // 2 - top
    draw.text((x, y), text, font=font, fill=fill)


def count_label(count: int, rarity: Rarity) -> str:
    """Glyph in the rarity square: the count above one, "!" for lone noncollectibles."""
    if count > 1:
        return str(count)
    if rarity is Rarity.NONCOLLECTIBLE:
        return "!"
    return ""


def _horizontal_fade(color: tuple[int, int, int], size: tuple[int, int]) -> Image.Image:
    """Opaque color on the left fading to transparent on the right."""
    width, height = size
    mask = Image.new("L", (width, 1))
    mask.putdata([255 - (x * 255) // max(1, width - 1) for x in range(width)])
    mask = mask.resize((width, height), Image.Resampling.NEAREST)

    layer = Image.new("RGBA", size, (*color, 0))
    layer.putalpha(mask)
    return layer


def load_artwork(data: bytes) -> Image.Image:
    """
    Decode artwork bytes into a crop-sized RGBA image.

    Raises:
        ValueError: If the bytes are not a readable image
    """
    try:
        with Image.open(io.BytesIO(data)) as img:
            art = img.convert("RGBA")
    except (UnidentifiedImageError, OSError) as e:
        raise ValueError(f"unreadable artwork: {e}") from e

    if art.size != (CROP_WIDTH, TILE_HEIGHT):
        art = art.resize((CROP_WIDTH, TILE_HEIGHT), Image.Resampling.LANCZOS)
    return art


def render_tile(card: Card, count: int, artwork: Image.Image | None) -> Image.Image:
    """
    Draw one card tile.

    Args:
        card: Card to draw
        count: Copies in the deck (must be at least 1)
        artwork: Crop-sized artwork, or None to draw the placeholder fill

    Returns:
        RGB image of TILE_WIDTH x TILE_HEIGHT
    """
    if count < 1:
        raise ValueError(f"count must be at least 1, got {count}")

    tile = Image.new("RGBA", (TILE_WIDTH, TILE_HEIGHT), (*COLORS["ink"], 255))
    draw = ImageDraw.Draw(tile)

    # Cost badge
    draw.rectangle((0, 0, MANA_WIDTH - 1, TILE_HEIGHT - 1), fill=COLORS["mana"])
    _draw_centered(
        draw, str(card.mana_cost), (0, 0, MANA_WIDTH, TILE_HEIGHT), get_font(COST_SIZE), COLORS["white"]
    )

    # Class band, one stripe per class
    band_colors = card.class_colors()
    stripe = TILE_HEIGHT / len(band_colors)
    for i, color in enumerate(band_colors):
        y0 = round(i * stripe)
        y1 = round((i + 1) * stripe) - 1
        draw.rectangle((MANA_WIDTH, y0, INFO_WIDTH - 1, y1), fill=color)

    # Artwork, or flat rarity fill when it is missing
    if artwork is not None:
        tile.alpha_composite(artwork, (CROP_OFFSET, 0))
        tile.alpha_composite(_horizontal_fade(COLORS["ink"], (CROP_WIDTH, TILE_HEIGHT)), (CROP_OFFSET, 0))
    else:
        draw.rectangle(
            (CROP_OFFSET, 0, CROP_OFFSET + CROP_WIDTH - 1, TILE_HEIGHT - 1),
            fill=card.rarity.color,
        )

    # Name label
    font, lines = fit_name(card.name, NAME_WIDTH, TILE_HEIGHT - 4)
    height = line_height(font)
    y = (TILE_HEIGHT - height * len(lines)) // 2
    for line in lines:
        draw.text((NAME_OFFSET, y), line, font=font, fill=COLORS["white"])
        y += height

    # Rarity square with count, drawn last to overlap the artwork
    draw.rectangle((TILE_WIDTH - INFO_WIDTH, 0, TILE_WIDTH - 1, TILE_HEIGHT - 1), fill=card.rarity.color)
    label = count_label(count, card.rarity)
    if label:
        _draw_centered(
            draw,
            label,
            (TILE_WIDTH - INFO_WIDTH, 0, TILE_WIDTH, TILE_HEIGHT),
            get_font(COST_SIZE),
            COLORS["white"],
        )

    return tile.convert("RGB")


def render_heading(text: str) -> Image.Image:
    """Tile-sized text heading on the page background."""
    tile = Image.new("RGB", (TILE_WIDTH, TILE_HEIGHT), COLORS["background"])
    draw = ImageDraw.Draw(tile)
    font = get_font(HEADING_SIZE)
    lines = wrap_text(text, font, TILE_WIDTH - 20)[:1]
    if lines:
        _, top, _, bottom = draw.textbbox((0, 0), lines[0], font=font)
        draw.text((15, (TILE_HEIGHT - (bottom - top)) // 2 - top), lines[0], font=font, fill=COLORS["ink"])
    return tile
