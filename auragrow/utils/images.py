"""Chart rendering helpers for sending growth projections to Telegram."""

import io
import logging
import math
from typing import List, Sequence, Tuple

from PIL import Image, ImageDraw, ImageFont

from auragrow.services.growth import GrowthPoint
from auragrow.utils.formatters import format_usd

logger = logging.getLogger(__name__)

SIMPLE_COLOR = (107, 114, 128)
COMPOUND_COLOR = (22, 163, 74)
AXIS_COLOR = (55, 65, 81)
GRID_COLOR = (229, 231, 235)
BACKGROUND = (255, 255, 255)


def render_growth_chart(
    series: Sequence[GrowthPoint],
    width: int = 800,
    height: int = 450,
) -> io.BytesIO:
    """
    Draw simple and compound growth as two lines over the years.

    Args:
        series: Points produced by ``build_series``.
        width: Image width in pixels.
        height: Image height in pixels.

    Returns:
        BytesIO buffer containing the PNG chart, ready for Telegram.
    """
    if not series:
        raise ValueError("Cannot chart an empty series.")

    margin_left, margin_right, margin_top, margin_bottom = 110, 30, 40, 50
    plot_w = width - margin_left - margin_right
    plot_h = height - margin_top - margin_bottom

    max_year = max(point.year for point in series) or 1
    values = [point.simple for point in series] + [point.compound for point in series]
    if not all(math.isfinite(value) for value in values):
        raise ValueError("Cannot chart non-finite values.")
    low = min(0.0, min(values))
    high = max(values)
    span = (high - low) or 1.0

    def to_xy(year: int, value: float) -> Tuple[float, float]:
        x = margin_left + plot_w * year / max_year
        y = margin_top + plot_h * (1 - (value - low) / span)
        return x, y

    image = Image.new("RGB", (width, height), BACKGROUND)
    draw = ImageDraw.Draw(image)
    font = ImageFont.load_default()

    for step in range(5):
        value = low + span * step / 4
        _, y = to_xy(0, value)
        draw.line([(margin_left, y), (width - margin_right, y)], fill=GRID_COLOR)
        draw.text((8, y - 6), format_usd(value), fill=AXIS_COLOR, font=font)

    draw.line(
        [(margin_left, margin_top), (margin_left, height - margin_bottom), (width - margin_right, height - margin_bottom)],
        fill=AXIS_COLOR,
        width=2,
    )
    for year in sorted({0, max_year // 2, max_year}):
        x, _ = to_xy(year, low)
        draw.text((x - 8, height - margin_bottom + 8), f"{year}y", fill=AXIS_COLOR, font=font)

    simple_line: List[Tuple[float, float]] = [to_xy(p.year, p.simple) for p in series]
    compound_line: List[Tuple[float, float]] = [to_xy(p.year, p.compound) for p in series]
    if len(series) > 1:
        draw.line(simple_line, fill=SIMPLE_COLOR, width=3)
        draw.line(compound_line, fill=COMPOUND_COLOR, width=3)
    else:
        for x, y in simple_line + compound_line:
            draw.ellipse([(x - 3, y - 3), (x + 3, y + 3)], fill=COMPOUND_COLOR)

    draw.text((margin_left + 10, 12), "Simple", fill=SIMPLE_COLOR, font=font)
    draw.text((margin_left + 80, 12), "Compound", fill=COMPOUND_COLOR, font=font)

    buffer = io.BytesIO()
    image.save(buffer, format="PNG", optimize=True)
    buffer.seek(0)
    logger.debug("Rendered growth chart with %d points (%dx%d)", len(series), width, height)
    return buffer
