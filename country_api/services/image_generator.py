from datetime import datetime
from pathlib import Path
from typing import Optional, Sequence

from PIL import Image, ImageDraw, ImageFont

# Canvas
W, H = 600, 400
BG = (240, 240, 250)
FG = (0, 0, 0)
LEFT = 20


def _format_gdp(value: Optional[float]) -> str:
    if value is None:
        return "N/A"
    return f"${value:.2f}"


def _format_timestamp(ts: Optional[datetime]) -> str:
    if ts is None:
        return "N/A"
    return ts.isoformat(timespec="seconds")


def summary_lines(top_countries: Sequence, total: int, timestamp: Optional[datetime]):
    """Return ``(y, text)`` pairs in drawing order."""
    lines = []
    y = 30
    lines.append((y, "Country Currency & Exchange Summary"))
    y += 40
    lines.append((y, f"Total Countries: {total}"))
    y += 30
    lines.append((y, "Top 5 Countries by Estimated GDP:"))
    y += 25
    for i, c in enumerate(list(top_countries)[:5], start=1):
        name = getattr(c, "name", None) or "-"
        gdp = _format_gdp(getattr(c, "estimated_gdp", None))
        lines.append((y, f"{i}. {name} - {gdp}"))
        y += 25
    y += 20
    lines.append((y, f"Last Refreshed: {_format_timestamp(timestamp)}"))
    return lines


def generate_summary_image(top_countries, total: int, timestamp: Optional[datetime], path: Path) -> Path:
    """Render the summary PNG and write it to ``path``, replacing any previous file."""
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)

    img = Image.new("RGB", (W, H), color=BG)
    draw = ImageDraw.Draw(img)
    font = ImageFont.load_default()

    for y, text in summary_lines(top_countries, total, timestamp):
        draw.text((LEFT, y), text, fill=FG, font=font)

    img.save(str(path), format="PNG")
    return path
