"""Color palette extraction and merging."""

import re
from typing import Iterable, List, Optional

from .models import CanvasElement, ColorPaletteEntry

_TOKEN_PREFIX_RE = re.compile(r"^(--)?[a-z0-9]+-color-", re.IGNORECASE)

# (style key, usage)
_STYLE_USAGES = (
    ("fill", "background"),
    ("stroke", "border"),
    ("textColor", "text"),
)


def palette_name_from_token(token_name: str) -> str:
    """`vds-color-primary` → `primary`; names without a `-color-` infix stay as they are."""
    return _TOKEN_PREFIX_RE.sub("", token_name) or token_name


def extract_palette(elements: Iterable[CanvasElement], design_tokens: Optional[dict] = None) -> List[ColorPaletteEntry]:
    """Color tokens first, then fill / stroke / text colors in element order; one entry per color."""
    seen = set()
    palette: List[ColorPaletteEntry] = []

    for name, value in ((design_tokens or {}).get("colors") or {}).items():
        if value in seen:
            continue
        seen.add(value)
        palette.append(ColorPaletteEntry(name=palette_name_from_token(name), color=value, usage="token"))

    for element in elements:
        for key, usage in _STYLE_USAGES:
            color = element.style.get(key)
            if not color or not isinstance(color, str) or color in seen:
                continue
            seen.add(color)
            palette.append(ColorPaletteEntry(name=f"color-{len(palette) + 1}", color=color, usage=usage))

    return palette


def merge_palettes(existing: List[ColorPaletteEntry], incoming: List[ColorPaletteEntry]) -> List[ColorPaletteEntry]:
    """Dedupe by color value; the first occurrence keeps its name."""
    merged: List[ColorPaletteEntry] = []
    seen = set()
    for entry in list(existing) + list(incoming):
        if entry.color in seen:
            continue
        seen.add(entry.color)
        merged.append(entry)
    return merged
