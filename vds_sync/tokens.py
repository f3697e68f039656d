"""
Design token 擷取與輸出

- extract_tokens：從 CSS custom properties 擷取 token（colors / spacing / typography）
- export_tokens：token map → CSS / Sass / JSON
- generate_all_tokens：由畫布文件（色票、grid、文字元素）產生完整 token 組
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from typing import Dict, List, Optional

from .models import CanvasDocument, TOKEN_CATEGORIES, empty_tokens

TOKENS_VERSION = "1.0.0"

_CUSTOM_PROP_RE = re.compile(r"--([^:;{}\s]+)\s*:\s*([^;{}]+)")
_HEX6_RE = re.compile(r"^#?([a-f\d]{2})([a-f\d]{2})([a-f\d]{2})$", re.IGNORECASE)

_SPACING_SCALE = [0.25, 0.5, 1, 1.5, 2, 3, 4, 6, 8, 12, 16, 24]
_SPACING_NAMES = ["xs", "sm", "md", "lg", "xl", "2xl", "3xl", "4xl", "5xl", "6xl", "7xl", "8xl"]
_FONT_SIZE_NAMES = ["xs", "sm", "base", "lg", "xl", "2xl", "3xl", "4xl", "5xl"]

_FONT_WEIGHT_NAMES = {
    100: "thin",
    200: "extra-light",
    300: "light",
    400: "normal",
    500: "medium",
    600: "semi-bold",
    700: "bold",
    800: "extra-bold",
    900: "black",
}


def _warn(msg: str) -> None:
    print(f"   ⚠️  [tokens] {msg}")


def format_number(value) -> str:
    """100.0 → '100', 1.5 → '1.5'; strings pass through."""
    if isinstance(value, bool):
        return str(value).lower()
    if isinstance(value, int):
        return str(value)
    if isinstance(value, float):
        if value.is_integer():
            return str(int(value))
        return f"{value:.4f}".rstrip("0").rstrip(".")
    return str(value)


# ════════════════════════════════════════════════════════════
# Extraction
# ════════════════════════════════════════════════════════════

def categorize_token(name: str) -> Optional[str]:
    if "color" in name:
        return "colors"
    if "spacing" in name or "size" in name:
        return "spacing"
    if "font" in name:
        return "typography"
    return None


def extract_tokens(css_text: str) -> Dict[str, Dict[str, str]]:
    """從 CSS custom properties 擷取 token，名稱不含開頭的 `--`。"""
    tokens = empty_tokens()
    cleaned = re.sub(r"/\*.*?\*/", "", css_text, flags=re.DOTALL)
    for match in _CUSTOM_PROP_RE.finditer(cleaned):
        name = match.group(1).strip()
        value = match.group(2).strip()
        category = categorize_token(name)
        if category:
            tokens[category][name] = value
    return tokens


def merge_token_maps(base: dict, update: dict) -> Dict[str, Dict[str, str]]:
    """Per-category union, last write wins per key."""
    merged = empty_tokens()
    for source in (base or {}, update or {}):
        for category, values in source.items():
            if not isinstance(values, dict):
                continue
            merged.setdefault(category, {}).update(values)
    return merged


# ════════════════════════════════════════════════════════════
# Naming
# ════════════════════════════════════════════════════════════

def sanitize_token_name(name: str) -> str:
    slug = re.sub(r"[^a-z0-9-]", "-", str(name).lower())
    slug = re.sub(r"-+", "-", slug)
    return slug.strip("-")


class TokenNamer:
    """
    Collision-aware sanitizer, one instance per export.

    Two raw names that sanitize to the same identifier are reported and the
    later one receives a numeric suffix.
    """

    def __init__(self, scope: str = "tokens"):
        self.scope = scope
        self.warnings: List[str] = []
        self._by_raw: Dict[str, str] = {}
        self._owner: Dict[str, str] = {}

    def name(self, raw: str) -> str:
        raw = str(raw)
        if raw in self._by_raw:
            return self._by_raw[raw]
        base = sanitize_token_name(raw) or "token"
        candidate = base
        if candidate in self._owner:
            n = 2
            while f"{base}-{n}" in self._owner:
                n += 1
            candidate = f"{base}-{n}"
            msg = (
                f"[{self.scope}] '{raw}' 與 '{self._owner[base]}' 都會變成 '{base}'，"
                f"改用 '{candidate}'"
            )
            self.warnings.append(msg)
            _warn(msg)
        self._by_raw[raw] = candidate
        self._owner[candidate] = raw
        return candidate


def font_weight_name(weight) -> str:
    try:
        key = int(weight)
    except (TypeError, ValueError):
        return f"weight-{sanitize_token_name(weight)}"
    return _FONT_WEIGHT_NAMES.get(key, f"weight-{key}")


def font_family_name(family: str, index: int) -> str:
    clean = family.replace("'", "").replace('"', "").split(",")[0].strip()
    return sanitize_token_name(clean) or f"family-{index}"


# ════════════════════════════════════════════════════════════
# Color math
# ════════════════════════════════════════════════════════════

def hex_to_hsl(hex_color: str) -> Optional[tuple]:
    match = _HEX6_RE.match(hex_color.strip())
    if not match:
        return None
    r, g, b = (int(match.group(i), 16) / 255 for i in (1, 2, 3))
    hi, lo = max(r, g, b), min(r, g, b)
    l = (hi + lo) / 2
    if hi == lo:
        h = s = 0.0
    else:
        d = hi - lo
        s = d / (2 - hi - lo) if l > 0.5 else d / (hi + lo)
        if hi == r:
            h = (g - b) / d + (6 if g < b else 0)
        elif hi == g:
            h = (b - r) / d + 2
        else:
            h = (r - g) / d + 4
        h /= 6
    return round(h * 360), round(s * 100), round(l * 100)


def hsl_to_hex(h: float, s: float, l: float) -> str:
    h, s, l = h / 360, s / 100, l / 100

    def hue_to_rgb(p, q, t):
        if t < 0:
            t += 1
        if t > 1:
            t -= 1
        if t < 1 / 6:
            return p + (q - p) * 6 * t
        if t < 1 / 2:
            return q
        if t < 2 / 3:
            return p + (q - p) * (2 / 3 - t) * 6
        return p

    if s == 0:
        r = g = b = l
    else:
        q = l * (1 + s) if l < 0.5 else l + s - l * s
        p = 2 * l - q
        r = hue_to_rgb(p, q, h + 1 / 3)
        g = hue_to_rgb(p, q, h)
        b = hue_to_rgb(p, q, h - 1 / 3)
    return "#" + "".join(f"{round(c * 255):02x}" for c in (r, g, b))


def color_variations(color: str) -> List[tuple]:
    """(suffix, color) pairs; only 6-digit hex colors have variations."""
    hsl = hex_to_hsl(color)
    if not hsl:
        return []
    h, s, l = hsl
    return [
        ("light", hsl_to_hex(h, s, min(l + 20, 100))),
        ("lighter", hsl_to_hex(h, s, min(l + 40, 100))),
        ("dark", hsl_to_hex(h, s, max(l - 20, 0))),
        ("darker", hsl_to_hex(h, s, max(l - 40, 0))),
    ]


# ════════════════════════════════════════════════════════════
# Export
# ════════════════════════════════════════════════════════════

@dataclass
class TokenExport:
    css: str
    sass: Optional[str]
    json: dict
    warnings: List[str] = field(default_factory=list)


def export_tokens(tokens: dict, prefix: Optional[str] = None, sass: bool = False) -> TokenExport:
    """Token map → `:root {}` custom properties, optional Sass variables, JSON dict."""
    namer = TokenNamer()
    css_lines = [":root {"]
    sass_lines: List[str] = []
    json_out: Dict[str, dict] = {}
    type_names = {"colors": "color", "spacing": "spacing", "typography": "typography"}

    for category in list(TOKEN_CATEGORIES) + [c for c in tokens if c not in TOKEN_CATEGORIES]:
        values = tokens.get(category) or {}
        if not values:
            continue
        css_lines.append(f"  /* {category} */")
        json_out[category] = {}
        for raw_name, value in values.items():
            name = namer.name(raw_name)
            var = f"{prefix}-{name}" if prefix else f"--{name}"
            css_lines.append(f"  {var}: {value};")
            if sass:
                sass_lines.append(f"${name}: {value};")
            json_out[category][name] = {"value": value, "type": type_names.get(category, category)}
    css_lines.append("}")

    return TokenExport(
        css="\n".join(css_lines) + "\n",
        sass=("\n".join(sass_lines) + "\n") if sass else None,
        json=json_out,
        warnings=namer.warnings,
    )


def generate_all_tokens(document: CanvasDocument, prefix: str = "--vds", sass: bool = False) -> TokenExport:
    """色票 + grid spacing + 文字元素字型 → 完整 token 組（無時間戳，可重現）。"""
    css_lines = [":root {"]
    sass_lines: List[str] = []
    json_out: Dict[str, dict] = {
        "colors": {},
        "spacing": {},
        "typography": {},
        "metadata": {"version": TOKENS_VERSION},
    }

    # ─── Colors ───
    namer = TokenNamer(scope="palette")
    for entry in document.color_palette:
        name = namer.name(entry.name)
        var = f"{prefix}-color-{name}"
        usage = entry.usage or "general"
        css_lines.append(f"  {var}: {entry.color};")
        sass_lines.append(f"$color-{name}: {entry.color};")
        json_out["colors"][name] = {"value": entry.color, "type": "color", "usage": usage}
        for suffix, variant in color_variations(entry.color):
            css_lines.append(f"  {var}-{suffix}: {variant};")
            sass_lines.append(f"$color-{name}-{suffix}: {variant};")
            json_out["colors"][f"{name}-{suffix}"] = {
                "value": variant,
                "type": "color",
                "usage": f"{usage} {suffix}",
            }

    # ─── Spacing ───
    if document.canvas.get("grid"):
        base = document.grid_size
        css_lines.append("")
        css_lines.append("  /* Spacing Tokens */")
        for multiplier, name in zip(_SPACING_SCALE, _SPACING_NAMES):
            value = round(base * multiplier)
            css_lines.append(f"  {prefix}-spacing-{name}: {value}px;")
            sass_lines.append(f"$spacing-{name}: {value}px;")
            json_out["spacing"][f"spacing-{name}"] = {
                "value": f"{value}px",
                "type": "spacing",
                "scale": multiplier,
            }

    # ─── Typography ───
    text_elements = [el for el in document.elements if el.type == "text"]
    if text_elements:
        families: List[str] = []
        sizes: List[float] = []
        weights: List[str] = []
        for el in text_elements:
            family = el.style.get("fontFamily")
            if family and family not in families:
                families.append(family)
            size = el.style.get("fontSize")
            if isinstance(size, (int, float)) and size and size not in sizes:
                sizes.append(size)
            weight = el.style.get("fontWeight")
            if weight and weight not in weights:
                weights.append(weight)

        css_lines.append("")
        css_lines.append("  /* Typography Tokens */")
        for index, family in enumerate(families):
            name = font_family_name(family, index)
            css_lines.append(f"  {prefix}-font-family-{name}: {family};")
            sass_lines.append(f"$font-family-{name}: {family};")
            json_out["typography"][f"font-family-{name}"] = {"value": family, "type": "fontFamily"}
        for index, size in enumerate(sorted(sizes)):
            name = _FONT_SIZE_NAMES[index] if index < len(_FONT_SIZE_NAMES) else f"size-{index}"
            css_lines.append(f"  {prefix}-font-size-{name}: {format_number(size)}px;")
            sass_lines.append(f"$font-size-{name}: {format_number(size)}px;")
            json_out["typography"][f"font-size-{name}"] = {
                "value": f"{format_number(size)}px",
                "type": "fontSize",
            }
        for weight in weights:
            name = font_weight_name(weight)
            css_lines.append(f"  {prefix}-font-weight-{name}: {weight};")
            sass_lines.append(f"$font-weight-{name}: {weight};")
            json_out["typography"][f"font-weight-{name}"] = {"value": weight, "type": "fontWeight"}

    css_lines.append("}")
    return TokenExport(
        css="\n".join(css_lines) + "\n",
        sass=("\n".join(sass_lines) + "\n") if sass else None,
        json=json_out,
        warnings=namer.warnings,
    )
