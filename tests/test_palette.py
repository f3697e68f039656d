"""
色票擷取與合併 單元測試
"""
from vds_sync.models import CanvasElement, ColorPaletteEntry
from vds_sync.palette import extract_palette, merge_palettes, palette_name_from_token


def test_palette_name_from_token():
    assert palette_name_from_token("vds-color-primary") == "primary"
    assert palette_name_from_token("--brand-color-accent") == "accent"
    assert palette_name_from_token("primary-color") == "primary-color"


def test_tokens_first_then_styles():
    elements = [
        CanvasElement(id="a", type="rectangle", style={"fill": "#111", "stroke": "#222"}),
        CanvasElement(id="b", type="text", style={"textColor": "#333", "fill": "#111"}),
    ]
    palette = extract_palette(elements, {"colors": {"vds-color-brand": "#000"}})
    assert [(e.name, e.color, e.usage) for e in palette] == [
        ("brand", "#000", "token"),
        ("color-2", "#111", "background"),
        ("color-3", "#222", "border"),
        ("color-4", "#333", "text"),
    ]


def test_color_deduplicated():
    elements = [CanvasElement(id="a", type="rectangle", style={"fill": "#000"})]
    palette = extract_palette(elements, {"colors": {"vds-color-brand": "#000"}})
    assert len(palette) == 1


def test_merge_keeps_first_name():
    existing = [ColorPaletteEntry(name="primary", color="#f00", usage="token")]
    incoming = [ColorPaletteEntry(name="color-1", color="#f00"), ColorPaletteEntry(name="color-2", color="#0f0")]
    merged = merge_palettes(existing, incoming)
    assert [(e.name, e.color) for e in merged] == [("primary", "#f00"), ("color-2", "#0f0")]
