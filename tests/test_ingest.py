"""
CSS ingestion 單元測試：類型判斷、style / size / layout 擷取、id 延續、變更偵測。
"""
import itertools

import pytest

from vds_sync.css_parser import CSSParseError
from vds_sync.ingest import (
    Ingester,
    detect_changes,
    determine_element_type,
    extract_style,
    parse_border_shorthand,
    parse_box_shadow,
    parse_css_value,
    parse_spacing,
    parse_transform,
)


def counter_ids(prefix="css_"):
    counter = itertools.count(1)
    return lambda: f"{prefix}{next(counter)}"


class TestValueParsing:

    def test_parse_css_value(self):
        assert parse_css_value("12px") == (12, "px")
        assert parse_css_value("1.5rem") == (1.5, "rem")
        assert parse_css_value("auto") == (0, "")

    def test_border_shorthand(self):
        assert parse_border_shorthand("2px dashed #ccc") == {"width": 2, "style": "dashed", "color": "#ccc"}

    def test_border_with_rgb(self):
        assert parse_border_shorthand("1px solid rgb(0, 0, 0)")["color"] == "rgb(0, 0, 0)"

    def test_box_shadow(self):
        shadow = parse_box_shadow("0 4px 8px rgba(0, 0, 0, 0.2)")
        assert shadow["offsetY"] == 4
        assert shadow["blurRadius"] == 8
        assert shadow["color"] == "rgba(0, 0, 0, 0.2)"

    def test_transform(self):
        out = parse_transform("translate(10px, 20px) rotate(45deg) scale(2)")
        assert out == {"translateX": 10, "translateY": 20, "rotate": 45, "scaleX": 2, "scaleY": 2}

    def test_spacing_shorthands(self):
        assert parse_spacing("8px") == {"top": 8, "right": 8, "bottom": 8, "left": 8}
        assert parse_spacing("8px 16px") == {"top": 8, "right": 16, "bottom": 8, "left": 16}
        assert parse_spacing("1px 2px 3px") == {"top": 1, "right": 2, "bottom": 3, "left": 2}


class TestDetermineElementType:

    @pytest.mark.parametrize("props, expected", [
        ({"width": "40px", "height": "40px", "border-radius": "50%"}, "circle"),
        ({"display": "flex", "background": "#eee"}, "group"),
        ({"display": "grid", "width": "100px"}, "group"),
        ({"font-size": "16px", "color": "#333"}, "text"),
        ({"background-image": "url(a.png)", "width": "10px"}, "image"),
        ({"width": "200px", "height": "2px", "background-color": "#ddd"}, "line"),
        ({"width": "120px", "height": "80px"}, "rectangle"),
        ({"border": "1px solid red"}, "rectangle"),
        ({"opacity": "0.5"}, None),
    ])
    def test_heuristics(self, props, expected):
        assert determine_element_type(props) == expected


class TestExtractStyle:

    def test_background_shorthand_fill(self):
        assert extract_style({"background": "#eee"})["fill"] == "#eee"

    def test_background_color_wins(self):
        style = extract_style({"background": "#eee", "background-color": "#fff"})
        assert style["fill"] == "#fff"

    def test_border(self):
        style = extract_style({"border": "2px solid #000"})
        assert (style["stroke"], style["strokeWidth"], style["strokeStyle"]) == ("#000", 2, "solid")

    def test_radius(self):
        assert extract_style({"border-radius": "8px"})["borderRadius"] == 8
        assert extract_style({"border-radius": "50%"})["borderRadius"] == "circle"

    def test_text(self):
        style = extract_style({"font-size": "1.5rem", "color": "#111", "font-family": "'Inter', sans-serif"})
        assert style["fontSize"] == 24
        assert style["textColor"] == "#111"
        assert style["fontFamily"] == "Inter, sans-serif"

    def test_opacity(self):
        assert extract_style({"opacity": "0.5"})["opacity"] == 0.5
        assert "opacity" not in extract_style({"opacity": "1"})
        assert "opacity" not in extract_style({"opacity": "inherit"})


class TestIngester:

    def setup_method(self):
        self.ingester = Ingester(id_factory=counter_ids())

    def test_card_becomes_group(self):
        elements = self.ingester.parse_content(".card { display: flex; background: #eee; }", "a.css")
        assert len(elements) == 1
        card = elements[0]
        assert card.type == "group"
        assert card.style["fill"] == "#eee"
        assert card.layout == {"type": "flexbox", "direction": "row", "justifyContent": "flex-start", "alignItems": "stretch"}
        assert card.position is None
        assert card.layer_id is None
        assert card.source_file == "a.css"
        assert card.css_selector == ".card"
        assert card.id == "css_1"

    def test_size_defaults(self):
        element = self.ingester.parse_content(".x { background-color: red; width: 50%; }", "a.css")[0]
        assert (element.size.width, element.size.height) == (100, 100)

    def test_size_from_px(self):
        element = self.ingester.parse_content(".x { width: 320px; height: 48px; }", "a.css")[0]
        assert (element.size.width, element.size.height) == (320, 48)

    def test_grid_layout(self):
        element = self.ingester.parse_content(
            ".g { display: grid; grid-template-columns: 1fr 1fr; width: 10px; }", "a.css")[0]
        assert element.layout == {"type": "grid", "columns": "1fr 1fr", "rows": "auto"}

    def test_media_rules_not_elements(self):
        css = ".a { width: 10px; } @media (max-width: 600px) { .a { width: 5px; } }"
        elements = self.ingester.parse_content(css, "a.css")
        assert len(elements) == 1
        assert elements[0].size.width == 10

    def test_generated_class_gives_id_back(self):
        elements = self.ingester.parse_content(".vds-rect-abc123 { width: 10px; }", "a.css")
        assert elements[0].id == "abc123"

    def test_hash_selector_gives_id(self):
        assert self.ingester.parse_content("#hero { width: 10px; }", "a.css")[0].id == "hero"

    def test_duplicate_ids_redrawn(self):
        css = "#hero { width: 10px; } #hero:hover { width: 12px; }"
        ids = [el.id for el in self.ingester.parse_content(css, "a.css")]
        assert ids == ["hero", "css_1"]

    def test_custom_class_prefix(self):
        ingester = Ingester(id_factory=counter_ids(), class_prefix="ds-")
        assert ingester.parse_content(".ds-circle-q1 { width: 4px; }", "a.css")[0].id == "q1"

    def test_parse_file(self, tmp_path):
        path = tmp_path / "button.css"
        path.write_text(".btn { width: 80px; height: 32px; }", encoding="utf-8")
        elements = self.ingester.parse_file(str(path))
        assert elements[0].source_file == str(path)

    def test_parse_error_propagates(self):
        with pytest.raises(CSSParseError):
            self.ingester.parse_content(".broken width: 1px", "a.css")


class TestDetectChanges:

    def test_summary(self):
        ingester = Ingester(id_factory=counter_ids())
        before = ingester.parse_content(".a { width: 10px; } .b { width: 10px; } .c { width: 1px; }", "f.css")
        after = ingester.parse_content(".a { width: 10px; } .b { width: 20px; } .d { width: 1px; }", "f.css")
        result = detect_changes(before, after)
        assert result["summary"] == {"total": 3, "added": 1, "modified": 1, "removed": 1, "unchanged": 1}
        modified = result["changes"]["modified"][0]
        assert modified["changes"]["size"]["to"]["width"] == 20
