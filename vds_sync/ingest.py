"""
CSS ingestion — parsed rules → draft canvas elements

每個 CSS rule 依宣告形狀推斷元素類型（circle / group / text / image / line /
rectangle），填入 style / size / layout，並標上 sourceFile 與 cssSelector。
同一檔案的元素 id 每次解析都重新產生；跨次解析的 id 延續交給 reconcile。
"""

import json
import re
import uuid
from typing import Callable, Dict, List, Optional

from .css_parser import CSSRule, parse_stylesheet
from .models import CanvasElement, Size
from .store import LocalFiles

IdFactory = Callable[[], str]

_VALUE_RE = re.compile(r"^(-?\d*\.?\d+)([a-zA-Z%]*)$")
_COLOR_RE = re.compile(r"^(#[0-9a-fA-F]{3,8}|rgba?\(.*\)|hsla?\(.*\)|[a-zA-Z]+)$")
_FUNC_COLOR_RE = re.compile(r"(rgba?\([^)]*\)|hsla?\([^)]*\))")
_URL_RE = re.compile(r"url\(\s*['\"]?([^'\")]+)['\"]?\s*\)")

_NON_COLOR_KEYWORDS = {
    "none", "no-repeat", "repeat", "repeat-x", "repeat-y", "center", "top", "bottom", "left", "right",
    "cover", "contain", "fixed", "scroll", "local", "auto", "inherit", "initial", "unset",
    "solid", "dashed", "dotted", "double", "inset", "outset",
}


def default_id_factory() -> str:
    return "css_" + uuid.uuid4().hex[:9]


# ════════════════════════════════════════════════════════════
# Value helpers
# ════════════════════════════════════════════════════════════

def parse_css_value(value: str) -> tuple:
    """'12px' → (12.0, 'px'); unparseable → (0, '')."""
    match = _VALUE_RE.match((value or "").strip())
    if not match:
        return 0, ""
    number = float(match.group(1))
    if number.is_integer():
        number = int(number)
    return number, match.group(2)


def _split_value(value: str) -> List[str]:
    """Whitespace split that keeps rgb(...) / hsl(...) together."""
    parts, depth, current = [], 0, ""
    for ch in value:
        if ch == "(":
            depth += 1
        elif ch == ")":
            depth -= 1
        if ch.isspace() and depth == 0:
            if current:
                parts.append(current)
            current = ""
        else:
            current += ch
    if current:
        parts.append(current)
    return parts


def is_color_value(part: str) -> bool:
    if part.lower() in _NON_COLOR_KEYWORDS:
        return False
    return bool(_COLOR_RE.match(part))


def parse_border_shorthand(border: str) -> dict:
    result = {"width": 1, "style": "solid", "color": "#000000"}
    for part in _split_value(border):
        number, unit = parse_css_value(part)
        if unit == "px":
            result["width"] = number
        elif part in ("solid", "dashed", "dotted", "double", "none"):
            result["style"] = part
        elif is_color_value(part):
            result["color"] = part
    return result


def parse_background(background: str) -> dict:
    """`background` shorthand → fill color and / or image url."""
    out = {}
    url = _URL_RE.search(background)
    if url:
        out["image"] = url.group(1)
    func = _FUNC_COLOR_RE.search(background)
    if func:
        out["color"] = func.group(1)
        return out
    for part in _split_value(_URL_RE.sub("", background)):
        if is_color_value(part):
            out["color"] = part
            break
    return out


def parse_box_shadow(box_shadow: str) -> dict:
    shadow = {"offsetX": 0, "offsetY": 0, "blurRadius": 0, "spreadRadius": 0, "color": "rgba(0, 0, 0, 0.1)"}
    keys = ["offsetX", "offsetY", "blurRadius", "spreadRadius"]
    index = 0
    for part in _split_value(box_shadow):
        number, unit = parse_css_value(part)
        if unit == "px" or part == "0":
            if index < 4:
                shadow[keys[index]] = number
                index += 1
        elif re.match(r"^(#|rgb|hsl)", part):
            shadow["color"] = part
    return shadow


def parse_transform(transform: str) -> dict:
    out = {}
    translate = re.search(r"translate\(([^)]+)\)", transform)
    if translate:
        values = [parse_css_value(v.strip())[0] for v in translate.group(1).split(",")]
        out["translateX"] = values[0] if values else 0
        out["translateY"] = values[1] if len(values) > 1 else 0
    rotate = re.search(r"rotate\(([^)]+)\)", transform)
    if rotate:
        number, unit = parse_css_value(rotate.group(1).strip())
        out["rotate"] = number if unit == "deg" else 0
    scale = re.search(r"scale\(([^)]+)\)", transform)
    if scale:
        values = [parse_css_value(v.strip())[0] for v in scale.group(1).split(",") if v.strip()]
        out["scaleX"] = values[0] if values else 1
        out["scaleY"] = values[1] if len(values) > 1 else out["scaleX"]
    return out


def parse_spacing(spacing: str) -> dict:
    values = [parse_css_value(v)[0] for v in spacing.split()]
    if len(values) == 1:
        top = right = bottom = left = values[0]
    elif len(values) == 2:
        top, right = values
        bottom, left = top, right
    elif len(values) == 3:
        top, right, bottom = values
        left = right
    elif len(values) == 4:
        top, right, bottom, left = values
    else:
        top = right = bottom = left = 0
    return {"top": top, "right": right, "bottom": bottom, "left": left}


# ════════════════════════════════════════════════════════════
# Rule → element
# ════════════════════════════════════════════════════════════

def is_line_element(properties: Dict[str, str]) -> bool:
    width, w_unit = parse_css_value(properties.get("width", "0"))
    height, h_unit = parse_css_value(properties.get("height", "0"))
    if w_unit != "px" or h_unit != "px":
        return False
    short, long = min(width, height), max(width, height)
    if short <= 0:
        return False
    return long / short > 10 and short <= 5


def determine_element_type(properties: Dict[str, str]) -> Optional[str]:
    radius = properties.get("border-radius")
    if radius == "50%" or (radius and "width" in properties and properties.get("width") == properties.get("height")):
        return "circle"
    if properties.get("display") in ("flex", "grid"):
        return "group"
    if any(p in properties for p in ("font-size", "font-weight", "font-family", "color")):
        return "text"
    image = properties.get("background-image")
    if image and image != "none":
        return "image"
    if is_line_element(properties):
        return "line"
    if any(p in properties for p in ("width", "height", "background-color", "background", "border", "border-width")):
        return "rectangle"
    return None


def extract_size(properties: Dict[str, str]) -> Size:
    size = Size()
    width, unit = parse_css_value(properties.get("width", ""))
    if unit == "px":
        size.width = width
    height, unit = parse_css_value(properties.get("height", ""))
    if unit == "px":
        size.height = height
    return size


def extract_style(properties: Dict[str, str]) -> dict:
    style = {}

    # ─── Background ───
    if properties.get("background"):
        background = parse_background(properties["background"])
        if background.get("color"):
            style["fill"] = background["color"]
        if background.get("image"):
            style["backgroundImage"] = background["image"]
    if properties.get("background-color"):
        style["fill"] = properties["background-color"]
    image = properties.get("background-image")
    if image and image != "none":
        url = _URL_RE.search(image)
        style["backgroundImage"] = url.group(1) if url else image
    if properties.get("background-size"):
        style["backgroundSize"] = properties["background-size"]
    if properties.get("background-position"):
        style["backgroundPosition"] = properties["background-position"]

    # ─── Border ───
    if properties.get("border"):
        border = parse_border_shorthand(properties["border"])
        style["stroke"] = border["color"]
        style["strokeWidth"] = border["width"]
        style["strokeStyle"] = border["style"]
    else:
        if properties.get("border-color"):
            style["stroke"] = properties["border-color"]
        if properties.get("border-width"):
            width, unit = parse_css_value(properties["border-width"])
            if unit == "px":
                style["strokeWidth"] = width
        if properties.get("border-style"):
            style["strokeStyle"] = properties["border-style"]

    radius = properties.get("border-radius")
    if radius:
        if radius == "50%":
            style["borderRadius"] = "circle"
        else:
            number, unit = parse_css_value(radius)
            if unit == "px":
                style["borderRadius"] = number
            elif unit == "%":
                style["borderRadius"] = f"{number}%"

    # ─── Effects ───
    shadow = properties.get("box-shadow")
    if shadow and shadow != "none":
        style["boxShadow"] = parse_box_shadow(shadow)
    transform = properties.get("transform")
    if transform and transform != "none":
        style["transform"] = parse_transform(transform)
    opacity = properties.get("opacity")
    if opacity and opacity != "1" and _VALUE_RE.match(opacity.strip()):
        style["opacity"] = float(parse_css_value(opacity)[0])

    # ─── Text ───
    if properties.get("color"):
        style["textColor"] = properties["color"]
    if properties.get("font-size"):
        number, unit = parse_css_value(properties["font-size"])
        if unit == "px":
            style["fontSize"] = number
        elif unit in ("em", "rem"):
            style["fontSize"] = number * 16
    if properties.get("font-weight"):
        style["fontWeight"] = properties["font-weight"]
    if properties.get("font-family"):
        style["fontFamily"] = properties["font-family"].replace("'", "").replace('"', "")
    if properties.get("text-align"):
        style["textAlign"] = properties["text-align"]
    if properties.get("line-height"):
        style["lineHeight"] = properties["line-height"]

    # ─── Spacing ───
    if properties.get("padding"):
        style["padding"] = parse_spacing(properties["padding"])
    if properties.get("margin"):
        style["margin"] = parse_spacing(properties["margin"])

    return style


def extract_layout(properties: Dict[str, str]) -> Optional[dict]:
    display = properties.get("display")
    if display == "flex":
        return {
            "type": "flexbox",
            "direction": properties.get("flex-direction", "row"),
            "justifyContent": properties.get("justify-content", "flex-start"),
            "alignItems": properties.get("align-items", "stretch"),
        }
    if display == "grid":
        return {
            "type": "grid",
            "columns": properties.get("grid-template-columns", "auto"),
            "rows": properties.get("grid-template-rows", "auto"),
        }
    return None


class Ingester:
    """CSS file / text → CanvasElement list (one element per rule outside @media)."""

    def __init__(
        self,
        files: Optional[LocalFiles] = None,
        id_factory: Optional[IdFactory] = None,
        class_prefix: str = "vds-",
    ):
        self.files = files or LocalFiles()
        self.id_factory = id_factory or default_id_factory
        self.class_prefix = class_prefix
        self._generated_id_re = re.compile(rf"\.{re.escape(class_prefix)}[A-Za-z0-9]+-([A-Za-z0-9_]+)")

    def parse_file(self, path: str) -> List[CanvasElement]:
        return self.parse_content(self.files.read_text(path), path)

    def parse_content(self, css_text: str, source_file: str) -> List[CanvasElement]:
        elements: List[CanvasElement] = []
        used_ids = set()
        for rule in parse_stylesheet(css_text):
            if rule.media_query is not None:
                continue
            element = self.rule_to_element(rule, source_file, used_ids)
            if element is not None:
                used_ids.add(element.id)
                elements.append(element)
        return elements

    def rule_to_element(self, rule: CSSRule, source_file: str, used_ids=None) -> Optional[CanvasElement]:
        element_type = determine_element_type(rule.properties)
        if not element_type:
            return None
        used_ids = used_ids if used_ids is not None else set()
        element_id = self.extract_element_id(rule.selector)
        if not element_id or element_id in used_ids:
            element_id = self.id_factory()
            while element_id in used_ids:
                element_id = self.id_factory()
        return CanvasElement(
            id=element_id,
            type=element_type,
            size=extract_size(rule.properties),
            position=None,
            style=extract_style(rule.properties),
            layout=extract_layout(rule.properties),
            css_selector=rule.selector,
            source_file=source_file,
            css_properties=dict(rule.properties),
        )

    def extract_element_id(self, selector: str) -> Optional[str]:
        """Ids of previously generated classes (`.vds-rect-abc`) or `#id` selectors."""
        match = self._generated_id_re.search(selector)
        if match:
            return match.group(1)
        match = re.search(r"#([A-Za-z0-9_-]+)", selector)
        if match:
            return match.group(1)
        return None


# ════════════════════════════════════════════════════════════
# Change detection
# ════════════════════════════════════════════════════════════

def _same(a, b) -> bool:
    return json.dumps(a, sort_keys=True, default=str) == json.dumps(b, sort_keys=True, default=str)


def element_changes(previous: CanvasElement, current: CanvasElement) -> dict:
    changes = {}
    if not _same(previous.size.to_dict(), current.size.to_dict()):
        changes["size"] = {"from": previous.size.to_dict(), "to": current.size.to_dict()}
    if not _same(previous.style, current.style):
        props = {}
        for key in list(previous.style) + [k for k in current.style if k not in previous.style]:
            before, after = previous.style.get(key), current.style.get(key)
            if not _same(before, after):
                props[key] = {"from": before, "to": after}
        changes["style"] = {"from": previous.style, "to": current.style, "properties": props}
    if previous.type != current.type:
        changes["type"] = {"from": previous.type, "to": current.type}
    return changes


def detect_changes(previous: List[CanvasElement], current: List[CanvasElement]) -> dict:
    """Per-selector diff: added / modified / removed / unchanged plus counts."""
    previous_by_selector = {el.css_selector: el for el in previous}
    current_selectors = {el.css_selector for el in current}
    changes = {"added": [], "modified": [], "removed": [], "unchanged": []}

    for element in current:
        before = previous_by_selector.get(element.css_selector)
        if before is None:
            changes["added"].append(element)
            continue
        diff = element_changes(before, element)
        if diff:
            changes["modified"].append({"previous": before, "current": element, "changes": diff})
        else:
            changes["unchanged"].append(element)

    for element in previous:
        if element.css_selector not in current_selectors:
            changes["removed"].append(element)

    return {
        "elements": current,
        "changes": changes,
        "summary": {
            "total": len(current),
            "added": len(changes["added"]),
            "modified": len(changes["modified"]),
            "removed": len(changes["removed"]),
            "unchanged": len(changes["unchanged"]),
        },
    }
