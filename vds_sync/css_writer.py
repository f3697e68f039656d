"""
Canvas element → CSS rule text

element_to_css 依元素類型輸出 `.vds-<kind>-<id>` 規則；
analyze_layout 由成員位置推斷 row / column / grid / absolute 版面。
"""

from typing import Iterable, List, Optional, Sequence, Tuple

from .models import CanvasElement, Position
from .tokens import format_number

Declaration = Tuple[str, str]

CLASS_KINDS = {
    "rectangle": "rect",
    "circle": "circle",
    "text": "text",
    "group": "group",
    "image": "image",
    "line": "line",
}

ALIGN_TOLERANCE = 10
GRID_TOLERANCE = 20


def px(value) -> str:
    return f"{format_number(value)}px"


def render_rule(selector: str, declarations: Iterable[Declaration], indent: str = "") -> str:
    lines = [f"{indent}{selector} {{"]
    for prop, value in declarations:
        lines.append(f"{indent}  {prop}: {value};")
    lines.append(f"{indent}}}")
    return "\n".join(lines) + "\n"


def class_name(element: CanvasElement, prefix: str = "vds-") -> str:
    kind = CLASS_KINDS.get(element.type, element.type)
    return f"{prefix}{kind}-{element.id}"


def _radius(value) -> Optional[str]:
    if value in (None, "", 0):
        return None
    if value == "circle":
        return "50%"
    if isinstance(value, (int, float)):
        return px(value)
    return str(value)


def _border(style: dict) -> Optional[str]:
    if not style.get("stroke"):
        return None
    width = style.get("strokeWidth") or 1
    return f"{px(width)} {style.get('strokeStyle') or 'solid'} {style['stroke']}"


def _shadow(shadow) -> Optional[str]:
    if not isinstance(shadow, dict):
        return None
    return "{} {} {} {} {}".format(
        px(shadow.get("offsetX", 0)),
        px(shadow.get("offsetY", 0)),
        px(shadow.get("blurRadius", 0)),
        px(shadow.get("spreadRadius", 0)),
        shadow.get("color", "rgba(0, 0, 0, 0.1)"),
    )


def _transform(transform) -> Optional[str]:
    if not isinstance(transform, dict):
        return None
    parts = []
    if "translateX" in transform or "translateY" in transform:
        parts.append(f"translate({px(transform.get('translateX', 0))}, {px(transform.get('translateY', 0))})")
    if transform.get("rotate"):
        parts.append(f"rotate({format_number(transform['rotate'])}deg)")
    if "scaleX" in transform:
        parts.append(f"scale({format_number(transform['scaleX'])}, {format_number(transform.get('scaleY', transform['scaleX']))})")
    return " ".join(parts) or None


def _spacing(spacing) -> Optional[str]:
    if not isinstance(spacing, dict):
        return None
    return " ".join(px(spacing.get(side, 0)) for side in ("top", "right", "bottom", "left"))


def _common(style: dict) -> List[Declaration]:
    decls: List[Declaration] = []
    shadow = _shadow(style.get("boxShadow"))
    if shadow:
        decls.append(("box-shadow", shadow))
    transform = _transform(style.get("transform"))
    if transform:
        decls.append(("transform", transform))
    if style.get("opacity") is not None:
        decls.append(("opacity", format_number(style["opacity"])))
    padding = _spacing(style.get("padding"))
    if padding:
        decls.append(("padding", padding))
    margin = _spacing(style.get("margin"))
    if margin:
        decls.append(("margin", margin))
    return decls


def element_declarations(element: CanvasElement) -> List[Declaration]:
    style, size = element.style, element.size
    decls: List[Declaration] = []

    if element.type == "circle":
        diameter = min(size.width, size.height)
        decls += [("width", px(diameter)), ("height", px(diameter)), ("border-radius", "50%")]
    elif element.type != "text":
        decls += [("width", px(size.width)), ("height", px(size.height))]

    if style.get("fill"):
        decls.append(("background-color", style["fill"]))
    if element.type == "image" and style.get("backgroundImage"):
        decls.append(("background-image", f"url('{style['backgroundImage']}')"))
        decls.append(("background-size", style.get("backgroundSize") or "cover"))
        if style.get("backgroundPosition"):
            decls.append(("background-position", style["backgroundPosition"]))

    border = _border(style)
    if border:
        decls.append(("border", border))
    radius = _radius(style.get("borderRadius"))
    if radius and element.type != "circle":
        decls.append(("border-radius", radius))

    if element.type == "text":
        if style.get("textColor"):
            decls.append(("color", style["textColor"]))
        if style.get("fontSize"):
            decls.append(("font-size", px(style["fontSize"])))
        if style.get("fontWeight"):
            decls.append(("font-weight", str(style["fontWeight"])))
        if style.get("fontFamily"):
            decls.append(("font-family", style["fontFamily"]))
        if style.get("textAlign"):
            decls.append(("text-align", style["textAlign"]))
        if style.get("lineHeight"):
            decls.append(("line-height", str(style["lineHeight"])))
    elif element.type == "group":
        layout = element.layout or {}
        if layout.get("type") == "grid":
            decls.append(("display", "grid"))
            decls.append(("grid-template-columns", layout.get("columns", "auto")))
            decls.append(("grid-template-rows", layout.get("rows", "auto")))
        else:
            decls.append(("display", "flex"))
            decls.append(("flex-direction", layout.get("direction", "row")))
            decls.append(("justify-content", layout.get("justifyContent", "flex-start")))
            decls.append(("align-items", layout.get("alignItems", "stretch")))
    elif element.type == "line":
        if not style.get("fill") and style.get("stroke"):
            decls.append(("background-color", style["stroke"]))

    decls += _common(style)
    if element.type in ("rectangle", "circle", "image"):
        decls += [("box-sizing", "border-box"), ("display", "inline-block")]
    return decls


def element_to_css(element: CanvasElement, prefix: str = "vds-") -> str:
    if element.type not in CLASS_KINDS:
        return ""
    return render_rule(f".{class_name(element, prefix)}", element_declarations(element))


# ════════════════════════════════════════════════════════════
# Layout inference from positions
# ════════════════════════════════════════════════════════════

def _pos(element: CanvasElement) -> Position:
    return element.position or Position()


def _gaps(ordered: Sequence[CanvasElement], horizontal: bool) -> List[float]:
    gaps = []
    for prev, curr in zip(ordered, ordered[1:]):
        if horizontal:
            gaps.append(_pos(curr).x - (_pos(prev).x + prev.size.width))
        else:
            gaps.append(_pos(curr).y - (_pos(prev).y + prev.size.height))
    return gaps


def calculate_gap(ordered: Sequence[CanvasElement], horizontal: bool) -> int:
    positive = [gap for gap in _gaps(ordered, horizontal) if gap > 0]
    return round(sum(positive) / len(positive)) if positive else 0


def justify_content(ordered: Sequence[CanvasElement], horizontal: bool = True) -> str:
    if len(ordered) < 3:
        return "flex-start"
    gaps = _gaps(ordered, horizontal)
    mean = sum(gaps) / len(gaps)
    variance = sum((gap - mean) ** 2 for gap in gaps) / len(gaps)
    if variance < 100 and mean > 20:
        return "space-between"
    return "flex-start"


def _bucket(elements: Sequence[CanvasElement], axis: str) -> List[List[CanvasElement]]:
    buckets: List[List[CanvasElement]] = []
    for element in elements:
        value = getattr(_pos(element), axis)
        for bucket in buckets:
            if abs(getattr(_pos(bucket[0]), axis) - value) <= GRID_TOLERANCE:
                bucket.append(element)
                break
        else:
            buckets.append([element])
    return buckets


def analyze_layout(elements: Sequence[CanvasElement]) -> dict:
    """Member positions → flexbox row / column, grid, absolute (or static below two members)."""
    if len(elements) < 2:
        return {"type": "static"}

    by_x = sorted(elements, key=lambda el: _pos(el).x)
    by_y = sorted(elements, key=lambda el: _pos(el).y)

    first_y = _pos(by_y[0]).y
    if all(abs(_pos(el).y - first_y) <= ALIGN_TOLERANCE for el in elements):
        return {
            "type": "flexbox",
            "direction": "row",
            "justifyContent": justify_content(by_x, horizontal=True),
            "alignItems": "center",
            "gap": calculate_gap(by_x, horizontal=True),
        }

    first_x = _pos(by_x[0]).x
    if all(abs(_pos(el).x - first_x) <= ALIGN_TOLERANCE for el in elements):
        return {
            "type": "flexbox",
            "direction": "column",
            "justifyContent": justify_content(by_y, horizontal=False),
            "alignItems": "center",
            "gap": calculate_gap(by_y, horizontal=False),
        }

    rows = _bucket(elements, "y")
    cols = _bucket(elements, "x")
    if len(rows) > 1 and len(cols) > 1:
        gaps = []
        for row in rows:
            ordered = sorted(row, key=lambda el: _pos(el).x)
            gaps += [gap for gap in _gaps(ordered, horizontal=True) if gap > 0]
        return {
            "type": "grid",
            "columns": f"repeat({len(cols)}, 1fr)",
            "rows": f"repeat({len(rows)}, auto)",
            "gap": round(sum(gaps) / len(gaps)) if gaps else 16,
        }

    return {"type": "absolute"}


def layout_declarations(layout: dict) -> List[Declaration]:
    if layout.get("type") == "flexbox":
        return [
            ("display", "flex"),
            ("flex-direction", layout["direction"]),
            ("justify-content", layout["justifyContent"]),
            ("align-items", layout["alignItems"]),
            ("gap", px(layout["gap"])),
        ]
    if layout.get("type") == "grid":
        return [
            ("display", "grid"),
            ("grid-template-columns", layout["columns"]),
            ("grid-template-rows", layout["rows"]),
            ("gap", px(layout["gap"])),
        ]
    if layout.get("type") == "absolute":
        return [("position", "relative")]
    return []


def generate_layout_css(name: str, elements: Sequence[CanvasElement]) -> str:
    """Layout rule named after a stable key (layer id), never after the clock."""
    return render_rule(f".{name}", layout_declarations(analyze_layout(elements)))
