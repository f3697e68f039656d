"""
Generator — canvas document → stylesheet files.

產出（檔名 → 內容），不碰檔案系統；寫檔交給 write_generated_files。
同一份文件產生兩次結果必須逐位元相同（不含時間戳、不依時間命名）。
"""

from __future__ import annotations

import json
from pathlib import Path
from typing import Dict, List, Optional

from .config import SyncOptions
from .css_writer import (
    analyze_layout,
    class_name,
    element_to_css,
    generate_layout_css,
    px,
    render_rule,
)
from .models import CanvasDocument, CanvasElement, Layer
from .store import LocalFiles
from .tokens import TokenNamer, font_weight_name, format_number, generate_all_tokens

SPACING_SCALE = [0, 1, 2, 3, 4, 6, 8, 12, 16, 24]
BREAKPOINTS = [("mobile", 768), ("tablet", 1024)]


def generate(document: CanvasDocument, options: Optional[SyncOptions] = None) -> Dict[str, str]:
    options = options or SyncOptions()
    files: Dict[str, str] = {}

    if options.generate_tokens:
        tokens = generate_all_tokens(document, prefix=options.token_prefix, sass=options.generate_sass)
        files["design-tokens.css"] = tokens.css
        if tokens.sass:
            files["design-tokens.scss"] = tokens.sass
        files["design-tokens.json"] = json.dumps(tokens.json, indent=2, ensure_ascii=False) + "\n"

    if options.generate_components:
        files["components.css"] = component_styles(document.elements, options.class_prefix)

    if options.generate_layouts:
        files["layouts.css"] = layout_styles(document.elements, document.layers, options.class_prefix)

    files["utilities.css"] = utility_classes(document)
    return files


# ─── components.css ───

def button_css(element: CanvasElement, prefix: str = "vds-") -> str:
    selector = f".{prefix}button-{element.id}"
    decls = [
        ("display", "inline-flex"),
        ("align-items", "center"),
        ("justify-content", "center"),
        ("padding", "8px 16px"),
        ("border", "none"),
        ("cursor", "pointer"),
        ("text-decoration", "none"),
        ("transition", "all 0.2s ease"),
    ]
    if element.style.get("fill"):
        decls.append(("background-color", element.style["fill"]))
    radius = element.style.get("borderRadius")
    if radius:
        decls.append(("border-radius", px(radius) if isinstance(radius, (int, float)) else str(radius)))
    hover = [
        ("transform", "translateY(-1px)"),
        ("box-shadow", "0 4px 8px rgba(0, 0, 0, 0.1)"),
    ]
    return render_rule(selector, decls) + "\n" + render_rule(f"{selector}:hover", hover)


def card_css(element: CanvasElement, prefix: str = "vds-") -> str:
    return render_rule(f".{prefix}card-{element.id}", [
        ("display", "flex"),
        ("flex-direction", "column"),
        ("padding", "16px"),
        ("border-radius", "8px"),
        ("box-shadow", "0 2px 4px rgba(0, 0, 0, 0.1)"),
        ("background-color", "white"),
    ])


def component_styles(elements: List[CanvasElement], prefix: str = "vds-") -> str:
    blocks = ["/* Generated Component Styles */\n"]
    for element in elements:
        css = element_to_css(element, prefix)
        if css:
            blocks.append(css)
        if element.type == "rectangle" and element.has_text():
            blocks.append(button_css(element, prefix))
        if element.type == "group":
            blocks.append(card_css(element, prefix))
    return "\n".join(blocks)


# ─── layouts.css ───

def layer_members(elements: List[CanvasElement], layer: Layer) -> List[CanvasElement]:
    return [el for el in elements if el.layer_id == layer.id]


def responsive_layouts(prefix: str = "vds-") -> str:
    blocks = ["/* Responsive Layouts */\n"]
    for name, max_width in BREAKPOINTS:
        body = render_rule(f".{prefix}layout-flexbox", [("flex-direction", "column")], indent="  ")
        body += render_rule(f".{prefix}layout-grid", [("grid-template-columns", "1fr")], indent="  ")
        blocks.append(f"/* {name} */\n@media (max-width: {max_width}px) {{\n{body}}}\n")
    return "\n".join(blocks)


def layout_styles(elements: List[CanvasElement], layers: List[Layer], prefix: str = "vds-") -> str:
    blocks = ["/* Generated Layout Styles */\n"]
    for layer in layers:
        members = layer_members(elements, layer)
        if len(members) > 1:
            blocks.append(f"/* Layer: {layer.name} */\n" + generate_layout_css(f"{prefix}layout-{layer.id}", members))
    blocks.append(responsive_layouts(prefix))
    return "\n".join(blocks)


# ─── utilities.css ───

def spacing_utilities(grid_size: float) -> str:
    lines = ["/* Spacing Utilities */", ""]
    props = [
        ("m", "margin"), ("mt", "margin-top"), ("mr", "margin-right"), ("mb", "margin-bottom"), ("ml", "margin-left"),
        ("p", "padding"), ("pt", "padding-top"), ("pr", "padding-right"), ("pb", "padding-bottom"), ("pl", "padding-left"),
    ]
    for multiplier in SPACING_SCALE:
        value = px(grid_size * multiplier)
        for short, prop in props:
            lines.append(f".{short}-{multiplier} {{ {prop}: {value}; }}")
    return "\n".join(lines) + "\n"


def color_utilities(document: CanvasDocument) -> str:
    namer = TokenNamer(scope="utilities")
    lines = ["/* Color Utilities */", ""]
    for entry in document.color_palette:
        name = namer.name(entry.name)
        lines.append(f".bg-{name} {{ background-color: {entry.color}; }}")
        lines.append(f".text-{name} {{ color: {entry.color}; }}")
        lines.append(f".border-{name} {{ border-color: {entry.color}; }}")
    return "\n".join(lines) + "\n"


def typography_utilities(text_elements: List[CanvasElement]) -> str:
    sizes: List = []
    weights: List = []
    for element in text_elements:
        size = element.style.get("fontSize")
        if size and size not in sizes:
            sizes.append(size)
        weight = element.style.get("fontWeight")
        if weight and weight not in weights:
            weights.append(weight)
    lines = ["/* Typography Utilities */", ""]
    for size in sizes:
        lines.append(f".text-{format_number(size)}px {{ font-size: {px(size)}; }}")
    for weight in weights:
        lines.append(f".font-{font_weight_name(weight)} {{ font-weight: {weight}; }}")
    return "\n".join(lines) + "\n"


def utility_classes(document: CanvasDocument) -> str:
    parts = ["/* Generated Utility Classes */\n"]
    if document.canvas.get("grid"):
        parts.append(spacing_utilities(document.grid_size))
    if document.color_palette:
        parts.append(color_utilities(document))
    text_elements = [el for el in document.elements if el.type == "text"]
    if text_elements:
        parts.append(typography_utilities(text_elements))
    return "\n".join(parts)


# ─── Documentation records ───

def element_properties(element: CanvasElement) -> Dict[str, str]:
    props = {"width": px(element.size.width), "height": px(element.size.height)}
    style = element.style
    if style.get("fill"):
        props["backgroundColor"] = style["fill"]
    if style.get("stroke"):
        props["borderColor"] = style["stroke"]
    if style.get("strokeWidth"):
        props["borderWidth"] = px(style["strokeWidth"])
    radius = style.get("borderRadius")
    if radius:
        props["borderRadius"] = px(radius) if isinstance(radius, (int, float)) else str(radius)
    return props


def usage_example(element: CanvasElement, prefix: str = "vds-") -> str:
    name = class_name(element, prefix)
    if element.type == "rectangle" and element.has_text():
        return f'<button class="{name}">{element.canvas_metadata["text"]}</button>'
    if element.type == "text":
        text = (element.canvas_metadata or {}).get("text") or "Text Content"
        return f'<span class="{name}">{text}</span>'
    if element.type == "image":
        return f'<div class="{name}" role="img"></div>'
    return f'<div class="{name}"></div>'


def component_info(elements: List[CanvasElement], prefix: str = "vds-") -> List[dict]:
    return [
        {
            "id": el.id,
            "type": el.type,
            "className": class_name(el, prefix),
            "properties": element_properties(el),
            "usage": usage_example(el, prefix),
        }
        for el in elements
    ]


def layout_info(elements: List[CanvasElement], layers: List[Layer], prefix: str = "vds-") -> List[dict]:
    info = []
    for layer in layers:
        members = layer_members(elements, layer)
        layout = analyze_layout(members)
        info.append({
            "layerId": layer.id,
            "layerName": layer.name,
            "layoutType": layout["type"],
            "elementCount": len(members),
            "className": f"{prefix}layout-{layer.id}",
            "properties": layout,
        })
    return info


def write_generated_files(files: Dict[str, str], output_dir: str, io: Optional[LocalFiles] = None) -> List[str]:
    """Overwrite each file under output_dir (created if missing); returns written paths."""
    io = io or LocalFiles()
    written = []
    for filename, content in files.items():
        path = str(Path(output_dir) / filename)
        io.write_text(path, content)
        written.append(path)
    return written
