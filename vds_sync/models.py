"""
Canvas document model

畫布文件的資料結構：canvas 設定、layers、elements、色票、design tokens、
layout analysis 與 metadata。所有物件皆可 to_dict() / from_dict()，
對應持久化 JSON 的 camelCase 欄位。
"""

from __future__ import annotations

import copy
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

DOCUMENT_VERSION = "1.0.0"

ELEMENT_TYPES = ("rectangle", "circle", "text", "group", "image", "line")

PALETTE_USAGES = ("token", "background", "border", "text")

TOKEN_CATEGORIES = ("colors", "spacing", "typography")


def utc_now() -> str:
    return datetime.now(timezone.utc).isoformat()


# ════════════════════════════════════════════════════════════
# Geometry
# ════════════════════════════════════════════════════════════

@dataclass
class Position:
    x: float = 0
    y: float = 0

    def is_origin(self) -> bool:
        return self.x == 0 and self.y == 0

    def to_dict(self) -> dict:
        return {"x": self.x, "y": self.y}

    @classmethod
    def from_dict(cls, data: Optional[dict]) -> Optional["Position"]:
        if not data:
            return None
        return cls(x=data.get("x", 0), y=data.get("y", 0))


@dataclass
class Size:
    width: float = 100
    height: float = 100

    def to_dict(self) -> dict:
        return {"width": self.width, "height": self.height}

    @classmethod
    def from_dict(cls, data: Optional[dict]) -> "Size":
        data = data or {}
        return cls(width=data.get("width", 100), height=data.get("height", 100))


@dataclass
class Bounds:
    x: float
    y: float
    width: float
    height: float

    def union(self, other: "Bounds") -> "Bounds":
        left = min(self.x, other.x)
        top = min(self.y, other.y)
        right = max(self.x + self.width, other.x + other.width)
        bottom = max(self.y + self.height, other.y + other.height)
        return Bounds(x=left, y=top, width=right - left, height=bottom - top)

    def to_dict(self) -> dict:
        return {"x": self.x, "y": self.y, "width": self.width, "height": self.height}


# ════════════════════════════════════════════════════════════
# Elements
# ════════════════════════════════════════════════════════════

_ELEMENT_KEYS = {
    "id", "type", "size", "position", "style", "layout", "cssSelector",
    "sourceFile", "layerId", "canvasMetadata", "lastModified", "cssProperties",
}


@dataclass
class CanvasElement:
    """One design element. Position belongs to the designer, style to the CSS source."""

    id: str
    type: str
    size: Size = field(default_factory=Size)
    position: Optional[Position] = None
    style: Dict[str, Any] = field(default_factory=dict)
    layout: Optional[Dict[str, Any]] = None
    css_selector: str = ""
    source_file: Optional[str] = None
    layer_id: Optional[str] = None
    canvas_metadata: Optional[Dict[str, Any]] = None
    last_modified: Optional[str] = None
    css_properties: Dict[str, str] = field(default_factory=dict)
    # 未知欄位原封不動寫回
    extra: Dict[str, Any] = field(default_factory=dict)

    def is_placed(self) -> bool:
        return self.position is not None and not self.position.is_origin()

    def bounds(self) -> Bounds:
        pos = self.position or Position()
        return Bounds(x=pos.x, y=pos.y, width=self.size.width, height=self.size.height)

    def has_text(self) -> bool:
        return bool((self.canvas_metadata or {}).get("text"))

    def touch(self) -> None:
        self.last_modified = utc_now()

    def to_dict(self) -> dict:
        data: Dict[str, Any] = dict(self.extra)
        data.update({
            "id": self.id,
            "type": self.type,
            "size": self.size.to_dict(),
            "position": self.position.to_dict() if self.position else None,
            "style": self.style,
            "cssSelector": self.css_selector,
            "sourceFile": self.source_file,
            "cssProperties": self.css_properties,
        })
        if self.layout is not None:
            data["layout"] = self.layout
        if self.layer_id is not None:
            data["layerId"] = self.layer_id
        if self.canvas_metadata is not None:
            data["canvasMetadata"] = self.canvas_metadata
        if self.last_modified is not None:
            data["lastModified"] = self.last_modified
        return data

    @classmethod
    def from_dict(cls, data: dict) -> "CanvasElement":
        return cls(
            id=str(data["id"]),
            type=data.get("type", "rectangle"),
            size=Size.from_dict(data.get("size")),
            position=Position.from_dict(data.get("position")),
            style=dict(data.get("style") or {}),
            layout=data.get("layout"),
            css_selector=data.get("cssSelector", ""),
            source_file=data.get("sourceFile"),
            layer_id=data.get("layerId"),
            canvas_metadata=data.get("canvasMetadata"),
            last_modified=data.get("lastModified"),
            css_properties=dict(data.get("cssProperties") or {}),
            extra={k: v for k, v in data.items() if k not in _ELEMENT_KEYS},
        )


# ════════════════════════════════════════════════════════════
# Layers / palette
# ════════════════════════════════════════════════════════════

@dataclass
class Layer:
    id: str
    name: str
    visible: bool = True
    locked: bool = False
    elements: List[str] = field(default_factory=list)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "visible": self.visible,
            "locked": self.locked,
            "elements": list(self.elements),
        }

    @classmethod
    def from_dict(cls, data: dict) -> "Layer":
        return cls(
            id=data["id"],
            name=data.get("name", data["id"]),
            visible=data.get("visible", True),
            locked=data.get("locked", False),
            elements=list(data.get("elements", [])),
        )


@dataclass
class ColorPaletteEntry:
    name: str
    color: str
    usage: str = "background"

    def to_dict(self) -> dict:
        return {"name": self.name, "color": self.color, "usage": self.usage}

    @classmethod
    def from_dict(cls, data: dict) -> "ColorPaletteEntry":
        return cls(name=data["name"], color=data["color"], usage=data.get("usage", "background"))


# ════════════════════════════════════════════════════════════
# Layout analysis (derived)
# ════════════════════════════════════════════════════════════

@dataclass
class ContainerInfo:
    element: CanvasElement
    children: List[CanvasElement] = field(default_factory=list)

    @property
    def id(self) -> str:
        return self.element.id

    @property
    def type(self) -> str:
        return (self.element.layout or {}).get("type", "")

    def to_dict(self) -> dict:
        return {
            "id": self.element.id,
            "type": self.type,
            "selector": self.element.css_selector,
            "properties": self.element.layout,
            "children": [child.id for child in self.children],
        }


@dataclass
class ProximityGroup:
    id: str
    elements: List[CanvasElement]
    bounds: Bounds

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "elements": [el.id for el in self.elements],
            "bounds": self.bounds.to_dict(),
        }


@dataclass
class HierarchyNode:
    element: CanvasElement
    children: List["HierarchyNode"] = field(default_factory=list)

    def to_dict(self) -> dict:
        return {
            "element": self.element.id,
            "children": [child.to_dict() for child in self.children],
        }


@dataclass
class LayoutAnalysis:
    containers: List[ContainerInfo] = field(default_factory=list)
    groups: List[ProximityGroup] = field(default_factory=list)
    hierarchies: List[HierarchyNode] = field(default_factory=list)

    def to_dict(self) -> dict:
        return {
            "containers": [c.to_dict() for c in self.containers],
            "groups": [g.to_dict() for g in self.groups],
            "hierarchies": [h.to_dict() for h in self.hierarchies],
        }


# ════════════════════════════════════════════════════════════
# Document
# ════════════════════════════════════════════════════════════

def default_canvas() -> dict:
    return {
        "width": 1920,
        "height": 1080,
        "backgroundColor": "#ffffff",
        "grid": {"size": 8, "visible": True},
    }


def empty_tokens() -> Dict[str, Dict[str, str]]:
    return {category: {} for category in TOKEN_CATEGORIES}


@dataclass
class CanvasDocument:
    """Aggregate root; persisted and rewritten as a whole."""

    canvas: Dict[str, Any] = field(default_factory=default_canvas)
    layers: List[Layer] = field(default_factory=list)
    elements: List[CanvasElement] = field(default_factory=list)
    color_palette: List[ColorPaletteEntry] = field(default_factory=list)
    design_tokens: Dict[str, Dict[str, str]] = field(default_factory=empty_tokens)
    layout_analysis: LayoutAnalysis = field(default_factory=LayoutAnalysis)
    # 分析結果在讀檔時保留原始 dict，下一次同步才重新計算
    raw_layout_analysis: Optional[dict] = None
    metadata: Dict[str, Any] = field(default_factory=dict)

    @property
    def grid_size(self) -> float:
        return (self.canvas.get("grid") or {}).get("size") or 8

    def element_by_id(self, element_id: str) -> Optional[CanvasElement]:
        for element in self.elements:
            if element.id == element_id:
                return element
        return None

    def layer_by_id(self, layer_id: str) -> Optional[Layer]:
        for layer in self.layers:
            if layer.id == layer_id:
                return layer
        return None

    def remove_layer(self, layer_id: str) -> bool:
        """Drop a layer; its elements stay in the document, unlayered."""
        layer = self.layer_by_id(layer_id)
        if layer is None:
            return False
        self.layers.remove(layer)
        for element in self.elements:
            if element.layer_id == layer_id:
                element.layer_id = None
        return True

    def prune_layers(self) -> None:
        """Remove ids of elements that no longer exist from layer membership."""
        alive = {el.id for el in self.elements}
        for layer in self.layers:
            layer.elements = [eid for eid in layer.elements if eid in alive]

    def to_dict(self) -> dict:
        if self.layout_analysis.containers or self.layout_analysis.groups or self.layout_analysis.hierarchies:
            analysis = self.layout_analysis.to_dict()
        else:
            analysis = self.raw_layout_analysis or self.layout_analysis.to_dict()
        return {
            "canvas": self.canvas,
            "layers": [layer.to_dict() for layer in self.layers],
            "elements": [el.to_dict() for el in self.elements],
            "colorPalette": [entry.to_dict() for entry in self.color_palette],
            "designTokens": self.design_tokens,
            "layoutAnalysis": analysis,
            "metadata": self.metadata,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "CanvasDocument":
        canvas = default_canvas()
        canvas.update(data.get("canvas") or {})
        tokens = empty_tokens()
        for category, values in (data.get("designTokens") or {}).items():
            if isinstance(values, dict):
                tokens[category] = dict(values)
        return cls(
            canvas=canvas,
            layers=[Layer.from_dict(l) for l in data.get("layers") or []],
            elements=[CanvasElement.from_dict(e) for e in data.get("elements") or []],
            color_palette=[ColorPaletteEntry.from_dict(c) for c in data.get("colorPalette") or []],
            design_tokens=tokens,
            raw_layout_analysis=data.get("layoutAnalysis"),
            metadata=dict(data.get("metadata") or {}),
        )

    def copy(self) -> "CanvasDocument":
        return copy.deepcopy(self)
