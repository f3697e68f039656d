"""
CSS parser — stylesheet text → selector / declaration records

tinycss2 負責 tokenize；這裡只做：
  - var(--x) 代換（同檔案內宣告的 custom property）
  - nested rule 攤平（& / :pseudo / descendant）
  - @media 規則標記 media_query，其他 at-rule 略過
  - 只保留支援的屬性，且至少要有一個視覺屬性
"""

import re
from dataclasses import dataclass, field
from typing import Dict, List, Optional

import tinycss2

SUPPORTED_PROPERTIES = frozenset({
    "width", "height", "min-width", "min-height", "max-width", "max-height",
    "background", "background-color", "background-image", "background-size", "background-position",
    "border", "border-radius", "border-color", "border-width", "border-style",
    "border-top", "border-right", "border-bottom", "border-left",
    "color", "font-size", "font-weight", "font-family", "line-height", "text-align",
    "padding", "margin", "padding-top", "padding-right", "padding-bottom", "padding-left",
    "margin-top", "margin-right", "margin-bottom", "margin-left",
    "display", "flex-direction", "justify-content", "align-items", "flex-wrap",
    "grid-template-columns", "grid-template-rows", "grid-gap", "gap",
    "position", "top", "right", "bottom", "left", "z-index",
    "transform", "transform-origin", "transition", "animation",
    "box-shadow", "text-shadow", "opacity", "visibility", "overflow",
    "cursor", "pointer-events",
})

VISUAL_PROPERTIES = frozenset({
    "width", "height", "background", "background-color", "background-image", "border",
    "border-radius", "color", "font-size", "box-shadow", "transform",
    "border-width", "border-color", "border-style", "opacity",
})

_CUSTOM_PROP_RE = re.compile(r"(--[\w-]+)\s*:\s*([^;{}]+)")
_VAR_RE = re.compile(r"var\(\s*(--[\w-]+)\s*(?:,\s*([^()]*(?:\([^()]*\))?[^()]*))?\)")


class CSSParseError(ValueError):
    """Stylesheet text that cannot be turned into rules."""

    def __init__(self, message: str, line: Optional[int] = None, column: Optional[int] = None):
        self.line = line
        self.column = column
        where = f" (line {line}, column {column})" if line is not None else ""
        super().__init__(f"{message}{where}")


@dataclass
class CSSRule:
    selector: str
    properties: Dict[str, str] = field(default_factory=dict)
    specificity: int = 0
    media_query: Optional[str] = None


def calculate_specificity(selector: str) -> int:
    """Rough score: ids ×100, classes / attributes / pseudo-classes ×10, leading type ×1."""
    score = selector.count("#") * 100
    score += len(re.findall(r"\.|:|\[", selector)) * 10
    score += len(re.findall(r"^[a-zA-Z]|::", selector))
    return score


def has_visual_properties(properties: Dict[str, str]) -> bool:
    return any(prop in VISUAL_PROPERTIES for prop in properties)


def combine_selectors(parent: str, nested: str) -> str:
    if "&" in nested:
        return nested.replace("&", parent)
    if nested.startswith(":"):
        return parent + nested
    return f"{parent} {nested}"


def resolve_custom_properties(css_text: str) -> str:
    """Replace var(--x) with the value declared for --x in the same text (fallback if undeclared)."""
    declared = {}
    for match in _CUSTOM_PROP_RE.finditer(css_text):
        declared[match.group(1)] = match.group(2).strip()

    def _sub(match):
        name, fallback = match.group(1), match.group(2)
        if name in declared:
            return declared[name]
        if fallback is not None:
            return fallback.strip()
        return match.group(0)

    return _VAR_RE.sub(_sub, css_text)


def _normalize_selector(tokens) -> str:
    return " ".join(tinycss2.serialize(tokens).split())


def _declarations(nodes) -> Dict[str, str]:
    properties: Dict[str, str] = {}
    for node in nodes:
        if node.type != "declaration":
            continue
        name = node.lower_name
        if name in SUPPORTED_PROPERTIES:
            properties[name] = tinycss2.serialize(node.value).strip()
    return properties


def _collect_block(selector: str, content, media_query: Optional[str], rules: List[CSSRule]) -> None:
    nodes = tinycss2.parse_blocks_contents(content or [], skip_comments=True, skip_whitespace=True)
    properties = _declarations(nodes)
    if has_visual_properties(properties):
        rules.append(CSSRule(
            selector=selector,
            properties=properties,
            specificity=calculate_specificity(selector),
            media_query=media_query,
        ))
    for node in nodes:
        if node.type == "qualified-rule":
            nested = _normalize_selector(node.prelude)
            _collect_block(combine_selectors(selector, nested), node.content, media_query, rules)


def parse_stylesheet(css_text: str) -> List[CSSRule]:
    """CSS text → CSSRule list in source order. Raises CSSParseError on a rule without a block."""
    text = resolve_custom_properties(css_text)
    nodes = tinycss2.parse_stylesheet(text, skip_comments=True, skip_whitespace=True)
    rules: List[CSSRule] = []

    for node in nodes:
        if node.type == "error":
            raise CSSParseError(node.message, node.source_line, node.source_column)
        if node.type == "qualified-rule":
            _collect_block(_normalize_selector(node.prelude), node.content, None, rules)
        elif node.type == "at-rule" and node.lower_at_keyword == "media" and node.content is not None:
            condition = " ".join(tinycss2.serialize(node.prelude).split())
            inner = tinycss2.parse_rule_list(node.content, skip_comments=True, skip_whitespace=True)
            for child in inner:
                if child.type == "qualified-rule":
                    _collect_block(_normalize_selector(child.prelude), child.content, condition, rules)

    return rules
