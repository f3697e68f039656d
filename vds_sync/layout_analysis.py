"""
Layout relationship analysis

從扁平的元素清單推斷 containers、proximity groups 與 selector hierarchy。

Parent / child relations come from `TextualContainmentHeuristic`: a selector
"contains" another when its text (leading `.` stripped) appears inside the
other selector. This approximates DOM nesting only; `.card` also "contains"
`.cardinal`. Swap in another `HierarchyHeuristic` for real selector analysis.

The hierarchy is nested, not flat: `.page .card .title` hangs below
`.page .card` (its longest containing selector), which hangs below `.page`.
A flat two-level tree with every descendant directly under its root would
also be a valid forest; nesting keeps intermediate containers visible.
"""

import math
from typing import List, Optional, Protocol, Sequence

from .models import (
    CanvasElement,
    ContainerInfo,
    HierarchyNode,
    Layer,
    LayoutAnalysis,
    Position,
    ProximityGroup,
)

DEFAULT_PROXIMITY_THRESHOLD = 50


class HierarchyHeuristic(Protocol):
    def contains(self, parent_selector: str, child_selector: str) -> bool:
        ...


class TextualContainmentHeuristic:
    """`parent` contains `child` iff child's text includes parent's (minus a leading `.`)."""

    def contains(self, parent_selector: str, child_selector: str) -> bool:
        if not parent_selector or parent_selector == child_selector:
            return False
        needle = parent_selector[1:] if parent_selector.startswith(".") else parent_selector
        if not needle:
            return False
        return needle in child_selector


def _position(element: CanvasElement) -> Position:
    return element.position or Position()


def are_nearby(a: CanvasElement, b: CanvasElement, threshold: float = DEFAULT_PROXIMITY_THRESHOLD) -> bool:
    pa, pb = _position(a), _position(b)
    return math.hypot(pa.x - pb.x, pa.y - pb.y) <= threshold


class LayoutAnalyzer:

    def __init__(
        self,
        heuristic: Optional[HierarchyHeuristic] = None,
        proximity_threshold: float = DEFAULT_PROXIMITY_THRESHOLD,
    ):
        self.heuristic = heuristic or TextualContainmentHeuristic()
        self.proximity_threshold = proximity_threshold

    def analyze(self, elements: Sequence[CanvasElement]) -> LayoutAnalysis:
        elements = list(elements)
        return LayoutAnalysis(
            containers=self.find_containers(elements),
            groups=self.group_by_proximity(elements),
            hierarchies=self.build_hierarchy(elements),
        )

    # ─── Containers ───

    def find_containers(self, elements: List[CanvasElement]) -> List[ContainerInfo]:
        containers = []
        for element in elements:
            layout_type = (element.layout or {}).get("type")
            if layout_type not in ("flexbox", "grid"):
                continue
            containers.append(ContainerInfo(element=element, children=self.find_children(element, elements)))
        return containers

    def find_children(self, container: CanvasElement, elements: List[CanvasElement]) -> List[CanvasElement]:
        return [
            el for el in elements
            if el is not container and self.heuristic.contains(container.css_selector, el.css_selector)
        ]

    # ─── Proximity groups ───

    def group_by_proximity(self, elements: List[CanvasElement]) -> List[ProximityGroup]:
        """
        Greedy, list-order grouping.

        Each unprocessed element seeds a candidate group and absorbs every other
        unprocessed element near the seed (not near other members). Only groups
        with two or more members are kept and have their members marked processed.
        """
        groups: List[ProximityGroup] = []
        processed = set()

        for i, seed in enumerate(elements):
            if i in processed:
                continue
            members = [i]
            bounds = seed.bounds()
            for j, other in enumerate(elements):
                if j == i or j in processed:
                    continue
                if are_nearby(seed, other, self.proximity_threshold):
                    members.append(j)
                    bounds = bounds.union(other.bounds())
            if len(members) > 1:
                processed.update(members)
                groups.append(ProximityGroup(
                    id=f"group_{len(groups) + 1}",
                    elements=[elements[m] for m in members],
                    bounds=bounds,
                ))

        return groups

    # ─── Hierarchy ───

    def build_hierarchy(self, elements: List[CanvasElement]) -> List[HierarchyNode]:
        """Forest where every element hangs below its most specific containing element."""
        parent_of = {}
        for index, element in enumerate(elements):
            best = None
            for j, candidate in enumerate(elements):
                if j == index or not self.heuristic.contains(candidate.css_selector, element.css_selector):
                    continue
                if best is None or len(candidate.css_selector) > len(elements[best].css_selector):
                    best = j
            if best is not None:
                parent_of[index] = best

        # mutual containment (".a" vs "a") would form a cycle; those nodes stay roots
        for index in list(parent_of):
            seen = {index}
            parent = parent_of.get(index)
            while parent is not None and parent not in seen:
                seen.add(parent)
                parent = parent_of.get(parent)
            if parent == index:
                del parent_of[index]

        nodes = [HierarchyNode(element=el) for el in elements]
        roots = []
        for index, node in enumerate(nodes):
            parent = parent_of.get(index)
            if parent is None:
                roots.append(node)
            else:
                nodes[parent].children.append(node)
        return roots


def layers_from_analysis(analysis: LayoutAnalysis) -> List[Layer]:
    """Background layer, one layer per container (with children), one per proximity group."""
    layers = [Layer(id="layer_background", name="Background")]
    for index, container in enumerate(analysis.containers):
        layers.append(Layer(
            id=f"layer_container_{index}",
            name=f"Container: {container.type}",
            elements=[container.id] + [child.id for child in container.children],
        ))
    for index, group in enumerate(analysis.groups):
        layers.append(Layer(
            id=f"layer_group_{index}",
            name=f"Group {index + 1}",
            elements=[el.id for el in group.elements],
        ))
    return layers

