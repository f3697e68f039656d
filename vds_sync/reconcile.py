"""
Reconciliation — merge one file's freshly parsed elements into the document

只處理 source_file 所擁有的元素；其他檔案的元素（foreign）原樣保留在前面。
比對規則：cssSelector 相同，或 sourceFile 與 id 都相同。
命中時沿用舊元素的 id / position / layerId / canvasMetadata，
其餘衍生欄位（type / size / style / layout）一律採用新值。
"""

import enum
import json
from dataclasses import dataclass, field
from typing import Callable, Dict, List, Optional

from .ingest import default_id_factory
from .models import CanvasElement, utc_now


def _warn(msg: str) -> None:
    print(f"   ⚠️  [reconcile] {msg}")


class MergeOutcome(enum.Enum):
    KEPT = "kept"
    UPDATED = "updated"
    ADDED = "added"
    REMOVED = "removed"


@dataclass
class ReconcileEntry:
    outcome: MergeOutcome
    element: CanvasElement
    previous: Optional[CanvasElement] = None


@dataclass
class ReconcileResult:
    elements: List[CanvasElement] = field(default_factory=list)
    outcomes: List[ReconcileEntry] = field(default_factory=list)
    warnings: List[str] = field(default_factory=list)

    def counts(self) -> Dict[str, int]:
        counts = {outcome.value: 0 for outcome in MergeOutcome}
        for entry in self.outcomes:
            counts[entry.outcome.value] += 1
        return counts

    def by_outcome(self, outcome: MergeOutcome) -> List[CanvasElement]:
        return [entry.element for entry in self.outcomes if entry.outcome is outcome]


def _derived(element: CanvasElement) -> str:
    return json.dumps(
        [element.type, element.size.to_dict(), element.style, element.layout, element.css_properties],
        sort_keys=True,
        default=str,
    )


def _matches(candidate: CanvasElement, fresh: CanvasElement, source_file: str) -> bool:
    if candidate.css_selector and candidate.css_selector == fresh.css_selector:
        return True
    return candidate.source_file == source_file and candidate.id == fresh.id


class Reconciler:

    def __init__(self, id_factory: Optional[Callable[[], str]] = None):
        self.id_factory = id_factory or default_id_factory

    def reconcile(
        self,
        existing: List[CanvasElement],
        fresh: List[CanvasElement],
        source_file: str,
    ) -> ReconcileResult:
        foreign = [el for el in existing if el.source_file != source_file]
        owned = [el for el in existing if el.source_file == source_file]
        consumed = set()

        result = ReconcileResult()
        merged: List[CanvasElement] = []
        now = utc_now()

        for element in fresh:
            match = None
            for candidate in merged:
                if _matches(candidate, element, source_file):
                    match = candidate
                    break
            if match is not None:
                # 同一輪已合併過的 selector：後者覆蓋前者的衍生欄位
                self._overlay(match, element, now)
                continue

            for index, candidate in enumerate(owned):
                if index in consumed or not _matches(candidate, element, source_file):
                    continue
                consumed.add(index)
                match = candidate
                break

            if match is not None:
                outcome = MergeOutcome.KEPT if _derived(match) == _derived(element) else MergeOutcome.UPDATED
                merged_element = CanvasElement(
                    id=match.id,
                    type=element.type,
                    size=element.size,
                    position=match.position if match.position is not None else element.position,
                    style=element.style,
                    layout=element.layout,
                    css_selector=element.css_selector,
                    source_file=source_file,
                    layer_id=match.layer_id if match.layer_id is not None else element.layer_id,
                    canvas_metadata=match.canvas_metadata,
                    last_modified=now,
                    css_properties=element.css_properties,
                    extra=match.extra,
                )
                result.outcomes.append(ReconcileEntry(outcome, merged_element, previous=match))
            else:
                merged_element = element
                merged_element.source_file = source_file
                merged_element.last_modified = now
                result.outcomes.append(ReconcileEntry(MergeOutcome.ADDED, merged_element))

            merged.append(merged_element)

        # 新元素的 id 若與文件內既有 id 衝突，重新取號
        reserved = {el.id for el in existing}
        for entry in result.outcomes:
            if entry.outcome is not MergeOutcome.ADDED:
                continue
            element = entry.element
            while element.id in reserved:
                element.id = self.id_factory()
            reserved.add(element.id)

        for index, element in enumerate(owned):
            if index not in consumed:
                result.outcomes.append(ReconcileEntry(MergeOutcome.REMOVED, element, previous=element))

        if owned and not consumed:
            message = f"'{source_file}' 原有 {len(owned)} 個元素，這次一個都沒有對上（樣式表被清空？）"
            _warn(message)
            result.warnings.append(message)

        result.elements = foreign + merged
        return result

    @staticmethod
    def _overlay(target: CanvasElement, element: CanvasElement, now: str) -> None:
        target.type = element.type
        target.size = element.size
        target.style = element.style
        target.layout = element.layout
        target.css_properties = element.css_properties
        target.last_modified = now


def reconcile(
    existing: List[CanvasElement],
    fresh: List[CanvasElement],
    source_file: str,
    id_factory: Optional[Callable[[], str]] = None,
) -> ReconcileResult:
    return Reconciler(id_factory=id_factory).reconcile(existing, fresh, source_file)


def merge_elements(existing: List[CanvasElement], fresh: List[CanvasElement], source_file: str) -> List[CanvasElement]:
    return reconcile(existing, fresh, source_file).elements
