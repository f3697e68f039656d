"""
Change orchestrator — one CSS file change → one document update

流程：load → read → ingest → reconcile → analyze → place → re-analyze →
palette / tokens → prune layers → metadata → persist → observers。
任何一步失敗：observers 收到 (None, error descriptor)，文件不寫入，也不往外拋。
同一時間只跑一個 pass（lock）。
"""

import os
import threading
from dataclasses import dataclass, field
from pathlib import Path
from typing import Callable, Dict, List, Optional

from .config import SyncOptions
from .generator import generate, write_generated_files
from .ingest import Ingester, default_id_factory
from .layout_analysis import LayoutAnalyzer, layers_from_analysis
from .models import DOCUMENT_VERSION, CanvasDocument, utc_now
from .palette import extract_palette, merge_palettes
from .placement import Placer
from .reconcile import Reconciler
from .store import DocumentStore, LocalFiles
from .tokens import extract_tokens, merge_token_maps

CSS_UPDATE = "css-update"
ERROR = "error"

Observer = Callable[[Optional[CanvasDocument], "ChangeDescriptor"], None]


def normalize_source_path(path: str) -> str:
    """同一檔案不同寫法（`a.css`、`./a.css`）→ 同一個 sourceFile：cwd 之下用相對路徑，否則絕對路徑。"""
    absolute = os.path.abspath(path)
    try:
        rel = os.path.relpath(absolute)
    except ValueError:
        return Path(absolute).as_posix()
    if rel == os.pardir or rel.startswith(os.pardir + os.sep):
        return Path(absolute).as_posix()
    return Path(rel).as_posix()


@dataclass
class ChangeDescriptor:
    file_path: str
    change_type: str
    counts: Optional[Dict[str, int]] = None
    warnings: List[str] = field(default_factory=list)
    error: Optional[str] = None
    timestamp: str = field(default_factory=utc_now)

    @property
    def is_error(self) -> bool:
        return self.change_type == ERROR

    def to_dict(self) -> dict:
        data = {"filePath": self.file_path, "changeType": self.change_type, "timestamp": self.timestamp}
        if self.counts is not None:
            data["counts"] = self.counts
        if self.warnings:
            data["warnings"] = list(self.warnings)
        if self.error is not None:
            data["error"] = self.error
        return data


class ChangeOrchestrator:

    def __init__(
        self,
        options: Optional[SyncOptions] = None,
        files: Optional[LocalFiles] = None,
        id_factory: Optional[Callable[[], str]] = None,
        strategy=None,
        analyzer: Optional[LayoutAnalyzer] = None,
    ):
        self.options = options or SyncOptions()
        self.files = files or LocalFiles()
        self.store = DocumentStore(self.options.canvas_data_path, self.files)
        id_factory = id_factory or default_id_factory
        self.ingester = Ingester(self.files, id_factory=id_factory, class_prefix=self.options.class_prefix)
        self.reconciler = Reconciler(id_factory=id_factory)
        self.analyzer = analyzer or LayoutAnalyzer(proximity_threshold=self.options.proximity_threshold)
        self.placer = Placer(strategy=strategy, preserve_positions=self.options.preserve_positions)
        self._observers: Dict[int, Observer] = {}
        self._next_handle = 1
        self._lock = threading.RLock()

    # ─── Observers ───

    def add_observer(self, callback: Observer) -> int:
        with self._lock:
            handle = self._next_handle
            self._next_handle += 1
            self._observers[handle] = callback
            return handle

    def remove_observer(self, handle: int) -> bool:
        with self._lock:
            return self._observers.pop(handle, None) is not None

    def _notify(self, document: Optional[CanvasDocument], descriptor: ChangeDescriptor) -> None:
        for handle, callback in list(self._observers.items()):
            try:
                callback(document, descriptor)
            except Exception as e:
                print(f"   ❌ Observer #{handle} failed: {e}")

    # ─── CSS → canvas ───

    def handle_file_change(self, path: str) -> Optional[CanvasDocument]:
        """Merge one stylesheet into the persisted document; errors go to observers, never raised."""
        path = normalize_source_path(path)
        with self._lock:
            try:
                document, descriptor = self._apply_file(path)
            except Exception as e:
                descriptor = ChangeDescriptor(file_path=path, change_type=ERROR, error=f"{type(e).__name__}: {e}")
                self._notify(None, descriptor)
                return None
            self._notify(document, descriptor)
            return document

    def _apply_file(self, path: str):
        document = self.store.load()
        css_text = self.files.read_text(path)
        fresh = self.ingester.parse_content(css_text, path)

        result = self.reconciler.reconcile(document.elements, fresh, path)
        elements = result.elements

        analysis = self.analyzer.analyze(elements)
        self.placer.place(elements, analysis)
        analysis = self.analyzer.analyze(elements)

        file_tokens = extract_tokens(css_text)
        document.elements = elements
        document.layout_analysis = analysis
        document.raw_layout_analysis = None
        document.design_tokens = merge_token_maps(document.design_tokens, file_tokens)
        document.color_palette = merge_palettes(document.color_palette, extract_palette(elements, file_tokens))
        document.prune_layers()
        document.metadata.update({
            "lastUpdated": utc_now(),
            "updatedFrom": path,
            "changeType": CSS_UPDATE,
            "version": DOCUMENT_VERSION,
        })

        if self.options.update_canvas:
            self.store.save(document)

        descriptor = ChangeDescriptor(
            file_path=path,
            change_type=CSS_UPDATE,
            counts=result.counts(),
            warnings=list(result.warnings),
        )
        return document, descriptor

    def convert_css_to_canvas(self, paths: List[str]) -> CanvasDocument:
        """Fresh document from several stylesheets: layers come from the layout analysis."""
        paths = [normalize_source_path(p) for p in paths]
        with self._lock:
            document = CanvasDocument()
            tokens = {}
            for path in paths:
                css_text = self.files.read_text(path)
                fresh = self.ingester.parse_content(css_text, path)
                document.elements = self.reconciler.reconcile(document.elements, fresh, path).elements
                tokens = merge_token_maps(tokens, extract_tokens(css_text))

            analysis = self.analyzer.analyze(document.elements)
            self.placer.place(document.elements, analysis)
            analysis = self.analyzer.analyze(document.elements)

            document.layout_analysis = analysis
            document.raw_layout_analysis = None
            document.layers = layers_from_analysis(analysis)
            for layer in document.layers:
                for element_id in layer.elements:
                    element = document.element_by_id(element_id)
                    if element is not None and element.layer_id is None:
                        element.layer_id = layer.id
            document.design_tokens = merge_token_maps({}, tokens)
            document.color_palette = extract_palette(document.elements, tokens)
            document.metadata = {
                "generatedFrom": "css",
                "sources": list(paths),
                "lastUpdated": utc_now(),
                "version": DOCUMENT_VERSION,
            }
            if self.options.update_canvas:
                self.store.save(document)
            return document

    # ─── canvas → CSS ───

    def sync_canvas_to_css(self) -> Dict[str, str]:
        """Generate stylesheets from the persisted document and write them to outputDir."""
        with self._lock:
            document = self.store.load()
            files = generate(document, self.options)
            write_generated_files(files, self.options.output_dir, self.files)
            return files
