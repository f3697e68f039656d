"""
vds-sync — CSS ↔ Canvas 雙向同步

設計師可在畫布或樣式表任一邊修改，另一邊跟著更新；
元素 id、手動位置、圖層指派在多次局部修改之間保持不變。
"""

__version__ = "0.1.0"

from .models import (
    CanvasDocument,
    CanvasElement,
    ColorPaletteEntry,
    Layer,
    LayoutAnalysis,
    Position,
    Size,
)
from .css_parser import CSSParseError, CSSRule, parse_stylesheet
from .ingest import Ingester, detect_changes
from .layout_analysis import LayoutAnalyzer, TextualContainmentHeuristic, layers_from_analysis
from .placement import IndexOffsetStrategy, Placer, SeededJitterStrategy
from .reconcile import MergeOutcome, ReconcileResult, Reconciler, merge_elements, reconcile
from .tokens import TokenNamer, export_tokens, extract_tokens, generate_all_tokens, merge_token_maps
from .generator import generate, write_generated_files
from .config import SyncOptions, load_config, validate_config
from .store import DocumentStore, LocalFiles
from .orchestrator import ChangeDescriptor, ChangeOrchestrator
from .watch import WatchSession

__all__ = [
    "__version__",
    "CanvasDocument",
    "CanvasElement",
    "ColorPaletteEntry",
    "Layer",
    "LayoutAnalysis",
    "Position",
    "Size",
    "CSSParseError",
    "CSSRule",
    "parse_stylesheet",
    "Ingester",
    "detect_changes",
    "LayoutAnalyzer",
    "TextualContainmentHeuristic",
    "layers_from_analysis",
    "IndexOffsetStrategy",
    "Placer",
    "SeededJitterStrategy",
    "MergeOutcome",
    "ReconcileResult",
    "Reconciler",
    "merge_elements",
    "reconcile",
    "TokenNamer",
    "export_tokens",
    "extract_tokens",
    "generate_all_tokens",
    "merge_token_maps",
    "generate",
    "write_generated_files",
    "SyncOptions",
    "load_config",
    "validate_config",
    "DocumentStore",
    "LocalFiles",
    "ChangeDescriptor",
    "ChangeOrchestrator",
    "WatchSession",
]
