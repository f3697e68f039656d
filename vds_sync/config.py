"""設定檔載入、基本驗證與同步選項."""

import json
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, List

DEFAULT_CONFIG_PATH = "vds-sync.config.json"

# 已知欄位與期望型別
_KNOWN_KEYS = {
    "outputDir": str,
    "generateTokens": bool,
    "generateComponents": bool,
    "generateLayouts": bool,
    "generateSass": bool,
    "watchPaths": list,
    "canvasDataPath": str,
    "updateCanvas": bool,
    "preservePositions": bool,
    "proximityThreshold": (int, float),
    "classPrefix": str,
    "tokenPrefix": str,
    "debounce": (int, float),
}


def _warn(msg: str) -> None:
    print(f"   ⚠️  [config] {msg}")


def _type_name(expected) -> str:
    if isinstance(expected, tuple):
        return "數字"
    return {str: "字串", bool: "布林值", list: "陣列"}.get(expected, expected.__name__)


def validate_config(cfg: dict) -> None:
    """對 config 做基本欄位驗證，印出警告但不拋例外。"""
    if not cfg:
        return

    for key, value in cfg.items():
        if key not in _KNOWN_KEYS:
            known = ", ".join(sorted(_KNOWN_KEYS))
            _warn(f"未知欄位 '{key}'（已知欄位：{known}）")
            continue
        expected = _KNOWN_KEYS[key]
        # bool 是 int 的子類別，數字欄位不接受 true / false
        if isinstance(value, bool) and expected != bool:
            _warn(f"{key} 應為{_type_name(expected)}，目前是 bool")
        elif not isinstance(value, expected):
            _warn(f"{key} 應為{_type_name(expected)}，目前是 {type(value).__name__}")

    watch_paths = cfg.get("watchPaths")
    if isinstance(watch_paths, list):
        for pattern in watch_paths:
            if not isinstance(pattern, str):
                _warn(f"watchPaths 內的 {pattern!r} 不是字串，將被忽略")

    threshold = cfg.get("proximityThreshold")
    if isinstance(threshold, (int, float)) and not isinstance(threshold, bool) and threshold < 0:
        _warn(f"proximityThreshold 不應為負數（目前 {threshold}）")


def load_config(config_path: str = DEFAULT_CONFIG_PATH) -> dict:
    """載入 JSON 設定檔，不存在則回傳空 dict；存在則做基本驗證。"""
    path = Path(config_path)
    if not path.exists():
        return {}
    with open(path, "r", encoding="utf-8") as f:
        cfg: Any = json.load(f)
    if not isinstance(cfg, dict):
        print(f"   ⚠️  [config] '{config_path}' 格式錯誤，應為 JSON 物件，回傳空設定。")
        return {}
    validate_config(cfg)
    return cfg


def _default_watch_paths() -> List[str]:
    return ["src/**/*.css", "styles/**/*.css"]


@dataclass
class SyncOptions:
    output_dir: str = "src/styles"
    generate_tokens: bool = True
    generate_components: bool = True
    generate_layouts: bool = True
    generate_sass: bool = False
    watch_paths: List[str] = field(default_factory=_default_watch_paths)
    canvas_data_path: str = "src/design/design-data.json"
    update_canvas: bool = True
    preserve_positions: bool = True
    proximity_threshold: float = 50
    class_prefix: str = "vds-"
    token_prefix: str = "--vds"
    debounce: float = 0.5

    @classmethod
    def from_config(cls, cfg: dict) -> "SyncOptions":
        """Config dict → options; missing keys and values of the wrong type fall back to defaults."""
        options = cls()
        for key, expected in _KNOWN_KEYS.items():
            if key not in (cfg or {}):
                continue
            value = cfg[key]
            if isinstance(value, bool) and expected != bool:
                continue
            if not isinstance(value, expected):
                continue
            if key == "watchPaths":
                value = [p for p in value if isinstance(p, str)]
            setattr(options, _snake(key), value)
        return options


def _snake(key: str) -> str:
    return "".join(f"_{ch.lower()}" if ch.isupper() else ch for ch in key)
