"""
檔案存取與畫布文件持久化

LocalFiles 是讀寫檔案的最小介面（可替換成測試用的記憶體版本）；
DocumentStore 以整份 JSON 讀寫 CanvasDocument，寫入採暫存檔 + replace，
寫入失敗時原檔保持不變。
"""

import json
import os
import tempfile
from pathlib import Path

from .models import CanvasDocument


class LocalFiles:
    """read / write capability on the local file system."""

    def read_text(self, path: str) -> str:
        with open(path, "r", encoding="utf-8") as f:
            return f.read()

    def write_text(self, path: str, content: str) -> None:
        target = Path(path)
        target.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp_path = tempfile.mkstemp(dir=str(target.parent), prefix=f".{target.name}.", suffix=".tmp")
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                f.write(content)
            os.replace(tmp_path, target)
        except BaseException:
            if os.path.exists(tmp_path):
                os.unlink(tmp_path)
            raise

    def exists(self, path: str) -> bool:
        return Path(path).is_file()


class DocumentStore:
    """Whole-document JSON persistence at one path."""

    def __init__(self, path: str, files: LocalFiles = None):
        self.path = path
        self.files = files or LocalFiles()

    def load(self) -> CanvasDocument:
        """Missing file → default empty document."""
        if not self.files.exists(self.path):
            return CanvasDocument()
        data = json.loads(self.files.read_text(self.path))
        if not isinstance(data, dict):
            raise ValueError(f"'{self.path}' 格式錯誤，應為 JSON 物件")
        return CanvasDocument.from_dict(data)

    def save(self, document: CanvasDocument) -> str:
        content = json.dumps(document.to_dict(), indent=2, ensure_ascii=False) + "\n"
        self.files.write_text(self.path, content)
        return self.path
