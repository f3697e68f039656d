"""
Watch session — 監聽樣式表變更並逐一交給 orchestrator

  session = WatchSession(orchestrator, root=".")
  session.start()
  ...
  session.stop()

event loop 在獨立 daemon 執行緒中 run_forever；每個變更事件包成 coroutine
透過 run_coroutine_threadsafe 排進 loop，因此同一時間只會處理一個檔案。
"""

import asyncio
import fnmatch
import os
import threading
import time
from pathlib import Path
from typing import Dict, List, Optional

from watchdog.events import FileSystemEventHandler
from watchdog.observers import Observer

from .orchestrator import ChangeOrchestrator


def _relative(path: str, root: str) -> str:
    try:
        rel = os.path.relpath(path, root)
    except ValueError:
        rel = path
    return Path(rel).as_posix()


def matches_watch_path(rel_path: str, patterns: List[str]) -> bool:
    """Glob match on the posix relative path; `**/` may also match zero directories."""
    if "node_modules" in Path(rel_path).parts:
        return False
    for pattern in patterns:
        if fnmatch.fnmatch(rel_path, pattern):
            return True
        if "**/" in pattern and fnmatch.fnmatch(rel_path, pattern.replace("**/", "")):
            return True
    return False


class ChangeHandler(FileSystemEventHandler):
    """檔案變更事件處理器，帶 per-path debounce 防抖。"""

    def __init__(
        self,
        callback,
        loop: asyncio.AbstractEventLoop,
        patterns: List[str],
        root: str = ".",
        debounce: float = 0.5,
    ):
        self.callback = callback
        self.loop = loop
        self.patterns = patterns
        self.root = root
        self.debounce_seconds = debounce
        self.last_trigger: Dict[str, float] = {}
        self.pending = set()

    def on_modified(self, event):
        return self._dispatch(event, event.src_path)

    def on_created(self, event):
        return self._dispatch(event, event.src_path)

    def on_moved(self, event):
        return self._dispatch(event, event.dest_path)

    def _dispatch(self, event, path: str):
        if event.is_directory:
            return None
        if not matches_watch_path(_relative(path, self.root), self.patterns):
            return None
        current_time = time.time()
        if current_time - self.last_trigger.get(path, 0.0) < self.debounce_seconds:
            return None
        self.last_trigger[path] = current_time
        print(f"\n🔄 File changed: {path}")
        # 透過 threadsafe 把 coroutine 丟進 loop（loop 在獨立執行緒中 run_forever）
        future = asyncio.run_coroutine_threadsafe(self.callback(path), self.loop)
        self.pending.add(future)
        future.add_done_callback(self.pending.discard)
        return future

    def cancel_pending(self) -> int:
        cancelled = 0
        for future in list(self.pending):
            if future.cancel():
                cancelled += 1
        self.pending.clear()
        return cancelled


class WatchSession:
    """Owns the watchdog observer, the loop thread and the observer handles it registered."""

    def __init__(
        self,
        orchestrator: ChangeOrchestrator,
        root: str = ".",
        patterns: Optional[List[str]] = None,
        debounce: Optional[float] = None,
    ):
        self.orchestrator = orchestrator
        self.root = root
        self.patterns = patterns if patterns is not None else list(orchestrator.options.watch_paths)
        self.debounce = debounce if debounce is not None else orchestrator.options.debounce
        self.loop: Optional[asyncio.AbstractEventLoop] = None
        self.handler: Optional[ChangeHandler] = None
        self._observer = None
        self._loop_thread: Optional[threading.Thread] = None
        self._handles: List[int] = []

    @property
    def running(self) -> bool:
        return self._observer is not None

    def add_observer(self, callback) -> int:
        handle = self.orchestrator.add_observer(callback)
        self._handles.append(handle)
        return handle

    async def _process(self, path: str):
        return self.orchestrator.handle_file_change(path)

    def start(self) -> None:
        if self.running:
            return
        self.loop = asyncio.new_event_loop()

        def run_loop():
            asyncio.set_event_loop(self.loop)
            self.loop.run_forever()

        self._loop_thread = threading.Thread(target=run_loop, daemon=True)
        self._loop_thread.start()

        self.handler = ChangeHandler(self._process, self.loop, self.patterns, root=self.root, debounce=self.debounce)
        self._observer = Observer()
        self._observer.schedule(self.handler, path=self.root, recursive=True)
        self._observer.start()

    def stop(self, timeout: float = 5.0) -> None:
        """Cancel queued changes, let the in-flight one finish, release watcher and observers."""
        if not self.running:
            return
        self._observer.stop()
        self._observer.join(timeout)
        self._observer = None

        if self.handler is not None:
            self.handler.cancel_pending()
        if self.loop is not None:
            self.loop.call_soon_threadsafe(self.loop.stop)
        if self._loop_thread is not None:
            self._loop_thread.join(timeout)
            finished = not self._loop_thread.is_alive()
            self._loop_thread = None
            if finished and self.loop is not None:
                self._drain(self.loop)
                self.loop.close()
        self.loop = None

        for handle in self._handles:
            self.orchestrator.remove_observer(handle)
        self._handles = []

    @staticmethod
    def _drain(loop: asyncio.AbstractEventLoop) -> None:
        # 已取消但尚未跑到的 task 要讓 loop 再轉一次才會真正結束
        pending = asyncio.all_tasks(loop)
        for task in pending:
            task.cancel()
        if pending:
            loop.run_until_complete(asyncio.gather(*pending, return_exceptions=True))

    def __enter__(self):
        self.start()
        return self

    def __exit__(self, *exc):
        self.stop()
        return False
