"""
Watch 模式 / ChangeHandler 單元測試
不需要真實檔案系統事件，用 mock event 物件測試過濾、防抖與 loop 排程邏輯。
"""
import asyncio
import os
import time
from unittest.mock import MagicMock, patch

from vds_sync.config import SyncOptions
from vds_sync.orchestrator import ChangeOrchestrator
from vds_sync.watch import ChangeHandler, WatchSession, matches_watch_path

PATTERNS = ["src/**/*.css", "styles/**/*.css"]


# ─── helper: 建立假 FileSystemEvent ─────────────────────────────────────────

def make_event(src_path: str, is_directory: bool = False, dest_path: str = None):
    ev = MagicMock()
    ev.is_directory = is_directory
    ev.src_path = src_path
    ev.dest_path = dest_path
    return ev


# ─── watchPaths 比對 ─────────────────────────────────────────────────────────

class TestMatchesWatchPath:

    def test_nested_match(self):
        assert matches_watch_path("src/components/button.css", PATTERNS)

    def test_double_star_matches_zero_directories(self):
        assert matches_watch_path("src/app.css", PATTERNS)
        assert matches_watch_path("styles/main.css", PATTERNS)

    def test_other_extensions_ignored(self):
        for name in ("src/app.scss", "src/app.js", "src/readme.md"):
            assert not matches_watch_path(name, PATTERNS), f"{name} 應被忽略"

    def test_outside_patterns_ignored(self):
        assert not matches_watch_path("vendor/lib.css", PATTERNS)

    def test_node_modules_excluded(self):
        assert not matches_watch_path("src/node_modules/pkg/a.css", PATTERNS)
        assert not matches_watch_path("node_modules/a.css", ["**/*.css"])


# ─── ChangeHandler 過濾邏輯 ──────────────────────────────────────────────────

class TestChangeHandlerFilter:
    """測試事件過濾條件：目錄、watchPaths、callback 呼叫。"""

    def setup_method(self):
        self.loop = asyncio.new_event_loop()
        self.root = os.path.abspath("project")

        async def dummy_callback(path):
            pass

        self.handler = ChangeHandler(dummy_callback, self.loop, PATTERNS, root=self.root, debounce=0.0)

    def teardown_method(self):
        self.loop.close()

    def path(self, rel):
        return os.path.join(self.root, rel)

    def test_directory_event_ignored(self):
        ev = make_event(self.path("src/components"), is_directory=True)
        with patch("asyncio.run_coroutine_threadsafe") as mock_run:
            self.handler.on_modified(ev)
            mock_run.assert_not_called()

    def test_unwatched_file_ignored(self):
        with patch("asyncio.run_coroutine_threadsafe") as mock_run:
            self.handler.on_modified(make_event(self.path("src/App.vue")))
            self.handler.on_modified(make_event(self.path("node_modules/x/a.css")))
            mock_run.assert_not_called()

    def test_modified_created_moved_trigger(self):
        with patch("asyncio.run_coroutine_threadsafe") as mock_run:
            self.handler.on_modified(make_event(self.path("src/a.css")))
            self.handler.on_created(make_event(self.path("src/b.css")))
            self.handler.on_moved(make_event(self.path("src/tmp.txt"), dest_path=self.path("src/c.css")))
            assert mock_run.call_count == 3

    def test_callback_receives_correct_loop(self):
        with patch("asyncio.run_coroutine_threadsafe") as mock_run:
            self.handler.on_modified(make_event(self.path("src/a.css")))
            assert mock_run.call_args[0][1] is self.loop

    def test_deleted_events_ignored(self):
        with patch("asyncio.run_coroutine_threadsafe") as mock_run:
            self.handler.on_deleted(make_event(self.path("src/a.css")))
            mock_run.assert_not_called()


# ─── ChangeHandler debounce 邏輯 ─────────────────────────────────────────────

class TestChangeHandlerDebounce:
    """測試防抖：同一路徑短時間內重複觸發只排程一次；不同路徑互不影響。"""

    def setup_method(self):
        self.loop = asyncio.new_event_loop()

        async def dummy(path):
            pass

        self.handler = ChangeHandler(dummy, self.loop, ["*.css"], root="/", debounce=0.5)

    def teardown_method(self):
        self.loop.close()

    def test_debounce_blocks_rapid_events(self):
        ev = make_event("/app.css")
        with patch("asyncio.run_coroutine_threadsafe") as mock_run:
            self.handler.on_modified(ev)
            self.handler.on_modified(ev)
            self.handler.on_modified(ev)
            assert mock_run.call_count == 1

    def test_debounce_is_per_path(self):
        with patch("asyncio.run_coroutine_threadsafe") as mock_run:
            self.handler.on_modified(make_event("/a.css"))
            self.handler.on_modified(make_event("/b.css"))
            assert mock_run.call_count == 2

    def test_debounce_allows_event_after_window(self):
        ev = make_event("/app.css")
        with patch("asyncio.run_coroutine_threadsafe") as mock_run:
            self.handler.on_modified(ev)
            assert mock_run.call_count == 1

            # 模擬時間過了超過 debounce 視窗
            self.handler.last_trigger["/app.css"] = time.time() - 1.0

            self.handler.on_modified(ev)
            assert mock_run.call_count == 2

    def test_cancel_pending(self):
        future = MagicMock()
        future.cancel.return_value = True
        with patch("asyncio.run_coroutine_threadsafe", return_value=future):
            self.handler.on_modified(make_event("/app.css"))
        assert self.handler.cancel_pending() == 1
        assert self.handler.pending == set()


# ─── WatchSession ───────────────────────────────────────────────────────────

class TestWatchSession:

    def make_session(self, tmp_path):
        options = SyncOptions(canvas_data_path=str(tmp_path / "design.json"))
        return WatchSession(ChangeOrchestrator(options), root=str(tmp_path), patterns=["*.css"], debounce=0.0)

    def test_defaults_from_options(self, tmp_path):
        options = SyncOptions(watch_paths=["css/*.css"], debounce=2)
        session = WatchSession(ChangeOrchestrator(options))
        assert session.patterns == ["css/*.css"]
        assert session.debounce == 2

    def test_start_and_stop(self, tmp_path):
        with patch("vds_sync.watch.Observer") as observer_cls:
            session = self.make_session(tmp_path)
            session.start()
            assert session.running
            observer_cls.return_value.schedule.assert_called_once()
            observer_cls.return_value.start.assert_called_once()
            session.stop()
            assert not session.running
            observer_cls.return_value.stop.assert_called_once()
            assert session.loop is None

    def test_stop_removes_session_observers(self, tmp_path):
        with patch("vds_sync.watch.Observer"):
            session = self.make_session(tmp_path)
            handle = session.add_observer(lambda doc, desc: None)
            session.start()
            session.stop()
            assert session.orchestrator.remove_observer(handle) is False

    def test_change_processed_through_loop(self, tmp_path):
        css = tmp_path / "a.css"
        css.write_text(".a { width: 10px; }", encoding="utf-8")
        seen = []
        with patch("vds_sync.watch.Observer"):
            with self.make_session(tmp_path) as session:
                session.add_observer(lambda doc, desc: seen.append(desc))
                future = session.handler.on_modified(make_event(str(css)))
                document = future.result(timeout=5)
        assert seen and seen[0].change_type == "css-update"
        assert document.elements[0].css_selector == ".a"

    def test_stop_cancels_leftover_tasks_before_close(self, tmp_path):
        with patch("vds_sync.watch.Observer"):
            session = self.make_session(tmp_path)
            session.start()
            loop = session.loop
            leftover = asyncio.run_coroutine_threadsafe(asyncio.sleep(10), loop)
            session.stop()
        assert leftover.cancelled()
        assert loop.is_closed()
