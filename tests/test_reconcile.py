"""
Reconciliation 單元測試：身分延續、檔案範圍、結果標記、id 不重複。
"""
import itertools

from vds_sync.ingest import Ingester
from vds_sync.models import CanvasElement, Position, Size
from vds_sync.reconcile import MergeOutcome, Reconciler, merge_elements, reconcile


def counter_ids(prefix):
    counter = itertools.count(1)
    return lambda: f"{prefix}{next(counter)}"


def parse(css, source="a.css", prefix="new_"):
    return Ingester(id_factory=counter_ids(prefix)).parse_content(css, source)


class TestIdentityPreserved:

    def setup_method(self):
        existing = parse(".btn { width: 80px; height: 30px; background-color: #00f; }", prefix="old_")
        self.old = existing[0]
        self.old.position = Position(300, 400)
        self.old.layer_id = "layer_1"
        self.old.canvas_metadata = {"text": "Buy", "locked": True}
        self.old.extra = {"note": "designer"}
        self.existing = existing

    def test_update_keeps_designer_fields(self):
        fresh = parse(".btn { width: 120px; height: 30px; background-color: #f00; }")
        result = reconcile(self.existing, fresh, "a.css")
        merged = result.elements[0]
        assert merged.id == self.old.id
        assert merged.position == Position(300, 400)
        assert merged.layer_id == "layer_1"
        assert merged.canvas_metadata == {"text": "Buy", "locked": True}
        assert merged.extra == {"note": "designer"}
        assert merged.size.width == 120
        assert merged.style["fill"] == "#f00"
        assert merged.last_modified is not None
        assert result.outcomes[0].outcome is MergeOutcome.UPDATED

    def test_unchanged_is_kept(self):
        fresh = parse(".btn { width: 80px; height: 30px; background-color: #00f; }")
        result = reconcile(self.existing, fresh, "a.css")
        assert result.counts() == {"kept": 1, "updated": 0, "added": 0, "removed": 0}

    def test_type_change_applied(self):
        fresh = parse(".btn { width: 80px; height: 80px; border-radius: 50%; }")
        merged = reconcile(self.existing, fresh, "a.css").elements[0]
        assert merged.type == "circle"
        assert merged.id == self.old.id

    def test_match_by_id_after_selector_rename(self):
        self.old.id = "abc"
        fresh = parse(".vds-rect-abc { width: 80px; height: 30px; }")
        merged = reconcile(self.existing, fresh, "a.css").elements[0]
        assert merged.id == "abc"
        assert merged.position == Position(300, 400)


class TestFileScope:

    def test_foreign_untouched_and_first(self):
        foreign = parse(".other { width: 10px; }", source="b.css", prefix="b_")
        owned = parse(".mine { width: 10px; }", prefix="a_")
        fresh = parse(".mine { width: 20px; }")
        result = reconcile(foreign + owned, fresh, "a.css")
        assert result.elements[0] is foreign[0]
        assert result.elements[0].size.width == 10
        assert [el.css_selector for el in result.elements] == [".other", ".mine"]

    def test_same_selector_in_other_file_not_matched(self):
        foreign = parse(".btn { width: 10px; }", source="b.css", prefix="b_")
        fresh = parse(".btn { width: 20px; }")
        result = reconcile(foreign, fresh, "a.css")
        assert len(result.elements) == 2
        assert result.elements[0].size.width == 10
        assert result.outcomes[0].outcome is MergeOutcome.ADDED

    def test_removed_selector_dropped(self):
        owned = parse(".a { width: 1px; } .b { width: 1px; }", prefix="o_")
        fresh = parse(".a { width: 1px; }")
        result = reconcile(owned, fresh, "a.css")
        assert [el.css_selector for el in result.elements] == [".a"]
        assert result.by_outcome(MergeOutcome.REMOVED)[0].css_selector == ".b"

    def test_fresh_order_kept(self):
        owned = parse(".a { width: 1px; } .b { width: 1px; }", prefix="o_")
        fresh = parse(".b { width: 1px; } .c { width: 1px; } .a { width: 1px; }")
        result = reconcile(owned, fresh, "a.css")
        assert [el.css_selector for el in result.elements] == [".b", ".c", ".a"]

    def test_added_element_stamped(self):
        fresh = parse(".new { width: 1px; }", source="somewhere-else.css")
        element = reconcile([], fresh, "a.css").elements[0]
        assert element.source_file == "a.css"
        assert element.last_modified is not None


class TestIds:

    def test_colliding_fresh_id_redrawn(self):
        foreign = [CanvasElement(id="hero", type="rectangle", css_selector=".x", source_file="b.css")]
        fresh = parse("#hero { width: 10px; }")
        result = Reconciler(id_factory=counter_ids("re_")).reconcile(foreign, fresh, "a.css")
        ids = [el.id for el in result.elements]
        assert ids == ["hero", "re_1"]

    def test_same_file_same_id_matches(self):
        owned = [CanvasElement(id="x1", type="rectangle", css_selector=".gone", source_file="a.css")]
        fresh = [CanvasElement(id="x1", type="rectangle", css_selector=".other", source_file="a.css", size=Size(5, 5))]
        # 同檔案同 id → 視為同一元素
        result = reconcile(owned, fresh, "a.css")
        assert result.elements[0].id == "x1"
        assert result.counts()["removed"] == 0

    def test_ids_unique(self):
        foreign = parse(".a { width: 1px; } .b { width: 1px; }", source="b.css", prefix="x")
        fresh = parse(".c { width: 1px; } .d { width: 1px; }", prefix="x")
        elements = merge_elements(foreign, fresh, "a.css")
        ids = [el.id for el in elements]
        assert len(ids) == len(set(ids)) == 4


class TestWarnings:

    def test_zero_match_warns(self, capsys):
        owned = parse(".a { width: 1px; }", prefix="o_")
        result = reconcile(owned, [], "a.css")
        assert result.elements == []
        assert len(result.warnings) == 1
        assert "a.css" in capsys.readouterr().out

    def test_first_ingest_no_warning(self):
        result = reconcile([], parse(".a { width: 1px; }"), "a.css")
        assert result.warnings == []


def test_idempotent_merge():
    owned = parse(".a { width: 1px; } .b { width: 2px; }", prefix="o_")
    once = merge_elements(owned, parse(".a { width: 1px; } .b { width: 2px; }"), "a.css")
    twice = merge_elements(once, parse(".a { width: 1px; } .b { width: 2px; }", prefix="z_"), "a.css")
    assert [el.id for el in once] == [el.id for el in twice] == [el.id for el in owned]
