"""Unit tests for the Region Finder: adjacency, ordering, change tokens."""

from __future__ import annotations

import pytest

from livedoc import NEVER_RUN, CodeRegion, NodeRef, RegionFinder, compute_snapshot, find_code_blocks
from tests.live_engine.conftest import code, doc, para, result


@pytest.mark.unit
class TestFindCodeBlocks:
    def test_one_region_per_code_node(self):
        d = doc(para("intro"), code("a = 1"), para("mid"), code("b = 2"), result("2"))
        regions = find_code_blocks(d)
        assert [r.code_text for r in regions] == ["a = 1", "b = 2"]
        assert regions[0].result is None
        assert regions[1].result is not None
        assert regions[1].result.pos == regions[1].code.end

    def test_orphan_result_is_ignored(self):
        d = doc(result("orphan"), code("x"), para("gap"), result("far"))
        regions = find_code_blocks(d)
        assert len(regions) == 1
        assert regions[0].result is None

    def test_consecutive_code_blocks(self):
        d = doc(code("a"), code("b"), result("rb"))
        regions = find_code_blocks(d)
        assert regions[0].result is None
        assert regions[1].result.node.text == "rb"

    def test_region_end(self):
        d = doc(code("x"), result("yy"))
        (region,) = find_code_blocks(d)
        assert region.end == d.content_size

    def test_custom_node_types(self):
        from livedoc.document import Node

        d = doc(Node("snippet", "1"), Node("output", "1"))
        (region,) = find_code_blocks(d, "snippet", "output")
        assert region.result is not None

    def test_non_adjacent_result_refused(self):
        c = NodeRef(code("x"), 0)
        with pytest.raises(ValueError):
            CodeRegion(c, NodeRef(result("r"), 10))


@pytest.mark.unit
class TestSnapshotCounters:
    def test_first_scan_starts_counters_at_zero(self):
        snap = compute_snapshot(doc(code("x")))
        assert snap.code_only_iteration == NEVER_RUN + 1 == 0
        assert snap.code_or_positions_iteration == 0

    def test_identical_document_keeps_counters(self):
        d = doc(code("x"), result("1"))
        first = compute_snapshot(d)
        again = compute_snapshot(d, first)
        assert again.code_only_iteration == first.code_only_iteration
        assert again.code_or_positions_iteration == first.code_or_positions_iteration
        assert again.regions == first.regions

    def test_code_edit_bumps_both(self):
        first = compute_snapshot(doc(code("x")))
        second = compute_snapshot(doc(code("y")), first)
        assert second.code_only_iteration == 1
        assert second.code_or_positions_iteration == 1

    def test_result_append_bumps_positions_only(self):
        first = compute_snapshot(doc(code("x")))
        second = compute_snapshot(doc(code("x"), result("1")), first)
        assert second.code_only_iteration == 0
        assert second.code_or_positions_iteration == 1

    def test_moved_region_bumps_positions_only(self):
        first = compute_snapshot(doc(code("x")))
        second = compute_snapshot(doc(para("new"), code("x")), first)
        assert second.code_only_iteration == 0
        assert second.code_or_positions_iteration == 1

    def test_added_region_bumps_code(self):
        first = compute_snapshot(doc(code("x")))
        second = compute_snapshot(doc(code("x"), code("y")), first)
        assert second.code_only_iteration == 1

    def test_finder_keeps_previous_snapshot(self):
        finder = RegionFinder()
        finder.update(doc(code("x")))
        snap = finder.update(doc(code("x2")))
        assert snap.code_only_iteration == 1
        assert finder.snapshot is snap
        assert len(finder.find(doc(code("a"), code("b")))) == 2
        assert finder.snapshot is snap
