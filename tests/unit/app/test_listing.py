"""Tests for filtering, sorting and the scroll viewport."""

import pytest

from tgcp.app.listing import compare_values, filter_items, sort_items
from tgcp.app.viewport import Viewport
from tgcp.resources.models import ColumnDef

COLUMNS = [ColumnDef(header="NAME", json_path="name"), ColumnDef(header="SIZE", json_path="sizeGb")]

DISKS = [
    {"name": "web-disk", "sizeGb": "100", "type": "pd-ssd"},
    {"name": "db-disk", "sizeGb": "20", "type": "pd-standard"},
    {"name": "Backup", "sizeGb": "1000", "type": "pd-standard"},
]


class TestFilterItems:
    def test_case_insensitive_column_match(self) -> None:
        assert filter_items(DISKS, "BACK", COLUMNS) == [DISKS[2]]

    def test_only_columns_are_searched(self) -> None:
        assert filter_items(DISKS, "pd-ssd", COLUMNS) == []

    def test_whole_record_without_columns(self) -> None:
        assert filter_items(DISKS, "pd-ssd") == [DISKS[0]]

    def test_empty_text_returns_copy(self) -> None:
        result = filter_items(DISKS, "", COLUMNS)
        assert result == DISKS
        assert result is not DISKS


class TestSorting:
    @pytest.mark.parametrize(
        "a,b,expected",
        [
            ("9", "10", -1),
            ("10", "9", 1),
            ("1.5", "1.50", 0),
            ("abc", "abd", -1),
            ("10", "9a", -1),
            ("same", "same", 0),
            ("nan", "5", 1),
            ("inf", "infinity", -1),
            ("-inf", "0", -1),
        ],
    )
    def test_compare_values(self, a, b, expected) -> None:
        assert compare_values(a, b) == expected

    def test_numeric_sort(self) -> None:
        ordered = sort_items(DISKS, "sizeGb")
        assert [d["sizeGb"] for d in ordered] == ["20", "100", "1000"]

    def test_descending(self) -> None:
        ordered = sort_items(DISKS, "sizeGb", ascending=False)
        assert [d["sizeGb"] for d in ordered] == ["1000", "100", "20"]

    def test_stable_for_equal_keys(self) -> None:
        items = [{"zone": "a", "n": i} for i in range(5)] + [{"zone": "0", "n": 9}]
        ordered = sort_items(items, "zone")
        assert [i["n"] for i in ordered] == [9, 0, 1, 2, 3, 4]
        assert [i["n"] for i in sort_items(items, "zone", ascending=False)] == [0, 1, 2, 3, 4, 9]

    def test_non_finite_cells_sort_as_text(self) -> None:
        values = ["nan", "10", "inf", "9", "NaN"]
        expected = ["9", "10", "NaN", "inf", "nan"]
        for rotation in range(len(values)):
            items = [{"v": v} for v in values[rotation:] + values[:rotation]]
            assert [i["v"] for i in sort_items(items, "v")] == expected

    def test_input_untouched(self) -> None:
        items = list(DISKS)
        sort_items(items, "name")
        assert items == DISKS


class TestViewport:
    def test_scrolls_down_keeping_margin(self) -> None:
        viewport = Viewport(height=10)
        viewport.ensure_visible(8, 100)
        assert viewport.scroll_offset == 1
        assert 8 in viewport.visible_range(100)

    def test_scrolls_up_keeping_margin(self) -> None:
        viewport = Viewport(height=10, scroll_offset=50)
        viewport.ensure_visible(51, 100)
        assert viewport.scroll_offset == 49

    def test_clamped_to_end(self) -> None:
        viewport = Viewport(height=10)
        viewport.ensure_visible(99, 100)
        assert viewport.scroll_offset == 90
        assert viewport.visible_range(100) == range(90, 100)

    def test_short_list(self) -> None:
        viewport = Viewport(height=10, scroll_offset=5)
        viewport.ensure_visible(2, 3)
        assert viewport.scroll_offset == 0
        assert viewport.visible_range(3) == range(0, 3)

    @pytest.mark.parametrize("height", [1, 2, 3, 4, 5, 20])
    def test_selection_always_visible(self, height) -> None:
        viewport = Viewport(height=height)
        for selected in list(range(40)) + list(range(39, -1, -1)):
            viewport.ensure_visible(selected, 40)
            assert selected in viewport.visible_range(40)

    def test_height_never_below_one(self) -> None:
        viewport = Viewport()
        viewport.update_height(0)
        assert viewport.height == 1
