"""Tests for the browser model."""

import random
import sqlite3

import pytest

from nodekeeper.browser.model import BrowserModel
from nodekeeper.core.pattern.parser import parse
from nodekeeper.core.write import store
from nodekeeper.models.node import ArchiveFilter, ListArgs, Order, SortKey


def _model(conn: sqlite3.Connection, *, height: int = 5, **kwargs: object) -> BrowserModel:
    args = ListArgs(preorder=Order.ASC, postorder=Order.ASC, **kwargs)  # type: ignore[arg-type]
    model = BrowserModel(conn, args, height=height, width=80)
    model.reload()
    return model


def _ids(model: BrowserModel) -> list[int]:
    return [node.id for node in model.nodes]


@pytest.fixture
def many_db(db: sqlite3.Connection) -> sqlite3.Connection:
    for i in range(1, 31):
        store.create_node(db, f"note {i}")
    return db


def _check_invariants(model: BrowserModel) -> None:
    if model.nodes:
        assert 0 <= model.start <= model.hover < len(model.nodes)
        assert model.hover - model.start < model.height
    else:
        assert model.hover == 0
        assert model.start == 0


def test_reload_builds_summaries(populated_db: sqlite3.Connection) -> None:
    model = _model(populated_db)
    assert _ids(model) == [1, 2, 3, 4, 5, 6]
    assert model.nodes[1].summary == "Python packaging notes"
    assert model.nodes[1].tags == ("dev", "python")


def test_cursor_moves_are_clamped(many_db: sqlite3.Connection) -> None:
    model = _model(many_db)
    model.cursor_up(3)
    assert model.hover == 0
    model.cursor_down(100)
    assert model.hover == 29
    _check_invariants(model)


def test_viewport_keeps_margin_when_scrolling_down(many_db: sqlite3.Connection) -> None:
    model = _model(many_db, height=10)
    model.cursor_down(7)
    # cursor_off is 2: the cursor may go to row 7 of 10 before scrolling
    assert model.start == 0
    model.cursor_down(1)
    assert model.start == 1
    assert model.hover - model.start == 7


def test_viewport_does_not_scroll_past_end(many_db: sqlite3.Connection) -> None:
    model = _model(many_db, height=10)
    model.cursor_down(29)
    assert model.start == 20
    model.cursor_up(1)
    assert model.start == 20


def test_random_cursor_walk_keeps_invariants(many_db: sqlite3.Connection) -> None:
    rng = random.Random(7)
    for height in (1, 2, 3, 5, 12, 40):
        model = _model(many_db, height=height)
        for _ in range(200):
            n = rng.randint(1, 12)
            if rng.random() < 0.5:
                model.cursor_down(n)
            else:
                model.cursor_up(n)
            _check_invariants(model)


def test_jump_bottom_pins_viewport(many_db: sqlite3.Connection) -> None:
    model = _model(many_db, height=10)
    model.jump_bottom()
    assert model.hover == 29
    assert model.start == 20
    model.jump_top()
    assert (model.hover, model.start) == (0, 0)


def test_resize_keeps_cursor_visible(many_db: sqlite3.Connection) -> None:
    model = _model(many_db, height=20)
    model.cursor_down(15)
    model.resize(5, 80)
    _check_invariants(model)


def test_empty_list_is_safe(db: sqlite3.Connection) -> None:
    model = _model(db)
    model.cursor_down(3)
    model.jump_bottom()
    model.toggle_selection()
    assert model.hovered is None
    assert model.selection_or_hover() == ([], True)
    assert model.archive() == []
    _check_invariants(model)


def test_selection_or_hover(populated_db: sqlite3.Connection) -> None:
    model = _model(populated_db)
    model.cursor_down(2)
    assert model.selection_or_hover() == ([3], True)
    model.toggle_selection()
    model.cursor_down(1)
    model.toggle_selection()
    assert model.selection_or_hover() == ([3, 4], False)
    model.clear_selection()
    assert model.selection_or_hover() == ([4], True)


def test_selection_survives_reload(populated_db: sqlite3.Connection) -> None:
    model = _model(populated_db)
    model.cursor_down(2)
    model.toggle_selection()
    model.args = ListArgs(preorder=Order.ASC, postorder=Order.ASC, archived=ArchiveFilter.ALL)
    model.reload()
    assert model.selected_ids() == [3]


def test_selection_dropped_for_filtered_out_rows(populated_db: sqlite3.Connection) -> None:
    model = _model(populated_db)
    model.toggle_selection()  # note 1
    model.cursor_down(2)
    model.toggle_selection()  # note 3
    model.set_pattern(parse("[urgent]"), "[urgent]")
    assert _ids(model) == [3, 4]
    assert model.selected_ids() == [3]
    model.set_pattern(None, "")
    assert model.selected_ids() == [3]


def test_reload_can_clear_selection(populated_db: sqlite3.Connection) -> None:
    model = _model(populated_db)
    model.toggle_selection()
    model.reload(clear_selection=True)
    assert model.selected_ids() == []


def test_archive_hovered_removes_only_that_row(populated_db: sqlite3.Connection) -> None:
    model = _model(populated_db)
    model.cursor_down(2)
    before = list(model.nodes)

    assert model.archive() == [3]

    assert _ids(model) == [1, 2, 4, 5, 6]
    assert [n for n in before if n.id != 3] == model.nodes
    assert model.hovered is not None and model.hovered.id == 4
    archived = populated_db.execute("SELECT archived FROM nodes WHERE id = 3").fetchone()[0]
    assert archived == 1


def test_archive_selection_in_mixed_view_keeps_rows(populated_db: sqlite3.Connection) -> None:
    model = _model(populated_db, archived=ArchiveFilter.ALL)
    model.toggle_selection()
    model.cursor_down(1)
    model.toggle_selection()
    assert model.archive() == [1, 2]
    assert _ids(model) == [1, 2, 3, 4, 5, 6]


def test_archive_last_row_moves_cursor_up(populated_db: sqlite3.Connection) -> None:
    model = _model(populated_db)
    model.jump_bottom()
    model.archive()
    assert model.hovered is not None and model.hovered.id == 5
    _check_invariants(model)


def test_delete_removes_rows_in_place(populated_db: sqlite3.Connection) -> None:
    model = _model(populated_db)
    model.cursor_down(4)  # note 5
    assert model.delete([1, 2]) == 2
    assert _ids(model) == [3, 4, 5, 6]
    assert model.hovered is not None and model.hovered.id == 5
    assert store.existing_ids(populated_db, [1, 2]) == set()


def test_delete_everything_degrades_to_empty(populated_db: sqlite3.Connection) -> None:
    model = _model(populated_db)
    model.jump_bottom()
    model.delete([1, 2, 3, 4, 5, 6])
    assert model.nodes == []
    _check_invariants(model)


def test_add_and_remove_tags_reload(populated_db: sqlite3.Connection) -> None:
    model = _model(populated_db)
    model.add_tags([1], ["later"])
    assert model.nodes[0].tags == ("later", "shopping")
    model.remove_tags([1], ["shopping"])
    assert model.nodes[0].tags == ("later",)


def test_adjust_priority_follows_hovered_note(populated_db: sqlite3.Connection) -> None:
    args = ListArgs(sort=SortKey.PRIORITY, preorder=Order.DESC, postorder=Order.DESC)
    model = BrowserModel(populated_db, args, height=10)
    model.reload()
    assert _ids(model) == [6, 5, 4, 3, 2, 1]
    model.cursor_down(4)  # note 2
    model.adjust_priority([2], 1)
    assert _ids(model)[0] == 2
    assert model.hover == 0


def test_cycle_sort_keeps_hovered_note(populated_db: sqlite3.Connection) -> None:
    store.adjust_priority(populated_db, [4], 5)
    model = _model(populated_db)
    model.cursor_down(3)  # note 4
    assert model.cycle_sort() is SortKey.EDITED
    assert model.cycle_sort() is SortKey.PRIORITY
    assert model.hovered is not None and model.hovered.id == 4
    assert _ids(model)[-1] == 4
    assert model.cycle_sort() is SortKey.ID


def test_archive_views(populated_db: sqlite3.Connection) -> None:
    store.toggle_archived(populated_db, [2])
    model = _model(populated_db)
    assert 2 not in _ids(model)
    assert model.cycle_archive_view() is ArchiveFilter.ALL
    assert 2 in _ids(model)
    assert model.cycle_archive_view() is ArchiveFilter.ACTIVE
    assert model.toggle_archived_only() is ArchiveFilter.ARCHIVED
    assert _ids(model) == [2]
    assert model.toggle_archived_only() is ArchiveFilter.ACTIVE
