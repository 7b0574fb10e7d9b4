"""Row / column grid tests."""
import logging

import pytest

from conftest import texts
from flowpdf.layout_engine import GRID_GAP, ROW_GAP, LayoutMode, TableOptions, TextOptions


GRID_UNIT = (595 - 40 - 110) / 12  # 37.083...


def _block(engine, height, label="text"):
    """Place one text block of a fixed height."""
    engine.surface.block_height = height
    engine.add_text(label, TextOptions(font_size=12))
    engine.surface.block_height = None


def test_start_row_enters_grid_mode(engine):
    engine.cursor.y = 100
    engine.start_row()
    assert engine.mode is LayoutMode.GRID
    assert engine.grid.grid_column_width == pytest.approx(GRID_UNIT)
    assert engine.grid.cursor_x == 20
    assert engine.grid.row_start_y == 100
    assert engine.grid.column_heights == []


def test_half_width_columns_fill_the_usable_width(engine):
    engine.start_row()
    width = engine.column_width_for_span(6)
    assert width == pytest.approx(6 * GRID_UNIT + 5 * GRID_GAP)
    assert width == pytest.approx(272.5)
    # two halves plus the gap between them span the page inside the margins
    assert 2 * width + GRID_GAP == pytest.approx(595 - 40)


def test_full_span_equals_usable_width(engine):
    engine.start_row()
    assert engine.column_width_for_span(12) == pytest.approx(555)


def test_sibling_columns_start_at_the_same_y(engine, surfaces):
    engine.add_text("Above the row", TextOptions(font_size=12))
    row_top = engine.cursor.y

    engine.start_row()
    engine.add_col(6, lambda: _block(engine, 120, "left"))
    engine.add_col(6, lambda: _block(engine, 40, "right"))
    engine.end_row()

    _, left, right = texts(surfaces[-1])
    assert left["y"] == right["y"] == row_top
    assert left["x"] == 20
    assert right["x"] == pytest.approx(20 + 272.5 + GRID_GAP)


def test_end_row_commits_tallest_column(engine):
    engine.start_row()
    engine.add_col(4, lambda: _block(engine, 120))
    engine.add_col(4, lambda: _block(engine, 40))
    engine.add_col(4, lambda: None)
    height = engine.end_row()

    assert height == 120
    assert engine.cursor.y == 20 + 120 + ROW_GAP
    assert engine.mode is LayoutMode.FLOW
    assert engine.grid is None


@pytest.mark.parametrize("heights", [(30, 90, 60), (90, 60, 30), (60, 30, 90)])
def test_row_height_independent_of_column_order(engine, heights):
    engine.start_row()
    for h in heights:
        engine.add_col(4, lambda h=h: _block(engine, h))
    engine.end_row()
    assert engine.cursor.y == 20 + 90 + ROW_GAP


def test_empty_row_adds_only_the_row_gap(engine):
    engine.start_row()
    engine.end_row()
    assert engine.cursor.y == 20 + ROW_GAP


def test_grid_mode_advances_by_content_height_only(engine, surfaces):
    engine.start_row()

    def content():
        _block(engine, 50, "first")
        _block(engine, 30, "second")

    height = engine.add_col(12, content)
    first, second = texts(surfaces[-1])
    assert second["y"] == first["y"] + 50
    assert height == 80
    assert engine.grid.column_heights == [80]


def test_add_col_restores_cursor(engine):
    engine.set_layout_columns(columns=2, margin=20, gap=15)
    engine.start_row()
    engine.add_col(3, lambda: _block(engine, 70))
    assert engine.cursor.x == 20
    assert engine.cursor.y == 20
    assert engine.cursor.content_width == 270


def test_content_width_narrowed_inside_column(engine):
    widths = []
    engine.start_row()
    engine.add_col(3, lambda: widths.append(engine.cursor.content_width))
    engine.add_col(9, lambda: widths.append(engine.cursor.content_width))
    assert widths == [
        pytest.approx(3 * GRID_UNIT + 2 * GRID_GAP),
        pytest.approx(9 * GRID_UNIT + 8 * GRID_GAP),
    ]


def test_table_inside_column_is_constrained(engine, surfaces):
    engine.start_row()
    engine.add_col(4, lambda: None)
    engine.add_col(8, lambda: engine.add_generic_table([{"a": 1}, {"a": 2}]))
    table = surfaces[-1].calls[-1]
    width = 8 * GRID_UNIT + 7 * GRID_GAP
    x = 20 + 4 * GRID_UNIT + 3 * GRID_GAP + GRID_GAP
    assert table["x"] == pytest.approx(x)
    assert table["width"] == pytest.approx(width)
    assert table["right_margin"] == pytest.approx(595 - x - width)
    # table height only, no trailing blank line in grid mode
    assert engine.grid.column_heights[-1] == 60


def test_titled_table_inside_column(engine):
    engine.start_row()
    engine.add_col(12, lambda: engine.add_generic_table(
        [{"a": 1}], TableOptions(table_name="Totals"),
    ))
    engine.end_row()
    # title 16.1 + blank line 16.1 + table 40
    assert engine.cursor.y == pytest.approx(20 + 16.1 + 16.1 + 40 + ROW_GAP)


def test_new_line_inside_column_keeps_column_x(engine):
    positions = []

    def content():
        engine.add_new_line()
        positions.append(engine.cursor.x)

    engine.start_row()
    engine.add_col(6, lambda: None)
    engine.add_col(6, content)
    assert positions == [pytest.approx(20 + 272.5 + GRID_GAP)]


def test_content_fn_may_take_the_engine(engine, surfaces):
    engine.start_row()
    engine.add_col(12, lambda e: e.add_text("via argument"))
    engine.end_row()
    assert texts(surfaces[-1])[0]["lines"] == ["via argument"]


def test_row_context_manager(engine):
    with engine.row() as e:
        e.add_col(6, lambda: _block(engine, 25))
    assert engine.mode is LayoutMode.FLOW
    assert engine.cursor.y == 20 + 25 + ROW_GAP


def test_span_is_clamped(engine):
    engine.start_row()
    widths = []
    engine.add_col(20, lambda: widths.append(engine.cursor.content_width))
    engine.add_col(0, lambda: widths.append(engine.cursor.content_width))
    assert widths == [pytest.approx(555), pytest.approx(GRID_UNIT)]


def test_over_budget_row_is_logged_not_rejected(engine, caplog):
    engine.start_row()
    with caplog.at_level(logging.WARNING, logger="flowpdf.layout_engine"):
        engine.add_col(8, lambda: None)
        engine.add_col(8, lambda: None)
    assert "16 grid units" in caplog.text
    assert len(engine.grid.column_heights) == 2


def test_grid_misuse_raises(engine):
    with pytest.raises(RuntimeError):
        engine.add_col(6, lambda: None)
    with pytest.raises(RuntimeError):
        engine.end_row()
    engine.start_row()
    with pytest.raises(RuntimeError):
        engine.start_row()


def test_flow_resumes_after_row(engine, surfaces):
    engine.start_row()
    engine.add_col(6, lambda: _block(engine, 100))
    engine.end_row()
    engine.add_text("After", TextOptions(font_size=12))
    after = texts(surfaces[-1])[-1]
    assert (after["x"], after["y"]) == (20, 20 + 100 + ROW_GAP)
    assert engine.cursor.y == pytest.approx(140 + 13.8 + 13.8)


def test_failing_column_restores_flow_cursor(engine, surfaces):
    with pytest.raises(ZeroDivisionError):
        with engine.row():
            engine.add_col(3, lambda: 1 / 0)

    assert engine.grid is None
    assert engine.mode is LayoutMode.FLOW
    assert engine.cursor.content_width == 555
    assert engine.cursor.x == 20
    engine.add_text("word " * 60, TextOptions(font_size=12))
    # 555pt at 6pt per glyph holds 92 characters, well over a grid column
    assert len(texts(surfaces[-1])[-1]["lines"]) == 4


def test_overflowing_column_moves_the_row(engine, surfaces):
    engine.cursor.y = 700
    engine.start_row()
    engine.add_col(6, lambda: _block(engine, 100, "left"))
    engine.add_col(6, lambda: _block(engine, 100, "right"))
    engine.end_row()

    left, right = texts(surfaces[-1])
    assert (left["page"], left["x"], left["y"]) == (2, 20, 20)
    assert (right["page"], right["x"], right["y"]) == (2, pytest.approx(302.5), 20)
    assert engine.page_count == 2
    assert (engine.cursor.x, engine.cursor.y) == (20, 20 + 100 + ROW_GAP)


def test_page_break_inside_column_keeps_column_x(engine):
    positions = []

    def content():
        engine.add_new_line()
        positions.append((engine.current_page, engine.cursor.x, engine.cursor.y))

    engine.cursor.y = 760
    engine.start_row()
    engine.add_col(6, lambda: None)
    engine.add_col(6, content)
    assert positions == [(2, pytest.approx(302.5), 20)]
    assert engine.grid.row_start_y == 20
