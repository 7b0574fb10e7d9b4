"""Layout engine for placing text, images and tables on PDF pages.

Content flows top to bottom through one or more columns and wraps to the
next column or page on overflow. A 12-unit row/column grid can be laid over
the flow: columns inside a row all start at the row's top and the row only
commits its height to the flow cursor when it ends.
"""

import inspect
import logging
from contextlib import contextmanager
from dataclasses import dataclass, field
from datetime import date, datetime
from enum import Enum
from pathlib import Path
from typing import Any, Callable, Dict, Iterable, List, Mapping, Optional, Sequence, Union

from .config import EngineConfig, LayoutConfig
from .surface import DrawingSurface, ReportLabSurface, TableStyleOptions

logger = logging.getLogger(__name__)

# Row/column grid
GRID_UNITS = 12
GRID_GAP = 10  # Between grid units, independent of the flow gap
ROW_GAP = 20  # Added below every committed row

# Flow placement
DEFAULT_IMAGE_HEIGHT = 200
PAGE_BREAK_PROBE = 50  # Height required after a blank line
TABLE_MIN_HEIGHT = 100  # Room a table needs before it may start
TABLE_TITLE_FONT_SIZE = 14

# Finishing
FOOTER_FONT_SIZE = 10
TOC_TITLE = "Table of Contents"
UNTITLED_TABLE_LABEL = "Table"  # Index label for a table without a name


class LayoutMode(Enum):
    """How placements advance the cursor."""
    FLOW = "flow"  # Placement advances y by its height plus one line
    GRID = "grid"  # Inside start_row()/end_row(): y advances by the height only


class DocumentState(Enum):
    IDLE = "idle"
    COMPOSING = "composing"
    FINISHED = "finished"


class DocumentFinishedError(RuntimeError):
    """Raised when a finished document is modified or finished again."""


@dataclass
class Cursor:
    """Current placement position."""
    x: float
    y: float
    column_index: int = 0
    content_width: float = 0.0  # Wrap width available at the cursor


@dataclass
class TocEntry:
    label: str
    page_number: int


@dataclass
class RowGridState:
    """Bookkeeping between start_row() and end_row()."""
    grid_column_width: float
    cursor_x: float  # Left edge of the next column
    row_start_y: float  # Shared top of every column in the row
    column_heights: List[float] = field(default_factory=list)
    span_total: int = 0
    column_x: float = 0.0  # Left edge of the column being filled


@dataclass
class TextOptions:
    font_size: float = 12
    font_style: str = "normal"
    font_name: Optional[str] = None  # Default font when unset
    add_to_index: bool = False


@dataclass
class ImageOptions:
    width: Optional[float] = None
    height: Optional[float] = None
    format: str = "JPEG"


@dataclass
class TableOptions:
    table_name: Optional[str] = None
    ignore_fields: Iterable[str] = ()
    add_to_index: bool = False
    theme: str = "striped"


def format_cell(value: Any) -> str:
    """Render a table cell value as text."""
    if value is None:
        return ""
    if isinstance(value, datetime):
        return value.date().isoformat()
    if isinstance(value, date):
        return value.isoformat()
    return str(value)


def _coerce_options(options, options_cls):
    if options is None:
        return options_cls()
    if isinstance(options, options_cls):
        return options
    return options_cls(**options)


class LayoutEngine:
    """
    Engine that turns placement calls into absolute page coordinates.

    One engine composes one document at a time. The drawing surface comes
    from surface_factory, which reset() calls again to start a fresh document.
    """

    def __init__(
        self,
        config: Optional[EngineConfig] = None,
        surface_factory: Optional[Callable[[], DrawingSurface]] = None,
    ):
        self.config = config or EngineConfig()
        self._surface_factory = surface_factory or self._default_surface
        self.file_path = Path(self.config.file_path)
        self.reset()

    def _default_surface(self) -> DrawingSurface:
        return ReportLabSurface(
            pagesize=self.config.page_size,
            font_name=self.config.default_font,
        )

    def reset(self) -> None:
        """Discard all state and start a blank single-page document."""
        self.surface = self._surface_factory()
        self.default_font = self.config.default_font
        self.surface.set_font(self.default_font)
        self.page_width, self.page_height = self.surface.page_size()
        self.toc: List[TocEntry] = []
        self.grid: Optional[RowGridState] = None
        self.mode = LayoutMode.FLOW
        self.state = DocumentState.IDLE
        self.cursor = Cursor(x=0.0, y=0.0)
        base = self.config.layout
        self.configure_columns(base.columns, base.margin, base.gap)

    # ========== Layout setup ==========

    def configure_columns(
        self,
        columns: Optional[int] = None,
        margin: Optional[float] = None,
        gap: Optional[float] = None,
    ) -> None:
        """Recompute flow column geometry and move the cursor to the top-left of column 0."""
        defaults = LayoutConfig()
        columns = defaults.columns if columns is None else int(columns)
        if columns < 1:
            logger.warning("Column count %d is not positive; using 1", columns)
            columns = 1
        layout = LayoutConfig(
            columns=columns,
            margin=defaults.margin if margin is None else margin,
            gap=defaults.gap if gap is None else gap,
        )
        column_width = layout.column_width(self.page_width)
        if column_width <= 0:
            raise ValueError(
                f"Layout {layout} leaves no room for columns on a {self.page_width}pt wide page"
            )

        self.layout = layout
        self.column_width = column_width
        self.cursor.column_index = 0
        self.cursor.content_width = column_width
        self._reset_position()

    def set_layout_columns(
        self,
        columns: Optional[int] = None,
        margin: Optional[float] = None,
        gap: Optional[float] = None,
    ) -> None:
        """Switch the flow layout, e.g. set_layout_columns(columns=2, margin=20, gap=15)."""
        self._ensure_composing()
        self.configure_columns(columns, margin, gap)

    def _reset_position(self) -> None:
        self.cursor.x = self.layout.margin
        self.cursor.y = self.layout.margin

    def _flow_column_left(self, column_index: int) -> float:
        return self.layout.margin + column_index * (self.column_width + self.layout.gap)

    def _column_left(self) -> float:
        if self.mode is LayoutMode.GRID and self.grid is not None:
            return self.grid.column_x
        return self._flow_column_left(self.cursor.column_index)

    def available_height(self) -> float:
        """Lowest y content may reach; below it is the footer band."""
        return self.page_height - self.layout.margin - self.config.footer_margin

    def check_page_break(self, required_height: float = PAGE_BREAK_PROBE) -> bool:
        """Start a new page when required_height no longer fits below the cursor."""
        if self.cursor.y + required_height > self.available_height():
            if self.grid is not None:
                self._move_row_to_new_page()
            else:
                self.add_new_page()
            return True
        return False

    def advance_column_or_page(self) -> None:
        """Move to the top of the next column, or of a new page after the last column."""
        self.cursor.column_index += 1
        if self.cursor.column_index >= self.layout.columns:
            self._start_page()
            self.cursor.column_index = 0
        self.cursor.x = self._flow_column_left(self.cursor.column_index)
        self.cursor.y = self.layout.margin
        logger.debug(
            "Advanced to column %d on page %d",
            self.cursor.column_index, self.surface.current_page_number(),
        )

    def _move_row_to_new_page(self) -> None:
        """Restart the open row at the top of a new page, keeping the current grid column."""
        self._start_page()
        self.grid.row_start_y = self.cursor.y
        self.cursor.x = self.grid.column_x
        logger.debug("Row moved to page %d", self.surface.current_page_number())

    def _make_room(self) -> None:
        """Move on after an overflow; a grid row moves as a whole so its columns share a top."""
        if self.grid is not None:
            self._move_row_to_new_page()
        else:
            self.advance_column_or_page()

    def _fits(self, height: float) -> bool:
        return self.cursor.y + height <= self.available_height()

    def _advance(self, height: float) -> None:
        """Move the cursor below content that was just placed."""
        if self.mode is LayoutMode.FLOW:
            self.cursor.y += height + self.surface.line_height()
        else:
            self.cursor.y += height

    def _ensure_composing(self) -> None:
        if self.state is DocumentState.FINISHED:
            raise DocumentFinishedError("Document already rendered; call reset() first")
        self.state = DocumentState.COMPOSING

    @property
    def page_count(self) -> int:
        return self.surface.page_count()

    @property
    def current_page(self) -> int:
        return self.surface.current_page_number()

    # ========== Row/column grid ==========

    def start_row(self) -> None:
        """Open a 12-unit grid row at the current cursor height."""
        self._ensure_composing()
        if self.grid is not None:
            raise RuntimeError("start_row() called inside an open row")
        available_width = self.page_width - self.layout.margin * 2
        self.grid = RowGridState(
            grid_column_width=(available_width - (GRID_UNITS - 1) * GRID_GAP) / GRID_UNITS,
            cursor_x=self.layout.margin,
            row_start_y=self.cursor.y,
        )
        self.mode = LayoutMode.GRID

    def column_width_for_span(self, span: int) -> float:
        if self.grid is None:
            raise RuntimeError("No open row; call start_row() first")
        return self.grid.grid_column_width * span + (span - 1) * GRID_GAP

    def add_col(self, span: int, content_fn: Callable[..., Any]) -> float:
        """
        Lay out one grid column spanning `span` of 12 units.

        content_fn issues ordinary placement calls; it runs with the cursor at
        the row's top and the content width narrowed to the column. If it
        takes a required positional argument it receives this engine.
        Returns the column height.
        """
        self._ensure_composing()
        grid = self.grid
        if grid is None:
            raise RuntimeError("add_col() called outside start_row()/end_row()")

        span = max(1, min(GRID_UNITS, int(span)))
        grid.span_total += span
        if grid.span_total > GRID_UNITS:
            logger.warning("Row spans %d grid units; columns will overlap", grid.span_total)

        width = self.column_width_for_span(span)
        saved_x, saved_width = self.cursor.x, self.cursor.content_width

        grid.column_x = grid.cursor_x
        self.cursor.x = grid.cursor_x
        self.cursor.y = grid.row_start_y
        self.cursor.content_width = width

        try:
            if _accepts_argument(content_fn):
                content_fn(self)
            else:
                content_fn()

            height = self.cursor.y - grid.row_start_y
            grid.column_heights.append(height)
            grid.cursor_x += width + GRID_GAP
        finally:
            self.cursor.content_width = saved_width
            self.cursor.x = saved_x
            self.cursor.y = grid.row_start_y
        return height

    def end_row(self) -> float:
        """Close the row and move the flow cursor below its tallest column."""
        grid = self.grid
        if grid is None:
            raise RuntimeError("end_row() called without start_row()")
        row_height = max(grid.column_heights, default=0)
        self.cursor.y = grid.row_start_y + row_height + ROW_GAP
        self.cursor.x = self._flow_column_left(self.cursor.column_index)
        self.grid = None
        self.mode = LayoutMode.FLOW
        logger.debug("Committed row of %d columns, height %.1f", len(grid.column_heights), row_height)
        return row_height

    @contextmanager
    def row(self):
        """Context manager form of start_row()/end_row()."""
        self.start_row()
        try:
            yield self
        finally:
            if self.grid is not None:
                self.end_row()

    # ========== Basic elements ==========

    def _start_page(self) -> None:
        self.surface.add_page()
        self.cursor.column_index = 0
        self._reset_position()

    def add_new_page(self) -> None:
        """Start a fresh physical page, back at column 0."""
        self._ensure_composing()
        self._start_page()

    def add_new_line(self, count: int = 1) -> None:
        self._ensure_composing()
        self.cursor.y += self.surface.line_height() * count
        self.cursor.x = self._column_left()
        self.check_page_break()

    def add_text(self, text: str, options: Union[TextOptions, Mapping[str, Any], None] = None) -> None:
        """Wrap text to the content width and place it at the cursor."""
        if not text or not text.strip():
            return
        self._ensure_composing()
        options = _coerce_options(options, TextOptions)

        font_name = options.font_name or self.default_font
        self.surface.set_font(font_name, options.font_style)
        self.surface.set_font_size(options.font_size)
        try:
            lines = self.surface.split_text_to_size(text, self.cursor.content_width or self.column_width)
            text_height = self.surface.text_block_height(lines)

            if not self._fits(text_height):
                self._make_room()

            self.surface.draw_text(lines, self.cursor.x, self.cursor.y)
            self._advance(text_height)
        finally:
            self.surface.set_font(self.default_font)

        if options.add_to_index:
            self.toc.append(TocEntry(label=text.strip(), page_number=self.current_page))

    def add_image(self, data: bytes, options: Union[ImageOptions, Mapping[str, Any], None] = None) -> None:
        self._ensure_composing()
        options = _coerce_options(options, ImageOptions)
        max_width = self.cursor.content_width or self.column_width
        width = min(options.width, max_width) if options.width else max_width
        height = options.height or DEFAULT_IMAGE_HEIGHT

        if not self._fits(height):
            self._make_room()

        self.surface.draw_image(data, options.format, self.cursor.x, self.cursor.y, width, height)
        self._advance(height)

    def add_generic_table(
        self,
        rows: Sequence[Mapping[str, Any]],
        options: Union[TableOptions, Mapping[str, Any], None] = None,
    ) -> None:
        """Draw a list of records as a table; headers come from the first record's keys."""
        if not rows:
            return
        self._ensure_composing()
        options = _coerce_options(options, TableOptions)

        if options.table_name:
            self.add_text(options.table_name, TextOptions(
                font_size=TABLE_TITLE_FONT_SIZE,
                font_style="bold",
                add_to_index=options.add_to_index,
            ))
            self.add_new_line()

        if not self._fits(TABLE_MIN_HEIGHT):
            self._make_room()

        if options.add_to_index and not options.table_name:
            self.toc.append(TocEntry(label=UNTITLED_TABLE_LABEL, page_number=self.current_page))

        ignored = set(options.ignore_fields or ())
        headers = [key for key in rows[0].keys() if key not in ignored]
        body = [[format_cell(row.get(key)) for key in headers] for row in rows]

        table_width = self.cursor.content_width or self.column_width
        right_margin = self.page_width - self.cursor.x - table_width
        style = TableStyleOptions(
            theme=options.theme,
            font_name=self.default_font,
            top_margin=self.layout.margin,
            bottom_margin=self.page_height - self.available_height(),
        )
        start_page = self.current_page
        final_y = self.surface.draw_auto_table(
            headers, body, self.cursor.y, self.cursor.x, right_margin, table_width, style,
        )
        if self.grid is not None and self.current_page != start_page:
            # The row continues below the table's last part
            self.grid.row_start_y = self.layout.margin
        self._advance(final_y - self.cursor.y)

    # ========== Page numbers & TOC ==========

    def add_page_numbers(self) -> None:
        """Stamp "Page i of N" on every page without disturbing font or active page."""
        page_count = self.surface.page_count()
        active_page = self.surface.current_page_number()
        original_font = self.surface.get_font()
        original_size = self.surface.get_font_size()

        self.surface.set_font(self.default_font, "normal")
        self.surface.set_font_size(FOOTER_FONT_SIZE)
        footer_y = self.page_height - self.layout.margin / 2 - FOOTER_FONT_SIZE
        for page_number in range(1, page_count + 1):
            self.surface.set_active_page(page_number)
            self.surface.draw_text([f"Page {page_number} of {page_count}"], self.layout.margin, footer_y)

        self.surface.set_active_page(active_page)
        self.surface.set_font(*original_font)
        self.surface.set_font_size(original_size)

    def add_index(self) -> None:
        """Insert the table of contents as page 2."""
        if not self.toc:
            return
        self.surface.insert_page_at(2)
        self.surface.set_active_page(2)
        self.grid = None
        self.mode = LayoutMode.FLOW
        self.cursor.column_index = 0
        self.cursor.content_width = self.column_width
        self._reset_position()

        # Every entry moves back one page behind the inserted index page
        self.toc = [TocEntry(entry.label, entry.page_number + 1) for entry in self.toc]
        self.add_generic_table(self.toc_rows(), TableOptions(
            table_name=TOC_TITLE,
            ignore_fields=(),
            add_to_index=False,
        ))

    def _finish(self) -> None:
        self._ensure_composing()
        if self.grid is not None:
            logger.warning("Finishing with an open row; closing it")
            self.end_row()
        logger.debug("Finishing document: %d pages, %d index entries", self.page_count, len(self.toc))
        self.add_page_numbers()
        self.add_index()
        self.state = DocumentState.FINISHED

    # ========== Output ==========

    def render(self) -> Path:
        """Finish the document and save it to file_path."""
        self._finish()
        path = self.surface.save(self.file_path)
        logger.info("Saved %d page PDF to %s", self.page_count, path)
        return path

    def get_buffer(self) -> bytes:
        """Finish the document and return the PDF bytes."""
        self._finish()
        return self.surface.serialize()

    def set_file_path(self, path: Union[str, Path]) -> None:
        self.file_path = Path(path)

    def set_default_font(self, font_name: str) -> None:
        self.surface.set_font(font_name)
        self.default_font = font_name

    def get_available_fonts(self) -> List[str]:
        return self.surface.list_available_fonts()

    def toc_rows(self) -> List[Dict[str, Any]]:
        return [{"Index": entry.label, "Page": entry.page_number} for entry in self.toc]


def _accepts_argument(fn: Callable[..., Any]) -> bool:
    try:
        signature = inspect.signature(fn)
    except (TypeError, ValueError):
        return False
    for param in signature.parameters.values():
        if param.kind in (param.POSITIONAL_ONLY, param.POSITIONAL_OR_KEYWORD) and param.default is param.empty:
            return True
    return False
