"""Drawing surfaces: the page/font/byte-output collaborator of the layout engine.

Coordinates passed to a surface are top-left based with y growing downward,
in points. Page numbers are 1-based.
"""

import io
import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from functools import partial
from pathlib import Path
from typing import Any, Callable, List, Optional, Sequence, Tuple, Union
from xml.sax.saxutils import escape

from reportlab.lib.colors import white
from reportlab.lib.pagesizes import A4
from reportlab.lib.styles import ParagraphStyle
from reportlab.lib.utils import ImageReader, simpleSplit
from reportlab.pdfgen import canvas
from reportlab.platypus import Paragraph, Table, TableStyle

from .styles import GridStyle, TableTheme, available_fonts, get_table_theme, resolve_font

logger = logging.getLogger(__name__)

# Line height as a multiple of the font size
LINE_HEIGHT_FACTOR = 1.15
# Baseline of the first line sits this far (x font size) below the block top
BASELINE_FACTOR = 0.8

SUPPORTED_IMAGE_FORMATS = ("JPEG", "JPG", "PNG", "GIF", "BMP")


@dataclass
class TableStyleOptions:
    """Styling and page bounds for draw_auto_table."""
    theme: str = "striped"
    font_name: str = "helvetica"
    font_size: float = 10
    cell_padding: float = 3
    top_margin: float = 20
    bottom_margin: float = 70


class DrawingSurface(ABC):
    """Page, font and serialization capabilities consumed by the layout engine."""

    # Fonts & metrics

    @abstractmethod
    def set_font(self, font_name: str, style: str = "normal") -> None:
        ...

    @abstractmethod
    def get_font(self) -> Tuple[str, str]:
        """Current (family, style)."""

    @abstractmethod
    def set_font_size(self, size: float) -> None:
        ...

    @abstractmethod
    def get_font_size(self) -> float:
        ...

    @abstractmethod
    def list_available_fonts(self) -> List[str]:
        ...

    @abstractmethod
    def split_text_to_size(self, text: str, max_width: float) -> List[str]:
        """Wrap text into lines no wider than max_width at the current font."""

    def line_height(self) -> float:
        return self.get_font_size() * LINE_HEIGHT_FACTOR

    def text_block_height(self, lines: Sequence[str]) -> float:
        return len(lines) * self.line_height()

    # Drawing

    @abstractmethod
    def draw_text(self, lines: Sequence[str], x: float, y: float) -> None:
        ...

    @abstractmethod
    def draw_image(
        self, data: bytes, fmt: str, x: float, y: float, width: float, height: float
    ) -> None:
        ...

    @abstractmethod
    def draw_auto_table(
        self,
        headers: Sequence[str],
        rows: Sequence[Sequence[str]],
        start_y: float,
        left_margin: float,
        right_margin: float,
        width: float,
        options: TableStyleOptions,
    ) -> float:
        """Draw a table, splitting it over pages as needed; return its final y."""

    # Pages

    @abstractmethod
    def page_size(self) -> Tuple[float, float]:
        ...

    @abstractmethod
    def add_page(self) -> None:
        """Append a page and make it active."""

    @abstractmethod
    def insert_page_at(self, page_number: int) -> None:
        """Insert a blank page so it becomes page_number, and make it active."""

    @abstractmethod
    def set_active_page(self, page_number: int) -> None:
        ...

    @abstractmethod
    def page_count(self) -> int:
        ...

    @abstractmethod
    def current_page_number(self) -> int:
        ...

    # Output

    @abstractmethod
    def serialize(self) -> bytes:
        ...

    def save(self, path: Union[str, Path]) -> Path:
        """Write the serialized document to path."""
        path = Path(path)
        data = self.serialize()
        with open(path, "wb") as f:
            f.write(data)
        return path


def _draw_lines(
    lines: Sequence[str], x: float, baseline: float, font: str, size: float, leading: float,
    c: canvas.Canvas
) -> None:
    c.setFont(font, size)
    y = baseline
    for line in lines:
        c.drawString(x, y, line)
        y -= leading


def _draw_image(
    reader: ImageReader, x: float, y: float, width: float, height: float, c: canvas.Canvas
) -> None:
    c.drawImage(reader, x, y, width=width, height=height, mask="auto")


def _draw_flowable(flowable: Any, x: float, y: float, c: canvas.Canvas) -> None:
    flowable.drawOn(c, x, y)


def build_table_style(theme: TableTheme, padding: float) -> TableStyle:
    """Translate a TableTheme into ReportLab table style commands."""
    commands = [
        ("VALIGN", (0, 0), (-1, -1), "TOP"),
        ("LEFTPADDING", (0, 0), (-1, -1), padding),
        ("RIGHTPADDING", (0, 0), (-1, -1), padding),
        ("TOPPADDING", (0, 0), (-1, -1), padding),
        ("BOTTOMPADDING", (0, 0), (-1, -1), padding),
    ]
    if theme.header_bg_color is not None:
        commands.append(("BACKGROUND", (0, 0), (-1, 0), theme.header_bg_color))
    if theme.alternating_row_color is not None:
        commands.append(
            ("ROWBACKGROUNDS", (0, 1), (-1, -1), [white, theme.alternating_row_color])
        )
    if theme.grid_style == GridStyle.FULL_GRID:
        commands.append(("GRID", (0, 0), (-1, -1), theme.grid_line_width, theme.grid_color))
    return TableStyle(commands)


class ReportLabSurface(DrawingSurface):
    """
    Drawing surface backed by ReportLab.

    Every page holds a display list of draw operations. Pages can therefore be
    inserted or revisited after later pages were produced; serialize() replays
    the lists onto a canvas, one showPage() per page.
    """

    def __init__(
        self,
        pagesize: Tuple[float, float] = A4,
        font_name: str = "helvetica",
        title: Optional[str] = None,
    ):
        self._pagesize = (float(pagesize[0]), float(pagesize[1]))
        self._title = title
        self._pages: List[List[Callable[[canvas.Canvas], None]]] = [[]]
        self._active = 0
        self._font_size: float = 16
        self.set_font(font_name)

    # Fonts & metrics

    def set_font(self, font_name: str, style: str = "normal") -> None:
        self._resolved_font = resolve_font(font_name, style)
        self._font = (font_name, style)

    def get_font(self) -> Tuple[str, str]:
        return self._font

    def set_font_size(self, size: float) -> None:
        self._font_size = size

    def get_font_size(self) -> float:
        return self._font_size

    def list_available_fonts(self) -> List[str]:
        return available_fonts()

    def split_text_to_size(self, text: str, max_width: float) -> List[str]:
        return simpleSplit(text, self._resolved_font, self._font_size, max_width)

    # Drawing

    def _to_pdf_y(self, y: float) -> float:
        return self._pagesize[1] - y

    def _record(self, op: Callable[[canvas.Canvas], None]) -> None:
        self._pages[self._active].append(op)

    def draw_text(self, lines: Sequence[str], x: float, y: float) -> None:
        baseline = self._to_pdf_y(y + self._font_size * BASELINE_FACTOR)
        self._record(partial(
            _draw_lines, list(lines), x, baseline, self._resolved_font,
            self._font_size, self.line_height(),
        ))

    def draw_image(
        self, data: bytes, fmt: str, x: float, y: float, width: float, height: float
    ) -> None:
        if fmt and fmt.upper() not in SUPPORTED_IMAGE_FORMATS:
            raise ValueError(f"Unsupported image format: {fmt}")
        reader = ImageReader(io.BytesIO(data))
        # Decode now so malformed bytes fail at the placement call
        reader.getSize()
        self._record(partial(_draw_image, reader, x, self._to_pdf_y(y + height), width, height))

    def _build_table(
        self,
        headers: Sequence[str],
        rows: Sequence[Sequence[str]],
        width: float,
        options: TableStyleOptions,
    ) -> Table:
        theme = get_table_theme(options.theme)
        leading = options.font_size * LINE_HEIGHT_FACTOR
        body_style = ParagraphStyle(
            "table-body",
            fontName=resolve_font(options.font_name),
            fontSize=options.font_size,
            leading=leading,
        )
        header_style = ParagraphStyle(
            "table-header",
            parent=body_style,
            fontName=resolve_font(options.font_name, "bold" if theme.header_bold else "normal"),
            textColor=theme.header_text_color,
        )
        data = [[Paragraph(escape(str(h)), header_style) for h in headers]]
        for row in rows:
            data.append([Paragraph(escape(str(cell)), body_style) for cell in row])

        col_width = width / max(len(headers), 1)
        table = Table(data, colWidths=[col_width] * len(headers), repeatRows=1)
        table.setStyle(build_table_style(theme, options.cell_padding))
        return table

    def _continue_on_next_page(self) -> None:
        if self._active == len(self._pages) - 1:
            self.add_page()
        else:
            self.insert_page_at(self._active + 2)

    def draw_auto_table(
        self,
        headers: Sequence[str],
        rows: Sequence[Sequence[str]],
        start_y: float,
        left_margin: float,
        right_margin: float,
        width: float,
        options: TableStyleOptions,
    ) -> float:
        page_width, page_height = self._pagesize
        width = min(width, page_width - left_margin - right_margin)
        remaining = self._build_table(headers, rows, width, options)
        y = start_y

        while True:
            avail = page_height - options.bottom_margin - y
            _, height = remaining.wrap(width, avail)
            if height <= avail:
                self._record(partial(_draw_flowable, remaining, left_margin, self._to_pdf_y(y + height)))
                return y + height

            parts = remaining.split(width, avail)
            if len(parts) < 2:
                if y <= options.top_margin:
                    # Taller than a whole page; let it run off the bottom
                    self._record(partial(_draw_flowable, remaining, left_margin, self._to_pdf_y(y + height)))
                    return y + height
                logger.debug("Table does not start on page %d; moving on", self.current_page_number())
                self._continue_on_next_page()
                y = options.top_margin
                continue

            head, remaining = parts[0], parts[1]
            _, head_height = head.wrap(width, avail)
            self._record(partial(_draw_flowable, head, left_margin, self._to_pdf_y(y + head_height)))
            self._continue_on_next_page()
            y = options.top_margin

    # Pages

    def page_size(self) -> Tuple[float, float]:
        return self._pagesize

    def add_page(self) -> None:
        self._pages.append([])
        self._active = len(self._pages) - 1

    def insert_page_at(self, page_number: int) -> None:
        if not 1 <= page_number <= len(self._pages) + 1:
            raise ValueError(f"Cannot insert page {page_number} into {len(self._pages)} pages")
        self._pages.insert(page_number - 1, [])
        self._active = page_number - 1

    def set_active_page(self, page_number: int) -> None:
        if not 1 <= page_number <= len(self._pages):
            raise ValueError(f"Page {page_number} out of range 1..{len(self._pages)}")
        self._active = page_number - 1

    def page_count(self) -> int:
        return len(self._pages)

    def current_page_number(self) -> int:
        return self._active + 1

    # Output

    def serialize(self) -> bytes:
        buffer = io.BytesIO()
        c = canvas.Canvas(buffer, pagesize=self._pagesize)
        if self._title:
            c.setTitle(self._title)
        for ops in self._pages:
            for op in ops:
                op(c)
            c.showPage()
        c.save()
        return buffer.getvalue()
