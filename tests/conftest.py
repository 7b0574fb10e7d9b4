"""
Pytest configuration and shared fixtures for the layout engine tests.
"""
import io
from typing import Dict, List, Optional, Sequence, Tuple

import pytest
from PIL import Image

from flowpdf.config import EngineConfig
from flowpdf.layout_engine import LayoutEngine
from flowpdf.surface import DrawingSurface, TableStyleOptions


# A4 rounded to whole points so expected geometry is exact
PAGE_SIZE = (595.0, 842.0)
TABLE_ROW_HEIGHT = 20.0


class FakeSurface(DrawingSurface):
    """
    Drawing surface that records calls instead of drawing.

    Glyphs are 0.5 x font size wide. Setting block_height forces every text
    block to that height; tables are TABLE_ROW_HEIGHT per row, header included.
    """

    def __init__(self, page_size: Tuple[float, float] = PAGE_SIZE):
        self.size = page_size
        self.pages: List[List[Dict]] = [[]]
        self.active = 0
        self.calls: List[Dict] = []
        self.font = ("helvetica", "normal")
        self.font_size = 16.0
        self.block_height: Optional[float] = None

    def _record(self, call: Dict) -> None:
        call["page"] = self.active + 1
        self.pages[self.active].append(call)
        self.calls.append(call)

    # Fonts & metrics

    def set_font(self, font_name: str, style: str = "normal") -> None:
        self.font = (font_name, style)

    def get_font(self) -> Tuple[str, str]:
        return self.font

    def set_font_size(self, size: float) -> None:
        self.font_size = size

    def get_font_size(self) -> float:
        return self.font_size

    def list_available_fonts(self) -> List[str]:
        return ["courier", "helvetica", "times"]

    def split_text_to_size(self, text: str, max_width: float) -> List[str]:
        char_width = self.font_size * 0.5
        lines = []
        for paragraph in text.split("\n"):
            current = ""
            for word in paragraph.split():
                candidate = f"{current} {word}".strip()
                if current and len(candidate) * char_width > max_width:
                    lines.append(current)
                    current = word
                else:
                    current = candidate
            if current:
                lines.append(current)
        return lines

    def text_block_height(self, lines: Sequence[str]) -> float:
        if self.block_height is not None:
            return self.block_height
        return super().text_block_height(lines)

    # Drawing

    def draw_text(self, lines, x, y) -> None:
        self._record({
            "kind": "text", "lines": list(lines), "x": x, "y": y,
            "font": self.font, "size": self.font_size,
        })

    def draw_image(self, data, fmt, x, y, width, height) -> None:
        self._record({
            "kind": "image", "format": fmt, "x": x, "y": y, "width": width, "height": height,
        })

    def draw_auto_table(
        self, headers, rows, start_y, left_margin, right_margin, width, options: TableStyleOptions
    ) -> float:
        self._record({
            "kind": "table", "headers": list(headers), "rows": [list(r) for r in rows],
            "x": left_margin, "y": start_y, "right_margin": right_margin,
            "width": width, "theme": options.theme,
        })
        return start_y + (len(rows) + 1) * TABLE_ROW_HEIGHT

    # Pages

    def page_size(self) -> Tuple[float, float]:
        return self.size

    def add_page(self) -> None:
        self.pages.append([])
        self.active = len(self.pages) - 1
        self.calls.append({"kind": "add_page", "page": self.active + 1})

    def insert_page_at(self, page_number: int) -> None:
        self.pages.insert(page_number - 1, [])
        self.active = page_number - 1
        self.calls.append({"kind": "insert_page", "page": page_number})

    def set_active_page(self, page_number: int) -> None:
        self.active = page_number - 1

    def page_count(self) -> int:
        return len(self.pages)

    def current_page_number(self) -> int:
        return self.active + 1

    # Output

    def serialize(self) -> bytes:
        return b"%PDF-fake " + str(len(self.pages)).encode("ascii")


def texts(surface: FakeSurface, page: Optional[int] = None) -> List[Dict]:
    """Text draw calls, optionally restricted to one (current) page number."""
    calls = surface.calls if page is None else surface.pages[page - 1]
    return [c for c in calls if c["kind"] == "text"]


# ============================================================================
# Fixtures
# ============================================================================

@pytest.fixture
def surfaces() -> List[FakeSurface]:
    """Every FakeSurface created by the engine fixtures, newest last."""
    return []


@pytest.fixture
def make_engine(surfaces):
    def factory(**config_kwargs) -> LayoutEngine:
        def surface_factory() -> FakeSurface:
            surfaces.append(FakeSurface())
            return surfaces[-1]
        return LayoutEngine(EngineConfig(**config_kwargs), surface_factory=surface_factory)
    return factory


@pytest.fixture
def engine(make_engine) -> LayoutEngine:
    """Single-column engine on a 595 x 842 FakeSurface, margin 20, footer 50."""
    return make_engine()


@pytest.fixture
def png_bytes() -> bytes:
    image = Image.new("RGB", (40, 20), (66, 139, 202))
    buffer = io.BytesIO()
    image.save(buffer, format="PNG")
    return buffer.getvalue()
