"""Font resolution and table themes."""

from dataclasses import dataclass
from enum import Enum
from typing import Dict, Optional
from reportlab.lib.colors import Color, black, white, HexColor
from reportlab.pdfbase import pdfmetrics


class FontStyle(Enum):
    """Text styles accepted by placement calls."""
    NORMAL = "normal"
    BOLD = "bold"
    ITALIC = "italic"
    BOLD_ITALIC = "bolditalic"


# Standard 14 families: style -> ReportLab font name
STANDARD_FONT_FAMILIES: Dict[str, Dict[FontStyle, str]] = {
    "helvetica": {
        FontStyle.NORMAL: "Helvetica",
        FontStyle.BOLD: "Helvetica-Bold",
        FontStyle.ITALIC: "Helvetica-Oblique",
        FontStyle.BOLD_ITALIC: "Helvetica-BoldOblique",
    },
    "times": {
        FontStyle.NORMAL: "Times-Roman",
        FontStyle.BOLD: "Times-Bold",
        FontStyle.ITALIC: "Times-Italic",
        FontStyle.BOLD_ITALIC: "Times-BoldItalic",
    },
    "courier": {
        FontStyle.NORMAL: "Courier",
        FontStyle.BOLD: "Courier-Bold",
        FontStyle.ITALIC: "Courier-Oblique",
        FontStyle.BOLD_ITALIC: "Courier-BoldOblique",
    },
}

FAMILY_ALIASES = {
    "times-roman": "times",
    "timesnewroman": "times",
    "arial": "helvetica",
}


def family_key(font_name: str) -> str:
    """Normalize a font family name ("Times-Roman" -> "times")."""
    key = font_name.strip().lower()
    return FAMILY_ALIASES.get(key, key)


def resolve_font(font_name: str, style: str = "normal") -> str:
    """Get the ReportLab font name for a family and style."""
    font_style = FontStyle(style)
    family = STANDARD_FONT_FAMILIES.get(family_key(font_name))
    if family is not None:
        return family[font_style]

    # Registered TrueType fonts carry their style in the name already
    if font_name in pdfmetrics.getRegisteredFontNames():
        return font_name

    raise ValueError(f"Unknown font: {font_name}")


def available_fonts():
    """Names usable as a font family."""
    names = sorted(STANDARD_FONT_FAMILIES)
    standard = {name for family in STANDARD_FONT_FAMILIES.values() for name in family.values()}
    for name in sorted(pdfmetrics.getRegisteredFontNames()):
        if name not in standard and name not in names:
            names.append(name)
    return names


class GridStyle(Enum):
    """Grid line rendering styles."""
    NONE = "none"
    FULL_GRID = "full_grid"       # All horizontal + vertical lines


@dataclass
class TableTheme:
    """Visual style profile for an auto-laid-out table."""
    name: str
    grid_style: GridStyle
    grid_line_width: float
    grid_color: Color
    header_bg_color: Optional[Color]
    header_text_color: Color
    header_bold: bool
    alternating_row_color: Optional[Color]


HEADER_BLUE = Color(66 / 255, 139 / 255, 202 / 255)
STRIPE_GREY = Color(245 / 255, 245 / 255, 245 / 255)

TABLE_THEMES: Dict[str, TableTheme] = {
    "striped": TableTheme(
        name="striped",
        grid_style=GridStyle.NONE,
        grid_line_width=0.0,
        grid_color=white,
        header_bg_color=HEADER_BLUE,
        header_text_color=white,
        header_bold=True,
        alternating_row_color=STRIPE_GREY,
    ),
    "grid": TableTheme(
        name="grid",
        grid_style=GridStyle.FULL_GRID,
        grid_line_width=0.5,
        grid_color=HexColor("#C8C8C8"),
        header_bg_color=HEADER_BLUE,
        header_text_color=white,
        header_bold=True,
        alternating_row_color=None,
    ),
    "plain": TableTheme(
        name="plain",
        grid_style=GridStyle.NONE,
        grid_line_width=0.0,
        grid_color=white,
        header_bg_color=None,
        header_text_color=black,
        header_bold=True,
        alternating_row_color=None,
    ),
}

DEFAULT_THEME = "striped"


def get_table_theme(name: Optional[str]) -> TableTheme:
    """Get the table theme by name, falling back to striped when unset."""
    if name is None:
        return TABLE_THEMES[DEFAULT_THEME]
    if name not in TABLE_THEMES:
        raise ValueError(
            f"Unknown table theme: {name}. Available: {', '.join(TABLE_THEMES)}"
        )
    return TABLE_THEMES[name]
