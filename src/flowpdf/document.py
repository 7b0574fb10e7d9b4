"""Build documents from declarative content specs and report templates."""

import base64
from pathlib import Path
from typing import Any, Dict, Iterable, List, Mapping, Optional, Sequence
import yaml

from .layout_engine import ImageOptions, LayoutEngine, TableOptions, TextOptions


CONTENT_TYPES = ("text", "table", "newPage", "newLine", "image", "row")

TEXT_OPTION_KEYS = {
    "fontSize": "font_size",
    "fontStyle": "font_style",
    "fontName": "font_name",
    "addToIndex": "add_to_index",
}
IMAGE_OPTION_KEYS = {"width": "width", "height": "height", "format": "format"}
TABLE_OPTION_KEYS = {
    "tableName": "table_name",
    "ignoreFields": "ignore_fields",
    "addToIndex": "add_to_index",
    "theme": "theme",
}


class DocumentSpecError(ValueError):
    """A content spec that cannot be laid out."""


def _options(raw: Optional[Mapping[str, Any]], keys: Dict[str, str]) -> Dict[str, Any]:
    """Map camelCase or snake_case spec options onto option dataclass fields."""
    fields = set(keys.values())
    result = {}
    for key, value in (raw or {}).items():
        name = keys.get(key, key)
        if name in fields and value is not None:
            result[name] = value
    return result


def load_document_spec(path: Path) -> Dict[str, Any]:
    """Load a document spec from a YAML or JSON file."""
    with open(path, "r") as f:
        spec = yaml.safe_load(f)
    if not isinstance(spec, dict):
        raise DocumentSpecError(f"{path}: expected a mapping at the top level")
    return spec


def add_content(engine: LayoutEngine, item: Mapping[str, Any]) -> None:
    """Lay out a single content item."""
    content_type = item.get("type")
    data = item.get("data")
    options = item.get("options") or {}

    if content_type == "text":
        engine.add_text(data, TextOptions(**_options(options, TEXT_OPTION_KEYS)))
    elif content_type == "table":
        data = data or {}
        table_options = _options(options, TABLE_OPTION_KEYS)
        table_options.setdefault("table_name", data.get("tableName"))
        table_options.setdefault("ignore_fields", data.get("ignoreFields") or ())
        engine.add_generic_table(data.get("tableData") or [], TableOptions(**table_options))
    elif content_type == "newPage":
        engine.add_new_page()
    elif content_type == "newLine":
        engine.add_new_line(int(options.get("count", 1)))
    elif content_type == "image":
        if data:
            engine.add_image(base64.b64decode(data), ImageOptions(**_options(options, IMAGE_OPTION_KEYS)))
    elif content_type == "row":
        add_row(engine, item.get("columns") or [])
    else:
        raise DocumentSpecError(f"Unknown content type: {content_type}")


def add_row(engine: LayoutEngine, columns: Sequence[Mapping[str, Any]]) -> None:
    """Lay out a grid row; each column is {span, contents}."""
    with engine.row():
        for column in columns:
            contents = column.get("contents") or []
            engine.add_col(int(column.get("span", 12)), lambda: add_contents(engine, contents))


def add_contents(engine: LayoutEngine, contents: Iterable[Mapping[str, Any]]) -> None:
    for item in contents:
        add_content(engine, item)


def build_document(engine: LayoutEngine, spec: Mapping[str, Any]) -> LayoutEngine:
    """
    Compose a document from a spec mapping.

    Keys: title, defaultFont (or default_font), layout {columns, margin, gap},
    and contents, a list of {type, data, options} items.
    """
    default_font = spec.get("defaultFont") or spec.get("default_font")
    if default_font:
        engine.set_default_font(default_font)

    if spec.get("layout"):
        engine.set_layout_columns(**spec["layout"])

    if spec.get("title"):
        engine.add_text(spec["title"], TextOptions(font_size=18, font_style="bold", add_to_index=True))
        engine.add_new_line(2)

    add_contents(engine, spec.get("contents") or [])
    return engine


def build_simple_document(
    engine: LayoutEngine,
    content: str,
    title: Optional[str] = None,
    font_size: float = 12,
    font_style: str = "normal",
) -> LayoutEngine:
    if title:
        engine.add_text(title, TextOptions(font_size=16, font_style="bold", add_to_index=True))
        engine.add_new_line(2)
    engine.add_text(content, TextOptions(font_size=font_size, font_style=font_style))
    return engine


def build_table_document(
    engine: LayoutEngine,
    table_name: str,
    data: Sequence[Mapping[str, Any]],
    ignore_fields: Iterable[str] = (),
    add_to_index: bool = False,
    theme: str = "striped",
) -> LayoutEngine:
    engine.add_generic_table(data, TableOptions(
        table_name=table_name,
        ignore_fields=tuple(ignore_fields),
        add_to_index=add_to_index,
        theme=theme,
    ))
    return engine


def build_image_document(
    engine: LayoutEngine,
    image: bytes,
    title: Optional[str] = None,
    description: Optional[str] = None,
    width: Optional[float] = None,
    height: Optional[float] = None,
    fmt: str = "JPEG",
) -> LayoutEngine:
    if title:
        engine.add_text(title, TextOptions(font_size=16, font_style="bold"))
        engine.add_new_line()

    engine.add_image(image, ImageOptions(width=width, height=height, format=fmt))

    if description:
        engine.add_new_line()
        engine.add_text(description)
    return engine


def build_report(engine: LayoutEngine, report: Mapping[str, Any]) -> LayoutEngine:
    """
    Lay out the standard report: a title page followed by summary, data
    table and conclusions sections, each listed in the table of contents.
    """
    engine.add_text(report.get("reportTitle") or "Report", TextOptions(
        font_size=24, font_style="bold", add_to_index=True,
    ))
    engine.add_new_line(2)

    if report.get("author"):
        engine.add_text(f"Author: {report['author']}")
    if report.get("date"):
        engine.add_text(f"Date: {report['date']}")

    engine.add_new_page()

    if report.get("summary"):
        engine.add_text("Executive Summary", TextOptions(font_size=16, font_style="bold", add_to_index=True))
        engine.add_new_line()
        engine.add_text(report["summary"])
        engine.add_new_line(2)

    table_data = report.get("tableData") or []
    if table_data:
        engine.add_generic_table(table_data, TableOptions(
            table_name="Data Analysis",
            add_to_index=True,
            theme="grid",
        ))
        engine.add_new_line(2)

    if report.get("conclusions"):
        engine.add_text("Conclusions", TextOptions(font_size=16, font_style="bold", add_to_index=True))
        engine.add_new_line()
        engine.add_text(report["conclusions"])

    return engine


def build_column_report(
    engine: LayoutEngine,
    image: bytes,
    rows: List[Dict[str, Any]],
    heading: str = "Sales Report",
    table_name: str = "Sales",
    fmt: str = "PNG",
) -> LayoutEngine:
    """Two-column flow section followed by a 6/6 row and a full-width row."""
    engine.set_layout_columns(columns=2, margin=20, gap=15)
    engine.add_text(f"{heading} \n" * 5)
    engine.add_image(image, ImageOptions(format=fmt))
    engine.add_generic_table(rows, TableOptions(table_name=table_name))

    engine.start_row()
    engine.add_col(6, lambda: engine.add_text(heading))
    engine.add_col(6, lambda: engine.add_image(image, ImageOptions(height=150, format=fmt)))
    engine.end_row()

    engine.start_row()
    engine.add_col(12, lambda: engine.add_generic_table(rows, TableOptions(table_name=table_name)))
    engine.end_row()
    return engine
