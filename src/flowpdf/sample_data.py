"""Generate sample document content for demos and smoke tests."""

import base64
import io
from datetime import date, timedelta
from typing import Any, Dict, List
import numpy as np
from faker import Faker
from PIL import Image, ImageDraw


PRODUCTS = ["Widget", "Gadget", "Sprocket", "Gizmo", "Doohickey", "Flange"]
REGIONS = ["North", "South", "East", "West"]


def generate_sales_rows(
    rng: np.random.Generator,
    period_start: date,
    num_rows: int = 12,
) -> List[dict]:
    """Generate data rows for a sales table."""
    rows = []
    current_date = period_start

    for i in range(num_rows):
        current_date = current_date + timedelta(days=int(rng.integers(1, 6)))
        qty = int(rng.integers(10, 500))
        unit_price = float(rng.uniform(2.5, 80.0))

        rows.append({
            "date": current_date,
            "product": str(rng.choice(PRODUCTS)),
            "region": str(rng.choice(REGIONS)),
            "qty": qty,
            "revenue": f"{qty * unit_price:,.2f}",
            # Some rows have no note; rendered as an empty cell
            "note": None if rng.random() > 0.3 else "Backordered",
        })

    return rows


def generate_contact_rows(fake: Faker, num_rows: int = 6) -> List[dict]:
    """Generate data rows for a contact directory table."""
    return [
        {
            "name": fake.name(),
            "company": fake.company(),
            "email": fake.email(),
            "phone": fake.phone_number(),
        }
        for _ in range(num_rows)
    ]


def generate_chart_png(rng: np.random.Generator, width: int = 480, height: int = 240) -> bytes:
    """Draw a simple bar chart and return it as PNG bytes."""
    values = rng.uniform(0.2, 1.0, size=len(PRODUCTS))
    image = Image.new("RGB", (width, height), "white")
    draw = ImageDraw.Draw(image)

    bar_width = width // (len(values) * 2)
    for i, value in enumerate(values):
        x0 = bar_width // 2 + i * bar_width * 2
        y0 = int(height - value * (height - 20))
        draw.rectangle([x0, y0, x0 + bar_width, height - 1], fill=(66, 139, 202))
    draw.line([0, height - 1, width, height - 1], fill="black")

    buffer = io.BytesIO()
    image.save(buffer, format="PNG")
    return buffer.getvalue()


def generate_report_data(rng: np.random.Generator, fake: Faker, period_start: date) -> Dict[str, Any]:
    """Data for the report template."""
    return {
        "reportTitle": f"{fake.company()} Quarterly Report",
        "author": fake.name(),
        "date": period_start.isoformat(),
        "summary": " ".join(fake.paragraphs(nb=3)),
        "tableData": generate_sales_rows(rng, period_start, num_rows=int(rng.integers(8, 20))),
        "conclusions": " ".join(fake.paragraphs(nb=2)),
    }


def generate_document_spec(seed: int = 42, period_start: date = date(2025, 1, 1)) -> Dict[str, Any]:
    """
    Build a document spec exercising every content type.

    The same seed always yields the same spec.
    """
    rng = np.random.default_rng(seed)
    fake = Faker()
    fake.seed_instance(seed)

    chart = base64.b64encode(generate_chart_png(rng)).decode("ascii")
    sales = generate_sales_rows(rng, period_start)
    contacts = generate_contact_rows(fake)

    return {
        "title": f"{fake.company()} Sales Overview",
        "contents": [
            {"type": "text", "data": "Highlights", "options": {"fontSize": 16, "fontStyle": "bold", "addToIndex": True}},
            {"type": "text", "data": "\n".join(fake.paragraphs(nb=2))},
            {"type": "newLine", "options": {"count": 1}},
            {
                "type": "row",
                "columns": [
                    {"span": 6, "contents": [
                        {"type": "text", "data": fake.paragraph(nb_sentences=6)},
                    ]},
                    {"span": 6, "contents": [
                        {"type": "image", "data": chart, "options": {"height": 150, "format": "PNG"}},
                    ]},
                ],
            },
            {
                "type": "table",
                "data": {"tableName": "Monthly Sales", "tableData": sales, "ignoreFields": ["note"]},
                "options": {"addToIndex": True, "theme": "striped"},
            },
            {"type": "newPage"},
            {
                "type": "table",
                "data": {"tableName": "Contacts", "tableData": contacts},
                "options": {"addToIndex": True, "theme": "grid"},
            },
        ],
    }
