"""Command-line interface for laying out PDF documents."""

import argparse
import logging
from datetime import date
from pathlib import Path
from typing import List, Optional
import numpy as np
from faker import Faker

from .config import EngineConfig, load_config
from .document import (
    build_column_report,
    build_document,
    build_image_document,
    build_report,
    build_simple_document,
    build_table_document,
    load_document_spec,
)
from .layout_engine import LayoutEngine
from .sample_data import (
    generate_chart_png,
    generate_contact_rows,
    generate_document_spec,
    generate_report_data,
    generate_sales_rows,
)


def make_engine(config: EngineConfig, out: Optional[Path]) -> LayoutEngine:
    """Create an engine that saves to out (or the configured path)."""
    engine = LayoutEngine(config)
    if out is not None:
        engine.set_file_path(out)
    return engine


def print_summary(engine: LayoutEngine, path: Path) -> None:
    print(f"Wrote {path}")
    print(f"  Pages: {engine.page_count}")
    print(f"  Index entries: {len(engine.toc)}")


def cmd_render(args: argparse.Namespace, config: EngineConfig) -> int:
    spec = load_document_spec(args.spec)
    engine = make_engine(config, args.out)
    build_document(engine, spec)
    print_summary(engine, engine.render())
    return 0


def cmd_report(args: argparse.Namespace, config: EngineConfig) -> int:
    report = load_document_spec(args.data)
    engine = make_engine(config, args.out)
    build_report(engine, report)
    print_summary(engine, engine.render())
    return 0


def cmd_sample(args: argparse.Namespace, config: EngineConfig) -> int:
    engine = make_engine(config, args.out)
    rng = np.random.default_rng(args.seed)
    fake = Faker()
    fake.seed_instance(args.seed)
    period_start = date(2025, 1, 1)

    if args.template == "report":
        build_report(engine, generate_report_data(rng, fake, period_start))
    elif args.template == "simple":
        build_simple_document(engine, "\n".join(fake.paragraphs(nb=5)), title=fake.catch_phrase())
    elif args.template == "table":
        build_table_document(
            engine, "Contacts", generate_contact_rows(fake, num_rows=40), add_to_index=True, theme="grid",
        )
    elif args.template == "image":
        build_image_document(
            engine, generate_chart_png(rng), title="Units by product",
            description=fake.paragraph(nb_sentences=3), fmt="PNG",
        )
    elif args.template == "columns":
        build_column_report(engine, generate_chart_png(rng), generate_sales_rows(rng, period_start))
    else:
        build_document(engine, generate_document_spec(seed=args.seed))
    print_summary(engine, engine.render())
    return 0


def cmd_fonts(args: argparse.Namespace, config: EngineConfig) -> int:
    engine = LayoutEngine(config)
    for name in engine.get_available_fonts():
        print(name)
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="flowpdf",
        description="Column/row layout engine for PDF documents",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument(
        "--config",
        type=Path,
        help="Path to YAML engine configuration file",
    )
    parser.add_argument(
        "-v", "--verbose",
        action="count",
        default=0,
        help="Log layout decisions (-vv for debug output)",
    )

    subparsers = parser.add_subparsers(dest="command", required=True)

    render = subparsers.add_parser("render", help="Lay out a document spec (YAML or JSON)")
    render.add_argument("spec", type=Path, help="Document spec file")
    render.add_argument("-o", "--out", type=Path, help="Output PDF path (overrides config)")
    render.set_defaults(func=cmd_render)

    report = subparsers.add_parser("report", help="Render the report template from a data file")
    report.add_argument("data", type=Path, help="Report data file (YAML or JSON)")
    report.add_argument("-o", "--out", type=Path, help="Output PDF path (overrides config)")
    report.set_defaults(func=cmd_report)

    sample = subparsers.add_parser("sample", help="Generate a sample document")
    sample.add_argument("-o", "--out", type=Path, default=Path("sample.pdf"), help="Output PDF path")
    sample.add_argument("--seed", type=int, default=42, help="Random seed")
    sample.add_argument(
        "--template",
        choices=["document", "report", "simple", "table", "image", "columns"],
        default="document",
        help="Which sample to generate",
    )
    sample.set_defaults(func=cmd_sample)

    fonts = subparsers.add_parser("fonts", help="List available fonts")
    fonts.set_defaults(func=cmd_fonts)

    return parser


def main(argv: Optional[List[str]] = None) -> int:
    """Main entry point for CLI."""
    parser = build_parser()
    args = parser.parse_args(argv)

    level = logging.WARNING
    if args.verbose == 1:
        level = logging.INFO
    elif args.verbose > 1:
        level = logging.DEBUG
    logging.basicConfig(level=level, format="%(asctime)s %(name)s %(levelname)s %(message)s")

    config = load_config(args.config)
    return args.func(args, config)


if __name__ == "__main__":
    raise SystemExit(main())
