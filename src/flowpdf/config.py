"""Configuration dataclasses and YAML loading for the layout engine."""

from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional, Tuple
import yaml
from reportlab.lib.pagesizes import A4, LETTER, landscape, portrait


PAGE_FORMATS = {
    "A4": A4,  # 595.28 x 841.89 points
    "LETTER": LETTER,  # 612 x 792 points
}
ORIENTATIONS = ("portrait", "landscape")


@dataclass
class LayoutConfig:
    """Column layout for linear flow placement."""
    columns: int = 1
    margin: float = 20
    gap: float = 10

    def column_width(self, page_width: float) -> float:
        """Width of one flow column on a page of the given width."""
        return (page_width - self.margin * 2 - self.gap * (self.columns - 1)) / self.columns


@dataclass
class EngineConfig:
    """Per-document settings for a LayoutEngine."""

    page_format: str = "A4"
    orientation: str = "portrait"
    default_font: str = "helvetica"
    # Reserved band at the bottom of every page for the page-number footer
    footer_margin: float = 50
    file_path: Path = field(default_factory=lambda: Path("output.pdf"))
    layout: LayoutConfig = field(default_factory=LayoutConfig)

    def __post_init__(self):
        self.page_format = self.page_format.upper()
        if self.page_format not in PAGE_FORMATS:
            raise ValueError(f"Unknown page format: {self.page_format}")
        if self.orientation not in ORIENTATIONS:
            raise ValueError(f"Unknown orientation: {self.orientation}")

    @property
    def page_size(self) -> Tuple[float, float]:
        size = PAGE_FORMATS[self.page_format]
        if self.orientation == "landscape":
            return landscape(size)
        return portrait(size)

    @classmethod
    def from_yaml(cls, path: Path) -> "EngineConfig":
        """Load configuration from a YAML file."""
        with open(path, "r") as f:
            data = yaml.safe_load(f) or {}

        if "file_path" in data:
            data["file_path"] = Path(data["file_path"])

        if "layout" in data:
            data["layout"] = LayoutConfig(**(data["layout"] or {}))

        return cls(**data)

    def to_yaml(self, path: Path) -> None:
        """Save configuration to a YAML file."""
        data = {
            "page_format": self.page_format,
            "orientation": self.orientation,
            "default_font": self.default_font,
            "footer_margin": self.footer_margin,
            "file_path": str(self.file_path),
            "layout": {
                "columns": self.layout.columns,
                "margin": self.layout.margin,
                "gap": self.layout.gap,
            },
        }
        with open(path, "w") as f:
            yaml.dump(data, f, default_flow_style=False, sort_keys=False)


def load_config(path: Optional[Path] = None) -> EngineConfig:
    """Load config from path or return default config."""
    if path is None:
        return EngineConfig()
    return EngineConfig.from_yaml(path)
