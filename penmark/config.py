"""
User settings for the highlighter, stored as JSON in the config directory.
"""
import json
import logging
from dataclasses import asdict, dataclass, field, fields
from pathlib import Path
from typing import List, Optional, Union

from penmark.core.annotations.models import AnnotationMode, hex_to_rgb
from penmark.core.errors import ConfigError
from penmark.utils.resource_loader import get_config_dir

logger = logging.getLogger(__name__)

SETTINGS_FILE = "settings.json"

DEFAULT_PALETTE = [
    "#ffeb3b", "#ffd54f", "#ffe082", "#ffcc80", "#ffab91",
    "#f48fb1", "#f8bbd0", "#ce93d8", "#b39ddb", "#90caf9",
    "#80cbc4", "#a5d6a7", "#c5e1a5", "#b2dfdb", "#cfd8dc",
]

EXPORT_STRATEGIES = ("raster", "vector")


@dataclass
class HighlighterSettings:
    """Tool defaults, limits and session options."""

    palette: List[str] = field(default_factory=lambda: list(DEFAULT_PALETTE))
    default_color: str = "#ffeb3b"

    # Opacity is capped so text under a highlight always stays legible
    default_opacity: float = 0.35
    min_opacity: float = 0.10
    max_opacity: float = 0.35

    default_thickness: float = 14.0
    min_thickness: float = 6.0
    max_thickness: float = 40.0

    base_scale: float = 1.25
    min_scale: float = 0.5
    max_scale: float = 3.0
    zoom_step: float = 0.1

    min_box_size: float = 3.0  # logical pixels
    mode: str = AnnotationMode.BOX.value
    export_strategy: str = "raster"
    export_filename: str = "annotated.pdf"
    history_size: int = 50

    log_level: str = "INFO"
    log_file: Optional[str] = None

    def __post_init__(self):
        self.validate()

    def validate(self) -> None:
        """
        Check value ranges.

        Raises:
            ConfigError: if any setting is out of range
        """
        try:
            for color in self.palette + [self.default_color]:
                hex_to_rgb(color)
            AnnotationMode(self.mode)
        except ValueError as e:
            raise ConfigError(str(e)) from e

        if not 0.0 < self.min_opacity <= self.max_opacity < 1.0:
            raise ConfigError(
                f"Opacity limits must satisfy 0 < min <= max < 1, "
                f"got {self.min_opacity}..{self.max_opacity}"
            )
        if not 0.0 < self.min_thickness <= self.max_thickness:
            raise ConfigError("Thickness limits must satisfy 0 < min <= max")
        if not 0.0 < self.min_scale <= self.base_scale <= self.max_scale:
            raise ConfigError("Scale limits must satisfy 0 < min <= base <= max")
        if self.zoom_step <= 0 or self.min_box_size < 0 or self.history_size < 0:
            raise ConfigError("zoom_step, min_box_size and history_size must be positive")
        if self.export_strategy not in EXPORT_STRATEGIES:
            raise ConfigError(f"Unknown export strategy: {self.export_strategy!r}")

    @property
    def annotation_mode(self) -> AnnotationMode:
        return AnnotationMode(self.mode)

    def clamp_opacity(self, value: float) -> float:
        return max(self.min_opacity, min(self.max_opacity, value))

    def clamp_thickness(self, value: float) -> float:
        return max(self.min_thickness, min(self.max_thickness, value))

    def clamp_scale(self, value: float) -> float:
        return max(self.min_scale, min(self.max_scale, value))

    def to_dict(self) -> dict:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: dict) -> "HighlighterSettings":
        known = {f.name for f in fields(cls)}
        unknown = sorted(set(data) - known)
        if unknown:
            logger.warning("Ignoring unknown settings: %s", ", ".join(unknown))
        try:
            return cls(**{k: v for k, v in data.items() if k in known})
        except TypeError as e:
            raise ConfigError(f"Invalid settings: {e}") from e


def get_settings_path() -> Path:
    return get_config_dir() / SETTINGS_FILE


def load_settings(path: Optional[Union[str, Path]] = None) -> HighlighterSettings:
    """
    Load settings from JSON, falling back to defaults.

    A missing file silently yields defaults; an unreadable or invalid one
    yields defaults and a warning.

    Args:
        path: Optional custom settings file

    Returns:
        Loaded settings
    """
    path = Path(path) if path is not None else get_settings_path()
    if not path.exists():
        return HighlighterSettings()

    try:
        with open(path, "r", encoding="utf-8") as f:
            data = json.load(f)
        if not isinstance(data, dict):
            raise ConfigError("settings root must be a JSON object")
        return HighlighterSettings.from_dict(data)
    except (OSError, ValueError, ConfigError) as e:
        logger.warning("Failed to load settings from %s, using defaults: %s", path, e)
        return HighlighterSettings()


def save_settings(
    settings: HighlighterSettings, path: Optional[Union[str, Path]] = None
) -> Path:
    """Write settings to JSON and return the file path."""
    path = Path(path) if path is not None else get_settings_path()
    path.parent.mkdir(parents=True, exist_ok=True)
    with open(path, "w", encoding="utf-8") as f:
        json.dump(settings.to_dict(), f, indent=2)
    return path
