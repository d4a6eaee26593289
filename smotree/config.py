"""
smotree.config - YAML config loading, defaults merging, validation.

Handles loading smotree.yaml from the workspace directory, filling in
defaults, and validating all parameters.
"""

from __future__ import annotations

from pathlib import Path
from typing import Any

import yaml
from pydantic import BaseModel, Field, ValidationError, field_validator

from smotree.exceptions import ConfigError
from smotree.export.markers import EdlColumns, ExportOptions, parse_color_scheme
from smotree.models import DEFAULT_COLOR_SCHEME, CommentStatus, MarkerColor

CONFIG_FILENAME = "smotree.yaml"


class SmoTreeConfig(BaseModel):
    """Resolved configuration for a SmoTree workspace."""

    author: str | None = None

    default_framerate: float = Field(default=25.0, gt=0.0, allow_inf_nan=False)
    snap_framerate: bool = True

    marker_prefix: str = "SmoTree"
    include_resolved: bool = True
    include_metadata: bool = True
    color_scheme: dict[CommentStatus, MarkerColor] = Field(
        default_factory=lambda: dict(DEFAULT_COLOR_SCHEME)
    )
    edl: EdlColumns = Field(default_factory=EdlColumns)

    store_dir: str = "projects"
    export_dir: str = "exports"

    config_path: Path | None = None

    @field_validator("color_scheme", mode="before")
    @classmethod
    def fill_color_scheme(cls, v: Any) -> Any:
        return parse_color_scheme(v)

    @field_validator("marker_prefix")
    @classmethod
    def validate_marker_prefix(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("marker_prefix must not be empty")
        return v

    def export_options(self, **overrides: Any) -> ExportOptions:
        """Build renderer options from this config, with per-call overrides."""
        values: dict[str, Any] = {
            "include_resolved": self.include_resolved,
            "include_metadata": self.include_metadata,
            "marker_prefix": self.marker_prefix,
            "color_scheme": self.color_scheme,
            "edl": self.edl,
        }
        values.update({k: v for k, v in overrides.items() if v is not None})
        return ExportOptions(**values)


DEFAULTS: dict[str, Any] = {
    "default_framerate": 25.0,
    "snap_framerate": True,
    "marker_prefix": "SmoTree",
    "include_resolved": True,
    "include_metadata": True,
    "color_scheme": {status.value: color.value for status, color in DEFAULT_COLOR_SCHEME.items()},
    "edl": EdlColumns().model_dump(),
    "store_dir": "projects",
    "export_dir": "exports",
}

NESTED_KEYS = ("color_scheme", "edl")


def merge_config(overrides: dict[str, Any], base: dict[str, Any]) -> dict[str, Any]:
    """Merge a config over a base. Overrides win; nested sections merge key by key."""
    merged = {k: (dict(v) if isinstance(v, dict) else v) for k, v in base.items()}
    for key, value in overrides.items():
        if key in NESTED_KEYS and isinstance(value, dict):
            merged.setdefault(key, {})
            merged[key].update(value)
        elif value is not None:
            merged[key] = value
    return merged


def load_config(workspace_dir: Path) -> SmoTreeConfig:
    """Load and validate configuration from a workspace directory.

    Raises:
        FileNotFoundError: If there is no smotree.yaml
        ConfigError: If the file is not valid YAML or fails validation
    """
    config_file = workspace_dir / CONFIG_FILENAME
    if not config_file.exists():
        raise FileNotFoundError(f"No {CONFIG_FILENAME} found in {workspace_dir}")

    try:
        with open(config_file, encoding="utf-8") as f:
            raw_config = yaml.safe_load(f) or {}
    except yaml.YAMLError as e:
        raise ConfigError(f"Invalid YAML in {config_file}: {e}") from e

    if not isinstance(raw_config, dict):
        raise ConfigError(f"{config_file} must contain a mapping")

    merged = merge_config(raw_config, DEFAULTS)
    merged["config_path"] = config_file

    try:
        return SmoTreeConfig(**merged)
    except ValidationError as e:
        raise ConfigError(f"Invalid configuration in {config_file}:\n{e}") from e


def create_default_config(
    author: str | None = None,
    framerate: float | None = None,
) -> dict[str, Any]:
    """Create a default config for a new workspace."""
    overrides: dict[str, Any] = {"author": author, "default_framerate": framerate}
    return merge_config(overrides, DEFAULTS)


def write_config(config: dict[str, Any], path: Path) -> None:
    """Write configuration to a YAML file."""
    path.parent.mkdir(parents=True, exist_ok=True)
    with open(path, "w", encoding="utf-8") as f:
        yaml.dump(config, f, default_flow_style=False, sort_keys=False, allow_unicode=True)
