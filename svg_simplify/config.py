"""Configuration for svg-simplify.

Settings come from a YAML file (see ``Config.load``) and can be overridden
programmatically or from the command line via ``Config.with_overrides``.

Example config file::

    dpi_render: 300
    dpi_units: auto
    arc_preservation: true
    output_unit: mm
    default_font_family: DejaVu Sans
    font_dirs:
      - ~/fonts
"""

from __future__ import annotations

import os
from dataclasses import dataclass, field, fields, replace
from pathlib import Path
from typing import Any

import yaml

from svg_simplify.exceptions import ConfigError

CONFIG_ENV_VAR = "SVG_SIMPLIFY_CONFIG"
LOCAL_CONFIG_NAME = "svg-simplify.yaml"
USER_CONFIG_PATH = Path("~/.config/svg-simplify/config.yaml")

OUTPUT_UNITS = ("px", "in", "cm", "mm", "pt", "pc")
LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")


@dataclass(frozen=True)
class Config:
    """Options for one pipeline instance.

    Attributes:
        dpi_render: Resolution of the eventual raster output.
        dpi_units: DPI assumed for physical units in the source document, or
            ``"auto"`` to guess it from the authoring tool.
        arc_preservation: Keep elliptical arcs as ``ArcTo`` segments instead of
            approximating them with cubic curves.
        output_unit: Unit used for every length in the serialized output.
        arc_tolerance: Maximum deviation (canonical units) of the cubic
            approximation of an arc.
        precision: Decimal places for serialized numbers.
        default_font_family: Family used when no family in a fallback list
            resolves.
        generic_families: Overrides for generic family names
            (``serif``, ``sans-serif``, ``cursive``, ``fantasy``, ``monospace``).
        font_dirs: Directories whose fonts are loaded at initialization.
        system_fonts: Load the platform font directories at initialization.
        languages: Accepted languages for ``systemLanguage`` tests.
        max_depth: Maximum nesting of groups, ``use`` and viewports.
        max_nodes: Maximum number of output nodes per document.
        allow_entities: Accept internal DTD entity declarations.
        log_level: Logging level used by the command line interface.
    """

    dpi_render: float = 96.0
    dpi_units: float | str = 96.0
    arc_preservation: bool = False
    output_unit: str = "px"
    arc_tolerance: float = 0.1
    precision: int = 6
    default_font_family: str = "Times New Roman"
    generic_families: dict[str, str] = field(default_factory=dict)
    font_dirs: list[str] = field(default_factory=list)
    system_fonts: bool = False
    languages: list[str] = field(default_factory=lambda: ["en"])
    max_depth: int = 64
    max_nodes: int = 100_000
    allow_entities: bool = False
    log_level: str = "WARNING"

    def __post_init__(self) -> None:
        self._validate()

    def _validate(self) -> None:
        if not _positive(self.dpi_render):
            raise ConfigError(f"dpi_render must be a positive number, got {self.dpi_render!r}")
        if self.dpi_units != "auto" and not _positive(self.dpi_units):
            raise ConfigError(
                f"dpi_units must be a positive number or 'auto', got {self.dpi_units!r}"
            )
        if self.output_unit not in OUTPUT_UNITS:
            raise ConfigError(
                f"output_unit must be one of {', '.join(OUTPUT_UNITS)}, got {self.output_unit!r}"
            )
        if not _positive(self.arc_tolerance):
            raise ConfigError(f"arc_tolerance must be positive, got {self.arc_tolerance!r}")
        if not isinstance(self.precision, int) or not 0 <= self.precision <= 15:
            raise ConfigError(f"precision must be an integer in 0..15, got {self.precision!r}")
        if not isinstance(self.max_depth, int) or self.max_depth < 1:
            raise ConfigError(f"max_depth must be a positive integer, got {self.max_depth!r}")
        if not isinstance(self.max_nodes, int) or self.max_nodes < 1:
            raise ConfigError(f"max_nodes must be a positive integer, got {self.max_nodes!r}")
        if self.log_level.upper() not in LOG_LEVELS:
            raise ConfigError(f"log_level must be one of {', '.join(LOG_LEVELS)}")
        if not isinstance(self.default_font_family, str) or not self.default_font_family:
            raise ConfigError("default_font_family must be a non-empty string")

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Config:
        known = {f.name for f in fields(cls)}
        unknown = sorted(set(data) - known)
        if unknown:
            raise ConfigError(f"unknown config keys: {', '.join(unknown)}")
        values = dict(data)
        for key in ("font_dirs", "languages"):
            if key in values and not isinstance(values[key], list):
                raise ConfigError(f"{key} must be a list")
        if "generic_families" in values and not isinstance(values["generic_families"], dict):
            raise ConfigError("generic_families must be a mapping")
        for key in ("arc_preservation", "system_fonts", "allow_entities"):
            if key in values and not isinstance(values[key], bool):
                raise ConfigError(f"{key} must be true or false")
        return cls(**values)

    @classmethod
    def load(cls, path: Path | str | None = None) -> Config:
        """Load configuration from YAML.

        Search order: ``path``, ``$SVG_SIMPLIFY_CONFIG``, ``./svg-simplify.yaml``,
        ``~/.config/svg-simplify/config.yaml``. Returns defaults when no file
        exists. An explicitly requested file must exist.
        """
        if path is not None:
            config_path = Path(path).expanduser()
            if not config_path.is_file():
                raise ConfigError(f"config file not found: {config_path}")
        else:
            config_path = _find_config_file()
            if config_path is None:
                return cls()

        try:
            data = yaml.safe_load(config_path.read_text(encoding="utf-8"))
        except yaml.YAMLError as e:
            raise ConfigError(f"invalid YAML in {config_path}: {e}") from e

        if data is None:
            return cls()
        if not isinstance(data, dict):
            raise ConfigError(f"{config_path}: top level must be a mapping")
        return cls.from_dict(data)

    def with_overrides(self, **overrides: Any) -> Config:
        """Return a copy with the non-None overrides applied."""
        values = {k: v for k, v in overrides.items() if v is not None}
        if not values:
            return self
        known = {f.name for f in fields(self)}
        unknown = sorted(set(values) - known)
        if unknown:
            raise ConfigError(f"unknown config keys: {', '.join(unknown)}")
        return replace(self, **values)


def _positive(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool) and value > 0


def _find_config_file() -> Path | None:
    candidates = []
    env_path = os.environ.get(CONFIG_ENV_VAR)
    if env_path:
        candidates.append(Path(env_path).expanduser())
    candidates.append(Path.cwd() / LOCAL_CONFIG_NAME)
    candidates.append(USER_CONFIG_PATH.expanduser())
    for candidate in candidates:
        if candidate.is_file():
            return candidate
    return None
