"""Unit tests for svg_simplify.config and font database setup."""

from pathlib import Path
from textwrap import dedent

import pytest

from svg_simplify import Config, ConfigError, create_font_database
from svg_simplify.config import CONFIG_ENV_VAR, LOCAL_CONFIG_NAME

# ---------------------------------------------------------------------------
# Tests for Config.load
# ---------------------------------------------------------------------------


class TestLoad:
    """Tests for YAML config loading and validation."""

    def test_load_full_config(self, tmp_path: Path) -> None:
        config_file = tmp_path / "config.yaml"
        config_file.write_text(
            dedent("""
            dpi_render: 300
            dpi_units: auto
            arc_preservation: true
            output_unit: mm
            precision: 3
            default_font_family: Test Sans
            generic_families:
              sans-serif: Test Sans
            font_dirs:
              - /nonexistent/fonts
            languages: [de, en]
        """)
        )

        config = Config.load(config_file)

        assert config.dpi_render == 300
        assert config.dpi_units == "auto"
        assert config.arc_preservation is True
        assert config.output_unit == "mm"
        assert config.precision == 3
        assert config.generic_families == {"sans-serif": "Test Sans"}
        assert config.languages == ["de", "en"]

    def test_empty_file_gives_defaults(self, tmp_path: Path) -> None:
        config_file = tmp_path / "empty.yaml"
        config_file.write_text("")
        assert Config.load(config_file) == Config()

    def test_missing_explicit_file(self, tmp_path: Path) -> None:
        with pytest.raises(ConfigError, match="not found"):
            Config.load(tmp_path / "missing.yaml")

    def test_unknown_key(self, tmp_path: Path) -> None:
        config_file = tmp_path / "config.yaml"
        config_file.write_text("dpi: 300\n")
        with pytest.raises(ConfigError, match="unknown config keys: dpi"):
            Config.load(config_file)

    def test_invalid_yaml(self, tmp_path: Path) -> None:
        config_file = tmp_path / "config.yaml"
        config_file.write_text("font_dirs: [unclosed\n")
        with pytest.raises(ConfigError, match="invalid YAML"):
            Config.load(config_file)

    def test_top_level_must_be_mapping(self, tmp_path: Path) -> None:
        config_file = tmp_path / "config.yaml"
        config_file.write_text("- a\n- b\n")
        with pytest.raises(ConfigError, match="mapping"):
            Config.load(config_file)

    @pytest.mark.parametrize(
        "content",
        [
            "dpi_render: -1\n",
            "dpi_units: lots\n",
            "output_unit: furlong\n",
            "precision: 99\n",
            "font_dirs: /single/dir\n",
            "system_fonts: yes please\n",
            "max_depth: 0\n",
        ],
    )
    def test_invalid_values(self, tmp_path: Path, content: str) -> None:
        config_file = tmp_path / "config.yaml"
        config_file.write_text(content)
        with pytest.raises(ConfigError):
            Config.load(config_file)

    def test_environment_variable(self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        config_file = tmp_path / "env.yaml"
        config_file.write_text("output_unit: cm\n")
        monkeypatch.setenv(CONFIG_ENV_VAR, str(config_file))
        assert Config.load().output_unit == "cm"

    def test_local_config_file(self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        (tmp_path / LOCAL_CONFIG_NAME).write_text("precision: 2\n")
        monkeypatch.delenv(CONFIG_ENV_VAR, raising=False)
        monkeypatch.chdir(tmp_path)
        assert Config.load().precision == 2


# ---------------------------------------------------------------------------
# Tests for Config.with_overrides
# ---------------------------------------------------------------------------


class TestOverrides:
    """Tests for programmatic overrides."""

    def test_none_values_are_ignored(self) -> None:
        config = Config(precision=3)
        assert config.with_overrides(precision=None, output_unit=None) is config

    def test_override_applies(self) -> None:
        config = Config().with_overrides(output_unit="pt", arc_preservation=True)
        assert config.output_unit == "pt"
        assert config.arc_preservation is True

    def test_override_is_validated(self) -> None:
        with pytest.raises(ConfigError):
            Config().with_overrides(output_unit="furlong")

    def test_unknown_override(self) -> None:
        with pytest.raises(ConfigError, match="unknown"):
            Config().with_overrides(colour="red")


# ---------------------------------------------------------------------------
# Tests for create_font_database
# ---------------------------------------------------------------------------


class TestCreateFontDatabase:
    """Tests for building the font database from config."""

    def test_font_dirs(self, font_dir: Path) -> None:
        font_db = create_font_database(Config(font_dirs=[str(font_dir)]))
        assert font_db.families() == ["Test Sans"]

    def test_missing_font_dir_is_skipped(self, tmp_path: Path) -> None:
        font_db = create_font_database(Config(font_dirs=[str(tmp_path / "none")]))
        assert len(font_db) == 0

    def test_generic_family(self, font_dir: Path) -> None:
        config = Config(font_dirs=[str(font_dir)], generic_families={"monospace": "Test Sans"})
        font_db = create_font_database(config)
        assert font_db.query("monospace").family == "Test Sans"

    def test_unknown_generic_family(self) -> None:
        with pytest.raises(ConfigError, match="generic family"):
            create_font_database(Config(generic_families={"handwriting": "Test Sans"}))
