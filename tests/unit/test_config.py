"""Unit tests for configuration loading and parsing"""

import pytest
from pathlib import Path

from edidrr.common.config import (
    DEFAULT_LAYOUT_FILE,
    DEFAULT_LOG_FORMAT,
    Config,
    ConfigLoader,
)


class TestConfigLoaderYAMLLoading:
    """Test YAML file loading"""

    def test_yaml_load_valid_file(self, tmp_path):
        """Test loading valid YAML file"""
        config_file = tmp_path / "test.yml"
        config_file.write_text(
            """
display:
  name: ":1"
  pixels_per_millimeter: 4
"""
        )

        data = ConfigLoader.yaml_load(config_file)
        assert isinstance(data, dict)
        assert data["display"]["name"] == ":1"

    def test_yaml_load_missing_file_raises(self):
        """Test loading non-existent file raises FileNotFoundError"""
        with pytest.raises(FileNotFoundError):
            ConfigLoader.yaml_load(Path("/nonexistent/config.yml"))

    def test_yaml_load_invalid_yaml_raises(self, tmp_path):
        """Test loading invalid YAML raises error"""
        config_file = tmp_path / "invalid.yml"
        config_file.write_text("invalid: yaml: content: [unclosed")

        with pytest.raises(Exception):  # yaml.YAMLError or similar
            ConfigLoader.yaml_load(config_file)

    def test_yaml_load_non_dict_raises(self, tmp_path):
        """Test loading YAML that isn't a dict raises ValueError"""
        config_file = tmp_path / "list.yml"
        config_file.write_text("- item1\n- item2")

        with pytest.raises(ValueError, match="must contain a YAML dictionary"):
            ConfigLoader.yaml_load(config_file)

    def test_yaml_load_empty_file(self, tmp_path):
        """Test an empty document loads as an empty dictionary"""
        config_file = tmp_path / "empty.yml"
        config_file.write_text("")

        assert ConfigLoader.yaml_load(config_file) == {}


class TestConfigLoaderParsing:
    """Test configuration dictionary parsing"""

    def test_config_parse_defaults(self):
        """Test parsing an empty dictionary yields defaults"""
        config = ConfigLoader.config_parse({})

        assert isinstance(config, Config)
        assert config.display.name is None
        assert config.display.pixels_per_millimeter == 3
        assert config.layout.rate_tolerance_hz == 1.0
        assert config.layout.layout_file == DEFAULT_LAYOUT_FILE
        assert config.logging.level == "WARNING"
        assert config.logging.file is None
        assert config.logging.format == DEFAULT_LOG_FORMAT

    def test_config_parse_full(self):
        """Test parsing every section"""
        data = {
            "display": {"name": ":0", "pixels_per_millimeter": 4},
            "layout": {"rate_tolerance_hz": 0.5, "layout_file": "/tmp/layout.conf"},
            "logging": {"level": "DEBUG", "file": "/tmp/edidrr.log", "format": "%(message)s"},
        }

        config = ConfigLoader.config_parse(data)

        assert config.display.name == ":0"
        assert config.display.pixels_per_millimeter == 4
        assert config.layout.rate_tolerance_hz == 0.5
        assert config.layout.layout_file == "/tmp/layout.conf"
        assert config.logging.level == "DEBUG"
        assert config.logging.file == "/tmp/edidrr.log"
        assert config.logging.format == "%(message)s"

    def test_config_parse_null_section(self):
        """Test a section present but empty takes defaults"""
        config = ConfigLoader.config_parse({"layout": None})
        assert config.layout.rate_tolerance_hz == 1.0

    def test_config_parse_negative_tolerance_raises(self):
        """Test a negative tolerance is rejected"""
        with pytest.raises(ValueError, match="rate_tolerance_hz"):
            ConfigLoader.config_parse({"layout": {"rate_tolerance_hz": -1}})

    def test_config_parse_zero_pixels_per_millimeter_raises(self):
        """Test a non-positive pixel ratio is rejected"""
        with pytest.raises(ValueError, match="pixels_per_millimeter"):
            ConfigLoader.config_parse({"display": {"pixels_per_millimeter": 0}})


class TestConfigLoaderLoad:
    """Test config_load and overrides"""

    def test_config_load_explicit_file(self, tmp_path):
        """Test loading an explicit file"""
        config_file = tmp_path / "edidrr.yml"
        config_file.write_text("layout:\n  rate_tolerance_hz: 0.25\n")

        config = ConfigLoader.config_load(config_file)
        assert config.layout.rate_tolerance_hz == 0.25

    def test_config_load_without_file_uses_defaults(self, monkeypatch):
        """Test defaults are used when no config file exists"""
        monkeypatch.setattr(ConfigLoader, "configFile_find", staticmethod(lambda: None))

        config = ConfigLoader.config_load()
        assert config.display.pixels_per_millimeter == 3

    def test_configFile_find_current_directory(self, tmp_path, monkeypatch):
        """Test the working-directory file is found first"""
        (tmp_path / "edidrr.yml").write_text("display: {}\n")
        monkeypatch.chdir(tmp_path)

        assert ConfigLoader.configFile_find() == (tmp_path / "edidrr.yml").resolve()

    def test_overrides_applied(self, tmp_path):
        """Test command-line overrides replace file values"""
        config_file = tmp_path / "edidrr.yml"
        config_file.write_text("display:\n  name: ':0'\nlogging:\n  level: ERROR\n")

        config = ConfigLoader.configWithOverrides_load(
            config_file, display=":2", log_level="DEBUG", rate_tolerance_hz=0.1
        )

        assert config.display.name == ":2"
        assert config.logging.level == "DEBUG"
        assert config.layout.rate_tolerance_hz == 0.1

    def test_none_overrides_ignored(self, tmp_path):
        """Test None overrides keep file values"""
        config_file = tmp_path / "edidrr.yml"
        config_file.write_text("display:\n  name: ':0'\n")

        config = ConfigLoader.configWithOverrides_load(config_file, display=None, log_level=None)

        assert config.display.name == ":0"
        assert config.logging.level == "WARNING"
