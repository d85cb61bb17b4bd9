"""Tests for configuration functionality."""

import pytest

from cheader_bindgen.config import (
    CONFIG_FILENAME,
    DEFAULT_KNOWN_ALIASES,
    MAX_CONFIG_SIZE,
    Config,
    ConfigError,
    OutputConfig,
    ParserConfig,
    get_target_info,
    load_config,
    save_config,
)
from cheader_bindgen.parser.segmenter import DEFAULT_DIRECTIVE_MARKERS


class TestParserConfig:
    """Tests for ParserConfig."""

    def test_default_values(self):
        """Should have sensible defaults."""
        config = ParserConfig()
        assert config.directive_markers == list(DEFAULT_DIRECTIVE_MARKERS)
        assert config.encoding == "utf-8"

    def test_validate_empty_markers(self):
        """Should reject an empty marker list."""
        config = ParserConfig(directive_markers=[])
        with pytest.raises(ConfigError, match="directive_markers"):
            config.validate()

    def test_validate_bad_marker(self):
        """Should reject markers that are not identifiers."""
        config = ParserConfig(directive_markers=["__pragma", "not-a-name"])
        with pytest.raises(ConfigError, match="directive_markers"):
            config.validate()

    def test_validate_unknown_encoding(self):
        """Should reject encodings Python does not know."""
        config = ParserConfig(encoding="no-such-codec")
        with pytest.raises(ConfigError, match="encoding"):
            config.validate()


class TestOutputConfig:
    """Tests for OutputConfig."""

    def test_default_target(self):
        """Should default to the text emitter."""
        assert OutputConfig().target == "text"

    def test_validate_normalizes(self):
        """Should lowercase the target name."""
        config = OutputConfig(target=" Rust ")
        config.validate()
        assert config.target == "rust"

    def test_validate_unknown_target(self):
        """Should reject unknown targets."""
        config = OutputConfig(target="cobol")
        with pytest.raises(ConfigError, match="target"):
            config.validate()


class TestConfig:
    """Tests for main Config."""

    def test_default_aliases(self):
        """Should ship fixed-width integer aliases."""
        config = Config()
        assert config.known_aliases["uint32_t"] == "u32"
        assert config.known_aliases["size_t"] == "usize"

    def test_validate_bad_alias(self):
        """Should reject alias names that are not identifiers."""
        config = Config(known_aliases={"1bad": "int"})
        with pytest.raises(ConfigError, match="known_aliases"):
            config.validate()


class TestLoadConfig:
    """Tests for loading config from file and environment."""

    def test_defaults_without_file(self, header_dir):
        """Should return defaults when no config file exists."""
        config = load_config(search_dir=header_dir)
        assert config.output.target == "text"
        assert config.known_aliases == DEFAULT_KNOWN_ALIASES

    def test_load_from_search_dir(self, header_dir):
        """Should pick up the config file next to the header."""
        (header_dir / CONFIG_FILENAME).write_text(
            "output:\n"
            "  target: rust\n"
            "known_aliases:\n"
            "  DWORD: unsigned long\n"
        )
        config = load_config(search_dir=header_dir)
        assert config.output.target == "rust"
        assert config.known_aliases["DWORD"] == "unsigned long"
        assert config.known_aliases["uint8_t"] == "u8"

    def test_disable_default_aliases(self, header_dir):
        """Should drop the built-in seed table on request."""
        path = header_dir / "custom.yaml"
        path.write_text("use_default_aliases: false\nknown_aliases:\n  BYTE: unsigned char\n")
        config = load_config(config_path=path)
        assert config.known_aliases == {"BYTE": "unsigned char"}

    def test_explicit_missing_file(self, header_dir):
        """Should fail when an explicit config file is missing."""
        with pytest.raises(ConfigError, match="not found"):
            load_config(config_path=header_dir / "missing.yaml")

    def test_explicit_invalid_file(self, header_dir):
        """Should fail on an explicit config that is not a mapping."""
        path = header_dir / "list.yaml"
        path.write_text("- a\n- b\n")
        with pytest.raises(ConfigError, match="mapping"):
            load_config(config_path=path)

    def test_discovered_invalid_file_falls_back(self, header_dir):
        """Should warn and use defaults for a broken discovered config."""
        (header_dir / CONFIG_FILENAME).write_text("parser: [unclosed\n")
        config = load_config(search_dir=header_dir)
        assert config.output.target == "text"

    def test_file_too_large(self, header_dir):
        """Should refuse oversized config files."""
        path = header_dir / "big.yaml"
        path.write_text("#" * (MAX_CONFIG_SIZE + 1))
        with pytest.raises(ConfigError, match="too large"):
            load_config(config_path=path)

    def test_unknown_keys_warned(self, header_dir, caplog):
        """Should ignore and warn about unknown keys."""
        path = header_dir / "extra.yaml"
        path.write_text("embedding:\n  model: x\n")
        with caplog.at_level("WARNING"):
            load_config(config_path=path)
        assert "Unknown config keys" in caplog.text

    def test_env_target_override(self, header_dir, monkeypatch):
        """Should let CHEADER_BINDGEN_TARGET override the file."""
        (header_dir / CONFIG_FILENAME).write_text("output:\n  target: text\n")
        monkeypatch.setenv("CHEADER_BINDGEN_TARGET", "RUST")
        config = load_config(search_dir=header_dir)
        assert config.output.target == "rust"

    def test_env_directives_override(self, monkeypatch):
        """Should read a comma-separated marker list from the environment."""
        monkeypatch.setenv("CHEADER_BINDGEN_DIRECTIVES", "__pragma, __declspec")
        config = load_config()
        assert config.parser.directive_markers == ["__pragma", "__declspec"]

    def test_env_invalid_target(self, monkeypatch):
        """Should fail validation for an unknown env target."""
        monkeypatch.setenv("CHEADER_BINDGEN_TARGET", "cobol")
        with pytest.raises(ConfigError, match="target"):
            load_config()


class TestSaveConfig:
    """Tests for writing config files."""

    def test_saved_config_loads_back(self, header_dir):
        """Should write a file load_config reads to the same values."""
        config = Config(known_aliases={"BYTE": "unsigned char"})
        config.output.target = "rust"
        path = header_dir / "nested" / CONFIG_FILENAME
        save_config(config, path)

        loaded = load_config(config_path=path)
        assert loaded.output.target == "rust"
        assert loaded.known_aliases == {"BYTE": "unsigned char"}
        assert loaded.parser.directive_markers == config.parser.directive_markers


class TestTargetInfo:
    """Tests for get_target_info."""

    def test_all_targets(self):
        """Should list every target and mark the default."""
        info = get_target_info()
        assert "text (default)" in info
        assert "rust" in info

    def test_unknown_target(self):
        """Should report unknown targets."""
        assert get_target_info("cobol") == "Unknown target: cobol"
