"""Configuration management for cheader-bindgen.

Supports loading configuration from:
1. Default values
2. Config file (cheader-bindgen.yaml next to the header, or --config)
3. Environment variables

Configuration precedence: env vars > config file > defaults
"""

import codecs
import os
from dataclasses import dataclass, field
from pathlib import Path

import yaml
from pydantic import ValidationError

from .emitters import EMITTERS
from .logging import get_logger
from .models import DirectiveMarkers, KnownAliasTable, TranslateInput
from .parser.segmenter import DEFAULT_DIRECTIVE_MARKERS

logger = get_logger("config")

CONFIG_FILENAME = "cheader-bindgen.yaml"

# Default values
DEFAULT_TARGET = "text"
DEFAULT_ENCODING = "utf-8"

# Platform typedefs for fixed-width and pointer-sized integers
DEFAULT_KNOWN_ALIASES = {
    "int8_t": "i8",
    "int16_t": "i16",
    "int32_t": "i32",
    "int64_t": "i64",
    "uint8_t": "u8",
    "uint16_t": "u16",
    "uint32_t": "u32",
    "uint64_t": "u64",
    "intptr_t": "isize",
    "uintptr_t": "usize",
    "ptrdiff_t": "isize",
    "size_t": "usize",
    "ssize_t": "isize",
}

# Security: limit config file size
MAX_CONFIG_SIZE = 1024 * 1024  # 1MB


class ConfigError(Exception):
    """Configuration error."""

    pass


@dataclass
class ParserConfig:
    """Tokenizer and segmenter configuration."""

    directive_markers: list[str] = field(default_factory=lambda: list(DEFAULT_DIRECTIVE_MARKERS))
    encoding: str = DEFAULT_ENCODING

    def validate(self) -> None:
        """Validate configuration.

        Raises ConfigError if validation fails.
        """
        try:
            DirectiveMarkers(markers=self.directive_markers)
        except ValidationError as e:
            raise ConfigError(f"Invalid directive_markers: {e}") from e

        try:
            codecs.lookup(self.encoding)
        except LookupError as e:
            raise ConfigError(f"Unknown encoding: {self.encoding}") from e


@dataclass
class OutputConfig:
    """Emitter configuration."""

    target: str = DEFAULT_TARGET

    def validate(self) -> None:
        try:
            self.target = TranslateInput(target=self.target).target
        except ValidationError as e:
            raise ConfigError(f"Invalid target: {self.target}") from e


@dataclass
class Config:
    """Main configuration container."""

    parser: ParserConfig = field(default_factory=ParserConfig)
    output: OutputConfig = field(default_factory=OutputConfig)
    known_aliases: dict[str, str] = field(default_factory=lambda: dict(DEFAULT_KNOWN_ALIASES))

    def validate(self) -> None:
        """Validate all configuration."""
        self.parser.validate()
        self.output.validate()
        try:
            self.known_aliases = KnownAliasTable(aliases=self.known_aliases).aliases
        except ValidationError as e:
            raise ConfigError(f"Invalid known_aliases: {e}") from e


def load_config(config_path: Path | None = None, search_dir: Path | None = None) -> Config:
    """
    Load configuration from file and environment.

    Args:
        config_path: Explicit path to config file (optional)
        search_dir: Directory to look for cheader-bindgen.yaml (optional)

    Returns:
        Validated Config object

    Raises:
        ConfigError: If an explicitly given config file is invalid, or the
            final configuration fails validation
    """
    config = Config()

    explicit = config_path is not None
    if config_path is None and search_dir is not None:
        config_path = search_dir / CONFIG_FILENAME

    if config_path is not None and config_path.exists():
        try:
            config = _load_config_file(config_path)
            logger.debug("Loaded config from %s", config_path)
        except (ConfigError, yaml.YAMLError, OSError, TypeError, ValueError) as e:
            if explicit:
                raise ConfigError(f"Failed to load config from {config_path}: {e}") from e
            logger.warning("Failed to load config from %s: %s", config_path, e)
            config = Config()
    elif explicit:
        raise ConfigError(f"Config file not found: {config_path}")

    # Override with environment variables
    config = _apply_env_overrides(config)

    config.validate()

    return config


def _load_config_file(config_path: Path) -> Config:
    """Load configuration from YAML file."""
    if config_path.stat().st_size > MAX_CONFIG_SIZE:
        raise ConfigError(
            f"Config file too large: {config_path.stat().st_size} > {MAX_CONFIG_SIZE}"
        )

    with open(config_path, encoding="utf-8") as f:
        # Use safe_load to prevent code execution
        data = yaml.safe_load(f)

    if data is None:
        return Config()

    if not isinstance(data, dict):
        raise ConfigError("Config file must be a YAML mapping")

    allowed_keys = {"parser", "output", "known_aliases", "use_default_aliases"}
    unknown_keys = set(data.keys()) - allowed_keys
    if unknown_keys:
        logger.warning("Unknown config keys ignored: %s", unknown_keys)

    parser_data = data.get("parser", {}) or {}
    if not isinstance(parser_data, dict):
        raise ConfigError("'parser' must be a mapping")

    markers = parser_data.get("directive_markers", list(DEFAULT_DIRECTIVE_MARKERS))
    if not isinstance(markers, list):
        raise ConfigError("'parser.directive_markers' must be a list")

    parser = ParserConfig(
        directive_markers=[str(m) for m in markers],
        encoding=str(parser_data.get("encoding", DEFAULT_ENCODING)),
    )

    output_data = data.get("output", {}) or {}
    if not isinstance(output_data, dict):
        raise ConfigError("'output' must be a mapping")

    output = OutputConfig(target=str(output_data.get("target", DEFAULT_TARGET)))

    aliases_data = data.get("known_aliases", {}) or {}
    if not isinstance(aliases_data, dict):
        raise ConfigError("'known_aliases' must be a mapping")

    known_aliases = dict(DEFAULT_KNOWN_ALIASES) if data.get("use_default_aliases", True) else {}
    known_aliases.update({str(k): str(v) for k, v in aliases_data.items()})

    return Config(parser=parser, output=output, known_aliases=known_aliases)


def _apply_env_overrides(config: Config) -> Config:
    """Apply environment variable overrides to config."""
    # CHEADER_BINDGEN_TARGET overrides config file
    env_target = os.environ.get("CHEADER_BINDGEN_TARGET")
    if env_target:
        config.output.target = env_target
        logger.debug("Using target from env: %s", env_target)

    # CHEADER_BINDGEN_DIRECTIVES: comma-separated marker list
    env_directives = os.environ.get("CHEADER_BINDGEN_DIRECTIVES")
    if env_directives:
        markers = [m.strip() for m in env_directives.split(",") if m.strip()]
        if markers:
            config.parser.directive_markers = markers
        else:
            logger.warning("Invalid CHEADER_BINDGEN_DIRECTIVES: %s", env_directives)

    return config


def save_config(config: Config, config_path: Path) -> None:
    """
    Save configuration to YAML file.

    Args:
        config: Configuration to save
        config_path: Path to write config file
    """
    data = {
        "parser": {
            "directive_markers": list(config.parser.directive_markers),
            "encoding": config.parser.encoding,
        },
        "output": {
            "target": config.output.target,
        },
        "use_default_aliases": False,
        "known_aliases": dict(config.known_aliases),
    }

    config_path.parent.mkdir(parents=True, exist_ok=True)

    with open(config_path, "w", encoding="utf-8") as f:
        yaml.dump(data, f, default_flow_style=False, sort_keys=False)

    logger.info("Saved config to %s", config_path)


def get_target_info(target: str | None = None) -> str:
    """Get human-readable info about output targets.

    Args:
        target: Specific target to describe (None = all targets)

    Returns:
        Formatted string with target information
    """
    if target:
        if target not in EMITTERS:
            return f"Unknown target: {target}"
        return f"{target}:\n  {EMITTERS[target].description}"

    lines = ["Available output targets:\n"]
    for name, emitter in EMITTERS.items():
        marker = " (default)" if name == DEFAULT_TARGET else ""
        lines.append(f"  {name}{marker}\n    {emitter.description}\n")

    return "\n".join(lines)
