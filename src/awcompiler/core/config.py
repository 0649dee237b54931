"""Compiler configuration loader.

Loads compiler settings from ~/.awcompiler/config.yaml with defaults.

Usage:
    from awcompiler.core.config import get_config

    config = get_config()
    runner = config.runs_on
"""

import logging
from pathlib import Path

import yaml
from pydantic import BaseModel, ConfigDict, Field, ValidationError

from awcompiler.core.exceptions import ConfigError

logger = logging.getLogger(__name__)

# Default config path
DEFAULT_CONFIG_PATH = Path.home() / ".awcompiler" / "config.yaml"

# Reject absurd config files before handing them to the YAML parser
MAX_CONFIG_SIZE = 1_048_576


class CompilerConfig(BaseModel):
    """Configuration for the workflow compiler.

    Attributes:
        runs_on: Runner label for the agent job when the workflow sets none.
        safe_outputs_runs_on: Runner label for safe-output jobs.
        default_engine: Engine id used when frontmatter has no `engine` key.
        action_cache_path: Optional actions-lock.json supplying action pins.
        max_workers: Parallelism for batch compilation.

    """

    model_config = ConfigDict(frozen=True, extra="ignore")

    runs_on: str = Field(default="ubuntu-latest", min_length=1)
    safe_outputs_runs_on: str = Field(default="ubuntu-slim", min_length=1)
    default_engine: str = Field(default="copilot", min_length=1)
    action_cache_path: Path | None = None
    max_workers: int = Field(default=4, ge=1, le=32)


def load_compiler_config(config_path: Path | None = None) -> CompilerConfig:
    """Load compiler configuration from YAML file.

    Args:
        config_path: Path to config file. Defaults to ~/.awcompiler/config.yaml

    Returns:
        CompilerConfig with loaded or default values.

    Raises:
        ConfigError: If the file exists but cannot be read or validated.

    """
    path = config_path or DEFAULT_CONFIG_PATH

    if not path.exists():
        logger.debug("Compiler config not found at %s, using defaults", path)
        return CompilerConfig()

    try:
        if path.stat().st_size > MAX_CONFIG_SIZE:
            raise ConfigError(
                f"Config file too large: {path}\n"
                f"  Limit: {MAX_CONFIG_SIZE} bytes\n"
                f"  How to fix: Trim the file or point --config elsewhere"
            )
        data = yaml.safe_load(path.read_text(encoding="utf-8")) or {}
    except (yaml.YAMLError, OSError) as e:
        raise ConfigError(f"Failed to load compiler config from {path}: {e}") from e

    if not isinstance(data, dict):
        raise ConfigError(
            f"Invalid compiler config: {path}\n"
            f"  Why: expected a mapping at top level, got {type(data).__name__}"
        )

    try:
        config = CompilerConfig.model_validate(data)
    except ValidationError as e:
        raise ConfigError(f"Invalid compiler config in {path}:\n{e}") from e

    logger.debug("Loaded compiler config from %s", path)
    return config


# Cached config instance
_config: CompilerConfig | None = None


def get_config() -> CompilerConfig:
    """Get cached compiler configuration.

    Loads config on first call, returns cached instance afterwards.

    Returns:
        CompilerConfig instance.

    """
    global _config
    if _config is None:
        _config = load_compiler_config()
    return _config


def set_config(config: CompilerConfig) -> None:
    """Replace the cached configuration (used by the CLI --config option)."""
    global _config
    _config = config


def reset_config() -> None:
    """Reset cached config (useful for testing)."""
    global _config
    _config = None
