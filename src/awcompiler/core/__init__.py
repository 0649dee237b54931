"""Core module for awcompiler configuration and shared definitions.

This module provides:
- Configuration model and cached access via get_config()
- Custom exception hierarchy with AwCompilerError as base
- Shared type aliases and runner path constants
"""

from awcompiler.core.config import (
    DEFAULT_CONFIG_PATH,
    CompilerConfig,
    get_config,
    load_compiler_config,
    reset_config,
    set_config,
)
from awcompiler.core.exceptions import (
    ActionPinError,
    AwCompilerError,
    CompilerError,
    ConfigError,
    DuplicateJobError,
    JobGraphError,
    MissingDependencyError,
    ParserError,
    SafeOutputValidationError,
    StepOrderError,
)
from awcompiler.core.types import (
    AGENT_JOB_NAME,
    LOCK_FILE_SUFFIX,
    REDACTED_URLS_LOG_PATH,
    TMP_SCRATCH_PREFIX,
)

__all__ = [
    # Config
    "DEFAULT_CONFIG_PATH",
    "CompilerConfig",
    "get_config",
    "load_compiler_config",
    "reset_config",
    "set_config",
    # Exceptions
    "ActionPinError",
    "AwCompilerError",
    "CompilerError",
    "ConfigError",
    "DuplicateJobError",
    "JobGraphError",
    "MissingDependencyError",
    "ParserError",
    "SafeOutputValidationError",
    "StepOrderError",
    # Constants
    "AGENT_JOB_NAME",
    "LOCK_FILE_SUFFIX",
    "REDACTED_URLS_LOG_PATH",
    "TMP_SCRATCH_PREFIX",
]
