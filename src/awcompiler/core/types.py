"""Core type definitions for awcompiler.

Type aliases shared across the compiler, plus the handful of constants
that describe the runner filesystem layout the generated pipeline relies on.
"""

from __future__ import annotations

from typing import Any, TypeAlias

# Parsed frontmatter / directive bodies as delivered by the YAML parser
ConfigMap: TypeAlias = dict[str, Any]

# A rendered pipeline step (name, uses/run, with, env, if, ...)
Step: TypeAlias = dict[str, Any]

# Main execution job identifier, independent of the workflow title
AGENT_JOB_NAME = "agent"

# Ephemeral scratch directory on the runner; never cleaned by the compiler
TMP_SCRATCH_PREFIX = "/tmp/gh-aw/"

# Written during content sanitization when URLs are redacted
REDACTED_URLS_LOG_PATH = "/tmp/gh-aw/redacted-urls.log"

# Suffix of generated pipeline files (workflow.md -> workflow.lock.yml)
LOCK_FILE_SUFFIX = ".lock.yml"


def is_scratch_path(path: str) -> bool:
    """Check if a path lives under the ephemeral scratch directory.

    Args:
        path: File path or glob.

    Returns:
        True if the path starts with TMP_SCRATCH_PREFIX.

    Examples:
        >>> is_scratch_path("/tmp/gh-aw/agent-stdio.log")
        True
        >>> is_scratch_path("output.json")
        False

    """
    return path.startswith(TMP_SCRATCH_PREFIX)


def job_name_for_directive(directive: str) -> str:
    """Convert a kebab-case directive name into a job identifier.

    Examples:
        >>> job_name_for_directive("mark-pull-request-as-ready-for-review")
        'mark_pull_request_as_ready_for_review'

    """
    return directive.replace("-", "_")
