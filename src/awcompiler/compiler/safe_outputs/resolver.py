"""Resolution of the `safe-outputs:` frontmatter section.

resolve_safe_outputs() walks SafeOutputKind in declaration order and
decodes every directive key that is present. The presence test for all
callers is `config.get(kind) is not None`.

validate_safe_output_targets() is the fatal counterpart: once decoding is
done it rejects target values that would produce a broken pipeline.
"""

from __future__ import annotations

import logging
import re
from collections.abc import Iterator, Mapping
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from awcompiler.compiler.safe_outputs.directives import (
    DIRECTIVE_DECODERS,
    SafeOutputConfig,
    SafeOutputKind,
)
from awcompiler.compiler.safe_outputs.fields import SafeOutputTargetConfig
from awcompiler.core.exceptions import SafeOutputValidationError
from awcompiler.core.types import ConfigMap

logger = logging.getLogger(__name__)

# Keys of `safe-outputs:` that configure all jobs rather than a directive
GLOBAL_KEYS: frozenset[str] = frozenset({"runs-on", "github-token", "staged"})

VALID_TARGET_KEYWORDS: tuple[str, ...] = ("triggering", "*")

_EXPRESSION_PATTERN = re.compile(r"^\$\{\{.+\}\}$", re.DOTALL)
_ENTITY_NUMBER_PATTERN = re.compile(r"^[0-9]+$")
_REPO_SLUG_PATTERN = re.compile(r"^[A-Za-z0-9_.-]+/[A-Za-z0-9_.-]+$")


class SafeOutputsConfig(BaseModel):
    """Resolved `safe-outputs:` section.

    Attributes:
        directives: Decoded directives keyed by kind, in emission order.
        runs_on: Runner for safe-output jobs (None = compiler default).
        github_token: Token expression shared by all safe-output jobs.
        staged: Preview mode; jobs report what they would do.

    """

    model_config = ConfigDict(frozen=True)

    directives: dict[SafeOutputKind, SafeOutputConfig] = Field(default_factory=dict)
    runs_on: str | None = None
    github_token: str | None = None
    staged: bool = False

    def get(self, kind: SafeOutputKind) -> SafeOutputConfig | None:
        """Return the directive config, or None if the key was absent."""
        return self.directives.get(kind)

    def enabled(self) -> Iterator[SafeOutputConfig]:
        """Iterate over present directives in emission order."""
        for kind in SafeOutputKind:
            config = self.directives.get(kind)
            if config is not None:
                yield config

    @property
    def has_directives(self) -> bool:
        """True if at least one directive is present."""
        return bool(self.directives)


def _global_settings(output_map: Mapping[str, Any]) -> ConfigMap:
    settings: ConfigMap = {}

    runs_on = output_map.get("runs-on")
    if isinstance(runs_on, str) and runs_on.strip():
        settings["runs_on"] = runs_on.strip()
    elif runs_on is not None:
        logger.warning("Ignoring safe-outputs runs-on %r: expected a runner label", runs_on)

    token = output_map.get("github-token")
    if isinstance(token, str) and token:
        settings["github_token"] = token
    elif token is not None:
        logger.warning("Ignoring safe-outputs github-token: expected a string")

    staged = output_map.get("staged")
    if isinstance(staged, bool):
        settings["staged"] = staged
    elif staged is not None:
        logger.warning("Ignoring safe-outputs staged %r: expected true or false", staged)

    return settings


def resolve_safe_outputs(output_map: Mapping[str, Any] | None) -> SafeOutputsConfig:
    """Decode the `safe-outputs:` section of a workflow.

    Each directive is decoded independently. Decode problems never abort:
    the affected field group falls back to defaults and a warning is logged.

    Args:
        output_map: Value of the `safe-outputs` frontmatter key.

    Returns:
        SafeOutputsConfig with one entry per present directive key.

    """
    if output_map is None:
        return SafeOutputsConfig()
    if not isinstance(output_map, Mapping):
        logger.warning(
            "safe-outputs expects a mapping of directives, got %s; ignoring",
            type(output_map).__name__,
        )
        return SafeOutputsConfig()

    known = {kind.value for kind in SafeOutputKind} | GLOBAL_KEYS
    for key in output_map:
        if key not in known:
            logger.warning("Unknown safe-output directive '%s' ignored", key)

    directives: dict[SafeOutputKind, SafeOutputConfig] = {}
    for kind in SafeOutputKind:
        if kind.value not in output_map:
            continue
        directives[kind] = DIRECTIVE_DECODERS[kind](output_map[kind.value])

    logger.debug(
        "Resolved %d safe-output directives: %s",
        len(directives),
        ", ".join(kind.value for kind in directives),
    )
    return SafeOutputsConfig(directives=directives, **_global_settings(output_map))


def is_valid_target(target: str | None) -> bool:
    """Check a `target` value.

    Valid values: None (triggering entity), "triggering", "*", a positive
    entity number, or a `${{ }}` expression.

    Examples:
        >>> is_valid_target("123")
        True
        >>> is_valid_target("0")
        False
        >>> is_valid_target("event")
        False

    """
    if target is None:
        return True
    value = target.strip()
    if value in VALID_TARGET_KEYWORDS:
        return True
    if _ENTITY_NUMBER_PATTERN.match(value) and int(value) > 0:
        return True
    return bool(_EXPRESSION_PATTERN.match(value))


def _validate_target(directive: str, target: SafeOutputTargetConfig) -> None:
    if not is_valid_target(target.target):
        raise SafeOutputValidationError(
            f"invalid target value for safe-outputs.{directive}: '{target.target}'\n"
            f"  Valid values: 'triggering' (default), '*', an issue/PR number, "
            f"or a GitHub Actions expression like '${{{{ github.event.issue.number }}}}'",
            directive=directive,
            field="target",
            value=target.target,
        )

    repo = target.target_repo
    if repo is None:
        return
    if repo.strip() == "*":
        raise SafeOutputValidationError(
            f"invalid target-repo for safe-outputs.{directive}: wildcard '*' is not allowed\n"
            f"  How to fix: Name a single repository as 'owner/repo'",
            directive=directive,
            field="target-repo",
            value=repo,
        )
    if not _REPO_SLUG_PATTERN.match(repo.strip()):
        raise SafeOutputValidationError(
            f"invalid target-repo for safe-outputs.{directive}: '{repo}'\n"
            f"  How to fix: Use the 'owner/repo' format",
            directive=directive,
            field="target-repo",
            value=repo,
        )


def validate_safe_output_targets(config: SafeOutputsConfig) -> None:
    """Reject directives whose target cannot be compiled.

    Raises:
        SafeOutputValidationError: For the first directive with an invalid
            `target` or `target-repo`.

    """
    for directive in config.enabled():
        target = getattr(directive, "target", None)
        if isinstance(target, SafeOutputTargetConfig):
            _validate_target(directive.kind.value, target)
