"""Shared field groups for safe-output directives.

Every directive is configured by a combination of small, independent field
groups that are decoded separately:

- BaseSafeOutputConfig: `max`, `github-token` (all directives)
- SafeOutputTargetConfig: `target`, `target-repo` (directives acting on an
  existing issue / pull request / release)
- SafeOutputFilterConfig: `required-labels`, `required-title-prefix`
  (directives that should only touch matching entities)

A group that fails validation degrades to its defaults without affecting the
other groups of the same directive. Decoding never raises.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping
from typing import Any, TypeVar

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

logger = logging.getLogger(__name__)

GroupT = TypeVar("GroupT", bound=BaseModel)


class FieldGroup(BaseModel):
    """Common model settings for field groups.

    Keys use the kebab-case spelling from frontmatter (aliases); Python
    attribute names are accepted too.
    """

    model_config = ConfigDict(frozen=True, extra="ignore", populate_by_name=True)


class BaseSafeOutputConfig(FieldGroup):
    """Fields every directive accepts.

    Attributes:
        max: Maximum number of outputs of this kind per run. None means the
            directive default applies.
        github_token: Token expression overriding the default token.

    """

    max: int | None = Field(default=None, ge=0)
    github_token: str | None = Field(default=None, alias="github-token")


class SafeOutputTargetConfig(FieldGroup):
    """Destination of a directive acting on an existing entity.

    Attributes:
        target: "triggering" (default when None), "*", an entity number or a
            `${{ }}` expression.
        target_repo: Cross-repository destination as "owner/repo".

    """

    target: str | None = None
    target_repo: str | None = Field(default=None, alias="target-repo")

    @field_validator("target", mode="before")
    @classmethod
    def coerce_target(cls, v: Any) -> Any:
        """Accept entity numbers written as YAML integers."""
        if isinstance(v, bool):
            raise ValueError("target must be a string or number")
        if isinstance(v, int):
            return str(v)
        return v


class SafeOutputFilterConfig(FieldGroup):
    """Conditions an entity must meet before the directive acts on it.

    Attributes:
        required_labels: Labels the entity must carry (all of them).
        required_title_prefix: Prefix the entity title must start with.

    """

    required_labels: list[str] = Field(default_factory=list, alias="required-labels")
    required_title_prefix: str | None = Field(default=None, alias="required-title-prefix")

    @field_validator("required_labels", mode="before")
    @classmethod
    def single_label(cls, v: Any) -> Any:
        """Allow `required-labels: bug` as shorthand for a one-element list."""
        if isinstance(v, str):
            return [v]
        return v


def _group_keys(model_cls: type[BaseModel]) -> set[str]:
    keys: set[str] = set()
    for name, info in model_cls.model_fields.items():
        keys.add(name)
        if info.alias:
            keys.add(info.alias)
    return keys


def decode_group(
    model_cls: type[GroupT],
    body: Mapping[str, Any],
    directive: str,
    group: str,
) -> GroupT:
    """Decode one field group from a directive body.

    Only the keys belonging to the group are considered, so unrelated keys
    of the directive never make a group fail.

    Args:
        model_cls: Field group model.
        body: Directive body (already known to be a mapping).
        directive: Directive name, for log messages.
        group: Group name, for log messages.

    Returns:
        The decoded group, or the group defaults if validation failed.

    """
    keys = _group_keys(model_cls)
    subset = {k: v for k, v in body.items() if k in keys}
    try:
        return model_cls.model_validate(subset)
    except ValidationError as e:
        logger.warning(
            "Invalid %s fields for safe-output '%s', using defaults: %s",
            group,
            directive,
            "; ".join(f"{'.'.join(str(p) for p in err['loc'])}: {err['msg']}" for err in e.errors()),
        )
        return model_cls()


def decode_base_fields(body: Mapping[str, Any], directive: str) -> BaseSafeOutputConfig:
    """Decode `max` and `github-token`."""
    return decode_group(BaseSafeOutputConfig, body, directive, "base")


def decode_target_fields(body: Mapping[str, Any], directive: str) -> SafeOutputTargetConfig:
    """Decode `target` and `target-repo`."""
    return decode_group(SafeOutputTargetConfig, body, directive, "target")


def decode_filter_fields(body: Mapping[str, Any], directive: str) -> SafeOutputFilterConfig:
    """Decode `required-labels` and `required-title-prefix`."""
    return decode_group(SafeOutputFilterConfig, body, directive, "filter")
