"""Safe-output directive variants.

Each directive under `safe-outputs:` is a tag (SafeOutputKind) with its own
typed configuration model. A model composes the shared field groups
(`base`, optionally `target` and `filters`) with an optional `entity` group
holding the directive-specific fields. The class defaults are the documented
defaults: a directive written as `create-issue:` (null body) decodes to
exactly `CreateIssueConfig()`.

Decoding is table driven: DIRECTIVE_DECODERS maps every kind to its decode
function. Declaration order of SafeOutputKind is the emission order of the
generated jobs.
"""

from __future__ import annotations

import logging
import re
from collections.abc import Callable, Mapping
from enum import StrEnum
from functools import partial
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from awcompiler.compiler.safe_outputs.fields import (
    BaseSafeOutputConfig,
    FieldGroup,
    SafeOutputFilterConfig,
    SafeOutputTargetConfig,
    decode_base_fields,
    decode_filter_fields,
    decode_group,
    decode_target_fields,
)
from awcompiler.core.types import job_name_for_directive

logger = logging.getLogger(__name__)


class SafeOutputKind(StrEnum):
    """Supported safe-output directives, in job emission order.

    create-issue comes first: discussion and comment jobs consume the
    temporary id map it produces.
    """

    CREATE_ISSUE = "create-issue"
    CREATE_DISCUSSION = "create-discussion"
    CREATE_PULL_REQUEST = "create-pull-request"
    ADD_COMMENT = "add-comment"
    ADD_LABELS = "add-labels"
    ADD_REVIEWER = "add-reviewer"
    ASSIGN_MILESTONE = "assign-milestone"
    CLOSE_ISSUE = "close-issue"
    UPDATE_ISSUE = "update-issue"
    UPDATE_RELEASE = "update-release"
    MARK_PULL_REQUEST_AS_READY_FOR_REVIEW = "mark-pull-request-as-ready-for-review"
    NOOP = "noop"
    MISSING_TOOL = "missing-tool"

    @property
    def job_name(self) -> str:
        """Identifier of the job generated for this directive."""
        return job_name_for_directive(self.value)


def _base(max_default: int) -> Callable[[], BaseSafeOutputConfig]:
    return lambda: BaseSafeOutputConfig(max=max_default)


# =============================================================================
# Entity field groups
# =============================================================================


class CreateIssueFields(FieldGroup):
    """Fields specific to create-issue."""

    title_prefix: str | None = Field(default=None, alias="title-prefix")
    labels: list[str] = Field(default_factory=list)
    assignees: list[str] = Field(default_factory=list)

    @field_validator("assignees", mode="before")
    @classmethod
    def single_assignee(cls, v: Any) -> Any:
        """Allow a single assignee written as a string."""
        if isinstance(v, str):
            return [v]
        return v


# Default discussion lifetime: 7 days
DEFAULT_DISCUSSION_EXPIRES_HOURS = 168

_TIME_SPEC_PATTERN = re.compile(r"^\s*(\d+)\s*([hd])\s*$")


class CreateDiscussionFields(FieldGroup):
    """Fields specific to create-discussion.

    `expires` accepts days (integer), a time spec ("48h", "3d") or `false`
    to disable expiry; it is stored in hours, 0 meaning disabled.
    """

    title_prefix: str | None = Field(default=None, alias="title-prefix")
    category: str | None = None
    labels: list[str] = Field(default_factory=list)
    expires: int = Field(default=DEFAULT_DISCUSSION_EXPIRES_HOURS, ge=0)

    @field_validator("category", mode="before")
    @classmethod
    def coerce_category(cls, v: Any) -> Any:
        """Category ids may be written as numbers."""
        if isinstance(v, int) and not isinstance(v, bool):
            return str(v)
        return v

    @field_validator("expires", mode="before")
    @classmethod
    def parse_expires(cls, v: Any) -> Any:
        """Convert days / time specs to hours."""
        if v is False:
            return 0
        if isinstance(v, bool):
            raise ValueError("expires: true is not a duration")
        if isinstance(v, int):
            if v <= 0:
                raise ValueError("expires must be positive")
            return v * 24
        if isinstance(v, str):
            match = _TIME_SPEC_PATTERN.match(v)
            if match is None:
                raise ValueError(f"invalid expires value {v!r}, expected e.g. '48h' or '7d'")
            amount, unit = int(match.group(1)), match.group(2)
            hours = amount if unit == "h" else amount * 24
            if hours <= 0:
                raise ValueError("expires must be positive")
            return hours
        return v


class CreatePullRequestFields(FieldGroup):
    """Fields specific to create-pull-request."""

    title_prefix: str | None = Field(default=None, alias="title-prefix")
    labels: list[str] = Field(default_factory=list)
    draft: bool = True


class AddCommentFields(FieldGroup):
    """Fields specific to add-comment."""

    hide_older_comments: bool = Field(default=False, alias="hide-older-comments")


class AllowedValuesFields(FieldGroup):
    """Optional allow-list (labels, milestones). Empty means anything goes."""

    allowed: list[str] = Field(default_factory=list)

    @field_validator("allowed", mode="before")
    @classmethod
    def coerce_allowed(cls, v: Any) -> Any:
        """Milestone ids may be numbers; a lone value becomes a list."""
        if isinstance(v, (str, int)) and not isinstance(v, bool):
            v = [v]
        if isinstance(v, list):
            return [str(item) if isinstance(item, int) else item for item in v]
        return v


class AddReviewerFields(FieldGroup):
    """Fields specific to add-reviewer."""

    reviewers: list[str] = Field(default_factory=list)


class UpdateIssueFields(FieldGroup):
    """Which issue fields the agent may update.

    A key that is present (even with a null value) enables the field;
    only an explicit `false` keeps it disabled.
    """

    status: bool = False
    title: bool = False
    body: bool = False

    @model_validator(mode="before")
    @classmethod
    def presence_enables(cls, data: Any) -> Any:
        """Treat `body:` (null) as `body: true`."""
        if isinstance(data, Mapping):
            return {k: (True if v is None else v) for k, v in data.items()}
        return data


# =============================================================================
# Directive variants
# =============================================================================


class SafeOutputConfig(BaseModel):
    """Common shape of all directive configurations."""

    model_config = ConfigDict(frozen=True)

    kind: SafeOutputKind
    base: BaseSafeOutputConfig = Field(default_factory=_base(1))

    @property
    def max(self) -> int:
        """Effective maximum number of outputs."""
        return self.base.max or 0

    @property
    def job_name(self) -> str:
        """Identifier of the generated job."""
        return self.kind.job_name


class CreateIssueConfig(SafeOutputConfig):
    """create-issue: open new issues from agent output."""

    kind: Literal[SafeOutputKind.CREATE_ISSUE] = SafeOutputKind.CREATE_ISSUE
    entity: CreateIssueFields = Field(default_factory=CreateIssueFields)


class CreateDiscussionConfig(SafeOutputConfig):
    """create-discussion: open new discussions."""

    kind: Literal[SafeOutputKind.CREATE_DISCUSSION] = SafeOutputKind.CREATE_DISCUSSION
    entity: CreateDiscussionFields = Field(default_factory=CreateDiscussionFields)


class CreatePullRequestConfig(SafeOutputConfig):
    """create-pull-request: open a pull request from the agent's patch."""

    kind: Literal[SafeOutputKind.CREATE_PULL_REQUEST] = SafeOutputKind.CREATE_PULL_REQUEST
    entity: CreatePullRequestFields = Field(default_factory=CreatePullRequestFields)


class AddCommentConfig(SafeOutputConfig):
    """add-comment: comment on an issue, pull request or discussion."""

    kind: Literal[SafeOutputKind.ADD_COMMENT] = SafeOutputKind.ADD_COMMENT
    target: SafeOutputTargetConfig = Field(default_factory=SafeOutputTargetConfig)
    entity: AddCommentFields = Field(default_factory=AddCommentFields)


class AddLabelsConfig(SafeOutputConfig):
    """add-labels: label an issue or pull request."""

    kind: Literal[SafeOutputKind.ADD_LABELS] = SafeOutputKind.ADD_LABELS
    base: BaseSafeOutputConfig = Field(default_factory=_base(3))
    target: SafeOutputTargetConfig = Field(default_factory=SafeOutputTargetConfig)
    entity: AllowedValuesFields = Field(default_factory=AllowedValuesFields)


class AddReviewerConfig(SafeOutputConfig):
    """add-reviewer: request reviewers on a pull request."""

    kind: Literal[SafeOutputKind.ADD_REVIEWER] = SafeOutputKind.ADD_REVIEWER
    base: BaseSafeOutputConfig = Field(default_factory=_base(3))
    target: SafeOutputTargetConfig = Field(default_factory=SafeOutputTargetConfig)
    entity: AddReviewerFields = Field(default_factory=AddReviewerFields)


class AssignMilestoneConfig(SafeOutputConfig):
    """assign-milestone: set the milestone of an issue."""

    kind: Literal[SafeOutputKind.ASSIGN_MILESTONE] = SafeOutputKind.ASSIGN_MILESTONE
    target: SafeOutputTargetConfig = Field(default_factory=SafeOutputTargetConfig)
    entity: AllowedValuesFields = Field(default_factory=AllowedValuesFields)


class CloseIssueConfig(SafeOutputConfig):
    """close-issue: close a matching issue."""

    kind: Literal[SafeOutputKind.CLOSE_ISSUE] = SafeOutputKind.CLOSE_ISSUE
    target: SafeOutputTargetConfig = Field(default_factory=SafeOutputTargetConfig)
    filters: SafeOutputFilterConfig = Field(default_factory=SafeOutputFilterConfig)


class UpdateIssueConfig(SafeOutputConfig):
    """update-issue: edit status, title or body of an issue."""

    kind: Literal[SafeOutputKind.UPDATE_ISSUE] = SafeOutputKind.UPDATE_ISSUE
    target: SafeOutputTargetConfig = Field(default_factory=SafeOutputTargetConfig)
    entity: UpdateIssueFields = Field(default_factory=UpdateIssueFields)


class UpdateReleaseConfig(SafeOutputConfig):
    """update-release: edit the notes of a release."""

    kind: Literal[SafeOutputKind.UPDATE_RELEASE] = SafeOutputKind.UPDATE_RELEASE
    target: SafeOutputTargetConfig = Field(default_factory=SafeOutputTargetConfig)


class MarkPullRequestAsReadyForReviewConfig(SafeOutputConfig):
    """mark-pull-request-as-ready-for-review: take a draft PR out of draft."""

    kind: Literal[SafeOutputKind.MARK_PULL_REQUEST_AS_READY_FOR_REVIEW] = (
        SafeOutputKind.MARK_PULL_REQUEST_AS_READY_FOR_REVIEW
    )
    target: SafeOutputTargetConfig = Field(default_factory=SafeOutputTargetConfig)
    filters: SafeOutputFilterConfig = Field(default_factory=SafeOutputFilterConfig)


class NoopConfig(SafeOutputConfig):
    """noop: let the agent report that no action was needed."""

    kind: Literal[SafeOutputKind.NOOP] = SafeOutputKind.NOOP


class MissingToolConfig(SafeOutputConfig):
    """missing-tool: let the agent report tools it needed but lacked."""

    kind: Literal[SafeOutputKind.MISSING_TOOL] = SafeOutputKind.MISSING_TOOL
    base: BaseSafeOutputConfig = Field(default_factory=_base(20))


VARIANT_MODELS: dict[SafeOutputKind, type[SafeOutputConfig]] = {
    SafeOutputKind.CREATE_ISSUE: CreateIssueConfig,
    SafeOutputKind.CREATE_DISCUSSION: CreateDiscussionConfig,
    SafeOutputKind.CREATE_PULL_REQUEST: CreatePullRequestConfig,
    SafeOutputKind.ADD_COMMENT: AddCommentConfig,
    SafeOutputKind.ADD_LABELS: AddLabelsConfig,
    SafeOutputKind.ADD_REVIEWER: AddReviewerConfig,
    SafeOutputKind.ASSIGN_MILESTONE: AssignMilestoneConfig,
    SafeOutputKind.CLOSE_ISSUE: CloseIssueConfig,
    SafeOutputKind.UPDATE_ISSUE: UpdateIssueConfig,
    SafeOutputKind.UPDATE_RELEASE: UpdateReleaseConfig,
    SafeOutputKind.MARK_PULL_REQUEST_AS_READY_FOR_REVIEW: MarkPullRequestAsReadyForReviewConfig,
    SafeOutputKind.NOOP: NoopConfig,
    SafeOutputKind.MISSING_TOOL: MissingToolConfig,
}


def decode_directive(model_cls: type[SafeOutputConfig], raw: Any) -> SafeOutputConfig:
    """Decode one directive body into its typed configuration.

    Groups are decoded in fixed order: base (plus entity fields), target,
    filter. A null body yields the class defaults; a body that is not a
    mapping is logged and treated as null.

    Args:
        model_cls: Variant model of the directive.
        raw: Directive value from frontmatter (None, mapping, or junk).

    Returns:
        The decoded configuration. Never None.

    """
    defaults = model_cls()
    directive = defaults.kind.value

    if raw is None:
        logger.debug("Safe-output '%s' has no body, using defaults", directive)
        return defaults
    if not isinstance(raw, Mapping):
        logger.warning(
            "Safe-output '%s' expects a mapping, got %s; using defaults",
            directive,
            type(raw).__name__,
        )
        return defaults

    fields = model_cls.model_fields
    values: dict[str, Any] = {}

    base = decode_base_fields(raw, directive)
    if not base.max:
        base = base.model_copy(update={"max": defaults.base.max})
    values["base"] = base

    if "entity" in fields:
        entity_cls = fields["entity"].annotation
        values["entity"] = decode_group(entity_cls, raw, directive, "entity")
    if "target" in fields:
        values["target"] = decode_target_fields(raw, directive)
    if "filters" in fields:
        values["filters"] = decode_filter_fields(raw, directive)

    config = model_cls(**values)
    logger.debug("Parsed safe-output '%s': max=%d", directive, config.max)
    return config


DIRECTIVE_DECODERS: dict[SafeOutputKind, Callable[[Any], SafeOutputConfig]] = {
    kind: partial(decode_directive, model_cls) for kind, model_cls in VARIANT_MODELS.items()
}
