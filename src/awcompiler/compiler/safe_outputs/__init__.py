"""Safe-output directive configuration.

Public API:
    resolve_safe_outputs: Decode the `safe-outputs:` section
    validate_safe_output_targets: Reject uncompilable target values
    SafeOutputsConfig: Resolved section (directives + global settings)
    SafeOutputKind: Directive tags, in job emission order
    SafeOutputConfig: Common base of the typed directive configs
    BaseSafeOutputConfig, SafeOutputTargetConfig, SafeOutputFilterConfig:
        Shared field groups
"""

from awcompiler.compiler.safe_outputs.directives import (
    DIRECTIVE_DECODERS,
    VARIANT_MODELS,
    AddCommentConfig,
    AddLabelsConfig,
    AddReviewerConfig,
    AssignMilestoneConfig,
    CloseIssueConfig,
    CreateDiscussionConfig,
    CreateIssueConfig,
    CreatePullRequestConfig,
    MarkPullRequestAsReadyForReviewConfig,
    MissingToolConfig,
    NoopConfig,
    SafeOutputConfig,
    SafeOutputKind,
    UpdateIssueConfig,
    UpdateReleaseConfig,
)
from awcompiler.compiler.safe_outputs.fields import (
    BaseSafeOutputConfig,
    SafeOutputFilterConfig,
    SafeOutputTargetConfig,
    decode_base_fields,
    decode_filter_fields,
    decode_target_fields,
)
from awcompiler.compiler.safe_outputs.resolver import (
    SafeOutputsConfig,
    is_valid_target,
    resolve_safe_outputs,
    validate_safe_output_targets,
)

__all__ = [
    "DIRECTIVE_DECODERS",
    "VARIANT_MODELS",
    "AddCommentConfig",
    "AddLabelsConfig",
    "AddReviewerConfig",
    "AssignMilestoneConfig",
    "BaseSafeOutputConfig",
    "CloseIssueConfig",
    "CreateDiscussionConfig",
    "CreateIssueConfig",
    "CreatePullRequestConfig",
    "MarkPullRequestAsReadyForReviewConfig",
    "MissingToolConfig",
    "NoopConfig",
    "SafeOutputConfig",
    "SafeOutputFilterConfig",
    "SafeOutputKind",
    "SafeOutputTargetConfig",
    "SafeOutputsConfig",
    "UpdateIssueConfig",
    "UpdateReleaseConfig",
    "decode_base_fields",
    "decode_filter_fields",
    "decode_target_fields",
    "is_valid_target",
    "resolve_safe_outputs",
    "validate_safe_output_targets",
]
