"""Agentic workflow compiler module.

This module provides the public API for compiling markdown workflows into
CI pipeline lock files.

Public API:
    compile_workflow: Compile a parsed workflow into a CompiledPipeline
    compile_file: Compile a workflow file and write its lock file
    compile_files: Compile several workflow files concurrently
    parse_workflow_file: Parse a workflow file into a WorkflowSpec
    parse_workflow_text: Parse workflow markdown text
    resolve_safe_outputs: Decode the `safe-outputs:` section
    validate_safe_output_targets: Reject uncompilable target values
    render_lock_file: Render a pipeline document as YAML
    JobManager: Job collection with graph validation
    StepOrderTracker: Per-job step ordering validation
    compare_versions: Order two semantic versions
    extract_major_version: Major component of a version
    is_compatible: Major-version compatibility check
    CompiledPipeline: Compiled output
    CompileResult: Per-file outcome of compile_files
    WorkflowSpec: Parsed workflow document
"""

from awcompiler.compiler.actions import (
    ActionCache,
    ActionPin,
    ActionPinLookup,
    ActionPins,
    LayeredActionPins,
    resolve_action_reference,
)
from awcompiler.compiler.core import (
    CompiledPipeline,
    CompileResult,
    compile_file,
    compile_files,
    compile_workflow,
)
from awcompiler.compiler.engines import EngineDescriptor, get_engine
from awcompiler.compiler.jobs import Job, JobManager
from awcompiler.compiler.output import lock_file_path, render_lock_file, write_lock_file
from awcompiler.compiler.parser import WorkflowSpec, parse_workflow_file, parse_workflow_text
from awcompiler.compiler.safe_outputs import (
    SafeOutputKind,
    SafeOutputsConfig,
    resolve_safe_outputs,
    validate_safe_output_targets,
)
from awcompiler.compiler.step_order import StepOrderTracker
from awcompiler.compiler.versions import (
    compare_versions,
    extract_major_version,
    is_compatible,
)

__all__ = [
    "compile_workflow",
    "compile_file",
    "compile_files",
    "parse_workflow_file",
    "parse_workflow_text",
    "resolve_safe_outputs",
    "validate_safe_output_targets",
    "render_lock_file",
    "write_lock_file",
    "lock_file_path",
    "resolve_action_reference",
    "get_engine",
    "compare_versions",
    "extract_major_version",
    "is_compatible",
    "ActionCache",
    "ActionPin",
    "ActionPinLookup",
    "ActionPins",
    "LayeredActionPins",
    "CompiledPipeline",
    "CompileResult",
    "EngineDescriptor",
    "Job",
    "JobManager",
    "SafeOutputKind",
    "SafeOutputsConfig",
    "StepOrderTracker",
    "WorkflowSpec",
]
