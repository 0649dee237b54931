"""Workflow compilation entry points.

compile_workflow() is the pure core: WorkflowSpec in, CompiledPipeline
out, no I/O. compile_file() and compile_files() wrap it with parsing and
lock file writing.

The compilation flow:
1. Resolve the engine and the safe-outputs section
2. Validate safe-output targets
3. Build the agent job (step order validated inside)
4. Build one job per enabled safe output, depending on `agent`
5. Validate the job graph
"""

from __future__ import annotations

import logging
from collections.abc import Sequence
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from awcompiler.compiler.actions import (
    ActionCache,
    ActionPinLookup,
    ActionPins,
    LayeredActionPins,
)
from awcompiler.compiler.agent_job import build_agent_job
from awcompiler.compiler.engines import (
    EngineDescriptor,
    engine_id_from_frontmatter,
    get_engine,
)
from awcompiler.compiler.jobs import Job, JobManager
from awcompiler.compiler.output import lock_file_path, render_lock_file, write_lock_file
from awcompiler.compiler.parser import WorkflowSpec, parse_workflow_file
from awcompiler.compiler.safe_output_jobs import build_safe_output_jobs
from awcompiler.compiler.safe_outputs import (
    resolve_safe_outputs,
    validate_safe_output_targets,
)
from awcompiler.core.config import CompilerConfig, get_config
from awcompiler.core.exceptions import AwCompilerError, CompilerError
from awcompiler.core.types import ConfigMap

logger = logging.getLogger(__name__)

DEFAULT_TRIGGER = "workflow_dispatch"


@dataclass
class CompiledPipeline:
    """Result of compiling one workflow.

    Attributes:
        name: Workflow title (pipeline `name:`).
        on: Trigger configuration, copied from frontmatter.
        jobs: Jobs in emission order, agent job first.

    """

    name: str
    on: Any
    jobs: list[Job] = field(default_factory=list)

    def job_names(self) -> list[str]:
        """Job identifiers in emission order."""
        return [job.name for job in self.jobs]

    def get_job(self, name: str) -> Job | None:
        """Return a job by identifier."""
        return next((job for job in self.jobs if job.name == name), None)

    def to_dict(self) -> ConfigMap:
        """Pipeline document ready for rendering."""
        return {
            "name": self.name,
            "on": self.on,
            "jobs": {job.name: job.to_dict() for job in self.jobs},
        }


def compile_workflow(
    spec: WorkflowSpec,
    *,
    engine: EngineDescriptor | None = None,
    action_pins: ActionPinLookup | None = None,
    config: CompilerConfig | None = None,
) -> CompiledPipeline:
    """Compile a parsed workflow into a pipeline.

    Args:
        spec: Parsed workflow.
        engine: Engine override; defaults to the frontmatter `engine`.
        action_pins: Pin source; defaults to the built-in pin table.
        config: Compiler settings; defaults to get_config().

    Returns:
        CompiledPipeline.

    Raises:
        ConfigError: On an unknown engine or invalid safe-output targets.
        JobGraphError: On duplicate or inconsistent jobs.
        StepOrderError: On unsafe step ordering.

    """
    config = config or get_config()
    action_pins = action_pins if action_pins is not None else ActionPins()
    frontmatter = spec.frontmatter

    if engine is None:
        engine = get_engine(
            engine_id_from_frontmatter(frontmatter.get("engine"), config.default_engine)
        )

    safe_outputs = resolve_safe_outputs(frontmatter.get("safe-outputs"))
    validate_safe_output_targets(safe_outputs)

    runs_on = frontmatter.get("runs-on")
    if not isinstance(runs_on, str) or not runs_on.strip():
        runs_on = config.runs_on

    manager = JobManager()
    manager.add_job(
        build_agent_job(
            spec.name,
            engine,
            action_pins,
            runs_on=runs_on,
            permissions=frontmatter.get("permissions"),
            has_safe_outputs=safe_outputs.has_directives,
        )
    )
    for job in build_safe_output_jobs(
        safe_outputs, action_pins, runs_on=config.safe_outputs_runs_on
    ):
        manager.add_job(job)

    manager.validate()

    pipeline = CompiledPipeline(
        name=spec.name,
        on=frontmatter.get("on", DEFAULT_TRIGGER),
        jobs=manager.ordered_jobs(),
    )
    logger.info(
        "Compiled workflow '%s' (engine=%s): %s",
        spec.name,
        engine.id,
        ", ".join(pipeline.job_names()),
    )
    return pipeline


def _load_action_pins(config: CompilerConfig) -> ActionPinLookup:
    if config.action_cache_path is None:
        return ActionPins()
    cache = ActionCache(config.action_cache_path)
    cache.load()
    logger.debug(
        "Loaded %d cached action pins from %s", len(cache.entries), cache.path
    )
    return LayeredActionPins(cache, ActionPins())


def compile_file(
    path: Path,
    *,
    config: CompilerConfig | None = None,
    action_pins: ActionPinLookup | None = None,
) -> Path:
    """Compile a workflow file and write its lock file.

    Args:
        path: Workflow markdown file.
        config: Compiler settings; defaults to get_config().
        action_pins: Pin source; defaults to the configured cache layered over
            the built-in pins.

    Returns:
        Path of the written lock file.

    Raises:
        AwCompilerError: If parsing, compilation or writing fails. Nothing
            is written in that case.

    """
    config = config or get_config()
    if action_pins is None:
        action_pins = _load_action_pins(config)

    spec = parse_workflow_file(path)
    pipeline = compile_workflow(spec, action_pins=action_pins, config=config)

    destination = lock_file_path(path)
    write_lock_file(render_lock_file(pipeline.to_dict(), source=path), destination)
    return destination


@dataclass
class CompileResult:
    """Outcome of compiling one file in a batch."""

    source: Path
    lock_file: Path | None = None
    error: AwCompilerError | None = None

    @property
    def ok(self) -> bool:
        return self.error is None


def compile_files(
    paths: Sequence[Path],
    *,
    config: CompilerConfig | None = None,
    max_workers: int | None = None,
) -> list[CompileResult]:
    """Compile independent workflow files concurrently.

    Each file is compiled in isolation; one failure does not stop the
    others. Results keep the order of `paths`.

    Raises:
        CompilerError: If two inputs would write the same lock file.

    """
    config = config or get_config()
    destinations: dict[Path, Path] = {}
    for path in paths:
        destination = lock_file_path(path).resolve()
        if destination in destinations:
            raise CompilerError(
                f"Workflows {destinations[destination]} and {path} both compile to "
                f"{destination}"
            )
        destinations[destination] = path

    action_pins = _load_action_pins(config)

    def _compile_one(path: Path) -> CompileResult:
        try:
            return CompileResult(
                source=path,
                lock_file=compile_file(path, config=config, action_pins=action_pins),
            )
        except AwCompilerError as e:
            logger.error("Failed to compile %s: %s", path, e)
            return CompileResult(source=path, error=e)

    workers = max_workers or config.max_workers
    with ThreadPoolExecutor(max_workers=workers) as executor:
        return list(executor.map(_compile_one, paths))
