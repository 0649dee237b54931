"""Job descriptors and the job dependency graph.

A compilation accumulates its jobs in a JobManager. The manager enforces
that identifiers are unique when jobs are added and, once every job is in,
that the dependency graph is sound:

- no job depends on itself;
- every dependency names a job of this compilation;
- the graph has no cycles;
- every job consuming agent results depends on the `agent` job.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field

import networkx as nx

from awcompiler.core.exceptions import (
    DuplicateJobError,
    JobGraphError,
    MissingDependencyError,
)
from awcompiler.core.types import AGENT_JOB_NAME, ConfigMap

logger = logging.getLogger(__name__)


@dataclass
class Job:
    """One job of the generated pipeline.

    Attributes:
        name: Job identifier (key under `jobs:`).
        needs: Identifiers of upstream jobs, in declaration order.
        body: Rendered job content (runs-on, permissions, steps, ...),
            opaque to the graph.
        consumes_agent_output: Whether the job reads the agent's results and
            therefore must depend on the agent job.

    """

    name: str
    needs: list[str] = field(default_factory=list)
    body: ConfigMap = field(default_factory=dict)
    consumes_agent_output: bool = False

    def add_dependency(self, job_name: str) -> None:
        """Add an upstream job, ignoring duplicates."""
        if job_name not in self.needs:
            self.needs.append(job_name)

    def to_dict(self) -> ConfigMap:
        """Render the job for the pipeline document.

        A single dependency is written as a scalar (`needs: agent`).
        """
        rendered: ConfigMap = {}
        if self.needs:
            rendered["needs"] = self.needs[0] if len(self.needs) == 1 else list(self.needs)
        rendered.update(self.body)
        return rendered


class JobManager:
    """Ordered, uniquely named collection of jobs for one compilation."""

    def __init__(self) -> None:
        self._jobs: dict[str, Job] = {}

    def add_job(self, job: Job) -> None:
        """Add a job.

        Raises:
            DuplicateJobError: If a job with the same identifier exists.

        """
        if job.name in self._jobs:
            raise DuplicateJobError(
                f"Duplicate job identifier '{job.name}'\n"
                f"  Why it's needed: job identifiers must be unique within a pipeline\n"
                f"  How to fix: Remove the repeated safe-output or custom job",
                job_names=(job.name,),
            )
        self._jobs[job.name] = job
        logger.debug("Added job %s (needs: %s)", job.name, ", ".join(job.needs) or "-")

    def get_job(self, name: str) -> Job | None:
        """Return a job by identifier."""
        return self._jobs.get(name)

    def __contains__(self, name: object) -> bool:
        return name in self._jobs

    def __len__(self) -> int:
        return len(self._jobs)

    def _graph(self) -> nx.DiGraph:
        # Edges point from a dependency to the job that needs it
        graph = nx.DiGraph()
        graph.add_nodes_from(self._jobs)
        for job in self._jobs.values():
            graph.add_edges_from((dependency, job.name) for dependency in job.needs)
        return graph

    def validate(self) -> None:
        """Check the dependency graph.

        Raises:
            JobGraphError: On self-dependencies, unknown dependencies or cycles.
            MissingDependencyError: If an agent-output consumer lacks the
                dependency on the agent job.

        """
        for job in self._jobs.values():
            if job.name in job.needs:
                raise JobGraphError(
                    f"Job '{job.name}' depends on itself", job_names=(job.name,)
                )
            for dependency in job.needs:
                if dependency not in self._jobs:
                    raise JobGraphError(
                        f"Job '{job.name}' depends on unknown job '{dependency}'",
                        job_names=(job.name, dependency),
                    )
            if job.consumes_agent_output and AGENT_JOB_NAME not in job.needs:
                raise MissingDependencyError(
                    f"Job '{job.name}' consumes agent output but does not depend on "
                    f"'{AGENT_JOB_NAME}'",
                    job_names=(job.name,),
                )

        graph = self._graph()
        if not nx.is_directed_acyclic_graph(graph):
            try:
                # Reverse so the path reads job -> dependency, as `needs` does
                cycle = nx.find_cycle(graph.reverse(copy=False))
                path = [edge[0] for edge in cycle] + [cycle[0][0]]
            except nx.NetworkXNoCycle:
                path = []
            raise JobGraphError(
                f"Job dependency cycle: {' -> '.join(path)}", job_names=tuple(path)
            )

        logger.debug("Validated job graph with %d jobs", len(self._jobs))

    def topological_order(self) -> list[str]:
        """Job identifiers with every job after its dependencies.

        Ties keep insertion order.

        Raises:
            JobGraphError: If the graph has a cycle.

        """
        position = {name: index for index, name in enumerate(self._jobs)}
        try:
            return list(
                nx.lexicographical_topological_sort(
                    self._graph(), key=lambda name: position.get(name, -1)
                )
            )
        except nx.NetworkXUnfeasible as e:
            raise JobGraphError(
                "Job dependency cycle", job_names=tuple(sorted(self._jobs))
            ) from e

    def ordered_jobs(self) -> list[Job]:
        """Jobs in emission order: dependencies first, then insertion order."""
        return [self._jobs[name] for name in self.topological_order() if name in self._jobs]
