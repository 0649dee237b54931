"""Exception hierarchy for awcompiler.

All exceptions raised by the compiler derive from AwCompilerError so the
CLI can report them uniformly. Graph and ordering errors carry the
offending job and step names as attributes for programmatic inspection.
"""

from __future__ import annotations


class AwCompilerError(Exception):
    """Base exception for awcompiler."""

    pass


class ConfigError(AwCompilerError):
    """Invalid compiler or workflow configuration."""

    pass


class SafeOutputValidationError(ConfigError):
    """A safe-output directive carries a value that cannot be compiled.

    Attributes:
        directive: Directive name (e.g., "close-issue").
        field: Offending field name (e.g., "target").
        value: The rejected value.

    """

    def __init__(self, message: str, directive: str, field: str, value: object) -> None:
        """Initialize SafeOutputValidationError with context.

        Args:
            message: Human-readable error message.
            directive: Directive name the value belongs to.
            field: Field name within the directive.
            value: The rejected value.

        """
        super().__init__(message)
        self.directive = directive
        self.field = field
        self.value = value


class ParserError(AwCompilerError):
    """Workflow document could not be read or parsed."""

    pass


class CompilerError(AwCompilerError):
    """Compilation failed."""

    pass


class JobGraphError(CompilerError):
    """The generated job graph is inconsistent.

    Attributes:
        job_names: Names of the jobs involved in the failure.

    """

    def __init__(self, message: str, job_names: tuple[str, ...] = ()) -> None:
        """Initialize JobGraphError.

        Args:
            message: Human-readable error message.
            job_names: Offending job identifiers.

        """
        super().__init__(message)
        self.job_names = job_names


class DuplicateJobError(JobGraphError):
    """Two jobs share the same identifier."""

    pass


class MissingDependencyError(JobGraphError):
    """A job consuming agent results does not depend on the agent job."""

    pass


class StepOrderError(CompilerError):
    """Steps within a job were emitted in an unsafe order.

    Attributes:
        violations: One (step_name, ordinal, other_step_name, other_ordinal)
            tuple per broken constraint.

    """

    def __init__(
        self,
        message: str,
        violations: tuple[tuple[str, int, str, int | None], ...] = (),
    ) -> None:
        """Initialize StepOrderError.

        Args:
            message: Human-readable error message.
            violations: Offending step names and ordinals.

        """
        super().__init__(message)
        self.violations = violations


class ActionPinError(CompilerError):
    """No pinned reference is known for an action."""

    pass
