"""Command-line interface for awcompiler.

Commands:
    compile: Compile workflow markdown files into `.lock.yml` pipelines
    version: Print the installed version
"""

from pathlib import Path

import typer

from awcompiler import __version__
from awcompiler.cli_utils import (
    EXIT_CONFIG_ERROR,
    EXIT_ERROR,
    EXIT_SUCCESS,
    _error,
    _setup_logging,
    _success,
    _warning,
    console,
)
from awcompiler.core.config import load_compiler_config, set_config
from awcompiler.core.exceptions import CompilerError, ConfigError

app = typer.Typer(
    name="awcompiler",
    help="Compile agentic workflow markdown into CI pipeline definitions",
    no_args_is_help=True,
)


@app.command("compile")
def compile_command(
    paths: list[Path] = typer.Argument(
        ...,
        help="Workflow markdown files to compile",
    ),
    config_file: Path | None = typer.Option(
        None,
        "--config",
        "-c",
        help="Compiler config file (default: ~/.awcompiler/config.yaml)",
    ),
    workers: int | None = typer.Option(
        None,
        "--workers",
        "-w",
        min=1,
        max=32,
        help="Number of files compiled in parallel",
    ),
    verbose: bool = typer.Option(
        False,
        "--verbose",
        "-v",
        help="Enable verbose output",
    ),
    quiet: bool = typer.Option(
        False,
        "--quiet",
        "-q",
        help="Only report errors",
    ),
) -> None:
    """Compile workflow files into lock files.

    Each `<name>.md` is compiled to `<name>.lock.yml` next to it. Files are
    independent: a failing file does not stop the others, but the command
    exits with an error if any file failed.

    Examples:
        awcompiler compile .github/workflows/triage.md
        awcompiler compile .github/workflows/*.md -w 8 -q

    """
    from awcompiler.compiler.core import compile_files

    _setup_logging(verbose=verbose, quiet=quiet)

    try:
        config = load_compiler_config(config_file)
    except ConfigError as e:
        _error(f"Config error: {e}")
        raise typer.Exit(code=EXIT_CONFIG_ERROR) from None
    set_config(config)

    if config_file is not None and not config_file.exists():
        _warning(f"Config file {config_file} not found, using defaults")

    try:
        results = compile_files(paths, config=config, max_workers=workers)
    except CompilerError as e:
        _error(str(e))
        raise typer.Exit(code=EXIT_ERROR) from None

    failed = 0
    for result in results:
        if result.ok:
            if not quiet:
                _success(f"{result.source} -> {result.lock_file}")
        else:
            failed += 1
            _error(f"{result.source}: {result.error}")

    if failed:
        if not quiet:
            console.print(f"[red]{failed} of {len(results)} workflows failed to compile[/red]")
        raise typer.Exit(code=EXIT_ERROR)

    raise typer.Exit(code=EXIT_SUCCESS)


@app.command("version")
def version_command() -> None:
    """Print the awcompiler version."""
    console.print(f"awcompiler {__version__}")


def main() -> None:
    """Entry point for the awcompiler script."""
    app()


if __name__ == "__main__":
    main()
