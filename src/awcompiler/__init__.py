"""awcompiler - compile markdown agentic workflows into CI pipeline lock files."""

from importlib.metadata import PackageNotFoundError, version

try:
    __version__ = version("awcompiler")
except PackageNotFoundError:
    __version__ = "0.0.0-dev"
