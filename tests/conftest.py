"""Pytest configuration and fixtures for awcompiler tests."""

from pathlib import Path

import pytest

from awcompiler.core.config import CompilerConfig


@pytest.fixture(autouse=True)
def reset_config_singleton(monkeypatch, tmp_path):
    """Reset the cached compiler config before and after each test.

    The default config path is redirected into tmp_path so tests never
    read ~/.awcompiler/config.yaml.
    """
    from awcompiler.core import config as config_module

    monkeypatch.setattr(config_module, "DEFAULT_CONFIG_PATH", tmp_path / "no-config.yaml")
    config_module.reset_config()
    yield
    config_module.reset_config()


@pytest.fixture
def compiler_config() -> CompilerConfig:
    """Default compiler configuration."""
    return CompilerConfig()


@pytest.fixture
def write_workflow(tmp_path: Path):
    """Write a workflow markdown file under tmp_path.

    Usage:
        def test_something(write_workflow):
            path = write_workflow("triage.md", "---\\non: issues\\n---\\n# Triage\\n")
    """

    def _write(name: str, content: str) -> Path:
        path = tmp_path / name
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(content, encoding="utf-8")
        return path

    return _write
