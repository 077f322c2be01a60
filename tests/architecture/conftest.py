"""Shared fixtures for architecture tests."""

import os

import pytest
from pytestarch import (
    EvaluableArchitecture,
    LayeredArchitecture,
    get_evaluable_architecture,
)


@pytest.fixture(scope="session")
def evaluable() -> EvaluableArchitecture:
    """Build evaluable architecture from src/taskpilot."""
    src_dir = os.path.abspath(
        os.path.join(os.path.dirname(__file__), "..", "..", "src")
    )
    project_path = os.path.join(src_dir, "taskpilot")
    return get_evaluable_architecture(src_dir, project_path)


@pytest.fixture(scope="session")
def layers() -> LayeredArchitecture:
    """Define the hexagonal layers plus the two support packages.

    ``extraction`` and ``schemas`` may use the domain but nothing above it.
    PyTestArch resolves module names relative to the source root,
    so modules appear as 'src.taskpilot.domain', etc.
    """
    return (
        LayeredArchitecture()
        .layer("domain")
        .containing_modules(["src.taskpilot.domain"])
        .layer("extraction")
        .containing_modules(["src.taskpilot.extraction"])
        .layer("schemas")
        .containing_modules(["src.taskpilot.schemas"])
        .layer("application")
        .containing_modules(["src.taskpilot.application"])
        .layer("infrastructure")
        .containing_modules(["src.taskpilot.infrastructure"])
    )
