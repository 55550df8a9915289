"""Pytest configuration and shared fixtures."""

import sys
from datetime import datetime, timezone
from pathlib import Path

import pytest

# Ensure src directory is in Python path for all tests
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from ttv_analytics.config import Config, ConfigModel  # noqa: E402
from ttv_analytics.domain import Project, ProjectStatus, Task  # noqa: E402
from ttv_analytics.services.project_metrics import PhaseBreakdown, ProjectMetric  # noqa: E402


NOW = datetime(2025, 6, 1, 12, 0, tzinfo=timezone.utc)


@pytest.fixture(autouse=True)
def reset_config():
    """Keep the process-wide config isolated between tests."""
    Config._instance = ConfigModel()
    yield
    Config.reset()


@pytest.fixture
def now() -> datetime:
    return NOW


@pytest.fixture
def config() -> ConfigModel:
    return ConfigModel()


@pytest.fixture
def make_project():
    def factory(id="p1", name="Acme Lab", client_name="Acme", status=ProjectStatus.ACTIVE,
                created_at=None, go_live_date=None):
        return Project(
            id=id,
            name=name,
            client_name=client_name,
            status=status,
            created_at=created_at,
            go_live_date=go_live_date,
        )
    return factory


@pytest.fixture
def make_task():
    counter = {"next": 0}

    def factory(title="Task", phase="Phase 1", completed=False, completed_at=None,
                start_date=None, due_date=None, dependencies=(), id=None, project_id="p1"):
        counter["next"] += 1
        return Task(
            id=str(id) if id is not None else f"t{counter['next']}",
            project_id=project_id,
            phase=phase,
            title=title,
            completed=completed,
            completed_at=completed_at,
            start_date=start_date,
            due_date=due_date,
            dependencies=tuple(dependencies),
        )
    return factory


@pytest.fixture
def make_metric():
    """Build a ProjectMetric directly, bypassing the calculator."""
    counter = {"next": 0}

    def factory(name=None, client_name="Acme", status=ProjectStatus.ACTIVE, phases=None, **fields):
        counter["next"] += 1
        number = counter["next"]
        return ProjectMetric(
            project_id=fields.pop("project_id", f"p{number}"),
            project_name=name or f"Project {number}",
            client_name=client_name,
            status=status,
            phases=phases or {},
            **fields,
        )
    return factory


@pytest.fixture
def make_phase():
    def factory(key="Phase 1", duration_days=None, total_tasks=0, completed_tasks=0,
                is_complete=False, name=None):
        return PhaseBreakdown(
            key=key,
            name=name or key,
            total_tasks=total_tasks,
            completed_tasks=completed_tasks,
            duration_days=duration_days,
            is_complete=is_complete,
        )
    return factory
