"""Domain records consumed by the analytics engine."""

from .project import Project, ProjectStatus
from .task import Task

__all__ = [
    "Project",
    "ProjectStatus",
    "Task",
]
