"""Implementation task record."""

from dataclasses import dataclass, field
from datetime import date, datetime
from typing import Any, Dict, Optional, Tuple

from ..utils.datetime import parse_date, parse_datetime, to_date_string, to_iso_string

TRUE_STRINGS = {"true", "yes", "y", "1", "on"}


@dataclass(frozen=True)
class Task:
    """A single checklist task belonging to one project phase."""

    id: str
    project_id: str
    phase: str
    title: str
    completed: bool = False
    completed_at: Optional[datetime] = None
    start_date: Optional[date] = None
    due_date: Optional[date] = None
    dependencies: Tuple[str, ...] = field(default_factory=tuple)  # Task IDs

    @property
    def opened_on(self) -> Optional[date]:
        """Date the task is considered open from: start date, else due date.

        Unparseable dates are skipped.
        """
        return parse_date(self.start_date) or parse_date(self.due_date)

    def title_contains(self, phrase: str) -> bool:
        if self.title is None or self.title == "":
            return False
        return phrase.lower() in str(self.title).lower()

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "projectId": self.project_id,
            "phase": self.phase,
            "taskTitle": self.title,
            "completed": self.completed,
            "dateCompleted": to_iso_string(self.completed_at),
            "startDate": to_date_string(self.start_date),
            "dueDate": to_date_string(self.due_date),
            "dependencies": list(self.dependencies),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any], project_id: Optional[str] = None) -> "Task":
        """Create a Task from a camelCase or snake_case dictionary.

        Dates that cannot be parsed are dropped rather than rejected.
        """
        def pick(*keys: str) -> Any:
            for key in keys:
                if data.get(key) is not None:
                    return data[key]
            return None

        owner = pick("projectId", "project_id")
        dependencies = pick("dependencies", "depends_on") or ()

        return cls(
            id=_as_id(pick("id")),
            project_id=_as_id(owner if owner is not None else project_id),
            phase=_as_id(pick("phase")),
            title=_as_id(pick("taskTitle", "title")),
            completed=_as_bool(pick("completed")),
            completed_at=parse_datetime(pick("dateCompleted", "completed_at")),
            start_date=parse_date(pick("startDate", "start_date")),
            due_date=parse_date(pick("dueDate", "due_date")),
            dependencies=tuple(str(dep) for dep in dependencies),
        )


def _as_id(value: Any) -> str:
    return "" if value is None else str(value)


def _as_bool(value: Any) -> bool:
    """Interpret flags from JSON, YAML or CSV sources ("false" is False)."""
    if isinstance(value, str):
        return value.strip().lower() in TRUE_STRINGS
    return bool(value)
