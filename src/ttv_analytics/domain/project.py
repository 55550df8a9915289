"""Implementation project record."""

from dataclasses import dataclass
from datetime import date, datetime
from enum import Enum
from typing import Any, Dict, Optional

from ..utils.datetime import parse_date, parse_datetime, to_date_string, to_iso_string


class ProjectStatus(Enum):
    """Project lifecycle states."""
    ACTIVE = "active"
    PAUSED = "paused"
    COMPLETED = "completed"

    @classmethod
    def parse(cls, value: Any) -> "ProjectStatus":
        """Parse a status value; missing or unknown values mean active."""
        if isinstance(value, cls):
            return value
        try:
            return cls(str(value).strip().lower())
        except ValueError:
            return cls.ACTIVE


@dataclass(frozen=True)
class Project:
    """A customer implementation project, owned by the storage layer."""

    id: str
    name: str
    client_name: str = ""
    status: ProjectStatus = ProjectStatus.ACTIVE
    created_at: Optional[datetime] = None
    go_live_date: Optional[date] = None  # Target go-live (calendar date)
    last_notified_milestone: Optional[str] = None

    @property
    def is_active(self) -> bool:
        return self.status == ProjectStatus.ACTIVE

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "clientName": self.client_name,
            "status": self.status.value,
            "createdAt": to_iso_string(self.created_at),
            "goLiveDate": to_date_string(self.go_live_date),
            "lastNotifiedMilestone": self.last_notified_milestone,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Project":
        """Create a Project from a camelCase or snake_case dictionary."""
        def pick(*keys: str) -> Any:
            for key in keys:
                if data.get(key) is not None:
                    return data[key]
            return None

        return cls(
            id=_as_id(pick("id")),
            name=pick("name") or "",
            client_name=pick("clientName", "client_name") or "",
            status=ProjectStatus.parse(pick("status")),
            created_at=parse_datetime(pick("createdAt", "created_at")),
            go_live_date=parse_date(pick("goLiveDate", "go_live_date")),
            last_notified_milestone=pick("lastNotifiedMilestone", "last_notified_milestone"),
        )


def _as_id(value: Any) -> str:
    return "" if value is None else str(value)
