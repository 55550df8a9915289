"""Per-project time-to-value metrics.

This module turns one project and its flat task list into a single
``ProjectMetric`` record:
- Time to value (contract signed -> first live patient samples)
- Phase-by-phase completion and duration
- Task velocity and bottlenecks (overdue, blocked, longest open task)
- Completion forecast against the target go-live date

Missing or unparseable dates never fail the calculation; they only leave the
fields that depend on them unset.
"""

import logging
from dataclasses import dataclass, field
from datetime import date, datetime, timezone
from typing import Any, Dict, Iterable, List, Optional

from ..config import ConfigModel, get_config
from ..domain import Project, ProjectStatus, Task
from ..phases import PhaseDefinition
from ..utils.datetime import (
    add_days,
    days_between,
    ensure_aware,
    now_utc,
    parse_date,
    parse_datetime,
    start_of_day,
    to_date_string,
    to_iso_string,
)
from ..utils.numbers import mean, round_half_up, round_to_tenth

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class PhaseBreakdown:
    """Completion state of one phase within a project"""
    key: str
    name: str
    total_tasks: int = 0
    completed_tasks: int = 0
    progress_percent: int = 0
    start_date: Optional[date] = None
    first_completed_date: Optional[datetime] = None
    last_completed_date: Optional[datetime] = None
    duration_days: Optional[int] = None
    is_complete: bool = False

    def to_dict(self) -> Dict[str, Any]:
        return {
            'name': self.name,
            'totalTasks': self.total_tasks,
            'completedTasks': self.completed_tasks,
            'progressPercent': self.progress_percent,
            'startDate': to_date_string(self.start_date),
            'firstCompletedDate': to_iso_string(self.first_completed_date),
            'lastCompletedDate': to_iso_string(self.last_completed_date),
            'durationDays': self.duration_days,
            'isComplete': self.is_complete
        }


@dataclass(frozen=True)
class OpenTask:
    """The incomplete task that has been open the longest"""
    id: str
    title: str
    phase: str
    days_open: int

    def to_dict(self) -> Dict[str, Any]:
        return {
            'id': self.id,
            'title': self.title,
            'phase': self.phase,
            'daysOpen': self.days_open
        }


@dataclass(frozen=True)
class ProjectMetric:
    """Derived metrics for a single project"""
    project_id: str
    project_name: str
    client_name: str
    status: ProjectStatus
    created_at: Optional[datetime] = None
    go_live_date_target: Optional[date] = None

    # Time to value
    contract_signed_date: Optional[datetime] = None
    go_live_actual_date: Optional[datetime] = None
    time_to_value_days: Optional[int] = None
    time_to_value_weeks: Optional[int] = None

    # Phase-by-phase breakdown, in phase table order
    phases: Dict[str, PhaseBreakdown] = field(default_factory=dict)

    # Task velocity
    total_tasks: int = 0
    completed_tasks: int = 0
    progress_percent: int = 0
    avg_task_completion_days: Optional[float] = None

    # Bottlenecks
    overdue_task_count: int = 0
    blocked_task_count: int = 0
    longest_open_task_days: Optional[int] = None
    longest_open_task: Optional[OpenTask] = None

    # Forecast
    estimated_completion_date: Optional[date] = None
    estimated_remaining_days: Optional[int] = None
    is_on_track: Optional[bool] = None

    @property
    def is_active(self) -> bool:
        return self.status == ProjectStatus.ACTIVE

    def to_dict(self) -> Dict[str, Any]:
        return {
            'projectId': self.project_id,
            'projectName': self.project_name,
            'clientName': self.client_name,
            'status': self.status.value,
            'createdAt': to_iso_string(self.created_at),
            'goLiveDateTarget': to_date_string(self.go_live_date_target),
            'contractSignedDate': to_iso_string(self.contract_signed_date),
            'goLiveActualDate': to_iso_string(self.go_live_actual_date),
            'timeToValueDays': self.time_to_value_days,
            'timeToValueWeeks': self.time_to_value_weeks,
            'phases': {key: phase.to_dict() for key, phase in self.phases.items()},
            'totalTasks': self.total_tasks,
            'completedTasks': self.completed_tasks,
            'progressPercent': self.progress_percent,
            'avgTaskCompletionDays': self.avg_task_completion_days,
            'overdueTaskCount': self.overdue_task_count,
            'blockedTaskCount': self.blocked_task_count,
            'longestOpenTaskDays': self.longest_open_task_days,
            'longestOpenTask': self.longest_open_task.to_dict() if self.longest_open_task else None,
            'estimatedCompletionDate': to_date_string(self.estimated_completion_date),
            'estimatedRemainingDays': self.estimated_remaining_days,
            'isOnTrack': self.is_on_track
        }


def _completed_at(task: Task) -> Optional[datetime]:
    return parse_datetime(task.completed_at)


class ProjectMetricCalculator:
    """Computes a ``ProjectMetric`` from one project and its tasks"""

    def __init__(self, config: Optional[ConfigModel] = None,
                 phases: Optional[PhaseDefinition] = None):
        self.config = config or get_config()
        self.phases = phases or self.config.phase_definition()

    def calculate(self, project: Project, tasks: Iterable[Task],
                  now: Optional[datetime] = None) -> ProjectMetric:
        """Calculate time-to-value, phase, bottleneck and forecast metrics"""
        now = ensure_aware(now) or now_utc()
        today = now.astimezone(timezone.utc).date()
        tasks = list(tasks or [])

        completed = [t for t in tasks if t.completed]
        total_count = len(tasks)
        completed_count = len(completed)
        progress = round_half_up(completed_count / total_count * 100) if total_count else 0

        # Anchor dates
        contract_signed = self._find_anchor_date(tasks, self.config.contract_signed_phrase)
        go_live_actual = self._find_anchor_date(tasks, self.config.go_live_phrase)

        ttv_days = None
        ttv_weeks = None
        if contract_signed and go_live_actual:
            diff_days = days_between(contract_signed, go_live_actual)
            ttv_days = round_half_up(diff_days)
            ttv_weeks = round_half_up(diff_days / 7)

        phases = self._calculate_phase_breakdown(tasks)
        avg_completion = self._calculate_avg_completion_days(completed)
        overdue, blocked, longest_open = self._analyze_bottlenecks(tasks, now, today)

        target = parse_date(project.go_live_date)
        estimated_remaining = None
        estimated_completion = None
        on_track = None
        if contract_signed and 0 < completed_count < total_count:
            estimated_remaining = self._forecast_remaining_days(
                contract_signed, completed_count, total_count, now
            )
            if estimated_remaining is not None:
                try:
                    estimated_completion = add_days(today, estimated_remaining)
                except OverflowError:
                    # Forecast lands beyond the calendar; treat as no forecast
                    logger.debug(
                        "Project %s: forecast of %d days is out of range",
                        project.id, estimated_remaining
                    )
                    estimated_remaining = None
                else:
                    if target:
                        on_track = estimated_completion <= target

        metric = ProjectMetric(
            project_id=str(project.id),
            project_name=project.name,
            client_name=project.client_name,
            status=ProjectStatus.parse(project.status),
            created_at=parse_datetime(project.created_at),
            go_live_date_target=target,
            contract_signed_date=contract_signed,
            go_live_actual_date=go_live_actual,
            time_to_value_days=ttv_days,
            time_to_value_weeks=ttv_weeks,
            phases=phases,
            total_tasks=total_count,
            completed_tasks=completed_count,
            progress_percent=progress,
            avg_task_completion_days=avg_completion,
            overdue_task_count=overdue,
            blocked_task_count=blocked,
            longest_open_task_days=longest_open.days_open if longest_open else None,
            longest_open_task=longest_open,
            estimated_completion_date=estimated_completion,
            estimated_remaining_days=estimated_remaining,
            is_on_track=on_track
        )
        logger.debug(
            "Project %s: %d/%d tasks, ttv=%s days, on_track=%s",
            metric.project_id, completed_count, total_count, ttv_days, on_track
        )
        return metric

    def calculate_all(self, projects: Iterable[Project],
                      tasks_by_project: Dict[str, List[Task]],
                      now: Optional[datetime] = None) -> List[ProjectMetric]:
        """Calculate metrics for every project, in input order"""
        now = ensure_aware(now) or now_utc()
        return [
            self.calculate(project, tasks_by_project.get(str(project.id), []), now)
            for project in projects
        ]

    def _find_anchor_date(self, tasks: List[Task], phrase: str) -> Optional[datetime]:
        """Completion date of the first task whose title contains ``phrase``.

        Only the first match in input order is considered, even when it has
        no completion date and a later match does.
        """
        for task in tasks:
            if task.title_contains(phrase):
                return _completed_at(task)
        return None

    def _calculate_phase_breakdown(self, tasks: List[Task]) -> Dict[str, PhaseBreakdown]:
        """Break tasks down by phase, keeping every phase of the table"""
        tasks_by_phase: Dict[str, List[Task]] = {key: [] for key in self.phases}
        for task in tasks:
            key = self.phases.resolve(task.phase)
            if key is not None:
                tasks_by_phase[key].append(task)

        breakdown = {}
        for key, phase_tasks in tasks_by_phase.items():
            name = self.phases.name_for(key)
            if not phase_tasks:
                breakdown[key] = PhaseBreakdown(key=key, name=name)
                continue

            phase_completed = [t for t in phase_tasks if t.completed]
            completion_dates = sorted(
                d for d in (_completed_at(t) for t in phase_completed) if d is not None
            )
            first_completed = completion_dates[0] if completion_dates else None
            last_completed = completion_dates[-1] if completion_dates else None

            duration = None
            if len(completion_dates) >= 2:
                duration = round_half_up(days_between(first_completed, last_completed))

            due_dates = sorted(
                d for d in (parse_date(t.due_date) for t in phase_tasks) if d is not None
            )
            if due_dates:
                start = due_dates[0]
            elif first_completed:
                start = first_completed.astimezone(timezone.utc).date()
            else:
                start = None

            breakdown[key] = PhaseBreakdown(
                key=key,
                name=name,
                total_tasks=len(phase_tasks),
                completed_tasks=len(phase_completed),
                progress_percent=round_half_up(len(phase_completed) / len(phase_tasks) * 100),
                start_date=start,
                first_completed_date=first_completed,
                last_completed_date=last_completed,
                duration_days=duration,
                is_complete=len(phase_completed) == len(phase_tasks)
            )
        return breakdown

    def _calculate_avg_completion_days(self, completed: List[Task]) -> Optional[float]:
        """Average days from start (or due) date to completion"""
        durations = []
        for task in completed:
            finished = _completed_at(task)
            opened = task.opened_on
            if finished and opened:
                durations.append(max(0.0, days_between(start_of_day(opened), finished)))

        average = mean(durations)
        return round_to_tenth(average) if average is not None else None

    def _analyze_bottlenecks(self, tasks: List[Task], now: datetime, today: date):
        """Count overdue and blocked tasks and find the longest open one"""
        # First occurrence wins for duplicate ids
        completion_by_id: Dict[str, bool] = {}
        for task in tasks:
            completion_by_id.setdefault(str(task.id), bool(task.completed))

        overdue = 0
        blocked = 0
        longest: Optional[OpenTask] = None

        for task in tasks:
            if task.completed:
                continue

            due = parse_date(task.due_date)
            if due and due < today:
                overdue += 1

            dependencies = [str(dep) for dep in (task.dependencies or ())]
            if dependencies and not all(completion_by_id.get(dep, False) for dep in dependencies):
                blocked += 1

            opened = task.opened_on
            if opened:
                days_open = round_half_up(days_between(start_of_day(opened), now))
                if days_open > 0 and (longest is None or days_open > longest.days_open):
                    longest = OpenTask(
                        id=str(task.id),
                        title=task.title,
                        phase=task.phase,
                        days_open=days_open
                    )

        return overdue, blocked, longest

    def _forecast_remaining_days(self, contract_signed: datetime, completed_count: int,
                                 total_count: int, now: datetime) -> Optional[int]:
        """Days left at the velocity observed since contract signing"""
        elapsed_days = days_between(contract_signed, now)
        if elapsed_days <= 0:
            return None

        tasks_per_day = completed_count / elapsed_days
        if tasks_per_day <= 0:
            return None

        remaining_tasks = total_count - completed_count
        return round_half_up(remaining_tasks / tasks_per_day)
