"""Cross-project benchmarks.

Aggregates per-project metrics into portfolio statistics: time-to-value
distribution over completed implementations, average phase durations and
the health of the active portfolio.
"""

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Sequence

from ..config import ConfigModel, get_config
from ..phases import PhaseDefinition
from ..utils.numbers import mean, round_half_up, round_to_tenth
from .project_metrics import ProjectMetric

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class PhaseBenchmark:
    """Duration statistics for one phase across completed projects"""
    name: str
    avg_days: int
    min_days: int
    max_days: int
    sample_size: int

    def to_dict(self) -> Dict[str, Any]:
        return {
            'name': self.name,
            'avgDays': self.avg_days,
            'minDays': self.min_days,
            'maxDays': self.max_days,
            'sampleSize': self.sample_size
        }


@dataclass(frozen=True)
class ProjectReference:
    """A completed project singled out by a benchmark"""
    name: str
    client_name: str
    days: int

    def to_dict(self) -> Dict[str, Any]:
        return {
            'name': self.name,
            'clientName': self.client_name,
            'days': self.days
        }


@dataclass(frozen=True)
class BenchmarkSummary:
    """Portfolio-wide benchmark statistics"""
    total_projects: int = 0
    completed_projects: int = 0
    active_projects: int = 0

    # Time-to-value over completed projects
    avg_time_to_value_days: Optional[int] = None
    avg_time_to_value_weeks: Optional[int] = None
    min_time_to_value_days: Optional[int] = None
    max_time_to_value_days: Optional[int] = None
    median_time_to_value_days: Optional[int] = None

    # Phase duration benchmarks, in phase table order
    avg_phase_durations: Dict[str, PhaseBenchmark] = field(default_factory=dict)

    # Active project health
    avg_progress_percent: Optional[int] = None
    projects_on_track: int = 0
    projects_at_risk: int = 0
    total_overdue_tasks: int = 0
    total_blocked_tasks: int = 0

    # Velocity
    avg_task_completion_days: Optional[float] = None
    fastest_project: Optional[ProjectReference] = None
    slowest_project: Optional[ProjectReference] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            'totalProjects': self.total_projects,
            'completedProjects': self.completed_projects,
            'activeProjects': self.active_projects,
            'avgTimeToValueDays': self.avg_time_to_value_days,
            'avgTimeToValueWeeks': self.avg_time_to_value_weeks,
            'minTimeToValueDays': self.min_time_to_value_days,
            'maxTimeToValueDays': self.max_time_to_value_days,
            'medianTimeToValueDays': self.median_time_to_value_days,
            'avgPhaseDurations': {
                key: benchmark.to_dict() for key, benchmark in self.avg_phase_durations.items()
            },
            'avgProgressPercent': self.avg_progress_percent,
            'projectsOnTrack': self.projects_on_track,
            'projectsAtRisk': self.projects_at_risk,
            'totalOverdueTasks': self.total_overdue_tasks,
            'totalBlockedTasks': self.total_blocked_tasks,
            'avgTaskCompletionDays': self.avg_task_completion_days,
            'fastestProject': self.fastest_project.to_dict() if self.fastest_project else None,
            'slowestProject': self.slowest_project.to_dict() if self.slowest_project else None
        }


class BenchmarkAggregator:
    """Builds a ``BenchmarkSummary`` from per-project metrics"""

    def __init__(self, config: Optional[ConfigModel] = None,
                 phases: Optional[PhaseDefinition] = None):
        self.config = config or get_config()
        self.phases = phases or self.config.phase_definition()

    def aggregate(self, metrics: Sequence[ProjectMetric]) -> BenchmarkSummary:
        """Aggregate benchmarks across all projects"""
        completed = [m for m in metrics if m.time_to_value_days is not None]
        active = [m for m in metrics if m.is_active]

        ttv_stats = self._time_to_value_stats(completed)
        health = self._active_health(active)

        task_completion_days = [
            m.avg_task_completion_days for m in metrics
            if m.avg_task_completion_days is not None
        ]
        avg_task_completion = mean(task_completion_days)

        summary = BenchmarkSummary(
            total_projects=len(metrics),
            completed_projects=len(completed),
            active_projects=len(active),
            avg_phase_durations=self._phase_benchmarks(completed),
            avg_task_completion_days=(
                round_to_tenth(avg_task_completion) if avg_task_completion is not None else None
            ),
            **ttv_stats,
            **health
        )
        logger.debug(
            "Benchmarks: %d projects, %d completed, %d active",
            summary.total_projects, summary.completed_projects, summary.active_projects
        )
        return summary

    def _time_to_value_stats(self, completed: List[ProjectMetric]) -> Dict[str, Any]:
        if not completed:
            return {}

        # Stable sort keeps input order between equal values
        ranked = sorted(completed, key=lambda m: m.time_to_value_days)
        ttv_days = [m.time_to_value_days for m in ranked]
        avg_days = round_half_up(sum(ttv_days) / len(ttv_days))

        return {
            'avg_time_to_value_days': avg_days,
            'avg_time_to_value_weeks': round_half_up(avg_days / 7),
            'min_time_to_value_days': ttv_days[0],
            'max_time_to_value_days': ttv_days[-1],
            # Upper median for even counts
            'median_time_to_value_days': ttv_days[len(ttv_days) // 2],
            'fastest_project': self._reference(ranked[0]),
            'slowest_project': self._reference(ranked[-1]),
        }

    def _phase_benchmarks(self, completed: List[ProjectMetric]) -> Dict[str, PhaseBenchmark]:
        benchmarks = {}
        for key in self.phases:
            durations = []
            for metric in completed:
                phase = metric.phases.get(key)
                if phase is not None and phase.duration_days is not None:
                    durations.append(phase.duration_days)

            if durations:
                benchmarks[key] = PhaseBenchmark(
                    name=self.phases.name_for(key),
                    avg_days=round_half_up(sum(durations) / len(durations)),
                    min_days=min(durations),
                    max_days=max(durations),
                    sample_size=len(durations)
                )
        return benchmarks

    def _active_health(self, active: List[ProjectMetric]) -> Dict[str, Any]:
        if not active:
            return {}

        return {
            'avg_progress_percent': round_half_up(
                sum(m.progress_percent for m in active) / len(active)
            ),
            'projects_on_track': sum(1 for m in active if m.is_on_track is True),
            'projects_at_risk': sum(1 for m in active if m.is_on_track is False),
            'total_overdue_tasks': sum(m.overdue_task_count for m in active),
            'total_blocked_tasks': sum(m.blocked_task_count for m in active),
        }

    @staticmethod
    def _reference(metric: ProjectMetric) -> ProjectReference:
        return ProjectReference(
            name=metric.project_name,
            client_name=metric.client_name,
            days=metric.time_to_value_days
        )
