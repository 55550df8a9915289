"""Rule-based insight feed.

Each rule looks at the project metrics and the portfolio benchmarks and may
emit a human-readable finding. Rules are independent and cumulative; the
feed is ordered by priority, keeping rule order within a priority.
"""

import logging
from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Any, Dict, List, Optional, Sequence

from ..config import ConfigModel, get_config
from ..utils.datetime import days_between, ensure_aware, now_utc, to_date_string
from ..utils.numbers import format_number, format_or_missing, round_half_up
from .benchmarks import BenchmarkSummary
from .project_metrics import ProjectMetric

logger = logging.getLogger(__name__)


class InsightType(Enum):
    """Insight severity"""
    WARNING = "warning"
    INFO = "info"
    SUCCESS = "success"


class InsightCategory(Enum):
    """What an insight is about"""
    PORTFOLIO = "portfolio"
    PROJECT = "project"
    PHASE = "phase"
    TASK = "task"
    PREDICTION = "prediction"
    BENCHMARK = "benchmark"


class InsightPriority(Enum):
    """Insight priority levels"""
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"

    @property
    def rank(self) -> int:
        return _PRIORITY_RANK[self]


_PRIORITY_RANK = {
    InsightPriority.HIGH: 0,
    InsightPriority.MEDIUM: 1,
    InsightPriority.LOW: 2,
}


@dataclass(frozen=True)
class Insight:
    """A single finding for the admin insight feed"""
    type: InsightType
    category: InsightCategory
    title: str
    message: str
    priority: InsightPriority
    project_id: Optional[str] = None
    project_name: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {
            'type': self.type.value,
            'category': self.category.value,
        }
        if self.project_id is not None:
            data['projectId'] = self.project_id
            data['projectName'] = self.project_name
        data.update({
            'title': self.title,
            'message': self.message,
            'priority': self.priority.value
        })
        return data


class InsightGenerator:
    """Generates prioritized insights from metrics and benchmarks"""

    def __init__(self, config: Optional[ConfigModel] = None):
        self.config = config or get_config()

    def generate(self, metrics: Sequence[ProjectMetric], benchmarks: BenchmarkSummary,
                 now: Optional[datetime] = None) -> List[Insight]:
        """Evaluate every rule and return the insights sorted by priority"""
        now = ensure_aware(now) or now_utc()

        insights: List[Insight] = []
        insights.extend(self._portfolio_insights(benchmarks))
        for metric in metrics:
            if metric.is_active:
                insights.extend(self._project_insights(metric, benchmarks, now))
        insights.extend(self._benchmark_insights(benchmarks))

        # sorted() is stable, so rule order is kept within a priority
        insights = sorted(insights, key=lambda insight: insight.priority.rank)
        logger.debug("Generated %d insights", len(insights))
        return insights

    def _portfolio_insights(self, benchmarks: BenchmarkSummary) -> List[Insight]:
        insights = []
        if benchmarks.active_projects <= 0:
            return insights

        if benchmarks.projects_at_risk > 0:
            insights.append(Insight(
                type=InsightType.WARNING,
                category=InsightCategory.PORTFOLIO,
                title="Projects at Risk",
                message=(
                    f"{benchmarks.projects_at_risk} of {benchmarks.active_projects} active projects "
                    f"are behind schedule based on current velocity. Review their task backlogs "
                    f"and consider re-prioritizing."
                ),
                priority=InsightPriority.HIGH
            ))

        if benchmarks.total_overdue_tasks > self.config.overdue_task_threshold:
            insights.append(Insight(
                type=InsightType.WARNING,
                category=InsightCategory.PORTFOLIO,
                title="High Overdue Task Count",
                message=(
                    f"{benchmarks.total_overdue_tasks} tasks are overdue across active projects. "
                    f"This may indicate resource constraints or scope creep."
                ),
                priority=InsightPriority.HIGH
            ))

        if benchmarks.total_blocked_tasks > self.config.blocked_task_threshold:
            insights.append(Insight(
                type=InsightType.INFO,
                category=InsightCategory.PORTFOLIO,
                title="Blocked Tasks Detected",
                message=(
                    f"{benchmarks.total_blocked_tasks} tasks are blocked by incomplete dependencies. "
                    f"Resolving dependency bottlenecks could accelerate delivery."
                ),
                priority=InsightPriority.MEDIUM
            ))

        return insights

    def _project_insights(self, metric: ProjectMetric, benchmarks: BenchmarkSummary,
                          now: datetime) -> List[Insight]:
        insights = []
        project = {'project_id': metric.project_id, 'project_name': metric.project_name}

        # Stalled project detection
        if (metric.completed_tasks > 0
                and metric.progress_percent < self.config.stalled_max_progress_percent
                and metric.created_at is not None):
            age_days = round_half_up(days_between(metric.created_at, now))
            if age_days > self.config.stalled_min_age_days:
                insights.append(Insight(
                    type=InsightType.WARNING,
                    category=InsightCategory.PROJECT,
                    title="Slow Progress",
                    message=(
                        f'"{metric.project_name}" is {age_days} days old but only '
                        f'{metric.progress_percent}% complete. Average time-to-value is '
                        f'{format_or_missing(benchmarks.avg_time_to_value_days)} days. '
                        f'Consider a review meeting.'
                    ),
                    priority=InsightPriority.HIGH,
                    **project
                ))

        # Phase bottlenecks
        for key, phase in metric.phases.items():
            if phase.is_complete or phase.total_tasks == 0:
                continue
            benchmark = benchmarks.avg_phase_durations.get(key)
            if (benchmark is not None and phase.duration_days is not None
                    and phase.duration_days > benchmark.avg_days * self.config.phase_slowdown_factor):
                insights.append(Insight(
                    type=InsightType.INFO,
                    category=InsightCategory.PHASE,
                    title=f"{phase.name} Taking Longer Than Average",
                    message=(
                        f'{phase.name} for "{metric.project_name}" has been active for '
                        f'{phase.duration_days} days vs average of {benchmark.avg_days} days.'
                    ),
                    priority=InsightPriority.MEDIUM,
                    **project
                ))

        # Long-running open task
        open_task = metric.longest_open_task
        if open_task is not None and open_task.days_open > self.config.long_open_task_days:
            insights.append(Insight(
                type=InsightType.WARNING,
                category=InsightCategory.TASK,
                title="Long-Running Open Task",
                message=(
                    f'"{open_task.title}" in "{metric.project_name}" has been open for '
                    f'{open_task.days_open} days. This may be blocking downstream work.'
                ),
                priority=InsightPriority.MEDIUM,
                **project
            ))

        # Forecast overruns the target go-live date
        if (metric.is_on_track is False and metric.estimated_completion_date
                and metric.go_live_date_target):
            overrun_days = (metric.estimated_completion_date - metric.go_live_date_target).days
            insights.append(Insight(
                type=InsightType.WARNING,
                category=InsightCategory.PREDICTION,
                title="Projected Go-Live Delay",
                message=(
                    f'"{metric.project_name}" is projected to complete ~{overrun_days} days after '
                    f'the target go-live date of {to_date_string(metric.go_live_date_target)}. '
                    f'Current velocity: {format_or_missing(metric.avg_task_completion_days)} '
                    f'days per task.'
                ),
                priority=InsightPriority.HIGH,
                **project
            ))

        return insights

    def _benchmark_insights(self, benchmarks: BenchmarkSummary) -> List[Insight]:
        insights = []
        if benchmarks.completed_projects < self.config.min_completed_for_benchmarks:
            return insights

        insights.append(Insight(
            type=InsightType.SUCCESS,
            category=InsightCategory.BENCHMARK,
            title="Time-to-Value Benchmark",
            message=(
                f"Across {benchmarks.completed_projects} completed implementations: average "
                f"time-to-value is {format_number(benchmarks.avg_time_to_value_weeks)} weeks "
                f"({format_number(benchmarks.avg_time_to_value_days)} days). "
                f"Range: {format_number(benchmarks.min_time_to_value_days)}-"
                f"{format_number(benchmarks.max_time_to_value_days)} days."
            ),
            priority=InsightPriority.LOW
        ))

        if benchmarks.avg_phase_durations:
            # max() keeps the earliest phase on ties
            slowest = max(benchmarks.avg_phase_durations.values(), key=lambda b: b.avg_days)
            insights.append(Insight(
                type=InsightType.INFO,
                category=InsightCategory.BENCHMARK,
                title="Longest Average Phase",
                message=(
                    f"{slowest.name} takes the longest on average ({slowest.avg_days} days). "
                    f"Optimizing this phase could have the biggest impact on time-to-value."
                ),
                priority=InsightPriority.MEDIUM
            ))

        return insights
