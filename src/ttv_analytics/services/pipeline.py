"""End-to-end analytics run.

``AnalyticsEngine`` chains the four analytics components over one snapshot
of projects and tasks, threading a single ``now`` through all of them so a
run is reproducible:

    raw records -> project metrics -> {benchmarks, trend} -> insights
"""

import csv
import io
import json
import logging
from collections import defaultdict
from dataclasses import dataclass, field
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, Iterable, List, Mapping, Optional, Tuple, Union

import tabulate
import yaml

from ..config import ConfigModel, get_config
from ..domain import Project, Task
from ..utils.datetime import ensure_aware, now_utc, to_date_string, to_iso_string
from .benchmarks import BenchmarkAggregator, BenchmarkSummary
from .insights import Insight, InsightGenerator
from .project_metrics import ProjectMetric, ProjectMetricCalculator
from .trends import TrendAnalyzer, TrendResult

logger = logging.getLogger(__name__)

TaskInput = Union[Mapping[str, Iterable[Task]], Iterable[Task]]


@dataclass(frozen=True)
class AnalyticsReport:
    """Everything one analytics run produces"""
    generated_at: datetime
    metrics: List[ProjectMetric] = field(default_factory=list)
    benchmarks: BenchmarkSummary = field(default_factory=BenchmarkSummary)
    insights: List[Insight] = field(default_factory=list)
    trend: Optional[TrendResult] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            'generatedAt': to_iso_string(self.generated_at),
            'projects': [m.to_dict() for m in self.metrics],
            'benchmarks': self.benchmarks.to_dict(),
            'insights': [i.to_dict() for i in self.insights],
            'trend': self.trend.to_dict() if self.trend else None
        }

    def project_rows(self) -> List[Dict[str, Any]]:
        """Flat per-project rows for tabular output"""
        return [
            {
                'Project': m.project_name,
                'Client': m.client_name,
                'Status': m.status.value,
                'Progress %': m.progress_percent,
                'Tasks': f"{m.completed_tasks}/{m.total_tasks}",
                'TTV Days': m.time_to_value_days,
                'Overdue': m.overdue_task_count,
                'Blocked': m.blocked_task_count,
                'Forecast': to_date_string(m.estimated_completion_date),
                'On Track': m.is_on_track,
            }
            for m in self.metrics
        ]

    def export(self, format_type: str = "json") -> str:
        """Export the report as JSON, CSV or a plain text table"""
        if format_type == "json":
            return json.dumps(self.to_dict(), indent=2)
        elif format_type == "csv":
            return self._export_to_csv()
        elif format_type == "table":
            return self._export_to_table()
        else:
            raise ValueError(f"Unsupported format: {format_type}")

    def _export_to_csv(self) -> str:
        output = io.StringIO()
        writer = csv.writer(output)

        writer.writerow(["Project Metrics"])
        rows = self.project_rows()
        headers = list(rows[0]) if rows else []
        writer.writerow(headers)
        for row in rows:
            writer.writerow(["" if row[h] is None else row[h] for h in headers])
        writer.writerow([])

        writer.writerow(["Insights"])
        writer.writerow(["Priority", "Type", "Category", "Project", "Title", "Message"])
        for insight in self.insights:
            writer.writerow([
                insight.priority.value,
                insight.type.value,
                insight.category.value,
                insight.project_name or "",
                insight.title,
                insight.message
            ])

        return output.getvalue()

    def _export_to_table(self) -> str:
        rows = self.project_rows()
        if not rows:
            return "No data available"
        return tabulate.tabulate(rows, headers="keys", tablefmt="grid")


def group_tasks(tasks: TaskInput) -> Dict[str, List[Task]]:
    """Normalize task input to a project id -> task list mapping"""
    if isinstance(tasks, Mapping):
        return {str(project_id): list(items) for project_id, items in tasks.items()}

    grouped: Dict[str, List[Task]] = defaultdict(list)
    for task in tasks:
        grouped[str(task.project_id)].append(task)
    return dict(grouped)


class AnalyticsEngine:
    """Runs metrics, benchmarks, trend and insights over one snapshot"""

    def __init__(self, config: Optional[ConfigModel] = None):
        self.config = config or get_config()
        self.phases = self.config.phase_definition()
        self.calculator = ProjectMetricCalculator(self.config, self.phases)
        self.aggregator = BenchmarkAggregator(self.config, self.phases)
        self.insight_generator = InsightGenerator(self.config)
        self.trend_analyzer = TrendAnalyzer(self.config)

    def run(self, projects: Iterable[Project], tasks: TaskInput,
            now: Optional[datetime] = None) -> AnalyticsReport:
        now = ensure_aware(now) or now_utc()
        projects = list(projects)

        metrics = self.calculator.calculate_all(projects, group_tasks(tasks), now)
        benchmarks = self.aggregator.aggregate(metrics)
        trend = self.trend_analyzer.analyze(metrics)
        insights = self.insight_generator.generate(metrics, benchmarks, now)

        logger.info(
            "Analytics run over %d projects produced %d insights (trend: %s)",
            len(metrics), len(insights), trend.trend.value
        )
        return AnalyticsReport(
            generated_at=now,
            metrics=metrics,
            benchmarks=benchmarks,
            insights=insights,
            trend=trend
        )


def parse_snapshot(data: Mapping[str, Any]) -> Tuple[List[Project], Dict[str, List[Task]]]:
    """Build domain records from a ``{"projects": ..., "tasks": ...}`` document.

    ``tasks`` may be keyed by project id or be a flat list whose entries
    carry ``projectId``.
    """
    if not isinstance(data, Mapping):
        raise ValueError("Snapshot must be a mapping with 'projects' and 'tasks' keys")

    projects = [Project.from_dict(item) for item in _records(data.get("projects"), "projects")]

    raw_tasks = data.get("tasks") or []
    if isinstance(raw_tasks, Mapping):
        tasks = {
            str(project_id): [
                Task.from_dict(item, project_id=str(project_id))
                for item in _records(items, f"tasks for project {project_id}")
            ]
            for project_id, items in raw_tasks.items()
        }
    else:
        tasks = group_tasks(Task.from_dict(item) for item in _records(raw_tasks, "tasks"))

    return projects, tasks


def _records(items: Any, label: str) -> List[Mapping[str, Any]]:
    """Validate a list of record mappings from a snapshot document"""
    if items is None:
        return []
    if isinstance(items, (str, bytes, Mapping)) or not isinstance(items, Iterable):
        raise ValueError(f"Snapshot {label} must be a list of records")
    records = list(items)
    for item in records:
        if not isinstance(item, Mapping):
            raise ValueError(f"Snapshot {label} must contain mappings, got {item!r}")
    return records


def load_snapshot(path: Union[str, Path]) -> Tuple[List[Project], Dict[str, List[Task]]]:
    """Read a JSON or YAML snapshot file"""
    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"Snapshot file not found: {path}")

    with open(path, 'r') as f:
        if path.suffix.lower() in ['.yaml', '.yml']:
            data = yaml.safe_load(f)
        elif path.suffix.lower() == '.json':
            data = json.load(f)
        else:
            raise ValueError(f"Unsupported snapshot format: {path.suffix}")

    projects, tasks = parse_snapshot(data or {})
    logger.info("Loaded %d projects from %s", len(projects), path)
    return projects, tasks
