"""ttv-analytics - time-to-value analytics for multi-phase implementation projects."""

__version__ = "0.1.0"

from .domain import Project, ProjectStatus, Task
from .phases import PhaseDefinition
from .services import (
    AnalyticsEngine,
    AnalyticsReport,
    BenchmarkAggregator,
    InsightGenerator,
    ProjectMetricCalculator,
    TrendAnalyzer,
)

__all__ = [
    "Project",
    "ProjectStatus",
    "Task",
    "PhaseDefinition",
    "AnalyticsEngine",
    "AnalyticsReport",
    "BenchmarkAggregator",
    "InsightGenerator",
    "ProjectMetricCalculator",
    "TrendAnalyzer",
    "__version__",
]
