"""Analytics services: metrics, benchmarks, insights and trends."""

from .project_metrics import OpenTask, PhaseBreakdown, ProjectMetric, ProjectMetricCalculator
from .benchmarks import BenchmarkAggregator, BenchmarkSummary, PhaseBenchmark, ProjectReference
from .insights import (
    Insight,
    InsightCategory,
    InsightGenerator,
    InsightPriority,
    InsightType,
)
from .trends import TrendAnalyzer, TrendClassification, TrendDirection, TrendPoint, TrendResult
from .pipeline import AnalyticsEngine, AnalyticsReport, load_snapshot, parse_snapshot

__all__ = [
    "OpenTask",
    "PhaseBreakdown",
    "ProjectMetric",
    "ProjectMetricCalculator",
    "BenchmarkAggregator",
    "BenchmarkSummary",
    "PhaseBenchmark",
    "ProjectReference",
    "Insight",
    "InsightCategory",
    "InsightGenerator",
    "InsightPriority",
    "InsightType",
    "TrendAnalyzer",
    "TrendClassification",
    "TrendDirection",
    "TrendPoint",
    "TrendResult",
    "AnalyticsEngine",
    "AnalyticsReport",
    "load_snapshot",
    "parse_snapshot",
]
