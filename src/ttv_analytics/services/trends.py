"""Time-to-value trend across completed implementations."""

import logging
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Dict, List, Optional, Sequence

from ..config import ConfigModel, get_config
from ..utils.datetime import to_iso_string
from ..utils.numbers import mean, round_half_up
from .project_metrics import ProjectMetric

logger = logging.getLogger(__name__)


class TrendClassification(Enum):
    IMPROVING = "improving"
    DECLINING = "declining"
    STABLE = "stable"
    INSUFFICIENT_DATA = "insufficient_data"


class TrendDirection(Enum):
    FASTER = "faster"
    SLOWER = "slower"
    SAME = "same"


@dataclass(frozen=True)
class TrendPoint:
    """One completed project on the trend chart"""
    project_name: str
    client_name: str
    completed_date: datetime
    time_to_value_days: int

    def to_dict(self) -> Dict[str, Any]:
        return {
            'projectName': self.project_name,
            'clientName': self.client_name,
            'completedDate': to_iso_string(self.completed_date),
            'timeToValueDays': self.time_to_value_days
        }


@dataclass(frozen=True)
class TrendResult:
    """Earlier-vs-later comparison of time-to-value"""
    trend: TrendClassification
    data_points: int
    direction: Optional[TrendDirection] = None
    change_percent: Optional[int] = None  # magnitude; direction carries the sign
    first_half_avg_days: Optional[int] = None
    second_half_avg_days: Optional[int] = None
    series: List[TrendPoint] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        if self.trend == TrendClassification.INSUFFICIENT_DATA:
            return {
                'trend': self.trend.value,
                'dataPoints': self.data_points,
                'direction': None
            }
        return {
            'trend': self.trend.value,
            'direction': self.direction.value if self.direction else None,
            'changePercent': self.change_percent,
            'firstHalfAvgDays': self.first_half_avg_days,
            'secondHalfAvgDays': self.second_half_avg_days,
            'dataPoints': self.data_points,
            'series': [point.to_dict() for point in self.series]
        }


class TrendAnalyzer:
    """Classifies whether implementations are getting faster over time"""

    def __init__(self, config: Optional[ConfigModel] = None):
        self.config = config or get_config()

    def analyze(self, metrics: Sequence[ProjectMetric]) -> TrendResult:
        completed = sorted(
            (m for m in metrics
             if m.time_to_value_days is not None and m.go_live_actual_date is not None),
            key=lambda m: m.go_live_actual_date
        )

        if len(completed) < 2:
            return TrendResult(
                trend=TrendClassification.INSUFFICIENT_DATA,
                data_points=len(completed)
            )

        # The earlier half gets the smaller share on odd counts
        mid = len(completed) // 2
        first_avg = mean(m.time_to_value_days for m in completed[:mid])
        second_avg = mean(m.time_to_value_days for m in completed[mid:])

        if first_avg != 0:
            change = round_half_up((second_avg - first_avg) / first_avg * 100)
            delta = change
        else:
            # No baseline to compare against; report the raw movement only
            change = 0
            delta = second_avg - first_avg

        threshold = self.config.trend_threshold_percent
        if change < -threshold:
            trend = TrendClassification.IMPROVING
        elif change > threshold:
            trend = TrendClassification.DECLINING
        else:
            trend = TrendClassification.STABLE

        if delta < 0:
            direction = TrendDirection.FASTER
        elif delta > 0:
            direction = TrendDirection.SLOWER
        else:
            direction = TrendDirection.SAME

        result = TrendResult(
            trend=trend,
            data_points=len(completed),
            direction=direction,
            change_percent=abs(change),
            first_half_avg_days=round_half_up(first_avg),
            second_half_avg_days=round_half_up(second_avg),
            series=[
                TrendPoint(
                    project_name=m.project_name,
                    client_name=m.client_name,
                    completed_date=m.go_live_actual_date,
                    time_to_value_days=m.time_to_value_days
                )
                for m in completed
            ]
        )
        logger.debug("Trend over %d projects: %s (%s%%)", len(completed), trend.value, change)
        return result
