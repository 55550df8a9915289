"""Tests for the rule-based insight generator."""

from datetime import date, timedelta

import pytest

from ttv_analytics.domain import ProjectStatus
from ttv_analytics.services.benchmarks import BenchmarkSummary, PhaseBenchmark
from ttv_analytics.services.insights import (
    InsightCategory,
    InsightGenerator,
    InsightPriority,
    InsightType,
)
from ttv_analytics.services.project_metrics import OpenTask


@pytest.fixture
def generator(config):
    return InsightGenerator(config)


def titles(insights):
    return [insight.title for insight in insights]


def phase_benchmark(key, avg_days):
    return PhaseBenchmark(name=f"{key} name", avg_days=avg_days, min_days=avg_days,
                          max_days=avg_days, sample_size=2)


class TestPortfolioRules:

    def test_no_active_projects_means_no_portfolio_insights(self, generator, now):
        benchmarks = BenchmarkSummary(active_projects=0, projects_at_risk=3,
                                      total_overdue_tasks=50, total_blocked_tasks=50)

        assert generator.generate([], benchmarks, now) == []

    def test_thresholds_are_exclusive(self, generator, now):
        at_limit = BenchmarkSummary(active_projects=2, total_overdue_tasks=10,
                                    total_blocked_tasks=5)
        above = BenchmarkSummary(active_projects=2, total_overdue_tasks=11,
                                 total_blocked_tasks=6)

        assert generator.generate([], at_limit, now) == []
        assert titles(generator.generate([], above, now)) == [
            "High Overdue Task Count",
            "Blocked Tasks Detected",
        ]

    def test_projects_at_risk(self, generator, now):
        benchmarks = BenchmarkSummary(active_projects=4, projects_at_risk=1)
        [insight] = generator.generate([], benchmarks, now)

        assert insight.type == InsightType.WARNING
        assert insight.category == InsightCategory.PORTFOLIO
        assert insight.priority == InsightPriority.HIGH
        assert insight.message == (
            "1 of 4 active projects are behind schedule based on current velocity. "
            "Review their task backlogs and consider re-prioritizing."
        )

    def test_custom_thresholds(self, config, now):
        config.overdue_task_threshold = 2
        benchmarks = BenchmarkSummary(active_projects=1, total_overdue_tasks=3)

        insights = InsightGenerator(config).generate([], benchmarks, now)

        assert titles(insights) == ["High Overdue Task Count"]
        assert insights[0].message.startswith("3 tasks are overdue across active projects.")


class TestProjectRules:

    def test_stalled_project(self, generator, make_metric, now):
        metric = make_metric(name="Acme Lab", created_at=now - timedelta(days=120),
                             total_tasks=10, completed_tasks=2, progress_percent=20)
        [insight] = generator.generate([metric], BenchmarkSummary(active_projects=1), now)

        assert insight.title == "Slow Progress"
        assert insight.priority == InsightPriority.HIGH
        assert insight.project_id == metric.project_id
        assert insight.project_name == "Acme Lab"
        assert insight.message == (
            '"Acme Lab" is 120 days old but only 20% complete. '
            'Average time-to-value is N/A days. Consider a review meeting.'
        )

    def test_stalled_message_uses_benchmark_average(self, generator, make_metric, now):
        metric = make_metric(name="Acme Lab", created_at=now - timedelta(days=100),
                             completed_tasks=1, progress_percent=10)
        benchmarks = BenchmarkSummary(active_projects=1, avg_time_to_value_days=75)
        [insight] = generator.generate([metric], benchmarks, now)

        assert "Average time-to-value is 75 days." in insight.message

    @pytest.mark.parametrize("fields", [
        {"created_at_days": 30, "completed_tasks": 1, "progress_percent": 10},
        {"created_at_days": 90, "completed_tasks": 1, "progress_percent": 10},
        {"created_at_days": 120, "completed_tasks": 0, "progress_percent": 0},
        {"created_at_days": 120, "completed_tasks": 5, "progress_percent": 50},
        {"created_at_days": None, "completed_tasks": 1, "progress_percent": 10},
    ])
    def test_not_stalled(self, generator, make_metric, now, fields):
        fields = dict(fields)
        age = fields.pop("created_at_days")
        created_at = now - timedelta(days=age) if age is not None else None
        metric = make_metric(created_at=created_at, **fields)

        assert generator.generate([metric], BenchmarkSummary(active_projects=1), now) == []

    def test_inactive_projects_are_skipped(self, generator, make_metric, now):
        metric = make_metric(status=ProjectStatus.PAUSED, created_at=now - timedelta(days=200),
                             completed_tasks=1, progress_percent=5)

        assert generator.generate([metric], BenchmarkSummary(), now) == []

    def test_phase_slowdown(self, generator, make_metric, make_phase, now):
        metric = make_metric(name="Acme Lab", phases={
            "Phase 2": make_phase("Phase 2", name="Phase 2: Billing", duration_days=16,
                                  total_tasks=4, completed_tasks=2),
            "Phase 3": make_phase("Phase 3", duration_days=15, total_tasks=4, completed_tasks=2),
            "Phase 4": make_phase("Phase 4", duration_days=40, total_tasks=2, completed_tasks=2,
                                  is_complete=True),
            "Phase 5": make_phase("Phase 5", duration_days=40, total_tasks=2, completed_tasks=1),
        })
        benchmarks = BenchmarkSummary(active_projects=1, avg_phase_durations={
            "Phase 2": phase_benchmark("Phase 2", 10),
            "Phase 3": phase_benchmark("Phase 3", 10),
            "Phase 4": phase_benchmark("Phase 4", 10),
        })
        [insight] = generator.generate([metric], benchmarks, now)

        assert insight.category == InsightCategory.PHASE
        assert insight.priority == InsightPriority.MEDIUM
        assert insight.title == "Phase 2: Billing Taking Longer Than Average"
        assert insight.message == (
            'Phase 2: Billing for "Acme Lab" has been active for 16 days vs average of 10 days.'
        )

    def test_long_running_open_task(self, generator, make_metric, now):
        long_open = make_metric(name="Acme Lab", longest_open_task=OpenTask(
            id="t9", title="Order analyzer", phase="Phase 4", days_open=31))
        borderline = make_metric(longest_open_task=OpenTask(
            id="t1", title="Call vendor", phase="Phase 4", days_open=30))
        insights = generator.generate([long_open, borderline],
                                      BenchmarkSummary(active_projects=2), now)

        assert titles(insights) == ["Long-Running Open Task"]
        assert insights[0].message == (
            '"Order analyzer" in "Acme Lab" has been open for 31 days. '
            'This may be blocking downstream work.'
        )

    def test_projected_delay(self, generator, make_metric, now):
        metric = make_metric(name="Acme Lab", is_on_track=False,
                             estimated_completion_date=date(2025, 7, 10),
                             go_live_date_target=date(2025, 7, 1),
                             avg_task_completion_days=2.5)
        [insight] = generator.generate([metric], BenchmarkSummary(active_projects=1), now)

        assert insight.category == InsightCategory.PREDICTION
        assert insight.priority == InsightPriority.HIGH
        assert insight.message == (
            '"Acme Lab" is projected to complete ~9 days after the target go-live date of '
            '2025-07-01. Current velocity: 2.5 days per task.'
        )

    @pytest.mark.parametrize("velocity, rendered", [(4.0, "4"), (None, "N/A")])
    def test_projected_delay_velocity_rendering(self, generator, make_metric, now,
                                                velocity, rendered):
        metric = make_metric(is_on_track=False, estimated_completion_date=date(2025, 8, 1),
                             go_live_date_target=date(2025, 7, 1),
                             avg_task_completion_days=velocity)
        [insight] = generator.generate([metric], BenchmarkSummary(active_projects=1), now)

        assert insight.message.endswith(f"Current velocity: {rendered} days per task.")
        assert "~31 days" in insight.message

    def test_on_track_projects_get_no_delay_warning(self, generator, make_metric, now):
        metric = make_metric(is_on_track=True, estimated_completion_date=date(2025, 6, 10),
                             go_live_date_target=date(2025, 7, 1))

        assert generator.generate([metric], BenchmarkSummary(active_projects=1), now) == []


class TestBenchmarkRules:

    def test_requires_minimum_completed_projects(self, generator, now):
        benchmarks = BenchmarkSummary(completed_projects=1, avg_time_to_value_days=20,
                                      avg_time_to_value_weeks=3, min_time_to_value_days=20,
                                      max_time_to_value_days=20)

        assert generator.generate([], benchmarks, now) == []

    def test_time_to_value_benchmark(self, generator, now):
        benchmarks = BenchmarkSummary(completed_projects=2, avg_time_to_value_days=25,
                                      avg_time_to_value_weeks=4, min_time_to_value_days=10,
                                      max_time_to_value_days=40)
        [insight] = generator.generate([], benchmarks, now)

        assert insight.type == InsightType.SUCCESS
        assert insight.priority == InsightPriority.LOW
        assert insight.message == (
            "Across 2 completed implementations: average time-to-value is 4 weeks (25 days). "
            "Range: 10-40 days."
        )

    def test_longest_average_phase_prefers_first_on_tie(self, generator, now):
        benchmarks = BenchmarkSummary(
            completed_projects=3, avg_time_to_value_days=30, avg_time_to_value_weeks=4,
            min_time_to_value_days=20, max_time_to_value_days=40,
            avg_phase_durations={
                "Phase 1": phase_benchmark("Phase 1", 5),
                "Phase 3": phase_benchmark("Phase 3", 12),
                "Phase 6": phase_benchmark("Phase 6", 12),
            })
        insights = generator.generate([], benchmarks, now)

        assert titles(insights) == ["Longest Average Phase", "Time-to-Value Benchmark"]
        assert insights[0].message == (
            "Phase 3 name takes the longest on average (12 days). "
            "Optimizing this phase could have the biggest impact on time-to-value."
        )


class TestOrdering:

    def test_sorted_by_priority_keeping_rule_order(self, generator, make_metric, now):
        metric = make_metric(name="Acme Lab", created_at=now - timedelta(days=120),
                             completed_tasks=1, progress_percent=10)
        benchmarks = BenchmarkSummary(
            active_projects=3, completed_projects=2, projects_at_risk=1,
            total_overdue_tasks=20, total_blocked_tasks=20,
            avg_time_to_value_days=25, avg_time_to_value_weeks=4,
            min_time_to_value_days=10, max_time_to_value_days=40,
            avg_phase_durations={"Phase 1": phase_benchmark("Phase 1", 5)})
        insights = generator.generate([metric], benchmarks, now)

        assert titles(insights) == [
            "Projects at Risk",
            "High Overdue Task Count",
            "Slow Progress",
            "Blocked Tasks Detected",
            "Longest Average Phase",
            "Time-to-Value Benchmark",
        ]
        ranks = [insight.priority.rank for insight in insights]
        assert ranks == sorted(ranks)

    def test_to_dict_omits_project_for_portfolio_insights(self, generator, make_metric, now):
        metric = make_metric(project_id="p7", name="Acme Lab", is_on_track=False,
                             estimated_completion_date=date(2025, 7, 2),
                             go_live_date_target=date(2025, 7, 1))
        benchmarks = BenchmarkSummary(active_projects=1, projects_at_risk=1)
        portfolio, project = [insight.to_dict() for insight in
                              generator.generate([metric], benchmarks, now)]

        assert "projectId" not in portfolio
        assert "projectName" not in portfolio
        assert project["projectId"] == "p7"
        assert project["projectName"] == "Acme Lab"
        assert project["priority"] == "high"
        assert project["category"] == "prediction"
