from datetime import date

from collision_risk.exploration.risk_charts import RiskChartRenderer
from collision_risk.features.marginals import build_marginals
from collision_risk.features.records import make_record
from collision_risk.features.event_flow import build_event_flow
from collision_risk.features.time_grid import build_month_hour_grid, build_weekday_hour_grid
from collision_risk.models.factor_ranking import analyze_factors
from collision_risk.models.risk_estimator import estimate_risk


def test_factor_ranking_chart(tmp_path, mixed_records):
    renderer = RiskChartRenderer(tmp_path)
    path = renderer.plot_factor_ranking(analyze_factors(mixed_records), "factors")
    assert path.name == "factors.png"
    assert path.exists() and path.stat().st_size > 0


def test_factor_ranking_chart_skips_empty(tmp_path):
    assert RiskChartRenderer(tmp_path).plot_factor_ranking([]) is None


def test_month_hour_heatmap(tmp_path):
    records = [make_record(i % 3 == 0, date=date(2021, 1 + i % 4, 1 + i % 27), hour=i % 24) for i in range(200)]
    path = RiskChartRenderer(tmp_path).plot_month_hour_heatmap(build_month_hour_grid(records))
    assert path.exists()
    assert RiskChartRenderer(tmp_path).plot_month_hour_heatmap(build_month_hour_grid([])) is None


def test_estimate_comparison_chart(tmp_path, baseline_records):
    marginals = build_marginals(baseline_records)
    estimate = estimate_risk({"borough": "Bronx"}, baseline_records, marginals)
    path = RiskChartRenderer(tmp_path).plot_estimate_comparison(estimate, "estimate.pdf")
    assert path.suffix == ".pdf"
    assert path.exists()


def test_weekday_hour_heatmap(tmp_path):
    records = [make_record(i % 4 == 0, date=date(2021, 3, 1 + i % 14), hour=i % 24) for i in range(150)]
    renderer = RiskChartRenderer(tmp_path)
    grid = build_weekday_hour_grid(records)
    assert renderer.plot_weekday_hour_heatmap(grid).exists()
    assert renderer.plot_weekday_hour_heatmap(grid, value='crash_count', filename="counts").name == "counts.png"
    assert renderer.plot_weekday_hour_heatmap(build_weekday_hour_grid([])) is None


def test_event_flow_chart(tmp_path):
    records = [make_record(i % 3 == 0, pre_crash=f"Action {i % 5}", factor1=f"Factor {i % 7}") for i in range(120)]
    renderer = RiskChartRenderer(tmp_path)
    path = renderer.plot_event_flow(build_event_flow(records))
    assert path.exists() and path.stat().st_size > 0
    assert renderer.plot_event_flow(build_event_flow([])) is None
