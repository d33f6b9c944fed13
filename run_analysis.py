import os
import sys
from dotenv import load_dotenv

from collision_risk.config import Config
from collision_risk.utils.db import DatabaseManager


def main(argv=None):
    load_dotenv()
    argv = sys.argv[1:] if argv is None else argv

    # Configuration
    csv_path = argv[0] if argv else os.getenv("COLLISION_CSV_PATH")
    Config.initialize_folders()

    print("=" * 80)
    print("  COLLISION INJURY RISK ENGINE")
    print("=" * 80)

    # --- LAYER 0: INGEST ---
    if not csv_path:
        from collision_risk.ingest.fetcher import CollisionFetcher
        csv_path = CollisionFetcher(Config.DATA_DIR).download_collisions()

    from collision_risk.ingest.loader import CollisionLoader
    with DatabaseManager(Config.DB_PATH) as db_mgr:
        records = CollisionLoader(db_mgr).load(csv_path)

    # --- LAYER 1: MARGINALS ---
    print("\n" + "=" * 80)
    print("LAYER 1: MARGINAL STATISTICS")
    print("Purpose: Empirical-Bayes injury rates per category value")
    print("=" * 80)

    from collision_risk.features.marginals import MarginalsMemo
    memo = MarginalsMemo()
    marginals = memo.get(records)
    print(f"\n→ {marginals.total_count:,} collisions, {marginals.injured_count:,} with injuries "
          f"(base rate {marginals.base_rate:.2%})")

    # --- LAYER 2: RANKING ---
    print("\n" + "=" * 80)
    print("LAYER 2: FACTOR RANKING")
    print("Purpose: Which attributes separate injury crashes from the rest?")
    print("=" * 80)

    from collision_risk.models.factor_ranking import analyze_factors
    factors = analyze_factors(records)
    for i, f in enumerate(factors, 1):
        print(f"{i:>3}. {f.dimension.label:<24} {f.value[:40]:<40} "
              f"chi2={f.chi_square:>9.1f}  RR={f.risk_ratio:5.2f}  n={f.group_size:,}")

    # --- LAYER 3: ESTIMATION ---
    print("\n" + "=" * 80)
    print("LAYER 3: RISK ESTIMATION")
    print("Purpose: Combined risk for the strongest factors of each dimension")
    print("=" * 80)

    from collision_risk.models.risk_estimator import estimate_risk
    selection = {}
    for f in factors:
        selection.setdefault(f.dimension, f.value)
    estimate = estimate_risk(selection, records, marginals)
    print(f"\n→ Selection: {', '.join(f'{d.label}={v}' for d, v in selection.items()) or '(none)'}")
    print(f"→ Estimated injury rate {estimate.estimated_rate:.2%} vs base {estimate.baseline_rate:.2%} "
          f"(RR {estimate.relative_risk:.2f}, method={estimate.method.value}, n_eff={estimate.effective_sample_size:,})")

    # --- REPORTING ---
    from collision_risk.exploration.risk_charts import RiskChartRenderer
    from collision_risk.features.event_flow import build_event_flow
    from collision_risk.features.time_grid import build_month_hour_grid, build_weekday_hour_grid
    charts = RiskChartRenderer(Config.OUTPUT_DIR_RISK)
    charts.plot_factor_ranking(factors)
    charts.plot_month_hour_heatmap(build_month_hour_grid(records))
    charts.plot_weekday_hour_heatmap(build_weekday_hour_grid(records))
    charts.plot_event_flow(build_event_flow(records))
    charts.plot_estimate_comparison(estimate)

    print("\n" + "=" * 80)
    print("  ANALYSIS COMPLETE")
    print(f"  All outputs saved to: {Config.OUTPUT_DIR_RISK}")
    print("=" * 80)


if __name__ == "__main__":
    main()
