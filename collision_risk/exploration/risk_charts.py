import os
import math
from pathlib import Path

import matplotlib
import matplotlib.pyplot as plt
import pandas as pd
import seaborn as sns

from collision_risk.config import Config
from collision_risk.features.event_flow import INJURED

# Set global formatting: No scientific notation
matplotlib.rcParams['axes.formatter.useoffset'] = False


class RiskChartRenderer:
    """Static renderings of the risk engine's outputs (ranked factors, grids, estimates)."""

    def __init__(self, output_dir=None):
        self.output_dir = Path(output_dir) if output_dir else Config.OUTPUT_DIR_RISK
        os.makedirs(self.output_dir, exist_ok=True)

    def _save_plot(self, fig, filename: str):
        """Internal helper to standardize how plots are saved."""
        if not filename.endswith(('.png', '.jpg', '.pdf')):
            filename += '.png'

        save_path = self.output_dir / filename
        fig.tight_layout()
        fig.savefig(save_path, dpi=150, bbox_inches='tight')
        plt.close(fig)
        print("Plot saved!")
        return save_path

    def plot_factor_ranking(self, results, filename="plot_factor_ranking"):
        """Horizontal bars of chi-square per factor, annotated with the risk ratio."""
        if not results:
            print("No factors to plot.")
            return None

        df = pd.DataFrame([r.as_payload() for r in results])
        df['label'] = df['factor'] + ': ' + df['value']

        fig, ax = plt.subplots(figsize=(12, max(4, 0.45 * len(df) + 1.5)))
        sns.barplot(data=df, x='chi2', y='label', hue='factor', dodge=False, ax=ax, palette='RdYlBu_r')

        for i, row in df.iterrows():
            rr = "inf" if math.isinf(row['rr']) else f"{row['rr']:.2f}"
            ax.text(row['chi2'], i, f"  RR {rr}  (n={row['n']:,})", va='center', fontsize=8)

        ax.set_title("Factors Most Associated with Injury (Chi-square)", fontsize=14, fontweight='bold')
        ax.set_xlabel("Chi-square statistic")
        ax.set_ylabel("")
        ax.legend(title="Dimension", loc='lower right', fontsize=8)
        sns.despine(ax=ax)
        return self._save_plot(fig, filename)

    def plot_month_hour_heatmap(self, grid, filename="plot_month_hour_heatmap"):
        """Collisions per (month, hour) as produced by build_month_hour_grid."""
        if not grid.cells:
            print("No dated collisions to plot.")
            return None

        pivot = grid.to_frame()
        pivot.index = [m.strftime('%b %Y') for m in pivot.index]

        fig, ax = plt.subplots(figsize=(14, max(4, 0.3 * len(pivot) + 2)))
        sns.heatmap(pivot, cmap="YlOrRd", ax=ax, vmin=0, vmax=max(1, grid.global_max),
                    cbar_kws={'label': 'Collisions'})
        ax.set_title("Collisions by Month and Hour of Day", fontsize=14, fontweight='bold')
        ax.set_xlabel("Hour of Day")
        ax.set_ylabel("Month")
        return self._save_plot(fig, filename)

    def plot_estimate_comparison(self, estimate, filename="plot_estimate_comparison"):
        """Estimated injury rate against the dataset baseline."""
        df = pd.DataFrame({
            'series': ['Baseline', f"Selection ({estimate.method.value})"],
            'rate': [estimate.baseline_rate, estimate.estimated_rate],
        })

        fig, ax = plt.subplots(figsize=(8, 5))
        sns.barplot(data=df, x='series', y='rate', hue='series', dodge=False, ax=ax,
                    palette=['#95a5a6', '#e74c3c'], legend=False)
        for i, rate in enumerate(df['rate']):
            ax.text(i, rate, f"{rate:.1%}", ha='center', va='bottom', fontweight='bold')

        ax.set_title(f"Injury Risk: RR {estimate.relative_risk:.2f} (n_eff={estimate.effective_sample_size:,})",
                     fontsize=13, fontweight='bold')
        ax.set_xlabel("")
        ax.set_ylabel("Injury rate")
        ax.yaxis.set_major_formatter(plt.FuncFormatter(lambda y, p: f"{y:.0%}"))
        sns.despine(ax=ax)
        return self._save_plot(fig, filename)

    def plot_weekday_hour_heatmap(self, grid, value='injury_rate', filename="plot_weekday_hour_heatmap"):
        """Day-of-week x hour matrix from build_weekday_hour_grid (injury_rate or crash_count)."""
        if grid.empty or grid['crash_count'].sum() == 0:
            print("No dated collisions to plot.")
            return None

        pivot = grid.pivot(index='day_of_week', columns='hour', values=value)
        names = grid.drop_duplicates('day_of_week').set_index('day_of_week')['day_name']
        pivot.index = [names[d] for d in pivot.index]

        is_rate = value == 'injury_rate'
        fig, ax = plt.subplots(figsize=(14, 5))
        sns.heatmap(pivot, cmap="YlOrRd", ax=ax, vmin=0,
                    cbar_kws={'label': 'Injury rate' if is_rate else 'Collisions'})
        ax.set_title("Injury Rate by Day of Week and Hour" if is_rate else "Collisions by Day of Week and Hour",
                     fontsize=14, fontweight='bold')
        ax.set_xlabel("Hour of Day")
        ax.set_ylabel("")
        return self._save_plot(fig, filename)

    def plot_event_flow(self, flow, filename="plot_event_flow"):
        """Pre-crash action x contributing factor counts, annotated with each cell's injury share."""
        if not flow.links:
            print("No collisions to plot.")
            return None

        df = pd.DataFrame([
            {'pre_crash': l.pre_crash, 'factor': l.factor,
             'count': l.count, 'injured': l.count if l.outcome == INJURED else 0}
            for l in flow.links
        ])
        counts = df.pivot_table(index='pre_crash', columns='factor', values='count', aggfunc='sum', fill_value=0)
        injured = df.pivot_table(index='pre_crash', columns='factor', values='injured', aggfunc='sum', fill_value=0)

        rows = sorted(counts.index, key=lambda k: -flow.left.get(k, 0))
        cols = sorted(counts.columns, key=lambda k: -flow.middle.get(k, 0))
        counts = counts.loc[rows, cols]
        injured = injured.loc[rows, cols]

        share = (injured / counts.where(counts > 0)).fillna(0.0)
        labels = counts.astype(int).astype(str) + "\n" + (share * 100).round().astype(int).astype(str) + "%"

        fig, ax = plt.subplots(figsize=(max(8, 1.4 * len(cols) + 3), max(4, 0.8 * len(rows) + 2)))
        sns.heatmap(counts, annot=labels.values, fmt="", cmap="Blues", ax=ax,
                    cbar_kws={'label': 'Collisions'}, annot_kws={'fontsize': 7})
        ax.set_title("Crash Flow: Pre-crash Action → Contributing Factor (cell: count / % injured)",
                     fontsize=13, fontweight='bold')
        ax.set_xlabel("Contributing factor")
        ax.set_ylabel("Pre-crash action")
        plt.setp(ax.get_xticklabels(), rotation=45, ha='right')
        return self._save_plot(fig, filename)
