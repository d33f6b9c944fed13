"""
Calendar aggregations behind the heatmap views.

`build_month_hour_grid` rolls collisions up by (calendar month, hour of day),
zero-filling every month between the first and last observed one.
`build_weekday_hour_grid` does the same over (day of week, hour) and keeps
the injury rate of each cell.
"""
from dataclasses import dataclass, field
from datetime import date
from typing import List

import pandas as pd

HOURS = list(range(24))
WEEKDAY_NAMES = ["Sunday", "Monday", "Tuesday", "Wednesday", "Thursday", "Friday", "Saturday"]


@dataclass(frozen=True)
class GridCell:
    month: date
    hour: int
    count: int


@dataclass
class TimeGrid:
    months: List[date] = field(default_factory=list)
    hours: List[int] = field(default_factory=list)
    cells: List[GridCell] = field(default_factory=list)
    global_max: int = 0

    def to_frame(self) -> pd.DataFrame:
        """Months as rows, hours as columns (the heatmap layout)."""
        if not self.cells:
            return pd.DataFrame(index=pd.Index([], name="month"), columns=HOURS, dtype=int)
        df = pd.DataFrame([(c.month, c.hour, c.count) for c in self.cells],
                          columns=["month", "hour", "count"])
        return df.pivot(index="month", columns="hour", values="count")


def build_month_hour_grid(records) -> TimeGrid:
    dated = [(r.date, r.hour) for r in records
             if r.date is not None and r.hour is not None and 0 <= r.hour <= 23]
    if not dated:
        return TimeGrid()

    df = pd.DataFrame(dated, columns=["date", "hour"])
    df["month"] = pd.to_datetime(df["date"]).dt.to_period("M")
    counts = df.groupby(["month", "hour"]).size()

    months = pd.period_range(df["month"].min(), df["month"].max(), freq="M")
    cells = []
    global_max = 0
    for period in months:
        month_start = period.start_time.date()
        for h in HOURS:
            c = int(counts.get((period, h), 0))
            cells.append(GridCell(month=month_start, hour=h, count=c))
            if c > global_max:
                global_max = c

    return TimeGrid(
        months=[p.start_time.date() for p in months],
        hours=list(HOURS),
        cells=cells,
        global_max=global_max,
    )


def build_weekday_hour_grid(records) -> pd.DataFrame:
    """
    Collisions and injuries per (day_of_week, hour), 7 x 24 rows.

    Columns: day_of_week (0 = Sunday), day_name, hour, crash_count,
    injured_count, injury_rate (0 for empty cells).
    """
    rows = [(r.day_of_week, r.hour, bool(r.injured)) for r in records
            if r.day_of_week is not None and r.hour is not None and 0 <= r.hour <= 23]
    observed = pd.DataFrame(rows, columns=["day_of_week", "hour", "injured"])

    full = pd.MultiIndex.from_product([range(7), HOURS], names=["day_of_week", "hour"])
    if observed.empty:
        grid = pd.DataFrame(index=full, data={"crash_count": 0, "injured_count": 0})
    else:
        grid = (observed.groupby(["day_of_week", "hour"])["injured"]
                .agg(crash_count="size", injured_count="sum")
                .reindex(full, fill_value=0))
    grid = grid.reset_index()
    grid["crash_count"] = grid["crash_count"].astype(int)
    grid["injured_count"] = grid["injured_count"].astype(int)
    grid["day_name"] = grid["day_of_week"].map(lambda d: WEEKDAY_NAMES[d])
    grid["injury_rate"] = (grid["injured_count"] / grid["crash_count"].where(grid["crash_count"] > 0)).fillna(0.0)
    return grid[["day_of_week", "day_name", "hour", "crash_count", "injured_count", "injury_rate"]]
