"""
Collision records and their tabular view.

A Record is one collision event as handed over by the loader. Records are
frozen; the statistics modules work on a pandas frame derived from them
(one cleaned column per dimension) and never write back.
"""
from dataclasses import dataclass, field
from datetime import date as date_type, datetime
from types import MappingProxyType
from typing import Mapping, Optional

import pandas as pd

from collision_risk.features.dimensions import CATEGORY_DIMENSIONS, resolve_dimensions


@dataclass(frozen=True)
class Record:
    injured: bool
    date: Optional[date_type] = None
    hour: Optional[int] = None
    day_of_week: Optional[int] = None
    categories: Mapping[str, Optional[str]] = field(default_factory=dict)

    def __post_init__(self):
        object.__setattr__(self, "categories", MappingProxyType(dict(self.categories)))


def sunday_first_weekday(day):
    """0 = Sunday ... 6 = Saturday, the convention used by the dashboard."""
    if day is None:
        return None
    return (day.weekday() + 1) % 7


def make_record(injured, date=None, hour=None, **categories):
    """Build a Record from keyword categories (borough=..., factor1=..., ...)."""
    known = {d.value for d in CATEGORY_DIMENSIONS}
    unknown = set(categories) - known
    if unknown:
        raise TypeError(f"Unknown category fields: {sorted(unknown)}")
    if isinstance(date, datetime):
        date = date.date()
    return Record(
        injured=bool(injured),
        date=date,
        hour=hour,
        day_of_week=sunday_first_weekday(date),
        categories=categories,
    )


def records_to_frame(records, dimensions=None) -> pd.DataFrame:
    """One row per record: `injured` plus a cleaned column per dimension."""
    dims = resolve_dimensions(dimensions)
    data = {"injured": pd.Series([bool(r.injured) for r in records], dtype=bool)}
    for dim in dims:
        # object dtype keeps absent values as None under every pandas version
        data[dim.value] = pd.Series([dim.value_of(r) for r in records], dtype=object)
    return pd.DataFrame(data, columns=["injured"] + [d.value for d in dims])


def _optional_int(value):
    if value is None or pd.isna(value):
        return None
    return int(value)


def records_from_frame(df: pd.DataFrame):
    """
    Convert a loader frame into records.

    Expected columns: `injured`, `crash_date`, `hour` and any of the
    category keys (borough, factor1, ...). Missing category columns are
    treated as absent for every row.
    """
    category_cols = [d.value for d in CATEGORY_DIMENSIONS if d.value in df.columns]
    records = []
    for row in df.to_dict("records"):
        crash_date = row.get("crash_date")
        if crash_date is None or pd.isna(crash_date):
            crash_date = None
        elif isinstance(crash_date, datetime):
            crash_date = crash_date.date()
        elif hasattr(crash_date, "to_pydatetime"):
            crash_date = crash_date.to_pydatetime().date()

        hour = _optional_int(row.get("hour"))
        if hour is not None and not 0 <= hour <= 23:
            hour = None

        categories = {}
        for col in category_cols:
            value = row[col]
            categories[col] = None if value is None or pd.isna(value) else str(value)

        records.append(Record(
            injured=bool(row.get("injured", False)),
            date=crash_date,
            hour=hour,
            day_of_week=sunday_first_weekday(crash_date),
            categories=categories,
        ))
    return records
