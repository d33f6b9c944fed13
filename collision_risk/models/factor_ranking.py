"""
MISSION: The Ranking Layer.
Finds the category values that best separate injury from non-injury crashes.

For every (dimension, value) with enough support, a 2x2 table of
injured / not injured against all other crashes is scored with a
chi-square statistic (no continuity correction). Results are ranked by
chi-square, ties broken by group size, and capped at top_n.
"""
import math
from dataclasses import dataclass

from scipy import stats

from collision_risk.config import Config
from collision_risk.features.dimensions import Dimension, resolve_dimensions
from collision_risk.features.records import records_to_frame


@dataclass(frozen=True)
class FactorResult:
    dimension: Dimension
    value: str
    group_size: int
    group_injured: int
    group_rate: float
    other_size: int
    other_injured: int
    other_rate: float
    risk_ratio: float
    chi_square: float
    p_value: float
    base_rate: float

    def as_payload(self):
        """Field names expected by the bar-chart renderer."""
        return {
            "factor": self.dimension.label,
            "key": self.dimension.value,
            "value": self.value,
            "chi2": self.chi_square,
            "pValue": self.p_value,
            "rr": self.risk_ratio,
            "n": self.group_size,
            "injured": self.group_injured,
            "rate": self.group_rate,
            "otherN": self.other_size,
            "otherInjured": self.other_injured,
            "otherRate": self.other_rate,
            "baseRate": self.base_rate,
        }


def chi_square_2x2(a, b, c, d) -> float:
    """
    Pearson chi-square for [[a, b], [c, d]] without Yates correction.

    Uses the closed form n * (ad - bc)^2 / (r1 * r2 * c1 * c2) in integer
    arithmetic, so swapping the two rows gives bit-identical results. A
    table with an empty row or column scores 0, which is what the cell sum
    gives when zero-expectation cells contribute nothing.
    """
    a, b, c, d = int(a), int(b), int(c), int(d)
    r1, r2 = a + b, c + d
    c1, c2 = a + c, b + d
    denom = (r1 * r2) * (c1 * c2)
    if denom <= 0:
        return 0.0
    return (r1 + r2) * (a * d - b * c) ** 2 / denom


def risk_ratio(group_rate, other_rate) -> float:
    if other_rate > 0:
        return group_rate / other_rate
    return math.inf if group_rate > 0 else 1.0


def analyze_factors(
    records,
    dimensions=None,
    min_group_size=Config.MIN_GROUP_SIZE,
    top_n=Config.TOP_N,
):
    """
    Rank (dimension, value) pairs by their association with injury.

    Args:
        records: sequence of Record
        dimensions: dimension keys to scan (default: all)
        min_group_size: values seen fewer times are skipped
        top_n: hard cap on the number of results

    Returns:
        List of FactorResult, chi-square descending. Never longer than top_n.
    """
    if top_n <= 0:
        raise ValueError(f"top_n must be positive, got {top_n}")
    dims = resolve_dimensions(dimensions)
    if not records:
        return []

    df = records_to_frame(records, dims)
    total = len(df)
    injured_total = int(df["injured"].sum())
    base_rate = injured_total / max(1, total)

    results = []
    for dim in dims:
        counts = df.groupby(dim.value, sort=False, dropna=True)["injured"].agg(["size", "sum"])
        for value, row in counts.iterrows():
            n = int(row["size"])
            if n < min_group_size:
                continue
            other_n = total - n
            if other_n <= 0:
                continue

            a = int(row["sum"])
            b = n - a
            c = injured_total - a
            d = other_n - c

            group_rate = a / n
            other_rate = c / other_n
            chi2 = chi_square_2x2(a, b, c, d)

            results.append(FactorResult(
                dimension=dim,
                value=str(value),
                group_size=n,
                group_injured=a,
                group_rate=group_rate,
                other_size=other_n,
                other_injured=c,
                other_rate=other_rate,
                risk_ratio=risk_ratio(group_rate, other_rate),
                chi_square=chi2,
                p_value=float(stats.chi2.sf(chi2, df=1)),
                base_rate=base_rate,
            ))

    results.sort(key=lambda r: (-r.chi_square, -r.group_size))
    return results[:top_n]
