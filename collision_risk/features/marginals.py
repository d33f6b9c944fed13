"""
MISSION: The Marginal Layer.
Per-dimension injury statistics with Empirical-Bayes shrinkage.

Every observed category value gets its sample size, injured count, a rate
pulled toward the dataset base rate by a pseudo-count prior, and the odds
ratio of that shrunk rate against the base rate. The risk estimator
combines these odds ratios when an exact match is too thin.
"""
from collections import OrderedDict
from dataclasses import dataclass, field
from typing import Dict, Optional

from collision_risk.config import Config
from collision_risk.features.dimensions import Dimension, resolve_dimensions
from collision_risk.features.records import records_to_frame


@dataclass(frozen=True)
class MarginalEntry:
    sample_size: int
    injured_size: int
    shrunk_rate: float
    odds_ratio: float


@dataclass
class MarginalStatistics:
    base_rate: float
    total_count: int
    injured_count: int
    prior_strength: float
    per_dimension: Dict[Dimension, Dict[str, MarginalEntry]] = field(default_factory=dict)

    def entry(self, dimension, value) -> Optional[MarginalEntry]:
        dim = Dimension.resolve(dimension)
        return self.per_dimension.get(dim, {}).get(value)


def base_rate_of(total, injured):
    return injured / total if total > 0 else 0.0


def shrink_rate(injured, n, base_rate, prior_strength=Config.PRIOR_STRENGTH):
    """(a + k*base) / (n + k); falls back to the base rate when n + k is 0."""
    denom = n + prior_strength
    if denom <= 0:
        return base_rate
    return (injured + prior_strength * base_rate) / float(denom)


def odds(rate, eps=Config.EPSILON):
    return rate / max(eps, 1.0 - rate)


def odds_ratio(rate, base_rate, eps=Config.EPSILON):
    return odds(rate, eps) / max(eps, odds(base_rate, eps))


def build_marginals(records, dimensions=None, prior_strength=Config.PRIOR_STRENGTH) -> MarginalStatistics:
    """
    Build marginal statistics for each requested dimension.

    Args:
        records: sequence of Record
        dimensions: dimension keys to track (default: all)
        prior_strength: pseudo-count k of the Empirical-Bayes prior

    Returns:
        MarginalStatistics; an empty record set yields base_rate 0 and
        empty per-dimension maps.
    """
    if prior_strength < 0:
        raise ValueError(f"prior_strength must be >= 0, got {prior_strength}")
    dims = resolve_dimensions(dimensions)

    df = records_to_frame(records, dims)
    total = len(df)
    injured = int(df["injured"].sum()) if total else 0
    base_rate = base_rate_of(total, injured)

    stats = MarginalStatistics(
        base_rate=base_rate,
        total_count=total,
        injured_count=injured,
        prior_strength=prior_strength,
    )

    for dim in dims:
        per_value = {}
        if total:
            grouped = df.groupby(dim.value, sort=False, dropna=True)["injured"].agg(["size", "sum"])
            for value, row in grouped.iterrows():
                n = int(row["size"])
                a = int(row["sum"])
                rate = shrink_rate(a, n, base_rate, prior_strength)
                per_value[value] = MarginalEntry(
                    sample_size=n,
                    injured_size=a,
                    shrunk_rate=rate,
                    odds_ratio=odds_ratio(rate, base_rate),
                )
        stats.per_dimension[dim] = per_value

    return stats


class MarginalsMemo:
    """
    Caller-owned memo for build_marginals, keyed on the record set's identity.

    The record sequence is held alongside its result so the identity key
    cannot be recycled by a different object while the entry is alive.
    At most `maxsize` entries are kept; the least recently used goes first.
    """

    def __init__(self, maxsize=1):
        if maxsize < 1:
            raise ValueError(f"maxsize must be >= 1, got {maxsize}")
        self.maxsize = maxsize
        self._entries = OrderedDict()
        self.hits = 0
        self.misses = 0

    def __len__(self):
        return len(self._entries)

    def get(self, records, dimensions=None, prior_strength=Config.PRIOR_STRENGTH) -> MarginalStatistics:
        key = (id(records), resolve_dimensions(dimensions), prior_strength)
        cached = self._entries.get(key)
        if cached is not None and cached[0] is records:
            self._entries.move_to_end(key)
            self.hits += 1
            return cached[1]
        self.misses += 1
        result = build_marginals(records, dimensions, prior_strength)
        self._entries[key] = (records, result)
        self._entries.move_to_end(key)
        while len(self._entries) > self.maxsize:
            self._entries.popitem(last=False)
        return result

    def clear(self):
        self._entries.clear()
