"""
MISSION: The Estimation Layer.
Turns a partial selection of category values into one injury-risk estimate.

Three candidates are computed for every selection:
1. Exact match - shrunk injury rate of the crashes matching every selected value.
2. Backoff     - base odds multiplied by each selected value's clamped
                 marginal odds ratio, mapped back through the logistic link.
3. Blend       - exact and backoff mixed by w = n / (n + blend_prior).

Which one is reported depends on how many crashes match exactly.
"""
import math
from dataclasses import dataclass, field
from enum import Enum
from typing import List

from collision_risk.config import Config
from collision_risk.features.dimensions import Dimension
from collision_risk.features.marginals import odds, shrink_rate
from collision_risk.features.records import records_to_frame


class EstimateMethod(str, Enum):
    EXACT = "exact"
    BLEND = "blend"
    BACKOFF = "backoff"


@dataclass(frozen=True)
class FactorContribution:
    dimension: Dimension
    value: str
    odds_ratio: float
    applied_odds_ratio: float
    sample_size: int

    def as_payload(self):
        return {
            "factor": self.dimension.label,
            "key": self.dimension.value,
            "value": self.value,
            "or": self.odds_ratio,
            "orApplied": self.applied_odds_ratio,
            "n": self.sample_size,
        }


@dataclass(frozen=True)
class Estimate:
    exact_match_count: int
    exact_match_injured: int
    estimated_rate: float
    baseline_rate: float
    relative_risk: float
    method: EstimateMethod
    effective_sample_size: int
    contributing_factors: List[FactorContribution] = field(default_factory=list)

    def as_payload(self):
        """Field names expected by the summary and comparison renderers."""
        return {
            "rate": self.estimated_rate,
            "baseRate": self.baseline_rate,
            "rr": self.relative_risk,
            "method": self.method.value,
            "n": self.exact_match_count,
            "injured": self.exact_match_injured,
            "nEff": self.effective_sample_size,
            "components": [c.as_payload() for c in self.contributing_factors],
        }


def clean_selection(selection):
    """
    Resolve dimension keys and normalise the chosen values.

    Unknown dimension names raise UnknownDimensionError; values that clean
    to None are dropped (the dimension stays a wildcard).
    """
    chosen = {}
    for key, raw in (selection or {}).items():
        dim = Dimension.resolve(key)
        value = dim.clean(raw)
        if value is not None:
            chosen[dim] = value
    return chosen


def clamp(value, low, high):
    return min(high, max(low, value))


def _round_half_up(x):
    return int(math.floor(x + 0.5))


def estimate_risk(
    selection,
    records,
    marginals,
    prior_strength=Config.PRIOR_STRENGTH,
    min_exact_matches=Config.MIN_EXACT_MATCHES,
    blend_prior=Config.BLEND_PRIOR,
    odds_ratio_floor=Config.ODDS_RATIO_FLOOR,
    odds_ratio_ceiling=Config.ODDS_RATIO_CEILING,
) -> Estimate:
    """
    Estimate the injury rate for a (partial) selection of category values.

    Args:
        selection: mapping of dimension (enum or key) -> value or None
        records: the record set the marginals were built from
        marginals: MarginalStatistics from build_marginals
        prior_strength: EB pseudo-count used for the exact-match rate
        min_exact_matches: exact matches needed to trust the exact rate alone
        blend_prior: pseudo-count weighting exact against backoff
        odds_ratio_floor, odds_ratio_ceiling: clamp for each marginal odds ratio

    Returns:
        Estimate with the chosen method and the marginal factors applied.
    """
    if prior_strength < 0 or blend_prior < 0:
        raise ValueError("prior_strength and blend_prior must be >= 0")
    if odds_ratio_floor <= 0 or odds_ratio_floor > odds_ratio_ceiling:
        raise ValueError(
            f"Invalid odds ratio clamp [{odds_ratio_floor}, {odds_ratio_ceiling}]"
        )

    chosen = clean_selection(selection)
    base_rate = marginals.base_rate

    # Step 1: exact match
    n = 0
    a = 0
    if records:
        df = records_to_frame(records, list(chosen))
        mask = None
        for dim, value in chosen.items():
            hit = df[dim.value] == value
            mask = hit if mask is None else (mask & hit)
        matched = df if mask is None else df[mask]
        n = len(matched)
        a = int(matched["injured"].sum()) if n else 0
    exact_rate = shrink_rate(a, n, base_rate, prior_strength)

    # Step 2: backoff from marginal odds ratios
    product = 1.0
    used_sample = 0
    contributions = []
    for dim, value in chosen.items():
        entry = marginals.entry(dim, value)
        if entry is None:
            continue
        applied = clamp(entry.odds_ratio, odds_ratio_floor, odds_ratio_ceiling)
        product *= applied
        used_sample += entry.sample_size
        contributions.append(FactorContribution(
            dimension=dim,
            value=value,
            odds_ratio=entry.odds_ratio,
            applied_odds_ratio=applied,
            sample_size=entry.sample_size,
        ))
    combined_odds = odds(base_rate) * product
    backoff_rate = combined_odds / (1.0 + combined_odds)

    # Step 3: pick the method
    if n >= min_exact_matches:
        rate = exact_rate
        method = EstimateMethod.EXACT
        n_eff = n
    elif n > 0 and math.isfinite(backoff_rate):
        w = n / float(n + blend_prior)
        rate = w * exact_rate + (1.0 - w) * backoff_rate
        method = EstimateMethod.BLEND
        n_eff = _round_half_up(n + (1.0 - w) * blend_prior)
    else:
        rate = backoff_rate if math.isfinite(backoff_rate) else base_rate
        method = EstimateMethod.BACKOFF
        n_eff = used_sample

    relative = rate / base_rate if base_rate > 0 else 1.0

    return Estimate(
        exact_match_count=n,
        exact_match_injured=a,
        estimated_rate=rate,
        baseline_rate=base_rate,
        relative_risk=relative,
        method=method,
        effective_sample_size=n_eff,
        contributing_factors=contributions,
    )
