import math

import pytest

from collision_risk.features.dimensions import Dimension, UnknownDimensionError
from collision_risk.features.marginals import (
    MarginalsMemo,
    build_marginals,
    odds_ratio,
    shrink_rate,
)
from collision_risk.features.records import make_record
from tests.conftest import group


def test_base_rate_and_shrunk_rate_scenario(baseline_records):
    stats = build_marginals(baseline_records, ["borough"])
    assert stats.total_count == 1000
    assert stats.injured_count == 100
    assert stats.base_rate == pytest.approx(0.1)

    bronx = stats.entry("borough", "Bronx")
    assert bronx.sample_size == 40
    assert bronx.injured_size == 20
    assert bronx.shrunk_rate == pytest.approx(25 / 90)
    assert bronx.shrunk_rate == pytest.approx(0.2778, abs=1e-4)


def test_odds_ratio_against_base(baseline_records):
    stats = build_marginals(baseline_records, ["borough"])
    bronx = stats.entry(Dimension.BOROUGH, "Bronx")
    rate = 25 / 90
    expected = (rate / (1 - rate)) / (0.1 / 0.9)
    assert bronx.odds_ratio == pytest.approx(expected)
    assert stats.entry("borough", "Queens").odds_ratio < 1


def test_empty_group_shrinks_to_base_exactly():
    assert shrink_rate(0, 0, 0.25, 50) == 0.25
    assert shrink_rate(0, 0, 0.1, 50) == pytest.approx(0.1, abs=0, rel=1e-15)


def test_zero_prior_with_empty_group_falls_back_to_base():
    assert shrink_rate(0, 0, 0.3, 0) == 0.3


def test_large_group_converges_to_raw_rate():
    assert shrink_rate(300_000, 1_000_000, 0.1, 50) == pytest.approx(0.3, abs=1e-4)


def test_shrunk_rate_is_monotonic_in_injured_count():
    rates = [shrink_rate(a, 40, 0.1, 50) for a in range(41)]
    assert all(x < y for x, y in zip(rates, rates[1:]))


def test_empty_record_set():
    stats = build_marginals([])
    assert stats.base_rate == 0
    assert stats.total_count == 0
    assert all(entries == {} for entries in stats.per_dimension.values())
    assert set(stats.per_dimension) == set(Dimension)


def test_base_rate_is_a_probability(mixed_records):
    stats = build_marginals(mixed_records)
    assert 0 <= stats.base_rate <= 1


def test_absent_values_do_not_form_a_category():
    records = group(10, 2, borough="Queens") + group(5, 1, borough="Unspecified") + group(5, 1)
    stats = build_marginals(records, ["borough"])
    assert set(stats.per_dimension[Dimension.BOROUGH]) == {"Queens"}
    assert stats.total_count == 20


def test_normalized_values_group_together():
    records = [make_record(True, driver_sex="M"), make_record(False, driver_sex="Male"),
               make_record(False, vehicle_type="SUV"), make_record(True, vehicle_type="Station Wagon/Sport Utility Vehicle")]
    stats = build_marginals(records, ["driver_sex", "vehicle_type"])
    assert stats.entry("driver_sex", "Male").sample_size == 2
    assert stats.entry("vehicle_type", "SUV").sample_size == 2


def test_all_injured_stays_finite():
    stats = build_marginals(group(10, 10, borough="Bronx") + group(5, 5, borough="Queens"), ["borough"])
    assert stats.base_rate == 1.0
    for entry in stats.per_dimension[Dimension.BOROUGH].values():
        assert math.isfinite(entry.odds_ratio)
        assert entry.odds_ratio > 0


def test_odds_ratio_epsilon_guards():
    assert math.isfinite(odds_ratio(1.0, 0.0))
    assert odds_ratio(0.2, 0.2) == pytest.approx(1.0)


def test_prior_strength_is_overridable(baseline_records):
    stats = build_marginals(baseline_records, ["borough"], prior_strength=0)
    assert stats.entry("borough", "Bronx").shrunk_rate == pytest.approx(0.5)


def test_negative_prior_strength_rejected(baseline_records):
    with pytest.raises(ValueError):
        build_marginals(baseline_records, prior_strength=-1)


def test_unknown_dimension_rejected(baseline_records):
    with pytest.raises(UnknownDimensionError):
        build_marginals(baseline_records, ["precinct"])


def test_memo_reuses_result_for_same_record_set(baseline_records):
    memo = MarginalsMemo()
    first = memo.get(baseline_records)
    second = memo.get(baseline_records)
    assert first is second
    assert memo.hits == 1 and memo.misses == 1

    # A copy is a different record set, so it is computed again
    third = memo.get(list(baseline_records))
    assert third is not first
    assert memo.misses == 2


def test_memo_matches_cold_recomputation(mixed_records):
    memo = MarginalsMemo()
    assert memo.get(mixed_records) == build_marginals(mixed_records)
    memo.clear()
    assert memo.get(mixed_records) == build_marginals(mixed_records)


def test_memo_keeps_only_latest_record_set_by_default(baseline_records, mixed_records):
    memo = MarginalsMemo()
    memo.get(baseline_records)
    memo.get(mixed_records)
    assert len(memo) == 1

    memo.get(baseline_records)
    assert memo.hits == 0 and memo.misses == 3


def test_memo_evicts_least_recently_used(baseline_records, mixed_records):
    other = list(baseline_records[:500])
    memo = MarginalsMemo(maxsize=2)
    memo.get(baseline_records)
    memo.get(mixed_records)
    memo.get(baseline_records)  # refresh, mixed_records is now the oldest
    memo.get(other)
    assert len(memo) == 2
    assert memo.hits == 1

    memo.get(baseline_records)
    assert memo.hits == 2
    memo.get(mixed_records)
    assert memo.misses == 4


def test_memo_rejects_empty_capacity():
    with pytest.raises(ValueError):
        MarginalsMemo(maxsize=0)
