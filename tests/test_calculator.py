from statistics import fmean

import pytest

from pipelines.calculator import (
    InsufficientHistoryError,
    compute_from_levels,
    compute_from_monthly,
    reconstruct_levels,
    round2,
)
from pipelines.model import Observation


def _series(periods, values):
    return [Observation(period=p, value=v) for p, v in zip(periods, values)]


def test_split_levels_give_ten_percent(levels_24):
    periods, values = levels_24

    changes = compute_from_levels(_series(periods, values))

    assert changes.period == "2024-12"
    assert round2(changes.avg12_pct) == 10.00
    assert round2(changes.yoy_pct) == 10.00
    assert changes.monthly_pct == 0.0


def test_avg12_matches_window_formula(months):
    periods = months(2021, 6, 30)
    values = [100 + i * 1.7 + (i % 5) * 0.3 for i in range(30)]

    changes = compute_from_levels(_series(periods, values))

    expected = (fmean(values[-12:]) / fmean(values[-24:-12]) - 1) * 100
    assert round2(changes.avg12_pct) == round2(expected)
    assert changes.yoy_pct == pytest.approx((values[-1] / values[-13] - 1) * 100)
    assert changes.monthly_pct == pytest.approx((values[-1] / values[-2] - 1) * 100)


def test_fewer_than_24_observations_is_rejected(months):
    periods = months(2023, 1, 23)

    with pytest.raises(InsufficientHistoryError):
        compute_from_levels(_series(periods, [100.0] * 23))


def test_trailing_gaps_are_tolerated(levels_24, months):
    periods, values = levels_24
    series = _series(periods, values) + _series(months(2025, 1, 2), [None, None])

    changes = compute_from_levels(series)

    assert changes.period == "2024-12"
    assert round2(changes.avg12_pct) == 10.00


def test_gaps_reduce_usable_history(levels_24):
    periods, values = levels_24
    values = list(values)
    values[3] = None

    with pytest.raises(InsufficientHistoryError):
        compute_from_levels(_series(periods, values))


def test_zero_denominator_window_is_rejected(months):
    periods = months(2023, 1, 24)

    with pytest.raises(InsufficientHistoryError):
        compute_from_levels(_series(periods, [0.0] * 12 + [5.0] * 12))


def test_zero_base_leaves_yoy_absent(months):
    periods = months(2023, 1, 24)
    values = [100.0] * 24
    values[11] = 0.0

    changes = compute_from_levels(_series(periods, values))

    assert changes.yoy_pct is None
    assert changes.monthly_pct == 0.0


def test_empty_series_is_rejected():
    with pytest.raises(InsufficientHistoryError):
        compute_from_levels([])


def test_reconstruct_levels_compounds_from_base():
    assert reconstruct_levels([10.0, -50.0]) == pytest.approx([110.0, 55.0])


def test_constant_monthly_change_compounds(months):
    periods = months(2023, 1, 24)

    changes = compute_from_monthly(_series(periods, [1.0] * 24))

    assert round2(changes.avg12_pct) == 12.68
    assert round2(changes.monthly_pct) == 1.0
    assert round2(changes.yoy_pct) == 12.68


def test_monthly_reconstruction_is_order_sensitive(months):
    periods = months(2023, 1, 24)
    forward = [0.5] * 12 + [2.0] * 12

    ascending = compute_from_monthly(_series(periods, forward))
    descending = compute_from_monthly(_series(periods, list(reversed(forward))))

    assert ascending.avg12_pct > descending.avg12_pct


@pytest.mark.parametrize(
    ("value", "expected"),
    [(10.000000000000009, 10.0), (0.125, 0.13), (-0.125, -0.13), (2.344, 2.34), (-7.0, -7.0)],
)
def test_round2_half_away_from_zero(value, expected):
    assert round2(value) == expected


def test_round2_keeps_none():
    assert round2(None) is None
