# SPDX-FileCopyrightText: 2025 Yuzuki Fujita
# SPDX-License-Identifier: BSD-3-Clause

import random

import pytest

from cov_harness.stats_covariance import (
    VARIANTS,
    CovarianceAccumulator,
    EmptyAccumulatorError,
    KahanCovariance,
    NaiveCovariance,
    WelfordCovariance,
    make_accumulators,
)


def two_pass_covariance(xs, ys):
    n = len(xs)
    mx = sum(xs) / n
    my = sum(ys) / n
    return sum((x - mx) * (y - my) for x, y in zip(xs, ys)) / n


def test_welford_small_example():
    acc = WelfordCovariance()
    for v in (1.0, 2.0, 3.0):
        acc.add(v, v)

    assert acc.covariance() == 2 / 3


@pytest.mark.parametrize("cls", VARIANTS)
def test_small_example_all_variants(cls):
    acc = cls()
    for v in (1.0, 2.0, 3.0):
        acc.add(v, v)

    assert acc.n == 3
    assert acc.covariance() == pytest.approx(2 / 3)


@pytest.mark.parametrize("cls", VARIANTS)
def test_empty_accumulator_raises(cls):
    acc = cls()
    with pytest.raises(EmptyAccumulatorError):
        acc.covariance()


def test_empty_error_is_value_error():
    with pytest.raises(ValueError, match="Welford"):
        WelfordCovariance().covariance()


@pytest.mark.parametrize("cls", VARIANTS)
def test_single_sample_is_zero(cls):
    acc = cls()
    acc.add(5.0, -3.0)

    assert acc.covariance() == pytest.approx(0.0, abs=1e-12)


@pytest.mark.parametrize("cls", VARIANTS)
def test_read_is_idempotent(cls):
    rng = random.Random(2)
    acc = cls()
    for _ in range(1000):
        acc.add(rng.gauss(1e5, 3.0), rng.gauss(-1e5, 2.0))

    first = acc.covariance()
    second = acc.covariance()

    assert first == second
    assert acc.n == 1000


@pytest.mark.parametrize("cls", VARIANTS)
def test_matches_two_pass_on_random_data(cls):
    rng = random.Random(3)
    xs = [rng.uniform(-10.0, 10.0) for _ in range(500)]
    ys = [0.5 * x + rng.gauss(0.0, 1.0) for x in xs]

    acc = cls()
    for x, y in zip(xs, ys):
        acc.add(x, y)

    assert acc.covariance() == pytest.approx(two_pass_covariance(xs, ys), rel=1e-9)


def test_negative_covariance():
    acc = WelfordCovariance()
    for x, y in ((1.0, 3.0), (2.0, 2.0), (3.0, 1.0)):
        acc.add(x, y)

    assert acc.covariance() == pytest.approx(-2 / 3)


def test_names():
    assert [acc.name() for acc in make_accumulators()] == ["Dummy", "Kahan", "Welford"]


def test_make_accumulators_returns_fresh_instances():
    first = make_accumulators()
    second = make_accumulators()

    assert [type(a) for a in first] == [NaiveCovariance, KahanCovariance, WelfordCovariance]
    assert all(isinstance(a, CovarianceAccumulator) for a in first)
    assert all(a is not b for a, b in zip(first, second))

    first[0].add(1.0, 1.0)
    assert second[0].n == 0


def test_cancellation_with_large_mean():
    mean = 1e7
    naive = NaiveCovariance()
    welford = WelfordCovariance()
    d = 1.0
    for _ in range(50000):
        d = -d
        naive.add(mean + d, mean + d)
        welford.add(mean + d, mean + d)

    assert welford.covariance() == pytest.approx(1.0, rel=1e-6)
    assert abs(naive.covariance() - 1.0) > abs(welford.covariance() - 1.0)
