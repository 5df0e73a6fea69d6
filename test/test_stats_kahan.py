# SPDX-FileCopyrightText: 2025 Yuzuki Fujita
# SPDX-License-Identifier: BSD-3-Clause

import math
import random

from cov_harness.stats_kahan import KahanSum


def test_empty_sum_is_zero():
    assert KahanSum().value() == 0.0


def test_small_addends_are_not_lost():
    s = KahanSum()
    naive = 1e16
    s.add(1e16)
    for _ in range(10):
        s.add(1.0)
        naive += 1.0

    assert s.value() == 1e16 + 10
    assert naive != 1e16 + 10


def test_matches_exact_sum():
    rng = random.Random(0)
    values = [rng.uniform(-1000.0, 1000.0) for _ in range(10000)]

    s = KahanSum()
    for v in values:
        s.add(v)

    assert abs(s.value() - math.fsum(values)) <= 1e-10


def test_round_trip_returns_to_zero():
    rng = random.Random(1)
    values = [rng.uniform(-1000.0, 1000.0) for _ in range(5000)]

    s = KahanSum()
    for v in values:
        s.add(v)
    for v in reversed(values):
        s.add(-v)

    assert abs(s.value()) <= 1e-10


def test_merge_goes_through_add():
    a = KahanSum()
    b = KahanSum()
    a.add(1e16)
    for _ in range(4):
        b.add(1.0)

    a.merge(b)

    assert a.value() == 1e16 + 4
    # merge は相手を変更しない
    assert b.value() == 4.0
