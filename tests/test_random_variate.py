import numpy as np

from loadgen.models.random_variate import sample_normal


def test_zero_mean_returns_zero(rng):
    assert sample_normal(rng, 0, 10) == 0.0


def test_non_positive_sd_returns_mean(rng):
    assert sample_normal(rng, 42.0, 0) == 42.0
    assert sample_normal(rng, 42.0, -1) == 42.0


def test_sample_moments(rng):
    draws = np.array([sample_normal(rng, 100.0, 10.0) for _ in range(100_000)])
    assert abs(draws.mean() - 100.0) < 1.0
    assert abs(draws.std() - 10.0) < 1.0


def test_samples_stay_within_four_sd(rng):
    draws = np.array([sample_normal(rng, 5.0, 2.0) for _ in range(5_000)])
    assert draws.min() >= 5.0 - 8.0
    assert draws.max() < 5.0 + 8.0


def test_same_seed_same_value():
    a = sample_normal(np.random.default_rng(7), 60.0, 10.0)
    b = sample_normal(np.random.default_rng(7), 60.0, 10.0)
    assert a == b


def test_exhausted_batches_fall_back_to_direct_draw(rng):
    value = sample_normal(rng, 60.0, 10.0, max_batches=0)
    assert np.isfinite(value)
