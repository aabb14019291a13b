"""Monte Carlo normal draw used to vary rated powers, thresholds and baseloads."""
from __future__ import annotations

import logging
import math

import numpy as np

logger = logging.getLogger(__name__)

_SQRT_2PI = math.sqrt(2.0 * math.pi)


def sample_normal(
    rng: np.random.Generator,
    mean: float,
    std_dev: float,
    *,
    batch_size: int = 256,
    max_batches: int = 10_000,
) -> float:
    """
    Draw one value by acceptance-rejection against the Gaussian density.

    Candidates are uniform on [mean - 4 sd, mean + 4 sd) and a candidate is
    accepted when an independent uniform draw is <= its density. Candidates
    are drawn batch_size at a time and the first accepted one, in draw order,
    is returned, so the result has the same distribution as drawing one
    candidate at a time.

    Note the density exceeds 1 near the mean when sd < ~0.4, which flattens
    the distribution there. This is the behaviour of the published model.

    Args:
        rng: Generator every draw comes from
        mean: Distribution mean; exactly 0 returns 0 without drawing
        std_dev: Standard deviation; <= 0 returns the mean
        batch_size: Candidates drawn per batch
        max_batches: Batches tried before falling back to rng.normal

    Returns:
        The sampled value
    """
    if mean == 0:
        return 0.0
    if std_dev <= 0:
        return float(mean)

    mean = float(mean)
    std_dev = float(std_dev)
    lower = mean - 4.0 * std_dev
    width = 8.0 * std_dev
    scale = 1.0 / (std_dev * _SQRT_2PI)

    for _ in range(max_batches):
        guesses = lower + rng.random(batch_size) * width
        density = scale * np.exp(-((guesses - mean) ** 2) / (2.0 * std_dev * std_dev))
        accepted = np.flatnonzero(density >= rng.random(batch_size))
        if accepted.size:
            return float(guesses[accepted[0]])

    logger.debug(
        f"Rejection sampling exhausted {max_batches} batches for "
        f"mean={mean}, sd={std_dev}; drawing directly"
    )
    return float(rng.normal(mean, std_dev))
