"""Domestic lighting model.

Richardson, Thomson, Infield & Delahunty (2009), "Domestic lighting: A
high-resolution energy demand model". Event durations follow Stokes, Rylatt
& Lomas (2004).
"""
from __future__ import annotations

import logging
import math
from typing import Sequence

import numpy as np

from loadgen.errors import DataError, LengthMismatchError
from loadgen.models.calendar import MINUTES_PER_YEAR
from loadgen.models.random_variate import sample_normal

logger = logging.getLogger(__name__)

SMALL = 1.0e-20
OVERRIDE_PROBABILITY = 0.05  # switch-on despite bright daylight

# active occupants -> effective occupancy (shared lighting between occupants)
EFFECTIVE_OCCUPANCY = (0.0, 1.0, 1.528, 1.694, 1.983, 2.094)

# (cumulative probability, lower minutes, upper minutes)
LIGHT_DURATION_BANDS = (
    (0.111111111, 1, 1),
    (0.222222222, 2, 2),
    (0.222222222, 3, 4),
    (0.333333333, 5, 8),
    (0.444444444, 9, 16),
    (0.555555556, 17, 27),
    (0.666666667, 28, 49),
    (0.888888889, 50, 91),
    (1.0, 92, 259),
)


def effective_occupancy(active: int) -> float:
    if active != int(active) or not 0 <= active < len(EFFECTIVE_OCCUPANCY):
        raise DataError(f"Number of active occupants {active} exceeds model limits")
    return EFFECTIVE_OCCUPANCY[int(active)]


def effective_occupancy_series(occupancy: np.ndarray) -> np.ndarray:
    occupancy = np.asarray(occupancy)
    if occupancy.size and (occupancy.min() < 0 or occupancy.max() >= len(EFFECTIVE_OCCUPANCY)):
        bad = occupancy.max() if occupancy.max() >= len(EFFECTIVE_OCCUPANCY) else occupancy.min()
        raise DataError(f"Number of active occupants {bad} exceeds model limits")
    return np.asarray(EFFECTIVE_OCCUPANCY)[occupancy.astype(int)]


def light_duration(rng: np.random.Generator) -> int:
    """Minutes a bulb stays on once switched on."""
    u = rng.random()
    for cumulative, lower, upper in LIGHT_DURATION_BANDS:
        if u < cumulative:
            return int(round(lower + rng.random() * (upper - lower)))
    # u is drawn from [0, 1) so the last band always matches
    _, lower, upper = LIGHT_DURATION_BANDS[-1]
    return upper


class LightingModel:
    def __init__(self, rng: np.random.Generator):
        self.rng = rng

    def generate(
        self,
        irradiance: Sequence[float],
        bulbs: Sequence[float],
        calibration_scalar: float,
        threshold_mean: float,
        threshold_std: float,
        occupancy: Sequence[int],
    ) -> np.ndarray:
        """
        Aggregate lighting demand of the dwelling.

        Args:
            irradiance: Outdoor global irradiance per minute [W/m2]
            bulbs: Wattage of every lamp in the dwelling [W]
            calibration_scalar: Lighting calibration scalar
            threshold_mean: Mean irradiance below which lights are wanted [W/m2]
            threshold_std: Std. dev. of that threshold between dwellings [W/m2]
            occupancy: Active occupants per minute

        Returns:
            Lighting power per minute [kW]
        """
        irradiance = np.asarray(irradiance, dtype=float)
        occupancy = np.asarray(occupancy, dtype=int)
        if occupancy.size != MINUTES_PER_YEAR or irradiance.size != occupancy.size:
            raise LengthMismatchError(
                f"Occupancy ({occupancy.size}) and irradiance ({irradiance.size}) must both "
                f"cover {MINUTES_PER_YEAR} minutes"
            )

        n = occupancy.size
        light = np.zeros(n, dtype=float)
        occupied = occupancy > 0
        effective = effective_occupancy_series(occupancy)

        threshold = sample_normal(self.rng, threshold_mean, threshold_std)
        dark = irradiance < threshold

        for watts in bulbs:
            u = max(self.rng.random(), SMALL)
            weight = -calibration_scalar * math.log(u)

            low_irradiance = dark | (self.rng.random(n) < OVERRIDE_PROBABILITY)
            switch_on = occupied & low_irradiance & (self.rng.random(n) < effective * weight)
            self._switch_bulb(light, np.flatnonzero(switch_on), occupied, float(watts) / 1000.0)

        logger.info(
            f"Lighting profile complete: {len(bulbs)} bulbs, threshold {threshold:.1f} W/m2, "
            f"{light.sum() / 60.0:.1f} kWh"
        )
        return light

    def _switch_bulb(
        self,
        light: np.ndarray,
        switch_minutes: np.ndarray,
        occupied: np.ndarray,
        kw: float,
    ) -> None:
        # walk forward through the minutes where a switch-on test passed;
        # minutes inside a lit run are never tested
        n = light.size
        i = 0
        while i < switch_minutes.size:
            start = int(switch_minutes[i])
            stop = min(start + light_duration(self.rng), n)

            vacant = np.flatnonzero(~occupied[start:stop])
            if vacant.size:
                # occupants went inactive: light off, scanning resumes after it
                stop = start + int(vacant[0])
                resume = stop + 1
            else:
                resume = stop

            light[start:stop] += kw
            i = int(np.searchsorted(switch_minutes, resume))
