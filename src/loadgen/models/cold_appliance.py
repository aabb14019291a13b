"""Cold appliance model.

Top-down cyclic load with constant on/off periods, similar to the cold
appliance patterns of Widen & Wackelgard (2010). Runs independently of
occupancy.
"""
from __future__ import annotations

import logging
import warnings

import numpy as np

from loadgen.errors import CalibrationWarning, ConfigurationError
from loadgen.models.calendar import MINUTES_PER_YEAR

logger = logging.getLogger(__name__)


class ColdApplianceModel:
    def __init__(self, rng: np.random.Generator):
        self.rng = rng

    @staticmethod
    def start_probability(cycles_per_year: float, cycle_length: float, restart_delay: float) -> float:
        # chance of a cycle starting in any idle minute
        running = cycles_per_year * cycle_length
        available = MINUTES_PER_YEAR - (running + cycles_per_year * restart_delay)
        if available <= 0:
            warnings.warn(
                f"Cold appliance with {cycles_per_year} cycles of {cycle_length} min has "
                f"{available} min in the year to start; setting mean time between starts to 1 min",
                CalibrationWarning,
                stacklevel=3,
            )
            available = cycles_per_year
        return 1.0 / (available / cycles_per_year)

    def generate(
        self,
        annual_energy: float,
        cycles_per_year: float,
        cycle_length: float,
        restart_delay: int,
    ) -> np.ndarray:
        """
        Args:
            annual_energy: Unit energy consumption [kWh/yr]
            cycles_per_year: Cycles per year
            cycle_length: Minutes per cycle
            restart_delay: Minimum off time after a cycle [min]

        Returns:
            Power per minute [W]
        """
        if cycles_per_year <= 0 or cycle_length <= 0:
            raise ConfigurationError(
                f"Cold appliance needs positive cycles and cycle length. "
                f"Got {cycles_per_year} cycles of {cycle_length} min."
            )
        # a fractional cycle length counts down past zero, so it runs ceil(length) minutes
        cycle_length = float(cycle_length)
        restart_delay = int(restart_delay)

        p_start = self.start_probability(cycles_per_year, cycle_length, restart_delay)
        running = cycles_per_year * cycle_length
        cycle_power = annual_energy * 1000.0 / (running / 60.0)

        power = [0.0] * MINUTES_PER_YEAR
        draws = self.rng.random(MINUTES_PER_YEAR).tolist()

        # random initial delay so dwellings are not synchronised
        delay_left = int(self.rng.random() * restart_delay * 2)
        cycle_left = 0
        for minute in range(MINUTES_PER_YEAR):
            if cycle_left <= 0 and delay_left > 0:
                delay_left -= 1
            elif cycle_left <= 0:
                if draws[minute] < p_start:
                    power[minute] = cycle_power
                    delay_left = restart_delay
                    cycle_left = cycle_length - 1
            else:
                power[minute] = cycle_power
                cycle_left -= 1

        logger.debug(f"Cold appliance: {cycles_per_year} cycles/yr at {cycle_power:.1f} W")
        return np.asarray(power, dtype=float)
