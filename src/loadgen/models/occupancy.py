"""Active occupancy model.

First-order Markov chain over 10-minute periods, after Richardson, Thomson &
Infield (2008), "A high-resolution domestic building occupancy model for
energy demand simulations".
"""
from __future__ import annotations

import logging
import warnings
from dataclasses import dataclass, field
from typing import Dict, Sequence, Tuple

import numpy as np

from loadgen.errors import ConfigurationError, DataError, OccupancyWarning
from loadgen.models.calendar import (
    DAYS_PER_YEAR,
    MINUTES_PER_SLOT,
    MINUTES_PER_YEAR,
    SLOTS_PER_DAY,
    DayType,
    check_day_of_week,
    day_type,
    next_day,
)

logger = logging.getLogger(__name__)

MAX_OCCUPANTS = 5


@dataclass
class TransitionMatrix:
    # probabilities[slot, current, next] = P(next active count | current, slot)
    occupants: int
    day_type: DayType
    probabilities: np.ndarray

    def __post_init__(self):
        self.probabilities = np.asarray(self.probabilities, dtype=float)
        states = self.occupants + 1
        if self.probabilities.shape != (SLOTS_PER_DAY, states, states):
            raise DataError(
                f"Transition matrix for {self.occupants} occupants ({self.day_type.value}) "
                f"must be shape {(SLOTS_PER_DAY, states, states)}. Got {self.probabilities.shape}."
            )
        if np.any(self.probabilities < 0):
            raise DataError("Transition probabilities must be non negative")
        self.cumulative = np.cumsum(self.probabilities, axis=2)

    def next_state(self, slot: int, current: int, draw: float) -> int:
        """Smallest next state whose cumulative probability exceeds draw."""
        row = self.cumulative[slot, current]
        return min(int(np.searchsorted(row, draw, side="right")), self.occupants)


@dataclass
class TransitionLibrary:
    matrices: Dict[Tuple[DayType, int], TransitionMatrix] = field(default_factory=dict)

    def add(self, matrix: TransitionMatrix) -> None:
        self.matrices[(matrix.day_type, matrix.occupants)] = matrix

    def get(self, kind: DayType, occupants: int) -> TransitionMatrix:
        try:
            return self.matrices[(kind, occupants)]
        except KeyError:
            raise DataError(
                f"No {kind.value} transition matrix available for {occupants} occupants"
            ) from None


@dataclass
class StartStates:
    # distributions[(day type, occupants)] = P(initial active count = i)
    distributions: Dict[Tuple[DayType, int], Sequence[float]] = field(default_factory=dict)

    def get(self, kind: DayType, occupants: int) -> np.ndarray:
        try:
            return np.asarray(self.distributions[(kind, occupants)], dtype=float)
        except KeyError:
            raise DataError(
                f"No {kind.value} start-state distribution for {occupants} occupants"
            ) from None


def clamp_occupants(occupants: int) -> int:
    occupants = int(occupants)
    if occupants < 1:
        raise ConfigurationError(f"A dwelling needs at least one occupant. Got {occupants}.")
    if occupants > MAX_OCCUPANTS:
        warnings.warn(
            f"{occupants} occupants exceeds the model limit of {MAX_OCCUPANTS}; "
            f"using {MAX_OCCUPANTS}",
            OccupancyWarning,
            stacklevel=3,
        )
        return MAX_OCCUPANTS
    return occupants


class OccupancyModel:
    def __init__(
        self,
        transitions: TransitionLibrary,
        start_states: StartStates,
        rng: np.random.Generator,
    ):
        self.transitions = transitions
        self.start_states = start_states
        self.rng = rng

    def initial_state(self, occupants: int, kind: DayType) -> int:
        pdf = self.start_states.get(kind, occupants)[: occupants + 1]
        draw = self.rng.random()
        cumulative = 0.0
        for state, p in enumerate(pdf):
            cumulative += p
            if draw < cumulative:
                return state
        return 0

    def generate(self, occupants: int, start_day: int) -> np.ndarray:
        """
        Simulate the active occupant count for every minute of the year.

        Args:
            occupants: Dwelling occupants (1-5, larger values are clamped)
            start_day: Day of week of January 1st (1=Sunday)

        Returns:
            Integer array of length MINUTES_PER_YEAR
        """
        start_day = check_day_of_week(start_day)
        occupants = clamp_occupants(occupants)

        weekday = self.transitions.get(DayType.WEEKDAY, occupants)
        weekend = self.transitions.get(DayType.WEEKEND, occupants)

        periods = np.empty(DAYS_PER_YEAR * SLOTS_PER_DAY, dtype=int)
        current = self.initial_state(occupants, day_type(start_day))
        periods[0] = current
        draws = self.rng.random(periods.size)

        k = 1
        dow = start_day
        for day in range(DAYS_PER_YEAR):
            matrix = weekend if day_type(dow) is DayType.WEEKEND else weekday
            # the initial draw already covers the first period of day 1
            first_slot = 1 if day == 0 else 0
            for slot in range(first_slot, SLOTS_PER_DAY):
                current = matrix.next_state(slot, current, draws[k])
                periods[k] = current
                k += 1
            dow = next_day(dow)

        occupancy = np.repeat(periods, MINUTES_PER_SLOT)
        if occupancy.size != MINUTES_PER_YEAR:
            raise DataError(f"Occupancy profile has {occupancy.size} minutes, expected {MINUTES_PER_YEAR}")

        logger.info(
            f"Occupancy profile complete: {occupants} occupants, start day {start_day}, "
            f"active {np.mean(occupancy > 0):.1%} of the year"
        )
        return occupancy


def mean_active_fraction(occupancy: np.ndarray) -> float:
    """Fraction of minutes with at least one active occupant."""
    occupancy = np.asarray(occupancy)
    if occupancy.size == 0:
        return 0.0
    return float(np.count_nonzero(occupancy > 0) / occupancy.size)
