"""General appliance model.

Activity-driven appliance switching after Richardson et al. (2010),
"Domestic electricity use: A high-resolution energy demand model", with the
per-appliance calibration, fixed power curves and seasonal dryer use of
Wills, Beausoleil-Morrison & Ugursal (2018).
"""
from __future__ import annotations

import logging
import math
import warnings
from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, Iterable, Sequence, Tuple

import numpy as np

from loadgen.errors import CalibrationWarning, ConfigurationError, DataError, LengthMismatchError
from loadgen.models.calendar import (
    DAYS_PER_YEAR,
    MINUTES_PER_DAY,
    MINUTES_PER_YEAR,
    SLOTS_PER_DAY,
    DayType,
    check_day_of_week,
    day_of_minute,
    slot_of_minute,
    year_day_types,
)
from loadgen.models.power_curves import DISHWASHER_CURVE, DRYER_CURVE, WASHER_CURVE, curve_power
from loadgen.models.random_variate import sample_normal

logger = logging.getLogger(__name__)

MAX_RUN_FRACTION = 0.7  # share of the year an over-calibrated appliance may run

# seasonal laundry variation: difference in average loads/week winter vs summer (SHEU 2011)
DRYER_SEASONAL_AMPLITUDE = 20.5
DRYER_SEASONAL_PHASE = 1241.0 * math.pi / 730.0

LAUNDRY_ACTIVITY = "Act_Laundry"
LEVEL_PROFILE = "Level"
ACTIVE_OCC_PROFILE = "Active_Occ"
CUSTOM_PROFILE = "Custom"


class ApplianceKind(Enum):
    GENERIC = "generic"
    CLOTHES_WASHER = "clothes_washer"
    CLOTHES_DRYER = "clothes_dryer"
    DISHWASHER = "dishwasher"
    TELEVISION = "television"
    GAME_CONSOLE = "game_console"
    CUSTOM = "custom"

    @classmethod
    def resolve(cls, name: str, usage_profile: str) -> "ApplianceKind":
        if CUSTOM_PROFILE in usage_profile:
            return cls.CUSTOM
        if name == "Clothes_Washer":
            return cls.CLOTHES_WASHER
        if name == "Clothes_Dryer_Elec":
            return cls.CLOTHES_DRYER
        if name.startswith("Dishwasher"):
            return cls.DISHWASHER
        if name.endswith("TV"):
            return cls.TELEVISION
        if name == "Game_Console":
            return cls.GAME_CONSOLE
        return cls.GENERIC


POWER_CURVES: Dict[ApplianceKind, np.ndarray] = {
    ApplianceKind.CLOTHES_WASHER: WASHER_CURVE,
    ApplianceKind.CLOTHES_DRYER: DRYER_CURVE,
    ApplianceKind.DISHWASHER: DISHWASHER_CURVE,
}


# -------------------------
# Usage behaviours
# -------------------------
class UsageBehaviour:
    """How a usage profile gates cycle starts and reacts to inactive occupants.

    The default is an activity profile: a start needs active occupants, the
    start chance follows the activity statistics and a running cycle pauses
    while nobody is active.
    """

    uses_activity = True
    pauses_when_inactive = True

    def __init__(self, profile: str):
        self.profile = profile

    def can_start(self, occupancy: np.ndarray) -> np.ndarray:
        return occupancy > 0

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self.profile!r})"


class ActivityUsage(UsageBehaviour):
    def __init__(self, profile: str):
        super().__init__(profile)
        # laundry finishes its cycle whether or not anyone stays active
        self.pauses_when_inactive = profile != LAUNDRY_ACTIVITY


class ActiveOccupancyUsage(UsageBehaviour):
    uses_activity = False


class LevelUsage(UsageBehaviour):
    # unrelated to occupancy: may start and keeps running at any time
    uses_activity = False
    pauses_when_inactive = False

    def can_start(self, occupancy: np.ndarray) -> np.ndarray:
        return np.ones(occupancy.shape, dtype=bool)


class CustomUsage(UsageBehaviour):
    """Extension point for user-defined behaviour.

    Subclass and override can_start (and pauses_when_inactive) to give a
    custom profile start/run behaviour. The default never starts a cycle,
    leaving the appliance at standby power.
    """

    uses_activity = False
    pauses_when_inactive = False

    def can_start(self, occupancy: np.ndarray) -> np.ndarray:
        return np.zeros(occupancy.shape, dtype=bool)


def resolve_usage(profile: str) -> UsageBehaviour:
    if CUSTOM_PROFILE in profile:
        return CustomUsage(profile)
    if LEVEL_PROFILE in profile:
        return LevelUsage(profile)
    if ACTIVE_OCC_PROFILE in profile:
        return ActiveOccupancyUsage(profile)
    return ActivityUsage(profile)


# -------------------------
# Reference data
# -------------------------
@dataclass
class ApplianceDefinition:
    name: str
    usage_profile: str
    mean_cycle_length: float  # min
    base_cycles: float  # cycles per year before calibration
    standby_power: float  # W
    mean_cycle_power: float  # W
    restart_delay: float  # min
    occupancy_dependent: bool
    avg_activity_probability: float

    kind: ApplianceKind = field(init=False)
    usage: UsageBehaviour = field(init=False, repr=False)

    def __post_init__(self):
        self.kind = ApplianceKind.resolve(self.name, self.usage_profile)
        self.usage = resolve_usage(self.usage_profile)

    @property
    def pauses_when_inactive(self) -> bool:
        # dishwashers finish their cycle like laundry does
        return self.usage.pauses_when_inactive and self.kind is not ApplianceKind.DISHWASHER


@dataclass
class ActivityStatistics:
    # profiles[(day type, active occupants, activity)] = 144 slot probabilities
    profiles: Dict[Tuple[DayType, int, str], np.ndarray] = field(default_factory=dict)

    def add(self, kind: DayType, active: int, activity: str, probabilities: Sequence[float]) -> None:
        probabilities = np.asarray(probabilities, dtype=float)
        if probabilities.shape != (SLOTS_PER_DAY,):
            raise DataError(
                f"Activity {activity} ({kind.value}, {active} active) needs {SLOTS_PER_DAY} "
                f"probabilities. Got {probabilities.size}."
            )
        self.profiles[(kind, int(active), activity)] = probabilities

    def probability_table(self, activity: str, active_levels: Iterable[int]) -> np.ndarray:
        """Table[day type index, active occupants, slot]; zero for 0 active."""
        levels = sorted({int(a) for a in active_levels if a > 0})
        size = (levels[-1] + 1) if levels else 1
        table = np.zeros((2, size, SLOTS_PER_DAY), dtype=float)
        for kind in DayType:
            for active in levels:
                try:
                    table[kind.index, active] = self.profiles[(kind, active, activity)]
                except KeyError:
                    raise DataError(
                        f"No {kind.value} activity statistics for {activity} "
                        f"with {active} active occupants"
                    ) from None
        return table


# -------------------------
# Calibration
# -------------------------
def appliance_calibration_scalar(
    cycles_per_year: float,
    mean_cycle_length: float,
    mean_active_fraction: float,
    restart_delay: float,
    occupancy_dependent: bool,
    avg_activity_probability: float,
    *,
    warn: bool = True,
) -> float:
    """Scalar turning an activity probability into a per-minute start probability."""
    time_running = cycles_per_year * mean_cycle_length
    if time_running > MINUTES_PER_YEAR:
        if warn:
            warnings.warn(
                f"Appliance with {cycles_per_year} cycles per year of {mean_cycle_length} min "
                f"runs longer than a year; limiting running time to "
                f"{MAX_RUN_FRACTION:.0%} of the year",
                CalibrationWarning,
                stacklevel=2,
            )
        cycles_per_year = math.floor(MINUTES_PER_YEAR * MAX_RUN_FRACTION / mean_cycle_length)
        time_running = cycles_per_year * mean_cycle_length

    if occupancy_dependent:
        can_start = MINUTES_PER_YEAR * mean_active_fraction
    else:
        can_start = MINUTES_PER_YEAR
    can_start -= time_running + cycles_per_year * restart_delay

    if can_start <= 0:
        if warn:
            warnings.warn(
                f"Appliance has {can_start} min in the year in which it can start; "
                f"setting mean time between starts to 1 min",
                CalibrationWarning,
                stacklevel=2,
            )
        can_start = cycles_per_year

    mean_between_starts = can_start / cycles_per_year
    return (1.0 / mean_between_starts) / avg_activity_probability


# -------------------------
# Model
# -------------------------
class ApplianceModel:
    def __init__(self, activity: ActivityStatistics, rng: np.random.Generator):
        self.activity = activity
        self.rng = rng

    def cycle_length(self, definition: ApplianceDefinition) -> int:
        curve = POWER_CURVES.get(definition.kind)
        if curve is not None:
            return len(curve)
        if definition.kind in (ApplianceKind.TELEVISION, ApplianceKind.GAME_CONSOLE):
            # heavy tailed viewing/playing sessions around the mean
            u = min(self.rng.random(), 0.995)
            return int(definition.mean_cycle_length * (-math.log(1.0 - u)) ** 1.1)
        return int(math.ceil(definition.mean_cycle_length))

    @staticmethod
    def running_power(definition: ApplianceDefinition, rated_power: float, cycle_left: float) -> float:
        curve = POWER_CURVES.get(definition.kind)
        if curve is None:
            return rated_power
        return curve_power(curve, rated_power, cycle_left, definition.standby_power)

    def start_probability(
        self,
        occupancy: np.ndarray,
        definition: ApplianceDefinition,
        cycles_per_year: float,
        mean_active_fraction: float,
        start_day: int,
    ) -> np.ndarray:
        """Chance of a cycle starting in each minute, if the appliance is idle."""
        calibration = appliance_calibration_scalar(
            cycles_per_year,
            definition.mean_cycle_length,
            mean_active_fraction,
            definition.restart_delay,
            definition.occupancy_dependent,
            definition.avg_activity_probability,
        )
        daily = np.full(DAYS_PER_YEAR, calibration)
        if definition.kind is ApplianceKind.CLOTHES_DRYER:
            days = np.arange(1, DAYS_PER_YEAR + 1)
            seasonal = cycles_per_year + DRYER_SEASONAL_AMPLITUDE * np.sin(
                2.0 * math.pi * days / DAYS_PER_YEAR - DRYER_SEASONAL_PHASE
            )
            daily = np.array([
                appliance_calibration_scalar(
                    cycles,
                    definition.mean_cycle_length,
                    mean_active_fraction,
                    definition.restart_delay,
                    definition.occupancy_dependent,
                    definition.avg_activity_probability,
                    warn=False,
                )
                for cycles in seasonal
            ])
        probability = np.repeat(daily, MINUTES_PER_DAY)

        if definition.usage.uses_activity:
            table = self.activity.probability_table(definition.usage_profile, np.unique(occupancy))
            day_types = np.array([kind.index for kind in year_day_types(start_day)])
            probability = probability * table[
                day_types[day_of_minute()], occupancy, slot_of_minute()
            ]

        return np.where(definition.usage.can_start(occupancy), probability, 0.0)

    def generate(
        self,
        occupancy: Sequence[int],
        mean_active_fraction: float,
        definition: ApplianceDefinition,
        calibration_scalar: float,
        start_day: int,
    ) -> np.ndarray:
        """
        Simulate one appliance over the year.

        Args:
            occupancy: Active occupants per minute
            mean_active_fraction: Fraction of the year with active occupants
            definition: Appliance characteristics
            calibration_scalar: Global appliance calibration (scales base cycles)
            start_day: Day of week of January 1st (1=Sunday)

        Returns:
            Power per minute [W]
        """
        start_day = check_day_of_week(start_day)
        occupancy = np.asarray(occupancy, dtype=int)
        if occupancy.size != MINUTES_PER_YEAR:
            raise LengthMismatchError(
                f"Occupancy covers {occupancy.size} minutes, expected {MINUTES_PER_YEAR}"
            )

        cycles_per_year = definition.base_cycles * calibration_scalar
        standby = float(definition.standby_power)
        if cycles_per_year <= 0:
            # constant baseload appliance
            return np.full(MINUTES_PER_YEAR, standby)
        if definition.avg_activity_probability <= 0:
            raise DataError(
                f"{definition.name} needs a positive average activity probability. "
                f"Got {definition.avg_activity_probability}."
            )
        if definition.mean_cycle_length <= 0:
            raise ConfigurationError(
                f"{definition.name} needs a positive mean cycle length. "
                f"Got {definition.mean_cycle_length}."
            )

        probability = self.start_probability(
            occupancy, definition, cycles_per_year, mean_active_fraction, start_day
        ).tolist()
        rated_power = sample_normal(self.rng, definition.mean_cycle_power, definition.mean_cycle_power / 10.0)
        pauses = definition.pauses_when_inactive
        restart_delay = definition.restart_delay

        power = [standby] * MINUTES_PER_YEAR
        active = occupancy.tolist()
        draws = self.rng.random(MINUTES_PER_YEAR).tolist()

        delay_left = self.rng.random() * restart_delay * 2
        cycle_left = 0
        starts = 0
        for minute in range(MINUTES_PER_YEAR):
            if cycle_left <= 0 and delay_left > 0:
                delay_left -= 1
            elif cycle_left <= 0:
                if draws[minute] < probability[minute]:
                    cycle_left = self.cycle_length(definition)
                    power[minute] = self.running_power(definition, rated_power, cycle_left)
                    cycle_left -= 1
                    delay_left = restart_delay
                    starts += 1
            elif pauses and active[minute] == 0:
                # cycle resumes when occupants become active again
                continue
            else:
                power[minute] = self.running_power(definition, rated_power, cycle_left)
                cycle_left -= 1

        logger.debug(
            f"{definition.name}: {starts} cycles ({definition.kind.value}, "
            f"{definition.usage!r}), rated {rated_power:.1f} W"
        )
        return np.asarray(power, dtype=float)
