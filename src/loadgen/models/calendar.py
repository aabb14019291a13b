"""Fixed simulation calendar: one 365 day year at one minute resolution."""
from __future__ import annotations

from enum import Enum

import numpy as np

from loadgen.errors import ConfigurationError

MINUTES_PER_SLOT = 10
SLOTS_PER_DAY = 144
MINUTES_PER_DAY = MINUTES_PER_SLOT * SLOTS_PER_DAY
DAYS_PER_YEAR = 365  # leap years are not modelled
MINUTES_PER_YEAR = MINUTES_PER_DAY * DAYS_PER_YEAR

SUNDAY = 1
SATURDAY = 7


class DayType(Enum):
    WEEKDAY = "wd"
    WEEKEND = "we"

    @property
    def index(self) -> int:
        return 0 if self is DayType.WEEKDAY else 1


def check_day_of_week(day_of_week: int) -> int:
    if not SUNDAY <= int(day_of_week) <= SATURDAY:
        raise ConfigurationError(
            f"{day_of_week} is not a valid day of the week (1=Sunday .. 7=Saturday)"
        )
    return int(day_of_week)


def day_type(day_of_week: int) -> DayType:
    day_of_week = check_day_of_week(day_of_week)
    if day_of_week in (SUNDAY, SATURDAY):
        return DayType.WEEKEND
    return DayType.WEEKDAY


def next_day(day_of_week: int) -> int:
    return SUNDAY if day_of_week >= SATURDAY else day_of_week + 1


def year_day_types(start_day: int) -> list[DayType]:
    """Day type of every simulated day, rolling the day of week from start_day."""
    types = []
    dow = check_day_of_week(start_day)
    for _ in range(DAYS_PER_YEAR):
        types.append(day_type(dow))
        dow = next_day(dow)
    return types


def slot_of_minute() -> np.ndarray:
    # 10-minute slot of the day for every minute of the year
    return np.tile(np.repeat(np.arange(SLOTS_PER_DAY), MINUTES_PER_SLOT), DAYS_PER_YEAR)


def day_of_minute() -> np.ndarray:
    return np.repeat(np.arange(DAYS_PER_YEAR), MINUTES_PER_DAY)
