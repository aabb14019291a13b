"""
Shared fixtures: small synthetic reference data for every model.
"""

import matplotlib

matplotlib.use("Agg")

import numpy as np
import pandas as pd
import pytest

from loadgen.data.reference import ReferenceData
from loadgen.models.appliances import ActivityStatistics, ApplianceDefinition
from loadgen.models.calendar import DAYS_PER_YEAR, MINUTES_PER_DAY, SLOTS_PER_DAY, DayType
from loadgen.models.occupancy import MAX_OCCUPANTS, StartStates, TransitionLibrary, TransitionMatrix

STATE_NAMES = ("zero", "one", "two", "three", "four", "five", "six")
ACTIVITIES = ("Act_TV", "Act_Cooking", "Act_Laundry", "Act_WashDress", "Act_Iron", "Act_HouseClean")
ACTIVITY_PROBABILITY = 0.1

# name -> appliance database fields
APPLIANCE_FIELDS = {
    "Clothes_Washer": dict(Use_Profile="Act_Laundry", Mean_cycle_L=40, Base_cycles=200, Standby=1,
                           Mean_Pow_Cyc=400, Restart_Delay=60, Avg_Act_Prob=0.1, Act_Occ_Dep="YES"),
    "Clothes_Dryer_Elec": dict(Use_Profile="Act_Laundry", Mean_cycle_L=75, Base_cycles=150, Standby=0,
                               Mean_Pow_Cyc=2500, Restart_Delay=60, Avg_Act_Prob=0.1, Act_Occ_Dep="YES"),
    "Dishwasher": dict(Use_Profile="Act_WashDress", Mean_cycle_L=124, Base_cycles=150, Standby=0,
                       Mean_Pow_Cyc=1200, Restart_Delay=60, Avg_Act_Prob=0.1, Act_Occ_Dep="YES"),
    "Living_Room_TV": dict(Use_Profile="Act_TV", Mean_cycle_L=60, Base_cycles=365, Standby=2,
                           Mean_Pow_Cyc=120, Restart_Delay=10, Avg_Act_Prob=0.1, Act_Occ_Dep="YES"),
    "Hob": dict(Use_Profile="Act_Cooking", Mean_cycle_L=16, Base_cycles=200, Standby=0,
                Mean_Pow_Cyc=2400, Restart_Delay=30, Avg_Act_Prob=0.1, Act_Occ_Dep="YES"),
    "Kettle": dict(Use_Profile="Active_Occ", Mean_cycle_L=3, Base_cycles=1000, Standby=1,
                   Mean_Pow_Cyc=2000, Restart_Delay=0, Avg_Act_Prob=1.0, Act_Occ_Dep="YES"),
    "Alarm_Clock": dict(Use_Profile="Level", Mean_cycle_L=1, Base_cycles=0, Standby=5,
                        Mean_Pow_Cyc=5, Restart_Delay=0, Avg_Act_Prob=1.0, Act_Occ_Dep="NO"),
    "Router": dict(Use_Profile="Level", Mean_cycle_L=30, Base_cycles=365, Standby=5,
                   Mean_Pow_Cyc=10, Restart_Delay=0, Avg_Act_Prob=1.0, Act_Occ_Dep="NO"),
    "Custom_Heater": dict(Use_Profile="Custom", Mean_cycle_L=60, Base_cycles=100, Standby=3,
                          Mean_Pow_Cyc=1500, Restart_Delay=0, Avg_Act_Prob=1.0, Act_Occ_Dep="NO"),
}


def make_definition(name: str, **overrides) -> ApplianceDefinition:
    fields = dict(APPLIANCE_FIELDS[name])
    fields.update(overrides)
    return ApplianceDefinition(
        name=name,
        usage_profile=fields["Use_Profile"],
        mean_cycle_length=fields["Mean_cycle_L"],
        base_cycles=fields["Base_cycles"],
        standby_power=fields["Standby"],
        mean_cycle_power=fields["Mean_Pow_Cyc"],
        restart_delay=fields["Restart_Delay"],
        occupancy_dependent=fields["Act_Occ_Dep"] == "YES",
        avg_activity_probability=fields["Avg_Act_Prob"],
    )


def uniform_matrix(occupants: int, kind: DayType) -> TransitionMatrix:
    states = occupants + 1
    probabilities = np.full((SLOTS_PER_DAY, states, states), 1.0 / states)
    return TransitionMatrix(occupants=occupants, day_type=kind, probabilities=probabilities)


def fixed_matrix(occupants: int, kind: DayType, target: int) -> TransitionMatrix:
    """Every period moves to `target` active occupants."""
    states = occupants + 1
    probabilities = np.zeros((SLOTS_PER_DAY, states, states))
    probabilities[:, :, target] = 1.0
    return TransitionMatrix(occupants=occupants, day_type=kind, probabilities=probabilities)


def uniform_start_states() -> StartStates:
    states = StartStates()
    for kind in DayType:
        for occupants in range(1, MAX_OCCUPANTS + 1):
            states.distributions[(kind, occupants)] = [1.0 / (occupants + 1)] * (occupants + 1)
    return states


def daylight_irradiance() -> np.ndarray:
    """Clear-sky shaped irradiance: dark from 18:00 to 06:00, 800 W/m2 at noon."""
    minutes = np.arange(MINUTES_PER_DAY)
    day = np.maximum(0.0, 800.0 * np.sin(np.pi * (minutes - 360) / 720.0))
    day[(minutes < 360) | (minutes > 1080)] = 0.0
    return np.tile(day, DAYS_PER_YEAR)


@pytest.fixture
def rng():
    return np.random.default_rng(1234)


@pytest.fixture
def transitions():
    library = TransitionLibrary()
    for occupants in range(1, MAX_OCCUPANTS + 1):
        for kind in DayType:
            library.add(uniform_matrix(occupants, kind))
    return library


@pytest.fixture
def start_states():
    return uniform_start_states()


@pytest.fixture
def activity():
    stats = ActivityStatistics()
    for kind in DayType:
        for active in range(1, MAX_OCCUPANTS + 1):
            for name in ACTIVITIES:
                stats.add(kind, active, name, np.full(SLOTS_PER_DAY, ACTIVITY_PROBABILITY))
    return stats


@pytest.fixture
def appliances():
    return {name: make_definition(name) for name in APPLIANCE_FIELDS}


@pytest.fixture
def reference(start_states, transitions, activity, appliances):
    return ReferenceData(
        start_states=start_states,
        transitions=transitions,
        activity=activity,
        appliances=appliances,
    )


@pytest.fixture
def irradiance():
    return daylight_irradiance()


# ----------------------------
# Reference files on disk
# ----------------------------
def write_start_states(path) -> None:
    lines = ["<start_states>"]
    for kind in DayType:
        lines.append(f"  <{kind.value}>")
        for occupants in range(1, MAX_OCCUPANTS + 1):
            lines.append(f"    <{STATE_NAMES[occupants]}>")
            for state in range(len(STATE_NAMES)):
                p = 1.0 / (occupants + 1) if state <= occupants else 0.0
                lines.append(f"      <{STATE_NAMES[state]}>{p}</{STATE_NAMES[state]}>")
            lines.append(f"    </{STATE_NAMES[occupants]}>")
        lines.append(f"  </{kind.value}>")
    lines.append("</start_states>")
    path.write_text("\n".join(lines))


def write_transition_file(path, occupants: int, rows_per_slot: int = 7) -> None:
    rows = []
    for slot in range(SLOTS_PER_DAY):
        for current in range(rows_per_slot):
            probs = [
                1.0 / (occupants + 1) if current <= occupants and nxt <= occupants else 0.0
                for nxt in range(7)
            ]
            rows.append([slot + 1, current] + probs)
    columns = ["period", "state"] + [f"p{i}" for i in range(7)]
    pd.DataFrame(rows, columns=columns).to_csv(path, index=False)


def write_activity_file(path) -> None:
    rows = []
    for weekend in (0, 1):
        for active in range(1, MAX_OCCUPANTS + 1):
            for name in ACTIVITIES:
                rows.append([weekend, active, name] + [ACTIVITY_PROBABILITY] * SLOTS_PER_DAY)
    pd.DataFrame(rows).to_csv(path, index=False, header=False)


def write_appliance_file(path) -> None:
    lines = ["<appliances>"]
    for name, fields in APPLIANCE_FIELDS.items():
        lines.append(f"  <{name}>")
        for key, value in fields.items():
            lines.append(f"    <{key}>{value}</{key}>")
        lines.append(f"  </{name}>")
    lines.append("</appliances>")
    path.write_text("\n".join(lines))


def write_irradiance_file(path, values) -> None:
    with open(path, "w") as f:
        f.write("Global irradiance\n")
        f.write("minute\tW/m2\n")
    pd.DataFrame({"minute": np.arange(len(values)), "irr": values}).to_csv(
        path, sep="\t", index=False, header=False, mode="a"
    )


DWELLING_XML = """<dwelling>
  <inputs>
    <num_of_occ>{occupants}</num_of_occ>
    <irr_path>irradiance.txt</irr_path>
    <lighting_fixtures>
      <fixture><power>100</power></fixture>
      <fixture><power>60</power></fixture>
      <fixture><power>11</power></fixture>
    </lighting_fixtures>
    <cold_appliances>
      <appliance>
        <uec>300</uec>
        <base_cycles>10000</base_cycles>
        <mean_cycle_L>20</mean_cycle_L>
        <restart_delay>10</restart_delay>
      </appliance>
    </cold_appliances>
    <general_appliances>
      <appliance>Clothes_Washer</appliance>
      <appliance>Living_Room_TV</appliance>
    </general_appliances>
  </inputs>
  <sim_parameters>
    <start_day>{start_day}</start_day>
    <lighting_calibration>0.008153686</lighting_calibration>
    <lightning_threshold>
      <mean>60</mean>
      <std_dev>10</std_dev>
    </lightning_threshold>
    <base_load>50</base_load>
    <base_dev>5</base_dev>
    <appliance_calibration>1.0</appliance_calibration>
  </sim_parameters>
</dwelling>
"""


def write_dwelling(path, occupants: int = 2, start_day: int = 1) -> None:
    path.write_text(DWELLING_XML.format(occupants=occupants, start_day=start_day))


@pytest.fixture
def data_dir(tmp_path):
    """Directory holding a complete set of reference files."""
    d = tmp_path / "data"
    d.mkdir()
    write_start_states(d / "occ_start_states.xml")
    for occupants in range(1, MAX_OCCUPANTS + 1):
        for kind in DayType:
            write_transition_file(d / f"tpm{occupants}_{kind.value}.csv", occupants)
    write_activity_file(d / "activity_stats.csv")
    write_appliance_file(d / "appliance_database.xml")
    return d


def run_lengths(power: np.ndarray) -> np.ndarray:
    """Lengths of consecutive runs of non-zero power."""
    on = np.concatenate([[0], (power > 0).astype(int), [0]])
    edges = np.diff(on)
    return np.flatnonzero(edges == -1) - np.flatnonzero(edges == 1)
