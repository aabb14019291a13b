"""Loaders for dwelling inputs and model reference data.

Turns the files shipped with the model (XML dwelling description, start
states and appliance database, CSV transition matrices and activity
statistics, tab separated irradiance) into the in-memory structures the
models consume.
"""
from __future__ import annotations

import logging
import xml.etree.ElementTree as ET
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, List, Optional

import numpy as np
import pandas as pd

from loadgen.config import (
    ApplianceConfig,
    ColdApplianceSpec,
    LightingConfig,
    OccupancyConfig,
    SimulationConfig,
)
from loadgen.errors import ConfigurationError, DataError
from loadgen.models.appliances import ActivityStatistics, ApplianceDefinition
from loadgen.models.calendar import MINUTES_PER_YEAR, SLOTS_PER_DAY, DayType
from loadgen.models.occupancy import (
    MAX_OCCUPANTS,
    StartStates,
    TransitionLibrary,
    TransitionMatrix,
)

logger = logging.getLogger(__name__)

STATE_KEYS = ("zero", "one", "two", "three", "four", "five", "six")

START_STATES_FILE = "occ_start_states.xml"
ACTIVITY_FILE = "activity_stats.csv"
APPLIANCE_FILE = "appliance_database.xml"


@dataclass
class ReferenceData:
    start_states: StartStates
    transitions: TransitionLibrary
    activity: ActivityStatistics
    appliances: Dict[str, ApplianceDefinition]


# ----------------------------
# XML helpers
# ----------------------------
def _parse_xml(path) -> ET.Element:
    path = Path(path)
    if not path.exists():
        raise DataError(f"Could not find {path}")
    try:
        return ET.parse(path).getroot()
    except ET.ParseError as e:
        raise DataError(f"Could not parse {path}: {e}") from e


def _value(elem: ET.Element, name: str, default=None) -> Optional[str]:
    # a value may be written as an attribute or as a child element
    if name in elem.attrib:
        return elem.attrib[name].strip()
    child = elem.find(name)
    if child is not None and child.text is not None:
        return child.text.strip()
    return default


def _required(elem: ET.Element, name: str, where: str) -> str:
    value = _value(elem, name)
    if value is None:
        raise DataError(f"{where} is missing '{name}'")
    return value


def _number(text: str, where: str) -> float:
    try:
        return float(text)
    except (TypeError, ValueError):
        raise DataError(f"{where}: '{text}' is not a number") from None


# ----------------------------
# Dwelling input
# ----------------------------
def load_dwelling_config(path, *, seed: Optional[int] = 42, data_dir: str = "data") -> SimulationConfig:
    """Build a SimulationConfig from a dwelling input XML file."""
    root = _parse_xml(path)
    inputs = root.find("inputs")
    params = root.find("sim_parameters")
    if inputs is None or params is None:
        raise DataError(f"{path} needs <inputs> and <sim_parameters> sections")

    def num(elem, name, default=None):
        text = _value(elem, name)
        if text is None:
            if default is None:
                raise DataError(f"{path} is missing '{name}'")
            return default
        return _number(text, f"{path} {name}")

    bulbs = []
    fixtures = inputs.find("lighting_fixtures")
    if fixtures is not None:
        for fixture in fixtures.findall("fixture"):
            bulbs.append(_number(_required(fixture, "power", "fixture"), f"{path} fixture power"))

    threshold = params.find("lightning_threshold")
    if threshold is None:
        threshold = params.find("lighting_threshold")
    lighting = LightingConfig(
        bulbs=tuple(bulbs),
        irradiance_path=_value(inputs, "irr_path"),
        calibration_scalar=num(params, "lighting_calibration", LightingConfig.calibration_scalar),
        threshold_mean=num(threshold, "mean") if threshold is not None else LightingConfig.threshold_mean,
        threshold_std=num(threshold, "std_dev") if threshold is not None else LightingConfig.threshold_std,
    )

    cold: List[ColdApplianceSpec] = []
    cold_section = inputs.find("cold_appliances")
    if cold_section is not None:
        for app in cold_section.findall("appliance"):
            where = f"{path} cold appliance"
            cold.append(ColdApplianceSpec(
                annual_energy=_number(_required(app, "uec", where), where),
                cycles_per_year=_number(_required(app, "base_cycles", where), where),
                cycle_length=_number(_required(app, "mean_cycle_L", where), where),
                restart_delay=int(_number(_required(app, "restart_delay", where), where)),
            ))

    general = []
    general_section = inputs.find("general_appliances")
    if general_section is not None:
        general = [a.text.strip() for a in general_section.findall("appliance") if a.text]

    appliances = ApplianceConfig(
        calibration_scalar=num(params, "appliance_calibration", 1.0),
        base_load=num(params, "base_load", 0.0),
        base_dev=num(params, "base_dev", 0.0),
        general=tuple(general),
        cold=cold,
    )
    occupancy = OccupancyConfig(
        occupants=int(num(inputs, "num_of_occ")),
        start_day=int(num(params, "start_day")),
    )

    cfg = SimulationConfig(
        seed=seed,
        data_dir=data_dir,
        occupancy=occupancy,
        lighting=lighting,
        appliances=appliances,
    )
    logger.info(
        f"Loaded dwelling {path}: {occupancy.occupants} occupants, {len(bulbs)} bulbs, "
        f"{len(cold)} cold and {len(general)} general appliances"
    )
    return cfg


# ----------------------------
# Occupancy reference data
# ----------------------------
def load_start_states(path) -> StartStates:
    root = _parse_xml(path)
    states = StartStates()
    for kind in DayType:
        section = root.find(kind.value)
        if section is None:
            continue
        for occupants in range(1, MAX_OCCUPANTS + 1):
            entry = section.find(STATE_KEYS[occupants])
            if entry is None:
                continue
            pdf = []
            for key in STATE_KEYS:
                text = _value(entry, key)
                if text is None:
                    break
                pdf.append(_number(text, f"{path} {kind.value}/{STATE_KEYS[occupants]}/{key}"))
            states.distributions[(kind, occupants)] = pdf
    return states


def load_transition_matrix(path, occupants: int, kind: DayType) -> TransitionMatrix:
    """
    Read a transition probability file.

    Layout: one header row, then a fixed number of rows per 10-minute period
    (one per current active count), each row holding two index columns
    followed by the probabilities of the next active count.
    """
    path = Path(path)
    if not path.exists():
        raise DataError(f"Cannot open transition matrix {path}")
    values = pd.read_csv(path, header=0).iloc[:, 2:].to_numpy(dtype=float)

    states = occupants + 1
    rows_per_slot, remainder = divmod(values.shape[0], SLOTS_PER_DAY)
    if remainder or rows_per_slot < states or values.shape[1] < states:
        raise DataError(
            f"{path} has {values.shape[0]} rows x {values.shape[1]} probabilities; expected "
            f"{SLOTS_PER_DAY} periods of at least {states} rows and {states} columns"
        )
    table = values.reshape(SLOTS_PER_DAY, rows_per_slot, values.shape[1])[:, :states, :states]
    return TransitionMatrix(occupants=occupants, day_type=kind, probabilities=table)


def load_transition_library(data_dir, occupants: int) -> TransitionLibrary:
    library = TransitionLibrary()
    for kind in DayType:
        path = Path(data_dir) / f"tpm{occupants}_{kind.value}.csv"
        library.add(load_transition_matrix(path, occupants, kind))
    return library


# ----------------------------
# Appliance reference data
# ----------------------------
def load_activity_statistics(path) -> ActivityStatistics:
    """Rows: weekend flag, active occupants, activity name, 144 probabilities."""
    path = Path(path)
    if not path.exists():
        raise DataError(f"Could not open activity statistics {path}")
    df = pd.read_csv(path, header=None)
    if df.shape[1] < 3 + SLOTS_PER_DAY:
        raise DataError(f"{path} needs {3 + SLOTS_PER_DAY} columns. Got {df.shape[1]}.")

    stats = ActivityStatistics()
    for row in df.itertuples(index=False):
        kind = DayType.WEEKEND if float(row[0]) > 0 else DayType.WEEKDAY
        stats.add(kind, int(row[1]), str(row[2]).strip(), np.asarray(row[3:3 + SLOTS_PER_DAY], dtype=float))
    return stats


def load_appliance_definitions(path) -> Dict[str, ApplianceDefinition]:
    root = _parse_xml(path)
    definitions: Dict[str, ApplianceDefinition] = {}
    for elem in root:
        where = f"{path} {elem.tag}"
        definitions[elem.tag] = ApplianceDefinition(
            name=elem.tag,
            usage_profile=_required(elem, "Use_Profile", where),
            mean_cycle_length=_number(_required(elem, "Mean_cycle_L", where), where),
            base_cycles=_number(_required(elem, "Base_cycles", where), where),
            standby_power=_number(_required(elem, "Standby", where), where),
            mean_cycle_power=_number(_required(elem, "Mean_Pow_Cyc", where), where),
            restart_delay=_number(_required(elem, "Restart_Delay", where), where),
            occupancy_dependent="YES" in _value(elem, "Act_Occ_Dep", "NO").upper(),
            avg_activity_probability=_number(_required(elem, "Avg_Act_Prob", where), where),
        )
    return definitions


def load_irradiance(path) -> np.ndarray:
    """Global irradiance per minute [W/m2]: tab separated, two header lines."""
    path = Path(path)
    if not path.exists():
        raise DataError(f"Cannot open irradiance file {path}")
    df = pd.read_csv(path, sep="\t", skiprows=2, header=None)
    if df.shape[1] < 2:
        raise DataError(f"{path} needs a time column and an irradiance column")
    irradiance = df.iloc[:, 1].to_numpy(dtype=float)
    if irradiance.size < MINUTES_PER_YEAR:
        raise DataError(
            f"Irradiance file {path} does not have enough records "
            f"({irradiance.size} < {MINUTES_PER_YEAR})"
        )
    return irradiance[:MINUTES_PER_YEAR]


def load_reference_data(data_dir, occupants: int) -> ReferenceData:
    data_dir = Path(data_dir)
    if int(occupants) < 1:
        raise ConfigurationError(f"A dwelling needs at least one occupant. Got {occupants}.")
    occupants = min(int(occupants), MAX_OCCUPANTS)
    reference = ReferenceData(
        start_states=load_start_states(data_dir / START_STATES_FILE),
        transitions=load_transition_library(data_dir, occupants),
        activity=load_activity_statistics(data_dir / ACTIVITY_FILE),
        appliances=load_appliance_definitions(data_dir / APPLIANCE_FILE),
    )
    logger.info(f"Loaded reference data from {data_dir} for {occupants} occupants")
    return reference
