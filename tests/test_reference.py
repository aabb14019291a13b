"""
Tests for the dwelling and reference data loaders.
"""

import numpy as np
import pytest

from conftest import (
    ACTIVITY_PROBABILITY,
    daylight_irradiance,
    write_dwelling,
    write_irradiance_file,
    write_transition_file,
)
from loadgen.data.reference import (
    load_activity_statistics,
    load_appliance_definitions,
    load_dwelling_config,
    load_irradiance,
    load_reference_data,
    load_start_states,
    load_transition_matrix,
)
from loadgen.errors import ConfigurationError, DataError
from loadgen.models.appliances import ApplianceKind, LevelUsage
from loadgen.models.calendar import MINUTES_PER_YEAR, SLOTS_PER_DAY, DayType


def test_dwelling_config(tmp_path):
    path = tmp_path / "dwelling.xml"
    write_dwelling(path, occupants=3, start_day=4)

    cfg = load_dwelling_config(path, seed=7, data_dir="somewhere")

    assert cfg.seed == 7
    assert cfg.data_dir == "somewhere"
    assert cfg.occupancy.occupants == 3
    assert cfg.occupancy.start_day == 4
    assert cfg.lighting.bulbs == (100.0, 60.0, 11.0)
    assert cfg.lighting.irradiance_path == "irradiance.txt"
    assert cfg.lighting.threshold_mean == 60.0
    assert cfg.lighting.threshold_std == 10.0
    assert cfg.appliances.base_load == 50.0
    assert cfg.appliances.base_dev == 5.0
    assert cfg.appliances.general == ("Clothes_Washer", "Living_Room_TV")
    assert len(cfg.appliances.cold) == 1
    cold = cfg.appliances.cold[0]
    assert (cold.annual_energy, cold.cycles_per_year, cold.cycle_length, cold.restart_delay) == (300, 10000, 20, 10)


def test_dwelling_fractional_cold_cycle_length(tmp_path):
    path = tmp_path / "dwelling.xml"
    write_dwelling(path)
    path.write_text(path.read_text().replace("<mean_cycle_L>20</mean_cycle_L>", "<mean_cycle_L>20.5</mean_cycle_L>"))

    cfg = load_dwelling_config(path)

    assert cfg.appliances.cold[0].cycle_length == 20.5


def test_dwelling_config_attributes_and_defaults(tmp_path):
    path = tmp_path / "dwelling.xml"
    path.write_text(
        '<dwelling><inputs num_of_occ="1"/>'
        '<sim_parameters start_day="2"/></dwelling>'
    )
    cfg = load_dwelling_config(path)

    assert cfg.occupancy.occupants == 1
    assert cfg.occupancy.start_day == 2
    assert cfg.lighting.bulbs == ()
    assert cfg.lighting.calibration_scalar == pytest.approx(0.008153686)
    assert cfg.appliances.calibration_scalar == 1.0
    assert cfg.appliances.cold == []


def test_dwelling_missing_sections(tmp_path):
    path = tmp_path / "dwelling.xml"
    path.write_text("<dwelling><inputs/></dwelling>")
    with pytest.raises(DataError):
        load_dwelling_config(path)


def test_dwelling_missing_required_value(tmp_path):
    path = tmp_path / "dwelling.xml"
    path.write_text("<dwelling><inputs/><sim_parameters><start_day>1</start_day></sim_parameters></dwelling>")
    with pytest.raises(DataError):
        load_dwelling_config(path)


def test_malformed_xml(tmp_path):
    path = tmp_path / "dwelling.xml"
    path.write_text("<dwelling><inputs>")
    with pytest.raises(DataError):
        load_dwelling_config(path)


def test_missing_file(tmp_path):
    with pytest.raises(DataError):
        load_dwelling_config(tmp_path / "nope.xml")


def test_start_states(data_dir):
    states = load_start_states(data_dir / "occ_start_states.xml")

    pdf = states.get(DayType.WEEKEND, 2)
    assert pdf[:3] == pytest.approx([1 / 3] * 3)
    assert np.all(pdf[3:] == 0)
    assert states.get(DayType.WEEKDAY, 5)[:6] == pytest.approx([1 / 6] * 6)


def test_transition_matrix(tmp_path):
    path = tmp_path / "tpm2_wd.csv"
    write_transition_file(path, occupants=2)

    matrix = load_transition_matrix(path, 2, DayType.WEEKDAY)

    assert matrix.probabilities.shape == (SLOTS_PER_DAY, 3, 3)
    assert np.allclose(matrix.probabilities, 1 / 3)
    assert matrix.day_type is DayType.WEEKDAY


def test_transition_matrix_wrong_row_count(tmp_path):
    path = tmp_path / "tpm2_wd.csv"
    write_transition_file(path, occupants=2)
    lines = path.read_text().splitlines()
    path.write_text("\n".join(lines[:-1]))

    with pytest.raises(DataError):
        load_transition_matrix(path, 2, DayType.WEEKDAY)


def test_transition_matrix_missing(tmp_path):
    with pytest.raises(DataError):
        load_transition_matrix(tmp_path / "tpm9_wd.csv", 2, DayType.WEEKDAY)


def test_activity_statistics(data_dir):
    stats = load_activity_statistics(data_dir / "activity_stats.csv")

    table = stats.probability_table("Act_TV", [1, 2, 3, 4, 5])
    assert np.allclose(table[:, 1:], ACTIVITY_PROBABILITY)
    assert (DayType.WEEKEND, 3, "Act_Laundry") in stats.profiles
    assert (DayType.WEEKDAY, 3, "Act_Laundry") in stats.profiles


def test_activity_weekend_flag_read_per_row(tmp_path):
    path = tmp_path / "activity_stats.csv"
    row = ",".join(["0.5"] * SLOTS_PER_DAY)
    path.write_text(f"1,1,Act_TV,{row}\n0,1,Act_TV,{row}\n")

    stats = load_activity_statistics(path)
    assert set(stats.profiles) == {(DayType.WEEKEND, 1, "Act_TV"), (DayType.WEEKDAY, 1, "Act_TV")}


def test_appliance_definitions(data_dir):
    definitions = load_appliance_definitions(data_dir / "appliance_database.xml")

    washer = definitions["Clothes_Washer"]
    assert washer.kind is ApplianceKind.CLOTHES_WASHER
    assert washer.mean_cycle_power == 400
    assert washer.occupancy_dependent
    assert washer.avg_activity_probability == pytest.approx(0.1)

    router = definitions["Router"]
    assert isinstance(router.usage, LevelUsage)
    assert not router.occupancy_dependent


def test_appliance_definition_missing_field(tmp_path):
    path = tmp_path / "appliance_database.xml"
    path.write_text("<appliances><Kettle><Use_Profile>Active_Occ</Use_Profile></Kettle></appliances>")
    with pytest.raises(DataError):
        load_appliance_definitions(path)


def test_irradiance(tmp_path):
    path = tmp_path / "irradiance.txt"
    values = np.concatenate([daylight_irradiance(), [1.0, 2.0]])
    write_irradiance_file(path, values)

    irradiance = load_irradiance(path)
    assert irradiance.size == MINUTES_PER_YEAR
    assert np.allclose(irradiance, values[:MINUTES_PER_YEAR])


def test_irradiance_too_short(tmp_path):
    path = tmp_path / "irradiance.txt"
    write_irradiance_file(path, np.zeros(1000))
    with pytest.raises(DataError):
        load_irradiance(path)


def test_reference_data(data_dir, appliances):
    reference = load_reference_data(data_dir, 2)

    assert reference.transitions.get(DayType.WEEKDAY, 2).occupants == 2
    assert reference.transitions.get(DayType.WEEKEND, 2).occupants == 2
    assert set(reference.appliances) == set(appliances)


def test_reference_data_clamps_occupants(data_dir):
    reference = load_reference_data(data_dir, 9)
    assert reference.transitions.get(DayType.WEEKDAY, 5).occupants == 5


@pytest.mark.parametrize("occupants", [0, -2])
def test_reference_data_needs_an_occupant(data_dir, occupants):
    with pytest.raises(ConfigurationError):
        load_reference_data(data_dir, occupants)
