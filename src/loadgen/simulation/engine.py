"""Core simulation engine.

Coordinates the occupancy, lighting and appliance models for one dwelling
over a full year at one minute resolution.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Sequence, Tuple

import numpy as np
import pandas as pd

from loadgen.config import SimulationConfig, Sim_Config
from loadgen.data.reference import ReferenceData, load_irradiance
from loadgen.errors import ConfigurationError, DataError
from loadgen.models.appliances import ApplianceModel
from loadgen.models.calendar import MINUTES_PER_DAY, MINUTES_PER_YEAR, check_day_of_week
from loadgen.models.cold_appliance import ColdApplianceModel
from loadgen.models.lighting import LightingModel
from loadgen.models.occupancy import OccupancyModel, mean_active_fraction
from loadgen.models.random_variate import sample_normal

logger = logging.getLogger(__name__)


@dataclass
class DwellingProfile:
    occupancy: np.ndarray  # active occupants
    lighting_kw: np.ndarray
    appliance_w: np.ndarray
    mean_active_fraction: float
    base_load: float = 0.0  # W
    appliance_energy: Dict[str, float] = field(default_factory=dict)  # kWh/yr per appliance

    @property
    def lighting_w(self) -> np.ndarray:
        return self.lighting_kw * 1000.0

    @property
    def total_w(self) -> np.ndarray:
        return self.appliance_w + self.lighting_w

    def day_of_year(self) -> np.ndarray:
        return 1.0 + np.arange(self.occupancy.size) / MINUTES_PER_DAY

    def to_frame(self) -> pd.DataFrame:
        df = pd.DataFrame(
            {
                "occupancy": self.occupancy,
                "lighting_W": self.lighting_w,
                "appliance_W": self.appliance_w,
                "total_W": self.total_w,
            },
            index=pd.Index(self.day_of_year(), name="day_of_year"),
        )
        return df

    def daily_summary(self) -> pd.DataFrame:
        """Per day: mean active occupants, kWh per series and peak demand."""
        df = pd.DataFrame({
            "day": np.arange(self.occupancy.size) // MINUTES_PER_DAY + 1,
            "occupancy": self.occupancy,
            "lighting_kwh": self.lighting_w / 60000.0,
            "appliance_kwh": self.appliance_w / 60000.0,
            "total_kwh": self.total_w / 60000.0,
            "peak_w": self.total_w,
        })
        return df.groupby("day").agg(
            occupancy_mean=("occupancy", "mean"),
            lighting_kwh=("lighting_kwh", "sum"),
            appliance_kwh=("appliance_kwh", "sum"),
            total_kwh=("total_kwh", "sum"),
            peak_w=("peak_w", "max"),
        ).reset_index()

    def day_rows(self) -> List[Tuple[int, float, float, float, float, float]]:
        # plain python values for the sqlite archive
        return [
            (int(r.day), float(r.occupancy_mean), float(r.lighting_kwh),
             float(r.appliance_kwh), float(r.total_kwh), float(r.peak_w))
            for r in self.daily_summary().itertuples(index=False)
        ]

    def annual_energy(self) -> Dict[str, float]:
        return {
            "lighting_kwh": float(self.lighting_w.sum() / 60000.0),
            "appliance_kwh": float(self.appliance_w.sum() / 60000.0),
            "total_kwh": float(self.total_w.sum() / 60000.0),
        }


class SimulationEngine:
    def __init__(
        self,
        reference: ReferenceData,
        config: SimulationConfig = Sim_Config,
        irradiance: Optional[Sequence[float]] = None,
    ):
        self.reference = reference
        self.config = config
        self.irradiance = irradiance

    def _rng(self, offset: int) -> np.random.Generator:
        return np.random.default_rng(self.config.component_seed(offset))

    def _check_config(self) -> None:
        cfg = self.config
        check_day_of_week(cfg.occupancy.start_day)
        missing = [name for name in cfg.appliances.general if name not in self.reference.appliances]
        if missing:
            raise ConfigurationError(f"Appliance {missing[0]} is not defined in the appliance database")

    def _load_irradiance(self) -> np.ndarray:
        if self.irradiance is not None:
            irradiance = np.asarray(self.irradiance, dtype=float)
            if irradiance.size < MINUTES_PER_YEAR:
                raise DataError(
                    f"Irradiance has {irradiance.size} records, needs {MINUTES_PER_YEAR}"
                )
            return irradiance[:MINUTES_PER_YEAR]
        path = self.config.lighting.irradiance_path
        if path is None:
            raise DataError("No irradiance series or irradiance path configured")
        return load_irradiance(path)

    def run(self) -> DwellingProfile:
        """
        Generate occupancy, lighting and appliance demand for the dwelling.
        Fatal errors propagate before any profile is returned.
        """
        cfg = self.config
        self._check_config()
        irradiance = self._load_irradiance()

        occupancy = OccupancyModel(
            self.reference.transitions,
            self.reference.start_states,
            self._rng(cfg.occupancy.rng_offset),
        ).generate(cfg.occupancy.occupants, cfg.occupancy.start_day)
        active_fraction = mean_active_fraction(occupancy)

        lighting = LightingModel(self._rng(cfg.lighting.rng_offset)).generate(
            irradiance,
            cfg.lighting.bulbs,
            cfg.lighting.calibration_scalar,
            cfg.lighting.threshold_mean,
            cfg.lighting.threshold_std,
            occupancy,
        )

        base_load = self.base_load()
        appliance = np.full(MINUTES_PER_YEAR, base_load)
        energy: Dict[str, float] = {}

        offset = cfg.appliances.rng_offset + 1
        for i, spec in enumerate(cfg.appliances.cold):
            cold = ColdApplianceModel(self._rng(offset)).generate(
                spec.annual_energy, spec.cycles_per_year, spec.cycle_length, spec.restart_delay
            )
            appliance += cold
            energy[f"cold_{i + 1}"] = float(cold.sum() / 60000.0)
            offset += 1

        for name in cfg.appliances.general:
            model = ApplianceModel(self.reference.activity, self._rng(offset))
            profile = model.generate(
                occupancy,
                active_fraction,
                self.reference.appliances[name],
                cfg.appliances.calibration_scalar,
                cfg.occupancy.start_day,
            )
            appliance += profile
            energy[name] = energy.get(name, 0.0) + float(profile.sum() / 60000.0)
            offset += 1

        logger.info(
            f"Appliance profile complete: {len(cfg.appliances.cold)} cold, "
            f"{len(cfg.appliances.general)} general, baseload {base_load:.1f} W"
        )
        return DwellingProfile(
            occupancy=occupancy,
            lighting_kw=lighting,
            appliance_w=appliance,
            mean_active_fraction=active_fraction,
            base_load=base_load,
            appliance_energy=energy,
        )

    def base_load(self) -> float:
        """Constant unallocated load of the dwelling [W]."""
        base = self.config.appliances.base_load
        if base > 0:
            base = sample_normal(
                self._rng(self.config.appliances.rng_offset), base, self.config.appliances.base_dev
            )
        return max(base, 0.0)
