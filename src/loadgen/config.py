"""Global configuration for household-loadgen.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import List, Optional, Tuple


@dataclass
class OccupancyConfig:
    occupants: int = 2
    start_day: int = 1  # 1=Sunday .. 7=Saturday
    rng_offset: int = 0


@dataclass
class LightingConfig:
    # wattage of each lamp in the dwelling [W]
    bulbs: Tuple[float, ...] = (100, 100, 60, 60, 60, 40, 40, 18, 18, 11, 11)
    irradiance_path: Optional[str] = None
    calibration_scalar: float = 0.008153686
    threshold_mean: float = 60.0  # W/m2
    threshold_std: float = 10.0
    rng_offset: int = 10


@dataclass
class ColdApplianceSpec:
    annual_energy: float  # kWh/yr
    cycles_per_year: float
    cycle_length: float  # min
    restart_delay: int  # min


@dataclass
class ApplianceConfig:
    calibration_scalar: float = 1.0
    base_load: float = 0.0  # unallocated constant load [W]
    base_dev: float = 0.0
    general: Tuple[str, ...] = ()
    cold: List[ColdApplianceSpec] = field(default_factory=list)
    rng_offset: int = 20  # baseload; cold and general appliances count up from here


@dataclass
class SimulationConfig:

    seed: Optional[int] = 42
    data_dir: str = "data"

    occupancy: OccupancyConfig = field(default_factory=OccupancyConfig)
    lighting: LightingConfig = field(default_factory=LightingConfig)
    appliances: ApplianceConfig = field(default_factory=ApplianceConfig)

    def component_seed(self, offset: int) -> Optional[int]:
        # separate, reproducible stream per component
        return None if self.seed is None else self.seed + offset


Sim_Config = SimulationConfig()
