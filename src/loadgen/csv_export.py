# src/loadgen/csv_export.py
from pathlib import Path
from typing import Dict
import logging

import pandas as pd

from loadgen.data.db import DB_PATH, get_conn
from loadgen.simulation.engine import DwellingProfile

logger = logging.getLogger(__name__)

OCCUPANCY_FILE = "Occupancy_Profile.csv"
LIGHTING_FILE = "Aggregate_Lighting_Demand.csv"
APPLIANCE_FILE = "Aggregate_Appliance_Demand.csv"
TOTAL_FILE = "Aggregate_App_Lighting_Demand.csv"


def _write_series(path: Path, day_of_year, column: str, values) -> None:
    df = pd.DataFrame({"day_of_year": day_of_year, column: values})
    df.to_csv(path, index=False, mode="a" if path.exists() else "w")


def write_profiles(profile: DwellingProfile, out_dir: str, occupants: int, start_day: int) -> Dict[str, Path]:
    """Write the occupancy, lighting, appliance and combined demand CSVs."""
    out = Path(out_dir)
    out.mkdir(parents=True, exist_ok=True)
    days = profile.day_of_year()

    paths = {
        "occupancy": out / OCCUPANCY_FILE,
        "lighting": out / LIGHTING_FILE,
        "appliance": out / APPLIANCE_FILE,
        "total": out / TOTAL_FILE,
    }
    for path in paths.values():
        path.unlink(missing_ok=True)

    # occupancy file carries the dwelling description ahead of the series
    with open(paths["occupancy"], "w") as f:
        f.write(f"total_occ,{occupants}\n")
        f.write(f"start_day,{start_day}\n")
    _write_series(paths["occupancy"], days, "num_active_occ", profile.occupancy)
    _write_series(paths["lighting"], days, "agg_lighting_W", profile.lighting_w)
    _write_series(paths["appliance"], days, "agg_appliance_W", profile.appliance_w)
    _write_series(paths["total"], days, "agg_appliance_light_W", profile.total_w)

    for path in paths.values():
        logger.info(f"Wrote CSV -> {path}")
    return paths


def export_daily_summary(run_id: int, out_path: str, db_path=DB_PATH) -> None:
    """Export the archived per-day energy of one run."""
    with get_conn(db_path) as conn:
        df = pd.read_sql_query(
            """
            SELECT r.run_id, r.run_label, r.started_at,
            d.day, d.occupancy_mean, d.lighting_kwh, d.appliance_kwh, d.total_kwh, d.peak_w
            FROM runs r
            JOIN days d ON d.run_id = r.run_id
            WHERE r.run_id = ?
            ORDER BY d.day
            """,
            conn,
            params=(run_id,),
        )

    df.to_csv(out_path, index=False)
    logger.info(f"Wrote CSV -> {out_path}")
