import argparse
import json
import logging
import sys
from dataclasses import asdict
from pathlib import Path
from typing import List, Optional

from loadgen.csv_export import write_profiles
from loadgen.data.db import DB_PATH, save_run
from loadgen.data.reference import load_dwelling_config, load_reference_data
from loadgen.errors import LoadGenError
from loadgen.simulation.engine import SimulationEngine
from loadgen.simulation.report_generator import ReportGenerator

logger = logging.getLogger("loadgen")


def parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    p = argparse.ArgumentParser(
        prog="loadgen",
        description="Generate one year of minute resolution electricity demand for a dwelling.",
    )
    p.add_argument("input", type=str, help="dwelling description (XML)")
    p.add_argument("--data-dir", type=str, default="data", help="model reference data directory")
    p.add_argument("--out-dir", type=str, default="output")
    p.add_argument("--seed", type=int, default=None, help="seed for a reproducible run")
    p.add_argument("--report", choices=("markdown", "html"), default=None)
    p.add_argument("--save-db", action="store_true", help="archive daily totals in sqlite")
    p.add_argument("--db-path", type=str, default=str(DB_PATH))
    p.add_argument("-v", "--verbose", action="store_true")
    return p.parse_args(argv)


def run(args: argparse.Namespace) -> dict:
    cfg = load_dwelling_config(args.input, seed=args.seed, data_dir=args.data_dir)
    irradiance_path = cfg.lighting.irradiance_path
    if irradiance_path is not None and not Path(irradiance_path).is_absolute():
        # relative paths are taken from the input file's directory
        candidate = Path(args.input).parent / irradiance_path
        if candidate.exists():
            cfg.lighting.irradiance_path = str(candidate)

    reference = load_reference_data(cfg.data_dir, cfg.occupancy.occupants)
    profile = SimulationEngine(reference, cfg).run()

    paths = write_profiles(profile, args.out_dir, cfg.occupancy.occupants, cfg.occupancy.start_day)
    summary = {
        "outputs": {k: str(v) for k, v in paths.items()},
        "annual_energy": profile.annual_energy(),
        "mean_active_fraction": round(profile.mean_active_fraction, 4),
    }

    run_params = asdict(cfg)
    run_id = 0
    if args.save_db:
        run_id = save_run(Path(args.input).stem, run_params, profile.day_rows(), db_path=args.db_path)
        summary["run_id"] = run_id

    if args.report:
        reporter = ReportGenerator(output_dir=str(Path(args.out_dir) / "reports"))
        reporter.add_profile(profile)
        summary["report"] = reporter.generate_report(run_id, run_params, format=args.report)

    return summary


def main(argv: Optional[List[str]] = None) -> int:
    args = parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    try:
        summary = run(args)
    except LoadGenError as e:
        logger.error(str(e))
        print(f"loadgen: error: {e}", file=sys.stderr)
        return 1

    print("\n=== Done ===")
    print(json.dumps(summary, indent=2))
    return 0


if __name__ == "__main__":
    sys.exit(main())
