import sqlite3
from pathlib import Path
import json
from datetime import datetime, timezone
from typing import Iterable, List, Optional, Tuple

DB_PATH = Path("data") / "loadgen.db"


# ----------------------------
# Connection helpers
# ----------------------------
def get_conn(db_path=DB_PATH) -> sqlite3.Connection:
    db_path = Path(db_path)
    db_path.parent.mkdir(parents=True, exist_ok=True)
    conn = sqlite3.connect(db_path)
    conn.execute("PRAGMA foreign_keys = ON;")
    return conn


def chunked(seq: List[tuple], chunk_size: int) -> Iterable[List[tuple]]:
    for i in range(0, len(seq), chunk_size):
        yield seq[i:i + chunk_size]


# ----------------------------
# Schema
# ----------------------------
def init_db(db_path=DB_PATH) -> None:
    with get_conn(db_path) as conn:
        conn.execute("""
        CREATE TABLE IF NOT EXISTS runs (
            run_id INTEGER PRIMARY KEY AUTOINCREMENT,
            started_at TEXT NOT NULL,
            sim_name TEXT NOT NULL,
            run_number INTEGER NOT NULL,
            run_label TEXT NOT NULL,
            params_json TEXT,
            UNIQUE(sim_name, run_number),
            UNIQUE(run_label)
        );
        """)

        # One row per simulated day
        conn.execute("""
        CREATE TABLE IF NOT EXISTS days (
            run_id INTEGER NOT NULL,
            day INTEGER NOT NULL,
            occupancy_mean REAL NOT NULL,
            lighting_kwh REAL NOT NULL,
            appliance_kwh REAL NOT NULL,
            total_kwh REAL NOT NULL,
            peak_w REAL NOT NULL,
            PRIMARY KEY (run_id, day),
            FOREIGN KEY(run_id) REFERENCES runs(run_id) ON DELETE CASCADE
        );
        """)

        conn.execute("""
        CREATE TABLE IF NOT EXISTS run_summary (
            run_id INTEGER PRIMARY KEY,
            n_days INTEGER NOT NULL,
            lighting_kwh REAL,
            appliance_kwh REAL,
            total_kwh REAL,
            peak_w REAL,
            occupancy_mean REAL,
            FOREIGN KEY(run_id) REFERENCES runs(run_id) ON DELETE CASCADE
        );
        """)

        conn.execute("CREATE INDEX IF NOT EXISTS idx_days_run ON days(run_id);")


# ----------------------------
# Run creation
# ----------------------------
def create_run(conn: sqlite3.Connection, sim_name: str, params: dict) -> int:
    cur = conn.cursor()
    cur.execute(
        "SELECT COALESCE(MAX(run_number), 0) + 1 FROM runs WHERE sim_name = ?",
        (sim_name,)
    )
    run_number = cur.fetchone()[0]
    run_label = f"{sim_name}-{run_number:04d}"

    cur.execute(
        """
        INSERT INTO runs (started_at, sim_name, run_number, run_label, params_json)
        VALUES (?, ?, ?, ?, ?)
        """,
        (datetime.now(timezone.utc).isoformat(), sim_name, run_number, run_label, json.dumps(params))
    )
    return cur.lastrowid


# ----------------------------
# Inserts
# ----------------------------
# days: (day, occupancy_mean, lighting_kwh, appliance_kwh, total_kwh, peak_w)
DayRow = Tuple[int, float, float, float, float, float]


def insert_days(conn: sqlite3.Connection, run_id: int, day_rows: List[DayRow], chunk_size: int = 1_000) -> None:
    sql = """
    INSERT INTO days
    (run_id, day, occupancy_mean, lighting_kwh, appliance_kwh, total_kwh, peak_w)
    VALUES (?, ?, ?, ?, ?, ?, ?)
    """
    for batch in chunked(day_rows, chunk_size):
        conn.executemany(sql, [(run_id, *row) for row in batch])


# ----------------------------
# Summary
# ----------------------------
def update_run_summary(conn: sqlite3.Connection, run_id: int) -> None:
    cur = conn.cursor()

    cur.execute("""
        SELECT
            COUNT(*) AS n_days,
            SUM(lighting_kwh),
            SUM(appliance_kwh),
            SUM(total_kwh),
            MAX(peak_w),
            AVG(occupancy_mean)
        FROM days
        WHERE run_id = ?
    """, (run_id,))
    n_days, lighting, appliance, total, peak, occ = cur.fetchone()

    conn.execute("""
        INSERT INTO run_summary
        (run_id, n_days, lighting_kwh, appliance_kwh, total_kwh, peak_w, occupancy_mean)
        VALUES (?, ?, ?, ?, ?, ?, ?)
        ON CONFLICT(run_id) DO UPDATE SET
            n_days=excluded.n_days,
            lighting_kwh=excluded.lighting_kwh,
            appliance_kwh=excluded.appliance_kwh,
            total_kwh=excluded.total_kwh,
            peak_w=excluded.peak_w,
            occupancy_mean=excluded.occupancy_mean
    """, (run_id, n_days or 0, lighting, appliance, total, peak, occ))


# ----------------------------
# One-call save API
# ----------------------------
def save_run(
    sim_name: str,
    params: dict,
    day_rows: List[DayRow],
    db_path=DB_PATH,
) -> int:
    init_db(db_path)
    with get_conn(db_path) as conn:
        conn.execute("BEGIN;")
        try:
            run_id = create_run(conn, sim_name, params)
            insert_days(conn, run_id, day_rows)
            update_run_summary(conn, run_id)
            conn.commit()
            return run_id
        except Exception:
            conn.rollback()
            raise


def load_run_summary(run_id: int, db_path=DB_PATH) -> Optional[dict]:
    with get_conn(db_path) as conn:
        cur = conn.execute(
            """
            SELECT r.run_label, s.n_days, s.lighting_kwh, s.appliance_kwh, s.total_kwh, s.peak_w, s.occupancy_mean
            FROM runs r JOIN run_summary s ON s.run_id = r.run_id
            WHERE r.run_id = ?
            """,
            (run_id,),
        )
        row = cur.fetchone()
    if row is None:
        return None
    keys = ("run_label", "n_days", "lighting_kwh", "appliance_kwh", "total_kwh", "peak_w", "occupancy_mean")
    return dict(zip(keys, row))
