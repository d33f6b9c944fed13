"""
MISSION: The Ingest Layer.
Reads the collision CSV through DuckDB and hands immutable records to the
statistics modules.

Column names differ between the Open Data export ("CRASH DATE",
"CONTRIBUTING FACTOR VEHICLE 1") and the sampled dashboard files
("CRASH_DATE", "CONTRIBUTING_FACTOR_1"); both spellings are mapped onto one
schema before anything leaves SQL.
"""
import os

from collision_risk.features.records import records_from_frame
from collision_risk.utils.db import DatabaseManager

HOUR_PATTERN = r"^(\d{1,2}):(\d{1,2})"


class CollisionLoader:
    # Target column -> possible source names, first match wins
    COLUMN_MAP = {
        "crash_date": ["CRASH_DATE", "CRASH DATE"],
        "crash_time": ["CRASH_TIME", "CRASH TIME"],
        "borough": ["BOROUGH"],
        "factor1": ["CONTRIBUTING_FACTOR_1", "CONTRIBUTING FACTOR VEHICLE 1"],
        "factor2": ["CONTRIBUTING_FACTOR_2", "CONTRIBUTING FACTOR VEHICLE 2"],
        "vehicle_type": ["VEHICLE TYPE CODE 1", "VEHICLE_TYPE"],
        "pre_crash": ["PRE_CRASH"],
        "driver_sex": ["DRIVER_SEX"],
    }
    # A crash counts as injurious when any of these is > 0
    INJURY_COLUMNS = ["NUMBER OF PERSONS INJURED", "Severity"]

    def __init__(self, db_manager=None):
        self.db = db_manager or DatabaseManager()

    def load(self, csv_path):
        """Load a collision CSV and return a list of Record."""
        return records_from_frame(self.load_frame(csv_path))

    def load_frame(self, csv_path):
        if not os.path.isfile(csv_path):
            raise FileNotFoundError(f"Collision CSV not found: {csv_path}")

        con = self.db.connect()
        print("Ingesting collisions into DuckDB...")

        safe_path = str(csv_path).replace("'", "''")
        con.execute(f"""
            CREATE OR REPLACE TABLE collisions_raw AS
            SELECT * FROM read_csv_auto('{safe_path}', header=true, all_varchar=true)
        """)
        cols = [c[1] for c in con.execute("PRAGMA table_info('collisions_raw')").fetchall()]

        con.execute(f"CREATE OR REPLACE TABLE collisions AS {self._get_normalization_sql(cols)}")
        df = con.execute("SELECT * FROM collisions").df()
        print(f"Collisions table ready: {len(df)} rows.")
        return df

    def _find(self, target, cols):
        return next((s for s in self.COLUMN_MAP[target] if s in cols), None)

    def _get_normalization_sql(self, cols):
        select_parts = []

        date_col = self._find("crash_date", cols)
        if date_col:
            select_parts.append(f"""
                CAST(COALESCE(
                    try_strptime(trim("{date_col}"), '%m/%d/%Y'),
                    try_cast(trim("{date_col}") AS TIMESTAMP)
                ) AS DATE) AS crash_date""")
        else:
            select_parts.append("CAST(NULL AS DATE) AS crash_date")

        time_col = self._find("crash_time", cols)
        if time_col:
            select_parts.append(
                f"TRY_CAST(regexp_extract(trim(\"{time_col}\"), '{HOUR_PATTERN}', 1) AS INTEGER) AS hour"
            )
        else:
            select_parts.append("CAST(NULL AS INTEGER) AS hour")

        injury_terms = [
            f'COALESCE(TRY_CAST(trim("{c}") AS DOUBLE), 0) > 0'
            for c in self.INJURY_COLUMNS if c in cols
        ]
        select_parts.append(f"({' OR '.join(injury_terms) or 'FALSE'}) AS injured")

        for target in ("borough", "factor1", "factor2", "vehicle_type", "pre_crash", "driver_sex"):
            found = self._find(target, cols)
            if found:
                select_parts.append(f'"{found}" AS {target}')
            else:
                select_parts.append(f"CAST(NULL AS VARCHAR) AS {target}")

        return f"SELECT {', '.join(select_parts)} FROM collisions_raw"
