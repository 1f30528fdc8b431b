import polars as pl
import os
import re
from typing import List, Dict, Any, Tuple
import unicodedata

MAX_GTFS_HOUR: int = 47
STOP_TIMES_FILE = "stop_times.txt"


# ------------------------------
# TIME PARSER
# ------------------------------
def parse_time(t: str) -> str:
    """
    Parse a time string and return HH:MM:SS.
    Rules:
      - With colons (:): parse flexibly (e.g., "7:1" -> "07:01:00").
      - Without colons: only 4 or 6 digits are allowed:
            4 digits (HHMM) -> HH:MM:00
            6 digits (HHMMSS) -> HH:MM:SS
      Supports hours up to 47 (services running past midnight).
    """
    if isinstance(t, int):
        t = str(t)
    t = t.strip().lower()

    ampm_match = re.fullmatch(r'(\d{1,2}):?(\d{1,2})?:?(\d{1,2})?\s*(am|pm)', t)
    if ampm_match:
        h, m, s, meridiem = ampm_match.groups()
        h, m, s = int(h), int(m or 0), int(s or 0)
        if meridiem == 'pm' and h < 12:
            h += 12
        if meridiem == 'am' and h == 12:
            h = 0
        return _check_hms(t, h, m, s)

    if ':' in t:
        parts = t.split(':')
        if len(parts) > 3 or not all(p.isdigit() or p == '' for p in parts):
            raise ValueError(f"Could not parse time: {t}")
        parts = [p if p else '0' for p in parts]
        while len(parts) < 3:
            parts.append('0')
        h, m, s = map(int, parts)
        return _check_hms(t, h, m, s)

    if not t.isdigit():
        raise ValueError(f"Could not parse time: {t}")

    if len(t) == 4:  # HHMM
        h, m, s = int(t[:2]), int(t[2:4]), 0
    elif len(t) == 6:  # HHMMSS
        h, m, s = int(t[:2]), int(t[2:4]), int(t[4:6])
    else:
        raise ValueError(f"Invalid time format (must be 4 or 6 digits): {t}")

    return _check_hms(t, h, m, s)


def _check_hms(t: str, h: int, m: int, s: int) -> str:
    if m > 59 or s > 59:
        raise ValueError(f"Invalid time value: {t}")
    if h > MAX_GTFS_HOUR:
        raise ValueError(f"Invalid hour value: {t} is over {MAX_GTFS_HOUR} hours")
    return f"{h:02}:{m:02}:{s:02}"


# ------------------------------
# SCHEMA DEFINITION
# ------------------------------
def get_df_schema_dict(path: str) -> Tuple[Dict[str, Any], List[str]]:
    path = os.path.splitext(str(path))[0]
    path += ".txt"
    if STOP_TIMES_FILE in path:
        schema_dict = {
            "trip_id": str,
            "arrival_time": "time|None",
            "departure_time": "time|None",
            "stop_id": str,
            "stop_sequence": int,
            "shape_dist_traveled": float,
            "timepoint": "int|bool",
        }
        mandatory_cols = ["trip_id", "stop_sequence"]
    else:
        raise Exception(f"File {path} not implemented.")
    return schema_dict, mandatory_cols


def search_file(path, file):
    """
    Recursively searches for the first file that matches the given filename
    in the directory and its subdirectories.

    Args:
        path (str): The root directory to start searching from.
        file (str): The filename to search for (case-sensitive).

    Returns:
        str | None: The full path of the first matching file, or None if not found.
    """
    for root, dirs, files in os.walk(path):
        for f in files:
            if os.path.splitext(file)[0] == os.path.splitext(f)[0]:
                return os.path.join(root, f)

    return None


# ------------------------------
# NORMALIZATION
# ------------------------------
def normalize_string(s: str) -> str:
    """
    Normalize a column name: ASCII only, lowercase, spaces to underscores,
    only a-z, 0-9 and underscores kept.
    """
    if not isinstance(s, str):
        raise TypeError("Input must be a string.")

    s = unicodedata.normalize("NFKD", s)
    s = s.encode("ascii", "ignore").decode("ascii")
    s = s.strip().lower()
    s = re.sub(r"\s+", "_", s)
    s = re.sub(r"[^a-z0-9_]", "", s)
    return s


def normalize_df(lf: pl.LazyFrame | pl.DataFrame) -> pl.LazyFrame | pl.DataFrame:
    """
    Normalize column names (a BOM or stray spaces in the header are common) and
    strip whitespace around string values.
    """
    schema = lf.collect_schema()
    column_names = schema.names()

    normalized_column_names = [normalize_string(col) for col in column_names]
    lf = lf.rename(dict(zip(column_names, normalized_column_names)))

    for old_name, new_name in zip(column_names, normalized_column_names):
        if schema.get(old_name) == pl.Utf8:
            lf = lf.with_columns(pl.col(new_name).str.strip_chars().alias(new_name))

    return lf
