"""File writers for audit exports.

Writers create parent directories and log what they wrote. Failures are
logged and re-raised.
"""

import csv
import json
import logging
from pathlib import Path
from typing import Any, Dict, List, Optional

import pandas as pd

logger = logging.getLogger(__name__)


def ensure_dir(path: Path) -> Path:
    path = Path(path)
    path.mkdir(parents=True, exist_ok=True)
    return path


def write_json(path: Path, data: Any, indent: int = 2) -> Path:
    path = Path(path)
    ensure_dir(path.parent)
    try:
        with open(path, 'w', encoding='utf-8') as f:
            json.dump(data, f, indent=indent, default=str)
    except (OSError, TypeError) as e:
        logger.error(f"Failed to write JSON to {path}: {e}")
        raise
    logger.debug(f"Wrote JSON to {path}")
    return path


def read_json(path: Path) -> Optional[Any]:
    """Read a JSON file. Returns None when the file is missing."""
    path = Path(path)
    if not path.exists():
        return None
    with open(path, 'r', encoding='utf-8') as f:
        return json.load(f)


def write_csv(path: Path, rows: List[Dict[str, Any]], fieldnames: Optional[List[str]] = None) -> Path:
    """Write dict rows to CSV.

    With explicit fieldnames an empty row list still produces a header-only
    file, so downstream tooling always finds the columns it expects.
    """
    path = Path(path)
    ensure_dir(path.parent)

    if fieldnames is None:
        if not rows:
            logger.warning(f"No rows to write to {path}")
            return path
        fieldnames = list(rows[0].keys())

    try:
        with open(path, 'w', newline='', encoding='utf-8') as f:
            writer = csv.DictWriter(f, fieldnames=fieldnames)
            writer.writeheader()
            writer.writerows(rows)
    except OSError as e:
        logger.error(f"Failed to write CSV to {path}: {e}")
        raise
    logger.debug(f"Wrote {len(rows)} rows to {path}")
    return path


def read_csv(path: Path) -> List[Dict[str, str]]:
    path = Path(path)
    if not path.exists():
        return []
    with open(path, 'r', newline='', encoding='utf-8') as f:
        return list(csv.DictReader(f))


def write_excel(path: Path, sheets: Dict[str, pd.DataFrame]) -> Path:
    """Write one worksheet per DataFrame. Sheet names are cut to Excel's 31 chars."""
    path = Path(path)
    ensure_dir(path.parent)
    with pd.ExcelWriter(path, engine='openpyxl') as writer:
        for name, frame in sheets.items():
            frame.to_excel(writer, sheet_name=name[:31], index=False)
    logger.debug(f"Wrote {len(sheets)} sheets to {path}")
    return path
