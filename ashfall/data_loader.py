"""Rule-table loader.

Tables are parsed once per file version: the cache is keyed on the file's
modification time, so an edited table in a custom data directory is
picked up on the next load. Callers get their own copy of the table.

Usage:
    from ashfall.data_loader import load_json

    gates = load_json(DATA_DIR / "gates.json")
"""

import copy
import json
from functools import lru_cache
from pathlib import Path
from typing import Any, Dict, Union

DATA_DIR = Path(__file__).resolve().parent / "data"


@lru_cache(maxsize=32)
def _parse_table(filepath: str, mtime_ns: int) -> Any:
    with open(filepath, "r", encoding="utf-8") as f:
        return json.load(f)


def load_json(filepath: Union[str, Path]) -> Dict[str, Any]:
    """Load a rule table, which must be a JSON object."""
    path = Path(filepath).resolve()
    table = _parse_table(str(path), path.stat().st_mtime_ns)
    if not isinstance(table, dict):
        raise ValueError(f"{path.name}: expected a JSON object, got {type(table).__name__}")
    return copy.deepcopy(table)
