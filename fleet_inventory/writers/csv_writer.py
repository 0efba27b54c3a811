import csv
from pathlib import Path
from typing import Any, Dict, List

from ..errors import ExportError


def _sanitize(value: Any) -> Any:
    if value is None:
        return ""
    if isinstance(value, str):
        return value.replace("\r", " ").replace("\n", " ")
    return value


def write_delimited(records: List[Dict[str, Any]], columns: List[str], dest_path: Path) -> int:
    """
    Write records as CSV with a fixed column order. Returns the row count.

    The parent directory must already exist; nothing is created here.
    """
    dest_path = Path(dest_path)
    try:
        with dest_path.open("w", newline="", encoding="utf-8") as f:
            writer = csv.DictWriter(f, fieldnames=columns, extrasaction="ignore")
            writer.writeheader()
            for r in records:
                writer.writerow({c: _sanitize(r.get(c, "")) for c in columns})
    except OSError as e:
        raise ExportError(dest_path, f"cannot write delimited export: {e.strerror or e}") from e
    return len(records)
