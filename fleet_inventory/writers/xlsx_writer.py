import logging
from pathlib import Path
from typing import Any, Dict, List

from openpyxl import Workbook
from openpyxl.cell.cell import ILLEGAL_CHARACTERS_RE
from openpyxl.utils.exceptions import IllegalCharacterError

from ..errors import ExportError

logger = logging.getLogger("inventory.writers.xlsx")

# Excel caps worksheet titles at 31 characters.
MAX_TITLE = 31


def cell_value(value: Any) -> Any:
    """None becomes "", control characters Excel refuses are stripped from text."""
    if value is None:
        return ""
    if isinstance(value, str):
        return ILLEGAL_CHARACTERS_RE.sub("", value)
    return value


class InventoryXlsxWriter:
    def __init__(self):
        self.cleaned_cells = 0

    def _row(self, values: List[Any]) -> List[Any]:
        cleaned = [cell_value(v) for v in values]
        self.cleaned_cells += sum(1 for old, new in zip(values, cleaned) if isinstance(old, str) and old != new)
        return cleaned

    def write(self, sheets: Dict[str, Dict[str, Any]], dest_path: Path) -> List[Dict[str, Any]]:
        """
        Create an XLSX with one worksheet per entry of `sheets`.

        Each entry is {"columns": [...], "rows": [dict, ...]}; rows are laid
        out in column order. Returns a summary per sheet.
        """
        wb = Workbook()
        wb.remove(wb.active)

        summaries = []
        try:
            for sheet_name, meta in sheets.items():
                columns = list(meta.get("columns", []))
                rows = meta.get("rows", []) or []

                ws = wb.create_sheet(title=sheet_name[:MAX_TITLE])
                ws.append(self._row(columns))
                for row in rows:
                    ws.append(self._row([row.get(col) for col in columns]))
                summaries.append({"sheet": sheet_name, "columns": len(columns), "rows": len(rows)})
        except (IllegalCharacterError, ValueError) as e:
            raise ExportError(dest_path, f"cannot build workbook: {e}") from e

        if self.cleaned_cells:
            logger.warning(f"Stripped control characters from {self.cleaned_cells} cell(s) in {dest_path}")

        try:
            wb.save(dest_path)
        except OSError as e:
            raise ExportError(dest_path, f"cannot write workbook: {e.strerror or e}") from e
        return summaries
