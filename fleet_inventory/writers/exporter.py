import hashlib
import logging
import re
import threading
from pathlib import Path
from typing import Any, Dict, List, Optional

from ..models import (
    APP_NAME_COLUMN,
    HOTFIX_DETAIL_COLUMNS,
    INSTALLED_APPS_COLUMNS,
    ComparisonRow,
    HotfixRecord,
    InstalledApplication,
    ReportRow,
    report_columns,
)
from .csv_writer import write_delimited
from .html_writer import write_markup
from .table import render_table
from .xlsx_writer import InventoryXlsxWriter

logger = logging.getLogger("inventory.exporter")


def safe_filename(name: str) -> str:
    return re.sub(r"[^A-Za-z0-9._-]", "_", name.strip()) or "unnamed"


def rows_columns(rows: List[ReportRow]) -> List[str]:
    """Report columns for the union of categories present on the rows."""
    present = set()
    for r in rows:
        present.update(r.categories())
    return report_columns(present)


class ReportExporter:
    """
    Renders report rows and the comparison matrix into files under out_dir.

    Every file-writing method raises ExportError on failure and leaves
    other outputs alone; callers decide how to report it.
    """

    def __init__(self, out_dir: Path, timestamp: str, delimited_ext: str = "csv", markup_ext: str = "html"):
        self.out_dir = Path(out_dir)
        self.timestamp = timestamp
        self.delimited_ext = delimited_ext
        self.markup_ext = markup_ext
        self._stems: Dict[str, str] = {}
        self._stems_lock = threading.Lock()

    # File names

    def machine_stem(self, machine: str) -> str:
        """
        File-safe name for per-machine outputs, unique within this exporter.

        Two machines that sanitize to the same name keep separate files: the
        later one gets a suffix derived from its full name.
        """
        stem = safe_filename(machine)
        with self._stems_lock:
            owner = self._stems.setdefault(stem, machine)
        if owner == machine:
            return stem
        unique = f"{stem}_{hashlib.sha1(machine.encode('utf-8')).hexdigest()[:8]}"
        logger.warning(f"[{machine}] file name {stem!r} already used by {owner!r}, writing as {unique!r}")
        return unique

    def system_report_path(self, ext: Optional[str] = None) -> Path:
        return self.out_dir / f"SystemReport_{self.timestamp}.{ext or self.delimited_ext}"

    def comparison_path(self) -> Path:
        return self.out_dir / f"AppComparison_{self.timestamp}.{self.delimited_ext}"

    def hotfix_detail_path(self, machine: str) -> Path:
        return self.out_dir / f"HotfixDetails_{self.machine_stem(machine)}.{self.delimited_ext}"

    def installed_apps_path(self, machine: str) -> Path:
        return self.out_dir / f"InstalledApps_{self.machine_stem(machine)}.{self.delimited_ext}"

    def markup_path(self) -> Path:
        return self.system_report_path(self.markup_ext)

    def workbook_path(self) -> Path:
        return self.system_report_path("xlsx")

    # Renderers

    def render_table(self, rows: List[ReportRow]) -> str:
        return render_table([r.as_record() for r in rows], rows_columns(rows))

    def render_comparison(self, machines: List[str], comparison: List[ComparisonRow]) -> str:
        return render_table([c.as_record(machines) for c in comparison], [APP_NAME_COLUMN] + list(machines))

    def export_delimited(self, records: List[Dict[str, Any]], columns: List[str], path: Path) -> Path:
        count = write_delimited(records, columns, path)
        logger.info(f"Wrote {count} row(s) to {path}")
        return Path(path)

    def export_report(self, rows: List[ReportRow], path: Optional[Path] = None) -> Path:
        return self.export_delimited(
            [r.as_record() for r in rows],
            rows_columns(rows),
            path or self.system_report_path(),
        )

    def export_comparison(self, machines: List[str], comparison: List[ComparisonRow], path: Optional[Path] = None) -> Path:
        return self.export_delimited(
            [c.as_record(machines) for c in comparison],
            [APP_NAME_COLUMN] + list(machines),
            path or self.comparison_path(),
        )

    def export_hotfix_details(self, machine: str, hotfixes: List[HotfixRecord]) -> Path:
        return self.export_delimited(
            [h.as_record() for h in hotfixes],
            HOTFIX_DETAIL_COLUMNS,
            self.hotfix_detail_path(machine),
        )

    def export_installed_apps(self, machine: str, apps: List[InstalledApplication]) -> Path:
        return self.export_delimited(
            [a.as_record() for a in apps],
            INSTALLED_APPS_COLUMNS,
            self.installed_apps_path(machine),
        )

    def export_markup(self, rows: List[ReportRow], template_path: Optional[Path] = None, path: Optional[Path] = None) -> Path:
        dest = Path(path or self.markup_path())
        write_markup(
            [r.as_record() for r in rows],
            rows_columns(rows),
            dest,
            template_path=template_path,
            title="System Report",
            generated_at=self.timestamp,
        )
        logger.info(f"Wrote markup report to {dest}")
        return dest

    def export_workbook(
        self,
        rows: List[ReportRow],
        machines: Optional[List[str]] = None,
        comparison: Optional[List[ComparisonRow]] = None,
        path: Optional[Path] = None,
    ) -> Path:
        dest = Path(path or self.workbook_path())
        sheets = {
            "SystemReport": {"columns": rows_columns(rows), "rows": [r.as_record() for r in rows]},
        }
        if comparison is not None and machines is not None:
            sheets["AppComparison"] = {
                "columns": [APP_NAME_COLUMN] + list(machines),
                "rows": [c.as_record(machines) for c in comparison],
            }
        summary = InventoryXlsxWriter().write(sheets, dest)
        for item in summary:
            logger.info(f"Workbook {item['sheet']}: cols={item['columns']} rows={item['rows']}")
        return dest
