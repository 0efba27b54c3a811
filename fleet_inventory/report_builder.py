import logging
import threading
from dataclasses import dataclass
from typing import Any, Dict, Iterable, List, Optional

from .app_matrix import AppMatrixBuilder
from .collectors import FactCollector
from .errors import ExportError
from .models import FactCategory, Ok, ReportRow, ordered_categories
from .writers import ReportExporter

logger = logging.getLogger("inventory.report_builder")


@dataclass(frozen=True)
class BuildOptions:
    hotfix_detail: bool = False
    compare_apps: bool = False
    export_apps: bool = False


class MachineReportBuilder:
    """
    Builds one ReportRow per machine.

    Each enabled category is collected and stored on its own; a failure in
    one never changes what happens to the others.
    """

    def __init__(
        self,
        fact_collector: FactCollector,
        app_matrix: Optional[AppMatrixBuilder] = None,
        exporter: Optional[ReportExporter] = None,
        options: Optional[BuildOptions] = None,
    ):
        self.fact_collector = fact_collector
        self.app_matrix = app_matrix
        self.exporter = exporter
        self.options = options or BuildOptions()
        self._lock = threading.Lock()
        self.exports: List[Dict[str, Any]] = []

    def _client(self, machine: str):
        try:
            return self.fact_collector.client_factory(machine)
        except Exception as e:
            logger.warning(f"[{machine}] could not create transport client: {e}")
            return None

    def build(self, machine: str, categories: Iterable[FactCategory]) -> ReportRow:
        row = ReportRow(hostname=machine)
        client = self._client(machine)

        for category in ordered_categories(categories):
            result = self.fact_collector.collect(category, machine, client=client)
            row.set(category, result)
            if not isinstance(result, Ok):
                continue
            if category == FactCategory.HOTFIX and self.options.hotfix_detail:
                self._export(machine, "hotfix_detail", result.payload)
            if category == FactCategory.APPLICATIONS:
                if self.options.compare_apps and self.app_matrix is not None:
                    self.app_matrix.add(machine, result.payload)
                if self.options.export_apps:
                    self._export(machine, "installed_apps", result.payload)

        failed = [c.value for c in row.failed_categories()]
        if failed:
            logger.warning(f"[{machine}] completed with failed categories: {', '.join(failed)}")
        else:
            logger.info(f"[{machine}] completed")
        return row

    def _export(self, machine: str, kind: str, payload) -> None:
        if self.exporter is None:
            return
        export_fn = {
            "hotfix_detail": self.exporter.export_hotfix_details,
            "installed_apps": self.exporter.export_installed_apps,
        }[kind]
        entry: Dict[str, Any] = {"host": machine, "kind": kind}
        try:
            path = export_fn(machine, payload)
            entry.update(status="written", path=str(path))
        except ExportError as e:
            logger.error(f"[{machine}] {kind} export failed: {e}")
            entry.update(status="failed", path=str(e.path), error=e.message)
        with self._lock:
            self.exports.append(entry)
