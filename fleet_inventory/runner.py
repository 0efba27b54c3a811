import concurrent.futures
import json
import logging
import time
from dataclasses import dataclass
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Callable, Dict, Iterable, List, Optional

from .app_matrix import AppMatrixBuilder
from .collectors import FactCollector
from .config import Config
from .errors import ExportError
from .models import ComparisonRow, Failed, FactCategory, ReportRow, ordered_categories
from .report_builder import BuildOptions, MachineReportBuilder
from .winrm_client import WinRMClient
from .writers import ReportExporter

logger = logging.getLogger("inventory.runner")


@dataclass
class InventoryResult:
    rows: List[ReportRow]
    app_matrix: Optional[AppMatrixBuilder] = None


class InventoryRunner:
    """
    Runs the report builder for every machine.

    Rows come back in input order whatever order the workers finish in.
    """

    def __init__(self, builder: MachineReportBuilder, max_concurrency: int = 1):
        self.builder = builder
        self.max_concurrency = max(1, int(max_concurrency or 1))

    def _build_one(self, machine: str, categories: List[FactCategory]) -> ReportRow:
        try:
            return self.builder.build(machine, categories)
        except Exception as exc:
            logger.exception(f"[{machine}] report build raised unexpectedly")
            row = ReportRow(hostname=machine)
            for category in categories:
                row.set(category, Failed(f"{exc.__class__.__name__}: {exc}"))
            return row

    def run(self, machines: List[str], categories: Iterable[FactCategory]) -> InventoryResult:
        cats = ordered_categories(categories)
        rows: List[Optional[ReportRow]] = [None] * len(machines)
        logger.info(f"Collecting {len(cats)} category(ies) from {len(machines)} machine(s), concurrency={self.max_concurrency}")

        if self.max_concurrency == 1 or len(machines) <= 1:
            for idx, machine in enumerate(machines):
                rows[idx] = self._build_one(machine, cats)
        else:
            with concurrent.futures.ThreadPoolExecutor(max_workers=self.max_concurrency) as executor:
                future_to_idx = {executor.submit(self._build_one, m, cats): i for i, m in enumerate(machines)}
                for future in concurrent.futures.as_completed(future_to_idx):
                    idx = future_to_idx[future]
                    rows[idx] = future.result()

        return InventoryResult(rows=list(rows), app_matrix=self.builder.app_matrix)


class Runner:
    """Full run: collect, build the comparison, export, write the run report."""

    def __init__(self, config: Config, client_factory: Optional[Callable[[str], Any]] = None, timestamp: Optional[str] = None):
        self.config = config
        self.client_factory = client_factory or (lambda host: WinRMClient(host, config))
        self.timestamp = timestamp or datetime.now().strftime("%Y%m%d_%H%M%S")
        self.exporter = ReportExporter(config.out_dir, self.timestamp)
        self.app_matrix = AppMatrixBuilder() if config.compare_apps else None
        self.report: Dict[str, Any] = {
            "timestamp": self.timestamp,
            "started_at": datetime.now(timezone.utc).isoformat(),
            "config": config.summary(),
            "config_errors": list(config.config_errors),
            "inventory": list(config.hosts),
            "hosts": {},
            "exports": [],
            "summary": {
                "hosts_targeted": len(config.hosts),
                "hosts_complete": 0,
                "hosts_partial": 0,
                "hosts_failed": [],
                "duration_sec": 0,
            },
        }

    def _log_config(self):
        logger.info("=== Resolved configuration ===")
        for key, value in self.config.summary().items():
            logger.info(f"{key}: {value}")
        for problem in self.config.config_errors:
            logger.warning(f"Config: {problem}")

    def _ensure_out_dir(self):
        try:
            Path(self.config.out_dir).mkdir(parents=True, exist_ok=True)
        except OSError as e:
            logger.error(f"Cannot create output directory {self.config.out_dir}: {e}")

    def _record_export(self, kind: str, action: Callable[[], Path]) -> Optional[Path]:
        entry: Dict[str, Any] = {"kind": kind}
        try:
            path = action()
            entry.update(status="written", path=str(path))
        except ExportError as e:
            logger.error(f"{kind} export failed: {e}")
            entry.update(status="failed", path=str(e.path), error=e.message)
            path = None
        self.report["exports"].append(entry)
        return path

    def _summarize(self, rows: List[ReportRow]):
        summary = self.report["summary"]
        for row in rows:
            failed = row.failed_categories()
            self.report["hosts"][row.hostname] = {
                c.value: {"status": "failed", "error": row.get(c).reason} if c in failed else {"status": "ok"}
                for c in row.categories()
            }
            if not failed:
                summary["hosts_complete"] += 1
            elif len(failed) == len(row.categories()):
                summary["hosts_failed"].append(row.hostname)
            else:
                summary["hosts_partial"] += 1

    def _write_run_report(self):
        path = self.config.out_dir / f"InventoryRun_{self.timestamp}.json"
        try:
            with open(path, "w", encoding="utf-8") as f:
                json.dump(self.report, f, indent=2, default=str)
            logger.info(f"Run report written to {path}")
        except OSError as e:
            logger.error(f"Cannot write run report {path}: {e}")

    def execute(self) -> InventoryResult:
        start = time.time()
        self._log_config()
        self._ensure_out_dir()

        builder = MachineReportBuilder(
            FactCollector(self.client_factory),
            app_matrix=self.app_matrix,
            exporter=self.exporter,
            options=BuildOptions(
                hotfix_detail=self.config.hotfix_detail,
                compare_apps=self.config.compare_apps,
                export_apps=self.config.export_apps,
            ),
        )
        result = InventoryRunner(builder, self.config.max_concurrency).run(self.config.hosts, self.config.categories)
        self.report["exports"].extend(builder.exports)

        print("\n=== System Report ===")
        print(self.exporter.render_table(result.rows))

        comparison: Optional[List[ComparisonRow]] = None
        if self.app_matrix is not None:
            _, comparison = self.app_matrix.finalize(self.config.hosts)
            print("\n=== Application Comparison ===")
            print(self.exporter.render_comparison(self.config.hosts, comparison))

        # Each export is independent: one failing leaves the others alone.
        if self.config.export_csv:
            self._record_export("system_report", lambda: self.exporter.export_report(result.rows))
            if comparison is not None:
                self._record_export("app_comparison", lambda: self.exporter.export_comparison(self.config.hosts, comparison))
        if self.config.export_html:
            self._record_export("markup_report", lambda: self.exporter.export_markup(result.rows, self.config.html_template))
        if self.config.export_xlsx:
            self._record_export(
                "workbook",
                lambda: self.exporter.export_workbook(result.rows, self.config.hosts, comparison),
            )

        self._summarize(result.rows)
        self.report["summary"]["duration_sec"] = round(time.time() - start, 2)
        self._write_run_report()

        summary = self.report["summary"]
        logger.info(
            f"Done: complete={summary['hosts_complete']} partial={summary['hosts_partial']} "
            f"failed={len(summary['hosts_failed'])} in {summary['duration_sec']}s"
        )
        return result
