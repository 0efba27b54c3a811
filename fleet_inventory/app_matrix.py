import logging
import threading
from typing import Dict, Iterable, List, Tuple

from .models import ComparisonRow, InstalledApplication, NOT_INSTALLED

logger = logging.getLogger("inventory.app_matrix")


def _name_key(name: str) -> Tuple[str, str]:
    return (name.casefold(), name)


class AppMatrixBuilder:
    """
    Sparse host -> {application name -> version} mapping.

    Names are trimmed before they are recorded; within one host the last
    version seen for a name wins. Safe to fill from several worker threads.
    """

    def __init__(self):
        self._lock = threading.Lock()
        self._matrix: Dict[str, Dict[str, str]] = {}

    def add(self, machine: str, apps: Iterable[InstalledApplication]) -> None:
        slot: Dict[str, str] = {}
        for app in apps or []:
            name = (app.display_name or "").strip()
            if not name:
                continue
            slot[name] = app.display_version
        with self._lock:
            self._matrix.setdefault(machine, {}).update(slot)
        logger.debug(f"[{machine}] app matrix: {len(slot)} application(s) recorded")

    def versions_for(self, machine: str) -> Dict[str, str]:
        with self._lock:
            return dict(self._matrix.get(machine, {}))

    def machines(self) -> List[str]:
        with self._lock:
            return list(self._matrix.keys())

    def finalize(self, machines: List[str]) -> Tuple[List[str], List[ComparisonRow]]:
        """Return the sorted union of application names and one comparison row per name."""
        with self._lock:
            snapshot = {m: dict(v) for m, v in self._matrix.items()}

        names = set()
        for versions in snapshot.values():
            names.update(versions.keys())
        app_names = sorted(names, key=_name_key)

        rows = []
        for name in app_names:
            versions = {}
            for m in machines:
                versions[m] = snapshot.get(m, {}).get(name, NOT_INSTALLED)
            rows.append(ComparisonRow(application=name, versions=versions))

        logger.info(f"App comparison: {len(app_names)} application(s) across {len(machines)} machine(s)")
        return app_names, rows
