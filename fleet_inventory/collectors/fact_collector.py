import logging
import time
from typing import Callable, Dict, Optional

from ..errors import TransportError
from ..models import Failed, FactCategory, FactResult, Ok
from .applications import ApplicationsCollector
from .base import Collector
from .bios import BiosCollector
from .hardware import HardwareCollector
from .hotfix import HotfixCollector
from .os_info import OSCollector

logger = logging.getLogger("inventory.collectors")


def default_collectors() -> Dict[FactCategory, Collector]:
    collectors = [
        HotfixCollector(),
        OSCollector(),
        BiosCollector(),
        HardwareCollector(),
        ApplicationsCollector(),
    ]
    return {c.category: c for c in collectors}


class FactCollector:
    """
    Runs one fact category against one machine.

    Failures never escape: transport errors, bad output and unexpected
    exceptions all come back as Failed(reason).
    """

    def __init__(self, client_factory: Callable[[str], object], collectors: Optional[Dict[FactCategory, Collector]] = None):
        self.client_factory = client_factory
        self.collectors = collectors or default_collectors()

    def collect(self, category: FactCategory, machine: str, client=None) -> FactResult:
        collector = self.collectors[category]
        start = time.perf_counter()
        try:
            if client is None:
                client = self.client_factory(machine)
            payload = collector.collect(machine, client)
        except TransportError as e:
            logger.warning(f"[{machine}] {collector.name} failed: {e.message}")
            return Failed(e.message)
        except Exception as e:
            logger.exception(f"[{machine}] {collector.name} raised unexpectedly")
            return Failed(f"{collector.name}: {e.__class__.__name__}: {e}")

        duration_ms = round((time.perf_counter() - start) * 1000, 2)
        logger.info(f"[{machine}] {collector.name} OK ({duration_ms}ms)")
        return Ok(payload)
