import logging
from typing import Optional

from ..errors import TransportError
from ..models import FactCategory, HardwareFacts
from .base import first_record, run_query, text

logger = logging.getLogger("inventory.collectors.hardware")

SYSTEM_SCRIPT = r"""
$cs = Get-CimInstance Win32_ComputerSystem
[pscustomobject]@{
    Manufacturer = $cs.Manufacturer
    Model = $cs.Model
    TotalPhysicalMemory = $cs.TotalPhysicalMemory
} | ConvertTo-Json -Compress
"""

PROCESSOR_SCRIPT = r"""
$items = @(Get-CimInstance Win32_Processor | ForEach-Object {
    [pscustomobject]@{ Name = $_.Name }
})
ConvertTo-Json -InputObject $items -Compress
"""


def bytes_to_gb(value) -> Optional[float]:
    try:
        return round(int(value) / (1024 ** 3), 2)
    except (TypeError, ValueError):
        return None


class HardwareCollector:
    """System and processor info. Either sub-query failing fails the whole category."""

    name = "Hardware"
    category = FactCategory.HARDWARE

    def collect(self, host: str, client) -> HardwareFacts:
        system = first_record(
            run_query(client, host, SYSTEM_SCRIPT, f"{self.name}/system"),
            host,
            f"{self.name}/system",
        )
        processors = run_query(client, host, PROCESSOR_SCRIPT, f"{self.name}/processor")
        names = [text(p.get("Name")) for p in processors if text(p.get("Name"))]
        if not names:
            raise TransportError(host, f"{self.name}/processor: empty result")

        return HardwareFacts(
            manufacturer=text(system.get("Manufacturer")),
            model=text(system.get("Model")),
            ram_gb=bytes_to_gb(system.get("TotalPhysicalMemory")),
            cpu_name=names[0],
        )
