import logging
from typing import List

from ..models import FactCategory, HotfixRecord
from .base import run_query, text

logger = logging.getLogger("inventory.collectors.hotfix")

SCRIPT = r"""
$items = @(Get-HotFix | ForEach-Object {
    $installed = ""
    try {
        if ($_.InstalledOn) { $installed = $_.InstalledOn.ToString('yyyy-MM-dd') }
    } catch {
        $installed = ""
    }
    [pscustomobject]@{
        HotFixID = $_.HotFixID
        Description = $_.Description
        InstalledOn = $installed
        InstalledBy = $_.InstalledBy
    }
})
ConvertTo-Json -InputObject $items -Depth 2 -Compress
"""


class HotfixCollector:
    name = "Hotfix"
    category = FactCategory.HOTFIX

    def collect(self, host: str, client) -> List[HotfixRecord]:
        records = run_query(client, host, SCRIPT, self.name)
        hotfixes = []
        for item in records:
            hotfix_id = text(item.get("HotFixID"))
            if not hotfix_id:
                continue
            hotfixes.append(HotfixRecord(
                hotfix_id=hotfix_id,
                description=text(item.get("Description")),
                installed_on=text(item.get("InstalledOn")),
                installed_by=text(item.get("InstalledBy")),
            ))
        logger.debug(f"[{host}] hotfix raw={len(records)} kept={len(hotfixes)}")
        return hotfixes
