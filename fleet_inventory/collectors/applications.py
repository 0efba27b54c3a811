import logging
from typing import List

from ..models import FactCategory, InstalledApplication
from .base import run_query

logger = logging.getLogger("inventory.collectors.applications")

SCRIPT = r"""
$paths = @(
    'HKLM:\SOFTWARE\Microsoft\Windows\CurrentVersion\Uninstall\*',
    'HKLM:\SOFTWARE\WOW6432Node\Microsoft\Windows\CurrentVersion\Uninstall\*'
)
$items = @(foreach ($p in $paths) {
    Get-ItemProperty -Path $p -ErrorAction SilentlyContinue |
        Where-Object { $_.DisplayName -and $_.DisplayVersion } |
        ForEach-Object {
            [pscustomobject]@{
                DisplayName = [string]$_.DisplayName
                DisplayVersion = [string]$_.DisplayVersion
            }
        }
})
ConvertTo-Json -InputObject $items -Compress
"""


class ApplicationsCollector:
    name = "Applications"
    category = FactCategory.APPLICATIONS

    def collect(self, host: str, client) -> List[InstalledApplication]:
        records = run_query(client, host, SCRIPT, self.name)
        apps = []
        for item in records:
            name = item.get("DisplayName")
            version = item.get("DisplayVersion")
            # Entries without both a name and a version are not applications.
            if not isinstance(name, str) or not name.strip():
                continue
            if version is None or not str(version).strip():
                continue
            apps.append(InstalledApplication(display_name=name, display_version=str(version).strip()))
        logger.debug(f"[{host}] applications raw={len(records)} kept={len(apps)}")
        return apps
