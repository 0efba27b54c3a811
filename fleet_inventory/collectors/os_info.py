from ..models import FactCategory, OSFacts
from .base import first_record, run_query, text

SCRIPT = r"""
$os = Get-CimInstance Win32_OperatingSystem
[pscustomobject]@{
    Caption = $os.Caption
    BuildNumber = $os.BuildNumber
    InstallDate = if ($os.InstallDate) { $os.InstallDate.ToString('yyyy-MM-dd HH:mm:ss') } else { "" }
    LastBootUpTime = if ($os.LastBootUpTime) { $os.LastBootUpTime.ToString('yyyy-MM-dd HH:mm:ss') } else { "" }
} | ConvertTo-Json -Compress
"""


class OSCollector:
    name = "OS"
    category = FactCategory.OS

    def collect(self, host: str, client) -> OSFacts:
        item = first_record(run_query(client, host, SCRIPT, self.name), host, self.name)
        return OSFacts(
            caption=text(item.get("Caption")),
            build_number=text(item.get("BuildNumber")),
            install_date=text(item.get("InstallDate")),
            last_boot=text(item.get("LastBootUpTime")),
        )
