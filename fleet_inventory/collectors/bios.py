from ..models import BiosFacts, FactCategory
from .base import first_record, run_query, text

SCRIPT = r"""
$bios = Get-CimInstance Win32_BIOS
[pscustomobject]@{
    SMBIOSBIOSVersion = $bios.SMBIOSBIOSVersion
    Manufacturer = $bios.Manufacturer
    ReleaseDate = if ($bios.ReleaseDate) { $bios.ReleaseDate.ToString('yyyy-MM-dd') } else { "" }
} | ConvertTo-Json -Compress
"""


class BiosCollector:
    name = "BIOS"
    category = FactCategory.BIOS

    def collect(self, host: str, client) -> BiosFacts:
        item = first_record(run_query(client, host, SCRIPT, self.name), host, self.name)
        return BiosFacts(
            version=text(item.get("SMBIOSBIOSVersion")),
            manufacturer=text(item.get("Manufacturer")),
            release_date=text(item.get("ReleaseDate")),
        )
