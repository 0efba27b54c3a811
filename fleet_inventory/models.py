from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Generic, List, Optional, TypeVar, Union

ERROR_MARKER = "Error"
NOT_INSTALLED = "Not Installed"
HOSTNAME_COLUMN = "ComputerName"
APP_NAME_COLUMN = "ApplicationName"


class FactCategory(str, Enum):
    HOTFIX = "hotfix"
    OS = "os"
    BIOS = "bios"
    HARDWARE = "hardware"
    APPLICATIONS = "applications"


# Canonical collection order, also the column order of the report.
CATEGORY_ORDER: List[FactCategory] = [
    FactCategory.HOTFIX,
    FactCategory.OS,
    FactCategory.BIOS,
    FactCategory.HARDWARE,
    FactCategory.APPLICATIONS,
]

# First column of each schema is the category's primary field.
CATEGORY_COLUMNS: Dict[FactCategory, List[str]] = {
    FactCategory.HOTFIX: ["HotfixCount"],
    FactCategory.OS: ["OSVersion", "OSBuild", "OSInstallDate", "LastBootTime"],
    FactCategory.BIOS: ["BIOSVersion", "BIOSManufacturer", "BIOSReleaseDate"],
    FactCategory.HARDWARE: ["Manufacturer", "Model", "RAMGB", "CPU"],
    FactCategory.APPLICATIONS: ["AppCount"],
}


def primary_column(category: FactCategory) -> str:
    return CATEGORY_COLUMNS[category][0]


def ordered_categories(categories) -> List[FactCategory]:
    wanted = set(categories or [])
    return [c for c in CATEGORY_ORDER if c in wanted]


def report_columns(categories) -> List[str]:
    cols = [HOSTNAME_COLUMN]
    for cat in ordered_categories(categories):
        cols.extend(CATEGORY_COLUMNS[cat])
    return cols


@dataclass(frozen=True)
class HotfixRecord:
    hotfix_id: str
    description: str = ""
    installed_on: str = ""
    installed_by: str = ""

    def as_record(self) -> Dict[str, str]:
        return {
            "HotFixID": self.hotfix_id,
            "Description": self.description,
            "InstalledOn": self.installed_on,
            "InstalledBy": self.installed_by,
        }


HOTFIX_DETAIL_COLUMNS = ["HotFixID", "Description", "InstalledOn", "InstalledBy"]


@dataclass(frozen=True)
class OSFacts:
    caption: str
    build_number: str = ""
    install_date: str = ""
    last_boot: str = ""

    def fields(self) -> Dict[str, Any]:
        return {
            "OSVersion": self.caption,
            "OSBuild": self.build_number,
            "OSInstallDate": self.install_date,
            "LastBootTime": self.last_boot,
        }


@dataclass(frozen=True)
class BiosFacts:
    version: str
    manufacturer: str = ""
    release_date: str = ""

    def fields(self) -> Dict[str, Any]:
        return {
            "BIOSVersion": self.version,
            "BIOSManufacturer": self.manufacturer,
            "BIOSReleaseDate": self.release_date,
        }


@dataclass(frozen=True)
class HardwareFacts:
    manufacturer: str
    model: str = ""
    ram_gb: Optional[float] = None
    cpu_name: str = ""

    def fields(self) -> Dict[str, Any]:
        return {
            "Manufacturer": self.manufacturer,
            "Model": self.model,
            "RAMGB": "" if self.ram_gb is None else self.ram_gb,
            "CPU": self.cpu_name,
        }


@dataclass(frozen=True)
class InstalledApplication:
    display_name: str
    display_version: str

    def as_record(self) -> Dict[str, str]:
        return {"DisplayName": self.display_name, "DisplayVersion": self.display_version}


INSTALLED_APPS_COLUMNS = ["DisplayName", "DisplayVersion"]

T = TypeVar("T")


@dataclass(frozen=True)
class Ok(Generic[T]):
    payload: T


@dataclass(frozen=True)
class Failed:
    reason: str


FactResult = Union[Ok, Failed]


def _category_fields(category: FactCategory, payload: Any) -> Dict[str, Any]:
    if category == FactCategory.HOTFIX:
        return {"HotfixCount": len(payload)}
    if category == FactCategory.APPLICATIONS:
        return {"AppCount": len(payload)}
    return payload.fields()


@dataclass
class ReportRow:
    """One machine's report. A category slot left as None was not requested."""

    hostname: str
    hotfix: Optional[FactResult] = None
    os: Optional[FactResult] = None
    bios: Optional[FactResult] = None
    hardware: Optional[FactResult] = None
    applications: Optional[FactResult] = None

    _SLOTS = {
        FactCategory.HOTFIX: "hotfix",
        FactCategory.OS: "os",
        FactCategory.BIOS: "bios",
        FactCategory.HARDWARE: "hardware",
        FactCategory.APPLICATIONS: "applications",
    }

    def get(self, category: FactCategory) -> Optional[FactResult]:
        return getattr(self, self._SLOTS[category])

    def set(self, category: FactCategory, result: FactResult) -> None:
        setattr(self, self._SLOTS[category], result)

    def categories(self) -> List[FactCategory]:
        return [c for c in CATEGORY_ORDER if self.get(c) is not None]

    def failed_categories(self) -> List[FactCategory]:
        return [c for c in self.categories() if isinstance(self.get(c), Failed)]

    def as_record(self) -> Dict[str, Any]:
        """Flatten to report columns; disabled categories are left out."""
        record: Dict[str, Any] = {HOSTNAME_COLUMN: self.hostname}
        for cat in self.categories():
            result = self.get(cat)
            cols = CATEGORY_COLUMNS[cat]
            if isinstance(result, Ok):
                values = _category_fields(cat, result.payload)
                for col in cols:
                    record[col] = values.get(col, "")
            else:
                record[primary_column(cat)] = ERROR_MARKER
                for col in cols[1:]:
                    record[col] = ""
        return record

    def value(self, column: str) -> Any:
        return self.as_record().get(column)

    @property
    def os_version(self) -> Any:
        return self.value("OSVersion")

    @property
    def hotfix_count(self) -> Any:
        return self.value("HotfixCount")

    @property
    def app_count(self) -> Any:
        return self.value("AppCount")


@dataclass(frozen=True)
class ComparisonRow:
    application: str
    versions: Dict[str, str] = field(default_factory=dict)

    def as_record(self, machines: List[str]) -> Dict[str, str]:
        record = {APP_NAME_COLUMN: self.application}
        for m in machines:
            record[m] = self.versions.get(m, NOT_INSTALLED)
        return record
