import json
import time

import pytest

from fleet_inventory.winrm_client import WinRMResult

# Script markers: each remote query contains exactly one of these.
HOTFIX = "Get-HotFix"
OS = "Win32_OperatingSystem"
BIOS = "Win32_BIOS"
SYSTEM = "Win32_ComputerSystem"
PROCESSOR = "Win32_Processor"
APPS = "CurrentVersion\\Uninstall"


class FakeClient:
    """Stands in for WinRMClient; answers by matching a marker in the script."""

    def __init__(self, host, responses, delay=0.0):
        self.host = host
        self.responses = responses
        self.delay = delay
        self.calls = []

    def run_command(self, script):
        self.calls.append(script)
        if self.delay:
            time.sleep(self.delay)
        for marker, resp in self.responses.items():
            if marker in script:
                if isinstance(resp, Exception):
                    raise resp
                if isinstance(resp, WinRMResult):
                    return resp
                return WinRMResult(self.host, 0, json.dumps(resp), "")
        return WinRMResult(self.host, 0, "", "")


class FakeFleet:
    def __init__(self, per_host, delays=None):
        self.per_host = per_host
        self.delays = delays or {}
        self.clients = {}

    def __call__(self, host):
        client = FakeClient(host, self.per_host.get(host, {}), self.delays.get(host, 0.0))
        self.clients[host] = client
        return client


def transport_failure(host, message="Connection refused"):
    return WinRMResult(host, -1, "", "", message)


def windows_facts(caption="Windows Server 2019 Standard", apps=None, hotfixes=None):
    if apps is None:
        apps = {"7-Zip 19.00 (x64)": "19.00"}
    if hotfixes is None:
        hotfixes = ["KB5005030", "KB5005112"]
    return {
        HOTFIX: [
            {"HotFixID": kb, "Description": "Security Update", "InstalledOn": "2021-08-10", "InstalledBy": "NT AUTHORITY\\SYSTEM"}
            for kb in hotfixes
        ],
        OS: {
            "Caption": caption,
            "BuildNumber": "17763",
            "InstallDate": "2020-01-15 09:30:00",
            "LastBootUpTime": "2021-09-01 02:00:00",
        },
        BIOS: {"SMBIOSBIOSVersion": "U30", "Manufacturer": "HPE", "ReleaseDate": "2021-05-21"},
        SYSTEM: {"Manufacturer": "HPE", "Model": "ProLiant DL380 Gen10", "TotalPhysicalMemory": 274877906944},
        PROCESSOR: [{"Name": "Intel(R) Xeon(R) Gold 6230 CPU @ 2.10GHz"}, {"Name": "Intel(R) Xeon(R) Gold 6230 CPU @ 2.10GHz"}],
        APPS: [{"DisplayName": name, "DisplayVersion": version} for name, version in apps.items()],
    }


@pytest.fixture
def make_fleet():
    return FakeFleet


@pytest.fixture
def facts():
    return windows_facts


@pytest.fixture
def transport_error():
    return transport_failure


@pytest.fixture(autouse=True)
def _clean_env(monkeypatch):
    for name in (
        "FLEET_USER", "FLEET_PASSWORD", "FLEET_HOSTS", "FLEET_CONFIG", "FLEET_OUT_DIR",
        "FLEET_COMPARE_APPS", "FLEET_EXPORT_CSV", "FLEET_EXPORT_HTML", "FLEET_EXPORT_APPS", "FLEET_EXPORT_XLSX",
    ):
        monkeypatch.delenv(name, raising=False)
