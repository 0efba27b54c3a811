import csv

from fleet_inventory.app_matrix import AppMatrixBuilder
from fleet_inventory.collectors import FactCollector
from fleet_inventory.models import CATEGORY_ORDER, Failed, FactCategory, Ok
from fleet_inventory.report_builder import BuildOptions, MachineReportBuilder
from fleet_inventory.writers import ReportExporter

from conftest import APPS, HOTFIX, OS


def _builder(fleet, **kwargs):
    return MachineReportBuilder(FactCollector(fleet), **kwargs)


def test_failed_category_is_isolated(make_fleet, facts, transport_error):
    responses = facts()
    responses[OS] = transport_error("srv1")
    row = _builder(make_fleet({"srv1": responses})).build("srv1", CATEGORY_ORDER)

    record = row.as_record()
    assert record["OSVersion"] == "Error"
    assert record["OSBuild"] == ""
    assert record["LastBootTime"] == ""
    assert record["HotfixCount"] == 2
    assert record["BIOSVersion"] == "U30"
    assert record["Model"] == "ProLiant DL380 Gen10"
    assert record["RAMGB"] == 256.0
    assert record["AppCount"] == 1
    assert row.failed_categories() == [FactCategory.OS]


def test_every_category_can_fail_independently(make_fleet, facts, transport_error):
    for category, marker, column in (
        (FactCategory.HOTFIX, HOTFIX, "HotfixCount"),
        (FactCategory.APPLICATIONS, APPS, "AppCount"),
    ):
        responses = facts()
        responses[marker] = transport_error("srv1")
        row = _builder(make_fleet({"srv1": responses})).build("srv1", CATEGORY_ORDER)

        assert row.value(column) == "Error"
        assert isinstance(row.get(category), Failed)
        others = [c for c in CATEGORY_ORDER if c != category]
        assert all(isinstance(row.get(c), Ok) for c in others)


def test_disabled_categories_are_absent(make_fleet, facts):
    row = _builder(make_fleet({"srv1": facts()})).build("srv1", [FactCategory.BIOS])

    assert row.as_record() == {
        "ComputerName": "srv1",
        "BIOSVersion": "U30",
        "BIOSManufacturer": "HPE",
        "BIOSReleaseDate": "2021-05-21",
    }
    assert row.os is None


def test_categories_collected_in_canonical_order(make_fleet, facts):
    fleet = make_fleet({"srv1": facts()})
    _builder(fleet).build("srv1", [FactCategory.APPLICATIONS, FactCategory.HOTFIX, FactCategory.OS])

    calls = fleet.clients["srv1"].calls
    assert HOTFIX in calls[0]
    assert OS in calls[1]
    assert APPS in calls[2]


def test_zero_applications_is_count_zero_not_error(make_fleet, facts):
    row = _builder(make_fleet({"srv1": facts(apps={})})).build("srv1", [FactCategory.APPLICATIONS])

    assert row.app_count == 0


def test_hotfix_detail_written_when_hotfix_succeeds(tmp_path, make_fleet, facts):
    exporter = ReportExporter(tmp_path, "20240101_120000")
    builder = _builder(
        make_fleet({"srv1": facts(hotfixes=["KB1", "KB2", "KB3"])}),
        exporter=exporter,
        options=BuildOptions(hotfix_detail=True),
    )

    builder.build("srv1", [FactCategory.HOTFIX])

    path = tmp_path / "HotfixDetails_srv1.csv"
    with path.open(newline="", encoding="utf-8") as f:
        rows = list(csv.DictReader(f))
    assert [r["HotFixID"] for r in rows] == ["KB1", "KB2", "KB3"]
    assert builder.exports == [{"host": "srv1", "kind": "hotfix_detail", "status": "written", "path": str(path)}]


def test_hotfix_detail_skipped_when_hotfix_fails(tmp_path, make_fleet, facts, transport_error):
    responses = facts()
    responses[HOTFIX] = transport_error("srv1")
    builder = _builder(
        make_fleet({"srv1": responses}),
        exporter=ReportExporter(tmp_path, "20240101_120000"),
        options=BuildOptions(hotfix_detail=True),
    )

    row = builder.build("srv1", [FactCategory.HOTFIX])

    assert row.hotfix_count == "Error"
    assert not (tmp_path / "HotfixDetails_srv1.csv").exists()
    assert builder.exports == []


def test_detail_export_failure_does_not_touch_row(tmp_path, make_fleet, facts):
    builder = _builder(
        make_fleet({"srv1": facts()}),
        exporter=ReportExporter(tmp_path / "missing", "20240101_120000"),
        options=BuildOptions(hotfix_detail=True, export_apps=True),
    )

    row = builder.build("srv1", [FactCategory.HOTFIX, FactCategory.APPLICATIONS])

    assert row.hotfix_count == 2
    assert row.app_count == 1
    assert [e["status"] for e in builder.exports] == ["failed", "failed"]


def test_applications_feed_matrix_only_when_comparing(make_fleet, facts):
    matrix = AppMatrixBuilder()
    fleet = make_fleet({"srv1": facts(apps={"Foo": "1.0"})})

    _builder(fleet, app_matrix=matrix).build("srv1", [FactCategory.APPLICATIONS])
    assert matrix.machines() == []

    _builder(fleet, app_matrix=matrix, options=BuildOptions(compare_apps=True)).build("srv1", [FactCategory.APPLICATIONS])
    assert matrix.versions_for("srv1") == {"Foo": "1.0"}


def test_failed_applications_do_not_feed_matrix(make_fleet, facts, transport_error):
    responses = facts()
    responses[APPS] = transport_error("srv1")
    matrix = AppMatrixBuilder()

    _builder(make_fleet({"srv1": responses}), app_matrix=matrix, options=BuildOptions(compare_apps=True)).build(
        "srv1", [FactCategory.APPLICATIONS]
    )

    assert matrix.machines() == []


def test_installed_apps_export(tmp_path, make_fleet, facts):
    builder = _builder(
        make_fleet({"web-01.corp.local": facts(apps={"Foo": "1.0", "Bar": "2.0"})}),
        exporter=ReportExporter(tmp_path, "20240101_120000"),
        options=BuildOptions(export_apps=True),
    )

    builder.build("web-01.corp.local", [FactCategory.APPLICATIONS])

    text = (tmp_path / "InstalledApps_web-01.corp.local.csv").read_text(encoding="utf-8")
    assert text.splitlines() == ["DisplayName,DisplayVersion", "Foo,1.0", "Bar,2.0"]
