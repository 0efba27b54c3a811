import threading

from fleet_inventory.app_matrix import AppMatrixBuilder
from fleet_inventory.models import InstalledApplication as App


def test_missing_application_is_not_installed():
    matrix = AppMatrixBuilder()
    matrix.add("A", [App("Foo", "1.0")])
    matrix.add("B", [])

    names, rows = matrix.finalize(["A", "B"])

    assert names == ["Foo"]
    assert rows[0].versions == {"A": "1.0", "B": "Not Installed"}


def test_names_are_trimmed_into_one_row():
    matrix = AppMatrixBuilder()
    matrix.add("A", [App("Foo ", "1.0")])
    matrix.add("B", [App("Foo", "2.0")])

    names, rows = matrix.finalize(["A", "B"])

    assert names == ["Foo"]
    assert rows[0].application == "Foo"
    assert rows[0].versions == {"A": "1.0", "B": "2.0"}


def test_union_without_duplicates_in_sorted_order():
    matrix = AppMatrixBuilder()
    matrix.add("A", [App("zlib", "1"), App("Git", "2.40"), App("7-Zip", "19.00")])
    matrix.add("B", [App("git", "2.41"), App("7-Zip", "22.01"), App("Notepad++", "8.5")])

    names, rows = matrix.finalize(["A", "B"])

    assert names == ["7-Zip", "Git", "git", "Notepad++", "zlib"]
    assert len(set(names)) == len(names)
    assert [r.application for r in rows] == names


def test_last_write_wins_within_one_machine():
    matrix = AppMatrixBuilder()
    matrix.add("A", [App("Foo", "1.0"), App(" Foo", "1.1")])

    _, rows = matrix.finalize(["A"])

    assert rows[0].versions == {"A": "1.1"}


def test_rows_follow_supplied_machine_order():
    matrix = AppMatrixBuilder()
    matrix.add("B", [App("Foo", "2.0")])
    matrix.add("A", [App("Foo", "1.0")])

    _, rows = matrix.finalize(["C", "A", "B"])

    assert list(rows[0].versions.items()) == [("C", "Not Installed"), ("A", "1.0"), ("B", "2.0")]
    assert rows[0].as_record(["C", "A", "B"]) == {
        "ApplicationName": "Foo",
        "C": "Not Installed",
        "A": "1.0",
        "B": "2.0",
    }


def test_empty_matrix():
    names, rows = AppMatrixBuilder().finalize(["A", "B"])

    assert names == []
    assert rows == []


def test_concurrent_adds():
    matrix = AppMatrixBuilder()
    hosts = [f"srv{i:02d}" for i in range(20)]

    def worker(host):
        matrix.add(host, [App(f"App{j}", f"{host}-{j}") for j in range(50)])

    threads = [threading.Thread(target=worker, args=(h,)) for h in hosts]
    for t in threads:
        t.start()
    for t in threads:
        t.join()

    names, rows = matrix.finalize(hosts)
    assert len(names) == 50
    assert all(r.versions[h] == f"{h}-{r.application[3:]}" for r in rows for h in hosts)
