from datetime import timedelta
from pathlib import Path

import pandas as pd
import pytest
import xlsxwriter

from tidygrowth import (
    ResourceError,
    TableParseError,
    load_design,
    load_measurements,
    load_table,
    normalize_time,
)


def test_load_table_keeps_rows_and_columns(scenario_path: Path) -> None:
    frame = load_table(scenario_path)
    assert list(frame.columns) == ["file", "time", "temp", "A1", "A2"]
    # Two readings plus two padding rows from the instrument.
    assert len(frame) == 4
    assert frame["A1"].iloc[0] == pytest.approx(0.10)


def test_load_table_infers_tab_separator(tmp_path: Path) -> None:
    path = tmp_path / "plate.tsv"
    path.write_text("time\tA1\n00:00:00\t0.1\n")
    frame = load_table(path)
    assert list(frame.columns) == ["time", "A1"]


def test_load_table_reads_file_url(scenario_path: Path) -> None:
    frame = load_table(scenario_path.resolve().as_uri())
    assert list(frame.columns) == ["file", "time", "temp", "A1", "A2"]


def test_load_table_reads_excel(tmp_path: Path) -> None:
    path = tmp_path / "plate.xlsx"
    source = pd.DataFrame({"time": ["00:00:00", "00:10:00"], "A1": [0.1, 0.2]})
    with pd.ExcelWriter(path, engine="xlsxwriter") as writer:
        source.to_excel(writer, sheet_name="Plate 1", index=False)

    frame = load_measurements(path, time_column="time", sheet_name="Plate 1")
    assert frame["time"].tolist() == ["00:00:00", "00:10:00"]
    assert frame["A1"].tolist() == pytest.approx([0.1, 0.2])


def test_missing_file_is_a_resource_error(tmp_path: Path) -> None:
    with pytest.raises(ResourceError):
        load_table(tmp_path / "missing.csv")
    with pytest.raises(OSError):
        load_table(tmp_path / "missing.csv")


def test_unreachable_url_is_a_resource_error(tmp_path: Path) -> None:
    url = (tmp_path / "missing.csv").resolve().as_uri()
    with pytest.raises(ResourceError):
        load_table(url)


def test_empty_file_is_a_parse_error(tmp_path: Path) -> None:
    path = tmp_path / "empty.csv"
    path.write_text("")
    with pytest.raises(TableParseError):
        load_table(path)


def test_load_measurements_keeps_time_as_text(scenario_path: Path) -> None:
    frame = load_measurements(scenario_path, time_column="time")
    assert frame["time"].iloc[1] == "00:30:00"


def test_load_measurements_requires_time_column(scenario_path: Path) -> None:
    with pytest.raises(TableParseError):
        load_measurements(scenario_path, time_column="Time")


def test_load_design_reads_text(tmp_path: Path) -> None:
    path = tmp_path / "design.csv"
    path.write_text("well,strain,dose\nA1,X,10\n")
    design = load_design(path)
    assert design["dose"].tolist() == ["10"]


def test_load_measurements_keeps_excel_durations(tmp_path: Path) -> None:
    path = tmp_path / "durations.xlsx"
    workbook = xlsxwriter.Workbook(str(path))
    sheet = workbook.add_worksheet("Plate 1")
    duration = workbook.add_format({"num_format": "[h]:mm:ss"})
    sheet.write_row(0, 0, ["time", "A1"])
    for row, (hours, od) in enumerate([(23, 0.1), (25, 0.2), (49.5, 0.3)], start=1):
        sheet.write_datetime(row, 0, timedelta(hours=hours), duration)
        sheet.write_number(row, 1, od)
    workbook.close()

    frame = load_measurements(path)
    timed = normalize_time(frame, "time")
    assert timed["time"].tolist() == pytest.approx([23.0, 25.0, 49.5])


def test_text_file_named_xlsx_is_a_parse_error(tmp_path: Path) -> None:
    path = tmp_path / "plate.xlsx"
    path.write_text("time,A1\n00:00:00,0.1\n")
    with pytest.raises(TableParseError):
        load_table(path)


def test_corrupt_workbook_is_a_parse_error(tmp_path: Path) -> None:
    path = tmp_path / "plate.xlsx"
    path.write_bytes(b"PK\x03\x04" + b"\x00" * 64)
    with pytest.raises(TableParseError):
        load_measurements(path)
