from datetime import date
from io import BytesIO

import pandas as pd

from issue_browser.issue_data import export_workbook_bytes
from issue_common.export import export_filename, project_export
from issue_common.records import Record
from issue_common.schema import EXPORT_COLUMNS


def _selected(**kwargs):
    base = dict(
        id="r1",
        display_author="Ann Smith",
        article_title="Mandible fractures",
        doi="10.1/abc",
        formatted_date="Jan 1, 2022",
        selected=True,
        topic="Trauma",
    )
    base.update(kwargs)
    return Record(**base)


def test_projection_has_exact_columns_and_no_topic():
    rows = project_export([_selected(rubric="Review", article_last_page=12.0, notes_on_issue_building="lead")])

    assert len(rows) == 1
    row = rows[0]
    assert list(row) == list(EXPORT_COLUMNS)
    assert "topic" not in {k.lower() for k in row}
    assert row["Author"] == "Ann Smith"
    assert row["Pages"] == 12
    assert row["Notes"] == "lead"


def test_projection_renders_missing_values_as_empty_strings():
    row = project_export([_selected(rubric=None, production_state="", editorial_ms_number=float("nan"))])[0]
    assert row["Rubric"] == ""
    assert row["Status"] == ""
    assert row["MS Number"] == ""
    assert row["Pages"] == ""


def test_projection_only_includes_selected_records():
    rows = project_export([_selected(id="a"), _selected(id="b", selected=False, article_title="Skipped")])
    assert [r["Title"] for r in rows] == ["Mandible fractures"]


def test_export_filename_is_stamped_with_the_date():
    assert export_filename(date(2024, 5, 7)) == "Editorial_Plan_2024-05-07.xlsx"


def test_export_workbook_has_issue_plan_sheet():
    payload = export_workbook_bytes([_selected(), _selected(id="r2", selected=False)])

    with pd.ExcelFile(BytesIO(payload)) as workbook:
        assert workbook.sheet_names == ["Issue_Plan"]
        frame = workbook.parse("Issue_Plan")

    assert list(frame.columns) == list(EXPORT_COLUMNS)
    assert frame.shape == (1, len(EXPORT_COLUMNS))
    assert frame.loc[0, "DOI"] == "10.1/abc"


def test_export_workbook_with_empty_selection_keeps_headers():
    payload = export_workbook_bytes([])
    frame = pd.read_excel(BytesIO(payload), sheet_name="Issue_Plan")
    assert list(frame.columns) == list(EXPORT_COLUMNS)
    assert frame.empty
