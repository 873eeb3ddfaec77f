from datetime import date, datetime

import pytest

from issue_common.normalize import (
    EmptyUploadError,
    MissingColumnsError,
    build_records,
    derive_records,
    normalize_rows,
    parse_online_first,
    serial_to_date,
    validate_rows,
)
from issue_common.schema import PENDING_TOPIC, canonical_key, missing_required_columns


def _raw_rows():
    return [
        {
            " AUTHOR_FAMILY_NAME ": "  Smith ",
            "Author_Given_Name": "Ann",
            "article_title": "Mandible fractures in cyclists",
            "DOI": "10.1000/abc",
            "Online_First_Date": 44562,
            "Reviewer Comment": "fast track",
        },
        {
            " AUTHOR_FAMILY_NAME ": "",
            "Author_Given_Name": "",
            "article_title": "TMJ ankylosis release",
            "DOI": "",
            "Online_First_Date": "not a date",
            "Reviewer Comment": "",
        },
    ]


def test_canonical_key_is_case_and_whitespace_insensitive():
    assert canonical_key("  author_FAMILY_name ") == "Author_family_name"
    assert canonical_key("DOI") == "doi"
    # Unknown headers keep their casing, only trimmed.
    assert canonical_key("  Reviewer Comment ") == "Reviewer Comment"


def test_normalize_rows_maps_canonical_and_keeps_passthrough():
    normalized = normalize_rows(_raw_rows())

    assert len(normalized) == 2
    assert set(normalized[0]) == {
        "Author_family_name",
        "author_given_name",
        "article_title",
        "doi",
        "online_first_date",
        "Reviewer Comment",
    }
    assert normalized[0]["Reviewer Comment"] == "fast track"


def test_normalize_rows_is_idempotent():
    once = normalize_rows(_raw_rows())
    twice = normalize_rows(once)
    assert twice == once


def test_validate_rows_rejects_empty_upload():
    with pytest.raises(EmptyUploadError, match="empty"):
        validate_rows([])


def test_validate_rows_reports_exactly_the_missing_fields():
    rows = normalize_rows([{"author_family_name": "Smith", "Title": "x"}])
    with pytest.raises(MissingColumnsError) as excinfo:
        validate_rows(rows)
    assert excinfo.value.missing == ["article_title", "doi"]
    assert "article_title, doi" in str(excinfo.value)


def test_validate_rows_only_checks_first_row_headers():
    rows = [
        {"Author_family_name": "A", "article_title": "T1", "doi": "10.1/x"},
        {"Author_family_name": "B", "article_title": "T2"},
    ]
    validate_rows(rows)  # second row lacking doi is not a header problem


def test_missing_required_columns_ignores_case():
    assert missing_required_columns(["AUTHOR_FAMILY_NAME", " Article_Title ", "Doi"]) == []


def test_build_records_produces_one_record_per_row():
    records, headers = build_records(_raw_rows())

    assert len(records) == 2
    assert "Reviewer Comment" in headers
    assert len({r.id for r in records}) == 2
    first, second = records
    assert first.author_family_name == "Smith"
    assert first.display_author == "Ann Smith"
    assert first.extra == {"Reviewer Comment": "fast track"}
    assert first.formatted_date == "Jan 1, 2022"
    assert first.online_first == date(2022, 1, 1)
    assert (first.selected, first.downloaded, first.topic) == (False, False, PENDING_TOPIC)

    assert second.display_author == "Unknown Author"
    assert second.formatted_date == "N/A"
    assert second.online_first is None


def test_build_records_rejects_missing_columns_without_records():
    with pytest.raises(MissingColumnsError) as excinfo:
        build_records([{"Author_family_name": "Smith", "article_title": "T"}])
    assert excinfo.value.missing == ["doi"]


def test_record_ids_are_unique_across_uploads():
    rows = normalize_rows(_raw_rows())
    first = derive_records(rows)
    second = derive_records(rows)
    assert not {r.id for r in first} & {r.id for r in second}


def test_serial_dates_use_the_spreadsheet_epoch():
    assert serial_to_date(25569) == date(1970, 1, 1)
    assert serial_to_date(44197) == date(2021, 1, 1)
    assert serial_to_date(44562) == date(2022, 1, 1)
    assert parse_online_first(44562.75) == date(2022, 1, 1)


@pytest.mark.parametrize(
    "value, expected",
    [
        ("2023-03-15", date(2023, 3, 15)),
        ("March 15, 2023", date(2023, 3, 15)),
        ("2300-06-01", date(2300, 6, 1)),
        (datetime(2023, 3, 15, 10, 30), date(2023, 3, 15)),
        (date(2023, 3, 15), date(2023, 3, 15)),
        ("", None),
        (None, None),
        ("someday", None),
        (True, None),
        (float("nan"), None),
    ],
)
def test_parse_online_first_is_best_effort(value, expected):
    assert parse_online_first(value) == expected


def test_derivation_trims_strings_and_passes_numbers_through():
    records, _ = build_records(
        [
            {
                "Author_family_name": " Lee ",
                "author_given_name": None,
                "article_title": "  Cleft lip repair  ",
                "doi": " 10.1/y ",
                "article_last_page": 14,
            }
        ]
    )
    record = records[0]
    assert record.article_title == "Cleft lip repair"
    assert record.doi == "10.1/y"
    assert record.article_last_page == 14
    assert record.author_given_name == ""
    assert record.display_author == "Lee"
    assert record.doi_url == "https://doi.org/10.1/y"
