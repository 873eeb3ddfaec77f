from datetime import date

import pytest

from issue_common.filters import apply_filters, filter_options
from issue_common.records import FilterSpec, Record
from issue_common.stats import summarize_selection


def _record(i, **kwargs):
    return Record(id=f"r{i}", article_title=f"Title {i}", **kwargs)


def test_rubric_filter_keeps_original_order():
    records = [_record(1, rubric="A"), _record(2, rubric="A"), _record(3, rubric="B")]
    visible = apply_filters(records, FilterSpec(rubrics=["A"]))
    assert [r.id for r in visible] == ["r1", "r2"]


def test_empty_filter_matches_everything():
    records = [_record(1, rubric="A"), _record(2)]
    assert apply_filters(records, FilterSpec()) == records
    assert apply_filters(records) == records


def test_groups_combine_with_and_values_with_or():
    records = [
        _record(1, rubric="Case Report", production_state="Done", topic="TMJ"),
        _record(2, rubric="Review", production_state="Done", topic="TMJ"),
        _record(3, rubric="Case Report", production_state="Draft", topic="Trauma"),
        _record(4, rubric="Case Report", production_state="Done", topic="Trauma"),
    ]
    spec = FilterSpec(
        rubrics={"Case Report", "Editorial"},
        production_states={"Done"},
        topics={"TMJ", "Trauma"},
    )
    assert [r.id for r in apply_filters(records, spec)] == ["r1", "r4"]


def test_topic_filter_accepts_off_set_topics():
    records = [_record(1, topic="Implantology"), _record(2, topic="TMJ")]
    assert [r.id for r in apply_filters(records, FilterSpec(topics=["Implantology"]))] == ["r1"]


def test_date_range_is_inclusive_and_excludes_undated_records():
    records = [
        _record(1, online_first=date(2024, 1, 1)),
        _record(2, online_first=date(2024, 2, 15)),
        _record(3, online_first=date(2024, 3, 31)),
        _record(4),
    ]
    spec = FilterSpec(date_range=("2024-01-01", date(2024, 2, 15)))
    assert [r.id for r in apply_filters(records, spec)] == ["r1", "r2"]

    open_ended = FilterSpec(date_range=(date(2024, 2, 1), None))
    assert [r.id for r in apply_filters(records, open_ended)] == ["r2", "r3"]


def test_date_range_rejects_malformed_bounds():
    with pytest.raises(ValueError, match="YYYY-MM-DD"):
        apply_filters([_record(1)], FilterSpec(date_range=("last week", "")))


def test_filter_options_are_distinct_sorted_and_skip_blanks():
    records = [
        _record(1, rubric="Review", production_state="Draft"),
        _record(2, rubric="Case Report", production_state=""),
        _record(3, rubric="Review", production_state="Done"),
    ]
    assert filter_options(records) == {
        "rubrics": ["Case Report", "Review"],
        "production_states": ["Done", "Draft"],
    }


def test_summary_coerces_page_counts():
    records = [
        _record(1, selected=True, article_last_page=10),
        _record(2, selected=True, article_last_page=0),
        _record(3, selected=True, article_last_page="5"),
        _record(4, selected=True, article_last_page=""),
        _record(5, selected=True, article_last_page="n/a"),
        _record(6, selected=False, article_last_page=100),
    ]
    summary = summarize_selection(records)
    assert summary.estimated_pages == 15
    assert summary.selected_count == 5
    assert summary.total_count == 6
    assert summary.selected_percent == 83


def test_summary_download_progress_and_breakdowns():
    records = [
        _record(1, selected=True, downloaded=True, rubric="Review", topic="TMJ"),
        _record(2, selected=True, rubric="Case Report", topic="Trauma"),
        _record(3, selected=True, downloaded=True, rubric="Case Report", topic="TMJ"),
        _record(4, selected=True, rubric="Review", topic="Pathology"),
        _record(5, selected=False, downloaded=True, rubric="Editorial", topic="TMJ"),
    ]
    summary = summarize_selection(records)

    assert summary.downloaded_count == 2
    assert summary.download_progress == pytest.approx(0.5)
    # Tie between Review and Case Report keeps first-seen order.
    assert summary.rubric_breakdown == [("Review", 2), ("Case Report", 2)]
    assert summary.topic_breakdown == [("TMJ", 2), ("Trauma", 1), ("Pathology", 1)]


def test_summary_with_nothing_selected():
    summary = summarize_selection([_record(1), _record(2)])
    assert summary.selected_count == 0
    assert summary.selected_percent == 0
    assert summary.estimated_pages == 0
    assert summary.download_progress == 0.0
    assert summary.rubric_breakdown == []

    empty = summarize_selection([])
    assert empty.total_count == 0
    assert empty.selected_percent == 0


def test_filter_values_match_numeric_cells_as_text():
    records = [_record(1, rubric=2024, production_state=1), _record(2, rubric=2025, production_state=2)]
    assert [r.id for r in apply_filters(records, FilterSpec(rubrics=["2024"]))] == ["r1"]
    assert [r.id for r in apply_filters(records, FilterSpec(production_states=[" 2 "]))] == ["r2"]
    assert filter_options(records)["rubrics"] == ["2024", "2025"]


def test_filter_is_empty_only_without_any_restriction():
    assert FilterSpec().is_empty
    assert FilterSpec(date_range=(None, "")).is_empty
    assert not FilterSpec(topics=["TMJ"]).is_empty
    assert not FilterSpec(date_range=(date(2024, 1, 1), None)).is_empty
