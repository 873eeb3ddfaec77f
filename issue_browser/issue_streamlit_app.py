from __future__ import annotations

import logging
from concurrent.futures import ThreadPoolExecutor
from typing import List, Sequence, Tuple

import pandas as pd
import streamlit as st

from issue_ai.categorize import TopicClassifier
from issue_ai.config import Settings, load_settings
from issue_browser.issue_data import export_workbook_bytes, ingest_workbook, is_supported_upload
from issue_common import (
    ANALYZING_LABEL,
    REQUIRED_LABELS,
    FilterSpec,
    IngestionError,
    IssueStore,
    Record,
    apply_filters,
    export_filename,
    filter_options,
    start_categorization,
    summarize_selection,
    topic_options,
)

LOGGER = logging.getLogger(__name__)

FILTER_KEYS = ("filter_topics", "filter_rubrics", "filter_states", "filter_date_from", "filter_date_to")
EDITABLE_COLUMNS = ("Select", "Downloaded", "Topic")


@st.cache_resource
def get_settings() -> Settings:
    settings = load_settings()
    logging.basicConfig(
        level=getattr(logging, settings.log_level, logging.INFO),
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    )
    return settings


@st.cache_resource
def get_executor(max_workers: int) -> ThreadPoolExecutor:
    return ThreadPoolExecutor(max_workers=max_workers, thread_name_prefix="categorize")


def init_state() -> IssueStore:
    if "store" not in st.session_state:
        st.session_state.store = IssueStore()
    st.session_state.setdefault("upload_error", None)
    st.session_state.setdefault("editor_nonce", 0)
    return st.session_state.store


def bump_editor_nonce() -> None:
    """Give editable widgets fresh keys so stale widget deltas never replay onto the store."""

    st.session_state.editor_nonce += 1


def display_topic(record: Record, analyzing: bool) -> str:
    if analyzing and record.topic_pending:
        return ANALYZING_LABEL
    return record.topic


def build_table_frame(records: Sequence[Record], analyzing: bool) -> pd.DataFrame:
    rows = [
        {
            "id": r.id,
            "Select": r.selected,
            "Downloaded": r.downloaded,
            "Author": r.display_author,
            "Title": r.title,
            "Topic": display_topic(r, analyzing),
            "Rubric": r.rubric or "Uncategorized",
            "Status": r.production_state or "Draft",
            "Online First": r.formatted_date,
            "DOI": r.doi_url,
        }
        for r in records
    ]
    columns = ["id", "Select", "Downloaded", "Author", "Title", "Topic", "Rubric", "Status", "Online First", "DOI"]
    return pd.DataFrame(rows, columns=columns).set_index("id")


def apply_table_edits(store: IssueStore, before: pd.DataFrame, after: pd.DataFrame) -> int:
    """
    Push checkbox/topic edits from the data editor into the store.

    Only cells that differ from what was displayed are applied, so the
    "Analyzing..." label never gets written back as a topic.
    """

    changed = 0
    for record_id, row in after.iterrows():
        if record_id not in before.index:
            continue
        shown = before.loc[record_id]
        if bool(row["Select"]) != bool(shown["Select"]):
            store.set_selected(record_id, bool(row["Select"]))
            changed += 1
        if bool(row["Downloaded"]) != bool(shown["Downloaded"]):
            store.set_downloaded(record_id, bool(row["Downloaded"]))
            changed += 1
        topic = row["Topic"]
        if topic and topic != shown["Topic"] and topic != ANALYZING_LABEL:
            store.set_topic(record_id, str(topic))
            changed += 1
    return changed


def handle_upload(store: IssueStore, settings: Settings) -> None:
    """Ingest a newly uploaded manifest once and start background categorization."""

    st.sidebar.header("Data Source")
    uploaded = st.sidebar.file_uploader(
        "Upload manuscript manifest",
        type=["xlsx", "xls"],
        key="manifest_upload",
        help=f"Required headers: {', '.join(REQUIRED_LABELS)}",
    )
    if uploaded is None or uploaded.file_id == st.session_state.get("ingested_file_id"):
        return
    st.session_state.ingested_file_id = uploaded.file_id

    if not is_supported_upload(uploaded.name):
        st.session_state.upload_error = "Please upload a valid Excel file (.xlsx or .xls)"
        return

    try:
        records, report = ingest_workbook(uploaded)
    except IngestionError as exc:
        LOGGER.warning("Rejected upload %s: %s", uploaded.name, exc)
        st.session_state.upload_error = str(exc)
        return

    st.session_state.upload_error = None
    st.session_state.ingest_report = report
    for key in FILTER_KEYS:
        st.session_state.pop(key, None)
    store.load(records)
    bump_editor_nonce()

    if settings.categorization_enabled:
        start_categorization(store, TopicClassifier.from_settings(settings), get_executor(settings.max_workers))
    else:
        LOGGER.info("Categorization disabled; topics stay at the placeholder.")


def render_filters(records: Sequence[Record]) -> FilterSpec:
    """Render sidebar filters and return the selected filter spec."""

    st.sidebar.header("Filters")
    if st.sidebar.button("Clear all filters", use_container_width=True):
        for key in FILTER_KEYS:
            st.session_state.pop(key, None)

    options = filter_options(records)
    topics = st.sidebar.multiselect(
        "Clinical topic",
        options=topic_options(extra=[r.topic for r in records if not r.topic_pending]),
        key="filter_topics",
    )
    rubrics = st.sidebar.multiselect("Rubric", options=options["rubrics"], key="filter_rubrics")
    states = st.sidebar.multiselect("Production state", options=options["production_states"], key="filter_states")

    st.sidebar.caption("Online-first date")
    from_col, to_col = st.sidebar.columns(2)
    date_from = from_col.date_input("From", value=None, key="filter_date_from")
    date_to = to_col.date_input("To", value=None, key="filter_date_to")

    return FilterSpec(
        rubrics=tuple(rubrics),
        production_states=tuple(states),
        topics=tuple(topics),
        date_range=(date_from, date_to),
    )


def render_export(store: IssueStore) -> None:
    st.sidebar.header("Export")
    selected = store.selected_records()
    filename = export_filename()
    st.sidebar.download_button(
        label=f"Export Plan ({len(selected)} articles)",
        data=export_workbook_bytes(selected),
        file_name=filename,
        mime="application/vnd.openxmlformats-officedocument.spreadsheetml.sheet",
        disabled=not selected,
        use_container_width=True,
    )
    st.sidebar.caption(filename)


@st.fragment(run_every=2.0)
def render_categorization_status(store: IssueStore) -> None:
    """Poll the background classifier and rerun the page once topics land."""

    if store.is_categorizing:
        st.caption("AI sorting clinical domains...")
        st.session_state.awaiting_topics = True
    elif st.session_state.pop("awaiting_topics", False):
        st.rerun()


def render_table(store: IssueStore, visible: Sequence[Record], analyzing: bool) -> None:
    st.markdown(f"### Curation Table ({len(visible)} of {len(store)} articles)")
    if not visible:
        st.info("No articles found matching the current filters.")
        return

    shown = build_table_frame(visible, analyzing)
    extra_topics: List[str] = [t for t in shown["Topic"].unique().tolist() if t]
    edited = st.data_editor(
        shown,
        key=f"table_editor_{store.generation}_{st.session_state.editor_nonce}",
        use_container_width=True,
        hide_index=True,
        disabled=[c for c in shown.columns if c not in EDITABLE_COLUMNS],
        column_config={
            "Select": st.column_config.CheckboxColumn("Select"),
            "Downloaded": st.column_config.CheckboxColumn("DL"),
            "Topic": st.column_config.SelectboxColumn("Topic", options=topic_options(extra=extra_topics), required=True),
            "Title": st.column_config.TextColumn("Title", width="large"),
            "DOI": st.column_config.LinkColumn("DOI", display_text="DOI Link"),
        },
    )
    if apply_table_edits(store, shown, edited):
        bump_editor_nonce()
        st.rerun()


def _render_breakdown(container, title: str, rows: Sequence[Tuple[str, int]], total: int, unit: str) -> None:
    container.markdown(f"#### {title}")
    if not rows:
        container.info("Select articles to see distribution")
        return
    for label, count in rows:
        container.progress(count / (total or 1), text=f"{label or 'Uncategorized'} ({count} {unit})")


def render_dashboard(store: IssueStore) -> None:
    summary = summarize_selection(store.records)

    cols = st.columns(3)
    cols[0].metric("Articles Selected", summary.selected_count, f"{summary.selected_percent}% of total", delta_color="off")
    cols[1].metric("Estimated Page Count", summary.estimated_pages)
    cols[2].metric("Download Progress", f"{summary.downloaded_count}/{summary.selected_count}")
    cols[2].progress(summary.download_progress)

    left, right = st.columns(2)
    _render_breakdown(left, "Rubric Breakdown", summary.rubric_breakdown, summary.selected_count, "articles")
    _render_breakdown(right, "Clinical Topic Distribution", summary.topic_breakdown, summary.selected_count, "papers")


def render_queue(store: IssueStore) -> None:
    st.markdown("### Download Queue")
    st.caption("Navigate to each DOI quickly to download PDFs from the journal portal.")
    selected = store.selected_records()
    if not selected:
        st.info("Your queue is empty. Select articles in the Table tab to add them here.")
        return

    nonce = st.session_state.editor_nonce
    for record in selected:
        info_col, dl_col, link_col = st.columns([6, 1, 1])
        info_col.markdown(
            f"**{record.title}**  \n"
            f"{record.display_author} · `{record.editorial_ms_number or '-'}` · {record.rubric or 'Uncategorized'}"
        )
        downloaded = dl_col.checkbox("Downloaded", value=record.downloaded, key=f"queue_dl_{record.id}_{nonce}")
        if record.doi_url:
            link_col.link_button("Open DOI", record.doi_url)
        if downloaded != record.downloaded:
            store.set_downloaded(record.id, downloaded)
            bump_editor_nonce()
            st.rerun()

    st.info(
        "Ensure you are logged into the Journal CMS in a separate tab for seamless PDF access. "
        "The DOI links open in new browser tabs."
    )


def main() -> None:
    st.set_page_config(page_title="Editorial Issue Builder", layout="wide")
    st.title("Editorial Issue Builder")
    st.caption("Curate submitted manuscripts into an issue plan: filter, tag clinical topics, track PDFs, export.")

    settings = get_settings()
    store = init_state()
    handle_upload(store, settings)

    if st.session_state.upload_error:
        st.error(st.session_state.upload_error)
    if not len(store):
        st.info(
            "Upload the journal's .xlsx manifest to begin. "
            f"Required headers: {', '.join(REQUIRED_LABELS)}"
        )
        st.stop()

    report = st.session_state.get("ingest_report")
    if report is not None:
        st.success(f"Loaded {len(store)} articles from {report.source_label}")

    records = store.records
    spec = render_filters(records)
    render_categorization_status(store)
    analyzing = store.is_categorizing
    visible = apply_filters(records, spec)

    tabs = st.tabs(["Table", "Dashboard", f"Queue ({len(store.selected_records())})"])
    with tabs[0]:
        render_table(store, visible, analyzing)
    with tabs[1]:
        render_dashboard(store)
    with tabs[2]:
        render_queue(store)

    render_export(store)


if __name__ == "__main__":
    main()
