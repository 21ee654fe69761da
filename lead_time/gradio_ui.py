"""Gradio UI wrapper for the lead time pipeline.

Upload a work-item export, ingest it into the browser session's DatasetStore
and show the summary, the per-type table and the text report. Charts are left
to other front ends.
"""

try:
    from .csv_processor import DEFAULT_ALLOWED_EXTENSIONS, CSVProcessingError
    from .main import (
        ColumnConfig,
        DatasetStore,
        IngestionInProgressError,
        IngestionOutcome,
        _summaries_frame,
        assemble_text_report,
    )
    from .metrics import PercentileReport
except Exception:
    from csv_processor import DEFAULT_ALLOWED_EXTENSIONS, CSVProcessingError  # type: ignore
    from main import (  # type: ignore
        ColumnConfig,
        DatasetStore,
        IngestionInProgressError,
        IngestionOutcome,
        _summaries_frame,
        assemble_text_report,
    )
    from metrics import PercentileReport  # type: ignore

import logging
import time
from pathlib import Path
from typing import Any, Optional, Tuple

import gradio as gr
import pandas as pd

logger = logging.getLogger(__name__)


def _resolve_upload_path(file_obj: Any) -> Optional[str]:
    # gr.File returns a dict with "name" and "tmp_path" in some versions; accept both
    if file_obj is None:
        return None
    if isinstance(file_obj, dict):
        return file_obj.get("name") or file_obj.get("tmp_path")
    if isinstance(file_obj, (str, Path)):
        return str(file_obj)
    return getattr(file_obj, "name", None)


def _summary_markdown(report: PercentileReport, outcome: IngestionOutcome) -> str:
    lines = [
        f"**Items:** {report.total_count} | **Types:** {len(report.type_summaries)}",
        f"**P85:** {report.p85} days | **P95:** {report.p95} days",
    ]
    if report.filtered_mean is not None:
        lines.append(f"**Mean lead time:** {int(report.filtered_mean + 0.5)} days")
    for msg in outcome.diagnostics:
        lines.append(f"- {msg}")
    return "\n\n".join(lines)


def _run_ingest(
    store: DatasetStore, uploaded_file_path: Optional[str]
) -> Tuple[str, pd.DataFrame, str]:
    """
    Ingest the uploaded file and return (summary_markdown, type_table, report_text).
    On failure the message is returned in place of the summary and report, and the
    store keeps whatever it had loaded before.
    """
    t0 = time.time()
    logger.info(f"_run_ingest START - uploaded_file_path={uploaded_file_path!r}")

    if not uploaded_file_path:
        msg = "Error: No file uploaded. Please upload a CSV file."
        return msg, pd.DataFrame(), msg

    try:
        outcome = store.ingest_file(Path(uploaded_file_path).resolve())
    except IngestionInProgressError as e:
        msg = f"Busy: {e}"
        return msg, pd.DataFrame(), msg
    except (FileNotFoundError, CSVProcessingError) as e:
        logger.info("User-facing error: %s", e)
        msg = f"Error: {e}"
        if store.is_loaded:
            msg += "\n\nThe previously loaded data is unchanged."
        return msg, pd.DataFrame(), msg

    report = store.report()
    table = _summaries_frame(report.type_summaries, store.filters)
    text = assemble_text_report(report, store.filters, outcome)
    logger.info(f"_run_ingest DONE in {time.time() - t0:.2f}s")
    return _summary_markdown(report, outcome), table, text


def _ingest_for_session(
    file_obj: Any, store: Optional[DatasetStore]
) -> Tuple[str, pd.DataFrame, str, DatasetStore]:
    """Click handler: each browser session gets its own DatasetStore via gr.State."""
    if store is None:
        store = DatasetStore()
    summary, table, text = _run_ingest(store, _resolve_upload_path(file_obj))
    return summary, table, text, store


def _build_ui():
    columns = ColumnConfig()
    with gr.Blocks() as demo:
        gr.Markdown("### Lead Time Calculator")
        gr.Markdown(
            "Upload a file with the columns: `"
            + ", ".join(columns.required)
            + "`. Dates are expected as YYYY-MM-DD."
        )
        # Created lazily on the first click so the initial value stays None
        session_store = gr.State(None)
        with gr.Row():
            file_input = gr.File(
                label="Upload CSV file", file_types=list(DEFAULT_ALLOWED_EXTENSIONS)
            )
        run_button = gr.Button("Load")
        summary_md = gr.Markdown()
        type_table = gr.Dataframe(label="Items by type", interactive=False)
        report_box = gr.Textbox(
            value="", lines=20, interactive=False, elem_id="report_box", label="Report"
        )

        run_button.click(
            _ingest_for_session,
            inputs=[file_input, session_store],
            outputs=[summary_md, type_table, report_box, session_store],
        )

    return demo


if __name__ == "__main__":
    demo = _build_ui()
    demo.launch()
