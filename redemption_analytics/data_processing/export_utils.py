"""Export utilities (Excel workbooks and CSV tables of engine results)."""
from __future__ import annotations

from typing import Dict, List, Optional
import os
import re

import pandas as pd

from .dashboard_params import DEFAULT_CLIENT_NAME
from .distribution_utils import DISTRIBUTION_COLUMNS
from .survey_utils import SurveyQuestion


_UNSAFE_CHARS = re.compile(r'[\\/:*?"<>|\s]+')


def safe_filename(name, suffix: Optional[str] = None) -> str:
    """Export file name for a client or report label.

    Runs of path separators, reserved characters and whitespace collapse to a
    single ``_``. A blank result falls back to the default client name, and
    ``suffix`` (e.g. ``".xlsx"``) is appended unless already present.
    """
    stem = _UNSAFE_CHARS.sub('_', '' if name is None else str(name))
    stem = re.sub(r'_+', '_', stem).strip('_.') or DEFAULT_CLIENT_NAME
    if suffix and not stem.lower().endswith(suffix.lower()):
        stem += suffix
    return stem


def _safe_sheet(name: str) -> str:
    # Sheet names must be <= 31 chars and not contain special chars
    return re.sub(r'[\[\]:*?/\\]', '_', str(name))[:31] or "Sheet1"


def export_to_excel(
    sheets: Dict[str, pd.DataFrame],
    output_path: str,
    thousand_cols: Optional[List[str]] = None,
) -> str:
    """Write multiple DataFrames to an Excel file, one per sheet.

    Columns listed in ``thousand_cols`` get a ``#,##0`` number format.
    """
    thousand_cols = thousand_cols or []
    with pd.ExcelWriter(output_path, engine="xlsxwriter") as writer:
        workbook = writer.book
        thousand_format = workbook.add_format({"num_format": "#,##0"})
        for sheet_name, df in sheets.items():
            safe_sheet = _safe_sheet(sheet_name)
            df.to_excel(writer, sheet_name=safe_sheet, index=False)
            worksheet = writer.sheets[safe_sheet]
            for col_name in thousand_cols:
                if col_name in df.columns:
                    col_idx = df.columns.get_loc(col_name)
                    worksheet.set_column(col_idx, col_idx, None, thousand_format)
    print(f"[export_to_excel] Wrote {len(sheets)} sheets to {output_path}")
    return output_path


def _metrics_frame(metrics: dict) -> pd.DataFrame:
    rows = [
        ("Total Units", metrics.get("totalUnits", 0)),
        ("Days In Range", metrics.get("daysInRange", 0)),
        ("Total Value", metrics.get("totalValue", 0.0)),
        ("Avg Per Day", metrics.get("avgPerDay", 0.0)),
    ]
    dates = metrics.get("uniqueDates") or []
    if dates:
        rows.append(("First Date", dates[0]))
        rows.append(("Last Date", dates[-1]))
    return pd.DataFrame(rows, columns=["Metric", "Value"])


def _rows_frame(rows) -> pd.DataFrame:
    if not rows:
        return pd.DataFrame(columns=DISTRIBUTION_COLUMNS)
    return pd.DataFrame(rows)


def export_snapshot_to_excel(snapshot, output_dir: str, filename: Optional[str] = None) -> str:
    """Write a snapshot's results to one workbook.

    Sheets: Summary, Retailers, Products, Filtered Records and one sheet per
    survey question. ``snapshot`` may be a ``Snapshot`` or its ``to_dict()``.
    """
    data = snapshot.to_dict() if hasattr(snapshot, "to_dict") else dict(snapshot)
    os.makedirs(output_dir, exist_ok=True)
    stem = filename or f"{data.get('clientName') or DEFAULT_CLIENT_NAME}_redemption_report"
    path = os.path.join(output_dir, safe_filename(stem, ".xlsx"))

    sheets: Dict[str, pd.DataFrame] = {
        "Summary": _metrics_frame(data.get("metrics") or {}),
        "Retailers": _rows_frame(data.get("retailerDistribution")),
        "Products": _rows_frame(data.get("productDistribution")),
        "Filtered Records": pd.DataFrame(data.get("filteredData") or []),
    }
    questions = ((data.get("surveyData") or {}).get("questions") or {})
    for number, q in questions.items():
        counts = q.get("counts") or {}
        sheets[f"Q{number}"] = pd.DataFrame({
            "Response": list(counts),
            "Count": list(counts.values()),
            "Percentage": [(q.get("percentages") or {}).get(r, 0.0) for r in counts],
        })
    return export_to_excel(sheets, path, thousand_cols=["value", "Count"])


def export_survey_question_csv(question: SurveyQuestion, output_dir: str) -> str:
    """Write one question's Response/Count/Percentage table as CSV."""
    os.makedirs(output_dir, exist_ok=True)
    path = os.path.join(output_dir, safe_filename(f"survey_question_{question.number}", ".csv"))
    frame = question.responses_frame()
    frame["Percentage"] = frame["Percentage"].round(1)
    frame.to_csv(path, index=False)
    print(f"✅ Exported {path} ({len(frame)} responses) - {question.text}")
    return path


__all__ = [
    "safe_filename",
    "export_to_excel",
    "export_snapshot_to_excel",
    "export_survey_question_csv",
]
