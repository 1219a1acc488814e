from __future__ import annotations

import datetime as dt
import warnings
from pathlib import Path
from typing import Any, Optional

import pandas as pd

from order_status_sync.models import OutcomeKind, ReconcileOutcome, RunSummary

REPORT_COLUMNS = [
    "OrderId",
    "Outcome",
    "Status",
    "PreviousStatus",
    "Reason",
    "TrackingNumber",
    "Fulfillment",
    "ErrorKind",
    "Error",
]

_SHEETS = (
    ("Updated", OutcomeKind.UPDATED),
    ("Skipped", OutcomeKind.SKIPPED),
    ("Failed", OutcomeKind.ERROR),
)


def _row(o: ReconcileOutcome) -> dict[str, Any]:
    d = o.to_dict()
    return {
        "OrderId": d["order_id"],
        "Outcome": d["kind"],
        "Status": d["status"] or "",
        "PreviousStatus": d["previous_status"] or "",
        "Reason": d["reason"] or "",
        "TrackingNumber": d["tracking_number"] or "",
        "Fulfillment": d["fulfillment"] or "",
        "ErrorKind": d["error_kind"] or "",
        "Error": d["error"] or "",
    }


def summary_to_frame(summary: RunSummary) -> pd.DataFrame:
    """One row per reconciled order, columns in REPORT_COLUMNS order."""
    df = pd.DataFrame([_row(o) for o in summary.outcomes], columns=REPORT_COLUMNS)
    return df.astype("string").fillna("")


def _marker(summary: RunSummary, now_utc: str) -> pd.DataFrame:
    return pd.DataFrame(
        [
            {
                "timestamp_utc": now_utc,
                "total": summary.total,
                "processed": summary.processed,
                "skipped": summary.skipped,
                "failed": summary.failed,
                "cancelled": summary.cancelled,
                "exit_code": summary.exit_code,
            }
        ]
    )


def write_report(summary: RunSummary, path: Path, *, now: Optional[dt.datetime] = None) -> Path:
    """
    Write the run summary next to the run log.

    - *.csv: a single table.
    - anything else: an .xlsx workbook with 'All Orders', 'Updated', 'Skipped',
      'Failed' and 'Marker' sheets.
    """
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    df = summary_to_frame(summary)

    if path.suffix.lower() == ".csv":
        df.to_csv(path, index=False)
        return path

    if path.suffix.lower() != ".xlsx":
        path = path.with_suffix(".xlsx")

    now_utc = (now or dt.datetime.now(dt.timezone.utc)).isoformat()
    with warnings.catch_warnings():
        warnings.simplefilter("ignore")
        with pd.ExcelWriter(path, engine="openpyxl", mode="w") as xw:
            df.to_excel(xw, sheet_name="All Orders", index=False, na_rep="")
            for sheet, kind in _SHEETS:
                df[df["Outcome"] == kind.value].to_excel(
                    xw, sheet_name=sheet, index=False, na_rep="")
            _marker(summary, now_utc).to_excel(xw, sheet_name="Marker", index=False)
    return path
