# =============================================================================
# lab_core/data/export.py
# CSV export of borrow requests
# =============================================================================

from __future__ import annotations
import csv
from typing import List, Optional

import pandas as pd

from lab_core.models import BorrowRequest

CSV_HEADERS = [
    "Request Date",
    "Student Name",
    "Roll Number",
    "Mobile",
    "Component",
    "Quantity",
    "Due Date",
    "Status",
    "Approved By",
    "Approved Date",
    "Returned Date",
]


def format_short_date(value: Optional[str]) -> str:
    """Render an ISO timestamp as the locale's short date in local time."""
    if not value:
        return ""
    ts = pd.to_datetime(value, utc=True, errors="coerce")
    if pd.isna(ts):
        return ""
    return ts.to_pydatetime().astimezone().strftime("%x")


def capitalize_status(status: str) -> str:
    """Upper-case the first letter only ('approved' -> 'Approved')."""
    return status[:1].upper() + status[1:]


def requests_to_frame(requests: List[BorrowRequest]) -> pd.DataFrame:
    """One row per request, export columns in export order, all strings."""
    rows = [
        [
            format_short_date(r.request_date),
            r.student_name,
            r.roll_no or "",
            r.mobile or "",
            r.component_name,
            str(r.quantity),
            format_short_date(r.due_date),
            capitalize_status(r.status.value),
            r.approved_by or "",
            format_short_date(r.approved_at),
            format_short_date(r.returned_at),
        ]
        for r in requests
    ]
    return pd.DataFrame(rows, columns=CSV_HEADERS, dtype=str)


def render_requests_csv(requests: List[BorrowRequest]) -> str:
    """
    Render requests as CSV text.

    Every field is double-quoted, fields are comma-joined and rows are
    newline-joined with no trailing newline. Rows keep the given order.
    """
    df = requests_to_frame(requests)
    text = df.to_csv(index=False, quoting=csv.QUOTE_ALL, lineterminator="\n")
    return text.rstrip("\n")
