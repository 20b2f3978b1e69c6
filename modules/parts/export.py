"""Spreadsheet export of the action history."""

import csv
import io
from datetime import datetime, timezone
from typing import Iterable, List

from openpyxl import Workbook

from .models import HistoryEvent

HISTORY_HEADER = [
    "DATE", "ACTION", "PART NUMBER", "TYPE", "QTY CHANGED", "QTY AFTER", "REMARKS", "PERFORMED BY",
]


def history_rows(events: Iterable[HistoryEvent]) -> List[list]:
    rows = []
    for e in events:
        moment = e.action_at
        rows.append([
            moment.strftime("%Y-%m-%d %H:%M:%S") if moment else "",
            e.action_type,
            e.part_number,
            e.type_description,
            e.quantity_changed,
            e.quantity_after_action if e.quantity_after_action is not None else "",
            e.remarks,
            e.performed_by,
        ])
    return rows


def export_filename(extension: str) -> str:
    return f"oplps_history_{datetime.now(timezone.utc):%Y%m%d_%H%M%S}.{extension}"


def history_csv(events: Iterable[HistoryEvent]) -> bytes:
    out = io.StringIO()
    writer = csv.writer(out, lineterminator="\n")
    writer.writerow(HISTORY_HEADER)
    writer.writerows(history_rows(events))
    # BOM so Excel picks up UTF-8
    return ("\ufeff" + out.getvalue()).encode("utf-8")


def history_xlsx(events: Iterable[HistoryEvent]) -> bytes:
    wb = Workbook()
    ws = wb.active
    ws.title = "History"
    ws.append(HISTORY_HEADER)
    for row in history_rows(events):
        ws.append(row)
    ws.freeze_panes = "A2"
    out = io.BytesIO()
    wb.save(out)
    return out.getvalue()
