"""Action history page."""


def _event(event_id, part_number, action, date, remark=None):
    return {
        "event_id": event_id,
        "part_number": part_number,
        "type_description": "Ocell",
        "quantity_changed": "2",
        "quantity_after_action": "3",
        "remark": remark,
        "performed_by_id": "oper",
        "performed_by_fullname": "Olive Operator",
        "action_date": date,
        "action_type_description": action,
    }


def test_history_lists_events(oper_client, backend):
    backend.history = [_event(1, "PN-1", "Issued Out", "2024-05-02 10:00:00")]
    response = oper_client.get("/parts/history")
    assert response.status_code == 200
    assert b"PN-1" in response.data
    assert b"02/05/2024" in response.data
    assert b"No remarks" in response.data
    assert b"Olive Operator" in response.data


def test_history_filters_by_action_and_date(oper_client, backend):
    backend.history = [
        _event(1, "PN-ISSUED", "Issued Out", "2024-05-02 10:00:00"),
        _event(2, "PN-DAMAGED", "Damaged", "2024-05-02 11:00:00", "dropped"),
        _event(3, "PN-LATER", "Issued Out", "2024-06-10 09:00:00"),
    ]
    response = oper_client.get("/parts/history?action=Issued+Out")
    assert b"PN-ISSUED" in response.data and b"PN-LATER" in response.data
    assert b"PN-DAMAGED" not in response.data

    response = oper_client.get("/parts/history?from=2024-05-01&to=2024-05-31")
    assert b"PN-ISSUED" in response.data and b"PN-DAMAGED" in response.data
    assert b"PN-LATER" not in response.data


def test_history_failure_is_reported(oper_client, backend):
    backend.fail("history.php", payload={"status": "error", "message": "History unavailable"})
    response = oper_client.get("/parts/history")
    assert response.status_code == 200
    assert b"History unavailable" in response.data


def test_export_csv_respects_filters(oper_client, backend):
    backend.history = [
        _event(1, "PN-ISSUED", "Issued Out", "2024-05-02 10:00:00"),
        _event(2, "PN-DAMAGED", "Damaged", "2024-05-02 11:00:00", "dropped"),
    ]
    response = oper_client.get("/parts/history/export.csv?action=Damaged")
    assert response.status_code == 200
    assert response.headers["Content-Type"].startswith("text/csv")
    assert "attachment; filename=oplps_history_" in response.headers["Content-Disposition"]
    text = response.data.decode("utf-8-sig")
    lines = text.strip().split("\n")
    assert lines[0].startswith("DATE,ACTION,PART NUMBER")
    assert lines[1] == "2024-05-02 11:00:00,Damaged,PN-DAMAGED,Ocell,2,3,dropped,Olive Operator"
    assert len(lines) == 2


def test_export_xlsx(oper_client, backend):
    from io import BytesIO

    from openpyxl import load_workbook

    backend.history = [_event(1, "PN-ISSUED", "Issued Out", "2024-05-02 10:00:00")]
    response = oper_client.get("/parts/history/export.xlsx")
    assert response.status_code == 200
    ws = load_workbook(BytesIO(response.data)).active
    rows = list(ws.iter_rows(values_only=True))
    assert rows[0][0] == "DATE"
    assert rows[1][2] == "PN-ISSUED"
    assert rows[1][6] == "No remarks"


def test_export_unknown_format_is_404(oper_client):
    assert oper_client.get("/parts/history/export.pdf").status_code == 404
