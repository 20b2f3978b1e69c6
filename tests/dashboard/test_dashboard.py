"""Supervisor dashboard."""


def test_operator_is_redirected_home(oper_client):
    response = oper_client.get("/dashboard/", follow_redirects=False)
    assert response.status_code == 302
    assert response.headers["Location"].endswith("/")


def test_supervisor_sees_totals_and_aging(supv_client, backend):
    backend.add_part(1, "PN-A", 1, days=20)
    backend.add_part(2, "PN-B", 1, days=95)
    backend.add_part(3, "PN-C", 1, days=100)

    response = supv_client.get("/dashboard/")
    assert response.status_code == 200
    assert b'id="total-issued">7<' in response.data
    assert b'id="total-damaged">2<' in response.data
    assert b'id="total-gt14">1<' in response.data
    assert b'id="total-gt30">0<' in response.data
    assert b'id="total-gt90">2<' in response.data


def test_admin_has_access(admin_client):
    assert admin_client.get("/dashboard/").status_code == 200


def test_metrics_failure_is_reported(supv_client, backend):
    backend.fail("dashboard.php", status=500, payload="Internal Server Error")
    response = supv_client.get("/dashboard/")
    assert response.status_code == 200
    assert b"HTTP Error 500" in response.data
    assert b"Metrics are unavailable." in response.data
