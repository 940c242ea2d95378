"""
Per Diem API Tests
Calculation endpoint, history and rate administration
"""

from training_hub.models.per_diem import PerDiemCalculation
from training_hub.services.per_diem_service import per_diem_service

from conftest import auth_headers


CALCULATE_URL = "/api/per-diem/calculate"


def estimate_body(employee_id, **overrides):
    body = {
        "action": "estimate",
        "employee_id": employee_id,
        "destination_country": "Germany",
        "planned_start_date": "2025-03-10",
        "planned_end_date": "2025-03-14",
    }
    body.update(overrides)
    return body


def test_preflight_returns_cors_headers(client, test_db):
    response = client.options(CALCULATE_URL)

    assert response.status_code == 200
    assert response.headers["Access-Control-Allow-Origin"] == "*"
    assert "x-client-info" in response.headers["Access-Control-Allow-Headers"]


def test_browser_preflight_from_any_origin(client, test_db):
    response = client.options(CALCULATE_URL, headers={
        "Origin": "https://hr.example.com",
        "Access-Control-Request-Method": "POST",
        "Access-Control-Request-Headers": "authorization, content-type, x-client-info, apikey",
    })

    assert response.status_code == 200
    assert response.headers["Access-Control-Allow-Origin"] == "*"
    allowed = response.headers["Access-Control-Allow-Headers"].lower()
    for header in ("authorization", "x-client-info", "apikey", "content-type"):
        assert header in allowed


def test_other_routes_keep_configured_origins(client, test_db):
    response = client.options("/api/auth/me", headers={
        "Origin": "https://hr.example.com",
        "Access-Control-Request-Method": "GET",
    })

    assert response.status_code == 400
    assert "access-control-allow-origin" not in response.headers


def test_calculate_requires_authentication(client, test_db):
    response = client.post(CALCULATE_URL, json=estimate_body(1))

    assert response.status_code == 401


def test_estimate(client, org, rates):
    response = client.post(
        CALCULATE_URL,
        json=estimate_body(org.employee.id, employee_grade=12),
        headers=auth_headers(org.employee)
    )

    assert response.status_code == 200
    assert response.headers["Access-Control-Allow-Origin"] == "*"
    data = response.json()
    assert data["success"] is True
    assert data["breakdown"]["full_days"] == 3
    assert data["breakdown"]["total_eligible_days"] == 4.0
    assert data["calculation"]["estimated_amount"] == 600.0
    assert data["calculation"]["created_by"] == org.employee.id


def test_config_missing_is_not_an_http_error(client, org, rates):
    response = client.post(
        CALCULATE_URL,
        json=estimate_body(org.employee.id, destination_country="Atlantis"),
        headers=auth_headers(org.employee)
    )

    assert response.status_code == 200
    data = response.json()
    assert data["success"] is False
    assert data["config_missing"] is True


def test_malformed_body_returns_500_with_error(client, org, rates):
    response = client.post(
        CALCULATE_URL,
        content="not json",
        headers={**auth_headers(org.employee), "Content-Type": "application/json"}
    )

    assert response.status_code == 500
    data = response.json()
    assert data["success"] is False
    assert data["error"]
    assert response.headers["Access-Control-Allow-Origin"] == "*"


def test_unknown_action_returns_500(client, org, rates):
    response = client.post(
        CALCULATE_URL,
        json=estimate_body(org.employee.id, action="teleport"),
        headers=auth_headers(org.employee)
    )

    assert response.status_code == 500
    assert response.json()["success"] is False


def test_bulk_calculate(client, org, rates, db):
    body = estimate_body(None, action="bulk_calculate", participants=[
        {"employee_id": org.employee.id, "employee_grade": 5},
        {"employee_id": org.manager.id, "employee_grade": 10},
        {"employee_id": org.hrbp.id, "destination_country": "Atlantis"},
    ])
    response = client.post(CALCULATE_URL, json=body, headers=auth_headers(org.l_and_d))

    assert response.status_code == 200
    data = response.json()
    assert data["success"] is True
    assert len(data["results"]) == 3
    assert [r["success"] for r in data["results"]] == [True, True, False]
    assert data["results"][2]["config_missing"] is True
    assert db.query(PerDiemCalculation).count() == 2


def test_bulk_unexpected_failure_is_isolated(client, org, rates, db, monkeypatch):
    find_grade_band = per_diem_service.find_grade_band

    def failing_lookup(session, grade):
        if grade == 99:
            raise RuntimeError("store unreachable")
        return find_grade_band(session, grade)

    monkeypatch.setattr(per_diem_service, "find_grade_band", failing_lookup)

    body = estimate_body(None, action="bulk_calculate", participants=[
        {"employee_id": org.employee.id, "employee_grade": 5},
        {"employee_id": org.manager.id, "employee_grade": 99},
        {"employee_id": org.hrbp.id, "employee_grade": 12},
    ])
    response = client.post(CALCULATE_URL, json=body, headers=auth_headers(org.l_and_d))

    assert response.status_code == 200
    results = response.json()["results"]
    assert [r["success"] for r in results] == [True, False, True]
    assert results[1]["employee_id"] == org.manager.id
    assert results[1]["error"] == "store unreachable"
    assert "config_missing" not in results[1]
    assert db.query(PerDiemCalculation).count() == 2


def test_employee_only_sees_own_calculations(client, org, rates):
    client.post(CALCULATE_URL, json=estimate_body(org.employee.id), headers=auth_headers(org.employee))
    client.post(CALCULATE_URL, json=estimate_body(org.manager.id), headers=auth_headers(org.manager))

    own = client.get("/api/per-diem/calculations", headers=auth_headers(org.employee)).json()
    everyone = client.get("/api/per-diem/calculations", headers=auth_headers(org.l_and_d)).json()

    assert own["total"] == 1
    assert own["calculations"][0]["employee_id"] == org.employee.id
    assert everyone["total"] == 2


def test_override_flow(client, org, rates):
    created = client.post(
        CALCULATE_URL, json=estimate_body(org.employee.id), headers=auth_headers(org.employee)
    ).json()
    calculation_id = created["calculation"]["id"]

    # Employees cannot override
    forbidden = client.post(
        f"/api/per-diem/calculations/{calculation_id}/overrides",
        json={"override_amount": 800, "reason": "Conference extended"},
        headers=auth_headers(org.employee)
    )
    assert forbidden.status_code == 403

    response = client.post(
        f"/api/per-diem/calculations/{calculation_id}/overrides",
        json={"override_amount": 800, "reason": "Conference extended"},
        headers=auth_headers(org.l_and_d)
    )
    assert response.status_code == 201
    override = response.json()
    assert override["requires_approval"] is True
    assert override["approval_status"] == "pending"

    decision = client.put(
        f"/api/per-diem/overrides/{override['id']}/decision",
        json={"approved": True},
        headers=auth_headers(org.chro)
    )
    assert decision.status_code == 200
    assert decision.json()["approval_status"] == "approved"

    detail = client.get(
        f"/api/per-diem/calculations/{calculation_id}", headers=auth_headers(org.employee)
    ).json()
    assert detail["effective_amount"] == 800
    assert len(detail["overrides"]) == 1


def test_calculation_not_found(client, org):
    response = client.get("/api/per-diem/calculations/999", headers=auth_headers(org.l_and_d))

    assert response.status_code == 404
    assert response.json()["success"] is False


# ============================================
# ADMIN
# ============================================

def test_destination_band_admin(client, org):
    headers = auth_headers(org.l_and_d)
    response = client.post("/api/admin/per-diem/destination-bands", json={
        "country": "France",
        "band": "A",
        "currency": "EUR",
        "training_daily_rate": 130,
        "valid_from": "2024-01-01",
    }, headers=headers)

    assert response.status_code == 201
    band_id = response.json()["id"]

    updated = client.put(
        f"/api/admin/per-diem/destination-bands/{band_id}",
        json={"training_daily_rate": 140},
        headers=headers
    )
    assert updated.json()["training_daily_rate"] == 140

    listed = client.get("/api/admin/per-diem/destination-bands?country=France", headers=headers).json()
    assert len(listed) == 1


def test_rate_admin_forbidden_for_employees(client, org):
    response = client.get("/api/admin/per-diem/grade-bands", headers=auth_headers(org.employee))

    assert response.status_code == 403


def test_overlapping_grade_band_rejected(client, org, rates):
    response = client.post("/api/admin/per-diem/grade-bands", json={
        "band_name": "Overlap",
        "grade_from": 14,
        "grade_to": 20,
        "multiplier": 2.0,
    }, headers=auth_headers(org.l_and_d))

    assert response.status_code == 400


def test_policy_update(client, org, rates):
    headers = auth_headers(org.l_and_d)

    response = client.put(
        "/api/admin/per-diem/policy/travel_day_rate",
        json={"config_value": {"percentage": 100}},
        headers=headers
    )
    assert response.status_code == 200
    assert response.json()["policy"]["travel_day_rate"]["percentage"] == 100

    calculated = client.post(
        CALCULATE_URL, json=estimate_body(org.employee.id), headers=auth_headers(org.employee)
    ).json()
    assert calculated["breakdown"]["total_eligible_days"] == 5.0


def test_policy_update_rejects_invalid_values(client, org):
    headers = auth_headers(org.l_and_d)

    unknown = client.put(
        "/api/admin/per-diem/policy/weekend_rule",
        json={"config_value": {"exclude": True}},
        headers=headers
    )
    out_of_range = client.put(
        "/api/admin/per-diem/policy/travel_day_rate",
        json={"config_value": {"percentage": 150}},
        headers=headers
    )

    assert unknown.status_code == 400
    assert out_of_range.status_code == 500
    assert out_of_range.json()["success"] is False
