"""
Training Request and Approval API Tests
"""

from conftest import auth_headers


def create_request(client, user, course, employee=None):
    body = {"course_id": course.id, "justification": "Needed for the new product line"}
    if employee is not None:
        body["employee_id"] = employee.id
    return client.post("/api/training-requests", json=body, headers=auth_headers(user))


def test_employee_creates_request(client, org, courses):
    response = create_request(client, org.employee, courses["local"])

    assert response.status_code == 201
    data = response.json()
    assert data["request_number"].startswith("TR-")
    assert data["status"] == "pending"
    assert data["current_approver_id"] == org.manager.id
    assert len(data["approvals"]) == 1


def test_employee_cannot_nominate_others(client, org, courses):
    response = create_request(client, org.employee, courses["local"], employee=org.manager)

    assert response.status_code == 403


def test_unknown_course_returns_404(client, org):
    response = client.post(
        "/api/training-requests", json={"course_id": 999}, headers=auth_headers(org.employee)
    )

    assert response.status_code == 404


def test_manager_sees_pending_and_approves(client, org, courses):
    request_id = create_request(client, org.employee, courses["local"]).json()["id"]

    pending = client.get("/api/approvals/pending", headers=auth_headers(org.manager)).json()
    assert pending["count"] == 1
    approval = pending["approvals"][0]
    assert approval["request_id"] == request_id
    assert approval["course_title"] == "Local Workshop"

    response = client.post(
        f"/api/approvals/{approval['id']}/decision",
        json={"request_id": request_id, "status": "approved", "comments": "Go for it"},
        headers=auth_headers(org.manager)
    )
    assert response.status_code == 200
    assert response.json()["request"]["status"] == "approved"

    # Same decision again conflicts
    again = client.post(
        f"/api/approvals/{approval['id']}/decision",
        json={"request_id": request_id, "status": "approved"},
        headers=auth_headers(org.manager)
    )
    assert again.status_code == 409
    assert again.json()["success"] is False

    mine = client.get("/api/training-requests/my-requests", headers=auth_headers(org.employee)).json()
    assert [r["status"] for r in mine] == ["approved"]


def test_other_user_cannot_decide(client, org, courses):
    request_id = create_request(client, org.employee, courses["local"]).json()["id"]
    approval_id = client.get("/api/approvals/pending", headers=auth_headers(org.manager)).json()["approvals"][0]["id"]

    response = client.post(
        f"/api/approvals/{approval_id}/decision",
        json={"request_id": request_id, "status": "approved"},
        headers=auth_headers(org.hrbp)
    )

    assert response.status_code == 403


def test_decision_routes_to_next_approver(client, org, courses):
    request_id = create_request(client, org.employee, courses["abroad"]).json()["id"]
    approval_id = client.get("/api/approvals/pending", headers=auth_headers(org.manager)).json()["approvals"][0]["id"]

    response = client.post(
        f"/api/approvals/{approval_id}/decision",
        json={
            "request_id": request_id,
            "status": "approved",
            "requester_id": org.employee.id,
            "next_approver_id": org.hrbp.id,
            "next_approval_level": 2,
        },
        headers=auth_headers(org.manager)
    )

    assert response.status_code == 200
    request = response.json()["request"]
    assert request["status"] == "pending"
    assert request["current_approval_level"] == 2
    assert client.get("/api/approvals/pending", headers=auth_headers(org.hrbp)).json()["count"] == 1


def test_delegate_endpoint(client, org, courses, make_user):
    deputy = make_user("deputy")
    create_request(client, org.employee, courses["local"])
    approval_id = client.get("/api/approvals/pending", headers=auth_headers(org.manager)).json()["approvals"][0]["id"]

    response = client.post(
        f"/api/approvals/{approval_id}/delegate",
        json={"delegate_to_user_id": deputy.id, "comments": "Covering this week"},
        headers=auth_headers(org.manager)
    )

    assert response.status_code == 200
    assert response.json()["approver_id"] == deputy.id
    assert response.json()["comments"] == "Delegated: Covering this week"
    assert client.get("/api/approvals/pending", headers=auth_headers(deputy)).json()["count"] == 1


def test_request_detail_access(client, org, courses, make_user):
    request_id = create_request(client, org.employee, courses["local"]).json()["id"]
    outsider = make_user("outsider")

    own = client.get(f"/api/training-requests/{request_id}", headers=auth_headers(org.employee))
    approver = client.get(f"/api/training-requests/{request_id}", headers=auth_headers(org.manager))
    other = client.get(f"/api/training-requests/{request_id}", headers=auth_headers(outsider))

    assert own.status_code == 200
    assert approver.status_code == 200
    assert other.status_code == 403


def test_notifications_follow_the_workflow(client, org, courses):
    create_request(client, org.employee, courses["local"])
    headers = auth_headers(org.manager)

    assert client.get("/api/notifications/unread-count", headers=headers).json()["unread_count"] == 1

    inbox = client.get("/api/notifications/my-notifications", headers=headers).json()
    notification = inbox["notifications"][0]
    assert notification["type"] == "approval_required"
    assert notification["request_status"] == "pending"

    read = client.put(f"/api/notifications/{notification['id']}/read", headers=headers)
    assert read.status_code == 200
    assert client.get("/api/notifications/unread-count", headers=headers).json()["unread_count"] == 0


def test_course_catalogue(client, db, org, courses):
    courses["local"].is_active = False
    db.commit()

    response = client.get("/api/courses", headers=auth_headers(org.employee))
    assert response.status_code == 200
    listed = response.json()["courses"]
    assert [c["code"] for c in listed] == ["ABR-1"]
    assert listed[0]["requires_extended_workflow"] is True

    filtered = client.get("/api/courses?location=local", headers=auth_headers(org.employee))
    assert filtered.json()["courses"] == []
