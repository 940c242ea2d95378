"""
Certificate Verification Tests
"""

from datetime import date, datetime, timedelta

from training_hub.models.audit_log import AuditLog
from training_hub.models.certificate import Certificate, CertificateStatus
from training_hub.services.certificate_service import certificate_service, effective_status

from conftest import auth_headers


def issue(db, **kwargs):
    return certificate_service.issue(
        db,
        participant_name=kwargs.pop("participant_name", "Jane Smith"),
        course_name=kwargs.pop("course_name", "Project Management"),
        completion_date=date(2025, 5, 1),
        provider_name="Internal Academy",
        **kwargs
    )


def test_missing_token(client, test_db):
    response = client.get("/verify-certificate")

    assert response.status_code == 200
    assert "Invalid verification link" in response.text


def test_preview_token(client, test_db):
    response = client.get("/verify-certificate?t=preview")

    assert "CERT-PREVIEW-0001" in response.text
    assert 'data-status="valid"' in response.text


def test_unknown_token(client, test_db):
    response = client.get("/verify-certificate?t=does-not-exist")

    assert "Certificate not found" in response.text


def test_valid_certificate_is_logged(client, db):
    certificate = issue(db)

    response = client.get(
        f"/verify-certificate?t={certificate.verification_token}",
        headers={"X-Forwarded-For": "203.0.113.7, 10.0.0.1"}
    )

    assert response.status_code == 200
    assert certificate.certificate_number in response.text
    assert 'data-status="valid"' in response.text

    audit = db.query(AuditLog).filter(AuditLog.action == "verified").one()
    assert audit.entity_id == certificate.id
    assert audit.ip_address == "203.0.113.7"
    assert audit.changes["token"] == certificate.verification_token[:8] + "..."


def test_expired_certificate(client, db):
    certificate = issue(db, expires_at=datetime.utcnow() - timedelta(days=1))

    response = client.get(f"/verify-certificate?t={certificate.verification_token}")

    assert 'data-status="expired"' in response.text


def test_revoked_certificate_stays_revoked_after_expiry(db):
    certificate = issue(db, expires_at=datetime.utcnow() - timedelta(days=1))
    certificate_service.revoke(db, certificate)

    assert certificate.status == CertificateStatus.REVOKED
    assert effective_status(certificate) == "revoked"


def test_values_are_html_escaped(client, db):
    certificate = issue(db, participant_name="<script>alert(1)</script>")

    response = client.get(f"/verify-certificate?t={certificate.verification_token}")

    assert "<script>" not in response.text
    assert "&lt;script&gt;" in response.text


def test_l_and_d_issues_and_revokes(client, org):
    headers = auth_headers(org.l_and_d)

    response = client.post("/api/certificates", json={
        "participant_name": "Sample Employee",
        "course_name": "Leadership Essentials",
        "completion_date": "2025-06-30",
        "employee_id": org.employee.id,
    }, headers=headers)

    assert response.status_code == 201
    certificate = response.json()["certificate"]
    assert certificate["status"] == "valid"
    assert "/verify-certificate?t=" in certificate["verification_url"]

    revoked = client.post(f"/api/certificates/{certificate['id']}/revoke", headers=headers)
    assert revoked.json()["certificate"]["status"] == "revoked"


def test_employee_cannot_issue(client, org):
    response = client.post("/api/certificates", json={
        "participant_name": "Me",
        "course_name": "Anything",
        "completion_date": "2025-06-30",
    }, headers=auth_headers(org.employee))

    assert response.status_code == 403
