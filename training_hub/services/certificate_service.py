"""
Certificate Service
Issues completion certificates and renders the public verification page
"""

from datetime import datetime, date
from html import escape
from typing import Optional, Dict, Any
from sqlalchemy.orm import Session

from training_hub.config.settings import settings
from training_hub.models.audit_log import AuditLog
from training_hub.models.certificate import Certificate, CertificateStatus
from training_hub.utils.helpers import generate_reference, generate_verification_token, mask_token
from training_hub.utils.logger import setup_logger

logger = setup_logger()

PREVIEW_TOKEN = "preview"

STATUS_COLORS = {
    "valid": "#22c55e",
    "expired": "#f97316",
    "revoked": "#ef4444",
}

STATUS_LABELS = {
    "valid": "&#10003; Valid Certificate",
    "expired": "&#9888; Expired Certificate",
    "revoked": "&#10007; Revoked Certificate",
}


def effective_status(certificate: Certificate, now: Optional[datetime] = None) -> str:
    """Stored status, except a valid certificate past expires_at reads as expired"""
    status = certificate.status.value if isinstance(certificate.status, CertificateStatus) else certificate.status
    now = now or datetime.utcnow()
    if status == CertificateStatus.VALID.value and certificate.expires_at and certificate.expires_at < now:
        return CertificateStatus.EXPIRED.value
    return status


class CertificateService:
    """Service for certificate issuance and verification"""

    def issue(
        self,
        db: Session,
        participant_name: str,
        course_name: str,
        completion_date: date,
        provider_name: Optional[str] = None,
        employee_id: Optional[int] = None,
        training_request_id: Optional[int] = None,
        expires_at: Optional[datetime] = None
    ) -> Certificate:
        certificate = Certificate(
            certificate_number=generate_reference("CERT"),
            employee_id=employee_id,
            training_request_id=training_request_id,
            participant_name=participant_name,
            course_name=course_name,
            provider_name=provider_name,
            completion_date=completion_date,
            expires_at=expires_at,
            status=CertificateStatus.VALID,
            verification_token=generate_verification_token()
        )
        db.add(certificate)
        db.commit()
        db.refresh(certificate)
        logger.info(f"Issued certificate {certificate.certificate_number} to {participant_name}")
        return certificate

    def verification_url(self, certificate: Certificate) -> str:
        return f"{settings.CERTIFICATE_VERIFY_BASE_URL}?t={certificate.verification_token}"

    def revoke(self, db: Session, certificate: Certificate, revoked_by: Optional[int] = None) -> Certificate:
        certificate.status = CertificateStatus.REVOKED
        certificate.revoked_at = datetime.utcnow()
        db.add(AuditLog(
            user_id=revoked_by,
            action="revoked",
            entity_type="certificate",
            entity_id=certificate.id,
            description=f"Certificate {certificate.certificate_number} revoked",
        ))
        db.commit()
        db.refresh(certificate)
        return certificate

    def verify(self, db: Session, token: str, client_ip: str) -> Optional[Dict[str, Any]]:
        """
        Look up a certificate by verification token and log the check

        Returns:
            dict: Display fields with the effective status, or None if the
            token is unknown
        """
        logger.info(f"Verifying certificate with token: {mask_token(token)}")

        certificate = db.query(Certificate).filter(Certificate.verification_token == token).first()
        if not certificate:
            logger.info("Certificate not found")
            return None

        status = effective_status(certificate)

        db.add(AuditLog(
            user_id=None,
            action="verified",
            entity_type="certificate",
            entity_id=certificate.id,
            description=f"Certificate {certificate.certificate_number} verified as {status}",
            changes={
                "token": mask_token(token),
                "certificate_number": certificate.certificate_number,
                "ip": client_ip,
            },
            ip_address=client_ip,
        ))
        db.commit()

        return {
            "certificate_number": certificate.certificate_number,
            "status": status,
            "course_name": certificate.course_name,
            "completion_date": certificate.completion_date.isoformat(),
            "participant_name": certificate.participant_name,
            "provider_name": certificate.provider_name,
        }

    def preview(self) -> Dict[str, Any]:
        """Sample data for template previews"""
        return {
            "certificate_number": "CERT-PREVIEW-0001",
            "status": CertificateStatus.VALID.value,
            "course_name": "Sample Training Course",
            "completion_date": date.today().isoformat(),
            "participant_name": "John Doe",
            "provider_name": settings.CERTIFICATE_ISSUER_NAME,
        }

    # ============================================
    # HTML
    # ============================================

    def render_error_page(self, message: str) -> str:
        return f"""<!DOCTYPE html>
<html>
<head>
  <meta charset="UTF-8">
  <meta name="viewport" content="width=device-width, initial-scale=1.0">
  <title>Certificate Verification</title>
  <style>
    body {{ font-family: system-ui, sans-serif; background: #f5f5f5; min-height: 100vh; display: flex; align-items: center; justify-content: center; margin: 0; padding: 20px; }}
    .card {{ background: white; border-radius: 16px; box-shadow: 0 4px 20px rgba(0,0,0,0.1); padding: 40px; max-width: 400px; text-align: center; }}
    h1 {{ color: #ef4444; margin: 0 0 16px; font-size: 24px; }}
    p {{ color: #666; margin: 0; }}
  </style>
</head>
<body>
  <div class="card">
    <h1>Verification Failed</h1>
    <p>{escape(message)}</p>
  </div>
</body>
</html>"""

    def render_page(self, certificate: Dict[str, Any]) -> str:
        status = certificate.get("status") or CertificateStatus.VALID.value
        color = STATUS_COLORS.get(status, STATUS_COLORS["valid"])
        label = STATUS_LABELS.get(status, STATUS_LABELS["valid"])

        rows = [
            ("Certificate No.", certificate["certificate_number"]),
            ("Participant", certificate["participant_name"]),
            ("Course", certificate["course_name"]),
            ("Completion Date", certificate["completion_date"]),
            ("Provider", certificate.get("provider_name") or "-"),
        ]
        rows_html = "\n".join(
            f'      <div class="row"><span class="label">{escape(label_text)}</span>'
            f'<span class="value">{escape(str(value))}</span></div>'
            for label_text, value in rows
        )

        return f"""<!DOCTYPE html>
<html>
<head>
  <meta charset="UTF-8">
  <meta name="viewport" content="width=device-width, initial-scale=1.0">
  <title>Certificate Verification - {escape(certificate["certificate_number"])}</title>
  <style>
    body {{ font-family: system-ui, sans-serif; background: linear-gradient(135deg, #1a365d 0%, #2c5282 100%); min-height: 100vh; display: flex; align-items: center; justify-content: center; margin: 0; padding: 20px; }}
    .card {{ background: white; border-radius: 16px; box-shadow: 0 8px 32px rgba(0,0,0,0.2); padding: 40px; max-width: 450px; width: 100%; }}
    .header {{ text-align: center; margin-bottom: 30px; }}
    h1 {{ color: #1a365d; margin: 0; font-size: 20px; }}
    .status {{ display: inline-block; padding: 8px 20px; border-radius: 20px; background: {color}15; color: {color}; font-weight: 600; margin: 20px 0; font-size: 16px; }}
    .row {{ display: flex; justify-content: space-between; padding: 12px 0; border-bottom: 1px solid #f0f0f0; }}
    .label {{ color: #888; font-size: 13px; }}
    .value {{ color: #333; font-weight: 500; text-align: right; max-width: 60%; }}
    .footer {{ text-align: center; margin-top: 24px; color: #888; font-size: 12px; }}
  </style>
</head>
<body>
  <div class="card">
    <div class="header">
      <h1>Certificate Verification</h1>
      <div class="status" data-status="{status}">{label}</div>
    </div>
    <div class="details">
{rows_html}
    </div>
    <div class="footer">Verified by {escape(settings.CERTIFICATE_ISSUER_NAME)}</div>
  </div>
</body>
</html>"""


# Create singleton instance
certificate_service = CertificateService()
