"""
Certificate Routes
Public verification page plus L&D issue/revoke endpoints
"""

from fastapi import APIRouter, Depends, HTTPException, Request, status
from fastapi.responses import HTMLResponse
from sqlalchemy.orm import Session
from typing import Optional

from training_hub.config.database import get_db
from training_hub.models.certificate import Certificate
from training_hub.models.user import AppRole
from training_hub.schemas.certificate import CertificateCreate, CertificateResponse
from training_hub.services.auth_service import auth_service, AuthContext
from training_hub.services.certificate_service import certificate_service, PREVIEW_TOKEN
from training_hub.utils.helpers import get_client_ip
from training_hub.utils.logger import setup_logger

logger = setup_logger()
router = APIRouter()

require_l_and_d = auth_service.require_role(AppRole.L_AND_D.value)


@router.get("/verify-certificate", response_class=HTMLResponse)
async def verify_certificate(
    request: Request,
    t: Optional[str] = None,
    db: Session = Depends(get_db)
):
    """
    Public certificate verification page

    Anyone holding the link can check a certificate; no login required.
    """
    if not t:
        return HTMLResponse(certificate_service.render_error_page("Invalid verification link"))

    if t == PREVIEW_TOKEN:
        return HTMLResponse(certificate_service.render_page(certificate_service.preview()))

    try:
        certificate = certificate_service.verify(db, t, get_client_ip(request))
        if certificate is None:
            return HTMLResponse(certificate_service.render_error_page("Certificate not found"))
        return HTMLResponse(certificate_service.render_page(certificate))
    except Exception:
        db.rollback()
        logger.exception("Certificate verification error")
        return HTMLResponse(certificate_service.render_error_page("Verification failed"))


def _to_response(certificate: Certificate) -> dict:
    data = CertificateResponse.model_validate(certificate).model_dump(mode="json")
    data["verification_url"] = certificate_service.verification_url(certificate)
    return data


@router.post("/api/certificates", status_code=status.HTTP_201_CREATED)
async def issue_certificate(
    payload: CertificateCreate,
    db: Session = Depends(get_db),
    ctx: AuthContext = Depends(require_l_and_d)
):
    certificate = certificate_service.issue(db, **payload.model_dump())
    logger.info(f"User {ctx.user_id} issued certificate {certificate.certificate_number}")
    return {"success": True, "certificate": _to_response(certificate)}


@router.post("/api/certificates/{certificate_id}/revoke")
async def revoke_certificate(
    certificate_id: int,
    db: Session = Depends(get_db),
    ctx: AuthContext = Depends(require_l_and_d)
):
    certificate = db.query(Certificate).filter(Certificate.id == certificate_id).first()
    if not certificate:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Certificate not found")

    certificate = certificate_service.revoke(db, certificate, revoked_by=ctx.user_id)
    return {"success": True, "certificate": _to_response(certificate)}
