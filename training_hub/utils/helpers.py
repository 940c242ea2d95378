"""
Helper Utilities
Common helper functions
"""

from datetime import datetime, date
from enum import Enum
import secrets


def generate_reference(prefix: str) -> str:
    """
    Generate a human readable reference number, e.g. TR-20260119-4F2A9C

    Args:
        prefix: Entity prefix (TR for training requests, CERT for certificates)
    """
    return f"{prefix}-{datetime.utcnow().strftime('%Y%m%d')}-{secrets.token_hex(3).upper()}"


def generate_verification_token() -> str:
    """URL-safe token printed on certificates as a QR/verification link"""
    return secrets.token_urlsafe(24)


def mask_token(token: str, visible: int = 8) -> str:
    """Keep the first characters of a secret for logs"""
    return token[:visible] + "..."


def get_client_ip(request) -> str:
    """
    Get client IP address from request

    Prefers the first X-Forwarded-For hop, since the service normally runs
    behind a proxy.

    Args:
        request: FastAPI request object

    Returns:
        str: Client IP address
    """
    forwarded = request.headers.get("X-Forwarded-For")
    if forwarded:
        return forwarded.split(",")[0].strip()

    if request.client:
        return request.client.host

    return "unknown"


def model_to_dict(instance) -> dict:
    """
    Serialize a SQLAlchemy model's columns into JSON-friendly values

    Dates become ISO strings and enums their value.
    """
    data = {}
    for column in instance.__table__.columns:
        value = getattr(instance, column.key)
        if isinstance(value, (datetime, date)):
            value = value.isoformat()
        elif isinstance(value, Enum):
            value = value.value
        data[column.key] = value
    return data
