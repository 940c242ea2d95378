"""
Domain Exceptions
Raised by services and mapped to HTTP responses in main.py
"""

from fastapi import status


class TrainingHubError(Exception):
    """Base class for expected business-rule failures"""
    status_code = status.HTTP_400_BAD_REQUEST

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class NotFoundError(TrainingHubError):
    status_code = status.HTTP_404_NOT_FOUND


class PermissionDeniedError(TrainingHubError):
    status_code = status.HTTP_403_FORBIDDEN


class InvalidDecisionError(TrainingHubError):
    """Decision payload is inconsistent with the approval being decided"""
    status_code = status.HTTP_400_BAD_REQUEST


class ApprovalConflictError(TrainingHubError):
    """The approval or request was already decided by someone else"""
    status_code = status.HTTP_409_CONFLICT


class PolicyConfigurationError(TrainingHubError):
    """Stored per diem policy values fail validation"""
    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
