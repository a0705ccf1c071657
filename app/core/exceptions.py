from fastapi import status


class ServiceError(Exception):
    """Base exception for service layer errors."""

    status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR

    def __init__(self, message: str, status_code: int = None) -> None:
        super().__init__(message)
        self.message = message
        if status_code is not None:
            self.status_code = status_code


class ValidationError(ServiceError):
    """Missing or malformed field, detected before any write."""

    status_code = status.HTTP_400_BAD_REQUEST


class NotFound(ServiceError):
    """Row does not exist or lies outside the caller's scope."""

    status_code = status.HTTP_404_NOT_FOUND


class Unauthorized(ServiceError):
    """Caller's role does not permit the operation."""

    status_code = status.HTTP_403_FORBIDDEN


class DuplicateKey(ServiceError):
    """Unique key (code, employee_id, roll_number+course, email) already taken by an active row."""

    status_code = status.HTTP_409_CONFLICT


class AlreadyExists(DuplicateKey):
    """Provisioning target already has an active role record."""


class UpstreamFailure(ServiceError):
    """Database or file store rejected the call for a reason outside the above."""

    status_code = status.HTTP_502_BAD_GATEWAY
