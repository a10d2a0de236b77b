"""
API Errors
Maps travel desk exceptions to HTTP responses
"""
from fastapi import HTTPException, status

from travel_desk.core.exceptions import (
    ConcurrentModification,
    InvalidTransition,
    PermissionDenied,
    PersistenceError,
    RequestNotFound,
    TravelDeskError,
    ValidationError,
)


# Checked in order; PermissionDenied must come before InvalidTransition
_STATUS_CODES = (
    (ValidationError, status.HTTP_400_BAD_REQUEST),
    (PermissionDenied, status.HTTP_403_FORBIDDEN),
    (InvalidTransition, status.HTTP_409_CONFLICT),
    (RequestNotFound, status.HTTP_404_NOT_FOUND),
    (ConcurrentModification, status.HTTP_409_CONFLICT),
    (PersistenceError, status.HTTP_503_SERVICE_UNAVAILABLE),
)


def to_http_exception(error: TravelDeskError) -> HTTPException:
    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
    for error_type, code in _STATUS_CODES:
        if isinstance(error, error_type):
            status_code = code
            break

    detail = {"message": getattr(error, "message", str(error)), "error": type(error).__name__}
    if isinstance(error, ValidationError) and error.field:
        detail["field"] = error.field
    if isinstance(error, PersistenceError) and error.request_id:
        detail["requestId"] = error.request_id
    return HTTPException(status_code=status_code, detail=detail)
