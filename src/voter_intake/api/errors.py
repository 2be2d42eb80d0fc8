"""Translate domain exceptions into HTTP errors for the routers."""

from fastapi import HTTPException, status

from voter_intake.lib.intake import DuplicateSubmissionError, FormatError
from voter_intake.lib.workflow import AuthorizationError, TransitionError

# Exception types every router converts with to_http_exception
DOMAIN_ERRORS = (LookupError, PermissionError, ValueError)


def to_http_exception(exc: Exception) -> HTTPException:
    """Map a service-layer exception to the matching HTTPException.

    Not found → 404, authorization → 403, state or duplicate conflicts → 409,
    malformed uploads and other value errors → 400.
    """
    if isinstance(exc, LookupError):
        return HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc))
    if isinstance(exc, AuthorizationError | PermissionError):
        return HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail=str(exc))
    if isinstance(exc, TransitionError | DuplicateSubmissionError):
        return HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(exc))
    if isinstance(exc, FormatError):
        return HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=exc.message)
    return HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc))
