"""
Error taxonomy shared by services and routers.

Services raise these; the handlers registered in ``clientdesk.main`` turn them
into ``{"success": false, "error": ...}`` responses with the matching status.
"""
from fastapi import status


class ClientDeskError(Exception):
    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR

    def __init__(self, message: str, status_code: int = None):
        super().__init__(message)
        self.message = message
        if status_code is not None:
            self.status_code = status_code


class ValidationFailed(ClientDeskError):
    status_code = status.HTTP_400_BAD_REQUEST


class AuthenticationRequired(ClientDeskError):
    status_code = status.HTTP_401_UNAUTHORIZED


class PermissionDenied(ClientDeskError):
    status_code = status.HTTP_403_FORBIDDEN


class NotFound(ClientDeskError):
    status_code = status.HTTP_404_NOT_FOUND


class UpstreamError(ClientDeskError):
    """A data store, auth, mail or renderer call failed."""
    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
