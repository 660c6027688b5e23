"""
Error taxonomy shared by services, dependencies and the access-control middleware.

Navigation requests never see AuthenticationAbsent or ProfileMissing: the
middleware turns those states into silent redirects. API endpoints raise them
and main.py renders every LastBiteError as {"detail": ...}.
"""
from typing import Dict, List, Optional


class LastBiteError(Exception):
    status_code = 500
    default_message = "Internal server error"

    def __init__(self, message: Optional[str] = None, errors: Optional[List[Dict[str, str]]] = None):
        self.message = message or self.default_message
        self.errors = errors or []
        super().__init__(self.message)

    def to_content(self) -> Dict:
        content = {"detail": self.message}
        if self.errors:
            content["errors"] = self.errors
        return content


class AuthenticationAbsent(LastBiteError):
    """No session, or the session was rejected by Supabase Auth"""
    status_code = 401
    default_message = "Not authenticated"


class AccessDenied(LastBiteError):
    status_code = 403
    default_message = "Access denied"


class ProfileMissing(LastBiteError):
    """Authenticated user has not selected a role yet"""
    status_code = 404
    default_message = "Profile not found"


class ProfileConflict(LastBiteError):
    status_code = 409
    default_message = "Profile already exists"


class ValidationFailed(LastBiteError):
    """Form input rejected; rendered inline so the client can retry"""
    status_code = 422
    default_message = "Validation failed"


class BackendUnavailable(LastBiteError):
    """Supabase transport or API failure"""
    status_code = 503
    default_message = "Backend service unavailable"
