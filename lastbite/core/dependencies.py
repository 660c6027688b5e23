"""
Core dependencies for route protection
"""

from fastapi import Depends, Request
from lastbite.config.settings import Settings
from lastbite.core.context import BackendContext
from lastbite.core.errors import AccessDenied, AuthenticationAbsent, ProfileMissing
from lastbite.modules.auth.service import AuthService
from lastbite.modules.profiles.schemas import Profile, Role
from lastbite.modules.profiles.service import ProfileService
from typing import Dict, Any
import logging

logger = logging.getLogger(__name__)

_UNSET = object()


def get_backend(request: Request) -> BackendContext:
    return request.app.state.backend


def get_settings(backend: BackendContext = Depends(get_backend)) -> Settings:
    return backend.settings


def get_auth_service(backend: BackendContext = Depends(get_backend)) -> AuthService:
    return backend.auth


def get_profile_service(backend: BackendContext = Depends(get_backend)) -> ProfileService:
    return backend.profiles


async def get_current_user(
    request: Request,
    backend: BackendContext = Depends(get_backend)
) -> Dict[str, Any]:
    """User resolved by the access-control middleware, or resolved here for unguarded paths"""
    user = getattr(request.state, "user", _UNSET)
    if user is _UNSET:
        session = await backend.session_resolver.resolve_session(request)
        user = session.user if session else None
        request.state.user = user
    if not user:
        raise AuthenticationAbsent()
    return user


def get_current_profile(
    request: Request,
    user_data: Dict = Depends(get_current_user),
    profiles: ProfileService = Depends(get_profile_service)
) -> Profile:
    """Current user's profile; raises ProfileMissing before role selection"""
    profile = getattr(request.state, "profile", None)
    if profile is None:
        profile = profiles.get_profile(user_data["id"])
        request.state.profile = profile
    if profile is None:
        raise ProfileMissing()
    return profile


def require_role(role: Role, verified: bool = False):
    """Factory function to create role check dependency"""
    def check_role(profile: Profile = Depends(get_current_profile)) -> Profile:
        if profile.role != role:
            raise AccessDenied(f"This page is only available to {role.value}s")
        if verified and not profile.is_verified:
            raise AccessDenied("Seller verification is still pending")
        return profile
    return check_role


def is_super_user(user_data: dict) -> bool:
    """Check if user is a super user from app_metadata"""
    # app_metadata is set server-side and cannot be modified by users
    app_metadata = user_data.get("app_metadata") or {}
    return app_metadata.get("type") == "super_user"


def require_super_user(user_data: Dict = Depends(get_current_user)) -> Dict[str, Any]:
    if not is_super_user(user_data):
        logger.warning(f"User {user_data.get('id')} attempted an admin action")
        raise AccessDenied("Only super users can perform this action")
    return user_data
