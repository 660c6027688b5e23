import logging

from fastapi import APIRouter, Depends, Request, Response
from fastapi.responses import RedirectResponse
from typing import Dict, Optional

from lastbite.access.cookies import (
    clear_code_verifier_cookie,
    clear_session_cookies,
    set_code_verifier_cookie,
    set_session_cookies,
)
from lastbite.access.policy import LOGIN_PATH, ROLE_SELECTION_PATH, VERIFICATION_PATH
from lastbite.config.settings import Settings, settings as app_settings
from lastbite.core.dependencies import (
    get_auth_service,
    get_current_user,
    get_profile_service,
    get_settings,
)
from lastbite.core.errors import LastBiteError
from lastbite.core.rate_limit import limiter
from lastbite.modules.auth.schemas import (
    AuthSession, LoginRequest, LoginResponse, OtpRequest, OtpSentResponse,
    OtpVerifyRequest, RegisterRequest, RegisterResponse,
)
from lastbite.modules.auth.service import AuthService
from lastbite.modules.profiles.schemas import (
    Profile, ProfileCreate, Role, RoleSelectionRequest, RoleSelectionResponse,
    RoleSelectionView, dashboard_path,
)
from lastbite.modules.profiles.service import ProfileService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/auth", tags=["auth"])
session_router = APIRouter(prefix="/api/session", tags=["auth"])


def _signed_in(
    response: Response,
    session: AuthSession,
    profiles: ProfileService,
    settings: Settings
) -> LoginResponse:
    set_session_cookies(response, settings, session.access_token, session.refresh_token)
    profile = profiles.get_profile(session.user_id)
    return LoginResponse(
        user_id=session.user_id,
        email=session.user.get("email"),
        profile=profile,
        redirect_to=profile.dashboard_path if profile else ROLE_SELECTION_PATH,
    )


def _redirect(location: str) -> RedirectResponse:
    return RedirectResponse(location, status_code=307)


def landing_path(user: Dict, profiles: ProfileService) -> str:
    """Where a freshly signed-in user goes: their dashboard, creating the profile from sign-up metadata if needed"""
    try:
        existing = profiles.get_profile(user["id"])
    except LastBiteError as e:
        logger.warning(f"Profile lookup after sign in failed: {e.message}")
        return ROLE_SELECTION_PATH
    if existing is not None:
        return existing.dashboard_path

    role = (user.get("user_metadata") or {}).get("role")
    if role not in (Role.BUYER.value, Role.SELLER.value):
        return ROLE_SELECTION_PATH
    try:
        # user_metadata is client-controlled, so verification is derived from the role rather than trusted
        profile = profiles.create_profile(
            ProfileCreate(user_id=user["id"], role=role, is_verified=role == Role.BUYER.value)
        )
    except LastBiteError as e:
        logger.warning(f"Creating profile from sign-up metadata failed: {e.message}")
        return ROLE_SELECTION_PATH
    return profile.dashboard_path


@router.post("/register", response_model=RegisterResponse, status_code=201)
@limiter.limit(app_settings.auth_rate_limit)
def register(
    request: Request,
    response: Response,
    register_data: RegisterRequest,
    service: AuthService = Depends(get_auth_service),
    settings: Settings = Depends(get_settings)
):
    """Register a new user; the confirmation email links back to /auth/callback"""
    result, code_verifier = service.register(register_data)
    set_code_verifier_cookie(response, settings, code_verifier)
    return result


@router.post("/login", response_model=LoginResponse)
@limiter.limit(app_settings.auth_rate_limit)
def login(
    request: Request,
    response: Response,
    login_data: LoginRequest,
    service: AuthService = Depends(get_auth_service),
    profiles: ProfileService = Depends(get_profile_service),
    settings: Settings = Depends(get_settings)
):
    """Email/password login; sets session cookies"""
    session = service.login(login_data)
    return _signed_in(response, session, profiles, settings)


@router.post("/otp", response_model=OtpSentResponse, status_code=202)
@limiter.limit(app_settings.auth_rate_limit)
def send_otp(
    request: Request,
    otp_data: OtpRequest,
    service: AuthService = Depends(get_auth_service)
):
    """Text a one-time code to the phone number"""
    service.send_otp(otp_data.phone)
    return OtpSentResponse(phone=otp_data.phone)


@router.post("/otp/verify", response_model=LoginResponse)
@limiter.limit(app_settings.auth_rate_limit)
def verify_otp(
    request: Request,
    response: Response,
    otp_data: OtpVerifyRequest,
    service: AuthService = Depends(get_auth_service),
    profiles: ProfileService = Depends(get_profile_service),
    settings: Settings = Depends(get_settings)
):
    """Exchange phone + code for a session"""
    session = service.verify_otp(otp_data.phone, otp_data.token)
    return _signed_in(response, session, profiles, settings)


@router.get("/google")
def google_sign_in(
    service: AuthService = Depends(get_auth_service),
    settings: Settings = Depends(get_settings)
):
    """Send the browser to Google; it comes back to /auth/callback"""
    url, code_verifier = service.start_oauth("google")
    response = _redirect(url)
    set_code_verifier_cookie(response, settings, code_verifier)
    return response


@router.get("/callback")
def auth_callback(
    request: Request,
    code: Optional[str] = None,
    service: AuthService = Depends(get_auth_service),
    profiles: ProfileService = Depends(get_profile_service),
    settings: Settings = Depends(get_settings)
):
    """Finish OAuth or email confirmation and route the user to their landing page"""
    if not code:
        return _redirect(LOGIN_PATH)

    try:
        session = service.exchange_code(code, request.cookies.get(settings.code_verifier_cookie))
    except LastBiteError as e:
        logger.warning(f"Auth callback failed: {e.message}")
        response = _redirect(LOGIN_PATH)
        clear_code_verifier_cookie(response, settings)
        return response

    response = _redirect(landing_path(session.user, profiles))
    set_session_cookies(response, settings, session.access_token, session.refresh_token)
    clear_code_verifier_cookie(response, settings)
    return response


@router.get("/role", response_model=RoleSelectionView)
def role_selection(request: Request):
    """Role selection page; anonymous visitors are sent to login"""
    if not getattr(request.state, "user", None):
        return _redirect(LOGIN_PATH)
    return RoleSelectionView(profile=getattr(request.state, "profile", None))


@router.post("/role", response_model=RoleSelectionResponse, status_code=201)
def select_role(
    selection: RoleSelectionRequest,
    user_data: Dict = Depends(get_current_user),
    profiles: ProfileService = Depends(get_profile_service)
):
    """Create the user's profile; buyers are verified immediately, sellers continue to verification"""
    profile: Profile = profiles.create_profile(ProfileCreate(
        user_id=user_data["id"],
        role=selection.role,
        is_verified=selection.role == Role.BUYER,
    ))
    redirect_to = dashboard_path(Role.BUYER) if profile.role == Role.BUYER else VERIFICATION_PATH
    return RoleSelectionResponse(profile=profile, redirect_to=redirect_to)


@session_router.post("/logout")
def logout(
    request: Request,
    response: Response,
    service: AuthService = Depends(get_auth_service),
    settings: Settings = Depends(get_settings)
):
    """Sign out and clear session cookies"""
    access_token = request.cookies.get(settings.access_token_cookie)
    if access_token:
        service.logout(access_token)
    clear_session_cookies(response, settings)
    return {"message": "Logged out successfully", "redirect_to": LOGIN_PATH}
