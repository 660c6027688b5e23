from fastapi import APIRouter, Depends, Query, Request, Response
from fastapi.responses import RedirectResponse
from typing import Optional

from lastbite.access.policy import SELLER_DASHBOARD_PATH
from lastbite.core.context import BackendContext
from lastbite.core.dependencies import get_backend, get_current_profile, require_role
from lastbite.modules.profiles.schemas import Profile, Role, VerificationStatus

router = APIRouter(prefix="/api/profile", tags=["profiles"])
dashboard_router = APIRouter(tags=["profiles"])

MAX_WAIT_SECONDS = 60.0


@router.get("", response_model=Profile)
def get_my_profile(profile: Profile = Depends(get_current_profile)):
    """Current user's profile (404 before role selection)"""
    return profile


@router.get("/verification/wait", response_model=VerificationStatus)
async def wait_for_verification(
    request: Request,
    timeout: Optional[float] = Query(None, gt=0, le=MAX_WAIT_SECONDS),
    profile: Profile = Depends(require_role(Role.SELLER)),
    backend: BackendContext = Depends(get_backend)
):
    """
    Long-poll for seller approval.

    Holds the request until the profile is verified or the timeout passes; the
    client re-issues the call to keep waiting and simply drops it when the user
    navigates away.
    """
    if profile.is_verified:
        return VerificationStatus(is_verified=True, redirect_to=SELLER_DASHBOARD_PATH)

    wait = timeout or min(backend.settings.verification_wait_seconds, MAX_WAIT_SECONDS)
    latest = await backend.events.wait_for_verification(
        profile.user_id,
        backend.profiles.get_profile,
        timeout=wait,
        is_cancelled=request.is_disconnected,
        recheck_interval=backend.settings.verification_recheck_seconds,
    )
    if latest is None:
        # client went away (or the profile vanished); nobody is listening for a body
        return Response(status_code=204)
    if latest.is_verified:
        return VerificationStatus(is_verified=True, redirect_to=SELLER_DASHBOARD_PATH)
    return VerificationStatus(is_verified=False)


@dashboard_router.get("/dashboard")
def dashboard(profile: Profile = Depends(get_current_profile)):
    """Role-neutral entry point: forwards to the buyer or seller dashboard"""
    return RedirectResponse(profile.dashboard_path, status_code=307)
