from fastapi import APIRouter, Depends
from fastapi.responses import RedirectResponse

from lastbite.access.policy import PENDING_PATH, SELLER_DASHBOARD_PATH
from lastbite.core.dependencies import get_profile_service, require_role
from lastbite.core.errors import ProfileConflict
from lastbite.modules.profiles.schemas import (
    DashboardView, NavigationResult, Profile, ProfileUpdate, Role, VerificationRequest,
)
from lastbite.modules.profiles.service import ProfileService

router = APIRouter(prefix="/seller", tags=["seller"])

require_seller = require_role(Role.SELLER)


@router.get("/dashboard", response_model=DashboardView)
def seller_dashboard(profile: Profile = Depends(require_role(Role.SELLER, verified=True))):
    return DashboardView(role=profile.role, profile=profile)


@router.get("/verification", response_model=Profile)
def verification_form(profile: Profile = Depends(require_seller)):
    """Current business details, to prefill the verification form"""
    return profile


@router.post("/verification", response_model=NavigationResult)
def submit_verification(
    verification: VerificationRequest,
    profile: Profile = Depends(require_seller),
    profiles: ProfileService = Depends(get_profile_service)
):
    """Attach business details; an admin reviews them before seller pages open up"""
    if profile.is_verified:
        raise ProfileConflict("Seller is already verified")
    updated = profiles.update_profile(
        profile.user_id,
        ProfileUpdate(**verification.model_dump(), is_verified=False),
    )
    return NavigationResult(profile=updated, redirect_to=PENDING_PATH)


@router.get("/pending", response_model=Profile)
def pending_review(profile: Profile = Depends(require_seller)):
    """Submitted details while review is in progress; verified sellers move on to the dashboard"""
    if profile.is_verified:
        return RedirectResponse(SELLER_DASHBOARD_PATH, status_code=307)
    return profile
