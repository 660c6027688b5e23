from fastapi import APIRouter, Depends

from lastbite.core.dependencies import require_role
from lastbite.modules.profiles.schemas import DashboardView, Profile, Role

router = APIRouter(prefix="/buyer", tags=["buyer"])


@router.get("/dashboard", response_model=DashboardView)
def buyer_dashboard(profile: Profile = Depends(require_role(Role.BUYER))):
    return DashboardView(role=profile.role, profile=profile)
