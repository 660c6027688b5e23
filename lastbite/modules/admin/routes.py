from fastapi import APIRouter, Depends
from pydantic import BaseModel
from typing import Dict

from lastbite.core.dependencies import get_profile_service, require_super_user
from lastbite.modules.profiles.schemas import Profile
from lastbite.modules.profiles.service import ProfileService

router = APIRouter(prefix="/admin", tags=["admin"])


class SellerVerificationUpdate(BaseModel):
    is_verified: bool = True


@router.post("/sellers/{user_id}/verify", response_model=Profile)
def verify_seller(
    user_id: str,
    update: SellerVerificationUpdate,
    current_user: Dict = Depends(require_super_user),
    profiles: ProfileService = Depends(get_profile_service)
):
    """Approve (or revoke) a seller; wakes any pending-review long-polls for that seller"""
    return profiles.set_verified(user_id, update.is_verified)
