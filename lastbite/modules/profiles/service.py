import logging
from datetime import datetime, timezone
from typing import Optional, TYPE_CHECKING

from supabase import Client

from lastbite.core.errors import BackendUnavailable, ProfileConflict, ProfileMissing, ValidationFailed
from lastbite.modules.profiles.schemas import Profile, ProfileCreate, ProfileUpdate, Role

if TYPE_CHECKING:
    from lastbite.access.events import ProfileEvents

logger = logging.getLogger(__name__)

PROFILES_TABLE = "profiles"
UNIQUE_VIOLATION = "23505"


def _is_duplicate(error: Exception) -> bool:
    if getattr(error, "code", None) == UNIQUE_VIOLATION:
        return True
    error_message = str(error).lower()
    return "duplicate" in error_message or "already exists" in error_message


class ProfileService:
    def __init__(self, supabase: Client, events: Optional["ProfileEvents"] = None):
        self.supabase = supabase
        self.events = events

    def _publish(self, profile: Profile) -> None:
        if self.events is not None:
            self.events.publish(profile)

    def get_profile(self, user_id: str) -> Optional[Profile]:
        """Get a user's profile, or None when they have not selected a role yet"""
        try:
            result = self.supabase.table(PROFILES_TABLE)\
                .select("*")\
                .eq("user_id", user_id)\
                .limit(1)\
                .execute()
        except Exception as e:
            logger.error(f"Error fetching profile for user {user_id}: {e}")
            raise BackendUnavailable("Could not load profile") from e

        if not result.data:
            return None
        return Profile(**result.data[0])

    def create_profile(self, profile_data: ProfileCreate) -> Profile:
        """Create the user's one and only profile"""
        try:
            result = self.supabase.table(PROFILES_TABLE).insert({
                "user_id": profile_data.user_id,
                "role": profile_data.role.value,
                "is_verified": profile_data.is_verified,
            }).execute()
        except Exception as e:
            if _is_duplicate(e):
                raise ProfileConflict("A role has already been selected for this account")
            logger.error(f"Error creating profile for user {profile_data.user_id}: {e}")
            raise BackendUnavailable("Could not create profile") from e

        if not result.data:
            raise BackendUnavailable("Failed to create profile")

        profile = Profile(**result.data[0])
        logger.info(f"Created {profile.role.value} profile for user {profile.user_id}")
        self._publish(profile)
        return profile

    def update_profile(self, user_id: str, profile_data: ProfileUpdate) -> Profile:
        """Update descriptive fields and/or the verification flag"""
        update_data = profile_data.model_dump(exclude_none=True)
        update_data["updated_at"] = datetime.now(timezone.utc).isoformat()
        try:
            result = self.supabase.table(PROFILES_TABLE)\
                .update(update_data)\
                .eq("user_id", user_id)\
                .execute()
        except Exception as e:
            logger.error(f"Error updating profile for user {user_id}: {e}")
            raise BackendUnavailable("Could not update profile") from e

        if not result.data:
            raise ProfileMissing()

        profile = Profile(**result.data[0])
        self._publish(profile)
        return profile

    def set_verified(self, user_id: str, is_verified: bool = True) -> Profile:
        """Admin approval (or revocation) of a seller"""
        profile = self.get_profile(user_id)
        if profile is None:
            raise ProfileMissing()
        if profile.role != Role.SELLER:
            raise ValidationFailed("Only seller profiles can be verified")
        updated = self.update_profile(user_id, ProfileUpdate(is_verified=is_verified))
        logger.info(f"Seller {user_id} verification set to {is_verified}")
        return updated
