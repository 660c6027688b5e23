"""
Route access policy.

A pure decision table over (path, user, profile). The access-control middleware
resolves the session and loads the profile, then asks decide() whether the
navigation proceeds or is redirected. Nothing here performs I/O.

Precedence (first match wins):

1. anonymous, outside /auth            -> /auth/login
2. anonymous, inside /auth             -> allow
3. signed in, no profile               -> /auth/role (unless already there)
4. signed in, inside /auth (not role)  -> /{role}/dashboard
5. unverified seller on a seller page  -> /seller/verification or /seller/pending
6. buyer on a seller page              -> /buyer/dashboard
7. seller on a buyer page              -> /seller/dashboard
8. anything else                       -> allow
"""
from dataclasses import dataclass
from typing import Optional, Union

from lastbite.modules.profiles.schemas import Profile, Role, dashboard_path

AUTH_PREFIX = "/auth"
BUYER_PREFIX = "/buyer"
SELLER_PREFIX = "/seller"

LOGIN_PATH = "/auth/login"
ROLE_SELECTION_PATH = "/auth/role"
VERIFICATION_PATH = "/seller/verification"
PENDING_PATH = "/seller/pending"
BUYER_DASHBOARD_PATH = dashboard_path(Role.BUYER)
SELLER_DASHBOARD_PATH = dashboard_path(Role.SELLER)

# Paths the middleware evaluates; everything else bypasses the policy
PROTECTED_PREFIXES = (AUTH_PREFIX, BUYER_PREFIX, SELLER_PREFIX)
PROTECTED_PATHS = ("/dashboard",)


@dataclass(frozen=True)
class Allow:
    pass


@dataclass(frozen=True)
class RedirectTo:
    location: str


Decision = Union[Allow, RedirectTo]

ALLOW = Allow()


@dataclass(frozen=True)
class PathClass:
    is_auth: bool
    is_buyer: bool
    is_seller: bool
    is_role_selection: bool
    is_verification: bool
    is_pending: bool

    @classmethod
    def of(cls, path: str) -> "PathClass":
        return cls(
            is_auth=path.startswith(AUTH_PREFIX),
            is_buyer=path.startswith(BUYER_PREFIX),
            is_seller=path.startswith(SELLER_PREFIX),
            is_role_selection=path == ROLE_SELECTION_PATH,
            is_verification=path == VERIFICATION_PATH,
            is_pending=path == PENDING_PATH,
        )


def is_protected(path: str) -> bool:
    """True when the path falls under the middleware matcher (/auth/*, /buyer/*, /seller/*, /dashboard)."""
    if path in PROTECTED_PATHS:
        return True
    return any(path == prefix or path.startswith(prefix + "/") for prefix in PROTECTED_PREFIXES)


def decide(path: str, user: Optional[str], profile: Optional[Profile]) -> Decision:
    section = PathClass.of(path)

    if not user:
        if not section.is_auth:
            return RedirectTo(LOGIN_PATH)
        return ALLOW

    # Rules 3 and 4 agree for a user without a profile: role selection is the only way forward
    if profile is None:
        if section.is_role_selection:
            return ALLOW
        return RedirectTo(ROLE_SELECTION_PATH)

    if section.is_auth and not section.is_role_selection:
        return RedirectTo(profile.dashboard_path)

    if (
        profile.role == Role.SELLER
        and section.is_seller
        and not profile.is_verified
        and not section.is_verification
        and not section.is_pending
    ):
        if not profile.business_name:
            return RedirectTo(VERIFICATION_PATH)
        return RedirectTo(PENDING_PATH)

    if profile.role == Role.BUYER and section.is_seller:
        return RedirectTo(BUYER_DASHBOARD_PATH)
    if profile.role == Role.SELLER and section.is_buyer:
        return RedirectTo(SELLER_DASHBOARD_PATH)

    return ALLOW
