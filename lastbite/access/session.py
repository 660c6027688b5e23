import logging
from dataclasses import dataclass
from typing import Any, Dict, Optional, Tuple

from starlette.concurrency import run_in_threadpool
from starlette.requests import HTTPConnection

from lastbite.config.settings import Settings
from lastbite.core.errors import AuthenticationAbsent
from lastbite.modules.auth.service import AuthService

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ResolvedSession:
    user: Dict[str, Any]
    access_token: str
    refresh_token: Optional[str] = None
    refreshed: bool = False  # tokens were rotated; new cookies must go out with the response

    @property
    def user_id(self) -> str:
        return self.user["id"]


@dataclass(frozen=True)
class SessionOutcome:
    """
    Result of resolving a request's credentials.

    `rejected` is only set when Supabase Auth refused every credential the
    request carried. An outage leaves it False: the request is still treated as
    anonymous, but its cookies may be good once the service is back.
    """
    session: Optional[ResolvedSession] = None
    rejected: bool = False


ANONYMOUS = SessionOutcome()


class SessionResolver:
    """
    Turns an inbound request into the authenticated user, or None.

    Never raises: a missing, malformed, expired or unverifiable session all
    read as anonymous, and the access policy redirects accordingly.
    """

    def __init__(self, auth_service: AuthService, settings: Settings):
        self.auth_service = auth_service
        self.settings = settings

    def read_tokens(self, conn: HTTPConnection) -> Tuple[Optional[str], Optional[str]]:
        access_token = conn.cookies.get(self.settings.access_token_cookie)
        if not access_token:
            scheme, _, credentials = (conn.headers.get("authorization") or "").partition(" ")
            if scheme.lower() == "bearer" and credentials.strip():
                access_token = credentials.strip()
        refresh_token = conn.cookies.get(self.settings.refresh_token_cookie)
        return access_token or None, refresh_token or None

    async def authenticate(self, conn: HTTPConnection) -> SessionOutcome:
        access_token, refresh_token = self.read_tokens(conn)
        if not access_token and not refresh_token:
            return ANONYMOUS

        unavailable = False
        if access_token:
            try:
                user = await run_in_threadpool(self.auth_service.validate_session, access_token)
                return SessionOutcome(
                    session=ResolvedSession(user=user, access_token=access_token, refresh_token=refresh_token)
                )
            except AuthenticationAbsent as e:
                logger.warning(f"Session rejected: {e.message}")
            except Exception as e:
                unavailable = True
                logger.warning(f"Session validation failed: {type(e).__name__}: {e}")

        if not refresh_token:
            return SessionOutcome(rejected=not unavailable)
        try:
            session = await run_in_threadpool(self.auth_service.refresh_session, refresh_token)
        except AuthenticationAbsent as e:
            logger.warning(f"Session refresh rejected: {e.message}")
            return SessionOutcome(rejected=not unavailable)
        except Exception as e:
            logger.warning(f"Session refresh failed: {type(e).__name__}: {e}")
            return ANONYMOUS
        return SessionOutcome(session=ResolvedSession(
            user=session.user,
            access_token=session.access_token,
            refresh_token=session.refresh_token,
            refreshed=True,
        ))

    async def resolve_session(self, conn: HTTPConnection) -> Optional[ResolvedSession]:
        return (await self.authenticate(conn)).session

    async def resolve(self, conn: HTTPConnection) -> Optional[str]:
        session = await self.resolve_session(conn)
        return session.user_id if session else None
