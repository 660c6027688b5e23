import logging

from starlette.concurrency import run_in_threadpool
from starlette.requests import Request
from starlette.responses import JSONResponse, RedirectResponse, Response

from lastbite.access.cookies import clear_session_cookies, set_cookie_headers, set_session_cookies
from lastbite.access.policy import RedirectTo, decide, is_protected
from lastbite.core.errors import BackendUnavailable

logger = logging.getLogger(__name__)


class AccessControlMiddleware:
    """
    Guards every navigation under /auth, /buyer, /seller and /dashboard.

    Session -> profile -> access policy; the request either continues to its
    route with request.state.user / request.state.profile populated, or is
    answered here with a 307 redirect. Other paths pass straight through.
    """

    def __init__(self, app):
        self.app = app

    async def __call__(self, scope, receive, send):
        if scope["type"] != "http" or not is_protected(scope["path"]):
            await self.app(scope, receive, send)
            return

        request = Request(scope, receive)
        backend = request.app.state.backend
        settings = backend.settings
        path = request.url.path

        outcome = await backend.session_resolver.authenticate(request)
        session = outcome.session
        profile = None
        if session is not None:
            try:
                profile = await run_in_threadpool(backend.profiles.get_profile, session.user_id)
            except BackendUnavailable as e:
                logger.error(f"Profile lookup failed while guarding {path}: {e.message}")
                response = JSONResponse(status_code=e.status_code, content=e.to_content())
                await response(scope, receive, send)
                return

        request.state.session = session
        request.state.user = session.user if session else None
        request.state.profile = profile

        # Cookie updates ride along with whatever response goes out
        cookie_carrier = Response()
        if session is not None and session.refreshed:
            set_session_cookies(cookie_carrier, settings, session.access_token, session.refresh_token)
        elif outcome.rejected:
            # only a refusal from Supabase Auth ends the session; an outage keeps the cookies
            clear_session_cookies(cookie_carrier, settings)
        cookie_headers = set_cookie_headers(cookie_carrier)

        decision = decide(path, session.user_id if session else None, profile)
        if isinstance(decision, RedirectTo):
            logger.debug(f"Redirecting {path} -> {decision.location}")
            response = RedirectResponse(decision.location, status_code=307)
            response.raw_headers.extend(cookie_headers)
            await response(scope, receive, send)
            return

        if not cookie_headers:
            await self.app(scope, receive, send)
            return

        async def send_with_cookies(message):
            if message["type"] == "http.response.start":
                message.setdefault("headers", [])
                message["headers"] = list(message["headers"]) + cookie_headers
            await send(message)

        await self.app(scope, receive, send_with_cookies)
