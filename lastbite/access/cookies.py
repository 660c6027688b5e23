from typing import List, Optional, Tuple

from starlette.responses import Response

from lastbite.config.settings import Settings

# PKCE verifier only has to survive the round trip to the provider
CODE_VERIFIER_MAX_AGE = 600


def _set(response: Response, settings: Settings, key: str, value: str, max_age: int) -> None:
    response.set_cookie(
        key,
        value,
        max_age=max_age,
        httponly=True,
        secure=settings.use_secure_cookies,
        samesite="lax",
        path="/",
    )


def set_session_cookies(
    response: Response, settings: Settings, access_token: str, refresh_token: Optional[str]
) -> None:
    _set(response, settings, settings.access_token_cookie, access_token, settings.session_max_age)
    if refresh_token:
        _set(response, settings, settings.refresh_token_cookie, refresh_token, settings.session_max_age)


def clear_session_cookies(response: Response, settings: Settings) -> None:
    response.delete_cookie(settings.access_token_cookie, path="/")
    response.delete_cookie(settings.refresh_token_cookie, path="/")


def set_code_verifier_cookie(response: Response, settings: Settings, code_verifier: Optional[str]) -> None:
    if code_verifier:
        _set(response, settings, settings.code_verifier_cookie, code_verifier, CODE_VERIFIER_MAX_AGE)


def clear_code_verifier_cookie(response: Response, settings: Settings) -> None:
    response.delete_cookie(settings.code_verifier_cookie, path="/")


def set_cookie_headers(response: Response) -> List[Tuple[bytes, bytes]]:
    """Raw Set-Cookie headers of a response, for replay onto an ASGI message"""
    return [(name, value) for name, value in response.raw_headers if name == b"set-cookie"]
