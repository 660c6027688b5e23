from __future__ import annotations

from lastbite.core.errors import AuthenticationAbsent, BackendUnavailable, ProfileConflict
from lastbite.modules.auth.schemas import AuthSession, RegisterResponse
from lastbite.modules.profiles.schemas import ProfileCreate, Role
from tests.conftest import make_profile, make_user


def _session(user_id: str = "U1", **user_overrides) -> AuthSession:
    return AuthSession(
        access_token="access-1",
        refresh_token="refresh-1",
        expires_in=3600,
        user=make_user(user_id, **user_overrides),
    )


def test_register_sets_code_verifier_cookie(client, settings, auth_service) -> None:
    auth_service.register.return_value = (
        RegisterResponse(user_id="U1", email="new@example.com", message="Check your email"),
        "verifier-123",
    )

    r = client.post("/auth/register", json={"email": "new@example.com", "password": "secret1", "role": "seller"})

    assert r.status_code == 201
    assert r.json()["user_id"] == "U1"
    register_data = auth_service.register.call_args.args[0]
    assert register_data.role == Role.SELLER
    assert any(
        c.startswith(f"{settings.code_verifier_cookie}=verifier-123") for c in r.headers.get_list("set-cookie")
    )


def test_register_validation_errors_are_inline(client, auth_service) -> None:
    r = client.post("/auth/register", json={"email": "not-an-email", "password": "123", "role": "admin"})

    assert r.status_code == 422
    body = r.json()
    assert body["detail"] == "Validation failed"
    fields = {error["field"] for error in body["errors"]}
    assert {"email", "password", "role"} <= fields
    password_error = next(e for e in body["errors"] if e["field"] == "password")
    assert password_error["message"] == "Password must be at least 6 characters"
    auth_service.register.assert_not_called()


def test_login_sets_session_cookies_and_points_to_dashboard(client, settings, auth_service, profiles) -> None:
    auth_service.login.return_value = _session("U3")
    profiles.get_profile.return_value = make_profile("U3", "buyer")

    r = client.post("/auth/login", json={"email": "u3@example.com", "password": "secret1"})

    assert r.status_code == 200
    body = r.json()
    assert body["user_id"] == "U3"
    assert body["profile"]["role"] == "buyer"
    assert body["redirect_to"] == "/buyer/dashboard"
    set_cookies = r.headers.get_list("set-cookie")
    assert any(c.startswith(f"{settings.access_token_cookie}=access-1") for c in set_cookies)
    assert any(c.startswith(f"{settings.refresh_token_cookie}=refresh-1") for c in set_cookies)
    assert all("httponly" in c.lower() for c in set_cookies)


def test_login_without_profile_points_to_role_selection(client, auth_service, profiles) -> None:
    auth_service.login.return_value = _session("U1")

    r = client.post("/auth/login", json={"email": "u1@example.com", "password": "secret1"})

    assert r.status_code == 200
    assert r.json()["profile"] is None
    assert r.json()["redirect_to"] == "/auth/role"


def test_login_bad_credentials(client, auth_service) -> None:
    auth_service.login.side_effect = AuthenticationAbsent("Invalid email or password")

    r = client.post("/auth/login", json={"email": "u1@example.com", "password": "wrong-pass"})

    assert r.status_code == 401
    assert r.json() == {"detail": "Invalid email or password"}


def test_login_backend_down(client, auth_service) -> None:
    auth_service.login.side_effect = BackendUnavailable("Login failed: timeout")

    r = client.post("/auth/login", json={"email": "u1@example.com", "password": "secret1"})

    assert r.status_code == 503


def test_send_otp(client, auth_service) -> None:
    r = client.post("/auth/otp", json={"phone": "+15551234567"})

    assert r.status_code == 202
    assert r.json()["phone"] == "+15551234567"
    auth_service.send_otp.assert_called_once_with("+15551234567")


def test_send_otp_rejects_bad_phone(client, auth_service) -> None:
    r = client.post("/auth/otp", json={"phone": "5551234567"})

    assert r.status_code == 422
    assert r.json()["errors"][0] == {"field": "phone", "message": "Invalid phone number format"}
    auth_service.send_otp.assert_not_called()


def test_verify_otp_signs_in(client, settings, auth_service) -> None:
    auth_service.verify_otp.return_value = _session("U5")

    r = client.post("/auth/otp/verify", json={"phone": "+15551234567", "token": "123456"})

    assert r.status_code == 200
    assert r.json()["redirect_to"] == "/auth/role"
    auth_service.verify_otp.assert_called_once_with("+15551234567", "123456")


def test_verify_otp_short_code(client) -> None:
    r = client.post("/auth/otp/verify", json={"phone": "+15551234567", "token": "12"})

    assert r.status_code == 422
    assert r.json()["errors"][0]["message"] == "Verification code must be at least 6 characters"


def test_google_redirects_to_provider(client, settings, auth_service) -> None:
    auth_service.start_oauth.return_value = ("https://accounts.google.com/o/oauth2/auth?x=1", "verifier-9")

    r = client.get("/auth/google")

    assert r.status_code == 307
    assert r.headers["location"].startswith("https://accounts.google.com/")
    assert any(c.startswith(f"{settings.code_verifier_cookie}=verifier-9") for c in r.headers.get_list("set-cookie"))
    auth_service.start_oauth.assert_called_once_with("google")


def test_callback_without_code_goes_to_login(client) -> None:
    r = client.get("/auth/callback")
    assert r.status_code == 307
    assert r.headers["location"] == "/auth/login"


def test_callback_failed_exchange_goes_to_login(client, auth_service) -> None:
    auth_service.exchange_code.side_effect = AuthenticationAbsent("Invalid or expired sign-in link")

    r = client.get("/auth/callback", params={"code": "bad"})

    assert r.status_code == 307
    assert r.headers["location"] == "/auth/login"


def test_callback_existing_profile_goes_to_dashboard(client, settings, auth_service, profiles) -> None:
    client.cookies.set(settings.code_verifier_cookie, "verifier-1")
    auth_service.exchange_code.return_value = _session("U4")
    profiles.get_profile.return_value = make_profile("U4", "seller", is_verified=True)

    r = client.get("/auth/callback", params={"code": "abc"})

    assert r.status_code == 307
    assert r.headers["location"] == "/seller/dashboard"
    auth_service.exchange_code.assert_called_once_with("abc", "verifier-1")
    profiles.create_profile.assert_not_called()
    assert any(c.startswith(f"{settings.access_token_cookie}=access-1") for c in r.headers.get_list("set-cookie"))


def test_callback_creates_profile_from_signup_metadata(client, auth_service, profiles) -> None:
    auth_service.exchange_code.return_value = _session("U6", user_metadata={"role": "buyer", "is_verified": True})
    profiles.create_profile.return_value = make_profile("U6", "buyer")

    r = client.get("/auth/callback", params={"code": "abc"})

    assert r.status_code == 307
    assert r.headers["location"] == "/buyer/dashboard"
    profiles.create_profile.assert_called_once_with(ProfileCreate(user_id="U6", role=Role.BUYER, is_verified=True))


def test_callback_never_trusts_seller_metadata_verification(client, auth_service, profiles) -> None:
    auth_service.exchange_code.return_value = _session("U7", user_metadata={"role": "seller", "is_verified": True})
    profiles.create_profile.return_value = make_profile("U7", "seller", is_verified=False)

    r = client.get("/auth/callback", params={"code": "abc"})

    assert r.headers["location"] == "/seller/dashboard"
    created = profiles.create_profile.call_args.args[0]
    assert created.role == Role.SELLER
    assert created.is_verified is False


def test_callback_without_role_metadata_goes_to_role_selection(client, auth_service, profiles) -> None:
    auth_service.exchange_code.return_value = _session("U8")

    r = client.get("/auth/callback", params={"code": "abc"})

    assert r.headers["location"] == "/auth/role"
    profiles.create_profile.assert_not_called()


def test_callback_profile_creation_failure_goes_to_role_selection(client, auth_service, profiles) -> None:
    auth_service.exchange_code.return_value = _session("U9", user_metadata={"role": "buyer"})
    profiles.create_profile.side_effect = ProfileConflict()

    r = client.get("/auth/callback", params={"code": "abc"})

    assert r.headers["location"] == "/auth/role"


def test_logout_clears_cookies(client, settings, sign_in, auth_service) -> None:
    sign_in(make_user("U3"), make_profile("U3", "buyer"))

    r = client.post("/api/session/logout")

    assert r.status_code == 200
    assert r.json()["redirect_to"] == "/auth/login"
    auth_service.logout.assert_called_once()
    set_cookies = r.headers.get_list("set-cookie")
    assert any(c.startswith(f"{settings.access_token_cookie}=") for c in set_cookies)
    assert any(c.startswith(f"{settings.refresh_token_cookie}=") for c in set_cookies)
