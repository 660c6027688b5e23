from __future__ import annotations

from lastbite.core.errors import ValidationFailed
from tests.conftest import make_profile, make_user

SUPER_USER = make_user("admin-1", app_metadata={"type": "super_user"})


def test_profile_requires_sign_in(client) -> None:
    r = client.get("/api/profile")
    assert r.status_code == 401
    assert r.json() == {"detail": "Not authenticated"}


def test_profile_missing_before_role_selection(client, sign_in) -> None:
    sign_in(make_user("U1"))
    r = client.get("/api/profile")
    assert r.status_code == 404


def test_profile_returned(client, sign_in) -> None:
    sign_in(make_user("U3"), make_profile("U3", "buyer"))
    r = client.get("/api/profile")
    assert r.status_code == 200
    assert r.json()["role"] == "buyer"
    assert r.json()["is_verified"] is True


def test_verification_wait_returns_at_once_when_verified(client, sign_in, profiles) -> None:
    sign_in(make_user("U4"), make_profile("U4", "seller", is_verified=True))

    r = client.get("/api/profile/verification/wait")

    assert r.status_code == 200
    assert r.json() == {"is_verified": True, "redirect_to": "/seller/dashboard"}


def test_verification_wait_times_out_still_pending(client, sign_in, events) -> None:
    sign_in(make_user("U2"), make_profile("U2", "seller", is_verified=False, business_name="Corner Bakery"))

    r = client.get("/api/profile/verification/wait", params={"timeout": 0.1})

    assert r.status_code == 200
    assert r.json() == {"is_verified": False, "redirect_to": None}
    assert events.subscriber_count("U2") == 0


def test_verification_wait_is_sellers_only(client, sign_in) -> None:
    sign_in(make_user("U3"), make_profile("U3", "buyer"))
    r = client.get("/api/profile/verification/wait")
    assert r.status_code == 403


def test_verification_wait_rejects_long_timeouts(client, sign_in) -> None:
    sign_in(make_user("U2"), make_profile("U2", "seller"))
    r = client.get("/api/profile/verification/wait", params={"timeout": 600})
    assert r.status_code == 422


def test_admin_verifies_seller(client, sign_in, profiles) -> None:
    sign_in(SUPER_USER)
    profiles.set_verified.return_value = make_profile("U2", "seller", is_verified=True)

    r = client.post("/admin/sellers/U2/verify", json={})

    assert r.status_code == 200
    assert r.json()["is_verified"] is True
    profiles.set_verified.assert_called_once_with("U2", True)


def test_admin_can_revoke_verification(client, sign_in, profiles) -> None:
    sign_in(SUPER_USER)
    profiles.set_verified.return_value = make_profile("U2", "seller", is_verified=False)

    r = client.post("/admin/sellers/U2/verify", json={"is_verified": False})

    assert r.status_code == 200
    profiles.set_verified.assert_called_once_with("U2", False)


def test_non_admin_cannot_verify(client, sign_in, profiles) -> None:
    sign_in(make_user("U2"), make_profile("U2", "seller"))

    r = client.post("/admin/sellers/U2/verify", json={})

    assert r.status_code == 403
    profiles.set_verified.assert_not_called()


def test_user_metadata_does_not_grant_admin(client, sign_in, profiles) -> None:
    sign_in(make_user("U2", user_metadata={"type": "super_user"}), make_profile("U2", "seller"))

    r = client.post("/admin/sellers/U2/verify", json={})

    assert r.status_code == 403


def test_admin_verify_buyer_rejected(client, sign_in, profiles) -> None:
    sign_in(SUPER_USER)
    profiles.set_verified.side_effect = ValidationFailed("Only seller profiles can be verified")

    r = client.post("/admin/sellers/U3/verify", json={})

    assert r.status_code == 422
    assert r.json() == {"detail": "Only seller profiles can be verified"}


def test_dashboard_forwards_buyer(client, sign_in) -> None:
    sign_in(make_user("U3"), make_profile("U3", "buyer"))
    r = client.get("/dashboard")
    assert r.status_code == 307
    assert r.headers["location"] == "/buyer/dashboard"


def test_dashboard_forwards_seller(client, sign_in) -> None:
    sign_in(make_user("U4"), make_profile("U4", "seller", is_verified=True, business_name="Corner Bakery"))
    r = client.get("/dashboard")
    assert r.status_code == 307
    assert r.headers["location"] == "/seller/dashboard"


def test_verification_wait_sees_approval_written_elsewhere(client, sign_in, settings, profiles) -> None:
    settings.verification_recheck_seconds = 0.05
    sign_in(make_user("U2"))
    pending = make_profile("U2", "seller", is_verified=False, business_name="Corner Bakery")
    approved = make_profile("U2", "seller", is_verified=True, business_name="Corner Bakery")
    profiles.get_profile.side_effect = [pending, pending, approved]

    r = client.get("/api/profile/verification/wait", params={"timeout": 5})

    assert r.status_code == 200
    assert r.json() == {"is_verified": True, "redirect_to": "/seller/dashboard"}
