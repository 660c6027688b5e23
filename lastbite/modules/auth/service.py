import hashlib
import logging
import threading
import time
from typing import Any, Callable, Dict, Optional, Tuple

from lastbite.config.settings import Settings
from lastbite.core.errors import AuthenticationAbsent, BackendUnavailable, ValidationFailed
from lastbite.database.supabase_client import FlowStorage, SupabaseClient
from lastbite.modules.auth.schemas import AuthSession, RegisterRequest, RegisterResponse, LoginRequest
from lastbite.modules.profiles.schemas import Role

logger = logging.getLogger(__name__)

_AUTH_CACHE_TTL_SEC = 60
_AUTH_CACHE_MAX_SIZE = 500

OAUTH_PROVIDERS = ("google",)


class UserCache:
    """
    Short-lived cache of validated users keyed by token hash.

    Every protected navigation validates its token, so this saves a round trip
    to Supabase Auth per page. Expired entries are dropped before inserting and
    the oldest entry makes room when the cache is full.
    """

    def __init__(
        self,
        ttl: float = _AUTH_CACHE_TTL_SEC,
        max_size: int = _AUTH_CACHE_MAX_SIZE,
        clock: Callable[[], float] = time.monotonic
    ):
        self.ttl = ttl
        self.max_size = max_size
        self.clock = clock
        self._entries: Dict[str, Tuple[Dict[str, Any], float]] = {}
        self._lock = threading.Lock()

    @staticmethod
    def key(token: str) -> str:
        return hashlib.sha256(token.encode()).hexdigest()

    def get(self, token: str) -> Optional[Dict[str, Any]]:
        key = self.key(token)
        with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                return None
            user_data, expiry = entry
            if self.clock() >= expiry:
                del self._entries[key]
                return None
            return user_data

    def put(self, token: str, user_data: Dict[str, Any]) -> None:
        now = self.clock()
        key = self.key(token)
        with self._lock:
            self._entries.pop(key, None)
            if len(self._entries) >= self.max_size:
                for expired in [k for k, (_, expiry) in self._entries.items() if expiry <= now]:
                    del self._entries[expired]
            while len(self._entries) >= self.max_size:
                # dicts keep insertion order, so the first key is the oldest
                del self._entries[next(iter(self._entries))]
            self._entries[key] = (user_data, now + self.ttl)

    def discard(self, token: str) -> None:
        with self._lock:
            self._entries.pop(self.key(token), None)

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)


def _user_data(user) -> Dict[str, Any]:
    return {
        "id": user.id,
        "email": user.email,
        "phone": getattr(user, "phone", None),
        "user_metadata": user.user_metadata or {},
        "app_metadata": user.app_metadata or {},
        "created_at": user.created_at,
        "updated_at": user.updated_at,
    }


def _is_auth_rejection(error: Exception) -> bool:
    """True when Supabase refused the credentials, as opposed to failing to answer."""
    if getattr(error, "status", None) in (400, 401, 403, 422):
        return True
    error_msg = str(error)
    lowered = error_msg.lower()
    return (
        "JWT" in error_msg
        or "expired" in lowered
        or "invalid" in lowered
        or "credentials" in lowered
        or "not found" in lowered
    )


def _to_session(auth_response) -> AuthSession:
    if not auth_response or not auth_response.user or not auth_response.session:
        raise AuthenticationAbsent("Invalid credentials")
    session = auth_response.session
    return AuthSession(
        access_token=session.access_token,
        refresh_token=session.refresh_token,
        expires_in=session.expires_in,
        user=_user_data(auth_response.user),
    )


class AuthService:
    def __init__(self, clients: SupabaseClient, settings: Settings, user_cache: Optional[UserCache] = None):
        self.clients = clients
        self.settings = settings
        self.user_cache = user_cache if user_cache is not None else UserCache()

    def register(self, register_data: RegisterRequest) -> Tuple[RegisterResponse, Optional[str]]:
        """Register with email/password; returns the response and the PKCE verifier for the confirmation link"""
        storage = FlowStorage()
        try:
            auth_response = self.clients.create_flow_client(storage).auth.sign_up({
                "email": register_data.email,
                "password": register_data.password,
                "options": {
                    "email_redirect_to": self.settings.auth_callback_url,
                    "data": {
                        "role": register_data.role.value,
                        "is_verified": register_data.role == Role.BUYER,
                    },
                },
            })
        except Exception as e:
            error_message = str(e)
            if "already registered" in error_message.lower() or "already exists" in error_message.lower():
                raise ValidationFailed("User already exists")
            logger.error(f"Registration failed for {register_data.email}: {error_message}")
            raise BackendUnavailable(f"Registration failed: {error_message}")

        if not auth_response.user:
            raise ValidationFailed("Failed to register user")

        response = RegisterResponse(
            user_id=auth_response.user.id,
            email=auth_response.user.email or register_data.email,
            message="Check your email to confirm your account",
        )
        return response, storage.code_verifier

    def login(self, login_data: LoginRequest) -> AuthSession:
        """Authenticate with email/password"""
        try:
            auth_response = self.clients.create_flow_client().auth.sign_in_with_password({
                "email": login_data.email,
                "password": login_data.password,
            })
        except Exception as e:
            if _is_auth_rejection(e):
                raise AuthenticationAbsent("Invalid email or password")
            logger.error(f"Login failed: {e}")
            raise BackendUnavailable(f"Login failed: {e}")
        return _to_session(auth_response)

    def send_otp(self, phone: str) -> None:
        """Send an SMS one-time code, creating the user on first use"""
        try:
            self.clients.create_flow_client().auth.sign_in_with_otp({
                "phone": phone,
                "options": {"should_create_user": True, "channel": "sms"},
            })
        except Exception as e:
            if _is_auth_rejection(e):
                raise ValidationFailed(str(e))
            logger.error(f"Sending OTP failed: {e}")
            raise BackendUnavailable(f"Could not send verification code: {e}")

    def verify_otp(self, phone: str, token: str) -> AuthSession:
        try:
            auth_response = self.clients.create_flow_client().auth.verify_otp({
                "phone": phone,
                "token": token,
                "type": "sms",
            })
        except Exception as e:
            if _is_auth_rejection(e):
                raise AuthenticationAbsent("Invalid or expired verification code")
            logger.error(f"OTP verification failed: {e}")
            raise BackendUnavailable(f"OTP verification failed: {e}")
        return _to_session(auth_response)

    def start_oauth(self, provider: str) -> Tuple[str, Optional[str]]:
        """Provider authorize URL and the PKCE verifier the callback must present"""
        if provider not in OAUTH_PROVIDERS:
            raise ValidationFailed(f"Unsupported provider: {provider}")
        storage = FlowStorage()
        try:
            oauth_response = self.clients.create_flow_client(storage).auth.sign_in_with_oauth({
                "provider": provider,
                "options": {
                    "redirect_to": self.settings.auth_callback_url,
                    "query_params": {"access_type": "offline", "prompt": "consent"},
                },
            })
        except Exception as e:
            logger.error(f"Starting {provider} sign in failed: {e}")
            raise BackendUnavailable(f"Could not start {provider} sign in")
        return oauth_response.url, storage.code_verifier

    def exchange_code(self, code: str, code_verifier: Optional[str]) -> AuthSession:
        """Exchange an OAuth / email-confirmation code for a session"""
        storage = FlowStorage(code_verifier)
        try:
            auth_response = self.clients.create_flow_client(storage).auth.exchange_code_for_session({
                "auth_code": code,
                "code_verifier": code_verifier,
                "redirect_to": self.settings.auth_callback_url,
            })
        except Exception as e:
            if _is_auth_rejection(e):
                raise AuthenticationAbsent("Invalid or expired sign-in link")
            logger.error(f"Code exchange failed: {e}")
            raise BackendUnavailable("Could not complete sign in")
        return _to_session(auth_response)

    def validate_session(self, token: str) -> Dict[str, Any]:
        """Get current user details from a Supabase Auth access token. Uses short TTL cache to reduce auth API calls."""
        cached = self.user_cache.get(token)
        if cached is not None:
            return cached
        try:
            user_response = self.clients.get_client().auth.get_user(jwt=token)
        except Exception as e:
            if _is_auth_rejection(e):
                raise AuthenticationAbsent("Invalid or expired token")
            raise BackendUnavailable("Authentication service unavailable")
        if not user_response or not user_response.user:
            raise AuthenticationAbsent("Invalid or expired token")
        user_data = _user_data(user_response.user)
        self.user_cache.put(token, user_data)
        return user_data

    def refresh_session(self, refresh_token: str) -> AuthSession:
        try:
            auth_response = self.clients.create_flow_client().auth.refresh_session(refresh_token)
        except Exception as e:
            if _is_auth_rejection(e):
                raise AuthenticationAbsent("Session expired")
            raise BackendUnavailable("Authentication service unavailable")
        return _to_session(auth_response)

    def logout(self, token: str) -> bool:
        """Revoke the session server-side; cookies are cleared by the caller regardless"""
        self.user_cache.discard(token)
        try:
            self.clients.get_service_client().auth.admin.sign_out(token)
            return True
        except Exception as e:
            logger.warning(f"Sign out failed: {type(e).__name__}")
            return False
