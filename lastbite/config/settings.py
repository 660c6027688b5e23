from pydantic_settings import BaseSettings, SettingsConfigDict
from typing import Optional, List


class Settings(BaseSettings):
    # Supabase
    supabase_url: str = ""
    supabase_key: str = ""  # anon key, used for auth flows
    supabase_service_role_key: Optional[str] = None  # profiles table access and admin sign-out

    # Public origin of the web app; OAuth and email confirmation links land on {site_url}/auth/callback
    site_url: str = "http://localhost:3000"

    # Session cookies
    access_token_cookie: str = "lastbite-access-token"
    refresh_token_cookie: str = "lastbite-refresh-token"
    code_verifier_cookie: str = "lastbite-code-verifier"
    cookie_secure: Optional[bool] = None  # None: secure when site_url is https
    session_max_age: int = 7 * 24 * 3600

    # Seller pending-review long-poll
    verification_wait_seconds: float = 25.0
    verification_recheck_seconds: float = 5.0  # store re-read while waiting; covers writes from other workers

    # App
    app_name: str = "lastbite-backend"
    debug: bool = False
    environment: str = "development"  # development | staging | production
    log_level: str = "INFO"
    cors_origins: str = "http://localhost:3000,http://127.0.0.1:3000"
    rate_limit: str = "100/minute"  # slowapi format, e.g. "100/minute"
    auth_rate_limit: str = "10/minute"

    @property
    def is_production(self) -> bool:
        return self.environment == "production"

    @property
    def use_secure_cookies(self) -> bool:
        if self.cookie_secure is not None:
            return self.cookie_secure
        return self.site_url.startswith("https://")

    @property
    def auth_callback_url(self) -> str:
        return f"{self.site_url.rstrip('/')}/auth/callback"

    def get_cors_origins_list(self) -> List[str]:
        return [o.strip() for o in self.cors_origins.split(",") if o.strip()]

    model_config = SettingsConfigDict(
        env_file=".env",
        case_sensitive=False,
        env_prefix="",  # No prefix needed
        extra="ignore"
    )


settings = Settings()
