from typing import Dict, Optional

from supabase import Client, ClientOptions, create_client

from lastbite.config.settings import Settings

CODE_VERIFIER_SUFFIX = "-code-verifier"


class FlowStorage:
    """
    Auth storage for a single sign-in flow.

    Supabase Auth keeps the PKCE code verifier in client storage between the
    authorize step and the code exchange. A server handles those two steps in
    different requests, so the verifier travels in a cookie instead and this
    storage only has to hold it for the duration of one call.
    """

    def __init__(self, code_verifier: Optional[str] = None):
        self._items: Dict[str, str] = {}
        self._code_verifier = code_verifier

    def get_item(self, key: str) -> Optional[str]:
        if key.endswith(CODE_VERIFIER_SUFFIX) and key not in self._items:
            return self._code_verifier
        return self._items.get(key)

    def set_item(self, key: str, value: str) -> None:
        self._items[key] = value

    def remove_item(self, key: str) -> None:
        self._items.pop(key, None)

    @property
    def code_verifier(self) -> Optional[str]:
        for key, value in self._items.items():
            if key.endswith(CODE_VERIFIER_SUFFIX):
                return value
        return self._code_verifier


class SupabaseClient:
    """Builds the Supabase clients a BackendContext hands to services."""

    def __init__(self, settings: Settings):
        self.settings = settings
        self._client: Optional[Client] = None
        self._service_client: Optional[Client] = None

    def get_client(self) -> Client:
        """Shared anon client. Only used for stateless calls such as get_user(jwt)."""
        if self._client is None:
            self._client = create_client(self.settings.supabase_url, self.settings.supabase_key)
        return self._client

    def get_service_client(self) -> Client:
        """Client with service_role key; bypasses RLS. Callers scope every query by user_id."""
        if self._service_client is None and self.settings.supabase_service_role_key:
            self._service_client = create_client(
                self.settings.supabase_url, self.settings.supabase_service_role_key
            )
        return self._service_client or self.get_client()

    def create_flow_client(self, storage: Optional[FlowStorage] = None) -> Client:
        """Throwaway client for one sign-in, refresh or code exchange; never shared between users."""
        options = ClientOptions(
            auto_refresh_token=False,
            persist_session=False,
            flow_type="pkce",
            storage=storage or FlowStorage(),
        )
        return create_client(self.settings.supabase_url, self.settings.supabase_key, options=options)

    def reset_client(self):
        self._client = None
        self._service_client = None
