"""
Explicit backend wiring.

Everything that talks to Supabase hangs off one BackendContext stored on
app.state.backend. Tests build a context around fakes; production builds it
from settings at startup.
"""
from dataclasses import dataclass

from lastbite.access.events import ProfileEvents
from lastbite.access.session import SessionResolver
from lastbite.config.settings import Settings
from lastbite.database.supabase_client import SupabaseClient
from lastbite.modules.auth.service import AuthService
from lastbite.modules.profiles.service import ProfileService


@dataclass
class BackendContext:
    settings: Settings
    auth: AuthService
    profiles: ProfileService
    events: ProfileEvents
    session_resolver: SessionResolver

    @classmethod
    def from_settings(cls, settings: Settings) -> "BackendContext":
        clients = SupabaseClient(settings)
        events = ProfileEvents()
        auth = AuthService(clients, settings)
        return cls(
            settings=settings,
            auth=auth,
            profiles=ProfileService(clients.get_service_client(), events),
            events=events,
            session_resolver=SessionResolver(auth, settings),
        )
