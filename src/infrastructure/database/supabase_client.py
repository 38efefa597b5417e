from __future__ import annotations

import hashlib
from dataclasses import dataclass

from supabase import Client, create_client

from src.config import get_settings


@dataclass(slots=True)
class UserInfo:
    id: str
    email: str | None


class SupabaseAuthAdapter:
    """Small wrapper to validate Supabase access tokens.

    When SUPABASE_DISABLED=1, this returns a fake user for any token.
    """

    def __init__(self) -> None:
        settings = get_settings()
        self.disabled = settings.supabase_disabled
        self._client: Client | None = None
        if settings.use_supabase:
            self._client = create_client(settings.supabase_url, settings.supabase_anon_key)

    def validate_token(self, token: str) -> UserInfo:
        if not token:
            raise ValueError("Missing access token")
        if self.disabled or not self._client:
            # Deterministic fake user derived from the token
            digest = hashlib.sha256(token.encode("utf-8")).hexdigest()[:12]
            return UserInfo(id=f"fake-{digest}", email=None)
        # Real validation via Supabase Auth API
        try:
            res = self._client.auth.get_user(token)
        except Exception as exc:  # pragma: no cover - network path
            raise ValueError(f"Invalid access token: {exc}") from exc
        user = res.user if res else None
        if not user:
            raise ValueError("Invalid access token")
        return UserInfo(id=user.id, email=user.email)


# Simple reusable singleton client getter for repositories/storage
_CLIENT_SINGLETON: Client | None = None


def get_supabase_client() -> Client | None:
    global _CLIENT_SINGLETON
    settings = get_settings()
    if not settings.use_supabase:
        return None
    if _CLIENT_SINGLETON is None:
        _CLIENT_SINGLETON = create_client(settings.supabase_url, settings.supabase_anon_key)
    return _CLIENT_SINGLETON
