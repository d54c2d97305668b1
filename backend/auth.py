import logging
from typing import Any, Dict, Optional
from urllib.parse import quote

from supabase import AsyncClient, AuthError as SupabaseAuthError, PostgrestAPIError

from errors import AuthError, backend_message
from models import User, utcnow


logger = logging.getLogger(__name__)

AVATAR_SEED_URL = "https://api.dicebear.com/7.x/avataaars/svg?seed={seed}"


def default_avatar_url(username: str) -> str:
    return AVATAR_SEED_URL.format(seed=quote(username, safe=""))


def profile_to_user(profile: Dict[str, Any]) -> User:
    return User(
        id=profile["id"],
        name=profile.get("full_name") or "",
        username=profile.get("username") or "",
        avatar=profile.get("avatar_url") or "",
        joined_date=profile.get("updated_at") or utcnow(),
    )


async def fetch_profile(client: AsyncClient, user_id: str) -> Optional[Dict[str, Any]]:
    """Profile row for ``user_id``, or None when the trigger hasn't made it yet."""
    response = await client.table("profiles").select("*").eq("id", user_id).limit(1).execute()
    rows = response.data or []
    return rows[0] if rows else None


class AuthService:
    def __init__(self, client: AsyncClient):
        self.client = client

    async def _profile_or_none(self, user_id: str) -> Optional[Dict[str, Any]]:
        try:
            return await fetch_profile(self.client, user_id)
        except PostgrestAPIError as exc:
            logger.error("Could not read profile %s: %s", user_id, backend_message(exc, "unknown error"))
            return None

    async def register(self, email: str, name: str, username: str, password: str) -> User:
        avatar_url = default_avatar_url(username)
        try:
            result = await self.client.auth.sign_up(
                {
                    "email": email,
                    "password": password,
                    "options": {
                        "data": {
                            "full_name": name,
                            "username": username,
                            "avatar_url": avatar_url,
                        }
                    },
                }
            )
        except SupabaseAuthError as exc:
            logger.error("Registration rejected: %s", exc)
            raise AuthError(backend_message(exc, "Failed to register user")) from exc

        if result.user is None:
            raise AuthError("Failed to register user")

        profile = await self._profile_or_none(result.user.id)
        if profile:
            return profile_to_user(profile)

        # Profile trigger hasn't run yet: use what we just submitted.
        metadata = result.user.user_metadata or {}
        return User(
            id=result.user.id,
            name=metadata.get("full_name") or name,
            username=metadata.get("username") or username,
            avatar=metadata.get("avatar_url") or avatar_url,
            joined_date=utcnow(),
        )

    async def login(self, email: str, password: str) -> User:
        try:
            result = await self.client.auth.sign_in_with_password({"email": email, "password": password})
        except SupabaseAuthError as exc:
            logger.error("Login rejected: %s", exc)
            raise AuthError(backend_message(exc, "Invalid email or password")) from exc

        if result.user is None:
            raise AuthError("Invalid email or password")

        profile = await self._profile_or_none(result.user.id)
        if profile:
            return profile_to_user(profile)

        metadata = result.user.user_metadata or {}
        return User(
            id=result.user.id,
            name=metadata.get("full_name") or "User",
            username=metadata.get("username") or "user",
            avatar=metadata.get("avatar_url") or "",
            joined_date=utcnow(),
        )

    async def logout(self) -> None:
        await self.client.auth.sign_out()

    async def restore_session(self) -> Optional[User]:
        session = await self.client.auth.get_session()
        if session is None or session.user is None:
            return None
        profile = await self._profile_or_none(session.user.id)
        if profile is None:
            return None
        return profile_to_user(profile)

    async def current_user_id(self) -> str:
        response = await self.client.auth.get_user()
        if response is None or response.user is None:
            raise AuthError("No authenticated user")
        return response.user.id
