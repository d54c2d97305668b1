import logging
import os
from pathlib import Path
from typing import Awaitable, Callable, Optional, Tuple

from dotenv import dotenv_values, load_dotenv, set_key, unset_key
from supabase import AsyncClient, acreate_client

from errors import ConfigError, NotConfiguredError


load_dotenv()

logger = logging.getLogger(__name__)

# Deployment defaults, used when nothing was entered in settings.
SUPABASE_URL = os.getenv("SUPABASE_URL", "")
SUPABASE_ANON_KEY = os.getenv("SUPABASE_ANON_KEY", "")
SETTINGS_PATH = os.getenv("SETTINGS_PATH", str(Path.home() / ".workout_coach.env"))

PLACEHOLDER_URL = "https://placeholder.supabase.co"
PLACEHOLDER_KEY = "placeholder"

URL_SETTING = "sb_url"
KEY_SETTING = "sb_key"

Credentials = Tuple[str, str]
ClientFactory = Callable[[str, str], Awaitable[AsyncClient]]


class LocalSettings:
    """The two user-entered settings, kept in a dotenv-style file."""

    def __init__(self, path: str = SETTINGS_PATH):
        self.path = Path(path)

    def read(self) -> Tuple[str, str]:
        if not self.path.exists():
            return "", ""
        values = dotenv_values(self.path)
        return values.get(URL_SETTING) or "", values.get(KEY_SETTING) or ""

    def write(self, endpoint: str, key: str) -> None:
        self.path.touch(exist_ok=True)
        set_key(self.path, URL_SETTING, endpoint, quote_mode="never")
        set_key(self.path, KEY_SETTING, key, quote_mode="never")

    def clear(self) -> None:
        if not self.path.exists():
            return
        values = dotenv_values(self.path)
        for name in (URL_SETTING, KEY_SETTING):
            if name in values:
                unset_key(self.path, name)


def is_placeholder(endpoint: str, key: str) -> bool:
    return endpoint == PLACEHOLDER_URL or "placeholder" in endpoint or key == PLACEHOLDER_KEY


class BackendHandle:
    """Holds the credentials and the live Supabase client.

    Data-access objects are built per request from ``client``, so replacing
    it here is all a settings change needs to do.
    """

    def __init__(
        self,
        settings: Optional[LocalSettings] = None,
        env_url: str = SUPABASE_URL,
        env_key: str = SUPABASE_ANON_KEY,
        client_factory: ClientFactory = acreate_client,
    ):
        self.settings = settings or LocalSettings()
        self.env_url = env_url
        self.env_key = env_key
        self.client_factory = client_factory
        self.client: Optional[AsyncClient] = None

    def resolve_credentials(self) -> Optional[Credentials]:
        stored_url, stored_key = self.settings.read()
        endpoint = stored_url or self.env_url
        key = stored_key or self.env_key
        if not endpoint or not key:
            return None
        return endpoint, key

    def is_configured(self) -> bool:
        creds = self.resolve_credentials()
        if creds is None:
            return False
        return not is_placeholder(*creds)

    def needs_setup(self) -> bool:
        """True when the user never entered settings (first-run prompt)."""
        stored_url, stored_key = self.settings.read()
        return not stored_url or not stored_key

    async def connect(self) -> None:
        """Bind the client from whatever credentials resolve right now."""
        if not self.is_configured():
            logger.warning("Supabase is not configured; waiting for settings.")
            self.client = None
            return
        endpoint, key = self.resolve_credentials()
        try:
            self.client = await self.client_factory(endpoint, key)
        except Exception as exc:
            logger.error("Failed to initialise Supabase client: %s", exc)
            self.client = None

    async def save_config(self, endpoint: str, key: str) -> None:
        endpoint, key = endpoint.strip(), key.strip()
        if not endpoint or not key:
            raise ConfigError("Both the Supabase URL and key are required")
        try:
            client = await self.client_factory(endpoint, key)
        except Exception as exc:
            logger.error("Failed to re-initialise Supabase client: %s", exc)
            raise ConfigError(f"Could not connect with these settings: {exc}") from exc

        previous = self.settings.read()
        try:
            self.settings.write(endpoint, key)
        except OSError as exc:
            logger.error("Could not save Supabase settings to %s: %s", self.settings.path, exc)
            self._restore(previous)
            raise ConfigError(f"Could not save settings: {exc}") from exc
        self.client = client
        logger.info("Supabase client rebound to %s", endpoint)

    def _restore(self, previous: Tuple[str, str]) -> None:
        try:
            if all(previous):
                self.settings.write(*previous)
            else:
                self.settings.clear()
        except OSError as exc:
            logger.error("Could not restore previous Supabase settings: %s", exc)

    async def clear_config(self) -> None:
        self.settings.clear()
        if not self.env_url or not self.env_key or is_placeholder(self.env_url, self.env_key):
            self.client = None
            logger.info("Supabase settings cleared; no default credentials available.")
            return
        try:
            self.client = await self.client_factory(self.env_url, self.env_key)
        except Exception as exc:
            logger.error("Failed to initialise Supabase client from environment: %s", exc)
            self.client = None

    def require(self) -> AsyncClient:
        if self.client is None:
            raise NotConfiguredError("Supabase is not configured. Enter the project URL and key in settings.")
        return self.client


async def check_backend(handle: BackendHandle) -> bool:
    """Fail-fast check so you instantly know Supabase is reachable."""
    if handle.client is None:
        return False
    try:
        await handle.client.table("profiles").select("id").limit(1).execute()
    except Exception as exc:
        logger.error("Supabase connection check failed: %s", exc)
        return False
    logger.info("Supabase connection successful!")
    return True
