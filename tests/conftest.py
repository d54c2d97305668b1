import sys
from pathlib import Path

import pytest

sys.path.append(str(Path(__file__).resolve().parents[1] / "backend"))
sys.path.append(str(Path(__file__).resolve().parent))

from database import BackendHandle, LocalSettings  # noqa: E402
from fakes import FakeGenai, FakeSupabase  # noqa: E402


@pytest.fixture
def supabase() -> FakeSupabase:
    return FakeSupabase()


@pytest.fixture
def settings(tmp_path: Path) -> LocalSettings:
    return LocalSettings(str(tmp_path / "settings.env"))


@pytest.fixture
def make_handle(settings):
    """Build a BackendHandle whose factory hands out fake clients."""

    def build(env_url="", env_key="", fail=False):
        created = []

        async def factory(url, key):
            if fail:
                raise ValueError("Invalid URL")
            client = FakeSupabase(url, key)
            created.append(client)
            return client

        handle = BackendHandle(settings=settings, env_url=env_url, env_key=env_key, client_factory=factory)
        handle.created = created
        return handle

    return build


@pytest.fixture
def genai() -> FakeGenai:
    return FakeGenai(text="Do more squats.")
