import pytest
from supabase import StorageException

from auth import AuthService
from avatars import AvatarService
from errors import AuthError, AvatarUploadError


async def logged_in(supabase):
    return await AuthService(supabase).register("ana@example.com", "Ana", "ana", "secret123")


def stored_avatar(supabase, user_id):
    return next(p["avatar_url"] for p in supabase.tables["profiles"] if p["id"] == user_id)


@pytest.mark.asyncio
async def test_upload_updates_profile(supabase):
    user = await logged_in(supabase)

    updated = await AvatarService(supabase).upload_avatar("me.jpg", b"\xff\xd8jpeg", "image/jpeg")

    ((bucket, path),) = supabase.objects.keys()
    assert bucket == "avatars"
    assert path.startswith(f"avatars/{user.id}-") and path.endswith(".jpg")
    assert updated.avatar.endswith(path)
    assert stored_avatar(supabase, user.id) == updated.avatar


@pytest.mark.asyncio
async def test_upload_without_extension_defaults_to_png(supabase):
    await logged_in(supabase)

    await AvatarService(supabase).upload_avatar("avatar", b"png", "image/png")

    ((_, path),) = supabase.objects.keys()
    assert path.endswith(".png")


@pytest.mark.asyncio
async def test_upload_requires_login(supabase):
    with pytest.raises(AuthError):
        await AvatarService(supabase).upload_avatar("me.png", b"png")


@pytest.mark.asyncio
async def test_storage_failure_keeps_previous_avatar(supabase):
    user = await logged_in(supabase)
    before = stored_avatar(supabase, user.id)
    supabase.storage_upload_error = StorageException({"message": "bucket not found"})

    with pytest.raises(AvatarUploadError, match="previous avatar is still in place"):
        await AvatarService(supabase).upload_avatar("me.png", b"png")

    assert stored_avatar(supabase, user.id) == before


@pytest.mark.asyncio
async def test_missing_public_url_keeps_previous_avatar(supabase):
    user = await logged_in(supabase)
    before = stored_avatar(supabase, user.id)
    supabase.public_url_missing = True

    with pytest.raises(AvatarUploadError, match="previous avatar is still in place"):
        await AvatarService(supabase).upload_avatar("me.png", b"png")

    assert stored_avatar(supabase, user.id) == before


@pytest.mark.asyncio
async def test_profile_update_failure_keeps_previous_avatar(supabase):
    user = await logged_in(supabase)
    before = stored_avatar(supabase, user.id)
    supabase.fail("update", "profiles")

    with pytest.raises(AvatarUploadError, match="previous avatar is still in place"):
        await AvatarService(supabase).upload_avatar("me.png", b"png")

    assert stored_avatar(supabase, user.id) == before
