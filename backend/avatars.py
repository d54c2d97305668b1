import logging
import os
import time

from supabase import AsyncClient, PostgrestAPIError, StorageException

from auth import AuthService, profile_to_user
from errors import AvatarUploadError, backend_message
from models import User


logger = logging.getLogger(__name__)

AVATAR_BUCKET = os.getenv("AVATAR_BUCKET", "avatars")
KEEP_PREVIOUS = "Your previous avatar is still in place."


class AvatarService:
    """Uploads a new avatar image and points the profile at it.

    The profile is only updated after the upload and the public URL both
    succeeded, so any failure leaves the old avatar reference untouched.
    Type and size checks belong to the caller.
    """

    def __init__(self, client: AsyncClient, bucket: str = AVATAR_BUCKET):
        self.client = client
        self.bucket = bucket

    async def upload_avatar(self, filename: str, content: bytes, content_type: str = "image/png") -> User:
        user_id = await AuthService(self.client).current_user_id()

        ext = filename.rsplit(".", 1)[-1] if "." in filename else "png"
        path = f"avatars/{user_id}-{int(time.time() * 1000)}.{ext or 'png'}"
        bucket = self.client.storage.from_(self.bucket)

        try:
            await bucket.upload(path, content, {"content-type": content_type, "upsert": "true"})
        except StorageException as exc:
            logger.error("Avatar upload failed: %s", backend_message(exc, "unknown error"))
            raise AvatarUploadError(f"Failed to upload avatar. {KEEP_PREVIOUS}") from exc

        try:
            public_url = await bucket.get_public_url(path)
        except StorageException as exc:
            logger.error("Avatar URL lookup failed: %s", backend_message(exc, "unknown error"))
            public_url = None
        if not public_url:
            raise AvatarUploadError(f"Could not get public URL for avatar. {KEEP_PREVIOUS}")

        try:
            response = await (
                self.client.table("profiles")
                .update({"avatar_url": public_url})
                .eq("id", user_id)
                .execute()
            )
        except PostgrestAPIError as exc:
            logger.error("Avatar profile update failed: %s", backend_message(exc, "unknown error"))
            raise AvatarUploadError(f"Failed to update avatar profile. {KEEP_PREVIOUS}") from exc
        if not response.data:
            raise AvatarUploadError(f"Failed to update avatar profile. {KEEP_PREVIOUS}")

        logger.info("Avatar for %s now at %s", user_id, public_url)
        return profile_to_user(response.data[0])
