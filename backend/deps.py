from fastapi import Depends, HTTPException, Request, status
from supabase import AsyncClient

from auth import AuthService
from avatars import AvatarService
from coach import Coach
from database import BackendHandle
from models import User
from workouts import WorkoutRepository


def get_handle(request: Request) -> BackendHandle:
    return request.app.state.backend


def get_client(handle: BackendHandle = Depends(get_handle)) -> AsyncClient:
    # raises NotConfiguredError -> 503
    return handle.require()


# Fresh service objects per request, bound to whichever client is live now.
def get_auth(client: AsyncClient = Depends(get_client)) -> AuthService:
    return AuthService(client)


def get_workouts(client: AsyncClient = Depends(get_client)) -> WorkoutRepository:
    return WorkoutRepository(client)


def get_avatars(client: AsyncClient = Depends(get_client)) -> AvatarService:
    return AvatarService(client)


def get_coach(request: Request) -> Coach:
    return request.app.state.coach


async def get_current_user(auth: AuthService = Depends(get_auth)) -> User:
    """Very small auth layer.

    - Asks Supabase for the stored session
    - Loads the profile row
    """

    user = await auth.restore_session()
    if user is None:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Not logged in")
    return user
