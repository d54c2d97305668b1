from __future__ import annotations

import logging
import os
from typing import Optional

from fastapi import Depends, FastAPI, File, HTTPException, Request, UploadFile, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from auth import AuthService
from avatars import AvatarService
from coach import Coach
from database import BackendHandle, check_backend
from deps import get_auth, get_avatars, get_coach, get_current_user, get_handle, get_workouts
from errors import WorkoutAppError
from models import (
    CoachPrompt,
    ConfigStatus,
    ConfigUpdate,
    DashboardSummary,
    User,
    UserLogin,
    UserRegister,
    Workout,
    WorkoutCreate,
    utcnow,
)
from stats import community_feed, compute_stats
from workouts import WorkoutRepository


logging.basicConfig(level=os.getenv("LOG_LEVEL", "INFO"))
logger = logging.getLogger(__name__)

MAX_AVATAR_BYTES = 2 * 1024 * 1024


def config_status(handle: BackendHandle) -> ConfigStatus:
    creds = handle.resolve_credentials()
    return ConfigStatus(
        configured=handle.is_configured(),
        needs_setup=handle.needs_setup(),
        endpoint=creds[0] if creds else None,
    )


def create_app(backend: Optional[BackendHandle] = None, coach: Optional[Coach] = None) -> FastAPI:
    app = FastAPI(title="Workout Coach")
    app.state.backend = backend or BackendHandle()
    app.state.coach = coach or Coach()

    # --- CORS (the web client is served from elsewhere)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.exception_handler(WorkoutAppError)
    async def app_error_handler(request: Request, exc: WorkoutAppError):
        return JSONResponse(status_code=exc.status_code, content={"detail": exc.message})

    @app.exception_handler(Exception)
    async def global_exception_handler(request: Request, exc: Exception):
        logger.exception("Unhandled error on %s", request.url.path)
        return JSONResponse(status_code=500, content={"detail": str(exc)})

    @app.on_event("startup")
    async def startup_backend_client():
        handle: BackendHandle = app.state.backend
        if handle.client is None:
            await handle.connect()
        await check_backend(handle)

    @app.get("/")
    async def root():
        return {"message": "Workout Coach API is running"}

    # ------------------------- CONFIG -------------------------

    @app.get("/config", response_model=ConfigStatus)
    async def get_config(handle: BackendHandle = Depends(get_handle)):
        return config_status(handle)

    @app.put("/config", response_model=ConfigStatus)
    async def save_config(update: ConfigUpdate, handle: BackendHandle = Depends(get_handle)):
        await handle.save_config(update.endpoint, update.key)
        return config_status(handle)

    @app.delete("/config", response_model=ConfigStatus)
    async def clear_config(handle: BackendHandle = Depends(get_handle)):
        await handle.clear_config()
        return config_status(handle)

    # ------------------------- AUTH -------------------------

    @app.post("/auth/register", status_code=201, response_model=User)
    async def register(user: UserRegister, auth: AuthService = Depends(get_auth)):
        return await auth.register(user.email, user.name, user.username, user.password)

    @app.post("/auth/login", response_model=User)
    async def login(user: UserLogin, auth: AuthService = Depends(get_auth)):
        return await auth.login(user.email, user.password)

    @app.post("/auth/logout")
    async def logout(auth: AuthService = Depends(get_auth)):
        await auth.logout()
        return {"message": "Logged out"}

    # ------------------------- USERS -------------------------

    @app.get("/me", response_model=User)
    async def me(current_user: User = Depends(get_current_user)):
        return current_user

    @app.post("/me/avatar", response_model=User)
    async def upload_avatar(
        file: UploadFile = File(...),
        current_user: User = Depends(get_current_user),
        avatars: AvatarService = Depends(get_avatars),
    ):
        content_type = file.content_type or ""
        if not content_type.startswith("image/"):
            raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Avatar must be an image")
        content = await file.read()
        if len(content) > MAX_AVATAR_BYTES:
            raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Avatar must be 2 MB or smaller")
        return await avatars.upload_avatar(file.filename or "avatar.png", content, content_type)

    # ------------------------- WORKOUTS -------------------------

    @app.get("/workouts", response_model=list[Workout])
    async def list_workouts(
        current_user: User = Depends(get_current_user),
        repo: WorkoutRepository = Depends(get_workouts),
    ):
        return await repo.list_workouts()

    @app.get("/users/{user_id}/workouts", response_model=list[Workout])
    async def get_user_workouts(
        user_id: str,
        current_user: User = Depends(get_current_user),
        repo: WorkoutRepository = Depends(get_workouts),
    ):
        return await repo.list_workouts(user_id)

    @app.post("/workouts", status_code=201)
    async def create_workout(
        workout: WorkoutCreate,
        current_user: User = Depends(get_current_user),
        repo: WorkoutRepository = Depends(get_workouts),
    ):
        new_workout = Workout(
            user_id=current_user.id,
            user_name=current_user.name,
            name=workout.name,
            date=workout.date or utcnow(),
            notes=workout.notes,
            exercises=workout.exercises,
        )
        workout_id = await repo.save_workout(new_workout)
        return {"id": workout_id, "message": "Workout created"}

    # ------------------------- ANALYTICS -------------------------

    @app.get("/analytics/summary", response_model=DashboardSummary)
    async def get_workout_stats(
        current_user: User = Depends(get_current_user),
        repo: WorkoutRepository = Depends(get_workouts),
    ):
        workouts = await repo.list_workouts()
        return DashboardSummary(
            stats=compute_stats(workouts, current_user.id),
            feed=community_feed(workouts),
        )

    # ------------------------- AI COACH -------------------------

    @app.post("/coach/plan")
    async def coach_plan(body: CoachPrompt, coach: Coach = Depends(get_coach)):
        return await coach.generate_plan(body.prompt)

    @app.get("/coach/analysis")
    async def coach_analysis(
        current_user: User = Depends(get_current_user),
        repo: WorkoutRepository = Depends(get_workouts),
        coach: Coach = Depends(get_coach),
    ):
        workouts = await repo.list_workouts(current_user.id)
        return await coach.analyze_history(workouts)

    @app.get("/coach/exercises")
    async def coach_exercises(muscle_group: str, coach: Coach = Depends(get_coach)):
        return await coach.suggest_exercises(muscle_group)

    return app


app = create_app()
