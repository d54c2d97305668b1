import logging
from typing import Any, Dict, List, Optional

from supabase import AsyncClient, PostgrestAPIError

from errors import DataAccessError, backend_message
from models import Exercise, Workout, WorkoutSet, utcnow


logger = logging.getLogger(__name__)

# One composite read: workout -> owner username -> exercises -> sets
WORKOUT_SELECT = """
    id,
    user_id,
    name,
    date,
    notes,
    profiles:user_id (
        username
    ),
    exercises (
        id,
        name,
        order_index,
        workout_sets (
            id,
            reps,
            weight,
            completed
        )
    )
"""


def row_to_workout(row: Dict[str, Any]) -> Workout:
    owner = row.get("profiles") or {}
    exercises = sorted(row.get("exercises") or [], key=lambda e: e.get("order_index") or 0)
    return Workout(
        id=str(row["id"]),
        user_id=str(row["user_id"]),
        user_name=owner.get("username") or "Unknown",
        name=row["name"],
        date=row["date"],
        notes=row.get("notes") or "",
        exercises=[
            Exercise(
                id=str(e["id"]),
                name=e["name"],
                sets=[
                    WorkoutSet(
                        id=str(s["id"]),
                        reps=int(s.get("reps") or 0),
                        weight=float(s.get("weight") or 0),
                        completed=bool(s.get("completed")),
                    )
                    for s in e.get("workout_sets") or []
                ],
            )
            for e in exercises
        ],
    )


class WorkoutRepository:
    def __init__(self, client: AsyncClient):
        self.client = client

    async def list_workouts(self, user_id: Optional[str] = None) -> List[Workout]:
        """Newest first. All users' workouts unless ``user_id`` is given."""
        query = self.client.table("workouts").select(WORKOUT_SELECT)
        if user_id is not None:
            query = query.eq("user_id", user_id)
        try:
            response = await (
                query.order("date", desc=True)
                .order("order_index", foreign_table="exercises")
                .order("id", foreign_table="exercises.workout_sets")
                .execute()
            )
        except PostgrestAPIError as exc:
            logger.error("Failed to load workouts: %s", backend_message(exc, "unknown error"))
            raise DataAccessError(backend_message(exc, "Failed to load workouts")) from exc

        return [row_to_workout(row) for row in response.data or []]

    async def save_workout(self, workout: Workout) -> str:
        """Write workout, then its exercises, then all sets.

        Each step needs the ids the previous one returned. There is no
        transaction: if a later step fails the rows already written are
        deleted again before the error is raised.

        Returns the id the backend gave the workout.
        """
        try:
            response = await (
                self.client.table("workouts")
                .insert(
                    {
                        "user_id": workout.user_id,
                        "name": workout.name,
                        "date": (workout.date or utcnow()).isoformat(),
                        "notes": workout.notes or None,
                    }
                )
                .execute()
            )
        except PostgrestAPIError as exc:
            logger.error("Failed to save workout: %s", backend_message(exc, "unknown error"))
            raise DataAccessError(backend_message(exc, "Failed to save workout")) from exc

        if not response.data:
            raise DataAccessError("Failed to save workout")
        workout_id = response.data[0]["id"]

        if workout.exercises:
            try:
                await self._save_exercises(workout_id, workout.exercises)
            except Exception as exc:
                if isinstance(exc, DataAccessError):
                    message = exc.message
                else:
                    message = backend_message(exc, "Failed to save exercises")
                    logger.error("Failed to save exercises: %s", message)
                if not await self._discard(workout_id):
                    message = f"{message} (partially saved workout {workout_id} was left behind)"
                raise DataAccessError(message) from exc

        return str(workout_id)

    async def _save_exercises(self, workout_id: Any, exercises: List[Exercise]) -> None:
        try:
            response = await (
                self.client.table("exercises")
                .insert(
                    [
                        {"workout_id": workout_id, "name": ex.name, "order_index": idx}
                        for idx, ex in enumerate(exercises)
                    ]
                )
                .execute()
            )
        except PostgrestAPIError as exc:
            logger.error("Failed to save exercises: %s", backend_message(exc, "unknown error"))
            raise DataAccessError(backend_message(exc, "Failed to save exercises")) from exc

        # Match rows back by the echoed order_index, not by list position.
        created: Dict[int, Any] = {}
        for row in response.data or []:
            idx = row.get("order_index")
            if idx in created:
                raise DataAccessError(f"Exercise order {idx} was returned twice")
            created[idx] = row["id"]
        missing = [idx for idx in range(len(exercises)) if idx not in created]
        if missing:
            raise DataAccessError(f"Exercises at positions {missing} were not saved")

        sets = [
            {
                "exercise_id": created[idx],
                "reps": s.reps,
                "weight": s.weight,
                "completed": s.completed,
            }
            for idx, ex in enumerate(exercises)
            for s in ex.sets
        ]
        if not sets:
            return

        try:
            await self.client.table("workout_sets").insert(sets).execute()
        except PostgrestAPIError as exc:
            logger.error("Failed to save sets: %s", backend_message(exc, "unknown error"))
            raise DataAccessError(backend_message(exc, "Failed to save sets")) from exc

    async def _discard(self, workout_id: Any) -> bool:
        try:
            await self.client.table("exercises").delete().eq("workout_id", workout_id).execute()
            await self.client.table("workouts").delete().eq("id", workout_id).execute()
        except Exception as exc:
            logger.error(
                "Could not remove partially saved workout %s: %s",
                workout_id,
                backend_message(exc, "unknown error"),
            )
            return False
        logger.warning("Removed partially saved workout %s", workout_id)
        return True
