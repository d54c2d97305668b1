from typing import List

from models import SessionSummary, VolumePoint, Workout, WorkoutStats


def workout_volume(workout: Workout) -> float:
    return sum(s.weight * s.reps for ex in workout.exercises for s in ex.sets)


def compute_stats(workouts: List[Workout], user_id: str, chart_size: int = 7) -> WorkoutStats:
    """Dashboard numbers for one user. ``workouts`` is newest first."""
    mine = [w for w in workouts if w.user_id == user_id]
    if not mine:
        return WorkoutStats()

    reps = [s.reps for w in mine for ex in w.exercises for s in ex.sets]
    return WorkoutStats(
        total_workouts=len(mine),
        total_volume=round(sum(workout_volume(w) for w in mine), 1),
        avg_reps=round(sum(reps) / len(reps), 1) if reps else 0,
        last_session=SessionSummary(name=mine[0].name, date=mine[0].date),
        # oldest first, for the chart
        recent_volume=[
            VolumePoint(date=w.date, volume=workout_volume(w))
            for w in reversed(mine[:chart_size])
        ],
    )


def community_feed(workouts: List[Workout], limit: int = 5) -> List[Workout]:
    return workouts[:limit]
