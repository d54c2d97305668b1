from datetime import datetime, timezone

from models import Exercise, Workout, WorkoutSet
from stats import community_feed, compute_stats, workout_volume


def session(user_id, day, sets):
    return Workout(
        user_id=user_id,
        name=f"Day {day}",
        date=datetime(2026, 10, day, tzinfo=timezone.utc),
        exercises=[Exercise(name="Squat", sets=[WorkoutSet(reps=r, weight=w) for r, w in sets])],
    )


def test_workout_volume_counts_every_set():
    assert workout_volume(session("u", 1, [(5, 135), (5, 185)])) == 1600


def test_stats_only_count_the_user():
    workouts = [
        session("u", 9, [(10, 100)]),
        session("other", 8, [(1, 1000)]),
        session("u", 2, [(5, 100), (3, 50.25)]),
    ]

    stats = compute_stats(workouts, "u")

    assert stats.total_workouts == 2
    assert stats.total_volume == 1650.8
    assert stats.avg_reps == 6.0
    assert stats.last_session.name == "Day 9"
    assert [p.volume for p in stats.recent_volume] == [650.75, 1000]


def test_chart_keeps_last_seven_oldest_first():
    workouts = [session("u", day, [(1, day)]) for day in range(20, 10, -1)]

    points = compute_stats(workouts, "u").recent_volume

    assert [p.date.day for p in points] == [14, 15, 16, 17, 18, 19, 20]


def test_no_workouts():
    stats = compute_stats([], "u")

    assert stats.total_workouts == 0
    assert stats.last_session is None
    assert stats.recent_volume == []


def test_community_feed_is_newest_five():
    workouts = [session("u", day, []) for day in range(10, 0, -1)]

    assert [w.date.day for w in community_feed(workouts)] == [10, 9, 8, 7, 6]
