from datetime import datetime, timezone
from enum import Enum
from typing import List, Optional
from uuid import uuid4

from pydantic import BaseModel, EmailStr, Field


def new_id() -> str:
    return str(uuid4())


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


# Read-only copy of the backend profile row
class User(BaseModel):
    id: str
    name: str
    username: str
    avatar: str = ""
    joined_date: datetime = Field(default_factory=utcnow)

class UserRegister(BaseModel):
    email: EmailStr
    name: str
    username: str
    password: str

class UserLogin(BaseModel):
    email: EmailStr
    password: str


class WorkoutSet(BaseModel):
    id: str = Field(default_factory=new_id)
    reps: int = 0
    weight: float = 0  # in lbs
    completed: bool = False

class Exercise(BaseModel):
    id: str = Field(default_factory=new_id)
    name: str
    sets: List[WorkoutSet] = []

class WorkoutCreate(BaseModel):
    name: str
    date: Optional[datetime] = Field(default_factory=utcnow)
    notes: str = ""
    exercises: List[Exercise] = []

class Workout(WorkoutCreate):
    id: str = Field(default_factory=new_id)
    user_id: str
    user_name: str = "Unknown"  # denormalized for feeds


class ConfigUpdate(BaseModel):
    endpoint: str
    key: str

class ConfigStatus(BaseModel):
    configured: bool
    needs_setup: bool  # user never entered settings: show the first-run prompt
    endpoint: Optional[str] = None


class CoachPrompt(BaseModel):
    prompt: str

class CoachStatus(str, Enum):
    OK = "ok"
    EMPTY = "empty"
    FAILED = "failed"

class CoachReply(BaseModel):
    status: CoachStatus
    text: str
    error: Optional[str] = None

class ExerciseSuggestions(BaseModel):
    status: CoachStatus
    exercises: List[str] = []
    error: Optional[str] = None


class VolumePoint(BaseModel):
    date: datetime
    volume: float

class SessionSummary(BaseModel):
    name: str
    date: datetime

class WorkoutStats(BaseModel):
    total_workouts: int = 0
    total_volume: float = 0
    avg_reps: float = 0
    last_session: Optional[SessionSummary] = None
    recent_volume: List[VolumePoint] = []

class DashboardSummary(BaseModel):
    stats: WorkoutStats
    feed: List[Workout] = []
