"""AI coach backed by Google Gemini.

Every call is a single best-effort request. Failures never raise: they come
back as a ``failed`` result with a message the user can read, so the chat
keeps working and callers can still tell a failure from an empty answer.
"""

import json
import logging
import os
from typing import List, Optional

from dotenv import load_dotenv
from google import genai
from google.genai import types

from models import CoachReply, CoachStatus, ExerciseSuggestions, Workout
from stats import workout_volume


load_dotenv()

logger = logging.getLogger(__name__)

GEMINI_API_KEY = os.getenv("GEMINI_API_KEY", "")
GEMINI_MODEL = os.getenv("GEMINI_MODEL", "gemini-2.5-flash")

PLAN_INSTRUCTION = (
    "You are an expert elite fitness coach. Create detailed, science-based workout plans. "
    "Be encouraging but concise. Use Markdown formatting for lists and bold text."
)
ANALYSIS_INSTRUCTION = (
    "You are a data-driven sports scientist. Analyze the user's recent volume and frequency. "
    "Keep advice actionable and brief."
)

MISSING_KEY = "API Key is missing. Please configure GEMINI_API_KEY for the AI coach."
PLAN_EMPTY = "Could not generate a workout plan. Please try again."
PLAN_FAILED = "Sorry, I encountered an error while communicating with the AI coach."
ANALYSIS_EMPTY = "Analysis failed."
ANALYSIS_FAILED = "Unable to analyze history at this time."


def history_summary(workouts: List[Workout], limit: int = 5) -> List[dict]:
    return [
        {
            "date": w.date.isoformat() if w.date else None,
            "name": w.name,
            "totalExercises": len(w.exercises),
            "volume": workout_volume(w),
        }
        for w in workouts[:limit]
    ]


class Coach:
    def __init__(self, api_key: str = GEMINI_API_KEY, model: str = GEMINI_MODEL, client: Optional[genai.Client] = None):
        self.api_key = api_key
        self.model = model
        self._client = client

    @property
    def client(self) -> Optional[genai.Client]:
        if self._client is None and self.api_key:
            self._client = genai.Client(api_key=self.api_key)
        return self._client

    async def _ask(self, contents: str, config: types.GenerateContentConfig) -> str:
        response = await self.client.aio.models.generate_content(
            model=self.model,
            contents=contents,
            config=config,
        )
        return response.text or ""

    async def _reply(self, prompt: str, instruction: str, empty: str, failed: str) -> CoachReply:
        if self.client is None:
            return CoachReply(status=CoachStatus.FAILED, text=MISSING_KEY, error="missing api key")
        try:
            text = await self._ask(prompt, types.GenerateContentConfig(system_instruction=instruction))
        except Exception as exc:
            logger.exception("AI coach request failed")
            return CoachReply(status=CoachStatus.FAILED, text=failed, error=str(exc))
        if not text.strip():
            return CoachReply(status=CoachStatus.EMPTY, text=empty)
        return CoachReply(status=CoachStatus.OK, text=text)

    async def generate_plan(self, prompt: str) -> CoachReply:
        return await self._reply(prompt, PLAN_INSTRUCTION, PLAN_EMPTY, PLAN_FAILED)

    async def analyze_history(self, workouts: List[Workout]) -> CoachReply:
        prompt = (
            "Analyze my recent workout history and give me 3 specific tips to improve. "
            f"Here is the data JSON: {json.dumps(history_summary(workouts))}"
        )
        return await self._reply(prompt, ANALYSIS_INSTRUCTION, ANALYSIS_EMPTY, ANALYSIS_FAILED)

    async def suggest_exercises(self, muscle_group: str) -> ExerciseSuggestions:
        if self.client is None:
            return ExerciseSuggestions(status=CoachStatus.FAILED, error="missing api key")
        config = types.GenerateContentConfig(
            response_mime_type="application/json",
            response_schema=list[str],
        )
        try:
            text = await self._ask(
                f"Suggest 5 best exercises for {muscle_group}. Return only a JSON array of strings.",
                config,
            )
        except Exception as exc:
            logger.exception("Exercise suggestion request failed")
            return ExerciseSuggestions(status=CoachStatus.FAILED, error=str(exc))

        if not text.strip():
            return ExerciseSuggestions(status=CoachStatus.EMPTY)
        try:
            parsed = json.loads(text)
        except ValueError as exc:
            logger.error("Unparseable exercise suggestions: %r", text)
            return ExerciseSuggestions(status=CoachStatus.FAILED, error=f"invalid JSON: {exc}")
        if not isinstance(parsed, list):
            return ExerciseSuggestions(status=CoachStatus.FAILED, error="expected a JSON array")

        exercises = [str(item) for item in parsed]
        status = CoachStatus.OK if exercises else CoachStatus.EMPTY
        return ExerciseSuggestions(status=status, exercises=exercises)
