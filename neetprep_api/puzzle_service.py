"""
Puzzle level functions.

fetch_level serves the content of one puzzle level: level 1 is the static
seed content, later levels are generated by the model. The generated
question and grading criteria are kept per user, puzzle and level so that
submit_solution grades against what the server produced.

submit_solution grades a free-text answer with the model and, when it is
correct, moves the user's current_level one step forward. current_level is
the next unlocked level, and only that level is accepted.

Neither function locks the progress row. Two concurrent correct
submissions for the same level both pass the level check and both credit XP.
"""

import re
import json
import logging
from typing import Optional, Dict, Any, List, Tuple, Literal
from openai import AsyncOpenAI
from pydantic import BaseModel, Field
from .prompt_flow import PromptFlow, get_openai_client, complete_text
from .supabase_service import utc_now

logger = logging.getLogger(__name__)

DEFAULT_MAX_LEVEL = 30
DEFAULT_XP_AWARD = 10


class PuzzleServiceError(Exception):
    """Carries the HTTP status and JSON body the puzzle endpoints answer with"""

    def __init__(self, status_code: int, body: Dict[str, Any]):
        super().__init__(body.get("error") or body.get("message"))
        self.status_code = status_code
        self.body = body


class LevelGenerationInput(BaseModel):
    name: str
    category: Optional[str] = None
    subject: Optional[str] = None
    description: Optional[str] = None
    base_definition: Dict[str, Any] = {}
    level: int
    max_level: int
    default_xp_award: int = DEFAULT_XP_AWARD


class LevelContent(BaseModel):
    question: str
    inputType: Literal["text", "textarea", "radio", "checkbox", "number"]
    options: Optional[List[str]] = None
    data: Dict[str, Any] = {}
    solutionCriteriaForAI: str
    hint: Optional[str] = None
    level_specific_xp_award: Optional[int] = Field(default=None, ge=0)


def _level_prompt(data: LevelGenerationInput) -> str:
    return f"""You are a puzzle generator for a NEET (medical entrance exam) preparation app.
The puzzle is: "{data.name}" (Category: {data.category}, Subject: {data.subject or 'General'}).
Description: "{data.description or 'Solve this puzzle.'}"
Base definition/type details: {json.dumps(data.base_definition)}

Generate a new puzzle variation for LEVEL {data.level} (out of {data.max_level}).
The difficulty should increase appropriately for this level.
If the puzzle involves specific data (words for anagrams, sequences, equations), provide that new data in "data".
Use "options" only for radio or checkbox input.
"solutionCriteriaForAI" must be a brief, clear instruction for another AI to judge the user's answer, for example "The answer should be X."
Set "level_specific_xp_award" to about {data.default_xp_award}, higher for harder levels."""


level_generator_flow = PromptFlow(
    name="fetchPuzzleForLevel",
    input_model=LevelGenerationInput,
    output_model=LevelContent,
    template=_level_prompt,
)


def parse_evaluation(reply: str) -> Tuple[bool, str]:
    """Turn a grader reply of CORRECT / INCORRECT[: hint] into (correct, feedback)"""
    text = reply.strip()
    upper = text.upper()
    if upper.startswith("INCORRECT"):
        hint = re.sub(r"^[:\s]*", "", text[len("INCORRECT"):]).strip()
        return False, hint or "That's not quite right. Give it another thought!"
    if upper.startswith("CORRECT"):
        return True, "Your solution is correct!"
    return False, "Could not automatically verify the solution with AI. " + text[:100]


def _as_int(value) -> Optional[int]:
    if isinstance(value, bool):
        return None
    try:
        return int(value)
    except (TypeError, ValueError):
        return None


def static_solution_criteria(puzzle: Dict[str, Any]) -> str:
    base = puzzle.get("base_definition") or {}
    if base.get("solutionCriteriaForAI"):
        return base["solutionCriteriaForAI"]
    if base.get("solution") is not None:
        return (f"The correct answer is {json.dumps(base['solution'])}. "
                "Accept answers that match it ignoring case, spacing and formatting.")
    return f'The solution should correctly solve the puzzle type: {base.get("type")} for puzzle "{puzzle.get("name")}".'


def build_grader_prompt(puzzle: Dict[str, Any], level: int, question: str, solution: Any, criteria: str) -> str:
    base = puzzle.get("base_definition") or {}
    return f"""Task: Evaluate a user's solution for a puzzle.
Puzzle Name: "{puzzle.get('name')}"
Puzzle Type: "{base.get('type')}"
Subject: {puzzle.get('subject') or 'General'}
Category: {puzzle.get('category')}
Current Level: {level} (out of {puzzle.get('max_level') or DEFAULT_MAX_LEVEL})
Question for this level: "{question}"
User's Solution: "{json.dumps(solution)}"
Correctness Criteria: "{criteria}"

Is the user's solution correct based on the criteria?
Respond with ONLY "CORRECT" or "INCORRECT".
If "INCORRECT", optionally follow with a COLON and a VERY BRIEF, helpful hint (max 15 words).
Example 1: CORRECT
Example 2: INCORRECT: The sequence should involve adding the previous two numbers."""


class PuzzleService:
    def __init__(self, supabase_service, client: Optional[AsyncOpenAI] = None):
        self.db = supabase_service
        self.client = client

    def _ai_client(self) -> Optional[AsyncOpenAI]:
        return self.client or get_openai_client()

    def _load_puzzle(self, puzzle_id: str) -> Dict[str, Any]:
        puzzle = self.db.get_puzzle(puzzle_id)
        if not puzzle:
            raise PuzzleServiceError(404, {"error": "Puzzle not found"})
        return puzzle

    async def fetch_level(self, payload: Dict[str, Any]) -> Dict[str, Any]:
        user_id = payload.get("user_id")
        puzzle_id = payload.get("puzzle_id")
        level = _as_int(payload.get("level"))
        if not user_id or not puzzle_id or level is None:
            raise PuzzleServiceError(400, {"error": "Missing user_id, puzzle_id, or level"})
        if level < 1:
            raise PuzzleServiceError(400, {"error": "Level must be 1 or greater"})

        puzzle = self._load_puzzle(puzzle_id)
        max_level = puzzle.get("max_level") or DEFAULT_MAX_LEVEL
        if level > max_level:
            raise PuzzleServiceError(400, {"error": f"Level {level} exceeds max level {max_level} for this puzzle."})

        base = puzzle.get("base_definition") or {}
        default_xp = puzzle.get("default_xp_award") or DEFAULT_XP_AWARD

        if level == 1:
            solution = base.get("solution")
            return {
                "puzzle_id": puzzle_id,
                "level": 1,
                "max_level": max_level,
                "question": puzzle.get("description") or puzzle.get("name"),
                "inputType": "text" if isinstance(solution, str) else "textarea",
                "options": None,
                "data": base.get("original_data") or {},
                "solutionCriteriaForAI": None,
                "hint": None,
                "level_specific_xp_award": default_xp,
            }

        client = self._ai_client()
        if client is None:
            raise PuzzleServiceError(500, {"error": "AI service not configured"})

        content = await level_generator_flow.invoke(LevelGenerationInput(
            name=puzzle.get("name") or puzzle_id,
            category=puzzle.get("category"),
            subject=puzzle.get("subject"),
            description=puzzle.get("description"),
            base_definition=base,
            level=level,
            max_level=max_level,
            default_xp_award=default_xp,
        ), client)
        if content is None:
            raise PuzzleServiceError(502, {"error": "AI failed to generate puzzle content"})

        # the grader reads the criteria back from here, never from the submission
        try:
            self.db.save_level_content({
                "user_id": user_id,
                "puzzle_id": puzzle_id,
                "level": level,
                "question": content.question,
                "solution_criteria": content.solutionCriteriaForAI,
                "xp_award": content.level_specific_xp_award,
                "generated_at": utc_now(),
            })
        except Exception as e:
            logger.error(f"Failed to store level {level} of {puzzle_id} for {user_id}: {e}")
            raise PuzzleServiceError(500, {"error": "Failed to store generated puzzle level"})

        logger.info(f"Generated level {level} for puzzle {puzzle_id}")
        return {"puzzle_id": puzzle_id, "level": level, "max_level": max_level, **content.model_dump()}

    async def submit_solution(self, payload: Dict[str, Any]) -> Dict[str, Any]:
        user_id = payload.get("user_id")
        puzzle_id = payload.get("puzzle_id")
        level = _as_int(payload.get("level"))
        solution = payload.get("solution")
        if not user_id or not puzzle_id or level is None or solution is None or solution == "":
            raise PuzzleServiceError(400, {"error": "Missing user_id, puzzle_id, level, or solution"})

        puzzle = self._load_puzzle(puzzle_id)
        max_level = puzzle.get("max_level") or DEFAULT_MAX_LEVEL

        # current_level is the next unlocked level; a missing row unlocks level 1
        progress = self.db.get_puzzle_progress(user_id, puzzle_id)
        current_level = (progress.get("current_level") or 0) if progress else 0
        playable_level = max(current_level, 1)

        if level != playable_level or level > max_level:
            logger.warning(
                f"User {user_id} submitted level {level} for {puzzle_id}; expected {playable_level}"
            )
            raise PuzzleServiceError(400, {"success": False, "message": "Invalid level submitted for evaluation."})

        client = self._ai_client()
        if client is None:
            raise PuzzleServiceError(500, {"error": "AI service not configured"})

        question = puzzle.get("description") or "Solve this."
        criteria = static_solution_criteria(puzzle)
        xp = self._xp_award(puzzle)
        if level > 1:
            stored = self.db.get_level_content(user_id, puzzle_id, level)
            if stored:
                question = stored.get("question") or question
                criteria = stored.get("solution_criteria") or criteria
                stored_xp = _as_int(stored.get("xp_award"))
                if stored_xp is not None and stored_xp >= 0:
                    xp = stored_xp
            else:
                logger.warning(f"No generated content stored for {puzzle_id} level {level}; grading with base criteria")

        reply = await complete_text(build_grader_prompt(puzzle, level, question, solution, criteria), client)
        if reply is None:
            raise PuzzleServiceError(502, {"error": "AI evaluation failed"})

        correct, feedback = parse_evaluation(reply)
        logger.info(f"Puzzle {puzzle_id} level {level} for user {user_id}: {'correct' if correct else 'incorrect'}")
        if not correct:
            return {"success": True, "correct": False, "message": feedback, "newXP": 0}

        completed = level >= max_level
        now = utc_now()
        if completed:
            row = {"user_id": user_id, "puzzle_id": puzzle_id, "current_level": max_level,
                   "last_updated_at": now, "completed_at": now}
        else:
            row = {"user_id": user_id, "puzzle_id": puzzle_id, "current_level": level + 1,
                   "last_updated_at": now}

        try:
            self.db.upsert_puzzle_progress(row)
        except Exception as e:
            logger.error(f"Failed to update puzzle progress for {user_id}/{puzzle_id}: {e}")
            raise PuzzleServiceError(500, {"error": "Solution correct, but failed to update level progress."})

        try:
            self.db.increment_leaderboard_score(user_id, xp)
        except Exception as e:
            logger.error(f"Failed to credit {xp} XP to {user_id}: {e}")

        return {
            "success": True,
            "correct": True,
            "message": feedback,
            "newLevel": level if completed else level + 1,
            "puzzleCompleted": completed,
            "newXP": xp,
        }

    @staticmethod
    def _xp_award(puzzle: Dict[str, Any]) -> int:
        base = puzzle.get("base_definition") or {}
        for value in (base.get("level_specific_xp_award"),
                      puzzle.get("default_xp_award")):
            parsed = _as_int(value)
            if parsed is not None and parsed >= 0:
                return parsed
        return DEFAULT_XP_AWARD
