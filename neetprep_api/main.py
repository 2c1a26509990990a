import os
import time
import logging
from typing import Optional, Dict, Any, List

from fastapi import FastAPI, HTTPException, Request, Depends, Header, Body
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from pydantic import ValidationError
from dotenv import load_dotenv

# Load environment variables first
load_dotenv()

logging.basicConfig(
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
    level=getattr(logging, os.getenv("LOG_LEVEL", "INFO").upper(), logging.INFO),
)
# Reduce httpx logging noise (set to WARNING to only show actual issues)
logging.getLogger("httpx").setLevel(logging.WARNING)

logger = logging.getLogger(__name__)

from .supabase_service import SupabaseService
from .supabase_models import (
    AuthCredentials, ProfileUpdate, Profile, MoodLogCreate, MoodLog,
    QuizSubmission, QuizAttempt, SavedQuestionCreate, GameProgressUpdate, GameProgress,
    ActivityType,
)
from .flow_models import CalculatorInput, SmartNotesInput, QuizGeneratorInput, SearchRequest
from .prompt_flow import get_openai_client
from .search_service import SearchService
from .puzzle_service import PuzzleService, PuzzleServiceError
from .games import build_progress_row, merge_game_state
from . import study_flows, wellbeing_flows, tool_flows

# Initialize Supabase service
supabase_service: Optional[SupabaseService] = None
if os.getenv('SUPABASE_URL') and os.getenv('SUPABASE_KEY'):
    try:
        supabase_service = SupabaseService()
        logger.info("Supabase service initialized successfully")
    except Exception as e:
        logger.warning(f"Supabase service failed to initialize: {e}")
        supabase_service = None
else:
    logger.warning("Skipping Supabase initialization - missing credentials")

search_service = SearchService()

app = FastAPI(
    title="NEET Prep+ Backend API",
    description="AI flows, puzzles and study data for the NEET Prep+ platform",
    version="1.0.0"
)

# CORS configuration
origins = [
    "http://localhost:3000",
    "http://localhost:9002",
]
if os.getenv("FRONTEND_URL"):
    origins.append(os.getenv("FRONTEND_URL"))

app.add_middleware(
    CORSMiddleware,
    allow_origins=origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


def _cors_headers(request: Request) -> Dict[str, str]:
    origin = request.headers.get('origin')
    if origin in origins:
        return {
            "Access-Control-Allow-Origin": origin,
            "Access-Control-Allow-Credentials": "true",
        }
    return {}


# Global exception handler to ensure CORS headers are always included
@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception):
    logger.error(f"Unhandled error on {request.method} {request.url.path}: {exc}")
    return JSONResponse(
        status_code=500,
        content={"detail": f"Internal server error: {str(exc)}"},
        headers=_cors_headers(request),
    )

@app.exception_handler(HTTPException)
async def http_exception_handler(request: Request, exc: HTTPException):
    return JSONResponse(
        status_code=exc.status_code,
        content={"detail": exc.detail},
        headers=_cors_headers(request),
    )

@app.exception_handler(PuzzleServiceError)
async def puzzle_error_handler(request: Request, exc: PuzzleServiceError):
    return JSONResponse(
        status_code=exc.status_code,
        content=exc.body,
        headers=_cors_headers(request),
    )


# ===================================================================================
# HELPERS
# ===================================================================================

def require_db() -> SupabaseService:
    if not supabase_service:
        raise HTTPException(status_code=503, detail="Database service unavailable")
    return supabase_service


def _bearer_token(authorization: Optional[str]) -> str:
    if not authorization or not authorization.lower().startswith("bearer "):
        raise HTTPException(status_code=401, detail="Missing bearer token")
    return authorization.split(" ", 1)[1].strip()


def get_current_user_id(authorization: Optional[str] = Header(None)) -> str:
    """Resolve the Supabase user behind the request's access token"""
    token = _bearer_token(authorization)
    user_id = require_db().get_user_id_from_token(token)
    if not user_id:
        raise HTTPException(status_code=401, detail="Invalid or expired token")
    return user_id


def validation_detail(error: ValidationError) -> List[Dict[str, Any]]:
    return [
        {"loc": list(err["loc"]), "msg": err["msg"], "type": err["type"]}
        for err in error.errors()
    ]


# ===================================================================================
# STATUS
# ===================================================================================

@app.get("/")
async def read_root():
    return {
        "message": "NEET Prep+ Backend API is running",
        "status": "healthy",
        "version": "1.0.0",
    }

@app.get("/api/health")
async def health_check():
    """Health check for all services"""
    return {
        "status": "healthy",
        "timestamp": time.time(),
        "services": {
            "openai": get_openai_client() is not None,
            "search": search_service.configured,
            "supabase": supabase_service.health_check() if supabase_service else False,
        },
        "database": "supabase",
    }


# ===================================================================================
# AUTH
# ===================================================================================

@app.post("/api/auth/signup")
def signup(credentials: AuthCredentials):
    db = require_db()
    try:
        response = db.sign_up(credentials.email, credentials.password, credentials.full_name)
    except Exception as e:
        logger.warning(f"Signup failed for {credentials.email}: {e}")
        raise HTTPException(status_code=400, detail=f"Signup failed: {str(e)}")
    user = getattr(response, "user", None)
    return {
        "success": True,
        "userId": str(user.id) if user else None,
        "confirmationRequired": getattr(response, "session", None) is None,
    }

@app.post("/api/auth/login")
def login(credentials: AuthCredentials):
    db = require_db()
    try:
        response = db.sign_in(credentials.email, credentials.password)
    except Exception as e:
        logger.info(f"Login failed for {credentials.email}: {e}")
        raise HTTPException(status_code=401, detail="Invalid login credentials")
    return {
        "success": True,
        "userId": str(response.user.id),
        "accessToken": response.session.access_token,
        "refreshToken": response.session.refresh_token,
    }

@app.post("/api/auth/logout")
def logout(authorization: Optional[str] = Header(None)):
    db = require_db()
    token = _bearer_token(authorization)
    try:
        db.sign_out(token)
    except Exception as e:
        raise HTTPException(status_code=500, detail=f"Failed to sign out: {str(e)}")
    return {"success": True}


# ===================================================================================
# PROFILE
# ===================================================================================

@app.get("/api/profile", response_model=Profile)
def read_profile(user_id: str = Depends(get_current_user_id)):
    try:
        profile = require_db().get_profile(user_id)
    except HTTPException:
        raise
    except Exception as e:
        raise HTTPException(status_code=500, detail=f"Failed to load profile: {str(e)}")
    if profile is None:
        raise HTTPException(status_code=404, detail="Profile not found")
    return profile

@app.put("/api/profile", response_model=Profile)
def update_profile(update: ProfileUpdate, user_id: str = Depends(get_current_user_id)):
    try:
        db = require_db()
        return db.update_profile(user_id, update.model_dump(exclude_unset=True))
    except HTTPException:
        raise
    except Exception as e:
        raise HTTPException(status_code=500, detail=f"Failed to update profile: {str(e)}")


# ===================================================================================
# AI FLOWS
# ===================================================================================

FLOW_HANDLERS = {
    "generate-quiz": study_flows.generate_quiz,
    "quiz-explanation": study_flows.explain_quiz_question,
    "study-assistant": study_flows.ask_study_assistant,
    "doubt-resolver": study_flows.resolve_doubt,
    "ncert-highlights": study_flows.get_highlights,
    "smart-notes": study_flows.generate_smart_notes,
    "study-room": study_flows.moderate_study_room,
    "syllabus-fact": study_flows.generate_syllabus_fact,
    "daily-challenge": study_flows.generate_daily_challenge,
    "mental-health": wellbeing_flows.get_suggestions,
    "meditation": wellbeing_flows.generate_meditation,
    "daily-motivation": wellbeing_flows.generate_daily_motivation,
    "calculator": tool_flows.calculate_expression,
    "dictionary": tool_flows.get_dictionary_entry,
    "translate": tool_flows.translate_text,
    "customize-app": tool_flows.customize_app,
}

@app.post("/api/flows/{flow_name}")
async def run_flow(flow_name: str, payload: Dict[str, Any] = Body(...),
                   user_id: str = Depends(get_current_user_id)):
    """Run one AI flow without persisting anything"""
    handler = FLOW_HANDLERS.get(flow_name)
    if handler is None:
        raise HTTPException(status_code=404, detail=f"Unknown flow: {flow_name}")
    try:
        result = await handler(payload)
    except ValidationError as e:
        raise HTTPException(status_code=422, detail=validation_detail(e))
    return result.model_dump()

@app.post("/api/search")
async def search(request: SearchRequest, user_id: str = Depends(get_current_user_id)):
    result = await search_service.search(request)
    return result.model_dump(exclude_none=True)


# ===================================================================================
# MOOD
# ===================================================================================

@app.post("/api/mood-logs")
async def create_mood_log(entry: MoodLogCreate, user_id: str = Depends(get_current_user_id)):
    """Ask for wellbeing suggestions and store the check-in with them"""
    try:
        db = require_db()
        result = await wellbeing_flows.get_suggestions({"mood": entry.mood.value, "focusLevel": entry.focusLevel})
        log = db.create_mood_log(user_id, entry.mood.value, entry.focusLevel, result.suggestions)
        db.log_activity(user_id, ActivityType.mood_logged.value,
                        f"Logged mood: {entry.mood.value}", {"focus_level": entry.focusLevel})
        return {"success": True, "log": log, "suggestions": result.suggestions}
    except HTTPException:
        raise
    except Exception as e:
        raise HTTPException(status_code=500, detail=f"Failed to save mood log: {str(e)}")

@app.get("/api/mood-logs", response_model=List[MoodLog])
def list_mood_logs(user_id: str = Depends(get_current_user_id)):
    try:
        return require_db().get_mood_logs(user_id)
    except HTTPException:
        raise
    except Exception as e:
        raise HTTPException(status_code=500, detail=f"Failed to load mood logs: {str(e)}")


# ===================================================================================
# QUIZZES
# ===================================================================================

@app.post("/api/quizzes/generate")
async def generate_quiz(request: QuizGeneratorInput, user_id: str = Depends(get_current_user_id)):
    result = await study_flows.generate_quiz(request)
    return result.model_dump()

@app.post("/api/quizzes/submit")
def submit_quiz(submission: QuizSubmission, user_id: str = Depends(get_current_user_id)):
    """Score a finished quiz and store the quiz, its questions and the attempt"""
    try:
        db = require_db()
        results = [
            answer is not None and answer == question.correctOptionIndex
            for question, answer in zip(submission.questions, submission.answers)
        ]
        score = sum(results)
        total = len(submission.questions)

        quiz = db.create_quiz({
            'user_id': user_id,
            'class_level': submission.class_level,
            'subject': submission.subject,
            'topic': submission.topic,
            'topics': submission.topics,
            'question_source': submission.question_source,
            'difficulty': submission.difficulty,
            'num_questions': total,
        })
        stored_questions = db.create_questions([
            {
                'quiz_id': quiz['id'],
                'question_text': question.questionText,
                'options': question.options,
                'correct_option_index': question.correctOptionIndex,
                'explanation_prompt': question.explanationPrompt or study_flows.build_explanation_prompt(question),
                'class_level': submission.class_level,
                'subject': submission.subject,
                'topic': submission.topic,
                'source': submission.question_source,
            }
            for question in submission.questions
        ])
        question_ids = [row.get('id') for row in stored_questions] or [None] * total

        attempt = db.create_quiz_attempt({
            'user_id': user_id,
            'quiz_id': quiz['id'],
            'score': score,
            'total_questions': total,
            'answers_submitted': [
                {'q': question_id, 'a': answer}
                for question_id, answer in zip(question_ids, submission.answers)
            ],
        })
        db.log_activity(user_id, ActivityType.quiz_attempted.value,
                        f"Completed a quiz on {submission.topic}: {score}/{total}",
                        {'quiz_id': quiz['id'], 'score': score, 'total_questions': total})

        logger.info(f"User {user_id} scored {score}/{total} on quiz {quiz['id']}")
        return {
            "success": True,
            "quizId": quiz['id'],
            "attemptId": attempt['id'] if attempt else None,
            "score": score,
            "totalQuestions": total,
            "results": results,
        }
    except HTTPException:
        raise
    except Exception as e:
        raise HTTPException(status_code=500, detail=f"Failed to save quiz attempt: {str(e)}")

@app.get("/api/quiz-attempts", response_model=List[QuizAttempt])
def list_quiz_attempts(user_id: str = Depends(get_current_user_id)):
    try:
        return require_db().get_quiz_attempts(user_id)
    except HTTPException:
        raise
    except Exception as e:
        raise HTTPException(status_code=500, detail=f"Failed to load quiz attempts: {str(e)}")


# ===================================================================================
# SAVED QUESTIONS
# ===================================================================================

@app.post("/api/saved-questions")
def save_question(question: SavedQuestionCreate, user_id: str = Depends(get_current_user_id)):
    try:
        db = require_db()
        saved = db.save_question(user_id, question.model_dump())
        db.log_activity(user_id, ActivityType.question_saved.value,
                        f"Saved a question on {question.topic or question.subject or 'a topic'}",
                        {'saved_question_id': saved['id'] if saved else None})
        return saved
    except HTTPException:
        raise
    except Exception as e:
        raise HTTPException(status_code=500, detail=f"Failed to save question: {str(e)}")

@app.get("/api/saved-questions")
def list_saved_questions(user_id: str = Depends(get_current_user_id)):
    try:
        return require_db().get_saved_questions(user_id)
    except HTTPException:
        raise
    except Exception as e:
        raise HTTPException(status_code=500, detail=f"Failed to load saved questions: {str(e)}")

@app.delete("/api/saved-questions/{saved_id}")
def delete_saved_question(saved_id: int, user_id: str = Depends(get_current_user_id)):
    try:
        deleted = require_db().delete_saved_question(user_id, saved_id)
    except HTTPException:
        raise
    except Exception as e:
        raise HTTPException(status_code=500, detail=f"Failed to delete saved question: {str(e)}")
    if not deleted:
        raise HTTPException(status_code=404, detail="Saved question not found")
    return {"success": True}


# ===================================================================================
# CALCULATOR & SMART NOTES
# ===================================================================================

@app.post("/api/calculator")
async def calculate(request: CalculatorInput, user_id: str = Depends(get_current_user_id)):
    try:
        db = require_db()
        result = await tool_flows.calculate_expression(request)
        db.add_calculator_history(user_id, request.expression, result.result)
        db.log_activity(user_id, ActivityType.calculator_used.value,
                        f"Calculated: {request.expression[:50]}", {'expression': request.expression})
        return result.model_dump()
    except HTTPException:
        raise
    except Exception as e:
        raise HTTPException(status_code=500, detail=f"Failed to save calculation: {str(e)}")

@app.get("/api/calculator/history")
def calculator_history(user_id: str = Depends(get_current_user_id)):
    try:
        return require_db().get_calculator_history(user_id)
    except HTTPException:
        raise
    except Exception as e:
        raise HTTPException(status_code=500, detail=f"Failed to load calculator history: {str(e)}")

@app.post("/api/smart-notes")
async def create_smart_notes(request: SmartNotesInput, user_id: str = Depends(get_current_user_id)):
    try:
        db = require_db()
        result = await study_flows.generate_smart_notes(request)
        db.create_smart_notes_log(user_id, request.contentType, request.content, result.notes)
        db.log_activity(user_id, ActivityType.smart_notes_generated.value,
                        f"Generated notes: {result.titleSuggestion or request.contentType}",
                        {'content_type': request.contentType, 'subject': request.subject})
        return result.model_dump()
    except HTTPException:
        raise
    except Exception as e:
        raise HTTPException(status_code=500, detail=f"Failed to save smart notes: {str(e)}")

@app.get("/api/smart-notes")
def list_smart_notes(user_id: str = Depends(get_current_user_id)):
    try:
        return require_db().get_smart_notes_logs(user_id)
    except HTTPException:
        raise
    except Exception as e:
        raise HTTPException(status_code=500, detail=f"Failed to load smart notes: {str(e)}")


# ===================================================================================
# ACTIVITY HISTORY
# ===================================================================================

@app.get("/api/activity-logs")
def list_activity_logs(user_id: str = Depends(get_current_user_id)):
    try:
        return require_db().get_activity_logs(user_id)
    except HTTPException:
        raise
    except Exception as e:
        raise HTTPException(status_code=500, detail=f"Failed to load activity logs: {str(e)}")

@app.delete("/api/activity-logs/{log_id}")
def delete_activity_log(log_id: int, user_id: str = Depends(get_current_user_id)):
    try:
        deleted = require_db().delete_activity_log(user_id, log_id)
    except HTTPException:
        raise
    except Exception as e:
        raise HTTPException(status_code=500, detail=f"Failed to delete activity log: {str(e)}")
    if not deleted:
        raise HTTPException(status_code=404, detail="Activity log not found")
    return {"success": True}


# ===================================================================================
# PUZZLES
# ===================================================================================

@app.get("/api/puzzles")
def list_puzzles():
    try:
        return require_db().list_puzzles()
    except HTTPException:
        raise
    except Exception as e:
        raise HTTPException(status_code=500, detail=f"Failed to load puzzles: {str(e)}")

@app.post("/api/puzzles/fetch-level")
async def fetch_puzzle_level(payload: Dict[str, Any] = Body(...)):
    service = PuzzleService(require_db())
    return await service.fetch_level(payload)

@app.post("/api/puzzles/submit-solution")
async def submit_puzzle_solution(payload: Dict[str, Any] = Body(...)):
    service = PuzzleService(require_db())
    return await service.submit_solution(payload)


# ===================================================================================
# GAME PROGRESS
# ===================================================================================

@app.get("/api/games/{game_id}/progress", response_model=GameProgress)
def read_game_progress(game_id: str, user_id: str = Depends(get_current_user_id)):
    try:
        progress = require_db().get_game_progress(user_id, game_id)
    except HTTPException:
        raise
    except Exception as e:
        raise HTTPException(status_code=500, detail=f"Failed to load game progress: {str(e)}")
    if not progress:
        return {"user_id": user_id, "game_id": game_id, "game_specific_state": merge_game_state(game_id, None)}
    return {**progress, "game_specific_state": merge_game_state(game_id, progress.get("game_specific_state"))}

@app.put("/api/games/{game_id}/progress", response_model=GameProgress)
def save_game_progress(game_id: str, update: GameProgressUpdate, user_id: str = Depends(get_current_user_id)):
    try:
        db = require_db()
        row = build_progress_row(user_id, game_id, update.model_dump())
        return db.upsert_game_progress(row) or row
    except HTTPException:
        raise
    except ValidationError as e:
        raise HTTPException(status_code=422, detail=validation_detail(e))
    except Exception as e:
        raise HTTPException(status_code=500, detail=f"Failed to save game progress: {str(e)}")
