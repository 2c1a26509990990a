from pydantic import BaseModel, Field, model_validator
from typing import Optional, List, Dict, Any, Literal
from datetime import datetime
from enum import Enum
from .flow_models import QuizQuestion


class Mood(str, Enum):
    happy = "happy"
    calm = "calm"
    neutral = "neutral"
    sad = "sad"
    stressed = "stressed"
    anxious = "anxious"
    angry = "angry"
    productive = "productive"
    energized = "energized"
    focused = "focused"


class ActivityType(str, Enum):
    quiz_attempted = "quiz_attempted"
    mood_logged = "mood_logged"
    calculator_used = "calculator_used"
    smart_notes_generated = "smart_notes_generated"
    question_saved = "question_saved"


# Auth

class AuthCredentials(BaseModel):
    email: str = Field(min_length=3)
    password: str = Field(min_length=6)
    full_name: Optional[str] = None


# Profiles

class ProfileUpdate(BaseModel):
    full_name: Optional[str] = None
    username: Optional[str] = None
    avatar_url: Optional[str] = None
    class_level: Optional[str] = None
    target_year: Optional[int] = None
    theme: Optional[Literal["light", "dark"]] = None

class Profile(BaseModel):
    id: str
    email: Optional[str] = None
    full_name: Optional[str] = None
    username: Optional[str] = None
    avatar_url: Optional[str] = None
    class_level: Optional[str] = None
    target_year: Optional[int] = None
    theme: Optional[str] = "light"
    focus_coins: Optional[int] = 0
    xp: Optional[int] = 0
    updated_at: Optional[datetime] = None

    class Config:
        from_attributes = True


# Mood

class MoodLogCreate(BaseModel):
    mood: Mood
    focusLevel: int = Field(ge=1, le=10)

class MoodLog(BaseModel):
    id: int
    user_id: str
    mood: str
    focus_level: int
    suggestions: Optional[List[str]] = []
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True


# Quizzes

class QuizSubmission(BaseModel):
    topic: str = Field(min_length=1)
    difficulty: Literal["easy", "medium", "hard"]
    subject: Optional[str] = None
    class_level: Optional[str] = None
    topics: Optional[List[str]] = None
    question_source: Optional[str] = None
    questions: List[QuizQuestion] = Field(min_length=1)
    # selected option index per question, None when skipped
    answers: List[Optional[int]]

    @model_validator(mode="after")
    def answers_match_questions(self):
        if len(self.answers) != len(self.questions):
            raise ValueError("answers must have one entry per question")
        return self

class QuizAttempt(BaseModel):
    id: int
    user_id: str
    quiz_id: int
    score: int
    total_questions: int
    answers_submitted: Optional[List[Dict[str, Any]]] = []
    completed_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class SavedQuestionCreate(BaseModel):
    question_id: Optional[int] = None
    question_text: str = Field(min_length=1)
    options: List[str] = Field(min_length=2)
    correct_option_index: int = Field(ge=0)
    explanation_prompt: Optional[str] = None
    subject: Optional[str] = None
    topic: Optional[str] = None
    source: Optional[str] = None

    @model_validator(mode="after")
    def index_in_range(self):
        if self.correct_option_index >= len(self.options):
            raise ValueError("correct_option_index is out of range for options")
        return self


# Games

class GameProgressUpdate(BaseModel):
    current_chapter: Optional[str] = None
    current_room: Optional[str] = None
    game_specific_state: Dict[str, Any] = {}
    score: Optional[int] = None

class GameProgress(BaseModel):
    user_id: str
    game_id: str
    current_chapter: Optional[str] = None
    current_room: Optional[str] = None
    game_specific_state: Dict[str, Any] = {}
    score: Optional[int] = None
    last_played: Optional[datetime] = None
    completed_at: Optional[datetime] = None

    class Config:
        from_attributes = True
