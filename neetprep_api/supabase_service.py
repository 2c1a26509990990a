import os
import logging
from datetime import datetime, timezone
from typing import Optional, Dict, Any, List
from supabase import create_client, Client
from dotenv import load_dotenv

load_dotenv()

logger = logging.getLogger(__name__)


def utc_now() -> str:
    return datetime.now(timezone.utc).isoformat()


SCHEMA_SQL = """
-- Profiles, one per auth user
CREATE TABLE IF NOT EXISTS profiles (
    id UUID PRIMARY KEY REFERENCES auth.users(id) ON DELETE CASCADE,
    email TEXT,
    full_name TEXT,
    username TEXT UNIQUE,
    avatar_url TEXT,
    class_level TEXT,
    target_year INTEGER,
    theme TEXT DEFAULT 'light' CHECK (theme IN ('light', 'dark')),
    focus_coins INTEGER DEFAULT 0,
    xp INTEGER DEFAULT 0,
    updated_at TIMESTAMP WITH TIME ZONE DEFAULT NOW()
);

CREATE TABLE IF NOT EXISTS mood_logs (
    id BIGSERIAL PRIMARY KEY,
    user_id UUID REFERENCES auth.users(id) ON DELETE CASCADE,
    mood TEXT NOT NULL,
    focus_level INTEGER CHECK (focus_level BETWEEN 1 AND 10),
    suggestions TEXT[],
    created_at TIMESTAMP WITH TIME ZONE DEFAULT NOW()
);

CREATE TABLE IF NOT EXISTS quizzes (
    id BIGSERIAL PRIMARY KEY,
    user_id UUID REFERENCES auth.users(id) ON DELETE CASCADE,
    class_level TEXT,
    subject TEXT,
    topic TEXT,
    topics TEXT[],
    question_source TEXT,
    difficulty TEXT,
    num_questions INTEGER,
    created_at TIMESTAMP WITH TIME ZONE DEFAULT NOW()
);

CREATE TABLE IF NOT EXISTS questions (
    id BIGSERIAL PRIMARY KEY,
    quiz_id BIGINT REFERENCES quizzes(id) ON DELETE CASCADE,
    question_text TEXT NOT NULL,
    options JSONB NOT NULL,
    correct_option_index INTEGER NOT NULL,
    explanation_prompt TEXT,
    class_level TEXT,
    subject TEXT,
    topic TEXT,
    source TEXT,
    created_at TIMESTAMP WITH TIME ZONE DEFAULT NOW()
);

CREATE TABLE IF NOT EXISTS quiz_attempts (
    id BIGSERIAL PRIMARY KEY,
    user_id UUID REFERENCES auth.users(id) ON DELETE CASCADE,
    quiz_id BIGINT REFERENCES quizzes(id) ON DELETE CASCADE,
    score INTEGER NOT NULL,
    total_questions INTEGER NOT NULL,
    answers_submitted JSONB,
    completed_at TIMESTAMP WITH TIME ZONE DEFAULT NOW()
);

CREATE TABLE IF NOT EXISTS saved_questions (
    id BIGSERIAL PRIMARY KEY,
    user_id UUID REFERENCES auth.users(id) ON DELETE CASCADE,
    question_id BIGINT REFERENCES questions(id) ON DELETE SET NULL,
    question_text TEXT NOT NULL,
    options JSONB NOT NULL,
    correct_option_index INTEGER NOT NULL,
    explanation_prompt TEXT,
    subject TEXT,
    topic TEXT,
    source TEXT,
    saved_at TIMESTAMP WITH TIME ZONE DEFAULT NOW()
);

CREATE TABLE IF NOT EXISTS calculator_history (
    id BIGSERIAL PRIMARY KEY,
    user_id UUID REFERENCES auth.users(id) ON DELETE CASCADE,
    expression TEXT NOT NULL,
    result TEXT,
    calculated_at TIMESTAMP WITH TIME ZONE DEFAULT NOW()
);

CREATE TABLE IF NOT EXISTS smart_notes_logs (
    id BIGSERIAL PRIMARY KEY,
    user_id UUID REFERENCES auth.users(id) ON DELETE CASCADE,
    content_type TEXT,
    original_content_preview TEXT,
    generated_notes TEXT,
    created_at TIMESTAMP WITH TIME ZONE DEFAULT NOW()
);

CREATE TABLE IF NOT EXISTS activity_logs (
    id BIGSERIAL PRIMARY KEY,
    user_id UUID REFERENCES auth.users(id) ON DELETE CASCADE,
    activity_type TEXT NOT NULL,
    description TEXT,
    details JSONB,
    created_at TIMESTAMP WITH TIME ZONE DEFAULT NOW()
);

CREATE TABLE IF NOT EXISTS puzzles (
    id TEXT PRIMARY KEY,
    name TEXT NOT NULL,
    subject TEXT,
    category TEXT,
    description TEXT,
    base_definition JSONB,
    max_level INTEGER DEFAULT 30,
    default_xp_award INTEGER DEFAULT 10,
    created_at TIMESTAMP WITH TIME ZONE DEFAULT NOW()
);

CREATE TABLE IF NOT EXISTS user_puzzle_progress (
    id BIGSERIAL PRIMARY KEY,
    user_id UUID REFERENCES auth.users(id) ON DELETE CASCADE,
    puzzle_id TEXT REFERENCES puzzles(id) ON DELETE CASCADE,
    current_level INTEGER DEFAULT 0,
    unlocked_at TIMESTAMP WITH TIME ZONE DEFAULT NOW(),
    last_updated_at TIMESTAMP WITH TIME ZONE DEFAULT NOW(),
    completed_at TIMESTAMP WITH TIME ZONE,
    UNIQUE (user_id, puzzle_id)
);

CREATE TABLE IF NOT EXISTS puzzle_level_content (
    id BIGSERIAL PRIMARY KEY,
    user_id UUID REFERENCES auth.users(id) ON DELETE CASCADE,
    puzzle_id TEXT REFERENCES puzzles(id) ON DELETE CASCADE,
    level INTEGER NOT NULL,
    question TEXT,
    solution_criteria TEXT,
    xp_award INTEGER,
    generated_at TIMESTAMP WITH TIME ZONE DEFAULT NOW(),
    UNIQUE (user_id, puzzle_id, level)
);

CREATE TABLE IF NOT EXISTS user_game_progress (
    id BIGSERIAL PRIMARY KEY,
    user_id UUID REFERENCES auth.users(id) ON DELETE CASCADE,
    game_id TEXT NOT NULL,
    current_chapter TEXT,
    current_room TEXT,
    game_specific_state JSONB DEFAULT '{}'::jsonb,
    score INTEGER,
    last_played TIMESTAMP WITH TIME ZONE DEFAULT NOW(),
    completed_at TIMESTAMP WITH TIME ZONE,
    UNIQUE (user_id, game_id)
);

CREATE TABLE IF NOT EXISTS leaderboard_scores (
    user_id UUID REFERENCES auth.users(id) ON DELETE CASCADE,
    period TEXT NOT NULL,
    score INTEGER DEFAULT 0,
    updated_at TIMESTAMP WITH TIME ZONE DEFAULT NOW(),
    PRIMARY KEY (user_id, period)
);

CREATE INDEX IF NOT EXISTS idx_mood_logs_user_id ON mood_logs(user_id);
CREATE INDEX IF NOT EXISTS idx_quiz_attempts_user_id ON quiz_attempts(user_id);
CREATE INDEX IF NOT EXISTS idx_saved_questions_user_id ON saved_questions(user_id);
CREATE INDEX IF NOT EXISTS idx_calculator_history_user_id ON calculator_history(user_id);
CREATE INDEX IF NOT EXISTS idx_smart_notes_logs_user_id ON smart_notes_logs(user_id);
CREATE INDEX IF NOT EXISTS idx_activity_logs_user_id ON activity_logs(user_id);

-- updated_at trigger for profiles
CREATE OR REPLACE FUNCTION update_updated_at_column()
RETURNS TRIGGER AS $$
BEGIN
    NEW.updated_at = NOW();
    RETURN NEW;
END;
$$ language 'plpgsql';

DROP TRIGGER IF EXISTS update_profiles_updated_at ON profiles;
CREATE TRIGGER update_profiles_updated_at
    BEFORE UPDATE ON profiles
    FOR EACH ROW EXECUTE FUNCTION update_updated_at_column();

-- XP credit for solved puzzle levels
CREATE OR REPLACE FUNCTION increment_leaderboard_score(p_user_id UUID, p_score_increment INTEGER, p_period TEXT)
RETURNS VOID AS $$
BEGIN
    INSERT INTO leaderboard_scores (user_id, period, score)
    VALUES (p_user_id, p_period, p_score_increment)
    ON CONFLICT (user_id, period)
    DO UPDATE SET score = leaderboard_scores.score + EXCLUDED.score, updated_at = NOW();
    UPDATE profiles SET xp = COALESCE(xp, 0) + p_score_increment WHERE id = p_user_id;
END;
$$ language 'plpgsql';
"""


class SupabaseService:
    def __init__(self, client: Optional[Client] = None):
        self.supabase_url = os.getenv("SUPABASE_URL")
        self.supabase_key = os.getenv("SUPABASE_KEY")

        if client is not None:
            self.client = client
            return

        if not self.supabase_url or not self.supabase_key:
            raise ValueError("SUPABASE_URL and SUPABASE_KEY environment variables are required")

        self.client: Client = create_client(self.supabase_url, self.supabase_key)
        logger.info(f"Supabase client initialized for {self.supabase_url}")

    def create_tables(self) -> bool:
        """Create tables, indexes, triggers and the leaderboard function"""
        try:
            self.client.rpc('exec_sql', {'sql': SCHEMA_SQL}).execute()
            logger.info("Database tables, indexes and functions created")
            return True
        except Exception as e:
            logger.error(f"Error creating tables: {e}")
            return False

    # Auth
    def _auth_client(self):
        # sign-in stores a session on the client, so it gets a throwaway one
        if self.supabase_url and self.supabase_key:
            return create_client(self.supabase_url, self.supabase_key)
        return self.client

    def sign_up(self, email: str, password: str, full_name: Optional[str] = None):
        options = {"data": {"full_name": full_name}} if full_name else {}
        return self._auth_client().auth.sign_up({"email": email, "password": password, "options": options})

    def sign_in(self, email: str, password: str):
        return self._auth_client().auth.sign_in_with_password({"email": email, "password": password})

    def sign_out(self, access_token: str):
        return self.client.auth.admin.sign_out(access_token)

    def get_user_id_from_token(self, access_token: str) -> Optional[str]:
        try:
            response = self.client.auth.get_user(access_token)
        except Exception as e:
            logger.warning(f"Token verification failed: {e}")
            return None
        user = getattr(response, "user", None)
        return str(user.id) if user else None

    # Profiles
    def get_profile(self, user_id: str) -> Optional[Dict[str, Any]]:
        try:
            result = self.client.table('profiles').select("*").eq('id', user_id).execute()
            return result.data[0] if result.data else None
        except Exception as e:
            logger.error(f"Error getting profile {user_id}: {e}")
            raise

    def update_profile(self, user_id: str, update_data: Dict[str, Any]) -> Optional[Dict[str, Any]]:
        """Last write wins; the row is created if the signup trigger did not make one"""
        try:
            row = {**update_data, 'id': user_id, 'updated_at': utc_now()}
            result = self.client.table('profiles').upsert(row, on_conflict='id').execute()
            return result.data[0] if result.data else None
        except Exception as e:
            logger.error(f"Error updating profile {user_id}: {e}")
            raise

    # Mood
    def create_mood_log(self, user_id: str, mood: str, focus_level: int, suggestions: List[str]) -> Dict[str, Any]:
        try:
            result = self.client.table('mood_logs').insert({
                'user_id': user_id,
                'mood': mood,
                'focus_level': focus_level,
                'suggestions': suggestions,
            }).execute()
            return result.data[0] if result.data else None
        except Exception as e:
            logger.error(f"Error saving mood log: {e}")
            raise

    def get_mood_logs(self, user_id: str, limit: int = 15) -> List[Dict[str, Any]]:
        try:
            result = (self.client.table('mood_logs').select("*").eq('user_id', user_id)
                      .order('created_at', desc=True).limit(limit).execute())
            return result.data or []
        except Exception as e:
            logger.error(f"Error getting mood logs: {e}")
            raise

    # Quizzes
    def create_quiz(self, quiz_data: Dict[str, Any]) -> Dict[str, Any]:
        try:
            result = self.client.table('quizzes').insert(quiz_data).execute()
            return result.data[0] if result.data else None
        except Exception as e:
            logger.error(f"Error creating quiz: {e}")
            raise

    def create_questions(self, questions: List[Dict[str, Any]]) -> List[Dict[str, Any]]:
        try:
            result = self.client.table('questions').insert(questions).execute()
            return result.data or []
        except Exception as e:
            logger.error(f"Error inserting quiz questions: {e}")
            raise

    def create_quiz_attempt(self, attempt_data: Dict[str, Any]) -> Dict[str, Any]:
        try:
            result = self.client.table('quiz_attempts').insert(attempt_data).execute()
            return result.data[0] if result.data else None
        except Exception as e:
            logger.error(f"Error saving quiz attempt: {e}")
            raise

    def get_quiz_attempts(self, user_id: str, limit: int = 10) -> List[Dict[str, Any]]:
        try:
            result = (self.client.table('quiz_attempts').select("*").eq('user_id', user_id)
                      .order('completed_at', desc=True).limit(limit).execute())
            return result.data or []
        except Exception as e:
            logger.error(f"Error getting quiz attempts: {e}")
            raise

    # Saved questions
    def save_question(self, user_id: str, question_data: Dict[str, Any]) -> Dict[str, Any]:
        try:
            result = self.client.table('saved_questions').insert({**question_data, 'user_id': user_id}).execute()
            return result.data[0] if result.data else None
        except Exception as e:
            logger.error(f"Error saving question: {e}")
            raise

    def get_saved_questions(self, user_id: str) -> List[Dict[str, Any]]:
        try:
            result = (self.client.table('saved_questions').select("*").eq('user_id', user_id)
                      .order('saved_at', desc=True).execute())
            return result.data or []
        except Exception as e:
            logger.error(f"Error getting saved questions: {e}")
            raise

    def delete_saved_question(self, user_id: str, saved_id: int) -> bool:
        try:
            result = self.client.table('saved_questions').delete().eq('id', saved_id).eq('user_id', user_id).execute()
            return bool(result.data)
        except Exception as e:
            logger.error(f"Error deleting saved question {saved_id}: {e}")
            raise

    # Calculator
    def add_calculator_history(self, user_id: str, expression: str, result_text: str) -> Dict[str, Any]:
        try:
            result = self.client.table('calculator_history').insert({
                'user_id': user_id,
                'expression': expression,
                'result': result_text,
            }).execute()
            return result.data[0] if result.data else None
        except Exception as e:
            logger.error(f"Error saving calculator history: {e}")
            raise

    def get_calculator_history(self, user_id: str, limit: int = 20) -> List[Dict[str, Any]]:
        try:
            result = (self.client.table('calculator_history').select("*").eq('user_id', user_id)
                      .order('calculated_at', desc=True).limit(limit).execute())
            return result.data or []
        except Exception as e:
            logger.error(f"Error getting calculator history: {e}")
            raise

    # Smart notes
    def create_smart_notes_log(self, user_id: str, content_type: str, content: str, notes: str) -> Dict[str, Any]:
        preview = content[:200] + "..." if len(content) > 200 else content
        try:
            result = self.client.table('smart_notes_logs').insert({
                'user_id': user_id,
                'content_type': content_type,
                'original_content_preview': preview,
                'generated_notes': notes,
            }).execute()
            return result.data[0] if result.data else None
        except Exception as e:
            logger.error(f"Error saving smart notes log: {e}")
            raise

    def get_smart_notes_logs(self, user_id: str, limit: int = 20) -> List[Dict[str, Any]]:
        try:
            result = (self.client.table('smart_notes_logs').select("*").eq('user_id', user_id)
                      .order('created_at', desc=True).limit(limit).execute())
            return result.data or []
        except Exception as e:
            logger.error(f"Error getting smart notes logs: {e}")
            raise

    # Activity logs
    def log_activity(self, user_id: str, activity_type: str, description: str,
                     details: Optional[Dict[str, Any]] = None) -> Optional[Dict[str, Any]]:
        """Best effort side log; failures are logged and swallowed"""
        try:
            result = self.client.table('activity_logs').insert({
                'user_id': user_id,
                'activity_type': activity_type,
                'description': description,
                'details': details or {},
            }).execute()
            return result.data[0] if result.data else None
        except Exception as e:
            logger.warning(f"Could not write activity log '{activity_type}' for {user_id}: {e}")
            return None

    def get_activity_logs(self, user_id: str, limit: int = 50) -> List[Dict[str, Any]]:
        try:
            result = (self.client.table('activity_logs').select("*").eq('user_id', user_id)
                      .order('created_at', desc=True).limit(limit).execute())
            return result.data or []
        except Exception as e:
            logger.error(f"Error getting activity logs: {e}")
            raise

    def delete_activity_log(self, user_id: str, log_id: int) -> bool:
        try:
            result = self.client.table('activity_logs').delete().eq('id', log_id).eq('user_id', user_id).execute()
            return bool(result.data)
        except Exception as e:
            logger.error(f"Error deleting activity log {log_id}: {e}")
            raise

    # Puzzles
    def get_puzzle(self, puzzle_id: str) -> Optional[Dict[str, Any]]:
        try:
            result = self.client.table('puzzles').select("*").eq('id', puzzle_id).execute()
            return result.data[0] if result.data else None
        except Exception as e:
            logger.error(f"Error getting puzzle {puzzle_id}: {e}")
            raise

    def list_puzzles(self) -> List[Dict[str, Any]]:
        try:
            result = self.client.table('puzzles').select("*").order('id').execute()
            return result.data or []
        except Exception as e:
            logger.error(f"Error listing puzzles: {e}")
            raise

    def seed_puzzles(self, puzzles: List[Dict[str, Any]]) -> int:
        try:
            result = self.client.table('puzzles').upsert(puzzles, on_conflict='id').execute()
            return len(result.data or [])
        except Exception as e:
            logger.error(f"Error seeding puzzles: {e}")
            raise

    def get_puzzle_progress(self, user_id: str, puzzle_id: str) -> Optional[Dict[str, Any]]:
        try:
            result = (self.client.table('user_puzzle_progress').select("*")
                      .eq('user_id', user_id).eq('puzzle_id', puzzle_id).execute())
            return result.data[0] if result.data else None
        except Exception as e:
            logger.error(f"Error getting puzzle progress: {e}")
            raise

    def upsert_puzzle_progress(self, progress: Dict[str, Any]) -> Optional[Dict[str, Any]]:
        try:
            result = self.client.table('user_puzzle_progress').upsert(progress, on_conflict='user_id,puzzle_id').execute()
            return result.data[0] if result.data else None
        except Exception as e:
            logger.error(f"Error updating puzzle progress: {e}")
            raise

    def save_level_content(self, content: Dict[str, Any]) -> Optional[Dict[str, Any]]:
        """Keep the latest generated question and criteria for a user's puzzle level"""
        try:
            result = (self.client.table('puzzle_level_content')
                      .upsert(content, on_conflict='user_id,puzzle_id,level').execute())
            return result.data[0] if result.data else None
        except Exception as e:
            logger.error(f"Error saving generated level content: {e}")
            raise

    def get_level_content(self, user_id: str, puzzle_id: str, level: int) -> Optional[Dict[str, Any]]:
        try:
            result = (self.client.table('puzzle_level_content').select("*")
                      .eq('user_id', user_id).eq('puzzle_id', puzzle_id).eq('level', level).execute())
            return result.data[0] if result.data else None
        except Exception as e:
            logger.error(f"Error getting generated level content: {e}")
            raise

    def increment_leaderboard_score(self, user_id: str, amount: int, period: str = 'all_time'):
        return self.client.rpc('increment_leaderboard_score', {
            'p_user_id': user_id,
            'p_score_increment': amount,
            'p_period': period,
        }).execute()

    # Games
    def get_game_progress(self, user_id: str, game_id: str) -> Optional[Dict[str, Any]]:
        try:
            result = (self.client.table('user_game_progress').select("*")
                      .eq('user_id', user_id).eq('game_id', game_id).execute())
            return result.data[0] if result.data else None
        except Exception as e:
            logger.error(f"Error getting game progress: {e}")
            raise

    def upsert_game_progress(self, progress: Dict[str, Any]) -> Optional[Dict[str, Any]]:
        try:
            result = self.client.table('user_game_progress').upsert(progress, on_conflict='user_id,game_id').execute()
            return result.data[0] if result.data else None
        except Exception as e:
            logger.error(f"Error saving game progress: {e}")
            raise

    # Health check
    def health_check(self) -> bool:
        """Check if Supabase connection is working"""
        try:
            self.client.table('puzzles').select('id').limit(1).execute()
            return True
        except Exception as e:
            if 'does not exist' in str(e):
                return True  # connection works, schema not created yet
            logger.error(f"Supabase health check failed: {e}")
            return False
