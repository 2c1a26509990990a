"""
Script to initialize the NEET Prep+ Supabase database.
Creates the tables and functions, then seeds the puzzle catalog.

    python init_supabase.py                 # schema + every puzzle
    python init_supabase.py math_001 word_001   # schema + only these puzzles
"""
import sys

from neetprep_api.supabase_service import SupabaseService
from neetprep_api.puzzle_catalog import PUZZLES, get_catalog_puzzle


def init_database(service: SupabaseService = None, puzzle_ids=None) -> bool:
    """Initialize the database tables in Supabase and seed puzzles"""
    print("🚀 Initializing Supabase database...")

    try:
        service = service or SupabaseService()
    except ValueError as e:
        print(f"❌ {e}")
        print("💡 Make sure you have set SUPABASE_URL and SUPABASE_KEY (service role) in your .env file")
        return False

    if not service.health_check():
        print("❌ Failed to connect to Supabase. Please check your environment variables.")
        return False

    print("✅ Supabase connection successful")

    if not service.create_tables():
        print("⚠️ Automatic table creation failed. Please run SCHEMA_SQL manually in the Supabase SQL Editor")
        return False

    try:
        puzzles = [get_catalog_puzzle(pid) for pid in puzzle_ids] if puzzle_ids else PUZZLES
    except KeyError as e:
        print(f"❌ Unknown puzzle id: {e}")
        return False

    try:
        seeded = service.seed_puzzles(puzzles)
    except Exception as e:
        print(f"❌ Seeding puzzles failed: {e}")
        return False

    print(f"✅ Database initialization completed, {seeded} puzzles seeded")
    return True


if __name__ == "__main__":
    if not init_database(puzzle_ids=sys.argv[1:] or None):
        sys.exit(1)
