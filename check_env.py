#!/usr/bin/env python3
"""
Check environment variables for Supabase, OpenAI and Google search
"""

import os
from dotenv import load_dotenv

# Load environment variables from .env file
load_dotenv()

REQUIRED_VARS = [
    ("Supabase URL", "SUPABASE_URL"),
    ("Supabase Key", "SUPABASE_KEY"),
    ("OpenAI Key", "OPENAI_API_KEY"),
]

OPTIONAL_VARS = [
    ("OpenAI Model", "OPENAI_MODEL"),
    ("Google Search Key", "GOOGLE_CUSTOM_SEARCH_API_KEY"),
    ("Google Search Engine ID", "GOOGLE_CUSTOM_SEARCH_ENGINE_ID"),
    ("Frontend URL", "FRONTEND_URL"),
    ("Log level", "LOG_LEVEL"),
]


def mask(value: str) -> str:
    if len(value) > 30:
        return f"{value[:20]}...{value[-10:]}"
    return value


def missing_vars(env=None):
    """Names of required variables that are unset or empty"""
    env = os.environ if env is None else env
    return [name for _, name in REQUIRED_VARS if not env.get(name)]


def check_env_vars(env=None) -> bool:
    env = os.environ if env is None else env
    print("🔍 Checking Environment Variables...")
    print("=" * 50)

    for title, rows in (("🔑 REQUIRED:", REQUIRED_VARS), ("⚙️ OPTIONAL:", OPTIONAL_VARS)):
        print(title)
        for label, name in rows:
            value = env.get(name)
            print(f"  {name}: {'✅ SET' if value else '❌ NOT SET'}")
            if value and "KEY" not in name:
                print(f"    Value: {mask(value)}")
        print()

    missing = missing_vars(env)
    print("📋 SUMMARY:")
    if missing:
        print(f"❌ Missing: {', '.join(missing)}")
        if "OPENAI_API_KEY" in missing:
            print("💡 AI flows will answer with their fallback content until OPENAI_API_KEY is set")
        return False
    print("✅ All required environment variables are set!")
    return True


if __name__ == "__main__":
    check_env_vars()
