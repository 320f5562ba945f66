import os
from dotenv import load_dotenv

# .env is only a convenience for local development
load_dotenv()


class Config:
    """Base configuration, read from the environment."""

    SECRET_KEY = os.getenv("SECRET_KEY", "dev-secret-key")

    # Supabase Postgres connection string
    SQLALCHEMY_DATABASE_URI = os.getenv("DATABASE_URL")
    SQLALCHEMY_TRACK_MODIFICATIONS = False

    SUPABASE_URL = os.getenv("SUPABASE_URL")
    SUPABASE_KEY = os.getenv("SUPABASE_KEY")

    # Inactivity window before a live search fires
    SEARCH_DEBOUNCE_SECONDS = float(os.getenv("SEARCH_DEBOUNCE_SECONDS", "0.3"))

    LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")
