import os
from datetime import timedelta
from pathlib import Path
from dotenv import load_dotenv

BASE_DIR = Path(__file__).resolve().parent.parent  # project root (where wsgi.py is)
load_dotenv(BASE_DIR / ".env")


def engine_options(database_uri: str | None, timeout_seconds: int) -> dict:
    """
    Bound every storage call so a stuck database surfaces as
    StorageUnavailable instead of a hung request.
    """
    options = {"pool_pre_ping": True}
    if not database_uri:
        return options

    if database_uri.startswith("sqlite"):
        options["connect_args"] = {"timeout": timeout_seconds}
        return options

    options["pool_timeout"] = timeout_seconds
    if database_uri.startswith("postgres"):
        options["connect_args"] = {
            "connect_timeout": timeout_seconds,
            "options": f"-c statement_timeout={timeout_seconds * 1000}",
        }
    return options


class Config:
    SECRET_KEY = os.getenv("SECRET_KEY", "dev-secret")
    SQLALCHEMY_DATABASE_URI = os.getenv("DATABASE_URL")
    SQLALCHEMY_TRACK_MODIFICATIONS = False
    STORAGE_TIMEOUT_SECONDS = int(os.getenv("STORAGE_TIMEOUT_SECONDS", "5"))
    SQLALCHEMY_ENGINE_OPTIONS = engine_options(SQLALCHEMY_DATABASE_URI, STORAGE_TIMEOUT_SECONDS)

    JWT_SECRET_KEY = os.getenv("JWT_SECRET_KEY", "jwt-dev-secret")
    JWT_ACCESS_TOKEN_EXPIRES = timedelta(
        minutes=int(os.getenv("JWT_ACCESS_TOKEN_EXPIRES_MIN", "30"))
    )

    # Voting links. No default secret: create_app() refuses to start without one.
    VOTE_LINK_SECRET = os.getenv("VOTE_LINK_SECRET")
    VOTE_LINK_MIN_SECRET_LENGTH = int(os.getenv("VOTE_LINK_MIN_SECRET_LENGTH", "32"))
    VOTE_LINK_TTL_HOURS = int(os.getenv("VOTE_LINK_TTL_HOURS", "720"))  # 30 days
    VOTE_LINK_PURGE_AFTER_DAYS = int(os.getenv("VOTE_LINK_PURGE_AFTER_DAYS", "30"))
    FRONTEND_URL = os.getenv("FRONTEND_URL", "http://localhost:5173")

    # Mail (SMTP)
    MAIL_SERVER = os.getenv("MAIL_SERVER", "smtp.gmail.com")
    MAIL_PORT = int(os.getenv("MAIL_PORT", "587"))
    MAIL_USE_TLS = os.getenv("MAIL_USE_TLS", "true").lower() == "true"
    MAIL_USE_SSL = os.getenv("MAIL_USE_SSL", "false").lower() == "true"
    MAIL_USERNAME = os.getenv("MAIL_USERNAME")
    MAIL_PASSWORD = os.getenv("MAIL_PASSWORD")
    MAIL_DEFAULT_SENDER = os.getenv("MAIL_DEFAULT_SENDER", MAIL_USERNAME)
    SWAGGER = {"title": "Chapter Voting Links API", "uiversion": 3}
