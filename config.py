# config.py
import os


def _env_bool(name, default):
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    return raw.strip().lower() in ("1", "true", "yes", "on")


def _env_list(name):
    raw = os.getenv(name) or ""
    return [item.strip().lower() for item in raw.split(",") if item.strip()]


class Config:
    # Keep secrets out of the repo; these defaults are for local runs only
    SECRET_KEY = os.getenv("FLASK_SECRET_KEY", "change_this_secret_for_prod")
    ATTENDANCE_SECRET = os.getenv("ATTENDANCE_SECRET", "attendance_secret_please_change")
    IDENTITY_JWT_SECRET = os.getenv("IDENTITY_JWT_SECRET", "jwt_secret_please_change")
    IDENTITY_JWT_ALGO = "HS256"

    SQLALCHEMY_DATABASE_URI = os.getenv("DATABASE_URL", "sqlite:///attendance.db")
    SQLALCHEMY_TRACK_MODIFICATIONS = False

    # Rotation policy
    ROTATION_SECONDS = int(os.getenv("ROTATION_SECONDS", "30"))
    SESSION_MINUTES = int(os.getenv("SESSION_MINUTES", "90"))
    STRICT_DEVICE_BINDING = _env_bool("STRICT_DEVICE_BINDING", True)

    # The scheduler tick is also the smallest rotation_seconds a session may use
    ROTATION_TICK_SECONDS = int(os.getenv("ROTATION_TICK_SECONDS", "30"))
    ROTATION_SCHEDULER = _env_bool("ROTATION_SCHEDULER", False)
    AUTO_CLOSE_EXPIRED = _env_bool("AUTO_CLOSE_EXPIRED", False)

    ADMIN_EMAILS = _env_list("ADMIN_EMAILS")

    LOG_LEVEL = (os.getenv("LOG_LEVEL") or "INFO").upper()
    LOG_FILE = os.getenv("LOG_FILE")
