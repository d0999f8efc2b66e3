import os


def _env_bool(name: str, default: str) -> bool:
    return os.getenv(name, default).lower() in ("1", "true", "yes", "on")


class Settings:
    DATABASE_URL: str = os.getenv("DATABASE_URL", "sqlite+aiosqlite:///./slate.db")
    SQL_ECHO: bool = _env_bool("SQL_ECHO", "false")

    SECRET_KEY: str = os.getenv("SECRET_KEY", "your-secret-key")
    ALGORITHM: str = "HS256"
    ACCESS_TOKEN_EXPIRE_MINUTES: int = int(os.getenv("ACCESS_TOKEN_EXPIRE_MINUTES", "30"))

    CLIENT_URL: str = os.getenv("CLIENT_URL", "http://localhost:5173")

    # bcrypt cost factor for share-link passwords
    SHARE_LINK_PASSWORD_ROUNDS: int = int(os.getenv("SHARE_LINK_PASSWORD_ROUNDS", "12"))
    SHARE_TOKEN_BYTES: int = int(os.getenv("SHARE_TOKEN_BYTES", "32"))
    SHARE_TOKEN_MAX_ATTEMPTS: int = int(os.getenv("SHARE_TOKEN_MAX_ATTEMPTS", "5"))

    NOTIFICATIONS_ENABLED: bool = _env_bool("NOTIFICATIONS_ENABLED", "true")
    NOTIFY_CONCURRENCY: int = int(os.getenv("NOTIFY_CONCURRENCY", "5"))
    NOTIFY_MAX_ATTEMPTS: int = int(os.getenv("NOTIFY_MAX_ATTEMPTS", "3"))
    NOTIFY_BACKOFF_SECS: float = float(os.getenv("NOTIFY_BACKOFF_SECS", "2.0"))

    EMAIL_FROM: str = os.getenv("EMAIL_FROM", "no-reply@slate.app")
    EMAIL_FROM_NAME: str = os.getenv("EMAIL_FROM_NAME", "Slate App")
    SENDGRID_API_KEY: str = os.getenv("SENDGRID_API_KEY", "")

settings = Settings()
