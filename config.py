import os

BASE_DIR = os.path.abspath(os.path.dirname(__file__))


class Config:
    # Secrets
    SECRET_KEY = os.getenv("SECRET_KEY", "dev-only-change-me")

    # SQLite database file stored next to the code as tutorslot.db
    SQLALCHEMY_DATABASE_URI = os.getenv(
        "DATABASE_URL",
        "sqlite:///" + os.path.join(BASE_DIR, "tutorslot.db")
    )
    SQLALCHEMY_TRACK_MODIFICATIONS = False

    LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()

    # Session cookie name for our auth token
    AUTH_COOKIE_NAME = "tutorslot_session"

    # 8 hours session lifetime
    SESSION_LIFETIME_SECONDS = 8 * 60 * 60

    # Idle timeout: 30 minutes
    IDLE_TIMEOUT_SECONDS = 30 * 60

    SESSION_COOKIE_HTTPONLY = True
    SESSION_COOKIE_SAMESITE = "Lax"
    SESSION_COOKIE_SECURE = os.getenv("SESSION_COOKIE_SECURE", "false").lower() == "true"

    # Brute-force protection
    MAX_LOGIN_ATTEMPTS = 5
    LOCKOUT_MINUTES = 5

    PASSWORD_MIN_LEN = 8
    BCRYPT_ROUNDS = 12

    # GET /api/dates paging
    PAGE_SIZE_DEFAULT = 10
    PAGE_SIZE_MAX = 100

    # Password reset
    PASSWORD_RESET_TTL_SECONDS = int(os.getenv("PASSWORD_RESET_TTL_SECONDS", "3600"))
    APP_PUBLIC_URL = os.getenv("APP_PUBLIC_URL", "http://localhost:4321")

    # Email (SMTP)
    SMTP_HOST = os.getenv("SMTP_HOST")
    SMTP_PORT = int(os.getenv("SMTP_PORT", "587"))
    SMTP_USERNAME = os.getenv("SMTP_USERNAME")
    SMTP_PASSWORD = os.getenv("SMTP_PASSWORD")
    SMTP_FROM_EMAIL = os.getenv("SMTP_FROM_EMAIL")
    SMTP_USE_TLS = os.getenv("SMTP_USE_TLS", "true").lower() == "true"

    DEBUG = False


class TestConfig(Config):
    TESTING = True
    SQLALCHEMY_DATABASE_URI = "sqlite://"
    SMTP_HOST = None
    BCRYPT_ROUNDS = 4
