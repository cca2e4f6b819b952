import os

from dotenv import dotenv_values

class BaseConfig:
    # Secrets (env in prod; dev/test may use defaults)
    SECRET_KEY = os.environ.get("SECRET_KEY", "dev-not-secure")
    WTF_CSRF_SECRET_KEY = SECRET_KEY
    WTF_CSRF_TIME_LIMIT = None  # avoid surprise expirations during long edits

    # Database (env in prod; dev/test may use default)
    _ENV_FALLBACK = dotenv_values(".env")
    SQLALCHEMY_DATABASE_URI = os.environ.get("DATABASE_URL") or _ENV_FALLBACK.get("DATABASE_URL") or "sqlite:///:memory:"
    SQLALCHEMY_TRACK_MODIFICATIONS = False

    # Logging / misc
    LOG_LEVEL = os.environ.get("LOG_LEVEL", "INFO")

    # Cookies: secure-by-default
    SESSION_COOKIE_HTTPONLY = True
    REMEMBER_COOKIE_HTTPONLY = True
    SESSION_COOKIE_SAMESITE = "Lax"

    # Flask-Limiter default: off globally; prefer per-route limits
    RATELIMIT_DEFAULT = None
    PUBLIC_VERIFY_RATE_LIMIT = os.getenv("PUBLIC_VERIFY_RATE_LIMIT", "10 per minute")

    # Prefix for the public_url returned with each view
    APP_BASE_URL = os.getenv("APP_BASE_URL", "http://localhost:5000")

    # --- Estimates ---
    # Every new estimate starts with these views (an estimate always keeps >= 1 view)
    DEFAULT_VIEW_NAMES = tuple(
        n.strip() for n in os.getenv("DEFAULT_VIEW_NAMES", "Customer,Master").split(",") if n.strip()
    ) or ("Customer",)
    NEW_VIEW_NAME = os.getenv("NEW_VIEW_NAME", "New view")

    # Concurrent snapshot attempts that collide on version_number are retried
    VERSION_CREATE_RETRIES = int(os.getenv("VERSION_CREATE_RETRIES", "3"))

    # --- Public view access grants (issued after password verification) ---
    VIEW_ACCESS_SALT = os.getenv("VIEW_ACCESS_SALT", "view-access-v1")
    VIEW_ACCESS_MAX_AGE = int(os.getenv("VIEW_ACCESS_MAX_AGE", str(12 * 3600)))

class DevelopmentConfig(BaseConfig):
    DEBUG = True
    LOG_LEVEL = os.environ.get("LOG_LEVEL", "DEBUG")
    SESSION_COOKIE_SECURE = False
    REMEMBER_COOKIE_SECURE = False

class ProductionConfig(BaseConfig):
    DEBUG = False
    LOG_LEVEL = os.environ.get("LOG_LEVEL", "WARNING")
    # REQUIRE env vars in production (fail fast if missing); read lazily so
    # importing this module never fails in dev/tests
    SECRET_KEY = os.environ.get("SECRET_KEY")
    SQLALCHEMY_DATABASE_URI = os.environ.get("DATABASE_URL")
    SESSION_COOKIE_SECURE = True
    REMEMBER_COOKIE_SECURE = True
    SESSION_COOKIE_SAMESITE = os.environ.get("SESSION_COOKIE_SAMESITE", "Lax")

class TestingConfig(BaseConfig):
    TESTING = True
    DEBUG = True
    SQLALCHEMY_DATABASE_URI = os.environ.get("TEST_DATABASE_URL", "sqlite:///:memory:")
    SESSION_COOKIE_SECURE = False
    REMEMBER_COOKIE_SECURE = False
    WTF_CSRF_ENABLED = False
    RATELIMIT_ENABLED = False

_ENV_MAP = {
    "development": DevelopmentConfig,
    "production": ProductionConfig,
    "testing": TestingConfig,
}

def get_config():
    env = os.environ.get("APP_ENV", "development").lower()
    return _ENV_MAP.get(env, DevelopmentConfig)
