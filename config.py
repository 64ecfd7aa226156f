import os
import yaml

ROOT_PATH = os.path.dirname(__file__)
CONFIG_FILE_PATH = os.path.join(ROOT_PATH, "env.yaml")

if os.path.exists(CONFIG_FILE_PATH):
    with open(CONFIG_FILE_PATH, "r") as r_file:
        data = yaml.safe_load(r_file) or dict()
else:
    data = dict()


def _setting(key, default=None):
    # env.yaml wins, then the process environment, then the default
    if key in data:
        return data[key]
    return os.environ.get(key, default)


class ApplicationConfig:
    DB_URI = _setting("DB_URI", "sqlite+aiosqlite:///./marketplace.db")
    REDIS_URL = _setting("REDIS_URL", "redis://localhost:6379/0")
    CACHE_BACKEND = _setting("CACHE_BACKEND", "memory")
    API_PORT = int(_setting("API_PORT", 8000))
    API_HOST = _setting("API_HOST", "0.0.0.0")
    CORS_ORIGINS = _setting("CORS_ORIGINS", [])
    CORS_ALLOW_CREDENTIALS = bool(_setting("CORS_ALLOW_CREDENTIALS", True))
    LOG_LEVEL = _setting("LOG_LEVEL", "INFO")

    # Secrets have no fallback: the app factory refuses to start without them
    JWT_SECRET = _setting("JWT_SECRET")
    OTP_SECRET = _setting("OTP_SECRET")
    ACCESS_TOKEN_TTL_SECONDS = int(_setting("ACCESS_TOKEN_TTL_SECONDS", 15 * 60))
    AUTH_COOKIE_NAME = _setting("AUTH_COOKIE_NAME", "accessToken")
    AUTH_COOKIE_SECURE = bool(int(_setting("AUTH_COOKIE_SECURE", 0)))

    BCRYPT_ROUNDS = _setting("BCRYPT_ROUNDS", 12)
    HASH_WORKERS = int(_setting("HASH_WORKERS", 4))

    OTP_TTL_SECONDS = int(_setting("OTP_TTL_SECONDS", 10 * 60))
    OTP_MAX_ATTEMPTS = int(_setting("OTP_MAX_ATTEMPTS", 3))

    # Proxies in front of the app; 0 keys on the socket peer and ignores X-Forwarded-For
    TRUSTED_PROXY_HOPS = int(_setting("TRUSTED_PROXY_HOPS", 0))
    RATE_LIMIT_ENABLED = bool(int(_setting("RATE_LIMIT_ENABLED", 1)))
    RATE_LIMIT_GLOBAL_MAX = int(_setting("RATE_LIMIT_GLOBAL_MAX", 400))
    RATE_LIMIT_GLOBAL_WINDOW_SECONDS = int(_setting("RATE_LIMIT_GLOBAL_WINDOW_SECONDS", 15 * 60))
    RATE_LIMIT_AUTH_MAX = int(_setting("RATE_LIMIT_AUTH_MAX", 8))
    RATE_LIMIT_AUTH_WINDOW_SECONDS = int(_setting("RATE_LIMIT_AUTH_WINDOW_SECONDS", 15 * 60))
    RATE_LIMIT_API_MAX = int(_setting("RATE_LIMIT_API_MAX", 60))
    RATE_LIMIT_API_WINDOW_SECONDS = int(_setting("RATE_LIMIT_API_WINDOW_SECONDS", 60))

    UPLOAD_DIR = _setting("UPLOAD_DIR", os.path.join(ROOT_PATH, "uploads"))
    UPLOAD_URL_PREFIX = _setting("UPLOAD_URL_PREFIX", "/uploads")
    MAX_UPLOAD_BYTES = int(_setting("MAX_UPLOAD_BYTES", 5 * 1024 * 1024))
    UPLOAD_STAGING_MAX_AGE_SECONDS = int(_setting("UPLOAD_STAGING_MAX_AGE_SECONDS", 15 * 60))
    UPLOAD_SWEEP_INTERVAL_SECONDS = int(_setting("UPLOAD_SWEEP_INTERVAL_SECONDS", 5 * 60))
