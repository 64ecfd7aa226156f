import os
import tempfile

# Configuration is read once at import time; these must be set before any
# module imports config.
os.environ.setdefault("JWT_SECRET", "test-jwt-secret-for-the-suite")
os.environ.setdefault("OTP_SECRET", "test-otp-secret-for-the-suite")
os.environ.setdefault("BCRYPT_ROUNDS", "4")
os.environ.setdefault("DB_URI", "sqlite+aiosqlite:///./test.db")
os.environ.setdefault("UPLOAD_DIR", os.path.join(tempfile.gettempdir(), "marketplace-test-uploads"))
