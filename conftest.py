import os

# Load .env.test for local overrides before any settings are read
from dotenv import load_dotenv

env_test_path = os.path.join(os.path.dirname(__file__), ".env.test")
if os.path.exists(env_test_path):
    load_dotenv(env_test_path, override=True)

# Test defaults. The module-level engine is never connected during tests;
# fixtures build a per-test SQLite database instead.
os.environ.setdefault("ENVIRONMENT", "local")
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///./storefront-test.db")
os.environ.setdefault("JWT_SECRET", "test-jwt-secret")
os.environ.setdefault("ADMIN_REGISTRATION_CODE", "test-admin-code")
os.environ.setdefault("RATE_LIMIT_ENABLED", "false")

from libs.common.config import get_settings  # noqa: E402

# Clear cached settings to reload with the test env vars
get_settings.cache_clear()
