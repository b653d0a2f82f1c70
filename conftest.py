import os
import tempfile

# Settings are read at import time (engine, limiter), so the test environment
# has to be in place before anything under libs/ or services/ is imported.
_TEST_DB_DIR = tempfile.mkdtemp(prefix="wallet-tests-")
os.environ["DATABASE_URL"] = (
    f"sqlite+aiosqlite:///{os.path.join(_TEST_DB_DIR, 'app.db')}"
)
os.environ["ENVIRONMENT"] = "local"
os.environ["RATE_LIMIT_ENABLED"] = "false"
os.environ.setdefault("JWT_SECRET", "test-jwt-secret")
os.environ.setdefault("TIMEZONE", "Asia/Hong_Kong")

from libs.common.config import get_settings  # noqa: E402

# Clear cached settings to reload with new env vars
get_settings.cache_clear()
