import os

# Load .env.test for local overrides (e.g. a Postgres DATABASE_URL)
from dotenv import load_dotenv

env_test_path = os.path.join(os.path.dirname(__file__), ".env.test")
if os.path.exists(env_test_path):
    load_dotenv(env_test_path, override=True)

# Settings are read at import time by libs.db.config and libs.auth.dependencies,
# so defaults must be in place before any application module is imported.
os.environ.setdefault("ENVIRONMENT", "test")
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///./marketplace-test.db")
os.environ.setdefault("PAYMENT_GATEWAY_KEY_ID", "rzp_test_key")
os.environ.setdefault("PAYMENT_GATEWAY_KEY_SECRET", "test-gateway-secret")
os.environ.setdefault("RATE_LIMIT_ENABLED", "false")

from libs.common.config import get_settings  # noqa: E402

# Clear cached settings to reload with the env vars above
get_settings.cache_clear()
