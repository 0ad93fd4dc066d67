"""Root conftest — environment for tests (in-memory database, text logs)."""

import os

# Never touch a real database or the default fallback file from tests
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///:memory:")
os.environ.setdefault("FALLBACK_STORE_PATH", "./.pytest-fallback-store.json")
os.environ.setdefault("LOG_FORMAT", "text")
