import os
import tempfile

# Settings are read once per process; pin them before the app modules load.
os.environ.setdefault("DATABASE_URL", "sqlite://")
os.environ.setdefault("JWT_SECRET", "test-secret")
os.environ.setdefault("USE_IN_MEMORY_STORAGE", "true")
os.environ.setdefault("GEOCODING_ENABLED", "false")
os.environ.setdefault("PUSH_NOTIFICATIONS_ENABLED", "false")
os.environ.setdefault("LOG_PATH", os.path.join(tempfile.gettempdir(), "goplan-tests", "api.log"))
