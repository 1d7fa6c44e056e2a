import os

from dotenv import load_dotenv

load_dotenv()

OPENAI_API_KEY = os.getenv("OPENAI_API_KEY", "")
ANTHROPIC_API_KEY = os.getenv("ANTHROPIC_API_KEY", "")

# LLM configuration
LLM_PROVIDER = os.getenv("LLM_PROVIDER", "auto")
LLM_MODEL = os.getenv("LLM_MODEL", "")
CHAT_MAX_TOKENS = int(os.getenv("CHAT_MAX_TOKENS", "1024"))

# Demo/Debug mode (explicit)
DUMMY_MODE = os.getenv("DUMMY_MODE", "false").lower() in ("1", "true", "yes", "on")

# Patient records database
DATABASE_PATH = os.getenv("DATABASE_PATH", "scandesk.db")

# Per-browser form state (the durable key-value store)
STATE_STORE_PATH = os.getenv("STATE_STORE_PATH", "scandesk_state.db")
SESSION_COOKIE_NAME = os.getenv("SESSION_COOKIE_NAME", "scandesk_session")
RECENT_UPLOADS_CAP = int(os.getenv("RECENT_UPLOADS_CAP", "5"))
MAX_MOUNTED_SESSIONS = int(os.getenv("MAX_MOUNTED_SESSIONS", "1000"))

# Remote Flask inference / sharing backend
INFERENCE_API_URL = os.getenv("INFERENCE_API_URL", "http://localhost:5000")
INFERENCE_TIMEOUT_SECONDS = float(os.getenv("INFERENCE_TIMEOUT_SECONDS", "120"))
SHARE_TIMEOUT_SECONDS = float(os.getenv("SHARE_TIMEOUT_SECONDS", "60"))
PDF_UPLOAD_TIMEOUT_SECONDS = float(os.getenv("PDF_UPLOAD_TIMEOUT_SECONDS", "30"))
