import os

HOST = os.getenv("HOST", "0.0.0.0")
PORT = int(os.getenv("PORT", 5001))

PISTON_API_URL = os.getenv("PISTON_API_URL", "https://emkc.org/api/v2/piston/execute")

GEMINI_API_KEY = os.getenv("GEMINI_API_KEY", None)
GEMINI_MODEL = os.getenv("GEMINI_MODEL", "gemini-2.0-flash")
GEMINI_API_URL = os.getenv("GEMINI_API_URL", "https://generativelanguage.googleapis.com/v1beta")

PING_URL = os.getenv("PING_URL", None)
KEEPALIVE_INTERVAL_MS = int(os.getenv("KEEPALIVE_INTERVAL_MS", 30000))

DEFAULT_LANGUAGE = os.getenv("DEFAULT_LANGUAGE", "cpp")
REAP_EMPTY_ROOMS = os.getenv("REAP_EMPTY_ROOMS", "true").lower() in ("1", "true", "yes")

FRONTEND_DIST = os.getenv("FRONTEND_DIST", os.path.join("frontend", "dist"))

# Versions used when a client asks for the wildcard version "*"
DEFAULT_VERSIONS = {
    "cpp": "10.2.0",
    "python3": "3.10.0",
    "javascript": "18.15.0",
    "java": "15.0.2",
}

SUPPORTED_LANGUAGES = tuple(DEFAULT_VERSIONS)

# Client language name -> executor language name
EXECUTOR_LANGUAGE_ALIASES = {
    "cpp": "c++",
    "python3": "python",
}

REVIEW_FALLBACK_MESSAGE = "Unable to review currently please try later"
